"""Tests for socket enumeration and instance probing."""

import os
import subprocess
import sys
import threading

import pytest

from nvim_lsp_bridge import config, discovery
from nvim_lsp_bridge.discovery import NvimInstance


def touch(path):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("")
    return path


class TestFindAllNeovimSockets:
    def test_missing_root_is_empty(self, tmp_path):
        assert discovery.find_all_neovim_sockets(str(tmp_path / "nope")) == []

    def test_empty_root_is_empty(self, tmp_path):
        assert discovery.find_all_neovim_sockets(str(tmp_path)) == []

    def test_finds_sockets_across_subdirectories(self, tmp_path):
        a = touch(tmp_path / "abc" / "nvim.1.0")
        b = touch(tmp_path / "def" / "nvim.2.0")
        touch(tmp_path / "def" / "nvim.2.1")
        touch(tmp_path / "def" / "other.3.0")

        found = discovery.find_all_neovim_sockets(str(tmp_path))

        assert sorted(found) == sorted([str(a), str(b)])

    def test_plain_files_in_root_are_skipped(self, tmp_path):
        touch(tmp_path / "nvim.9.0")
        sock = touch(tmp_path / "sub" / "nvim.1.0")

        assert discovery.find_all_neovim_sockets(str(tmp_path)) == [str(sock)]

    def test_defaults_to_per_user_tmp_dir(self, tmp_path, monkeypatch):
        monkeypatch.setenv("USER", "alice")
        monkeypatch.setattr(discovery.config.tempfile, "gettempdir", lambda: str(tmp_path))
        sock = touch(tmp_path / "nvim.alice" / "x" / "nvim.42.0")

        assert config.socket_root() == str(tmp_path / "nvim.alice")
        assert discovery.find_all_neovim_sockets() == [str(sock)]

    def test_unknown_user(self, monkeypatch):
        monkeypatch.delenv("USER", raising=False)
        assert config.socket_root().endswith("nvim.unknown")


def test_sort_by_mtime_newest_first(tmp_path):
    old = touch(tmp_path / "a" / "nvim.1.0")
    new = touch(tmp_path / "b" / "nvim.2.0")
    os.utime(old, (1000, 1000))
    os.utime(new, (2000, 2000))

    ordered = discovery.sort_by_mtime([str(old), str(tmp_path / "gone"), str(new)])

    assert ordered == [str(new), str(old)]


class TestGetNvimInfo:
    def test_live_instance(self, monkeypatch):
        seen = {}

        def fake_run(cmd, **kwargs):
            seen["cmd"] = cmd
            seen["timeout"] = kwargs["timeout"]
            return subprocess.CompletedProcess(cmd, 0, stdout="/x\n", stderr="")

        monkeypatch.setattr(discovery.subprocess, "run", fake_run)

        instance = discovery.get_nvim_info("/tmp/nvim.1.0", timeout=2.5)

        assert instance == NvimInstance(socket_path="/tmp/nvim.1.0", cwd="/x")
        assert seen["cmd"][:3] == [sys.executable, "-m", "nvim_lsp_bridge.nvim_rpc"]
        assert "/tmp/nvim.1.0" in seen["cmd"]
        assert seen["timeout"] == 2.5

    def test_failed_probe_is_none(self, monkeypatch):
        monkeypatch.setattr(
            discovery.subprocess,
            "run",
            lambda cmd, **kw: subprocess.CompletedProcess(cmd, 1, stdout="", stderr="refused"),
        )
        assert discovery.get_nvim_info("/tmp/dead") is None

    def test_timeout_is_none(self, monkeypatch):
        def fake_run(cmd, **kwargs):
            raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

        monkeypatch.setattr(discovery.subprocess, "run", fake_run)
        assert discovery.get_nvim_info("/tmp/hung") is None

    def test_default_timeout_from_env(self, monkeypatch):
        seen = {}

        def fake_run(cmd, **kwargs):
            seen["timeout"] = kwargs["timeout"]
            return subprocess.CompletedProcess(cmd, 0, stdout="/", stderr="")

        monkeypatch.setattr(discovery.subprocess, "run", fake_run)
        monkeypatch.setenv(config.PROBE_TIMEOUT_ENV, "0.25")

        discovery.get_nvim_info("/tmp/s")

        assert seen["timeout"] == 0.25


@pytest.mark.parametrize("raw", ["abc", "-1", "0"])
def test_invalid_probe_timeout_falls_back(monkeypatch, raw):
    monkeypatch.setenv(config.PROBE_TIMEOUT_ENV, raw)
    assert config.probe_timeout() == config.DEFAULT_PROBE_TIMEOUT


def test_discover_instances_keeps_live_ones_in_order(monkeypatch):
    live = {"/s/1": "/a", "/s/3": "/c"}

    def fake_info(path):
        if path in live:
            return NvimInstance(path, live[path])
        return None

    monkeypatch.setattr(discovery, "get_nvim_info", fake_info)

    instances = discovery.discover_instances(["/s/1", "/s/2", "/s/3"])

    assert instances == [NvimInstance("/s/1", "/a"), NvimInstance("/s/3", "/c")]


def test_discover_instances_probes_all_candidates_at_once(monkeypatch):
    sockets = ["/s/a", "/s/b", "/s/c"]
    # Every probe blocks until all of them are running.
    barrier = threading.Barrier(len(sockets), timeout=5)

    def fake_info(path):
        barrier.wait()
        if path == "/s/c":
            return None
        return NvimInstance(path, "/cwd" + path)

    monkeypatch.setattr(discovery, "get_nvim_info", fake_info)

    instances = discovery.discover_instances(sockets)

    assert [instance.socket_path for instance in instances] == ["/s/a", "/s/b"]


def test_discover_instances_without_candidates(monkeypatch):
    monkeypatch.setattr(discovery, "find_all_neovim_sockets", lambda: [])
    assert discovery.discover_instances() == []


def test_format_instance_list():
    text = discovery.format_instance_list(
        [NvimInstance("/s/1", "/home/a"), NvimInstance("/s/2", "/home/b")]
    )
    assert "1) /home/a" in text
    assert "2) /home/b" in text
    assert "/s/1" in text and "/s/2" in text
