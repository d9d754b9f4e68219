"""Shared fixtures: a fake pynvim session and a clean environment."""

import pytest

from nvim_lsp_bridge import config


class FakeNvim:
    """Records exec_lua/eval calls the way a pynvim session would receive them."""

    def __init__(self, results=None, fail_on=None):
        self.calls = []
        self.closed = False
        self.results = results or {}
        self.fail_on = fail_on

    def exec_lua(self, code, *args):
        self.calls.append((code, args))
        if self.fail_on is not None and self.fail_on in code:
            raise RuntimeError("lua call failed")
        for marker, value in self.results.items():
            if marker in code:
                return value
        return None

    def eval(self, expr):
        self.calls.append((expr, ()))
        return self.results.get(expr)

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        config.LISTEN_ADDRESS_ENV,
        config.PROBE_TIMEOUT_ENV,
        config.ERROR_LOG_ENV,
        config.DEBUG_ENV,
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_nvim():
    return FakeNvim()
