"""Exceptions raised while choosing a Neovim instance."""


class NvimBridgeError(RuntimeError):
    """Base class for bridge failures."""


class SelectionError(NvimBridgeError):
    """No single socket could be chosen. Callers abort the request."""


class NoInstanceError(SelectionError):
    pass


class UnreachableInstancesError(SelectionError):
    pass


class AmbiguousInstanceError(SelectionError):
    pass


class InvalidSelectionError(SelectionError):
    pass
