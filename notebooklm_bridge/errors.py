"""Exceptions raised by the bridge. Strategy failures are Outcomes, not exceptions."""


class BridgeError(Exception):
    """Base class for bridge errors."""


class TransportError(BridgeError):
    """The local control-plane server answered with an error or an unreadable body."""


class TransportUnavailable(TransportError):
    """The local control-plane server could not be reached."""


class ConfigError(BridgeError):
    """Configuration could not be used."""


class DispatchInProgress(BridgeError):
    """A delivery is already running; the browser session allows one at a time."""


class NotebookCreationFailed(BridgeError):
    """A new notebook could not be created from the home page."""
