"""Exceptions raised by the Onkyo client."""


class OnkyoError(Exception):
    """Base class for all errors raised by this package."""


class ConstructionError(OnkyoError, ValueError):
    """Raised when a client is created without its required arguments."""


class ConnectError(OnkyoError):
    """Raised when a connection to the device (TCP/serial) cannot be established."""


class FramingError(OnkyoError):
    """Raised for data that is not a valid ISCP message."""
