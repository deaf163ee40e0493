"""
Design (errors.py)
- Purpose: Error taxonomy for a monitoring run. Every MonitorError is fatal for the
           current invocation; a failed connection attempt is not an error at all.
"""


class MonitorError(Exception):
    """Base class for errors that end a monitoring run."""


class TransportError(MonitorError):
    """The server directory could not be retrieved."""


class DecodeError(MonitorError):
    """The server directory payload could not be decoded or parsed."""


class UnknownEndpoint(MonitorError):
    def __init__(self, name: str):
        super().__init__(f"server {name!r} is not in the directory")
        self.name = name


class ConfigurationError(MonitorError):
    """A directory address is not a valid IPv4 address."""


class ProbeTimeout(MonitorError):
    """A probe ran past its overall timeout (only when one is configured)."""
