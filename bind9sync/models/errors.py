"""
Exceptions raised by bind9sync components.
"""


class Bind9SyncError(Exception):
    """Base class for all bind9sync errors."""


class ConfigurationError(Bind9SyncError):
    """Startup configuration or environment is unusable."""


class InvalidLabelError(Bind9SyncError):
    """A VM name cannot be turned into a DNS label."""

    def __init__(self, name: str):
        super().__init__(f"cannot sanitize {name!r} to a DNS label")
        self.name = name


class InvalidAddressError(Bind9SyncError, ValueError):
    """A dotted-quad IPv4 address is malformed."""


class InvalidCidrError(Bind9SyncError, ValueError):
    """A CIDR string is malformed or its prefix is out of range."""


class AddressSelectionError(Bind9SyncError):
    """No usable address could be selected for a VM."""


class NoAddressFoundError(AddressSelectionError):
    pass


class AgentUnreachableError(AddressSelectionError):
    pass


class InventoryError(Bind9SyncError):
    """The VM inventory could not be listed."""


class DNSQueryError(Bind9SyncError):
    """The authoritative lookup failed, as opposed to returning no record."""


class DNSUpdateError(Bind9SyncError):
    """The update transport rejected or failed to deliver a transaction."""


class AlreadyRunningError(Bind9SyncError):
    """Another reconciliation holds the run lock."""


class CredentialError(Bind9SyncError):
    """The credential material could not be decoded or stored."""
