"""
IPv4 and CIDR helpers for bind9sync.

Containment is computed with plain 32-bit integer masking so that a network
written with host bits set (e.g. 10.0.0.5/24) behaves like its masked form.
"""

import re
from dataclasses import dataclass

from bind9sync.models.errors import InvalidAddressError, InvalidCidrError

_OCTET_RE = re.compile(r"^[0-9]+$")
_PREFIX_RE = re.compile(r"^[0-9]+$")


def ipv4_to_int(address: str) -> int:
    """
    Convert a dotted-quad IPv4 address into its 32-bit integer value.

    Args:
        address: Address such as "10.0.0.5"

    Returns:
        int: (a << 24) | (b << 16) | (c << 8) | d

    Raises:
        InvalidAddressError: If the address does not have four numeric octets in 0-255
    """
    parts = (address or "").strip().split(".")
    if len(parts) != 4:
        raise InvalidAddressError(f"invalid IPv4 address: {address!r}")

    value = 0
    for part in parts:
        if not _OCTET_RE.match(part):
            raise InvalidAddressError(f"invalid IPv4 address: {address!r}")
        octet = int(part)
        if octet > 255:
            raise InvalidAddressError(f"invalid IPv4 address: {address!r}")
        value = (value << 8) | octet
    return value


def prefix_mask(prefix: int) -> int:
    """Return the 32-bit netmask for a prefix length in 0-32."""
    if prefix < 0 or prefix > 32:
        raise InvalidCidrError(f"prefix length out of range: {prefix}")
    if prefix == 0:
        return 0
    return (0xFFFFFFFF << (32 - prefix)) & 0xFFFFFFFF


@dataclass(frozen=True)
class TargetRange:
    """
    The CIDR range whose addresses are published in DNS.
    """

    network: str
    prefix: int

    @classmethod
    def parse(cls, cidr: str) -> "TargetRange":
        """
        Parse and validate a CIDR string such as "192.168.90.0/24".

        Raises:
            InvalidCidrError: If the network or prefix is malformed
        """
        text = (cidr or "").strip()
        if "/" not in text:
            raise InvalidCidrError(f"network must be CIDR, e.g. 192.168.90.0/24: {cidr!r}")

        network, prefix_text = text.split("/", 1)
        if not _PREFIX_RE.match(prefix_text):
            raise InvalidCidrError(f"invalid prefix length in {cidr!r}")
        prefix = int(prefix_text)
        if prefix > 32:
            raise InvalidCidrError(f"prefix length out of range in {cidr!r}")

        try:
            ipv4_to_int(network)
        except InvalidAddressError as e:
            raise InvalidCidrError(f"invalid network address in {cidr!r}") from e

        return cls(network=network.strip(), prefix=prefix)

    @property
    def mask(self) -> int:
        return prefix_mask(self.prefix)

    def contains(self, address: str) -> bool:
        """
        Check whether an address falls inside this range.

        Raises:
            InvalidAddressError: If the address itself is malformed
        """
        mask = self.mask
        return (ipv4_to_int(address) & mask) == (ipv4_to_int(self.network) & mask)

    def __str__(self) -> str:
        return f"{self.network}/{self.prefix}"
