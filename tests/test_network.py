"""Unit tests for IPv4 and CIDR helpers.

Tests cover:
- Dotted-quad to integer conversion (ipv4_to_int)
- Prefix mask construction (prefix_mask)
- CIDR parsing and containment (TargetRange)
"""

import pytest

from bind9sync.models.errors import InvalidAddressError, InvalidCidrError
from bind9sync.utils.network import TargetRange, ipv4_to_int, prefix_mask

SAMPLE_ADDRESSES = [
    "0.0.0.0",
    "10.0.0.5",
    "10.0.0.255",
    "10.0.1.0",
    "127.0.0.1",
    "192.168.90.17",
    "255.255.255.255",
]

# =============================================================================
# ipv4_to_int
# =============================================================================


def test_ipv4_to_int_known_values() -> None:
    assert ipv4_to_int("0.0.0.0") == 0
    assert ipv4_to_int("10.0.0.5") == (10 << 24) | 5
    assert ipv4_to_int("192.168.1.2") == 0xC0A80102
    assert ipv4_to_int("255.255.255.255") == 0xFFFFFFFF


@pytest.mark.parametrize(
    "address",
    ["", "10.0.0", "10.0.0.0.1", "10.0.0.256", "10.0.-1.1", "a.b.c.d", "10.0.0.5 x", "10..0.1"],
)
def test_ipv4_to_int_rejects_malformed(address: str) -> None:
    with pytest.raises(InvalidAddressError):
        ipv4_to_int(address)


# =============================================================================
# prefix_mask
# =============================================================================


def test_prefix_mask_bounds() -> None:
    assert prefix_mask(0) == 0
    assert prefix_mask(8) == 0xFF000000
    assert prefix_mask(24) == 0xFFFFFF00
    assert prefix_mask(32) == 0xFFFFFFFF


def test_prefix_mask_out_of_range() -> None:
    with pytest.raises(InvalidCidrError):
        prefix_mask(33)


# =============================================================================
# TargetRange
# =============================================================================


def test_parse_valid_cidr() -> None:
    target = TargetRange.parse("192.168.90.0/24")
    assert target.network == "192.168.90.0"
    assert target.prefix == 24
    assert str(target) == "192.168.90.0/24"


@pytest.mark.parametrize(
    "cidr",
    ["", "10.0.0.0", "10.0.0.0/", "10.0.0.0/33", "10.0.0.0/-1", "10.0.0.0/x", "10.0.0.300/24"],
)
def test_parse_rejects_malformed_cidr(cidr: str) -> None:
    with pytest.raises(InvalidCidrError):
        TargetRange.parse(cidr)


def test_contains_inside_and_outside() -> None:
    target = TargetRange.parse("10.0.0.0/24")
    assert target.contains("10.0.0.5")
    assert target.contains("10.0.0.255")
    assert not target.contains("10.0.1.0")
    assert not target.contains("192.168.0.5")


def test_contains_ignores_host_bits_in_network() -> None:
    """A network written with host bits set behaves like its masked form."""
    target = TargetRange.parse("10.0.0.77/24")
    assert target.contains("10.0.0.5")
    assert not target.contains("10.0.1.5")


def test_contains_malformed_address_is_error_not_mismatch() -> None:
    target = TargetRange.parse("10.0.0.0/24")
    with pytest.raises(InvalidAddressError):
        target.contains("10.0.0.999")


@pytest.mark.parametrize("network", SAMPLE_ADDRESSES)
def test_slash_32_contains_only_itself(network: str) -> None:
    target = TargetRange.parse(f"{network}/32")
    for address in SAMPLE_ADDRESSES:
        assert target.contains(address) == (address == network)


@pytest.mark.parametrize("network", SAMPLE_ADDRESSES)
def test_slash_0_contains_everything(network: str) -> None:
    target = TargetRange.parse(f"{network}/0")
    for address in SAMPLE_ADDRESSES:
        assert target.contains(address)


def test_contains_matches_integer_masking() -> None:
    for prefix in range(33):
        target = TargetRange.parse(f"192.168.90.17/{prefix}")
        for address in SAMPLE_ADDRESSES:
            mask = prefix_mask(prefix)
            expected = (ipv4_to_int(address) & mask) == (ipv4_to_int("192.168.90.17") & mask)
            assert target.contains(address) == expected
