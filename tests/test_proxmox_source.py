"""Unit tests for ProxmoxSource parsing and AddressSelector."""

import asyncio
import json

import pytest

from bind9sync.models.errors import (
    AgentUnreachableError,
    ConfigurationError,
    InventoryError,
    NoAddressFoundError,
)
from bind9sync.models.models import AddressCandidate, VmStatus
from bind9sync.source.proxmox import CommandError, ProxmoxSource
from bind9sync.source.selector import AddressSelector
from bind9sync.utils.network import TargetRange

QM_LIST = """\
      VMID NAME                 STATUS     MEM(MB)    BOOTDISK(GB) PID
       100 web01                running    2048              32.00 1234
       101 db_primary           stopped    4096              64.00 0
       102 template             paused     1024               8.00 0

"""

INTERFACES = [
    {
        "name": "lo",
        "ip-addresses": [
            {"ip-address-type": "ipv4", "ip-address": "127.0.0.1", "prefix": 8},
            {"ip-address-type": "ipv6", "ip-address": "::1", "prefix": 128},
        ],
    },
    {
        "name": "eth0",
        "hardware-address": "bc:24:11:00:00:01",
        "ip-addresses": [
            {"ip-address-type": "ipv6", "ip-address": "fe80::1", "prefix": 64},
            {"ip-address-type": "ipv4", "ip-address": "192.168.90.17", "prefix": 24},
        ],
    },
    {"name": "eth1"},
    {
        "name": "eth2",
        "ip-addresses": [{"ip-address-type": "ipv4", "ip-address": "192.168.90.18"}],
    },
]


class FakeProxmoxSource(ProxmoxSource):
    """ProxmoxSource with canned qm output instead of a subprocess."""

    def __init__(self, outputs=None, errors=None):
        super().__init__()
        self.outputs = outputs or {}
        self.errors = errors or {}
        self.calls = []

    async def _run(self, *args: str) -> str:
        self.calls.append(args)
        if args in self.errors:
            raise CommandError(self.errors[args])
        return self.outputs[args]


# =============================================================================
# Inventory
# =============================================================================


def test_parse_vm_list() -> None:
    vms = ProxmoxSource.parse_vm_list(QM_LIST)

    assert [(vm.vmid, vm.name, vm.status) for vm in vms] == [
        ("100", "web01", VmStatus.RUNNING),
        ("101", "db_primary", VmStatus.STOPPED),
        ("102", "template", VmStatus.OTHER),
    ]


def test_vms_runs_qm_list() -> None:
    source = FakeProxmoxSource(outputs={("list",): QM_LIST})

    vms = asyncio.run(source.vms())

    assert len(vms) == 3
    assert source.calls == [("list",)]


def test_vms_failure_is_inventory_error() -> None:
    source = FakeProxmoxSource(errors={("list",): "exit status 2"})

    with pytest.raises(InventoryError):
        asyncio.run(source.vms())


def test_check_available_missing_binary() -> None:
    source = ProxmoxSource(qm_binary="definitely-not-a-qm-binary")

    with pytest.raises(ConfigurationError):
        source.check_available()


# =============================================================================
# Guest agent
# =============================================================================


def test_parse_interfaces_keeps_agent_order() -> None:
    candidates = ProxmoxSource.parse_interfaces(INTERFACES)

    assert candidates == [
        AddressCandidate("127.0.0.1", "ipv4"),
        AddressCandidate("::1", "ipv6"),
        AddressCandidate("fe80::1", "ipv6"),
        AddressCandidate("192.168.90.17", "ipv4"),
        AddressCandidate("192.168.90.18", "ipv4"),
    ]


def test_parse_interfaces_tolerates_garbage() -> None:
    assert ProxmoxSource.parse_interfaces({"error": "x"}) == []
    assert ProxmoxSource.parse_interfaces(["x", {"ip-addresses": ["y", {}]}]) == []


def test_interfaces_reads_agent_json() -> None:
    args = ("guest", "cmd", "100", "network-get-interfaces")
    source = FakeProxmoxSource(outputs={args: json.dumps(INTERFACES)})

    candidates = asyncio.run(source.interfaces("100"))

    assert candidates[3].address == "192.168.90.17"
    assert source.calls == [args]


def test_interfaces_agent_failure() -> None:
    args = ("guest", "cmd", "100", "network-get-interfaces")
    source = FakeProxmoxSource(errors={args: "QEMU guest agent is not running"})

    with pytest.raises(AgentUnreachableError):
        asyncio.run(source.interfaces("100"))


def test_interfaces_invalid_json() -> None:
    args = ("guest", "cmd", "100", "network-get-interfaces")
    source = FakeProxmoxSource(outputs={args: "not json"})

    with pytest.raises(AgentUnreachableError):
        asyncio.run(source.interfaces("100"))


# =============================================================================
# AddressSelector
# =============================================================================


def test_selector_picks_first_ipv4_in_range() -> None:
    args = ("guest", "cmd", "100", "network-get-interfaces")
    source = FakeProxmoxSource(outputs={args: json.dumps(INTERFACES)})
    selector = AddressSelector(source, TargetRange.parse("192.168.90.0/24"))

    candidate = asyncio.run(selector.select("100"))

    assert candidate.address == "192.168.90.17"


def test_selector_no_match() -> None:
    args = ("guest", "cmd", "100", "network-get-interfaces")
    source = FakeProxmoxSource(outputs={args: json.dumps(INTERFACES)})
    selector = AddressSelector(source, TargetRange.parse("10.0.0.0/8"))

    with pytest.raises(NoAddressFoundError):
        asyncio.run(selector.select("100"))


def test_selector_no_interfaces() -> None:
    args = ("guest", "cmd", "100", "network-get-interfaces")
    source = FakeProxmoxSource(outputs={args: "[]"})
    selector = AddressSelector(source, TargetRange.parse("0.0.0.0/0"))

    with pytest.raises(NoAddressFoundError):
        asyncio.run(selector.select("100"))


def test_first_match_skips_malformed_and_non_ipv4() -> None:
    candidates = [
        AddressCandidate("10.0.0.1", "ipv6"),
        AddressCandidate("10.0.0.999", "ipv4"),
        AddressCandidate("10.0.0.2", "ipv4"),
    ]

    match = AddressSelector.first_match(candidates, TargetRange.parse("10.0.0.0/24"))

    assert match == AddressCandidate("10.0.0.2", "ipv4")
