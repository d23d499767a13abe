"""
Data models for bind9sync.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class VmStatus(Enum):
    """Power state of a virtual machine as reported by the inventory."""

    RUNNING = "running"
    STOPPED = "stopped"
    OTHER = "other"

    @classmethod
    def from_text(cls, value: str) -> "VmStatus":
        value = (value or "").strip().lower()
        if value == "running":
            return cls.RUNNING
        if value == "stopped":
            return cls.STOPPED
        return cls.OTHER


@dataclass(frozen=True)
class VmRecord:
    """
    A virtual machine taken from the inventory snapshot of the current run.
    """

    vmid: str
    name: str
    status: VmStatus

    @property
    def running(self) -> bool:
        return self.status is VmStatus.RUNNING


@dataclass(frozen=True)
class AddressCandidate:
    """An address reported by the guest agent, in agent order."""

    address: str
    address_type: str = "ipv4"

    @property
    def is_ipv4(self) -> bool:
        return self.address_type.lower() == "ipv4"


class ActionType(Enum):
    NOOP = "noop"
    UPSERT = "upsert"
    DELETE = "delete"


@dataclass(frozen=True)
class ReconciliationAction:
    """
    Represents the single change needed to bring one name in line with its VM.
    """

    type: ActionType
    address: Optional[str] = None

    @classmethod
    def noop(cls) -> "ReconciliationAction":
        return cls(ActionType.NOOP)

    @classmethod
    def upsert(cls, address: str) -> "ReconciliationAction":
        return cls(ActionType.UPSERT, address)

    @classmethod
    def delete(cls) -> "ReconciliationAction":
        return cls(ActionType.DELETE)

    @property
    def is_noop(self) -> bool:
        return self.type is ActionType.NOOP


@dataclass(frozen=True)
class UpdateOperation:
    """One line of a dynamic update: delete all A records or add one."""

    op: str
    fqdn: str
    rdtype: str = "A"
    ttl: Optional[int] = None
    address: Optional[str] = None

    def to_text(self) -> str:
        if self.op == "add":
            return f"update add {self.fqdn} {self.ttl} {self.rdtype} {self.address}"
        return f"update delete {self.fqdn} {self.rdtype}"


@dataclass
class UpdateTransaction:
    """
    An ordered set of update operations for a single name, submitted as one
    atomic unit.
    """

    zone: str
    fqdn: str
    operations: List[UpdateOperation] = field(default_factory=list)

    def script(self, server: str = "", port: int = 53) -> str:
        """
        Render the transaction the way nsupdate would read it.

        Args:
            server: Server address to include, omitted when empty
            port: Server port

        Returns:
            str: Newline separated update script
        """
        lines = []
        if server:
            lines.append(f"server {server} {port}")
        lines.append(f"zone {self.zone}")
        lines.extend(operation.to_text() for operation in self.operations)
        lines.append("send")
        return "\n".join(lines)


@dataclass
class RunResult:
    """
    Outcome counters for a single reconciliation run.
    """

    changed: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def success(self) -> bool:
        return self.failed == 0

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

    def summary(self) -> str:
        return f"changed={self.changed} skipped={self.skipped} failed={self.failed}"
