"""
Proxmox source module for bind9sync.

This module is responsible for listing virtual machines with `qm list` and
asking the QEMU guest agent for their network interfaces.
"""

import asyncio
import json
import logging
import shutil
from typing import List

from bind9sync.models.errors import (
    AgentUnreachableError,
    ConfigurationError,
    InventoryError,
)
from bind9sync.models.models import AddressCandidate, VmRecord, VmStatus


class CommandError(Exception):
    """A `qm` invocation failed, timed out or could not be started."""


class ProxmoxSource:
    """
    Source that reads VM inventory and guest addresses through the `qm` CLI.
    """

    def __init__(self, qm_binary: str = "qm", timeout: float = 10.0):
        """
        Initialize a ProxmoxSource.

        Args:
            qm_binary: Name or path of the qm executable
            timeout: Seconds allowed for each qm invocation
        """
        self.qm_binary = qm_binary
        self.timeout = timeout
        self.logger = logging.getLogger("bind9sync.source.proxmox")

    def check_available(self) -> None:
        """
        Ensure the qm binary can be found.

        Raises:
            ConfigurationError: If qm is missing from PATH
        """
        if shutil.which(self.qm_binary) is None:
            raise ConfigurationError(f"missing dependency: {self.qm_binary}")

    async def vms(self) -> List[VmRecord]:
        """
        Returns the current VM inventory snapshot.

        Returns:
            List[VmRecord]: VMs in the order `qm list` reports them

        Raises:
            InventoryError: If the listing cannot be obtained
        """
        try:
            output = await self._run("list")
        except CommandError as e:
            raise InventoryError(f"qm list failed: {e}") from e

        vms = self.parse_vm_list(output)
        self.logger.debug(f"Inventory lists {len(vms)} VMs")
        return vms

    async def interfaces(self, vmid: str) -> List[AddressCandidate]:
        """
        Returns every address the guest agent reports for a VM.

        Args:
            vmid: VM identifier

        Returns:
            List[AddressCandidate]: Addresses of all types, in agent order

        Raises:
            AgentUnreachableError: If the agent call fails or returns garbage
        """
        try:
            output = await self._run("guest", "cmd", vmid, "network-get-interfaces")
        except CommandError as e:
            raise AgentUnreachableError(f"guest agent for vmid={vmid} unreachable: {e}") from e

        try:
            data = json.loads(output)
        except json.JSONDecodeError as e:
            raise AgentUnreachableError(
                f"guest agent for vmid={vmid} returned invalid JSON: {e}"
            ) from e

        return self.parse_interfaces(data)

    @staticmethod
    def parse_vm_list(output: str) -> List[VmRecord]:
        """
        Parse `qm list` output (header line, then VMID NAME STATUS ... rows).
        """
        vms = []
        for line in output.splitlines()[1:]:
            fields = line.split()
            if len(fields) < 3:
                continue
            vmid, name, status = fields[0], fields[1], fields[2]
            vms.append(VmRecord(vmid=vmid, name=name, status=VmStatus.from_text(status)))
        return vms

    @staticmethod
    def parse_interfaces(data) -> List[AddressCandidate]:
        """
        Flatten `network-get-interfaces` JSON into address candidates.
        """
        candidates: List[AddressCandidate] = []
        if not isinstance(data, list):
            return candidates

        for interface in data:
            if not isinstance(interface, dict):
                continue
            for entry in interface.get("ip-addresses") or []:
                if not isinstance(entry, dict):
                    continue
                address = entry.get("ip-address")
                address_type = entry.get("ip-address-type")
                if not isinstance(address, str) or not isinstance(address_type, str):
                    continue
                candidates.append(AddressCandidate(address=address, address_type=address_type))
        return candidates

    async def _run(self, *args: str) -> str:
        """
        Run qm with the given arguments and return its stdout.

        Raises:
            CommandError: On spawn failure, timeout or non-zero exit
        """
        try:
            process = await asyncio.create_subprocess_exec(
                self.qm_binary,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise CommandError(str(e)) from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), self.timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise CommandError(f"timed out after {self.timeout}s")

        if process.returncode != 0:
            message = stderr.decode(errors="replace").strip()
            raise CommandError(f"exit status {process.returncode}: {message}")
        return stdout.decode(errors="replace")
