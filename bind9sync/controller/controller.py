"""
Controller module for bind9sync.

This module is responsible for walking the VM inventory and driving the
selector, plan and provider for each VM in turn.
"""

import asyncio
import logging
from typing import List

from bind9sync.controller.plan import Plan
from bind9sync.models.errors import (
    AddressSelectionError,
    DNSQueryError,
    DNSUpdateError,
    InvalidLabelError,
)
from bind9sync.models.models import ActionType, RunResult, VmRecord
from bind9sync.utils.labels import make_fqdn, normalize_label


class Controller:
    """
    Controller that reconciles VM addresses into A records.
    """

    def __init__(
        self,
        source,
        selector,
        provider,
        zone: str,
        ttl: int = 60,
        delete_stopped: bool = False,
        interval: int = 300,
    ):
        """
        Initialize a Controller.

        Args:
            source: Inventory source providing `vms()`
            selector: AddressSelector providing `select(vmid)`
            provider: Provider providing `query_a(fqdn)` and `submit(transaction)`
            zone: Zone records live in
            ttl: TTL for added records
            delete_stopped: Whether records of non-running VMs are deleted
            interval: Seconds between runs in loop mode
        """
        self.source = source
        self.selector = selector
        self.provider = provider
        self.zone = zone
        self.ttl = ttl
        self.delete_stopped = delete_stopped
        self.interval = interval
        self.logger = logging.getLogger("bind9sync.controller")

    async def run_once(self) -> RunResult:
        """
        Performs a single reconciliation run against a fresh inventory snapshot.

        Raises:
            InventoryError: If the inventory cannot be listed
        """
        vms = await self.source.vms()
        return await self.reconcile(vms)

    async def reconcile(self, vms: List[VmRecord]) -> RunResult:
        """
        Reconcile every VM in inventory order.

        A failure for one VM is counted and never stops the others.

        Args:
            vms: Inventory snapshot

        Returns:
            RunResult: Counters for this run
        """
        result = RunResult()
        self.logger.debug(f"Reconciling {len(vms)} VMs into zone {self.zone}")

        for vm in vms:
            try:
                await self.reconcile_vm(vm, result)
            except Exception as e:
                self.logger.error(
                    f"vmid={vm.vmid} name={vm.name}: unexpected error: {e}", exc_info=True
                )
                result.failed += 1

        self.logger.info(f"sync done: {result.summary()}")
        return result

    async def reconcile_vm(self, vm: VmRecord, result: RunResult) -> None:
        """
        Reconcile one VM and record its outcome in `result`.
        """
        try:
            label = normalize_label(vm.name)
        except InvalidLabelError:
            self.logger.warning(
                f"vmid={vm.vmid} name={vm.name}: cannot sanitize to DNS label, skip"
            )
            result.skipped += 1
            return

        fqdn = make_fqdn(label, self.zone)

        if not vm.running:
            self.logger.debug(
                f"vmid={vm.vmid} name={vm.name}: status={vm.status.value} (not running)"
            )
            action = Plan(
                fqdn, vm.status, delete_stopped=self.delete_stopped
            ).calculate_action()
            if action.type is ActionType.DELETE:
                self.logger.info(
                    f"vmid={vm.vmid} name={vm.name}: deleting A {fqdn} (delete_stopped=true)"
                )
            await self._apply(fqdn, action, result)
            return

        try:
            candidate = await self.selector.select(vm.vmid)
        except AddressSelectionError as e:
            self.logger.warning(f"vmid={vm.vmid} name={vm.name}: {e}, skip")
            result.skipped += 1
            return

        try:
            current = await self.provider.query_a(fqdn)
        except DNSQueryError as e:
            # Upsert is idempotent, so an unknown current state is treated as absent
            self.logger.warning(f"{fqdn}: current record unknown ({e}), assuming none")
            current = None

        action = Plan(
            fqdn,
            vm.status,
            current=current,
            desired=candidate.address,
            delete_stopped=self.delete_stopped,
        ).calculate_action()

        if action.is_noop:
            self.logger.info(f"ok: {fqdn} already {candidate.address}")
        else:
            self.logger.info(f"update: {fqdn} {current or '<none>'} -> {action.address}")
        await self._apply(fqdn, action, result)

    async def _apply(self, fqdn: str, action, result: RunResult) -> None:
        transaction = Plan.build_transaction(self.zone, fqdn, action, self.ttl)
        if transaction is None:
            result.skipped += 1
            return

        try:
            await self.provider.submit(transaction)
        except DNSUpdateError as e:
            self.logger.error(f"nsupdate failed: {fqdn}: {e}")
            result.failed += 1
            return
        result.changed += 1

    async def run_reconciliation_loop(self) -> None:
        """
        Runs the reconciliation at the configured interval until cancelled.
        """
        self.logger.debug(
            f"Reconciliation loop starting with interval {self.interval} seconds"
        )

        while True:
            try:
                await self.run_once()
            except Exception as e:
                self.logger.error(f"Error in reconciliation loop: {e}")

            await asyncio.sleep(self.interval)
