"""
Plan module for bind9sync.

This module is responsible for deciding what, if anything, has to change for
one name and for turning that decision into an update transaction.
"""

import logging
from typing import Optional

from bind9sync.models.models import (
    ActionType,
    ReconciliationAction,
    UpdateOperation,
    UpdateTransaction,
    VmStatus,
)


class Plan:
    """
    Plan calculates the action needed to bring one name in line with its VM.
    """

    def __init__(
        self,
        fqdn: str,
        status: VmStatus,
        current: Optional[str] = None,
        desired: Optional[str] = None,
        delete_stopped: bool = False,
    ):
        """
        Initialize a Plan.

        Args:
            fqdn: Name being reconciled
            status: VM power state
            current: Address currently recorded, None if there is no record
            desired: Address selected from the guest agent, None if selection failed
            delete_stopped: Whether records of non-running VMs are removed
        """
        self.fqdn = fqdn
        self.status = status
        self.current = current
        self.desired = desired
        self.delete_stopped = delete_stopped
        self.logger = logging.getLogger("bind9sync.plan")

    def calculate_action(self) -> ReconciliationAction:
        """
        Calculate the action for this name.

        Returns:
            ReconciliationAction: NoOp, Upsert(desired) or Delete
        """
        if self.status is not VmStatus.RUNNING:
            if self.delete_stopped:
                self.logger.debug(f"{self.fqdn}: VM not running, record will be deleted")
                return ReconciliationAction.delete()
            self.logger.debug(f"{self.fqdn}: VM not running, record left untouched")
            return ReconciliationAction.noop()

        # Never delete on a failed selection; the agent may just be slow
        if self.desired is None:
            return ReconciliationAction.noop()

        if self.current == self.desired:
            self.logger.debug(f"{self.fqdn} is up-to-date")
            return ReconciliationAction.noop()

        return ReconciliationAction.upsert(self.desired)

    @staticmethod
    def build_transaction(
        zone: str, fqdn: str, action: ReconciliationAction, ttl: int
    ) -> Optional[UpdateTransaction]:
        """
        Render an action into an update transaction.

        Upserts delete every A record of the name before adding the new one,
        inside the same transaction.

        Args:
            zone: Zone the update is sent for
            fqdn: Name being updated
            action: Action to render
            ttl: TTL of the added record

        Returns:
            Optional[UpdateTransaction]: None for NoOp
        """
        if action.type is ActionType.NOOP:
            return None

        transaction = UpdateTransaction(zone=zone, fqdn=fqdn)
        transaction.operations.append(UpdateOperation(op="delete", fqdn=fqdn))
        if action.type is ActionType.UPSERT:
            transaction.operations.append(
                UpdateOperation(op="add", fqdn=fqdn, ttl=ttl, address=action.address)
            )
        return transaction
