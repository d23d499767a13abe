"""
Address selection for bind9sync.

Selection depends only on the order the guest agent reports addresses in and
on CIDR containment; no sorting or preference is applied.
"""

import logging
from typing import List, Optional

from bind9sync.models.errors import InvalidAddressError, NoAddressFoundError
from bind9sync.models.models import AddressCandidate
from bind9sync.utils.network import TargetRange


class AddressSelector:
    """
    Picks the address to publish for a VM from what its guest agent reports.
    """

    def __init__(self, source, target_range: TargetRange):
        """
        Initialize an AddressSelector.

        Args:
            source: Object providing `interfaces(vmid)`
            target_range: Range the address must fall into
        """
        self.source = source
        self.target_range = target_range
        self.logger = logging.getLogger("bind9sync.source.selector")

    async def select(self, vmid: str) -> AddressCandidate:
        """
        Return the first IPv4 address, in agent order, inside the target range.

        Raises:
            AgentUnreachableError: If the agent cannot be queried
            NoAddressFoundError: If no reported address matches
        """
        candidates = await self.source.interfaces(vmid)
        self.logger.debug(
            f"vmid={vmid}: agent reported {[c.address for c in candidates]}"
        )
        match = self.first_match(candidates, self.target_range)
        if match is None:
            raise NoAddressFoundError(
                f"no guest-agent IPv4 in {self.target_range} for vmid={vmid}"
            )
        return match

    @staticmethod
    def first_match(
        candidates: List[AddressCandidate], target_range: TargetRange
    ) -> Optional[AddressCandidate]:
        for candidate in candidates:
            if not candidate.is_ipv4:
                continue
            try:
                if target_range.contains(candidate.address):
                    return candidate
            except InvalidAddressError:
                # agent garbage is never a match
                continue
        return None
