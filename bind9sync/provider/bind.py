"""
BIND provider module for bind9sync.

This module is responsible for reading current A records from the
authoritative server and submitting TSIG-signed dynamic updates (RFC 2136).
"""

import logging
from typing import Optional

import dns.asyncquery
import dns.asyncresolver
import dns.exception
import dns.inet
import dns.message
import dns.name
import dns.rcode
import dns.rdataclass
import dns.rdatatype
import dns.update

from bind9sync.models.errors import ConfigurationError, DNSQueryError, DNSUpdateError
from bind9sync.models.models import UpdateTransaction


async def resolve_server(server: str) -> str:
    """
    Return the server as an address, resolving a hostname once.

    Raises:
        ConfigurationError: If the hostname does not resolve
    """
    if dns.inet.is_address(server):
        return server
    try:
        answer = await dns.asyncresolver.resolve(server, "A")
    except dns.exception.DNSException as e:
        raise ConfigurationError(f"cannot resolve DNS server {server}: {e}") from e
    return answer[0].address


class BindProvider:
    """
    Provider that talks to an authoritative BIND server.
    """

    def __init__(
        self,
        server: str,
        zone: str,
        port: int = 53,
        keyring=None,
        keyname: Optional[dns.name.Name] = None,
        query_timeout: float = 2.0,
        query_tries: int = 1,
        update_timeout: float = 10.0,
    ):
        """
        Initialize a BindProvider.

        Args:
            server: Server address
            zone: Zone updates are sent for, trailing-dot-terminated
            port: Server port
            keyring: dnspython TSIG keyring
            keyname: Key in the keyring to sign updates with
            query_timeout: Seconds per lookup attempt
            query_tries: Lookup attempts before giving up
            update_timeout: Seconds allowed for an update exchange
        """
        self.server = server
        self.zone = zone
        self.port = port
        self.keyring = keyring
        self.keyname = keyname
        self.query_timeout = query_timeout
        self.query_tries = max(1, query_tries)
        self.update_timeout = update_timeout
        self.logger = logging.getLogger("bind9sync.provider.bind")

    async def query_a(self, fqdn: str) -> Optional[str]:
        """
        Look up the current A record for a name.

        Args:
            fqdn: Absolute name

        Returns:
            Optional[str]: First address in the answer, or None if there is no record

        Raises:
            DNSQueryError: If the lookup failed (timeout, network error, server error)
        """
        name = dns.name.from_text(fqdn)
        query = dns.message.make_query(name, dns.rdatatype.A)

        last_error: Optional[Exception] = None
        for attempt in range(1, self.query_tries + 1):
            try:
                response, _ = await dns.asyncquery.udp_with_fallback(
                    query, self.server, timeout=self.query_timeout, port=self.port
                )
                break
            except (dns.exception.DNSException, OSError) as e:
                last_error = e
                self.logger.debug(
                    f"A lookup for {fqdn} failed (attempt {attempt}/{self.query_tries}): {e!r}"
                )
        else:
            raise DNSQueryError(f"A lookup for {fqdn} failed: {last_error!r}")

        rcode = response.rcode()
        if rcode == dns.rcode.NXDOMAIN:
            return None
        if rcode != dns.rcode.NOERROR:
            raise DNSQueryError(f"A lookup for {fqdn} returned {dns.rcode.to_text(rcode)}")

        rrset = response.get_rrset(
            response.answer, name, dns.rdataclass.IN, dns.rdatatype.A
        )
        if not rrset:
            return None
        for rdata in rrset:
            return rdata.address
        return None

    def to_message(self, transaction: UpdateTransaction) -> dns.update.UpdateMessage:
        """
        Render a transaction into a signed update message, operations in order.
        """
        update = dns.update.UpdateMessage(
            transaction.zone, keyring=self.keyring, keyname=self.keyname
        )
        for operation in transaction.operations:
            name = dns.name.from_text(operation.fqdn)
            if operation.op == "delete":
                update.delete(name, operation.rdtype)
            elif operation.op == "add":
                update.add(name, operation.ttl, operation.rdtype, operation.address)
            else:
                raise ValueError(f"unknown update operation: {operation.op}")
        return update

    async def submit(self, transaction: UpdateTransaction) -> None:
        """
        Submit a transaction as one atomic update.

        Raises:
            DNSUpdateError: If the server did not commit the whole transaction
        """
        update = self.to_message(transaction)
        self.logger.debug(
            f"Submitting update for {transaction.fqdn}: "
            f"{transaction.script(self.server, self.port)!r}"
        )
        try:
            response = await dns.asyncquery.tcp(
                update, self.server, timeout=self.update_timeout, port=self.port
            )
        except (dns.exception.DNSException, OSError) as e:
            raise DNSUpdateError(f"update for {transaction.fqdn} failed: {e!r}") from e

        rcode = response.rcode()
        if rcode != dns.rcode.NOERROR:
            raise DNSUpdateError(
                f"update for {transaction.fqdn} rejected: {dns.rcode.to_text(rcode)}"
            )


class DryRunProvider(BindProvider):
    """
    Provider that reads from the real server but only logs updates.
    """

    async def submit(self, transaction: UpdateTransaction) -> None:
        operations = [operation.op for operation in transaction.operations]
        if operations == ["delete"]:
            self.logger.info(f"DRY_RUN: would delete A {transaction.fqdn}")
        else:
            address = transaction.operations[-1].address
            self.logger.info(f"DRY_RUN: would nsupdate {transaction.fqdn} -> {address}")
        script = transaction.script(self.server, self.port).replace("\n", ";")
        self.logger.debug(f"DRY_RUN script: {script}")
