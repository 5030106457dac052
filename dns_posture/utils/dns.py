from __future__ import annotations

import asyncio
import ipaddress
import logging
import time

import dns.asyncquery
import dns.asyncresolver
import dns.exception
import dns.flags
import dns.message
import dns.rcode

from ..models.results import AnswerOutcome, AnswerStatus, QueryOptions
from .ledger import QueryLedger

logger = logging.getLogger(__name__)

DEFAULT_SERVER = "default"


class QueryFailure(RuntimeError):
    pass


def _section_lines(section) -> list[str]:
    return [line for rrset in section for line in rrset.to_text().splitlines()]


def _flag_names(options: QueryOptions) -> list[str]:
    names = []
    if options.dnssec or options.want_authenticated:
        names.append("do")
    if options.want_authenticated:
        names.append("ad")
    if options.checking_disabled:
        names.append("cd")
    if options.authority_only or not options.recursive:
        names.append("norec")
    return names


class DnsClient:
    """Sends single DNS questions to a named server and reports what came back.

    ``server`` is an IP address, a hostname (resolved once per client through the
    system resolver) or ``"default"`` for the first system nameserver. Every
    query is bounded by ``timeout_seconds`` and at most ``max_concurrency``
    queries are in flight at once. The client never raises for DNS-level
    problems: transport errors, timeouts and error rcodes all come back as a
    ``failed`` outcome.
    """

    def __init__(
        self,
        timeout_seconds: float = 4.0,
        max_concurrency: int = 16,
        ledger: QueryLedger | None = None,
        default_server: str | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.ledger = ledger
        self.default_server = default_server
        self._slots = asyncio.Semaphore(max(1, max_concurrency))
        self._lookups: dict[str, asyncio.Future] = {}

    async def query(
        self,
        server: str,
        name: str,
        record_type: str,
        options: QueryOptions | None = None,
    ) -> AnswerOutcome:
        options = options or QueryOptions()
        record_type = record_type.upper()
        start = time.monotonic()
        outcome: AnswerOutcome | None = None
        try:
            async with self._slots:
                address = await self.server_address(server)
                message = self._build_message(name, record_type, options)
                response = await dns.asyncquery.udp(message, address, timeout=self.timeout_seconds)
                if response.flags & dns.flags.TC:
                    response = await dns.asyncquery.tcp(message, address, timeout=self.timeout_seconds)
            outcome = self._to_outcome(server, name, record_type, options, response)
        except (QueryFailure, dns.exception.DNSException, OSError, ValueError) as exc:
            error = str(exc) or exc.__class__.__name__
            logger.debug("dns query failed", extra={"server": server, "name": name, "type": record_type, "error": error})
            outcome = AnswerOutcome(
                server=server,
                name=name,
                record_type=record_type,
                status=AnswerStatus.failed,
                error=error,
            )
        finally:
            if self.ledger is not None:
                self.ledger.add(
                    server=server,
                    query_name=name,
                    record_type=record_type,
                    status=outcome.status.value if outcome else AnswerStatus.failed.value,
                    flags=_flag_names(options),
                    error=outcome.error if outcome else "cancelled",
                    authenticated=outcome.authenticated if outcome else False,
                    duration_ms=int((time.monotonic() - start) * 1000),
                )
        return outcome

    async def server_address(self, server: str) -> str:
        if server == DEFAULT_SERVER:
            server = self.default_server or await self._system_nameserver()
        try:
            ipaddress.ip_address(server)
            return server
        except ValueError:
            pass
        lookup = self._lookups.get(server)
        if lookup is None:
            lookup = asyncio.ensure_future(self._lookup_address(server))
            self._lookups[server] = lookup
        return await asyncio.shield(lookup)

    async def _system_nameserver(self) -> str:
        resolver = dns.asyncresolver.Resolver()
        if not resolver.nameservers:
            raise QueryFailure("no system nameserver configured")
        return str(resolver.nameservers[0])

    async def _lookup_address(self, host: str) -> str:
        resolver = dns.asyncresolver.Resolver()
        resolver.lifetime = self.timeout_seconds
        for record_type in ("A", "AAAA"):
            try:
                answer = await resolver.resolve(host, record_type)
            except dns.exception.DNSException as exc:
                logger.debug("server address lookup failed", extra={"server": host, "type": record_type, "error": str(exc)})
                continue
            for rdata in answer:
                return rdata.to_text()
        raise QueryFailure(f"cannot resolve nameserver address for {host}")

    @staticmethod
    def _build_message(name: str, record_type: str, options: QueryOptions) -> dns.message.Message:
        message = dns.message.make_query(
            name,
            record_type,
            want_dnssec=options.dnssec or options.want_authenticated,
        )
        if options.authority_only or not options.recursive:
            message.flags &= ~dns.flags.RD
        if options.want_authenticated:
            message.flags |= dns.flags.AD
        if options.checking_disabled:
            message.flags |= dns.flags.CD
        return message

    @staticmethod
    def _to_outcome(
        server: str,
        name: str,
        record_type: str,
        options: QueryOptions,
        response: dns.message.Message,
    ) -> AnswerOutcome:
        authenticated = bool(response.flags & dns.flags.AD)
        rcode = response.rcode()
        if rcode not in (dns.rcode.NOERROR, dns.rcode.NXDOMAIN):
            return AnswerOutcome(
                server=server,
                name=name,
                record_type=record_type,
                status=AnswerStatus.failed,
                authenticated=authenticated,
                error=f"rcode {dns.rcode.to_text(rcode)}",
            )
        section = response.authority if options.authority_only else response.answer
        records = _section_lines(section)
        return AnswerOutcome(
            server=server,
            name=name,
            record_type=record_type,
            status=AnswerStatus.present if records else AnswerStatus.empty,
            records=records,
            authority=_section_lines(response.authority),
            authenticated=authenticated,
        )
