from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from ..models.config import RunConfig
from ..models.results import DelegationResult, QueryOptions
from ..utils.dns import DEFAULT_SERVER, DnsClient
from ..utils.normalize import canonicalize_host, nameserver_set
from .answers import facts_of, normalize, sorted_facts

logger = logging.getLogger(__name__)

ROOT_SERVER = "a.root-servers.net"
MAX_TRACE_HOPS = 16


def compare(parent: Iterable[str], zone: Iterable[str]) -> DelegationResult:
    """Compare the registry's NS set with the zone's own.

    An empty side is never aligned: an empty set usually means the lookup
    failed, and that must not read as a clean delegation.
    """
    parent_set = set(nameserver_set(parent))
    zone_set = set(nameserver_set(zone))
    aligned = bool(parent_set) and bool(zone_set) and parent_set == zone_set
    return DelegationResult(
        parent=sorted(parent_set),
        zone=sorted(zone_set),
        aligned=aligned,
        only_parent=sorted(parent_set - zone_set),
        only_zone=sorted(zone_set - parent_set),
    )


def _ns_owned_by(lines: list[str], domain: str) -> list[str]:
    return nameserver_set(f.value for f in normalize(lines, "NS") if f.owner == domain)


async def tld_nameserver(client: DnsClient, domain: str) -> str:
    tld = domain.rsplit(".", 1)[-1]
    outcome = await client.query(DEFAULT_SERVER, f"{tld}.", "NS")
    servers = nameserver_set(f.value for f in facts_of(outcome, "NS"))
    if servers:
        return servers[0]
    logger.info("tld nameserver unknown, using heuristic", extra={"tld": tld})
    return f"a.nic.{tld}"


async def trace_nameservers(client: DnsClient, domain: str) -> list[str]:
    """Follow referrals from the root until a server hands out NS for ``domain``."""
    server = ROOT_SERVER
    visited: set[str] = set()
    for _ in range(MAX_TRACE_HOPS):
        visited.add(server)
        outcome = await client.query(server, domain, "NS", QueryOptions(recursive=False))
        if outcome.failed:
            logger.debug("trace stopped", extra={"server": server, "error": outcome.error})
            return []
        found = _ns_owned_by(outcome.records + outcome.authority, domain)
        if found:
            return found
        referral = [f.value for f in sorted_facts(normalize(outcome.authority, "NS")) if f.value not in visited]
        if not referral:
            return []
        server = referral[0]
    return []


async def discover_parent_ns(client: DnsClient, domain: str) -> tuple[list[str], str]:
    server = await tld_nameserver(client, domain)
    outcome = await client.query(server, domain, "NS", QueryOptions(authority_only=True))
    direct = _ns_owned_by(outcome.records, domain)
    if direct:
        return direct, "tld"

    traced = await trace_nameservers(client, domain)
    if traced:
        return traced, "trace"
    return [], "none"


async def discover_zone_ns(client: DnsClient, domain: str, server: str = DEFAULT_SERVER) -> list[str]:
    outcome = await client.query(server, domain, "NS")
    return nameserver_set(f.value for f in facts_of(outcome, "NS") if f.owner == canonicalize_host(domain))


async def collect(client: DnsClient, config: RunConfig) -> DelegationResult:
    zone_server = config.authoritatives[0] if config.use_override else DEFAULT_SERVER
    (parent, source), zone = await asyncio.gather(
        discover_parent_ns(client, config.domain),
        discover_zone_ns(client, config.domain, zone_server),
    )
    result = compare(parent, zone)
    result.parent_source = source
    if not result.aligned:
        logger.info(
            "delegation mismatch",
            extra={"domain": config.domain, "only_parent": result.only_parent, "only_zone": result.only_zone},
        )
    return result
