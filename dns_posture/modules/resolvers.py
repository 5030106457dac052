from __future__ import annotations

import asyncio
import logging
from typing import List

from ..models.config import RESOLVERS
from ..models.results import QueryOptions, ResolverRow
from ..utils.dns import DEFAULT_SERVER, DnsClient
from .answers import facts_of

logger = logging.getLogger(__name__)

DNSSEC = QueryOptions(dnssec=True)
WANT_AD = QueryOptions(dnssec=True, want_authenticated=True)
CHECKING_DISABLED = QueryOptions(checking_disabled=True)


async def collect_row(client: DnsClient, resolver: str, domain: str) -> ResolverRow:
    ds, dnskey, plain, unchecked = await asyncio.gather(
        client.query(resolver, domain, "DS", DNSSEC),
        client.query(resolver, domain, "DNSKEY", DNSSEC),
        client.query(resolver, domain, "A", WANT_AD),
        client.query(resolver, domain, "A", CHECKING_DISABLED),
    )
    errors = [f"{o.record_type}: {o.error}" for o in (ds, dnskey, plain, unchecked) if o.failed]
    return ResolverRow(
        resolver=resolver,
        ds=bool(facts_of(ds, "DS")),
        dnskey=bool(facts_of(dnskey, "DNSKEY")),
        authenticated=plain.authenticated and not plain.failed,
        checking_disabled=bool(facts_of(unchecked, "A")),
        errors=errors,
    )


async def _guarded_row(client: DnsClient, resolver: str, domain: str) -> ResolverRow:
    try:
        return await collect_row(client, resolver, domain)
    except Exception as exc:
        logger.warning("resolver row failed", extra={"resolver": resolver, "error": str(exc)})
        return ResolverRow(resolver=resolver, errors=[str(exc)])


async def collect(client: DnsClient, domain: str, resolvers: List[str] = RESOLVERS) -> List[ResolverRow]:
    rows = await asyncio.gather(*(_guarded_row(client, resolver, domain) for resolver in resolvers))
    return list(rows)


async def collect_dnssec_material(client: DnsClient, domain: str) -> tuple[list[str], list[str]]:
    """Raw DS (parent side) and DNSKEY (child side) lines as seen by the default resolver."""
    ds, dnskey = await asyncio.gather(
        client.query(DEFAULT_SERVER, domain, "DS", DNSSEC),
        client.query(DEFAULT_SERVER, domain, "DNSKEY", DNSSEC),
    )
    return list(ds.records), list(dnskey.records)
