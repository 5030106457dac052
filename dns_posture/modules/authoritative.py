from __future__ import annotations

import asyncio
import logging
from typing import List

from ..models.config import RunConfig
from ..models.results import AnswerOutcome, AnswerStatus, AuthoritativeRow, DkimRecord, MXEntry, Observation, QueryOptions
from ..utils.dns import DnsClient
from .answers import facts_of, observe, sorted_facts
from .delegation import discover_parent_ns, discover_zone_ns
from .email_auth import is_dkim, is_dmarc, is_spf

logger = logging.getLogger(__name__)

PRESENCE_TYPES = ["DNSKEY", "SOA", "NS", "A", "AAAA", "MX"]
ROW_CELLS = ["dnskey", "soa", "ns", "a", "aaaa", "mx", "spf", "dmarc", "dkim"]


def _txt_values(outcome: AnswerOutcome) -> list[str]:
    return sorted(f.value for f in facts_of(outcome, "TXT"))


def _txt_observation(outcomes: list[AnswerOutcome], matched: list) -> Observation:
    if matched:
        return Observation.present
    if outcomes and all(o.failed for o in outcomes):
        return Observation.failed
    return Observation.absent


async def collect_row(client: DnsClient, server: str, domain: str, selectors: List[str]) -> AuthoritativeRow:
    """Query one authoritative server for everything a row needs.

    The row is only built once every sub-query has finished, so a row is never
    partially populated. Errors stay inside the row.
    """
    options = QueryOptions()
    names = [(domain, rtype) for rtype in PRESENCE_TYPES]
    names.append((domain, "TXT"))
    names.append((f"_dmarc.{domain}", "TXT"))
    names.extend((f"{sel}._domainkey.{domain}", "TXT") for sel in selectors)

    results = await asyncio.gather(
        *(client.query(server, name, rtype, options) for name, rtype in names),
        return_exceptions=True,
    )

    errors: list[str] = []
    outcomes: list[AnswerOutcome] = []
    for (name, rtype), result in zip(names, results):
        if isinstance(result, BaseException):
            logger.warning("authoritative query raised", extra={"server": server, "name": name, "type": rtype, "error": str(result)})
            result = AnswerOutcome(server=server, name=name, record_type=rtype, status=AnswerStatus.failed, error=str(result))
        if result.failed:
            errors.append(f"{name} {rtype}: {result.error}")
        outcomes.append(result)

    presence = dict(zip(PRESENCE_TYPES, outcomes[: len(PRESENCE_TYPES)]))
    apex_txt, dmarc_txt = outcomes[len(PRESENCE_TYPES) : len(PRESENCE_TYPES) + 2]
    dkim_outcomes = outcomes[len(PRESENCE_TYPES) + 2 :]

    spf_records = [v for v in _txt_values(apex_txt) if is_spf(v)]
    dmarc_records = [v for v in _txt_values(dmarc_txt) if is_dmarc(v)]
    dkim_records = [
        DkimRecord(selector=sel, value=v)
        for sel, outcome in zip(selectors, dkim_outcomes)
        for v in _txt_values(outcome)
        if is_dkim(v)
    ]

    return AuthoritativeRow(
        server=server,
        dnskey=observe(presence["DNSKEY"], "DNSKEY"),
        soa=observe(presence["SOA"], "SOA"),
        ns=observe(presence["NS"], "NS"),
        a=observe(presence["A"], "A"),
        aaaa=observe(presence["AAAA"], "AAAA"),
        mx=observe(presence["MX"], "MX"),
        spf=_txt_observation([apex_txt], spf_records),
        dmarc=_txt_observation([dmarc_txt], dmarc_records),
        dkim=_txt_observation(dkim_outcomes, dkim_records),
        mx_records=sorted_facts(facts_of(presence["MX"], "MX")),
        spf_records=spf_records,
        dmarc_records=dmarc_records,
        dkim_records=dkim_records,
        errors=errors,
    )


async def _guarded_row(client: DnsClient, server: str, domain: str, selectors: List[str]) -> AuthoritativeRow:
    try:
        return await collect_row(client, server, domain, selectors)
    except Exception as exc:
        logger.warning("authoritative row failed", extra={"server": server, "error": str(exc)})
        cells = {cell: Observation.failed for cell in ROW_CELLS}
        return AuthoritativeRow(server=server, errors=[str(exc)], **cells)


async def collect(client: DnsClient, servers: List[str], domain: str, selectors: List[str]) -> List[AuthoritativeRow]:
    if not servers:
        logger.info("no authoritative nameservers to query", extra={"domain": domain})
        return []
    rows = await asyncio.gather(*(_guarded_row(client, server, domain, selectors) for server in servers))
    return list(rows)


def mx_entries(rows: List[AuthoritativeRow]) -> List[MXEntry]:
    entries = {
        MXEntry(host=fact.value, priority=fact.priority)
        for row in rows
        for fact in row.mx_records
        if fact.priority is not None
    }
    return sorted(entries, key=lambda e: (e.host, e.priority))


def mx_hosts(entries: List[MXEntry]) -> List[str]:
    hosts: list[str] = []
    for entry in entries:
        if entry.host not in hosts:
            hosts.append(entry.host)
    return hosts


async def load_authoritatives(client: DnsClient, config: RunConfig) -> List[str]:
    if config.use_override:
        return list(config.authoritatives)
    if not config.auto_ns:
        return []
    servers = await discover_zone_ns(client, config.domain)
    if not servers:
        servers, _ = await discover_parent_ns(client, config.domain)
    return servers
