from __future__ import annotations

import asyncio
import logging
from typing import List

from ..models.results import MXResolutionRow, Observation, QueryOptions
from ..utils.dns import DnsClient
from .answers import observe

logger = logging.getLogger(__name__)

CHECKING_DISABLED = QueryOptions(checking_disabled=True)


async def resolve_host(client: DnsClient, server: str, host: str, options: QueryOptions | None = None) -> MXResolutionRow:
    try:
        a, aaaa = await asyncio.gather(
            client.query(server, host, "A", options),
            client.query(server, host, "AAAA", options),
        )
    except Exception as exc:
        logger.warning("mx target lookup failed", extra={"server": server, "host": host, "error": str(exc)})
        return MXResolutionRow(host=host, a=Observation.failed, aaaa=Observation.failed)
    return MXResolutionRow(host=host, a=observe(a, "A"), aaaa=observe(aaaa, "AAAA"))


async def resolve(
    client: DnsClient,
    hosts: List[str],
    authoritative_vantage: str | None,
    recursive_vantage: str | None,
) -> tuple[List[MXResolutionRow], List[MXResolutionRow]]:
    """Resolve every distinct MX target from an authoritative and a recursive vantage.

    The recursive side sets CD so that reachability of the mail host does not
    depend on DNSSEC validity of its own zone.
    """
    unique: list[str] = []
    for host in hosts:
        if host not in unique:
            unique.append(host)
    if not unique:
        return [], []

    auth_rows: list[MXResolutionRow] = []
    recur_rows: list[MXResolutionRow] = []
    if authoritative_vantage:
        auth_rows = list(await asyncio.gather(*(resolve_host(client, authoritative_vantage, h) for h in unique)))
    else:
        logger.info("no authoritative vantage for mx targets")
    if recursive_vantage:
        recur_rows = list(
            await asyncio.gather(*(resolve_host(client, recursive_vantage, h, CHECKING_DISABLED) for h in unique))
        )
    return auth_rows, recur_rows
