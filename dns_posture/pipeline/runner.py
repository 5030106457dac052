from __future__ import annotations

import asyncio
import logging

from ..models.config import RESOLVERS, RunConfig
from ..models.results import PostureReport, PostureSnapshot
from ..modules import authoritative, delegation, email_auth, mx_targets, resolvers, synthesis
from ..pipeline.context import RunContext
from ..utils.dns import DnsClient
from ..utils.ledger import QueryLedger

logger = logging.getLogger(__name__)


def _build_context(config: RunConfig, client: DnsClient | None) -> RunContext:
    ledger = QueryLedger()
    if client is None:
        client = DnsClient(
            timeout_seconds=config.timeout_seconds,
            max_concurrency=config.max_workers,
            ledger=ledger,
        )
    elif client.ledger is None:
        client.ledger = ledger
    return RunContext(config=config, ledger=client.ledger, dns_client=client)


async def run_posture(config: RunConfig, client: DnsClient | None = None) -> PostureReport:
    """Run every collector once for ``config.domain`` and fold the results.

    All state lives in this call: a new context, ledger and snapshot per run.
    """
    context = _build_context(config, client)
    dns_client = context.dns_client
    domain = config.domain
    logger.info("posture run started", extra={"domain": domain, "run_id": config.run_id})

    servers = await authoritative.load_authoritatives(dns_client, config)

    auth_rows, delegation_result, resolver_rows, (parent_ds, child_dnskey) = await asyncio.gather(
        authoritative.collect(dns_client, servers, domain, config.dkim_selectors),
        delegation.collect(dns_client, config),
        resolvers.collect(dns_client, domain, RESOLVERS),
        resolvers.collect_dnssec_material(dns_client, domain),
    )

    entries = authoritative.mx_entries(auth_rows)
    mx_auth, mx_recur = await mx_targets.resolve(
        dns_client,
        authoritative.mx_hosts(entries),
        servers[0] if servers else None,
        RESOLVERS[0],
    )

    snapshot = PostureSnapshot(
        domain=domain,
        run_id=config.run_id,
        generated_at=config.timestamp,
        authoritatives=servers,
        delegation=delegation_result,
        authoritative_rows=auth_rows,
        resolver_rows=resolver_rows,
        mx_entries=entries,
        mx_authoritative=mx_auth,
        mx_recursive=mx_recur,
        email=email_auth.build_bundle(auth_rows),
        dkim_selectors=config.dkim_selectors,
        parent_ds=parent_ds,
        child_dnskey=child_dnskey,
    )
    summary = synthesis.summarize(snapshot)
    findings = synthesis.build_findings(snapshot, summary)

    totals = context.ledger.totals()
    logger.info(
        "posture run finished",
        extra={"domain": domain, "run_id": config.run_id, "queries": totals["total_queries"]},
    )
    return PostureReport(snapshot=snapshot, summary=summary, findings=findings, ledger=context.ledger.to_dict())


def run_posture_sync(config: RunConfig) -> PostureReport:
    return asyncio.run(run_posture(config))
