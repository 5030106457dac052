from __future__ import annotations

from dataclasses import dataclass

from ..models.config import RunConfig
from ..utils.dns import DnsClient
from ..utils.ledger import QueryLedger


@dataclass
class RunContext:
    config: RunConfig
    ledger: QueryLedger
    dns_client: DnsClient
