from __future__ import annotations

import ipaddress
import re
from typing import Iterable

from ..models.results import AnswerOutcome, Observation, RecordFact
from ..utils.normalize import canonicalize_host, is_valid_hostname

QUOTED_RE = re.compile(r'"((?:[^"\\]|\\.)*)"')
PRIORITY_RE = re.compile(r"[0-9]+")
ADDRESS_TYPES = {"A", "AAAA"}


def _txt_value(rdata: str) -> str:
    # Multi-string TXT rdata is concatenated the way SPF/DMARC consumers read it.
    parts = QUOTED_RE.findall(rdata)
    if not parts:
        return rdata.strip().strip('"')
    return "".join(parts)


def _parse_line(line: str, expected_type: str) -> RecordFact | None:
    fields = line.split(None, 4)
    if len(fields) < 5:
        return None
    owner, _ttl, _cls, rtype, rdata = fields
    if rtype.upper() != expected_type:
        return None
    owner = canonicalize_host(owner)

    if expected_type == "MX":
        parts = rdata.split()
        if len(parts) != 2 or not PRIORITY_RE.fullmatch(parts[0]):
            return None
        host = canonicalize_host(parts[1])
        if not is_valid_hostname(host):
            return None
        return RecordFact(owner=owner, record_type="MX", value=f"{host}.", priority=int(parts[0]))

    if expected_type == "NS":
        host = canonicalize_host(rdata.split()[0])
        if not is_valid_hostname(host):
            return None
        return RecordFact(owner=owner, record_type=expected_type, value=host)

    if expected_type in ADDRESS_TYPES:
        try:
            address = ipaddress.ip_address(rdata.strip())
        except ValueError:
            return None
        if (expected_type == "A") != (address.version == 4):
            return None
        return RecordFact(owner=owner, record_type=expected_type, value=str(address))

    if expected_type == "TXT":
        return RecordFact(owner=owner, record_type="TXT", value=_txt_value(rdata))

    return RecordFact(owner=owner, record_type=expected_type, value=" ".join(rdata.split()))


def normalize(lines: Iterable[str], expected_type: str) -> set[RecordFact]:
    """Turn raw answer lines into typed facts of ``expected_type``.

    Lines use the usual presentation format (``owner ttl class type rdata``).
    Lines of other types, and lines that do not parse, are dropped so that a
    single malformed record never discards the rest of an answer.
    """
    expected_type = expected_type.upper()
    facts: set[RecordFact] = set()
    for line in lines:
        if not line or line.lstrip().startswith(";"):
            continue
        fact = _parse_line(line, expected_type)
        if fact is not None:
            facts.add(fact)
    return facts


def sorted_facts(facts: Iterable[RecordFact]) -> list[RecordFact]:
    return sorted(facts, key=lambda f: (f.value, f.priority if f.priority is not None else -1))


def facts_of(outcome: AnswerOutcome, expected_type: str) -> set[RecordFact]:
    if outcome.failed:
        return set()
    return normalize(outcome.records, expected_type)


def observe(outcome: AnswerOutcome, expected_type: str) -> Observation:
    if outcome.failed:
        return Observation.failed
    if normalize(outcome.records, expected_type):
        return Observation.present
    return Observation.absent
