import asyncio

from dns_posture.models.results import AnswerOutcome, AnswerStatus, Observation
from dns_posture.modules.mx_targets import resolve

ADDRESSES = {
    ("ns1.example.com", "mx1.example.com.", "A"): ["mx1.example.com. 300 IN A 192.0.2.25"],
    ("8.8.8.8", "mx1.example.com.", "A"): ["mx1.example.com. 300 IN A 192.0.2.25"],
    ("8.8.8.8", "mx1.example.com.", "AAAA"): ["mx1.example.com. 300 IN AAAA 2001:db8::25"],
}


class _FakeDns:
    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls = []
        self.ledger = None

    async def query(self, server, name, record_type, options=None):
        self.calls.append((server, name, record_type, options))
        if (server, name) in self.failing:
            return AnswerOutcome(server=server, name=name, record_type=record_type, status=AnswerStatus.failed, error="timeout")
        records = ADDRESSES.get((server, name, record_type), [])
        return AnswerOutcome(
            server=server,
            name=name,
            record_type=record_type,
            status=AnswerStatus.present if records else AnswerStatus.empty,
            records=records,
        )


def test_both_vantages_are_resolved():
    dns = _FakeDns()
    auth, recur = asyncio.run(resolve(dns, ["mx1.example.com.", "mx1.example.com."], "ns1.example.com", "8.8.8.8"))
    assert [(r.host, r.has_a, r.has_aaaa) for r in auth] == [("mx1.example.com.", True, False)]
    assert [(r.host, r.has_a, r.has_aaaa) for r in recur] == [("mx1.example.com.", True, True)]
    recursive_options = [opts for server, _, _, opts in dns.calls if server == "8.8.8.8"]
    assert recursive_options and all(o.checking_disabled for o in recursive_options)
    authoritative_options = [opts for server, _, _, opts in dns.calls if server == "ns1.example.com"]
    assert all(o is None or not o.checking_disabled for o in authoritative_options)


def test_no_hosts_is_not_an_error():
    dns = _FakeDns()
    assert asyncio.run(resolve(dns, [], "ns1.example.com", "8.8.8.8")) == ([], [])
    assert dns.calls == []


def test_failed_lookup_is_marked_failed():
    dns = _FakeDns(failing={("8.8.8.8", "mx2.example.com.")})
    _, recur = asyncio.run(resolve(dns, ["mx1.example.com.", "mx2.example.com."], None, "8.8.8.8"))
    assert recur[0].a == Observation.present
    assert recur[1].a == Observation.failed
    assert recur[1].aaaa == Observation.failed


def test_missing_authoritative_vantage_skips_that_side():
    auth, recur = asyncio.run(resolve(_FakeDns(), ["mx1.example.com."], None, "8.8.8.8"))
    assert auth == []
    assert len(recur) == 1
