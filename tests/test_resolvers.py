import asyncio

from dns_posture.models.results import AnswerOutcome, AnswerStatus
from dns_posture.modules import resolvers

DOMAIN = "example.com"
SIGNED = {
    "DS": ["example.com. 3600 IN DS 12345 13 2 ABCDEF"],
    "DNSKEY": ["example.com. 3600 IN DNSKEY 257 3 13 AwEAAc=="],
    "A": ["example.com. 300 IN A 192.0.2.1"],
}


class _FakeResolvers:
    def __init__(self, validating=(), unreachable=()):
        self.validating = set(validating)
        self.unreachable = set(unreachable)
        self.calls = []
        self.ledger = None

    async def query(self, server, name, record_type, options=None):
        self.calls.append((server, record_type, options))
        if server in self.unreachable:
            return AnswerOutcome(server=server, name=name, record_type=record_type, status=AnswerStatus.failed, error="timeout")
        records = SIGNED.get(record_type, [])
        return AnswerOutcome(
            server=server,
            name=name,
            record_type=record_type,
            status=AnswerStatus.present if records else AnswerStatus.empty,
            records=records,
            authenticated=server in self.validating and bool(options and options.want_authenticated),
        )


def test_rows_follow_input_order_and_flags():
    dns = _FakeResolvers(validating={"1.1.1.1"})
    rows = asyncio.run(resolvers.collect(dns, DOMAIN, ["8.8.8.8", "1.1.1.1", "9.9.9.9"]))
    assert [r.resolver for r in rows] == ["8.8.8.8", "1.1.1.1", "9.9.9.9"]
    assert [r.authenticated for r in rows] == [False, True, False]
    assert all(r.ds and r.dnskey and r.checking_disabled for r in rows)


def test_query_flags_per_lookup():
    dns = _FakeResolvers()
    asyncio.run(resolvers.collect_row(dns, "8.8.8.8", DOMAIN))
    by_type = {}
    for _, rtype, options in dns.calls:
        by_type.setdefault(rtype, []).append(options)
    assert by_type["DS"][0].dnssec and by_type["DNSKEY"][0].dnssec
    a_options = by_type["A"]
    assert any(o.want_authenticated and not o.checking_disabled for o in a_options)
    assert any(o.checking_disabled and not o.want_authenticated for o in a_options)


def test_unreachable_resolver_gives_all_false_row():
    dns = _FakeResolvers(validating={"8.8.8.8", "1.1.1.1"}, unreachable={"1.1.1.1"})
    rows = asyncio.run(resolvers.collect(dns, DOMAIN, ["8.8.8.8", "1.1.1.1"]))
    ok, down = rows
    assert ok.authenticated is True
    assert (down.ds, down.dnskey, down.authenticated, down.checking_disabled) == (False, False, False, False)
    assert len(down.errors) == 4


def test_default_list_is_fixed():
    from dns_posture.models.config import RESOLVERS

    assert RESOLVERS[0] == "8.8.8.8"
    assert len(set(RESOLVERS)) == 8


def test_dnssec_material_uses_default_resolver():
    dns = _FakeResolvers()
    ds, dnskey = asyncio.run(resolvers.collect_dnssec_material(dns, DOMAIN))
    assert ds == SIGNED["DS"]
    assert dnskey == SIGNED["DNSKEY"]
    assert {server for server, _, _ in dns.calls} == {"default"}
