from dns_posture.models.results import AuthoritativeRow, DkimRecord, EmailAuthStatus
from dns_posture.modules.email_auth import (
    build_bundle,
    dmarc_has_policy,
    is_dkim,
    is_spf,
    parse_dmarc,
    parse_spf,
    parse_tags,
)


def test_parse_tags_lowercases_keys_and_keeps_first():
    tags = parse_tags("v=DMARC1; P=reject; p=none; rua=mailto:a@example.com")
    assert tags["p"] == "reject"
    assert tags["v"] == "DMARC1"


def test_dmarc_policy_requires_discrete_p_tag():
    assert dmarc_has_policy("v=DMARC1; p=reject")
    assert dmarc_has_policy("v=DMARC1;p=none")
    assert not dmarc_has_policy("v=DMARC1; sp=reject; rua=mailto:d@example.com")
    assert not dmarc_has_policy("v=DMARC1; rua=mailto:p=x@example.com")
    assert not dmarc_has_policy("v=DMARC1; p=")


def test_spf_marker_is_case_insensitive():
    assert is_spf("V=SPF1 -all")
    assert is_spf("v=spf1")
    assert not is_spf("v=spf10 -all")
    assert not is_spf("google-site-verification=abc")


def test_dkim_accepts_version_or_key_tag():
    assert is_dkim("v=DKIM1; k=rsa; p=MIIBIjANBg")
    assert is_dkim("k=rsa; p=MIIBIjANBg")
    assert not is_dkim("some verification token")


def test_spf_softfail_warning():
    spf = parse_spf(["v=spf1 include:_spf.example.com ~all"])
    assert spf["all"] == "~all"
    assert spf["include_count"] == 1
    assert any("softfail" in w for w in spf["warnings"])


def test_spf_missing():
    spf = parse_spf(["some text"])
    assert spf["raw"] is None
    assert any("No SPF" in w for w in spf["warnings"])


def test_spf_redirect_exp_and_broad_ip():
    spf = parse_spf(["v=spf1 ip4:0.0.0.0/0 include:_spf.example.com redirect=example.com exp=explain.example.com -all"])
    assert spf["redirect"] == "example.com"
    assert spf["exp"] == "explain.example.com"
    assert spf["has_overly_broad_ip"] is True
    assert any("overly broad" in w for w in spf["warnings"])


def test_dmarc_policy_none_warning():
    dmarc = parse_dmarc(["v=DMARC1; p=none; rua=mailto:dmarc@example.com"])
    assert dmarc["policy"] == "none"
    assert dmarc["rua"] == ["mailto:dmarc@example.com"]
    assert any("policy is none" in w for w in dmarc["warnings"])


def test_dmarc_invalid_policy_and_pct():
    dmarc = parse_dmarc(["v=DMARC1; p=invalid; pct=999; rua=mailto:dmarc@example.com"])
    assert dmarc["valid"] is False
    assert "p" in dmarc["invalid_tags"]
    assert "pct" in dmarc["invalid_tags"]


def test_dmarc_missing_rua_when_enforcing():
    dmarc = parse_dmarc(["v=DMARC1; p=reject"])
    assert any("rua" in w for w in dmarc["warnings"])


def test_dmarc_subdomain_policy_is_not_the_policy():
    dmarc = parse_dmarc(["v=DMARC1; sp=reject"])
    assert dmarc["policy"] is None
    assert dmarc["subdomain_policy"] == "reject"
    assert any("no p=" in w for w in dmarc["warnings"])


def test_bundle_dedupes_across_rows_and_classifies():
    rows = [
        AuthoritativeRow(
            server="ns1.example.com",
            spf_records=["v=spf1 -all"],
            dmarc_records=["v=DMARC1; rua=mailto:d@example.com"],
            dkim_records=[DkimRecord(selector="selector1", value="v=DKIM1; p=abc")],
        ),
        AuthoritativeRow(
            server="ns2.example.com",
            spf_records=["v=spf1 -all"],
            dmarc_records=["v=DMARC1; rua=mailto:d@example.com"],
            dkim_records=[DkimRecord(selector="selector1", value="v=DKIM1; p=abc")],
        ),
    ]
    bundle = build_bundle(rows)
    assert bundle.spf == ["v=spf1 -all"]
    assert len(bundle.dkim) == 1
    assert bundle.spf_status == EmailAuthStatus.found
    assert bundle.dmarc_status == EmailAuthStatus.found_without_policy
    assert bundle.dkim_status == EmailAuthStatus.found


def test_bundle_without_records():
    bundle = build_bundle([AuthoritativeRow(server="ns1.example.com")])
    assert bundle.spf_status == EmailAuthStatus.not_found
    assert bundle.dmarc_status == EmailAuthStatus.not_found
    assert bundle.dkim_status == EmailAuthStatus.not_found
