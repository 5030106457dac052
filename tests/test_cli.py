
from typer.testing import CliRunner

from dns_posture import cli
from dns_posture.models.results import DelegationResult, PostureReport, PostureSnapshot, PostureSummary, Status

runner = CliRunner()


def _report(config):
    snapshot = PostureSnapshot(
        domain=config.domain,
        run_id=config.run_id,
        generated_at=config.timestamp,
        delegation=DelegationResult(parent=["ns1.example.com"], zone=["ns1.example.com"], aligned=True),
        dkim_selectors=config.dkim_selectors,
    )
    summary = PostureSummary(
        delegation=Status.ok, dnssec=Status.fail, mx=Status.fail, spf=Status.fail, dmarc=Status.fail
    )
    return PostureReport(snapshot=snapshot, summary=summary, ledger={"total_queries": 0})


def _capture(monkeypatch):
    seen = []

    def fake_run(config):
        seen.append(config)
        return _report(config)

    monkeypatch.setattr("dns_posture.cli.run_posture_sync", fake_run)
    return seen


def test_invalid_domain_exits_with_usage_error(monkeypatch):
    seen = _capture(monkeypatch)
    result = runner.invoke(cli.app, ["check", "not a domain"])
    assert result.exit_code == 2
    assert "ERROR" in result.output
    assert seen == []


def test_missing_domain_exits_with_usage_error(monkeypatch):
    _capture(monkeypatch)
    result = runner.invoke(cli.app, ["check"], env={"DOMAIN": None})
    assert result.exit_code == 2
    assert "--domain required" in result.output


def test_conflicting_domains_are_rejected(monkeypatch):
    _capture(monkeypatch)
    result = runner.invoke(cli.app, ["check", "example.com", "--domain", "example.org"])
    assert result.exit_code == 2


def test_json_output(monkeypatch):
    seen = _capture(monkeypatch)
    result = runner.invoke(cli.app, ["check", "Example.COM.", "--json"])
    assert result.exit_code == 0
    assert '"domain": "example.com"' in result.output
    assert '"delegation": "pass"' in result.output
    assert seen[0].domain == "example.com"
    assert seen[0].auto_ns is True


def test_text_output_has_summary_line(monkeypatch):
    _capture(monkeypatch)
    result = runner.invoke(cli.app, ["check", "--domain", "example.com", "--dkim", "s1, s2"])
    assert result.exit_code == 0
    assert "Summary: Delegation" in result.output


def test_ns_override_disables_discovery(monkeypatch):
    seen = _capture(monkeypatch)
    result = runner.invoke(cli.app, ["check", "example.com", "--ns", "ns1.example.net,NS2.example.net."])
    assert result.exit_code == 0
    config = seen[0]
    assert config.authoritatives == ["ns1.example.net", "ns2.example.net"]
    assert config.auto_ns is False


def test_watch_reruns_until_interrupted(monkeypatch):
    seen = _capture(monkeypatch)
    sleeps = []

    def fake_sleep(seconds):
        sleeps.append(seconds)
        if len(sleeps) == 2:
            raise KeyboardInterrupt

    monkeypatch.setattr("dns_posture.cli.time.sleep", fake_sleep)
    result = runner.invoke(cli.app, ["check", "example.com", "--watch", "30"])
    assert result.exit_code == 0
    assert sleeps == [30, 30]
    assert len(seen) == 2
    assert seen[0].run_id != seen[1].run_id
    assert "stopped" in result.output


def test_version_command():
    result = runner.invoke(cli.app, ["version"])
    assert result.exit_code == 0
    assert "dns-posture" in result.output


def test_same_domain_in_two_spellings_is_not_a_conflict(monkeypatch):
    seen = _capture(monkeypatch)
    result = runner.invoke(cli.app, ["check", "Example.com", "--domain", "example.com."])
    assert result.exit_code == 0
    assert seen[0].domain == "example.com"


def test_run_timestamp_is_timezone_aware(monkeypatch):
    seen = _capture(monkeypatch)
    result = runner.invoke(cli.app, ["check", "example.com", "--json"])
    assert result.exit_code == 0
    assert seen[0].timestamp.tzinfo is not None
