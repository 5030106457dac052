from __future__ import annotations

from ..models.results import EmailAuthStatus, Observation, PostureSnapshot, PostureSummary, Status


def delegation_badge(snapshot: PostureSnapshot) -> Status:
    return Status.ok if snapshot.delegation.aligned else Status.fail


def dnssec_badge(snapshot: PostureSnapshot) -> Status:
    rows = snapshot.resolver_rows
    if not rows:
        return Status.fail
    validated = sum(1 for row in rows if row.authenticated)
    if validated == len(rows):
        return Status.ok
    if validated:
        return Status.warn
    return Status.fail


def mx_badge(snapshot: PostureSnapshot) -> Status:
    found = snapshot.mx_entries or any(row.mx_records for row in snapshot.authoritative_rows)
    return Status.ok if found else Status.fail


def spf_badge(snapshot: PostureSnapshot) -> Status:
    return Status.ok if any(row.spf_records for row in snapshot.authoritative_rows) else Status.fail


def dmarc_badge(snapshot: PostureSnapshot) -> Status:
    status = snapshot.email.dmarc_status
    if status == EmailAuthStatus.found:
        return Status.ok
    if status == EmailAuthStatus.found_without_policy:
        return Status.warn
    return Status.fail


def summarize(snapshot: PostureSnapshot) -> PostureSummary:
    return PostureSummary(
        delegation=delegation_badge(snapshot),
        dnssec=dnssec_badge(snapshot),
        mx=mx_badge(snapshot),
        spf=spf_badge(snapshot),
        dmarc=dmarc_badge(snapshot),
    )


def _finding(title: str, priority: str, evidence: str, remediation: str, source: str) -> dict:
    return {
        "title": title,
        "priority": priority,
        "evidence": evidence,
        "remediation": remediation,
        "source": source,
    }


def build_findings(snapshot: PostureSnapshot, summary: PostureSummary) -> list[dict]:
    findings = []
    delegation = snapshot.delegation
    if summary.delegation != Status.ok:
        if not delegation.parent or not delegation.zone:
            evidence = "Registry NS: {} / zone NS: {}".format(
                ", ".join(delegation.parent) or "none found",
                ", ".join(delegation.zone) or "none found",
            )
        else:
            evidence = "Only at registry: {} / only in zone: {}".format(
                ", ".join(delegation.only_parent) or "-",
                ", ".join(delegation.only_zone) or "-",
            )
        findings.append(
            _finding(
                "Align registry delegation with zone NS records",
                "High",
                evidence,
                "Update the NS set at the registrar or in the zone so both list the same nameservers",
                "delegation",
            )
        )

    if summary.dnssec == Status.fail:
        signed = any(row.ds or row.dnskey for row in snapshot.resolver_rows) or bool(snapshot.parent_ds)
        findings.append(
            _finding(
                "DNSSEC validation fails or is not deployed",
                "High" if signed else "Medium",
                "No public resolver set the AD flag",
                "Sign the zone and publish a matching DS at the registry" if not signed else "Check DS/DNSKEY agreement and signature validity",
                "resolvers",
            )
        )
    elif summary.dnssec == Status.warn:
        failing = [row.resolver for row in snapshot.resolver_rows if not row.authenticated]
        findings.append(
            _finding(
                "DNSSEC validation is inconsistent across resolvers",
                "Medium",
                "No AD flag from: " + ", ".join(failing),
                "Check for algorithm support issues, stale DS records or intermittent signing problems",
                "resolvers",
            )
        )

    if snapshot.parent_ds and not snapshot.child_dnskey:
        findings.append(
            _finding(
                "DS published without DNSKEY",
                "High",
                "Parent has DS records but the zone returned no DNSKEY",
                "Publish the DNSKEY set or remove the stale DS at the registry",
                "resolvers",
            )
        )

    if summary.mx != Status.ok:
        findings.append(
            _finding(
                "No MX records found",
                "Medium",
                "No authoritative server returned MX records",
                "Publish MX records, or a null MX if the domain sends and receives no mail",
                "authoritative",
            )
        )
    for row in snapshot.mx_recursive:
        if row.has_a or row.has_aaaa:
            continue
        if Observation.failed in (row.a, row.aaaa):
            findings.append(
                _finding(
                    f"MX target {row.host} could not be checked",
                    "Low",
                    "Address lookup failed at the public resolver",
                    "Re-run the check; if it keeps failing, test the mail host's zone directly",
                    "mx_targets",
                )
            )
        else:
            findings.append(
                _finding(
                    f"MX target {row.host} does not resolve",
                    "High",
                    "No A or AAAA record from the public resolver",
                    "Fix the mail host's address records or remove the MX entry",
                    "mx_targets",
                )
            )

    if summary.spf != Status.ok:
        findings.append(
            _finding(
                "Publish SPF record",
                "High",
                "No SPF TXT record found",
                "Create an SPF record with authorized senders and -all",
                "email",
            )
        )
    if summary.dmarc == Status.fail:
        findings.append(
            _finding(
                "Publish DMARC record",
                "High",
                "No DMARC record found",
                "Create a DMARC record with a quarantine or reject policy",
                "email",
            )
        )
    elif summary.dmarc == Status.warn:
        findings.append(
            _finding(
                "Add a DMARC policy",
                "High",
                "DMARC record has no p= tag",
                "Add p=none, p=quarantine or p=reject to the DMARC record",
                "email",
            )
        )
    elif (snapshot.email.dmarc_analysis.get("policy") or "").lower() == "none":
        findings.append(
            _finding(
                "Enforce DMARC",
                "Medium",
                "DMARC policy set to none",
                "Move to quarantine or reject once reports are stable",
                "email",
            )
        )

    if snapshot.email.dkim_status != EmailAuthStatus.found:
        findings.append(
            _finding(
                "No DKIM key found for configured selectors",
                "Low",
                "Selectors checked: " + ", ".join(snapshot.dkim_selectors),
                "Confirm DKIM signing is enabled and check the selector names",
                "email",
            )
        )
    return findings
