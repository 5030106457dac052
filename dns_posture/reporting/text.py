from __future__ import annotations

from .. import __version__
from ..models.results import AuthoritativeRow, EmailAuthStatus, MXResolutionRow, Observation, PostureReport, Status

ICONS = {
    Status.ok: "✅",
    Status.warn: "⚠️",
    Status.fail: "❌",
    Status.not_set: "🚫",
}

# Records every zone must publish: a missing answer is a failure, not just "not set".
REQUIRED_CELLS = {"dnskey", "soa", "ns"}

AUTH_COLUMNS = [
    ("Nameserver", 25, None),
    ("DNSKEY", 10, "dnskey"),
    ("SOA", 7, "soa"),
    ("NS", 5, "ns"),
    ("A", 5, "a"),
    ("AAAA", 7, "aaaa"),
    ("MX", 5, "mx"),
    ("SPF", 6, "spf"),
    ("DMARC", 8, "dmarc"),
    ("DKIM", 5, "dkim"),
]

RESOLVER_COLUMNS = [
    ("Resolver", 18),
    ("DS", 7),
    ("DNSKEY", 9),
    ("A(+ad)", 9),
    ("A(+cd)", 9),
]

EMAIL_STATUS_TEXT = {
    "spf": {
        EmailAuthStatus.found: (Status.ok, "SPF present"),
        EmailAuthStatus.not_found: (Status.fail, "SPF not found"),
        EmailAuthStatus.found_without_policy: (Status.ok, "SPF present"),
    },
    "dmarc": {
        EmailAuthStatus.found: (Status.ok, "DMARC policy present"),
        EmailAuthStatus.found_without_policy: (Status.warn, "DMARC missing p="),
        EmailAuthStatus.not_found: (Status.fail, "DMARC not found"),
    },
    "dkim": {
        EmailAuthStatus.found: (Status.ok, "DKIM key present"),
        EmailAuthStatus.not_found: (Status.not_set, "DKIM not found for configured selectors"),
        EmailAuthStatus.found_without_policy: (Status.ok, "DKIM key present"),
    },
}


def cell_status(observation: Observation, required: bool = False) -> Status:
    if observation == Observation.present:
        return Status.ok
    if observation == Observation.failed:
        return Status.warn
    if observation == Observation.absent:
        return Status.fail if required else Status.not_set
    raise ValueError(f"unknown observation: {observation!r}")


def flag_status(value: bool) -> Status:
    return Status.ok if value else Status.fail


def _icon(status: Status, width: int) -> str:
    # Emoji render two columns wide in most terminals.
    return ICONS[status] + " " * max(width - 1, 0)


def _table_line(cells: list[str]) -> str:
    return "  " + "  ".join(cells)


def _auth_table(rows: list[AuthoritativeRow]) -> list[str]:
    lines = [_table_line([title.ljust(width) for title, width, _ in AUTH_COLUMNS])]
    if not rows:
        lines.append(f"  {ICONS[Status.warn]} No authoritative data collected")
        return lines
    for row in rows:
        cells = [row.server.ljust(AUTH_COLUMNS[0][1])]
        for _, width, attr in AUTH_COLUMNS[1:]:
            cells.append(_icon(cell_status(getattr(row, attr), attr in REQUIRED_CELLS), width))
        lines.append(_table_line(cells))
    return lines


def _resolver_table(report: PostureReport) -> list[str]:
    rows = report.snapshot.resolver_rows
    lines = [_table_line([title.ljust(width) for title, width in RESOLVER_COLUMNS])]
    if not rows:
        lines.append(f"  {ICONS[Status.warn]} No resolver data collected")
        return lines
    widths = [width for _, width in RESOLVER_COLUMNS]
    for row in rows:
        flags = [row.ds, row.dnskey, row.authenticated, row.checking_disabled]
        cells = [row.resolver.ljust(widths[0])]
        cells.extend(_icon(flag_status(flag), width) for flag, width in zip(flags, widths[1:]))
        lines.append(_table_line(cells))
    return lines


def _mx_table(rows: list[MXResolutionRow]) -> list[str]:
    if not rows:
        return [f"  {ICONS[Status.warn]} No MX host resolution data"]
    lines = [f"  {'Host':<40}  A     AAAA"]
    for row in rows:
        a = ICONS[cell_status(row.a)]
        aaaa = ICONS[cell_status(row.aaaa)]
        lines.append(f"  {row.host:<40}  {a}    {aaaa}")
    return lines


def _bullets(values: list[str], indent: str = "    ") -> list[str]:
    return [f"{indent}- {value}" for value in values]


def build_summary_line(report: PostureReport) -> str:
    s = report.summary
    return "Summary: Delegation {} | DNSSEC(ad) {} | MX {} | SPF {} | DMARC {}".format(
        ICONS[s.delegation], ICONS[s.dnssec], ICONS[s.mx], ICONS[s.spf], ICONS[s.dmarc]
    )


def build_report(report: PostureReport) -> str:
    snap = report.snapshot
    lines = [
        f"=== {snap.generated_at.strftime('%Y-%m-%d %H:%M:%S')} | dns-posture v{__version__} | {snap.domain} ===",
        "",
        build_summary_line(report),
        "",
        "• Delegation",
    ]

    deleg = snap.delegation
    lines.append(f"  Parent NS ({deleg.parent_source}):")
    lines.extend(_bullets(deleg.parent) or [f"    {ICONS[Status.warn]} none found"])
    lines.append("  Child NS:")
    lines.extend(_bullets(deleg.zone) or [f"    {ICONS[Status.warn]} none found"])
    if deleg.aligned:
        lines.append(f"  {ICONS[Status.ok]} Delegation aligned")
    else:
        lines.append(f"  {ICONS[Status.warn]} Registry NS differ from zone NS")
        if deleg.only_parent:
            lines.append("  Only at registry:")
            lines.extend(_bullets(deleg.only_parent))
        if deleg.only_zone:
            lines.append("  Only in zone:")
            lines.extend(_bullets(deleg.only_zone))

    lines += ["", "• Authoritative nameservers"]
    lines.extend(_auth_table(snap.authoritative_rows))
    for row in snap.authoritative_rows:
        for error in row.errors:
            lines.append(f"  {ICONS[Status.warn]} {row.server}: {error}")

    lines += ["", "• Resolver validation"]
    lines.extend(_resolver_table(report))

    email = snap.email
    lines += ["", "• Email TXT sanity"]
    for kind, label in (("spf", "SPF  "), ("dmarc", "DMARC"), ("dkim", "DKIM ")):
        status, text = EMAIL_STATUS_TEXT[kind][getattr(email, f"{kind}_status")]
        lines.append(f"  {label} : {ICONS[status]} {text}")
    for warning in email.spf_analysis.get("warnings", []) + email.dmarc_analysis.get("warnings", []):
        lines.append(f"    - {warning}")

    if email.spf or email.dmarc or email.dkim:
        lines += ["", "• Email record values"]
        if email.spf:
            lines.append("    SPF:")
            lines.extend(_bullets(email.spf, "      "))
        if email.dmarc:
            lines.append("    DMARC:")
            lines.extend(_bullets(email.dmarc, "      "))
        if email.dkim:
            lines.append("    DKIM:")
            lines.extend(_bullets([f"{rec.selector}: {rec.value}" for rec in email.dkim], "      "))

    lines += ["", "• Parent DS"]
    lines.extend(_bullets(snap.parent_ds, "  ") or [f"  {ICONS[Status.warn]} No DS records returned"])
    lines += ["", "• Child DNSKEY"]
    lines.extend(_bullets(snap.child_dnskey, "  ") or [f"  {ICONS[Status.warn]} No DNSKEY records returned"])

    lines += ["", "• MX records detected"]
    if snap.mx_entries:
        lines.extend(f"  - {e.host} (prio {e.priority})" for e in snap.mx_entries)
    else:
        lines.append(f"  {ICONS[Status.warn]} None")

    if snap.mx_entries:
        lines += ["", "• MX target resolution (authoritative)"]
        lines.extend(_mx_table(snap.mx_authoritative))
        lines += ["", "• MX target resolution (public +cdflag)"]
        lines.extend(_mx_table(snap.mx_recursive))

    lines += ["", "• Findings"]
    if not report.findings:
        lines.append("  - No prioritized items.")
    for item in report.findings:
        lines.append(f"  - {item.get('priority')} | {item.get('title')}: {item.get('remediation')}")

    lines += [
        "",
        "Legend: OK={}  WARN={}  FAIL={}  --={}".format(
            ICONS[Status.ok], ICONS[Status.warn], ICONS[Status.fail], ICONS[Status.not_set]
        ),
    ]
    return "\n".join(lines)
