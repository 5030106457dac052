from __future__ import annotations

import re
from typing import Dict, Iterable, List

from ..models.results import AuthoritativeRow, DkimRecord, EmailAuthBundle, EmailAuthStatus

SPF_RE = re.compile(r"v=spf1(\s+(.*))?$", re.IGNORECASE)
DMARC_RE = re.compile(r"v\s*=\s*DMARC1", re.IGNORECASE)
DKIM_RE = re.compile(r"v\s*=\s*DKIM1", re.IGNORECASE)


def parse_tags(value: str) -> Dict[str, str]:
    tags: Dict[str, str] = {}
    for part in value.split(";"):
        if "=" not in part:
            continue
        key, _, val = part.partition("=")
        key = key.strip().lower()
        if key and key not in tags:
            tags[key] = val.strip()
    return tags


def is_spf(value: str) -> bool:
    return bool(SPF_RE.search(value))


def is_dmarc(value: str) -> bool:
    return bool(DMARC_RE.search(value))


def is_dkim(value: str) -> bool:
    if DKIM_RE.search(value):
        return True
    return "p" in parse_tags(value)


def dmarc_has_policy(value: str) -> bool:
    return bool(parse_tags(value).get("p"))


def parse_spf(txt_records: List[str]) -> Dict:
    spf = {
        "raw": None,
        "mechanisms": [],
        "all": None,
        "warnings": [],
        "redirect": None,
        "exp": None,
        "include_count": 0,
        "has_overly_broad_ip": False,
    }
    for rec in txt_records:
        match = SPF_RE.search(rec)
        if not match:
            continue
        spf["raw"] = rec
        parts = (match.group(2) or "").split()
        for part in parts:
            lowered = part.lower()
            if lowered.startswith("redirect="):
                spf["redirect"] = part.split("=", 1)[1]
                continue
            if lowered.startswith("exp="):
                spf["exp"] = part.split("=", 1)[1]
                continue
            if lowered.startswith("include:"):
                spf["include_count"] += 1
            if lowered.lstrip("+-~?") == "all":
                spf["all"] = part
                if part.startswith("~"):
                    spf["warnings"].append("SPF uses softfail (~all). Consider -all for stricter policy.")
                if part.startswith("+") or part == "all" or part.startswith("?"):
                    spf["warnings"].append("SPF allows all. Consider restricting with -all.")
            else:
                spf["mechanisms"].append(part)
        if spf["include_count"] > 10:
            spf["warnings"].append("SPF exceeds 10 include lookups.")
        if "ip4:0.0.0.0/0" in rec or "ip6:::/0" in rec:
            spf["has_overly_broad_ip"] = True
            spf["warnings"].append("SPF contains overly broad IP ranges (0.0.0.0/0 or ::/0).")
        if spf["all"] is None and spf["redirect"] is None:
            spf["warnings"].append("SPF has no terminating all mechanism.")
        break
    if not spf["raw"]:
        spf["warnings"].append("No SPF record found.")
    return spf


def _parse_mailto(value: str) -> list[str]:
    uris = []
    for item in value.split(","):
        item = item.strip()
        if item.lower().startswith("mailto:"):
            uris.append(item)
    return uris


def parse_dmarc(txt_records: List[str]) -> Dict:
    dmarc = {
        "raw": None,
        "policy": None,
        "subdomain_policy": None,
        "pct": None,
        "rua": [],
        "ruf": [],
        "alignment": {},
        "warnings": [],
        "valid": True,
        "invalid_tags": [],
    }
    for rec in txt_records:
        if not is_dmarc(rec):
            continue
        dmarc["raw"] = rec
        tags = parse_tags(rec)
        dmarc["policy"] = tags.get("p") or None
        dmarc["subdomain_policy"] = tags.get("sp") or None
        dmarc["pct"] = tags.get("pct")
        dmarc["rua"] = _parse_mailto(tags.get("rua", ""))
        dmarc["ruf"] = _parse_mailto(tags.get("ruf", ""))
        for key in ("adkim", "aspf"):
            if key in tags:
                dmarc["alignment"][key] = tags[key]

        for key in ("p", "sp"):
            if tags.get(key) and tags[key].lower() not in ("none", "quarantine", "reject"):
                dmarc["valid"] = False
                dmarc["invalid_tags"].append(key)
        if dmarc["pct"] is not None:
            try:
                pct_val = int(dmarc["pct"])
                if pct_val < 0 or pct_val > 100:
                    raise ValueError
            except ValueError:
                dmarc["valid"] = False
                dmarc["invalid_tags"].append("pct")

        policy = (dmarc["policy"] or "").lower()
        if not policy:
            dmarc["warnings"].append("DMARC record has no p= policy tag.")
        elif policy == "none":
            dmarc["warnings"].append("DMARC policy is none; consider quarantine or reject.")
        if dmarc["pct"] and dmarc["pct"] != "100":
            dmarc["warnings"].append("DMARC enforcement is not 100% (pct != 100).")
        if policy in ("quarantine", "reject") and not dmarc["rua"]:
            dmarc["warnings"].append("DMARC policy is enforced but rua reporting is missing.")
        break
    if not dmarc["raw"]:
        dmarc["warnings"].append("No DMARC record found.")
    return dmarc


def _unique(values: Iterable) -> list:
    out = []
    for value in values:
        if value not in out:
            out.append(value)
    return out


def build_bundle(rows: List[AuthoritativeRow]) -> EmailAuthBundle:
    spf = _unique(rec for row in rows for rec in row.spf_records)
    dmarc = _unique(rec for row in rows for rec in row.dmarc_records)
    dkim: list[DkimRecord] = _unique(rec for row in rows for rec in row.dkim_records)

    if not dmarc:
        dmarc_status = EmailAuthStatus.not_found
    elif any(dmarc_has_policy(rec) for rec in dmarc):
        dmarc_status = EmailAuthStatus.found
    else:
        dmarc_status = EmailAuthStatus.found_without_policy

    return EmailAuthBundle(
        spf=spf,
        dmarc=dmarc,
        dkim=dkim,
        spf_status=EmailAuthStatus.found if spf else EmailAuthStatus.not_found,
        dmarc_status=dmarc_status,
        dkim_status=EmailAuthStatus.found if dkim else EmailAuthStatus.not_found,
        spf_analysis=parse_spf(spf),
        dmarc_analysis=parse_dmarc(dmarc),
    )
