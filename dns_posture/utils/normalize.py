from __future__ import annotations

import re

HOSTNAME_RE = re.compile(r"^[a-z0-9-]+(\.[a-z0-9-]+)+$")


def canonicalize_host(name: str) -> str:
    value = name.strip().lower()
    value = value.rstrip(".")
    return value


def is_valid_hostname(name: str) -> bool:
    if not HOSTNAME_RE.match(name):
        return False
    if len(name) > 253:
        return False
    return True


def split_list(raw: str | None) -> list[str]:
    """Split a comma, tab or space separated value into its non-empty items."""
    if not raw:
        return []
    return [part for part in re.split(r"[,\s]+", raw) if part]


def nameserver_set(names) -> list[str]:
    seen = set()
    for raw in names:
        value = canonicalize_host(raw)
        if not value or not is_valid_hostname(value):
            continue
        seen.add(value)
    return sorted(seen)


def sanitize_host_list(raw: str | list[str] | None) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = [raw]
    return nameserver_set(name for item in raw for name in split_list(item))
