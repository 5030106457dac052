from __future__ import annotations

import json
import logging
import sys
import time
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

import typer

from . import __version__
from .models.config import ConfigurationError, RunConfig, build_config
from .pipeline.runner import run_posture_sync
from .reporting.text import build_report
from .utils.normalize import canonicalize_host, split_list

app = typer.Typer(add_completion=False)

_RECORD_FIELDS = set(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "time": datetime.now(timezone.utc).isoformat(),
        }
        for key, value in record.__dict__.items():
            if key not in _RECORD_FIELDS:
                payload[key] = value
        return json.dumps(payload, default=str)


def setup_logging(verbose: bool = False) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())
    logging.basicConfig(level=logging.INFO if verbose else logging.WARNING, handlers=[handler], force=True)


def fail(message: str) -> None:
    typer.echo(f"ERROR: {message}", err=True)
    raise typer.Exit(2)


def resolve_domain(positional: str | None, option: str | None) -> str:
    if positional and option and canonicalize_host(positional) != canonicalize_host(option):
        raise ConfigurationError(f"conflicting domains: {positional!r} and {option!r}")
    domain = positional or option
    if not domain:
        raise ConfigurationError("--domain required (or set DOMAIN env)")
    return domain


def emit(config: RunConfig, as_json: bool) -> None:
    report = run_posture_sync(config)
    if as_json:
        typer.echo(json.dumps(report.model_dump(mode="json"), indent=2, default=str))
    else:
        typer.echo(build_report(report))


@app.command()
def check(
    domain_arg: Optional[str] = typer.Argument(None, metavar="DOMAIN", show_default=False),
    domain: Optional[str] = typer.Option(None, "--domain", envvar="DOMAIN", help="Domain to evaluate."),
    watch: int = typer.Option(0, "--watch", envvar="INTERVAL", min=0, help="Re-run every N seconds (0 = single run)."),
    dkim: Optional[str] = typer.Option(None, "--dkim", envvar="DKIM_SELECTORS", help="DKIM selectors, e.g. sel1,sel2."),
    ns: Optional[str] = typer.Option(None, "--ns", envvar="AUTHORITATIVES", help="Authoritative servers to query; disables auto discovery."),
    auto_ns: bool = typer.Option(True, "--auto-ns/--no-auto-ns", envvar="AUTO_NS", help="Discover authoritative servers from NS records."),
    timeout: float = typer.Option(4.0, "--timeout", help="Per-query timeout in seconds."),
    workers: int = typer.Option(16, "--workers", help="Maximum concurrent queries."),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Evaluate DNS delegation, DNSSEC and email-authentication posture for a domain."""
    setup_logging(verbose)
    try:
        config = build_config(
            domain=resolve_domain(domain_arg, domain),
            dkim_selectors=split_list(dkim),
            authoritatives=split_list(ns),
            auto_ns=auto_ns and not ns,
            interval=watch,
            timeout_seconds=timeout,
            max_workers=workers,
            run_id=str(uuid4()),
            timestamp=datetime.now(timezone.utc),
        )
    except ConfigurationError as exc:
        fail(str(exc))

    if config.interval <= 0:
        emit(config, as_json)
        return

    try:
        while True:
            emit(config, as_json)
            typer.echo(f"\nSleeping {config.interval}s before next pass (Ctrl-C to exit)", err=True)
            time.sleep(config.interval)
            config = config.model_copy(update={"run_id": str(uuid4()), "timestamp": datetime.now(timezone.utc)})
    except KeyboardInterrupt:
        typer.echo("stopped", err=True)


@app.command()
def version() -> None:
    """Print the tool version."""
    typer.echo(f"dns-posture {__version__}")
