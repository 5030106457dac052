from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..utils.normalize import canonicalize_host, is_valid_hostname, sanitize_host_list, split_list

# Public recursive resolvers, one or two per provider.
RESOLVERS = [
    "8.8.8.8",
    "8.8.4.4",
    "1.1.1.1",
    "1.0.0.1",
    "9.9.9.9",
    "149.112.112.112",
    "64.6.64.6",
    "208.67.222.222",
]

DEFAULT_DKIM_SELECTORS = ["selector1", "selector2"]


class ConfigurationError(ValueError):
    pass


class RunConfig(BaseModel):
    domain: str
    dkim_selectors: list[str] = Field(default_factory=lambda: list(DEFAULT_DKIM_SELECTORS))
    authoritatives: list[str] = Field(default_factory=list)
    auto_ns: bool = True
    interval: int = Field(default=0, ge=0)
    timeout_seconds: float = Field(default=4.0, gt=0)
    max_workers: int = Field(default=16, ge=1)
    run_id: str
    timestamp: datetime

    @field_validator("domain")
    @classmethod
    def _canonical_domain(cls, value: str) -> str:
        domain = canonicalize_host(value)
        if not is_valid_hostname(domain):
            raise ValueError(f"invalid domain: {value!r}")
        return domain

    @field_validator("dkim_selectors")
    @classmethod
    def _selectors(cls, value: list[str]) -> list[str]:
        selectors: list[str] = []
        for item in value:
            for sel in split_list(item):
                sel = sel.strip(".")
                if not sel:
                    continue
                if "/" in sel or ".." in sel:
                    raise ValueError(f"invalid DKIM selector: {sel!r}")
                if sel not in selectors:
                    selectors.append(sel)
        return selectors or list(DEFAULT_DKIM_SELECTORS)

    @field_validator("authoritatives")
    @classmethod
    def _authoritatives(cls, value: list[str]) -> list[str]:
        return sanitize_host_list(value)

    @property
    def use_override(self) -> bool:
        return bool(self.authoritatives)


def build_config(**values) -> RunConfig:
    try:
        return RunConfig(**values)
    except ValidationError as exc:
        messages = "; ".join(err["msg"] for err in exc.errors())
        raise ConfigurationError(messages) from exc
