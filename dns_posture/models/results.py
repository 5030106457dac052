from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Status(str, Enum):
    ok = "pass"
    warn = "warn"
    fail = "fail"
    not_set = "not-set"


class AnswerStatus(str, Enum):
    empty = "empty"
    present = "present"
    failed = "failed"


class Observation(str, Enum):
    present = "present"
    absent = "absent"
    failed = "failed"


class EmailAuthStatus(str, Enum):
    found = "found"
    not_found = "not-found"
    found_without_policy = "found-without-policy"


class RecordFact(BaseModel):
    model_config = ConfigDict(frozen=True)

    owner: str
    record_type: str
    value: str
    priority: int | None = None


class QueryOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    dnssec: bool = False
    authority_only: bool = False
    want_authenticated: bool = False
    checking_disabled: bool = False
    recursive: bool = True


class AnswerOutcome(BaseModel):
    server: str
    name: str
    record_type: str
    status: AnswerStatus
    records: list[str] = Field(default_factory=list)
    authority: list[str] = Field(default_factory=list)
    authenticated: bool = False
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.status == AnswerStatus.failed


class DelegationResult(BaseModel):
    parent: list[str] = Field(default_factory=list)
    zone: list[str] = Field(default_factory=list)
    aligned: bool = False
    only_parent: list[str] = Field(default_factory=list)
    only_zone: list[str] = Field(default_factory=list)
    parent_source: str = "none"


class DkimRecord(BaseModel):
    selector: str
    value: str


class AuthoritativeRow(BaseModel):
    server: str
    dnskey: Observation = Observation.absent
    soa: Observation = Observation.absent
    ns: Observation = Observation.absent
    a: Observation = Observation.absent
    aaaa: Observation = Observation.absent
    mx: Observation = Observation.absent
    spf: Observation = Observation.absent
    dmarc: Observation = Observation.absent
    dkim: Observation = Observation.absent
    mx_records: list[RecordFact] = Field(default_factory=list)
    spf_records: list[str] = Field(default_factory=list)
    dmarc_records: list[str] = Field(default_factory=list)
    dkim_records: list[DkimRecord] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class ResolverRow(BaseModel):
    resolver: str
    ds: bool = False
    dnskey: bool = False
    authenticated: bool = False
    checking_disabled: bool = False
    errors: list[str] = Field(default_factory=list)


class MXEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str
    priority: int


class MXResolutionRow(BaseModel):
    host: str
    a: Observation = Observation.absent
    aaaa: Observation = Observation.absent

    @property
    def has_a(self) -> bool:
        return self.a == Observation.present

    @property
    def has_aaaa(self) -> bool:
        return self.aaaa == Observation.present


class EmailAuthBundle(BaseModel):
    spf: list[str] = Field(default_factory=list)
    dmarc: list[str] = Field(default_factory=list)
    dkim: list[DkimRecord] = Field(default_factory=list)
    spf_status: EmailAuthStatus = EmailAuthStatus.not_found
    dmarc_status: EmailAuthStatus = EmailAuthStatus.not_found
    dkim_status: EmailAuthStatus = EmailAuthStatus.not_found
    spf_analysis: dict = Field(default_factory=dict)
    dmarc_analysis: dict = Field(default_factory=dict)


class PostureSnapshot(BaseModel):
    domain: str
    run_id: str
    generated_at: datetime
    authoritatives: list[str] = Field(default_factory=list)
    delegation: DelegationResult = Field(default_factory=DelegationResult)
    authoritative_rows: list[AuthoritativeRow] = Field(default_factory=list)
    resolver_rows: list[ResolverRow] = Field(default_factory=list)
    mx_entries: list[MXEntry] = Field(default_factory=list)
    mx_authoritative: list[MXResolutionRow] = Field(default_factory=list)
    mx_recursive: list[MXResolutionRow] = Field(default_factory=list)
    email: EmailAuthBundle = Field(default_factory=EmailAuthBundle)
    dkim_selectors: list[str] = Field(default_factory=list)
    parent_ds: list[str] = Field(default_factory=list)
    child_dnskey: list[str] = Field(default_factory=list)


class PostureSummary(BaseModel):
    delegation: Status
    dnssec: Status
    mx: Status
    spf: Status
    dmarc: Status


class PostureReport(BaseModel):
    snapshot: PostureSnapshot
    summary: PostureSummary
    findings: list[dict] = Field(default_factory=list)
    ledger: dict = Field(default_factory=dict)
