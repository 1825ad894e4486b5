"""Unified evidence/report structures."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from scam_thread_risk.domain.base import ContractModel
from scam_thread_risk.domain.thread.models import Speaker

Stage = Literal["info", "verify", "install", "payment"]
RiskLevel = Literal["low", "medium", "high"]
ActorHint = Literal["demand", "comply", "neutral", "unknown"]
Severity = Literal["low", "medium", "high"]
EvidenceKind = Literal["thread", "message", "call", "link"]
PrefilterAction = Literal["none", "soft", "auto"]

STAGE_RANK: dict[str, int] = {"info": 0, "verify": 1, "install": 2, "payment": 3}
RISK_RANK: dict[str, int] = {"low": 0, "medium": 1, "high": 2}


def max_stage(a: Stage, b: Stage) -> Stage:
    return a if STAGE_RANK[a] >= STAGE_RANK[b] else b


class Hit(ContractModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    rule_id: str
    label: str
    stage: Stage
    weight: float = Field(ge=0)
    matched: tuple[str, ...] = ()
    sample: str = ""


class SignalSummary(ContractModel):
    id: str
    label: str
    weight_sum: float = 0.0
    count: int = 0
    examples: list[str] = Field(default_factory=list)
    stage: Stage | None = None


class TopRule(ContractModel):
    label: str
    stage: Stage
    weight: float


class MessageSummary(ContractModel):
    index: int
    text: str
    speaker: Speaker = "UNKNOWN"
    header: str | None = None
    speaker_label: str | None = None
    content: str = ""
    actor_hint: ActorHint = "neutral"
    preview: str = ""
    score: float = 0.0
    urls: list[str] = Field(default_factory=list)
    stage: Stage = "info"
    stage_triggers: list[str] = Field(default_factory=list)
    top_rules: list[TopRule] = Field(default_factory=list)
    include_in_threat: bool = False


class StageEvent(ContractModel):
    block_index: int
    stage: Stage
    score: float
    triggers: list[str] = Field(default_factory=list)
    preview: str = ""


class EvidenceItem(ContractModel):
    kind: EvidenceKind = "message"
    severity: Severity = "medium"
    text: str


class ActionItem(ContractModel):
    id: str
    label: str
    kind: Literal["call", "link", "info"]
    href: str | None = None
    note: str | None = None


class PrefilterSignal(ContractModel):
    id: str
    label: str
    points: int
    matches: list[str] | None = None
    evidence: str | None = None


class PrefilterWindow(ContractModel):
    blocks_considered: int = 0
    chars_considered: int = 0


class PrefilterResult(ContractModel):
    score: int = Field(ge=0, le=100, default=0)
    action: PrefilterAction = "none"
    gate_pass: bool = False
    threshold_soft: int = 28
    threshold_auto: int = 52
    signals: list[PrefilterSignal] = Field(default_factory=list)
    combos: list[PrefilterSignal] = Field(default_factory=list)
    trig_ids: list[str] = Field(default_factory=list)
    window: PrefilterWindow = Field(default_factory=PrefilterWindow)


class SimilarityMatch(ContractModel):
    id: str
    label: str
    sample: str | None = None
    similarity: float
    category: str | None = None
    expected_risk: str | None = None
    shared_signals: list[str] | None = None


class ContextWindowMeta(ContractModel):
    mode: Literal["auto", "rolling", "sticky"] = "sticky"
    kept: int = 0
    dropped: int = 0
    reason: str = "sticky"


class Provenance(ContractModel):
    errors: list[str] = Field(default_factory=list)
    limits_hit: list[str] = Field(default_factory=list)


class AnalysisResult(ContractModel):
    risk_level: RiskLevel = "low"
    score_total: float = Field(ge=0, le=100, default=0)
    ui_risk_level: RiskLevel = "low"
    ui_score_total: float = Field(ge=0, le=100, default=0)
    r_gate_tag: str | None = None
    stage_peak: Stage = "info"
    stage_triggers: list[str] = Field(default_factory=list)
    message_count: int = 0
    evidence_top3: list[EvidenceItem] = Field(default_factory=list)
    signals_top: list[SignalSummary] = Field(default_factory=list)
    hits_top: list[Hit] = Field(default_factory=list)
    urls: list[str] = Field(default_factory=list)
    message_summaries: list[MessageSummary] = Field(default_factory=list)
    stage_timeline: list[StageEvent] = Field(default_factory=list)
    similarity_top: list[SimilarityMatch] = Field(default_factory=list)
    semantic_top: list[SimilarityMatch] = Field(default_factory=list)
    prefilter: PrefilterResult | None = None
    actions: list[ActionItem] = Field(default_factory=list)
    package_text: str = ""
    triggered: bool = False
    context: ContextWindowMeta = Field(default_factory=ContextWindowMeta)
    provenance: Provenance = Field(default_factory=Provenance)
    trace: list[dict[str, Any]] = Field(default_factory=list)
