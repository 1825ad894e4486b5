"""Thread analysis pipeline: prefilter, rule scoring, escalation, retrieval, report."""

from __future__ import annotations

from collections.abc import Generator, Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from scam_thread_risk.config.settings import AppConfig
from scam_thread_risk.domain.evidence import AnalysisResult, PrefilterResult, Provenance, SimilarityMatch
from scam_thread_risk.domain.thread.models import AnalysisInput, resolve_thread_input
from scam_thread_risk.domain.thread.normalize import normalize_text
from scam_thread_risk.domain.thread.segment import MAX_BLOCKS, SegmentOptions, split_thread_with_ranges
from scam_thread_risk.domain.url.extract import extract_urls
from scam_thread_risk.evidence.report import build_package_text, default_actions
from scam_thread_risk.evidence.summarize import (
    build_evidence_top3,
    build_signals,
    prepend_signal,
    select_signals_top,
    sender_url_hint,
)
from scam_thread_risk.orchestrator.context_window import ContextWindowOptions
from scam_thread_risk.orchestrator.escalation import EscalationPolicy, evaluate_recipient_gate, sender_only_text
from scam_thread_risk.orchestrator.fusion import (
    compute_ui_score,
    evaluate_similarity_boost,
    has_action_anchor,
    risk_level,
)
from scam_thread_risk.orchestrator.prefilter import PrefilterContext, PrefilterOptions, prefilter_thread
from scam_thread_risk.orchestrator.rule_scorer import score_thread
from scam_thread_risk.orchestrator.stages import build_stage_timeline
from scam_thread_risk.orchestrator.tracing import TraceEvent, TraceLog
from scam_thread_risk.retrieval.pools import SemIndexItem, SimIndexItem
from scam_thread_risk.retrieval.semantic import rank_semantic
from scam_thread_risk.retrieval.similarity import rank_similar, similarity_hint
from scam_thread_risk.rules.weights import DEFAULT_WEIGHTS, RiskThresholds, normalize_weights

MAX_HITS_TOP = 30
MAX_SENDER_URLS = 30


@dataclass(frozen=True)
class AnalyzeOptions:
    thresholds: RiskThresholds = field(default_factory=RiskThresholds)
    weights: Mapping[str, float] = field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    prefilter_enabled: bool = True
    prefilter: PrefilterOptions = field(default_factory=PrefilterOptions)
    prefilter_context: PrefilterContext | None = None
    segment: SegmentOptions = field(default_factory=SegmentOptions)
    window: ContextWindowOptions = field(default_factory=ContextWindowOptions)
    escalation: EscalationPolicy = field(default_factory=EscalationPolicy)
    sim_items: Sequence[SimIndexItem] = ()
    sim_top_k: int = 10
    sim_gate: float = 0.9
    sem_items: Sequence[SemIndexItem] = ()
    sem_query_vec: Sequence[float] | None = None
    sem_top_k: int = 8
    sem_min_sim: float = 0.0

    @classmethod
    def from_config(cls, config: AppConfig) -> AnalyzeOptions:
        return cls(
            thresholds=RiskThresholds(
                medium=config.risk_medium_threshold,
                high=config.risk_high_threshold,
            ).normalize(),
            weights=normalize_weights(config.weights),
            prefilter_enabled=config.prefilter_enabled,
            prefilter=PrefilterOptions(
                recent_blocks_max=max(1, config.prefilter_recent_blocks_max),
                threshold_soft=config.prefilter_threshold_soft,
                threshold_auto=config.prefilter_threshold_auto,
            ),
            segment=SegmentOptions(
                turn_prefix_enabled=config.turn_prefix_enabled,
                auto_default_speaker=config.auto_default_speaker,
                default_who=config.default_speaker,
            ),
            window=ContextWindowOptions(
                mode=config.context_mode,  # type: ignore[arg-type]
                max_messages=config.context_max_messages,
                max_sticky=config.context_max_sticky_messages,
                backtrack=config.context_backtrack,
                max_days=config.context_max_days,
            ).clamped(),
            sim_top_k=config.sim_top_k,
            sim_gate=config.sim_gate,
            sem_top_k=config.sem_top_k,
            sem_min_sim=config.sem_min_sim,
        )

    def with_pools(
        self,
        *,
        sim_items: Sequence[SimIndexItem] | None = None,
        sem_items: Sequence[SemIndexItem] | None = None,
        sem_query_vec: Sequence[float] | None = None,
    ) -> AnalyzeOptions:
        return replace(
            self,
            sim_items=tuple(sim_items) if sim_items is not None else self.sim_items,
            sem_items=tuple(sem_items) if sem_items is not None else self.sem_items,
            sem_query_vec=sem_query_vec if sem_query_vec is not None else self.sem_query_vec,
        )


def _prefilter_triggered(result: PrefilterResult | None) -> bool:
    return result is not None and result.action != "none"


def analyze_stream(
    payload: AnalysisInput | Mapping[str, Any] | str | None,
    options: AnalyzeOptions | None = None,
) -> Generator[TraceEvent, None, None]:
    """Yield trace events, then ``{"type": "final", "result": AnalysisResult}``."""

    opts = options or AnalyzeOptions()
    trace = TraceLog()
    provenance = Provenance()

    thread = resolve_thread_input(payload)
    raw = (thread.thread_text or "").replace("\r\n", "\n")
    yield trace.record("init", "done", "Input resolved.", data={"chars": len(raw)})

    normalized = normalize_text(raw)
    blocks = split_thread_with_ranges(normalized, opts.segment, limit=MAX_BLOCKS + 1)
    if len(blocks) > MAX_BLOCKS:
        blocks = blocks[:MAX_BLOCKS]
        provenance.limits_hit.append(f"blocks_capped_{MAX_BLOCKS}")
    yield trace.record("segment", "done", "Thread segmented.", data={"blocks": len(blocks)})

    sender_text = sender_only_text(blocks)
    sender_urls = extract_urls(sender_text, limit=MAX_SENDER_URLS + 1)
    if len(sender_urls) > MAX_SENDER_URLS:
        sender_urls = sender_urls[:MAX_SENDER_URLS]
        provenance.limits_hit.append(f"urls_capped_{MAX_SENDER_URLS}")

    prefilter: PrefilterResult | None = None
    if opts.prefilter_enabled:
        prefilter = prefilter_thread(sender_text, opts.prefilter, opts.prefilter_context)
        yield trace.record(
            "prefilter",
            "done",
            "Prefilter scored.",
            data={"score": prefilter.score, "action": prefilter.action, "gate_pass": prefilter.gate_pass},
        )
    else:
        yield trace.record("prefilter", "skipped", "Prefilter disabled.")

    scored = score_thread(blocks, thread.call_checks, weights=opts.weights, window=opts.window)
    provenance.errors.extend(scored.errors)
    yield trace.record(
        "rule_score",
        "error" if scored.errors else "done",
        "Rules scored.",
        data={
            "hits": len(scored.hits),
            "score": scored.score_total,
            "stage_peak": scored.stage_peak,
            "context": scored.context.reason,
        },
    )

    signals = build_signals(scored.hits)
    signals_top = select_signals_top(signals)
    if sender_urls:
        signals_top = prepend_signal(signals_top, sender_url_hint(sender_urls))

    anchor = has_action_anchor(scored.hits)
    score_total = scored.score_total

    similarity_top: list[SimilarityMatch] = []
    if opts.sim_items:
        similarity_top = rank_similar(signals, opts.sim_items, top_k=opts.sim_top_k, min_sim=None)
        if similarity_top:
            top = similarity_top[0]
            boost = evaluate_similarity_boost(top.similarity, gate=opts.sim_gate, anchor=anchor)
            if boost.applied > 0:
                score_total = min(100.0, round(score_total + boost.applied, 2))
            signals_top = prepend_signal(
                signals_top,
                similarity_hint(
                    top,
                    gate=opts.sim_gate,
                    gate_pass=boost.gate_pass,
                    anchor=anchor,
                    applied=boost.applied,
                ),
            )
        yield trace.record(
            "similarity",
            "done",
            "Similarity ranked.",
            data={"candidates": len(similarity_top), "score": score_total},
        )

    level = risk_level(score_total, opts.thresholds)
    gate = evaluate_recipient_gate(blocks, opts.escalation, payment_context=scored.stage_peak == "payment")
    ui = compute_ui_score(
        threat_score=score_total,
        threat_level=level,
        gate=gate,
        anchor=anchor,
        prefilter_triggered=_prefilter_triggered(prefilter),
        sender_url=bool(sender_urls),
        thresholds=opts.thresholds,
        policy=opts.escalation,
    )
    yield trace.record(
        "escalation",
        "done",
        "Recipient gate evaluated.",
        data={"tag": gate.tag, "floor": gate.incident_floor, "ui_score": ui.score},
    )

    semantic_top: list[SimilarityMatch] = []
    if opts.sem_items and opts.sem_query_vec:
        semantic_top = rank_semantic(opts.sem_query_vec, opts.sem_items, top_k=opts.sem_top_k, min_sim=opts.sem_min_sim)
        yield trace.record("semantic", "done", "Semantic candidates ranked.", data={"candidates": len(semantic_top)})

    hits_top = scored.hits[:MAX_HITS_TOP]
    if len(scored.hits) > MAX_HITS_TOP:
        provenance.limits_hit.append(f"hits_top_capped_{MAX_HITS_TOP}")

    evidence_top3 = build_evidence_top3(scored.hits)
    actions = default_actions()
    package_text = build_package_text(
        risk_level=level,
        score_total=score_total,
        message_count=len(blocks),
        evidence_top3=evidence_top3,
        signals_top=signals_top,
        actions=actions,
    )
    if prefilter is not None:
        triggered = _prefilter_triggered(prefilter) or bool(sender_urls)
    else:
        triggered = bool(scored.hits) or bool(sender_urls)
    yield trace.record("report", "done", "Report assembled.", data={"risk_level": level, "triggered": triggered})

    result = AnalysisResult(
        risk_level=level,
        score_total=score_total,
        ui_risk_level=ui.level,
        ui_score_total=max(ui.score, score_total),
        r_gate_tag=gate.tag if ui.show_intervention and gate.tag else None,
        stage_peak=scored.stage_peak,
        stage_triggers=scored.stage_triggers,
        message_count=len(blocks),
        evidence_top3=evidence_top3,
        signals_top=signals_top,
        hits_top=hits_top,
        urls=sender_urls,
        message_summaries=scored.message_summaries,
        stage_timeline=build_stage_timeline(scored.message_summaries),
        similarity_top=similarity_top,
        semantic_top=semantic_top,
        prefilter=prefilter,
        actions=actions,
        package_text=package_text,
        triggered=triggered,
        context=scored.context,
        provenance=provenance,
        trace=list(trace.events),
    )
    yield {"type": "final", "result": result}


def analyze_thread(
    payload: AnalysisInput | Mapping[str, Any] | str | None,
    options: AnalyzeOptions | None = None,
) -> AnalysisResult:
    final: AnalysisResult | None = None
    for event in analyze_stream(payload, options):
        if event.get("type") == "final" and isinstance(event.get("result"), AnalysisResult):
            final = event["result"]
    if final is None:
        raise RuntimeError("analysis produced no result")
    return final


__all__ = ["AnalyzeOptions", "MAX_HITS_TOP", "MAX_SENDER_URLS", "analyze_stream", "analyze_thread"]
