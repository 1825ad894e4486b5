"""Per-block rule scoring and thread-level aggregation of hits."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
import logging
import re

from scam_thread_risk.domain.evidence import (
    ContextWindowMeta,
    Hit,
    MessageSummary,
    Stage,
    TopRule,
    max_stage,
)
from scam_thread_risk.domain.thread.models import CallChecks, MessageBlock
from scam_thread_risk.domain.thread.segment import block_role, parse_header_and_content
from scam_thread_risk.domain.url.extract import extract_urls
from scam_thread_risk.orchestrator.context_window import (
    ContextWindowOptions,
    has_sender_roles,
    includes_in_threat,
    select_context_window,
)
from scam_thread_risk.orchestrator.stages import classify_block_stage, normalize_hits
from scam_thread_risk.rules.actor import classify_actor_hint, is_demand_text
from scam_thread_risk.rules.catalog import RULES, Rule
from scam_thread_risk.rules.context import context_hits
from scam_thread_risk.rules.url_rules import score_urls
from scam_thread_risk.rules.weights import DEFAULT_WEIGHTS

logger = logging.getLogger(__name__)

MAX_MATCHES = 6
MAX_MATCH_MULTIPLIER = 3
SAMPLE_CHARS = 140
PREVIEW_CHARS = 220
DIMINISHING_FACTORS = (1.0, 0.85, 0.7, 0.55, 0.45)
DIMINISHING_TAIL = 0.35

_DENIAL = re.compile(
    r"(신청\s*안\s*했|신청\s*한\s*적\s*없|한\s*적\s*없|누른\s*적\s*없|기억\s*없|모르겠|아닌데요|제가\s*아닌데|저\s*아닌데|왜\s*오죠)"
)
_DENIAL_OTP = re.compile(
    r"(신청\s*안\s*했|신청\s*한\s*적\s*없|한\s*적\s*없|누른\s*적\s*없|기억\s*없|모르겠|아닌데요|제가\s*아닌데|저\s*아닌데|왜\s*오죠|분실\s*신고\s*안|분실\s*접수\s*안|내가\s*아닌|제가\s*아닌)"
)
_OTP_DEMAND_NOUN = re.compile(r"(인증번호|otp|오티피|확인\s*코드|보안\s*코드|6\s*자리|6자리|ars|2\s*단계\s*인증)", re.IGNORECASE)
_OTP_DEMAND_VERB = re.compile(r"(보내|알려|전달|말해|읽어|불러|캡처|말씀)")


@dataclass
class ThreadScore:
    hits: list[Hit]
    score_total: float
    stage_peak: Stage
    stage_triggers: list[str]
    message_summaries: list[MessageSummary]
    context: ContextWindowMeta
    errors: list[str] = field(default_factory=list)


def _sample(text: str, limit: int = SAMPLE_CHARS, suffix: str = "...") -> str:
    return text[:limit] + suffix if len(text) > limit else text


def _rule_matches(rule: Rule, text: str) -> list[str]:
    found: list[str] = []
    for pattern in rule.patterns:
        found.extend(match.group(0) for match in pattern.finditer(text))
    return found


def score_message(
    text: str,
    *,
    rules: Sequence[Rule] = RULES,
    weights: Mapping[str, float] = DEFAULT_WEIGHTS,
    errors: list[str] | None = None,
) -> list[Hit]:
    """Test every catalogue rule against one message; all matching rules are kept."""

    content = text or ""
    hits: list[Hit] = []
    for rule in rules:
        try:
            found = _rule_matches(rule, content)
        except Exception as exc:
            logger.warning("rule %s failed: %s", rule.id, exc)
            if errors is not None:
                errors.append(f"rule:{rule.id}:{type(exc).__name__}")
            continue
        unique = list(dict.fromkeys(item.strip() for item in found if item.strip()))[:MAX_MATCHES]
        if not unique:
            continue
        hits.append(
            Hit(
                rule_id=rule.id,
                label=rule.label,
                stage=rule.stage,
                weight=rule.weight(weights) * min(MAX_MATCH_MULTIPLIER, len(unique)),
                matched=tuple(unique),
                sample=_sample(content),
            )
        )
    return hits


def diminishing_factor(occurrence: int) -> float:
    if occurrence < 1:
        return DIMINISHING_FACTORS[0]
    if occurrence <= len(DIMINISHING_FACTORS):
        return DIMINISHING_FACTORS[occurrence - 1]
    return DIMINISHING_TAIL


def apply_diminishing(hits: Sequence[Hit]) -> list[Hit]:
    """Discount repeats of one rule id; the heaviest occurrence keeps full weight.

    Returns the discounted hits sorted by weight, heaviest first.
    """

    ordered = sorted(hits, key=lambda hit: -hit.weight)
    seen: dict[str, int] = {}
    out: list[Hit] = []
    for hit in ordered:
        occurrence = seen.get(hit.rule_id, 0) + 1
        seen[hit.rule_id] = occurrence
        factor = diminishing_factor(occurrence)
        if factor == 1.0:
            out.append(hit)
            continue
        out.append(hit.model_copy(update={"weight": round(hit.weight * factor, 2)}))
    out.sort(key=lambda hit: -hit.weight)
    return out


def call_hits(call: CallChecks | None, weights: Mapping[str, float] = DEFAULT_WEIGHTS) -> list[Hit]:
    if call is None:
        return []
    checkbox = "통화 맥락 체크박스"
    hits: list[Hit] = []
    if call.otp_asked:
        hits.append(
            Hit(
                rule_id="call_otp",
                label="통화: 인증번호/OTP 요구",
                stage="verify",
                weight=float(weights.get("callOtp", 0.0)),
                matched=("(call) otp asked",),
                sample=checkbox,
            )
        )
    if call.remote_asked:
        hits.append(
            Hit(
                rule_id="call_remote",
                label="통화: 원격/앱 설치 유도",
                stage="install",
                weight=float(weights.get("callRemote", 0.0)),
                matched=("(call) remote asked",),
                sample=checkbox,
            )
        )
    if call.urgent_pressured:
        hits.append(
            Hit(
                rule_id="call_urgent",
                label="통화: 긴급/압박",
                stage="info",
                weight=float(weights.get("callUrgent", 0.0)),
                matched=("(call) urgent pressured",),
                sample=checkbox,
            )
        )
    if call.first_contact:
        hits.append(
            Hit(
                rule_id="call_first_contact",
                label="통화: 처음 연락(미등록 발신)",
                stage="info",
                weight=float(weights.get("callFirstContact", 0.0)),
                matched=("(call) first contact",),
                sample="번호 기반 자동 판정",
            )
        )
    return hits


def _pair_hit(rule_id: str, label: str, stage: Stage, weight: float, a: MessageSummary, b: MessageSummary) -> Hit:
    return Hit(
        rule_id=rule_id,
        label=label,
        stage=stage,
        weight=weight,
        matched=(f"BLK {a.index} → BLK {b.index}",),
        sample=f"{a.preview} / {b.preview}"[:180],
    )


def _speakers_differ(a: MessageSummary, b: MessageSummary) -> bool:
    return bool(a.speaker_label and b.speaker_label and a.speaker_label != b.speaker_label)


def _follow_ups(summaries: Sequence[MessageSummary], position: int) -> Sequence[MessageSummary]:
    return summaries[position + 1 : position + 3]


def thread_context_hits(summaries: Sequence[MessageSummary]) -> list[Hit]:
    """Cross-block hits for unlabeled threads: a demand, link or OTP ask answered within two blocks."""

    hits: list[Hit] = []
    for position, a in enumerate(summaries):
        if a.actor_hint != "demand":
            continue
        for b in _follow_ups(summaries, position):
            if b.actor_hint != "comply":
                continue
            stage = max_stage(a.stage, b.stage)
            hits.append(
                _pair_hit(
                    "ctx_comply_after_demand",
                    "맥락: 요구 직후 동의/수락(연쇄 위험)",
                    "verify" if stage == "info" else stage,
                    12 if _speakers_differ(a, b) else 8,
                    a,
                    b,
                )
            )
            break

    for position, a in enumerate(summaries):
        if not a.urls:
            continue
        for b in _follow_ups(summaries, position):
            if not _DENIAL.search(b.content or b.preview):
                continue
            hits.append(
                _pair_hit(
                    "ctx_denial_after_link",
                    "맥락: 링크 제시 직후 본인 부인/미신청",
                    "verify",
                    14 if _speakers_differ(a, b) else 10,
                    a,
                    b,
                )
            )
            break

    for position, a in enumerate(summaries):
        if not (_OTP_DEMAND_NOUN.search(a.content) and _OTP_DEMAND_VERB.search(a.content)):
            continue
        for b in _follow_ups(summaries, position):
            if not _DENIAL_OTP.search(b.content or b.preview):
                continue
            hits.append(
                _pair_hit("ctx_denial_after_otp", "맥락: 인증번호 요구 직후 본인 부인/미신청", "verify", 14, a, b)
            )
            break
    return hits


def score_thread(
    blocks: Sequence[MessageBlock],
    call: CallChecks | None = None,
    *,
    weights: Mapping[str, float] = DEFAULT_WEIGHTS,
    rules: Sequence[Rule] = RULES,
    window: ContextWindowOptions | None = None,
) -> ThreadScore:
    selected, context = select_context_window(blocks, call, window)
    explicit = has_sender_roles(blocks)
    errors: list[str] = []
    block_hits: list[Hit] = []
    summaries: list[MessageSummary] = []
    seen_otp_cue = False

    for block in selected:
        parsed = parse_header_and_content(block.text)
        content = parsed.content or block.text
        urls = extract_urls(content)
        actor_hint = classify_actor_hint(content)
        role = block_role(block, parsed)
        include = includes_in_threat(explicit, role, actor_hint)

        normalized: list[Hit] = []
        if include:
            raw_hits = score_message(content, rules=rules, weights=weights, errors=errors)
            raw_hits.extend(score_urls(content, urls, weights))
            ctx_hits, seen_otp_cue = context_hits(
                content,
                urls,
                demand=is_demand_text(content),
                seen_otp_cue=seen_otp_cue,
            )
            raw_hits.extend(ctx_hits)
            normalized = sorted(normalize_hits(content, raw_hits), key=lambda hit: -hit.weight)

        stage, triggers = classify_block_stage(normalized)
        summaries.append(
            MessageSummary(
                index=block.index,
                text=block.text,
                speaker=role,
                header=parsed.header,
                speaker_label=parsed.speaker_label,
                content=content,
                actor_hint=actor_hint,
                preview=_sample(content, PREVIEW_CHARS, "…"),
                score=min(100.0, sum(hit.weight for hit in normalized)),
                urls=urls,
                stage=stage,
                stage_triggers=triggers,
                top_rules=[TopRule(label=hit.label, stage=hit.stage, weight=hit.weight) for hit in normalized[:3]],
                include_in_threat=include,
            )
        )
        block_hits.extend(normalized)

    if not explicit:
        block_hits.extend(thread_context_hits([item for item in summaries if item.speaker != "RECIPIENT"]))
    block_hits.extend(call_hits(call, weights))

    hits = apply_diminishing(block_hits)
    score_total = min(100.0, round(sum(hit.weight for hit in hits), 2))
    stage_peak, stage_triggers = classify_block_stage(hits)
    return ThreadScore(
        hits=hits,
        score_total=score_total,
        stage_peak=stage_peak,
        stage_triggers=stage_triggers,
        message_summaries=summaries,
        context=context,
        errors=errors,
    )


__all__ = [
    "ThreadScore",
    "apply_diminishing",
    "call_hits",
    "diminishing_factor",
    "score_message",
    "score_thread",
    "thread_context_hits",
]
