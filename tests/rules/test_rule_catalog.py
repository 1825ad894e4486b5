import re

from scam_thread_risk.domain.evidence import Hit, MessageSummary
from scam_thread_risk.orchestrator.rule_scorer import apply_diminishing, call_hits, diminishing_factor, score_message
from scam_thread_risk.orchestrator.stages import (
    MAX_TIMELINE_EVENTS,
    build_stage_timeline,
    classify_block_stage,
    normalize_hit_stage,
)
from scam_thread_risk.domain.thread.models import CallChecks
from scam_thread_risk.rules.actor import classify_actor_hint, is_demand_text
from scam_thread_risk.rules.catalog import RULES, Rule
from scam_thread_risk.rules.context import context_hits
from scam_thread_risk.rules.url_rules import score_urls
from scam_thread_risk.rules.weights import DEFAULT_WEIGHTS, RiskThresholds, normalize_weights


def _hit(rule_id: str, weight: float, stage: str = "verify") -> Hit:
    return Hit(rule_id=rule_id, label=rule_id, stage=stage, weight=weight, matched=("x",), sample="x")


def test_rule_ids_are_unique():
    ids = [rule.id for rule in RULES]
    assert len(ids) == len(set(ids))


def test_repeated_matches_multiply_weight():
    hits = {hit.rule_id: hit for hit in score_message("인증번호 6자리 알려주세요")}
    assert hits["otp"].weight == DEFAULT_WEIGHTS["otp"] * 2
    assert set(hits["otp"].matched) == {"인증번호", "6자리"}


def test_broken_rule_is_recorded_not_raised():
    class Exploding:
        def finditer(self, text):
            raise RuntimeError("boom")

    broken = Rule(id="broken", label="broken", stage="info", weight_key="link", patterns=(Exploding(),))
    ok = Rule(id="ok", label="ok", stage="info", weight_key="link", patterns=(re.compile("송금"),))
    errors: list[str] = []
    hits = score_message("송금", rules=(broken, ok), errors=errors)
    assert [hit.rule_id for hit in hits] == ["ok"]
    assert errors == ["rule:broken:RuntimeError"]


def test_diminishing_keeps_heaviest_first():
    out = apply_diminishing([_hit("otp", 10), _hit("otp", 20), _hit("link", 5)])
    assert [hit.weight for hit in out] == [20, 8.5, 5]
    assert diminishing_factor(9) == 0.35


def test_call_checks_become_hits():
    hits = call_hits(CallChecks(otp_asked=True, first_contact=True))
    assert {hit.rule_id: hit.weight for hit in hits} == {"call_otp": 30.0, "call_first_contact": 10.0}


def test_safe_account_context_rules():
    hits, _ = context_hits("안전계좌로 이체하세요", [])
    ids = {hit.rule_id for hit in hits}
    assert {"ctx_transfer_phrase", "transfer"} <= ids


def test_otp_cue_carries_across_blocks():
    _, seen = context_hits("인증번호가 발송됐습니다", [])
    assert seen is True
    hits, _ = context_hits("받은 번호 보내주세요", [], seen_otp_cue=seen)
    assert "ctx_otp_relay" in {hit.rule_id for hit in hits}


def test_url_features():
    hits = {hit.rule_id for hit in score_urls("국민은행 안내", ["http://192.168.0.7/kb.apk"], DEFAULT_WEIGHTS)}
    assert {"url_http", "url_ip_host", "url_download_ext"} <= hits


def test_actor_hints():
    assert classify_actor_hint("네") == "comply"
    assert classify_actor_hint("지금 바로 입금해") == "demand"
    assert classify_actor_hint("인증번호 알려주세요") == "demand"
    assert classify_actor_hint("오늘 날씨 좋네요") == "neutral"
    assert is_demand_text("인증번호 알려주세요 네") is True


def test_link_stage_depends_on_context():
    link = _hit("link", 25, stage="verify")
    assert normalize_hit_stage("택배 도착 https://track.example.com", link) == "info"
    assert normalize_hit_stage("본인 인증 필요 https://kb-auth.top", link) == "verify"


def test_payment_alert_is_not_payment():
    hit = _hit("transfer", 18, stage="payment")
    assert normalize_hit_stage("[알림] 이체 완료 내역 안내", hit) == "verify"
    assert normalize_hit_stage("지금 50만원 이체해 주세요", hit) == "payment"


def test_block_stage_and_timeline():
    stage, triggers = classify_block_stage([_hit("a", 5, "info"), _hit("b", 9, "install"), _hit("c", 4, "install")])
    assert stage == "install"
    assert triggers == ["b", "c"]

    stages = ["info", "verify", "verify", "info", "payment"]
    summaries = [MessageSummary(index=i + 1, text="t", stage=stage) for i, stage in enumerate(stages)]
    timeline = build_stage_timeline(summaries)
    assert [event.block_index for event in timeline] == [1, 2, 5]


def test_timeline_is_capped_and_keeps_earliest_events():
    stages = ["info", "verify", "install", "payment"] * 5
    summaries = [MessageSummary(index=i + 1, text="t", stage=stage) for i, stage in enumerate(stages)]
    timeline = build_stage_timeline(summaries)
    assert len(timeline) <= MAX_TIMELINE_EVENTS
    assert [event.block_index for event in timeline] == [1, 2, 3, 4]

    capped = build_stage_timeline(summaries, limit=2)
    assert [event.block_index for event in capped] == [1, 2]
    ranks = [stages.index(event.stage) for event in timeline]
    assert ranks == sorted(ranks)


def test_weights_and_thresholds_normalize():
    weights = normalize_weights({"otp": 40, "unknown": 5, "link": -1, "money": "x"})
    assert weights["otp"] == 40
    assert "unknown" not in weights
    assert weights["link"] == DEFAULT_WEIGHTS["link"]
    assert weights["money"] == DEFAULT_WEIGHTS["money"]
    limits = RiskThresholds(medium=80, high=50).normalize()
    assert limits.high == 81
