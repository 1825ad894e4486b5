"""Stage normalization, per-block stage classification and the stage timeline."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
import re

from scam_thread_risk.domain.evidence import STAGE_RANK, Hit, MessageSummary, Stage, StageEvent, max_stage
from scam_thread_risk.rules.cues import (
    BILLING_WORD,
    ESCROW_LIKE,
    has_amount_krw,
    has_strong_pay_cue,
    is_payment_alert_only,
    is_transfer_request,
)

MAX_TIMELINE_EVENTS = 8

_I = re.IGNORECASE

_INTRANET_LIKE = re.compile(
    r"(사내|내부|회사|intranet|인트라넷|내부\s*공지|사내\s*공지|공지\s*페이지|회사\s*it|it\s*팀|helpdesk|헬프데스크|정보보안)",
    _I,
)
_INTRANET_UNSAFE = re.compile(
    r"(otp|인증\s*번호|인증번호|보안\s*코드|보안코드|확인\s*코드|확인코드|ars|2\s*단계\s*인증|2fa|송금|이체|입금|납부|결제|안내\s*계좌|보호\s*계좌|안전\s*계좌|원격|anydesk|quicksupport|teamviewer|apk|설치|다운로드|뷰어|viewer|shortener|bit\.ly|t\.co)",
    _I,
)
_HTTP_URL = re.compile(r"https?://[^\s)]+", _I)
_STRONG_ACTION_CONTEXT = re.compile(
    r"(인증|본인|로그인|계정|비밀번호|otp|오티피|ars|2\s*단계\s*인증|확인\s*번호|확인번호|보안\s*코드|보안코드|확인\s*코드|확인코드|결제|납부|송금|이체|입금|선납|보험료|설치|다운로드|원격|팀뷰어|anydesk|quicksupport|차단|해제|분실|압류|과태료|벌금|미납|체납)",
    _I,
)
_PROMO = re.compile(r"(쿠폰|기프티콘|설문|프로모션|이벤트|경품|당첨|무료\s*(쿠폰|기프티콘)?)")
_INSTALL_CUE = re.compile(
    r"(설치|다운로드|앱|어플|프로그램|원격|팀뷰어|anydesk|quicksupport|apk|exe|msi|dmg|pkg|뷰어|viewer|플러그인|plugin)",
    _I,
)
_PAY_WORD = re.compile(r"(납부|송금|이체|입금|지불|충전|선납|보험료)")
_INSTALL_BEFORE_PAY = (
    re.compile(r"(설치).{0,10}(후|해야|필요).{0,24}(결제|납부|송금|이체|입금|진행)"),
    re.compile(r"(결제|납부|송금|이체|입금).{0,18}(하려면|위해).{0,18}(설치)"),
)

_VERIFY_ALWAYS = frozenset({"shortener", "otp", "ctx_otp_proxy", "ctx_otp_finance", "ctx_otp_relay"})
_PII_IDS = frozenset({"personalinfo", "pii_request", "account_verify"})
_INFO_ALWAYS = frozenset({"txn_alert", "social", "authority", "threat", "urgent"})
_INSTALL_ALWAYS = frozenset({"remote", "install_app", "apk"})
_PAYMENT_ALWAYS = frozenset({"safe_account", "ctx_transfer_phrase"})


def _intranet_safe(text: str, *, needs_url: bool) -> bool:
    if not _INTRANET_LIKE.search(text):
        return False
    if needs_url and not _HTTP_URL.search(text):
        return False
    return not _INTRANET_UNSAFE.search(text)


def _link_stage(text: str, hit: Hit) -> Stage:
    if _intranet_safe(text, needs_url=True):
        return "info"
    scope = "\n".join([text, hit.sample, *hit.matched]).strip()
    strong = bool(_STRONG_ACTION_CONTEXT.search(scope))
    promo = bool(_PROMO.search(scope))
    if strong or promo:
        return "verify"
    return "info"


def _installs_before_pay(text: str) -> bool:
    return any(pattern.search(text) for pattern in _INSTALL_BEFORE_PAY)


def _payment_stage(text: str, hit: Hit) -> Stage:
    alert_only = is_payment_alert_only(text)
    strong = has_strong_pay_cue(text)
    if hit.rule_id == "transfer":
        if alert_only or not (is_transfer_request(text) or strong):
            return "verify"
        return "payment"
    if hit.rule_id == "ctx_payment_request":
        if alert_only:
            return "verify"
        escrow = bool(ESCROW_LIKE.search(text))
        if escrow and not strong and not _PAY_WORD.search(text) and not has_amount_krw(text):
            return "verify"
        if not (is_transfer_request(text) or strong or BILLING_WORD.search(text)):
            return "verify"
        return "payment"
    if ESCROW_LIKE.search(text) and _INSTALL_CUE.search(text):
        if _installs_before_pay(text) or not strong:
            return "install"
    return hit.stage


def normalize_hit_stage(content: str, hit: Hit) -> Stage:
    """Re-derive a hit's stage from the text it was found in.

    Declared stages are optimistic: a payment word inside a card-approval
    notice is not a payment request, and a delivery-tracking link is not a
    credential lure.
    """

    text = content or ""
    rule_id = hit.rule_id
    if rule_id == "link":
        return _link_stage(text, hit)
    if rule_id in _VERIFY_ALWAYS:
        return "verify"
    if rule_id in _PII_IDS:
        return "info" if _intranet_safe(text, needs_url=False) else "verify"
    if rule_id in _INFO_ALWAYS:
        return "info"
    if rule_id in _INSTALL_ALWAYS:
        return "install"
    if rule_id in _PAYMENT_ALWAYS:
        return "payment"
    if rule_id == "ctx_pay_with_link":
        if is_payment_alert_only(text):
            return "verify"
        if BILLING_WORD.search(text) or has_strong_pay_cue(text):
            return "payment"
        return "verify"
    if rule_id.startswith("url_"):
        return "install" if rule_id == "url_download_ext" else "verify"
    if hit.stage == "payment":
        return _payment_stage(text, hit)
    return hit.stage


def normalize_hits(content: str, hits: Iterable[Hit]) -> list[Hit]:
    out: list[Hit] = []
    for hit in hits:
        stage = normalize_hit_stage(content, hit)
        out.append(hit if stage == hit.stage else hit.model_copy(update={"stage": stage}))
    return out


def classify_block_stage(hits: Sequence[Hit]) -> tuple[Stage, list[str]]:
    """Return the highest stage among ``hits`` and the two heaviest labels at it."""

    stage: Stage = "info"
    for hit in hits:
        stage = max_stage(stage, hit.stage)
    at_stage = sorted((hit for hit in hits if hit.stage == stage), key=lambda hit: -hit.weight)
    triggers = list(dict.fromkeys(hit.label for hit in at_stage))[:2]
    return stage, triggers


def build_stage_timeline(
    summaries: Sequence[MessageSummary],
    *,
    limit: int = MAX_TIMELINE_EVENTS,
) -> list[StageEvent]:
    """First block, then one event per upward stage transition."""

    events: list[StageEvent] = []
    current: Stage | None = None
    for summary in summaries:
        if current is not None and STAGE_RANK[summary.stage] <= STAGE_RANK[current]:
            continue
        events.append(
            StageEvent(
                block_index=summary.index,
                stage=summary.stage,
                score=summary.score,
                triggers=list(summary.stage_triggers),
                preview=summary.preview,
            )
        )
        current = summary.stage
    return events[:limit]


__all__ = [
    "MAX_TIMELINE_EVENTS",
    "build_stage_timeline",
    "classify_block_stage",
    "normalize_hit_stage",
    "normalize_hits",
]
