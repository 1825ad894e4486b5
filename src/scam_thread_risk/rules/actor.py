"""Actor hints: does a message read as a demand, as compliance, or neither."""

from __future__ import annotations

import re

from scam_thread_risk.domain.evidence import ActorHint

_OTP_NOUN = r"(인증번호|otp|오티피|승인\s*번호|승인번호|보안\s*코드|보안코드|확인\s*코드|확인코드|ars|2\s*단계\s*인증|6\s*자리|6자리)"
_RELAY = r"(보내|알려|전달|말해|읽어|불러|캡처|말씀)"

_OTP_RELAY_DEMAND = (
    re.compile(_OTP_NOUN + r".*" + _RELAY, re.DOTALL),
    re.compile(_RELAY + r".*" + _OTP_NOUN, re.DOTALL),
)

DEMAND_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"입금해|송금해|이체해|결제해|납부해|지불해|충전해"),
    re.compile(r"설치해|다운받아|다운로드해|원격|팀뷰어|anydesk|quicksupport"),
    re.compile(r"(링크|url).*(클릭|눌러)|클릭.*(해|하세요)", re.DOTALL),
    re.compile(r"지금\s*(바로|즉시)|긴급|오늘\s*안에|기한\s*내"),
)

COMPLY_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\s*(네|예)(?![가-힣0-9a-z])"),
    re.compile(r"알겠|알겠습니다|확인했|확인했습니다|확인했어요"),
    re.compile(r"보냈|전송했|전송했습니다|보냈어요"),
    re.compile(r"입금했|송금했|이체했|결제했|납부했|충전했"),
    re.compile(r"설치했|다운받았|다운로드했|클릭했|눌렀"),
    re.compile(r"(인증번호|otp|오티피|승인\s*번호|보안\s*코드|비밀번호|계좌번호|카드번호|주민번호)"),
)

_SHORT_YES = re.compile(r"^\s*(네|예|알겠|알겠습니다)(?![가-힣0-9a-z])")
_SHORT_YES_MAX = 32


def _lowered(content: str) -> str:
    return (content or "").strip().lower()


def has_otp_relay_order(content: str) -> bool:
    text = _lowered(content)
    return any(pattern.search(text) for pattern in _OTP_RELAY_DEMAND)


def demand_count(content: str) -> int:
    text = _lowered(content)
    return sum(1 for pattern in DEMAND_PATTERNS if pattern.search(text))


def comply_count(content: str) -> int:
    text = _lowered(content)
    return sum(1 for pattern in COMPLY_PATTERNS if pattern.search(text))


def is_demand_text(content: str) -> bool:
    """Demand cues alone, ignoring any compliance wording in the same message."""

    return has_otp_relay_order(content) or demand_count(content) >= 2


def classify_actor_hint(content: str) -> ActorHint:
    text = _lowered(content)
    if not text:
        return "neutral"
    if has_otp_relay_order(text):
        return "demand"
    demands = demand_count(text)
    complies = comply_count(text)
    if complies >= 1 and len(text) <= _SHORT_YES_MAX and _SHORT_YES.search(text):
        return "comply"
    if demands >= 2 and demands > complies:
        return "demand"
    if complies >= 2 and complies >= demands:
        return "comply"
    return "neutral"


__all__ = [
    "COMPLY_PATTERNS",
    "DEMAND_PATTERNS",
    "classify_actor_hint",
    "comply_count",
    "demand_count",
    "has_otp_relay_order",
    "is_demand_text",
]
