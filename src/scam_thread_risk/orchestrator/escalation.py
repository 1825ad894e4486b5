"""Recipient-side escalation gate: incident floors and intent boosts for the UI score."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import re

from scam_thread_risk.domain.thread.models import MessageBlock, Speaker
from scam_thread_risk.domain.thread.segment import block_role, parse_header_and_content

_I = re.IGNORECASE

_WILL = re.compile(r"(할게|할게요|할께|할께요|하겠|하겠습니다|하겠어요|하려|할\s*거|할거|할\s*겁|할겁|해\s*둘게|해둘게)", _I)
_WILL_GO = re.compile(
    r"(갈게|갈게요|갈께|갈께요|가겠|가겠습니다|가겠어요|가\s*볼게|가볼게|가\s*볼게요|가볼게요|가\s*보겠|가보겠|갈\s*거|갈거|갈\s*겁|갈겁)",
    _I,
)
_PLACE = re.compile(r"(은행|atm|현금\s*인출기|편의점|매장|지점|지사|센터|창구|카운터|현장|대리점)", _I)
_GIFT_PIN = re.compile(r"(상품권|기프트\s*카드|기프티콘|쿠폰|핀\s*번호|pin\s*code|pincode)", _I)
_HANDED_OVER = re.compile(r"(보냈|전달|말했|알려|줬|보내드렸|전송했)", _I)
_DID_PAY = re.compile(r"(송금했|이체했|입금했|결제했|지불했|충전했)", _I)
_DID_INSTALL = re.compile(
    r"(설치했|다운받|다운로드했|깔았|원격(으로)?\s*해줬|팀뷰어|teamviewer|anydesk|애니데스크|퀵서포트|quicksupport)", _I
)
_OTP_TOKEN = re.compile(r"(인증번호|otp|오티피|보안\s*코드|확인\s*코드|ars)", _I)
_OTP_SHARED = re.compile(r"(보냈|전달|말했|알려|불러|읽어|입력했)", _I)
_RESIST = re.compile(r"(안\s*할게|거절|차단했|신고했|무시했|끊었|삭제했|거래\s*중단|취소했)", _I)
_PAY_VERB = re.compile(r"(송금|이체|입금|결제|지불|충전)", _I)
_MONEY = re.compile(r"(돈|원|계좌|입금|송금|이체|결제|지불|충전|카드|상품권|기프트|기프티콘|쿠폰|핀\s*번호|pin)", _I)
_SEND_INTENT = re.compile(
    r"(보내겠|보낼|보내겠습니다|보낼게|보낼게요|보내\s*드릴|보내줄|전달(하겠|할)|전달하겠습니다|전송(하겠|할)|전송하겠습니다)", _I
)
_INSTALL_TOKEN = re.compile(
    r"(설치|다운\s*받|다운받|다운로드|깔|원격|팀뷰어|teamviewer|anydesk|애니데스크|퀵서포트|quicksupport)", _I
)
_INSTALL_INTENT = re.compile(
    r"(받을게|받을게요|깔게|깔게요|설치할게|설치할게요|다운받을게|다운받을게요|다운로드할게|다운로드할게요|해볼게|해볼게요|해보겠|해보겠습니다)",
    _I,
)
_INSTALL_OBJECT = (
    re.compile(r"(설치|다운\s*받|다운받|다운로드|깔)", _I),
    re.compile(r"(원격(으로)?\s*(해|해드|해줄)|연결(할|해줄)|접속(할|해볼))", _I),
    re.compile(r"(팀뷰어|teamviewer|anydesk|애니데스크|퀵서포트|quicksupport)", _I),
)
_OTP_INTENT = re.compile(
    r"(보낼게|보내겠|보내겠습니다|전달(할게|하겠)|말해(줄게|드릴게)|알려(줄게|드릴게)|불러(줄게|드릴게)|읽어(줄게|드릴게)|입력(할게|하겠))",
    _I,
)
_VISIT_VERB = re.compile(r"(방문|이동)", _I)
_ASK = re.compile(r"(맞나|사기|스캠|피싱|도와(줘|주세요)|확인(해줘|해주세요)|이거\s*뭐야|진짜야)", _I)
_ALREADY = re.compile(r"(눌렀|열었|접속했|들어갔|연결했|입력했|보냈)", _I)

TAG_DONE_PAY = "r:done:pay"
TAG_DONE_INSTALL = "r:done:install"
TAG_DONE_OTP = "r:done:otp"
TAG_RESIST = "r:resist"
TAG_WILL_PAY = "r:will:pay"
TAG_WILL_INSTALL = "r:will:install"
TAG_WILL_OTP = "r:will:otp"
TAG_WILL_VISIT = "r:will:visit"
TAG_ASK = "r:ask"
TAG_ALREADY = "r:already"


@dataclass(frozen=True)
class EscalationPolicy:
    floor_pay: float = 80.0
    floor_install: float = 70.0
    floor_otp: float = 65.0
    boost_pay: float = 16.0
    boost_install: float = 12.0
    boost_otp: float = 10.0
    boost_visit: float = 8.0
    boost_ask: float = 1.0

    def floor_for(self, tag: str) -> float:
        return {
            TAG_DONE_PAY: self.floor_pay,
            TAG_DONE_INSTALL: self.floor_install,
            TAG_DONE_OTP: self.floor_otp,
        }.get(tag, 0.0)

    def boost_for(self, tag: str) -> float:
        return {
            TAG_WILL_PAY: self.boost_pay,
            TAG_WILL_INSTALL: self.boost_install,
            TAG_WILL_OTP: self.boost_otp,
            TAG_WILL_VISIT: self.boost_visit,
            TAG_ASK: self.boost_ask,
        }.get(tag, 0.0)


@dataclass(frozen=True)
class RecipientGate:
    tag: str = ""
    incident_floor: float = 0.0

    @property
    def shows_intervention(self) -> bool:
        return bool(self.tag) and self.tag != TAG_ALREADY


def _contents(blocks: Sequence[MessageBlock]) -> list[tuple[Speaker, str]]:
    out: list[tuple[Speaker, str]] = []
    for block in blocks:
        parsed = parse_header_and_content(block.text)
        content = (parsed.content or "").strip()
        if content:
            out.append((block_role(block, parsed), content))
    return out


def recipient_text(blocks: Sequence[MessageBlock]) -> str:
    """Join the bodies of every recipient block into one line."""

    bodies = [" ".join(content.split("\n")) for role, content in _contents(blocks) if role == "RECIPIENT"]
    return " ".join(bodies).strip()


def sender_only_text(blocks: Sequence[MessageBlock]) -> str:
    """Bodies of sender blocks when any exist, else of every block that is not a recipient block."""

    contents = _contents(blocks)
    if any(role == "SENDER" for role, _ in contents):
        return "\n".join(content for role, content in contents if role == "SENDER")
    return "\n".join(content for role, content in contents if role != "RECIPIENT")


def _any(patterns: Sequence[re.Pattern[str]], text: str) -> bool:
    return any(pattern.search(text) for pattern in patterns)


def classify_recipient_text(text: str, *, payment_context: bool = False) -> str:
    """Return the escalation tag for recipient text, or an empty string.

    ``payment_context`` marks a thread whose sender side already asks for money,
    so a bare "보낼게요" reads as intent to pay.
    """

    r = (text or "").strip()
    if not r:
        return ""

    did_pay = bool(_DID_PAY.search(r)) or bool(_GIFT_PIN.search(r) and _HANDED_OVER.search(r))
    if did_pay:
        return TAG_DONE_PAY
    if _DID_INSTALL.search(r):
        return TAG_DONE_INSTALL
    if _OTP_TOKEN.search(r) and _OTP_SHARED.search(r):
        return TAG_DONE_OTP

    if _RESIST.search(r):
        return TAG_RESIST

    will = bool(_WILL.search(r))
    send_intent = bool(_SEND_INTENT.search(r))
    if (_PAY_VERB.search(r) and will) or (send_intent and (payment_context or _MONEY.search(r) or _GIFT_PIN.search(r))):
        return TAG_WILL_PAY
    if _INSTALL_TOKEN.search(r) and (will or _INSTALL_INTENT.search(r)) and _any(_INSTALL_OBJECT, r):
        return TAG_WILL_INSTALL
    if _OTP_TOKEN.search(r) and _OTP_INTENT.search(r):
        return TAG_WILL_OTP
    if _PLACE.search(r) and (_WILL_GO.search(r) or (will and _VISIT_VERB.search(r))):
        return TAG_WILL_VISIT

    if _ASK.search(r):
        return TAG_ASK
    if _ALREADY.search(r):
        return TAG_ALREADY
    return ""


def evaluate_recipient_gate(
    blocks: Sequence[MessageBlock],
    policy: EscalationPolicy | None = None,
    *,
    payment_context: bool = False,
) -> RecipientGate:
    """Completed actions set a floor; resistance, intent and questions only tag."""

    rules = policy or EscalationPolicy()
    tag = classify_recipient_text(recipient_text(blocks), payment_context=payment_context)
    return RecipientGate(tag=tag, incident_floor=rules.floor_for(tag))


__all__ = [
    "EscalationPolicy",
    "RecipientGate",
    "TAG_ALREADY",
    "TAG_ASK",
    "TAG_DONE_INSTALL",
    "TAG_DONE_OTP",
    "TAG_DONE_PAY",
    "TAG_RESIST",
    "TAG_WILL_INSTALL",
    "TAG_WILL_OTP",
    "TAG_WILL_PAY",
    "TAG_WILL_VISIT",
    "classify_recipient_text",
    "evaluate_recipient_gate",
    "recipient_text",
    "sender_only_text",
]
