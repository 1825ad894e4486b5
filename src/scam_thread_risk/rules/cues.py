"""Shared text cues used by context rules, stage normalization and windowing."""

from __future__ import annotations

import re

_I = re.IGNORECASE

OTP_CUE = re.compile(
    r"(인증번호|otp|오티피|승인\s*번호|승인번호|보안\s*코드|보안코드|확인\s*코드|확인코드|ars|2\s*단계\s*인증|6\s*자리|6자리)",
    _I,
)
OTP_CUE_WIDE = re.compile(
    r"(인증번호|otp|오티피|승인\s*번호|승인번호|보안\s*코드|보안코드|확인\s*코드|확인코드|ars|2\s*단계\s*인증|2fa|6\s*자리|6자리)",
    _I,
)
RELAY_VERB = re.compile(r"(보내|알려|전달|말해|읽어|불러|캡처|말씀)")
CODE_NOUN = re.compile(r"(번호|코드|인증|6\s*자리|6자리)")

_AMOUNT_KRW = re.compile(r"(\d{1,3}(?:,\d{3})+|\d+)\s*(원|만원)")

_PAY_DIRECTIVE = re.compile(
    r"(해\s*주|해줘|해\s*주세요|해주시|부탁|요청|바라|진행|처리\s*해|입금\s*하|송금\s*하|이체\s*하|결제\s*하|납부\s*하|지불\s*하|충전\s*하|보내\s*(줘|주|주세요|바랍니다|바라|주시))",
    _I,
)
_PAY_WORD = re.compile(r"(입금|송금|이체|결제|납부|지불|충전)")
_ALERT_WORD = re.compile(
    r"(알림|안내|내역|확인|승인|거절|취소|환불|시도|차단|보류|접수|완료|처리\s*결과|거래|가맹점|잔액|문자|sms|정기\s*결제|자동\s*이체|자동이체|자동\s*납부|자동납부|해외\s*결제|이상\s*거래|부정\s*사용|승인\s*대기|대기\s*중|대기중)",
    _I,
)

_STRONG_PAY = re.compile(
    r"(납부|지불|결제\s*진행|결제\s*해\s*주|결제\s*해주|결제\s*해주세요|납부\s*하세요|송금\s*하세요|이체\s*하세요|입금\s*하세요|충전\s*하세요|수수료\s*입금|선납|보증보험료|보험료)",
    _I,
)
_ARREARS = re.compile(r"(미납|체납|과태료|벌금|고지|가산금|압류|추심|연체)")
BILLING_WORD = re.compile(r"(납부|미납|체납|과태료|벌금|고지|압류|선납|보험료)")

_TRANSFER_REQUEST = (
    re.compile(
        r"(보내\s*줘|보내줘|부쳐\s*줘|부쳐줘|입금\s*해|입금해|송금\s*해|송금해|이체\s*해|이체해|납부\s*해|납부해|지불\s*해|지불해|충전\s*해|충전해)"
    ),
    re.compile(
        r"(보내|부쳐|송금|이체|입금|납부|지불|충전).{0,14}(해\s*줘|해줘|해\s*주|해주|해주세요|부탁|요청|진행|하셔야|바랍니다|주시)"
    ),
    re.compile(r"(링크|페이지).{0,14}(에서|로).{0,12}(납부|결제|지불|송금|이체|입금)"),
    re.compile(r"(납부|결제|지불|송금|이체|입금).{0,12}(하세요|바랍니다|필요|진행)"),
)

_INSTALL_DEMAND_VERB = re.compile(r"(설치|다운로드|받아|깔아|실행|연결|접속|등록|인증)")
_INSTALL_DEMAND_NOUN = re.compile(
    r"(앱|어플|프로그램|원격|팀뷰어|teamviewer|anydesk|애니데스크|퀵서포트|quicksupport|뷰어|viewer|플러그인|plugin|apk|exe|msi|dmg|pkg)",
    _I,
)
_SAFE_ACCOUNT_NOUN = re.compile(r"(안내\s*계좌|보호\s*계좌|안전\s*계좌|지정\s*계좌)")
_SAFE_ACCOUNT_VERB = re.compile(r"(이체|송금|입금|옮기|이전)")
_PAY_DEMAND_DIRECT = _TRANSFER_REQUEST[0]
_PAY_DEMAND_NOUN = re.compile(r"(납부|송금|이체|입금|지불|충전|선납|보험료|수수료)")
_PAY_DEMAND_IMPERATIVE = re.compile(r"(해주세요|하세요|하셔야|부탁|요청|바랍니다|주시|진행|처리|완료|필수|반드시)")

ESCROW_LIKE = re.compile(r"(안전\s*결제|안전\s*거래|에스크로|escrow|거래)", _I)


def has_amount_krw(text: str) -> bool:
    return bool(_AMOUNT_KRW.search(text or ""))


def is_payment_alert_only(text: str) -> bool:
    """Payment words that read as a notification rather than a demand."""

    value = text or ""
    if not _PAY_WORD.search(value) or _PAY_DIRECTIVE.search(value):
        return False
    return bool(_ALERT_WORD.search(value))


def has_strong_pay_cue(text: str) -> bool:
    value = text or ""
    return bool(_STRONG_PAY.search(value) or _ARREARS.search(value))


def is_transfer_request(text: str) -> bool:
    value = text or ""
    return any(pattern.search(value) for pattern in _TRANSFER_REQUEST)


def has_otp_relay_demand(text: str) -> bool:
    value = text or ""
    return bool(OTP_CUE_WIDE.search(value) and RELAY_VERB.search(value))


def has_strong_action_demand(text: str) -> bool:
    """OTP relay, payment, install or safe-account demand in one message."""

    value = text or ""
    if has_otp_relay_demand(value):
        return True
    if _PAY_DEMAND_DIRECT.search(value) or has_amount_krw(value):
        return True
    if _PAY_DEMAND_NOUN.search(value) and _PAY_DEMAND_IMPERATIVE.search(value):
        return True
    if _INSTALL_DEMAND_VERB.search(value) and _INSTALL_DEMAND_NOUN.search(value):
        return True
    return bool(_SAFE_ACCOUNT_NOUN.search(value) and _SAFE_ACCOUNT_VERB.search(value))


__all__ = [
    "BILLING_WORD",
    "CODE_NOUN",
    "ESCROW_LIKE",
    "OTP_CUE",
    "OTP_CUE_WIDE",
    "RELAY_VERB",
    "has_amount_krw",
    "has_otp_relay_demand",
    "has_strong_action_demand",
    "has_strong_pay_cue",
    "is_payment_alert_only",
    "is_transfer_request",
]
