"""Context rules: fixed-weight hits from combinations of cues inside one block."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import re

from scam_thread_risk.domain.evidence import Hit, Stage
from scam_thread_risk.rules.cues import CODE_NOUN, OTP_CUE, RELAY_VERB, has_amount_krw

_I = re.IGNORECASE


def _re(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, _I)


@dataclass(frozen=True)
class BlockContext:
    content: str
    urls: tuple[str, ...]
    otp_seen: bool
    demand: bool

    def has(self, pattern: re.Pattern[str]) -> bool:
        return bool(pattern.search(self.content))


Predicate = Callable[[BlockContext], bool]


@dataclass(frozen=True)
class ContextRule:
    id: str
    label: str
    stage: Stage
    weight: float
    tag: str
    when: Predicate


_APP_INSTALL = _re(
    r"(보안\s*앱|인증\s*앱|전용\s*앱|앱|어플|프로그램|문서\s*뷰어|뷰어|viewer|플러그인|plugin).{0,22}(설치|다운로드|받아|깔아|설치해|설치\s*권고|권고\s*드립니다)"
)
_NAMED_REMOTE = _re(r"(팀뷰어|teamviewer|anydesk|애니데스크|퀵서포트|quicksupport)")
_GENERIC_REMOTE = _re(r"(원격\s*(지원|제어|접속|앱)|화면\s*공유|화면공유)")
_INSTALL_VERB = _re(r"(설치|다운로드|받아|깔아|실행|연결|접속|등록)")
_INSTALL_BUTTON = _re(r"(설치).{0,10}(버튼|button|눌러|누르|클릭)")
_OTP_PROXY = _re(r"(대신).{0,10}(입력|처리|인증)")
_OTP_PROXY_CUE = _re(r"(인증번호|otp|오티피|확인\s*코드|확인코드|보안\s*코드|보안코드|6\s*자리|6자리|ars|2\s*단계\s*인증)")
_PII_NOUN = _re(
    r"(이름|성함|연락처|전화번호|휴대폰|생년월일|주민등록번호|주민번호|주소|우편번호|계좌번호|카드번호|비밀번호|패스워드|암호|신분증|여권)"
)
_PII_VERB = _re(r"(알려|말해|남겨|적어|입력|작성|보내|제출|올려|전송|사진|캡처)")
_FINANCE = _re(r"(카드|카드사|은행|금융|보안센터|차단센터|분실|해제|승인|결제|해외\s*결제|자동이체|계좌|로그인)")
_LINK_TO_PAY = (
    _re(r"(링크|페이지|사이트).{0,18}(에서|로).{0,12}(납부|결제|지불|송금|이체|입금)"),
    _re(r"(납부|결제|지불|송금|이체|입금).{0,18}(링크|페이지|사이트)"),
)
_DIRECTIVE = _re(r"(해\s*줘|해줘|해\s*주|해주|해주세요|하세요|하셔야|진행|처리|완료|부탁|요청|바랍니다)")
_STRONG_TRANSFER_WORD = _re(r"(입금|송금|이체|납부|지불|충전|선납|보험료)")
_SAFE_ACCOUNT_PHRASES = (
    _re(r"(안내\s*계좌|보호\s*계좌|안전\s*계좌|지정\s*계좌).{0,24}(이체|송금|입금|옮기|이전)"),
    _re(r"(피해자\s*로\s*분류|자산\s*분리|자산\s*이동|보호\s*조치).{0,24}(계좌|이체|송금|입금|옮기|이전)"),
    _re(r"(자금세탁|범죄자금|수사\s*협조|검찰|경찰|보호센터|수사관|수사팀).{0,40}(계좌|이체|송금|입금|옮기|이전|보호)"),
)
_PAYMENT_VERB = (
    _re(
        r"(보내\s*줘|보내줘|부쳐\s*줘|부쳐줘|입금\s*해|입금해|송금\s*해|송금해|이체\s*해|이체해|납부\s*해|납부해|지불\s*해|지불해|충전\s*해|충전해)"
    ),
    _re(r"(입금|송금|이체|납부|지불|충전|선납|보험료).{0,14}(해\s*줘|해줘|해\s*주|해주|해주세요|부탁|요청|하셔야|바랍니다|주시)"),
    _re(r"(납부|지불|결제).{0,14}(하세요|바랍니다|필요|진행|처리|해주세요)"),
    _re(r"(링크|페이지).{0,14}(에서|로).{0,12}(납부|결제|지불)"),
)
_FAMILY = _re(r"(엄마|아빠|어머니|아버지|누나|언니|형|오빠|딸|아들|친구|지인)")
_DEVICE_EXCUSE = (
    _re(r"(폰|휴대폰|핸드폰|전화).*(고장|분실|바꿨|바꿔|새\s*번호|이\s*번호|번호야)"),
    _re(r"(번호야|새\s*번호|이\s*번호로)"),
)
_MONEY_ASK_VERB = _re(r"(보내\s*줘|보내줘|이체|송금|입금)")
_JOB_HOOK = _re(
    r"(고액\s*알바|알바|재택|해외|현지|동남아|출국|파견|해외\s*근무|해외\s*업무|해외\s*단기|단기\s*고수익|고수익\s*업무|프로젝트\s*인력|인력\s*모집|채용|숙식\s*제공|항공권\s*지원)"
)
_JOB_HOOK_WIDE = _re(
    r"(고수익|고액\s*알바|단기\s*알바|단기\s*고수익|당일\s*지급|당일지급|재택\s*알바|초보\s*가능|간단한\s*업무|리뷰\s*알바|댓글\s*알바)"
)
_CONTACT_CHANNEL = _re(
    r"(오픈\s*채팅|오픈채팅|open\s*chat|openchat|텔레그램|telegram|카카오\s*오픈|오픈\s*카톡|라인|line|디스코드|discord|dm|쪽지|1:1|개인\s*톡)"
)
_CONTACT_MOVE = _re(r"(이동|입장|초대|링크|추가|문의|연락|대화|채팅|안내)")
_VISIT_PLACE = _re(
    r"(방문|내방|출석|출두|집결|모여|오세요|오셔|오시면|오라|와라|와\s*주세요|이동해\s*주세요|지금\s*이동|현장|교육장|면접장|사무실|지점|센터|공항|터미널|역\s*\d*\s*번?\s*출구|출구|주소|오시는\s*길|지도|로비|주차장|층|호)"
)
_VISIT_VERB = _re(r"(오|오셔|오시면|방문|출석|출두|집결|이동|모여)")
_PERSONAL_ASK_STRONG = _re(r"(여권|신분증|주민등록증|주민번호|계좌|계좌번호|연락처|전화번호).{0,22}(사진|등록|보내|제출|올려|필요|요청)")
_PERSONAL_MENTION = _re(r"(여권|신분증|주민등록증|주민번호|계좌|계좌번호|연락처|전화번호)")
_PERSONAL_ASK_VERB = _re(r"(필요|요청|등록|제출|선\s*등록|먼저\s*보내)")
_FEE_NOUN = _re(r"(보증금|예치금|가입비|등록비|교육비|수수료|선입금|입회비|예약금|계약금|보안\s*예치)")
_FEE_VERB = _re(r"(송금|이체|입금|결제|납부|먼저|필요|부탁|내)")
_TRANSFER_DEMAND = (
    _re(r"(이체|송금|입금|결제|납부).{0,20}(해\s*주세요|해주세요|바랍니다|하라|해라|하시|지금|바로)"),
    _re(r"(해\s*주세요|해주세요|바랍니다|하라|해라|지금|바로).{0,20}(이체|송금|입금|결제|납부)"),
)
_CASH_NOUN = _re(r"(현금\s*봉투|현금\s*수거|현금\s*전달|퀵|퀵서비스|대면\s*전달|직접\s*전달|수거|회수)")
_CASH_VERB = _re(r"(전달|수거|회수|가져오|가져와|보내|받)")
_GIFTCARD_NOUN = _re(
    r"(상품권|문화\s*상품권|문상|해피머니|해피\s*머니|구글\s*기프트|google\s*gift|기프트\s*카드|gift\s*card|틴\s*캐시|tincash|핀\s*번호|pin\s*(번호|code)|바코드)"
)
_GIFTCARD_VERB = _re(r"(보내|전달|구매|충전|등록|입력|코드|핀|pin|번호)")
_CRYPTO_NOUN = _re(
    r"(가상\s*자산|가상자산|암호\s*화폐|암호화폐|crypto|코인|지갑|wallet|지갑\s*주소|주소|usdt|btc|eth|trc20|erc20|바이낸스|binance|업비트|upbit|빗썸|bithumb)"
)
_CRYPTO_VERB = _re(r"(송금|전송|보내|입금|충전|이체|전달)")
_ACCOUNT_RENTAL = _re(r"(대포\s*통장|자금\s*세탁|범죄\s*자금|수령\s*대행|수령대행)")
_ACCOUNT_LEND = _re(r"(통장|계좌).{0,18}(대여|임대|빌려|양도|사용)")
_ACCOUNT_LEND_LURE = _re(r"(수수료|알바|대행|모집|구인)")
_QR_NOUN = _re(
    r"(qr\s*코드|qr코드|큐알\s*코드|큐알코드|간편\s*결제|간편결제|페이|토스|카카오\s*페이|kakao\s*pay|네이버\s*페이|naver\s*pay)"
)
_QR_VERB = _re(r"(찍|스캔|scan|결제|송금|이체|입금|진행|처리)")
_REFUND_NOUN = _re(r"(환불|환급|취소|해지|구독|정기\s*결제|정기결제|자동\s*결제|자동결제|결제\s*취소)")
_REFUND_VERB = _re(r"(상담|고객센터|문의|링크|url|주소|접속|클릭|안내)")
_LOAN_NOUN = _re(r"(대출|대환|저금리|한도|승인|연체|상환)")
_LOAN_VERB = _re(r"(가능|진행|신청|조회|상담|조건|수수료|보증금|선입금|예치금)")
_INVEST_HOOK = _re(r"(투자|리딩방|수익|자동\s*투자|코인|주식|단타|vip|체험|정보방|오픈채팅)")
_BENEFIT = _re(r"(지원금|환급|보조금|대상자|대상\s*조회|조회|신청|지급|정부\s*지원|복지)")
_BENEFIT_ACTION = _re(r"(링크|url|주소|신청|조회|확인|접속|클릭|눌러|입력|등록)")
_PROFILE_NOUN = _re(r"(카톡|카카오톡|프로필|사진|영상|문서)")
_LINK_WORD = _re(r"(링크|url|주소)")
_OPEN_VERB = _re(r"(확인|클릭|접속|눌러|열어|들어가)")
_BIZ_DOC = _re(r"(거래처|세금계산서|계산서|견적서|발주서|계약서|회계|정산|invoice|tax\s*invoice|bill|청구서)")
_VIEWER = _re(r"(뷰어|viewer|문서\s*뷰어|플러그인|plugin)")
_VIEWER_INSTALL = _re(r"(설치|다운로드|받아|깔아)")


def has_otp_cue(ctx: BlockContext) -> bool:
    return ctx.has(OTP_CUE)


def otp_relay(ctx: BlockContext) -> bool:
    return (ctx.otp_seen or has_otp_cue(ctx)) and ctx.has(RELAY_VERB) and ctx.has(CODE_NOUN)


def install_mention(ctx: BlockContext) -> bool:
    return (
        ctx.has(_APP_INSTALL)
        or ctx.has(_NAMED_REMOTE)
        or (ctx.has(_GENERIC_REMOTE) and ctx.has(_INSTALL_VERB))
        or ctx.has(_INSTALL_BUTTON)
    )


def _strong_transfer(ctx: BlockContext) -> bool:
    return ctx.has(_STRONG_TRANSFER_WORD) or has_amount_krw(ctx.content)


def pay_with_link(ctx: BlockContext) -> bool:
    if not ctx.urls or not any(ctx.has(item) for item in _LINK_TO_PAY):
        return False
    return ctx.has(_DIRECTIVE) or _strong_transfer(ctx)


def safe_account_phrase(ctx: BlockContext) -> bool:
    return any(ctx.has(item) for item in _SAFE_ACCOUNT_PHRASES)


def payment_verb(ctx: BlockContext) -> bool:
    return any(ctx.has(item) for item in _PAYMENT_VERB)


def family_scam(ctx: BlockContext) -> bool:
    money_ask = ctx.has(_MONEY_ASK_VERB) and has_amount_krw(ctx.content)
    return ctx.has(_FAMILY) and any(ctx.has(item) for item in _DEVICE_EXCUSE) and money_ask


def personal_ask(ctx: BlockContext) -> bool:
    return ctx.has(_PERSONAL_ASK_STRONG) or (ctx.has(_PERSONAL_MENTION) and ctx.has(_PERSONAL_ASK_VERB))


def biz_doc_link(ctx: BlockContext) -> bool:
    return bool(ctx.urls) and ctx.has(_BIZ_DOC)


def _both(first: re.Pattern[str], second: re.Pattern[str]) -> Predicate:
    return lambda ctx: ctx.has(first) and ctx.has(second)


def _any(*patterns: re.Pattern[str]) -> Predicate:
    return lambda ctx: any(ctx.has(item) for item in patterns)


CONTEXT_RULES: tuple[ContextRule, ...] = (
    ContextRule("ctx_demand", "맥락: 요구/지시 표현(발신 요구 가능)", "verify", 3, "demand", lambda ctx: ctx.demand),
    ContextRule("ctx_otp_relay", "맥락: 인증번호/코드 전달 요구", "verify", 20, "otp-relay", otp_relay),
    ContextRule("ctx_install_mention", "맥락: 앱/원격/뷰어 설치 언급", "install", 18, "install", install_mention),
    ContextRule("ctx_otp_proxy", "맥락: 인증번호를 대신 입력/처리(가로채기)", "verify", 30, "otp-proxy", _both(_OTP_PROXY, _OTP_PROXY_CUE)),
    ContextRule("pii_request", "개인정보 요청", "verify", 18, "pii-request", _both(_PII_NOUN, _PII_VERB)),
    ContextRule(
        "ctx_otp_finance",
        "맥락: 금융/카드 문맥에서 인증번호 요구",
        "verify",
        28,
        "otp+finance",
        lambda ctx: otp_relay(ctx) and ctx.has(_FINANCE),
    ),
    ContextRule("ctx_pay_with_link", "맥락: 링크에서 납부/결제 유도", "payment", 22, "pay+link", pay_with_link),
    ContextRule("ctx_transfer_phrase", "맥락: 안내계좌/보호조치/자산이전 유도", "payment", 28, "transfer-phrase", safe_account_phrase),
    ContextRule("transfer", "맥락: 안내 계좌로 이체/송금 유도", "payment", 18, "transfer", safe_account_phrase),
    ContextRule("ctx_payment_request", "맥락: 입금/송금/충전/납부 요청", "payment", 20, "pay", payment_verb),
    ContextRule("ctx_family_scam", "맥락: 가족/지인 사칭 + 새 번호/폰 고장 + 송금 요구", "payment", 30, "family+pay", family_scam),
    ContextRule("ctx_job_hook", "맥락: 고수익/단기 구인 미끼", "verify", 22, "job-hook", _any(_JOB_HOOK_WIDE)),
    ContextRule("ctx_contact_move", "맥락: 오픈채팅/텔레그램 이동 유도", "verify", 22, "contact-move", _both(_CONTACT_CHANNEL, _CONTACT_MOVE)),
    ContextRule("ctx_visit_place", "맥락: 특정 장소 방문/이동 유도", "verify", 14, "visit", _both(_VISIT_PLACE, _VISIT_VERB)),
    ContextRule("ctx_payment_request", "맥락: 보증금/수수료/선입금 요구", "payment", 28, "fee", _both(_FEE_NOUN, _FEE_VERB)),
    ContextRule("ctx_transfer_demand", "맥락: 이체/송금 지시", "payment", 26, "transfer-demand", _any(*_TRANSFER_DEMAND)),
    ContextRule("ctx_cash_pickup", "맥락: 현금 수거/퀵 전달 유도", "payment", 32, "cash-pickup", _both(_CASH_NOUN, _CASH_VERB)),
    ContextRule("ctx_giftcard", "맥락: 상품권/기프트카드/핀번호 요구", "payment", 34, "giftcard", _both(_GIFTCARD_NOUN, _GIFTCARD_VERB)),
    ContextRule("ctx_crypto_wallet", "맥락: 코인/지갑주소 송금 요구", "payment", 34, "crypto-wallet", _both(_CRYPTO_NOUN, _CRYPTO_VERB)),
    ContextRule(
        "ctx_account_rental",
        "맥락: 통장/계좌 대여·수령대행 유도",
        "payment",
        32,
        "account-rental",
        lambda ctx: ctx.has(_ACCOUNT_RENTAL) or (ctx.has(_ACCOUNT_LEND) and ctx.has(_ACCOUNT_LEND_LURE)),
    ),
    ContextRule("ctx_qr_pay", "맥락: QR/간편결제 스캔·결제 유도", "payment", 28, "qr-pay", _both(_QR_NOUN, _QR_VERB)),
    ContextRule("ctx_refund_lure", "맥락: 환불/취소/해지 미끼", "verify", 14, "refund-lure", _both(_REFUND_NOUN, _REFUND_VERB)),
    ContextRule("ctx_loan_hook", "맥락: 대출/대환/한도 미끼", "verify", 12, "loan-hook", _both(_LOAN_NOUN, _LOAN_VERB)),
    ContextRule(
        "ctx_job_scam",
        "맥락: 고액/해외 구인 + 신분/계좌 요구",
        "verify",
        30,
        "job+id",
        lambda ctx: ctx.has(_JOB_HOOK) and personal_ask(ctx),
    ),
    ContextRule(
        "ctx_investment_link",
        "맥락: 투자/리딩방 + 링크",
        "verify",
        12,
        "invest+link",
        lambda ctx: bool(ctx.urls) and ctx.has(_INVEST_HOOK),
    ),
    ContextRule(
        "ctx_benefit_link",
        "맥락: 지원/환급/대상자 조회 + 링크",
        "verify",
        18,
        "benefit+link",
        lambda ctx: bool(ctx.urls) and ctx.has(_BENEFIT),
    ),
    ContextRule(
        "ctx_benefit_link_mention",
        "맥락: 지원/환급/대상자 조회 + 링크 언급",
        "verify",
        8,
        "benefit+link-mention",
        _both(_BENEFIT, _BENEFIT_ACTION),
    ),
    ContextRule(
        "ctx_profile_link_mention",
        "맥락: 메신저/프로필 확인 + 링크 언급",
        "verify",
        10,
        "profile+link-mention",
        lambda ctx: ctx.has(_PROFILE_NOUN) and ctx.has(_LINK_WORD) and ctx.has(_OPEN_VERB),
    ),
    ContextRule("ctx_biz_doc_link", "맥락: 업무/회계 문서 + 링크", "verify", 14, "bizdoc+link", biz_doc_link),
    ContextRule(
        "ctx_biz_doc_install",
        "맥락: 업무 문서 열람을 위한 뷰어 설치 유도",
        "install",
        12,
        "bizdoc+install",
        lambda ctx: biz_doc_link(ctx) and ctx.has(_VIEWER) and ctx.has(_VIEWER_INSTALL),
    ),
)


def _sample(content: str) -> str:
    return content[:140] + "..." if len(content) > 140 else content


def context_hits(
    content: str,
    urls: list[str] | tuple[str, ...],
    *,
    demand: bool = False,
    seen_otp_cue: bool = False,
    rules: tuple[ContextRule, ...] = CONTEXT_RULES,
) -> tuple[list[Hit], bool]:
    """Evaluate context rules for one block.

    Returns the hits and the updated "OTP cue seen earlier in the thread" flag.
    """

    ctx = BlockContext(content=content or "", urls=tuple(urls), otp_seen=seen_otp_cue, demand=demand)
    sample = _sample(ctx.content)
    hits = [
        Hit(rule_id=rule.id, label=rule.label, stage=rule.stage, weight=rule.weight, matched=(rule.tag,), sample=sample)
        for rule in rules
        if rule.when(ctx)
    ]
    return hits, seen_otp_cue or has_otp_cue(ctx)


__all__ = ["BlockContext", "CONTEXT_RULES", "ContextRule", "context_hits"]
