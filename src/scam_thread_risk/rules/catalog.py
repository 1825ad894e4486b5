"""Static, versioned rule catalogue (id -> patterns -> weight key -> stage)."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import re

from scam_thread_risk.domain.evidence import Stage

CATALOG_VERSION = "2026.02"

_I = re.IGNORECASE
_IA = re.IGNORECASE | re.ASCII


@dataclass(frozen=True)
class Rule:
    id: str
    label: str
    stage: Stage
    weight_key: str
    patterns: tuple[re.Pattern[str], ...]

    def weight(self, weights: Mapping[str, float]) -> float:
        return float(weights.get(self.weight_key, 0.0))


def _rule(rule_id: str, label: str, stage: Stage, weight_key: str, *patterns: str, flags: int = _I) -> Rule:
    return Rule(
        id=rule_id,
        label=label,
        stage=stage,
        weight_key=weight_key,
        patterns=tuple(re.compile(item, flags) for item in patterns),
    )


PATTERN_RULES: tuple[Rule, ...] = (
    _rule(
        "link",
        "URL 포함",
        "verify",
        "link",
        r"https?://(?!drive\.google\.com\b)(?!docs\.google\.com\b)(?!github\.com\b)(?![^/\s)]*intranet\b)[^\s)]+",
        flags=_IA,
    ),
    _rule("shortener", "단축 URL", "verify", "shortener", r"(bit\.ly|t\.co|tinyurl|me2\.do|han\.gl)"),
    _rule(
        "apk",
        "APK/설치파일 유도",
        "install",
        "installRemote",
        r"(\.apk\b|\bapk\b|프로파일\s*설치|뷰어\s*설치|다운로드|다운\s*받)",
        flags=_IA,
    ),
    _rule(
        "ctx_pay_with_link",
        "결제/승인/알림 + 확인 링크(검증 단계)",
        "verify",
        "threat",
        r"(결제|이체|송금|승인|카드).{0,24}(알림|설정|확인|차단|해제|보안|보호).{0,40}https?://",
        r"(알림\s*설정|설정\s*확인|확인\s*링크|차단\s*처리).{0,40}https?://",
    ),
    _rule(
        "ctx_transfer_phrase",
        "금액/송금/입금 직접 요구(보내줘/부쳐줘/충전)",
        "payment",
        "money",
        r"(\d[\d,]{1,}\s*(만\s*)?원).{0,20}(보내|보내줘|부쳐|부쳐줘|송금|이체|입금|납부)",
        r"(보내|부쳐|송금|이체|입금|납부).{0,20}(\d[\d,]{1,}\s*(만\s*)?원)",
        r"(입금|충전).{0,20}(만\s*하면|하면\s*시작|후\s*시작|하면\s*됩니다|하면\s*돼)",
    ),
)

KEYWORD_RULES: tuple[Rule, ...] = (
    _rule(
        "otp",
        "인증번호/OTP 요구",
        "verify",
        "otp",
        r"(인증\s*번호|otp|오티피|보안\s*코드|확인\s*코드|승인\s*번호|2\s*단계\s*인증|6\s*자리)",
    ),
    _rule(
        "personalinfo",
        "개인정보/금융정보 요구",
        "verify",
        "personalInfo",
        r"(주민\s*등록\s*번호|주민\s*번호|계좌\s*번호|카드\s*번호|비밀\s*번호|신분증|여권\s*사본|공인\s*인증서)",
    ),
    _rule("transfer", "송금/이체 유도", "payment", "money", r"(송금|이체|입금|계좌로\s*보내)"),
    _rule(
        "safe_account",
        "안전계좌/보호계좌 이체 유도",
        "payment",
        "safeAccount",
        r"(안전\s*계좌|보호\s*계좌|안내\s*계좌|지정\s*계좌|국가\s*안전\s*계좌)",
    ),
    _rule(
        "go_bank_atm",
        "은행/ATM 방문 유도",
        "payment",
        "money",
        r"(atm|현금\s*인출기|은행\s*(?:창구|지점)|인출\s*해)",
    ),
    _rule(
        "giftcard",
        "상품권/기프트카드 구매 요구",
        "payment",
        "money",
        r"(문화\s*상품권|상품권|기프트\s*카드|gift\s*card|구글\s*기프트|핀\s*번호)",
    ),
    _rule(
        "remote",
        "원격제어 앱 유도",
        "install",
        "installRemote",
        r"(팀뷰어|teamviewer|anydesk|애니데스크|퀵서포트|quicksupport|원격\s*(?:지원|제어|접속))",
    ),
    _rule(
        "install_app",
        "앱 설치 유도",
        "install",
        "installRemote",
        r"((?:앱|어플|프로그램)\s*(?:을|를)?\s*(?:설치|다운로드|깔아))",
    ),
    _rule(
        "urgent",
        "긴급/시간 압박",
        "info",
        "urgency",
        r"(긴급|지금\s*(?:바로|즉시)|즉시|오늘\s*(?:안에|중)|기한\s*내|서둘러)",
    ),
    _rule(
        "authority",
        "기관 사칭",
        "info",
        "authority",
        r"(검찰|수사관|경찰|금감원|금융\s*감독원|금융\s*위원회|국세청|법원)",
    ),
    _rule(
        "threat",
        "위협/불이익 압박",
        "info",
        "threat",
        r"(압류|체포|구속|영장|고소|처벌|지급\s*정지|계좌\s*동결|법적\s*조치|불이익)",
    ),
    _rule(
        "invest_lure",
        "투자/리딩방 미끼",
        "info",
        "investLure",
        r"(리딩방|고수익\s*보장|원금\s*보장|수익\s*보장|코인\s*투자|주식\s*리딩)",
    ),
    _rule(
        "job_lure",
        "구인/알바 미끼",
        "verify",
        "jobLure",
        r"(고액\s*알바|고수익\s*알바|재택\s*알바|단기\s*알바|당일\s*지급|채용\s*확정)",
    ),
    _rule(
        "visit_place",
        "장소 방문 유도",
        "verify",
        "visitPlace",
        r"(직접\s*방문|방문해\s*주세요|(?:으로|로)\s*오세요|출석\s*하|출두\s*하)",
    ),
    _rule(
        "txn_alert",
        "결제/거래 알림",
        "info",
        "txnAlert",
        r"(결제\s*(?:알림|완료|승인)|승인\s*(?:알림|완료)|해외\s*결제|이상\s*거래|출금\s*(?:알림|완료))",
    ),
)

RULES: tuple[Rule, ...] = PATTERN_RULES + KEYWORD_RULES

__all__ = ["CATALOG_VERSION", "KEYWORD_RULES", "PATTERN_RULES", "RULES", "Rule"]
