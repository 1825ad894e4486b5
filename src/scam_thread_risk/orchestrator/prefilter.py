"""Cheap pre-screen over sender text: bounded score, action and gate decision."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
import re

from pydantic import Field

from scam_thread_risk.domain.base import ContractModel
from scam_thread_risk.domain.evidence import PrefilterAction, PrefilterResult, PrefilterSignal, PrefilterWindow
from scam_thread_risk.domain.url.extract import (
    LinkCandidate,
    ascii_host,
    edit_distance,
    extract_domain_tokens,
    extract_markdown_links,
    extract_urls_loose,
    host_matches_suffix,
    is_ip_host,
    normalize_host,
    normalize_to_url_string,
    redirect_param_chain,
    redirect_target,
    registrable_domain,
    safe_parse_url,
)
from scam_thread_risk.rules.hosts import (
    BANK_BRAND_TOKENS,
    KR_BANK_HOST_SUFFIXES,
    KR_FI_EXTRA_HOST_SUFFIXES,
    SHORTENER_HOSTS,
    has_download_ext,
)

DEFAULT_SOFT = 28
DEFAULT_AUTO = 52
DEFAULT_RECENT_BLOCKS = 16
DEFAULT_MAX_REDIRECT_HOPS = 5
GATE_THRESHOLD_MAX = 18
MAX_LINK_CANDIDATES = 12


class LinkRef(ContractModel):
    href: str
    text: str = ""


class ExplicitActions(ContractModel):
    copy_url: int = Field(default=0, ge=0)
    open_url: int = Field(default=0, ge=0)
    install_click: int = Field(default=0, ge=0)


class RedirectResolution(ContractModel):
    """Outcome of a redirect walk performed by the caller before analysis."""

    start_url: str = ""
    chain: list[str] = Field(default_factory=list)
    final_url: str = ""
    hops: int = 0
    error: str | None = None


class PrefilterContext(ContractModel):
    is_saved_contact: bool | None = None
    explicit_actions: ExplicitActions = Field(default_factory=ExplicitActions)
    link_candidates: list[LinkRef] = Field(default_factory=list)
    resolved: RedirectResolution | None = None


@dataclass(frozen=True)
class PrefilterOptions:
    recent_blocks_max: int = DEFAULT_RECENT_BLOCKS
    threshold_soft: int = DEFAULT_SOFT
    threshold_auto: int = DEFAULT_AUTO
    allow_hosts: tuple[str, ...] = ()
    bank_hosts: tuple[str, ...] = KR_BANK_HOST_SUFFIXES
    extra_fi_hosts: tuple[str, ...] = KR_FI_EXTRA_HOST_SUFFIXES
    max_redirect_hops: int = DEFAULT_MAX_REDIRECT_HOPS

    @property
    def official_suffixes(self) -> tuple[str, ...]:
        items = (normalize_host(item) for item in (*self.bank_hosts, *self.extra_fi_hosts))
        return tuple(dict.fromkeys(item for item in items if item))


_STAMP_PREFIX = (
    r"(\d{4}[-./]\d{2}[-./]\d{2}[ T]\d{2}:\d{2}(?::\d{2})?"
    r"|\d{4}[.\-/]\d{1,2}[.\-/]\d{1,2}\s+(?:오전|오후)?\s*\d{1,2}:\d{2})"
)
_MATCH_STAMP = re.compile(r"^\s*" + _STAMP_PREFIX + r"\s*", re.IGNORECASE)
_MATCH_ROLE = re.compile(r"^\s*(?:S|R)\s*:\s*", re.IGNORECASE)
_LITE_STAMP = re.compile(r"^\s*" + _STAMP_PREFIX + r"\s*", re.IGNORECASE | re.MULTILINE)
_LITE_ROLE = re.compile(r"^\s*(?:S|R)\s*:\s*", re.IGNORECASE | re.MULTILINE)


def _clean_match(value: str) -> str:
    text = (value or "").replace("\r\n", "\n").strip()
    if not text:
        return ""
    text = _MATCH_STAMP.sub("", text, count=1)
    text = _MATCH_ROLE.sub("", text, count=1)
    return text.strip()


def _points(signal_id: str, label: str, points: int, evidence: str | Iterable[str] | None = None) -> PrefilterSignal:
    if evidence is None:
        raw: list[str] = []
    elif isinstance(evidence, str):
        raw = [evidence]
    else:
        raw = [str(item) for item in evidence if item]
    matches = [item for item in (_clean_match(value) for value in raw) if item]
    return PrefilterSignal(
        id=signal_id,
        label=label,
        points=points,
        matches=matches or None,
        evidence=" | ".join(matches).strip() or None,
    )


@dataclass(frozen=True)
class TextSignal:
    id: str
    label: str
    points: int
    pattern: re.Pattern[str]


def _ts(signal_id: str, label: str, points: int, pattern: str) -> TextSignal:
    return TextSignal(signal_id, label, points, re.compile(pattern, re.DOTALL))


# Patterns run on lowercased text, so ASCII alternatives are written lowercase.
TEXT_SIGNALS: tuple[TextSignal, ...] = (
    _ts("pf_safe_account", "안전/보호계좌 키워드", 32, r"(안전\s*계좌|보호\s*계좌|보호조치\s*계좌|자산\s*이동)"),
    _ts("pf_transfer", "송금/결제 유도", 28, r"(송금|이체|입금|결제|납부|보증보험료|수수료\s*입금)"),
    _ts(
        "pf_giftcard",
        "상품권/기프트카드/핀번호 요구",
        38,
        r"(상품권|문화\s*상품권|문상|해피머니|해피\s*머니|구글\s*기프트|google\s*gift|기프트\s*카드|gift\s*card|핀\s*번호|pin\s*(?:번호|code)|바코드)",
    ),
    _ts(
        "pf_crypto",
        "코인/지갑주소 송금 유도",
        34,
        r"(usdt|btc|eth|코인|가상\s*자산|가상자산|암호\s*화폐|암호화폐|crypto|wallet|지갑\s*주소|trc20|erc20|바이낸스|binance|업비트|upbit|빗썸|bithumb)",
    ),
    _ts(
        "pf_account_rental",
        "통장/계좌 대여·수령대행 유도",
        36,
        r"(통장\s*대여|계좌\s*대여|통장\s*임대|계좌\s*임대|대포\s*통장|명의\s*대여|수령\s*대행|수령대행|자금\s*세탁|범죄\s*자금)",
    ),
    _ts(
        "pf_qr_pay",
        "QR/간편결제 결제 유도",
        22,
        r"(qr\s*코드|qr코드|큐알\s*코드|큐알코드|간편\s*결제|간편결제|토스|카카오\s*페이|kakao\s*pay|네이버\s*페이|naver\s*pay)",
    ),
    _ts("pf_remote", "원격/화면공유 유도", 26, r"(원격|원격지원|팀뷰어|teamviewer|anydesk|quicksupport|화면\s*공유|접속코드)"),
    _ts("pf_otp", "인증번호/OTP 언급", 18, r"(인증번호|otp|오티피|2단계\s*인증|보안코드|확인번호|6\s*자리)"),
    _ts(
        "pf_cash_pickup",
        "현금 수거/퀵 전달 유도",
        40,
        r"(현금\s*(수거|전달|봉투|뭉치)|현금\s*봉투|퀵|퀵서비스|대면\s*(전달|수거)|기사님\s*(수거|방문)|직접\s*(전달|수거)|택시\s*(수거|전달)|봉투를\s*준비)",
    ),
    _ts(
        "pf_authority",
        "기관/금융사 사칭 톤",
        20,
        r"(검찰|검찰청|수사관|경찰|경찰청|사이버\s*수사|금감원|금융감독원|금융보안원|국세청|법원|카드사|은행|고객센터)\s*(입니다|안내|연락|통지)",
    ),
    _ts(
        "pf_threat",
        "위협/불이익 압박",
        20,
        r"(지급\s*정지|출금\s*정지|거래\s*정지|계좌\s*동결|통장\s*동결|동결\s*조치|압류|가압류|추심|고소|고발|처벌|접속\s*차단|차단\s*예정|계정\s*정지|이용\s*제한|불이익|법적\s*조치|수사\s*대상|영장)",
    ),
    _ts(
        "pf_account_freeze",
        "계좌/거래 정지·압류 위협",
        20,
        r"(계좌|통장|거래|출금|카드).{0,20}(동결|정지|중지|차단|잠금|잠김|제한|압류|가압류|지급\s*정지|출금\s*정지|거래\s*정지|사용\s*정지)",
    ),
    _ts(
        "pf_account_verify",
        "계정/계좌 확인·보안점검 유도",
        18,
        r"(이상\s*거래|비정상\s*거래|부정\s*사용|부정\s*결제|명의\s*도용|계좌\s*도용|계정\s*도용|해킹|탈취|침해"
        r"|로그인\s*(?:시도|차단|제한|이상)|비밀번호\s*(?:변경|초기화|재설정)"
        r"|계정\s*(?:확인|조회|인증|검증|점검|복구|정지|잠김|잠금|차단|해제)|아이디\s*(?:확인|복구|찾기)?"
        r"|id\s*(?:확인|복구)?|본인\s*(?:확인|인증)|인증\s*절차|승인\s*내역|결제\s*내역|해외\s*결제)",
    ),
    _ts("pf_urgency", "긴급/시간압박", 10, r"(지금|즉시|바로|긴급|오늘\s*안에|기한\s*내|통화\s*끊지\s*마)"),
    _ts(
        "pf_pii",
        "개인정보/신분증 요청",
        16,
        r"(여권|신분증|주민번호|계좌(?:번호)?|카드번호|비밀번호|주소|연락처|이름|인증번호|otp|오티피)\s*(보내|알려|입력|등록|기재|작성|제출|전송|확인)",
    ),
    _ts(
        "pf_link_verbs",
        "링크 클릭/접속 유도",
        12,
        r"(링크|url|주소)(?:\s*(?:로|에서|를|에|으로|로써))?(?:.{0,16})?(접속|클릭|눌러|확인|들어가|진행|신청|조회|인증)",
    ),
    _ts(
        "pf_messenger_profile",
        "메신저/프로필 확인 맥락",
        8,
        r"(카톡|카카오톡|카카오\s*톡|카카오|kakao|톡방|채팅방|오픈\s*채팅|오픈채팅|프로필|내\s*프로필|상태\s*메시지|사진|영상|문서|첨부|메신저|메시지|dm|쪽지)",
    ),
    _ts(
        "pf_contact_move",
        "오픈채팅/텔레그램 등 이동 유도",
        18,
        r"(오픈\s*채팅|오픈채팅|open\s*chat|openchat|텔레그램|telegram|카카오\s*오픈|오픈\s*카톡|라인|line|디스코드|discord|1:1|개인\s*톡)",
    ),
    _ts(
        "pf_visit_place",
        "특정 장소 방문/이동 유도",
        18,
        r"(방문|내방|출석|출두|집결|모여|오세요|오셔|오시면|이동해\s*주세요|현장|교육장|면접장|사무실|지점|센터|공항|터미널|역\s*\d*\s*번?\s*출구|출구|주소|오시는\s*길|지도|로비|주차장|층|호)",
    ),
    _ts("pf_job_hook", "고수익/알바/부업 훅", 10, r"(고수익|고액|단기|알바|아르바이트|재택|부업|당일\s*지급|초보\s*가능|모집|구인|급구)"),
    _ts("pf_otp_demand", "인증번호 전달/입력 요구", 22, r"(인증번호|otp|오티피).*(보내|알려|불러|읽어|전달|캡처|스크린샷|입력)"),
)

_BENEFIT_HOOK = re.compile(
    r"(지원금|보조금|환급|환불|재난\s*지원금|민생\s*지원금|소상공인\s*지원|근로\s*장려금|자녀\s*장려금|청년\s*지원"
    r"|대상자\s*(?:조회|확인)|신청\s*(?:가능|대상)|미수령|추가\s*지급|정부\s*24|gov\s*24|gov24)"
)
_BENEFIT_LINK = re.compile(r"(링크|url|주소|https?://|www\.|hxxp|\[\.\])", re.IGNORECASE)
_BENEFIT_PII = re.compile(
    r"(계좌|카드|비밀번호|주민번호|신분증|본인\s*인증|로그인|인증번호|otp|오티피|입력|등록)", re.IGNORECASE
)

_BANK_CLAIM_NAME = re.compile(r"(은행|뱅크|bank|고객센터|인터넷\s*뱅킹|모바일\s*뱅킹|보안\s*카드|금융)", re.IGNORECASE)
_BANK_CLAIM_ACTION = re.compile(r"(로그인|인증|otp|오티피|보안|계좌|카드|이체|송금|결제)", re.IGNORECASE)
_ZERO_WIDTH = re.compile("[​-‏﻿]")
_ZERO_WIDTH_ENCODED = re.compile(r"%E2%80%8B|%E2%80%8C|%E2%80%8D|%EF%BB%BF", re.IGNORECASE)
_AT_IN_AUTHORITY = (
    re.compile(r"https?://[^\s/]*@", re.IGNORECASE),
    re.compile(r"https?://[^\s/]*%40", re.IGNORECASE),
)
_LABEL_JUNK = re.compile(r"[^a-z0-9-]")
_MEANINGFUL_JUNK = re.compile(r"[^0-9a-zA-Z가-힣]")
_GENERIC_TAIL4 = frozenset({"bank", "card", "pay", "help", "info", "site"})

_GATE_ACCOUNT = (
    re.compile(
        r"(?:계\s*정|계정|아이\s*디|아이디|id|로그\s*인|로그인|비밀\s*번호|비밀번호).{0,48}"
        r"(?:도\s*용|도용|해\s*킹|해킹|탈\s*취|탈취|잠\s*김|잠김|잠\s*금|잠금|정\s*지|정지|차\s*단|차단|복\s*구|복구|확\s*인|확인|인\s*증|인증|점\s*검|점검)",
        re.IGNORECASE,
    ),
    re.compile(
        r"(?:이상\s*거래|비정상\s*거래|부정\s*사용|부정\s*결제|명의\s*도용|계\s*좌\s*도용|계좌\s*도용|계\s*정\s*도용|계정\s*도용|해외\s*결제|승인\s*내역|결제\s*내역)",
        re.IGNORECASE,
    ),
)
_GATE_GOV = re.compile(
    r"(?:지원금|보조금|환급|환불|장려금|바우처|쿠폰|재난\s*지원|민생\s*지원|소상공인\s*지원|근로\s*장려금|자녀\s*장려금|청년\s*지원"
    r"|대상자\s*(?:조회|확인)|정부\s*24|정부24|gov\s*24|gov24)",
    re.IGNORECASE,
)
_GATE_MESSENGER = re.compile(
    r"(?:카\s*톡|카톡|카카오\s*톡|카카오톡|카카오|kakao|오픈\s*채팅|오픈채팅|텔레그램|telegram|프로필|채팅방|톡방|dm|쪽지).{0,64}"
    r"(?:링크|url|주소|접속|클릭|확인|초대)",
    re.IGNORECASE,
)
_GATE_LINK_VERBS = re.compile(
    r"(?:링크|url|주소)(?:\s*(?:로|에서|를|에|으로|으로써))?.{0,24}(?:클릭|접속|눌러|확인|들어가|진행|신청|조회|인증)",
    re.IGNORECASE,
)


def recent_lines(text: str, limit: int) -> list[str]:
    raw = (text or "").replace("\r\n", "\n").strip()
    lines = [line.strip() for line in raw.split("\n") if line.strip()]
    return lines[-limit:] if len(lines) > limit else lines


def _evidence(original: str, match: re.Match[str], window: int = 24) -> str:
    start = max(0, match.start() - window)
    end = min(len(original), match.end() + window)
    snippet = " ".join(original[start:end].split())
    prefix = "…" if start > 0 else ""
    suffix = "…" if end < len(original) else ""
    return f"{prefix}{snippet}{suffix}"


def score_text_signals(text: str) -> list[PrefilterSignal]:
    original = text or ""
    lowered = original.lower()
    out: list[PrefilterSignal] = []
    for signal in TEXT_SIGNALS:
        match = signal.pattern.search(lowered)
        if match:
            out.append(_points(signal.id, signal.label, signal.points, _evidence(original, match)))

    benefit = _BENEFIT_HOOK.search(lowered)
    if benefit:
        evidence = _evidence(original, benefit)
        out.append(_points("pf_benefit_hook", "지원금/환급/대상자 조회 미끼", 12, evidence))
        if _BENEFIT_LINK.search(original):
            out.append(_points("pf_benefit_link_mention", "지원금/환급 + 링크/URL 언급", 18, evidence))
        if _BENEFIT_PII.search(original):
            out.append(_points("pf_benefit_pii", "지원금/환급 + 민감정보/계좌 입력 유도", 20, evidence))
    return out


def looks_bank_claim(text: str) -> bool:
    value = (text or "").lower()
    return bool(_BANK_CLAIM_NAME.search(value) and _BANK_CLAIM_ACTION.search(value))


def _base_label(host_or_root: str) -> str:
    first = next((item for item in (host_or_root or "").lower().strip().split(".") if item), "")
    return _LABEL_JUNK.sub("", first)


def brand_token_in_host(host: str) -> str | None:
    """Bank brand token found in a host; short tokens must equal a label or hyphen part."""

    value = normalize_host(host)
    if not value:
        return None
    labels = [item for item in value.split(".") if item]
    parts = {part for label in labels for part in label.split("-") if part}
    for token in BANK_BRAND_TOKENS:
        key = token.strip().lower()
        if not key:
            continue
        if key in parts:
            return key
        if len(key) > 3 and any(key in label for label in labels):
            return key
    return None


def _is_official(host: str, suffixes: Sequence[str]) -> bool:
    return any(host_matches_suffix(host, suffix) for suffix in suffixes)


def _official_typosquat(root: str, official_roots: Sequence[str]) -> str | None:
    root_label = _base_label(root)
    best = 99
    best_official = ""
    best_mode = "root"
    for official in official_roots:
        distance = edit_distance(root, official)
        mode = "root"
        official_label = _base_label(official)
        if root_label and official_label:
            label_distance = edit_distance(root_label, official_label)
            if label_distance < distance:
                distance, mode = label_distance, "label"
        if distance < best:
            best, best_official, best_mode = distance, official, mode
        if best == 0:
            break
    if not best_official or not 1 <= best <= 2:
        return None
    if best_mode == "label":
        best_label = _base_label(best_official)
        if abs(len(root_label) - len(best_label)) > 2:
            return None
        return f"{root_label} ~ {best_label} (d={best})"
    if abs(len(root) - len(best_official)) > 2:
        return None
    return f"{root} ~ {best_official} (d={best})"


def _brand_fallback_typosquat(root_label: str) -> str | None:
    best = 99
    best_brand = ""
    for token in BANK_BRAND_TOKENS:
        key = _LABEL_JUNK.sub("", token.lower().strip())
        if len(key) < 5:
            continue
        tail4 = key[-4:] if len(key) >= 6 else ""
        if tail4 and (tail4 in _GENERIC_TAIL4 or not root_label.endswith(tail4)):
            continue
        distance = edit_distance(root_label, key)
        if distance < best:
            best, best_brand = distance, key
        if best == 0:
            break
    if best_brand and 1 <= best <= 2 and abs(len(root_label) - len(best_brand)) <= 2:
        return f"{root_label} ~ {best_brand} (d={best})"
    return None


def _label_typosquat(host: str, *, bank_claim: bool) -> str | None:
    label = _base_label(host)
    if not label:
        return None
    for token in BANK_BRAND_TOKENS:
        key = _LABEL_JUNK.sub("", token.lower().strip())
        if len(key) <= 3:
            continue
        distance = edit_distance(label, key)
        length_gap = abs(len(label) - len(key))
        if bank_claim:
            matched = 1 <= distance <= 2 and length_gap <= 2
        else:
            matched = distance == 1 and length_gap <= 1
        if matched:
            return f"{label} ~ {key} (d={distance})"
    return None


@dataclass
class _UrlTally:
    http: list[str] = field(default_factory=list)
    shortener: list[str] = field(default_factory=list)
    ip_host: list[str] = field(default_factory=list)
    punycode: list[str] = field(default_factory=list)
    deep_sub: list[str] = field(default_factory=list)
    redirect: list[str] = field(default_factory=list)
    download: list[str] = field(default_factory=list)
    at_sign: list[str] = field(default_factory=list)
    zero_width: list[str] = field(default_factory=list)
    non_ascii: list[str] = field(default_factory=list)
    double_slash: list[str] = field(default_factory=list)
    to_official: list[str] = field(default_factory=list)
    bank: list[str] = field(default_factory=list)
    brand_in_host: int = 0
    typosquat: int = 0
    claim_nonofficial: int = 0


def score_url_signals(text: str, urls: Sequence[str], options: PrefilterOptions) -> list[PrefilterSignal]:
    suffixes = options.official_suffixes
    official_roots = [item for item in dict.fromkeys(registrable_domain(suffix) for suffix in suffixes) if item]
    bank_claim = looks_bank_claim(text)
    tally = _UrlTally()
    hosts: set[str] = set()

    for raw in urls:
        raw_text = str(raw or "")
        normalized = normalize_to_url_string(raw_text)
        parsed = safe_parse_url(normalized)
        if parsed is None:
            continue
        raw_host = parsed.hostname or ""
        host = ascii_host(raw_host)
        root = registrable_domain(host)
        path = (parsed.path + (f"?{parsed.query}" if parsed.query else "")).lower()
        hosts.add(host)
        allowed = any(host_matches_suffix(host, item) for item in options.allow_hosts)
        official = _is_official(host, suffixes)

        if parsed.scheme.lower() == "http":
            tally.http.append(normalized)
        if host in SHORTENER_HOSTS:
            tally.shortener.append(host)
        if is_ip_host(host):
            tally.ip_host.append(host)
        if "xn--" in host:
            tally.punycode.append(host)
        if host.count(".") >= 4:
            tally.deep_sub.append(host)
        if parsed.username or parsed.password or any(item.search(normalized) for item in _AT_IN_AUTHORITY):
            tally.at_sign.append(normalized)
        if _ZERO_WIDTH.search(raw_text) or _ZERO_WIDTH_ENCODED.search(normalized):
            tally.zero_width.append(normalized)
        if raw_host and not raw_host.isascii():
            tally.non_ascii.append(raw_host.lower())
        if "//" in path or "%2f%2f" in path or "%5c%5c" in path:
            tally.double_slash.append(normalized)

        if redirect_target(parsed):
            chain = redirect_param_chain(normalized, max_hops=options.max_redirect_hops)
            hop_hosts = [ascii_host(hop.hostname) for hop in (safe_parse_url(item) for item in chain[1:]) if hop]
            if len(chain) >= 2 and hop_hosts:
                tally.redirect.append(f"{normalized} -> {hop_hosts[-1]} (hops={len(chain) - 1})")
            else:
                tally.redirect.append(normalized)
            if not official and not allowed:
                destination = next((item for item in hop_hosts if _is_official(item, suffixes)), None)
                if destination:
                    tally.to_official.append(f"{host} -> {destination}")

        if has_download_ext(path):
            tally.download.append(normalized)

        brand = brand_token_in_host(host)
        if brand and not official and (len(brand) > 3 or bank_claim):
            tally.brand_in_host += 1
            tally.bank.append(f"{brand}@{host}")

        if not official:
            root_label = _base_label(root)
            squat = None
            if official_roots:
                squat = _official_typosquat(root, official_roots)
            elif root_label:
                squat = _brand_fallback_typosquat(root_label)
            if squat:
                tally.typosquat += 1
                tally.bank.append(squat)

        if not official and not allowed:
            squat = _label_typosquat(host, bank_claim=bank_claim)
            if squat:
                tally.typosquat += 1
                tally.bank.append(squat)

        if bank_claim and not official and not allowed:
            tally.claim_nonofficial += 1
            tally.bank.append(host)

    out: list[PrefilterSignal] = []
    url_count = len(urls)
    if url_count:
        out.append(_points("pf_url_present", "URL 포함", 8, urls))
    if url_count >= 3:
        out.append(_points("pf_url_many", "링크 다수", 18 if url_count >= 8 else 14 if url_count >= 5 else 10, [f"count={url_count}"]))
    if len(hosts) >= 3:
        out.append(_points("pf_url_many_hosts", "서로 다른 도메인 다수", 18 if len(hosts) >= 6 else 12, [f"hosts={len(hosts)}"]))

    listed = (
        ("pf_url_shortener", "단축 URL", 22, tally.shortener),
        ("pf_url_http", "HTTP(비TLS) URL", 20, tally.http),
        ("pf_url_ip_host", "IP 호스트 URL", 24, tally.ip_host),
        ("pf_url_punycode", "훼이크 도메인(푸니코드) 가능", 18, tally.punycode),
        ("pf_url_deep_sub", "과도한 서브도메인", 12, tally.deep_sub),
        ("pf_url_redirect_param", "리다이렉트 파라미터 포함", 16, tally.redirect),
        ("pf_url_download", "설치/압축 파일 링크", 35, tally.download),
        ("pf_url_at_sign", "URL에 '@'로 실제 주소 숨김", 22, tally.at_sign),
        ("pf_url_redirect_to_official", "리다이렉트가 공식 도메인으로 유도", 24, tally.to_official),
        ("pf_url_zero_width", "URL에 숨김 문자(제로폭) 가능", 18, tally.zero_width),
        ("pf_url_non_ascii", "URL 호스트에 비ASCII 문자 포함", 14, tally.non_ascii),
        ("pf_url_double_slash", "URL 경로 우회(//, 인코딩) 가능", 10, tally.double_slash),
    )
    for signal_id, label, points, matches in listed:
        if matches:
            out.append(_points(signal_id, label, points, matches))

    if tally.brand_in_host:
        out.append(_points("pf_url_bank_brand", "은행명/브랜드 토큰 포함(비공식)", 24, tally.bank))
    if tally.typosquat:
        out.append(_points("pf_url_bank_typosquat", "은행 도메인 유사(1~2글자 차이)", 30, tally.bank))
    if tally.claim_nonofficial:
        out.append(_points("pf_url_bank_claim_nonofficial", "은행 사칭 맥락 + 비공식 링크", 18, tally.bank))
    if url_count >= 3 and len(hosts) >= 3:
        out.append(_points("pf_url_many_mix", "링크 다수 + 도메인 다수", 10))
    return out


def score_bare_link_signals(text: str, urls: Sequence[str]) -> list[PrefilterSignal]:
    """A message that is little more than a link."""

    source = (text or "").strip()
    if not urls or not source:
        return []
    stripped = source
    for url in urls[:6]:
        if not url:
            continue
        stripped = stripped.replace(url, " ")
        normalized = normalize_to_url_string(url)
        if normalized and normalized != url:
            stripped = stripped.replace(normalized, " ")
    meaningful = _MEANINGFUL_JUNK.sub("", stripped)
    lines = len([line for line in source.split("\n") if line])
    if len(meaningful) <= 4 and lines <= 2:
        return [_points("pf_url_bare_link", "링크만 던짐(스팸/피싱 흔함)", 22, [urls[0]])]
    return []


def _token_matches_host(host: str, token: str) -> bool:
    h = normalize_host(host)
    t = normalize_host(token)
    if not h or not t:
        return False
    if h == t or h.endswith("." + t) or t.endswith("." + h):
        return True
    return registrable_domain(h) == registrable_domain(t)


def score_display_mismatch(candidates: Sequence[LinkCandidate], options: PrefilterOptions) -> list[PrefilterSignal]:
    suffixes = options.official_suffixes
    matches: list[str] = []
    for candidate in candidates[:10]:
        parsed = safe_parse_url(normalize_to_url_string(candidate.href))
        if parsed is None:
            continue
        host = ascii_host(parsed.hostname)
        shown = (candidate.text or "").strip()
        if not shown:
            continue
        tokens = extract_domain_tokens(shown)[:4]
        if not tokens:
            continue
        if not any(_token_matches_host(host, token) for token in tokens):
            matches.append(f"{tokens[0]} → {host}")
        if any(_is_official(token, suffixes) for token in tokens) and not _is_official(host, suffixes):
            matches.append(f"(bank-text) {tokens[0]} → {host}")
    if not matches:
        return []
    return [_points("pf_url_display_mismatch", "표시 링크 ≠ 실제 링크 의심", 34, matches)]


def score_context_signals(context: PrefilterContext | None) -> list[PrefilterSignal]:
    if context is None:
        return []
    out: list[PrefilterSignal] = []
    if context.is_saved_contact is False:
        out.append(_points("pf_unknown_contact", "저장되지 않은 번호/대화상대", 14))
    actions = context.explicit_actions
    if actions.copy_url > 0:
        out.append(_points("pf_act_copy_url", "행동: URL 복사 시도", 16, [f"x{actions.copy_url}"]))
    if actions.open_url > 0:
        out.append(_points("pf_act_open_url", "행동: URL 열기 시도", 0, [f"x{actions.open_url}"]))
    if actions.install_click > 0:
        out.append(_points("pf_act_install_click", "행동: 설치/다운로드 클릭", 24, [f"x{actions.install_click}"]))

    resolved = context.resolved
    if resolved is not None and resolved.final_url:
        parsed = safe_parse_url(normalize_to_url_string(resolved.final_url))
        if parsed is not None:
            final_host = ascii_host(parsed.hostname)
            if final_host and ("xn--" in final_host or final_host.count(".") >= 4):
                out.append(_points("pf_ctx_final_host_susp", "컨텍스트: 최종 목적지 호스트 의심", 12, [final_host]))
            if resolved.error and resolved.error != "MAX_HOPS_REACHED":
                out.append(_points("pf_ctx_resolve_error", "컨텍스트: 리다이렉트 추적 실패", 8, [resolved.error]))
            if resolved.hops >= 3:
                out.append(_points("pf_ctx_many_redirects", "컨텍스트: 리다이렉트 단계 과다", 10, [f"hops={resolved.hops}"]))
    return out


def score_combos(urls: Sequence[str], ids: set[str], context: PrefilterContext | None) -> list[PrefilterSignal]:
    has_url = bool(urls)
    has_otp = "pf_otp" in ids or "pf_otp_demand" in ids
    has_download = "pf_url_download" in ids
    has_transfer = "pf_transfer" in ids
    pressure = "pf_urgency" in ids or "pf_threat" in ids
    out: list[PrefilterSignal] = []
    if has_url and has_otp:
        out.append(_points("pf_combo_url_otp", "조합: 링크 + 인증번호", 18))
    if "pf_remote" in ids and has_otp:
        out.append(_points("pf_combo_remote_otp", "조합: 원격 + 인증번호", 22))
    if "pf_safe_account" in ids and has_transfer:
        out.append(_points("pf_combo_safe_xfer", "조합: 안전계좌 + 이체", 26))
    if has_transfer and pressure:
        out.append(_points("pf_combo_xfer_pressure", "조합: 이체 + 압박", 18))
    if has_download and pressure:
        out.append(_points("pf_combo_install_pressure", "조합: 설치링크 + 압박", 18))
    if "pf_url_shortener" in ids and has_otp:
        out.append(_points("pf_combo_short_otp", "조합: 단축URL + OTP", 20))
    if "pf_url_display_mismatch" in ids and (has_otp or has_download or has_transfer):
        out.append(_points("pf_combo_mismatch_strong", "조합: 표시≠실링크 + 강행동", 18))
    if "pf_unknown_contact" in ids and has_url:
        out.append(_points("pf_combo_unknown_url", "조합: 미저장 번호 + 링크", 12))

    actions = context.explicit_actions if context is not None else ExplicitActions()
    if actions.copy_url + actions.install_click > 0 and (has_url or has_download or has_otp):
        out.append(_points("pf_combo_explicit_act", "조합: 명시적 행동 + 위험 신호", 14))
    if actions.open_url > 0 and has_url:
        out.append(_points("pf_combo_open_url", "트리거: 클릭 발생 + 링크 존재", 0))
    return out


def _lite_text(text: str) -> str:
    value = (text or "").replace("\r\n", "\n")
    value = _LITE_STAMP.sub("", value)
    value = _LITE_ROLE.sub("", value)
    return " ".join(value.split())


def _action_for(score: int, options: PrefilterOptions) -> PrefilterAction:
    if score >= options.threshold_auto:
        return "auto"
    if score >= options.threshold_soft:
        return "soft"
    return "none"


def prefilter_thread(
    text: str,
    options: PrefilterOptions | None = None,
    context: PrefilterContext | None = None,
) -> PrefilterResult:
    """Score the most recent lines of sender text and recommend an action."""

    opts = options or PrefilterOptions()
    lines = recent_lines(text, max(1, opts.recent_blocks_max))
    window_text = "\n".join(lines)
    urls = extract_urls_loose(window_text)

    candidates = extract_markdown_links(window_text)
    if context is not None:
        candidates.extend(LinkCandidate(href=item.href, text=item.text) for item in context.link_candidates)
    candidates = candidates[:MAX_LINK_CANDIDATES]

    collected = [
        *score_url_signals(window_text, urls, opts),
        *score_text_signals(window_text),
        *score_context_signals(context),
        *score_display_mismatch(candidates, opts),
        *score_bare_link_signals(window_text, urls),
    ]
    best: dict[str, PrefilterSignal] = {}
    for signal in collected:
        previous = best.get(signal.id)
        if previous is None or signal.points > previous.points:
            best[signal.id] = signal

    combos = sorted(score_combos(urls, set(best), context), key=lambda item: -item.points)
    raw_score = sum(item.points for item in best.values()) + sum(item.points for item in combos)
    score = min(100, max(0, int(round(raw_score))))
    action = _action_for(score, opts)

    opened = context.explicit_actions.open_url if context is not None else 0
    if opened > 0:
        best["pf_trigger_open_url"] = _points("pf_trigger_open_url", "트리거: URL 열기 시도", 0, [f"openUrl=x{opened}"])
        if urls:
            score = max(score, opts.threshold_auto)
            action = "auto"

    signals = sorted(best.values(), key=lambda item: -item.points)
    ids = {item.id for item in signals}
    lite = _lite_text(text)
    gate_pass = (
        bool(urls)
        or any(item.points > 0 for item in signals)
        or any(item.points > 0 for item in combos)
        or score >= min(GATE_THRESHOLD_MAX, opts.threshold_soft)
        or bool(ids & {"pf_account_verify", "pf_account_freeze"})
        or bool(ids & {"pf_benefit_hook", "pf_benefit_link_mention", "pf_benefit_pii"})
        or "pf_link_verbs" in ids
        or any(pattern.search(lite) for pattern in _GATE_ACCOUNT)
        or bool(_GATE_GOV.search(lite))
        or bool(_GATE_MESSENGER.search(lite))
        or bool(_GATE_LINK_VERBS.search(lite))
    )

    return PrefilterResult(
        score=score,
        action=action,
        gate_pass=gate_pass,
        threshold_soft=opts.threshold_soft,
        threshold_auto=opts.threshold_auto,
        signals=signals,
        combos=combos,
        trig_ids=[item.id for item in signals] + [item.id for item in combos],
        window=PrefilterWindow(blocks_considered=len(lines), chars_considered=len(window_text)),
    )


__all__ = [
    "ExplicitActions",
    "LinkRef",
    "PrefilterContext",
    "PrefilterOptions",
    "RedirectResolution",
    "TEXT_SIGNALS",
    "brand_token_in_host",
    "looks_bank_claim",
    "prefilter_thread",
    "recent_lines",
    "score_bare_link_signals",
    "score_combos",
    "score_context_signals",
    "score_display_mismatch",
    "score_text_signals",
    "score_url_signals",
]
