"""URL extraction, de-obfuscation and host helpers."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import SplitResult, parse_qsl, unquote, urlsplit
import re

_FLAGS = re.IGNORECASE | re.ASCII

# Strict extraction used by the rule scorer.
_SCHEME_URL = re.compile(r"\bhttps?://[^\s<>\"')\]]+", _FLAGS)
_WWW_URL = re.compile(r"\bwww\.[^\s<>\"')\]]+", _FLAGS)
_BARE_DOMAIN = re.compile(
    r"\b[a-z0-9][a-z0-9-]{0,61}(?:\.[a-z0-9-]{1,63})*\.[a-z]{2,63}\b(?:/[^\s<>\"')\]]*)?",
    _FLAGS,
)

# Loose extraction used by the prefilter; also catches defanged forms.
_LOOSE_PATTERNS = (
    re.compile(r"https?://[^\s)]+", _FLAGS),
    re.compile(r"\bwww\.[^\s)]+", _FLAGS),
    re.compile(r"\bhxxps?://[^\s)]+", _FLAGS),
    re.compile(r"\b(?:https?|hxxps?)\s*(?:\[:\]|:)\s*//[^\s)]+", _FLAGS),
    re.compile(
        r"\b[a-z0-9-]+(?:\[\.\]|\(\.\)|\{\.\})[a-z0-9-]+(?:\[\.\]|\(\.\)|\{\.\})?[a-z0-9.-]*[^\s)]+",
        _FLAGS,
    ),
)
_LOOSE_BARE = re.compile(r"\b(?:[a-z0-9-]+\.)+[a-z]{2,24}(?:/[^\s)]*)?\b", _FLAGS)

_MARKDOWN_LINK = re.compile(r"\[([^\]]{1,120})\]\((https?://[^\s)]+)\)")
_DOMAIN_TOKEN = re.compile(r"\b(?:[a-z0-9-]+\.)+[a-z]{2,}\b", _FLAGS)

_DEFANGED_SCHEME = re.compile(r"\b(https?|hxxps?)\s*(?:\[:\]|:)\s*//", _FLAGS)
_DEFANGED_DOT = re.compile(r"\[\.\]|\(\.\)|\{\.\}")
_HAS_SCHEME = re.compile(r"^https?://", re.IGNORECASE)
_HAS_WWW = re.compile(r"^www\.", re.IGNORECASE)
_BARE_WITH_TLD = re.compile(r"\.[a-z]{2,}(?:[/?#]|$)", re.IGNORECASE)
_IPV4_HOST = re.compile(r"^\d{1,3}(?:\.\d{1,3}){3}$", re.ASCII)

_TAIL_CHARS = ")],.?!'\"`}>"
_TWO_LEVEL_KR = re.compile(r"(?:^|\.)(?:co|or|go|ac|ne)\.kr$")

REDIRECT_PARAM_KEYS = (
    "url",
    "u",
    "r",
    "redirect",
    "redirect_url",
    "redirecturl",
    "return",
    "returnurl",
    "continue",
    "next",
    "target",
)


@dataclass(frozen=True)
class LinkCandidate:
    href: str
    text: str = ""


def strip_url_tail(raw: str) -> str:
    return (raw or "").strip().rstrip(_TAIL_CHARS)


def _cleanup(raw: str) -> str:
    value = (raw or "").strip()
    value = re.sub(r"[)\]}>\"'`]+$", "", value)
    value = re.sub(r"[.,!?;:]+$", "", value)
    value = re.sub(r"…+$", "", value)
    value = re.sub(r"^[(\"'\[\s]+", "", value)
    return value.strip()


def _with_scheme(raw: str) -> str:
    value = _cleanup(raw)
    if not value:
        return ""
    if _HAS_SCHEME.match(value):
        return value
    return f"https://{value}"


def _masked(text: str, patterns: tuple[re.Pattern[str], ...]) -> tuple[list[str], str]:
    found: list[str] = []
    masked = text
    for pattern in patterns:
        found.extend(pattern.findall(masked))
        masked = pattern.sub(" ", masked)
    return found, masked


def extract_urls(text: str, *, limit: int = 20) -> list[str]:
    """Extract scheme, ``www.`` and bare-domain URLs, each with a scheme."""

    source = (text or "").replace("\r\n", "\n")
    found, rest = _masked(source, (_SCHEME_URL, _WWW_URL))
    found.extend(_BARE_DOMAIN.findall(rest))
    urls = (_with_scheme(item) for item in found)
    return list(dict.fromkeys(item for item in urls if item))[:limit]


def normalize_to_url_string(raw: str) -> str:
    """Undo common defanging (``hxxp``, ``[.]``, ``[:]``) and add a scheme."""

    value = strip_url_tail(raw)
    if not value:
        return ""
    value = _DEFANGED_SCHEME.sub(lambda m: m.group(1).lower().replace("hxxp", "http") + "://", value)
    value = _DEFANGED_DOT.sub(".", value)
    value = re.sub(r"&colon;", ":", value, flags=re.IGNORECASE)
    value = value.replace("&#58;", ":").strip()
    if not value:
        return ""
    if _HAS_SCHEME.match(value):
        return value
    if _HAS_WWW.match(value):
        return f"https://{value}"
    if _BARE_WITH_TLD.search(value):
        return f"https://{value}"
    return value


def extract_urls_loose(text: str, *, limit: int = 12) -> list[str]:
    found, rest = _masked(text or "", _LOOSE_PATTERNS)
    found.extend(_LOOSE_BARE.findall(rest))
    urls = (strip_url_tail(normalize_to_url_string(item)) for item in found)
    return list(dict.fromkeys(item for item in urls if item))[:limit]


def extract_markdown_links(text: str, *, limit: int = 10) -> list[LinkCandidate]:
    links: list[LinkCandidate] = []
    for match in _MARKDOWN_LINK.finditer(text or ""):
        links.append(LinkCandidate(href=strip_url_tail(match.group(2)), text=match.group(1).strip()))
        if len(links) >= limit:
            break
    return links


def extract_domain_tokens(text: str, *, limit: int = 6) -> list[str]:
    tokens = _DOMAIN_TOKEN.findall((text or "").lower())
    return list(dict.fromkeys(tokens))[:limit]


def safe_parse_url(url: str) -> SplitResult | None:
    try:
        parsed = urlsplit((url or "").strip())
        _ = parsed.port  # malformed ports only surface on access
    except ValueError:
        return None
    if parsed.scheme.lower() not in {"http", "https"} or not parsed.hostname:
        return None
    return parsed


def normalize_host(host: str | None) -> str:
    return (host or "").strip().lower().rstrip(".")


def ascii_host(host: str | None) -> str:
    """Return the IDNA (punycode) form of a host, or the host unchanged."""

    value = normalize_host(host)
    if value.isascii():
        return value
    try:
        return value.encode("idna").decode("ascii")
    except UnicodeError:
        return value


def url_host(url: str) -> str:
    parsed = safe_parse_url(url)
    return ascii_host(parsed.hostname) if parsed else ""


def is_ip_host(host: str) -> bool:
    return bool(_IPV4_HOST.match(host or ""))


def host_matches_suffix(host: str, suffix: str) -> bool:
    h = normalize_host(host)
    s = normalize_host(suffix)
    return bool(h and s) and (h == s or h.endswith("." + s))


def registrable_domain(host: str) -> str:
    """Approximate eTLD+1, aware of Korean second-level domains."""

    value = normalize_host(host)
    parts = [item for item in value.split(".") if item]
    if len(parts) <= 2:
        return value
    if _TWO_LEVEL_KR.search(value):
        return ".".join(parts[-3:])
    return ".".join(parts[-2:])


def edit_distance(a: str, b: str) -> int:
    s, t = a or "", b or ""
    if not s:
        return len(t)
    if not t:
        return len(s)
    row = list(range(len(t) + 1))
    for i, cs in enumerate(s, start=1):
        prev, row[0] = row[0], i
        for j, ct in enumerate(t, start=1):
            current = row[j]
            row[j] = min(row[j] + 1, row[j - 1] + 1, prev + (cs != ct))
            prev = current
    return row[-1]


def redirect_target(parsed: SplitResult) -> str:
    """Return the first URL-like value carried in a redirect query parameter."""

    params = dict(parse_qsl(parsed.query, keep_blank_values=False))
    lowered = {key.lower(): value for key, value in params.items()}
    for key in REDIRECT_PARAM_KEYS:
        value = lowered.get(key, "").strip()
        if not value:
            continue
        candidate = normalize_to_url_string(unquote(value))
        if _HAS_SCHEME.match(candidate) or _HAS_WWW.match(candidate):
            return candidate
    return ""


def redirect_param_chain(first_url: str, *, max_hops: int = 5) -> list[str]:
    """Follow redirect query parameters offline, without any network access."""

    chain: list[str] = []
    current = normalize_to_url_string(first_url)
    for _ in range(max_hops):
        if not current or current in chain:
            break
        chain.append(current)
        parsed = safe_parse_url(current)
        if parsed is None:
            break
        current = redirect_target(parsed)
    return chain
