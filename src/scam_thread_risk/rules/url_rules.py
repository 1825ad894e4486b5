"""URL feature rules applied to the links of one message block."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from scam_thread_risk.domain.evidence import Hit, Stage
from scam_thread_risk.domain.url.extract import (
    ascii_host,
    host_matches_suffix,
    is_ip_host,
    safe_parse_url,
)
from scam_thread_risk.rules.hosts import BRAND_DOMAIN_ALLOW, SUSPICIOUS_TLDS, has_download_ext

MAX_URLS = 10
MAX_MATCHED = 6


@dataclass
class _UrlAgg:
    rule_id: str
    label: str
    stage: Stage
    base_weight: float
    matched: list[str] = field(default_factory=list)


def _sample(text: str) -> str:
    return text[:140] + "..." if len(text) > 140 else text


def score_urls(message_text: str, urls: list[str], weights: Mapping[str, float]) -> list[Hit]:
    """Score structural URL features; repeats of one feature count at most twice."""

    message = message_text or ""
    lowered = message.lower()
    agg: dict[str, _UrlAgg] = {}

    def add(rule_id: str, label: str, stage: Stage, weight_key: str, match: str) -> None:
        value = (match or "").strip()
        if not value:
            return
        entry = agg.get(rule_id)
        if entry is None:
            agg[rule_id] = _UrlAgg(rule_id, label, stage, float(weights.get(weight_key, 0.0)), [value])
        elif len(entry.matched) < MAX_MATCHED:
            entry.matched.append(value)

    for raw_url in urls[:MAX_URLS]:
        raw = (raw_url or "").strip()
        parsed = safe_parse_url(raw)
        if parsed is None:
            continue
        host = ascii_host(parsed.hostname)
        path = (parsed.path + (f"?{parsed.query}" if parsed.query else "")).lower()

        if parsed.scheme.lower() == "http":
            add("url_http", "URL: HTTP(비TLS)", "verify", "urlHttp", raw)
        if "@" in raw:
            add("url_at_sign", "URL: '@' 포함(우회/위장 가능)", "verify", "urlAtSign", raw)
        if is_ip_host(host):
            add("url_ip_host", "URL: IP 호스트(의심)", "verify", "urlIpHost", host)
        if "xn--" in host:
            add("url_punycode", "URL: Punycode(xn--) 의심", "verify", "urlPunycode", host)

        labels = [item for item in host.split(".") if item]
        if len(labels) >= 5:
            add("url_deep_subdomain", "URL: 서브도메인 과다(위장 가능)", "verify", "urlDeepSubdomain", host)
        if labels and labels[-1] in SUSPICIOUS_TLDS:
            add("url_suspicious_tld", "URL: 의심 TLD", "verify", "urlSuspiciousTld", host)
        if has_download_ext(path):
            add("url_download_ext", "URL: 설치/압축 파일 확장자", "install", "urlDownloadExt", raw)

        for brand in BRAND_DOMAIN_ALLOW:
            if not any(token.lower() in lowered for token in brand.tokens):
                continue
            if not any(host_matches_suffix(host, domain) for domain in brand.domains):
                add("url_brand_mismatch", brand.label, "verify", "urlBrandMismatch", f"{brand.tokens[0]} → {host}")

    sample = _sample(message)
    hits: list[Hit] = []
    for entry in agg.values():
        matched = list(dict.fromkeys(item.strip() for item in entry.matched if item.strip()))[:MAX_MATCHED]
        multiplier = min(2, len(matched) or 1)
        hits.append(
            Hit(
                rule_id=entry.rule_id,
                label=entry.label,
                stage=entry.stage,
                weight=entry.base_weight * multiplier,
                matched=tuple(matched),
                sample=sample,
            )
        )
    return hits


__all__ = ["score_urls"]
