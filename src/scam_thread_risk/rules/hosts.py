"""Host allowlists and URL feature tables."""

from __future__ import annotations

from dataclasses import dataclass

KR_BANK_HOST_SUFFIXES: tuple[str, ...] = (
    "kbstar.com",
    "wooribank.com",
    "shinhan.com",
    "kebhana.com",
    "hanabank.com",
    "ibk.co.kr",
    "nonghyup.com",
    "sc.co.kr",
    "standardchartered.co.kr",
    "citibank.co.kr",
    "busanbank.co.kr",
    "knbank.co.kr",
    "imbank.co.kr",
    "dgb.co.kr",
    "jbbank.co.kr",
    "kjbank.com",
    "jejubank.co.kr",
    "kakaobank.com",
    "tossbank.com",
    "kbanknow.com",
)

KR_FI_EXTRA_HOST_SUFFIXES: tuple[str, ...] = ("epost.go.kr", "cu.co.kr", "kfcc.co.kr")

BANK_BRAND_TOKENS: tuple[str, ...] = (
    "kbstar",
    "wooribank",
    "shinhan",
    "kebhana",
    "hanabank",
    "ibk",
    "nonghyup",
    "nh",
    "sc",
    "citibank",
    "busanbank",
    "knbank",
    "imbank",
    "dgb",
    "jbbank",
    "kjbank",
    "jejubank",
    "kakaobank",
    "tossbank",
    "kbanknow",
)

SHORTENER_HOSTS = frozenset(
    {"t.co", "bit.ly", "tinyurl.com", "goo.gl", "rebrand.ly", "cutt.ly", "is.gd", "vo.la", "me2.do", "han.gl"}
)

SUSPICIOUS_TLDS = frozenset(
    {
        "xyz",
        "top",
        "shop",
        "click",
        "icu",
        "info",
        "work",
        "live",
        "loan",
        "support",
        "monster",
        "buzz",
        "cyou",
        "cfd",
        "sbs",
    }
)

DOWNLOAD_EXTS: tuple[str, ...] = (
    ".apk",
    ".exe",
    ".msi",
    ".dmg",
    ".pkg",
    ".scr",
    ".bat",
    ".cmd",
    ".ps1",
    ".zip",
    ".rar",
    ".7z",
)


@dataclass(frozen=True)
class BrandDomains:
    tokens: tuple[str, ...]
    domains: tuple[str, ...]
    label: str = "은행/결제사칭-도메인불일치"


BRAND_DOMAIN_ALLOW: tuple[BrandDomains, ...] = (
    BrandDomains(("국민은행", "KB국민", "kbstar"), ("kbstar.com", "kbfg.com", "kbcard.com")),
    BrandDomains(("신한", "신한은행"), ("shinhan.com", "shinhanbank.com")),
    BrandDomains(("우리은행", "woori"), ("wooribank.com",)),
    BrandDomains(("하나은행", "hana"), ("hanafn.com", "hanabank.com")),
    BrandDomains(("농협", "NH농협"), ("nonghyup.com", "nhbank.com")),
    BrandDomains(("기업은행", "IBK"), ("ibk.co.kr",)),
    BrandDomains(("카카오뱅크",), ("kakaobank.com",)),
    BrandDomains(("토스", "토스뱅크"), ("toss.im", "tossbank.com")),
    BrandDomains(("케이뱅크", "K뱅크"), ("kbanknow.com",)),
)


def has_download_ext(path_and_query: str) -> bool:
    value = (path_and_query or "").lower()
    return any(value.endswith(ext) or f"{ext}?" in value or f"{ext}&" in value for ext in DOWNLOAD_EXTS)


__all__ = [
    "BANK_BRAND_TOKENS",
    "BRAND_DOMAIN_ALLOW",
    "BrandDomains",
    "DOWNLOAD_EXTS",
    "KR_BANK_HOST_SUFFIXES",
    "KR_FI_EXTRA_HOST_SUFFIXES",
    "SHORTENER_HOSTS",
    "SUSPICIOUS_TLDS",
    "has_download_ext",
]
