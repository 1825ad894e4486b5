from scam_thread_risk.domain.url.extract import (
    ascii_host,
    edit_distance,
    extract_markdown_links,
    extract_urls,
    extract_urls_loose,
    host_matches_suffix,
    is_ip_host,
    normalize_to_url_string,
    redirect_param_chain,
    registrable_domain,
    safe_parse_url,
)


def test_extract_urls_adds_scheme_and_dedupes():
    urls = extract_urls("여기 https://bit.ly/abc 그리고 www.example.com, 다시 https://bit.ly/abc")
    assert urls == ["https://bit.ly/abc", "https://www.example.com"]


def test_extract_urls_finds_bare_domains():
    urls = extract_urls("kb-secure.xyz/login 에서 확인하세요")
    assert urls == ["https://kb-secure.xyz/login"]


def test_extract_urls_respects_limit():
    text = " ".join(f"https://site{i}.com" for i in range(40))
    assert len(extract_urls(text, limit=30)) == 30


def test_defanged_url_is_restored():
    assert normalize_to_url_string("hxxps[:]//evil[.]com/a") == "https://evil.com/a"
    assert "https://evil.com/a" in extract_urls_loose("링크 hxxps://evil[.]com/a 입니다")


def test_markdown_links_keep_display_text():
    links = extract_markdown_links("[국민은행](https://kb-login.top/x)")
    assert links[0].text == "국민은행"
    assert links[0].href == "https://kb-login.top/x"


def test_host_helpers():
    assert host_matches_suffix("www.kbstar.com", "kbstar.com")
    assert not host_matches_suffix("kbstar.com.evil.io", "kbstar.com")
    assert registrable_domain("m.kbstar.co.kr") == "kbstar.co.kr"
    assert registrable_domain("a.b.example.com") == "example.com"
    assert is_ip_host("192.168.0.1")
    assert not is_ip_host("example.com")
    assert ascii_host("한국.kr").startswith("xn--")


def test_safe_parse_rejects_non_http():
    assert safe_parse_url("ftp://example.com") is None
    assert safe_parse_url("https://example.com:99999") is None
    assert safe_parse_url("https://example.com/x") is not None


def test_edit_distance():
    assert edit_distance("kbstar", "kbstarr") == 1
    assert edit_distance("", "abc") == 3


def test_redirect_param_chain_is_offline():
    chain = redirect_param_chain("https://go.example.com/r?url=https%3A%2F%2Fevil.xyz%2Fpay")
    assert chain == ["https://go.example.com/r?url=https%3A%2F%2Fevil.xyz%2Fpay", "https://evil.xyz/pay"]
