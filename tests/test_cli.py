import json

from scam_thread_risk.cli import main


def test_cli_prints_camel_case_json(capsys, scam_thread):
    assert main(["--text", scam_thread]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["stagePeak"] == "payment"
    assert payload["uiRiskLevel"] == "high"
    assert payload["runtime"]["profile"] == "default"


def test_cli_package_only(capsys, scam_thread):
    assert main(["--text", scam_thread, "--package-only"]) == 0
    assert capsys.readouterr().out.startswith("[피싱 의심 분석 패키지]")


def test_cli_reads_file_and_call_flags(tmp_path, capsys):
    path = tmp_path / "thread.txt"
    path.write_text("S: 안녕하세요", encoding="utf-8")
    assert main(["--file", str(path), "--otp-asked", "--first-contact"]) == 0
    payload = json.loads(capsys.readouterr().out)
    ids = {hit["ruleId"] for hit in payload["hitsTop"]}
    assert {"call_otp", "call_first_contact"} <= ids


def test_cli_missing_file_fails(tmp_path, capsys):
    assert main(["--file", str(tmp_path / "missing.txt")]) == 1
    assert "error:" in capsys.readouterr().err


def test_cli_unknown_profile_fails(capsys):
    assert main(["--text", "S: 안녕하세요", "--profile", "nightly"]) == 1
    assert "unknown profile" in capsys.readouterr().err


def test_cli_undecodable_file_fails(tmp_path, capsys):
    path = tmp_path / "thread.txt"
    path.write_bytes(b"S: \xff\xfe")
    assert main(["--file", str(path)]) == 1
    assert "error:" in capsys.readouterr().err
