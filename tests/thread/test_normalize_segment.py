import pytest

from scam_thread_risk.domain.thread.normalize import normalize_text
from scam_thread_risk.domain.thread.segment import (
    SegmentOptions,
    block_role,
    has_explicit_role,
    parse_header_and_content,
    split_thread,
    split_thread_with_ranges,
)


def test_normalize_collapses_whitespace_and_blank_runs():
    raw = "  S:\t안녕하세요   고객님\r\n\r\n\r\n\r\nR: 네 \u00a0누구세요  "
    assert normalize_text(raw) == "S: 안녕하세요 고객님\n\nR: 네 누구세요"


@pytest.mark.parametrize(
    "raw",
    [
        "  S:\t안녕하세요   고객님\r\n\r\n\r\n\r\nR: 네 \u00a0누구세요  ",
        "a\r\rb\n \n \n\n\nc\t\t",
        "\u00a0\u00a0\n\n\n\n",
        "[오전 10:21] 김철수: 링크\n\n\n\n\nhttps://bit.ly/x   ",
        "",
    ],
)
def test_normalize_is_idempotent(raw):
    once = normalize_text(raw)
    assert normalize_text(once) == once


def test_normalize_empty_input():
    assert normalize_text(None) == ""
    assert normalize_text("   \n\n ") == ""


def test_speaker_markers_start_new_blocks():
    blocks = split_thread_with_ranges("S: 검찰청 수사관입니다\nR: 네?\nS: 계좌가 범죄에 연루됐습니다")
    assert [block.speaker for block in blocks] == ["SENDER", "RECIPIENT", "SENDER"]
    assert [block.index for block in blocks] == [1, 2, 3]


def test_continuation_lines_stay_in_block():
    blocks = split_thread("S: 첫 줄\n이어지는 줄\n\nR: 답장")
    assert blocks == ["S: 첫 줄\n이어지는 줄", "R: 답장"]


def test_offsets_point_into_source():
    text = "S: 링크 눌러주세요\nR: 어떤 링크요"
    blocks = split_thread_with_ranges(text)
    for block in blocks:
        assert text[block.start_offset : block.end_offset] == block.text


def test_chat_header_lines_split_and_carry_name():
    text = "[오후 3:01] 김대리: 엄마 나 폰 고장났어\n[오후 3:02] 엄마: 왜?"
    blocks = split_thread_with_ranges(text)
    assert len(blocks) == 2
    assert blocks[0].speaker_label == "김대리"
    parsed = parse_header_and_content(blocks[0].text)
    assert parsed.content == "엄마 나 폰 고장났어"


def test_block_limit_keeps_oldest_blocks():
    text = "\n".join(f"S: 메시지 {i}" for i in range(10))
    blocks = split_thread_with_ranges(text, limit=3)
    assert [block.text for block in blocks] == ["S: 메시지 0", "S: 메시지 1", "S: 메시지 2"]


def test_auto_default_speaker_applies_to_unmarked_lines():
    options = SegmentOptions(turn_prefix_enabled=True, auto_default_speaker=True, default_who="R")
    blocks = split_thread_with_ranges("그냥 한 줄", options)
    assert blocks[0].speaker == "RECIPIENT"


def test_unmarked_text_has_no_explicit_role():
    blocks = split_thread_with_ranges("그냥 평범한 문장입니다")
    assert blocks[0].speaker == "UNKNOWN"
    assert has_explicit_role(blocks) is False
    assert block_role(blocks[0]) == "UNKNOWN"


def test_empty_thread_has_no_blocks():
    assert split_thread_with_ranges("") == []
