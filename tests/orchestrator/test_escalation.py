import pytest

from scam_thread_risk.domain.thread.segment import split_thread_with_ranges
from scam_thread_risk.orchestrator.escalation import (
    EscalationPolicy,
    RecipientGate,
    classify_recipient_text,
    evaluate_recipient_gate,
    recipient_text,
    sender_only_text,
)


@pytest.mark.parametrize(
    ("text", "tag"),
    [
        ("이미 송금했어요", "r:done:pay"),
        ("문화상품권 핀번호 보냈어요", "r:done:pay"),
        ("팀뷰어 깔았어요", "r:done:install"),
        ("인증번호 알려줬어요", "r:done:otp"),
        ("안 할게요 신고했어요", "r:resist"),
        ("내일 이체할게요", "r:will:pay"),
        ("앱 설치할게요", "r:will:install"),
        ("인증번호 입력할게요", "r:will:otp"),
        ("은행 가볼게요", "r:will:visit"),
        ("이거 사기 맞나요?", "r:ask"),
        ("링크 눌렀어요", "r:already"),
        ("", ""),
    ],
)
def test_recipient_tags(text, tag):
    assert classify_recipient_text(text) == tag


def test_send_intent_needs_payment_context():
    assert classify_recipient_text("네 지금 보낼게요") == ""
    assert classify_recipient_text("네 지금 보낼게요", payment_context=True) == "r:will:pay"


def test_recipient_and_sender_text_split():
    blocks = split_thread_with_ranges("S: 링크 확인하세요\nR: 네\nS: 인증번호 보내세요\nR: 보냈어요")
    assert recipient_text(blocks) == "네 보냈어요"
    assert sender_only_text(blocks) == "링크 확인하세요\n인증번호 보내세요"


def test_sender_text_without_markers_drops_recipient_lines():
    blocks = split_thread_with_ranges("택배 조회하세요\nR: 이미 송금했어요")
    assert sender_only_text(blocks) == "택배 조회하세요"


def test_word_markers_and_continuation_lines_follow_blocks():
    blocks = split_thread_with_ranges(
        "발신: 본인 인증하세요\nhttps://bit.ly/kb-check\n수신: http://evil-kb.top 눌렀고 이미 송금했어요"
    )
    assert sender_only_text(blocks) == "본인 인증하세요\nhttps://bit.ly/kb-check"
    assert recipient_text(blocks) == "http://evil-kb.top 눌렀고 이미 송금했어요"


def test_completed_action_sets_floor():
    blocks = split_thread_with_ranges("R: 이미 송금했어요")
    gate = evaluate_recipient_gate(blocks)
    assert gate == RecipientGate(tag="r:done:pay", incident_floor=80.0)
    custom = evaluate_recipient_gate(blocks, EscalationPolicy(floor_pay=90))
    assert custom.incident_floor == 90


def test_already_does_not_show_intervention():
    assert RecipientGate(tag="r:already").shows_intervention is False
    assert RecipientGate(tag="r:ask").shows_intervention is True
    assert RecipientGate().shows_intervention is False
