"""Recommended actions and the copyable report package."""

from __future__ import annotations

from collections.abc import Sequence

from scam_thread_risk.domain.evidence import ActionItem, EvidenceItem, RiskLevel, SignalSummary


def default_actions() -> list[ActionItem]:
    return [
        ActionItem(
            id="call-112",
            label="Call 112 (Police)",
            kind="call",
            href="tel:112",
            note="If money transfer or install happened, call immediately.",
        ),
        ActionItem(id="call-1332", label="Call 1332 (FSS)", kind="call", href="tel:1332", note="Financial scam 상담/제보"),
        ActionItem(
            id="call-118",
            label="Call 118 (KISA)",
            kind="call",
            href="tel:118",
            note="Malicious link / hacking incident 상담",
        ),
        ActionItem(
            id="freeze",
            label="Freeze account / card",
            kind="info",
            note="Bank/issuer official channel only. Stop OTP sharing.",
        ),
        ActionItem(
            id="device",
            label="Check device for remote app",
            kind="info",
            note="Uninstall unknown apps, revoke accessibility/administrator permissions.",
        ),
        ActionItem(
            id="copy-pack",
            label="Copy report package",
            kind="info",
            note="Paste the package into a 112/1332/carrier report.",
        ),
    ]


def format_number(value: float) -> str:
    number = round(float(value), 2)
    if number == int(number):
        return str(int(number))
    return f"{number:g}"


def build_package_text(
    *,
    risk_level: RiskLevel,
    score_total: float,
    message_count: int,
    evidence_top3: Sequence[EvidenceItem],
    signals_top: Sequence[SignalSummary],
    actions: Sequence[ActionItem],
) -> str:
    lines = [
        "[피싱 의심 분석 패키지]",
        f"- 위험도: {risk_level.upper()} ({format_number(score_total)}/100)",
        f"- 메시지 블록 수: {message_count}",
        "",
        "[핵심 증거 Top3]",
    ]
    lines.extend(f"{position}. {item.text}" for position, item in enumerate(evidence_top3, start=1))
    lines.append("")
    lines.append("[상세 신호(요약)]")
    for signal in signals_top:
        label = (signal.label or signal.id).strip()
        if label:
            lines.append(f"- {label} (+{format_number(signal.weight_sum)}, {signal.count} hits)")
    lines.append("")
    lines.append("[권장 행동]")
    lines.extend(f"- {action.label}" for action in actions)
    return "\n".join(lines)


__all__ = ["build_package_text", "default_actions", "format_number"]
