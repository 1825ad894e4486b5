"""Select which message blocks of a long thread are scored."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
import re
from typing import Literal

from scam_thread_risk.domain.evidence import ContextWindowMeta
from scam_thread_risk.domain.thread.models import CallChecks, MessageBlock
from scam_thread_risk.domain.thread.segment import block_role, has_explicit_role, parse_header_and_content
from scam_thread_risk.rules.cues import has_strong_action_demand

ContextMode = Literal["auto", "rolling", "sticky"]

_ISO_STAMP = re.compile(r"^(\d{4})-(\d{2})-(\d{2})[ T](\d{2}):(\d{2})(?::(\d{2}))?")
_DOTTED_STAMP = re.compile(r"^(\d{4})[.\-/](\d{1,2})[.\-/](\d{1,2})\s+(오전|오후)?\s*(\d{1,2}):(\d{2})")


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, int(value)))


@dataclass(frozen=True)
class ContextWindowOptions:
    mode: ContextMode = "sticky"
    max_messages: int = 20
    max_sticky: int = 200
    backtrack: int = 4
    max_days: int = 3

    def clamped(self) -> ContextWindowOptions:
        mode: ContextMode = self.mode if self.mode in ("auto", "rolling", "sticky") else "sticky"
        return ContextWindowOptions(
            mode=mode,
            max_messages=_clamp(self.max_messages, 5, 80),
            max_sticky=_clamp(self.max_sticky, 40, 300),
            backtrack=_clamp(self.backtrack, 0, 12),
            max_days=_clamp(self.max_days, 1, 14),
        )


def parse_timestamp(line: str) -> datetime | None:
    """Parse a leading ``yyyy-mm-dd HH:MM[:SS]`` or ``yyyy.m.d (오전|오후) h:mm`` stamp."""

    value = (line or "").strip()
    if not value:
        return None
    match = _ISO_STAMP.match(value)
    if match:
        year, month, day, hour, minute = (int(item) for item in match.group(1, 2, 3, 4, 5))
        second = int(match.group(6) or 0)
        try:
            return datetime(year, month, day, hour, minute, second)
        except ValueError:
            return None
    match = _DOTTED_STAMP.match(value)
    if match:
        year, month, day = (int(item) for item in match.group(1, 2, 3))
        meridiem = match.group(4) or ""
        hour, minute = int(match.group(5)), int(match.group(6))
        if meridiem == "오후" and hour < 12:
            hour += 12
        if meridiem == "오전" and hour == 12:
            hour = 0
        try:
            return datetime(year, month, day, hour, minute)
        except ValueError:
            return None
    return None


def _tail(blocks: Sequence[MessageBlock], cap: int) -> list[MessageBlock]:
    return list(blocks[-cap:]) if len(blocks) > cap else list(blocks)


def _meta(mode: ContextMode, kept: Sequence[MessageBlock], total: int, reason: str) -> ContextWindowMeta:
    return ContextWindowMeta(mode=mode, kept=len(kept), dropped=total - len(kept), reason=reason)


def has_sender_roles(blocks: Sequence[MessageBlock]) -> bool:
    """Explicit speaker roles, judged on non-recipient blocks only."""

    return has_explicit_role([block for block in blocks if block_role(block) != "RECIPIENT"])


def includes_in_threat(explicit: bool, role: str, actor_hint: str) -> bool:
    if role == "RECIPIENT":
        return False
    if explicit:
        return role == "SENDER" or (role == "UNKNOWN" and actor_hint == "demand")
    return actor_hint != "comply"


def _span(blocks: Sequence[MessageBlock], positions: Sequence[int], first: int, stop: int) -> list[MessageBlock]:
    """Blocks from ``positions[first]`` up to, not including, ``positions[stop]``.

    Recipient blocks ride along with the sender blocks around them and never
    count toward a window size.
    """

    start = 0 if first == 0 else positions[first]
    end = positions[stop] if stop < len(positions) else len(blocks)
    return list(blocks[start:end])


def _first_strong(blocks: Sequence[MessageBlock], positions: Sequence[int]) -> int:
    for rank, position in enumerate(positions):
        block = blocks[position]
        content = parse_header_and_content(block.text).content or block.text
        if has_strong_action_demand(content):
            return rank
    return -1


def select_context_window(
    blocks: Sequence[MessageBlock],
    call: CallChecks | None = None,
    options: ContextWindowOptions | None = None,
) -> tuple[list[MessageBlock], ContextWindowMeta]:
    opts = (options or ContextWindowOptions()).clamped()
    total = len(blocks)
    positions = [position for position, block in enumerate(blocks) if block_role(block) != "RECIPIENT"]
    count = len(positions)

    if not positions:
        kept = _tail(blocks, opts.max_sticky)
        return kept, _meta(opts.mode, kept, total, "recipient-only")

    if opts.mode == "sticky":
        kept = _span(blocks, positions, max(0, count - opts.max_sticky), count)
        return kept, _meta(opts.mode, kept, total, "sticky")

    if opts.mode == "rolling":
        kept = _span(blocks, positions, max(0, count - opts.max_messages), count)
        return kept, _meta(opts.mode, kept, total, f"rolling:{opts.max_messages}")

    strong_by_call = bool(call and (call.otp_asked or call.remote_asked))
    first_strong = _first_strong(blocks, positions)
    if strong_by_call or first_strong >= 0:
        anchor = first_strong if first_strong >= 0 else count - opts.max_sticky
        # never narrower than the weak window, and clamp the head rather than the tail
        first = max(0, min(anchor - opts.backtrack, count - opts.max_messages))
        kept = _span(blocks, positions, first, min(count, first + opts.max_sticky))
        if first_strong >= 0:
            reason = f"auto:strong@{blocks[positions[first_strong]].index}"
        else:
            reason = "auto:strong(call)"
        return kept, _meta(opts.mode, kept, total, reason)

    kept = _span(blocks, positions, max(0, count - opts.max_messages), count)
    stamps: list[tuple[int, datetime]] = []
    for block in kept:
        if block_role(block) == "RECIPIENT":
            continue
        stamp = parse_timestamp(block.text.split("\n", 1)[0])
        if stamp is not None:
            stamps.append((block.index, stamp))

    if len(stamps) >= 2:
        cutoff = max(stamp for _, stamp in stamps) - timedelta(days=opts.max_days)
        recent = [index for index, stamp in stamps if stamp >= cutoff]
        if recent:
            min_index = min(recent)
            windowed = [block for block in kept if block.index >= min_index]
            kept = windowed or kept
            reason = f"auto:weak(maxMessages={opts.max_messages},maxDays={opts.max_days})"
            return kept, _meta(opts.mode, kept, total, reason)

    return kept, _meta(opts.mode, kept, total, f"auto:weak(maxMessages={opts.max_messages})")


__all__ = [
    "ContextMode",
    "ContextWindowOptions",
    "has_sender_roles",
    "includes_in_threat",
    "parse_timestamp",
    "select_context_window",
]
