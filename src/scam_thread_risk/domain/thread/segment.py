"""Speaker-aware thread segmentation."""

from __future__ import annotations

from dataclasses import dataclass
import re

from scam_thread_risk.domain.thread.models import MessageBlock, Speaker

MAX_BLOCKS = 200

_SPEAKER_SHORT = re.compile(r"^(S|R)\s*[:：]\s*(.*)$", re.IGNORECASE | re.DOTALL)
_SPEAKER_WORD = re.compile(
    r"^(sender|receiver|발신|수신|가해자|사용자)\s*[:：]\s*(.*)$",
    re.IGNORECASE | re.DOTALL,
)
_RECIPIENT_WORDS = {"r", "receiver", "수신", "사용자"}

_HEADER_LINES = (
    re.compile(r"^\[\s*(오전|오후)?\s*\d{1,2}:\d{2}\s*\]"),
    re.compile(r"^\d{4}[.\-/]\d{1,2}[.\-/]\d{1,2}\s+(오전|오후)?\s*\d{1,2}:\d{2}"),
    re.compile(r"^\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}"),
    re.compile(r"^(오전|오후)?\s*\d{1,2}:\d{2}\s+.{1,40}:\s*"),
    re.compile(r"^\d{1,2}:\d{2}\s+.{1,40}:\s*"),
)

# Header prefix followed by an optional "name:" part; order matters.
_HEADER_PREFIXES = (
    re.compile(r"^\[\s*(?:오전|오후)?\s*\d{1,2}:\d{2}\s*\]\s*"),
    re.compile(r"^\d{4}[.\-/]\d{1,2}[.\-/]\d{1,2}\s+(?:오전|오후)?\s*\d{1,2}:\d{2}(?::\d{2})?\s*"),
    re.compile(r"^\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}(?::\d{2})?\s*"),
    re.compile(r"^(?:오전|오후)?\s*\d{1,2}:\d{2}\s+"),
)
_HEADER_NAME = re.compile(r"^([^:：/\n]{1,40}?)\s*[:：](?!//)\s*(.*)$", re.DOTALL)

_ROLE_SENDER = re.compile(r"^(s|발신|가해자|sender)\b", re.IGNORECASE)
_ROLE_RECIPIENT = re.compile(r"^(r|수신|사용자|receiver)\b", re.IGNORECASE)
_EXPLICIT_ROLE_TEXT = (
    re.compile(r"^\s*\[?\s*[sr]\s*\]?\s*[:：]", re.IGNORECASE),
    re.compile(r"^\s*(발신|가해자|sender|수신|사용자|receiver)\s*[:：]", re.IGNORECASE),
)


@dataclass(frozen=True)
class SegmentOptions:
    turn_prefix_enabled: bool = False
    auto_default_speaker: bool = False
    default_who: str = "S"

    @property
    def auto_speaker(self) -> bool:
        return self.turn_prefix_enabled and self.auto_default_speaker

    @property
    def default_speaker(self) -> Speaker:
        return "RECIPIENT" if str(self.default_who).strip().upper() == "R" else "SENDER"


@dataclass(frozen=True)
class ParsedBlock:
    header: str | None
    speaker_label: str | None
    content: str


def is_header_line(line: str) -> bool:
    value = line.strip()
    if not value:
        return False
    return any(pattern.search(value) for pattern in _HEADER_LINES)


def parse_speaker_prefix(line: str) -> tuple[Speaker, str] | None:
    """Return ``(speaker, rest)`` for ``S:``/``R:``-style marker lines."""

    value = line.lstrip()
    short = _SPEAKER_SHORT.match(value)
    if short:
        speaker: Speaker = "RECIPIENT" if short.group(1).upper() == "R" else "SENDER"
        return speaker, short.group(2)
    word = _SPEAKER_WORD.match(value)
    if word:
        speaker = "RECIPIENT" if word.group(1).lower() in _RECIPIENT_WORDS else "SENDER"
        return speaker, word.group(2)
    return None


def _header_name(line: str) -> tuple[str | None, str]:
    value = line.strip()
    for prefix in _HEADER_PREFIXES:
        match = prefix.match(value)
        if not match:
            continue
        rest = value[match.end() :]
        named = _HEADER_NAME.match(rest)
        if named and named.group(1).strip():
            return named.group(1).strip(), named.group(2).strip()
        return None, rest.strip()
    return None, value


def split_thread_with_ranges(
    text: str,
    options: SegmentOptions | None = None,
    *,
    limit: int = MAX_BLOCKS,
) -> list[MessageBlock]:
    """Split a normalized thread into message blocks with character offsets."""

    opts = options or SegmentOptions()
    source = (text or "").replace("\r\n", "\n")
    if not source.strip():
        return []

    blocks: list[MessageBlock] = []
    lines: list[str] = []
    start = -1
    end = -1
    speaker: Speaker = "UNKNOWN"
    label: str | None = None

    def flush() -> None:
        nonlocal lines, start, end, speaker, label
        joined = "\n".join(lines).strip()
        if joined:
            blocks.append(
                MessageBlock(
                    index=len(blocks) + 1,
                    text=joined,
                    speaker=speaker,
                    start_offset=start,
                    end_offset=end,
                    speaker_label=label,
                )
            )
        lines = []
        start = -1
        end = -1
        speaker = "UNKNOWN"
        label = None

    pos = 0
    for raw_line in source.split("\n"):
        line_start = pos
        line_end = pos + len(raw_line)
        pos = line_end + 1

        if not raw_line.strip():
            flush()
            continue

        line = raw_line.rstrip()
        stripped = line.strip()
        marker = parse_speaker_prefix(stripped)
        if marker is None and opts.auto_speaker:
            marker = (opts.default_speaker, stripped)
        header = is_header_line(stripped)

        if (marker is not None or header) and lines:
            flush()

        if not lines:
            start = line_start
            speaker = marker[0] if marker is not None else "UNKNOWN"
            if header:
                label = _header_name(stripped)[0]

        lines.append(line)
        end = line_end

    flush()
    return blocks[:limit]


def split_thread(text: str, options: SegmentOptions | None = None) -> list[str]:
    return [block.text for block in split_thread_with_ranges(text, options)]


def parse_header_and_content(block_text: str) -> ParsedBlock:
    """Separate a speaker marker or chat header from the message body."""

    raw = (block_text or "").replace("\r\n", "\n").strip()
    if not raw:
        return ParsedBlock(header=None, speaker_label=None, content="")

    first, _, remainder = raw.partition("\n")
    first = first.strip()
    rest = [item for item in remainder.split("\n") if item] if remainder else []

    short = _SPEAKER_SHORT.match(first)
    word = _SPEAKER_WORD.match(first)
    if short or word:
        if short:
            who = "R" if short.group(1).upper() == "R" else "S"
            after = short.group(2).strip()
        else:
            who = "R" if word.group(1).lower() in _RECIPIENT_WORDS else "S"
            after = word.group(2).strip()
        body = "\n".join(item for item in [after, *rest] if item).strip()
        return ParsedBlock(header=None, speaker_label=who, content=body or after)

    if is_header_line(first):
        name, after = _header_name(first)
        body = "\n".join(item for item in [after, *rest] if item).strip()
        return ParsedBlock(header=first, speaker_label=name, content=body or after)

    return ParsedBlock(header=None, speaker_label=None, content=raw)


def role_from_label(label: str | None) -> Speaker:
    value = (label or "").strip()
    if _ROLE_SENDER.search(value):
        return "SENDER"
    if _ROLE_RECIPIENT.search(value):
        return "RECIPIENT"
    return "UNKNOWN"


def block_role(block: MessageBlock, parsed: ParsedBlock | None = None) -> Speaker:
    if block.speaker != "UNKNOWN":
        return block.speaker
    parsed = parsed or parse_header_and_content(block.text)
    return role_from_label(parsed.speaker_label)


def has_explicit_role(blocks: list[MessageBlock]) -> bool:
    for block in blocks:
        if block.speaker != "UNKNOWN":
            return True
        if any(pattern.search(block.text) for pattern in _EXPLICIT_ROLE_TEXT):
            return True
    return False


__all__ = [
    "MAX_BLOCKS",
    "ParsedBlock",
    "SegmentOptions",
    "block_role",
    "has_explicit_role",
    "is_header_line",
    "parse_header_and_content",
    "parse_speaker_prefix",
    "role_from_label",
    "split_thread",
    "split_thread_with_ranges",
]
