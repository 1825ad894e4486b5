"""Whitespace normalization for pasted message threads."""

from __future__ import annotations

import re

_SPACE_RUN = re.compile(r"[ \u00a0]+")
_NEWLINE_RUN = re.compile(r"\n{3,}")


def normalize_text(raw: str | None) -> str:
    """Unify line endings, collapse blank-line runs and trim."""

    text = (raw or "").replace("\r\n", "\n").replace("\r", "\n")
    text = text.replace("\t", " ")
    text = _SPACE_RUN.sub(" ", text)
    text = _NEWLINE_RUN.sub("\n\n", text)
    return text.strip()
