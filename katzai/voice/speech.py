"""Text preparation for speech playback."""

from __future__ import annotations

import re

_CODE_FENCE = re.compile(r"```.*?```", re.DOTALL)
_LINK = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_HEADING = re.compile(r"^\s{0,3}#{1,6}\s*", re.MULTILINE)
_BULLET = re.compile(r"^\s*(?:[-*+•]|\d+[.)])\s+", re.MULTILINE)
_EMPHASIS = re.compile(r"(\*\*|\*|~~|`)(.+?)\1")
_MULTI_NEWLINE = re.compile(r"\n\s*\n+")


def speech_text(text: str) -> str:
    """Strip markdown so a synthesizer reads only the words."""

    cleaned = _CODE_FENCE.sub(" ", text)
    cleaned = _LINK.sub(r"\1", cleaned)
    cleaned = _HEADING.sub("", cleaned)
    cleaned = _BULLET.sub("", cleaned)
    cleaned = _EMPHASIS.sub(r"\2", cleaned)
    cleaned = cleaned.replace("*", "").replace("#", "")
    cleaned = _MULTI_NEWLINE.sub("\n", cleaned)
    lines = [" ".join(line.split()) for line in cleaned.splitlines()]
    return "\n".join(line for line in lines if line).strip()
