# FILE: paperink/services/text_sanitizer.py

import re
from typing import Optional

_DASHES = re.compile(r"[—–]")
_HSPACE_RUN = re.compile(r"[ \t]{2,}")
_SPACE_BEFORE_PUNCT = re.compile(r"\s+([,.;:!?])")
_LINE_BREAK = re.compile(r"\r?\n")
_BLANK_RUN = re.compile(r"\n{3,}")

# (pattern, replacement) applied in order so every `, . ! ?` is followed by one space
_SPACE_AFTER = [
    (re.compile(r",\s*"), ", "),
    (re.compile(r"\.\s*"), ". "),
    (re.compile(r"!\s*"), "! "),
    (re.compile(r"\?\s*"), "? "),
]


def _clean_line(line: str) -> str:
    line = _HSPACE_RUN.sub(" ", line)
    line = _SPACE_BEFORE_PUNCT.sub(r"\1", line)
    for pattern, replacement in _SPACE_AFTER:
        line = pattern.sub(replacement, line)
    return line.strip()


def sanitize_story_text(text: Optional[str]) -> str:
    """
    Canonical form of story text, shared with the reader on the client.

    Dashes become commas, spacing around punctuation is normalised line by
    line, and runs of blank lines collapse to a single blank line.
    Never raises; None or "" gives "".
    """
    if not text:
        return ""

    text = _DASHES.sub(",", text)
    text = "\n".join(_clean_line(line) for line in _LINE_BREAK.split(text))
    text = _BLANK_RUN.sub("\n\n", text)
    return text.strip()
