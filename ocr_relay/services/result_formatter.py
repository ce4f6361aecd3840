r"""Result Formatter — turn the model's free-text answer into a typed result.

Business Rules:
  - No content from upstream → FAILURE_TEXT, returned as type "text"
  - Advanced mode → answer returned untouched (caller owns the prompt)
  - ≤ 10 chars and purely [A-Za-z0-9] → CAPTCHA, uppercased
  - Anything else → text cleanups:
      full-width \（ \） → \( \)
      3+ newlines → one blank line
      whitespace hugging $ delimiters removed
      outer whitespace trimmed

Called by: services/recognition_service.py
Depends on: nothing (pure functions)
"""

from __future__ import annotations

import re
from dataclasses import dataclass

FAILURE_TEXT = "识别失败"
CAPTCHA_MAX_LENGTH = 10

_CAPTCHA_RE = re.compile(r"[A-Za-z0-9]+")
_EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")
_SPACE_AFTER_DOLLAR_RE = re.compile(r"\$\s+")
_SPACE_BEFORE_DOLLAR_RE = re.compile(r"\s+\$")


@dataclass(frozen=True)
class RecognitionResult:
    result: str
    type: str = "text"

    def to_dict(self) -> dict:
        return {"success": True, "result": self.result, "type": self.type}


def extract_content(data) -> str:
    """Pull choices[0].message.content out of a chat-completion body."""
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return FAILURE_TEXT
    if not content:
        return FAILURE_TEXT
    return content if isinstance(content, str) else str(content)


def is_captcha(text: str) -> bool:
    return (
        text != FAILURE_TEXT
        and len(text) <= CAPTCHA_MAX_LENGTH
        and _CAPTCHA_RE.fullmatch(text) is not None
    )


def clean_text(text: str) -> str:
    """Normalize math delimiters and blank lines in recognized text."""
    text = text.replace("\\（", "\\(").replace("\\）", "\\)")
    text = _EXCESS_NEWLINES_RE.sub("\n\n", text)
    text = _SPACE_AFTER_DOLLAR_RE.sub("$", text)
    text = _SPACE_BEFORE_DOLLAR_RE.sub("$", text)
    return text.strip()


def format_result(text: str, advanced_mode: bool = False) -> RecognitionResult:
    if advanced_mode or text == FAILURE_TEXT:
        return RecognitionResult(text, "text")
    if is_captcha(text):
        return RecognitionResult(text.upper(), "captcha")
    return RecognitionResult(clean_text(text), "text")
