"""
Display helpers: LaTeX cleanup for markdown rendering, timestamps, and the
"conversation is getting long" hint.
"""

import math
import re
from datetime import datetime
from typing import List

from sveti_tutor.message import Message

SUGGEST_CLEAR_TOKENS = 3000

_SYMBOLS = [
    (r"\neq", "≠"),
    (r"\leq", "≤"),
    (r"\geq", "≥"),
    (r"\pm", "±"),
    (r"\times", "×"),
    (r"\div", "÷"),
]


def clean_latex_symbols(text: str) -> str:
    """
    Turn LaTeX the model sometimes emits into plain symbols while leaving
    markdown (headers, bold, lists) untouched.
    """
    if not text:
        return ""

    # Math delimiters
    for delimiter in (r"\[", r"\]", r"\(", r"\)"):
        text = text.replace(delimiter, "")

    for command, symbol in _SYMBOLS:
        text = re.sub(re.escape(command) + r"(?![a-zA-Z])", symbol, text)

    # \frac{a}{b} -> (a)/(b), also the doubled-brace variant
    text = re.sub(r"\\frac\{\{([^}]+)\}\}\{\{([^}]+)\}\}", r"(\1)/(\2)", text)
    text = re.sub(r"\\frac\{([^}]+)\}\{([^}]+)\}", r"(\1)/(\2)", text)

    # \sqrt{a} -> √(a)
    text = re.sub(r"\\sqrt\{\{([^}]+)\}\}", r"√(\1)", text)
    text = re.sub(r"\\sqrt\{([^}]+)\}", r"√(\1)", text)

    # Whatever LaTeX is left
    text = re.sub(r"\\[a-zA-Z]+", "", text)
    text = text.replace("\\\\", "")
    text = re.sub(r"\\(?![a-zA-Z])", "", text)

    text = text.replace("{{", "").replace("}}", "")
    text = re.sub(r"\{([^}]*)\}", r"\1", text)
    return text


def format_timestamp(timestamp: datetime) -> str:
    """12-hour clock in local time, e.g. "2:45 PM". Naive values are taken as local already."""
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone()
    hour = timestamp.hour % 12 or 12
    suffix = "AM" if timestamp.hour < 12 else "PM"
    return f"{hour}:{timestamp.minute:02d} {suffix}"


def estimate_tokens(text: str) -> int:
    """Rough approximation: 1 token ≈ 4 characters."""
    return math.ceil(len(text or "") / 4)


def should_suggest_clear(messages: List[Message]) -> bool:
    total = sum(estimate_tokens(msg.content) for msg in messages)
    return total > SUGGEST_CLEAR_TOKENS


def to_display(message: Message) -> dict:
    """Stored form plus the cleaned text and clock time a chat bubble shows."""
    data = message.to_dict()
    data["displayContent"] = clean_latex_symbols(message.content) if message.role.value == "assistant" else message.content
    data["displayTime"] = format_timestamp(message.timestamp)
    return data
