"""
Text helpers shared by the reply pipeline and the conversation flow.

Language detection, prompt-injection sanitizing, markup stripping,
clamping and PII masking.
"""

import re
from typing import Literal

Language = Literal["en", "km"]

KHMER_CHARS = re.compile("[\u1780-\u17FF]")

ROMANIZED_KHMER_PATTERNS = [
    re.compile(r"\b(ban|mean|ot|te|min|na|tae|nih|nuh|som|jol|chit|cher|del|aoy)\b", re.IGNORECASE),
    re.compile(r"\b(khnhom|neak|bong|oun|pros|srey|kmeng)\b", re.IGNORECASE),
    re.compile(r"\b(tngai|yub|pel)\b", re.IGNORECASE),
]

CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F]")
REPEATED_SPECIALS = re.compile(r"([^\w\s])\1{4,}")
INSTRUCTION_OVERRIDE = re.compile(
    r"\b(ignore|disregard|forget)\s+(previous|all|above)\s+(instructions|prompts?|rules?)",
    re.IGNORECASE,
)
# Telegram file URLs carry the bot token: /file/bot<token>/<path>
BOT_TOKEN_PATTERN = re.compile(r"/bot[^/]+/")

MARKDOWN_RULES = [
    (re.compile(r"\*\*(.+?)\*\*", re.DOTALL), r"\1"),
    (re.compile(r"__(.+?)__", re.DOTALL), r"\1"),
    (re.compile(r"~~(.+?)~~", re.DOTALL), r"\1"),
    (re.compile(r"```(?:[\w-]*\n)?(.*?)```", re.DOTALL), r"\1"),
    (re.compile(r"`([^`]+)`"), r"\1"),
    (re.compile(r"(?<![\w*])\*(?!\s)([^*\n]+?)\*(?![\w*])"), r"\1"),
    (re.compile(r"(?<![\w_])_(?!\s)([^_\n]+?)_(?![\w_])"), r"\1"),
    (re.compile(r"^#{1,6}\s+", re.MULTILINE), ""),
]


def detect_language(text: str | None) -> Language:
    """
    Detect reply language from a user message.

    Returns 'km' for Khmer script or common romanized Khmer words,
    otherwise 'en'.
    """
    if not text or not text.strip():
        return "en"

    if KHMER_CHARS.search(text):
        return "km"

    if any(pattern.search(text) for pattern in ROMANIZED_KHMER_PATTERNS):
        return "km"

    return "en"


def clamp_text(text: str | None, max_chars: int, suffix: str = "…") -> str:
    """Trim and truncate text to max_chars, appending suffix when cut."""
    trimmed = (text or "").strip()
    if len(trimmed) <= max_chars:
        return trimmed
    return trimmed[:max_chars] + suffix


def sanitize_input(text: str | None) -> str:
    """Remove control characters, collapse symbol runs, neutralize override phrasing."""
    if not text:
        return ""
    cleaned = CONTROL_CHARS.sub("", text)
    cleaned = REPEATED_SPECIALS.sub(r"\1\1\1", cleaned)
    cleaned = INSTRUCTION_OVERRIDE.sub("[filtered]", cleaned)
    return cleaned.strip()


def strip_markdown(text: str) -> str:
    """Remove rich-text markup that messengers render literally."""
    for pattern, replacement in MARKDOWN_RULES:
        text = pattern.sub(replacement, text)
    return text.strip()


def mask_phone(phone: str | None) -> str:
    """Mask a phone number for logs, keeping the last four digits."""
    if not phone:
        return "[none]"
    digits = re.sub(r"\D", "", phone)
    return f"****{digits[-4:]}" if digits else "****"


def mask_email(email: str | None) -> str:
    """Mask the local part of an email address."""
    if not email or "@" not in email:
        return "[none]"
    local, domain = email.split("@", 1)
    return f"{local[:1]}***@{domain}"


def redact_url(text: str) -> str:
    """Mask bot tokens in a URL or in an error message that quotes one."""
    return BOT_TOKEN_PATTERN.sub("/bot***/", text or "")
