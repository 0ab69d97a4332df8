"""
Pattern-based intent detection for conversation turns.
"""

import re

GREETING_PATTERN = re.compile(
    r"^(hi|hello|hey|yo|sup|good\s*(morning|afternoon|evening)|hola|bonjour|សួស្តី)[!.,\s]*$",
    re.IGNORECASE,
)

# Short utterances that refer to something already shown
CONFIRM_KEYWORDS = [
    "i'll take",
    "i will take",
    "i want this",
    "i want that",
    "buy this",
    "buy that",
    "yes",
    "confirm",
]
CONFIRM_MAX_LENGTH = 100

AFFIRMATIVE_TOKENS = {"yes", "y", "confirm", "ok", "okay", "បាទ", "ចាស", "បាទ/ចាស"}
NEGATIVE_TOKENS = {"no", "n", "cancel", "ទេ"}
EDIT_TOKENS = {"edit", "update", "change"}
EMAIL_SKIP_TOKEN = "."

PRODUCT_QUERY_PATTERN = re.compile(
    r"\b(product|shoe|sneaker|item|what.*have|show|looking for|buy|purchase|available|"
    r"pant|shirt|jacket|dress|wear|similar|like this)\b",
    re.IGNORECASE,
)


def _normalize(text: str) -> str:
    return text.strip().lower().rstrip("!. ")


def is_greeting(text: str) -> bool:
    """Bare greeting or a message too short to mean anything."""
    text = text.strip()
    return len(text) < 2 or bool(GREETING_PATTERN.match(text.lower()))


def is_likely_confirmation(text: str) -> bool:
    """Deictic confirmation such as "I'll take it"."""
    lower = text.lower()
    return len(lower) < CONFIRM_MAX_LENGTH and any(k in lower for k in CONFIRM_KEYWORDS)


def is_affirmative(text: str) -> bool:
    return _normalize(text) in AFFIRMATIVE_TOKENS


def is_negative(text: str) -> bool:
    return _normalize(text) in NEGATIVE_TOKENS


def is_edit(text: str) -> bool:
    return _normalize(text) in EDIT_TOKENS


def is_email_skip(text: str) -> bool:
    return text.strip() == EMAIL_SKIP_TOKEN or "skip" in text.lower()


def is_product_query(text: str) -> bool:
    return bool(PRODUCT_QUERY_PATTERN.search(text))
