"""Replay-window construction for each new turn.

History arrives most-recent-first (the chat view order). The output is a
chronological list of role/content pairs, 10 messages long when the prompt
continues the current topic and 4 when it looks like a topic change.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from ollamachat.types import ChatMessage, HistoryEntry

FULL_WINDOW = 10
REDUCED_WINDOW = 4

RECENT_USER_MESSAGES = 3
MAX_RECENT_WORDS = 10
MIN_WORD_LEN = 3  # words must be strictly longer than this
MIN_PROMPT_WORDS = 2  # prompt needs strictly more qualifying words than this

TOPIC_CHANGE_MARKERS: tuple[str, ...] = (
    # contrastive connectives
    "pero",
    "sin embargo",
    "en cambio",
    "however",
    "but",
    "instead",
    # explicit subject changes
    "cambiando de tema",
    "cambiemos de tema",
    "otro tema",
    "otra cosa",
    "algo distinto",
    "algo diferente",
    "por cierto",
    "changing the subject",
    "change of subject",
    "different topic",
    "something else",
    "something different",
    "on another note",
    "by the way",
    "anyway",
    # questions about the assistant itself
    "quién eres",
    "quien eres",
    "qué modelo",
    "que modelo",
    "cómo te llamas",
    "como te llamas",
    "who are you",
    "what are you",
    "what model",
    "which model",
    "what is your name",
    "what's your name",
)

_MARKER_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(m) for m in TOPIC_CHANGE_MARKERS) + r")\b",
    re.IGNORECASE,
)
_WORD_RE = re.compile(r"\w+")


def _words(text: str) -> list[str]:
    return [w for w in _WORD_RE.findall(text.lower()) if len(w) > MIN_WORD_LEN]


def _replayable(history: Sequence[ChatMessage]) -> list[ChatMessage]:
    return [m for m in history if not m.pending and not m.greeting]


def has_topic_marker(prompt: str) -> bool:
    return _MARKER_RE.search(prompt) is not None


def is_topic_change(prompt: str, history: Sequence[ChatMessage]) -> bool:
    """Heuristic: does `prompt` leave the topic of the recent user messages?"""
    if has_topic_marker(prompt):
        return True

    recent_users = [m for m in _replayable(history) if m.is_user][:RECENT_USER_MESSAGES]
    recent_words: list[str] = []
    for message in recent_users:
        recent_words.extend(_words(message.text))
    recent_words = recent_words[:MAX_RECENT_WORDS]

    current_words = _words(prompt)
    if len(current_words) <= MIN_PROMPT_WORDS:
        return False

    # Substring containment in either direction, not exact token match.
    overlap = any(
        recent in word or word in recent
        for word in current_words
        for recent in recent_words
    )
    return not overlap


def window_size(prompt: str, history: Sequence[ChatMessage]) -> int:
    return REDUCED_WINDOW if is_topic_change(prompt, history) else FULL_WINDOW


def build_context(history: Sequence[ChatMessage], prompt: str) -> list[HistoryEntry]:
    """Chronological replay window for `prompt`.

    `history` is most-recent-first and must not include the prompt itself.
    """
    messages = _replayable(history)[: window_size(prompt, history)]
    return [
        HistoryEntry(role="user" if m.is_user else "assistant", content=m.text)
        for m in reversed(messages)
    ]
