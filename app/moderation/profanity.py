# app/moderation/profanity.py
from __future__ import annotations

from typing import Iterable, List, Optional

from app import config


def _ban_words(words: Optional[Iterable[str]]) -> List[str]:
    if words is None:
        words = config.BAN_WORDS_IN_BODY
    return [w for w in words if w]


def find_ban_words(text: str, words: Optional[Iterable[str]] = None) -> List[str]:
    """Configured words present in ``text`` as plain substrings, in config order."""
    t = text or ""
    return [w for w in _ban_words(words) if w in t]


def ban_word_violations(text: str, words: Optional[Iterable[str]] = None) -> List[str]:
    # one message per hit; a body with two banned words reports both
    return [f"敏感词 “{w}” 禁止发布！" for w in find_ban_words(text, words)]

