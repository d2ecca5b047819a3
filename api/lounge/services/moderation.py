"""Chat moderation: rule matching, redaction and strike bookkeeping."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable

from .. import records
from ..storage.base import Storage

logger = logging.getLogger(__name__)

MASK_CHAR = "*"

# Evaluation order. Within a category, rules run in declaration order.
CATEGORY_PRIORITY = ("profanity", "hate_speech", "inappropriate", "concerning", "personal_info")

CUSTOM_CATEGORY = "custom"

REASONS = {
    "profanity": "Profanity detected",
    "hate_speech": "Hate speech detected",
    "inappropriate": "Inappropriate content detected",
    "concerning": "Concerning content detected",
    "personal_info": "Potential personal information sharing detected",
    CUSTOM_CATEGORY: "Blocked word detected",
}

BLOCKED_WORD_MATCH_TYPES = ("exact", "contains", "starts_with", "ends_with")

# Common character substitutions
_LEET = {
    "a": "a@4",
    "e": "e3",
    "i": "i1!",
    "o": "o0",
    "s": "s$5",
    "t": "t7",
}

# Word endings
_WHOLE = r"(?!\w)"
_ANY_SUFFIX = r"\w*"
_PLURAL = r"(?:e?s|ed)?(?!\w)"


def _letters(phrase: str, end: str) -> str:
    """Pattern for ``phrase`` tolerating repeated letters, look-alikes and padding."""
    words = []
    for word in phrase.split():
        letters = [f"[{re.escape(_LEET.get(c, c))}]+" for c in word]
        words.append(r"[\s_]*".join(letters))
    return r"(?<![\w$@!])" + r"[\s_]+".join(words) + end


@dataclass(frozen=True)
class ModerationRule:
    pattern: re.Pattern[str]
    category: str
    reason: str


@dataclass(frozen=True)
class ModerationResult:
    is_allowed: bool
    moderated_message: str
    reason: str | None = None
    moderation_type: str | None = None


def _rule(phrase: str, category: str, end: str = _WHOLE) -> ModerationRule:
    return ModerationRule(
        pattern=re.compile(_letters(phrase, end), re.IGNORECASE),
        category=category,
        reason=REASONS[category],
    )


_RULES = [
    _rule("fuck", "profanity", _ANY_SUFFIX),
    _rule("shit", "profanity", _ANY_SUFFIX),
    _rule("ass", "profanity", _PLURAL),
    _rule("bitch", "profanity", _ANY_SUFFIX),
    _rule("cunt", "profanity", _PLURAL),
    _rule("dick", "profanity", _PLURAL),
    _rule("cock", "profanity", _PLURAL),
    _rule("pussy", "profanity"),
    _rule("whore", "profanity", _PLURAL),
    _rule("nigger", "hate_speech", _PLURAL),
    _rule("nigga", "hate_speech", _PLURAL),
    _rule("faggot", "hate_speech", _PLURAL),
    _rule("retard", "hate_speech", _PLURAL),
    _rule("spastic", "hate_speech", _PLURAL),
    _rule("porn", "inappropriate", _ANY_SUFFIX),
    _rule("xvideos", "inappropriate"),
    _rule("onlyfans", "inappropriate"),
    _rule("sexy", "inappropriate"),
    _rule("sex", "inappropriate"),
    _rule("suicide", "concerning", _PLURAL),
    _rule("kill myself", "concerning"),
    _rule("hang myself", "concerning"),
    _rule("jump off", "concerning"),
    _rule("address", "personal_info", _PLURAL),
    _rule("phone number", "personal_info", _PLURAL),
    _rule("credit card", "personal_info", _PLURAL),
    _rule("password", "personal_info", _PLURAL),
    _rule("ssn", "personal_info"),
    _rule("social security", "personal_info"),
]

# Stable sort keeps declaration order inside each category
RULES: tuple[ModerationRule, ...] = tuple(
    sorted(_RULES, key=lambda r: CATEGORY_PRIORITY.index(r.category))
)


def blocked_word_rule(word: records.BlockedWord) -> ModerationRule:
    term = re.escape(word.word.strip())
    if word.match_type == "contains":
        pattern = rf"\w*{term}\w*"
    elif word.match_type == "starts_with":
        pattern = rf"(?<!\w){term}\w*"
    elif word.match_type == "ends_with":
        pattern = rf"\w*{term}(?!\w)"
    else:
        pattern = rf"(?<!\w){term}(?!\w)"
    return ModerationRule(
        pattern=re.compile(pattern, re.IGNORECASE),
        category=CUSTOM_CATEGORY,
        reason=REASONS[CUSTOM_CATEGORY],
    )


def _mask(match: re.Match[str]) -> str:
    return MASK_CHAR * len(match.group(0))


def check(content: str, blocked_words: Iterable[records.BlockedWord] = ()) -> ModerationResult:
    """
    Classify ``content`` without touching storage.

    The first matching rule wins: every occurrence of that rule's pattern is
    masked and only its category is reported, even when later rules would
    also match.
    """
    rules = list(RULES) + [blocked_word_rule(w) for w in blocked_words if w.word.strip()]
    for rule in rules:
        if rule.pattern.search(content):
            return ModerationResult(
                is_allowed=False,
                moderated_message=rule.pattern.sub(_mask, content),
                reason=rule.reason,
                moderation_type=rule.category,
            )
    return ModerationResult(is_allowed=True, moderated_message=content)


class ModerationEngine:
    """Runs ``check`` and records violations against the author."""

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    def moderate(self, content: str, user_id: int, username: str) -> ModerationResult:
        result = check(content, self.storage.list_blocked_words())
        if result.is_allowed:
            return result

        self.storage.create_moderation_log(
            user_id=user_id,
            username=username,
            original_message=content,
            reason=result.reason or "",
            moderation_type=result.moderation_type or "",
        )
        strike = self.storage.increment_user_strikes(user_id, username)
        logger.info(
            f"Moderated message from user {user_id} ({result.moderation_type}), "
            f"strikes now {strike.strikes_count}"
        )
        if strike.is_chat_restricted:
            logger.warning(f"User {user_id} ({username}) is restricted from chat")
        return result
