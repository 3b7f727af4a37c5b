"""Deny/keep pattern evaluation for clipboard entries.

Deny patterns mark entries for immediate removal. Keep patterns exempt
entries from age-based expiry. Both sets are compiled once at startup
and never mutated afterwards.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum


class Verdict(Enum):
    """Classification of a clipboard entry against the pattern sets.

    Attributes:
        DENY: Matches a deny pattern; remove on sight regardless of age.
        KEEP: Matches a keep pattern only; never expired by age.
        NEUTRAL: Matches neither set; subject to normal expiry.
    """

    DENY = "deny"
    KEEP = "keep"
    NEUTRAL = "neutral"


class PatternError(Exception):
    """Base exception for pattern errors."""


class InvalidPatternError(PatternError):
    """Raised when a configured pattern is not a valid regular expression.

    Attributes:
        key: Configuration key the pattern came from.
        pattern: The offending pattern text.
        reason: Error reported by the regex compiler.
    """

    def __init__(self, key: str, pattern: str, reason: str) -> None:
        self.key = key
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"{key}: invalid regex {pattern!r}: {reason}")


def compile_patterns(patterns: Iterable[str], key: str) -> tuple[re.Pattern[str], ...]:
    """Compile a sequence of regular expressions, preserving order.

    Args:
        patterns: Pattern strings to compile.
        key: Configuration key used in error messages.

    Returns:
        Tuple of compiled patterns.

    Raises:
        InvalidPatternError: On the first pattern that fails to compile.
    """
    compiled: list[re.Pattern[str]] = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as e:
            raise InvalidPatternError(key, pattern, str(e)) from e
    return tuple(compiled)


@dataclass(frozen=True, slots=True)
class PatternFilter:
    """Immutable deny/keep pattern sets.

    Matching is an unanchored search against the raw entry text. No case
    folding or whitespace normalization is applied. An entry matching both
    sets is classified as DENY.

    Attributes:
        deny: Patterns that cause immediate removal.
        keep: Patterns that exempt an entry from age-based expiry.

    Example:
        >>> f = PatternFilter.from_patterns(deny=["^ssh-ed25519"], keep=["keep this"])
        >>> f.classify("ssh-ed25519 AAAA")
        <Verdict.DENY: 'deny'>
    """

    deny: tuple[re.Pattern[str], ...] = ()
    keep: tuple[re.Pattern[str], ...] = ()

    @classmethod
    def from_patterns(
        cls,
        deny: Iterable[str] = (),
        keep: Iterable[str] = (),
    ) -> "PatternFilter":
        """Compile pattern strings into a filter.

        Args:
            deny: Regex strings for always-remove entries.
            keep: Regex strings for never-expire entries.

        Returns:
            A new PatternFilter.

        Raises:
            InvalidPatternError: If any pattern fails to compile.
        """
        return cls(
            deny=compile_patterns(deny, "always_remove_patterns"),
            keep=compile_patterns(keep, "never_remove_patterns"),
        )

    def is_denied(self, text: str) -> bool:
        """Check if text matches any deny pattern."""
        return any(p.search(text) for p in self.deny)

    def is_kept(self, text: str) -> bool:
        """Check if text matches any keep pattern."""
        return any(p.search(text) for p in self.keep)

    def classify(self, text: str) -> Verdict:
        """Classify clipboard text against both pattern sets.

        Args:
            text: Raw clipboard entry text.

        Returns:
            DENY if any deny pattern matches, else KEEP if any keep
            pattern matches, else NEUTRAL.
        """
        if self.is_denied(text):
            return Verdict.DENY
        if self.is_kept(text):
            return Verdict.KEEP
        return Verdict.NEUTRAL
