"""
Duplicate and near-duplicate command filter.
"""
import logging

from .models import RecentCommandEntry, VoiceCommand

logger = logging.getLogger(__name__)


def levenshtein_distance(first: str, second: str) -> int:
    """
    Minimum number of single-character edits turning one string into another.

    Args:
        first: First string
        second: Second string

    Returns:
        Edit distance
    """
    if len(first) < len(second):
        first, second = second, first
    if not second:
        return len(first)

    previous = list(range(len(second) + 1))
    for i, char_a in enumerate(first, start=1):
        current = [i]
        for j, char_b in enumerate(second, start=1):
            if char_a == char_b:
                current.append(previous[j - 1])
            else:
                current.append(min(previous[j - 1], previous[j], current[j - 1]) + 1)
        previous = current
    return previous[-1]


def calculate_similarity(first: str, second: str) -> float:
    """
    Normalized similarity between two strings.

    ``1 - distance / max(len)``; two empty strings are identical (1.0) and an
    empty string against a non-empty one scores 0.0.

    Args:
        first: First string
        second: Second string

    Returns:
        Similarity score between 0 and 1
    """
    if first == second:
        return 1.0
    if not first or not second:
        return 0.0

    max_length = max(len(first), len(second))
    return 1.0 - levenshtein_distance(first, second) / max_length


def normalize_text(text: str) -> str:
    """Lowercase and trim command text."""
    return (text or "").lower().strip()


class DuplicateFilter:
    """
    Filters commands repeated within a time window.

    Keeps the normalized text of recently accepted commands and flags a new
    command whose text matches one of them exactly or is at least
    ``similarity_threshold`` similar to it.
    """

    def __init__(
        self,
        window_ms: float,
        similarity_threshold: float,
        enabled: bool = True,
    ):
        """
        Initialize the filter.

        Args:
            window_ms: How long a command is remembered, in milliseconds
            similarity_threshold: Similarity at or above which texts match
            enabled: Whether filtering is enabled
        """
        self.window_ms = window_ms
        self.similarity_threshold = similarity_threshold
        self.enabled = enabled
        self._recent: list[RecentCommandEntry] = []

    def _prune(self, now: float) -> None:
        self._recent = [
            entry for entry in self._recent
            if now - entry.timestamp < self.window_ms
        ]

    def is_duplicate(self, command: VoiceCommand, now: float) -> bool:
        """
        Check a command against the recent list.

        A command that is not a duplicate is remembered, so this call has a
        side effect. Commands with no text are never duplicates and are not
        remembered.

        Args:
            command: Command to check
            now: Current time in milliseconds

        Returns:
            True if the command repeats a recent one, False otherwise
        """
        if not self.enabled:
            return False

        text = normalize_text(command.text)
        if not text:
            return False

        self._prune(now)

        if any(entry.normalized_text == text for entry in self._recent):
            return True

        for entry in self._recent:
            similarity = calculate_similarity(text, entry.normalized_text)
            if similarity >= self.similarity_threshold:
                logger.debug(
                    f"'{text}' is {similarity:.2f} similar to '{entry.normalized_text}'"
                )
                return True

        self._recent.append(
            RecentCommandEntry(
                normalized_text=text,
                timestamp=now,
                confidence=command.confidence,
            )
        )
        return False

    def reset(self) -> None:
        self._recent.clear()

    @property
    def recent_count(self) -> int:
        """Number of remembered commands (as of the last check)."""
        return len(self._recent)

    def recent_entries(self) -> list[RecentCommandEntry]:
        return list(self._recent)
