"""Per-language execution counters."""
import threading
from typing import Dict, Optional

from .types import Language


class ExecutionCounters:
    """
    One monotonically increasing counter per language, starting at 1.

    Each language has its own lock, so increments of different languages
    never contend and increments of the same language never lose updates.
    """

    def __init__(self):
        self._counts: Dict[Language, int] = {language: 0 for language in Language}
        self._locks: Dict[Language, threading.Lock] = {language: threading.Lock() for language in Language}

    def increment(self, language: Language) -> int:
        """Reserve the next execution number for language and return it."""
        with self._locks[language]:
            self._counts[language] += 1
            return self._counts[language]

    def get(self, language: Language) -> int:
        """Number of executions recorded for language since its last reset."""
        return self._counts[language]

    def reset(self, language: Optional[Language] = None) -> None:
        languages = [language] if language is not None else list(Language)
        for lang in languages:
            with self._locks[lang]:
                self._counts[lang] = 0

    def snapshot(self) -> Dict[str, int]:
        return {language.value: count for language, count in self._counts.items()}
