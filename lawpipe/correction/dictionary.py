import functools
import threading
from collections import defaultdict
from collections.abc import Iterable

import icu  # type: ignore[import-untyped]

from lawpipe.correction.speller import BaseSpeller, SpellCheck
from lawpipe.database.models import CorrectionEntry

# Above this many spelling suggestions a correction is considered unsafe.
_MAX_SAFE_SUGGESTIONS = 2


class CorrectionDictionary:
    """Token -> replacement lookup over curated and learned entries, backed by
    a spell checker for tokens no entry covers, with usage counting.

    Occurrence deltas accumulate in memory until drained by the caller.
    """

    def __init__(
        self,
        entries: Iterable[CorrectionEntry],
        speller: BaseSpeller | None = None,
        promotion_threshold: int = 5,
        cache_size: int = 50_000,
    ) -> None:
        self._speller = speller
        self._promotion_threshold = promotion_threshold
        self._lock = threading.Lock()
        self._folder: icu.Transliterator = icu.Transliterator.createInstance(
            "Any-Latin; Latin-ASCII; Lower"
        )
        self._entries: dict[str, CorrectionEntry] = {e.error_found: e for e in entries}
        self._pending: dict[str, int] = defaultdict(int)
        self._check = functools.lru_cache(maxsize=cache_size)(speller.check) if speller else None

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def has_speller(self) -> bool:
        return self._speller is not None

    def fold(self, token: str) -> str:
        """Accent-free lower-case form, e.g. ``République`` -> ``republique``."""
        with self._lock:
            return self._folder.transliterate(token)

    def entry(self, token: str) -> CorrectionEntry | None:
        return self._entries.get(token.strip().lower())

    def direct(self, token: str) -> str | None:
        """Replacement from a curated entry, or a learned one that reached promotion."""
        entry = self._entries.get(token.strip().lower())
        if entry is None or entry.correction_text is None:
            return None
        if entry.correction_is_automatic and not entry.is_promoted(self._promotion_threshold):
            return None
        return entry.correction_text

    def check(self, token: str) -> SpellCheck | None:
        """Spell checker verdict for *token*, or None without a spell checker.

        Raises:
            SpellerError: if the spell checker is unreachable.
        """
        if self._check is None:
            return None
        return self._check(token.strip())

    def safe_suggestion(self, token: str, check: SpellCheck) -> str | None:
        """Pick a replacement only when the checker leaves little doubt.

        A single suggestion differing from *token* by accents alone wins
        outright; otherwise at most two suggestions may be on offer.
        """
        if check.known or not check.suggestions:
            return None
        folded = self.fold(token)
        accent_only = [s for s in check.suggestions if self.fold(s) == folded]
        if len(accent_only) == 1:
            return accent_only[0]
        if len(check.suggestions) <= _MAX_SAFE_SUGGESTIONS:
            return check.suggestions[0]
        return None

    def suggest(self, token: str) -> str | None:
        """Lower-case replacement for *token*, or None when no safe one exists.

        Order: direct entry, then the spell checker. Known words get None.

        Raises:
            SpellerError: if the spell checker is unreachable.
        """
        key = token.strip().lower()
        if not key:
            return None
        replacement = self.direct(key)
        if replacement is None:
            check = self.check(token)
            if check is not None:
                replacement = self.safe_suggestion(token, check)
        if replacement is None or replacement.lower() == key:
            return None
        return replacement.lower()

    def record_correction(self, token: str, replacement: str) -> None:
        """Count an applied correction, learning the entry on first use."""
        key = token.strip().lower()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                entry = CorrectionEntry(
                    error_found=token,
                    correction_text=replacement,
                    correction_is_automatic=True,
                )
                self._entries[entry.error_found] = entry
            elif entry.correction_text is None:
                entry.correction_text = replacement
                entry.correction_is_automatic = True
            entry.record_use()
            self._pending[entry.error_found] += 1

    def record_unrecognized(self, token: str) -> None:
        """Count a token nobody could correct; it stays without replacement for review."""
        key = token.strip().lower()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                entry = CorrectionEntry(error_found=token, correction_is_automatic=False)
                self._entries[entry.error_found] = entry
            entry.record_use()
            self._pending[entry.error_found] += 1

    def drain_usage(self) -> list[tuple[CorrectionEntry, int]]:
        """Return and reset the occurrence deltas accumulated since the last drain."""
        with self._lock:
            usage = [(self._entries[key], delta) for key, delta in self._pending.items()]
            self._pending.clear()
        return usage
