import re
from dataclasses import dataclass, field

from lawpipe.correction.dictionary import CorrectionDictionary
from lawpipe.logging.logger import Log

_TOKEN_RE = re.compile(r"[^\W\d_]+")
_MIN_CORRECTABLE_LENGTH = 4


@dataclass(frozen=True)
class AppliedCorrection:
    original: str
    replacement: str


@dataclass(frozen=True)
class CorrectionOutcome:
    text: str
    corrections: list[AppliedCorrection] = field(default_factory=list)


def is_correctable(token: str) -> bool:
    """Short tokens and all-capitals acronyms are never corrected."""
    token = token.strip()
    if len(token) < _MIN_CORRECTABLE_LENGTH:
        return False
    return not (token.isupper() and len(token) > 1)


def match_case(original: str, replacement: str) -> str:
    """Carry the first-letter capitalisation of *original* over to *replacement*."""
    if not original or not replacement:
        return replacement
    if original[0].isupper():
        return replacement[0].upper() + replacement[1:].lower()
    return replacement.lower()


class TextCorrectionEngine:
    """Normalizes OCR noise token by token against a CorrectionDictionary."""

    def __init__(self, dictionary: CorrectionDictionary) -> None:
        self._dictionary = dictionary

    @property
    def dictionary(self) -> CorrectionDictionary:
        return self._dictionary

    def suggest(self, token: str) -> str | None:
        """Suggested replacement for a single token, cased like the token.

        Raises:
            SpellerError: if the spell checker is unreachable.
        """
        token = token.strip()
        if not is_correctable(token):
            return None
        suggestion = self._dictionary.suggest(token)
        if suggestion is None:
            return None
        return match_case(token, suggestion)

    def correct(self, text: str) -> CorrectionOutcome:
        """Correct every eligible token and count each applied correction.

        Usage is recorded only once the whole text went through, so a text
        that fails halfway leaves the counters untouched.

        Raises:
            SpellerError: if the spell checker is unreachable.
        """
        applied: list[AppliedCorrection] = []
        unrecognized: list[str] = []

        def replace(match: re.Match[str]) -> str:
            token = match.group(0)
            if not is_correctable(token):
                return token
            replacement = self.suggest(token)
            if replacement is not None:
                applied.append(AppliedCorrection(original=token, replacement=replacement))
                return replacement
            check = self._dictionary.check(token)
            if check is not None and not check.known:
                unrecognized.append(token)
            return token

        corrected = _TOKEN_RE.sub(replace, text)
        for correction in applied:
            self._dictionary.record_correction(correction.original, correction.replacement.lower())
        for token in unrecognized:
            self._dictionary.record_unrecognized(token)
        if applied:
            Log.debug(f"Applied {len(applied)} OCR corrections ({len(corrected)} chars)")
        return CorrectionOutcome(text=corrected, corrections=applied)


def count_token_changes(original: str, corrected: str) -> int:
    """Number of word tokens that differ between two versions of a text."""
    before = _TOKEN_RE.findall(original)
    after = _TOKEN_RE.findall(corrected)
    changed = sum(1 for a, b in zip(before, after) if a != b)
    return changed + abs(len(before) - len(after))
