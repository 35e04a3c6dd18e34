import csv
import json
import re
from dataclasses import dataclass
from pathlib import Path

from lawpipe.extraction.models import Signatory
from lawpipe.logging.logger import Log
from lawpipe.parsing.dates import parse_iso_date
from lawpipe.pipeline.errors import ConfigurationError

_RESOURCE_DIR = Path(__file__).parent / "resources"
_REQUIRED_PATTERNS = (
    "article_start",
    "article_number",
    "title_start",
    "title_end",
    "closing_marker",
    "promulgation_date",
    "promulgation_city",
)


@dataclass(frozen=True)
class PatternConfig:
    """Compiled structural markers used by the pattern parser."""

    article_start: re.Pattern[str]
    article_number: re.Pattern[str]
    title_start: re.Pattern[str]
    title_end: re.Pattern[str]
    closing_marker: re.Pattern[str]
    promulgation_date: re.Pattern[str]
    promulgation_city: re.Pattern[str]
    legal_terms: tuple[str, ...]

    @classmethod
    def load(cls, path: Path | None = None) -> "PatternConfig":
        """Load and compile pattern definitions.

        Args:
            path: JSON pattern file. Defaults to the bundled patterns.json.

        Raises:
            ConfigurationError: if the file is unreadable, a pattern is
                missing or a pattern does not compile.
        """
        if path is None:
            path = _RESOURCE_DIR / "patterns.json"
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigurationError(f"Failed to load patterns: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigurationError("Pattern file must contain a JSON object")

        missing = [key for key in _REQUIRED_PATTERNS if not isinstance(raw.get(key), str)]
        if missing:
            raise ConfigurationError(f"Missing pattern definitions: {missing}")
        try:
            compiled = {key: re.compile(raw[key], re.MULTILINE) for key in _REQUIRED_PATTERNS}
        except re.error as exc:
            raise ConfigurationError(f"Invalid pattern definition: {exc}") from exc

        terms = raw.get("legal_terms", [])
        if not isinstance(terms, list) or not all(isinstance(t, str) for t in terms):
            raise ConfigurationError("'legal_terms' must be a list of strings")
        return cls(legal_terms=tuple(t.lower() for t in terms), **compiled)


@dataclass(frozen=True)
class SignatoryPattern:
    pattern: re.Pattern[str]
    signatory: Signatory


def load_signatories(path: Path | None = None) -> list[SignatoryPattern]:
    """Load signatory patterns from CSV (pattern, role, name, mandate start, mandate end).

    Rows with an invalid regex are logged and skipped.

    Raises:
        ConfigurationError: if the file cannot be read.
    """
    if path is None:
        path = _RESOURCE_DIR / "signatories.csv"
    try:
        with path.open(encoding="utf-8", newline="") as handle:
            rows = list(csv.DictReader(handle))
    except OSError as exc:
        raise ConfigurationError(f"Failed to load signatories: {exc}") from exc

    patterns: list[SignatoryPattern] = []
    for row in rows:
        pattern = (row.get("pattern") or "").strip()
        role = (row.get("role") or "").strip()
        name = (row.get("name") or "").strip()
        if not pattern or not role or not name:
            continue
        try:
            compiled = re.compile(pattern)
        except re.error:
            Log.warning(f"Invalid signatory pattern: {pattern}")
            continue
        patterns.append(
            SignatoryPattern(
                pattern=compiled,
                signatory=Signatory(
                    role=role,
                    name=name,
                    mandate_start=parse_iso_date(row.get("mandate_start")),
                    mandate_end=parse_iso_date(row.get("mandate_end")),
                ),
            )
        )
    Log.debug(f"Loaded {len(patterns)} signatory patterns")
    return patterns
