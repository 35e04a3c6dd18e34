import re
from dataclasses import dataclass, field

from lawpipe.extraction.models import Article, DocumentMetadata, ParseAnomalies, Signatory
from lawpipe.logging.logger import Log
from lawpipe.parsing.dates import to_iso_date
from lawpipe.parsing.patterns import PatternConfig, SignatoryPattern

_MIN_ARTICLE_CHARS = 11
_LEGAL_TERMS_FOR_FULL_SCORE = 8

_ARTICLE_WEIGHT = 0.35
_METADATA_WEIGHT = 0.25
_ANOMALY_WEIGHT = 0.25
_LEGAL_WEIGHT = 0.15

_TRUNCATION_PENALTY = 0.25
_OUT_OF_SEQUENCE_PENALTY = 0.15
_DROPPED_PENALTY = 0.10

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class ParseResult:
    articles: list[Article]
    metadata: DocumentMetadata
    anomalies: ParseAnomalies = field(default_factory=ParseAnomalies)
    confidence: float = 0.0


class PatternParser:
    """Segments corrected law text into articles and extracts metadata.

    An article marker starts a new article only when it continues the
    numbering (any number first, then previous + 1); other markers are
    citations and stay inside the current article. The last article ends at
    the closing marker ("Fait à ...").
    """

    def __init__(
        self,
        config: PatternConfig,
        signatories: list[SignatoryPattern],
        expected_chars_per_article: int = 1500,
    ) -> None:
        self._config = config
        self._signatories = signatories
        self._expected_chars_per_article = max(1, expected_chars_per_article)

    def parse(self, text: str) -> ParseResult:
        articles, anomalies = self._segment(text)
        metadata = self.extract_metadata(text)
        confidence = self.score(text, articles, metadata, anomalies)
        Log.debug(
            f"Parsed {len(articles)} articles, {anomalies.total} anomalies, "
            f"confidence {confidence:.3f}"
        )
        return ParseResult(
            articles=articles,
            metadata=metadata,
            anomalies=anomalies,
            confidence=confidence,
        )

    def extract_metadata(self, text: str) -> DocumentMetadata:
        config = self._config
        title = None
        start = config.title_start.search(text)
        if start is not None:
            end = config.title_end.search(text, start.end())
            if end is not None:
                title = _WHITESPACE_RE.sub(" ", text[start.start():end.start()]).strip() or None

        promulgation_date = None
        date_match = config.promulgation_date.search(text)
        if date_match is not None:
            promulgation_date = to_iso_date(
                date_match.group("day"),
                date_match.group("month"),
                date_match.group("year"),
            )

        city = None
        city_match = config.promulgation_city.search(text)
        if city_match is not None:
            city = city_match.group("city").strip() or None

        return DocumentMetadata(
            title=title,
            promulgation_date=promulgation_date,
            promulgation_city=city,
            signatories=self._match_signatories(text, promulgation_date),
        )

    def score(
        self,
        text: str,
        articles: list[Article],
        metadata: DocumentMetadata,
        anomalies: ParseAnomalies,
    ) -> float:
        """Base confidence in [0, 1]; zero when no article was found."""
        if not articles:
            return 0.0
        expected_articles = max(1.0, len(text) / self._expected_chars_per_article)
        article_score = min(1.0, len(articles) / expected_articles)

        penalty = (
            _TRUNCATION_PENALTY * anomalies.truncated_last_article
            + _OUT_OF_SEQUENCE_PENALTY * anomalies.out_of_sequence_markers
            + _DROPPED_PENALTY * anomalies.dropped_short_articles
        )
        anomaly_score = max(0.0, 1.0 - penalty)

        lowered = text.lower()
        terms_found = sum(1 for term in self._config.legal_terms if term in lowered)
        legal_score = min(1.0, terms_found / _LEGAL_TERMS_FOR_FULL_SCORE)

        confidence = (
            _ARTICLE_WEIGHT * article_score
            + _METADATA_WEIGHT * metadata.populated_fraction
            + _ANOMALY_WEIGHT * anomaly_score
            + _LEGAL_WEIGHT * legal_score
        )
        return round(min(1.0, max(0.0, confidence)), 4)

    def _segment(self, text: str) -> tuple[list[Article], ParseAnomalies]:
        config = self._config
        bodies: list[str] = []
        current: list[str] = []
        last_number: int | None = None
        out_of_sequence = 0
        closed = False

        for line in text.splitlines():
            if current and config.closing_marker.search(line):
                closed = True
                break
            if config.article_start.search(line):
                number = self._article_number(line)
                if number is not None and (last_number is None or number == last_number + 1):
                    if current:
                        bodies.append("\n".join(current).strip())
                    current = [line]
                    last_number = number
                    continue
                if current:
                    out_of_sequence += 1
            if current:
                current.append(line)

        if current:
            bodies.append("\n".join(current).strip())

        kept = [body for body in bodies if len(body) >= _MIN_ARTICLE_CHARS]
        articles = [Article(index=i, content=body) for i, body in enumerate(kept, start=1)]
        anomalies = ParseAnomalies(
            truncated_last_article=bool(bodies) and not closed,
            out_of_sequence_markers=out_of_sequence,
            dropped_short_articles=len(bodies) - len(kept),
        )
        return articles, anomalies

    def _article_number(self, line: str) -> int | None:
        match = self._config.article_number.search(line)
        if match is None:
            return None
        if match.group("first"):
            return 1
        return int(match.group("number"))

    def _match_signatories(self, text: str, promulgation_date: str | None) -> list[Signatory]:
        found: list[Signatory] = []
        for candidate in self._signatories:
            if not candidate.pattern.search(text):
                continue
            signatory = candidate.signatory
            if promulgation_date is not None and not _within_mandate(signatory, promulgation_date):
                continue
            found.append(signatory)
        return found


def _within_mandate(signatory: Signatory, iso_date: str) -> bool:
    if signatory.mandate_start is not None and iso_date < signatory.mandate_start:
        return False
    if signatory.mandate_end is not None and iso_date > signatory.mandate_end:
        return False
    return True
