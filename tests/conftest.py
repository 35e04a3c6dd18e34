import io
from collections.abc import Callable, Iterable, Iterator

import pytest
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from lawpipe.correction.speller import BaseSpeller, SpellCheck
from lawpipe.database.models import DocumentRecord, RecordUpdate
from lawpipe.database.repositories.base import BaseDocumentStore
from lawpipe.extraction.models import Article
from lawpipe.pipeline.artifacts import ArtifactStore
from lawpipe.pipeline.status import DocumentFlag, ProcessingStatus

LAW_TEXT = """REPUBLIQUE DU BENIN
LOI N° 2024-15 DU 12 MARS 2024
portant code du numérique en République du Bénin

L'Assemblée nationale a délibéré et adopté,
le Président de la République promulgue la loi dont la teneur suit :

Article 1er
La présente loi régit les activités relatives au numérique en République du Bénin.

Article 2
Les dispositions de l'article 1er s'appliquent à toute personne physique ou morale.

Article 3
Le ministre chargé du numérique veille à l'application de la présente loi.

Fait à Porto-Novo, le 12 mars 2024
Par le Président de la République,
Patrice TALON
"""


class InMemoryDocumentStore(BaseDocumentStore):
    """Dict-backed store with the same eligibility and version rules as the database."""

    def __init__(self) -> None:
        self.records: dict[str, DocumentRecord] = {}
        self.articles: dict[str, list[Article]] = {}
        self.apply_calls: list[list[RecordUpdate]] = []
        self._order: dict[str, int] = {}
        self._clock = 0

    def _touch(self, document_id: str) -> None:
        self._clock += 1
        self._order[document_id] = self._clock

    def add(self, record: DocumentRecord) -> DocumentRecord:
        self.records[record.document_id] = record
        self._touch(record.document_id)
        return record

    def insert_discovered(self, records: Iterable[DocumentRecord]) -> int:
        inserted = 0
        for record in records:
            if record.document_id not in self.records:
                self.add(record)
                inserted += 1
        return inserted

    def find_eligible(
        self,
        statuses: Iterable[ProcessingStatus],
        limit: int,
        document_id: str | None = None,
        excluded_flags: Iterable[DocumentFlag] = (),
        max_confidence: float | None = None,
    ) -> list[DocumentRecord]:
        wanted = set(statuses)
        excluded = set(excluded_flags)
        matches = [
            r
            for r in self.records.values()
            if r.status in wanted
            and (document_id is None or r.document_id == document_id)
            and not excluded.intersection(r.flags)
            and (max_confidence is None or (r.confidence is not None and r.confidence < max_confidence))
        ]
        matches.sort(key=lambda r: (self._order[r.document_id], r.document_id))
        return matches[:limit]

    def find_by_id(self, document_id: str) -> DocumentRecord | None:
        return self.records.get(document_id)

    def iter_all(self, page_size: int) -> Iterator[list[DocumentRecord]]:
        ids = sorted(self.records)
        for start in range(0, len(ids), page_size):
            yield [self.records[i] for i in ids[start : start + page_size]]

    def apply_updates(self, updates: list[RecordUpdate]) -> int:
        self.apply_calls.append(list(updates))
        applied = 0
        for update in updates:
            current = self.records.get(update.record.document_id)
            if current is None or current.version != update.expected_version:
                continue
            self.records[current.document_id] = update.record.with_changes(
                version=current.version + 1
            )
            self._touch(current.document_id)
            if update.articles is not None:
                self.articles[current.document_id] = list(update.articles)
            applied += 1
        return applied


class WordListSpeller(BaseSpeller):
    """Speller over a fixed word list; unknown words get the configured suggestions."""

    def __init__(
        self,
        known: Iterable[str] = (),
        suggestions: dict[str, list[str]] | None = None,
    ) -> None:
        self.known = {w.lower() for w in known}
        self.suggestions = {k.lower(): tuple(v) for k, v in (suggestions or {}).items()}
        self.calls: list[str] = []

    def check(self, word: str) -> SpellCheck:
        self.calls.append(word)
        key = word.lower()
        if key in self.known:
            return SpellCheck(known=True)
        return SpellCheck(known=False, suggestions=self.suggestions.get(key, ()))


def _pdf_bytes(pages: list[list[str]]) -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    for lines in pages:
        y = 780
        for line in lines:
            c.drawString(72, y, line)
            y -= 16
        c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def law_text() -> str:
    return LAW_TEXT


@pytest.fixture()
def law_pdf_bytes() -> bytes:
    """A two-page law PDF with a text layer."""
    lines = [line for line in LAW_TEXT.splitlines() if line.strip()]
    return _pdf_bytes([lines[:8], lines[8:]])


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """A valid PDF with a blank page."""
    return _pdf_bytes([[]])


@pytest.fixture()
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture()
def artifacts(tmp_path) -> ArtifactStore:
    return ArtifactStore(
        pdf_root=tmp_path / "pdfs",
        images_root=tmp_path / "images",
        text_root=tmp_path / "ocr",
        json_root=tmp_path / "articles",
    )


@pytest.fixture()
def make_record() -> Callable[..., DocumentRecord]:
    """Build a record for loi-2024-<number> with any mutable fields set."""

    def factory(number: int = 1, **changes: object) -> DocumentRecord:
        record = DocumentRecord.create(
            "loi", 2024, number, f"https://example.test/loi/loi-2024-{number}.pdf"
        )
        return record.with_changes(**changes) if changes else record

    return factory


@pytest.fixture()
def make_speller() -> Callable[..., WordListSpeller]:
    """Build a word-list speller: make_speller(known_words, {unknown: [suggestions]})."""

    def factory(
        known: Iterable[str] = (),
        suggestions: dict[str, list[str]] | None = None,
    ) -> WordListSpeller:
        return WordListSpeller(known, suggestions)

    return factory
