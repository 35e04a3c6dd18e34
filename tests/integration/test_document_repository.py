import pytest

from lawpipe.database.models import DocumentRecord, RecordUpdate
from lawpipe.database.repositories.document_repository import DocumentRepository
from lawpipe.extraction.models import Article
from lawpipe.pipeline.status import DocumentFlag, ProcessingStatus
from lawpipe.source.discovery import seed_documents

TEST_YEAR = 1999

S = ProcessingStatus


def _seed(numbers: range) -> DocumentRepository:
    repo = DocumentRepository()
    seed_documents(repo, "https://sgg.test/{document_id}.pdf", "loi", TEST_YEAR, numbers)
    return repo


def _id(number: int) -> str:
    return f"loi-{TEST_YEAR}-{number}"


def _move(repo: DocumentRepository, record: DocumentRecord, **changes: object) -> DocumentRecord:
    assert repo.apply_updates([RecordUpdate(record.with_changes(**changes), record.version)]) == 1
    stored = repo.find_by_id(record.document_id)
    assert stored is not None
    return stored


@pytest.mark.integration
class TestInsertAndFind:
    def test_insert_is_idempotent(self, db_conn) -> None:
        repo = DocumentRepository()
        template = "https://sgg.test/{document_id}.pdf"
        assert seed_documents(repo, template, "loi", TEST_YEAR, range(1, 3)) == 2
        assert seed_documents(repo, template, "loi", TEST_YEAR, range(1, 4)) == 1

        record = repo.find_by_id(_id(3))
        assert record is not None
        assert record.status is S.DISCOVERED
        assert record.version == 0

    def test_find_by_id_missing(self, db_conn) -> None:
        assert DocumentRepository().find_by_id(_id(404)) is None

    def test_find_eligible_filters(self, db_conn) -> None:
        repo = _seed(range(1, 4))
        first = repo.find_by_id(_id(1))
        second = repo.find_by_id(_id(2))
        assert first is not None and second is not None
        _move(repo, first, status=S.STRUCTURED, confidence=0.6)
        _move(
            repo,
            second,
            status=S.STRUCTURED,
            confidence=0.5,
            flags=frozenset({DocumentFlag.AI_ENRICHED}),
        )

        eligible = repo.find_eligible(
            (S.STRUCTURED,),
            limit=10,
            excluded_flags=(DocumentFlag.AI_ENRICHED,),
            max_confidence=0.8,
        )
        ours = [r.document_id for r in eligible if r.year == TEST_YEAR]
        assert ours == [_id(1)]

    def test_find_eligible_targets_one(self, db_conn) -> None:
        repo = _seed(range(1, 3))
        eligible = repo.find_eligible((S.DISCOVERED,), limit=10, document_id=_id(2))
        assert [r.document_id for r in eligible] == [_id(2)]

    def test_iter_all_pages(self, db_conn) -> None:
        repo = _seed(range(1, 6))
        seen = [r.document_id for page in repo.iter_all(2) for r in page if r.year == TEST_YEAR]
        assert sorted(seen) == sorted(_id(n) for n in range(1, 6))


@pytest.mark.integration
class TestApplyUpdates:
    def test_bumps_version(self, db_conn) -> None:
        repo = _seed(range(1, 2))
        record = repo.find_by_id(_id(1))
        assert record is not None
        stored = _move(repo, record, status=S.FETCHED)
        assert stored.status is S.FETCHED
        assert stored.version == 1

    def test_stale_update_is_skipped(self, db_conn) -> None:
        repo = _seed(range(1, 3))
        first = repo.find_by_id(_id(1))
        second = repo.find_by_id(_id(2))
        assert first is not None and second is not None
        _move(repo, first, status=S.FETCHED)

        applied = repo.apply_updates(
            [
                RecordUpdate(first.with_changes(status=S.FAILED_FETCH), first.version),
                RecordUpdate(second.with_changes(status=S.FETCHED), second.version),
            ]
        )

        assert applied == 1
        assert repo.find_by_id(_id(1)).status is S.FETCHED  # type: ignore[union-attr]
        assert repo.find_by_id(_id(2)).status is S.FETCHED  # type: ignore[union-attr]

    def test_articles_written_with_status(self, db_conn) -> None:
        repo = _seed(range(1, 2))
        record = repo.find_by_id(_id(1))
        assert record is not None
        articles = [Article(1, "Article 1er\nA."), Article(2, "Article 2\nB.")]
        repo.apply_updates(
            [RecordUpdate(record.with_changes(status=S.CONSOLIDATED), record.version, articles)]
        )

        with db_conn.cursor() as cur:
            cur.execute(
                "SELECT article_index, content FROM law_articles "
                "WHERE document_id = %s ORDER BY article_index",
                (_id(1),),
            )
            rows = cur.fetchall()
        assert rows == [(1, "Article 1er\nA."), (2, "Article 2\nB.")]

    def test_flags_round_trip(self, db_conn) -> None:
        repo = _seed(range(1, 2))
        record = repo.find_by_id(_id(1))
        assert record is not None
        flags = frozenset({DocumentFlag.RENDERED_IMAGES, DocumentFlag.AI_ENRICH_FAILED})
        assert _move(repo, record, flags=flags).flags == flags
