from collections.abc import Iterable, Iterator
from typing import Any

from psycopg.rows import dict_row

from lawpipe.database.connection import get_connection
from lawpipe.database.models import DocumentRecord, RecordUpdate
from lawpipe.database.repositories.base import BaseDocumentStore
from lawpipe.logging.logger import Log
from lawpipe.pipeline.identity import DocumentType
from lawpipe.pipeline.status import DocumentFlag, ProcessingStatus

_COLUMNS = """
    document_id, doc_type, year, number, source_url, status, flags,
    pdf_path, images_path, text_path, corrected_text_path, json_path,
    content_hash, error_code, error_message, confidence, extraction_method,
    repair_attempts, version, created_at, updated_at
"""


class DocumentRepository(BaseDocumentStore):
    """Database operations for the law_documents table."""

    def insert_discovered(self, records: Iterable[DocumentRecord]) -> int:
        inserted = 0
        with get_connection() as conn:
            with conn.cursor() as cur:
                for record in records:
                    cur.execute(
                        """
                        INSERT INTO law_documents
                        (document_id, doc_type, year, number, source_url, status)
                        VALUES (%s, %s, %s, %s, %s, %s)
                        ON CONFLICT (document_id) DO NOTHING
                        """,
                        (
                            record.document_id,
                            record.doc_type.value,
                            record.year,
                            record.number,
                            record.source_url,
                            record.status.value,
                        ),
                    )
                    inserted += cur.rowcount
            conn.commit()
        return inserted

    def find_eligible(
        self,
        statuses: Iterable[ProcessingStatus],
        limit: int,
        document_id: str | None = None,
        excluded_flags: Iterable[DocumentFlag] = (),
        max_confidence: float | None = None,
    ) -> list[DocumentRecord]:
        clauses = ["status = ANY(%s)"]
        params: list[Any] = [[s.value for s in statuses]]
        if document_id is not None:
            clauses.append("document_id = %s")
            params.append(document_id)
        excluded = [f.value for f in excluded_flags]
        if excluded:
            clauses.append("NOT (flags && %s::text[])")
            params.append(excluded)
        if max_confidence is not None:
            clauses.append("confidence < %s")
            params.append(max_confidence)
        params.append(limit)

        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM law_documents
                    WHERE {" AND ".join(clauses)}
                    ORDER BY updated_at, document_id
                    LIMIT %s
                    """,
                    params,
                )
                rows = cur.fetchall()
        return [_row_to_record(row) for row in rows]

    def find_by_id(self, document_id: str) -> DocumentRecord | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM law_documents WHERE document_id = %s",
                    (document_id,),
                )
                row = cur.fetchone()
        if row is None:
            return None
        return _row_to_record(row)

    def iter_all(self, page_size: int) -> Iterator[list[DocumentRecord]]:
        last_id = ""
        while True:
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        f"""
                        SELECT {_COLUMNS}
                        FROM law_documents
                        WHERE document_id > %s
                        ORDER BY document_id
                        LIMIT %s
                        """,
                        (last_id, page_size),
                    )
                    rows = cur.fetchall()
            if not rows:
                return
            page = [_row_to_record(row) for row in rows]
            last_id = page[-1].document_id
            yield page

    def apply_updates(self, updates: list[RecordUpdate]) -> int:
        if not updates:
            return 0
        applied = 0
        with get_connection() as conn:
            try:
                with conn.cursor() as cur:
                    for update in updates:
                        record = update.record
                        cur.execute(
                            """
                            UPDATE law_documents
                            SET status = %s, flags = %s, pdf_path = %s,
                                images_path = %s, text_path = %s,
                                corrected_text_path = %s, json_path = %s,
                                content_hash = %s, error_code = %s,
                                error_message = %s, confidence = %s,
                                extraction_method = %s, repair_attempts = %s,
                                version = version + 1, updated_at = NOW()
                            WHERE document_id = %s AND version = %s
                            """,
                            (
                                record.status.value,
                                sorted(f.value for f in record.flags),
                                record.pdf_path,
                                record.images_path,
                                record.text_path,
                                record.corrected_text_path,
                                record.json_path,
                                record.content_hash,
                                record.error_code,
                                record.error_message,
                                record.confidence,
                                record.extraction_method,
                                record.repair_attempts,
                                record.document_id,
                                update.expected_version,
                            ),
                        )
                        if cur.rowcount == 0:
                            Log.warning(
                                f"Skipped stale update for {record.document_id} "
                                f"(version {update.expected_version} no longer current)"
                            )
                            continue
                        applied += 1
                        if update.articles is not None:
                            cur.execute(
                                "DELETE FROM law_articles WHERE document_id = %s",
                                (record.document_id,),
                            )
                            cur.executemany(
                                """
                                INSERT INTO law_articles (document_id, article_index, content)
                                VALUES (%s, %s, %s)
                                """,
                                [
                                    (record.document_id, a.index, a.content)
                                    for a in update.articles
                                ],
                            )
                conn.commit()
            except Exception:
                conn.rollback()
                raise
        return applied


def _row_to_record(row: dict[str, Any]) -> DocumentRecord:
    return DocumentRecord(
        document_id=row["document_id"],
        doc_type=DocumentType(row["doc_type"]),
        year=row["year"],
        number=row["number"],
        source_url=row["source_url"],
        status=ProcessingStatus(row["status"]),
        flags=frozenset(DocumentFlag(f) for f in row["flags"] or []),
        pdf_path=row["pdf_path"],
        images_path=row["images_path"],
        text_path=row["text_path"],
        corrected_text_path=row["corrected_text_path"],
        json_path=row["json_path"],
        content_hash=row["content_hash"],
        error_code=row["error_code"],
        error_message=row["error_message"],
        confidence=row["confidence"],
        extraction_method=row["extraction_method"],
        repair_attempts=row["repair_attempts"],
        version=row["version"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
