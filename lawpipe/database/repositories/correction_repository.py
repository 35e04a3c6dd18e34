from psycopg.rows import dict_row

from lawpipe.database.connection import get_connection
from lawpipe.database.models import CorrectionEntry


class CorrectionRepository:
    """Database operations for the ocr_corrections table."""

    def find_all(self) -> list[CorrectionEntry]:
        """Load every correction entry, curated and learned."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, error_found, original_text, error_count,
                           correction_text, correction_is_automatic
                    FROM ocr_corrections
                    ORDER BY id
                    """
                )
                rows = cur.fetchall()
        return [
            CorrectionEntry(
                id=row["id"],
                error_found=row["error_found"],
                original_text=row["original_text"],
                error_count=row["error_count"],
                correction_text=row["correction_text"],
                correction_is_automatic=row["correction_is_automatic"],
            )
            for row in rows
        ]

    def seed_curated(self, entries: list[CorrectionEntry]) -> int:
        """Insert curated entries whose token is not stored yet.

        Returns:
            Number of entries inserted.
        """
        inserted = 0
        with get_connection() as conn:
            with conn.cursor() as cur:
                for entry in entries:
                    cur.execute(
                        """
                        INSERT INTO ocr_corrections
                        (error_found, original_text, error_count,
                         correction_text, correction_is_automatic)
                        VALUES (%s, %s, 0, %s, FALSE)
                        ON CONFLICT (error_found) DO NOTHING
                        """,
                        (entry.error_found, entry.original_text, entry.correction_text),
                    )
                    inserted += cur.rowcount
            conn.commit()
        return inserted

    def flush_usage(self, usage: list[tuple[CorrectionEntry, int]]) -> None:
        """Add occurrence deltas, creating learned entries on first sight.

        Counts never drop below zero. An existing replacement is never
        overwritten by a learned one.
        """
        if not usage:
            return
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.executemany(
                    """
                    INSERT INTO ocr_corrections
                    (error_found, original_text, error_count,
                     correction_text, correction_is_automatic)
                    VALUES (%s, %s, GREATEST(0, %s), %s, %s)
                    ON CONFLICT (error_found) DO UPDATE
                    SET error_count = GREATEST(0, ocr_corrections.error_count + %s),
                        correction_text = COALESCE(
                            ocr_corrections.correction_text, EXCLUDED.correction_text
                        )
                    """,
                    [
                        (
                            entry.error_found,
                            entry.original_text,
                            delta,
                            entry.correction_text,
                            entry.correction_is_automatic,
                            delta,
                        )
                        for entry, delta in usage
                    ],
                )
            conn.commit()
