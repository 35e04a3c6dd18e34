from collections.abc import Iterable

from lawpipe.database.models import DocumentRecord
from lawpipe.database.repositories.base import BaseDocumentStore
from lawpipe.logging.logger import Log
from lawpipe.pipeline.identity import DocumentType, format_identity


def build_source_url(template: str, doc_type: DocumentType, year: int, number: int) -> str:
    return template.format(
        doc_type=doc_type.value,
        year=year,
        number=number,
        document_id=format_identity(doc_type, year, number),
    )


def seed_documents(
    store: BaseDocumentStore,
    url_template: str,
    doc_type: DocumentType | str,
    year: int,
    numbers: Iterable[int],
) -> int:
    """Create DISCOVERED records for a range of candidate numbers.

    Existing identities are left untouched, so seeding is repeatable.

    Returns:
        Number of records newly created.
    """
    doc_type = DocumentType(doc_type)
    records = [
        DocumentRecord.create(
            doc_type,
            year,
            number,
            build_source_url(url_template, doc_type, year, number),
        )
        for number in numbers
    ]
    inserted = store.insert_discovered(records)
    Log.info(
        f"Seeded {inserted} new {doc_type.value} records for {year} "
        f"({len(records) - inserted} already known)"
    )
    return inserted
