"""Document identity: ``{type}-{year}-{number}``, e.g. ``loi-2024-15``."""

import re
from enum import Enum


class DocumentType(str, Enum):
    """Enumerated legal document categories."""

    LOI = "loi"
    DECRET = "decret"


_IDENTITY_RE = re.compile(r"^(?P<type>[a-z]+)-(?P<year>\d{4})-(?P<number>\d+)$")


def format_identity(doc_type: DocumentType | str, year: int, number: int) -> str:
    """Build the identity string for a (type, year, number) triple.

    Raises:
        ValueError: if the type is unknown or year/number are out of range.
    """
    doc_type = DocumentType(doc_type)
    _validate(year, number)
    return f"{doc_type.value}-{year}-{number}"


def parse_identity(document_id: str) -> tuple[DocumentType, int, int]:
    """Split an identity string back into its (type, year, number) triple.

    Raises:
        ValueError: if the string is not a well-formed identity.
    """
    match = _IDENTITY_RE.match(document_id.strip())
    if match is None:
        raise ValueError(f"Malformed document identity: {document_id!r}")
    try:
        doc_type = DocumentType(match.group("type"))
    except ValueError as exc:
        raise ValueError(f"Unknown document type in identity: {document_id!r}") from exc
    year = int(match.group("year"))
    number = int(match.group("number"))
    _validate(year, number)
    return doc_type, year, number


def _validate(year: int, number: int) -> None:
    if not 1000 <= year <= 9999:
        raise ValueError(f"Year must have four digits, got {year}")
    if number < 1:
        raise ValueError(f"Document number must be positive, got {number}")
