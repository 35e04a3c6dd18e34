"""Validates raw AI JSON and builds articles plus document metadata."""

from typing import Any

from lawpipe.extraction.exceptions import AiResponseValidationError
from lawpipe.extraction.models import Article, DocumentMetadata, Signatory
from lawpipe.parsing.dates import parse_iso_date

_MAX_ARTICLES = 2000


def validate_and_build(data: dict[str, Any]) -> tuple[list[Article], DocumentMetadata]:
    """Validate raw parsed JSON and build articles and metadata.

    Articles are ordered by their declared index and re-indexed from 1.

    Raises:
        AiResponseValidationError: on any validation failure.
    """
    _require_top_level_fields(data)
    articles = _build_articles(data["articles"])
    metadata = DocumentMetadata(
        title=_optional_string(data.get("title"), "title"),
        promulgation_date=parse_iso_date(
            _optional_string(data.get("promulgationDate"), "promulgationDate")
        ),
        promulgation_city=_optional_string(data.get("promulgationCity"), "promulgationCity"),
        signatories=_build_signatories(data.get("signatories", [])),
    )
    return articles, metadata


def _require_top_level_fields(data: dict[str, Any]) -> None:
    if "articles" not in data:
        raise AiResponseValidationError("Missing required top-level field: articles")


def _optional_string(raw: Any, name: str) -> str | None:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise AiResponseValidationError(f"'{name}' must be a string or null")
    return raw.strip() or None


def _build_articles(raw: Any) -> list[Article]:
    if not isinstance(raw, list):
        raise AiResponseValidationError("'articles' must be a list")
    if len(raw) > _MAX_ARTICLES:
        raise AiResponseValidationError(f"Too many articles: {len(raw)} (max {_MAX_ARTICLES})")
    indexed: list[tuple[int, str]] = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise AiResponseValidationError(f"articles[{i}] must be an object")
        index = item.get("index")
        if not isinstance(index, int) or isinstance(index, bool) or index < 1:
            raise AiResponseValidationError(f"articles[{i}].index must be a positive integer")
        content = item.get("content")
        if not isinstance(content, str) or not content.strip():
            raise AiResponseValidationError(f"articles[{i}].content must be a non-empty string")
        indexed.append((index, content.strip()))
    indexed.sort(key=lambda pair: pair[0])
    return [Article(index=i, content=content) for i, (_, content) in enumerate(indexed, start=1)]


def _build_signatories(raw: Any) -> list[Signatory]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise AiResponseValidationError("'signatories' must be a list")
    signatories: list[Signatory] = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise AiResponseValidationError(f"signatories[{i}] must be an object")
        role = item.get("role")
        name = item.get("name")
        if not isinstance(role, str) or not isinstance(name, str) or not name.strip():
            raise AiResponseValidationError(f"signatories[{i}] needs string 'role' and 'name'")
        signatories.append(Signatory(role=role.strip(), name=name.strip()))
    return signatories
