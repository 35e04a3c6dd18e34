"""AI-assisted extraction: OCR text correction and full structural extraction."""

import json
import re
from pathlib import Path

from lawpipe.extraction.chunker import chunker_for
from lawpipe.extraction.exceptions import AiProviderError, AiResponseValidationError
from lawpipe.extraction.factory import AiProvider
from lawpipe.extraction.models import Article, DocumentMetadata
from lawpipe.extraction.prompt_loader import load_json_schema, load_prompt_template
from lawpipe.extraction.validator import validate_and_build
from lawpipe.logging.logger import Log

_LEADING_NUMBER_RE = re.compile(r"^\s*(?:article|art\.)\s+(1er|premier|\d+)", re.IGNORECASE)


class AiExtractor:
    """Runs prompts against a selected AI provider, chunking long inputs."""

    def __init__(
        self,
        *,
        temperature: float = 0.1,
        chunk_size: int = 6000,
        chunk_overlap: int = 200,
        system_prompt: str = "Tu es un assistant juridique rigoureux.",
        prompt_dir: Path | None = None,
        json_schema_path: Path | None = None,
    ) -> None:
        self._temperature = max(0.0, min(1.0, temperature))
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap
        self._system_prompt = system_prompt
        self._correct_template = load_prompt_template("correct_ocr_prompt.txt", prompt_dir)
        self._full_template = load_prompt_template("extract_full_prompt.txt", prompt_dir)
        self._json_schema = load_json_schema(json_schema_path)
        self._json_schema_dict = json.loads(self._json_schema)

    def correct_ocr(self, provider: AiProvider, text: str, document_type: str) -> str:
        """Ask the provider to fix OCR noise, chunk by chunk, preserving order.

        Chunks do not overlap, so the corrected pieces join back without repeats.
        """
        chunker = chunker_for(text, self._chunk_size, overlap=0)
        chunks = chunker.split(text)
        corrected: list[str] = []
        for number, chunk in enumerate(chunks, start=1):
            prompt = self._correct_template.format(
                document_type=document_type,
                chunk_number=number,
                chunk_count=len(chunks),
                text=chunk,
            )
            corrected.append(
                provider.client.generate(
                    model=provider.model,
                    temperature=self._temperature,
                    system_prompt=self._system_prompt,
                    user_prompt=prompt,
                )
            )
        Log.debug(f"AI corrected {len(chunks)} chunk(s) via '{provider.name}'")
        return chunker.recombine(corrected, chunks)

    def extract_full(
        self,
        provider: AiProvider,
        text: str,
        document_type: str,
        images: list[bytes] | None = None,
    ) -> tuple[list[Article], DocumentMetadata]:
        """Extract articles and metadata directly from page images and/or text.

        With page images the document is sent in one call; otherwise long
        text is chunked and per-chunk articles are merged in order.
        """
        if images:
            hint = text if len(text) <= self._chunk_size else ""
            return self._extract_chunk(provider, hint, document_type, 1, 1, images)

        chunks = chunker_for(text, self._chunk_size, self._chunk_overlap).split(text)
        articles: list[Article] = []
        metadata = DocumentMetadata()
        for number, chunk in enumerate(chunks, start=1):
            chunk_articles, chunk_metadata = self._extract_chunk(
                provider, chunk, document_type, number, len(chunks), None
            )
            articles = _merge_articles(articles, chunk_articles)
            metadata = _merge_metadata(metadata, chunk_metadata)
        if not articles:
            raise AiResponseValidationError("AI extraction returned no articles")
        return articles, metadata

    def _extract_chunk(
        self,
        provider: AiProvider,
        text: str,
        document_type: str,
        number: int,
        count: int,
        images: list[bytes] | None,
    ) -> tuple[list[Article], DocumentMetadata]:
        prompt = self._full_template.format(
            document_type=document_type,
            json_schema=self._json_schema,
            chunk_number=number,
            chunk_count=count,
            text=text,
        )
        raw = provider.client.generate(
            model=provider.model,
            temperature=self._temperature,
            system_prompt=self._system_prompt,
            user_prompt=prompt,
            images=images,
            json_schema=self._json_schema_dict,
        )
        return validate_and_build(self._parse_json(raw))

    @staticmethod
    def _parse_json(raw: str) -> dict[str, object]:
        cleaned = raw.strip()
        if cleaned.startswith("```"):
            lines = cleaned.splitlines()
            if lines and lines[0].startswith("```"):
                lines = lines[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            cleaned = "\n".join(lines)

        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise AiProviderError(f"Invalid JSON response: {exc}") from exc

        if not isinstance(parsed, dict):
            raise AiProviderError("JSON response must be an object")
        return parsed


def _leading_number(content: str) -> str | None:
    match = _LEADING_NUMBER_RE.match(content)
    if match is None:
        return None
    value = match.group(1).lower()
    return "1" if value in ("1er", "premier") else value


def _merge_articles(existing: list[Article], incoming: list[Article]) -> list[Article]:
    """Append chunk articles, collapsing an article repeated across the overlap."""
    merged = [a.content for a in existing]
    for article in incoming:
        number = _leading_number(article.content)
        if merged and number is not None and number == _leading_number(merged[-1]):
            if len(article.content) > len(merged[-1]):
                merged[-1] = article.content
            continue
        merged.append(article.content)
    return [Article(index=i, content=c) for i, c in enumerate(merged, start=1)]


def _merge_metadata(first: DocumentMetadata, second: DocumentMetadata) -> DocumentMetadata:
    """Keep fields already found; fill gaps from later chunks."""
    return DocumentMetadata(
        title=first.title or second.title,
        promulgation_date=first.promulgation_date or second.promulgation_date,
        promulgation_city=first.promulgation_city or second.promulgation_city,
        signatories=first.signatories or second.signatories,
    )
