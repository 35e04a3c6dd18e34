from abc import ABC, abstractmethod


class BaseChunker(ABC):
    @abstractmethod
    def split(self, text: str) -> list[str]:
        """Split text into ordered chunks."""

    @staticmethod
    def recombine(processed: list[str], originals: list[str]) -> str:
        """Join processed chunks back in their original order.

        Only valid for chunks split without overlap. Each processed chunk is
        followed by the line breaks its original chunk ended with, so a cut
        on a line boundary stays a line boundary.
        """
        parts: list[str] = []
        for chunk, original in zip(processed, originals, strict=True):
            trailing = original[len(original.rstrip("\n")) :]
            parts.append(chunk.rstrip("\n") + trailing)
        return "".join(parts)


class NoOpChunker(BaseChunker):
    """Passes content through unchanged."""

    def split(self, text: str) -> list[str]:
        return [text]


class TextChunker(BaseChunker):
    """Splits text into chunks of at most chunk_size chars with overlap.

    Cuts prefer a line break in the second half of the window so that
    article markers stay at the start of a line.
    """

    def __init__(self, chunk_size: int, overlap: int) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= overlap < chunk_size:
            raise ValueError("overlap must be within [0, chunk_size)")
        self._chunk_size = chunk_size
        self._overlap = overlap

    def split(self, text: str) -> list[str]:
        if len(text) <= self._chunk_size:
            return [text]
        chunks: list[str] = []
        start = 0
        while start < len(text):
            end = min(start + self._chunk_size, len(text))
            if end < len(text):
                newline = text.rfind("\n", start + self._chunk_size // 2, end)
                if newline != -1:
                    end = newline + 1
            chunks.append(text[start:end])
            if end >= len(text):
                break
            start = max(end - self._overlap, start + 1)
        return chunks


def chunker_for(text: str, chunk_size: int, overlap: int) -> BaseChunker:
    """NoOpChunker when text already fits, otherwise a TextChunker."""
    if len(text) <= chunk_size:
        return NoOpChunker()
    return TextChunker(chunk_size, overlap)
