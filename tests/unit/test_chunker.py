import pytest

from lawpipe.extraction.chunker import NoOpChunker, TextChunker, chunker_for


class TestChunkerFor:
    def test_short_text_is_not_chunked(self) -> None:
        chunker = chunker_for("court", chunk_size=100, overlap=10)
        assert isinstance(chunker, NoOpChunker)
        assert chunker.split("court") == ["court"]

    def test_long_text_uses_text_chunker(self) -> None:
        assert isinstance(chunker_for("x" * 200, chunk_size=100, overlap=10), TextChunker)


class TestTextChunker:
    def test_chunks_respect_size(self) -> None:
        text = "".join(f"Article {i}\nContenu de l'article {i}.\n" for i in range(1, 40))
        chunks = TextChunker(chunk_size=200, overlap=20).split(text)
        assert len(chunks) > 1
        assert all(len(chunk) <= 200 for chunk in chunks)

    def test_chunks_cover_text_in_order(self) -> None:
        text = "".join(f"ligne {i}\n" for i in range(100))
        chunks = TextChunker(chunk_size=120, overlap=0).split(text)
        assert "".join(chunks) == text

    def test_cuts_on_line_breaks(self) -> None:
        text = "".join(f"ligne numéro {i}\n" for i in range(50))
        chunks = TextChunker(chunk_size=100, overlap=0).split(text)
        assert all(chunk.endswith("\n") for chunk in chunks)

    def test_overlap_repeats_tail(self) -> None:
        text = "a" * 250
        chunks = TextChunker(chunk_size=100, overlap=10).split(text)
        assert chunks[1].startswith("a" * 10)
        assert len(chunks) == 3

    @pytest.mark.parametrize(("size", "overlap"), [(0, 0), (100, 100), (100, -1)])
    def test_invalid_parameters(self, size: int, overlap: int) -> None:
        with pytest.raises(ValueError):
            TextChunker(size, overlap)

    def test_recombine_restores_text(self) -> None:
        text = "".join(f"Article {i}\nVu l'article numero {i}.\n" for i in range(1, 9)) + "Fin"
        chunker = TextChunker(chunk_size=120, overlap=0)
        chunks = chunker.split(text)
        assert len(chunks) > 1
        assert chunker.recombine(chunks, chunks) == text

    def test_recombine_keeps_line_boundaries(self) -> None:
        originals = ["Article 1er\nUn.\n", "Article 2\nDeux."]
        processed = ["Article 1er\nUn corrigé.", "Article 2\nDeux corrigé.\n"]
        assert TextChunker.recombine(processed, originals) == (
            "Article 1er\nUn corrigé.\nArticle 2\nDeux corrigé."
        )

    def test_recombine_needs_every_chunk(self) -> None:
        with pytest.raises(ValueError):
            TextChunker.recombine(["un"], ["un", "deux"])
