import httpx
import pytest

from lawpipe.pipeline.identity import DocumentType
from lawpipe.source.discovery import build_source_url, seed_documents
from lawpipe.source.exceptions import (
    SourceError,
    SourceNetworkError,
    SourceNotFoundError,
    SourceTimeoutError,
)
from lawpipe.source.http_source import HttpDocumentSource

URL = "https://sgg.test/doc/loi/loi-2024-15.pdf"


def _source(handler) -> HttpDocumentSource:  # type: ignore[no-untyped-def]
    return HttpDocumentSource(
        timeout_seconds=5,
        user_agent="lawpipe-test",
        client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


class TestHttpDocumentSource:
    def test_check_exists_uses_head(self) -> None:
        methods: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            methods.append(request.method)
            return httpx.Response(200)

        _source(handler).check_exists(URL)
        assert methods == ["HEAD"]

    def test_download_returns_body(self) -> None:
        source = _source(lambda request: httpx.Response(200, content=b"%PDF-1.4 body"))
        assert source.download(URL) == b"%PDF-1.4 body"

    def test_not_found(self) -> None:
        with pytest.raises(SourceNotFoundError):
            _source(lambda request: httpx.Response(404)).check_exists(URL)

    def test_server_error_is_network(self) -> None:
        with pytest.raises(SourceNetworkError, match="502"):
            _source(lambda request: httpx.Response(502)).download(URL)

    def test_other_status(self) -> None:
        with pytest.raises(SourceError, match="403"):
            _source(lambda request: httpx.Response(403)).download(URL)

    def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("slow", request=request)

        with pytest.raises(SourceTimeoutError):
            _source(handler).download(URL)

    def test_connection_refused(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(SourceNetworkError) as exc_info:
            _source(handler).check_exists(URL)
        assert not isinstance(exc_info.value, SourceTimeoutError)


class TestDiscovery:
    def test_build_source_url(self) -> None:
        template = "https://sgg.test/doc/{doc_type}/{year}/{number}/{document_id}.pdf"
        url = build_source_url(template, DocumentType.DECRET, 2021, 7)
        assert url == "https://sgg.test/doc/decret/2021/7/decret-2021-7.pdf"

    def test_seed_is_repeatable(self, store) -> None:
        template = "https://sgg.test/doc/{doc_type}/{document_id}.pdf"
        assert seed_documents(store, template, "loi", 2024, range(1, 4)) == 3
        assert seed_documents(store, template, "loi", 2024, range(1, 6)) == 2
        assert sorted(store.records) == [f"loi-2024-{n}" for n in range(1, 6)]
        assert store.records["loi-2024-2"].source_url == "https://sgg.test/doc/loi/loi-2024-2.pdf"
