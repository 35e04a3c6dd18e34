import httpx

from lawpipe.logging.logger import Log
from lawpipe.source.base import BaseDocumentSource
from lawpipe.source.exceptions import (
    SourceError,
    SourceNetworkError,
    SourceNotFoundError,
    SourceTimeoutError,
)


class HttpDocumentSource(BaseDocumentSource):
    """Probes and downloads documents over HTTP using httpx."""

    def __init__(
        self,
        timeout_seconds: int,
        user_agent: str,
        client: httpx.Client | None = None,
    ) -> None:
        self._client = client or httpx.Client(
            timeout=timeout_seconds,
            follow_redirects=True,
            headers={"User-Agent": user_agent},
        )

    def check_exists(self, url: str) -> None:
        response = self._send("HEAD", url)
        Log.debug(f"HEAD {url} -> {response.status_code}")

    def download(self, url: str) -> bytes:
        response = self._send("GET", url)
        return response.content

    def close(self) -> None:
        self._client.close()

    def _send(self, method: str, url: str) -> httpx.Response:
        try:
            response = self._client.request(method, url)
        except httpx.TimeoutException as exc:
            raise SourceTimeoutError(f"Timed out requesting {url}: {exc}") from exc
        except httpx.TransportError as exc:
            raise SourceNetworkError(f"Cannot reach {url}: {exc}") from exc
        if response.status_code == 404:
            raise SourceNotFoundError(f"Document not found at {url}")
        if response.status_code >= 500:
            raise SourceNetworkError(f"Source error {response.status_code} for {url}")
        if response.status_code != 200:
            raise SourceError(f"Unexpected status {response.status_code} for {url}")
        return response
