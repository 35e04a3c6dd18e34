import base64

import httpx

from lawpipe.extraction.client_base import BaseAiClient, ProviderStatus
from lawpipe.extraction.exceptions import AiProviderError, AiProviderNetworkError

_PROBE_TIMEOUT_SECONDS = 5


class OllamaClientAdapter(BaseAiClient):
    """AI client for a local Ollama server (REST API)."""

    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: int,
        client: httpx.Client | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout_seconds)

    def probe(self) -> ProviderStatus:
        try:
            response = self._client.get(
                f"{self._base_url}/api/tags",
                timeout=_PROBE_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            return ProviderStatus(reachable=False, detail=str(exc))
        models = frozenset(
            m["name"] for m in payload.get("models", []) if isinstance(m, dict) and "name" in m
        )
        return ProviderStatus(reachable=True, models=models)

    def generate(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        images: list[bytes] | None = None,
        json_schema: dict[str, object] | None = None,
    ) -> str:
        body: dict[str, object] = {
            "model": model,
            "prompt": user_prompt,
            "system": system_prompt,
            "stream": False,
            "options": {"temperature": temperature},
        }
        if images:
            body["images"] = [base64.b64encode(image).decode("ascii") for image in images]
        if json_schema is not None:
            body["format"] = json_schema

        try:
            response = self._client.post(f"{self._base_url}/api/generate", json=body)
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            raise AiProviderNetworkError(f"Ollama network error: {exc}") from exc
        except httpx.HTTPError as exc:
            raise AiProviderError(f"Ollama request failed: {exc}") from exc

        if response.status_code >= 500:
            raise AiProviderNetworkError(f"Ollama server error {response.status_code}")
        if response.status_code != 200:
            raise AiProviderError(f"Ollama returned {response.status_code}: {response.text[:200]}")
        try:
            content = response.json().get("response")
        except ValueError as exc:
            raise AiProviderError(f"Ollama returned invalid JSON: {exc}") from exc
        if not content:
            raise AiProviderError("Ollama returned empty response")
        return content
