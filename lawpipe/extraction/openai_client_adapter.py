import base64

import httpx
import openai

from lawpipe.extraction.client_base import BaseAiClient, ProviderStatus
from lawpipe.extraction.exceptions import AiProviderError, AiProviderNetworkError


class OpenAIClientAdapter(BaseAiClient):
    """AI client built on the OpenAI-compatible chat API (used for Groq)."""

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
        )

    def probe(self) -> ProviderStatus:
        try:
            models = frozenset(model.id for model in self._client.models.list())
        except openai.APIError as exc:
            return ProviderStatus(reachable=False, detail=str(exc))
        except httpx.HTTPError as exc:
            return ProviderStatus(reachable=False, detail=str(exc))
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
        user_content: str | list[dict[str, object]] = user_prompt
        if images:
            user_content = [{"type": "text", "text": user_prompt}] + [
                {
                    "type": "image_url",
                    "image_url": {
                        "url": "data:image/png;base64," + base64.b64encode(image).decode("ascii")
                    },
                }
                for image in images
            ]
        request: dict[str, object] = {
            "model": model,
            "temperature": temperature,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
        }
        if json_schema is not None:
            request["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": "law_document",
                    "strict": True,
                    "schema": json_schema,
                },
            }
        try:
            response = self._client.chat.completions.create(**request)  # type: ignore[call-overload]
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise AiProviderNetworkError(f"AI provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise AiProviderError(f"AI provider API error: {exc}") from exc

        if not response.choices:
            raise AiProviderError("AI returned no choices")
        content = response.choices[0].message.content
        if content is None:
            raise AiProviderError("AI returned empty response")
        return content
