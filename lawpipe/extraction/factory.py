from dataclasses import dataclass

from lawpipe.config.settings import Settings
from lawpipe.extraction.client_base import BaseAiClient
from lawpipe.extraction.ollama_client_adapter import OllamaClientAdapter
from lawpipe.extraction.openai_client_adapter import OpenAIClientAdapter
from lawpipe.logging.logger import Log


@dataclass(frozen=True)
class AiProvider:
    """A configured AI client plus the models it must serve to be usable."""

    name: str
    client: BaseAiClient
    model: str
    required_models: frozenset[str] = frozenset()

    def is_available(self) -> bool:
        """Reachable, and every required model installed."""
        status = self.client.probe()
        if not status.reachable:
            Log.info(f"AI provider '{self.name}' unreachable: {status.detail}")
            return False
        missing = self.required_models - status.models
        if missing:
            Log.info(f"AI provider '{self.name}' missing required models: {sorted(missing)}")
            return False
        Log.debug(f"AI provider '{self.name}' available")
        return True


class AiProviderFactory:
    """Creates the configured AI providers, primary first."""

    @classmethod
    def create_all(cls, settings: Settings) -> list[AiProvider]:
        providers = [cls.create_ollama(settings)]
        groq = cls.create_groq(settings)
        if groq is not None:
            providers.append(groq)
        return providers

    @classmethod
    def create_ollama(cls, settings: Settings) -> AiProvider:
        return AiProvider(
            name="ollama",
            client=OllamaClientAdapter(
                base_url=settings.ollama_url,
                timeout_seconds=settings.ollama_timeout_seconds,
            ),
            model=settings.ollama_model_name,
            required_models=_parse_models(settings.ollama_models_required),
        )

    @classmethod
    def create_groq(cls, settings: Settings) -> AiProvider | None:
        """Groq is only configured when an API key is present."""
        if not settings.groq_api_key.strip():
            return None
        return AiProvider(
            name="groq",
            client=OpenAIClientAdapter(
                api_key=settings.groq_api_key,
                timeout_seconds=settings.groq_timeout_seconds,
                base_url=settings.groq_base_url,
            ),
            model=settings.groq_model_name,
            required_models=_parse_models(settings.groq_models_required),
        )


def _parse_models(raw: str) -> frozenset[str]:
    return frozenset(m.strip() for m in raw.split(",") if m.strip())
