from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ProviderStatus:
    """Outcome of an availability probe."""

    reachable: bool
    models: frozenset[str] = field(default_factory=frozenset)
    detail: str = ""


class BaseAiClient(ABC):
    """Contract for provider-specific AI clients."""

    @abstractmethod
    def probe(self) -> ProviderStatus:
        """Check reachability and list installed models. Never raises."""

    @abstractmethod
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
        """Return the provider response as plain text.

        Raises:
            AiProviderNetworkError: on connection failures and timeouts.
            AiProviderError: on any other provider failure.
        """
