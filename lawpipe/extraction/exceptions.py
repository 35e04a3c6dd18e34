class AiProviderError(Exception):
    """Raised when an AI provider call fails or returns unusable output."""


class AiProviderNetworkError(AiProviderError):
    """Raised when the AI provider cannot be reached or times out."""


class AiResponseValidationError(AiProviderError):
    """Raised when the AI response does not describe a valid law document."""
