from abc import ABC, abstractmethod
from dataclasses import dataclass

import language_tool_python
from language_tool_python.utils import LanguageToolError

from lawpipe.logging.logger import Log


class SpellerError(Exception):
    """Raised when a spelling check cannot be answered."""


class SpellerInitializationError(SpellerError):
    """Raised when the spell checker cannot be started."""


@dataclass(frozen=True)
class SpellCheck:
    """Verdict for a single word.

    `suggestions` is only filled when the checker found exactly one error
    in the word, in the checker's order of preference.
    """

    known: bool
    suggestions: tuple[str, ...] = ()


class BaseSpeller(ABC):
    """Abstract spelling checker for isolated words."""

    @abstractmethod
    def check(self, word: str) -> SpellCheck:
        """Check one word.

        Raises:
            SpellerError: if the checker is unreachable.
        """
        raise NotImplementedError

    def close(self) -> None:
        """Release the checker's resources."""


class LanguageToolSpeller(BaseSpeller):
    """LanguageTool restricted to its TYPOS category (pure spelling rules).

    Without a server URL, language_tool_python downloads and runs a local
    LanguageTool server, which needs a Java runtime.
    """

    TYPOS_CATEGORY = "TYPOS"

    def __init__(self, language: str = "fr", server_url: str = "") -> None:
        try:
            self._tool = language_tool_python.LanguageTool(
                language,
                remote_server=server_url or None,
            )
        except (LanguageToolError, ModuleNotFoundError, OSError) as exc:
            raise SpellerInitializationError(f"Failed to start LanguageTool: {exc}") from exc
        self._tool.enabled_categories = {self.TYPOS_CATEGORY}
        self._tool.enabled_rules_only = True
        Log.info(
            f"LanguageTool ready for '{language}' "
            f"({'remote ' + server_url if server_url else 'local server'}, TYPOS only)"
        )

    def check(self, word: str) -> SpellCheck:
        try:
            matches = self._tool.check(word)
        except (LanguageToolError, OSError) as exc:
            raise SpellerError(f"LanguageTool check failed for '{word}': {exc}") from exc
        if not matches:
            return SpellCheck(known=True)
        if len(matches) > 1:
            return SpellCheck(known=False)
        return SpellCheck(known=False, suggestions=tuple(matches[0].replacements))

    def close(self) -> None:
        self._tool.close()
