"""Exceptions raised while loading notifier configuration."""

from typing import List, Optional


class ConfigurationError(Exception):
    """
    Raised when the YAML file or the environment cannot be turned into a
    usable configuration.

    Carries the individual validation problems and a few hints so the CLI can
    print something actionable before exiting.
    """

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Initialize ConfigurationError.

        Args:
            message: Primary error message
            errors: Specific validation problems
            suggestions: Hints for fixing them
        """
        self.message = message
        self.errors = errors or []
        self.suggestions = suggestions or []
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Join message, numbered errors and suggestions into one block."""
        parts = [self.message]

        if self.errors:
            parts.append("\nValidation Errors:")
            for i, error in enumerate(self.errors, 1):
                parts.append(f"  {i}. {error}")

        if self.suggestions:
            parts.append("\nSuggestions:")
            for suggestion in self.suggestions:
                parts.append(f"  - {suggestion}")

        return "\n".join(parts)
