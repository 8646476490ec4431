"""Exception classes for Kestrel with detailed context."""

from typing import List, Optional
import difflib


class KestrelError(Exception):
    """Base exception for Kestrel errors with detailed context information."""

    def __init__(
        self,
        message: str,
        context: Optional[str] = None,
        expected: Optional[str] = None,
        received: Optional[str] = None,
        suggestion: Optional[str] = None
    ):
        """
        Initialize detailed error.

        Args:
            message: Core error description
            context: Additional context information
            expected: What was expected
            received: What was actually received
            suggestion: Suggestion for fixing the error
        """
        self.message = message
        self.context = context
        self.expected = expected
        self.received = received
        self.suggestion = suggestion

        super().__init__(self._format_detailed_message())

    def _format_detailed_message(self) -> str:
        """Format the error message with all available details."""
        parts = [f"Error: {self.message}"]

        if self.received:
            parts.append(f"Received: {self.received}")

        if self.expected:
            parts.append(f"Expected: {self.expected}")

        if self.context:
            parts.append(f"Context: {self.context}")

        if self.suggestion:
            parts.append(f"Suggestion: {self.suggestion}")

        return "\n".join(parts)


class KestrelCompileError(KestrelError):
    """Errors raised while lowering an AST into a function frame."""


class KestrelRuntimeError(KestrelError):
    """Errors raised while stepping the virtual machine."""


class KestrelTypeError(KestrelRuntimeError):
    """An instruction received a value of the wrong type."""


class ErrorMessageBuilder:
    """Helper class for building detailed error messages."""

    @staticmethod
    def suggest_similar_names(target: str, available_names: List[str], max_suggestions: int = 3) -> List[str]:
        """Suggest similar variable names using fuzzy matching."""
        if not target or not available_names:
            return []

        return difflib.get_close_matches(target, available_names, n=max_suggestions, cutoff=0.6)

    @staticmethod
    def undefined_variable_suggestion(name: str, available_names: List[str]) -> str:
        """Build the suggestion text for a reference to an unknown variable."""
        similar = ErrorMessageBuilder.suggest_similar_names(name, available_names)
        if similar:
            return f"Did you mean: {', '.join(similar)}?"

        return f"Declare it first with a let binding: let {name} = ..."
