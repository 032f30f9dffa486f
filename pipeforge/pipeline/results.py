"""
Result envelopes returned by every pipeline.
"""

from typing import Any, Dict, List


class OperationResult:
    """Base class of everything a pipeline returns."""

    is_success = False

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class OkResult(OperationResult):
    """Successful execution, wrapping the handler's value."""

    is_success = True

    def __init__(self, content: Any = None):
        self.content = content

    def __eq__(self, other) -> bool:
        return isinstance(other, OkResult) and other.content == self.content

    def __repr__(self) -> str:
        return f"OkResult({self.content!r})"


class ValidationFailedOperationResult(OperationResult):
    """
    The operation failed validation.

    ``errors`` maps a property name to its messages; messages that do not
    concern a single property are kept under the empty string.
    """

    def __init__(self, errors: Dict[str, List[str]]):
        self.errors = {key: list(messages) for key, messages in errors.items()}

    @property
    def messages(self) -> List[str]:
        return [message for messages in self.errors.values() for message in messages]

    def __repr__(self) -> str:
        return f"ValidationFailedOperationResult({self.errors!r})"


class UnhandledExceptionOperationResult(OperationResult):
    """An exception escaped every registered handler."""

    def __init__(self, exception: BaseException):
        self.exception = exception

    def __repr__(self) -> str:
        return f"UnhandledExceptionOperationResult({self.exception!r})"
