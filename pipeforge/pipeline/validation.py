"""
Validation failures raised by operations and handlers.
"""

from typing import Dict, Iterable, List, Union


class ValidationError(Exception):
    """
    Raised when an operation is invalid.

    Accepts either a single message or a mapping of property name to one
    or more messages::

        raise ValidationError("x required")
        raise ValidationError({"name": ["too long"], "age": "must be positive"})
    """

    def __init__(self, errors: Union[str, Dict[str, Union[str, Iterable[str]]]]):
        if isinstance(errors, str):
            normalized: Dict[str, List[str]] = {"": [errors]}
        else:
            normalized = {
                key: [messages] if isinstance(messages, str) else list(messages)
                for key, messages in errors.items()
            }
        self.errors = normalized
        super().__init__("; ".join(m for messages in normalized.values() for m in messages))
