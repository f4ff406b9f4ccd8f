"""
Context Errors

Only type resolution and deserialization fail; unresolved references are
an expected outcome and resolve to None instead.
"""

from typing import Optional


class ContextError(Exception):
    """Base class for context serializer errors."""


class UnknownTypeError(ContextError):
    """No behaviour is registered for an entity type, prefixed or not."""

    def __init__(self, type_name: Optional[str]):
        self.type_name = type_name
        super().__init__(f"Unknown activity type {type_name}")


class DeserializationError(ContextError):
    """A serialized context could not be read back."""
