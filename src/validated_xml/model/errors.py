"""Exceptions raised when a tree would violate its content model."""

from typing import Any, List, Optional


class ContentModelError(Exception):
    """Base exception for content model violations.

    Attributes:
        path: XPath-like location of the offending node, when known
        issues: Every violation found when raised from a validation report
    """

    def __init__(self, message: str, path: Optional[str] = None,
                 issues: Optional[List[Any]] = None):
        super().__init__(message)
        self.path = path
        self.issues = issues or []


class TypeMismatchError(ContentModelError):
    """A value of the wrong type was offered to a container."""


class CardinalityError(ContentModelError):
    """An operation would violate, or already violates, a quantifier bound."""


class EmptyAlternationError(ContentModelError):
    """A required alternation holds no value."""


class ModelDefinitionError(ContentModelError):
    """A content model declaration is malformed."""


class UnknownSlotError(ContentModelError, KeyError):
    """A slot or attribute name is absent from the content model."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""


class OwnershipError(ContentModelError):
    """A node was attached to a second parent or beneath itself."""


class AttributeModelError(ContentModelError):
    """An attribute is undeclared, or a required one is missing."""
