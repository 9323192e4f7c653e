"""Content-model-aware XML trees.

Key Components:
    ElementType: Tag name plus declared content model
    ElementNode: Element whose slots mirror its type's content model
    OptionalContainer, RepeatedContainer, AnyContainer: Quantified slots
    AlternationContainer: Slot holding one of a fixed set of alternatives
    ModelValidator: Gathers every violation in a tree into a report
    XMLSerializer: Validates and renders trees as XML, dictionaries or JSON
"""

from .containers import (
    AlternationContainer,
    AnyContainer,
    Choice,
    OptionalContainer,
    QuantifiedContainer,
    RepeatedContainer,
    Slot,
    TextSlot,
    create_slot,
)
from .errors import (
    AttributeModelError,
    CardinalityError,
    ContentModelError,
    EmptyAlternationError,
    ModelDefinitionError,
    OwnershipError,
    TypeMismatchError,
    UnknownSlotError,
)
from .nodes import ElementNode, GroupNode
from .serializer import OutputFormat, XMLSerializer, escape_attribute, escape_text
from .types import (
    TEXT,
    AlternationSpec,
    AttributeDecl,
    ElementType,
    QuantifiedSpec,
    Quantifier,
    Sequence,
    SlotSpec,
    TextSpec,
    choice,
    optional,
    repeated,
    sequence,
    text,
    zero_or_more,
)
from .validation import (
    ModelValidator,
    ValidationIssue,
    ValidationIssueType,
    ValidationReport,
)

__all__ = [
    "AlternationContainer",
    "AnyContainer",
    "Choice",
    "OptionalContainer",
    "QuantifiedContainer",
    "RepeatedContainer",
    "Slot",
    "TextSlot",
    "create_slot",
    "AttributeModelError",
    "CardinalityError",
    "ContentModelError",
    "EmptyAlternationError",
    "ModelDefinitionError",
    "OwnershipError",
    "TypeMismatchError",
    "UnknownSlotError",
    "ElementNode",
    "GroupNode",
    "OutputFormat",
    "XMLSerializer",
    "escape_attribute",
    "escape_text",
    "TEXT",
    "AlternationSpec",
    "AttributeDecl",
    "ElementType",
    "QuantifiedSpec",
    "Quantifier",
    "Sequence",
    "SlotSpec",
    "TextSpec",
    "choice",
    "optional",
    "repeated",
    "sequence",
    "text",
    "zero_or_more",
    "ModelValidator",
    "ValidationIssue",
    "ValidationIssueType",
    "ValidationReport",
]
