"""Validated XML.

Build XML trees whose validity against a content model (DTD-style
quantifiers and choices) is enforced while the tree is constructed and
mutated, then serialize them as well-formed XML.

Progressive API Disclosure:
- Level 1: Declarations - ElementType, optional(), repeated(), choice(), ...
- Level 2: Trees - ElementNode and its self-validating slots
- Level 3: Output control - XMLSerializer with LibraryConfig presets
"""

__version__ = "0.1.0"
__author__ = "Validated XML Team"

from .model import (
    TEXT,
    AlternationContainer,
    AnyContainer,
    AttributeDecl,
    AttributeModelError,
    CardinalityError,
    ContentModelError,
    ElementNode,
    ElementType,
    EmptyAlternationError,
    GroupNode,
    ModelDefinitionError,
    ModelValidator,
    OptionalContainer,
    OutputFormat,
    OwnershipError,
    RepeatedContainer,
    TypeMismatchError,
    UnknownSlotError,
    ValidationReport,
    XMLSerializer,
    choice,
    optional,
    repeated,
    sequence,
    text,
    zero_or_more,
)
from .shared.config import LibraryConfig

__all__ = [
    # Version and metadata
    "__author__",
    "__version__",

    # Level 1: Content model declarations
    "TEXT",
    "AttributeDecl",
    "ElementType",
    "choice",
    "optional",
    "repeated",
    "sequence",
    "text",
    "zero_or_more",

    # Level 2: Trees and their slots
    "ElementNode",
    "GroupNode",
    "OptionalContainer",
    "RepeatedContainer",
    "AnyContainer",
    "AlternationContainer",

    # Level 3: Validation and output
    "ModelValidator",
    "ValidationReport",
    "XMLSerializer",
    "OutputFormat",
    "LibraryConfig",

    # Errors
    "ContentModelError",
    "TypeMismatchError",
    "CardinalityError",
    "EmptyAlternationError",
    "ModelDefinitionError",
    "UnknownSlotError",
    "OwnershipError",
    "AttributeModelError",
]
