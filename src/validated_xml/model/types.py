"""Content model declarations.

An :class:`ElementType` pairs a tag name with its content model. Models are
built from slot specifications:

    Title = ElementType.text_only("title")
    Chapter = ElementType.text_only("chapter")
    Book = ElementType("book", [optional(Title), repeated(Chapter)])

which corresponds to ``<!ELEMENT book (title?, chapter+)>``. Declarations
are checked when they are made and never change afterwards.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional, Tuple, Union

from validated_xml.model.base import ContentNode
from validated_xml.model.errors import ModelDefinitionError

# NameStartChar and NameChar from the XML 1.0 (Fifth Edition) Name production
_NAME_START_CHARS = (
    ":A-Z_a-z\u00C0-\u00D6\u00D8-\u00F6\u00F8-\u02FF\u0370-\u037D\u037F-\u1FFF"
    "\u200C-\u200D\u2070-\u218F\u2C00-\u2FEF\u3001-\uD7FF\uF900-\uFDCF"
    "\uFDF0-\uFFFD\U00010000-\U000EFFFF"
)
_NAME_CHARS = _NAME_START_CHARS + "\\-.0-9\u00B7\u0300-\u036F\u203F-\u2040"
_XML_NAME_PATTERN = re.compile(f"[{_NAME_START_CHARS}][{_NAME_CHARS}]*")


def is_xml_name(name: Any) -> bool:
    """Check whether ``name`` is usable as an XML element or attribute name."""
    return isinstance(name, str) and _XML_NAME_PATTERN.fullmatch(name) is not None


def _require_xml_name(name: Any, what: str) -> None:
    if not is_xml_name(name):
        raise ModelDefinitionError(f"Invalid {what} name: {name!r}")


class Quantifier(Enum):
    """Cardinality of a quantified particle: symbol, minimum, maximum."""

    OPTIONAL = ("?", 0, 1)
    REPEATED = ("+", 1, None)
    ANY = ("*", 0, None)

    def __init__(self, symbol: str, minimum: int, maximum: Optional[int]) -> None:
        self.symbol = symbol
        self.minimum = minimum
        self.maximum = maximum

    def allows(self, count: int) -> bool:
        """Check whether ``count`` items satisfy this quantifier."""
        if count < self.minimum:
            return False
        return self.maximum is None or count <= self.maximum


class _TextType:
    """Marker for character data (``#PCDATA``) in a content model."""

    name = "#PCDATA"

    def accepts(self, value: Any) -> bool:
        return isinstance(value, str)

    def describe(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return "TEXT"


TEXT = _TextType()


@dataclass(frozen=True)
class AttributeDecl:
    """Declaration of one attribute an element type accepts."""

    name: str
    required: bool = False
    default: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate attribute declaration."""
        _require_xml_name(self.name, "attribute")
        if self.required and self.default is not None:
            raise ModelDefinitionError(
                f"Attribute '{self.name}' cannot be both required and defaulted"
            )
        if self.default is not None and not isinstance(self.default, str):
            raise ModelDefinitionError(
                f"Default of attribute '{self.name}' must be a string"
            )


@dataclass(frozen=True, eq=False)
class SlotSpec:
    """Base class for one named position in a sequence content model."""

    name: str

    def describe(self) -> str:
        raise NotImplementedError


@dataclass(frozen=True, eq=False)
class QuantifiedSpec(SlotSpec):
    """A child type under a quantifier, e.g. ``chapter+``."""

    quantifier: Quantifier
    child: Any

    def __post_init__(self) -> None:
        _require_xml_name(self.name, "slot")
        _check_child(self.child, self.name)

    def describe(self) -> str:
        return f"{self.child.describe()}{self.quantifier.symbol}"


@dataclass(frozen=True, eq=False)
class AlternationSpec(SlotSpec):
    """A choice among alternatives, e.g. ``(para | figure | table)``."""

    options: Tuple[Any, ...]
    required: bool = True

    def __post_init__(self) -> None:
        _require_xml_name(self.name, "slot")
        if not self.options:
            raise ModelDefinitionError(
                f"Alternation '{self.name}' must offer at least one option"
            )
        seen = []
        for option in self.options:
            _check_child(option, self.name)
            if any(option is other for other in seen):
                raise ModelDefinitionError(
                    f"Alternation '{self.name}' lists {option.describe()} twice"
                )
            seen.append(option)

    def describe(self) -> str:
        choices = " | ".join(option.describe() for option in self.options)
        return f"({choices})" + ("" if self.required else "?")


@dataclass(frozen=True, eq=False)
class TextSpec(SlotSpec):
    """A literal character data position inside a sequence."""

    def __post_init__(self) -> None:
        _require_xml_name(self.name, "slot")

    def describe(self) -> str:
        return TEXT.describe()


def _check_slots(slots: Tuple[SlotSpec, ...], owner: str) -> None:
    """Reject entries that are not slots, and duplicate slot names."""
    names = set()
    for spec in slots:
        if not isinstance(spec, SlotSpec):
            raise ModelDefinitionError(
                f"Content model of {owner} contains a non-slot entry: {spec!r}"
            )
        if spec.name in names:
            raise ModelDefinitionError(
                f"Content model of {owner} declares slot '{spec.name}' twice"
            )
        names.add(spec.name)


class Sequence:
    """An ordered group of slots.

    Used as the content model of an element type, or anonymously as the
    child of a quantifier or an option of an alternation, as in
    ``((term, definition)+)``. Values of an anonymous sequence are
    :class:`~validated_xml.model.nodes.GroupNode` instances.
    """

    def __init__(self, slots: Iterable[SlotSpec] = (), name: Optional[str] = None) -> None:
        if name is not None:
            _require_xml_name(name, "sequence")
        self._slots = tuple(slots)
        self._name = name
        _check_slots(self._slots, name or "anonymous sequence")

    @property
    def slots(self) -> Tuple[SlotSpec, ...]:
        return self._slots

    @property
    def name(self) -> Optional[str]:
        return self._name

    @property
    def slot_names(self) -> Tuple[str, ...]:
        return tuple(spec.name for spec in self._slots)

    def get_slot(self, name: str) -> Optional[SlotSpec]:
        """Find the slot specification with the given name."""
        for spec in self._slots:
            if spec.name == name:
                return spec
        return None

    def accepts(self, value: Any) -> bool:
        return isinstance(value, ContentNode) and value.declaration is self

    def describe(self) -> str:
        if not self._slots:
            return "EMPTY"
        return "(" + ", ".join(spec.describe() for spec in self._slots) + ")"

    def __repr__(self) -> str:
        return f"Sequence({self.describe()})"


ModelType = Union[Sequence, _TextType]


class ElementType:
    """An element tag name with its declared content model and attributes.

    The model is one of ``TEXT`` (character data only), a :class:`Sequence`,
    a list of slot specifications, or a single slot specification. ``None``
    declares an empty element. ``attributes`` lists the accepted attribute
    names (or :class:`AttributeDecl` entries); ``None`` leaves attributes
    unrestricted.

    Recursive models need a type to exist before its model does:

        Section = ElementType.forward("section")
        Section.define([text("heading"), zero_or_more(Section)])
    """

    def __init__(
        self,
        name: str,
        model: Any = None,
        attributes: Optional[Iterable[Union[str, AttributeDecl]]] = None,
    ) -> None:
        _require_xml_name(name, "element")
        self._name = name
        self._model: Optional[ModelType] = None
        self._attributes = _normalize_attributes(name, attributes)
        self.define(model)

    @classmethod
    def text_only(
        cls,
        name: str,
        attributes: Optional[Iterable[Union[str, AttributeDecl]]] = None,
    ) -> "ElementType":
        """Declare an element holding character data only."""
        return cls(name, TEXT, attributes)

    @classmethod
    def forward(
        cls,
        name: str,
        attributes: Optional[Iterable[Union[str, AttributeDecl]]] = None,
    ) -> "ElementType":
        """Declare an element type whose model is supplied later by ``define``."""
        element_type = cls.__new__(cls)
        _require_xml_name(name, "element")
        element_type._name = name
        element_type._model = None
        element_type._attributes = _normalize_attributes(name, attributes)
        return element_type

    def define(self, model: Any) -> "ElementType":
        """Set the content model; allowed exactly once."""
        if self._model is not None:
            raise ModelDefinitionError(
                f"Content model of <{self._name}> is already defined"
            )
        if model is TEXT or isinstance(model, Sequence):
            self._model = model
        elif model is None:
            self._model = Sequence(())
        elif isinstance(model, SlotSpec):
            self._model = Sequence((model,))
        elif isinstance(model, (list, tuple)):
            self._model = Sequence(model)
        else:
            raise ModelDefinitionError(
                f"Unsupported content model for <{self._name}>: {model!r}"
            )
        return self

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_defined(self) -> bool:
        return self._model is not None

    @property
    def model(self) -> ModelType:
        if self._model is None:
            raise ModelDefinitionError(
                f"Content model of <{self._name}> has not been defined"
            )
        return self._model

    @property
    def is_text_only(self) -> bool:
        return self.model is TEXT

    @property
    def is_empty(self) -> bool:
        return isinstance(self.model, Sequence) and not self.model.slots

    @property
    def slots(self) -> Tuple[SlotSpec, ...]:
        model = self.model
        return model.slots if isinstance(model, Sequence) else ()

    @property
    def attributes(self) -> Optional[Tuple[AttributeDecl, ...]]:
        return self._attributes

    @property
    def content_model(self) -> str:
        """Content model in DTD notation, e.g. ``(title?, chapter+)``."""
        if self._model is None:
            return "UNDEFINED"
        if self._model is TEXT:
            return "(#PCDATA)"
        return self._model.describe()

    def get_attribute_decl(self, name: str) -> Optional[AttributeDecl]:
        """Find the declaration of attribute ``name``, if declared."""
        for decl in self._attributes or ():
            if decl.name == name:
                return decl
        return None

    def accepts(self, value: Any) -> bool:
        return isinstance(value, ContentNode) and value.declaration is self

    def describe(self) -> str:
        return self._name

    def new(self, content: Any = None, attributes: Optional[dict] = None,
            **slot_values: Any) -> Any:
        """Create an element node of this type.

        Slot values may be passed as keyword arguments or through
        ``content``; text-only types take their text as ``content``.
        """
        from validated_xml.model.nodes import ElementNode

        if slot_values:
            content = dict(content or {}, **slot_values)
        return ElementNode(self, content, attributes)

    def __repr__(self) -> str:
        return f"ElementType({self._name!r}, {self.content_model})"


def _normalize_attributes(
    element_name: str,
    attributes: Optional[Iterable[Union[str, AttributeDecl]]],
) -> Optional[Tuple[AttributeDecl, ...]]:
    if attributes is None:
        return None
    decls = []
    names = set()
    for entry in attributes:
        decl = AttributeDecl(entry) if isinstance(entry, str) else entry
        if not isinstance(decl, AttributeDecl):
            raise ModelDefinitionError(
                f"Invalid attribute declaration on <{element_name}>: {entry!r}"
            )
        if decl.name in names:
            raise ModelDefinitionError(
                f"Attribute '{decl.name}' declared twice on <{element_name}>"
            )
        names.add(decl.name)
        decls.append(decl)
    return tuple(decls)


def _check_child(child: Any, slot_name: str) -> None:
    if child is TEXT or isinstance(child, (ElementType, Sequence)):
        return
    raise ModelDefinitionError(
        f"Slot '{slot_name}' refers to {child!r}, which is not an element type, "
        f"TEXT or a sequence"
    )


def _default_name(child: Any) -> str:
    if isinstance(child, ElementType):
        return child.name
    if child is TEXT:
        return "text"
    if isinstance(child, Sequence) and child.name:
        return child.name
    raise ModelDefinitionError(f"A slot name is required for {child!r}")


def optional(child: Any, name: Optional[str] = None) -> QuantifiedSpec:
    """Declare ``child?``: zero or one occurrence."""
    return QuantifiedSpec(name or _default_name(child), Quantifier.OPTIONAL, child)


def repeated(child: Any, name: Optional[str] = None) -> QuantifiedSpec:
    """Declare ``child+``: one or more occurrences."""
    return QuantifiedSpec(name or _default_name(child), Quantifier.REPEATED, child)


def zero_or_more(child: Any, name: Optional[str] = None) -> QuantifiedSpec:
    """Declare ``child*``: any number of occurrences."""
    return QuantifiedSpec(name or _default_name(child), Quantifier.ANY, child)


def choice(*options: Any, name: str = "choice", required: bool = True) -> AlternationSpec:
    """Declare ``(a | b | ...)``: exactly one of the options."""
    return AlternationSpec(name, tuple(options), required)


def text(name: str = "text") -> TextSpec:
    """Declare a literal character data position."""
    return TextSpec(name)


def sequence(*slots: SlotSpec, name: Optional[str] = None) -> Sequence:
    """Declare an anonymous ordered group of slots."""
    return Sequence(slots, name)


# Characters outside the XML 1.0 Char production cannot appear even escaped
_INVALID_XML_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


def has_invalid_xml_chars(value: str) -> bool:
    """Check whether ``value`` contains characters XML 1.0 cannot represent."""
    return bool(_INVALID_XML_CHARS.search(value))


def describe_value(value: Any) -> str:
    """Short description of a value's type for error messages."""
    if isinstance(value, str):
        return TEXT.describe()
    if isinstance(value, ContentNode):
        return value.declaration.describe()
    return type(value).__name__
