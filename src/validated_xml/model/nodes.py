"""Element and group nodes of a validated tree.

An :class:`ElementNode` is built from an :class:`ElementType` and owns one
slot per position of the type's content model, so its children can never
drift away from the declaration. Anonymous sequences inside a model are held
as :class:`GroupNode` values, which own slots the same way but add no markup
of their own.
"""

from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from validated_xml.model.base import ContentNode, Fragment, Part
from validated_xml.model.containers import (
    QuantifiedContainer,
    Slot,
    create_slot,
)
from validated_xml.model.errors import (
    AttributeModelError,
    ContentModelError,
    ModelDefinitionError,
    TypeMismatchError,
    UnknownSlotError,
)
from validated_xml.model.types import (
    ElementType,
    Sequence,
    describe_value,
    has_invalid_xml_chars,
    is_xml_name,
)
from validated_xml.model.validation import (
    ModelValidator,
    ValidationIssueType,
    ValidationReport,
)


class _SlotHost(ContentNode):
    """Shared behaviour of nodes whose content is a sequence of slots."""

    def __init__(self) -> None:
        super().__init__()
        self._slots: Dict[str, Slot] = {}

    def _build_slots(self, sequence: Sequence) -> None:
        self._slots = {spec.name: create_slot(spec, self) for spec in sequence.slots}

    def _populate(self, content: Any) -> None:
        if content is None:
            return
        if not isinstance(content, Mapping):
            raise TypeMismatchError(
                f"{self._label()} takes slot values as a mapping, got "
                f"{describe_value(content)}",
                path=self.path or None,
            )
        try:
            for name, value in content.items():
                _seed(self.child(name), value)
        except ContentModelError:
            # Construction failed; hand already adopted children back
            for slot in self._slots.values():
                for value in slot.values:
                    if isinstance(value, ContentNode):
                        value.parent = None
            raise

    def _label(self) -> str:
        raise NotImplementedError

    @property
    def slots(self) -> Tuple[Slot, ...]:
        """Slots in content model order."""
        return tuple(self._slots.values())

    @property
    def slot_names(self) -> Tuple[str, ...]:
        return tuple(self._slots)

    def child(self, name: str) -> Slot:
        """Get the slot called ``name`` for direct manipulation."""
        try:
            return self._slots[name]
        except KeyError:
            raise UnknownSlotError(
                f"{self._label()} has no slot '{name}'",
                path=self.path or None,
            ) from None

    def __getitem__(self, name: str) -> Slot:
        return self.child(name)

    def iter_content(self) -> Iterator[Any]:
        for slot in self._slots.values():
            yield from slot.iter_content()

    def child_elements(self) -> List["ElementNode"]:
        """Element children in document order, looking through groups."""
        return [item for item in self.iter_content() if isinstance(item, ElementNode)]

    def _iter_slot_parts(self, serializer: Any, depth: int) -> Iterator[Part]:
        for slot in self._slots.values():
            yield from slot.iter_parts(serializer, depth)

    def _collect_slot_issues(
        self, validator: ModelValidator, report: ValidationReport, depth: int
    ) -> None:
        for slot in self._slots.values():
            validator.visit_slot(slot, report, depth)


def _seed(slot: Slot, value: Any) -> None:
    """Pre-populate a slot from a constructor argument."""
    if value is None:
        return
    if not isinstance(slot, QuantifiedContainer):
        slot.set(value)
    elif isinstance(value, (list, tuple)):
        slot.extend(value)
    else:
        slot.add(value)


class GroupNode(_SlotHost):
    """Value of an anonymous sequence, such as one ``(term, definition)`` pair."""

    transparent = True

    def __init__(self, sequence: Sequence, content: Optional[Mapping[str, Any]] = None) -> None:
        if not isinstance(sequence, Sequence):
            raise ModelDefinitionError(f"GroupNode needs a Sequence, got {sequence!r}")
        super().__init__()
        self._sequence = sequence
        self._build_slots(sequence)
        self._populate(content)

    @property
    def declaration(self) -> Sequence:
        return self._sequence

    @property
    def path(self) -> str:
        return self.parent.path if self.parent is not None else ""

    def _label(self) -> str:
        return f"Group {self._sequence.describe()}"

    def iter_parts(self, serializer: Any, depth: int) -> Iterator[Part]:
        return self._iter_slot_parts(serializer, depth)

    def collect_issues(
        self, validator: ModelValidator, report: ValidationReport, depth: int
    ) -> None:
        self._collect_slot_issues(validator, report, depth)

    def __repr__(self) -> str:
        return f"GroupNode({self._sequence.describe()})"


class ElementNode(_SlotHost):
    """A named node whose content follows its element type's model.

    Text-only types hold a single text value instead of slots. Attributes
    are checked against the type's attribute declarations, when it has any.
    """

    def __init__(
        self,
        element_type: ElementType,
        content: Any = None,
        attributes: Optional[Mapping[str, str]] = None,
    ) -> None:
        if not isinstance(element_type, ElementType):
            raise ModelDefinitionError(
                f"ElementNode needs an ElementType, got {element_type!r}"
            )
        super().__init__()
        self._element_type = element_type
        self._text = ""
        self._attributes: Dict[str, str] = {}

        # Accessing the model rejects forward declarations that were never defined
        model = element_type.model
        for decl in element_type.attributes or ():
            if decl.default is not None:
                self._attributes[decl.name] = decl.default
        for name, value in (attributes or {}).items():
            self.set_attribute(name, value)

        if element_type.is_text_only:
            if content is not None:
                self.text = content
        else:
            self._build_slots(model)
            self._populate(content)

    @property
    def declaration(self) -> ElementType:
        return self._element_type

    @property
    def element_type(self) -> ElementType:
        return self._element_type

    @property
    def tag(self) -> str:
        return self._element_type.name

    def _label(self) -> str:
        return f"<{self.tag}>"

    @property
    def text(self) -> str:
        """Character data of a text-only element."""
        if not self._element_type.is_text_only:
            raise UnknownSlotError(
                f"<{self.tag}> has no text value; its model is "
                f"{self._element_type.content_model}",
                path=self.path,
            )
        return self._text

    @text.setter
    def text(self, value: str) -> None:
        if not self._element_type.is_text_only:
            raise UnknownSlotError(
                f"<{self.tag}> has no text value; its model is "
                f"{self._element_type.content_model}",
                path=self.path,
            )
        if not isinstance(value, str):
            raise TypeMismatchError(
                f"<{self.tag}> expects text, got {describe_value(value)}",
                path=self.path,
            )
        self._text = value

    def iter_content(self) -> Iterator[Any]:
        if self._element_type.is_text_only:
            if self._text:
                yield self._text
            return
        yield from super().iter_content()

    # Attributes

    @property
    def attributes(self) -> Dict[str, str]:
        """Copy of the attribute mapping."""
        return dict(self._attributes)

    def get_attribute(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get attribute value with optional default."""
        return self._attributes.get(name, default)

    def has_attribute(self, name: str) -> bool:
        """Check if element has specific attribute."""
        return name in self._attributes

    def set_attribute(self, name: str, value: str) -> None:
        """Set attribute value."""
        if not is_xml_name(name):
            raise AttributeModelError(f"Invalid attribute name: {name!r}", path=self.path)
        declared = self._element_type.attributes
        if declared is not None and self._element_type.get_attribute_decl(name) is None:
            allowed = ", ".join(decl.name for decl in declared) or "none"
            raise AttributeModelError(
                f"<{self.tag}> does not declare attribute '{name}' (allowed: {allowed})",
                path=self.path,
            )
        if not isinstance(value, str):
            raise TypeMismatchError(
                f"Attribute '{name}' expects text, got {describe_value(value)}",
                path=self.path,
            )
        self._attributes[name] = value

    def remove_attribute(self, name: str) -> bool:
        """Remove an attribute; returns False when it was not set."""
        decl = self._element_type.get_attribute_decl(name)
        if decl is not None and decl.required:
            raise AttributeModelError(
                f"Attribute '{name}' is required on <{self.tag}>", path=self.path
            )
        if name not in self._attributes:
            return False
        del self._attributes[name]
        return True

    # Navigation

    @property
    def path(self) -> str:
        """XPath-like path to this element, e.g. ``/book/chapter[2]``."""
        chain = [self]
        chain.extend(node for node in self.iter_ancestors() if not node.transparent)

        steps = [f"/{chain[-1].tag}"]
        for container, element in zip(reversed(chain), reversed(chain[:-1])):
            siblings = [
                child for child in container.child_elements() if child.tag == element.tag
            ]
            if len(siblings) > 1:
                position = next(
                    index for index, sibling in enumerate(siblings, 1) if sibling is element
                )
                steps.append(f"/{element.tag}[{position}]")
            else:
                steps.append(f"/{element.tag}")
        return "".join(steps)

    def iter_elements(self) -> Iterator["ElementNode"]:
        """Yield this element and every descendant element depth-first."""
        stack = [self]
        while stack:
            element = stack.pop()
            yield element
            stack.extend(reversed(element.child_elements()))

    def find(self, tag: str) -> Optional["ElementNode"]:
        """Find first descendant element with matching tag name."""
        for element in self.iter_elements():
            if element is not self and element.tag == tag:
                return element
        return None

    def find_all(self, tag: str) -> List["ElementNode"]:
        """Find all descendant elements with matching tag name."""
        return [
            element for element in self.iter_elements()
            if element is not self and element.tag == tag
        ]

    # Validation and output

    def validate(self, config: Any = None, correlation_id: Optional[str] = None) -> ValidationReport:
        """Validate this element and its subtree, gathering every violation."""
        return ModelValidator(config, correlation_id).validate(self)

    def serialize(self, config: Any = None, output_format: Any = None) -> str:
        """Validate, then render this element and its subtree."""
        from validated_xml.model.serializer import XMLSerializer

        return XMLSerializer(config).serialize(self, output_format)

    def to_dict(self, config: Any = None) -> Dict[str, Any]:
        """Convert element to dictionary representation, without validating."""
        from validated_xml.model.serializer import XMLSerializer

        return XMLSerializer(config).to_dict(self)

    def iter_parts(self, serializer: Any, depth: int) -> Iterator[Part]:
        if self._element_type.is_text_only:
            if self._text:
                yield Fragment(serializer.escape_text(self._text), False)
            return
        yield from self._iter_slot_parts(serializer, depth + 1)

    def finish(self, serializer: Any, fragments: List[Fragment], depth: int) -> List[Fragment]:
        return [serializer.render_element(self, fragments, depth)]

    def collect_issues(
        self, validator: ModelValidator, report: ValidationReport, depth: int
    ) -> None:
        report.elements_validated += 1
        path = None

        def add_issue(issue_type: ValidationIssueType, message: str) -> None:
            nonlocal path
            if path is None:
                path = self.path
            report.add_issue(issue_type, message, element_path=path)

        if validator.config.validation.check_required_attributes:
            for decl in self._element_type.attributes or ():
                if decl.required and decl.name not in self._attributes:
                    add_issue(
                        ValidationIssueType.ATTRIBUTE,
                        f"Required attribute '{decl.name}' is missing",
                    )
        for name, value in self._attributes.items():
            if has_invalid_xml_chars(value):
                add_issue(
                    ValidationIssueType.ATTRIBUTE,
                    f"Attribute '{name}' contains characters not allowed in XML",
                )

        if self._element_type.is_text_only:
            if has_invalid_xml_chars(self._text):
                add_issue(
                    ValidationIssueType.TYPE_MISMATCH,
                    "Text contains characters not allowed in XML",
                )
            return
        self._collect_slot_issues(validator, report, depth)

    def __repr__(self) -> str:
        return f"ElementNode(<{self.tag}>)"
