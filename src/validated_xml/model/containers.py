"""Self-validating slots of an element's content model.

Quantified containers (optional, repeated, any), alternation containers and
literal text slots. Every mutation checks the value's type and the slot's
cardinality first and leaves the slot untouched when the check fails.
"""

from typing import Any, Iterable, Iterator, List, NamedTuple, Optional, Tuple

from validated_xml.model.base import ContentNode, Fragment, Part, Renderable
from validated_xml.model.errors import (
    CardinalityError,
    ContentModelError,
    EmptyAlternationError,
    ModelDefinitionError,
    OwnershipError,
    TypeMismatchError,
)
from validated_xml.model.types import (
    AlternationSpec,
    QuantifiedSpec,
    Quantifier,
    SlotSpec,
    TextSpec,
    describe_value,
    has_invalid_xml_chars,
)
from validated_xml.model.validation import ValidationIssueType
from validated_xml.shared import DiagnosticSeverity, get_logger

logger = get_logger(__name__, component="containers")


class Slot(Renderable):
    """Base class for one named position in an element's content."""

    def __init__(self, spec: SlotSpec, owner: Optional[ContentNode] = None) -> None:
        self.spec = spec
        self.owner = owner

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def path(self) -> str:
        return self.owner.path if self.owner is not None else ""

    @property
    def values(self) -> Tuple[Any, ...]:
        """Held values in document order."""
        raise NotImplementedError

    def iter_content(self) -> Iterator[Any]:
        """Yield text values and element nodes, expanding anonymous groups."""
        for value in self.values:
            if isinstance(value, ContentNode) and value.transparent:
                yield from value.iter_content()
            elif isinstance(value, str):
                if value:
                    yield value
            else:
                yield value

    def serialize(self, config: Any = None) -> str:
        """Validate this slot and render its content as XML text."""
        from validated_xml.model.serializer import XMLSerializer

        return XMLSerializer(config).serialize(self)

    def _reject(self, error_class: type, message: str) -> ContentModelError:
        logger.debug(
            "Slot mutation rejected",
            extra={"slot": self.name, "path": self.path, "reason": message}
        )
        return error_class(f"Slot '{self.name}': {message}", path=self.path or None)

    def _adopt(self, value: Any) -> None:
        """Check that ``value`` may become a child of this slot's owner."""
        if not isinstance(value, ContentNode):
            return
        if self.owner is None:
            raise self._reject(
                OwnershipError,
                f"{describe_value(value)} needs a slot that belongs to a node"
            )
        if value.parent is not None:
            raise self._reject(
                OwnershipError,
                f"{describe_value(value)} already belongs to {value.parent.path or 'a group'}"
            )
        if value is self.owner or any(
            ancestor is value for ancestor in self.owner.iter_ancestors()
        ):
            raise self._reject(
                OwnershipError,
                f"{describe_value(value)} cannot be placed beneath itself"
            )

    def _attach(self, value: Any) -> None:
        if isinstance(value, ContentNode):
            value.parent = self.owner

    def _release(self, value: Any) -> None:
        if isinstance(value, ContentNode):
            value.parent = None

    def _check_value(
        self,
        validator: Any,
        report: Any,
        depth: int,
        value: Any,
        accepted: bool,
    ) -> None:
        """Report type, ownership and character problems of one held value."""
        if not accepted:
            report.add_issue(
                ValidationIssueType.TYPE_MISMATCH,
                f"Slot '{self.name}' holds unexpected {describe_value(value)}",
                element_path=self.path,
                slot=self.name,
            )
        if isinstance(value, str):
            if has_invalid_xml_chars(value):
                report.add_issue(
                    ValidationIssueType.TYPE_MISMATCH,
                    f"Slot '{self.name}' holds text with characters not allowed in XML",
                    element_path=self.path,
                    slot=self.name,
                )
        elif isinstance(value, ContentNode):
            if value.parent is not self.owner:
                report.add_issue(
                    ValidationIssueType.OWNERSHIP,
                    f"Slot '{self.name}' holds {describe_value(value)} owned elsewhere",
                    element_path=self.path,
                    slot=self.name,
                    severity=DiagnosticSeverity.CRITICAL,
                )
            validator.enqueue(value, depth + 1)

    def iter_parts(self, serializer: Any, depth: int) -> Iterator[Part]:
        for value in self.values:
            if isinstance(value, str):
                if value:
                    yield Fragment(serializer.escape_text(value), False)
            else:
                yield value, depth


class QuantifiedContainer(Slot):
    """Ordered values of one declared child type under a quantifier.

    Subclasses fix the quantifier; the declared child may be an element
    type, ``TEXT`` or an anonymous sequence.
    """

    quantifier: Quantifier

    def __init__(self, spec: QuantifiedSpec, owner: Optional[ContentNode] = None) -> None:
        if spec.quantifier is not self.quantifier:
            raise ModelDefinitionError(
                f"{type(self).__name__} cannot hold a '{spec.quantifier.symbol}' slot"
            )
        super().__init__(spec, owner)
        self._items: List[Any] = []

    @property
    def child(self) -> Any:
        return self.spec.child

    @property
    def values(self) -> Tuple[Any, ...]:
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Any]:
        return iter(tuple(self._items))

    def __getitem__(self, index: int) -> Any:
        return self._items[index]

    def get(self, index: int) -> Any:
        """Get the value at ``index`` in document order."""
        return self._items[index]

    def add(self, value: Any, index: Optional[int] = None) -> None:
        """Append ``value``, or insert it before position ``index``."""
        self._check_type(value)
        self._check_count(len(self._items) + 1)
        if index is not None and not (0 <= index <= len(self._items)):
            raise IndexError("Slot index out of range")
        self._adopt(value)

        if index is None:
            self._items.append(value)
        else:
            self._items.insert(index, value)
        self._attach(value)
        self.validate()

    def extend(self, values: Iterable[Any]) -> None:
        """Append several values; none are added unless all are accepted."""
        new_values = list(values)
        if not new_values:
            return
        for value in new_values:
            self._check_type(value)
            self._adopt(value)
        for position, value in enumerate(new_values):
            if any(other is value for other in new_values[:position]):
                raise self._reject(
                    OwnershipError, f"{describe_value(value)} is given twice"
                )
        self._check_count(len(self._items) + len(new_values))

        for value in new_values:
            self._items.append(value)
            self._attach(value)
        self.validate()

    def remove(self, index: int) -> Any:
        """Remove and return the value at ``index``."""
        value = self._items[index]
        if len(self._items) - 1 < self.quantifier.minimum:
            raise self._reject(
                CardinalityError,
                f"removal would leave fewer than {self.quantifier.minimum} item(s)"
            )

        del self._items[index]
        self._release(value)
        self.validate()
        return value

    def replace(self, index: int, value: Any) -> Any:
        """Swap the value at ``index`` for ``value``; return the old one."""
        old_value = self._items[index]
        if old_value is value:
            return old_value
        self._check_type(value)
        self._adopt(value)

        self._items[index] = value
        self._release(old_value)
        self._attach(value)
        self.validate()
        return old_value

    def clear(self) -> None:
        """Remove every value, where the quantifier permits none."""
        if self.quantifier.minimum > 0 and self._items:
            raise self._reject(
                CardinalityError,
                f"clearing would leave fewer than {self.quantifier.minimum} item(s)"
            )
        for value in self._items:
            self._release(value)
        self._items = []

    def validate(self) -> None:
        """Re-check the cardinality bounds against the current contents."""
        violation = self._cardinality_violation(len(self._items))
        if violation:
            raise self._reject(CardinalityError, violation)

    def _cardinality_violation(self, count: int) -> Optional[str]:
        quantifier = self.quantifier
        if count < quantifier.minimum:
            return f"requires at least {quantifier.minimum} item(s), holds {count}"
        if quantifier.maximum is not None and count > quantifier.maximum:
            return f"allows at most {quantifier.maximum} item(s), holds {count}"
        return None

    def _check_type(self, value: Any) -> None:
        if not self.child.accepts(value):
            raise self._reject(
                TypeMismatchError,
                f"expects {self.child.describe()}, got {describe_value(value)}"
            )

    def _check_count(self, count: int) -> None:
        maximum = self.quantifier.maximum
        if maximum is not None and count > maximum:
            raise self._reject(
                CardinalityError,
                f"allows at most {maximum} item(s)"
            )

    def collect_issues(self, validator: Any, report: Any, depth: int) -> None:
        violation = self._cardinality_violation(len(self._items))
        if violation:
            report.add_issue(
                ValidationIssueType.CARDINALITY,
                f"Slot '{self.name}' ({self.spec.describe()}) {violation}",
                element_path=self.path,
                slot=self.name,
                details={"count": len(self._items)},
            )
        for value in self._items:
            self._check_value(validator, report, depth, value, self.child.accepts(value))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.spec.describe()}, {len(self._items)} item(s))"


class OptionalContainer(QuantifiedContainer):
    """Zero or one value (``child?``)."""

    quantifier = Quantifier.OPTIONAL

    @property
    def value(self) -> Any:
        """The held value, or None."""
        return self._items[0] if self._items else None


class RepeatedContainer(QuantifiedContainer):
    """One or more values (``child+``).

    May start empty while it is being populated; an empty repeated
    container is reported by validation and refuses to serialize.
    """

    quantifier = Quantifier.REPEATED


class AnyContainer(QuantifiedContainer):
    """Any number of values (``child*``)."""

    quantifier = Quantifier.ANY


class Choice(NamedTuple):
    """The option an alternation currently holds, tagged with its value."""

    option: Any
    value: Any


class AlternationContainer(Slot):
    """Exactly one value chosen from a fixed set of options."""

    def __init__(self, spec: AlternationSpec, owner: Optional[ContentNode] = None) -> None:
        super().__init__(spec, owner)
        self._choice: Optional[Choice] = None

    @property
    def options(self) -> Tuple[Any, ...]:
        return self.spec.options

    @property
    def required(self) -> bool:
        return self.spec.required

    @property
    def selected(self) -> Any:
        """The option of the held value, or None when empty."""
        return self._choice.option if self._choice else None

    @property
    def is_set(self) -> bool:
        return self._choice is not None

    @property
    def values(self) -> Tuple[Any, ...]:
        return (self._choice.value,) if self._choice else ()

    def __len__(self) -> int:
        return 1 if self._choice else 0

    def __iter__(self) -> Iterator[Any]:
        return iter(self.values)

    def match_option(self, value: Any) -> Any:
        """Find the option ``value`` belongs to, or None."""
        for option in self.options:
            if option.accepts(value):
                return option
        return None

    def set(self, value: Any) -> None:
        """Replace the held value."""
        option = self.match_option(value)
        if option is None:
            raise self._reject(
                TypeMismatchError,
                f"accepts {self.spec.describe()}, got {describe_value(value)}"
            )
        if self._choice is not None and self._choice.value is value:
            return
        self._adopt(value)

        previous = self._choice
        self._choice = Choice(option, value)
        self._attach(value)
        if previous is not None:
            self._release(previous.value)

    def get(self) -> Any:
        """Get the held value; None only when the alternation is optional."""
        if self._choice is None:
            if self.required:
                raise self._reject(EmptyAlternationError, "no alternative has been set")
            return None
        return self._choice.value

    def clear(self) -> None:
        """Empty the alternation, where the model permits absence."""
        if self.required:
            raise self._reject(
                EmptyAlternationError, "a required alternation cannot be cleared"
            )
        if self._choice is not None:
            self._release(self._choice.value)
        self._choice = None

    def validate(self) -> None:
        """Check that a required alternation holds a value."""
        if self._choice is None and self.required:
            raise self._reject(EmptyAlternationError, "no alternative has been set")

    def collect_issues(self, validator: Any, report: Any, depth: int) -> None:
        if self._choice is None:
            if self.required:
                report.add_issue(
                    ValidationIssueType.EMPTY_ALTERNATION,
                    f"Slot '{self.name}' {self.spec.describe()} has no alternative set",
                    element_path=self.path,
                    slot=self.name,
                )
            return
        value = self._choice.value
        self._check_value(
            validator, report, depth, value, self._choice.option.accepts(value)
        )

    def __repr__(self) -> str:
        held = self.selected.describe() if self._choice else "empty"
        return f"AlternationContainer({self.spec.describe()}, {held})"


class TextSlot(Slot):
    """A literal character data position in a sequence."""

    def __init__(self, spec: TextSpec, owner: Optional[ContentNode] = None) -> None:
        super().__init__(spec, owner)
        self._text = ""

    @property
    def values(self) -> Tuple[Any, ...]:
        return (self._text,)

    @property
    def value(self) -> str:
        return self._text

    def set(self, value: str) -> None:
        """Replace the text."""
        if not isinstance(value, str):
            raise self._reject(
                TypeMismatchError, f"expects text, got {describe_value(value)}"
            )
        self._text = value

    def get(self) -> str:
        return self._text

    def clear(self) -> None:
        self._text = ""

    def validate(self) -> None:
        """Text slots accept any string, so there is nothing to re-check."""

    def collect_issues(self, validator: Any, report: Any, depth: int) -> None:
        self._check_value(validator, report, depth, self._text, True)

    def __repr__(self) -> str:
        return f"TextSlot({self.name!r}, {self._text!r})"


QUANTIFIED_CONTAINERS = {
    Quantifier.OPTIONAL: OptionalContainer,
    Quantifier.REPEATED: RepeatedContainer,
    Quantifier.ANY: AnyContainer,
}


def create_slot(spec: SlotSpec, owner: Optional[ContentNode] = None) -> Slot:
    """Build the empty slot matching a slot specification."""
    if isinstance(spec, QuantifiedSpec):
        return QUANTIFIED_CONTAINERS[spec.quantifier](spec, owner)
    if isinstance(spec, AlternationSpec):
        return AlternationContainer(spec, owner)
    if isinstance(spec, TextSpec):
        return TextSlot(spec, owner)
    raise ModelDefinitionError(f"Unsupported slot specification: {spec!r}")
