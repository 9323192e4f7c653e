"""Common interfaces for nodes and slots of a validated tree.

Every node and slot describes its output through ``iter_parts`` and reports
its own violations through ``collect_issues``. Child nodes are handed back
to the serializer and validator rather than visited in place, so both walk
a tree of any depth with an explicit stack.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Iterator, List, NamedTuple, Optional, Tuple, Union

if TYPE_CHECKING:
    from validated_xml.model.serializer import XMLSerializer
    from validated_xml.model.validation import ModelValidator, ValidationReport


class Fragment(NamedTuple):
    """A piece of serialized output.

    ``is_markup`` is False for character data; pretty printing only indents
    content made entirely of markup.
    """

    text: str
    is_markup: bool


# A rendered fragment, or a child node with the depth to render it at
Part = Union[Fragment, Tuple["ContentNode", int]]


class Renderable(ABC):
    """Anything that can be serialized into XML fragments."""

    @abstractmethod
    def iter_parts(self, serializer: "XMLSerializer", depth: int) -> Iterator[Part]:
        """Yield this object's own fragments and child nodes in document order."""

    def finish(
        self, serializer: "XMLSerializer", fragments: List[Fragment], depth: int
    ) -> List[Fragment]:
        """Combine the rendered parts into this object's output."""
        return fragments

    @abstractmethod
    def collect_issues(
        self, validator: "ModelValidator", report: "ValidationReport", depth: int
    ) -> None:
        """Append this object's violations to ``report``; queue child nodes."""


class ContentNode(Renderable):
    """A node that can be held by a slot: an element or an anonymous group."""

    # Transparent nodes contribute their content but no markup of their own
    transparent = False

    def __init__(self) -> None:
        self.parent: Optional["ContentNode"] = None

    @property
    @abstractmethod
    def declaration(self) -> Any:
        """The element type or sequence this node was built from."""

    @property
    @abstractmethod
    def path(self) -> str:
        """XPath-like location of this node."""

    @abstractmethod
    def iter_content(self) -> Iterator[Any]:
        """Yield text values and element nodes in document order."""

    def iter_ancestors(self) -> Iterator["ContentNode"]:
        """Yield parent, grandparent and so on up to the root."""
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def get_depth(self) -> int:
        """Get depth of this node in the tree (root = 0)."""
        return sum(1 for _ in self.iter_ancestors())
