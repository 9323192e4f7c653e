"""Serialization of validated trees.

This module renders element nodes, groups and slots as XML text, and
element nodes additionally as dictionaries or JSON. Every tree is validated
first: when validation finds a violation the serializer raises it instead of
producing output.
"""

import codecs
import json
import time
import uuid
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from validated_xml.model.base import Fragment, Renderable
from validated_xml.model.nodes import ElementNode
from validated_xml.model.validation import ModelValidator
from validated_xml.shared import LibraryConfig, get_logger


class OutputFormat(Enum):
    """Supported output formats."""

    XML = "xml"
    XML_PRETTY = "xml_pretty"
    DICTIONARY = "dict"
    JSON = "json"
    JSON_PRETTY = "json_pretty"


def escape_text(text: str) -> str:
    """Escape the five XML-significant characters in character data."""
    return (text
            .replace('&', '&amp;')
            .replace('<', '&lt;')
            .replace('>', '&gt;')
            .replace('"', '&quot;')
            .replace("'", '&apos;'))


def escape_attribute(value: str) -> str:
    """Escape an attribute value, including whitespace a parser would normalize."""
    return (escape_text(value)
            .replace('\t', '&#9;')
            .replace('\n', '&#10;')
            .replace('\r', '&#13;'))


class XMLSerializer:
    """Output formatter for validated element trees.

    Supports compact and pretty-printed XML for any node or slot, and
    dictionary/JSON output for element nodes.
    """

    def __init__(self,
                 config: Optional[LibraryConfig] = None,
                 correlation_id: Optional[str] = None) -> None:
        """Initialize serializer.

        Args:
            config: Library configuration; defaults are used when omitted
            correlation_id: Optional correlation ID for tracking one run
        """
        self.config = config or LibraryConfig()
        if correlation_id is None and self.config.global_.enable_correlation_tracking:
            correlation_id = str(uuid.uuid4())
        self.correlation_id = correlation_id
        self.logger = get_logger(__name__, correlation_id, "xml_serializer")
        self.validator = ModelValidator(self.config, correlation_id)
        self._pretty = False
        # Text the output encoding cannot hold is written as character references
        self._needs_fitting = not codecs.lookup(
            self.config.serialization.xml_encoding
        ).name.startswith("utf")

    def serialize(self,
                  target: Renderable,
                  output_format: Union[OutputFormat, str, None] = None) -> str:
        """Validate ``target`` and render it in the requested format.

        Args:
            target: ElementNode, GroupNode or slot to serialize
            output_format: Desired format; the configured default when omitted

        Returns:
            Serialized text

        Raises:
            ContentModelError: The subclass matching the first violation found
        """
        start_time = time.time()
        output_format = self._resolve_format(output_format)

        self.logger.info(
            "Starting serialization",
            extra={"output_format": output_format.value, "target": repr(target)}
        )

        report = self.validator.validate(target)
        if not report.is_valid:
            self.logger.warning(
                "Refusing to serialize invalid tree",
                extra={"error_count": report.error_count}
            )
        report.raise_for_errors()

        if output_format in (OutputFormat.XML, OutputFormat.XML_PRETTY):
            output = self._format_xml(target, output_format)
        else:
            output = self._format_json_like(target, output_format)
        encoded_size = self._check_encodable(output)

        self.logger.info(
            "Serialization completed",
            extra={
                "processing_time_ms": (time.time() - start_time) * 1000,
                "output_size_bytes": encoded_size,
            }
        )
        return output

    def write(self,
              target: Renderable,
              path: Union[str, Path],
              output_format: Union[OutputFormat, str, None] = None) -> Path:
        """Serialize ``target`` and write it to ``path``.

        Nothing is written when validation fails.
        """
        output = self.serialize(target, output_format)
        destination = Path(path)
        destination.write_text(output, encoding=self.config.serialization.xml_encoding)
        self.logger.debug(
            "Serialized output written",
            extra={"path": str(destination)}
        )
        return destination

    def to_dict(self, element: ElementNode) -> Dict[str, Any]:
        """Convert an element to a dictionary keyed by its tag."""
        return {element.tag: self._format_element_dict(element)}

    # Escaping, called back by nodes and slots while rendering

    def escape_text(self, text: str) -> str:
        return self._fit_to_encoding(escape_text(text))

    def escape_attribute(self, value: str) -> str:
        return self._fit_to_encoding(escape_attribute(value))

    def render(self, target: Renderable, depth: int = 0) -> List[Fragment]:
        """Render ``target`` into fragments.

        Child nodes are rendered from an explicit stack of frames, so the
        depth of the tree is limited only by validation.
        """
        frames = [(target, depth, iter(target.iter_parts(self, depth)), [])]
        while True:
            node, node_depth, parts, collected = frames[-1]
            for part in parts:
                if isinstance(part, Fragment):
                    collected.append(part)
                else:
                    child, child_depth = part
                    frames.append(
                        (child, child_depth, iter(child.iter_parts(self, child_depth)), [])
                    )
                    break
            else:
                frames.pop()
                finished = node.finish(self, collected, node_depth)
                if not frames:
                    return finished
                frames[-1][3].extend(finished)

    def render_element(self,
                       element: ElementNode,
                       content: List[Fragment],
                       depth: int) -> Fragment:
        """Wrap rendered content in an element's start and end tags."""
        settings = self.config.serialization
        tag_parts = [element.tag]
        for name, value in element.attributes.items():
            tag_parts.append(f'{name}="{self.escape_attribute(value)}"')
        opening_tag = f"<{' '.join(tag_parts)}"
        closing_tag = f"</{element.tag}>"

        if not content:
            if settings.self_close_empty:
                return Fragment(f"{opening_tag}/>", True)
            return Fragment(f"{opening_tag}>{closing_tag}", True)

        # Indentation would add character data to mixed content
        if self._pretty and all(fragment.is_markup for fragment in content):
            inner_indent = settings.xml_indent * (depth + 1)
            body = "\n".join(inner_indent + fragment.text for fragment in content)
            outer_indent = settings.xml_indent * depth
            return Fragment(f"{opening_tag}>\n{body}\n{outer_indent}{closing_tag}", True)

        body = "".join(fragment.text for fragment in content)
        return Fragment(f"{opening_tag}>{body}{closing_tag}", True)

    def _resolve_format(self, output_format: Union[OutputFormat, str, None]) -> OutputFormat:
        if output_format is None:
            return OutputFormat(self.config.serialization.default_output_format)
        if isinstance(output_format, OutputFormat):
            return output_format
        return OutputFormat(output_format)

    def _format_xml(self, target: Renderable, output_format: OutputFormat) -> str:
        """Format target as XML string."""
        settings = self.config.serialization
        self._pretty = output_format == OutputFormat.XML_PRETTY
        try:
            fragments = self.render(target)
        finally:
            self._pretty = False

        separator = "\n" if self._is_pretty_sequence(output_format, fragments) else ""
        body = separator.join(fragment.text for fragment in fragments)

        if settings.xml_declaration and isinstance(target, ElementNode):
            declaration = f'<?xml version="1.0" encoding="{settings.xml_encoding}"?>'
            return f"{declaration}\n{body}"
        return body

    def _fit_to_encoding(self, text: str) -> str:
        if not self._needs_fitting:
            return text
        encoding = self.config.serialization.xml_encoding
        return text.encode(encoding, "xmlcharrefreplace").decode(encoding)

    def _check_encodable(self, output: str) -> int:
        """Get the encoded size of ``output``; names cannot use references."""
        encoding = self.config.serialization.xml_encoding
        try:
            return len(output.encode(encoding))
        except UnicodeEncodeError as e:
            raise ValueError(
                f"Output contains {output[e.start:e.end]!r}, which cannot be "
                f"encoded as {encoding}"
            ) from e

    def _is_pretty_sequence(self, output_format: OutputFormat, fragments: List[Fragment]) -> bool:
        return (
            output_format == OutputFormat.XML_PRETTY
            and all(fragment.is_markup for fragment in fragments)
        )

    def _format_json_like(self, target: Renderable, output_format: OutputFormat) -> str:
        """Format an element as a dictionary representation or JSON."""
        if not isinstance(target, ElementNode):
            raise TypeError(
                f"{output_format.value} output requires an ElementNode, "
                f"got {type(target).__name__}"
            )
        document_dict = self.to_dict(target)
        settings = self.config.serialization
        ensure_ascii = settings.json_ensure_ascii or self._needs_fitting

        if output_format == OutputFormat.DICTIONARY:
            output = str(document_dict)
            if self._needs_fitting:
                encoding = settings.xml_encoding
                output = output.encode(encoding, "backslashreplace").decode(encoding)
            return output
        if output_format == OutputFormat.JSON_PRETTY:
            return json.dumps(
                document_dict,
                indent=2 if settings.json_indent is None else settings.json_indent,
                ensure_ascii=ensure_ascii,
            )
        return json.dumps(
            document_dict,
            ensure_ascii=ensure_ascii,
            separators=(',', ':'),
        )

    def _format_element_dict(self, element: ElementNode) -> Dict[str, Any]:
        """Format element as simple dictionary."""
        settings = self.config.serialization
        root_dict: Dict[str, Any] = {}
        pending = [(element, root_dict)]

        while pending:
            current, element_dict = pending.pop()
            for name, value in current.attributes.items():
                element_dict[f"{settings.dict_attribute_prefix}{name}"] = value

            text_parts = []
            for item in current.iter_content():
                if isinstance(item, str):
                    text_parts.append(item)
                    continue

                # Filled in when the child comes off the stack
                child_dict: Dict[str, Any] = {}
                pending.append((item, child_dict))
                # Handle multiple children with same tag
                if item.tag in element_dict:
                    if not isinstance(element_dict[item.tag], list):
                        element_dict[item.tag] = [element_dict[item.tag]]
                    element_dict[item.tag].append(child_dict)
                else:
                    element_dict[item.tag] = child_dict

            if text_parts:
                element_dict[settings.dict_text_key] = "".join(text_parts)

        return root_dict
