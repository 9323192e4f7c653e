"""Configuration classes for validated XML trees.

This module provides configuration objects for validation and serialization,
enabling control over output layout and validation limits.
"""

import codecs
import json
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional

from .logging import apply_logging_level

VALID_OUTPUT_FORMATS = ["xml", "xml_pretty", "dict", "json", "json_pretty"]
VALID_LOGGING_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_COMPONENT_FIELDS = ["serialization", "validation", "global_"]


@dataclass
class SerializationConfig:
    """Configuration for XML serialization and output formatting."""

    default_output_format: str = "xml"

    # XML formatting options
    xml_declaration: bool = False
    xml_encoding: str = "utf-8"
    xml_indent: str = "  "  # Two spaces for pretty printing
    self_close_empty: bool = True

    # Dictionary and JSON formatting options
    dict_attribute_prefix: str = "@"
    dict_text_key: str = "#text"
    json_indent: Optional[int] = 2
    json_ensure_ascii: bool = False

    def __post_init__(self) -> None:
        """Validate serialization configuration."""
        if self.default_output_format not in VALID_OUTPUT_FORMATS:
            raise ValueError(
                f"default_output_format must be one of {VALID_OUTPUT_FORMATS}"
            )
        if not self.xml_encoding:
            raise ValueError("xml_encoding cannot be empty")
        try:
            codecs.lookup(self.xml_encoding)
        except LookupError:
            raise ValueError(
                f"xml_encoding is not a known codec: {self.xml_encoding!r}"
            ) from None
        if self.xml_indent.strip():
            raise ValueError("xml_indent must contain only whitespace")
        if not self.dict_attribute_prefix:
            raise ValueError("dict_attribute_prefix cannot be empty")
        if not self.dict_text_key:
            raise ValueError("dict_text_key cannot be empty")
        if self.json_indent is not None and self.json_indent < 0:
            raise ValueError("json_indent must be >= 0 or None")


@dataclass
class ValidationConfig:
    """Configuration for tree validation."""

    max_tree_depth: int = 1000
    check_required_attributes: bool = True

    def __post_init__(self) -> None:
        """Validate validation configuration."""
        if self.max_tree_depth <= 0:
            raise ValueError("max_tree_depth must be > 0")


@dataclass
class GlobalConfig:
    """Global configuration settings that apply across all components."""

    logging_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    enable_correlation_tracking: bool = True

    def __post_init__(self) -> None:
        """Validate global configuration."""
        if self.logging_level not in VALID_LOGGING_LEVELS:
            raise ValueError(f"logging_level must be one of {VALID_LOGGING_LEVELS}")


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigValidationError(ConfigError):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, field_name: Optional[str] = None,
                 suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.field_name = field_name
        self.suggestions = suggestions or []


@dataclass(frozen=True)
class LibraryConfig:
    """Configuration for every validated XML component.

    Immutable so that one instance can be shared by validators and
    serializers working on different trees.
    """

    serialization: SerializationConfig = field(default_factory=SerializationConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    global_: GlobalConfig = field(default_factory=GlobalConfig)

    # Metadata
    version: str = "1.0.0"
    name: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate the complete configuration."""
        try:
            self.serialization.__post_init__()
            self.validation.__post_init__()
            self.global_.__post_init__()
        except ValueError as e:
            raise ConfigValidationError(str(e)) from e

        if (
            self.serialization.dict_attribute_prefix
            == self.serialization.dict_text_key
        ):
            raise ConfigValidationError(
                "dict_attribute_prefix and dict_text_key must differ",
                field_name="serialization.dict_text_key",
                suggestions=["Use the defaults '@' and '#text'"],
            )

    def override(self, **kwargs: Any) -> "LibraryConfig":
        """Create a new configuration with specific overrides.

        Args:
            **kwargs: Keyword arguments for configuration fields to override

        Returns:
            New LibraryConfig instance with overrides applied

        Example:
            >>> config = LibraryConfig()
            >>> new_config = config.override(
            ...     serialization__xml_declaration=True,
            ...     validation__max_tree_depth=64
            ... )
        """
        # Convert nested field notation (e.g., "serialization__xml_indent") to nested dict
        nested_overrides: Dict[str, Any] = {}
        for key, value in kwargs.items():
            if "__" in key:
                component, field_name = key.split("__", 1)
                if component not in _COMPONENT_FIELDS:
                    raise ConfigValidationError(
                        f"Unknown configuration component: {component}",
                        field_name=key,
                        suggestions=list(_COMPONENT_FIELDS),
                    )
                nested_overrides.setdefault(component, {})[field_name] = value
            else:
                nested_overrides[key] = value

        new_fields: Dict[str, Any] = {}

        for field_name in _COMPONENT_FIELDS:
            current_config = getattr(self, field_name)
            if field_name in nested_overrides:
                try:
                    new_fields[field_name] = replace(
                        current_config, **nested_overrides[field_name]
                    )
                except (TypeError, ValueError) as e:
                    raise ConfigValidationError(str(e), field_name=field_name) from e
            else:
                new_fields[field_name] = current_config

        # Handle top-level overrides (non-component fields)
        for key, value in nested_overrides.items():
            if key not in _COMPONENT_FIELDS:
                new_fields[key] = value

        return replace(self, **new_fields)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary format.

        Returns:
            Dictionary representation of the configuration
        """
        def _dataclass_to_dict(obj: Any) -> Any:
            """Recursively convert dataclass to dict."""
            if hasattr(obj, "__dataclass_fields__"):
                result: Dict[str, Any] = {}
                for field_name in obj.__dataclass_fields__:
                    result[field_name] = _dataclass_to_dict(getattr(obj, field_name))
                return result
            if isinstance(obj, Enum):
                return obj.name
            if isinstance(obj, (list, tuple, set)):
                return [_dataclass_to_dict(item) for item in obj]
            if isinstance(obj, dict):
                return {key: _dataclass_to_dict(value) for key, value in obj.items()}
            return obj

        result = _dataclass_to_dict(self)
        if not isinstance(result, dict):
            raise ConfigValidationError("Configuration serialization failed")
        return result

    def to_json(self, indent: int = 2) -> str:
        """Convert configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LibraryConfig":
        """Create configuration from dictionary.

        Args:
            data: Dictionary containing configuration data

        Returns:
            LibraryConfig instance created from dictionary
        """
        def _dict_to_dataclass(data_dict: Dict[str, Any], target_class: type) -> Any:
            """Convert dict to dataclass instance."""
            if not hasattr(target_class, "__dataclass_fields__"):
                return data_dict

            field_values: Dict[str, Any] = {}
            for field_name, field_info in target_class.__dataclass_fields__.items():
                if field_name in data_dict:
                    value = data_dict[field_name]
                    field_type = field_info.type

                    # Handle nested dataclasses
                    if hasattr(field_type, "__dataclass_fields__"):
                        field_values[field_name] = _dict_to_dataclass(value, field_type)
                    else:
                        field_values[field_name] = value

            return target_class(**field_values)

        try:
            result = _dict_to_dataclass(data, cls)
        except ValueError as e:
            raise ConfigValidationError(str(e)) from e
        if not isinstance(result, cls):
            raise ConfigValidationError(f"Failed to deserialize to {cls.__name__}")
        return result

    @classmethod
    def from_json(cls, json_str: str) -> "LibraryConfig":
        """Create configuration from JSON string."""
        data = json.loads(json_str)
        return cls.from_dict(data)

    # Preset factory methods
    @classmethod
    def compact(cls) -> "LibraryConfig":
        """Create configuration preset for single-line output."""
        return cls(
            serialization=SerializationConfig(
                default_output_format="xml",
                xml_declaration=False,
            ),
            name="compact",
            description="Single-line XML without a declaration",
        )

    @classmethod
    def pretty(cls) -> "LibraryConfig":
        """Create configuration preset for indented, human-readable output."""
        return cls(
            serialization=SerializationConfig(
                default_output_format="xml_pretty",
                xml_declaration=True,
            ),
            name="pretty",
            description="Indented XML with an XML declaration",
        )

    @classmethod
    def debugging(cls) -> "LibraryConfig":
        """Create configuration preset that logs every validation step."""
        return cls(
            serialization=SerializationConfig(default_output_format="xml_pretty"),
            global_=GlobalConfig(logging_level="DEBUG"),
            name="debugging",
            description="Indented output with debug-level logging",
        )

    def apply_logging(self) -> None:
        """Set the package loggers to the configured logging level."""
        apply_logging_level(self.global_.logging_level)
