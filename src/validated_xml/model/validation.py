"""Tree validation for validated XML trees.

This module walks an element tree and gathers every content model violation
into one :class:`ValidationReport`, so callers see all problems in a single
pass. Nodes and slots report their own violations; the validator handles
traversal, depth limits and logging.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Type

from validated_xml.model.errors import (
    AttributeModelError,
    CardinalityError,
    ContentModelError,
    EmptyAlternationError,
    OwnershipError,
    TypeMismatchError,
)
from validated_xml.shared import DiagnosticSeverity, LibraryConfig, get_logger


class ValidationIssueType(Enum):
    """Types of validation issues that can be detected."""

    TYPE_MISMATCH = "type_mismatch"
    CARDINALITY = "cardinality"
    EMPTY_ALTERNATION = "empty_alternation"
    ATTRIBUTE = "attribute"
    OWNERSHIP = "ownership"
    DEPTH_LIMIT = "depth_limit"


_ERROR_CLASSES: Dict[ValidationIssueType, Type[ContentModelError]] = {
    ValidationIssueType.TYPE_MISMATCH: TypeMismatchError,
    ValidationIssueType.CARDINALITY: CardinalityError,
    ValidationIssueType.EMPTY_ALTERNATION: EmptyAlternationError,
    ValidationIssueType.ATTRIBUTE: AttributeModelError,
    ValidationIssueType.OWNERSHIP: OwnershipError,
    ValidationIssueType.DEPTH_LIMIT: ContentModelError,
}


@dataclass
class ValidationIssue:
    """Single validation issue with detailed information."""

    issue_type: ValidationIssueType
    severity: DiagnosticSeverity
    message: str
    element_path: Optional[str] = None
    slot: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    def __post_init__(self) -> None:
        """Validate issue data."""
        if not self.message:
            raise ValueError("Validation issue message cannot be empty")

    @property
    def error_class(self) -> Type[ContentModelError]:
        """Exception type raised for this kind of issue."""
        return _ERROR_CLASSES[self.issue_type]


@dataclass
class ValidationReport:
    """Every violation found in one validation pass."""

    issues: List[ValidationIssue] = field(default_factory=list)
    elements_validated: int = 0
    slots_validated: int = 0

    @property
    def is_valid(self) -> bool:
        """True when no error-level issue was found."""
        return self.error_count == 0

    @property
    def error_count(self) -> int:
        """Get number of error-level issues."""
        return len([
            issue for issue in self.issues
            if issue.severity in (DiagnosticSeverity.ERROR, DiagnosticSeverity.CRITICAL)
        ])

    def add_issue(
        self,
        issue_type: ValidationIssueType,
        message: str,
        element_path: Optional[str] = None,
        slot: Optional[str] = None,
        severity: DiagnosticSeverity = DiagnosticSeverity.ERROR,
        details: Optional[Dict[str, Any]] = None,
    ) -> ValidationIssue:
        """Record a new issue and return it."""
        issue = ValidationIssue(
            issue_type=issue_type,
            severity=severity,
            message=message,
            element_path=element_path,
            slot=slot,
            details=details,
        )
        self.issues.append(issue)
        return issue

    def get_issues_by_type(self, issue_type: ValidationIssueType) -> List[ValidationIssue]:
        """Get validation issues of specific type."""
        return [issue for issue in self.issues if issue.issue_type == issue_type]

    def get_issues_by_severity(self, severity: DiagnosticSeverity) -> List[ValidationIssue]:
        """Get validation issues of specific severity."""
        return [issue for issue in self.issues if issue.severity == severity]

    def raise_for_errors(self) -> None:
        """Raise the error kind of the first error-level issue, if any.

        The raised exception carries every issue of the report in ``issues``.
        """
        errors = [
            issue for issue in self.issues
            if issue.severity in (DiagnosticSeverity.ERROR, DiagnosticSeverity.CRITICAL)
        ]
        if not errors:
            return

        first = errors[0]
        message = first.message
        if first.element_path:
            message = f"{first.element_path}: {message}"
        if len(errors) > 1:
            message += f" (and {len(errors) - 1} more violation(s))"
        raise first.error_class(message, path=first.element_path, issues=list(self.issues))

    def summary(self) -> Dict[str, Any]:
        """Get a dictionary summary of this report."""
        by_type: Dict[str, int] = {}
        for issue in self.issues:
            by_type[issue.issue_type.value] = by_type.get(issue.issue_type.value, 0) + 1

        return {
            "valid": self.is_valid,
            "error_count": self.error_count,
            "elements_validated": self.elements_validated,
            "slots_validated": self.slots_validated,
            "issues_by_type": by_type,
        }


class ModelValidator:
    """Content model validation engine.

    Walks an element tree depth-first with an explicit stack, asks each
    node and slot for its violations, and enforces the configured depth
    limit. Validation never mutates the tree.
    """

    def __init__(self,
                 config: Optional[LibraryConfig] = None,
                 correlation_id: Optional[str] = None) -> None:
        """Initialize model validator.

        Args:
            config: Library configuration; defaults are used when omitted
            correlation_id: Optional correlation ID for tracking one run
        """
        self.config = config or LibraryConfig()
        if correlation_id is None and self.config.global_.enable_correlation_tracking:
            correlation_id = str(uuid.uuid4())
        self.correlation_id = correlation_id
        self.logger = get_logger(__name__, correlation_id, "model_validator")
        self._pending: List[Tuple[Any, int]] = []

    def validate(self, node: Any) -> ValidationReport:
        """Validate ``node`` and its whole subtree.

        Args:
            node: ElementNode (or GroupNode) to validate

        Returns:
            ValidationReport listing every violation found
        """
        self.logger.info(
            "Starting tree validation",
            extra={"root_path": node.path}
        )

        report = ValidationReport()
        self._pending = [(node, 0)]
        while self._pending:
            current, depth = self._pending.pop()
            start = len(self._pending)
            self.visit(current, report, depth)
            # Children were queued in document order; visit the first one next
            self._pending[start:] = reversed(self._pending[start:])

        self.logger.info(
            "Tree validation completed",
            extra={
                "valid": report.is_valid,
                "error_count": report.error_count,
                "elements_validated": report.elements_validated,
            }
        )
        return report

    def enqueue(self, node: Any, depth: int) -> None:
        """Schedule a child node for validation at ``depth``."""
        self._pending.append((node, depth))

    def visit(self, node: Any, report: ValidationReport, depth: int) -> None:
        """Validate one node, respecting the configured depth limit."""
        max_depth = self.config.validation.max_tree_depth
        if depth > max_depth:
            report.add_issue(
                ValidationIssueType.DEPTH_LIMIT,
                f"Tree is deeper than the configured limit of {max_depth}",
                element_path=node.path,
                severity=DiagnosticSeverity.CRITICAL,
            )
            return

        node.collect_issues(self, report, depth)

    def visit_slot(self, slot: Any, report: ValidationReport, depth: int) -> None:
        """Validate one slot of a node."""
        report.slots_validated += 1
        slot.collect_issues(self, report, depth)
        self.logger.debug(
            "Slot validated",
            extra={"slot": slot.name, "issues_so_far": len(report.issues)}
        )
