"""Tests for tree validation and validation reports."""

import pytest

from validated_xml.model import (
    AttributeDecl,
    AttributeModelError,
    CardinalityError,
    ContentModelError,
    ElementType,
    EmptyAlternationError,
    ModelValidator,
    TypeMismatchError,
    ValidationIssue,
    ValidationIssueType,
    ValidationReport,
    choice,
    optional,
    repeated,
    zero_or_more,
)
from validated_xml.shared import DiagnosticSeverity, GlobalConfig, LibraryConfig

Title = ElementType.text_only("title")
Chapter = ElementType.text_only("chapter")
Figure = ElementType("figure")
Report = ElementType(
    "report",
    [optional(Title), repeated(Chapter), choice(Title, Figure, name="body")],
    attributes=[AttributeDecl("id", required=True)],
)


class TestModelValidator:
    """Test ModelValidator functionality."""

    def test_valid_tree(self) -> None:
        """Test a complete tree produces no issues."""
        report_node = Report.new(
            chapter=Chapter.new("One"),
            body=Figure.new(),
            attributes={"id": "r1"},
        )

        report = ModelValidator().validate(report_node)

        assert report.is_valid
        assert report.issues == []
        assert report.elements_validated == 3
        assert report.slots_validated == 3

    def test_aggregates_every_violation(self) -> None:
        """Test all violations are reported, not only the first."""
        report = Report.new().validate()

        assert not report.is_valid
        assert report.error_count == 3
        assert [issue.issue_type for issue in report.issues] == [
            ValidationIssueType.ATTRIBUTE,
            ValidationIssueType.CARDINALITY,
            ValidationIssueType.EMPTY_ALTERNATION,
        ]
        assert all(issue.element_path == "/report" for issue in report.issues)

    def test_slot_names_in_issues(self) -> None:
        """Test slot issues name their slot."""
        report = Report.new(attributes={"id": "r1"}).validate()

        assert [issue.slot for issue in report.issues] == ["chapter", "body"]
        assert "requires at least 1 item(s), holds 0" in report.issues[0].message

    def test_descendant_violations(self) -> None:
        """Test violations deep in the tree carry their own path."""
        Part = ElementType("part", [repeated(Chapter)])
        Volume = ElementType("volume", [zero_or_more(Part)])
        volume = Volume.new(part=[Part.new(chapter=Chapter.new("One")), Part.new()])

        report = volume.validate()

        assert report.error_count == 1
        assert report.issues[0].element_path == "/volume/part[2]"

    def test_validation_is_idempotent(self) -> None:
        """Test repeated validation gives equal reports and changes nothing."""
        node = Report.new(chapter=Chapter.new("One"))
        before = node.child("chapter").values

        first = node.validate()
        second = node.validate()

        assert first == second
        assert node.child("chapter").values == before
        assert not node.child("body").is_set

    def test_invalid_characters_reported(self) -> None:
        """Test characters XML cannot represent are reported."""
        title = Title.new("bad\x00title")

        report = title.validate()

        assert report.get_issues_by_type(ValidationIssueType.TYPE_MISMATCH)

    def test_invalid_attribute_characters_reported(self) -> None:
        """Test attribute values are checked for unrepresentable characters."""
        node = Figure.new(attributes={"alt": "bell\x07"})

        report = node.validate()

        assert report.issues[0].issue_type == ValidationIssueType.ATTRIBUTE

    def test_required_attribute_check_can_be_disabled(self) -> None:
        """Test the required attribute check follows configuration."""
        config = LibraryConfig().override(validation__check_required_attributes=False)
        node = Report.new(chapter=Chapter.new("One"), body=Figure.new())

        assert node.validate(config).is_valid

    def test_depth_limit(self) -> None:
        """Test trees deeper than the limit are reported."""
        Part = ElementType.forward("part")
        Part.define([zero_or_more(Part)])
        leaf = Part.new()
        middle = Part.new(part=leaf)
        root = Part.new(part=middle)
        config = LibraryConfig().override(validation__max_tree_depth=1)

        report = ModelValidator(config).validate(root)

        issues = report.get_issues_by_type(ValidationIssueType.DEPTH_LIMIT)
        assert len(issues) == 1
        assert issues[0].severity == DiagnosticSeverity.CRITICAL
        assert issues[0].element_path == "/part/part/part"

    def test_descendants_reported_in_document_order(self) -> None:
        """Test sibling subtrees are reported first to last."""
        Part = ElementType("part", [repeated(Chapter)])
        Volume = ElementType("volume", [zero_or_more(Part)])
        volume = Volume.new(part=[Part.new(), Part.new(), Part.new()])

        report = volume.validate()

        assert [issue.element_path for issue in report.issues] == [
            "/volume/part[1]", "/volume/part[2]", "/volume/part[3]",
        ]

    def test_correlation_id(self) -> None:
        """Test explicit and generated correlation IDs."""
        assert ModelValidator(correlation_id="run-1").correlation_id == "run-1"
        assert ModelValidator().correlation_id is not None

        untracked = LibraryConfig(global_=GlobalConfig(enable_correlation_tracking=False))
        assert ModelValidator(untracked).correlation_id is None


Nested = ElementType.forward("nested")
Nested.define([zero_or_more(Nested)])


def build_chain(levels: int):
    """Build ``levels`` nested elements from the innermost outwards."""
    node = Nested.new()
    for _ in range(levels - 1):
        node = Nested.new(nested=node)
    return node


class TestDeepTrees:
    """Test trees deeper than the interpreter's recursion limit."""

    def test_deepest_allowed_tree_is_valid(self) -> None:
        """Test a tree exactly at the default depth limit validates."""
        root = build_chain(1001)

        report = root.validate()

        assert report.is_valid
        assert report.elements_validated == 1001

    def test_deeper_tree_reports_depth_limit(self) -> None:
        """Test one level past the default limit is reported, not crashed on."""
        root = build_chain(1500)

        report = root.validate()

        issues = report.get_issues_by_type(ValidationIssueType.DEPTH_LIMIT)
        assert len(issues) == 1
        assert issues[0].element_path.count("/nested") == 1002
        assert report.elements_validated == 1001

    def test_deep_paths_and_iteration(self) -> None:
        """Test navigation over a deep tree."""
        root = build_chain(1200)

        elements = list(root.iter_elements())
        deepest = elements[-1]

        assert len(elements) == 1200
        assert deepest.get_depth() == 1199
        assert deepest.path == "/nested" * 1200


class TestValidationReport:
    """Test ValidationReport functionality."""

    def test_empty_report(self) -> None:
        """Test a report with no issues."""
        report = ValidationReport()

        assert report.is_valid
        assert report.error_count == 0
        report.raise_for_errors()

    def test_warnings_do_not_invalidate(self) -> None:
        """Test only error-level issues count as errors."""
        report = ValidationReport()
        report.add_issue(
            ValidationIssueType.ATTRIBUTE,
            "Unusual attribute",
            severity=DiagnosticSeverity.WARNING,
        )

        assert report.is_valid
        assert len(report.get_issues_by_severity(DiagnosticSeverity.WARNING)) == 1
        report.raise_for_errors()

    def test_raise_for_errors_uses_first_error(self) -> None:
        """Test the first error decides the exception type."""
        report = Report.new().validate()

        with pytest.raises(AttributeModelError) as exc_info:
            report.raise_for_errors()

        error = exc_info.value
        assert str(error) == (
            "/report: Required attribute 'id' is missing (and 2 more violation(s))"
        )
        assert error.path == "/report"
        assert error.issues == report.issues

    @pytest.mark.parametrize("issue_type, error_class", [
        (ValidationIssueType.TYPE_MISMATCH, TypeMismatchError),
        (ValidationIssueType.CARDINALITY, CardinalityError),
        (ValidationIssueType.EMPTY_ALTERNATION, EmptyAlternationError),
        (ValidationIssueType.DEPTH_LIMIT, ContentModelError),
    ])
    def test_error_class_per_issue_type(self, issue_type, error_class) -> None:
        """Test each issue type maps to its exception."""
        report = ValidationReport()
        report.add_issue(issue_type, "Problem")

        with pytest.raises(error_class, match="^Problem$"):
            report.raise_for_errors()

    def test_summary(self) -> None:
        """Test the dictionary summary."""
        summary = Report.new().validate().summary()

        assert summary["valid"] is False
        assert summary["error_count"] == 3
        assert summary["elements_validated"] == 1
        assert summary["issues_by_type"] == {
            "attribute": 1,
            "cardinality": 1,
            "empty_alternation": 1,
        }


class TestValidationIssue:
    """Test ValidationIssue data validation."""

    def test_empty_message_rejected(self) -> None:
        """Test issues must describe the problem."""
        with pytest.raises(ValueError, match="message cannot be empty"):
            ValidationIssue(ValidationIssueType.CARDINALITY, DiagnosticSeverity.ERROR, "")

    def test_error_class(self) -> None:
        """Test the exception type of an issue."""
        issue = ValidationIssue(
            ValidationIssueType.OWNERSHIP, DiagnosticSeverity.CRITICAL, "Owned twice"
        )
        assert issue.error_class.__name__ == "OwnershipError"
