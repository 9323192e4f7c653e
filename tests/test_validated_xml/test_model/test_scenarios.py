"""End-to-end behaviour of declared models, from construction to output."""

import pytest
from lxml import etree

from validated_xml import (
    TEXT,
    CardinalityError,
    ElementType,
    GroupNode,
    LibraryConfig,
    TypeMismatchError,
    choice,
    optional,
    repeated,
    sequence,
    zero_or_more,
)

Title = ElementType.text_only("title")
Chapter = ElementType.text_only("chapter")
Book = ElementType("book", [optional(Title), repeated(Chapter)])

Figure = ElementType("figure", attributes=["src"])
Row = ElementType.text_only("row")
Table = ElementType("table", [repeated(Row)])
Cell = ElementType("cell", [choice(TEXT, Figure, Table, name="content")])


class TestRepeatedChapters:
    """Test a repeated chapter slot through its whole life cycle."""

    def test_single_chapter_book(self) -> None:
        """Test add, refused removal and serialization of one chapter."""
        book = Book.new()
        chapters = book.child("chapter")

        chapters.add(Chapter.new("Chapter 1"))
        with pytest.raises(CardinalityError):
            chapters.remove(0)

        output = book.serialize()
        assert output.count("<chapter>") == 1
        assert output.count("</chapter>") == 1
        assert "<chapter>Chapter 1</chapter>" in output


class TestAlternationReplacement:
    """Test an alternation over text, figure and table."""

    def test_text_replaces_table(self) -> None:
        """Test only the last alternative set is emitted."""
        cell = Cell.new()
        content = cell.child("content")

        content.set(Table.new(row=[Row.new("1"), Row.new("2")]))
        content.set("plain text")

        output = cell.serialize()
        assert output == "<cell>plain text</cell>"
        assert "<table" not in output
        assert content.selected is TEXT

    def test_rejected_value_keeps_previous(self) -> None:
        """Test a non-member leaves the previous value in place."""
        cell = Cell.new(content=Figure.new())

        with pytest.raises(TypeMismatchError):
            cell.child("content").set(Chapter.new("One"))

        assert cell.serialize() == "<cell><figure/></cell>"


class TestEscapedText:
    """Test markup characters in text content."""

    def test_special_characters(self) -> None:
        """Test <, & and \" are escaped in element text."""
        output = Title.new('Fish & Chips <"Deluxe">').serialize()

        assert output == "<title>Fish &amp; Chips &lt;&quot;Deluxe&quot;&gt;</title>"

    def test_escaped_text_parses_back(self) -> None:
        """Test a parser recovers the original text."""
        original = "a < b && c > \"d\" 'e'"

        parsed = etree.fromstring(Title.new(original).serialize())

        assert parsed.text == original

    def test_attribute_values_parse_back(self) -> None:
        """Test attribute values survive a parse, including whitespace."""
        original = 'x & "y"\n\tz'

        parsed = etree.fromstring(Figure.new(attributes={"src": original}).serialize())

        assert parsed.get("src") == original


class TestRoundTrip:
    """Test serialized output against a conformant parser."""

    def build_library(self):
        Shelf = ElementType("shelf", [zero_or_more(Book), repeated(Cell)])
        return Shelf.new(
            book=[
                Book.new(title=Title.new("Dune"), chapter=[Chapter.new("One")]),
                Book.new(chapter=[Chapter.new("A"), Chapter.new("B")]),
            ],
            cell=[Cell.new(content=Figure.new(attributes={"src": "a.png"})),
                  Cell.new(content=Table.new(row=Row.new("r")))],
        )

    @pytest.mark.parametrize("config", [LibraryConfig.compact(), LibraryConfig.pretty()])
    def test_same_tags_in_document_order(self, config) -> None:
        """Test the parsed tree has the same tags in the same order."""
        shelf = self.build_library()
        expected = [element.tag for element in shelf.iter_elements()]

        output = shelf.serialize(config)
        parsed = etree.fromstring(output.encode("utf-8"))

        assert [element.tag for element in parsed.iter()] == expected

    def test_groups_round_trip(self) -> None:
        """Test anonymous sequences flatten into their parent."""
        Term = ElementType.text_only("term")
        Definition = ElementType.text_only("definition")
        entry = sequence(choice(Term, name="term"), choice(Definition, name="definition"))
        Glossary = ElementType("glossary", [repeated(entry, name="entry")])

        glossary = Glossary.new()
        for term, definition in [("XML", "markup"), ("DTD", "grammar")]:
            glossary.child("entry").add(GroupNode(entry, {
                "term": Term.new(term),
                "definition": Definition.new(definition),
            }))

        parsed = etree.fromstring(glossary.serialize())

        assert [element.tag for element in parsed] == ["term", "definition", "term", "definition"]
        assert [element.text for element in parsed] == ["XML", "markup", "DTD", "grammar"]


class TestParserAgreement:
    """Test outputs a conformant parser must accept unchanged."""

    def test_deep_pretty_tree_parses(self) -> None:
        """Test a deeply nested indented document parses to the same depth."""
        Section = ElementType.forward("section")
        Section.define([zero_or_more(Section)])
        node = Section.new()
        for _ in range(199):
            node = Section.new(section=node)

        parsed = etree.fromstring(node.serialize(LibraryConfig.pretty()).encode("utf-8"))

        assert sum(1 for _ in parsed.iter("section")) == 200

    def test_ascii_output_parses_back(self) -> None:
        """Test character references written for a narrow encoding."""
        config = LibraryConfig.pretty().override(serialization__xml_encoding="ascii")
        book = Book.new(title=Title.new("Café ☕"), chapter=[Chapter.new("naïve")])

        output = book.serialize(config)
        parsed = etree.fromstring(output.encode("ascii"))

        assert parsed.findtext("title") == "Café ☕"
        assert parsed.findtext("chapter") == "naïve"
