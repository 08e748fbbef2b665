"""Tests for markdown sanitizing and table extraction."""

from formreport.markdown_sanitize import (
    column_key,
    is_table_separator,
    looks_like_table_row,
    sanitize_markdown,
    split_table_row,
)


SIMPLE_TABLE = "| A | B |\n|---|---|\n| 1 | 2 |\n| 3 | 4 |\n"


class TestSanitizeMarkdown:
    """Tests for sanitize_markdown."""

    def test_extracts_pipe_table(self):
        """Should return the table as columns and keyed rows and leave no pipes in the text."""
        out = sanitize_markdown(SIMPLE_TABLE)

        assert len(out.tables) == 1
        table = out.tables[0]
        assert table.columns == [{"header": "A", "key": "a"}, {"header": "B", "key": "b"}]
        assert table.data == [{"a": "1", "b": "2"}, {"a": "3", "b": "4"}]
        assert "|" not in out.text

    def test_strips_inline_markers(self):
        """Should drop headings, emphasis, code and link syntax and bullet list items."""
        md = "# Title\n\nSome **bold** and *it* text with `code` and [link](http://x).\n\n- one\n- two"

        out = sanitize_markdown(md)

        assert out.text == "Title\n\nSome bold and it text with code and link.\n\n\u2022 one\n\u2022 two"
        assert out.tables == []

    def test_table_between_prose(self):
        """Should remove the table region and collapse the blank lines around it."""
        md = "Intro\n\n| First Name | Qty |\n|---|---|\n| Ann |\n\nOutro"

        out = sanitize_markdown(md)

        assert out.text == "Intro\n\nOutro"
        assert out.tables[0].columns[0] == {"header": "First Name", "key": "first_name"}
        assert out.tables[0].data == [{"first_name": "Ann", "qty": ""}]

    def test_cells_are_normalized(self):
        """Should normalize header and cell text."""
        md = "| Range |\n|---|\n| 1\u20132 |\n"

        out = sanitize_markdown(md)

        assert out.tables[0].data == [{"range": "1-2"}]

    def test_empty_input(self):
        """Should return empty text and no tables."""
        out = sanitize_markdown("")
        assert out.text == ""
        assert out.tables == []
        assert sanitize_markdown(None).text == ""

    def test_to_dict(self):
        """Should serialize a table as columns plus data."""
        table = sanitize_markdown(SIMPLE_TABLE).tables[0]
        assert set(table.to_dict()) == {"columns", "data"}


class TestTableHelpers:
    """Tests for the pipe-table helpers."""

    def test_column_key(self):
        """Should lowercase and replace non-alphanumerics with underscores."""
        assert column_key("First Name") == "first_name"
        assert column_key("Cost ($)") == "cost____"

    def test_split_table_row(self):
        """Should split on pipes and trim cells."""
        assert split_table_row("| a | b |") == ["a", "b"]
        assert split_table_row("|") == []

    def test_is_table_separator(self):
        """Should accept dash rows with optional alignment colons only."""
        assert is_table_separator("|---|:---:|")
        assert is_table_separator("--- | ---:")
        assert not is_table_separator("| a | b |")
        assert not is_table_separator("----")
        assert not is_table_separator("|--|")

    def test_looks_like_table_row(self):
        """Should require an edge pipe or at least two inner pipes."""
        assert looks_like_table_row("| a")
        assert looks_like_table_row("a | b | c")
        assert not looks_like_table_row("a | b")
        assert not looks_like_table_row("plain")
