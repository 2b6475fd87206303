"""Tests for document loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from tc_analyzer.documents import HTMLParser, PDFParser, TextParser, clean_text, get_parser, load_document


class TestGetParser:
    @pytest.mark.parametrize(
        "name, parser_type",
        [("terms.txt", TextParser), ("TERMS.MD", TextParser), ("terms.html", HTMLParser),
         ("terms.htm", HTMLParser), ("terms.pdf", PDFParser)],
    )
    def test_by_extension(self, name, parser_type) -> None:
        assert isinstance(get_parser(Path(name)), parser_type)

    def test_unsupported(self) -> None:
        with pytest.raises(ValueError, match="Unsupported file type"):
            get_parser(Path("terms.docx"))


class TestLoadDocument:
    def test_text_file(self, terms_file: Path, terms_text: str) -> None:
        document = load_document(terms_file)
        assert document.filename == "terms.txt"
        assert document.page_count == 1
        assert document.full_text == clean_text(terms_text)

    def test_form_feed_pages(self, tmp_path: Path) -> None:
        file = tmp_path / "paged.txt"
        file.write_text("Page one text\fPage two text\f\f", encoding="utf-8")
        document = load_document(file)
        assert document.page_count == 2
        assert document.full_text == "Page one text\n\nPage two text"

    def test_html_strips_markup(self, tmp_path: Path) -> None:
        file = tmp_path / "terms.html"
        file.write_text(
            "<html><head><title>x</title><style>p {color: red}</style></head>"
            "<body><h1>Terms</h1><p>We collect data &amp; share it.</p>"
            "<script>track()</script><p>You may cancel anytime.</p></body></html>",
            encoding="utf-8",
        )
        text = load_document(file).full_text
        assert "We collect data & share it." in text
        assert "You may cancel anytime." in text
        assert "track()" not in text
        assert "color" not in text
        assert "<p>" not in text

    def test_html_head_dropped_and_blocks_separated(self, tmp_path: Path) -> None:
        file = tmp_path / "terms.htm"
        file.write_text(
            "<html><head><style>p{}</style><title>Acme Nav Title</title></head>"
            "<body><p>We collect data.</p><p>We share it.</p></body></html>",
            encoding="utf-8",
        )
        document = load_document(file)
        assert document.full_text == "We collect data.\nWe share it."
        assert document.metadata["title"] == "Acme Nav Title"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_document(tmp_path / "nope.txt")


class TestCleanText:
    def test_whitespace(self) -> None:
        assert clean_text("  A \t  clause \r\n\r\n\r\n\r\nNext  ") == "A clause\n\nNext"

    def test_empty(self) -> None:
        assert clean_text("") == ""
