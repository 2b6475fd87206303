"""Loading terms-and-conditions documents from disk.

Plain text, Markdown, HTML and PDF are supported. Each parser returns a
``ParsedDocument`` whose ``full_text`` is what gets analyzed.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

import pdfplumber
from bs4 import BeautifulSoup

_BLANK_LINES_RE = re.compile(r"\n{3,}")
_INLINE_SPACE_RE = re.compile(r"[ \t]+")


@dataclass
class ParsedDocument:
    """Text extracted from a document, one entry per page."""

    filename: str
    pages: list[str] = field(default_factory=list)
    metadata: dict = field(default_factory=dict)

    @property
    def full_text(self) -> str:
        return clean_text("\n\n".join(self.pages))

    @property
    def page_count(self) -> int:
        return len(self.pages)


def clean_text(text: str) -> str:
    """Normalize whitespace without touching the wording."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = [_INLINE_SPACE_RE.sub(" ", line).strip() for line in text.split("\n")]
    return _BLANK_LINES_RE.sub("\n\n", "\n".join(lines)).strip()


class DocumentParser(ABC):
    supported_extensions: tuple[str, ...] = ()

    def can_handle(self, path: Path) -> bool:
        return path.suffix.lower() in self.supported_extensions

    @abstractmethod
    def parse(self, path: Path) -> ParsedDocument:
        """Parse a document file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the extension is not supported by this parser.
        """
        ...

    def _validate_path(self, path: Path) -> None:
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        if not self.can_handle(path):
            raise ValueError(
                f"Unsupported file extension '{path.suffix}' for {self.__class__.__name__}. "
                f"Supported: {self.supported_extensions}"
            )


class TextParser(DocumentParser):
    """Plain text and Markdown; form-feed characters split pages."""

    supported_extensions = (".txt", ".text", ".md")

    def parse(self, path: Path) -> ParsedDocument:
        self._validate_path(path)
        text = path.read_text(encoding="utf-8", errors="replace")
        pages = [page.strip() for page in text.split("\f") if page.strip()]
        return ParsedDocument(filename=path.name, pages=pages or [""], metadata={"format": "text"})


class PDFParser(DocumentParser):
    supported_extensions = (".pdf",)

    def parse(self, path: Path) -> ParsedDocument:
        self._validate_path(path)
        with pdfplumber.open(str(path)) as pdf:
            pages = [(page.extract_text() or "").strip() for page in pdf.pages]
            metadata = {"format": "pdf", "page_count": len(pdf.pages)}
        return ParsedDocument(filename=path.name, pages=pages, metadata=metadata)


class HTMLParser(DocumentParser):
    """Strips markup from saved terms pages."""

    supported_extensions = (".html", ".htm")

    def parse(self, path: Path) -> ParsedDocument:
        self._validate_path(path)
        soup = BeautifulSoup(path.read_text(encoding="utf-8", errors="replace"), "html.parser")
        title = soup.title.get_text(" ", strip=True) if soup.title else None
        for tag in soup(["script", "style", "noscript", "head"]):
            tag.decompose()
        text = soup.get_text(separator="\n", strip=True)
        return ParsedDocument(filename=path.name, pages=[text], metadata={"format": "html", "title": title})


PARSERS: tuple[DocumentParser, ...] = (TextParser(), PDFParser(), HTMLParser())


def get_parser(path: Path) -> DocumentParser:
    """Return the parser for ``path``.

    Raises:
        ValueError: If no parser supports the file extension.
    """
    for parser in PARSERS:
        if parser.can_handle(path):
            return parser
    supported = sorted(ext for parser in PARSERS for ext in parser.supported_extensions)
    raise ValueError(f"Unsupported file type '{path.suffix}'. Supported types: {', '.join(supported)}")


def load_document(path: str | Path) -> ParsedDocument:
    """Parse ``path`` with the parser matching its extension."""
    path = Path(path)
    return get_parser(path).parse(path)
