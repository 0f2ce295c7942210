"""
Pipeline - Text Parser

HTML → plain text conversion for fetched search results.
"""

import re
from dataclasses import dataclass

from bs4 import BeautifulSoup, NavigableString

# Elements that never carry readable page content
NOISE_TAGS = [
    "script", "style", "noscript", "template", "svg", "canvas", "iframe",
    "nav", "header", "footer", "aside", "form", "button", "select",
]

BLOCK_TAGS = [
    "address", "article", "blockquote", "dd", "div", "dl", "dt", "figcaption",
    "figure", "h1", "h2", "h3", "h4", "h5", "h6", "hr", "li", "main", "ol",
    "p", "pre", "section", "table", "tr", "td", "th", "ul",
]

WHITESPACE = re.compile(r"\s+")
BLANK_LINES = re.compile(r"\n{3,}")


@dataclass
class ParsedPage:
    """Plain text extracted from one page."""
    title: str
    text: str


class TextParser:
    """Extracts readable plain text from HTML pages."""

    def parse(self, html_content: str) -> ParsedPage:
        """
        Parse HTML into a title and block-separated plain text.

        Args:
            html_content: Raw HTML

        Returns:
            ParsedPage; text paragraphs are separated by blank lines
        """
        soup = BeautifulSoup(html_content, "html.parser")
        title = self._extract_title(soup)

        for tag in soup.find_all(NOISE_TAGS):
            tag.decompose()

        root = self._content_root(soup)
        self._normalize_strings(root)

        for br in root.find_all("br"):
            br.replace_with("\n")
        for tag in root.find_all(BLOCK_TAGS):
            tag.insert_before("\n")
            tag.insert_after("\n")

        return ParsedPage(title=title, text=self.clean_text(root.get_text()))

    def parse_plain(self, text: str) -> ParsedPage:
        """Wrap an already-plain document."""
        return ParsedPage(title="", text=self.clean_text(text))

    def clean_text(self, text: str) -> str:
        """Collapse intra-line whitespace and runs of blank lines."""
        lines = [" ".join(line.split()) for line in text.splitlines()]
        text = "\n".join(lines)
        text = BLANK_LINES.sub("\n\n", text)
        return text.strip()

    def _extract_title(self, soup: BeautifulSoup) -> str:
        if soup.title and soup.title.string:
            return " ".join(soup.title.string.split())
        heading = soup.find("h1")
        if heading:
            return " ".join(heading.get_text(" ").split())
        return ""

    def _content_root(self, soup: BeautifulSoup):
        """Prefer the main article over the whole body."""
        for name in ("article", "main"):
            node = soup.find(name)
            if node and node.get_text(strip=True):
                return node
        return soup.body or soup

    def _normalize_strings(self, root) -> None:
        """Source-formatting whitespace is not meaningful outside <pre>."""
        for string in list(root.find_all(string=True)):
            if type(string) is not NavigableString:
                continue
            if string.find_parent("pre") is not None:
                continue
            string.replace_with(WHITESPACE.sub(" ", str(string)))

