"""
Content cleaning utilities for fetched feed items
Decodes HTML entities and reduces markup to plain text
"""

import html
import re

import structlog
from bs4 import BeautifulSoup

logger = structlog.get_logger(__name__)


class ContentCleaner:
    """Turns feed markup into the plain text stored on fetched items"""

    @staticmethod
    def clean_html_content(content: str) -> str:
        """
        Decode entities, drop tags and collapse whitespace.

        Args:
            content: Raw markup string (may be entity-encoded)

        Returns:
            Single-line plain text
        """
        if not content:
            return ""

        try:
            soup = BeautifulSoup(html.unescape(content), "html.parser")

            for tag in soup(["script", "style"]):
                tag.decompose()

            # Separator keeps words from adjacent block elements apart
            text = soup.get_text(separator=" ")
            return ContentCleaner._normalize_whitespace(text)

        except Exception as e:
            logger.warning("html_clean_failed", error=str(e))
            return ContentCleaner._simple_html_removal(content)

    @staticmethod
    def decode_entities(text: str) -> str:
        if not text:
            return ""
        return html.unescape(text).strip()

    @staticmethod
    def _simple_html_removal(content: str) -> str:
        """Simple fallback HTML tag removal"""
        text = html.unescape(content)
        text = re.sub(r"<[^>]+>", " ", text)
        return ContentCleaner._normalize_whitespace(text)

    @staticmethod
    def _normalize_whitespace(text: str) -> str:
        return re.sub(r"\s+", " ", text).strip()
