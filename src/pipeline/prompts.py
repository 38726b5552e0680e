"""
Prompt templates and reply parsing for article rewriting
"""

import re
from dataclasses import dataclass
from typing import List

ARTICLE_REWRITE_SYSTEM_PROMPT = """You are the AI technology editor of Digital Hedge. Your job is to merge one or more AI-related news items into a single original blog article.

Requirements:
1. Write the article in {language}
2. The content must be original; never copy sentences from the sources
3. Combine and reorganize the information from every source
4. Add professional analysis and insight
5. Use an SEO-friendly title and a clear heading structure
6. Keep the style professional but easy to read
7. Output Markdown
8. Length: about 800-1200 words"""

ARTICLE_OUTPUT_TEMPLATE = """
Reply in exactly this format:
---
Title: [SEO-friendly title]
Excerpt: [100-150 word summary]
---
[Markdown article body with headings and paragraphs]
"""

DELIMITER = "---"

_TITLE_PATTERN = re.compile(r"(?:Title|標題)\s*[:：]\s*([^\n]+)", re.IGNORECASE)
_EXCERPT_PATTERN = re.compile(
    r"(?:Excerpt|Summary|摘要)\s*[:：]\s*([^\n]+(?:\n(?!---)[^\n]+)*)",
    re.IGNORECASE,
)
_BODY_PATTERN = re.compile(r"---[\s\S]*?---\s*([\s\S]+)")
_HEADING_MARKERS = re.compile(r"^#+\s*")

FALLBACK_EXCERPT_CHARS = 150


@dataclass
class SourceArticle:
    source_name: str
    title: str
    content: str


@dataclass
class GeneratedArticle:
    title: str
    content: str
    excerpt: str


def build_system_prompt(language: str) -> str:
    return ARTICLE_REWRITE_SYSTEM_PROMPT.format(language=language)


def build_user_prompt(sources: List[SourceArticle], max_source_chars: int = 2000) -> str:
    prompt = "Write one original blog article based on the following AI news items:\n\n"

    for source in sources:
        prompt += f"[Source: {source.source_name}]\n"
        prompt += f"Title: {source.title}\n"
        prompt += f"Content: {source.content[:max_source_chars]}\n\n"

    prompt += ARTICLE_OUTPUT_TEMPLATE
    return prompt


def parse_generated_content(text: str, default_title: str) -> GeneratedArticle:
    """
    Split a model reply into title, excerpt and body.

    Missing fields fall back to the first body line (title) and the first
    150 characters of the body (excerpt).
    """
    title = ""
    excerpt = ""

    title_match = _TITLE_PATTERN.search(text)
    if title_match:
        title = title_match.group(1).strip()

    excerpt_match = _EXCERPT_PATTERN.search(text)
    if excerpt_match:
        excerpt = excerpt_match.group(1).strip()

    body_match = _BODY_PATTERN.search(text)
    if body_match:
        content = body_match.group(1).strip()
    else:
        parts = text.split(DELIMITER)
        content = parts[-1].strip() if len(parts) >= 2 else text.strip()

    if not title:
        first_line = content.split("\n")[0] if content else ""
        title = _HEADING_MARKERS.sub("", first_line).strip() or default_title

    if not excerpt:
        excerpt = content[:FALLBACK_EXCERPT_CHARS].replace("\n", " ") + "..."

    return GeneratedArticle(title=title, content=content, excerpt=excerpt)
