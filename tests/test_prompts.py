from src.pipeline.prompts import (
    SourceArticle,
    build_system_prompt,
    build_user_prompt,
    parse_generated_content,
)
from tests.conftest import VALID_REPLY

DEFAULT_TITLE = "AI 產業最新動態"


class TestParseGeneratedContent:
    def test_well_formed_reply(self):
        article = parse_generated_content(VALID_REPLY, DEFAULT_TITLE)

        assert article.title == "OpenAI 發表新模型"
        assert article.excerpt == "這是一篇關於新模型的摘要。"
        assert article.content.startswith("# OpenAI 發表新模型")
        assert "Title:" not in article.content

    def test_chinese_labels(self):
        reply = "---\n標題：新的晶片架構\n摘要：晶片摘要\n---\n內文段落"

        article = parse_generated_content(reply, DEFAULT_TITLE)

        assert article.title == "新的晶片架構"
        assert article.excerpt == "晶片摘要"
        assert article.content == "內文段落"

    def test_multi_line_excerpt_stops_at_delimiter(self):
        reply = "---\nTitle: T\nExcerpt: line one\nline two\n---\nBody"

        article = parse_generated_content(reply, DEFAULT_TITLE)

        assert article.excerpt == "line one\nline two"
        assert article.content == "Body"

    def test_title_falls_back_to_first_body_line(self):
        reply = "---\nExcerpt: E\n---\n## Heading From Body\n\nParagraph"

        article = parse_generated_content(reply, DEFAULT_TITLE)

        assert article.title == "Heading From Body"

    def test_excerpt_falls_back_to_body_prefix(self):
        body = "Line one\n" + "x" * 200
        reply = f"---\nTitle: T\n---\n{body}"

        article = parse_generated_content(reply, DEFAULT_TITLE)

        assert article.excerpt == body[:150].replace("\n", " ") + "..."
        assert "\n" not in article.excerpt

    def test_reply_without_delimiters_is_all_body(self):
        article = parse_generated_content("# Plain\n\nJust text", DEFAULT_TITLE)

        assert article.content == "# Plain\n\nJust text"
        assert article.title == "Plain"

    def test_empty_reply_uses_default_title(self):
        article = parse_generated_content("", DEFAULT_TITLE)

        assert article.title == DEFAULT_TITLE
        assert article.content == ""


class TestPromptBuilding:
    def test_system_prompt_names_language(self):
        assert "Traditional Chinese" in build_system_prompt("Traditional Chinese (zh-TW)")

    def test_user_prompt_lists_sources_and_truncates(self):
        sources = [
            SourceArticle(source_name="TechCrunch", title="First", content="a" * 50),
            SourceArticle(source_name="The Verge", title="Second", content="b" * 50),
        ]

        prompt = build_user_prompt(sources, max_source_chars=10)

        assert "[Source: TechCrunch]" in prompt
        assert "[Source: The Verge]" in prompt
        assert "Content: " + "a" * 10 + "\n" in prompt
        assert "a" * 11 not in prompt
        assert prompt.index("First") < prompt.index("Second")
        assert "Title: [SEO-friendly title]" in prompt
