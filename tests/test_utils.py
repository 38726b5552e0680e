import pytest

from src.utils.content_cleaner import ContentCleaner
from src.utils.string_utils import clean_text, cut_text, generate_slug


class TestGenerateSlug:
    @pytest.mark.parametrize("title,expected", [
        ("Hello World", "hello-world"),
        ("  GPT-5: What's   New?  ", "gpt-5-whats-new"),
        ("OpenAI 發表新模型", "openai-發表新模型"),
        ("a -- b", "a-b"),
        ("!!!", "post"),
        ("", "post"),
    ])
    def test_slug(self, title, expected):
        assert generate_slug(title) == expected


class TestTextHelpers:
    def test_clean_text_collapses_whitespace(self):
        assert clean_text("  a \n\t b  ") == "a b"

    def test_cut_text_is_a_hard_cut(self):
        assert cut_text("abcdefghij", 4) == "abcd"


class TestContentCleaner:
    def test_strips_tags_scripts_and_entities(self):
        markup = "<div><p>AI &amp; ML</p><script>var x = 1;</script><p>news</p></div>"

        assert ContentCleaner.clean_html_content(markup) == "AI & ML news"

    def test_entity_encoded_markup(self):
        assert ContentCleaner.clean_html_content("&lt;b&gt;bold&lt;/b&gt; text") == "bold text"

    def test_empty_input(self):
        assert ContentCleaner.clean_html_content("") == ""
        assert ContentCleaner.decode_entities(None) == ""
