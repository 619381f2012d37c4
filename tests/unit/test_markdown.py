"""
Unit tests for the Markdown sanitization policy.
"""

from dashbridge.text import markdown_to_plain_text


class TestMarkdownToPlainText:
    """Test Markdown rendering to speech text."""

    def test_basic_emphasis(self):
        assert markdown_to_plain_text("Hello **world**!") == "Hello world!"

    def test_italic_and_bold(self):
        result = markdown_to_plain_text("This is *italic* and **bold** text")
        assert result == "This is italic and bold text"

    def test_headers(self):
        result = markdown_to_plain_text("## Heading\nContent")

        assert "Heading" in result
        assert "Content" in result
        assert "#" not in result

    def test_paragraphs(self):
        result = markdown_to_plain_text("Paragraph 1\n\nParagraph 2\n\nParagraph 3")
        assert result == "Paragraph 1\nParagraph 2\nParagraph 3"

    def test_links_keep_text(self):
        result = markdown_to_plain_text("Check [this link](https://example.com) out")
        assert result == "Check this link out"

    def test_inline_code(self):
        assert markdown_to_plain_text("Use `code` here") == "Use code here"

    def test_lists(self):
        result = markdown_to_plain_text("- Item 1\n- Item 2\n- Item 3")
        assert result == "Item 1\nItem 2\nItem 3"

    def test_strikethrough(self):
        result = markdown_to_plain_text("This is ~~wrong~~ correct")
        assert result == "This is wrong correct"

    def test_blockquote(self):
        assert markdown_to_plain_text("> This is a quote") == "This is a quote"

    def test_table(self):
        text = "| Name | Age |\n|------|-----|\n| Alice| 30  |\n| Bob  | 25  |"
        result = markdown_to_plain_text(text)

        for cell in ("Name", "Age", "Alice", "30", "Bob", "25"):
            assert cell in result
        assert "|" not in result

    def test_soft_break_becomes_space(self):
        assert markdown_to_plain_text("one\ntwo") == "one two"

    def test_complex_document(self):
        text = (
            "## Hello **World**\n\nThis is a `code` example with [link](url).\n\n"
            "- Item 1\n- Item 2"
        )
        result = markdown_to_plain_text(text)

        assert "Hello World" in result
        assert "code" in result
        assert "link" in result
        assert "Item 1" in result
        assert "Item 2" in result
        assert "*" not in result

    def test_empty(self):
        assert markdown_to_plain_text("") == ""
