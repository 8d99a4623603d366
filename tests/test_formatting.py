"""Tests for the text-to-HTML rendering used by save_text_content."""

from toolsets.formatting import paragraphs_to_html, render_text_document


def test_blank_lines_split_paragraphs():
    assert paragraphs_to_html("One.\n\nTwo.") == "<p>One.</p>\n<p>Two.</p>"


def test_single_newlines_become_breaks():
    assert paragraphs_to_html("line one\nline two") == "<p>line one<br>line two</p>"


def test_markup_is_escaped():
    assert paragraphs_to_html("a < b & <script>") == "<p>a &lt; b &amp; &lt;script&gt;</p>"


def test_windows_newlines_and_empty_blocks():
    assert paragraphs_to_html("One.\r\n\r\n\n\nTwo.") == "<p>One.</p>\n<p>Two.</p>"


def test_document_has_title_and_byline():
    html = render_text_document("Title & Co", "Body", author="Ada")

    assert "<title>Title &amp; Co</title>" in html
    assert "<h1>Title &amp; Co</h1>" in html
    assert "<p><em>By Ada</em></p>" in html
    assert "<p>Body</p>" in html


def test_document_without_author():
    assert "By " not in render_text_document("T", "Body")
