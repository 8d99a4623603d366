"""Plain text / light markdown to a minimal HTML document for Reader.

Reader renders whatever HTML it is handed, so generated text is wrapped in a
bare article: blank lines separate paragraphs, single newlines become <br>.
"""

from html import escape


def paragraphs_to_html(content: str) -> str:
    blocks = [block for block in content.replace("\r\n", "\n").split("\n\n") if block.strip()]
    return "\n".join(
        "<p>{}</p>".format(escape(block.strip("\n")).replace("\n", "<br>"))
        for block in blocks
    )


def render_text_document(title: str, content: str, author: str = None) -> str:
    byline = f"<p><em>By {escape(author)}</em></p>\n" if author else ""
    safe_title = escape(title)
    return (
        "<!DOCTYPE html>\n"
        "<html>\n"
        f"<head><title>{safe_title}</title></head>\n"
        "<body>\n"
        "<article>\n"
        f"<h1>{safe_title}</h1>\n"
        f"{byline}"
        f"{paragraphs_to_html(content)}\n"
        "</article>\n"
        "</body>\n"
        "</html>"
    )
