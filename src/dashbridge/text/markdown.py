"""
Markdown to speech text

Renders Markdown to plain text suitable for speech: markup is dropped,
text and inline code are kept, block boundaries become line breaks.
"""

from markdown_it import MarkdownIt
from markdown_it.token import Token

_md = MarkdownIt("commonmark").enable(["table", "strikethrough"])

# Closing tokens that end a block of speech
_BLOCK_ENDS = frozenset(
    {
        "heading_close",
        "paragraph_close",
        "list_item_close",
        "blockquote_close",
        "bullet_list_close",
        "ordered_list_close",
        "table_close",
        "tr_close",
        "th_close",
        "td_close",
    }
)


def _render_inline(children: list[Token], out: list[str]) -> None:
    for child in children:
        if child.type in ("text", "code_inline"):
            out.append(child.content)
        elif child.type == "softbreak":
            out.append(" ")
        elif child.type == "hardbreak":
            out.append("\n")
        elif child.type == "image":
            # alt text lives in the children
            _render_inline(child.children or [], out)


def markdown_to_plain_text(text: str) -> str:
    out: list[str] = []
    for token in _md.parse(text):
        if token.type == "inline":
            _render_inline(token.children or [], out)
        elif token.type in ("fence", "code_block"):
            out.append(token.content)
            out.append("\n")
        elif token.type in _BLOCK_ENDS and not token.hidden:
            out.append("\n")
    return "".join(out).strip()
