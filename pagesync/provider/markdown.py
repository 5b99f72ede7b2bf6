"""
Notion block tree to markdown.

The adapter fetches a page's blocks (children already attached under a
``children`` key) and hands the tree to ``blocks_to_markdown``. Unsupported
block types render as nothing and are logged at debug level, so a new
block type on the provider side never breaks a sync.
"""

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

INDENT = "  "


def rich_text_to_markdown(runs: list[dict[str, Any]] | None) -> str:
    """Render Notion rich text runs with inline annotations and links."""
    parts: list[str] = []
    for run in runs or []:
        text = run.get("plain_text", "")
        if not text:
            continue

        if run.get("type") == "equation":
            parts.append(f"${text}$")
            continue

        annotations = run.get("annotations") or {}
        if annotations.get("code"):
            text = f"`{text}`"
        if annotations.get("bold"):
            text = f"**{text}**"
        if annotations.get("italic"):
            text = f"_{text}_"
        if annotations.get("strikethrough"):
            text = f"~~{text}~~"

        href = run.get("href")
        if href:
            text = f"[{text}]({href})"
        parts.append(text)
    return "".join(parts)


def _text(block: dict[str, Any]) -> str:
    return rich_text_to_markdown(block.get(block["type"], {}).get("rich_text"))


def _file_url(payload: dict[str, Any]) -> str:
    source = payload.get(payload.get("type", ""), {}) or {}
    return source.get("url", "")


def _paragraph(block: dict[str, Any]) -> str:
    return _text(block)


def _heading(level: int) -> Callable[[dict[str, Any]], str]:
    def render(block: dict[str, Any]) -> str:
        return f"{'#' * level} {_text(block)}"

    return render


def _bulleted(block: dict[str, Any]) -> str:
    return f"- {_text(block)}"


def _numbered(block: dict[str, Any]) -> str:
    return f"1. {_text(block)}"


def _to_do(block: dict[str, Any]) -> str:
    checked = block.get("to_do", {}).get("checked")
    return f"- [{'x' if checked else ' '}] {_text(block)}"


def _quote(block: dict[str, Any]) -> str:
    return "\n".join(f"> {line}" for line in _text(block).splitlines() or [""])


def _callout(block: dict[str, Any]) -> str:
    icon = (block.get("callout", {}).get("icon") or {}).get("emoji")
    body = _text(block)
    return f"> {icon} {body}" if icon else f"> {body}"


def _code(block: dict[str, Any]) -> str:
    payload = block.get("code", {})
    language = payload.get("language") or ""
    if language == "plain text":
        language = ""
    body = "".join(run.get("plain_text", "") for run in payload.get("rich_text") or [])
    return f"```{language}\n{body}\n```"


def _divider(block: dict[str, Any]) -> str:
    return "---"


def _equation(block: dict[str, Any]) -> str:
    return f"$$\n{block.get('equation', {}).get('expression', '')}\n$$"


def _image(block: dict[str, Any]) -> str:
    payload = block.get("image", {})
    caption = rich_text_to_markdown(payload.get("caption"))
    return f"![{caption}]({_file_url(payload)})"


def _bookmark(block: dict[str, Any]) -> str:
    payload = block.get(block["type"], {})
    url = payload.get("url", "")
    caption = rich_text_to_markdown(payload.get("caption")) or url
    return f"[{caption}]({url})"


def _toggle(block: dict[str, Any]) -> str:
    return f"<details>\n<summary>{_text(block)}</summary>\n"


def _table(block: dict[str, Any]) -> str:
    rows = [
        [rich_text_to_markdown(cell) for cell in row.get("table_row", {}).get("cells", [])]
        for row in block.get("children", [])
        if row.get("type") == "table_row"
    ]
    if not rows:
        return ""
    lines = ["| " + " | ".join(rows[0]) + " |", "|" + " --- |" * len(rows[0])]
    lines.extend("| " + " | ".join(row) + " |" for row in rows[1:])
    return "\n".join(lines)


_RENDERERS: dict[str, Callable[[dict[str, Any]], str]] = {
    "paragraph": _paragraph,
    "heading_1": _heading(1),
    "heading_2": _heading(2),
    "heading_3": _heading(3),
    "bulleted_list_item": _bulleted,
    "numbered_list_item": _numbered,
    "to_do": _to_do,
    "quote": _quote,
    "callout": _callout,
    "code": _code,
    "divider": _divider,
    "equation": _equation,
    "image": _image,
    "bookmark": _bookmark,
    "embed": _bookmark,
    "link_preview": _bookmark,
    "toggle": _toggle,
    "table": _table,
}

# Children rendered by the parent itself
_SELF_RENDERED_CHILDREN = {"table"}
# Children indented under the parent (nested lists)
_NESTED = {"bulleted_list_item", "numbered_list_item", "to_do"}
# Consecutive blocks of these types are joined without a blank line
_LIST_TYPES = _NESTED


def block_to_markdown(block: dict[str, Any], depth: int = 0) -> str:
    """Render one block and its children."""
    block_type = block.get("type", "")
    renderer = _RENDERERS.get(block_type)
    if renderer is None:
        logger.debug(f"Skipping unsupported block type {block_type!r}")
        return ""

    rendered = renderer(block)
    children = block.get("children") or []
    if block_type == "toggle":
        body = blocks_to_markdown(children)
        return _indent(rendered + ("\n" + body if body else "") + "\n</details>", depth)
    if not children or block_type in _SELF_RENDERED_CHILDREN:
        return _indent(rendered, depth)

    if block_type in _NESTED:
        nested = blocks_to_markdown(children, depth + 1)
        return _indent(rendered, depth) + ("\n" + nested if nested else "")

    body = blocks_to_markdown(children, depth)
    return _indent(rendered, depth) + ("\n\n" + body if body else "")


def blocks_to_markdown(blocks: list[dict[str, Any]], depth: int = 0) -> str:
    """Render a list of sibling blocks into one markdown string."""
    output: list[str] = []
    previous_type: str | None = None
    for block in blocks:
        rendered = block_to_markdown(block, depth)
        if not rendered:
            continue
        block_type = block.get("type")
        if output:
            joiner = (
                "\n"
                if block_type in _LIST_TYPES and previous_type in _LIST_TYPES
                else "\n\n"
            )
            output.append(joiner)
        output.append(rendered)
        previous_type = block_type
    return "".join(output)


def _indent(text: str, depth: int) -> str:
    if depth == 0:
        return text
    prefix = INDENT * depth
    return "\n".join(prefix + line if line else line for line in text.split("\n"))
