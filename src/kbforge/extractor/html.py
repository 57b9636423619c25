"""HTML to text conversion shared by the file and website extractors."""

import re

from bs4 import BeautifulSoup, NavigableString

# Tags whose text never belongs in a knowledge base
NOISE_TAGS = ["script", "style", "noscript", "nav", "footer", "header", "aside", "form", "iframe"]


def html_to_text(html: str) -> tuple[str, str | None]:
    """
    Convert an HTML document into structured plain text.

    Headings become markdown headers, list items become ``*`` lines and
    tables become pipe-separated rows. Blocks are separated by blank lines
    so paragraph-aware chunking can split on them.

    Returns:
        ``(text, title)``; title is None when the page has none
    """
    soup = BeautifulSoup(html, "html.parser")
    title = soup.title.get_text(strip=True) if soup.title else None

    for tag in soup(NOISE_TAGS):
        tag.decompose()

    root = soup.body if soup.body else soup
    blocks = _extract_blocks(root)
    text = "\n\n".join(blocks)
    text = re.sub(r"\n\s*\n", "\n\n", text).strip()
    return text, title or None


def _extract_blocks(root) -> list[str]:
    blocks: list[str] = []

    for element in root.children:
        if not getattr(element, "name", None):
            # Bare text only; comments and doctypes are NavigableString subclasses
            text = str(element).strip() if type(element) is NavigableString else ""
            if text:
                blocks.append(text)
            continue

        if element.name in ("h1", "h2", "h3", "h4", "h5", "h6"):
            level = int(element.name[1])
            text = element.get_text(" ", strip=True)
            if text:
                blocks.append("#" * level + " " + text)

        elif element.name in ("ul", "ol"):
            items = [li.get_text(" ", strip=True) for li in element.find_all("li")]
            items = [f"* {item}" for item in items if item]
            if items:
                blocks.append("\n".join(items))

        elif element.name == "table":
            table = _extract_table(element)
            if table:
                blocks.append(table)

        elif element.name in ("div", "section", "article", "main"):
            # Containers: descend so nested headings and lists keep their shape
            blocks.extend(_extract_blocks(element))

        else:
            text = element.get_text(" ", strip=True)
            if text:
                blocks.append(text)

    return blocks


def _extract_table(table) -> str:
    lines = []
    for tr in table.find_all("tr"):
        cells = [cell.get_text(" ", strip=True) for cell in tr.find_all(["th", "td"])]
        if any(cells):
            lines.append(" | ".join(cells))
    return "\n".join(lines)
