import re
import html
import unicodedata

from bs4 import BeautifulSoup


def truncate_text(text: str, limit: int) -> str:
    text = text or ""
    if len(text) > limit:
        return text[: max(0, limit - 3)] + "..."
    return text


def strip_html_to_text(raw_html: str) -> str:
    raw_html = raw_html or ""
    text = BeautifulSoup(raw_html, "html.parser").get_text("\n")
    text = html.unescape(text)
    text = re.sub(r"\n{3,}", "\n\n", text).strip()
    return text


def excerpt_from_html(raw_html: str, max_chars: int) -> str:
    """First paragraphs of an HTML body flattened to one line."""
    text = strip_html_to_text(raw_html)
    text = re.sub(r"\s+", " ", text).strip()
    return truncate_text(text, max_chars)


def slugify(text: str) -> str:
    text = unicodedata.normalize("NFKD", text or "")
    text = text.encode("ascii", "ignore").decode("ascii")
    text = re.sub(r"<[^>]+>", " ", text)
    text = re.sub(r"[^a-zA-Z0-9\s-]", "", text).strip().lower()
    text = re.sub(r"[\s_-]+", "-", text)
    return text.strip("-")
