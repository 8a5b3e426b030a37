"""
Turn the provider's HTML-ish fragments into plain text.

Both helpers are total: None/"" in, "" out.
"""

from __future__ import annotations
import re
from typing import Optional

from bs4 import BeautifulSoup

# opening tag of a block-level container (closing tags are left to the parser)
BLOCK_TAG_RE = re.compile(r"(?i)<(?:div|p|br|li|h[1-6]|blockquote)\b[^>]*>")
WS_RE = re.compile(r"\s+")
INLINE_WS_RE = re.compile(r"[ \t\r\f\v]+")

# what Universalis actually sends: &#x2010; for hyphens, &#160; between words
ENTITY_FIXES = {
    "\u2010": "-",
    "\xa0": " ",
}


def _decode(html: str) -> str:
    if "<" not in html and "&" not in html:
        text = html
    else:
        text = BeautifulSoup(html, "html.parser").get_text()
    for src, dst in ENTITY_FIXES.items():
        text = text.replace(src, dst)
    return text


def strip_html(html: Optional[str]) -> str:
    """'<p>a</p><p>b</p>' -> 'a b'"""
    if not html:
        return ""
    text = _decode(BLOCK_TAG_RE.sub(lambda m: " " + m.group(0), html))
    return WS_RE.sub(" ", text).strip()


def format_paragraphs(html: Optional[str]) -> str:
    """
    Like strip_html, but block containers become paragraph breaks:
    '<div>a</div><div>b</div>' -> 'a\\nb'. Blank lines collapse to one break.
    """
    if not html:
        return ""
    text = _decode(BLOCK_TAG_RE.sub(lambda m: "\n" + m.group(0), html))
    lines = [INLINE_WS_RE.sub(" ", ln).strip() for ln in text.splitlines()]
    return "\n".join(ln for ln in lines if ln)
