"""
HTML sanitizer for scraped course fragments.

Scraped pages are rendered inline on our own page, so everything goes through
a fixed allow-list first:

  - common text, list, heading, link, image and table elements are kept,
    plus the inline <font> element old course pages still use for colour
  - styling attributes (style, class, alignment) survive
  - script-like elements are dropped together with their contents; any other
    unknown element is unwrapped so its text is kept
  - on* event handlers, comments and non-http(s)/mailto URLs are removed

Public API:
    Sanitizer().sanitize(raw_html) → safe_html
    sanitize(raw_html)             → safe_html   (module-level default policy)
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit

from bs4 import BeautifulSoup, Comment, Tag

ALLOWED_TAGS = frozenset({
    "a", "abbr", "b", "blockquote", "br", "caption", "code", "col", "colgroup",
    "dd", "del", "div", "dl", "dt", "em", "font", "h1", "h2", "h3", "h4", "h5",
    "h6", "hr", "i", "img", "ins", "li", "ol", "p", "pre", "s", "small", "span",
    "strike", "strong", "sub", "sup", "table", "tbody", "td", "tfoot", "th",
    "thead", "tr", "u", "ul",
})

# Removed along with everything inside them.
DROPPED_TAGS = frozenset({
    "script", "style", "iframe", "frame", "frameset", "object", "embed",
    "applet", "noscript", "template", "textarea", "select", "button", "form",
    "input", "link", "meta", "base", "svg", "math",
})

GLOBAL_ATTRS = frozenset({"style", "class", "title", "lang", "dir"})

TAG_ATTRS: dict[str, frozenset[str]] = {
    "a": frozenset({"href"}),
    "img": frozenset({"src", "alt", "width", "height"}),
    "font": frozenset({"color", "face", "size"}),
    "td": frozenset({"colspan", "rowspan", "align", "valign"}),
    "th": frozenset({"colspan", "rowspan", "align", "valign", "scope"}),
    "tr": frozenset({"align", "valign"}),
    "col": frozenset({"span", "align"}),
    "colgroup": frozenset({"span", "align"}),
    "ol": frozenset({"start", "type"}),
    "table": frozenset({"summary"}),
}

URL_ATTRS = frozenset({"href", "src"})
ALLOWED_SCHEMES = frozenset({"", "http", "https", "mailto"})

_UNSAFE_STYLE = re.compile(r"expression\s*\(|javascript:|url\s*\(", re.IGNORECASE)


def _safe_url(value: str) -> bool:
    # Browsers ignore embedded whitespace/control chars in schemes ("java\tscript:").
    compact = re.sub(r"[\x00-\x20]+", "", value)
    try:
        scheme = urlsplit(compact).scheme.lower()
    except ValueError:
        return False
    return scheme in ALLOWED_SCHEMES


class Sanitizer:
    def __init__(
        self,
        allowed_tags: frozenset[str] = ALLOWED_TAGS,
        tag_attrs: dict[str, frozenset[str]] | None = None,
    ):
        self.allowed_tags = allowed_tags
        self.tag_attrs = TAG_ATTRS if tag_attrs is None else tag_attrs

    def sanitize(self, raw_html: str) -> str:
        if not raw_html:
            return ""
        soup = BeautifulSoup(raw_html, "html.parser")

        for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
            comment.extract()

        # Materialise the list up front: decompose()/unwrap() mutate the tree.
        for tag in list(soup.find_all(True)):
            if tag.decomposed:
                continue
            name = tag.name.lower()
            if name in DROPPED_TAGS:
                tag.decompose()
            elif name not in self.allowed_tags:
                tag.unwrap()
            else:
                self._clean_attrs(tag)

        return str(soup)

    def _clean_attrs(self, tag: Tag) -> None:
        allowed = GLOBAL_ATTRS | self.tag_attrs.get(tag.name.lower(), frozenset())
        for attr, value in list(tag.attrs.items()):
            name = attr.lower()
            if isinstance(value, list):
                value = " ".join(value)
            if name.startswith("on") or name not in allowed:
                del tag[attr]
            elif name in URL_ATTRS and not _safe_url(value):
                del tag[attr]
            elif name == "style" and _UNSAFE_STYLE.search(value):
                del tag[attr]

        if tag.name.lower() == "a" and tag.get("href"):
            tag["rel"] = "nofollow noopener"


_default = Sanitizer()


def sanitize(raw_html: str) -> str:
    """Sanitize with the default allow-list policy."""
    return _default.sanitize(raw_html)
