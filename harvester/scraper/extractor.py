"""Content extraction: turns raw HTML into a :class:`CleanPage`."""

from __future__ import annotations

from bs4 import BeautifulSoup

from harvester.scraper.models import CleanPage

# Elements that carry links, scripts or media rather than readable prose.
_NOISE_TAGS = [
    "a",
    "button",
    "link",
    "script",
    "form",
    "i",
    "input",
    "video",
    "image",
    "textarea",
    "img",
    "vid",
    "iframe",
    "footer",
]


def extract_content(html: str) -> CleanPage:
    """Return the page title and the text of ``<body>`` with noise removed.

    Either field is an empty string when the document lacks a ``<title>`` or
    a ``<body>``.
    """
    soup = BeautifulSoup(html, "html.parser")

    title = soup.title.get_text() if soup.title is not None else ""

    for tag in soup.find_all(_NOISE_TAGS):
        # Nested noise (an <img> inside an <a>) is already gone with its parent.
        if not tag.decomposed:
            tag.decompose()

    body = soup.body
    text = body.get_text() if body is not None else ""
    return CleanPage(title=title, text=text)
