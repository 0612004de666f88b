"""OpenGraph metadata extraction for link previews."""

from __future__ import annotations

from html.parser import HTMLParser
from urllib.parse import urlsplit

from pydantic import BaseModel, Field


class OpenGraphImage(BaseModel):
    url: str = ""
    secure_url: str = ""
    width: int = 0
    height: int = 0
    alt: str = ""
    type: str = ""


class OpenGraph(BaseModel):
    """Essential properties needed to render a link preview."""

    title: str = ""
    description: str = ""
    url: str = ""
    site_name: str = ""
    type: str = ""
    images: list[OpenGraphImage] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.title or self.description or self.site_name or self.images)


def _parse_uint32(value: str) -> int | None:
    value = value.strip()
    if not value.isdigit():
        return None
    number = int(value)
    return number if number < 2**32 else None


class _OpenGraphParser(HTMLParser):
    """Collects ``og:*`` meta tags plus plain HTML fallbacks."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.og = OpenGraph()
        self.fallback_title = ""
        self.fallback_description = ""
        self.fallback_url = ""
        self._in_title = False
        self._title_parts: list[str] = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        values = {key: value or "" for key, value in attrs}
        if tag == "meta":
            prop = values.get("property", "")
            if prop.startswith("og:"):
                self._apply_property(prop, values.get("content", ""))
            elif values.get("name") == "description" and not self.fallback_description:
                self.fallback_description = values.get("content", "")
        elif tag == "link":
            if values.get("rel") == "canonical" and not self.fallback_url:
                self.fallback_url = values.get("href", "")
        elif tag == "title" and not self.fallback_title:
            self._in_title = True

    def handle_endtag(self, tag: str) -> None:
        if tag == "title" and self._in_title:
            self._in_title = False
            self.fallback_title = "".join(self._title_parts).strip()

    def handle_data(self, data: str) -> None:
        if self._in_title:
            self._title_parts.append(data)

    def _last_image(self) -> OpenGraphImage:
        if not self.og.images:
            self.og.images.append(OpenGraphImage())
        return self.og.images[-1]

    def _apply_property(self, prop: str, content: str) -> None:
        og = self.og
        if prop == "og:title":
            og.title = content
        elif prop == "og:description":
            og.description = content
        elif prop == "og:url":
            og.url = content
        elif prop == "og:site_name":
            og.site_name = content
        elif prop == "og:type":
            og.type = content
        elif prop == "og:image":
            og.images.append(OpenGraphImage(url=content))
        elif prop == "og:image:url":
            self._last_image().url = content
        elif prop == "og:image:secure_url":
            self._last_image().secure_url = content
        elif prop in ("og:image:width", "og:image:height"):
            image = self._last_image()
            size = _parse_uint32(content)
            if size is not None:
                setattr(image, prop.rsplit(":", 1)[1], size)
        elif prop == "og:image:alt":
            self._last_image().alt = content
        elif prop == "og:image:type":
            self._last_image().type = content


def parse(html: str, url: str) -> OpenGraph:
    """Parse ``html`` fetched from ``url``.

    Missing OpenGraph properties fall back to ``<title>``, the description
    meta tag, the canonical link, and finally the host name and ``url``.
    """
    parser = _OpenGraphParser()
    parser.feed(html)
    parser.close()

    og = parser.og
    og.title = og.title or parser.fallback_title
    og.description = og.description or parser.fallback_description
    og.url = og.url or parser.fallback_url
    if not og.site_name:
        host = urlsplit(url).hostname or ""
        og.site_name = host.removeprefix("www.")
    og.url = og.url or url
    return og
