"""Favicon discovery and caching for desktop shortcuts and window icons."""

from __future__ import annotations

import io
import logging
import re
from pathlib import Path
from urllib.parse import urljoin, urlparse

import requests
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger("weblet.favicon")

ICON_LINK_PATTERNS = [
    re.compile(
        r"""<link[^>]*rel=["'](?:apple-touch-icon|icon|shortcut icon)["'][^>]*href=["']([^"']+)["'][^>]*>""",
        re.IGNORECASE,
    ),
    re.compile(
        r"""<link[^>]*href=["']([^"']+)["'][^>]*rel=["'](?:apple-touch-icon|icon|shortcut icon)["'][^>]*>""",
        re.IGNORECASE,
    ),
    re.compile(
        r"""<meta[^>]*property=["']og:image["'][^>]*content=["']([^"']+)["'][^>]*>""",
        re.IGNORECASE,
    ),
]

WELL_KNOWN_ICONS = [
    "/apple-touch-icon.png",
    "/apple-touch-icon-precomposed.png",
    "/favicon-32x32.png",
    "/favicon-16x16.png",
    "/favicon-96x96.png",
    "/favicon-128x128.png",
    "/favicon.png",
    "/icon.png",
    "/favicon.ico",
]


def _icon_kind(url: str) -> str | None:
    path = urlparse(url).path.lower()
    if path.endswith(".png"):
        return "png"
    if path.endswith(".ico"):
        return "ico"
    return None


def find_cached_icon(icons_dir: Path, url: str) -> Path | None:
    host = urlparse(url).netloc
    if not host:
        return None
    for ext in (".png", ".ico"):
        candidate = icons_dir / f"{host}{ext}"
        if candidate.exists():
            return candidate
    return None


class FaviconFetcher:
    """Downloads the best available icon for a site into icons_dir."""

    def __init__(
        self,
        icons_dir: Path,
        session: requests.Session | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.icons_dir = icons_dir
        self.session = session or requests.Session()
        self.timeout = timeout

    def icons_from_html(self, page_url: str) -> list[str]:
        try:
            resp = self.session.get(page_url, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.debug("could not fetch %s: %s", page_url, exc)
            return []
        if resp.status_code != 200:
            return []
        html = resp.text
        found: list[str] = []
        for pattern in ICON_LINK_PATTERNS:
            for href in pattern.findall(html):
                found.append(urljoin(page_url, href))
        return found

    def candidates(self, page_url: str) -> list[str]:
        parsed = urlparse(page_url)
        base = f"{parsed.scheme}://{parsed.netloc}"
        urls = self.icons_from_html(page_url) + [base + path for path in WELL_KNOWN_ICONS]
        return [url for url in urls if _icon_kind(url) is not None]

    def _download(self, icon_url: str, host: str) -> Path | None:
        try:
            resp = self.session.get(icon_url, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.debug("icon download failed for %s: %s", icon_url, exc)
            return None
        if resp.status_code != 200 or not resp.content:
            return None
        content_type = resp.headers.get("Content-Type", "").lower()
        is_png = _icon_kind(icon_url) == "png" or "png" in content_type
        self.icons_dir.mkdir(parents=True, exist_ok=True)
        if is_png:
            path = self.icons_dir / f"{host}.png"
            path.write_bytes(resp.content)
            return path
        return self._store_ico(resp.content, host)

    def _store_ico(self, payload: bytes, host: str) -> Path:
        """Convert ICO payloads to PNG when Pillow can read them."""
        png_path = self.icons_dir / f"{host}.png"
        try:
            with Image.open(io.BytesIO(payload)) as image:
                image.save(png_path, format="PNG")
            return png_path
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            logger.debug("keeping %s icon as .ico: %s", host, exc)
        ico_path = self.icons_dir / f"{host}.ico"
        ico_path.write_bytes(payload)
        return ico_path

    def fetch(self, page_url: str) -> Path | None:
        """Return a cached icon path, preferring PNG sources over ICO."""
        host = urlparse(page_url).netloc
        if not host:
            return None
        candidates = self.candidates(page_url)
        pngs = [url for url in candidates if _icon_kind(url) == "png"]
        icos = [url for url in candidates if _icon_kind(url) == "ico"]
        for icon_url in pngs + icos:
            path = self._download(icon_url, host)
            if path is not None:
                return path
        return None
