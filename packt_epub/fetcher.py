"""HTTP access to the Packt content API."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import requests

from .config import DEFAULT_HEADERS, BuildConfig
from .errors import DecodeError, FetchError
from .models import Author, Summary, TableOfContents

logger = logging.getLogger("packt_epub")


class ContentFetcher:
    """Issues authenticated requests for metadata, pages and binary assets.

    Every failure surfaces as :class:`FetchError` (or :class:`DecodeError`
    for malformed JSON). Nothing is retried here; the caller decides whether
    a failure is fatal.
    """

    def __init__(
        self,
        config: BuildConfig,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config
        self._token = token
        self.session = session or requests.Session()
        self.session.headers.update(DEFAULT_HEADERS)

    def _get(self, url: str, authenticated: bool = False) -> requests.Response:
        headers = {}
        if authenticated and self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        logger.debug("GET %s", url)
        try:
            resp = self.session.get(url, headers=headers, timeout=self.config.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise FetchError(url, exc) from exc
        return resp

    def get_bytes(self, url: str, authenticated: bool = False) -> bytes:
        return self._get(url, authenticated).content

    def get_text(self, url: str, authenticated: bool = False) -> str:
        resp = self._get(url, authenticated)
        if not resp.encoding:
            resp.encoding = "utf-8"
        return resp.text

    def get_json(self, url: str, authenticated: bool = False) -> Any:
        resp = self._get(url, authenticated)
        try:
            return resp.json()
        except ValueError as exc:
            raise DecodeError(f"Malformed JSON from {url}: {exc}") from exc

    def get_summary(self, isbn: str) -> Summary:
        return Summary.from_dict(self.get_json(f"{self.config.products_url(isbn)}/summary"))

    def get_author(self, author_id: str) -> Author:
        return Author.from_dict(self.get_json(f"{self.config.static_base}/authors/{author_id}"))

    def get_toc(self, isbn: str) -> TableOfContents:
        return TableOfContents.from_dict(self.get_json(f"{self.config.products_url(isbn)}/toc"))

    def get_page(self, isbn: str, chapter_id: str, section_id: str) -> str:
        """Return the HTML fragment of one section.

        The products endpoint answers with a short-lived signed URL; the page
        body itself is served from that URL without the bearer token.
        """
        url = (
            f"{self.config.services_base}/products-v1/products/"
            f"{isbn}/{chapter_id}/{section_id}"
        )
        payload = self.get_json(url, authenticated=True)
        page_url = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(page_url, str) or not page_url:
            raise DecodeError(f"Page descriptor from {url} has no 'data' URL")
        return self.get_text(page_url)

    def download(self, url: str, destination: Path) -> Path:
        """Fetch a binary resource and store it at ``destination``."""
        data = self.get_bytes(url)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_bytes(data)
        except OSError as exc:
            raise FetchError(url, f"cannot write {destination}: {exc}") from exc
        return destination
