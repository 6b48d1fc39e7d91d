"""GitHub REST client that lists an organization's repositories one page at a time."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, quote, urlparse

import requests

from .config import BASE_URL, PER_PAGE, REQUEST_TIMEOUT, USER_AGENT
from .rate_limit import RateLimit

logger = logging.getLogger(__name__)

RATE_LIMIT_STATUSES = {403, 429}


class GitHubError(RuntimeError):
    """A remote call failed; terminal for the organization being crawled."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransportError(GitHubError):
    """The request never produced a response (connection error, timeout)."""


class RateLimitError(GitHubError):
    """The call budget is exhausted; carries the snapshot used for backoff."""

    def __init__(self, message: str, rate: RateLimit, status_code: Optional[int] = None) -> None:
        super().__init__(message, status_code)
        self.rate = rate


@dataclass
class RepositoryPage:
    """One page of repository records; `next_page` is 0 on the last page."""

    repositories: List[Dict[str, Any]]
    rate: RateLimit
    next_page: int = 0
    page: int = 1


def error_message(resp: requests.Response) -> str:
    """Return a short, human-readable message for an error response."""
    try:
        body = resp.json()
    except ValueError:
        body = {"text": (resp.text or "")[:300]}
    if not isinstance(body, dict):
        return str(body)[:300]
    return str(body.get("message") or body.get("error") or body.get("text") or "")


def next_page_from_link(link_header: Optional[str]) -> int:
    """Extract the `page` number of the rel="next" entry in a Link header."""
    if not link_header:
        return 0
    for part in link_header.split(","):
        segments = part.strip().split(";")
        url = segments[0].strip()
        rels = [seg.strip() for seg in segments[1:]]
        if 'rel="next"' not in rels:
            continue
        if url.startswith("<") and url.endswith(">"):
            url = url[1:-1]
        values = parse_qs(urlparse(url).query).get("page")
        if not values:
            return 0
        try:
            return int(values[0])
        except ValueError:
            return 0
    return 0


def is_rate_limited(resp: requests.Response, rate: RateLimit) -> bool:
    """True when GitHub refused the call because the primary budget is spent."""
    if resp.status_code not in RATE_LIMIT_STATUSES:
        return False
    headers = resp.headers or {}
    return "X-RateLimit-Remaining" in headers and rate.remaining == 0


class RepositoryClient:
    """Thin wrapper around the GitHub REST API for listing organization repositories."""

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = BASE_URL,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "User-Agent": USER_AGENT,
            }
        )
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"
        else:
            self.session.headers.pop("Authorization", None)

    @property
    def authenticated(self) -> bool:
        return "Authorization" in self.session.headers

    def _url(self, path: str) -> str:
        path = path if path.startswith("/") else f"/{path}"
        return f"{self.base_url}{path}"

    def list_by_org(self, org: str, page: int = 1) -> RepositoryPage:
        """Fetch one page of `org`'s repositories.

        Raises RateLimitError when the budget is spent, TransportError when no
        response arrives within REQUEST_TIMEOUT, and GitHubError otherwise.
        """
        url = self._url(f"/orgs/{quote(org, safe='')}/repos")
        params = {"per_page": PER_PAGE, "page": page}
        logger.debug("[http] GET %s page=%s", url, page)
        try:
            resp = self.session.get(url, params=params, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as exc:
            raise TransportError(f"request to {url} failed: {exc}") from exc

        rate = RateLimit.from_headers(resp.headers)
        if is_rate_limited(resp, rate):
            raise RateLimitError(
                f"API rate limit exceeded for {url}: {error_message(resp)}",
                rate,
                resp.status_code,
            )

        if not 200 <= resp.status_code < 300:
            raise GitHubError(
                f"HTTP {resp.status_code} for {url}: {error_message(resp)}",
                resp.status_code,
            )

        try:
            batch = resp.json()
        except ValueError as exc:
            raise GitHubError(f"invalid JSON from {url}: {exc}", resp.status_code) from exc
        if not isinstance(batch, list):
            raise GitHubError(f"unexpected payload from {url}: expected a list", resp.status_code)

        return RepositoryPage(
            repositories=[entry for entry in batch if isinstance(entry, dict)],
            rate=rate,
            next_page=next_page_from_link((resp.headers or {}).get("Link")),
            page=page,
        )

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "RepositoryClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


__all__ = [
    "GitHubError",
    "TransportError",
    "RateLimitError",
    "RepositoryPage",
    "RepositoryClient",
    "error_message",
    "next_page_from_link",
    "is_rate_limited",
]
