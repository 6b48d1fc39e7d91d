"""Endpoint extraction from GitHub repository records."""

from __future__ import annotations

from typing import Any, Dict, List

# Extraction priority: git transport, then SSH, then the web page.
ENDPOINT_FIELDS = ("git_url", "ssh_url", "html_url")


class EndpointsNotFound(LookupError):
    """Raised when a repository record exposes no usable URL."""

    def __init__(self, full_name: str) -> None:
        super().__init__(f"endpoints not found for {full_name}")
        self.full_name = full_name


def get_endpoints(repo: Dict[str, Any]) -> List[str]:
    """Return the repository's access URLs in priority order, skipping empties."""
    endpoints: List[str] = []
    for key in ENDPOINT_FIELDS:
        url = repo.get(key) or ""
        if isinstance(url, str):
            url = url.strip()
        if url and url not in endpoints:
            endpoints.append(url)

    if not endpoints:
        raise EndpointsNotFound(str(repo.get("full_name") or "<unknown>"))
    return endpoints


__all__ = ["ENDPOINT_FIELDS", "EndpointsNotFound", "get_endpoints"]
