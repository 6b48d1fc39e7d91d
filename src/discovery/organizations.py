"""Sources of GitHub organization names to crawl.

Two adapters share one contract: a file with one organization per line and an
in-memory list. Both skip blank entries and signal exhaustion with
``StopIteration``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Protocol, TextIO, Union


class OrganizationSource(Protocol):
    """Iterator over organization names that owns a releasable resource."""

    def __iter__(self) -> Iterator[str]:
        ...

    def __next__(self) -> str:
        ...

    def close(self) -> None:
        ...

    def for_each(self, fn: Callable[[str], object]) -> None:
        ...


def for_each_organization(source: OrganizationSource, fn: Callable[[str], object]) -> None:
    """Call `fn` for every organization, always closing the source.

    The first exception raised by `fn` propagates to the caller.
    """
    try:
        while True:
            try:
                org = next(source)
            except StopIteration:
                return
            fn(org)
    finally:
        source.close()


class FileOrganizationSource:
    """Read organization names from a line-delimited text file."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        # Undecodable bytes become U+FFFD; the API then rejects that one name.
        self._handle: Optional[TextIO] = self.path.open("r", encoding="utf-8", errors="replace")

    def __iter__(self) -> "FileOrganizationSource":
        return self

    def __next__(self) -> str:
        if self._handle is None:
            raise StopIteration
        for line in self._handle:
            org = line.strip()
            if org:
                return org
        raise StopIteration

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def for_each(self, fn: Callable[[str], object]) -> None:
        for_each_organization(self, fn)

    def __enter__(self) -> "FileOrganizationSource":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class ListOrganizationSource:
    """Serve organization names from an in-memory list."""

    def __init__(self, orgs: Iterable[str]) -> None:
        self._orgs: List[str] = list(orgs)

    def __iter__(self) -> "ListOrganizationSource":
        return self

    def __next__(self) -> str:
        while self._orgs:
            org = (self._orgs.pop(0) or "").strip()
            if org:
                return org
        raise StopIteration

    def close(self) -> None:
        return None

    def for_each(self, fn: Callable[[str], object]) -> None:
        for_each_organization(self, fn)

    def __enter__(self) -> "ListOrganizationSource":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def open_organization_source(
    orgs: Union[str, Path, Iterable[str]],
) -> Union[FileOrganizationSource, ListOrganizationSource]:
    """Build a file-backed source for paths, a list-backed one otherwise."""
    if isinstance(orgs, (str, Path)):
        return FileOrganizationSource(orgs)
    return ListOrganizationSource(orgs)


__all__ = [
    "OrganizationSource",
    "FileOrganizationSource",
    "ListOrganizationSource",
    "for_each_organization",
    "open_organization_source",
]
