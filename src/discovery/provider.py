"""Crawl coordinator: organizations -> repository pages -> mentions -> queue."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from .endpoints import EndpointsNotFound, get_endpoints
from .http_client import GitHubError, RateLimitError, RepositoryClient
from .mention import new_mention
from .organizations import OrganizationSource
from .publisher import PersistMentionFn
from .rate_limit import time_to_retry

logger = logging.getLogger(__name__)

FIRST_PAGE = 1


@dataclass
class CrawlStats:
    """Counters accumulated over one run of the provider."""

    organizations: int = 0
    aborted_organizations: int = 0
    pages: int = 0
    rate_limited: int = 0
    published: int = 0
    skipped_repositories: int = 0
    failed_publishes: int = 0


class Provider:
    """Publish a mention for every repository of every organization in the source."""

    def __init__(
        self,
        persist: PersistMentionFn,
        orgs: OrganizationSource,
        client: RepositoryClient,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.persist = persist
        self.orgs = orgs
        self.client = client
        self.sleep = sleep
        self.clock = clock
        self.stats = CrawlStats()

    def start(self) -> CrawlStats:
        """Crawl until the organization source is exhausted."""
        started = self.clock()
        self.orgs.for_each(self.request_repos)
        logger.info(
            "Done. organizations=%s aborted=%s pages=%s published=%s skipped=%s "
            "failed_publishes=%s rate_limited=%s took %.1fs",
            self.stats.organizations,
            self.stats.aborted_organizations,
            self.stats.pages,
            self.stats.published,
            self.stats.skipped_repositories,
            self.stats.failed_publishes,
            self.stats.rate_limited,
            self.clock() - started,
        )
        return self.stats

    def request_repos(self, org: str) -> bool:
        """Walk every page of `org`; return False if a terminal error cut it short."""
        self.stats.organizations += 1
        page = FIRST_PAGE
        while True:
            try:
                result = self.client.list_by_org(org, page)
            except RateLimitError as exc:
                wait = time_to_retry(exc.rate, now=self.clock())
                self.stats.rate_limited += 1
                logger.info(
                    "[rate-limit] org=%s page=%s remaining=%s limit=%s, waiting %.2fs to retry",
                    org,
                    page,
                    exc.rate.remaining,
                    exc.rate.limit,
                    wait,
                )
                self.sleep(wait)
                continue
            except GitHubError as exc:
                self.stats.aborted_organizations += 1
                logger.error("[error] org=%s page=%s failed retrieving repositories: %s", org, page, exc)
                return False

            self.stats.pages += 1
            for repo in result.repositories:
                self._process_repository(org, page, repo)

            if not result.next_page:
                return True
            page = result.next_page

    def _process_repository(self, org: str, page: int, repo: dict) -> bool:
        full_name = repo.get("full_name") or "<unknown>"
        logger.debug("[repo] org=%s page=%s repository=%s processing data", org, page, full_name)
        try:
            endpoints = get_endpoints(repo)
        except EndpointsNotFound as exc:
            self.stats.skipped_repositories += 1
            logger.warning("[warn] org=%s page=%s repository=%s skipped: %s", org, page, full_name, exc)
            return False

        try:
            self.persist(new_mention(endpoints, bool(repo.get("fork"))))
        except Exception as exc:
            # persist may be any callable, not only the PublishError-raising enqueue_mention.
            self.stats.failed_publishes += 1
            logger.error("[error] org=%s page=%s repository=%s failed publishing: %s", org, page, full_name, exc)
            return False

        self.stats.published += 1
        logger.debug("[repo] org=%s page=%s repository=%s published", org, page, full_name)
        return True


__all__ = ["CrawlStats", "Provider", "FIRST_PAGE"]
