"""Entry point wiring configuration, broker, GitHub client, and the crawl."""

from __future__ import annotations

import logging
import sys
from typing import List, Optional

from .config import DiscoverySettings, parse_args, resolve_settings, setup_logging
from .http_client import RepositoryClient
from .organizations import FileOrganizationSource
from .provider import CrawlStats, Provider
from .publisher import BrokerError, MentionSink, enqueue_mention, open_sink

logger = logging.getLogger(__name__)


def _open_sink_or_exit(settings: DiscoverySettings) -> MentionSink:
    try:
        return open_sink(settings.broker, settings.queue)
    except BrokerError as exc:
        logger.error("[error] %s", exc)
        sys.exit(1)


def _open_orgs_or_exit(settings: DiscoverySettings) -> FileOrganizationSource:
    try:
        return FileOrganizationSource(settings.org_list)
    except OSError as exc:
        logger.error("[error] cannot open organization list %s: %s", settings.org_list, exc)
        sys.exit(1)


def run(settings: DiscoverySettings) -> CrawlStats:
    """Publish mentions for every organization listed in `settings.org_list`."""
    sink = _open_sink_or_exit(settings)
    try:
        orgs = _open_orgs_or_exit(settings)
        if not settings.token:
            logger.warning("[warn] no GitHub token configured; requests are unauthenticated")
        with RepositoryClient(token=settings.token) as client:
            provider = Provider(enqueue_mention(sink), orgs, client)
            return provider.start()
    finally:
        sink.close()


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point for organization repository discovery."""

    args = parse_args(argv)
    settings = resolve_settings(args)
    setup_logging(settings.log_level)
    run(settings)


__all__ = ["main", "run"]
