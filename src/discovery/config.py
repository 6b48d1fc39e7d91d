"""Central configuration for the organization repository discovery workflow."""

from __future__ import annotations

import argparse
import logging
import os
import time
from dataclasses import dataclass
from typing import List, Optional

from src.secrets import first_github_token, load_local_secrets

_SECRETS = load_local_secrets()

USER_AGENT = "github-org-discovery/1.0"
BASE_URL = "https://api.github.com"
PER_PAGE = 100
REQUEST_TIMEOUT = 30
RATE_LIMIT_WINDOW_SEC = 60 * 60

QUEUE_NAME = os.getenv("QUEUE_NAME", "repository-mentions")
BROKER_URI = os.getenv("BROKER_URI", "redis://localhost:6379/0")
GITHUB_TOKEN: Optional[str] = (
    os.getenv("GITHUB_TOKEN") or os.getenv("GH_TOKEN") or first_github_token(_SECRETS)
)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

LOG_FORMAT = "%(asctime)sZ | %(levelname)-8s | %(name)s | %(message)s"


@dataclass(frozen=True)
class DiscoverySettings:
    """Resolved runtime settings for a discovery run."""

    org_list: str
    queue: str
    broker: str
    token: Optional[str]
    log_level: str


def build_arg_parser() -> argparse.ArgumentParser:
    """Return the CLI parser used by the discovery entry point."""

    parser = argparse.ArgumentParser(
        description=(
            "List every repository of the given GitHub organizations and "
            "publish one mention per repository onto a queue."
        ),
    )
    parser.add_argument(
        "org_list",
        metavar="list",
        help="path to a file containing GitHub organization names, one per line",
    )
    parser.add_argument("--queue", default=QUEUE_NAME, help="queue name")
    parser.add_argument("--broker", default=BROKER_URI, help="broker service URI")
    parser.add_argument("-t", "--token", default=GITHUB_TOKEN, help="GitHub authentication token")
    parser.add_argument("--log-level", default=LOG_LEVEL)
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments; accepts argv overrides for testing."""

    parser = build_arg_parser()
    return parser.parse_args(argv)


def resolve_settings(args: Optional[argparse.Namespace] = None) -> DiscoverySettings:
    """Return immutable settings built from parsed CLI arguments."""

    args = args or parse_args()
    return DiscoverySettings(
        org_list=args.org_list,
        queue=args.queue,
        broker=args.broker,
        token=args.token or None,
        log_level=str(args.log_level).upper(),
    )


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Configure root logging with UTC timestamps."""
    formatter = logging.Formatter(LOG_FORMAT)
    formatter.converter = time.gmtime
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        handlers=[handler],
    )


__all__ = [
    "USER_AGENT",
    "BASE_URL",
    "PER_PAGE",
    "REQUEST_TIMEOUT",
    "RATE_LIMIT_WINDOW_SEC",
    "QUEUE_NAME",
    "BROKER_URI",
    "GITHUB_TOKEN",
    "LOG_LEVEL",
    "DiscoverySettings",
    "build_arg_parser",
    "parse_args",
    "resolve_settings",
    "setup_logging",
]
