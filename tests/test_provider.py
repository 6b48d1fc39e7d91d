"""Tests for src.discovery.provider covering paging, rate-limit retries and error containment.

Run with coverage:
    pytest tests/test_provider.py --maxfail=1 -v --cov=src.discovery.provider --cov-report=term-missing
"""

import logging
from unittest.mock import MagicMock

import pytest

from src.discovery.http_client import GitHubError, RateLimitError, RepositoryPage, TransportError
from src.discovery.mention import Mention
from src.discovery.organizations import ListOrganizationSource
from src.discovery.provider import Provider
from src.discovery.publisher import MemoryQueueSink, PublishError, enqueue_mention
from src.discovery.rate_limit import RateLimit

NOW = 1_700_000_000.0
OK_RATE = RateLimit(limit=5000, remaining=4000, reset=int(NOW) + 600)


def _page(repos, next_page=0, page=1):
    return RepositoryPage(repositories=repos, rate=OK_RATE, next_page=next_page, page=page)


def _repo(name, fork=False, **urls):
    repo = {"full_name": name, "fork": fork}
    repo.update(urls)
    return repo


def _provider(client, orgs, sink=None, sleeps=None):
    sink = sink or MemoryQueueSink("mentions")
    sleeps = sleeps if sleeps is not None else []
    provider = Provider(
        enqueue_mention(sink),
        ListOrganizationSource(orgs),
        client,
        sleep=sleeps.append,
        clock=lambda: NOW,
    )
    return provider, sink, sleeps


def test_single_page_publishes_each_repository():
    client = MagicMock()
    client.list_by_org.return_value = _page([
        _repo("acme/a", git_url="git://x/a"),
        _repo("acme/b", fork=True, html_url="http://x/b"),
    ])
    provider, sink, sleeps = _provider(client, ["acme"])

    stats = provider.start()

    assert sink.mentions() == [
        Mention(("git://x/a",), False),
        Mention(("http://x/b",), True),
    ]
    client.list_by_org.assert_called_once_with("acme", 1)
    assert sleeps == []
    assert stats.published == 2
    assert stats.organizations == 1


def test_rate_limit_waits_then_retries_same_page():
    limited = RateLimitError("limited", RateLimit(limit=100, remaining=0, reset=int(NOW) + 60), 403)
    client = MagicMock()
    client.list_by_org.side_effect = [
        limited,
        _page([_repo("acme/a", git_url="git://x/a"), _repo("acme/b", fork=True, html_url="http://x/b")]),
    ]
    provider, sink, sleeps = _provider(client, ["acme"])

    provider.start()

    # 60s until reset, no calls left: 60s/(0+1)
    assert sleeps == [pytest.approx(60.0)]
    assert [call.args for call in client.list_by_org.call_args_list] == [("acme", 1), ("acme", 1)]
    assert sink.mentions() == [Mention(("git://x/a",), False), Mention(("http://x/b",), True)]


def test_repeated_rate_limits_do_not_drop_or_duplicate():
    repos = [_repo(f"acme/r{i}", git_url=f"git://x/r{i}") for i in range(3)]
    limited = RateLimitError("limited", RateLimit(limit=60, remaining=0, reset=int(NOW) + 30))

    immediate_client = MagicMock()
    immediate_client.list_by_org.return_value = _page(repos)
    immediate, immediate_sink, _ = _provider(immediate_client, ["acme"])
    immediate.start()

    retried_client = MagicMock()
    retried_client.list_by_org.side_effect = [limited, limited, limited, _page(repos)]
    retried, retried_sink, sleeps = _provider(retried_client, ["acme"])
    stats = retried.start()

    assert retried_sink.mentions() == immediate_sink.mentions()
    assert len(sleeps) == 3
    assert all(wait > 0 for wait in sleeps)
    assert stats.rate_limited == 3


def test_follows_next_page_until_zero():
    client = MagicMock()
    client.list_by_org.side_effect = [
        _page([_repo("acme/a", git_url="git://x/a")], next_page=2),
        _page([_repo("acme/b", git_url="git://x/b")], next_page=5, page=2),
        _page([_repo("acme/c", git_url="git://x/c")], next_page=0, page=5),
    ]
    provider, sink, _ = _provider(client, ["acme"])
    stats = provider.start()
    assert [call.args[1] for call in client.list_by_org.call_args_list] == [1, 2, 5]
    assert [m.endpoints[0] for m in sink.mentions()] == ["git://x/a", "git://x/b", "git://x/c"]
    assert stats.pages == 3


def test_extraction_failure_skips_only_that_repository(caplog):
    client = MagicMock()
    client.list_by_org.return_value = _page([
        _repo("acme/a", git_url="git://x/a"),
        _repo("acme/empty"),
        _repo("acme/c", ssh_url="git@x:c"),
    ])
    provider, sink, _ = _provider(client, ["acme"])

    with caplog.at_level(logging.WARNING):
        stats = provider.start()

    assert [m.endpoints for m in sink.mentions()] == [("git://x/a",), ("git@x:c",)]
    assert stats.skipped_repositories == 1
    assert "repository=acme/empty" in caplog.text


def test_publish_failure_is_not_fatal(caplog):
    published = []

    def persist(mention):
        if mention.endpoints == ("git://x/a",):
            raise PublishError("queue full")
        published.append(mention)

    client = MagicMock()
    client.list_by_org.return_value = _page([
        _repo("acme/a", git_url="git://x/a"),
        _repo("acme/b", git_url="git://x/b"),
    ])
    provider = Provider(persist, ListOrganizationSource(["acme"]), client, sleep=lambda _: None, clock=lambda: NOW)

    with caplog.at_level(logging.ERROR):
        stats = provider.start()

    assert published == [Mention(("git://x/b",), False)]
    assert stats.failed_publishes == 1
    assert stats.published == 1
    assert "failed publishing" in caplog.text


@pytest.mark.parametrize("error", [GitHubError("HTTP 404", 404), TransportError("timed out")])
def test_terminal_error_aborts_org_and_continues_with_next(error, caplog):
    client = MagicMock()
    client.list_by_org.side_effect = [
        _page([_repo("broken/a", git_url="git://x/ba")], next_page=2),
        error,
        _page([_repo("acme/a", git_url="git://x/a")]),
    ]
    provider, sink, sleeps = _provider(client, ["broken", "acme"])

    with caplog.at_level(logging.ERROR):
        stats = provider.start()

    assert [call.args for call in client.list_by_org.call_args_list] == [
        ("broken", 1),
        ("broken", 2),
        ("acme", 1),
    ]
    assert [m.endpoints[0] for m in sink.mentions()] == ["git://x/ba", "git://x/a"]
    assert sleeps == []
    assert stats.aborted_organizations == 1
    assert "org=broken page=2" in caplog.text


def test_request_repos_reports_completion():
    client = MagicMock()
    client.list_by_org.side_effect = [_page([]), GitHubError("boom")]
    provider, _, _ = _provider(client, [])
    assert provider.request_repos("ok") is True
    assert provider.request_repos("bad") is False


def test_empty_source_finishes_without_calls():
    client = MagicMock()
    provider, sink, _ = _provider(client, ["", "  "])
    stats = provider.start()
    client.list_by_org.assert_not_called()
    assert sink.messages == []
    assert stats.organizations == 0


def test_unexpected_persist_error_is_not_fatal(caplog):
    published = []

    def persist(mention):
        if mention.endpoints == ("git://x/a",):
            raise OSError("socket closed")
        published.append(mention)

    client = MagicMock()
    client.list_by_org.side_effect = [
        _page([_repo("acme/a", git_url="git://x/a"), _repo("acme/b", git_url="git://x/b")]),
        _page([_repo("globex/c", git_url="git://x/c")]),
    ]
    provider = Provider(
        persist, ListOrganizationSource(["acme", "globex"]), client, sleep=lambda _: None, clock=lambda: NOW
    )

    with caplog.at_level(logging.ERROR):
        stats = provider.start()

    assert [m.endpoints[0] for m in published] == ["git://x/b", "git://x/c"]
    assert stats.failed_publishes == 1
    assert "socket closed" in caplog.text
