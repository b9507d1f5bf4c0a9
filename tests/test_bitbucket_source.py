"""Tests for BitbucketSource repository enumeration."""

from __future__ import annotations

from unittest.mock import Mock

import pytest
import requests

from bitbucket_source import EXIT_AUTH_ERROR, EXIT_BITBUCKET_ERROR, BitbucketSource
from config import BitbucketConfig
from conftest import make_resource

API = 'https://api.bitbucket.org/2.0'


def _make_source(test_mode: bool = False) -> BitbucketSource:
    config = BitbucketConfig(api_url=API, account_id='acme', password='app-password')
    return BitbucketSource(config, test_mode=test_mode)


def _page(slugs, next_url=None, status=200) -> Mock:
    response = Mock()
    response.status_code = status
    response.ok = status < 400
    body = {'values': [make_resource(s) for s in slugs]}
    if next_url:
        body['next'] = next_url
    response.json.return_value = body
    return response


def _paged_responses(pages):
    """Chain pages so each one points at the next via its `next` URL."""
    responses = []
    for i, slugs in enumerate(pages):
        last = i == len(pages) - 1
        next_url = None if last else f'{API}/repositories/acme?page={i + 2}&pagelen=10'
        responses.append(_page(slugs, next_url))
    return responses


def test_list_repositories_follows_next_in_order() -> None:
    """Two pages {A, B} -> {C} should enumerate [A, B, C]."""
    source = _make_source()
    source.session.get = Mock(side_effect=_paged_responses([['a', 'b'], ['c']]))

    repos = source.list_repositories()

    assert [r.slug for r in repos] == ['a', 'b', 'c']
    assert source.session.get.call_count == 2
    first_url = source.session.get.call_args_list[0].args[0]
    second_url = source.session.get.call_args_list[1].args[0]
    assert first_url == f'{API}/repositories/acme?page=1'
    assert second_url == f'{API}/repositories/acme?page=2&pagelen=10'


@pytest.mark.parametrize('pages', [[['a']], [['a', 'b'], ['c'], ['d', 'e']], [[], ['a']]])
def test_list_repositories_makes_one_request_per_page(pages) -> None:
    """L repositories over P pages come back in order after exactly P requests."""
    source = _make_source()
    source.session.get = Mock(side_effect=_paged_responses(pages))

    repos = source.list_repositories()

    expected = [slug for page in pages for slug in page]
    assert [r.slug for r in repos] == expected
    assert source.session.get.call_count == len(pages)


def test_test_mode_stops_after_first_page() -> None:
    """Single-page mode keeps page one and never requests page two."""
    source = _make_source(test_mode=True)
    source.session.get = Mock(
        side_effect=_paged_responses([['a', 'b'], ['c'], ['d']])
    )

    repos = source.list_repositories()

    assert [r.slug for r in repos] == ['a', 'b']
    source.session.get.assert_called_once()


def test_descriptor_uses_second_clone_link() -> None:
    source = _make_source()
    source.session.get = Mock(return_value=_page(['demo']))

    repo = source.list_repositories()[0]

    assert repo.clone_url == 'git@bitbucket.org:acme/demo.git'
    assert repo.is_private is True
    assert repo.has_issues is True
    assert repo.has_wiki is False


def test_basic_auth_uses_account_credentials() -> None:
    source = _make_source()
    assert source.session.auth == ('acme', 'app-password')


@pytest.mark.parametrize('status', [401, 403])
def test_authentication_failure_is_fatal(status) -> None:
    source = _make_source()
    source.session.get = Mock(return_value=_page([], status=status))

    with pytest.raises(SystemExit) as excinfo:
        source.list_repositories()

    assert excinfo.value.code == EXIT_AUTH_ERROR


def test_failure_on_later_page_returns_no_partial_listing() -> None:
    """A failing second page aborts enumeration instead of returning page one."""
    source = _make_source()
    source.session.get = Mock(
        side_effect=[_page(['a'], f'{API}/repositories/acme?page=2'), _page([], status=500)]
    )

    with pytest.raises(SystemExit) as excinfo:
        source.list_repositories()

    assert excinfo.value.code == EXIT_BITBUCKET_ERROR


def test_transport_error_is_fatal() -> None:
    source = _make_source()
    source.session.get = Mock(side_effect=requests.ConnectionError('connection reset'))

    with pytest.raises(SystemExit) as excinfo:
        source.list_repositories()

    assert excinfo.value.code == EXIT_BITBUCKET_ERROR


def test_malformed_resource_is_fatal() -> None:
    source = _make_source()
    response = _page([])
    response.json.return_value = {'values': [{'slug': 'broken', 'links': {'clone': []}}]}
    source.session.get = Mock(return_value=response)

    with pytest.raises(SystemExit) as excinfo:
        source.list_repositories()

    assert excinfo.value.code == EXIT_BITBUCKET_ERROR
