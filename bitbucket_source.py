#!/usr/bin/env python3
"""Bitbucket API wrapper for enumerating an account's repositories."""

from __future__ import annotations

import sys
from typing import Any, Dict, List, Optional

import requests

from config import BitbucketConfig
from logging_utils import Logger
from models import RepositoryDescriptor

# Exit codes
EXIT_AUTH_ERROR = 40
EXIT_BITBUCKET_ERROR = 30

REQUEST_TIMEOUT_S = 30


class BitbucketSource:
    """Wrapper around the Bitbucket 2.0 API to enumerate repositories."""

    def __init__(self, config: BitbucketConfig, test_mode: bool = False) -> None:
        self.config = config
        self.test_mode = test_mode
        self.session = requests.Session()
        self.session.auth = (config.account_id, config.password)
        self.session.headers.update({"Accept": "application/json"})

    def _page_url(self, page: int) -> str:
        base = self.config.api_url.rstrip("/")
        return f"{base}/repositories/{self.config.account_id}?page={page}"

    def _fetch_page(self, url: str) -> Dict[str, Any]:
        Logger.debug(f"bitbucket api url: {url}")
        try:
            response = self.session.get(url, timeout=REQUEST_TIMEOUT_S)
        except requests.RequestException as e:
            Logger.error(f"failed to contact bitbucket api: {e}")
            sys.exit(EXIT_BITBUCKET_ERROR)

        if response.status_code in (401, 403):
            Logger.error(
                f"authentication failed (bitbucket, {response.status_code}): "
                "check the account id and app password"
            )
            sys.exit(EXIT_AUTH_ERROR)
        if response.status_code == 404:
            Logger.error(
                f"not found (404): account '{self.config.account_id}' does not "
                "exist or is not visible to these credentials"
            )
            sys.exit(EXIT_BITBUCKET_ERROR)
        if not response.ok:
            Logger.error(
                f"unexpected response listing repositories: {response.status_code}"
            )
            sys.exit(EXIT_BITBUCKET_ERROR)

        try:
            data = response.json()
        except ValueError as e:
            Logger.error(f"invalid JSON in bitbucket listing response: {e}")
            sys.exit(EXIT_BITBUCKET_ERROR)
        if not isinstance(data, dict):
            Logger.error("invalid bitbucket listing response: expected an object")
            sys.exit(EXIT_BITBUCKET_ERROR)
        return data

    def list_repositories(self) -> List[RepositoryDescriptor]:
        """Return every repository of the account in listing order.

        Follows the ``next`` URL of each page until a page has none. In test
        mode only the first page is fetched. Any failure ends the process.
        """
        Logger.info(
            f"getting the repository list for account: {self.config.account_id}"
        )
        repositories: List[RepositoryDescriptor] = []
        next_url: Optional[str] = None
        page = 1

        while True:
            data = self._fetch_page(next_url or self._page_url(page))

            values = data.get("values") or []
            try:
                batch = [RepositoryDescriptor.from_bitbucket(v) for v in values]
            except (KeyError, IndexError, TypeError) as e:
                Logger.error(f"malformed repository resource on page {page}: {e}")
                sys.exit(EXIT_BITBUCKET_ERROR)
            repositories.extend(batch)
            Logger.debug(f"page {page}: {len(batch)} repositories")

            next_url = data.get("next")
            if self.test_mode:
                if next_url:
                    Logger.warn(
                        "test mode: only the first page of repositories is processed"
                    )
                break
            if not next_url:
                break
            page += 1

        Logger.info(f"found {len(repositories)} repositories to process")
        return repositories
