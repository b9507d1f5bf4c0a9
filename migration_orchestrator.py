#!/usr/bin/env python3
"""Main orchestrator for migrating Bitbucket repositories to GitHub."""

from __future__ import annotations

from typing import List

from bitbucket_source import BitbucketSource
from config import Config, CreateSource, GitHubTargetConfig
from github_target import GitHubTarget
from logging_utils import Logger
from models import MigrationReport, RepositoryDescriptor
from repository_mirror import RepositoryMirror

# Exit codes
EXIT_SUCCESS = 0
EXIT_EXECUTION_ERROR = 1


class MigrationOrchestrator:
    """Runs the list, pull, create and push phases in order.

    Each phase fans out over its input and settles completely before the next
    one starts. Only a listing failure ends the run early.
    """

    def __init__(self, cfg: Config) -> None:
        self.cfg = cfg
        behavior = cfg.behavior
        self.bb = BitbucketSource(cfg.bitbucket, test_mode=behavior.test_mode)
        self.mirror = RepositoryMirror(
            cfg.bitbucket, behavior.repos_dir, max_workers=behavior.max_workers
        )
        gh_config = GitHubTargetConfig(
            api_url=cfg.github.api_url.rstrip("/"),
            token=cfg.github.token,
            username=cfg.github.username,
            repos_dir=behavior.repos_dir,
            max_workers=behavior.max_workers,
        )
        self.gh = GitHubTarget(gh_config)
        self.report = MigrationReport()

    def run(self) -> int:
        try:
            repositories = self.bb.list_repositories()
            self.report.listed = len(repositories)

            if self.cfg.behavior.dry_run:
                self._print_plan(repositories)
                Logger.info("dry-run completed")
                return EXIT_SUCCESS

            self.gh.connect()
            self.migrate(repositories)
            Logger.info(self.report.summary())
            return EXIT_SUCCESS
        except SystemExit as e:
            return int(e.code) if isinstance(e.code, int) else EXIT_EXECUTION_ERROR
        except Exception as e:
            Logger.error(f"unexpected error: {e}")
            return EXIT_EXECUTION_ERROR

    def migrate(self, repositories: List[RepositoryDescriptor]) -> List[RepositoryDescriptor]:
        """Pull, create and push; return the repositories that were pushed."""
        pulled = self.mirror.pull_repositories(
            repositories, work_list_cap=self.cfg.behavior.work_list_cap
        )
        self.report.cloned = len(pulled.succeeded)

        if self.cfg.behavior.create_source == CreateSource.CLONED:
            to_create = pulled.succeeded
        else:
            to_create = repositories
        created = self.gh.create_repositories(to_create)
        self.report.created = len(created.succeeded)

        # Only repositories with both a local mirror and a new remote are pushed
        cloned = set(pulled.succeeded)
        to_push = [repo for repo in created.succeeded if repo in cloned]
        skipped = len(created.succeeded) - len(to_push)
        if skipped:
            Logger.warn(
                f"{skipped} created repositories have no local mirror and stay empty"
            )
        pushed = self.gh.push_repositories(to_push)
        self.report.pushed = len(pushed.succeeded)
        return pushed.succeeded

    def _print_plan(self, repositories: List[RepositoryDescriptor]) -> None:
        total = len(repositories)
        for idx, repo in enumerate(repositories, start=1):
            visibility = "private" if repo.is_private else "public"
            Logger.info(
                f"[{idx}/{total}] would migrate: {repo.slug} -> "
                f"{self.cfg.github.username}/{repo.slug} ({visibility})"
            )
