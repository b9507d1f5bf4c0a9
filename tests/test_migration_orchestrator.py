"""Tests for MigrationOrchestrator phase chaining."""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import MagicMock

from config import (BitbucketConfig, Config, CreateSource, GitHubConfig,
                    MigrationBehaviorConfig)
from migration_orchestrator import EXIT_SUCCESS, MigrationOrchestrator


def _make_config(tmp_path: Path, **behavior) -> Config:
    options = dict(
        dry_run=False,
        test_mode=False,
        repos_dir=str(tmp_path / 'repositories'),
    )
    options.update(behavior)
    return Config(
        bitbucket=BitbucketConfig(
            api_url='https://api.bitbucket.org/2.0',
            account_id='acme',
            password='app-password',
        ),
        github=GitHubConfig(
            api_url='https://api.github.com',
            token='gh-token',
            username='octo',
        ),
        behavior=MigrationBehaviorConfig(**options),
    )


def _make_orchestrator(tmp_path: Path, repos, clone_fails=(), create_fails=(),
                       push_fails=(), **behavior) -> MigrationOrchestrator:
    orchestrator = MigrationOrchestrator(_make_config(tmp_path, **behavior))
    orchestrator.bb.list_repositories = MagicMock(return_value=list(repos))
    orchestrator.gh.connect = MagicMock()
    orchestrator.mirror.clone_repository = MagicMock(
        side_effect=lambda repo: repo.slug not in clone_fails
    )
    orchestrator.gh.create_repo = MagicMock(
        side_effect=lambda repo: repo.slug not in create_fails
    )
    orchestrator.gh.push_repository = MagicMock(
        side_effect=lambda repo: repo.slug not in push_fails
    )
    return orchestrator


def _slugs(mock: MagicMock):
    return sorted(call.args[0].slug for call in mock.call_args_list)


def test_run_migrates_every_repository(repos, tmp_path: Path) -> None:
    orchestrator = _make_orchestrator(tmp_path, repos)

    assert orchestrator.run() == EXIT_SUCCESS

    assert orchestrator.report.listed == 3
    assert orchestrator.report.pushed == 3
    orchestrator.gh.connect.assert_called_once()


def test_create_uses_full_listing_by_default(repos, tmp_path: Path) -> None:
    """A failed clone still gets a remote created, but is never pushed."""
    orchestrator = _make_orchestrator(tmp_path, repos, clone_fails={'bravo'})

    pushed = orchestrator.migrate(repos)

    assert _slugs(orchestrator.gh.create_repo) == ['alpha', 'bravo', 'charlie']
    assert _slugs(orchestrator.gh.push_repository) == ['alpha', 'charlie']
    assert pushed == [repos[0], repos[2]]
    assert orchestrator.report.created == 3
    assert orchestrator.report.pushed == 2


def test_create_from_cloned_skips_failed_clones(repos, tmp_path: Path) -> None:
    orchestrator = _make_orchestrator(
        tmp_path, repos, clone_fails={'bravo'}, create_source=CreateSource.CLONED
    )

    orchestrator.migrate(repos)

    assert _slugs(orchestrator.gh.create_repo) == ['alpha', 'charlie']
    assert orchestrator.report.created == 2


def test_failed_create_is_not_pushed(repos, tmp_path: Path) -> None:
    orchestrator = _make_orchestrator(tmp_path, repos, create_fails={'charlie'})

    pushed = orchestrator.migrate(repos)

    assert _slugs(orchestrator.gh.push_repository) == ['alpha', 'bravo']
    assert pushed == repos[:2]


def test_raising_operations_are_isolated(repos, tmp_path: Path) -> None:
    orchestrator = _make_orchestrator(tmp_path, repos)
    orchestrator.gh.push_repository = MagicMock(side_effect=RuntimeError('boom'))

    assert orchestrator.run() == EXIT_SUCCESS
    assert orchestrator.report.pushed == 0
    assert orchestrator.gh.push_repository.call_count == 3


def test_every_phase_failing_still_completes(repos, tmp_path: Path) -> None:
    slugs = {r.slug for r in repos}
    orchestrator = _make_orchestrator(tmp_path, repos, clone_fails=slugs, create_fails=slugs)

    assert orchestrator.run() == EXIT_SUCCESS
    assert orchestrator.report.cloned == 0
    assert orchestrator.report.pushed == 0
    orchestrator.gh.push_repository.assert_not_called()


def test_work_list_cap_is_forwarded(repos, tmp_path: Path) -> None:
    orchestrator = _make_orchestrator(tmp_path, repos, work_list_cap=1)

    orchestrator.migrate(repos)

    assert _slugs(orchestrator.mirror.clone_repository) == ['alpha']
    assert _slugs(orchestrator.gh.push_repository) == ['alpha']


def test_listing_failure_aborts_run(repos, tmp_path: Path) -> None:
    orchestrator = _make_orchestrator(tmp_path, repos)
    orchestrator.bb.list_repositories = MagicMock(side_effect=lambda: sys.exit(40))

    assert orchestrator.run() == 40
    orchestrator.mirror.clone_repository.assert_not_called()
    orchestrator.gh.create_repo.assert_not_called()


def test_dry_run_does_not_migrate(repos, tmp_path: Path) -> None:
    orchestrator = _make_orchestrator(tmp_path, repos, dry_run=True)

    assert orchestrator.run() == EXIT_SUCCESS
    orchestrator.mirror.clone_repository.assert_not_called()
    orchestrator.gh.connect.assert_not_called()
