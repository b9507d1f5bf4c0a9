#!/usr/bin/env python3
"""Local bare clones of Bitbucket repositories."""

from __future__ import annotations

import os
import subprocess
from typing import List, Optional, Sequence

from config import BitbucketConfig
from logging_utils import Logger
from models import PhaseOutcome, RepositoryDescriptor
from security import SecurityValidator
from utils import (cleanup_askpass_script, create_askpass_script, git_auth_env,
                   local_mirror_path, run_concurrently)

CLONE_TIMEOUT_S = 1800


class RepositoryMirror:
    """Clones repositories as bare mirrors under a storage root."""

    def __init__(
        self,
        config: BitbucketConfig,
        repos_dir: str,
        max_workers: Optional[int] = None,
    ) -> None:
        self.config = config
        self.repos_dir = repos_dir
        self.max_workers = max_workers

    def mirror_path(self, repository: RepositoryDescriptor) -> str:
        return local_mirror_path(self.repos_dir, repository.slug)

    def _prepare_directory(self, repository: RepositoryDescriptor) -> str:
        """Create the per-slug directory; an existing one is a collision."""
        SecurityValidator.validate_slug(repository.slug)
        path = self.mirror_path(repository)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        os.mkdir(path)
        return path

    def _run_clone(self, repository: RepositoryDescriptor, path: str) -> None:
        env = None
        askpass_script: Optional[str] = None
        try:
            if repository.clone_url.startswith("https://"):
                askpass_script = create_askpass_script()
                env = git_auth_env(
                    askpass_script, self.config.account_id, self.config.password
                )
            subprocess.run(
                ["git", "clone", "--bare", repository.clone_url, path],
                check=True,
                capture_output=True,
                text=True,
                timeout=CLONE_TIMEOUT_S,
                env=env,
            )
        finally:
            cleanup_askpass_script(askpass_script)

    @staticmethod
    def _report_clone_failure(
        repository: RepositoryDescriptor, path: str, reason: str
    ) -> None:
        # The slug directory is kept, so the next run collides with it
        Logger.error(f"couldn't pull repository {repository.slug}: {reason}")
        Logger.warn(f"remove {path} before retrying {repository.slug}")

    def clone_repository(self, repository: RepositoryDescriptor) -> bool:
        """Bare-clone one repository. Returns False on any failure."""
        Logger.info(f"pulling repository {repository.slug}")
        try:
            path = self._prepare_directory(repository)
        except FileExistsError:
            Logger.error(
                f"couldn't pull repository {repository.slug}: "
                f"{self.mirror_path(repository)} already exists"
            )
            return False
        except (OSError, ValueError) as e:
            Logger.error(f"couldn't pull repository {repository.slug}: {e}")
            return False

        try:
            self._run_clone(repository, path)
        except subprocess.TimeoutExpired:
            self._report_clone_failure(repository, path, "git clone timed out")
            return False
        except subprocess.CalledProcessError as e:
            self._report_clone_failure(
                repository, path, (e.stderr or e.stdout or "").strip()
            )
            return False
        except OSError as e:
            self._report_clone_failure(repository, path, str(e))
            return False

        Logger.success(f"pulled repository {repository.slug}")
        return True

    def pull_repositories(
        self,
        repositories: Sequence[RepositoryDescriptor],
        work_list_cap: Optional[int] = None,
    ) -> PhaseOutcome:
        """Clone every repository concurrently and return the ones that cloned.

        A positive ``work_list_cap`` keeps only the first N repositories of the
        work list; it does not limit concurrency.
        """
        work_list: List[RepositoryDescriptor] = list(repositories)
        if work_list_cap is not None and work_list_cap > 0:
            work_list = work_list[:work_list_cap]
            Logger.warn(
                f"work list capped: cloning {len(work_list)} of "
                f"{len(repositories)} repositories"
            )

        Logger.info(f"pulling {len(work_list)} repositories into {self.repos_dir}")
        outcome = PhaseOutcome(phase="pull", attempted=work_list)
        outcome.succeeded = run_concurrently(
            work_list, self.clone_repository, "pull", self.max_workers
        )
        Logger.info(outcome.summary())
        return outcome
