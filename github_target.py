#!/usr/bin/env python3
"""GitHub API wrapper for creating repos and pushing mirrors."""

from __future__ import annotations

import os
import subprocess
import sys
from typing import Any, List, Optional, Sequence
from urllib.parse import urlparse

import github
import requests

from config import GitHubTargetConfig
from logging_utils import Logger
from models import PhaseOutcome, RepositoryDescriptor
from security import SecurityValidator
from utils import (cleanup_askpass_script, create_askpass_script, git_auth_env,
                   local_mirror_path, run_concurrently)

# Exit codes
EXIT_GITHUB_ERROR = 31

USER_AGENT = "au-revoir-bitbucket"
PUSH_TIMEOUT_S = 1800


def creation_error_messages(exc: github.GithubException) -> List[str]:
    """Collect every error message GitHub returned for a failed request."""
    data: Any = exc.data
    if not isinstance(data, dict):
        return [str(data or exc)]

    messages: List[str] = []
    for error in data.get("errors") or []:
        if isinstance(error, dict):
            message = error.get("message") or " ".join(
                str(error[k]) for k in ("resource", "field", "code") if error.get(k)
            )
        else:
            message = str(error)
        if message:
            messages.append(message)

    if not messages and data.get("message"):
        messages.append(str(data["message"]))
    return messages or [f"status {exc.status}"]


class GitHubTarget:
    """Wrapper around GitHub to create repos and push local mirrors."""

    def __init__(self, config: GitHubTargetConfig) -> None:
        self.config = config
        self.api: Optional[github.Github] = None

    def connect(self) -> None:
        Logger.info(f"init github API: {self.config.api_url}")
        auth = github.Auth.Token(self.config.token)
        # A resent POST /user/repos would fail as a name collision
        if self.config.api_url != "https://api.github.com":
            self.api = github.Github(
                base_url=self.config.api_url,
                auth=auth,
                user_agent=USER_AGENT,
                retry=None,
            )
        else:
            self.api = github.Github(auth=auth, user_agent=USER_AGENT, retry=None)

    def _git_base_url(self) -> str:
        """Return base URL for Git operations derived from API endpoint."""
        parsed = urlparse(self.config.api_url)
        if parsed.netloc == "api.github.com":
            return "https://github.com"

        base_path = parsed.path.rstrip("/")
        if base_path.endswith("/api/v3"):
            base_path = base_path[: -len("/api/v3")]
        base = f"{parsed.scheme}://{parsed.netloc}"
        if base_path:
            base += base_path
        return base

    def push_url(self, slug: str) -> str:
        base_url = self._git_base_url().rstrip("/")
        return f"{base_url}/{self.config.username}/{slug}.git"

    def create_repo(self, repository: RepositoryDescriptor) -> bool:
        """Create one empty repository for the authenticated user."""
        if self.api is None:
            Logger.error("github API not initialized")
            sys.exit(EXIT_GITHUB_ERROR)

        Logger.info(f"creating repository: {repository.slug}")
        try:
            self.api.get_user().create_repo(
                name=repository.slug,
                description=repository.description,
                private=repository.is_private,
                has_issues=repository.has_issues,
                has_wiki=repository.has_wiki,
                auto_init=False,
            )
        except github.GithubException as e:
            for message in creation_error_messages(e):
                Logger.error(f"failed creating repository {repository.slug}, {message}.")
            return False
        except requests.RequestException as e:
            Logger.error(f"failed creating repository {repository.slug}, {e}.")
            return False

        Logger.success(f"created repository for {repository.slug}")
        return True

    def create_repositories(
        self, repositories: Sequence[RepositoryDescriptor]
    ) -> PhaseOutcome:
        Logger.info(f"preparing to create {len(repositories)} repositories")
        outcome = PhaseOutcome(phase="create", attempted=list(repositories))
        outcome.succeeded = run_concurrently(
            outcome.attempted, self.create_repo, "create", self.config.max_workers
        )
        if outcome.succeeded:
            Logger.info(outcome.summary())
        else:
            Logger.warn("finished the creation step but 0 new repos were created")
        return outcome

    def push_repository(self, repository: RepositoryDescriptor) -> bool:
        """Mirror-push the local bare clone of one repository."""
        mirror_dir = local_mirror_path(self.config.repos_dir, repository.slug)
        Logger.info(f"pushing repository {repository.slug} from {mirror_dir}")
        if not os.path.isdir(mirror_dir):
            Logger.error(
                f"failed to push repository {repository.slug}: no local mirror"
            )
            return False

        askpass_script: Optional[str] = None
        try:
            askpass_script = create_askpass_script()
            env = git_auth_env(askpass_script, self.config.username, self.config.token)
            subprocess.run(
                ["git", "push", "--mirror", self.push_url(repository.slug)],
                cwd=mirror_dir,
                check=True,
                capture_output=True,
                text=True,
                timeout=PUSH_TIMEOUT_S,
                env=env,
            )
        except subprocess.TimeoutExpired:
            Logger.security_event(
                "GIT_PUSH_TIMEOUT", f"git push timeout for {repository.slug}"
            )
            Logger.error(f"failed to push repository {repository.slug}: timed out")
            return False
        except subprocess.CalledProcessError as e:
            output = SecurityValidator.sanitize_for_logging(
                (e.stderr or e.stdout or "").strip()
            )
            Logger.error(f"failed to push repository {repository.slug}: {output}")
            return False
        except OSError as e:
            Logger.error(f"failed to push repository {repository.slug}: {e}")
            return False
        finally:
            cleanup_askpass_script(askpass_script)

        Logger.success(f"successfully pushed repository: {repository.slug}")
        return True

    def push_repositories(
        self, repositories: Sequence[RepositoryDescriptor]
    ) -> PhaseOutcome:
        Logger.info(f"beginning to push {len(repositories)} repositories")
        outcome = PhaseOutcome(phase="push", attempted=list(repositories))
        outcome.succeeded = run_concurrently(
            outcome.attempted, self.push_repository, "push", self.config.max_workers
        )
        Logger.info(outcome.summary())
        return outcome
