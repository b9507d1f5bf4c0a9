#!/usr/bin/env python3
"""Command line argument parsing and configuration building."""

from __future__ import annotations

import argparse
import os
import sys
from typing import Optional, Sequence, Tuple

from config import (BitbucketConfig, Config, CreateSource, GitHubConfig,
                    MigrationBehaviorConfig)
from logging_utils import Logger
from security import SecurityValidator

# Exit codes
EXIT_AUTH_ERROR = 40
EXIT_MISSING_ARGUMENTS = 2


def _create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        description="Migrate all Bitbucket repositories of an account to GitHub",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --bb-account acme --gh-username acme-dev
  %(prog)s --dry-run
  %(prog)s --test-mode --work-list-cap 5
  %(prog)s --create-from cloned --max-workers 8

Credentials default to the BITBUCKET_ACCOUNT_ID, BITBUCKET_PASSWORD,
GITHUB_TOKEN and GITHUB_USERNAME environment variables; TEST_MODE=true
enables single-page listing.
        """,
    )
    return parser


def _add_bitbucket_arguments(parser: argparse.ArgumentParser) -> None:
    """Add Bitbucket-related arguments to parser."""
    parser.add_argument(
        "--bb-api",
        dest="bb_api_url",
        default="https://api.bitbucket.org/2.0",
        help="Base URL of the Bitbucket API",
    )
    parser.add_argument(
        "--bb-account",
        dest="bb_account",
        help="Bitbucket account or workspace id (or set BITBUCKET_ACCOUNT_ID env var)",
    )
    parser.add_argument(
        "--bb-password",
        dest="bb_password",
        help="Bitbucket app password (or set BITBUCKET_PASSWORD env var)",
    )


def _add_github_arguments(parser: argparse.ArgumentParser) -> None:
    """Add GitHub-related arguments to parser."""
    parser.add_argument(
        "--gh-api",
        dest="gh_api_url",
        default="https://api.github.com",
        help="Base URL of the GitHub API",
    )
    parser.add_argument(
        "--gh-token",
        dest="gh_token",
        help="GitHub API token (or set GITHUB_TOKEN env var)",
    )
    parser.add_argument(
        "--gh-username",
        dest="gh_username",
        help="GitHub user that will own the repositories (or set GITHUB_USERNAME)",
    )


def _add_behavior_arguments(parser: argparse.ArgumentParser) -> None:
    """Add behavior and configuration arguments to parser."""
    parser.add_argument(
        "-d",
        "--dry-run",
        action="store_true",
        dest="dry_run",
        help="List repositories without migrating them",
    )
    parser.add_argument(
        "--test-mode",
        action="store_true",
        dest="test_mode",
        help="Only process the first page of the Bitbucket listing "
        "(or set TEST_MODE=true)",
    )
    parser.add_argument(
        "--repos-dir",
        dest="repos_dir",
        default="repositories",
        help="Directory holding the bare clones (default: ./repositories)",
    )
    parser.add_argument(
        "--work-list-cap",
        dest="work_list_cap",
        type=int,
        help="Only clone the first N listed repositories",
    )
    parser.add_argument(
        "--create-from",
        dest="create_from",
        choices=[source.value for source in CreateSource],
        default=CreateSource.LISTED.value,
        help="Create GitHub repos for every listed repository or only the "
        "cloned ones (default: listed)",
    )
    parser.add_argument(
        "--max-workers",
        dest="max_workers",
        type=int,
        help="Cap concurrent operations per phase (default: unbounded)",
    )


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() == "true"


def _validate_parsed_arguments(args) -> Tuple[str, str, str]:
    """Validate and sanitize parsed arguments for security."""
    try:
        validated_bb_api_url = SecurityValidator.validate_url(
            args.bb_api_url, ["https", "http"]
        )
        validated_gh_api_url = SecurityValidator.validate_url(
            args.gh_api_url, ["https"]
        )
        validated_repos_dir = SecurityValidator.validate_file_path(args.repos_dir)

        if args.work_list_cap is not None and args.work_list_cap < 0:
            raise ValueError("work list cap must not be negative")
        if args.max_workers is not None and args.max_workers < 0:
            raise ValueError("max workers must not be negative")

        Logger.security_event(
            "CONFIG_VALIDATION", "successfully validated all configuration inputs"
        )
        return validated_bb_api_url, validated_gh_api_url, validated_repos_dir

    except ValueError as e:
        Logger.security_event(
            "CONFIG_VALIDATION_FAILED", f"configuration validation failed: {e}"
        )
        Logger.error(f"configuration validation error: {e}")
        sys.exit(EXIT_MISSING_ARGUMENTS)


def _get_and_validate_credentials(args) -> Tuple[str, str, str, str]:
    """Get and validate account identifiers and secrets."""
    bb_account = args.bb_account or os.getenv("BITBUCKET_ACCOUNT_ID")
    bb_password = args.bb_password or os.getenv("BITBUCKET_PASSWORD")
    gh_token = args.gh_token or os.getenv("GITHUB_TOKEN")
    gh_username = args.gh_username or os.getenv("GITHUB_USERNAME")

    missing = [
        label
        for label, value in (
            ("bitbucket account (--bb-account or BITBUCKET_ACCOUNT_ID)", bb_account),
            ("bitbucket password (--bb-password or BITBUCKET_PASSWORD)", bb_password),
            ("github token (--gh-token or GITHUB_TOKEN)", gh_token),
            ("github username (--gh-username or GITHUB_USERNAME)", gh_username),
        )
        if not value
    ]
    if missing:
        for label in missing:
            Logger.error(f"error: {label} not provided")
        sys.exit(EXIT_AUTH_ERROR)

    try:
        validated_bb_account = SecurityValidator.validate_username(bb_account)
        validated_gh_username = SecurityValidator.validate_username(gh_username)
    except ValueError as e:
        Logger.security_event(
            "USERNAME_VALIDATION_FAILED", f"account validation failed: {e}"
        )
        Logger.error(f"account validation error: {e}")
        sys.exit(EXIT_AUTH_ERROR)

    return validated_bb_account, bb_password, gh_token, validated_gh_username


def parse_arguments(argv: Optional[Sequence[str]] = None) -> Config:
    """Parse command line arguments and return configuration object."""
    parser = _create_argument_parser()
    _add_bitbucket_arguments(parser)
    _add_github_arguments(parser)
    _add_behavior_arguments(parser)

    args = parser.parse_args(argv)

    validated_bb_api_url, validated_gh_api_url, validated_repos_dir = (
        _validate_parsed_arguments(args)
    )
    bb_account, bb_password, gh_token, gh_username = (
        _get_and_validate_credentials(args)
    )

    return Config(
        bitbucket=BitbucketConfig(
            api_url=validated_bb_api_url,
            account_id=bb_account,
            password=bb_password,
        ),
        github=GitHubConfig(
            api_url=validated_gh_api_url,
            token=gh_token,
            username=gh_username,
        ),
        behavior=MigrationBehaviorConfig(
            dry_run=args.dry_run,
            test_mode=args.test_mode or _env_flag("TEST_MODE"),
            repos_dir=validated_repos_dir,
            work_list_cap=args.work_list_cap or None,
            create_source=CreateSource(args.create_from),
            max_workers=args.max_workers or None,
        ),
    )
