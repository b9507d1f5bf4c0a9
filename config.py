#!/usr/bin/env python3
"""Configuration dataclasses for au-revoir-bitbucket."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class CreateSource(Enum):
    """Which phase output feeds the GitHub repository creation phase."""
    LISTED = "listed"
    CLONED = "cloned"


@dataclass
class BitbucketConfig:
    """Bitbucket-specific configuration."""
    api_url: str
    account_id: str
    password: str


@dataclass
class GitHubConfig:
    """GitHub-specific configuration."""
    api_url: str
    token: str
    username: str


@dataclass
class MigrationBehaviorConfig:
    """Migration behavior configuration."""
    dry_run: bool
    test_mode: bool
    repos_dir: str
    work_list_cap: Optional[int] = None
    create_source: CreateSource = CreateSource.LISTED
    max_workers: Optional[int] = None


@dataclass
class GitHubTargetConfig:
    """Configuration for GitHub target operations."""
    api_url: str
    token: str
    username: str
    repos_dir: str
    max_workers: Optional[int] = None


@dataclass
class Config:
    """Main configuration for Bitbucket-to-GitHub migration."""
    bitbucket: BitbucketConfig
    github: GitHubConfig
    behavior: MigrationBehaviorConfig
