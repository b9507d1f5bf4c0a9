#!/usr/bin/env python3
"""Data records passed between migration phases."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

# Bitbucket lists clone links as [https, ssh]; the second one is used.
CLONE_LINK_INDEX = 1


@dataclass(frozen=True)
class RepositoryDescriptor:
    """One Bitbucket repository to be migrated."""
    slug: str
    description: str
    is_private: bool
    has_issues: bool
    has_wiki: bool
    clone_url: str

    @classmethod
    def from_bitbucket(cls, resource: Dict[str, Any]) -> "RepositoryDescriptor":
        """Build a descriptor from a Bitbucket 2.0 repository resource.

        Raises KeyError, IndexError or TypeError when the resource lacks a slug
        or the clone link the migration relies on.
        """
        clone_links = resource["links"]["clone"]
        return cls(
            slug=resource["slug"],
            description=resource.get("description") or "",
            is_private=bool(resource.get("is_private", False)),
            has_issues=bool(resource.get("has_issues", False)),
            has_wiki=bool(resource.get("has_wiki", False)),
            clone_url=clone_links[CLONE_LINK_INDEX]["href"],
        )


@dataclass
class PhaseOutcome:
    """Successful subset produced by one migration phase."""
    phase: str
    attempted: List[RepositoryDescriptor]
    succeeded: List[RepositoryDescriptor] = field(default_factory=list)

    @property
    def failed(self) -> List[RepositoryDescriptor]:
        done = set(self.succeeded)
        return [repo for repo in self.attempted if repo not in done]

    def summary(self) -> str:
        return f"{self.phase}: {len(self.succeeded)}/{len(self.attempted)} succeeded"


@dataclass
class MigrationReport:
    """Per-phase counts for a whole migration run."""
    listed: int = 0
    cloned: int = 0
    created: int = 0
    pushed: int = 0

    def summary(self) -> str:
        return (
            f"pushed {self.pushed}/{self.listed} repositories "
            f"(cloned {self.cloned}, created {self.created})"
        )
