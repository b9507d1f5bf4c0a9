"""Shared fixtures for au-revoir-bitbucket tests."""

from __future__ import annotations

from typing import Optional

import pytest

from models import RepositoryDescriptor


def make_resource(slug: str, description: Optional[str] = 'demo repo') -> dict:
    """Build a Bitbucket 2.0 repository resource as returned by the listing API."""
    return {
        'slug': slug,
        'description': description,
        'is_private': True,
        'has_issues': True,
        'has_wiki': False,
        'links': {
            'clone': [
                {'name': 'https', 'href': f'https://acme@bitbucket.org/acme/{slug}.git'},
                {'name': 'ssh', 'href': f'git@bitbucket.org:acme/{slug}.git'},
            ],
        },
    }


def make_repo(slug: str, clone_url: Optional[str] = None) -> RepositoryDescriptor:
    return RepositoryDescriptor(
        slug=slug,
        description=f'{slug} description',
        is_private=True,
        has_issues=True,
        has_wiki=False,
        clone_url=clone_url or f'git@bitbucket.org:acme/{slug}.git',
    )


@pytest.fixture
def repos():
    return [make_repo('alpha'), make_repo('bravo'), make_repo('charlie')]
