#!/usr/bin/env python3
"""
Au Revoir Bitbucket - Migrate all repositories of a Bitbucket account
to a GitHub user account.

This tool lists every repository of the Bitbucket account, bare-clones each
one locally, creates an empty GitHub repository for it and mirror-pushes the
clone, so all branches and tags are copied. It is a one-way migration.
"""

from __future__ import annotations

import sys
from typing import NoReturn

from argument_parser import parse_arguments
from migration_orchestrator import MigrationOrchestrator

# Exit codes
EXIT_SUCCESS = 0
EXIT_EXECUTION_ERROR = 1


def main() -> NoReturn:
    if __name__ != "__main__":
        sys.exit(EXIT_EXECUTION_ERROR)

    cfg = parse_arguments()
    orchestrator = MigrationOrchestrator(cfg)
    sys.exit(orchestrator.run())


if __name__ == "__main__":
    main()
