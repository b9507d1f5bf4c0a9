#!/usr/bin/env python3
"""Utility functions for au-revoir-bitbucket."""

import os
import tempfile
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Sequence, TypeVar

from logging_utils import Logger

T = TypeVar("T")

# The askpass helper reads credentials from these variables, which are set
# only in the environment of the git subprocess it serves.
ASKPASS_USERNAME_VAR = "AU_REVOIR_GIT_USERNAME"
ASKPASS_PASSWORD_VAR = "AU_REVOIR_GIT_PASSWORD"


def run_concurrently(
    items: Sequence[T],
    func: Callable[[T], bool],
    label: str,
    max_workers: Optional[int] = None,
) -> List[T]:
    """Run ``func`` over every item concurrently and keep the ones that succeed.

    Every item gets its own worker unless ``max_workers`` caps the pool.
    An item succeeds when ``func`` returns a truthy value; a falsy return or an
    exception drops it without affecting its siblings. The call returns after
    all items have settled, with the successful items in input order.
    """
    if not items:
        return []

    workers = len(items)
    if max_workers and max_workers > 0:
        workers = min(workers, max_workers)

    results: Dict[int, bool] = {}
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {executor.submit(func, item): idx for idx, item in enumerate(items)}
        for future, idx in futures.items():
            try:
                results[idx] = bool(future.result())
            except Exception as e:
                Logger.error(f"{label} failed for {_describe(items[idx])}: {e}")
                results[idx] = False

    return [item for idx, item in enumerate(items) if results[idx]]


def _describe(item: object) -> str:
    return str(getattr(item, "slug", item))


def local_mirror_path(repos_dir: str, slug: str) -> str:
    """Return the directory that holds the bare clone of ``slug``."""
    return os.path.join(os.path.abspath(repos_dir), slug)


def create_askpass_script() -> str:
    """Create a temporary askpass script that answers git's prompts.

    The script holds no secrets; it echoes the credential variables from the
    environment of the git process that invokes it.
    """
    fd, path = tempfile.mkstemp(prefix="arb_askpass_", text=True)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as script:
            script.write("#!/bin/sh\n")
            script.write("case \"$1\" in\n")
            script.write(f"  *Username*) printf '%s\\n' \"${ASKPASS_USERNAME_VAR}\" ;;\n")
            script.write(f"  *Password*) printf '%s\\n' \"${ASKPASS_PASSWORD_VAR}\" ;;\n")
            script.write("  *) exit 1 ;;\n")
            script.write("esac\n")
        os.chmod(path, 0o700)
    except Exception:
        os.unlink(path)
        raise
    return path


def cleanup_askpass_script(path: Optional[str]) -> None:
    """Remove temporary askpass script if it exists."""
    if not path:
        return
    try:
        if os.path.exists(path):
            os.remove(path)
    except OSError as error:
        Logger.warn(f"failed to clean up temporary credential helper: {error}")


def git_auth_env(askpass_script: str, username: str, password: str) -> Dict[str, str]:
    """Build a subprocess environment that authenticates git via askpass."""
    env = os.environ.copy()
    env.update(
        {
            "GIT_ASKPASS": askpass_script,
            "GIT_TERMINAL_PROMPT": "0",
            ASKPASS_USERNAME_VAR: username,
            ASKPASS_PASSWORD_VAR: password,
        }
    )
    return env
