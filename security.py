#!/usr/bin/env python3
"""Security validation utilities for au-revoir-bitbucket."""

import os
import re
from typing import List, Optional


class SecurityValidator:
    """Input validation and credential redaction for logs."""

    MAX_SLUG_LENGTH = 100
    MAX_URL_LENGTH = 2048
    MAX_USERNAME_LENGTH = 100
    MAX_PATH_LENGTH = 500

    # Bitbucket slugs are lowercase, GitHub accepts the same character set
    SAFE_SLUG_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")
    SAFE_USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9._{}-]+$")

    REDACTIONS = [
        (r"(https?://)[^/@\s]+@", r"\1[REDACTED]@"),  # userinfo in URLs
        (r"token[=:\s]+[^\s]+", "token=[REDACTED]"),
        (r"password[=:\s]+[^\s]+", "password=[REDACTED]"),
        (r"ATBB[A-Za-z0-9_=-]+", "[BITBUCKET_TOKEN_REDACTED]"),  # app passwords
        (r"gh[pousr]_[A-Za-z0-9_]+", "[GITHUB_TOKEN_REDACTED]"),
        (r"github_pat_[A-Za-z0-9_]+", "[GITHUB_TOKEN_REDACTED]"),
    ]

    @staticmethod
    def _has_control_chars(value: str) -> bool:
        return "\x00" in value or any(ord(c) < 32 for c in value)

    @classmethod
    def validate_slug(cls, slug: str) -> str:
        """Validate a repository slug used as a directory and repo name."""
        if not slug or not isinstance(slug, str):
            raise ValueError("Repository slug must be a non-empty string")

        if len(slug) > cls.MAX_SLUG_LENGTH:
            raise ValueError(
                f"Repository slug exceeds maximum length of {cls.MAX_SLUG_LENGTH}"
            )

        if slug in (".", "..") or "/" in slug or "\\" in slug:
            raise ValueError("Repository slug contains invalid path characters")

        if cls._has_control_chars(slug):
            raise ValueError("Repository slug contains null bytes or control characters")

        if not cls.SAFE_SLUG_PATTERN.match(slug):
            raise ValueError("Repository slug contains invalid characters")

        return slug

    @classmethod
    def validate_url(cls, url: str, allowed_schemes: Optional[List[str]] = None) -> str:
        """Validate an API or git URL."""
        if not url or not isinstance(url, str):
            raise ValueError("URL must be a non-empty string")

        if len(url) > cls.MAX_URL_LENGTH:
            raise ValueError(f"URL exceeds maximum length of {cls.MAX_URL_LENGTH}")

        if cls._has_control_chars(url):
            raise ValueError("URL contains null bytes or control characters")

        if url.startswith("git@"):
            scheme = "ssh"
        elif "://" in url:
            scheme = url.split("://")[0].lower()
        else:
            raise ValueError("URL must use http, https, ssh or SSH (git@) form")

        if scheme not in ("http", "https", "ssh"):
            raise ValueError(f"unsupported URL scheme '{scheme}'")

        if allowed_schemes and scheme not in allowed_schemes:
            raise ValueError(
                f"URL scheme '{scheme}' not in allowed schemes: {allowed_schemes}"
            )

        return url

    @classmethod
    def validate_username(cls, username: str) -> str:
        """Validate an account id or username."""
        if not username or not isinstance(username, str):
            raise ValueError("Username must be a non-empty string")

        if len(username) > cls.MAX_USERNAME_LENGTH:
            raise ValueError(
                f"Username exceeds maximum length of {cls.MAX_USERNAME_LENGTH}"
            )

        if cls._has_control_chars(username):
            raise ValueError("Username contains null bytes or control characters")

        if not cls.SAFE_USERNAME_PATTERN.match(username):
            raise ValueError("Username contains invalid characters")

        return username

    @classmethod
    def validate_file_path(cls, path: str) -> str:
        """Validate and normalize the repository storage root."""
        if not path or not isinstance(path, str):
            raise ValueError("File path must be a non-empty string")

        if len(path) > cls.MAX_PATH_LENGTH:
            raise ValueError(
                f"File path exceeds maximum length of {cls.MAX_PATH_LENGTH}"
            )

        if "\x00" in path:
            raise ValueError("File path contains null bytes")

        if ".." in path.replace("\\", "/").split("/"):
            raise ValueError("File path contains path traversal sequences")

        return os.path.normpath(path)

    @classmethod
    def sanitize_for_logging(cls, message: str) -> str:
        """Sanitize message for safe logging by removing potential credentials."""
        if not message:
            return message

        sanitized = str(message)
        for pattern, replacement in cls.REDACTIONS:
            sanitized = re.sub(pattern, replacement, sanitized, flags=re.IGNORECASE)

        return sanitized
