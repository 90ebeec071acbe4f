"""Durable storage for the refreshed destination access token.

The token manager only needs `get(key)` / `set(key, value)`; where the values end up (an env
file, the process environment, memory in tests) is up to the implementation.
"""

import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from dotenv import get_key, set_key


class CredentialStore(ABC):
    """Key-value capability used to persist credentials across process restarts."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when the key is absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store `value` under `key` without touching any other key."""
        pass


class InMemoryCredentialStore(CredentialStore):
    """Process-local store. Used in tests and when persistence is not wanted."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        """Initialize the store, optionally pre-populated."""
        self.values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        """Return the stored value."""
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        """Store the value."""
        self.values[key] = value


class EnvironmentCredentialStore(CredentialStore):
    """Reads and writes `os.environ`. Survives nothing but the current process."""

    def get(self, key: str) -> Optional[str]:
        """Return the environment variable."""
        return os.environ.get(key)

    def set(self, key: str, value: str) -> None:
        """Set the environment variable."""
        os.environ[key] = value


class DotEnvCredentialStore(CredentialStore):
    """Rewrites a single key of a `.env` file in place, appending it when missing.

    Unrelated keys, comments and ordering of the file are preserved by python-dotenv.
    """

    def __init__(self, path: str | Path):
        """Initialize the store for the env file at `path`."""
        self.path = Path(path)

    def get(self, key: str) -> Optional[str]:
        """Return the value from the env file, or None when the file or key is missing."""
        if not self.path.exists():
            return None
        return get_key(self.path, key)

    def set(self, key: str, value: str) -> None:
        """Replace or append `key=value` in the env file, creating the file if needed."""
        self.path.touch(exist_ok=True)
        set_key(self.path, key, value, quote_mode="never")
