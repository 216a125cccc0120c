"""
Key-value storage for durable engine state.

The rate limiter, security event log and trust feedback persist their state
as whole JSON blobs through the KeyValueStore contract. Two implementations
are provided: an in-memory store and an HMAC-protected JSON file store that
detects tampering with the file on disk.
"""

import hashlib
import hmac
import json
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .exceptions import StateError, TamperingError


class KeyValueStore(ABC):
    """Minimal string key-value storage contract."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value or None if the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete a key. Removing an absent key is not an error."""


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store, used by default and in tests."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileKeyValueStore(KeyValueStore):
    """
    Persistent key-value store with HMAC protection.

    The whole map is written to a single JSON file together with an
    HMAC-SHA256 over its contents. Loading a file whose HMAC does not match
    raises TamperingError; I/O and parse failures raise StateError.
    """

    VERSION = 1

    def __init__(self, file_path: Path, hmac_secret: str) -> None:
        """
        Initialize the store.

        Args:
            file_path: Path to the state file (JSON format)
            hmac_secret: Secret key for HMAC computation
        """
        if not hmac_secret:
            raise ValueError("HMAC secret cannot be empty")
        self._file_path = Path(file_path)
        self._hmac_secret = hmac_secret.encode("utf-8")
        self._data: Optional[dict[str, str]] = None

    @property
    def file_path(self) -> Path:
        return self._file_path

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)

    def reload(self) -> None:
        """Drop the in-memory copy so the next access re-reads the file."""
        self._data = None

    def _load(self) -> dict[str, str]:
        """
        Load the map from disk and validate its HMAC.

        Raises:
            TamperingError: If HMAC validation fails
            StateError: If the file cannot be read or parsed
        """
        if self._data is not None:
            return self._data

        if not self._file_path.exists():
            self._data = {}
            return self._data

        try:
            with open(self._file_path, "r", encoding="utf-8") as f:
                raw_data = json.load(f)
        except json.JSONDecodeError as e:
            raise StateError(
                code="parse_error",
                message=f"Failed to parse state file: {e}",
                details={"file_path": str(self._file_path)},
            )
        except OSError as e:
            raise StateError(
                code="io_error",
                message=f"Failed to read state file: {e}",
                details={"file_path": str(self._file_path)},
            )

        if not isinstance(raw_data, dict) or not isinstance(raw_data.get("data"), dict):
            raise StateError(
                code="invalid_format",
                message="State file does not contain a data object",
                details={"file_path": str(self._file_path)},
            )

        stored_hmac = raw_data.get("hmac", "")
        computed_hmac = self.compute_hmac({
            "version": raw_data.get("version"),
            "data": raw_data["data"],
            "updated_at": raw_data.get("updated_at"),
        })

        if not hmac.compare_digest(str(stored_hmac), computed_hmac):
            raise TamperingError(
                code="hmac_mismatch",
                message="HMAC validation failed - state may have been tampered with",
                details={"file_path": str(self._file_path)},
            )

        self._data = {str(k): str(v) for k, v in raw_data["data"].items()}
        return self._data

    def _save(self, data: dict[str, str]) -> None:
        """
        Write the map to disk with a fresh HMAC.

        Raises:
            StateError: If the file cannot be written
        """
        now = datetime.now(timezone.utc).isoformat()
        signed = {
            "version": self.VERSION,
            "data": data,
            "updated_at": now,
        }
        output = dict(signed, hmac=self.compute_hmac(signed))

        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._file_path, "w", encoding="utf-8") as f:
                json.dump(output, f, indent=2, sort_keys=True)
        except OSError as e:
            raise StateError(
                code="io_error",
                message=f"Failed to write state file: {e}",
                details={"file_path": str(self._file_path)},
            )

        self._data = data

    def compute_hmac(self, data: dict) -> str:
        """Compute HMAC-SHA256 over the canonical JSON serialization."""
        serialized = json.dumps(data, sort_keys=True, separators=(",", ":"))
        return hmac.new(
            self._hmac_secret,
            serialized.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()
