"""Document store abstraction and local filesystem implementation."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import PurePath
from typing import TYPE_CHECKING, Protocol

from slugify import slugify

if TYPE_CHECKING:
    from pathlib import Path


class FileStore(Protocol):
    """Protocol for uploaded bill document storage backends."""

    def save(self, user_id: str, file_name: str, data: bytes) -> str: ...

    def get_url(self, path: str) -> str: ...


class LocalFileStore:
    """Local filesystem implementation of FileStore.

    Directory layout: {root}/{user_id}/{timestamp}_{slug}{ext}
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    def save(
        self,
        user_id: str,
        file_name: str,
        data: bytes,
        *,
        uploaded_at: datetime | None = None,
    ) -> str:
        """Save the document and return its path relative to the store root."""
        uploaded_at = uploaded_at or datetime.now(tz=UTC)
        dir_path = self.root / (self._slugify(user_id) or "anonymous")
        dir_path.mkdir(parents=True, exist_ok=True)

        stamp = int(uploaded_at.timestamp() * 1000)
        stem, suffix = self._split_name(file_name)
        file_path = dir_path / f"{stamp}_{stem}{suffix}"

        # Same document uploaded twice in one millisecond
        counter = 1
        while file_path.exists():
            counter += 1
            file_path = dir_path / f"{stamp}_{stem}_{counter}{suffix}"

        file_path.write_bytes(data)
        return str(file_path.relative_to(self.root))

    def get_path(self, relative_path: str) -> Path:
        """Return the absolute path for a relative store path."""
        return self.root / relative_path

    def get_url(self, path: str) -> str:
        """Return a file:// URL for a stored document."""
        return self.get_path(path).resolve().as_uri()

    def exists(self, relative_path: str) -> bool:
        """Check whether a document exists in the store."""
        return (self.root / relative_path).exists()

    @classmethod
    def _split_name(cls, file_name: str) -> tuple[str, str]:
        """Slugify the stem of an uploaded file name, keeping its extension."""
        pure = PurePath(file_name)
        suffix = slugify(pure.suffix)
        return cls._slugify(pure.stem) or "bill", f".{suffix}" if suffix else ""

    @staticmethod
    def _slugify(value: str) -> str:
        """Convert to a filesystem-safe slug, max 50 chars."""
        return str(slugify(value, max_length=50))
