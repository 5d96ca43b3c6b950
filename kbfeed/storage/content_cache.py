"""
Content Cache
=============

Writes resolved documents into the flat content directory. An existing file
with the same name is overwritten.
"""

from pathlib import Path

from ..database.models import ResolvedContent
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import CacheWriteError, ErrorCode


class ContentCache:
    """Local copy of every document sent to the knowledge base."""

    def __init__(self, content_dir: str):
        """Initialize content cache.

        Args:
            content_dir: Directory receiving cached files (no subdirectories)
        """
        self.content_dir = Path(content_dir)
        self.logger = get_logger_for_component("content_cache")

    def path_for(self, file_name: str) -> Path:
        """Cache path of a file name."""
        return self.content_dir / file_name

    def write(self, content: ResolvedContent) -> Path:
        """Write the payload to ``<content_dir>/<file_name>``.

        Returns:
            Path of the written file; its name is the upload file name

        Raises:
            CacheWriteError: On any filesystem error
        """
        path = self.path_for(content.file_name)
        try:
            with open(path, "wb") as fh:
                fh.write(content.payload)
        except PermissionError as e:
            raise CacheWriteError(
                f"Permission denied writing {path}: {e}",
                path=str(path),
                error_code=ErrorCode.SYSTEM_PERMISSION_DENIED,
            ) from e
        except OSError as e:
            raise CacheWriteError(f"Failed to write {path}: {e}", path=str(path)) from e

        self.logger.debug(f"Cached {len(content.payload)} bytes at {path}")
        return path
