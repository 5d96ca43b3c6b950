"""
kbfeed Custom Exceptions
========================

Exception hierarchy for kbfeed with error codes and context information.

Startup errors (configuration, database initialization) are fatal to the run.
Everything deriving from EntryProcessingError is scoped to a single feed
entry: the pipeline logs it and moves on to the next entry.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration errors (C001-C099)
    CONFIG_INVALID = "C001"
    CONFIG_MISSING = "C002"
    CONFIG_PARSE_ERROR = "C003"

    # Database errors (D001-D099)
    DATABASE_CONNECTION = "D001"
    DATABASE_SCHEMA = "D002"
    DATABASE_CONSTRAINT = "D003"
    DATABASE_ERROR = "D006"

    # Feed errors (F001-F099)
    FEED_NETWORK_ERROR = "F001"
    FEED_HTTP_STATUS = "F002"
    FEED_PARSE_ERROR = "F003"
    ENTRY_CONTENT_TYPE = "F004"
    ENTRY_MISSING_TIMESTAMP = "F005"
    ENTRY_MISSING_IDENTITY = "F006"

    # Content processing errors (P001-P099)
    CONTENT_CONVERSION_FAILED = "P003"

    # Local storage errors (S001-S099)
    SYSTEM_PERMISSION_DENIED = "S002"
    SYSTEM_WRITE_FAILED = "S003"

    # External service errors (E001-E099)
    EXTERNAL_SERVICE_ERROR = "E001"
    EXTERNAL_SERVICE_UNAVAILABLE = "E002"
    EXTERNAL_INVALID_RESPONSE = "E004"


class KbFeedError(Exception):
    """Base exception for all kbfeed errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
    ):
        """Initialize kbfeed error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code
            context: Additional context information
            recoverable: Whether a later run may succeed where this one failed
        """
        super().__init__(message)
        self.error_code = error_code
        self.context = context or {}
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": str(self),
            "context": self.context,
            "recoverable": self.recoverable,
        }

    @property
    def kind(self) -> str:
        """Short error kind used in run statistics."""
        return self.__class__.__name__

    def __str__(self) -> str:
        """String representation with error code."""
        if self.error_code:
            return f"[{self.error_code.value}] {super().__str__()}"
        return super().__str__()


class ConfigurationError(KbFeedError):
    """Configuration-related errors. Always fatal at startup."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if config_key:
            context["config_key"] = config_key

        super().__init__(
            message=message,
            error_code=kwargs.pop("error_code", ErrorCode.CONFIG_INVALID),
            context=context,
            **kwargs,
        )


class DatabaseError(KbFeedError):
    """Database-related errors."""

    def __init__(self, message: str, query: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if query:
            context["query"] = query

        super().__init__(
            message=message,
            error_code=kwargs.pop("error_code", ErrorCode.DATABASE_ERROR),
            context=context,
            recoverable=kwargs.pop("recoverable", True),
            **kwargs,
        )


class FeedParseError(KbFeedError):
    """A feed could not be downloaded or parsed. Skips that feed only."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if feed_url:
            context["feed_url"] = feed_url

        super().__init__(
            message=message,
            error_code=kwargs.pop("error_code", ErrorCode.FEED_PARSE_ERROR),
            context=context,
            recoverable=kwargs.pop("recoverable", True),
            **kwargs,
        )


# Per-entry exception types


class EntryProcessingError(KbFeedError):
    """Base class for errors that abandon a single feed entry."""

    def __init__(
        self,
        message: str,
        feed_id: Optional[str] = None,
        entry_guid: Optional[str] = None,
        **kwargs,
    ):
        """Initialize entry processing error.

        Args:
            message: Error message
            feed_id: Configured feed identifier
            entry_guid: GUID of the entry being processed
            **kwargs: Additional arguments for KbFeedError
        """
        context = kwargs.pop("context", {})
        if feed_id:
            context["feed_id"] = feed_id
        if entry_guid:
            context["entry_guid"] = entry_guid

        super().__init__(
            message=message,
            context=context,
            recoverable=kwargs.pop("recoverable", True),
            **kwargs,
        )


class FetchError(EntryProcessingError):
    """Linked content could not be retrieved or is not an accepted type."""

    def __init__(self, message: str, url: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if url:
            context["url"] = url
        kwargs.setdefault("error_code", ErrorCode.FEED_NETWORK_ERROR)
        super().__init__(message, context=context, **kwargs)


class ConvertError(EntryProcessingError):
    """HTML to Markdown conversion failed."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.CONTENT_CONVERSION_FAILED)
        super().__init__(message, **kwargs)


class CacheWriteError(EntryProcessingError):
    """Writing the resolved payload to the content directory failed."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if path:
            context["path"] = path
        kwargs.setdefault("error_code", ErrorCode.SYSTEM_WRITE_FAILED)
        super().__init__(message, context=context, **kwargs)


class SubmissionError(EntryProcessingError):
    """Upload or knowledge-base link call failed.

    ``stage`` is ``"upload"`` or ``"link"``; a link failure leaves the
    uploaded file on the remote service.
    """

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})
        if stage:
            context["stage"] = stage
        if status_code is not None:
            context["status_code"] = status_code
        kwargs.setdefault("error_code", ErrorCode.EXTERNAL_SERVICE_ERROR)
        super().__init__(message, context=context, **kwargs)
        self.stage = stage
        self.status_code = status_code


class DedupConflictError(EntryProcessingError):
    """An ingest record already exists for (feed_id, guid) or its hash."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.DATABASE_CONSTRAINT)
        kwargs.setdefault("recoverable", False)
        super().__init__(message, **kwargs)
