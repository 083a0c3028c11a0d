"""
Structured logging configuration.
Designed for easy debugging without exposing user images or credentials.
"""
import logging
import sys
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Generator, Iterable, Optional

import structlog
from structlog.types import Processor

from wodlog.core.config import settings


def setup_logging() -> None:
    """Configure structured logging for the application."""

    # Common processors
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.LOG_FORMAT == "json":
        # JSON format for production
        renderer = structlog.processors.JSONRenderer()
    else:
        # Console format for development
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Configure root logger
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper()))

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def _truncate_content(content: str, max_length: int = 0) -> str:
    """Truncate content if max_length is set."""
    if max_length <= 0:
        return content
    if len(content) <= max_length:
        return content
    return content[:max_length] + f"... [truncated, total {len(content)} chars]"


def log_validation_warnings(
    logger: structlog.stdlib.BoundLogger,
    workout_id: str,
    warnings: Iterable[Any],
) -> None:
    """
    Log soft validation warnings produced while normalizing a workout.

    Warnings never block persistence; they are surfaced so that a bad
    extraction can be spotted in the logs.
    """
    for warning in warnings:
        logger.warning(
            "Workout validation warning",
            workout_id=workout_id,
            field=getattr(warning, "field", None),
            severity=getattr(warning, "severity", None),
            message=getattr(warning, "message", str(warning)),
        )


# ========================================
# Extraction Call Logging
# ========================================

@dataclass
class ExtractionCallLog:
    """Complete log entry for a whiteboard extraction call."""
    call_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    endpoint: str = ""

    # Request info (image size only, never the image itself)
    image_chars: int = 0
    mime_type: Optional[str] = None

    # Response info
    response_content: str = ""
    response_content_length: int = 0
    confidence: Optional[float] = None

    # Timing
    start_time: float = 0.0
    end_time: float = 0.0
    duration_ms: float = 0.0

    # Status
    success: bool = True
    error_type: Optional[str] = None
    error_message: Optional[str] = None


class ExtractionDebugLogger:
    """
    Tracks calls to the whiteboard extraction service.

    Usage:
        debug_logger = ExtractionDebugLogger(logger)
        with debug_logger.track_call(url) as call:
            call.set_request(image_base64)
            # ... make HTTP call ...
            call.set_response(response.text, confidence)
    """

    def __init__(self, logger: structlog.stdlib.BoundLogger):
        self.logger = logger
        self.enabled = settings.EXTRACTION_DEBUG_LOG
        self.max_length = settings.EXTRACTION_DEBUG_LOG_MAX_LENGTH

    @contextmanager
    def track_call(self, endpoint: str) -> Generator["ExtractionCallTracker", None, None]:
        """Context manager for tracking an extraction call."""
        tracker = ExtractionCallTracker(
            logger=self.logger,
            enabled=self.enabled,
            max_length=self.max_length,
            endpoint=endpoint,
        )
        tracker.start()
        try:
            yield tracker
        except Exception as e:
            tracker.set_error(type(e).__name__, str(e))
            raise
        finally:
            tracker.finish()


class ExtractionCallTracker:
    """Tracker for a single extraction call."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger,
        enabled: bool,
        max_length: int,
        endpoint: str,
    ):
        self.logger = logger
        self.enabled = enabled
        self.max_length = max_length
        self.log = ExtractionCallLog(endpoint=endpoint)

    def start(self) -> None:
        """Mark the start of the call."""
        self.log.start_time = time.time()

        if self.enabled:
            self.logger.debug(
                "Extraction call started",
                call_id=self.log.call_id,
                endpoint=self.log.endpoint,
            )

    def set_request(self, image_base64: str, mime_type: Optional[str] = None) -> None:
        """Record request size."""
        self.log.image_chars = len(image_base64)
        self.log.mime_type = mime_type

    def set_response(self, content: str, confidence: Optional[float] = None) -> None:
        """Set response data."""
        self.log.response_content = content
        self.log.response_content_length = len(content)
        self.log.confidence = confidence
        self.log.success = True

        if self.enabled:
            self.logger.debug(
                "Extraction response content",
                call_id=self.log.call_id,
                content_length=self.log.response_content_length,
                content=_truncate_content(content, self.max_length),
            )

    def set_error(self, error_type: str, error_message: str) -> None:
        """Set error information."""
        self.log.success = False
        self.log.error_type = error_type
        self.log.error_message = error_message

    def finish(self) -> None:
        """Mark the end of the call and log summary."""
        self.log.end_time = time.time()
        self.log.duration_ms = (self.log.end_time - self.log.start_time) * 1000

        if self.log.success:
            self.logger.info(
                "Extraction call completed",
                call_id=self.log.call_id,
                endpoint=self.log.endpoint,
                duration_ms=round(self.log.duration_ms, 2),
                image_chars=self.log.image_chars,
                mime_type=self.log.mime_type,
                response_chars=self.log.response_content_length,
                confidence=self.log.confidence,
            )
        else:
            self.logger.error(
                "Extraction call failed",
                call_id=self.log.call_id,
                endpoint=self.log.endpoint,
                duration_ms=round(self.log.duration_ms, 2),
                error_type=self.log.error_type,
                error_message=self.log.error_message,
            )

    def get_summary(self) -> dict:
        """Get a summary of the call for external use."""
        return {
            "call_id": self.log.call_id,
            "endpoint": self.log.endpoint,
            "duration_ms": round(self.log.duration_ms, 2),
            "success": self.log.success,
            "confidence": self.log.confidence,
        }
