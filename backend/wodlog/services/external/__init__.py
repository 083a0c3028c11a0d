"""
External Services - Integration with the whiteboard extraction endpoint.
"""
from wodlog.services.external.extraction import (
    ExtractionServiceError,
    ExtractionServiceInterface,
    ExtractionServiceUnavailable,
    HttpExtractionService,
    get_extraction_service,
)

__all__ = [
    "ExtractionServiceError",
    "ExtractionServiceInterface",
    "ExtractionServiceUnavailable",
    "HttpExtractionService",
    "get_extraction_service",
]
