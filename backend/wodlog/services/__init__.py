"""
Services module - Application business logic layer.

Modules:
- workouts: Canonical workout model, schema adapters and persistence
- analytics: Movement frequency/volume statistics
- external: Whiteboard extraction service client
"""
# Main exports for convenience
from wodlog.services.workouts import WorkoutRepository, normalize, normalize_extraction
from wodlog.services.analytics import compute_analytics
from wodlog.services.external import get_extraction_service

__all__ = [
    "WorkoutRepository",
    "normalize",
    "normalize_extraction",
    "compute_analytics",
    "get_extraction_service",
]
