"""Application services."""

from .orchestration import OrchestrationService, get_orchestration_service, reset_orchestration_state

__all__ = [
    "OrchestrationService",
    "get_orchestration_service",
    "reset_orchestration_state",
]
