"""Infrastructure layer exports."""

from .orchestration_log import InMemoryOrchestrationLog, OrchestrationLogRepository

__all__ = [
    "InMemoryOrchestrationLog",
    "OrchestrationLogRepository",
]
