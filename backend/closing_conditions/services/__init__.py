"""Service layer for business logic."""

from closing_conditions.services.conditions_service import ConditionsService
from closing_conditions.services.orchestrator import ConditionsOrchestrator

__all__ = ["ConditionsOrchestrator", "ConditionsService"]
