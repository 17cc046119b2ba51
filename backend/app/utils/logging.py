"""Structured logging for change planning."""

import logging
from typing import Any

logger = logging.getLogger(__name__)

_OK_OUTCOMES = ("applied", "planned", "navigated", "undone", "expired")


class StructuredPlannerLogger:
    """Structured logger for planner and fix-application events."""

    def log_event(
        self,
        trip_id: int,
        event: str,
        outcome: str,
        *,
        change_id: str | None = None,
        generation: int | None = None,
        source: str | None = None,
        latency_ms: float | None = None,
        error_reason: str | None = None,
    ) -> None:
        """Log one orchestration event with structured data."""
        log_data: dict[str, Any] = {
            "trip_id": trip_id,
            "event": event,
            "outcome": outcome,
        }
        if change_id is not None:
            log_data["change_id"] = change_id
        if generation is not None:
            log_data["generation"] = generation
        if source is not None:
            log_data["source"] = source
        if latency_ms is not None:
            log_data["latency_ms"] = round(latency_ms, 2)
        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Change planner: {event} trip={trip_id} - {outcome}"

        if outcome in _OK_OUTCOMES:
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
