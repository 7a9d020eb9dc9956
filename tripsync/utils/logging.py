"""Structured logging for queue drains."""

import logging
from typing import Any

logger = logging.getLogger(__name__)


class SyncLogger:
    """Interface for structured sync logging."""

    def log_item(
        self,
        index: int,
        action: str,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        """Log the outcome of one queued item."""
        pass

    def log_drain(self, processed: int, errors: int, retained: int, latency_ms: float) -> None:
        """Log the summary of one drain."""
        pass


class StructuredSyncLogger(SyncLogger):
    """Structured logger for queue drains."""

    def log_item(
        self,
        index: int,
        action: str,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        """Log one queued item with structured data."""
        log_data: dict[str, Any] = {
            "index": index,
            "action": action,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Sync item: {action} - {outcome}"

        if outcome in ("success", "skipped"):
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})

    def log_drain(self, processed: int, errors: int, retained: int, latency_ms: float) -> None:
        """Log the drain summary with structured data."""
        log_data: dict[str, Any] = {
            "processed": processed,
            "errors": errors,
            "retained": retained,
            "latency_ms": round(latency_ms, 2),
        }

        if errors:
            logger.warning(
                f"Sync drain: {errors} error(s), {retained} item(s) kept for retry",
                extra={"structured": log_data},
            )
        else:
            logger.info(f"Sync drain: {processed} item(s) applied", extra={"structured": log_data})
