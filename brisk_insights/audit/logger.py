"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Complete traceability
2. Debugging capability
3. User can see history of their interactions

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from brisk_insights.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from brisk_insights.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """
    Route stdlib logging (and so structlog) to stderr at the given level.

    Call once at application startup.
    """
    logging.basicConfig(format="%(message)s", level=level.upper())


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for the activity view)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger()

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        # Always log locally
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        # Persist to storage if available
        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_signed_in(self, user_id: str, email: Optional[str]) -> None:
        """Log a successful sign in."""
        await self.log(AuditEventBuilder.user_signed_in(user_id, email))

    async def log_signed_out(self, user_id: Optional[str]) -> None:
        """Log a sign out."""
        await self.log(AuditEventBuilder.user_signed_out(user_id))

    async def log_entity_created(
        self,
        entity_type: str,
        entity_id: str,
        label: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.entity_created(
            entity_type=entity_type,
            entity_id=entity_id,
            label=label,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_entity_updated(
        self,
        entity_type: str,
        entity_id: str,
        changes: dict,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.entity_updated(
            entity_type=entity_type,
            entity_id=entity_id,
            changes=changes,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_entity_deleted(
        self,
        entity_type: str,
        entity_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.entity_deleted(
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_save_failed(
        self,
        entity_type: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a rejected or failed write."""
        event = AuditEventBuilder.save_failed(
            entity_type=entity_type,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_profile_updated(self, user_id: str, avatar_changed: bool) -> None:
        await self.log(AuditEventBuilder.profile_updated(user_id, avatar_changed))

    async def log_chat_submitted(
        self,
        turn_id: UUID,
        history_length: int,
        correlation_id: UUID,
    ) -> None:
        """Log a message sent to the assistant."""
        event = AuditEventBuilder.chat_submitted(
            turn_id=turn_id,
            history_length=history_length,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_chat_completed(
        self,
        turn_id: UUID,
        chunk_count: int,
        reply_length: int,
        correlation_id: UUID,
    ) -> None:
        """Log a fully received assistant reply."""
        event = AuditEventBuilder.chat_completed(
            turn_id=turn_id,
            chunk_count=chunk_count,
            reply_length=reply_length,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_chat_failed(
        self,
        turn_id: UUID,
        error_type: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a failed assistant cycle."""
        event = AuditEventBuilder.chat_failed(
            turn_id=turn_id,
            error_type=error_type,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a chat submission).
    Pass it through all subsequent operations.
    """
    return uuid4()
