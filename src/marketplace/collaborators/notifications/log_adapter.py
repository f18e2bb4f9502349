"""Notifier that writes each notification to the structured log."""

from uuid import uuid4

import structlog

from marketplace.collaborators.notifications.port import NotifierPort

logger = structlog.get_logger(__name__)


class LogNotifier(NotifierPort):
    def send(self, recipient_id: str, kind: str, payload: dict) -> dict:
        message_id = f"note-{uuid4().hex[:12]}"
        logger.info("Notification sent", recipient_id=recipient_id, kind=kind, message_id=message_id, **payload)
        return {"message_id": message_id, "status": "sent"}
