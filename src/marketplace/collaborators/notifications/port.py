"""Notification port: abstract interface for user-facing notices."""

from abc import ABC, abstractmethod


class NotifierPort(ABC):
    @abstractmethod
    def send(self, recipient_id: str, kind: str, payload: dict) -> dict:
        """Deliver one notification.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...
