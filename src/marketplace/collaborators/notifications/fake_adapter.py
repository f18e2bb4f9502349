"""Fake notifier: records notifications in memory for test assertions."""

from uuid import uuid4

from marketplace.collaborators.notifications.port import NotifierPort


class FakeNotifier(NotifierPort):
    def __init__(self):
        self.sent: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Notification delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Notification delivery failed"):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def send(self, recipient_id: str, kind: str, payload: dict) -> dict:
        if not self.should_succeed:
            raise RuntimeError(self.failure_reason)

        message_id = f"note-{uuid4().hex[:12]}"
        self.sent.append({"message_id": message_id, "recipient_id": recipient_id, "kind": kind, "payload": payload})
        return {"message_id": message_id, "status": "sent"}

    def kinds(self) -> list[str]:
        return [record["kind"] for record in self.sent]

    def reset(self):
        self.sent.clear()
        self.should_succeed = True
