"""
Notification Service

Tells a participant that a task has been assigned to them.

Delivery is best-effort. Senders log and swallow transport failures;
the orchestrator only calls them after the ledger entry has committed.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from hackhub.config.settings import Settings
from hackhub.orm.base import isoformat_or_none
from hackhub.orm.task_assignment import AssignmentMethod

logger = logging.getLogger(__name__)

# Human-readable method labels shown to participants
METHOD_LABELS = {
    AssignmentMethod.MANUAL: "Manual",
    AssignmentMethod.RANDOM: "Random",
    AssignmentMethod.SMART: "Smart (Skill-based)",
}
REASSIGNED_LABEL = "Reassigned"


def method_label(method: Any) -> str:
    if isinstance(method, AssignmentMethod):
        return METHOD_LABELS[method]
    return str(method)


def build_task_assigned_payload(participant, task, hackathon, method: Any) -> Dict[str, Any]:
    return {
        "event": "task_assigned",
        "participant": {
            "id": participant.id,
            "email": participant.email,
            "name": participant.display_name(),
        },
        "task": {
            "id": task.id,
            "title": task.title,
            "difficulty": task.difficulty.value if task.difficulty else None,
            "points": task.points,
        },
        "hackathon": {
            "id": hackathon.id,
            "title": hackathon.title,
            "submission_deadline": isoformat_or_none(hackathon.submission_deadline),
        },
        "assignment_method": method_label(method),
    }


class NotificationSender:
    """Interface for assignment notices."""

    async def send_task_assigned_notice(self, participant, task, hackathon, method: Any) -> bool:
        raise NotImplementedError


class LoggingNotificationSender(NotificationSender):
    """Writes notices to the application log. Default when no webhook is configured."""

    async def send_task_assigned_notice(self, participant, task, hackathon, method: Any) -> bool:
        logger.info(
            f"[NOTIFY] Task '{task.title}' assigned to {participant.email} "
            f"in '{hackathon.title}' ({method_label(method)})"
        )
        return True


class WebhookNotificationSender(NotificationSender):
    """POSTs a JSON notice to an external mail/chat relay."""

    def __init__(
        self,
        url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.url = url
        self.timeout = timeout if timeout is not None else Settings.NOTIFY_TIMEOUT_SECONDS
        self.transport = transport

    async def send_task_assigned_notice(self, participant, task, hackathon, method: Any) -> bool:
        payload = build_task_assigned_payload(participant, task, hackathon, method)

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.post(self.url, json=payload)
                response.raise_for_status()
                return True
            except httpx.HTTPError as e:
                logger.error(f"Assignment notice to {participant.email} failed: {str(e)}")
                return False


def get_notification_sender() -> NotificationSender:
    if Settings.NOTIFY_WEBHOOK_URL:
        return WebhookNotificationSender(Settings.NOTIFY_WEBHOOK_URL)
    return LoggingNotificationSender()
