"""
Notification port.

Routers hand a Notification to the configured Notifier and move on; delivery
is best-effort and never fails the request that triggered it.

  log    - writes the notification to the application log (development)
  kafka  - publishes JSON to the notifications topic; a downstream mailer
           renders and sends the email
"""
import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Optional, Protocol

from aiokafka import AIOKafkaProducer

from connection_api.config import settings
from connection_api.telemetry import NOTIFICATION_FAILURES_TOTAL

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    kind: str            # 'new_follower' | 'microblog_liked'
    recipient_id: str
    subject: str
    body: str
    data: dict = field(default_factory=dict)


class Notifier(Protocol):
    async def send(self, notification: Notification) -> None: ...


class LogNotifier:
    async def send(self, notification: Notification) -> None:
        logger.info(
            "Notification [%s] → %s: %s",
            notification.kind, notification.recipient_id, notification.subject,
        )


class KafkaNotifier:
    def __init__(self) -> None:
        self._producer: Optional[AIOKafkaProducer] = None

    async def start(self) -> None:
        self._producer = AIOKafkaProducer(
            bootstrap_servers=settings.kafka_bootstrap_servers,
            value_serializer=lambda v: json.dumps(v).encode("utf-8"),
            acks="all",
            enable_idempotence=True,
        )
        await self._producer.start()
        logger.info("Kafka notifier started → %s", settings.kafka_bootstrap_servers)

    async def stop(self) -> None:
        if self._producer:
            await self._producer.stop()

    async def send(self, notification: Notification) -> None:
        if self._producer is None:
            raise RuntimeError("Kafka notifier not started")
        await self._producer.send_and_wait(
            settings.kafka_topic_notifications, asdict(notification)
        )
        logger.debug("Published %s notification for %s", notification.kind, notification.recipient_id)


async def notify(notifier: Notifier, notification: Notification) -> None:
    """Deliver best-effort: failures are logged and counted, never raised."""
    try:
        await notifier.send(notification)
    except Exception as exc:
        NOTIFICATION_FAILURES_TOTAL.inc()
        logger.warning(
            "Notification %s to %s failed: %s",
            notification.kind, notification.recipient_id, exc,
        )


def new_follower(recipient_id: str, follower_username: str) -> Notification:
    return Notification(
        kind="new_follower",
        recipient_id=recipient_id,
        subject=f"{follower_username} started following you",
        body=f"{follower_username} is now following you on The Connection.",
        data={"follower": follower_username},
    )


def microblog_liked(recipient_id: str, liker_username: str, microblog_id: str) -> Notification:
    return Notification(
        kind="microblog_liked",
        recipient_id=recipient_id,
        subject=f"{liker_username} liked your post",
        body=f"{liker_username} liked one of your posts on The Connection.",
        data={"liker": liker_username, "microblog_id": microblog_id},
    )
