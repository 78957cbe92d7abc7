# audit_trail/infrastructure/messaging/rabbitmq_publisher.py

import json
from typing import Any, Dict, Optional

import aio_pika

from audit_trail.application.exceptions import DispatchFailureError
from audit_trail.config.settings import get_settings

ROUTING_KEY_PREFIX = "security.alert"


class RabbitMQPublisher:
    """Security alert channel: JSON messages on a durable topic exchange, routed by severity."""

    def __init__(self, url: Optional[str] = None, exchange_name: Optional[str] = None):
        settings = get_settings()
        self._url = url or settings.rabbitmq_url
        self._exchange_name = exchange_name or settings.security_alert_exchange
        self._connection = None
        self._channel = None
        self._exchange = None

    async def connect(self):
        self._connection = await aio_pika.connect_robust(self._url)
        self._channel = await self._connection.channel()
        self._exchange = await self._channel.declare_exchange(
            self._exchange_name,
            aio_pika.ExchangeType.TOPIC,
            durable=True,
        )

    async def publish(self, subject: str, message: Dict[str, Any]) -> None:
        severity = str(message.get("severity", "unknown")).lower()
        try:
            if not self._exchange:
                await self.connect()

            msg = aio_pika.Message(
                body=json.dumps(message, indent=2).encode(),
                content_type="application/json",
                delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
                headers={"subject": subject},
            )

            await self._exchange.publish(msg, routing_key=f"{ROUTING_KEY_PREFIX}.{severity}")
        except Exception as e:
            raise DispatchFailureError(f"Security alert publish failed: {e}") from e

    async def close(self):
        if self._connection:
            await self._connection.close()
        self._connection = None
        self._channel = None
        self._exchange = None
