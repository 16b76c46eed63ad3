"""
Kafka producer and consumer for the attendance notification service.

The producer publishes EventEnvelope messages; the consumer dispatches
incoming messages to handlers registered per topic. Handlers may be plain
functions or coroutines.
"""

import asyncio
import inspect
import json
from collections.abc import Callable
from typing import Any, Optional

from aiokafka import AIOKafkaConsumer, AIOKafkaProducer
from aiokafka.errors import KafkaError

from timetracker.core.config import settings
from timetracker.core.events import EventEnvelope
from timetracker.core.logging import get_logger

logger = get_logger(__name__)

Handler = Callable[[dict[str, Any]], Any]


class KafkaProducer:
    _producer: Optional[AIOKafkaProducer] = None
    _started: bool = False

    @classmethod
    async def start(cls) -> None:
        if not settings.KAFKA_ENABLED:
            logger.info("Kafka is disabled, producer not started")
            return
        if cls._started:
            return
        cls._producer = AIOKafkaProducer(
            bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
            value_serializer=lambda v: json.dumps(v).encode("utf-8"),
            key_serializer=lambda k: k.encode("utf-8") if k else None,
        )
        try:
            await cls._producer.start()
            cls._started = True
        except KafkaError as e:
            logger.error(f"Failed to start Kafka producer: {e}")
            cls._producer = None

    @classmethod
    async def stop(cls) -> None:
        if cls._producer is not None:
            await cls._producer.stop()
        cls._producer = None
        cls._started = False

    @classmethod
    async def send(cls, topic: str, value: dict[str, Any], key: str | None = None):
        if not cls._started or cls._producer is None:
            logger.debug(f"Kafka producer not started, dropping message for {topic}")
            return
        await cls._producer.send_and_wait(topic, value=value, key=key)


class KafkaConsumer:
    _consumer: Optional[AIOKafkaConsumer] = None
    _task: Optional[asyncio.Task] = None
    _handlers: dict[str, list[Handler]] = {}

    @classmethod
    def register_handler(cls, topic: str, handler: Handler) -> None:
        cls._handlers.setdefault(topic, []).append(handler)
        logger.info(f"Registered handler {handler.__name__} for topic {topic}")

    @classmethod
    async def start(cls) -> None:
        if not settings.KAFKA_ENABLED or not cls._handlers:
            logger.info("Kafka consumer not started (disabled or no handlers)")
            return
        cls._consumer = AIOKafkaConsumer(
            *cls._handlers.keys(),
            bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
            group_id=settings.KAFKA_CONSUMER_GROUP,
            value_deserializer=lambda v: json.loads(v.decode("utf-8")),
            auto_offset_reset="earliest",
        )
        try:
            await cls._consumer.start()
        except KafkaError as e:
            logger.error(f"Failed to start Kafka consumer: {e}")
            cls._consumer = None
            return
        cls._task = asyncio.create_task(cls._consume())

    @classmethod
    async def stop(cls) -> None:
        if cls._task is not None:
            cls._task.cancel()
            try:
                await cls._task
            except asyncio.CancelledError:
                pass
            cls._task = None
        if cls._consumer is not None:
            await cls._consumer.stop()
            cls._consumer = None

    @classmethod
    async def dispatch(cls, topic: str, value: dict[str, Any]) -> None:
        for handler in cls._handlers.get(topic, []):
            try:
                result = handler(value)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    f"Handler {handler.__name__} failed for topic {topic}: {e}",
                    exc_info=True,
                )

    @classmethod
    async def _consume(cls) -> None:
        async for message in cls._consumer:
            await cls.dispatch(message.topic, message.value)


async def publish_event(topic: str, event: EventEnvelope) -> None:
    """Publish an event envelope, keyed by event type."""
    await KafkaProducer.send(
        topic, value=event.model_dump(mode="json"), key=event.event_type.value
    )
