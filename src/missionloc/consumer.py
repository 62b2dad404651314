"""Location update consumer runtime.

Wires the MQTT runtime to the :class:`UpdatePipeline`. Each inbound message
becomes its own asyncio task, so the asynchronous steps of different
messages may interleave; updates to the same mission race and the last write
wins.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from missionloc._mqtt import MqttConsumerRuntime
from missionloc.config import ConsumerConfig
from missionloc.ingestion.pipeline import UpdatePipeline
from missionloc.models.envelope import InboundMessage
from missionloc.repository import MissionRepository
from missionloc.sink import EventSink, MqttEventSink

_logger = logging.getLogger(__name__)


class LocationUpdateConsumer:
    """Consumes ``responder-location-update`` and drives the pipeline.

    Usage::

        async with LocationUpdateConsumer(config, repository) as consumer:
            await stop_event.wait()

    Without an explicit *sink*, mission events are published on the same
    MQTT connection to ``config.mission_event_topic``.
    """

    def __init__(
        self,
        config: ConsumerConfig,
        repository: MissionRepository,
        *,
        sink: EventSink | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._repository = repository
        self._sink = sink
        self._logger = logger or _logger
        self._runtime: MqttConsumerRuntime | None = None
        self._pipeline: UpdatePipeline | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._inflight: set[asyncio.Task[Any]] = set()

    @property
    def in_flight(self) -> int:
        """Number of messages currently being processed."""
        return len(self._inflight)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> LocationUpdateConsumer:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    async def start(self) -> None:
        if self._runtime is not None:
            return
        loop = asyncio.get_running_loop()
        runtime = MqttConsumerRuntime(loop=loop, on_message=self.dispatch, logger=self._logger)
        sink = self._sink or MqttEventSink(
            runtime,
            topic=self._config.mission_event_topic,
            source=self._config.event_source,
            qos=self._config.mqtt_qos,
            publish_timeout=self._config.publish_timeout,
        )
        self._loop = loop
        self._pipeline = UpdatePipeline(self._repository, sink, logger=self._logger)
        try:
            await loop.run_in_executor(None, runtime.start, self._config)
        except Exception:
            self._pipeline = None
            raise
        self._runtime = runtime
        self._logger.info("Consuming %s", self._config.subscription_topic)

    async def stop(self) -> None:
        """Drain in-flight work, then disconnect from the broker."""
        runtime = self._runtime
        self._runtime = None
        self._pipeline = None
        pending = [task for task in self._inflight if not task.done()]
        if pending:
            self._logger.debug("Draining %d in-flight message(s)", len(pending))
            await asyncio.gather(*pending, return_exceptions=True)
        if runtime is not None and self._loop is not None:
            try:
                await self._loop.run_in_executor(None, runtime.stop)
            except Exception:
                self._logger.debug("MQTT runtime stop failed", exc_info=True)

    def dispatch(self, message: InboundMessage) -> asyncio.Task[Any] | None:
        """Schedule *message* on the pipeline. Must run on the event loop thread.

        Messages arriving after shutdown began are left unacknowledged so the
        broker can redeliver them.
        """
        pipeline = self._pipeline
        if pipeline is None:
            self._logger.warning("Consumer not running, leaving %r unacknowledged", message)
            return None
        task = asyncio.get_running_loop().create_task(pipeline.process(message))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task
