from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import pytest

from missionloc import consumer as consumer_module
from missionloc.config import ConsumerConfig
from missionloc.consumer import LocationUpdateConsumer
from missionloc.exceptions import BusError
from missionloc.ingestion.pipeline import ProcessingOutcome
from missionloc.models.envelope import EventMetadata, InboundMessage, MessageEnvelope
from missionloc.models.mission import Mission, MissionStatus
from missionloc.repository import InMemoryMissionRepository

_KEY = "incident-9:responder-3"


def _update(status: str = "MOVING") -> bytes:
    return json.dumps(
        {
            "responderId": "responder-3",
            "missionId": "mission-7",
            "incidentId": "incident-9",
            "status": status,
            "lat": 34.17012,
            "lon": -77.948213,
            "human": False,
            "continue": True,
        }
    ).encode()


class _Acks:
    def __init__(self) -> None:
        self.count = 0

    def __call__(self) -> None:
        self.count += 1


def _message(acks: _Acks, status: str = "MOVING") -> InboundMessage:
    metadata = EventMetadata(
        id="event-1",
        source="responder-simulator",
        type="ResponderLocationUpdatedEvent",
        specversion="1.0",
        datacontenttype="application/json",
    )
    return InboundMessage(MessageEnvelope(metadata=metadata, payload=_update(status), topic="t"), acks)


class _RecordingSink:
    def __init__(self) -> None:
        self.events: list[tuple[str, str]] = []

    async def mission_picked_up(self, mission: Mission) -> None:
        self.events.append(("picked_up", mission.key))

    async def mission_completed(self, mission: Mission) -> None:
        self.events.append(("completed", mission.key))


class _GatedRepository(InMemoryMissionRepository):
    """Blocks every ``get`` until the gate opens."""

    def __init__(self, missions: list[Mission]) -> None:
        super().__init__(missions)
        self.gate = asyncio.Event()

    async def get(self, key: str) -> Mission | None:
        await self.gate.wait()
        return await super().get(key)


class _FakeRuntime:
    instances: list[_FakeRuntime] = []

    def __init__(self, *, loop: asyncio.AbstractEventLoop, on_message: Any, logger: Any = None) -> None:
        self.loop = loop
        self.on_message = on_message
        self.started_with: ConsumerConfig | None = None
        self.stopped = False
        _FakeRuntime.instances.append(self)

    @property
    def is_running(self) -> bool:
        return self.started_with is not None and not self.stopped

    def start(self, config: ConsumerConfig) -> None:
        self.started_with = config

    def stop(self) -> None:
        self.stopped = True

    def publish(self, topic: str, payload: bytes, *, qos: int, content_type: str | None = None) -> Any:
        raise BusError("not connected")


def _mission() -> Mission:
    return Mission(id="m-1", incident_id="incident-9", responder_id="responder-3")


@pytest.fixture
def fake_runtime(monkeypatch: pytest.MonkeyPatch) -> type[_FakeRuntime]:
    _FakeRuntime.instances = []
    monkeypatch.setattr(consumer_module, "MqttConsumerRuntime", _FakeRuntime)
    return _FakeRuntime


@pytest.mark.asyncio
async def test_lifecycle_starts_and_stops_runtime(fake_runtime: type[_FakeRuntime]) -> None:
    config = ConsumerConfig(mqtt_shared_group="missionloc")
    consumer = LocationUpdateConsumer(config, InMemoryMissionRepository(), sink=_RecordingSink())

    async with consumer:
        [runtime] = fake_runtime.instances
        assert runtime.started_with is config
        assert runtime.on_message == consumer.dispatch

    assert runtime.stopped


@pytest.mark.asyncio
async def test_dispatched_message_is_processed_and_acked(fake_runtime: type[_FakeRuntime]) -> None:
    repository = InMemoryMissionRepository([_mission()])
    sink = _RecordingSink()
    acks = _Acks()

    async with LocationUpdateConsumer(ConsumerConfig(), repository, sink=sink) as consumer:
        task = consumer.dispatch(_message(acks, status="PICKEDUP"))
        assert task is not None
        outcome = await task

    assert outcome is ProcessingOutcome.APPLIED
    assert acks.count == 1
    assert sink.events == [("picked_up", _KEY)]
    stored = await repository.get(_KEY)
    assert stored is not None
    assert stored.status is MissionStatus.UPDATED
    assert len(stored.responder_location_history) == 1


@pytest.mark.asyncio
async def test_default_sink_failure_still_acks(fake_runtime: type[_FakeRuntime]) -> None:
    repository = InMemoryMissionRepository([_mission()])
    acks = _Acks()

    async with LocationUpdateConsumer(ConsumerConfig(), repository) as consumer:
        task = consumer.dispatch(_message(acks, status="DROPPED"))
        assert task is not None
        outcome = await task

    assert outcome is ProcessingOutcome.FAILED
    assert acks.count == 1
    stored = await repository.get(_KEY)
    assert stored is not None
    assert stored.responder_location_history == []


@pytest.mark.asyncio
async def test_stop_drains_in_flight_messages(fake_runtime: type[_FakeRuntime]) -> None:
    repository = _GatedRepository([_mission()])
    acks = _Acks()
    consumer = LocationUpdateConsumer(ConsumerConfig(), repository, sink=_RecordingSink())
    await consumer.start()

    consumer.dispatch(_message(acks))
    consumer.dispatch(_message(acks))
    await asyncio.sleep(0)
    assert consumer.in_flight == 2

    stopping = asyncio.create_task(consumer.stop())
    await asyncio.sleep(0)
    assert not stopping.done()
    assert acks.count == 0

    repository.gate.set()
    await stopping

    assert acks.count == 2
    assert consumer.in_flight == 0
    assert fake_runtime.instances[0].stopped


@pytest.mark.asyncio
async def test_message_arriving_during_stop_is_left_unacked(fake_runtime: type[_FakeRuntime]) -> None:
    repository = _GatedRepository([_mission()])
    consumer = LocationUpdateConsumer(ConsumerConfig(), repository, sink=_RecordingSink())
    await consumer.start()
    early = _Acks()
    late = _Acks()

    consumer.dispatch(_message(early))
    await asyncio.sleep(0)
    stopping = asyncio.create_task(consumer.stop())
    await asyncio.sleep(0)

    assert consumer.dispatch(_message(late)) is None

    repository.gate.set()
    await stopping

    assert early.count == 1
    assert late.count == 0
    assert consumer.in_flight == 0


@pytest.mark.asyncio
async def test_dispatch_when_stopped_leaves_message_unacked(caplog: pytest.LogCaptureFixture) -> None:
    consumer = LocationUpdateConsumer(ConsumerConfig(), InMemoryMissionRepository(), sink=_RecordingSink())
    acks = _Acks()

    with caplog.at_level(logging.WARNING):
        assert consumer.dispatch(_message(acks)) is None

    assert acks.count == 0
    assert "Consumer not running" in caplog.text


@pytest.mark.asyncio
async def test_failed_start_leaves_consumer_stopped() -> None:
    config = ConsumerConfig(mqtt_host="127.0.0.1", mqtt_port=1)
    consumer = LocationUpdateConsumer(config, InMemoryMissionRepository(), sink=_RecordingSink())

    with pytest.raises(BusError):
        await consumer.start()

    assert consumer.dispatch(_message(_Acks())) is None
