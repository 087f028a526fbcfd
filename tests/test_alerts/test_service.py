"""Tests for AlertService with a mocked dispatcher and metrics."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.alerts.config import DEFAULT_TIERS, AlertConfig
from src.alerts.dispatcher import NotificationDispatcher
from src.alerts.evaluator import ThresholdEvaluator
from src.alerts.service import AlertService
from src.ingestion.schemas import ChatMessage, ObservationSource
from tests.conftest import make_payload


@pytest.fixture
def clock():
    class Clock:
        now = 1_000.0

        def __call__(self):
            return self.now

    return Clock()


@pytest.fixture
def evaluator(clock):
    return ThresholdEvaluator(DEFAULT_TIERS, capacity=300, clock=clock)


@pytest.fixture
def mock_dispatcher():
    dispatcher = AsyncMock(spec=NotificationDispatcher)
    dispatcher.dispatch.return_value = True
    return dispatcher


@pytest.fixture
def mock_metrics():
    return MagicMock()


@pytest.fixture
def service(evaluator, mock_dispatcher, mock_metrics):
    return AlertService(
        evaluator,
        mock_dispatcher,
        config=AlertConfig(sweep_interval_seconds=0.01),
        metrics=mock_metrics,
    )


class TestOnObservation:
    @pytest.mark.asyncio
    async def test_fires_and_dispatches(self, service, mock_dispatcher):
        alerts = await service.on_observation("m1", 650, source=ObservationSource.GATEWAY)

        assert len(alerts) == 1
        assert alerts[0].tier == "primary"
        assert alerts[0].audience == "puppeteer-sofi"
        assert alerts[0].source == ObservationSource.GATEWAY
        mock_dispatcher.dispatch.assert_awaited_once_with(alerts[0])
        assert service.alerts_fired == 1

    @pytest.mark.asyncio
    async def test_none_value_is_ignored(self, service, mock_dispatcher):
        assert await service.on_observation("m1", None) == []
        mock_dispatcher.dispatch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_gateway_and_poll_duplicates_collapse(self, service, mock_dispatcher):
        await service.on_observation("m1", 650, source=ObservationSource.GATEWAY)
        again = await service.on_observation("m1", 650, source=ObservationSource.POLL)

        assert again == []
        assert mock_dispatcher.dispatch.await_count == 1

    @pytest.mark.asyncio
    async def test_dispatch_failure_keeps_fired_marker(self, service, mock_dispatcher, evaluator):
        mock_dispatcher.dispatch.return_value = False

        await service.on_observation("m1", 650)
        await service.on_observation("m1", 700)

        assert mock_dispatcher.dispatch.await_count == 1
        assert evaluator.snapshot("m1").has_fired("primary")

    @pytest.mark.asyncio
    async def test_dispatch_exception_is_contained(self, service, mock_dispatcher, mock_metrics):
        mock_dispatcher.dispatch.side_effect = RuntimeError("boom")

        alerts = await service.on_observation("m1", 650)

        assert len(alerts) == 1
        mock_metrics.record_notification.assert_called_once()
        assert mock_metrics.record_notification.call_args.args[:2] == ("puppeteer-sofi", False)

    @pytest.mark.asyncio
    async def test_evaluation_error_returns_empty(self, mock_dispatcher, mock_metrics):
        evaluator = MagicMock()
        evaluator.evaluate.side_effect = RuntimeError("broken")
        service = AlertService(evaluator, mock_dispatcher, metrics=mock_metrics)

        assert await service.on_observation("m1", 650) == []
        mock_metrics.record_observation.assert_called_once_with(ObservationSource.MANUAL, "error")

    @pytest.mark.asyncio
    async def test_records_metrics(self, service, mock_metrics):
        await service.on_observation("m1", 150, source=ObservationSource.POLL)

        mock_metrics.record_observation.assert_called_once_with(ObservationSource.POLL, "fired")
        mock_metrics.record_fired.assert_called_once_with("secondary")
        mock_metrics.set_store_size.assert_called_with(1)


class TestProcessMessage:
    @pytest.mark.asyncio
    async def test_uses_maximum_value(self, service):
        message = ChatMessage.from_payload(make_payload(labels=("120", "1.5k")))

        alerts = await service.process_message(message, ObservationSource.POLL)

        assert [a.value for a in alerts] == [1500]
        assert alerts[0].message_id == message.id

    @pytest.mark.asyncio
    async def test_message_without_hearts_is_skipped(self, service, mock_metrics):
        message = ChatMessage.from_payload(make_payload(labels=()))

        assert await service.process_message(message, ObservationSource.GATEWAY) == []
        mock_metrics.record_skipped.assert_called_once_with(ObservationSource.GATEWAY)


class TestSweep:
    def test_sweep_expires_old_state(self, service, evaluator, clock):
        evaluator.evaluate("m1", 650)
        clock.now += 901

        assert service.sweep() == ["m1"]
        assert evaluator.tracked_count() == 0

    def test_sweep_disabled(self, evaluator, mock_dispatcher, mock_metrics, clock):
        service = AlertService(
            evaluator,
            mock_dispatcher,
            config=AlertConfig(expiry_window_seconds=None),
            metrics=mock_metrics,
        )
        evaluator.evaluate("m1", 650)
        clock.now += 10_000

        assert service.sweep() == []
        assert evaluator.is_tracked("m1")

    @pytest.mark.asyncio
    async def test_sweeper_loop_stops(self, service, evaluator, clock):
        evaluator.evaluate("m1", 650)
        clock.now += 901

        task = asyncio.create_task(service.run_sweeper())
        await asyncio.sleep(0.05)
        service.stop()
        await asyncio.wait_for(task, timeout=1.0)

        assert not evaluator.is_tracked("m1")

    @pytest.mark.asyncio
    async def test_sweeper_returns_when_disabled(self, evaluator, mock_dispatcher, mock_metrics):
        service = AlertService(
            evaluator,
            mock_dispatcher,
            config=AlertConfig(expiry_window_seconds=None),
            metrics=mock_metrics,
        )
        await asyncio.wait_for(service.run_sweeper(), timeout=1.0)


class TestFromConfig:
    def test_builds_components(self, mock_metrics):
        service = AlertService.from_config(AlertConfig(store_capacity=7), metrics=mock_metrics)

        assert service.evaluator.capacity == 7
        assert isinstance(service.dispatcher, NotificationDispatcher)

    def test_removals_reach_metrics(self, mock_metrics):
        service = AlertService.from_config(AlertConfig(store_capacity=1), metrics=mock_metrics)
        service.evaluator.evaluate("m0", 50)
        service.evaluator.evaluate("m1", 50)

        mock_metrics.record_removal.assert_called_once_with("evicted")
