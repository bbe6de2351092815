"""
Tests for sync event delivery and the periodic processing task.
"""

import pytest

from grc_sync.core.config import SyncSettings
from grc_sync.core.enums import SyncEventStatus
from grc_sync.core.exceptions import ServiceError
from grc_sync.infrastructure.db.models.orchestration import SyncEventCreate
from grc_sync.services import build_sync_services
from grc_sync.services.factory import import_handler
from grc_sync.services.sync_event_consumer import NO_HANDLER, SyncEventConsumer
from grc_sync.tasks.sync_tasks import process_pending_for_orgs
from tests.helpers import DELIVERED, ORG_ID, OTHER_ORG_ID, record_delivery


async def enqueue(orchestration, org_id=ORG_ID, targets=("governance", "risk_appetite"), max_retries=3):
    return await orchestration.create_sync_event(
        SyncEventCreate(
            org_id=org_id,
            event_type="controls_UPDATE",
            source_module="controls_kri",
            target_modules=list(targets),
            entity_type="controls",
            entity_id="ctrl-1",
            max_retries=max_retries,
        )
    )


class Recorder:
    """Module handler recording what it was given."""

    def __init__(self, error: Exception = None):
        self.error = error
        self.seen = []

    async def __call__(self, sync_event):
        self.seen.append(sync_event.id)
        if self.error:
            raise self.error


def fail_on_call(monkeypatch, orchestration, call_number):
    """Make the n-th status update raise, leaving the others untouched."""
    original = orchestration.update_sync_event_status
    calls = []

    async def flaky(*args, **kwargs):
        calls.append(args)
        if len(calls) == call_number:
            raise RuntimeError("db hiccup")
        return await original(*args, **kwargs)

    monkeypatch.setattr(orchestration, "update_sync_event_status", flaky)


def register_all(consumer):
    for module in ("governance", "risk_appetite"):
        consumer.register(module, Recorder())


class TestSyncEventConsumer:

    @pytest.mark.asyncio
    async def test_all_modules_delivered(self, consumer, orchestration):
        governance, risk = Recorder(), Recorder()
        consumer.register("governance", governance)
        consumer.register("risk_appetite", risk)
        event = await enqueue(orchestration)

        report = await consumer.process_event(event)

        assert report.status == SyncEventStatus.COMPLETED
        assert report.delivered == ["governance", "risk_appetite"]
        assert report.failed == {}
        assert governance.seen == risk.seen == [event.id]

        stored = await orchestration.get_sync_event(event.id)
        assert stored.sync_status == SyncEventStatus.COMPLETED
        assert stored.processed_at is not None

    @pytest.mark.asyncio
    async def test_event_without_handlers_is_not_completed(self, consumer, orchestration):
        event = await enqueue(orchestration)

        report = await consumer.process_event(event)

        assert report.status == SyncEventStatus.PENDING
        assert report.retry_count == 1
        assert report.failed == {"governance": NO_HANDLER, "risk_appetite": NO_HANDLER}
        stored = await orchestration.get_sync_event(event.id)
        assert stored.sync_status == SyncEventStatus.PENDING
        assert stored.processed_at is None

    @pytest.mark.asyncio
    async def test_module_without_handler_makes_delivery_partial(self, consumer, orchestration):
        consumer.register("governance", Recorder())
        event = await enqueue(orchestration)

        report = await consumer.process_event(event)

        assert report.status == SyncEventStatus.PARTIAL
        assert report.delivered == ["governance"]
        assert report.failed == {"risk_appetite": NO_HANDLER}

    @pytest.mark.asyncio
    async def test_partial_delivery(self, consumer, orchestration):
        consumer.register("governance", Recorder())
        consumer.register("risk_appetite", Recorder(RuntimeError("appetite service down")))
        event = await enqueue(orchestration)

        report = await consumer.process_event(event)

        assert report.status == SyncEventStatus.PARTIAL
        assert report.failed == {"risk_appetite": "appetite service down"}
        stored = await orchestration.get_sync_event(event.id)
        assert stored.sync_status == SyncEventStatus.PARTIAL
        assert stored.error_details == {"failed_modules": {"risk_appetite": "appetite service down"}}

    @pytest.mark.asyncio
    async def test_failed_delivery_is_retried_then_fails(self, consumer, orchestration):
        consumer.register("governance", Recorder(RuntimeError("down")))
        event = await enqueue(orchestration, targets=["governance"], max_retries=2)

        first = await consumer.process_event(await orchestration.get_sync_event(event.id))
        assert first.status == SyncEventStatus.PENDING
        assert first.retry_count == 1

        second = await consumer.process_event(await orchestration.get_sync_event(event.id))
        assert second.status == SyncEventStatus.FAILED
        assert second.retry_count == 2

        stored = await orchestration.get_sync_event(event.id)
        assert stored.sync_status == SyncEventStatus.FAILED
        assert stored.processed_at is None

    @pytest.mark.asyncio
    async def test_failed_status_write_puts_event_back_to_pending(self, consumer, orchestration, monkeypatch):
        register_all(consumer)
        event = await enqueue(orchestration)
        fail_on_call(monkeypatch, orchestration, 2)

        report = await consumer.process_event(event)

        assert report.status == SyncEventStatus.PENDING
        assert report.retry_count == 1
        stored = await orchestration.get_sync_event(event.id)
        assert stored.sync_status == SyncEventStatus.PENDING
        assert stored.error_details == {"last_error": "db hiccup"}

        monkeypatch.undo()
        reports = await consumer.process_pending(ORG_ID)
        assert [r.status for r in reports] == [SyncEventStatus.COMPLETED]

    @pytest.mark.asyncio
    async def test_failed_status_write_after_retry_counts_once(self, consumer, orchestration, monkeypatch):
        consumer.register("governance", Recorder(RuntimeError("down")))
        event = await enqueue(orchestration, targets=["governance"], max_retries=1)
        fail_on_call(monkeypatch, orchestration, 2)

        report = await consumer.process_event(event)

        assert report.status == SyncEventStatus.FAILED
        assert report.retry_count == 1
        stored = await orchestration.get_sync_event(event.id)
        assert stored.sync_status == SyncEventStatus.FAILED
        assert stored.retry_count == 1

    @pytest.mark.asyncio
    async def test_non_pending_event_is_skipped(self, consumer, orchestration):
        event = await enqueue(orchestration)
        completed = await orchestration.update_sync_event_status(event.id, SyncEventStatus.COMPLETED)

        assert await consumer.process_event(completed) is None

    @pytest.mark.asyncio
    async def test_unregister(self, consumer):
        consumer.register("governance", Recorder())
        assert consumer.unregister("governance")
        assert not consumer.unregister("governance")

    @pytest.mark.asyncio
    async def test_process_pending_respects_org_and_limit(self, consumer, orchestration):
        register_all(consumer)
        first = await enqueue(orchestration)
        await enqueue(orchestration)
        await enqueue(orchestration, org_id=OTHER_ORG_ID)

        reports = await consumer.process_pending(ORG_ID, limit=1)
        assert [r.event_id for r in reports] == [first.id]
        assert await orchestration.count_sync_events(ORG_ID, SyncEventStatus.PENDING) == 1

        await consumer.process_pending(ORG_ID)
        assert await orchestration.count_sync_events(ORG_ID, SyncEventStatus.PENDING) == 0
        assert await orchestration.count_sync_events(OTHER_ORG_ID, SyncEventStatus.PENDING) == 1

    @pytest.mark.asyncio
    async def test_default_batch_size(self, orchestration):
        assert SyncEventConsumer(orchestration, batch_size=7).batch_size == 7
        assert SyncEventConsumer(orchestration).batch_size == 50

    @pytest.mark.asyncio
    async def test_report_to_dict(self, consumer, orchestration):
        register_all(consumer)
        event = await enqueue(orchestration)
        report = await consumer.process_event(event)

        assert report.to_dict() == {
            "event_id": str(event.id),
            "status": "completed",
            "delivered": ["governance", "risk_appetite"],
            "failed": {},
            "retry_count": 0,
        }


class TestHandlerWiring:

    @pytest.mark.asyncio
    async def test_configured_handlers_are_registered(self, database, change_feed):
        services = build_sync_services(
            database, change_feed, module_handlers={"governance": "tests.helpers:record_delivery"}
        )
        event = await enqueue(services.orchestration, targets=["governance"])

        report = await services.consumer.process_event(event)

        assert services.consumer.handlers == {"governance": record_delivery}
        assert report.status == SyncEventStatus.COMPLETED
        assert event.id in DELIVERED

    @pytest.mark.asyncio
    async def test_default_wiring_leaves_events_pending(self, services):
        event = await enqueue(services.orchestration, targets=["governance"])

        reports = await services.consumer.process_pending(ORG_ID)

        assert services.consumer.handlers == {}
        assert [r.status for r in reports] == [SyncEventStatus.PENDING]
        assert reports[0].failed == {"governance": NO_HANDLER}

    def test_handlers_from_settings(self, monkeypatch):
        monkeypatch.setenv("SYNC_MODULE_HANDLERS", '{"governance": "tests.helpers:record_delivery"}')
        assert SyncSettings().module_handlers == {"governance": "tests.helpers:record_delivery"}

    @pytest.mark.parametrize("path", [
        "tests.helpers",
        "tests.helpers:missing",
        "tests.nowhere:record_delivery",
        "tests.helpers:ORG_ID",
    ])
    def test_bad_handler_path(self, path):
        with pytest.raises(ServiceError):
            import_handler(path)


class TestProcessPendingTask:

    @pytest.mark.asyncio
    async def test_processes_each_org(self, consumer, orchestration):
        register_all(consumer)
        await enqueue(orchestration)
        await enqueue(orchestration, org_id=OTHER_ORG_ID)
        await enqueue(orchestration, org_id=OTHER_ORG_ID)

        result = await process_pending_for_orgs(consumer, [ORG_ID, OTHER_ORG_ID], limit=10)

        assert len(result[ORG_ID]) == 1
        assert [report["status"] for report in result[OTHER_ORG_ID]] == ["completed", "completed"]

    @pytest.mark.asyncio
    async def test_failing_org_does_not_stop_the_others(self, consumer, orchestration):
        register_all(consumer)
        await enqueue(orchestration, org_id=OTHER_ORG_ID)
        original = consumer.process_pending

        async def flaky(org_id, limit=None):
            if org_id == ORG_ID:
                raise RuntimeError("database unavailable")
            return await original(org_id, limit=limit)

        consumer.process_pending = flaky
        result = await process_pending_for_orgs(consumer, [ORG_ID, OTHER_ORG_ID])

        assert result[ORG_ID] == []
        assert len(result[OTHER_ORG_ID]) == 1
