"""
HTTP API tests.
"""

from uuid import uuid4

import pytest

from grc_sync.core.constants import API_PREFIX, WATCHED_TABLES
from grc_sync.core.enums import OperationType
from tests.helpers import ORG_ID, OTHER_ORG_ID, record_delivery

ORG_URL = f"{API_PREFIX}/orgs/{ORG_ID}"


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client, realtime):
        await realtime.initialize(ORG_ID)

        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["checks"]["database"] == "healthy"
        assert body["checks"]["change_feed"] == "healthy"
        assert body["checks"]["listening_orgs"] == "1"

    @pytest.mark.asyncio
    async def test_root(self, client):
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json()["health_check"] == "/health"


class TestListenerRoutes:

    @pytest.mark.asyncio
    async def test_initialize_and_cleanup(self, client):
        response = await client.post(f"{ORG_URL}/sync/initialize")
        assert response.status_code == 200
        body = response.json()
        assert body["initialized"] is True
        assert body["state"] == "ready"
        assert len(body["subscriptions"]) == len(WATCHED_TABLES)

        response = await client.get(f"{ORG_URL}/sync/listener")
        assert response.json()["initialized"] is True

        response = await client.post(f"{ORG_URL}/sync/cleanup")
        assert response.status_code == 200
        assert response.json() == {
            "org_id": ORG_ID, "initialized": False, "state": "uninitialized", "subscriptions": [],
        }


class TestSyncEventRoutes:

    @pytest.mark.asyncio
    async def test_manual_sync_and_status(self, client):
        response = await client.post(
            f"{ORG_URL}/sync/manual",
            json={"entity_type": "controls", "entity_id": "ctrl-1", "target_modules": ["governance"]},
        )
        assert response.status_code == 201
        event = response.json()
        assert event["event_type"] == "manual_sync"
        assert event["sync_status"] == "pending"

        response = await client.get(f"{ORG_URL}/sync/status")
        assert response.json() == {"total_events": 1, "pending_events": 1, "failed_events": 0, "success_rate": 0}

        response = await client.get(f"{ORG_URL}/sync-events/{event['id']}")
        assert response.status_code == 200
        assert response.json()["entity_id"] == "ctrl-1"

    @pytest.mark.asyncio
    async def test_manual_sync_requires_entity(self, client):
        response = await client.post(f"{ORG_URL}/sync/manual", json={"entity_type": "controls"})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_update_status(self, client, realtime):
        event = await realtime.trigger_manual_sync(ORG_ID, "controls", "ctrl-1", ["governance"])

        response = await client.patch(
            f"{ORG_URL}/sync-events/{event.id}/status",
            json={"sync_status": "failed", "error_details": {"governance": "timeout"}},
        )

        assert response.status_code == 200
        assert response.json()["sync_status"] == "failed"
        assert response.json()["error_details"] == {"governance": "timeout"}

        response = await client.get(f"{ORG_URL}/sync-events", params={"sync_status": "failed"})
        assert [e["id"] for e in response.json()] == [str(event.id)]

    @pytest.mark.asyncio
    async def test_event_of_another_org_is_not_found(self, client, realtime):
        event = await realtime.trigger_manual_sync(OTHER_ORG_ID, "controls", "ctrl-1", [])

        response = await client.get(f"{ORG_URL}/sync-events/{event.id}")

        assert response.status_code == 404
        assert response.json()["error"]["type"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_unknown_event(self, client):
        response = await client.patch(f"{ORG_URL}/sync-events/{uuid4()}/status", json={"sync_status": "completed"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_process_pending(self, client, realtime, consumer):
        consumer.register("governance", record_delivery)
        event = await realtime.trigger_manual_sync(ORG_ID, "controls", "ctrl-1", ["governance"])

        response = await client.post(f"{ORG_URL}/sync-events/process", params={"limit": 5})

        assert response.status_code == 200
        assert response.json() == [{
            "event_id": str(event.id),
            "status": "completed",
            "delivered": ["governance"],
            "failed": {},
            "retry_count": 0,
        }]


class TestLineageRoutes:

    @pytest.mark.asyncio
    async def test_list_and_resolve(self, client, orchestration, sample_control):
        lineage = await orchestration.record_lineage(
            ORG_ID, "controls", sample_control, OperationType.UPDATE, conflict_data={"status": "?"}
        )

        response = await client.get(f"{ORG_URL}/lineage", params={"sync_status": "conflict"})
        assert [item["id"] for item in response.json()] == [str(lineage.id)]

        response = await client.post(
            f"{ORG_URL}/lineage/{lineage.id}/resolve",
            json={"resolved_by": "user-7", "resolution": {"status": "retired"}},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["sync_status"] == "success"
        assert body["resolved_by"] == "user-7"
        assert body["conflict_data"] == {"status": "retired"}


class TestQualityRoutes:

    @pytest.mark.asyncio
    async def test_assess_list_and_summary(self, client, sample_control):
        response = await client.post(
            f"{ORG_URL}/quality-metrics/assess",
            json={"table_name": "controls", "record": {**sample_control, "status": None}},
        )
        assert response.status_code == 201
        assert response.json()["completeness_score"] == 86
        assert response.json()["record_id"] == "ctrl-1"

        response = await client.get(f"{ORG_URL}/quality-metrics", params={"table_name": "controls"})
        assert len(response.json()) == 1

        response = await client.get(f"{ORG_URL}/quality-metrics/summary")
        assert response.json()["snapshots"] == 1


class TestValidationRuleRoutes:

    RULE = {
        "rule_name": "effectiveness-range",
        "rule_type": "range",
        "target_tables": ["controls"],
        "validation_logic": {"effectiveness": {"min": 1, "max": 5}},
        "error_message": "Effectiveness must be between 1 and 5",
        "severity": "high",
    }

    @pytest.mark.asyncio
    async def test_create_validate_and_disable(self, client):
        response = await client.post(f"{ORG_URL}/validation-rules", json=self.RULE)
        assert response.status_code == 201
        rule = response.json()
        assert rule["org_id"] == ORG_ID
        assert rule["is_active"] is True

        response = await client.post(
            f"{ORG_URL}/validate", json={"table_name": "controls", "record": {"id": "c", "effectiveness": 9}}
        )
        assert response.json() == {
            "is_valid": False,
            "violations": [{
                "rule": "effectiveness-range",
                "message": "Effectiveness must be between 1 and 5",
                "severity": "high",
            }],
            "unimplemented": [],
        }

        response = await client.patch(f"{ORG_URL}/validation-rules/{rule['id']}", json={"is_active": False})
        assert response.status_code == 200
        assert response.json()["is_active"] is False

        response = await client.post(
            f"{ORG_URL}/validate", json={"table_name": "controls", "record": {"effectiveness": 9}}
        )
        assert response.json()["is_valid"] is True

        response = await client.get(f"{ORG_URL}/validation-rules", params={"is_active": False})
        assert [r["id"] for r in response.json()] == [rule["id"]]

    @pytest.mark.asyncio
    async def test_unknown_rule_type_is_rejected(self, client):
        response = await client.post(f"{ORG_URL}/validation-rules", json={**self.RULE, "rule_type": "telepathy"})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_rules_are_scoped_to_the_org(self, client):
        await client.post(f"{ORG_URL}/validation-rules", json=self.RULE)

        response = await client.get(f"{API_PREFIX}/orgs/{OTHER_ORG_ID}/validation-rules")
        assert response.json() == []
