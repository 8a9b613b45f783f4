"""Integration tests for goal endpoints."""
import pytest


@pytest.mark.asyncio
class TestGoalCreate:
    """Tests for creating goals."""

    async def test_create_goal_success(self, app_client, goal_payload):
        """Test successful goal creation."""
        response = await app_client.post("/goals", json=goal_payload)

        assert response.status_code == 201
        data = response.json()
        assert data["title"] == "Run a half marathon"
        assert data["status"] == "draft"
        assert data["measurable"]["target_value"] == 21
        assert data["deleted"] is False
        assert data["created_by"] == "current-user"
        assert "id" in data
        assert "_id" not in data

    async def test_create_goal_with_token(self, app_client, goal_payload):
        """Test a bearer token sets the acting user."""
        from app.utils.auth import create_access_token

        headers = {"Authorization": f"Bearer {create_access_token('user-7')}"}
        response = await app_client.post("/goals", json=goal_payload, headers=headers)

        assert response.status_code == 201
        assert response.json()["created_by"] == "user-7"
        assert response.json()["owner_id"] == "user-7"

    async def test_create_goal_invalid_token(self, app_client, goal_payload):
        """Test an invalid token is rejected."""
        headers = {"Authorization": "Bearer not-a-token"}
        response = await app_client.post("/goals", json=goal_payload, headers=headers)

        assert response.status_code == 401
        assert response.json() == {
            "error": "Unauthorized",
            "message": "Could not validate credentials",
        }

    async def test_create_goal_missing_fields(self, app_client):
        """Test a malformed body is a 400 validation error."""
        response = await app_client.post("/goals", json={"title": "Only a title"})

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Validation Error"
        assert data["code"] == "VALIDATION_FAILED"
        assert any(detail.startswith("measurable") for detail in data["details"])

    async def test_create_goal_business_rule(self, app_client, goal_payload):
        """Test business rule failures are reported as 400."""
        goal_payload["measurable"]["target_value"] = 0

        response = await app_client.post("/goals", json=goal_payload)

        assert response.status_code == 400
        assert response.json()["details"] == ["Target value must be greater than 0"]


@pytest.mark.asyncio
class TestGoalList:
    """Tests for listing goals."""

    async def test_list_goals_empty(self, app_client):
        """Test listing goals when none exist."""
        response = await app_client.get("/goals")

        assert response.status_code == 200
        assert response.json() == {"items": [], "total": 0, "page": 1, "limit": 10, "hasMore": False}

    async def test_list_goals_pagination(self, app_client, goal_payload):
        """Test pagination envelope."""
        for i in range(3):
            await app_client.post("/goals", json={**goal_payload, "title": f"Goal number {i}"})

        response = await app_client.get("/goals", params={"page": 1, "limit": 2})

        data = response.json()
        assert data["total"] == 3
        assert len(data["items"]) == 2
        assert data["hasMore"] is True

    async def test_list_goals_limit_capped(self, app_client):
        """Test limit is capped at the maximum page size."""
        response = await app_client.get("/goals", params={"limit": 1000})

        assert response.json()["limit"] == 100

    async def test_list_goals_filters_and_sort(self, app_client, goal_payload):
        """Test filters and camelCase sort fields."""
        await app_client.post("/goals", json={**goal_payload, "title": "Alpha goal", "status": "active"})
        await app_client.post("/goals", json={**goal_payload, "title": "Beta goal", "status": "on_hold"})
        await app_client.post("/goals", json={**goal_payload, "title": "Gamma goal"})

        response = await app_client.get(
            "/goals",
            params={"status": "active,onHold", "sortField": "title", "sortDirection": "asc"},
        )

        assert [g["title"] for g in response.json()["items"]] == ["Alpha goal", "Beta goal"]

    async def test_list_goals_invalid_status(self, app_client):
        """Test an unknown filter value is a 400."""
        response = await app_client.get("/goals", params={"status": "finished"})

        assert response.status_code == 400
        assert 'Invalid status "finished"' in response.json()["message"]


@pytest.mark.asyncio
class TestGoalGetUpdateDelete:
    """Tests for single-goal endpoints."""

    async def test_get_goal_not_found(self, app_client):
        """Test getting a missing goal."""
        response = await app_client.get("/goals/missing")

        assert response.status_code == 404
        assert response.json() == {
            "error": "Not Found",
            "message": 'Goal with id "missing" not found',
            "code": "GOAL_NOT_FOUND",
        }

    async def test_patch_goal(self, app_client, goal_payload):
        """Test partial update."""
        goal_id = (await app_client.post("/goals", json=goal_payload)).json()["id"]

        response = await app_client.patch(f"/goals/{goal_id}", json={"title": "Run a full marathon"})

        assert response.status_code == 200
        assert response.json()["title"] == "Run a full marathon"
        assert response.json()["description"] == goal_payload["description"]

    async def test_patch_illegal_status(self, app_client, goal_payload):
        """Test an illegal goal status transition."""
        goal_id = (await app_client.post("/goals", json=goal_payload)).json()["id"]

        response = await app_client.patch(f"/goals/{goal_id}", json={"status": "completed"})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_STATUS_TRANSITION"

    async def test_put_goal(self, app_client, goal_payload):
        """Test full replacement."""
        goal_id = (await app_client.post("/goals", json=goal_payload)).json()["id"]

        response = await app_client.put(f"/goals/{goal_id}", json={**goal_payload, "title": "Swim a mile"})

        assert response.status_code == 200
        assert response.json()["id"] == goal_id
        assert response.json()["title"] == "Swim a mile"

    async def test_soft_delete_then_gone(self, app_client, goal_payload):
        """Test a soft-deleted goal answers 410."""
        goal_id = (await app_client.post("/goals", json=goal_payload)).json()["id"]

        response = await app_client.delete(f"/goals/{goal_id}")

        assert response.status_code == 200
        assert response.json()["message"] == "Goal soft deleted"
        assert response.json()["goal"]["deleted"] is True

        gone = await app_client.get(f"/goals/{goal_id}")
        assert gone.status_code == 410
        assert gone.json()["error"] == "Gone"
        assert gone.json()["code"] == "GOAL_DELETED"

        patch = await app_client.patch(f"/goals/{goal_id}", json={"title": "Too late"})
        assert patch.status_code == 410
        assert patch.json()["message"] == "Cannot update a deleted goal"

    async def test_permanent_delete(self, app_client, goal_payload):
        """Test a permanent delete removes the goal and its tasks."""
        goal_id = (await app_client.post("/goals", json=goal_payload)).json()["id"]
        task = await app_client.post(f"/goals/{goal_id}/tasks", json={"title": "Buy running shoes"})

        response = await app_client.delete(f"/goals/{goal_id}", params={"permanent": "true"})

        assert response.status_code == 200
        assert response.json()["message"] == "Goal permanently deleted"
        assert (await app_client.get(f"/goals/{goal_id}")).status_code == 404
        assert (await app_client.get(f"/tasks/{task.json()['id']}")).status_code == 404


@pytest.mark.asyncio
class TestGoalCriteria:
    """Tests for readiness, SMART score and criteria endpoints."""

    async def test_readiness(self, app_client, goal_payload):
        """Test readiness scoring with half the required DoR done."""
        now = goal_payload["timebound"]["start_date"]
        goal_payload["dor_criteria"] = [
            {"id": f"c{i}", "description": f"Item {i}", "is_completed": i < 2,
             "created_at": now, "updated_at": now}
            for i in range(4)
        ]
        goal_id = (await app_client.post("/goals", json=goal_payload)).json()["id"]

        response = await app_client.get(f"/goals/{goal_id}/readiness")

        assert response.status_code == 200
        assert response.json()["dor"]["metrics"]["readiness_score"] == 70

    async def test_smart_score(self, app_client, goal_payload):
        """Test SMART score endpoint."""
        goal_id = (await app_client.post("/goals", json=goal_payload)).json()["id"]

        response = await app_client.get(f"/goals/{goal_id}/smart-score")

        assert response.status_code == 200
        assert response.json()["breakdown"]["total"] == 60
        assert response.json()["category"] == "good"

    async def test_template_and_export(self, app_client, goal_payload):
        """Test applying a template then exporting as CSV."""
        goal_id = (await app_client.post("/goals", json=goal_payload)).json()["id"]
        template = {
            "template": {"name": "Basic", "dor_criteria": [{"description": "Plan agreed"}]},
            "mode": "append",
        }

        applied = await app_client.post(f"/goals/{goal_id}/criteria/template", json=template)
        exported = await app_client.get(
            f"/goals/{goal_id}/criteria/export", params={"kind": "dor", "format": "csv"}
        )

        assert applied.status_code == 200
        assert applied.json()["dor_criteria"][0]["description"] == "Plan agreed"
        assert exported.status_code == 200
        assert exported.headers["content-type"].startswith("text/csv")
        assert exported.text.split("\n")[1] == "Plan agreed,required,No,,1"


@pytest.mark.asyncio
class TestErrorEnvelopes:
    """Tests for framework-level errors."""

    async def test_method_not_allowed(self, app_client):
        """Test an unsupported method returns 405 in the envelope."""
        response = await app_client.delete("/goals")

        assert response.status_code == 405
        assert response.json()["error"] == "Method Not Allowed"

    async def test_unknown_route(self, app_client):
        """Test an unknown path returns 404 in the envelope."""
        response = await app_client.get("/nowhere")

        assert response.status_code == 404
        assert response.json()["error"] == "Not Found"

    async def test_storage_failure_is_500(self, app_client, memory_db):
        """Test storage failures are hidden behind a generic 500."""
        memory_db["goals"].failure_rate = 1.0

        response = await app_client.get("/goals")

        assert response.status_code == 500
        assert response.json() == {
            "error": "Internal Server Error",
            "message": "An unexpected error occurred",
        }

    async def test_health(self, app_client):
        """Test health endpoints."""
        assert (await app_client.get("/")).json()["status"] == "ok"
        assert (await app_client.get("/health")).json()["status"] == "healthy"
