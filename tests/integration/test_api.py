"""
HTTP API Integration Tests

Exercises the FastAPI surface against an in-memory registry.
Status mapping: 201 add, 200 other writes, 409 pending decision,
404 unknown node, 400 malformed payload, 422 rule violation.
"""

import csv
import io
import json

import pytest
from fastapi.testclient import TestClient

from asset_registry.api.server import create_app
from asset_registry.migration import CURRENT_KEY

from .fixtures import (
    COOLING_BODY, IMPORT_PAYLOAD, SYSTEM_BODY, T0, component_body, create_registry
)


@pytest.fixture
def registry():
    return create_registry()


@pytest.fixture
def client(registry):
    return TestClient(create_app(registry))


@pytest.fixture
def plant(client):
    system = client.post("/api/v1/nodes", json=SYSTEM_BODY).json()["node"]
    cooling = client.post("/api/v1/nodes", json=COOLING_BODY).json()["node"]
    pump = client.post("/api/v1/nodes", json=component_body("Pump", cooling["id"])).json()["node"]
    return system, cooling, pump


class TestReadEndpoints:

    def test_health(self, client):
        """Health reports the node count."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "online", "nodeCount": 0}

    def test_tree(self, client, plant):
        """The tree nests children under parents."""
        roots = client.get("/api/v1/tree").json()["roots"]
        assert len(roots) == 1
        assert roots[0]["name"] == "Plant"
        assert roots[0]["children"][0]["children"][0]["name"] == "Pump"

    def test_deep_tree(self):
        """A 3000-deep chain renders without hitting the recursion limit."""
        records = [{"id": "s0", "name": "Plant", "type": "System", "createdAt": T0}]
        for i in range(1, 3000):
            records.append({
                "id": f"s{i}", "name": f"Level {i}", "type": "Subsystem", "level": i,
                "parentId": f"s{i - 1}", "createdAt": T0,
            })
        client = TestClient(create_app(create_registry({CURRENT_KEY: records})))

        response = client.get("/api/v1/tree")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/json")
        assert response.text.startswith('{"roots": [{"id": "s0"')
        assert response.text.count('"children": [') == 3000

    def test_search(self, client, plant):
        """?q filters by name, type or id."""
        nodes = client.get("/api/v1/nodes", params={"q": "cool"}).json()["nodes"]
        assert [n["name"] for n in nodes] == ["Cooling"]

    def test_get_unknown_node(self, client):
        """Unknown ids are 404."""
        assert client.get("/api/v1/nodes/ghost").status_code == 404

    def test_parent_options(self, client, plant):
        """Options match the parent rules."""
        _, cooling, _ = plant
        options = client.get("/api/v1/parent-options", params={"type": "Component"}).json()["options"]
        assert [o["id"] for o in options] == [cooling["id"]]

    def test_parent_options_unknown_type(self, client):
        """Unknown child types are 422."""
        response = client.get("/api/v1/parent-options", params={"type": "Widget"})
        assert response.status_code == 422


class TestWriteEndpoints:

    def test_add_returns_created(self, client):
        """Applied adds are 201 with the new node."""
        response = client.post("/api/v1/nodes", json=SYSTEM_BODY)
        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "applied"
        assert body["node"]["type"] == "System"
        assert body["node"]["parentId"] is None

    def test_rule_violation_is_422(self, client, plant):
        """A second System is rejected with its code."""
        response = client.post("/api/v1/nodes", json={"name": "Other", "type": "System"})
        assert response.status_code == 422
        assert response.json()["error"] == "SYSTEM_ALREADY_EXISTS"

    def test_collision_round_trip(self, client, plant):
        """409 with choices, then the same call with a resolution."""
        _, cooling, _ = plant
        response = client.post("/api/v1/nodes", json=component_body("pump", cooling["id"]))
        assert response.status_code == 409
        body = response.json()
        assert body["decision"] == "resolve_collision"
        assert body["choices"] == ["overwrite", "index", "abort"]
        assert body["suggestedName"] == "pump(1)"

        response = client.post("/api/v1/nodes", json=component_body("pump", cooling["id"], "index"))
        assert response.status_code == 201
        assert response.json()["node"]["name"] == "pump(1)"

    def test_edit(self, client, plant):
        """PUT replaces fields in place."""
        _, cooling, pump = plant
        response = client.put(
            f"/api/v1/nodes/{pump['id']}", json=component_body("Main Pump", cooling["id"])
        )
        assert response.status_code == 200
        assert response.json()["node"]["id"] == pump["id"]
        assert client.get(f"/api/v1/nodes/{pump['id']}").json()["name"] == "Main Pump"

    def test_edit_unknown_node(self, client):
        """Editing a missing node is 404."""
        response = client.put("/api/v1/nodes/ghost", json=SYSTEM_BODY)
        assert response.status_code == 404
        assert response.json()["error"] == "NODE_NOT_FOUND"

    def test_cascade_delete_round_trip(self, client, plant):
        """Deleting a parent needs confirm_cascade."""
        _, cooling, pump = plant
        response = client.delete(f"/api/v1/nodes/{cooling['id']}")
        assert response.status_code == 409
        assert sorted(response.json()["affectedIds"]) == sorted([cooling["id"], pump["id"]])

        response = client.delete(f"/api/v1/nodes/{cooling['id']}", params={"confirm_cascade": True})
        assert response.status_code == 200
        assert len(client.get("/api/v1/nodes").json()["nodes"]) == 1

    def test_clear(self, client, plant):
        """Clearing needs confirm=true."""
        assert client.delete("/api/v1/nodes").status_code == 409
        assert client.delete("/api/v1/nodes", params={"confirm": True}).status_code == 200
        assert client.get("/health").json()["nodeCount"] == 0

    def test_load_sample(self, client):
        """Loading the sample needs confirm=true and returns the System."""
        response = client.post("/api/v1/sample")
        assert response.status_code == 409
        assert response.json()["decision"] == "confirm_sample"

        response = client.post("/api/v1/sample", params={"confirm": True})
        assert response.status_code == 201
        assert response.json()["node"]["name"] == "Trainset Series 12"
        assert client.get("/health").json()["nodeCount"] == 6

    def test_load_sample_beside_system_is_422(self, client, plant):
        """The sample cannot add a second System."""
        response = client.post("/api/v1/sample", params={"confirm": True})
        assert response.status_code == 422
        assert response.json()["error"] == "SYSTEM_ALREADY_EXISTS"


class TestInterchangeEndpoints:

    def test_import_reports_counts_and_issues(self, client, plant):
        """Imported structure is merged and flagged, never rejected."""
        response = client.post("/api/v1/import", content=IMPORT_PAYLOAD)
        assert response.status_code == 200
        body = response.json()
        assert body["added"] == 2
        assert body["dropped"] == 1
        assert {"nodeId": "imp1", "code": "MISSING_PARENT"} == {
            k: v for k, v in body["issues"][0].items() if k != "message"
        }

    def test_malformed_import_is_400(self, client):
        """Bad JSON is a client error."""
        response = client.post("/api/v1/import", content="{oops")
        assert response.status_code == 400
        assert response.json()["error"] == "MALFORMED_PAYLOAD"

    def test_csv_export(self, client, plant):
        """CSV downloads carry a dated filename."""
        response = client.get("/api/v1/export/csv")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert 'filename="module1_assets_' in response.headers["content-disposition"]
        rows = list(csv.reader(io.StringIO(response.text, newline="")))
        assert [row[0] for row in rows[1:]] == ["Plant", "Cooling", "Pump"]

    def test_csv_export_with_far_future_timestamp(self, client):
        """Out-of-range createdAt values are clamped, not a server error."""
        payload = json.dumps([
            {"id": "far", "name": "Far", "type": "System", "createdAt": 1e15},
        ])
        assert client.post("/api/v1/import", content=payload).status_code == 200

        response = client.get("/api/v1/export/csv")
        assert response.status_code == 200
        rows = list(csv.reader(io.StringIO(response.text, newline="")))
        assert rows[1][6] == "9999-12-31T23:59:59.999Z"

    def test_json_export(self, client, plant):
        """JSON export is the wire-shape array."""
        data = client.get("/api/v1/export/json").json()
        assert [n["name"] for n in data] == ["Plant", "Cooling", "Pump"]

    def test_pivot_export(self, client, plant):
        """Pivot rows list each Component's Subsystems by level."""
        text = client.get("/api/v1/export/pivot").text
        assert text.splitlines() == ["Component Name,Subsystem L1", "Pump,Cooling"]

    def test_audit_endpoint(self, client, plant):
        """A clean registry has no issues."""
        assert client.get("/api/v1/audit").json() == {"issues": []}
