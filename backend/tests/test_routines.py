"""
Routine API tests.

Verifies:
- Routines are listed per skin type with steps in order
- Staff-only writes; steps validated and replaced wholesale on update
"""

import pytest

from skinshop.extensions import db
from skinshop.models import Routine, RoutineStep, Skin


@pytest.fixture
def skin(db_session):
    skin = Skin(name="Oily")
    db_session.add(skin)
    db_session.commit()
    return skin


STEPS = [
    {"order": 2, "description": "Apply toner"},
    {"order": 1, "description": "Wash with gel cleanser"},
]


class TestRoutineWrites:

    def test_manager_creates_routine_with_ordered_steps(self, client, manager_headers, skin):
        resp = client.post(
            "/api/routines",
            json={"skin": skin.id, "name": "Morning", "steps": STEPS},
            headers=manager_headers,
        )

        assert resp.status_code == 201
        routine = resp.get_json()["routine"]
        assert routine["skin_id"] == skin.id
        assert [s["order"] for s in routine["steps"]] == [1, 2]
        assert routine["steps"][0]["description"] == "Wash with gel cleanser"

    def test_customer_cannot_create(self, client, customer_headers, skin):
        resp = client.post(
            "/api/routines",
            json={"skin": skin.id, "name": "Morning", "steps": STEPS},
            headers=customer_headers,
        )

        assert resp.status_code == 403

    @pytest.mark.parametrize("steps", [
        [],
        [{"order": 1}],
        [{"order": 0, "description": "x"}],
        [{"order": 1, "description": "a"}, {"order": 1, "description": "b"}],
        "wash face",
    ])
    def test_invalid_steps(self, client, manager_headers, skin, steps):
        resp = client.post(
            "/api/routines",
            json={"skin": skin.id, "name": "Morning", "steps": steps},
            headers=manager_headers,
        )

        assert resp.status_code == 400
        assert db.session.query(Routine).count() == 0

    def test_unknown_skin(self, client, manager_headers, db_session):
        resp = client.post(
            "/api/routines",
            json={"skin": 999999, "name": "Morning", "steps": STEPS},
            headers=manager_headers,
        )

        assert resp.status_code == 404

    def test_update_replaces_steps(self, client, manager_headers, skin):
        routine_id = client.post(
            "/api/routines",
            json={"skin": skin.id, "name": "Morning", "steps": STEPS},
            headers=manager_headers,
        ).get_json()["routine"]["id"]

        resp = client.put(
            f"/api/routines/{routine_id}",
            json={"name": "Evening", "steps": [{"order": 1, "description": "Double cleanse"}]},
            headers=manager_headers,
        )

        assert resp.status_code == 200
        routine = resp.get_json()["routine"]
        assert routine["name"] == "Evening"
        assert routine["steps"] == [{"order": 1, "description": "Double cleanse"}]
        assert db.session.query(RoutineStep).count() == 1

    def test_delete_removes_steps(self, client, manager_headers, skin):
        routine_id = client.post(
            "/api/routines",
            json={"skin": skin.id, "name": "Morning", "steps": STEPS},
            headers=manager_headers,
        ).get_json()["routine"]["id"]

        resp = client.delete(f"/api/routines/{routine_id}", headers=manager_headers)

        assert resp.status_code == 200
        assert db.session.query(RoutineStep).count() == 0
        assert client.delete(f"/api/routines/{routine_id}", headers=manager_headers).status_code == 404


class TestRoutineReads:

    def test_list_by_skin_is_public(self, client, manager_headers, skin, db_session):
        dry = Skin(name="Dry")
        db_session.add(dry)
        db_session.commit()
        for skin_id, name in ((skin.id, "Oily AM"), (dry.id, "Dry AM")):
            client.post(
                "/api/routines",
                json={"skin": skin_id, "name": name, "steps": STEPS},
                headers=manager_headers,
            )

        resp = client.get(f"/api/routines/skin/{dry.id}")

        assert resp.status_code == 200
        assert [r["name"] for r in resp.get_json()["routines"]] == ["Dry AM"]
        assert len(client.get("/api/routines").get_json()["routines"]) == 2
