"""
Tests: Text production HTTP API.

Exercises the blueprint end to end: JSON in, service call, JSON out, and
the mapping of workflow errors to status codes and ERR_* codes.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from agency_ops.models import db
from agency_ops.models.project import Project


UNITS = [
    {"id": "u2", "name": "Über uns", "content": "- Familienbetrieb seit 1921"},
    {"id": "u1", "name": "Start", "content": "- Begrüßung\n- Öffnungszeiten"},
]
GENERAL = {"id": "general", "name": "Weitere Texte", "content": "- Impressum"}


def _start(client, project, headers, units=None, general_unit=None):
    body = {"content_units": UNITS if units is None else units}
    if general_unit is not None:
        body["general_unit"] = general_unit
    return client.post(f"/api/v1/projects/{project.id}/text-production", json=body, headers=headers)


def _item_id(run_json, unit_id):
    return next(i["id"] for i in run_json["items"] if i["content_unit_id"] == unit_id)


@pytest.fixture()
def editor_headers(auth_headers, editor):
    return auth_headers(editor)


@pytest.fixture()
def admin_headers(auth_headers, admin):
    return auth_headers(admin)


@pytest.fixture()
def started(client, project, editor_headers):
    res = _start(client, project, editor_headers)
    assert res.status_code == 201
    return res.get_json()


# ═════════════════════════════════════════════════════════════════════════════
# Start / read
# ═════════════════════════════════════════════════════════════════════════════


class TestStart:

    def test_start_returns_pending_run(self, client, project, editor_headers):
        res = _start(client, project, editor_headers, general_unit=GENERAL)
        assert res.status_code == 201
        data = res.get_json()
        assert data["status"] == "PENDING"
        assert data["project_id"] == project.id
        assert data["started_by_name"] == "Erik Texter"
        assert len(data["items"]) == 3
        assert all(i["status"] == "PENDING" for i in data["items"])
        assert data["summary"]["total"] == 3
        assert data["summary"]["pending"] == 3

    def test_start_twice_conflicts(self, client, project, editor_headers, started):
        res = _start(client, project, editor_headers)
        assert res.status_code == 409
        body = res.get_json()
        assert body["code"] == "ERR_ALREADY_INITIALIZED"
        assert body["details"]["run_id"] == started["id"]

    def test_start_without_units(self, client, project, editor_headers):
        res = _start(client, project, editor_headers, units=[])
        assert res.status_code == 422
        assert res.get_json()["code"] == "ERR_EMPTY_INPUT"

    def test_start_malformed_units(self, client, project, editor_headers):
        res = _start(client, project, editor_headers, units=[{"name": "Start"}])
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"

    def test_start_units_not_a_list(self, client, project, editor_headers):
        res = client.post(
            f"/api/v1/projects/{project.id}/text-production",
            json={"content_units": "Start"},
            headers=editor_headers,
        )
        assert res.status_code == 400

    @pytest.mark.parametrize("body", [[1, 2], "Start", 42])
    def test_start_body_must_be_object(self, client, project, editor_headers, body):
        res = client.post(
            f"/api/v1/projects/{project.id}/text-production", json=body, headers=editor_headers,
        )
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"

    def test_start_unknown_project(self, client, editor_headers):
        res = client.post(
            "/api/v1/projects/9999/text-production",
            json={"content_units": UNITS},
            headers=editor_headers,
        )
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"

    def test_start_without_token_is_401(self, client, project):
        res = _start(client, project, headers={})
        assert res.status_code == 401
        assert res.get_json()["code"] == "ERR_UNAUTHENTICATED"

    def test_start_as_viewer_is_403(self, client, project, auth_headers, viewer):
        res = _start(client, project, auth_headers(viewer))
        assert res.status_code == 403
        body = res.get_json()
        assert body["code"] == "ERR_FORBIDDEN"
        assert body["details"]["action"] == "text_start"

    def test_non_json_body_is_415(self, client, project, editor_headers):
        res = client.post(
            f"/api/v1/projects/{project.id}/text-production",
            data="Start, Über uns",
            content_type="text/plain",
            headers=editor_headers,
        )
        assert res.status_code == 415


class TestRead:

    def test_get_orders_items_by_unit_name(self, client, project, auth_headers, viewer, started):
        res = client.get(f"/api/v1/projects/{project.id}/text-production", headers=auth_headers(viewer))
        assert res.status_code == 200
        names = [i["content_unit_name"] for i in res.get_json()["items"]]
        assert names == ["Start", "Über uns"]

    def test_get_lists_versions_newest_first(self, client, project, editor_headers, admin_headers, started):
        item_id = _item_id(started, "u1")
        v1 = client.put(
            f"/api/v1/text-production/items/{item_id}/draft",
            json={"content": "Hallo"}, headers=editor_headers,
        ).get_json()["version"]
        client.post(
            f"/api/v1/text-production/versions/{v1['id']}/decision",
            json={"decision": "CHANGES_REQUESTED"}, headers=admin_headers,
        )
        client.put(
            f"/api/v1/text-production/items/{item_id}/draft",
            json={"content": "Hallo, neu"}, headers=editor_headers,
        )

        res = client.get(f"/api/v1/projects/{project.id}/text-production", headers=editor_headers)

        item = next(i for i in res.get_json()["items"] if i["id"] == item_id)
        assert [v["version_number"] for v in item["versions"]] == [2, 1]
        assert item["versions"][0]["content"] == "Hallo, neu"
        assert item["latest_version_number"] == 2

    def test_get_without_run_is_404(self, client, project, editor_headers):
        res = client.get(f"/api/v1/projects/{project.id}/text-production", headers=editor_headers)
        assert res.status_code == 404

    def test_get_without_token_is_401(self, client, project, started):
        res = client.get(f"/api/v1/projects/{project.id}/text-production")
        assert res.status_code == 401


# ═════════════════════════════════════════════════════════════════════════════
# Item operations
# ═════════════════════════════════════════════════════════════════════════════


class TestItemEndpoints:

    def test_save_draft(self, client, editor_headers, started):
        item_id = _item_id(started, "u1")
        res = client.put(
            f"/api/v1/text-production/items/{item_id}/draft",
            json={"content": "Willkommen bei Bäckerei Müller"},
            headers=editor_headers,
        )
        assert res.status_code == 200
        data = res.get_json()
        assert data["version"]["version_number"] == 1
        assert data["version"]["author_name"] == "Erik Texter"
        assert data["item"]["status"] == "DRAFT"

    def test_save_draft_requires_content(self, client, editor_headers, started):
        item_id = _item_id(started, "u1")
        res = client.put(
            f"/api/v1/text-production/items/{item_id}/draft", json={}, headers=editor_headers,
        )
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"

    @pytest.mark.parametrize("suffix", ["draft", "note"])
    def test_item_body_must_be_object(self, client, editor_headers, started, suffix):
        item_id = _item_id(started, "u1")
        res = client.put(
            f"/api/v1/text-production/items/{item_id}/{suffix}", json=["Hallo"], headers=editor_headers,
        )
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"

    def test_save_draft_unknown_item(self, client, editor_headers):
        res = client.put(
            "/api/v1/text-production/items/nope/draft", json={"content": "x"}, headers=editor_headers,
        )
        assert res.status_code == 404

    def test_complete_without_text_is_422(self, client, editor_headers, started):
        item_id = _item_id(started, "u1")
        res = client.post(f"/api/v1/text-production/items/{item_id}/complete", headers=editor_headers)
        assert res.status_code == 422
        body = res.get_json()
        assert body["code"] == "ERR_NO_CONTENT"
        assert body["details"] == {"kind": "no_content", "item_id": item_id}

    def test_complete_and_incomplete(self, client, editor_headers, started):
        item_id = _item_id(started, "u1")
        client.put(
            f"/api/v1/text-production/items/{item_id}/draft",
            json={"content": "Hallo"}, headers=editor_headers,
        )

        res = client.post(f"/api/v1/text-production/items/{item_id}/complete", headers=editor_headers)
        assert res.status_code == 200
        assert res.get_json()["item"]["status"] == "APPROVED"
        assert res.get_json()["run"]["status"] == "IN_PROGRESS"

        res = client.post(f"/api/v1/text-production/items/{item_id}/incomplete", headers=editor_headers)
        assert res.status_code == 200
        assert res.get_json()["item"]["status"] == "DRAFT"

    def test_set_and_clear_note(self, client, editor_headers, started):
        item_id = _item_id(started, "u2")
        res = client.put(
            f"/api/v1/text-production/items/{item_id}/note",
            json={"note": "Kunde duzt"}, headers=editor_headers,
        )
        assert res.status_code == 200
        assert res.get_json()["item"]["internal_note"] == "Kunde duzt"

        res = client.put(
            f"/api/v1/text-production/items/{item_id}/note",
            json={"note": None}, headers=editor_headers,
        )
        assert res.get_json()["item"]["internal_note"] is None

    def test_note_must_be_string(self, client, editor_headers, started):
        item_id = _item_id(started, "u2")
        res = client.put(
            f"/api/v1/text-production/items/{item_id}/note",
            json={"note": 42}, headers=editor_headers,
        )
        assert res.status_code == 400

    def test_viewer_cannot_write(self, client, auth_headers, viewer, started):
        item_id = _item_id(started, "u1")
        res = client.put(
            f"/api/v1/text-production/items/{item_id}/draft",
            json={"content": "x"}, headers=auth_headers(viewer),
        )
        assert res.status_code == 403


# ═════════════════════════════════════════════════════════════════════════════
# Run operations
# ═════════════════════════════════════════════════════════════════════════════


class TestRunEndpoints:

    def test_complete_all_finishes_run_and_flags_project(self, client, project, editor_headers, started):
        for item in started["items"]:
            client.put(
                f"/api/v1/text-production/items/{item['id']}/draft",
                json={"content": f"Text {item['content_unit_name']}"},
                headers=editor_headers,
            )

        res = client.post(f"/api/v1/text-production/{started['id']}/complete-all", headers=editor_headers)

        assert res.status_code == 200
        assert res.get_json() == {"count": 2, "run_id": started["id"]}

        run = client.get(
            f"/api/v1/projects/{project.id}/text-production", headers=editor_headers,
        ).get_json()
        assert run["status"] == "COMPLETED"
        assert run["completed_at"] is not None
        assert run["summary"]["completion_pct"] == 100.0

        proj = client.get(f"/api/v1/projects/{project.id}").get_json()
        assert proj["textit"] == "JA_JA"

    def test_complete_all_with_nothing_in_draft(self, client, editor_headers, started):
        res = client.post(f"/api/v1/text-production/{started['id']}/complete-all", headers=editor_headers)
        assert res.status_code == 422
        assert res.get_json()["code"] == "ERR_NOTHING_TO_COMPLETE"

    def test_reset_requires_admin(self, client, editor_headers, started):
        res = client.delete(f"/api/v1/text-production/{started['id']}", headers=editor_headers)
        assert res.status_code == 403

    def test_admin_reset_then_restart(self, client, project, auth_headers, admin, editor_headers, started):
        res = client.delete(f"/api/v1/text-production/{started['id']}", headers=auth_headers(admin))
        assert res.status_code == 200
        assert res.get_json() == {"deleted": True, "run_id": started["id"]}

        res = client.get(f"/api/v1/projects/{project.id}/text-production", headers=editor_headers)
        assert res.status_code == 404

        res = _start(client, project, editor_headers)
        assert res.status_code == 201
        assert res.get_json()["id"] != started["id"]

    def test_reset_unknown_run(self, client, auth_headers, admin):
        res = client.delete("/api/v1/text-production/nope", headers=auth_headers(admin))
        assert res.status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# Customer decisions
# ═════════════════════════════════════════════════════════════════════════════


class TestDecisionEndpoint:

    def _draft(self, client, headers, started):
        item_id = _item_id(started, "u1")
        res = client.put(
            f"/api/v1/text-production/items/{item_id}/draft",
            json={"content": "Hallo"}, headers=headers,
        )
        return res.get_json()["version"]

    def test_record_decision(self, client, editor_headers, admin_headers, started):
        version = self._draft(client, editor_headers, started)
        res = client.post(
            f"/api/v1/text-production/versions/{version['id']}/decision",
            json={"decision": "APPROVED", "comment": "Passt"},
            headers=admin_headers,
        )
        assert res.status_code == 200
        data = res.get_json()["version"]
        assert data["customer_decision"] == "APPROVED"
        assert data["customer_comment"] == "Passt"
        assert data["is_locked"] is True

    def test_decision_body_must_be_object(self, client, editor_headers, admin_headers, started):
        version = self._draft(client, editor_headers, started)
        res = client.post(
            f"/api/v1/text-production/versions/{version['id']}/decision",
            json="APPROVED", headers=admin_headers,
        )
        assert res.status_code == 400

    def test_invalid_decision(self, client, editor_headers, admin_headers, started):
        version = self._draft(client, editor_headers, started)
        res = client.post(
            f"/api/v1/text-production/versions/{version['id']}/decision",
            json={"decision": "MAYBE"}, headers=admin_headers,
        )
        assert res.status_code == 400
        assert res.get_json()["details"]["valid_decisions"] == ["APPROVED", "CHANGES_REQUESTED"]

    def test_second_decision_conflicts(self, client, editor_headers, admin_headers, started):
        version = self._draft(client, editor_headers, started)
        url = f"/api/v1/text-production/versions/{version['id']}/decision"
        client.post(url, json={"decision": "APPROVED"}, headers=admin_headers)
        res = client.post(url, json={"decision": "CHANGES_REQUESTED"}, headers=admin_headers)
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_DUPLICATE"

    def test_editor_may_not_record_decision(self, client, editor_headers, started):
        version = self._draft(client, editor_headers, started)
        res = client.post(
            f"/api/v1/text-production/versions/{version['id']}/decision",
            json={"decision": "APPROVED"}, headers=editor_headers,
        )
        assert res.status_code == 403
        assert res.get_json()["details"]["action"] == "text_record_decision"


# ═════════════════════════════════════════════════════════════════════════════
# Auth edge cases
# ═════════════════════════════════════════════════════════════════════════════


class TestTokens:

    def test_expired_token_is_401(self, app, client, project):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {
                "sub": "u-editor", "role": "editor", "type": "access",
                "iat": now - timedelta(hours=2), "exp": now - timedelta(hours=1),
            },
            app.config["SECRET_KEY"],
            algorithm="HS256",
        )
        res = _start(client, project, {"Authorization": f"Bearer {token}"})
        assert res.status_code == 401

    def test_token_with_unknown_role_is_401(self, app, client, project):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "u-x", "role": "superuser", "type": "access", "iat": now,
             "exp": now + timedelta(minutes=5)},
            app.config["SECRET_KEY"],
            algorithm="HS256",
        )
        res = _start(client, project, {"Authorization": f"Bearer {token}"})
        assert res.status_code == 401

    def test_health_needs_no_token(self, client):
        res = client.get("/api/v1/health")
        assert res.status_code == 200
        assert res.get_json()["status"] == "ok"

    def test_project_flag_untouched_by_failed_start(self, client, project, auth_headers, viewer):
        _start(client, project, auth_headers(viewer))
        db.session.expire_all()
        assert db.session.get(Project, project.id).textit == "JA_NEIN"
