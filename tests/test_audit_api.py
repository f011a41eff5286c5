"""End-to-end audit scenarios through the HTTP API."""

from fastapi.testclient import TestClient
from sqlalchemy import select

from stockaudit.db import session as db_session
from stockaudit.main import app
from stockaudit.models import Transaction
from stockaudit.utils.time import utc_now

PASSWORD = "secret123"


def _client(engine, session_local, monkeypatch) -> TestClient:
    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", session_local)
    return TestClient(app)


def _auth(client: TestClient, username: str) -> dict[str, str]:
    response = client.post("/api/v1/auth/login", json={"username": username, "password": PASSWORD})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def _open_audit(client: TestClient, headers: dict[str, str], warehouse_id: int) -> dict:
    response = client.post(
        "/api/v1/audit/sessions",
        json={
            "warehouse_id": warehouse_id,
            "title": "Spring count",
            "start_date": "2026-10-01",
            "end_date": "2026-10-31",
            "freeze_confirmed": True,
        },
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


def test_login_and_me_report_capabilities(engine, session_local, world, monkeypatch) -> None:
    with _client(engine, session_local, monkeypatch) as client:
        headers = _auth(client, "counter")
        me = client.get("/api/v1/auth/me", headers=headers)
        bad = client.post("/api/v1/auth/login", json={"username": "counter", "password": "wrong"})

    assert me.status_code == 200
    assert me.json()["role"] == "AUDIT_USER"
    assert me.json()["capabilities"] == ["canConfirm"]
    assert bad.status_code == 401


def test_full_audit_round_trip(engine, session_local, world, monkeypatch) -> None:
    warehouse_id = world.warehouse.id
    with _client(engine, session_local, monkeypatch) as client:
        manager = _auth(client, "auditmgr")
        counter = _auth(client, "counter")

        audit = _open_audit(client, manager, warehouse_id)
        assert audit["status"] == "open"
        assert audit["audit_code"].startswith("AUD-")
        audit_id = audit["id"]

        started = client.patch(f"/api/v1/audit/sessions/{audit_id}", json={"status": "in_progress"}, headers=manager)
        assert started.json()["status"] == "in_progress"

        rows = client.get(f"/api/v1/audit/sessions/{audit_id}/verifications", headers=counter).json()
        assert [row["system_quantity"] for row in rows] == [10, 5, 0]
        assert all(row["can_edit"] for row in rows)
        for row, counted in zip(rows, (7, 7, 0)):
            confirmed = client.post(
                f"/api/v1/audit/verifications/{row['id']}/confirm",
                json={"physical_quantity": counted},
                headers=counter,
            )
            assert confirmed.status_code == 200
            assert confirmed.json()["confirmer_name"] == "counter"

        recon = client.post(f"/api/v1/audit/sessions/{audit_id}/start-reconciliation", headers=manager)
        assert recon.json()["status"] == "reconciliation"

        gate = client.get(f"/api/v1/audit/sessions/{audit_id}/can-complete", headers=manager).json()
        assert gate["can_complete"] is False
        assert gate["discrepancy_count"] == 2

        rows = client.get(f"/api/v1/audit/sessions/{audit_id}/verifications", headers=manager).json()
        assert [row["status"] for row in rows] == ["short", "excess", "complete"]
        checkout = client.post(
            f"/api/v1/audit/sessions/{audit_id}/recon-checkout",
            json={"verification_id": rows[0]["id"], "quantity": 3, "notes": "Broken pallet"},
            headers=manager,
        )
        checkin = client.post(
            f"/api/v1/audit/sessions/{audit_id}/recon-checkin",
            json={"verification_id": rows[1]["id"], "quantity": 2},
            headers=manager,
        )
        assert checkout.json()["status"] == "complete"
        assert checkin.json()["system_quantity"] == 7

        gate = client.get(f"/api/v1/audit/sessions/{audit_id}/can-complete", headers=manager).json()
        assert gate["can_complete"] is True

        completed = client.post(f"/api/v1/audit/sessions/{audit_id}/complete", json={"notes": "Done"}, headers=manager)
        assert completed.status_code == 200
        assert completed.json()["status"] == "completed"

        logs = client.get(f"/api/v1/audit/sessions/{audit_id}/logs", headers=manager).json()
        report = client.get(f"/api/v1/audit/sessions/{audit_id}/report", params={"format": "csv"}, headers=manager)

    assert [entry["action_type"] for entry in logs] == [
        "create",
        "begin-counting",
        "confirm",
        "confirm",
        "confirm",
        "start-reconciliation",
        "recon-checkout",
        "recon-checkin",
        "complete",
    ]
    assert logs[2]["performer_name"] == "counter"
    assert report.status_code == 200
    assert report.headers["content-type"].startswith("text/csv")
    assert "SKU-001" in report.text


def test_typed_errors_are_returned_as_json_payloads(engine, session_local, world, monkeypatch) -> None:
    warehouse_id = world.warehouse.id
    with _client(engine, session_local, monkeypatch) as client:
        manager = _auth(client, "auditmgr")
        counter = _auth(client, "counter")

        forbidden = client.post(
            "/api/v1/audit/sessions",
            json={
                "warehouse_id": warehouse_id,
                "title": "Counter audit",
                "start_date": "2026-10-01",
                "end_date": "2026-10-31",
                "freeze_confirmed": True,
            },
            headers=counter,
        )
        audit_id = _open_audit(client, manager, warehouse_id)["id"]
        duplicate = client.post(
            "/api/v1/audit/sessions",
            json={
                "warehouse_id": warehouse_id,
                "title": "Second",
                "start_date": "2026-10-01",
                "end_date": "2026-10-31",
                "freeze_confirmed": True,
            },
            headers=manager,
        )
        skipped = client.patch(f"/api/v1/audit/sessions/{audit_id}", json={"status": "completed"}, headers=manager)
        missing = client.get("/api/v1/audit/sessions/9999", headers=manager)

    assert forbidden.status_code == 403
    assert forbidden.json()["error"] == "forbidden"
    assert forbidden.json()["required"] == "canFinalize"
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "conflict"
    assert skipped.status_code == 409
    assert skipped.json() == {
        "error": "precondition_failed",
        "detail": skipped.json()["detail"],
        "status": "open",
    }
    assert missing.status_code == 404
    assert missing.json()["error"] == "not_found"


def test_pending_transactions_endpoint_lists_blocking_rows(engine, session_local, world, monkeypatch) -> None:
    warehouse_id = world.warehouse.id
    item_id = world.items[0].id
    with _client(engine, session_local, monkeypatch) as client:
        manager = _auth(client, "auditmgr")
        audit_id = _open_audit(client, manager, warehouse_id)["id"]

        with session_local() as db:
            db.add(
                Transaction(
                    transaction_code="CO-PENDING01",
                    transaction_type="check-out",
                    item_id=item_id,
                    quantity=1,
                    source_warehouse_id=warehouse_id,
                    status="pending",
                    created_at=utc_now(),
                )
            )
            db.commit()

        pending = client.get(f"/api/v1/audit/sessions/{audit_id}/pending-transactions", headers=manager).json()
        gate = client.get(f"/api/v1/audit/sessions/{audit_id}/can-complete", headers=manager).json()

    assert pending["total"] == 1
    assert pending["checkouts"][0]["transaction_code"] == "CO-PENDING01"
    assert gate["has_pending_transactions"] is True
    assert "1 pending transaction(s)" in gate["message"]

    with session_local() as db:
        assert db.scalar(select(Transaction.id).where(Transaction.status == "pending")) is not None


def test_quick_edit_and_lock_endpoints(engine, session_local, world, monkeypatch) -> None:
    warehouse_id = world.warehouse.id
    with _client(engine, session_local, monkeypatch) as client:
        manager = _auth(client, "auditmgr")
        counter = _auth(client, "counter")
        audit_id = _open_audit(client, manager, warehouse_id)["id"]
        client.post(f"/api/v1/audit/sessions/{audit_id}/begin-counting", headers=manager)
        row_id = client.get(f"/api/v1/audit/sessions/{audit_id}/verifications", headers=counter).json()[0]["id"]

        client.post(f"/api/v1/audit/verifications/{row_id}/confirm", json={"physical_quantity": 8}, headers=counter)
        locked = client.post(f"/api/v1/audit/verifications/{row_id}/lock", json={"notes": "review"}, headers=manager)
        blocked = client.post(
            f"/api/v1/audit/verifications/{row_id}/confirm",
            json={"physical_quantity": 9},
            headers=counter,
        )
        edited = client.post(f"/api/v1/audit/verifications/{row_id}/edit", json={"physical_quantity": 9}, headers=manager)
        unlocked = client.post(f"/api/v1/audit/verifications/{row_id}/unlock", headers=manager)

    assert locked.json()["locked_by"] == world.manager.id
    assert blocked.status_code == 403
    assert edited.json()["override_notes"] == "Physical quantity updated via inline edit"
    assert edited.json()["overrider_name"] == "auditmgr"
    assert unlocked.json()["locked_by"] == world.counter.id


def test_capability_routes_reject_roles_without_the_capability(engine, session_local, world, monkeypatch) -> None:
    warehouse_id = world.warehouse.id
    with _client(engine, session_local, monkeypatch) as client:
        manager = _auth(client, "auditmgr")
        counter = _auth(client, "counter")
        audit_id = _open_audit(client, manager, warehouse_id)["id"]

        team = client.get("/api/v1/audit/team", headers=counter)
        recon = client.post(
            f"/api/v1/audit/sessions/{audit_id}/recon-checkout",
            json={"verification_id": 1, "quantity": 1},
            headers=counter,
        )
        allowed = client.get("/api/v1/audit/team", headers=manager)

    assert team.status_code == 403
    assert team.json()["required"] == "canFinalize"
    assert recon.status_code == 403
    assert recon.json()["required"] == "canReconcile"
    assert allowed.status_code == 200
