from datetime import date, timedelta

import pytest
from sqlalchemy import event
from sqlalchemy.dialects import postgresql

from apothecary.models import BatchStatus, Compound, CompoundBatch, CompoundType, UserRole
from apothecary.schemas import DispensationCreate
from apothecary.services.batch_service import BatchService


@pytest.fixture
def compound(db_session, make_user, herbs):
    owner = make_user()
    compound = Compound(
        name="Evening Calm",
        ownerID=owner.userID,
        createdByID=owner.userID,
        type=CompoundType.GUIDED,
        tier=2,
        formula=[{"product_id": herbs["lemon-balm"].productID, "percentage": 100}],
        price=40,
    )
    db_session.add(compound)
    db_session.commit()
    return compound


@pytest.fixture
def practitioner(make_user, login):
    user = make_user(UserRole.PRACTITIONER)
    login(user)
    return user


def _create_batch(client, compound, total=100, code="EC-001"):
    response = client.post(
        "/api/compound-batches",
        json={"compound_id": compound.compoundID, "batch_code": code, "total_volume_ml": total},
    )
    assert response.status_code == 201
    return response.get_json()["batch"]


def test_customers_cannot_manage_batches(client, login, make_user, compound):
    login(make_user())

    assert client.get("/api/compound-batches").status_code == 403
    assert client.post("/api/compound-dispensations", json={}).status_code == 403


def test_anonymous_requests_are_rejected(client, db_session):
    assert client.get("/api/compound-dispensations").status_code == 401


def test_create_and_list_batches(client, practitioner, compound):
    batch = _create_batch(client, compound, code="  EC-001 ")

    assert batch["batch_code"] == "EC-001"
    assert batch["status"] == "prepared"
    assert batch["prepared_by"] == practitioner.userID
    assert batch["total_volume_ml"] == 100.0

    listed = client.get(f"/api/compound-batches?compoundId={compound.compoundID}").get_json()["batches"]
    assert [entry["id"] for entry in listed] == [batch["id"]]
    assert client.get("/api/compound-batches?compoundId=999").get_json()["batches"] == []


def test_batch_for_unknown_compound(client, practitioner):
    response = client.post(
        "/api/compound-batches",
        json={"compound_id": 999, "batch_code": "X-1", "total_volume_ml": 50},
    )

    assert response.status_code == 404
    assert response.get_json() == {"error": "Compound not found"}


def test_batch_volume_must_be_positive(client, practitioner, compound):
    response = client.post(
        "/api/compound-batches",
        json={"compound_id": compound.compoundID, "batch_code": "X-1", "total_volume_ml": 0},
    )

    assert response.status_code == 400
    assert response.get_json()["error"] == "total_volume_ml must be a positive number."


def test_dispensing_tracks_remaining_volume(client, db_session, practitioner, compound, make_user):
    patient = make_user()
    batch = _create_batch(client, compound, total=100)

    first = client.post(
        "/api/compound-dispensations",
        json={"batch_id": batch["id"], "user_id": patient.userID, "volume_ml": 40},
    )
    second = client.post(
        "/api/compound-dispensations",
        json={"batch_id": batch["id"], "user_id": patient.userID, "volume_ml": 60},
    )

    assert first.status_code == 201
    assert first.get_json()["remaining_volume_ml"] == 60.0
    assert first.get_json()["batch"]["status"] == "prepared"
    assert second.get_json()["remaining_volume_ml"] == 0.0
    assert second.get_json()["batch"]["status"] == "dispensed"

    db_session.expire_all()
    stored = db_session.query(CompoundBatch).one()
    assert stored.status == BatchStatus.DISPENSED
    assert stored.dispensed_volume() == 100.0

    records = client.get(f"/api/compound-dispensations?userId={patient.userID}").get_json()["dispensations"]
    assert sorted(record["volume_ml"] for record in records) == [40.0, 60.0]


def test_over_dispensing_is_rejected(client, practitioner, compound, make_user):
    patient = make_user()
    batch = _create_batch(client, compound, total=50)
    client.post(
        "/api/compound-dispensations",
        json={"batch_id": batch["id"], "user_id": patient.userID, "volume_ml": 30},
    )

    response = client.post(
        "/api/compound-dispensations",
        json={"batch_id": batch["id"], "user_id": patient.userID, "volume_ml": 25.5},
    )

    assert response.status_code == 400
    assert response.get_json()["error"] == "Dispensing 25.5ml would exceed the batch total of 50ml."


def test_dispensing_from_unknown_batch(client, practitioner, make_user):
    response = client.post(
        "/api/compound-dispensations",
        json={"batch_id": 999, "user_id": make_user().userID, "volume_ml": 10},
    )

    assert response.status_code == 404
    assert response.get_json() == {"error": "Batch not found"}


def test_fractional_volumes_fill_the_batch_exactly(client, db_session, practitioner, compound, make_user):
    patient = make_user()
    batch = _create_batch(client, compound, total=0.3)

    first = client.post(
        "/api/compound-dispensations",
        json={"batch_id": batch["id"], "user_id": patient.userID, "volume_ml": 0.1},
    )
    second = client.post(
        "/api/compound-dispensations",
        json={"batch_id": batch["id"], "user_id": patient.userID, "volume_ml": 0.2},
    )

    assert first.status_code == 201
    assert first.get_json()["remaining_volume_ml"] == 0.2
    assert second.status_code == 201
    assert second.get_json()["remaining_volume_ml"] == 0.0
    assert second.get_json()["batch"]["status"] == "dispensed"

    extra = client.post(
        "/api/compound-dispensations",
        json={"batch_id": batch["id"], "user_id": patient.userID, "volume_ml": 0.01},
    )
    assert extra.status_code == 400
    assert extra.get_json()["error"] == "Dispensing 0.01ml would exceed the batch total of 0.3ml."


def test_volume_below_a_hundredth_is_rejected(client, practitioner, compound, make_user):
    batch = _create_batch(client, compound, total=10)

    response = client.post(
        "/api/compound-dispensations",
        json={"batch_id": batch["id"], "user_id": make_user().userID, "volume_ml": 0.001},
    )

    assert response.status_code == 400
    assert response.get_json()["error"] == "volume_ml must be a positive number."


def test_batch_cannot_be_created_already_expired(client, practitioner, compound):
    response = client.post(
        "/api/compound-batches",
        json={
            "compound_id": compound.compoundID,
            "batch_code": "OLD-1",
            "total_volume_ml": 50,
            "expiry_date": (date.today() - timedelta(days=1)).isoformat(),
        },
    )

    assert response.status_code == 400
    assert response.get_json()["error"] == "expiry_date cannot be in the past."


def test_expired_batch_is_not_dispensed(client, db_session, practitioner, compound, make_user):
    expired_on = date.today() - timedelta(days=3)
    batch = CompoundBatch(
        compoundID=compound.compoundID,
        batch_code="EC-OLD",
        total_volume_ml=100,
        expiry_date=expired_on,
        status=BatchStatus.PREPARED,
        preparedByID=practitioner.userID,
    )
    db_session.add(batch)
    db_session.commit()

    response = client.post(
        "/api/compound-dispensations",
        json={"batch_id": batch.batchID, "user_id": make_user().userID, "volume_ml": 10},
    )

    assert response.status_code == 400
    assert response.get_json()["error"] == f"Batch EC-OLD expired on {expired_on.isoformat()}."
    db_session.expire_all()
    stored = db_session.get(CompoundBatch, batch.batchID)
    assert stored.status == BatchStatus.EXPIRED
    assert stored.dispensations == []


def test_batch_row_is_locked_while_volume_is_checked(db_session, compound, make_user):
    practitioner = make_user(UserRole.PRACTITIONER)
    batch = CompoundBatch(
        compoundID=compound.compoundID,
        batch_code="EC-LOCK",
        total_volume_ml=20,
        preparedByID=practitioner.userID,
    )
    db_session.add(batch)
    db_session.commit()
    payload = DispensationCreate(batch_id=batch.batchID, user_id=practitioner.userID, volume_ml=5)
    db_session.expire_all()

    statements = []

    @event.listens_for(db_session, "do_orm_execute")
    def _capture(orm_execute_state):
        if orm_execute_state.is_select:
            statements.append(str(orm_execute_state.statement.compile(dialect=postgresql.dialect())))

    result = BatchService(db_session).record_dispensation(practitioner, payload)

    assert result["remaining_volume_ml"] == 15.0
    assert "FOR UPDATE" in next(sql for sql in statements if 'FROM "CompoundBatch"' in sql)
