import pytest

from roadside_assist import models, schemas
from roadside_assist.errors import (
    Conflict,
    Forbidden,
    InvalidStatus,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from roadside_assist.lifecycle import STATUSES, TRANSITIONS, RequestLifecycle, is_allowed


def history_rows(db, request_id):
    db.expire_all()
    return (
        db.query(models.RequestStatusHistory)
        .filter(models.RequestStatusHistory.request_id == request_id)
        .order_by(models.RequestStatusHistory.id)
        .all()
    )


def test_transition_table():
    assert set(TRANSITIONS) == set(STATUSES)
    assert is_allowed("pending", "accepted")
    assert is_allowed("in_progress", "cancelled")
    assert not is_allowed("pending", "completed")
    assert not is_allowed("completed", "pending")
    assert not is_allowed("cancelled", "accepted")


def test_create_forces_pending(db, make_user, make_workshop):
    customer = make_user()
    workshop = make_workshop()
    payload = schemas.RequestCreate.model_validate(
        {"userId": customer.id, "service": "Battery Jump", "workshopId": workshop.id, "status": "completed"}
    )
    request = RequestLifecycle(db).create(payload, customer)
    assert request.status == "pending"
    assert request.workshop_id == workshop.id
    assert request.workshop_name == workshop.name
    assert request.urgency == "normal"
    assert history_rows(db, request.id) == []


def test_create_defaults_to_the_caller(db, make_user):
    customer = make_user()
    request = RequestLifecycle(db).create(schemas.RequestCreate(service="Towing"), customer)
    assert request.user_id == customer.id
    assert request.workshop_name is None


def test_customer_cannot_create_for_someone_else(db, make_user):
    customer = make_user()
    other = make_user()
    with pytest.raises(Forbidden):
        RequestLifecycle(db).create(schemas.RequestCreate(user_id=other.id, service="Towing"), customer)


def test_create_with_unknown_workshop(db, make_user):
    customer = make_user()
    with pytest.raises(NotFound):
        RequestLifecycle(db).create(schemas.RequestCreate(service="Towing", workshop_id=77), customer)


def test_transition_writes_exactly_one_history_row(db, make_user, make_workshop, make_request):
    admin = make_user("admin")
    request = make_request(make_user(), make_workshop())
    updated = RequestLifecycle(db).transition(request.id, "accepted", admin)
    assert updated.status == "accepted"
    rows = history_rows(db, request.id)
    assert [(r.from_status, r.to_status, r.changed_by_user_id) for r in rows] == [("pending", "accepted", admin.id)]


def test_same_status_is_a_noop(db, make_user, make_workshop, make_request):
    admin = make_user("admin")
    request = make_request(make_user(), make_workshop(), status="accepted")
    updated = RequestLifecycle(db).transition(request.id, "accepted", admin)
    assert updated.status == "accepted"
    assert history_rows(db, request.id) == []


def test_full_lifecycle(db, make_user, make_workshop, make_request, assign):
    worker = make_user("worker")
    workshop = make_workshop()
    assign(worker, workshop)
    request = make_request(make_user(), workshop)
    lifecycle = RequestLifecycle(db)
    for target in ("accepted", "in_progress", "completed"):
        lifecycle.transition(request.id, target, worker, notes=f"to {target}")
    rows = history_rows(db, request.id)
    assert [(r.from_status, r.to_status) for r in rows] == [
        ("pending", "accepted"),
        ("accepted", "in_progress"),
        ("in_progress", "completed"),
    ]
    assert rows[-1].notes == "to completed"


def test_worker_accepting_is_recorded_as_assignee(db, make_user, make_workshop, make_request, assign):
    worker = make_user("worker")
    workshop = make_workshop()
    assign(worker, workshop)
    request = make_request(make_user(), workshop)
    updated = RequestLifecycle(db).transition(request.id, "accepted", worker)
    assert updated.assigned_worker_id == worker.id


def test_unknown_status(db, make_user, make_workshop, make_request):
    admin = make_user("admin")
    request = make_request(make_user(), make_workshop())
    with pytest.raises(InvalidStatus):
        RequestLifecycle(db).transition(request.id, "done", admin)


def test_missing_request(db, make_user):
    with pytest.raises(NotFound):
        RequestLifecycle(db).transition(12345, "accepted", make_user("admin"))


def test_unassigned_worker_is_forbidden(db, make_user, make_workshop, make_request, assign):
    worker = make_user("worker")
    assign(worker, make_workshop())
    request = make_request(make_user(), make_workshop())
    with pytest.raises(Forbidden):
        RequestLifecycle(db).transition(request.id, "accepted", worker)
    assert history_rows(db, request.id) == []


def test_illegal_edge_is_rejected(db, make_user, make_workshop, make_request):
    admin = make_user("admin")
    request = make_request(make_user(), make_workshop())
    with pytest.raises(InvalidTransition):
        RequestLifecycle(db).transition(request.id, "completed", admin)
    terminal = make_request(make_user(), make_workshop(), status="cancelled")
    with pytest.raises(InvalidTransition):
        RequestLifecycle(db).transition(terminal.id, "pending", admin)


def test_edge_enforcement_can_be_switched_off(db, monkeypatch, make_user, make_workshop, make_request):
    monkeypatch.setenv("ENFORCE_STATUS_TRANSITIONS", "false")
    admin = make_user("admin")
    request = make_request(make_user(), make_workshop(), status="completed")
    updated = RequestLifecycle(db).transition(request.id, "pending", admin)
    assert updated.status == "pending"
    assert [(r.from_status, r.to_status) for r in history_rows(db, request.id)] == [("completed", "pending")]


def test_stale_read_loses_the_race(session_factory, make_user, make_workshop, make_request):
    admin = make_user("admin")
    request = make_request(make_user(), make_workshop())

    first, second = session_factory(), session_factory()
    try:
        stale = first.get(models.ServiceRequest, request.id)
        assert stale.status == "pending"

        RequestLifecycle(second).transition(request.id, "accepted", second.get(models.User, admin.id))

        with pytest.raises(Conflict):
            RequestLifecycle(first).transition(request.id, "cancelled", first.get(models.User, admin.id))
    finally:
        first.close()
        second.close()

    check = session_factory()
    try:
        assert check.get(models.ServiceRequest, request.id).status == "accepted"
        assert [(r.from_status, r.to_status) for r in history_rows(check, request.id)] == [("pending", "accepted")]
    finally:
        check.close()


def test_history_visibility(db, make_user, make_workshop, make_request):
    customer = make_user()
    stranger = make_user()
    admin = make_user("admin")
    request = make_request(customer, make_workshop())
    lifecycle = RequestLifecycle(db)
    lifecycle.transition(request.id, "cancelled", admin)
    assert [r.to_status for r in lifecycle.status_history(request.id, customer)] == ["cancelled"]
    with pytest.raises(Forbidden):
        lifecycle.status_history(request.id, stranger)


def test_review_rules(db, make_user, make_workshop, make_request):
    customer = make_user()
    workshop = make_workshop()
    lifecycle = RequestLifecycle(db)
    payload = schemas.ReviewCreate(rating=5, comment="Quick and friendly")

    open_request = make_request(customer, workshop, status="in_progress")
    with pytest.raises(ValidationError):
        lifecycle.review(open_request.id, payload, customer)

    unlinked = make_request(customer, status="completed")
    with pytest.raises(ValidationError):
        lifecycle.review(unlinked.id, payload, customer)

    done = make_request(customer, workshop, status="completed")
    with pytest.raises(Forbidden):
        lifecycle.review(done.id, payload, make_user())

    review = lifecycle.review(done.id, payload, customer)
    assert review.workshop_id == workshop.id
    assert review.rating == 5
    with pytest.raises(Conflict):
        lifecycle.review(done.id, schemas.ReviewCreate(rating=1), customer)
