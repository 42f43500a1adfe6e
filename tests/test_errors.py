"""Domain error kinds and their HTTP rendering."""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.errors import (
    AvailabilityConflict,
    BookingError,
    CapacityExceeded,
    Forbidden,
    InvalidDateRange,
    InvalidRequest,
    InvalidTransition,
    NotFound,
    PropertyUnavailable,
    StoreError,
    Unauthenticated,
    UNPROCESSABLE,
    register_error_handlers,
)

KINDS = [
    (InvalidRequest, 422, "invalid_request"),
    (NotFound, 404, "not_found"),
    (Unauthenticated, 401, "unauthenticated"),
    (Forbidden, 403, "forbidden"),
    (PropertyUnavailable, 422, "property_unavailable"),
    (CapacityExceeded, 422, "capacity_exceeded"),
    (InvalidDateRange, 422, "invalid_date_range"),
    (AvailabilityConflict, 409, "availability_conflict"),
    (InvalidTransition, 400, "invalid_transition"),
    (StoreError, 503, "store_error"),
]


def _app_raising(exc: BookingError) -> FastAPI:
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/boom")
    async def boom():
        raise exc

    return app


@pytest.mark.parametrize("cls, code, kind", KINDS)
def test_status_and_kind(cls, code, kind):
    exc = cls()
    assert isinstance(exc, BookingError)
    assert exc.status_code == code
    assert exc.error == kind
    assert exc.detail == cls.default_detail


@pytest.mark.parametrize("cls, code, kind", KINDS)
def test_rendered_as_detail_and_error(cls, code, kind):
    with TestClient(_app_raising(cls("custom message"))) as c:
        resp = c.get("/boom")
    assert resp.status_code == code
    assert resp.json() == {"detail": "custom message", "error": kind}


def test_unauthenticated_carries_challenge_header():
    with TestClient(_app_raising(Unauthenticated())) as c:
        resp = c.get("/boom")
    assert resp.headers["www-authenticate"] == "Bearer"


def test_conflict_default_message():
    assert AvailabilityConflict().detail == "Property is already booked for the selected dates"


def test_unprocessable_kinds_share_plain_422():
    for cls in (InvalidRequest, PropertyUnavailable, CapacityExceeded, InvalidDateRange):
        assert type(cls.status_code) is int
        assert cls.status_code == UNPROCESSABLE == 422
