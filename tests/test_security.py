import json
import logging

import firebase_admin
import pytest
from firebase_admin import auth

from learning_streak.core.logging import JSONLogFormatter, PerformanceLogger
from learning_streak.core.security import verify_firebase_token
from learning_streak.utils.exceptions import AuthenticationError


@pytest.fixture
def firebase_app(monkeypatch):
    monkeypatch.setattr(firebase_admin, "_apps", {"[DEFAULT]": object()})


async def test_valid_token_returns_claims(firebase_app, monkeypatch):
    monkeypatch.setattr(auth, "verify_id_token", lambda token, check_revoked: {"uid": "u1"})

    assert await verify_firebase_token("good") == {"uid": "u1"}


@pytest.mark.parametrize("error,message", [
    (auth.ExpiredIdTokenError("expired", None), "Authentication token has expired"),
    (auth.RevokedIdTokenError("revoked"), "Authentication token has been revoked"),
    (auth.InvalidIdTokenError("garbage"), "Invalid authentication token"),
    (RuntimeError("boom"), "Authentication failed"),
])
async def test_token_errors_become_authentication_errors(firebase_app, monkeypatch, error, message):
    def reject(token, check_revoked):
        raise error

    monkeypatch.setattr(auth, "verify_id_token", reject)

    with pytest.raises(AuthenticationError) as exc_info:
        await verify_firebase_token("bad")

    assert exc_info.value.message == message
    assert exc_info.value.status_code == 401


async def test_claims_without_uid_rejected(firebase_app, monkeypatch):
    monkeypatch.setattr(auth, "verify_id_token", lambda token, check_revoked: {"email": "a@b.c"})

    with pytest.raises(AuthenticationError):
        await verify_firebase_token("no-uid")


def test_store_timing_is_logged(caplog):
    perf = PerformanceLogger(logging.getLogger("test.perf"))

    with caplog.at_level(logging.DEBUG, logger="test.perf"):
        with perf.measure_time("get"):
            pass

    (record,) = caplog.records
    assert record.operation == "get"
    assert record.store == "firestore"
    assert record.elapsed_ms >= 0
    assert record.levelno == logging.DEBUG

    entry = json.loads(JSONLogFormatter().format(record))
    assert entry["operation"] == "get"
    assert entry["store"] == "firestore"
    assert "elapsed_ms" in entry
