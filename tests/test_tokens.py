import uuid
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from app.modules.auth.tokens import (PrincipalRotated, RotationMarker, TokenExpired, TokenInvalid,
                                     TokenService)

SECRET = "unit-test-secret"


class Clock:
    def __init__(self):
        self.now = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


class Markers:
    def __init__(self):
        self.markers: dict[uuid.UUID, RotationMarker] = {}

    async def rotation_marker(self, user_id):
        return self.markers.get(user_id)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def markers():
    return Markers()


@pytest.fixture
def tokens(clock):
    return TokenService(SECRET, ttl=timedelta(days=7), clock_skew=timedelta(seconds=5), clock=clock)


@pytest.fixture
def user_id(markers):
    uid = uuid.uuid4()
    markers.markers[uid] = RotationMarker(role="doctor", generation=0)
    return uid


class TestTokenService:
    async def test_issue_then_verify(self, tokens, markers, user_id):
        verified = await tokens.verify(tokens.issue(user_id, "doctor"), markers)
        assert verified.principal_id == user_id
        assert verified.role == "doctor"
        assert verified.expires_at - verified.issued_at == timedelta(days=7)

    def test_empty_secret_is_refused(self):
        with pytest.raises(ValueError):
            TokenService("")

    async def test_expired(self, tokens, markers, user_id, clock):
        token = tokens.issue(user_id, "doctor")
        clock.now += timedelta(days=7, seconds=6)
        with pytest.raises(TokenExpired):
            await tokens.verify(token, markers)

    async def test_expiry_tolerates_clock_skew(self, tokens, markers, user_id, clock):
        token = tokens.issue(user_id, "doctor")
        clock.now += timedelta(days=7, seconds=3)
        assert (await tokens.verify(token, markers)).principal_id == user_id

    async def test_issued_in_the_future(self, tokens, markers, user_id, clock):
        token = tokens.issue(user_id, "doctor")
        clock.now -= timedelta(minutes=1)
        with pytest.raises(TokenInvalid):
            await tokens.verify(token, markers)

    async def test_tampered_payload(self, tokens, markers, user_id):
        header, payload, signature = tokens.issue(user_id, "doctor").split(".")
        forged = tokens.issue(user_id, "admin").split(".")[1]
        with pytest.raises(TokenInvalid):
            await tokens.verify(".".join([header, forged, signature]), markers)

    async def test_garbage(self, tokens, markers):
        with pytest.raises(TokenInvalid):
            await tokens.verify("not-a-token", markers)

    async def test_other_secret(self, markers, user_id, clock):
        token = TokenService("another-secret", clock=clock).issue(user_id, "doctor")
        with pytest.raises(TokenInvalid):
            await TokenService(SECRET, clock=clock).verify(token, markers)

    async def test_deleted_principal(self, tokens, markers, user_id):
        token = tokens.issue(user_id, "doctor")
        del markers.markers[user_id]
        with pytest.raises(TokenInvalid):
            await tokens.verify(token, markers)

    async def test_rotation_invalidates_earlier_tokens(self, tokens, markers, user_id):
        old = tokens.issue(user_id, "doctor", generation=0)
        markers.markers[user_id] = RotationMarker(role="admin", generation=1)
        with pytest.raises(PrincipalRotated):
            await tokens.verify(old, markers)

        new = tokens.issue(user_id, "admin", generation=1)
        assert (await tokens.verify(new, markers)).role == "admin"

    async def test_forged_generation_does_not_verify(self, tokens, markers, user_id):
        # claiming the current generation with a key derived for another one fails the signature
        claims = jwt.get_unverified_claims(tokens.issue(user_id, "doctor", generation=0))
        claims["gen"] = 1
        forged = jwt.encode(claims, tokens._signing_key(str(user_id), 0), algorithm="HS256")
        markers.markers[user_id] = RotationMarker(role="doctor", generation=1)
        with pytest.raises(TokenInvalid):
            await tokens.verify(forged, markers)
