"""Session tokens.

Tokens are HS256 JWTs carrying ``sub`` (principal id), ``role``, ``gen``,
``iat`` and ``exp``. The signing key is not the server secret itself but
``HMAC(secret, "<principal id>.<generation>")``. The generation is a
per-principal counter bumped on password or role change, so bumping it
invalidates every token issued before without keeping a blacklist.
"""
import hashlib
import hmac
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Protocol
from jose import jwt, JWTError
from app.core.base import utcnow

log = logging.getLogger("auth.tokens")


class TokenError(Exception):
    pass

class TokenExpired(TokenError):
    pass

class TokenInvalid(TokenError):
    pass

class PrincipalRotated(TokenError):
    pass


@dataclass(frozen=True)
class RotationMarker:
    role: str
    generation: int


class RotationMarkerStore(Protocol):
    async def rotation_marker(self, user_id: uuid.UUID) -> RotationMarker | None: ...


@dataclass(frozen=True)
class VerifiedToken:
    principal_id: uuid.UUID
    role: str
    issued_at: datetime
    expires_at: datetime


class TokenService:
    def __init__(self, secret: str, *, ttl: timedelta = timedelta(days=7), algorithm: str = "HS256",
                 clock_skew: timedelta = timedelta(seconds=5), clock: Callable[[], datetime] = utcnow):
        if not secret:
            raise ValueError("token secret must not be empty")
        self._secret = secret.encode("utf-8")
        self.ttl = ttl
        self.algorithm = algorithm
        self.clock_skew = clock_skew
        self.clock = clock

    def _signing_key(self, principal_id: str, generation: int) -> str:
        msg = f"{principal_id}.{generation}".encode("utf-8")
        return hmac.new(self._secret, msg, hashlib.sha256).hexdigest()

    def issue(self, principal_id: uuid.UUID, role: str, generation: int = 0) -> str:
        now = self.clock()
        claims = {
            "sub": str(principal_id),
            "role": role,
            "gen": generation,
            "iat": int(now.timestamp()),
            "exp": int((now + self.ttl).timestamp()),
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(claims, self._signing_key(str(principal_id), generation), algorithm=self.algorithm)

    async def verify(self, token: str, markers: RotationMarkerStore) -> VerifiedToken:
        try:
            unverified = jwt.get_unverified_claims(token)
            principal_id = uuid.UUID(str(unverified["sub"]))
            claimed_gen = int(unverified["gen"])
        except (JWTError, KeyError, ValueError, TypeError):
            raise TokenInvalid("malformed token")

        marker = await markers.rotation_marker(principal_id)
        if marker is None:
            raise TokenInvalid("principal no longer exists")

        try:
            # expiry and issued-at are checked below against our own clock
            claims = jwt.decode(
                token,
                self._signing_key(str(principal_id), claimed_gen),
                algorithms=[self.algorithm],
                options={"verify_exp": False, "verify_iat": False, "verify_aud": False},
            )
        except JWTError:
            raise TokenInvalid("bad signature")

        try:
            issued_at = datetime.fromtimestamp(int(claims["iat"]), tz=timezone.utc)
            expires_at = datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc)
            role = str(claims["role"])
        except (KeyError, ValueError, TypeError):
            raise TokenInvalid("missing claims")

        now = self.clock()
        if issued_at > now + self.clock_skew:
            raise TokenInvalid("token used before issued-at")
        if now >= expires_at + self.clock_skew:
            raise TokenExpired("token expired")
        if claimed_gen != marker.generation:
            log.debug(f"Token for {principal_id} carries generation {claimed_gen}, current is {marker.generation}")
            raise PrincipalRotated("signing context rotated")
        return VerifiedToken(principal_id=principal_id, role=role, issued_at=issued_at, expires_at=expires_at)
