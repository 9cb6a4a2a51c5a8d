from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

import jwt
from jwt import InvalidTokenError

BEARER_PREFIX = "bearer "


class AuthTokenError(ValueError):
    pass


def create_access_token(
    *,
    user_id: int,
    secret: str,
    algorithm: str = "HS256",
    expires_delta: timedelta | None = None,
) -> str:
    """Mint a token the way the identity provider does (used by tests and local tooling)."""
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=30))
    payload = {"sub": str(user_id), "iat": now, "exp": exp}
    return jwt.encode(payload, secret, algorithm=algorithm)


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.lower().startswith(BEARER_PREFIX):
        raise AuthTokenError("missing bearer token")
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise AuthTokenError("missing bearer token")
    return token


def decode_access_token(
    token: str,
    *,
    secret: str,
    algorithms: Sequence[str],
) -> int:
    try:
        payload = jwt.decode(token, secret, algorithms=list(algorithms))
    except InvalidTokenError as exc:  # includes ExpiredSignatureError
        raise AuthTokenError("invalid token") from exc

    sub = payload.get("sub")
    if sub is None:
        raise AuthTokenError("token missing sub")
    try:
        return int(sub)
    except (TypeError, ValueError) as exc:
        raise AuthTokenError("token sub is not an integer") from exc
