"""Token issuer: signed access tokens and store-backed refresh tokens."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

import jwt

from models.base_model import utcnow
from models.user import User
from services.errors import ExpiredToken, InvalidToken
from services.refresh_token_store import RefreshTokenStore
from utils.security import decode_jwt, encode_jwt, generate_jti, to_timestamp

ACCESS_TOKEN_TYPE = "access"


class TokenIssuer:
    def __init__(
        self,
        refresh_tokens: RefreshTokenStore,
        secret: str,
        access_lifetime: timedelta = timedelta(minutes=15),
        algorithm: str = "HS256",
        issuer: str = "treenetra-api",
        clock: Callable[[], datetime] = utcnow,
    ):
        self._refresh_tokens = refresh_tokens
        self._secret = secret
        self._access_lifetime = access_lifetime
        self._algorithm = algorithm
        self._issuer = issuer
        self._clock = clock

    @property
    def access_lifetime_seconds(self) -> int:
        return int(self._access_lifetime.total_seconds())

    def issue_access_token(self, user: User) -> str:
        now = self._clock()
        payload = {
            "iss": self._issuer,
            "sub": str(user.id),
            "email": user.email,
            "role": user.role,
            "type": ACCESS_TOKEN_TYPE,
            "iat": to_timestamp(now),
            "exp": to_timestamp(now + self._access_lifetime),
            "jti": generate_jti(),
        }
        return encode_jwt(payload, self._secret, self._algorithm)

    def verify_access_token(self, token: str) -> Dict[str, Any]:
        """
        InvalidToken for bad signatures or malformed tokens, ExpiredToken once
        exp has passed. Callers treat the two differently (reject vs refresh).
        """
        if not token:
            raise InvalidToken()
        try:
            claims = decode_jwt(token, self._secret, self._algorithm, issuer=self._issuer)
        except jwt.InvalidTokenError:
            raise InvalidToken()
        if claims.get("type") != ACCESS_TOKEN_TYPE:
            raise InvalidToken("Invalid token type")
        try:
            expires = int(claims["exp"])
        except (TypeError, ValueError):
            raise InvalidToken()
        if to_timestamp(self._clock()) >= expires:
            raise ExpiredToken()
        return claims

    def issue_refresh_token(self, user_id: str, ip: Optional[str] = None, user_agent: Optional[str] = None,
                            token: Optional[str] = None) -> str:
        return self._refresh_tokens.create(user_id, ip=ip, user_agent=user_agent, token=token).token
