"""
Task API — Token Issuer/Verifier
=================================

What:  Mints and verifies the signed, time-bounded access tokens.
Why:   Stateless verification: any worker can check a token with nothing but
       the signing secret, so no session table is needed.
How:   HS256 JWT via python-jose. Claims: sub (user id as string), iat, exp.
Who:   AccountService.login() issues; the authentication dependency verifies.

Verification outcomes:
    ┌──────────────────────┬────────────────────────────────────────────┐
    │ TokenFailure         │ Cause                                      │
    ├──────────────────────┼────────────────────────────────────────────┤
    │ MALFORMED            │ not a JWT, bad segments/JSON, missing or   │
    │                      │ non-numeric sub, missing iat/exp           │
    │ INVALID_SIGNATURE    │ payload or header altered, wrong key/alg   │
    │ EXPIRED              │ now > exp                                  │
    └──────────────────────┴────────────────────────────────────────────┘

    Signature is checked before expiry, so a tampered expired token reports
    INVALID_SIGNATURE. Callers map every outcome to the same 401.

Revocation:
    There is none. A leaked token is valid until exp; the TTL bounds that
    window. verify() never queries the store.
"""

import enum
import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Callable, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError

from taskapi.config import PLACEHOLDER_SECRETS, settings

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

REQUIRED_CLAIMS = ("sub", "iat", "exp")


class TokenFailure(str, enum.Enum):
    MALFORMED = "malformed"
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"


class TokenVerificationError(Exception):
    """Raised by TokenService.verify(); `failure` says which check failed."""

    def __init__(self, failure: TokenFailure, detail: str = ""):
        self.failure = failure
        self.detail = detail
        super().__init__(f"{failure.value}: {detail}" if detail else failure.value)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """
    Issues and verifies access tokens with an explicitly supplied secret.

    The secret is a constructor argument rather than a read of global
    settings, so tests can build isolated instances with known keys.

    Args:
        secret_key:   HMAC signing secret (must be non-empty)
        ttl_seconds:  Token lifetime
        algorithm:    JWT HMAC algorithm (HS256 by default)
        clock:        Returns "now" for issuing; defaults to UTC wall clock
    """

    def __init__(
        self,
        secret_key: str,
        ttl_seconds: int,
        algorithm: str = "HS256",
        clock: Optional[Clock] = None,
    ):
        if not secret_key:
            raise ValueError("TokenService requires a non-empty secret_key")
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be at least 1")
        self._secret_key = secret_key
        self._algorithm = algorithm
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock or _utc_now

    def issue(self, user_id: int) -> str:
        """Create a signed token for `user_id` that expires after the TTL."""
        issued_at = self._clock()
        claims = {
            # python-jose requires sub to be a string
            "sub": str(user_id),
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self.ttl).timestamp()),
        }
        return jwt.encode(claims, self._secret_key, algorithm=self._algorithm)

    def verify(self, token: str) -> int:
        """
        Validate `token` and return the user id it was issued for.

        Raises:
            TokenVerificationError: with MALFORMED, INVALID_SIGNATURE or EXPIRED
        """
        if not token:
            raise TokenVerificationError(TokenFailure.MALFORMED, "empty token")

        # Decoding without the key first separates "not a token of ours"
        # from "a token that fails the signature check"
        try:
            unverified = jwt.get_unverified_claims(token)
        except JWTError as e:
            raise TokenVerificationError(TokenFailure.MALFORMED, str(e)) from e
        missing = [claim for claim in REQUIRED_CLAIMS if claim not in unverified]
        if missing:
            raise TokenVerificationError(
                TokenFailure.MALFORMED, "missing claims: " + ", ".join(missing)
            )

        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={
                    "require_sub": True,
                    "require_iat": True,
                    "require_exp": True,
                },
            )
        except ExpiredSignatureError as e:
            raise TokenVerificationError(TokenFailure.EXPIRED, str(e)) from e
        except JWTClaimsError as e:
            raise TokenVerificationError(TokenFailure.MALFORMED, str(e)) from e
        except JWTError as e:
            raise TokenVerificationError(TokenFailure.INVALID_SIGNATURE, str(e)) from e

        try:
            user_id = int(payload["sub"])
        except (KeyError, TypeError, ValueError) as e:
            raise TokenVerificationError(TokenFailure.MALFORMED, "subject is not a user id") from e
        if user_id < 1:
            raise TokenVerificationError(TokenFailure.MALFORMED, "subject is not a user id")
        return user_id


@lru_cache(maxsize=1)
def get_token_service() -> TokenService:
    """
    FastAPI dependency returning the process-wide TokenService.

    Built once from settings on first use; the secret is never rotated during
    the life of the process. Override in tests via app.dependency_overrides.

    Raises:
        RuntimeError: the configured secret is a known placeholder
    """
    if settings.jwt_secret_key in PLACEHOLDER_SECRETS:
        logger.critical("JWT_SECRET_KEY is a placeholder; refusing to issue or verify tokens")
        raise RuntimeError("JWT_SECRET_KEY is not configured")
    logger.info(
        "Token service initialized (alg=%s, ttl=%ds)",
        settings.jwt_algorithm,
        settings.access_token_ttl_seconds,
    )
    return TokenService(
        secret_key=settings.jwt_secret_key,
        ttl_seconds=settings.access_token_ttl_seconds,
        algorithm=settings.jwt_algorithm,
    )
