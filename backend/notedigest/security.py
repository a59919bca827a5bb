"""
NoteDigest Backend: Bearer Token Verification
=============================================

What:  Turns `Authorization: Bearer <jwt>` into a verified Principal.
How:   python-jose checks signature, expiry and (when configured) audience
       and issuer. The principal id is the token subject, which becomes the
       owner_id of every note the request touches.
Who:   `get_current_principal` is a dependency of every /api/notes route.

Identity tokens are issued elsewhere (e.g. Firebase Auth, whose ID tokens
are RS256 JWTs with the uid in `sub`); this module only verifies them.
"""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from notedigest.config import Settings, settings
from notedigest.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)


class Principal(BaseModel):
    """The authenticated identity attached to a request."""

    uid: str
    email: Optional[str] = None


class TokenVerifier:
    """
    Verifies identity tokens with a shared secret or a PEM public key.

    Args:
        key:        HMAC secret or PEM public key.
        algorithm:  JWS algorithm the issuer signs with.
        audience:   Required `aud` claim, or None to skip the check.
        issuer:     Required `iss` claim, or None to skip the check.
    """

    def __init__(
        self,
        key: str,
        algorithm: str = "HS256",
        audience: Optional[str] = None,
        issuer: Optional[str] = None,
    ):
        self.key = key
        self.algorithm = algorithm
        self.audience = audience
        self.issuer = issuer

    @classmethod
    def from_settings(cls, source: Settings) -> "TokenVerifier":
        key = source.auth_jwt_secret
        if source.auth_jwt_algorithm.upper().startswith(("RS", "ES", "PS")):
            key = source.auth_jwt_public_key
        return cls(
            key=key,
            algorithm=source.auth_jwt_algorithm,
            audience=source.auth_audience,
            issuer=source.auth_issuer,
        )

    def verify(self, token: str) -> Principal:
        """
        Decode and validate a token.

        Raises:
            AuthenticationError: bad signature, expired, wrong audience/issuer,
                no subject, or the verifier has no key configured.
        """
        if not self.key:
            logger.error("Token verification key is not configured")
            raise AuthenticationError(context={"reason": "verifier_not_configured"})

        try:
            claims = jwt.decode(
                token,
                self.key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={"verify_aud": self.audience is not None},
            )
        except JWTError as e:
            logger.info("Rejected bearer token: %s", str(e))
            raise AuthenticationError(context={"reason": "invalid_token"})

        uid = claims.get("sub") or claims.get("user_id")
        if not uid:
            raise AuthenticationError(context={"reason": "missing_subject"})

        return Principal(uid=str(uid), email=claims.get("email"))


token_verifier = TokenVerifier.from_settings(settings)


def get_token_verifier() -> TokenVerifier:
    return token_verifier


async def get_current_principal(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> Principal:
    """FastAPI dependency: the verified principal, or 401."""
    if creds is None or creds.scheme.lower() != "bearer" or not creds.credentials:
        raise AuthenticationError(context={"reason": "missing_credentials"})
    return verifier.verify(creds.credentials)
