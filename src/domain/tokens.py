"""
Session token issuer - Signed JWTs with revocation support.

Tokens are HS256 JWTs signed with a server-held secret. Each carries the
account id (sub), email, username, issued-at, expiry, a random token id
(jti), a session id (sid) and a type claim (typ) separating access from
refresh tokens.

The access and refresh tokens of one login share a session id, as do
access tokens later minted from that refresh token. Revoking any token of
a session revokes the whole session.

Verification order:
1. Signature (tampered tokens are rejected before claims are read)
2. Claim shape (required claims present and well-typed)
3. Token type (a refresh token never passes as an access token)
4. Expiry, against the injected clock
5. Revocation set (token id, then session id)
"""

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from .exceptions import Unauthorized
from .models import Account, IssuedToken, TokenClaims, utcnow
from .ports import RevocationStore, TokenStatus, TokenType

logger = logging.getLogger(__name__)

_REQUIRED_CLAIMS = ("sub", "email", "username", "iat", "exp", "jti", "sid", "typ")


@dataclass(frozen=True)
class TokenVerification:
    """Result of TokenIssuer.verify(); claims is set only when VALID."""

    status: TokenStatus
    claims: TokenClaims | None = None

    @property
    def is_valid(self) -> bool:
        return self.status is TokenStatus.VALID


@dataclass
class TokenIssuer:
    """Mints and verifies session tokens."""

    secret_key: str
    revocations: RevocationStore
    algorithm: str = "HS256"
    access_ttl: timedelta = timedelta(hours=24)
    refresh_ttl: timedelta = timedelta(days=7)
    clock: Callable[[], datetime] = field(default=utcnow)

    def issue(
        self,
        account: Account,
        token_type: TokenType = TokenType.ACCESS,
        session_id: str | None = None,
    ) -> IssuedToken:
        """
        Sign a token for account.

        Args:
            account: Persisted account (id must be assigned)
            token_type: ACCESS (default) or REFRESH
            session_id: Session to join; a new session is started if None

        Returns:
            IssuedToken with the encoded JWT and its expiry
        """
        ttl = self.refresh_ttl if token_type is TokenType.REFRESH else self.access_ttl
        # JWT timestamps are whole seconds
        issued_at = self.clock().replace(microsecond=0)
        expires_at = issued_at + ttl
        token_id = uuid.uuid4().hex
        session_id = session_id or uuid.uuid4().hex

        payload = {
            "sub": str(account.id),
            "email": account.email,
            "username": account.username,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
            "jti": token_id,
            "sid": session_id,
            "typ": token_type.value,
        }
        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        return IssuedToken(
            token=token,
            token_id=token_id,
            session_id=session_id,
            token_type=token_type,
            issued_at=issued_at,
            expires_at=expires_at,
        )

    def verify(
        self, token: str, expected_type: TokenType = TokenType.ACCESS
    ) -> TokenVerification:
        """
        Verify a presented token.

        Returns:
            TokenVerification with VALID and claims, or INVALID / EXPIRED /
            REVOKED without claims
        """
        claims = self._decode(token)
        if claims is None or claims.token_type is not expected_type:
            return TokenVerification(TokenStatus.INVALID)

        if self.clock() > claims.expires_at:
            return TokenVerification(TokenStatus.EXPIRED)

        if self.revocations.contains(claims.token_id) or self.revocations.contains(claims.session_id):
            return TokenVerification(TokenStatus.REVOKED)

        return TokenVerification(TokenStatus.VALID, claims)

    def revoke(self, token: str) -> TokenClaims:
        """
        Add a token's id and its session id to the revocation set.

        Expired tokens may still be revoked; forged ones may not. The
        session entry outlives every token the session can still mint.

        Raises:
            Unauthorized: signature or claims invalid
        """
        claims = self._decode(token)
        if claims is None:
            raise Unauthorized("Invalid token")
        self.revocations.add(claims.token_id, claims.expires_at)
        self.revocations.add(
            claims.session_id,
            max(claims.expires_at, claims.issued_at + self.refresh_ttl + self.access_ttl),
        )
        logger.info("Revoked %s token %s for account %s", claims.token_type.value, claims.token_id, claims.account_id)
        return claims

    def authenticate(
        self, token: str, expected_type: TokenType = TokenType.ACCESS
    ) -> TokenClaims:
        """
        Return the claims of a VALID token.

        Raises:
            Unauthorized: token invalid, expired or revoked
        """
        verification = self.verify(token, expected_type)
        if verification.claims is None:
            raise Unauthorized(f"Token {verification.status.value}")
        return verification.claims

    def resolve_email(self, token: str) -> str:
        """Project a presented access token to its email claim."""
        return self.authenticate(token).email

    def _decode(self, token: str) -> TokenClaims | None:
        """Check signature and claim shape; expiry is checked by the caller."""
        if not token:
            return None
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError:
            return None

        if any(name not in payload for name in _REQUIRED_CLAIMS):
            return None
        try:
            return TokenClaims(
                account_id=int(payload["sub"]),
                email=str(payload["email"]),
                username=str(payload["username"]),
                token_id=str(payload["jti"]),
                session_id=str(payload["sid"]),
                token_type=TokenType(payload["typ"]),
                issued_at=datetime.fromtimestamp(int(payload["iat"]), UTC),
                expires_at=datetime.fromtimestamp(int(payload["exp"]), UTC),
            )
        except (TypeError, ValueError):
            return None
