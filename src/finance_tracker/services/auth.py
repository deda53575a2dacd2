import asyncio
from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext

from finance_tracker.core.errors import AuthError, ValidationError
from finance_tracker.logger import get_logger
from finance_tracker.models import Principal
from finance_tracker.storage.users import UserStore

logger = get_logger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


class AuthService:
    """Issues and verifies bearer tokens for registered users."""

    def __init__(
        self,
        users: UserStore,
        *,
        secret: str,
        algorithm: str = "HS256",
        token_ttl: timedelta = timedelta(days=7),
    ) -> None:
        self.users = users
        self.secret = secret
        self.algorithm = algorithm
        self.token_ttl = token_ttl
        self.pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

    def issue_token(self, principal: Principal) -> str:
        now = datetime.now(timezone.utc)
        payload = {"sub": principal.id, "iat": now, "exp": now + self.token_ttl}
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode_token(self, token: str) -> str:
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.PyJWTError as exc:
            logger.debug("[AUTH] Rejected token: %s", exc)
            raise AuthError() from exc
        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            raise AuthError()
        return subject

    async def authenticate(self, token: str) -> Principal:
        user_id = self.decode_token(token)
        principal = await asyncio.to_thread(self.users.get_principal, user_id)
        if principal is None:
            logger.info("[AUTH] Token for unknown user %s.", user_id)
            raise AuthError()
        return principal

    async def register(self, email: str | None, password: str | None, name: str | None = None) -> tuple[str, Principal]:
        if not email or not email.strip() or not password:
            raise ValidationError("Email & password required")
        password_hash = await asyncio.to_thread(self.pwd_context.hash, password)
        account = await asyncio.to_thread(
            self.users.create,
            email=email,
            password_hash=password_hash,
            name=(name or "").strip(),
        )
        logger.info("[AUTH] Registered user %s.", account.id)
        principal = account.to_principal()
        return self.issue_token(principal), principal

    async def login(self, email: str | None, password: str | None) -> tuple[str, Principal]:
        if not email or not password:
            raise ValidationError(INVALID_CREDENTIALS)
        account = await asyncio.to_thread(self.users.get_by_email, email)
        if account is None:
            raise ValidationError(INVALID_CREDENTIALS)
        verified = await asyncio.to_thread(self.pwd_context.verify, password, account.password_hash)
        if not verified:
            raise ValidationError(INVALID_CREDENTIALS)
        principal = account.to_principal()
        return self.issue_token(principal), principal
