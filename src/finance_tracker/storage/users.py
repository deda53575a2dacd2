from datetime import timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from finance_tracker.core.errors import ValidationError
from finance_tracker.models import Principal, UserAccount
from finance_tracker.storage.database import Database
from finance_tracker.storage.tables import UserRow


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _to_account(row: UserRow) -> UserAccount:
    return UserAccount(
        id=row.id,
        name=row.name,
        email=row.email,
        password_hash=row.password_hash,
        created_at=row.created_at.replace(tzinfo=timezone.utc),
    )


class UserStore:
    def __init__(self, database: Database) -> None:
        self.database = database

    def create(self, *, email: str, password_hash: str, name: str = "") -> UserAccount:
        row = UserRow(name=name, email=normalize_email(email), password_hash=password_hash)
        try:
            with self.database.session_scope() as session:
                session.add(row)
                session.flush()
                session.refresh(row)
                return _to_account(row)
        except IntegrityError as exc:
            raise ValidationError("Email already registered") from exc

    def get_by_email(self, email: str) -> UserAccount | None:
        stmt = select(UserRow).where(UserRow.email == normalize_email(email))
        with self.database.session_scope() as session:
            row = session.scalars(stmt).first()
            return _to_account(row) if row else None

    def get_principal(self, user_id: str) -> Principal | None:
        with self.database.session_scope() as session:
            row = session.get(UserRow, user_id)
            return _to_account(row).to_principal() if row else None
