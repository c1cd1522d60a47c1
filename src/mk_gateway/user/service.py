"""User service: register, login, refresh.

Transactions are owned by the router (``async with db.begin()`` on register).
"""

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mk_common.errors import (
    AccountDisabledError,
    EmailExistsError,
    InvalidCredentialsError,
    StudentIdExistsError,
    UsernameExistsError,
    ValidationError,
)
from src.mk_gateway.auth.jwt_handler import (
    create_access_token,
    create_refresh_token,
    decode_token,
)
from src.mk_gateway.auth.password import hash_password, verify_password
from src.mk_gateway.user.db_models import UserModel

_CREATE_ACCOUNT_SQL = text(
    "INSERT INTO accounts (user_id, balance, version) VALUES (:user_id, 0, 0) "
    "ON CONFLICT (user_id) DO NOTHING"
)


class UserService:
    """Stateless: one instance per router module."""

    async def register(
        self,
        username: str,
        student_id: str,
        email: str,
        password: str,
        db: AsyncSession,
        display_name: str | None = None,
    ) -> UserModel:
        """Insert the user and open a zero-balance ledger account in the same transaction.

        With ``CAMPUS_EMAIL_DOMAIN`` set, only addresses on that domain may register.
        """
        domain = settings.CAMPUS_EMAIL_DOMAIN.lower().lstrip("@")
        if domain and email.rsplit("@", 1)[-1].lower() != domain:
            raise ValidationError(f"email must be an @{domain} address")

        taken = (
            (UserModel.username == username, UsernameExistsError),
            (UserModel.student_id == student_id, StudentIdExistsError),
            (UserModel.email == email, EmailExistsError),
        )
        for clause, error in taken:
            result = await db.execute(select(UserModel.id).where(clause))
            if result.scalar_one_or_none() is not None:
                raise error()

        user = UserModel(
            username=username,
            student_id=student_id,
            email=email,
            display_name=display_name,
            password_hash=hash_password(password),
            is_active=True,
        )
        db.add(user)
        await db.flush()  # assigns user.id

        await db.execute(_CREATE_ACCOUNT_SQL, {"user_id": str(user.id)})
        await db.refresh(user)
        return user

    async def login(
        self,
        username: str,
        password: str,
        db: AsyncSession,
    ) -> tuple[UserModel, str, str]:
        """Return (user, access_token, refresh_token).

        Unknown user and wrong password raise the same error.
        """
        result = await db.execute(select(UserModel).where(UserModel.username == username))
        user = result.scalar_one_or_none()

        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()

        if not user.is_active:
            raise AccountDisabledError()

        return user, create_access_token(str(user.id)), create_refresh_token(str(user.id))

    async def refresh(self, refresh_token: str) -> str:
        payload = decode_token(refresh_token, expected_type="refresh")
        return create_access_token(str(payload["sub"]))
