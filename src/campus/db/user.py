from datetime import datetime
from typing import List, Optional
import aiosqlite
from campus.config import users_table_name, user_roles_table_name, roles_table_name
from campus.models import User, UserStatus
from campus.utils.db import (
    execute_db_operation,
    format_sqlite_datetime,
    get_new_db_connection,
    utc_now_str,
)

USER_COLUMNS = [
    "id",
    "email",
    "first_name",
    "last_name",
    "password_hash",
    "status",
    "is_email_verified",
    "email_verification_token",
    "password_reset_token",
    "password_reset_expires",
    "refresh_token_hash",
    "last_login_at",
    "created_at",
    "updated_at",
]

# Columns callers may change through update_user
UPDATABLE_USER_COLUMNS = {
    "email",
    "first_name",
    "last_name",
    "password_hash",
    "status",
    "is_email_verified",
    "email_verification_token",
    "password_reset_token",
    "password_reset_expires",
    "refresh_token_hash",
    "last_login_at",
}

_select_user = f"SELECT {', '.join(USER_COLUMNS)} FROM {users_table_name}"


class EmailAlreadyRegisteredError(ValueError):
    pass


def _to_db_value(value):
    if isinstance(value, UserStatus):
        return value.value
    if isinstance(value, datetime):
        return format_sqlite_datetime(value)
    return value


def convert_user_db_to_model(row) -> User:
    return User(**dict(zip(USER_COLUMNS, row)))


async def get_user_by_id(user_id: int) -> Optional[User]:
    row = await execute_db_operation(
        f"{_select_user} WHERE id = ?", (user_id,), fetch_one=True
    )
    return convert_user_db_to_model(row) if row else None


async def get_user_by_email(email: str) -> Optional[User]:
    row = await execute_db_operation(
        f"{_select_user} WHERE email = ?", (email.strip().lower(),), fetch_one=True
    )
    return convert_user_db_to_model(row) if row else None


async def get_user_by_verification_token(token: str) -> Optional[User]:
    row = await execute_db_operation(
        f"{_select_user} WHERE email_verification_token = ?", (token,), fetch_one=True
    )
    return convert_user_db_to_model(row) if row else None


async def get_user_by_password_reset_token(token: str) -> Optional[User]:
    row = await execute_db_operation(
        f"{_select_user} WHERE password_reset_token = ?", (token,), fetch_one=True
    )
    return convert_user_db_to_model(row) if row else None


async def get_all_users() -> List[User]:
    rows = await execute_db_operation(
        f"{_select_user} ORDER BY created_at DESC, id DESC", fetch_all=True
    )
    return [convert_user_db_to_model(row) for row in rows]


async def create_user(
    email: str,
    first_name: str,
    last_name: str,
    password_hash: str,
    status: UserStatus = UserStatus.PENDING_VERIFICATION,
    is_email_verified: bool = False,
    email_verification_token: Optional[str] = None,
    role_names: Optional[List[str]] = None,
) -> User:
    """Insert a user and its initial role assignments in one transaction.

    Raises EmailAlreadyRegisteredError when the email is taken, including when
    a concurrent request wins the race between the caller's check and this insert.
    """
    async with get_new_db_connection() as conn:
        cursor = await conn.cursor()

        try:
            await cursor.execute(
                f"""INSERT INTO {users_table_name}
                    (email, first_name, last_name, password_hash, status, is_email_verified, email_verification_token)
                    VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    email.strip().lower(),
                    first_name,
                    last_name,
                    password_hash,
                    UserStatus(status).value,
                    is_email_verified,
                    email_verification_token,
                ),
            )
        except aiosqlite.IntegrityError as e:
            raise EmailAlreadyRegisteredError(
                "User with this email already exists"
            ) from e

        user_id = cursor.lastrowid

        if role_names:
            placeholders = ", ".join(["?"] * len(role_names))
            await cursor.execute(
                f"""INSERT INTO {user_roles_table_name} (user_id, role_id, assigned_at)
                    SELECT ?, id, ? FROM {roles_table_name}
                    WHERE name IN ({placeholders}) AND is_active = 1""",
                (user_id, utc_now_str(), *role_names),
            )

        await conn.commit()

        await cursor.execute(f"{_select_user} WHERE id = ?", (user_id,))
        row = await cursor.fetchone()

    return convert_user_db_to_model(row)


async def update_user(user_id: int, **fields) -> bool:
    unknown = set(fields) - UPDATABLE_USER_COLUMNS
    if unknown:
        raise ValueError(f"Cannot update columns: {', '.join(sorted(unknown))}")

    if not fields:
        return False

    values = [_to_db_value(value) for value in fields.values()]
    assignments = ", ".join(f"{column} = ?" for column in fields)

    rowcount = await execute_db_operation(
        f"UPDATE {users_table_name} SET {assignments}, updated_at = ? WHERE id = ?",
        (*values, utc_now_str(), user_id),
    )
    return rowcount > 0


async def consume_email_verification_token(user_id: int, token: str) -> bool:
    """Mark the email verified, but only if the token is still the one stored.
    Returns False when another request consumed it first.

    Only a PENDING_VERIFICATION account is activated; a suspended or inactive
    account keeps its status.
    """
    rowcount = await execute_db_operation(
        f"""UPDATE {users_table_name}
            SET is_email_verified = 1, email_verification_token = NULL,
                status = CASE WHEN status = ? THEN ? ELSE status END, updated_at = ?
            WHERE id = ? AND email_verification_token = ? AND is_email_verified = 0""",
        (
            UserStatus.PENDING_VERIFICATION.value,
            UserStatus.ACTIVE.value,
            utc_now_str(),
            user_id,
            token,
        ),
    )
    return rowcount > 0


async def consume_password_reset_token(
    user_id: int, token: str, password_hash: str, activate: bool
) -> bool:
    """Swap in a new password hash and clear the reset token in one update.

    Also drops the stored refresh token fingerprint so sessions opened with the
    old password cannot be refreshed. With ``activate`` the account becomes
    ACTIVE and its email counts as verified.
    """
    activate_clause = (
        ", status = ?, is_email_verified = 1, email_verification_token = NULL"
        if activate
        else ""
    )
    params = [password_hash, utc_now_str()]
    if activate:
        params.append(UserStatus.ACTIVE.value)

    rowcount = await execute_db_operation(
        f"""UPDATE {users_table_name}
            SET password_hash = ?, password_reset_token = NULL, password_reset_expires = NULL,
                refresh_token_hash = NULL, updated_at = ?{activate_clause}
            WHERE id = ? AND password_reset_token = ?""",
        (*params, user_id, token),
    )
    return rowcount > 0
