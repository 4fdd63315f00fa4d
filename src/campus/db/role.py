from typing import Dict, List, Optional
from campus.config import roles_table_name, user_roles_table_name
from campus.models import Role
from campus.utils.db import (
    execute_db_operation,
    execute_multiple_db_operations,
    utc_now_str,
)

ROLE_COLUMNS = ["id", "name", "display_name", "description", "hierarchy_level", "is_active"]

_select_role = f"SELECT {', '.join(ROLE_COLUMNS)} FROM {roles_table_name}"


def convert_role_db_to_model(row) -> Role:
    return Role(**dict(zip(ROLE_COLUMNS, row)))


async def get_role_hierarchy() -> Dict[str, int]:
    """Map of active role name to hierarchy level."""
    rows = await execute_db_operation(
        f"SELECT name, hierarchy_level FROM {roles_table_name} WHERE is_active = 1",
        fetch_all=True,
    )
    return {name: level for name, level in rows}


async def get_active_roles_by_names(names: List[str]) -> List[Role]:
    if not names:
        return []

    placeholders = ", ".join(["?"] * len(names))
    rows = await execute_db_operation(
        f"{_select_role} WHERE name IN ({placeholders}) AND is_active = 1",
        tuple(names),
        fetch_all=True,
    )
    return [convert_role_db_to_model(row) for row in rows]


async def get_active_role_names(user_id: int) -> List[str]:
    """Effective role set: enabled, unexpired assignments of active roles."""
    rows = await execute_db_operation(
        f"""SELECT r.name FROM {user_roles_table_name} ur
            INNER JOIN {roles_table_name} r ON r.id = ur.role_id
            WHERE ur.user_id = ? AND ur.is_active = 1 AND r.is_active = 1
            AND (ur.expires_at IS NULL OR ur.expires_at > ?)
            ORDER BY r.hierarchy_level DESC""",
        (user_id, utc_now_str()),
        fetch_all=True,
    )
    return [row[0] for row in rows]


async def get_active_role_names_for_users(user_ids: List[int]) -> Dict[int, List[str]]:
    if not user_ids:
        return {}

    placeholders = ", ".join(["?"] * len(user_ids))
    rows = await execute_db_operation(
        f"""SELECT ur.user_id, r.name FROM {user_roles_table_name} ur
            INNER JOIN {roles_table_name} r ON r.id = ur.role_id
            WHERE ur.user_id IN ({placeholders}) AND ur.is_active = 1 AND r.is_active = 1
            AND (ur.expires_at IS NULL OR ur.expires_at > ?)
            ORDER BY r.hierarchy_level DESC""",
        (*user_ids, utc_now_str()),
        fetch_all=True,
    )

    roles_by_user = {user_id: [] for user_id in user_ids}
    for user_id, name in rows:
        roles_by_user[user_id].append(name)
    return roles_by_user


def _assign_role_command(user_id: int, role_name: str, expires_at: Optional[str], now: str):
    # Re-granting a disabled or expired assignment revives it; a live one is left alone
    return (
        f"""INSERT INTO {user_roles_table_name} (user_id, role_id, is_active, assigned_at, expires_at)
            SELECT ?, id, 1, ?, ? FROM {roles_table_name} WHERE name = ? AND is_active = 1
            ON CONFLICT(user_id, role_id) DO UPDATE SET
                is_active = 1,
                assigned_at = excluded.assigned_at,
                expires_at = excluded.expires_at
            WHERE {user_roles_table_name}.is_active = 0
               OR ({user_roles_table_name}.expires_at IS NOT NULL AND {user_roles_table_name}.expires_at <= ?)""",
        (user_id, now, expires_at, role_name, now),
    )


def _remove_role_command(user_id: int, role_name: str):
    return (
        f"""DELETE FROM {user_roles_table_name}
            WHERE user_id = ? AND role_id IN (SELECT id FROM {roles_table_name} WHERE name = ?)""",
        (user_id, role_name),
    )


async def apply_role_changes(
    user_id: int,
    roles_to_add: List[str],
    roles_to_remove: List[str],
    expires_at: Optional[str] = None,
):
    """Add and remove role assignments for a user in a single transaction.

    Added roles lapse at ``expires_at`` when one is given. Assignments that are
    neither added nor removed keep their expiry and assignment metadata.
    """
    now = utc_now_str()
    commands = [
        _assign_role_command(user_id, role_name, expires_at, now)
        for role_name in roles_to_add
    ] + [_remove_role_command(user_id, role_name) for role_name in roles_to_remove]

    if commands:
        await execute_multiple_db_operations(commands)
