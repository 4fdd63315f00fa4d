from campus.auth.constants import ROLE_DISPLAY, ROLE_HIERARCHY
from campus.config import (
    roles_table_name,
    users_table_name,
    user_roles_table_name,
    contacts_table_name,
    media_table_name,
)
from campus.utils.db import get_new_db_connection
from campus.utils.logging import logger


async def create_roles_table(cursor):
    await cursor.execute(
        f"""CREATE TABLE IF NOT EXISTS {roles_table_name} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                display_name TEXT NOT NULL,
                description TEXT,
                hierarchy_level INTEGER NOT NULL,
                is_active BOOLEAN NOT NULL DEFAULT 1,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )"""
    )


async def create_users_table(cursor):
    await cursor.execute(
        f"""CREATE TABLE IF NOT EXISTS {users_table_name} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                email TEXT NOT NULL UNIQUE,
                first_name TEXT NOT NULL,
                last_name TEXT NOT NULL,
                password_hash TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'PENDING_VERIFICATION',
                is_email_verified BOOLEAN NOT NULL DEFAULT 0,
                email_verification_token TEXT UNIQUE,
                password_reset_token TEXT UNIQUE,
                password_reset_expires DATETIME,
                refresh_token_hash TEXT,
                last_login_at DATETIME,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )"""
    )


async def create_user_roles_table(cursor):
    await cursor.execute(
        f"""CREATE TABLE IF NOT EXISTS {user_roles_table_name} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                role_id INTEGER NOT NULL,
                is_active BOOLEAN NOT NULL DEFAULT 1,
                assigned_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                expires_at DATETIME,
                UNIQUE(user_id, role_id),
                FOREIGN KEY (user_id) REFERENCES {users_table_name}(id) ON DELETE CASCADE,
                FOREIGN KEY (role_id) REFERENCES {roles_table_name}(id) ON DELETE CASCADE
            )"""
    )

    await cursor.execute(
        f"""CREATE INDEX IF NOT EXISTS idx_user_roles_user_id ON {user_roles_table_name} (user_id)"""
    )


async def create_contacts_table(cursor):
    await cursor.execute(
        f"""CREATE TABLE IF NOT EXISTS {contacts_table_name} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                email TEXT NOT NULL,
                message TEXT NOT NULL,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )"""
    )


async def create_media_table(cursor):
    await cursor.execute(
        f"""CREATE TABLE IF NOT EXISTS {media_table_name} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                file_name TEXT NOT NULL,
                original_name TEXT NOT NULL,
                mime_type TEXT NOT NULL,
                file_size INTEGER NOT NULL,
                type TEXT NOT NULL,
                status TEXT NOT NULL,
                s3_key TEXT NOT NULL,
                s3_bucket TEXT NOT NULL,
                s3_region TEXT NOT NULL,
                s3_url TEXT NOT NULL,
                entity_type TEXT,
                entity_id TEXT,
                description TEXT,
                alt TEXT,
                uploaded_by_id INTEGER NOT NULL,
                uploaded_by_ip TEXT,
                is_public BOOLEAN NOT NULL DEFAULT 0,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                deleted_at DATETIME,
                FOREIGN KEY (uploaded_by_id) REFERENCES {users_table_name}(id)
            )"""
    )

    await cursor.execute(
        f"""CREATE INDEX IF NOT EXISTS idx_media_uploaded_by_id ON {media_table_name} (uploaded_by_id)"""
    )


async def seed_roles(cursor):
    # INSERT OR IGNORE keeps the level of an existing role untouched
    await cursor.executemany(
        f"""INSERT OR IGNORE INTO {roles_table_name} (name, display_name, description, hierarchy_level)
            VALUES (?, ?, ?, ?)""",
        [
            (name, ROLE_DISPLAY[name][0], ROLE_DISPLAY[name][1], level)
            for name, level in ROLE_HIERARCHY.items()
        ],
    )


async def init_db():
    async with get_new_db_connection() as conn:
        cursor = await conn.cursor()

        await create_roles_table(cursor)
        await create_users_table(cursor)
        await create_user_roles_table(cursor)
        await create_contacts_table(cursor)
        await create_media_table(cursor)
        await seed_roles(cursor)

        await conn.commit()

    logger.info("Database schema ready")
