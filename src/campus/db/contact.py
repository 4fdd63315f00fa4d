from campus.config import contacts_table_name
from campus.models import Contact
from campus.utils.db import execute_db_operation

CONTACT_COLUMNS = ["id", "name", "email", "message", "created_at"]


def convert_contact_db_to_model(row) -> Contact:
    return Contact(**dict(zip(CONTACT_COLUMNS, row)))


async def create_contact(name: str, email: str, message: str) -> Contact:
    contact_id = await execute_db_operation(
        f"INSERT INTO {contacts_table_name} (name, email, message) VALUES (?, ?, ?)",
        (name, email, message),
        get_last_row_id=True,
    )
    return await get_contact_by_id(contact_id)


async def get_contact_by_id(contact_id: int) -> Contact | None:
    row = await execute_db_operation(
        f"SELECT {', '.join(CONTACT_COLUMNS)} FROM {contacts_table_name} WHERE id = ?",
        (contact_id,),
        fetch_one=True,
    )
    return convert_contact_db_to_model(row) if row else None
