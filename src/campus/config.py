import os
from os.path import join

root_dir = os.path.dirname(os.path.abspath(__file__))

data_root_dir = join(os.path.dirname(os.path.dirname(root_dir)), "db")

if not os.path.exists(data_root_dir):
    os.makedirs(data_root_dir, exist_ok=True)

sqlite_db_path = join(data_root_dir, "db.sqlite")
log_file_path = join(data_root_dir, "backend.log")

roles_table_name = "roles"
users_table_name = "users"
user_roles_table_name = "user_roles"
contacts_table_name = "contacts"
media_table_name = "media"

ALLOWED_MIME_TYPES = {
    "IMAGE": ["image/jpeg", "image/png", "image/gif", "image/webp", "image/svg+xml"],
    "VIDEO": ["video/mp4", "video/mpeg", "video/quicktime", "video/webm"],
    "DOCUMENT": [
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "application/vnd.ms-powerpoint",
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        "text/plain",
    ],
    "AUDIO": ["audio/mpeg", "audio/wav", "audio/ogg", "audio/mp4", "audio/webm"],
    "OTHER": ["application/octet-stream", "application/zip", "application/x-rar-compressed"],
}

MAX_FILE_SIZES = {
    "IMAGE": 10 * 1024 * 1024,
    "VIDEO": 100 * 1024 * 1024,
    "DOCUMENT": 20 * 1024 * 1024,
    "AUDIO": 50 * 1024 * 1024,
    "OTHER": 10 * 1024 * 1024,
}
