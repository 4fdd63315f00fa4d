import os
from os.path import join
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv
from functools import lru_cache
from campus.config import sqlite_db_path

root_dir = os.path.dirname(os.path.abspath(__file__))
env_path = join(root_dir, ".env.aws")
if os.path.exists(env_path):
    load_dotenv(env_path)


class Settings(BaseSettings):
    jwt_secret: str | None = None
    jwt_refresh_secret: str | None = None
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 7
    password_reset_expire_minutes: int = 15

    sqlite_db_path: str = sqlite_db_path

    frontend_url: str = "http://localhost:3030"
    email_from: str = "noreply@example.com"
    admin_contact_email: str = "admin@example.com"

    s3_bucket_name: str | None = None
    s3_folder_name: str = "media"
    aws_region: str | None = None
    signed_url_expire_seconds: int = 3600

    bugsnag_api_key: str | None = None
    env: str | None = None
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=join(root_dir, ".env"), extra="ignore")


@lru_cache
def get_settings():
    return Settings()


settings = get_settings()
