# helpflow/core/config.py
import json
from typing import Annotated, List, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === MongoDB ===
    mongo_url: str = "mongodb://localhost:27017"
    db_name: str = "helpflow"
    mongo_tls: bool = True
    requests_collection: str = "help_requests"
    history_collection: str = "request_history"
    matches_collection: str = "request_matches"

    # "memory" keeps everything in process (local runs, tests)
    repository_backend: Literal["mongo", "memory"] = "mongo"

    # === Bearer tokens (issued by the auth service, only decoded here) ===
    secret_key: str = "change-me"
    algorithm: str = "HS256"

    # === CORS ===
    # Accepts JSON (["http://a","https://b"]) or a comma separated list ("http://a,https://b")
    cors_origins: Annotated[List[str], NoDecode] = []

    # === Logging ===
    log_level: str = "INFO"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if v is None:
            return []
        if isinstance(v, list):
            return [str(x).strip() for x in v if str(x).strip()]
        if isinstance(v, str):
            s = v.strip()
            if not s:
                return []
            if s.startswith("["):
                try:
                    data = json.loads(s)
                except ValueError:
                    data = None
                # malformed JSON falls through to the comma split
                if isinstance(data, list):
                    return [str(x).strip() for x in data if str(x).strip()]
            return [item.strip() for item in s.split(",") if item.strip()]
        return [str(v).strip()] if str(v).strip() else []

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v):
        return str(v or "INFO").strip().upper()


# Global instance shared by main.py, db.py and the routes
settings = Settings()
