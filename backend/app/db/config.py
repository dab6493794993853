# backend/app/db/config.py
from __future__ import annotations
import logging
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load .env before reading settings
load_dotenv()

# Create dedicated logger for this module
logger = logging.getLogger("app.db.config")

DEFAULT_EXTENSIONS = ".html,.htm,.txt,.css,.pdf,.csv,.info,.xlsx,.xls"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore")

    # Postgres document store
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_name: str = "ingestdb"
    db_schema: str = "ingest"

    store_backend: str = "postgres"  # "postgres" | "memory"

    # Folder ingestion
    uploads_dir: str = "uploads"
    ledger_path: str = "folder_checksums.json"
    default_scope: str = "directory-index"
    allowed_extensions: str = DEFAULT_EXTENSIONS
    unknown_duplicate_policy: str = "ledger"  # "ledger" | "skip"

    search_size: int = 50

    @property
    def database_url(self) -> str:
        return (
            f"postgresql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    @property
    def extensions(self) -> List[str]:
        exts = []
        for raw in self.allowed_extensions.split(","):
            ext = raw.strip().lower()
            if not ext:
                continue
            exts.append(ext if ext.startswith(".") else f".{ext}")
        return exts

    def masked_database_url(self) -> str:
        password = "*****" if self.db_password else ""
        return (
            f"postgresql://{self.db_user}:{password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )


# Instantiate settings once
settings = Settings()

if settings.store_backend == "postgres":
    logger.info(f"Document store DSN: {settings.masked_database_url()}")
