import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        protected_usernames: tuple[str, ...],
        max_write_retries: int,
        log_level: str,
    ) -> None:
        self.database_url = database_url
        self.protected_usernames = protected_usernames
        self.max_write_retries = max_write_retries
        self.log_level = log_level


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("LEDGER_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


def _split_names(raw: str) -> tuple[str, ...]:
    return tuple(name.strip() for name in raw.split(",") if name.strip())


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "ledger.db"
    database_url = os.getenv("LEDGER_DATABASE_URL", f"sqlite:///{default_db}")
    protected_usernames = _split_names(
        os.getenv("LEDGER_PROTECTED_USERNAMES", "admin")
    )
    max_write_retries = int(os.getenv("LEDGER_MAX_WRITE_RETRIES", "3"))
    log_level = os.getenv("LEDGER_LOG_LEVEL", "INFO").upper()
    return Settings(
        database_url=database_url,
        protected_usernames=protected_usernames,
        max_write_retries=max_write_retries,
        log_level=log_level,
    )
