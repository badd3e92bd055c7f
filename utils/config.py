"""Environment driven settings for the expense API."""
import os
from dotenv import load_dotenv
from pydantic import BaseModel


# Searches for .env in current dir and parent dirs
load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").lower() == "true"


class Settings(BaseModel):
    """Runtime configuration. Build from the environment with `Settings.from_env()`."""
    seed_sample_expenses: bool = True
    list_newest_first: bool = False
    require_all_fields: bool = False
    id_strategy: str = "sequential"
    rate_limit: str = "60/minute"
    rate_limit_enabled: bool = True
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            seed_sample_expenses=_env_flag("SEED_SAMPLE_EXPENSES", True),
            list_newest_first=_env_flag("LIST_NEWEST_FIRST", False),
            require_all_fields=_env_flag("REQUIRE_ALL_FIELDS", False),
            id_strategy=os.getenv("EXPENSE_ID_STRATEGY", "sequential").lower(),
            rate_limit=os.getenv("RATE_LIMIT", "60/minute"),
            rate_limit_enabled=_env_flag("RATE_LIMIT_ENABLED", True),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
        )
