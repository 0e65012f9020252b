from __future__ import annotations

import os
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv


load_dotenv()

DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
REQUIRED_ENV = ("OPENAI_API_KEY", "ASSISTANT_ID")


class Settings:
    """Relay settings loaded from environment variables.

    Read once per process; the relay treats the instance as immutable.
    """

    def __init__(self) -> None:
        self.app_env: str = os.getenv("APP_ENV", "development")
        self.openai_api_key: Optional[str] = os.getenv("OPENAI_API_KEY")
        self.assistant_id: Optional[str] = os.getenv("ASSISTANT_ID")
        self.openai_base_url: str = os.getenv("OPENAI_BASE_URL", DEFAULT_OPENAI_BASE_URL).rstrip("/")
        self.host: str = os.getenv("HOST", "0.0.0.0")
        self.port: int = int(os.getenv("PORT") or "3000")

    def missing_required(self) -> List[str]:
        values = {
            "OPENAI_API_KEY": self.openai_api_key,
            "ASSISTANT_ID": self.assistant_id,
        }
        return [name for name in REQUIRED_ENV if not values[name]]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
