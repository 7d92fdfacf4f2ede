from pathlib import Path
from typing import Optional

import dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

dotenv.load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore")

    PAGE_URL: str = "https://ai.azure.com/nextgen"
    DATA_FILE_PATH: Path = Path("./data.json")

    # one week of hourly checks
    MAX_CHECKS: int = 168

    MARKER_ID: str = "ai-foundry-host-context"

    OVERRIDE_LOGGING: str = "INFO"

    TELEGRAM_TOKEN: Optional[str] = None
    TELEGRAM_CHAT_ID: Optional[str] = None

    PUSH_GATEWAY: Optional[str] = None


SETTINGS = Settings()
