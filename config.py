# config.py
import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


@dataclass(frozen=True)
class AppConfig:
    supabase_url: Optional[str]
    supabase_key: Optional[str]
    schema: str
    google_credentials_json: Optional[str]
    google_token_file: str
    image_folder_id: Optional[str]
    barcode_folder_id: Optional[str]
    log_level: str


def load_config() -> AppConfig:
    """
    Read the app configuration from the environment (and `.env` if present).
    """
    load_dotenv()

    return AppConfig(
        supabase_url=os.getenv("SUPABASE_URL"),
        supabase_key=os.getenv("SUPABASE_KEY"),
        schema=os.getenv("SCHEMA", "public"),
        google_credentials_json=os.getenv("GOOGLE_CREDENTIALS_JSON"),
        google_token_file=os.getenv("GOOGLE_TOKEN_FILE", "token_drive.json"),
        image_folder_id=os.getenv("IMAGE_FOLDER_ID"),
        barcode_folder_id=os.getenv("BARCODE_FOLDER_ID"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(config: AppConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
