"""Configuration for the site client."""

from pathlib import Path

from pydantic import BaseModel


class Config(BaseModel):
    """Connection parameters and tracker settings for one site."""

    database_url: str
    firebase_credentials_path: Path
    web_api_key: str = ""
    admin_marker: str = "admin"
    primary_ip_url: str = "https://api.ipify.org?format=json"
    fallback_ip_url: str = "https://ipapi.co/json/"
    ip_lookup_timeout_seconds: float = 5.0
    load_timeout_seconds: float = 15.0


def load_config(path: Path) -> Config:
    """Load configuration from a JSON file."""
    return Config.model_validate_json(path.read_text())
