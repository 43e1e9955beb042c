import json
import os
from pathlib import Path
from typing import Dict, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

from errors import ConfigError


# Environment variable for each settings field
ENV_VARS = {
    "client_id": "SNAPTRADE_CLIENT_ID",
    "consumer_key": "SNAPTRADE_CONSUMER_KEY",
    "user_id": "SNAPTRADE_USER_ID",
    "user_secret": "SNAPTRADE_USER_SECRET",
    "broker": "SNAPTRADE_BROKER",
    "account_id": "SNAPTRADE_ACCOUNT_ID",
    "account_name": "SNAPTRADE_ACCOUNT_NAME",
    "sheet_id": "SHEET_ID",
    "sheet_tab": "SHEET_TAB",
    "service_account_file": "GOOGLE_SERVICE_ACCOUNT_FILE",
    "preserve_header": "SHEET_PRESERVE_HEADER",
    "timezone": "SYNC_TIMEZONE",
    "log_level": "LOG_LEVEL",
}

TRUTHY = {"1", "true", "yes", "on", "y"}
FALSY = {"0", "false", "no", "off", "n"}


class Settings(BaseModel):
    """Process-wide configuration, loaded once and passed to every command"""
    model_config = ConfigDict(frozen=True)

    client_id: str = ""
    consumer_key: str = ""
    user_id: str = ""
    user_secret: str = ""
    broker: str = "FIDELITY"
    account_id: Optional[str] = None
    account_name: Optional[str] = None
    sheet_id: str = ""
    sheet_tab: str = "FidelityRaw"
    service_account_file: str = "service-account.json"
    preserve_header: bool = True
    timezone: str = "America/New_York"
    log_level: str = "INFO"

    def require(self, *fields: str) -> None:
        """
        Ensure the given fields are set

        Raises:
            ConfigError: naming the environment variables that are missing
        """
        missing = [ENV_VARS[name] for name in fields if not getattr(self, name)]
        if missing:
            raise ConfigError(f"Missing required settings: {', '.join(missing)}")


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in TRUTHY:
        return True
    if value in FALSY:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build settings from environment variables

    Args:
        environ: Mapping to read from. Defaults to os.environ after loading .env

    Returns:
        Immutable Settings. Empty values fall back to defaults
    """
    if environ is None:
        # Shell exports win over .env values
        load_dotenv()
        environ = os.environ

    values: Dict[str, object] = {}
    for field, var in ENV_VARS.items():
        raw = environ.get(var)
        if raw is None or not raw.strip():
            continue
        if field == "preserve_header":
            values[field] = _parse_bool(var, raw)
        else:
            values[field] = raw.strip()

    return Settings(**values)


def load_service_account_info(path: str) -> Dict[str, str]:
    """
    Load a Google service-account key file

    Args:
        path: Path to the JSON key file

    Returns:
        Parsed key info with at least client_email and private_key
    """
    key_path = Path(path)
    if not key_path.is_file():
        raise ConfigError(f"Service account file not found: {path}")

    try:
        with key_path.open("r", encoding="utf-8") as f:
            info = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigError(f"Cannot read service account file {path}: {e}") from e

    if not isinstance(info, dict):
        raise ConfigError(f"Service account file {path} must contain a JSON object")

    missing = [key for key in ("client_email", "private_key") if not info.get(key)]
    if missing:
        raise ConfigError(f"Service account file {path} is missing: {', '.join(missing)}")

    return info
