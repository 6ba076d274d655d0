import logging
import logging.handlers
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

INTERFACES = ("http", "cli")


def _get_env_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip() in {"1", "true", "True", "yes", "YES", "y"}


def _get_env_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    try:
        return int(val)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer") from exc


def _get_env_float(name: str, default: float) -> float:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    try:
        return float(val)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be a float") from exc


@dataclass
class Config:
    host: str
    port: int
    interface: str
    check_interval_ms: float
    default_label: str
    debug: bool
    log_level: str
    log_dir: Path

    @property
    def check_interval(self) -> float:
        return self.check_interval_ms / 1000.0


def load_config(env_path: Optional[Path] = None) -> Config:
    if env_path is None:
        env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    host = os.getenv("ALARM_HOST", "127.0.0.1")
    port = _get_env_int("ALARM_PORT", 8080)
    if not 0 < port < 65536:
        raise ValueError(f"ALARM_PORT must be between 1 and 65535, got {port}")

    interface = os.getenv("ALARM_INTERFACE", "http").strip().lower()
    if interface not in INTERFACES:
        raise ValueError(f"ALARM_INTERFACE must be one of {', '.join(INTERFACES)}, got {interface!r}")

    check_interval_ms = _get_env_float("ALARM_CHECK_INTERVAL_MS", 500.0)
    default_label = os.getenv("ALARM_DEFAULT_LABEL", "Alarm")
    debug = _get_env_bool("DEBUG", False)
    log_level = os.getenv("LOG_LEVEL", "DEBUG" if debug else "INFO").upper()
    log_dir = Path(os.getenv("LOG_DIR", "logs"))

    return Config(
        host=host,
        port=port,
        interface=interface,
        check_interval_ms=check_interval_ms,
        default_label=default_label,
        debug=debug,
        log_level=log_level,
        log_dir=log_dir,
    )


def setup_logging(log_level: str = "INFO", log_dir: Path = Path("logs")) -> None:
    log_dir.mkdir(parents=True, exist_ok=True)

    log_path = log_dir / "alarm_clock.log"
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=1_000_000, backupCount=3, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        handlers=[file_handler, console_handler],
    )
