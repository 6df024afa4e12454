"""Hourly job: drop revoked-token rows whose tokens have expired."""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.activity_tracking.activity_tracking.container import build_container
from src.activity_tracking.activity_tracking.core.logging_config import configure_logging


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    container = build_container(db_config=dict(settings.DB_CONFIG), settings=settings)
    removed = container.token_revocation_service.cleanup_expired_tokens()
    print(f"OK: removed {removed} expired revoked token(s)")


if __name__ == "__main__":
    main()
