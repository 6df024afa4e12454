"""Daily job: password expiry warnings. Schedule it with cron, e.g. ``0 8 * * *``."""

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
    summary = container.password_expiration_service.run()
    print(
        f"OK: checked={summary.checked} warnings={summary.warnings_sent} expired={summary.expired_sent}"
    )


if __name__ == "__main__":
    main()
