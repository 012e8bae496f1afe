import logging
import os

# Network
SERVER_HOST = os.getenv("JARZD_SERVER_HOST", "0.0.0.0")
SERVER_PORT = int(os.getenv("JARZD_SERVER_PORT", "5050"))
SERVER_URL = os.getenv("JARZD_SERVER_URL", f"http://127.0.0.1:{SERVER_PORT}")
API_PREFIX = os.getenv("JARZD_API_PREFIX", "")
API_TOKEN = os.getenv("JARZD_API_TOKEN", "public-anon-key")

# No timeout unless configured; a hung request only delays the next cycle
_timeout = os.getenv("JARZD_REQUEST_TIMEOUT")
REQUEST_TIMEOUT = float(_timeout) if _timeout else None

# Sync timing
PUSH_INTERVAL = 0.05  # seconds between snapshot pushes
PULL_INTERVAL = 0.1  # seconds between roster pulls
STALE_AFTER_MS = 5000  # liveness window for room members

ROOM_CODE_LENGTH = 6
GAME_NAME = "jarzd.io"

LOG_LEVEL = os.getenv("JARZD_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s] - %(message)s"


def configure_logging(level=None):
    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format=LOG_FORMAT
    )
