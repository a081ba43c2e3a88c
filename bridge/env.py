import os
import json
import logging
from dotenv import load_dotenv

load_dotenv()  # reads .env from the cwd

logger = logging.getLogger("print_bridge.env")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

BRIDGE_HOST = os.getenv("BRIDGE_HOST", "127.0.0.1")
BRIDGE_PORT = int(os.getenv("BRIDGE_PORT", "9638"))
PRINT_BRIDGE_TOKEN = os.getenv("PRINT_BRIDGE_TOKEN", "")
PRINT_BRIDGE_URL = os.getenv("PRINT_BRIDGE_URL", f"http://127.0.0.1:{BRIDGE_PORT}")

DISPATCH_TIMEOUT = float(os.getenv("DISPATCH_TIMEOUT", "30"))
IMAGE_FETCH_TIMEOUT = float(os.getenv("IMAGE_FETCH_TIMEOUT", "5"))
LOGO_MAX_WIDTH = int(os.getenv("LOGO_MAX_WIDTH", "384"))
TEXT_ENCODING = os.getenv("TEXT_ENCODING", "utf-8")
MAX_RAW_BYTES = int(os.getenv("MAX_RAW_BYTES", str(1024 * 1024)))

# Network printers: [{"name": "bar", "host": "192.168.1.50", "port": 9100}]
_printers_raw = os.getenv("PRINTERS_JSON", "[]")
try:
    PRINTERS_JSON = json.loads(_printers_raw) if _printers_raw else []
    if not isinstance(PRINTERS_JSON, list):
        logger.warning("PRINTERS_JSON not a list; using empty list")
        PRINTERS_JSON = []
except ValueError as e:
    logger.warning("Failed to parse PRINTERS_JSON; using empty list: %s", e)
    PRINTERS_JSON = []
