"""Environment-driven settings for the Shop Boost service."""

import os
from pathlib import Path
from typing import Final

from dotenv import load_dotenv

# Load environment variables from .env (for local development)
load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./shop_boost.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

SHOP_IMPORT_ROOT = Path(os.getenv("SHOP_IMPORT_ROOT", "./storage"))
SHOP_IMPORT_BUCKET = os.getenv("SHOP_IMPORT_BUCKET", "shop-imports")

# Pipeline caps keep one intake run bounded.
MAX_LINE_CANDIDATES: Final[int] = 1200
MAX_STORED_IMPORT_ROWS: Final[int] = 800
MAX_STORED_CLASSIFICATIONS: Final[int] = 600
IMPORT_ROW_BATCH: Final[int] = 500
