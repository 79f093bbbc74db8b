"""
Centralized environment configuration

Values are read once at import time. main.py calls load_dotenv() before
anything imports this module, so a local .env file is honoured.
"""

import os
from typing import List, Optional

def _get_optional(value: Optional[str], default: str) -> str:
    return value if value else default

def _get_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value else default
    except ValueError:
        return default

# SQL dialect used by sqlglot for structural checks (mysql, postgres, duckdb, ...)
SQL_DIALECT = _get_optional(os.getenv('QB_SQL_DIALECT'), 'mysql')

LOG_LEVEL = _get_optional(os.getenv('QB_LOG_LEVEL'), 'INFO').upper()

# Preview length for truncated SQL in history lists
TRUNCATE_LENGTH = _get_int(os.getenv('QB_TRUNCATE_LENGTH'), 100)

CORS_ORIGINS: List[str] = [
    origin.strip()
    for origin in _get_optional(os.getenv('QB_CORS_ORIGINS'), 'http://localhost:3000').split(',')
    if origin.strip()
]
