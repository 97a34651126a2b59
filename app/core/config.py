# app/core/config.py

import os
import logging
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()

# =====================================================
# APPLICATION
# =====================================================
APP_ENV = os.getenv("APP_ENV")
if APP_ENV not in {"development", "staging", "production"}:
    raise ValueError("APP_ENV must be development | staging | production")

IS_PRODUCTION = APP_ENV == "production"

# DEBUG in development unless overridden
LOG_LEVEL = (os.getenv("LOG_LEVEL") or ("DEBUG" if APP_ENV == "development" else "INFO")).upper()
if LOG_LEVEL not in {"DEBUG", "INFO", "WARNING", "ERROR"}:
    raise ValueError("LOG_LEVEL must be DEBUG | INFO | WARNING | ERROR")

# =====================================================
# DATABASE
# =====================================================
DB_TYPE = os.getenv("DB_TYPE")
if DB_TYPE not in {"postgres", "sqlite"}:
    raise ValueError("DB_TYPE must be postgres | sqlite")

if DB_TYPE == "postgres":
    DATABASE_URL = os.getenv("DATABASE_URL")
    if not DATABASE_URL:
        raise ValueError("DATABASE_URL is required for Postgres")

elif DB_TYPE == "sqlite":
    if IS_PRODUCTION:
        raise ValueError("SQLite is NOT allowed in production")
    SQLITE_PATH = os.getenv("SQLITE_PATH", "./consolidation.db")
    DATABASE_URL = f"sqlite+aiosqlite:///{SQLITE_PATH}"

# ---- Pool tuning (safe defaults) ----
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", 10))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", 20))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", 30))
DB_ECHO_POOL = os.getenv("DB_ECHO_POOL", "false").lower() == "true"

# ---- SSL ----
DB_SSL_VERIFY = os.getenv("DB_SSL_VERIFY", "true").lower() == "true"
if IS_PRODUCTION and not DB_SSL_VERIFY:
    logger.warning("Running in production with relaxed SSL verification")

# =====================================================
# BILLING / NUMBERING
# =====================================================
DEFAULT_BRANCH = os.getenv("DEFAULT_BRANCH", "HO").upper()

# Minimum width of the serial part of BRANCH/YYYYMMDD/NNN; wider serials are not truncated
INVOICE_SR_PADDING = int(os.getenv("INVOICE_SR_PADDING", 3))
if INVOICE_SR_PADDING < 1:
    raise ValueError("INVOICE_SR_PADDING must be >= 1")

RECEIPT_START_NO = int(os.getenv("RECEIPT_START_NO", 1000))

# =====================================================
# EXTERNAL COLLABORATORS (best effort)
# =====================================================
RATE_ENGINE_URL = os.getenv("RATE_ENGINE_URL", "")
NOTIFY_WEBHOOK_URL = os.getenv("NOTIFY_WEBHOOK_URL", "")
EXTERNAL_TIMEOUT_SECONDS = float(os.getenv("EXTERNAL_TIMEOUT_SECONDS", 5))

# =====================================================
# SCHEDULER
# =====================================================
ENABLE_SCHEDULER = os.getenv("ENABLE_SCHEDULER", "false").lower() == "true"
RECONCILE_CRON_HOUR = int(os.getenv("RECONCILE_CRON_HOUR", 1))
