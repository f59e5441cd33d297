"""
Application settings.

All values come from the environment (a local .env file is loaded first) and
are exposed as module-level constants.
"""

import os
from dotenv import load_dotenv
import pytz

load_dotenv()

# Product status thresholds: out_of_stock at 0, low_stock below this floor.
# A tenant can override it with the LOW_STOCK_THRESHOLD app config entry.
LOW_STOCK_THRESHOLD = int(os.getenv("LOW_STOCK_THRESHOLD", "5"))

# Upper bound for a single sale commit, in seconds.
SALE_COMMIT_TIMEOUT_SECONDS = float(os.getenv("SALE_COMMIT_TIMEOUT_SECONDS", "10"))

APP_TIMEZONE = os.getenv("APP_TIMEZONE", "America/Sao_Paulo")

# Tokens are issued by the hosted auth provider and signed with HS256.
SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET", "")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "authenticated")
JWT_ALGORITHM = "HS256"


def get_timezone():
    return pytz.timezone(APP_TIMEZONE)
