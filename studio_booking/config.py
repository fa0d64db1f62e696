import os

from dateutil import tz
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("STUDIO_DB")
if not DATABASE_URL:
    raise RuntimeError("STUDIO_DB environment variable is not set")

REDIS_URL = os.getenv("REDIS_URL")
if not REDIS_URL:
    raise RuntimeError("REDIS_URL environment variable is not set")

RABBIT_URL = os.getenv("RABBIT_URL")  # optional, events stay in-process without it

JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM") or "HS256"

if not JWT_SECRET:
    raise RuntimeError("JWT_SECRET environment variable is not set")

SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS") or "3600")
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME") or "secret"

STUDIO_TIMEZONE = os.getenv("STUDIO_TIMEZONE") or "UTC"
STUDIO_TZ = tz.gettz(STUDIO_TIMEZONE)
if STUDIO_TZ is None:
    raise RuntimeError(f"Unknown STUDIO_TIMEZONE: {STUDIO_TIMEZONE}")

# first and last bookable hour of the studio day
STUDIO_OPEN_HOUR = int(os.getenv("STUDIO_OPEN_HOUR") or "9")
STUDIO_CLOSE_HOUR = int(os.getenv("STUDIO_CLOSE_HOUR") or "18")

AUTO_CREATE_SCHEMA = (os.getenv("AUTO_CREATE_SCHEMA") or "true").lower() == "true"
LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").upper()
