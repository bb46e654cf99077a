import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "your-secret-key-here")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if origin.strip()
]

RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() in ("1", "true", "yes")
RATE_LIMIT_DEFAULT = os.getenv("RATE_LIMIT_DEFAULT", "100/minute")

DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "20"))
DB_ECHO = os.getenv("DB_ECHO", "false").lower() in ("1", "true", "yes")

# Driver samples older than this are reported as stale
LOCATION_STALE_SECONDS = int(os.getenv("LOCATION_STALE_SECONDS", "300"))
NEARBY_RADIUS_KM = float(os.getenv("NEARBY_RADIUS_KM", "10"))
AVERAGE_SPEED_KMH = float(os.getenv("AVERAGE_SPEED_KMH", "30"))
ESTIMATED_DELIVERY_MINUTES = int(os.getenv("ESTIMATED_DELIVERY_MINUTES", "45"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
