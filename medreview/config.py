import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./medreview.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))

# Frontend base URL (used for notification action links)
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# Cloudflare R2 / S3-compatible storage for uploaded medical documents
STORAGE_ACCOUNT_ID = os.getenv("STORAGE_ACCOUNT_ID")
STORAGE_ACCESS_KEY_ID = os.getenv("STORAGE_ACCESS_KEY_ID")
STORAGE_SECRET_ACCESS_KEY = os.getenv("STORAGE_SECRET_ACCESS_KEY")
STORAGE_BUCKET_NAME = os.getenv("STORAGE_BUCKET_NAME", "medreview-documents")
# Overrides the R2 endpoint derived from the account id (e.g. MinIO in development)
STORAGE_ENDPOINT_URL = os.getenv("STORAGE_ENDPOINT_URL")
PRESIGNED_URL_EXPIRATION = int(os.getenv("PRESIGNED_URL_EXPIRATION", "3600"))

# Document upload limits (50 MiB)
MAX_DOCUMENT_SIZE = int(os.getenv("MAX_DOCUMENT_SIZE", str(50 * 1024 * 1024)))
# Deactivated documents untouched for this many days are purged with their objects
DOCUMENT_RETENTION_DAYS = int(os.getenv("DOCUMENT_RETENTION_DAYS", "30"))

# Notifications expire after this many days unless extended
NOTIFICATION_TTL_DAYS = int(os.getenv("NOTIFICATION_TTL_DAYS", "30"))
# Read notifications older than this are removed by the cleanup job
NOTIFICATION_RETENTION_DAYS = int(os.getenv("NOTIFICATION_RETENTION_DAYS", "90"))

# Consultations
MEETING_BASE_URL = os.getenv("MEETING_BASE_URL", "https://meet.medicalreview.com")
DEFAULT_CONSULTATION_RATE = float(os.getenv("DEFAULT_CONSULTATION_RATE", "150"))

# When true, Order status updates must follow the lifecycle transition table
ORDER_STRICT_TRANSITIONS = os.getenv("ORDER_STRICT_TRANSITIONS", "false").lower() == "true"

# CORS - comma separated list of origins allowed to call the API
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")
