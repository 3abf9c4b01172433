# ticketflow/core/config.py
"""Configuration and environment loading"""
import os
from dotenv import load_dotenv

load_dotenv()

# ==================== DATABASE ====================
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./ticketflow.db")

# ==================== JWT CONFIGURATION ====================
# Tokens are issued by the identity provider; this service only verifies them.
JWT_SECRET = os.getenv("JWT_SECRET", "your-secret-key")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# ==================== APP CONFIGURATION ====================
APP_HOST = os.getenv("APP_HOST", "0.0.0.0")
APP_PORT = int(os.getenv("APP_PORT", "8000"))
APP_DEBUG = os.getenv("APP_DEBUG", "False").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# ==================== CORS CONFIGURATION ====================
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:8000").split(",")

# ==================== OBJECT STORAGE ====================
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "s3").lower()  # "s3" or "local"
S3_BUCKET = os.getenv("AWS_S3_BUCKET")
S3_REGION = os.getenv("AWS_REGION", "us-east-1")
S3_ENDPOINT_URL = os.getenv("S3_ENDPOINT_URL")
AWS_ACCESS_KEY_ID = os.getenv("AWS_ACCESS_KEY_ID")
AWS_SECRET_ACCESS_KEY = os.getenv("AWS_SECRET_ACCESS_KEY")
LOCAL_STORAGE_PATH = os.getenv("LOCAL_STORAGE_PATH", "./uploads")

# ==================== ATTACHMENT LIMITS ====================
MAX_FILE_SIZE_MB = int(os.getenv("MAX_FILE_SIZE_MB", "10"))
MAX_FILE_SIZE_BYTES = MAX_FILE_SIZE_MB * 1024 * 1024
MAX_FILES_PER_TICKET = int(os.getenv("MAX_FILES_PER_TICKET", "5"))
DOWNLOAD_URL_TTL_SECONDS = int(os.getenv("DOWNLOAD_URL_TTL_SECONDS", "3600"))  # 1 hour

# ==================== EMAIL (ZOHO MAIL) ====================
ZOHO_ACCOUNT_ID = os.getenv("ZOHO_ACCOUNT_ID")
ZOHO_AUTH_TOKEN = os.getenv("ZOHO_AUTH_TOKEN")
ZOHO_USER = os.getenv("ZOHO_USER")
EMAIL_NOTIFICATIONS_ENABLED = os.getenv("EMAIL_NOTIFICATIONS_ENABLED", "True").lower() == "true"
NOTIFICATION_MAX_ATTEMPTS = int(os.getenv("NOTIFICATION_MAX_ATTEMPTS", "2"))

# Department mailboxes
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")
FINANCE_EMAIL = os.getenv("FINANCE_EMAIL")
HR_EMAIL = os.getenv("HR_EMAIL")
