import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

PORT = int(os.getenv("PORT", 8000))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()] or ["*"]

SESSION_TTL_DAYS = int(os.getenv("SESSION_TTL_DAYS", 7))
VERIFICATION_TTL_HOURS = 24
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:5173").rstrip("/")

# Email (resend)
RESEND_API_KEY = (os.getenv("RESEND_API_KEY") or "").strip()
MAIL_FROM = os.getenv("MAIL_FROM", "Kerzenwelt by Dani <info@kerzenweltbydani.com>")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com")
STORE_NAME = "Kerzenwelt by Dani"

# PayPal REST
PAYPAL_CLIENT_ID = (os.getenv("PAYPAL_CLIENT_ID") or "").strip()
PAYPAL_CLIENT_SECRET = (os.getenv("PAYPAL_CLIENT_SECRET") or "").strip()
PAYPAL_ENV = os.getenv("PAYPAL_ENV", "sandbox")

# Files
UPLOAD_DIR = os.getenv("UPLOAD_DIR", os.path.join("public", "uploads"))
DOCUMENTS_DIR = os.getenv("DOCUMENTS_DIR", os.path.join("public", "company_documents"))
MAX_DOCUMENT_SIZE = 10 * 1024 * 1024
