# consultify/config.py
import os

# --- Database / Redis ---
DATABASE_URL = os.getenv("DATABASE_URL", "postgresql+psycopg2://postgres:postgres@db:5432/consultify")
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# --- Translation provider ---
TRANSLATOR_KEY = os.getenv("TRANSLATOR_KEY", "")
TRANSLATOR_ENDPOINT = os.getenv("TRANSLATOR_ENDPOINT", "https://api.cognitive.microsofttranslator.com/")
TRANSLATOR_REGION = os.getenv("TRANSLATOR_REGION", "global")

# --- Identity provider (Supabase auth admin API) ---
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")

# --- LLM ---
MISTRAL_API_KEY = os.getenv("MISTRAL_API_KEY", "")
MISTRAL_API_URL = os.getenv("MISTRAL_API_URL", "https://api.mistral.ai/v1/chat/completions")
MISTRAL_MODEL = os.getenv("MISTRAL_MODEL", "mistral-medium-latest")

# --- Email ---
RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
EMAIL_FROM = os.getenv("EMAIL_FROM", "Consultify <prescriptions@resend.dev>")
EMAIL_MAX_ATTEMPTS = int(os.getenv("EMAIL_MAX_ATTEMPTS", "3"))
EMAIL_WORKER_POLL_SECONDS = float(os.getenv("EMAIL_WORKER_POLL_SECONDS", "2"))

# --- Chat ---
TYPING_TTL_SECONDS = float(os.getenv("TYPING_TTL_SECONDS", "3"))
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))
