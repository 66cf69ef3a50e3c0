"""
Configuration management for the TeacherDash backend.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Base paths
PACKAGE_DIR = Path(__file__).parent
DATA_DIR = PACKAGE_DIR / "data"

# Database / storage
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY", "")
STORAGE_BUCKET = "uploads"

# API Configuration
AI_PROVIDER = os.getenv("AI_PROVIDER", "gemini")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-20250514"
DEFAULT_OPENAI_MODEL = "gpt-4o"

# Email
RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
RESEND_FROM_EMAIL = os.getenv("RESEND_FROM_EMAIL", "Teacher Dashboard <onboarding@resend.dev>")

# Share links fall back to this when the request carries no Origin header
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:3000")

# Server configuration
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
DEBUG = os.getenv("DEBUG", "false").lower() in ("1", "true", "yes")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Auth is off unless explicitly enabled
REQUIRE_AUTH = os.getenv("REQUIRE_AUTH", "false").lower() in ("1", "true", "yes")

# Coverage
STALE_AFTER_DAYS = 28

DEFAULT_JOURNAL_SUBPROMPT = "WRITE A PARAGRAPH IN YOUR JOURNAL!"


class Config:
    """Application configuration class."""

    def __init__(self):
        self.supabase_url = SUPABASE_URL
        self.supabase_service_key = SUPABASE_SERVICE_KEY
        self.ai_provider = AI_PROVIDER
        self.public_base_url = PUBLIC_BASE_URL
        self.require_auth = REQUIRE_AUTH
        self.log_level = LOG_LEVEL

    def to_dict(self):
        return {
            "supabase_url": self.supabase_url,
            "ai_provider": self.ai_provider,
            "public_base_url": self.public_base_url,
            "require_auth": self.require_auth,
            "log_level": self.log_level,
        }


# Global config instance
config = Config()
