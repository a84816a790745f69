"""Application configuration read from environment variables."""

import os


class AppConfig:
    """Centralized application configuration."""

    SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
    AGENTS_TABLE = os.environ.get("AGENTS_TABLE", "agents")
    STORAGE_BUCKET = os.environ.get("STORAGE_BUCKET", "agent-documents")

    DEFAULT_COUNTRY_CODE = os.environ.get("DEFAULT_COUNTRY_CODE", "91")
    OTP_EXPIRY_SECONDS = int(os.environ.get("OTP_EXPIRY_SECONDS", "300"))
    FLOW_TTL_SECONDS = int(os.environ.get("FLOW_TTL_SECONDS", "900"))

    MAX_UPLOAD_BYTES = int(os.environ.get("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))

    POSTAL_LOOKUP_URL = os.environ.get("POSTAL_LOOKUP_URL", "https://api.postalpincode.in/pincode").rstrip("/")
    POSTAL_LOOKUP_TIMEOUT_SECONDS = float(os.environ.get("POSTAL_LOOKUP_TIMEOUT_SECONDS", "10"))

    @staticmethod
    def supabase_key() -> str:
        """Key used for phone auth; the anon key is preferred over the service role key."""
        return os.environ.get("SUPABASE_ANON_KEY") or os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "")
