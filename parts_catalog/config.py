import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    # Document store: "sqlite" (local/demo) or "supabase"
    STORE_BACKEND = os.getenv("STORE_BACKEND", "sqlite").lower()
    SQLITE_DB_PATH = os.getenv("SQLITE_DB_PATH", "./parts_catalog.db")

    # Supabase
    SUPABASE_URL = os.getenv("SUPABASE_URL")
    SUPABASE_KEY = os.getenv("SUPABASE_KEY")
    PARTS_TABLE = os.getenv("PARTS_TABLE", "parts")

    # API Server
    API_HOST = os.getenv("API_HOST", "127.0.0.1")
    API_PORT = int(os.getenv("API_PORT", "4040"))
    ALLOWED_ORIGINS = [
        o.strip() for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",") if o.strip()
    ]

    # Listing / bulk operations
    DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "50"))
    GENERATE_BATCH_SIZE = int(os.getenv("GENERATE_BATCH_SIZE", "1000"))
    GENERATE_SAMPLE_SIZE = int(os.getenv("GENERATE_SAMPLE_SIZE", "10"))
    REPAIR_POOL_SIZE = int(os.getenv("REPAIR_POOL_SIZE", "100"))

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    @staticmethod
    def validate():
        """Ensure the selected store backend is usable"""
        if Config.STORE_BACKEND not in ("sqlite", "supabase"):
            raise EnvironmentError(f"Unknown STORE_BACKEND: {Config.STORE_BACKEND!r}")

        missing = []
        if Config.STORE_BACKEND == "supabase":
            if not Config.SUPABASE_URL:
                missing.append("SUPABASE_URL")
            if not Config.SUPABASE_KEY:
                missing.append("SUPABASE_KEY")

        if missing:
            raise EnvironmentError(f"Missing required environment variables: {', '.join(missing)}")

        return True
