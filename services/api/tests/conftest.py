import os
import tempfile
from pathlib import Path

# Settings are read once at import, so the environment must be in place before
# any watchhive module loads.
_DB_DIR = Path(tempfile.mkdtemp(prefix="watchhive-test-"))

os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_DB_DIR / 'watchhive.db'}")
os.environ.setdefault("OTEL_ENABLED", "false")
os.environ.setdefault("CATALOG_CACHE_ENABLED", "false")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("TMDB_API_KEY", "test-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")
