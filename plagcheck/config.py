import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


# ───── API Keys & URLs ─────
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY", "")
GOOGLE_CSE_ID = os.getenv("GOOGLE_CSE_ID", "")
GOOGLE_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# ───── Chunking ─────
CHUNK_MAX_LEN = int(os.getenv("CHUNK_MAX_LEN", "300"))
PAGE_CHUNK_MAX_LEN = int(os.getenv("PAGE_CHUNK_MAX_LEN", "600"))
MAX_PAGE_SEGMENTS = int(os.getenv("MAX_PAGE_SEGMENTS", "20"))

# ───── Matching ─────
TOP_RESULTS = int(os.getenv("TOP_RESULTS", "3"))
SIMILARITY_THRESHOLD = float(os.getenv("SIMILARITY_THRESHOLD", "0.8"))

# ───── Concurrency & timeouts (seconds) ─────
CHUNK_CONCURRENCY = int(os.getenv("CHUNK_CONCURRENCY", "3"))
FETCH_CONCURRENCY = int(os.getenv("FETCH_CONCURRENCY", "3"))
SEARCH_TIMEOUT = float(os.getenv("SEARCH_TIMEOUT", "8"))
FETCH_TIMEOUT = float(os.getenv("FETCH_TIMEOUT", "20"))
EMBED_TIMEOUT = float(os.getenv("EMBED_TIMEOUT", "20"))
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "8"))
BROWSER_TIMEOUT = float(os.getenv("BROWSER_TIMEOUT", "15"))

# ───── Cache ─────
CACHE_TTL = int(os.getenv("CACHE_TTL", "3600"))  # 1 hour

# ───── Scraping ─────
MIN_TEXT_LENGTH = int(os.getenv("MIN_TEXT_LENGTH", "200"))
MAX_PAGE_CHARS = int(os.getenv("MAX_PAGE_CHARS", "25000"))
BROWSER_FALLBACK = _env_bool("BROWSER_FALLBACK", True)

# ───── Embeddings ─────
EMBEDDINGS_ENABLED = _env_bool("EMBEDDINGS_ENABLED", True)
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "all-MiniLM-L6-v2")

# ───── File support ─────
ALLOWED_EXTENSIONS = {"txt", "pdf", "docx"}
MAX_FILE_SIZE_MB = 5

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "plagcheck.log")
