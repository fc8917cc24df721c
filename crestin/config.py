"""Config & Constants"""
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root (one level up from crestin/)
_ROOT = Path(__file__).parent.parent
load_dotenv(_ROOT / ".env")

APP_NAME = "crestin-radio"
APP_VERSION = "0.3.0"


def _default_data_dir() -> Path:
    home = Path.home()
    if sys.platform == "win32":
        return Path(os.getenv("APPDATA", home / "AppData" / "Roaming")) / APP_NAME
    if sys.platform == "darwin":
        return home / "Library" / "Application Support" / APP_NAME
    return Path(os.getenv("XDG_CONFIG_HOME", home / ".config")) / APP_NAME


def _default_cache_dir() -> Path:
    home = Path.home()
    if sys.platform == "win32":
        return Path(os.getenv("LOCALAPPDATA", home / "AppData" / "Local")) / APP_NAME
    if sys.platform == "darwin":
        return home / "Library" / "Caches" / APP_NAME
    return Path(os.getenv("XDG_CACHE_HOME", home / ".cache")) / APP_NAME


# ─── Paths ────────────────────────────────────────────────────────────────────
ROOT_DIR = _ROOT
DATA_DIR = Path(os.getenv("CRESTIN_DATA_DIR", str(_default_data_dir())))
PREFS_FILE = DATA_DIR / "preferences.json"
ERRORS_LOG = DATA_DIR / "errors.log"
LOG_FILE = DATA_DIR / "radio.log"
MPV_CACHE_DIR = _default_cache_dir() / "mpv"

# ─── Playback binary ──────────────────────────────────────────────────────────
MPV_PATH = os.getenv("MPV_PATH", "").strip()
MPV_BINARY = "mpv.exe" if sys.platform == "win32" else "mpv"

# ─── Control socket protocol ──────────────────────────────────────────────────
COMMAND_TIMEOUT = float(os.getenv("COMMAND_TIMEOUT", "5.0"))
QUIT_TIMEOUT = float(os.getenv("QUIT_TIMEOUT", "1.0"))   # best-effort, short
SOCKET_POLL_INTERVAL = 0.1
SOCKET_POLL_ATTEMPTS = 50                                 # ~5 s
PROCESS_TERMINATE_TIMEOUT = 2.0

# ─── Stream selection ─────────────────────────────────────────────────────────
MAX_STREAM_RETRIES = 3
BACKOFF_STEP = 1.0   # seconds; pass N waits N * BACKOFF_STEP

# ─── Volume ───────────────────────────────────────────────────────────────────
BASELINE_VOLUME = 100                                    # launch flag
DEFAULT_VOLUME = int(os.getenv("DEFAULT_VOLUME", "75"))  # first-run preference
VOLUME_STEP = 5

# ─── Station directory ────────────────────────────────────────────────────────
API_BASE_URL = os.getenv("API_BASE_URL", "https://api.radiocrestin.ro/api/v1").rstrip("/")
API_TIMEOUT = int(os.getenv("API_TIMEOUT", "10"))
STATIONS_CACHE_SECONDS = 10

# ─── Dev mode ─────────────────────────────────────────────────────────────────
DEV_MODE = os.getenv("DEV_MODE", "0").strip() in ("1", "true", "yes")
