"""User preferences: favorites, last played station, volume."""
import json
from pathlib import Path
from typing import Optional

from .config import DEFAULT_VOLUME, PREFS_FILE


def _defaults() -> dict:
    return {"favorites": [], "last_played": None, "volume": DEFAULT_VOLUME}


class Preferences:
    def __init__(self, path: Path = PREFS_FILE):
        self.path = Path(path)

    def load(self) -> dict:
        if not self.path.exists():
            return _defaults()
        try:
            prefs = json.loads(self.path.read_text())
        except (json.JSONDecodeError, OSError):
            return _defaults()
        if not isinstance(prefs, dict):
            return _defaults()
        return {**_defaults(), **prefs}

    def save(self, prefs: dict):
        """Atomic write: tmp file, then replace."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(prefs, indent=2))
        tmp.replace(self.path)

    # ── Favorites ──────────────────────────────────────────────────────────────

    def favorites(self) -> list[str]:
        return list(self.load()["favorites"])

    def is_favorite(self, slug: str) -> bool:
        return slug in self.favorites()

    def add_favorite(self, slug: str):
        prefs = self.load()
        if slug not in prefs["favorites"]:
            prefs["favorites"].append(slug)
            self.save(prefs)

    def remove_favorite(self, slug: str):
        prefs = self.load()
        prefs["favorites"] = [s for s in prefs["favorites"] if s != slug]
        self.save(prefs)

    def toggle_favorite(self, slug: str) -> bool:
        """Returns True if slug is a favorite afterwards."""
        if self.is_favorite(slug):
            self.remove_favorite(slug)
            return False
        self.add_favorite(slug)
        return True

    # ── Last played / volume ───────────────────────────────────────────────────

    def set_last_played(self, slug: str):
        prefs = self.load()
        prefs["last_played"] = slug
        self.save(prefs)

    def last_played(self) -> Optional[str]:
        return self.load()["last_played"]

    def set_volume(self, level: int):
        prefs = self.load()
        prefs["volume"] = max(0, min(100, int(level)))
        self.save(prefs)

    def volume(self) -> int:
        return self.load()["volume"]
