import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_PATH = Path.home() / ".icon_designer_config.json"
EXPORT_FORMATS = ("ico", "png-zip")
MAX_RECENT = 5


class AppConfig:
    def __init__(self, path: Path | None = None):
        self.path = path or DEFAULT_PATH
        self.recent_files: list[str] = []
        self.export_format: str = "ico"
        self.resample: str = "lanczos"
        self.asset_dir: str | None = None
        self.workers: int = 1
        self._load()

    def _load(self):
        try:
            if self.path.exists():
                data = json.loads(self.path.read_text(encoding="utf-8"))
                self.recent_files = list(data.get("recent_files", []))[:MAX_RECENT]
                fmt = str(data.get("export_format", "ico"))
                self.export_format = fmt if fmt in EXPORT_FORMATS else "ico"
                self.resample = str(data.get("resample", "lanczos"))
                self.asset_dir = data.get("asset_dir") or None
                self.workers = max(1, int(data.get("workers", 1)))
        except (OSError, ValueError, TypeError, AttributeError) as exc:
            logger.warning("Ignoring unreadable config %s: %s", self.path, exc)
            self.recent_files = []
            self.export_format = "ico"
            self.resample = "lanczos"
            self.asset_dir = None
            self.workers = 1

    def add_recent(self, path: str | Path):
        entry = str(path)
        if entry in self.recent_files:
            self.recent_files.remove(entry)
        self.recent_files.insert(0, entry)
        del self.recent_files[MAX_RECENT:]

    def save(self):
        data = {
            "recent_files": self.recent_files[:MAX_RECENT],
            "export_format": self.export_format,
            "resample": self.resample,
            "asset_dir": self.asset_dir,
            "workers": self.workers,
        }
        try:
            self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not save config to %s: %s", self.path, exc)
