from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional


class ConfigStore:
    """
    Simple JSON config store.

    Default location: ~/.clipcut/config.json
    """

    def __init__(self, root_dir: Path) -> None:
        self.root_dir = Path(root_dir)
        self.path = self.root_dir / "config.json"

    @staticmethod
    def default() -> "ConfigStore":
        return ConfigStore(Path.home() / ".clipcut")

    def load(self) -> Dict[str, Any]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            if isinstance(data, dict):
                return {**self.default_config(), **data}
        except FileNotFoundError:
            return self.default_config()
        except (OSError, ValueError):
            # Corrupted file; don't crash the app.
            return self.default_config()
        return self.default_config()

    def save(self, data: Dict[str, Any]) -> None:
        self.root_dir.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

    def default_config(self) -> Dict[str, Any]:
        return {
            "auto_add": True,
            "thumbnail_count": 10,
            "last_export_dir": "",
            "ffmpeg_dir": "",
        }

    def _set(self, key: str, value: Any) -> None:
        cfg = self.load()
        cfg[key] = value
        self.save(cfg)

    def auto_add(self) -> bool:
        raw = self.load().get("auto_add", True)
        if isinstance(raw, str):
            return raw.strip().lower() not in ("0", "false", "off", "no", "")
        return bool(raw)

    def set_auto_add(self, enabled: bool) -> None:
        self._set("auto_add", bool(enabled))

    def thumbnail_count(self) -> int:
        raw = self.load().get("thumbnail_count", 10)
        try:
            v = int(raw)
        except (TypeError, ValueError):
            v = 10
        return max(1, min(30, v))

    def ffmpeg_dir(self) -> Optional[str]:
        raw = str(self.load().get("ffmpeg_dir") or "").strip()
        return raw or None

    def last_export_dir(self) -> Optional[str]:
        raw = str(self.load().get("last_export_dir") or "").strip()
        if raw and Path(raw).is_dir():
            return raw
        return None

    def set_last_export_dir(self, path: str) -> None:
        raw = str(path or "").strip()
        if not raw:
            return
        p = Path(raw)
        target = p if p.is_dir() else p.parent
        try:
            target = target.resolve()
        except OSError:
            pass
        self._set("last_export_dir", str(target))
