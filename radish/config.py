from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator


def _expand(value: Optional[str | Path]) -> Optional[Path]:
    if value is None:
        return None
    return Path(value).expanduser().resolve()


class LibrarySettings(BaseModel):
    include_extensions: List[str] = Field(default_factory=lambda: [".flac", ".mp3", ".m4a", ".ogg", ".opus"])


class SortOrderSettings(BaseModel):
    path: Path = Path("./artist_sort_orders.json")

    @field_validator("path", mode="before")
    @classmethod
    def _expand_path(cls, value: str | Path) -> Path:
        return _expand(value)


class SessionSettings(BaseModel):
    various_artists: str = "Various Artists"
    artist_remap: Dict[str, str] = Field(default_factory=dict)
    events_file: Optional[Path] = None
    remap_by_default: bool = True

    @field_validator("events_file", mode="before")
    @classmethod
    def _expand_events(cls, value: Optional[str | Path]) -> Optional[Path]:
        return _expand(value)


class Settings(BaseModel):
    library: LibrarySettings = LibrarySettings()
    sort_order: SortOrderSettings = SortOrderSettings()
    session: SessionSettings = SessionSettings()

    @classmethod
    def load(cls, path: Path) -> "Settings":
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
        return cls.model_validate(raw)


def find_config(explicit_path: Optional[Path]) -> Path:
    if explicit_path:
        return explicit_path
    cwd = Path.cwd()
    for candidate in (cwd / "config.yaml", cwd / "config.yml"):
        if candidate.exists():
            return candidate
    raise FileNotFoundError("Could not find config.yaml - pass --config explicitly.")
