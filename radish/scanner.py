from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import LibrarySettings


@dataclass
class SourceBatch:
    directory: Path
    files: list[Path]
    is_dir: bool

    def absolute(self, relative: Path) -> Path:
        return self.directory / relative


class SourceScanner:
    """Collects the audio files of one source (an album folder or a single file)."""

    def __init__(self, settings: LibrarySettings) -> None:
        self.settings = settings
        self._exts = {ext.lower() for ext in self.settings.include_extensions}

    def collect(self, source: Path) -> Optional[SourceBatch]:
        if not source.exists():
            return None
        if source.is_dir():
            files = sorted(
                path.relative_to(source)
                for path in source.rglob("*")
                if path.is_file() and self._should_include(path)
            )
            if not files:
                return None
            return SourceBatch(directory=source, files=files, is_dir=True)
        if not self._should_include(source):
            return None
        return SourceBatch(directory=source.parent, files=[Path(source.name)], is_dir=False)

    def _should_include(self, path: Path) -> bool:
        return path.suffix.lower() in self._exts
