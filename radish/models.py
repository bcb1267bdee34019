from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Dict, Optional


@dataclass(slots=True)
class TagSchema:
    """Format-independent view of one file's tags.

    Every field is optional; ``None`` means the container did not carry it (on read)
    or that it must be left untouched (on write).
    """

    album: Optional[str] = None
    artist: Optional[str] = None
    release_date: Optional[str] = None
    album_artist: Optional[str] = None
    artist_sort: Optional[str] = None
    album_sort: Optional[str] = None
    album_artist_sort: Optional[str] = None
    track: Optional[int] = None
    total_tracks: Optional[int] = None
    disc: Optional[int] = None
    total_discs: Optional[int] = None
    disambiguation: Optional[str] = None
    musicbrainz_release_id: Optional[str] = None
    codec_name: Optional[str] = None

    def require_totals(self, path: Optional[Path] = None) -> None:
        where = f" for {path}" if path else ""
        if self.track is not None and self.total_tracks is None:
            raise InvariantViolation(f"total_tracks must be specified with track{where}")
        if self.disc is not None and self.total_discs is None:
            raise InvariantViolation(f"total_discs must be specified with disc{where}")

    def copy(self) -> "TagSchema":
        return replace(self)

    def is_empty(self) -> bool:
        return all(
            getattr(self, f.name) is None for f in fields(self) if f.name != "codec_name"
        )

    def to_record(self) -> Dict[str, object]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "codec_name" and getattr(self, f.name) is not None
        }


class ProcessingError(Exception):
    """Raised when a file cannot be processed but the batch should keep going."""


class MissingTagData(ProcessingError):
    """The container has no tag block we know how to parse."""


class TargetMissing(ProcessingError):
    """A write was attempted against a file that no longer exists."""


class UnsupportedFormat(ProcessingError):
    """The codec has no writable adapter."""


class InvariantViolation(ProcessingError):
    """A TagSchema about to be written carries a number without its total."""


def parse_int(value: object) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    cleaned = str(value).strip()
    if cleaned.isdigit():
        return int(cleaned)
    return None


def unpack_pair(value: Optional[str]) -> tuple[Optional[int], Optional[int]]:
    """Split ``"n/total"`` into integers; an absent denominator stays unset."""
    if value is None:
        return None, None
    text = str(value).strip()
    if "/" not in text:
        return parse_int(text), None
    number, total = text.split("/", 1)
    return parse_int(number), parse_int(total) or None
