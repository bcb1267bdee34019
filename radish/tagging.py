from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from mutagen import MutagenError
from mutagen.flac import FLAC
from mutagen.id3 import (
    ID3,
    ID3NoHeaderError,
    TALB,
    TDRC,
    TPE1,
    TPE2,
    TPOS,
    TRCK,
    TSOA,
    TSOP,
    TXXX,
)
from mutagen.mp4 import MP4
from mutagen.oggvorbis import OggVorbis

from . import meta_keys as keys
from .models import (
    MissingTagData,
    TagSchema,
    TargetMissing,
    UnsupportedFormat,
    parse_int,
    unpack_pair,
)

logger = logging.getLogger(__name__)


class WriteStatus(Enum):
    OK = "ok"
    TARGET_MISSING = "target_missing"
    UNSUPPORTED_FORMAT = "unsupported_format"
    FAILED = "failed"


@dataclass(slots=True)
class WriteResult:
    status: WriteStatus
    pending: Dict[str, object] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is WriteStatus.OK


class CodecAdapter(ABC):
    """Maps one container's native tags to and from TagSchema."""

    def read(self, path: Path) -> tuple[TagSchema, List[str]]:
        diagnostics: List[str] = []
        tags = self._read(path, diagnostics)
        return tags, diagnostics

    def write(self, path: Path, tags: TagSchema) -> WriteResult:
        tags.require_totals(path)
        if not path.exists():
            raise TargetMissing(f"Cannot write tags, {path} no longer exists")
        return self._write(path, tags)

    @abstractmethod
    def _read(self, path: Path, diagnostics: List[str]) -> TagSchema: ...

    @abstractmethod
    def _write(self, path: Path, tags: TagSchema) -> WriteResult: ...

    @staticmethod
    def _number(raw: Any, path: Optional[Path], name: str, diagnostics: List[str]) -> Optional[int]:
        if raw is None or str(raw).strip() == "":
            return None
        value = parse_int(raw)
        if value is None or value <= 0:
            diagnostics.append(f"{path}: malformed {name} value {raw!r}")
            return None
        return value


class XiphAdapter(CodecAdapter):
    """Vorbis comments, as found in FLAC and Ogg Vorbis files."""

    def __init__(self, file_type: type = FLAC) -> None:
        self.file_type = file_type

    def _read(self, path: Path, diagnostics: List[str]) -> TagSchema:
        audio = self.file_type(path)
        if audio.tags is None:
            container = self.file_type.__name__
            if _has_id3(path):
                raise MissingTagData(f"{container} file {path} has an ID3 tag but no Xiph comment")
            raise MissingTagData(f"{container} file {path} has no tags at all")
        return self.from_native(audio.tags, path=path, diagnostics=diagnostics)

    def _write(self, path: Path, tags: TagSchema) -> WriteResult:
        audio = self.file_type(path)
        if audio.tags is None:
            audio.add_tags()
        self.to_native(audio.tags, tags)
        audio.save()
        return WriteResult(WriteStatus.OK)

    def from_native(
        self,
        comments: Any,
        *,
        path: Optional[Path] = None,
        diagnostics: Optional[List[str]] = None,
    ) -> TagSchema:
        report = diagnostics if diagnostics is not None else []

        def first(*names: str) -> Optional[str]:
            for name in names:
                values = comments.get(name)
                if values:
                    return values[0]
            return None

        def number(names: Sequence[str], label: str) -> Optional[int]:
            for name in names:
                values = comments.get(name)
                if values:
                    return self._number(values[0], path, f"{label} ({name})", report)
            return None

        def pair(
            names: Sequence[str], total_names: Sequence[str], label: str
        ) -> tuple[Optional[int], Optional[int]]:
            # Some taggers write "n/total" into the number key itself; a dedicated
            # total key still wins over the inline denominator.
            value: Optional[int] = None
            inline_total: Optional[int] = None
            for name in names:
                values = comments.get(name)
                if not values:
                    continue
                raw = values[0]
                if "/" in str(raw):
                    value, inline_total = unpack_pair(raw)
                    if value is None or value <= 0:
                        report.append(f"{path}: malformed {label} value {raw!r} ({name})")
                        value = None
                else:
                    value = self._number(raw, path, f"{label} ({name})", report)
                break
            total = number(total_names, f"total_{label}s")
            return value, total if total is not None else inline_total

        track, total_tracks = pair(keys.XIPH_TRACK, keys.XIPH_TRACK_TOTAL, "track")
        disc, total_discs = pair(keys.XIPH_DISC, keys.XIPH_DISC_TOTAL, "disc")
        return TagSchema(
            album=first(keys.XIPH_ALBUM),
            artist=first(keys.XIPH_ARTIST),
            release_date=first(keys.XIPH_DATE, keys.XIPH_YEAR),
            album_artist=first(*keys.XIPH_ALBUM_ARTIST),
            artist_sort=first(keys.XIPH_ARTIST_SORT),
            album_sort=first(keys.XIPH_ALBUM_SORT),
            album_artist_sort=first(keys.XIPH_ALBUM_ARTIST_SORT),
            track=track,
            total_tracks=total_tracks,
            disc=disc,
            total_discs=total_discs,
            disambiguation=first(keys.XIPH_DISAMBIGUATION),
            musicbrainz_release_id=first(keys.XIPH_RELEASE_ID),
        )

    def to_native(self, comments: Any, tags: TagSchema) -> None:
        tags.require_totals()
        simple = {
            keys.XIPH_ALBUM: tags.album,
            keys.XIPH_ARTIST: tags.artist,
            keys.XIPH_DATE: tags.release_date,
            keys.XIPH_ARTIST_SORT: tags.artist_sort,
            keys.XIPH_ALBUM_SORT: tags.album_sort,
            keys.XIPH_ALBUM_ARTIST_SORT: tags.album_artist_sort,
            keys.XIPH_DISAMBIGUATION: tags.disambiguation,
            keys.XIPH_RELEASE_ID: tags.musicbrainz_release_id,
        }
        for name, value in simple.items():
            if value is not None:
                comments[name] = [value]
        if tags.album_artist is not None:
            for name in keys.XIPH_ALBUM_ARTIST:
                comments[name] = [tags.album_artist]
        for value, names in (
            (tags.track, keys.XIPH_TRACK),
            (tags.total_tracks, keys.XIPH_TRACK_TOTAL),
            (tags.disc, keys.XIPH_DISC),
            (tags.total_discs, keys.XIPH_DISC_TOTAL),
        ):
            if value is not None:
                for name in names:
                    comments[name] = [str(value)]
        for name in keys.XIPH_BLANKED:
            comments[name] = [""]


class ID3Adapter(CodecAdapter):
    """ID3v2 tags in MP3 files."""

    TEXT_FRAMES = {
        "album": TALB,
        "artist": TPE1,
        "release_date": TDRC,
        "album_artist": TPE2,
        "artist_sort": TSOP,
        "album_sort": TSOA,
    }
    USER_FRAMES = {
        "album_artist_sort": keys.ID3_ALBUM_ARTIST_SORT,
        "disambiguation": keys.ID3_DISAMBIGUATION,
        "musicbrainz_release_id": keys.ID3_RELEASE_ID,
    }

    def _read(self, path: Path, diagnostics: List[str]) -> TagSchema:
        try:
            tags = ID3(path, load_v1=False)
        except ID3NoHeaderError:
            try:
                ID3(path)
            except ID3NoHeaderError:
                raise MissingTagData(f"File {path} has no ID3 tags") from None
            raise MissingTagData(f"File {path} only has an ID3v1 tag, this is unsupported") from None
        return self.from_native(tags, path=path, diagnostics=diagnostics)

    def _write(self, path: Path, tags: TagSchema) -> WriteResult:
        try:
            native = ID3(path)
        except ID3NoHeaderError:
            native = ID3()
        self.to_native(native, tags)
        native.save(path)
        return WriteResult(WriteStatus.OK)

    def from_native(
        self,
        native: ID3,
        *,
        path: Optional[Path] = None,
        diagnostics: Optional[List[str]] = None,
    ) -> TagSchema:
        report = diagnostics if diagnostics is not None else []
        values: Dict[str, Any] = {}
        for name, frame_cls in self.TEXT_FRAMES.items():
            values[name] = self._text(native, frame_cls.__name__)
        if values["release_date"] is None:
            values["release_date"] = self._text(native, "TYER")
        for name, desc in self.USER_FRAMES.items():
            values[name] = self._text(native, f"TXXX:{desc}")
        for frame_id, number_name, total_name in (
            ("TRCK", "track", "total_tracks"),
            ("TPOS", "disc", "total_discs"),
        ):
            raw = self._text(native, frame_id)
            number, total = unpack_pair(raw)
            if raw is not None and number is None:
                report.append(f"{path}: malformed {number_name} value {raw!r} ({frame_id})")
            values[number_name] = number
            values[total_name] = total
        return TagSchema(**values)

    def to_native(self, native: ID3, tags: TagSchema) -> None:
        tags.require_totals()
        for name, frame_cls in self.TEXT_FRAMES.items():
            value = getattr(tags, name)
            if value is not None:
                native.setall(frame_cls.__name__, [frame_cls(encoding=3, text=[value])])
        for name, desc in self.USER_FRAMES.items():
            value = getattr(tags, name)
            if value is not None:
                native.setall(f"TXXX:{desc}", [TXXX(encoding=3, desc=desc, text=[value])])
        for frame_cls, number, total in (
            (TRCK, tags.track, tags.total_tracks),
            (TPOS, tags.disc, tags.total_discs),
        ):
            frame_id = frame_cls.__name__
            if number is None and total is not None:
                # "n/total" has no form for a bare total; reuse the stored number if any.
                number, _ = unpack_pair(self._text(native, frame_id))
            if number is not None:
                native.setall(frame_id, [frame_cls(encoding=3, text=[f"{number}/{total}"])])
        native.delall("COMM")

    @staticmethod
    def _text(native: ID3, frame_id: str) -> Optional[str]:
        frames = native.getall(frame_id)
        if not frames or not frames[0].text:
            return None
        return str(frames[0].text[0])


class MP4Adapter(CodecAdapter):
    """iTunes-style atoms in MP4/M4A files."""

    TEXT_ATOMS = {
        "album": keys.MP4_ALBUM,
        "artist": keys.MP4_ARTIST,
        "release_date": keys.MP4_DATE,
        "album_artist": keys.MP4_ALBUM_ARTIST,
        "artist_sort": keys.MP4_ARTIST_SORT,
        "album_sort": keys.MP4_ALBUM_SORT,
        "album_artist_sort": keys.MP4_ALBUM_ARTIST_SORT,
    }
    PAIR_ATOMS = (
        (keys.MP4_TRACK, "track", "total_tracks"),
        (keys.MP4_DISC, "disc", "total_discs"),
    )

    def _read(self, path: Path, diagnostics: List[str]) -> TagSchema:
        audio = MP4(path)
        if audio.tags is None:
            raise MissingTagData(f"MP4 file {path} has no metadata atoms")
        return self.from_native(audio.tags, path=path, diagnostics=diagnostics)

    def _write(self, path: Path, tags: TagSchema) -> WriteResult:
        audio = MP4(path)
        if audio.tags is None:
            audio.add_tags()
        self.to_native(audio.tags, tags)
        audio.save()
        return WriteResult(WriteStatus.OK)

    def from_native(
        self,
        atoms: Any,
        *,
        path: Optional[Path] = None,
        diagnostics: Optional[List[str]] = None,
    ) -> TagSchema:
        report = diagnostics if diagnostics is not None else []
        values: Dict[str, Any] = {}
        for name, atom in self.TEXT_ATOMS.items():
            items = atoms.get(atom)
            values[name] = str(items[0]) if items else None
        for atom, number_name, total_name in self.PAIR_ATOMS:
            items = atoms.get(atom)
            number = total = None
            if items:
                first = items[0]
                if isinstance(first, (tuple, list)) and first:
                    number = first[0] or None
                    total = first[1] if len(first) > 1 and first[1] else None
                else:
                    report.append(f"{path}: malformed {number_name} value {first!r} ({atom})")
            values[number_name] = number
            values[total_name] = total
        return TagSchema(**values)

    def to_native(self, atoms: Any, tags: TagSchema) -> None:
        tags.require_totals()
        for name, atom in self.TEXT_ATOMS.items():
            value = getattr(tags, name)
            if value is not None:
                atoms[atom] = [value]
        for atom, number_name, total_name in self.PAIR_ATOMS:
            number = getattr(tags, number_name)
            total = getattr(tags, total_name)
            if number is None and total is None:
                continue
            if number is None:
                # A bare total keeps the stored number; 0 means "no number".
                items = atoms.get(atom)
                first = items[0] if items else None
                number = first[0] if isinstance(first, (tuple, list)) and first else 0
            atoms[atom] = [(number, total)]
        atoms.pop(keys.MP4_COMMENT, None)


class UnsupportedAdapter(CodecAdapter):
    """Containers we recognise but cannot tag yet (Opus)."""

    def __init__(self, codec_name: str) -> None:
        self.codec_name = codec_name

    def _read(self, path: Path, diagnostics: List[str]) -> TagSchema:
        message = f"Reading tags from {self.codec_name} files is not yet supported ({path})"
        logger.warning(message)
        diagnostics.append(message)
        return TagSchema()

    def _write(self, path: Path, tags: TagSchema) -> WriteResult:
        pending = tags.to_record()
        logger.warning(
            "Writing tags to %s files is not yet supported; apply these changes to %s manually: %s",
            self.codec_name,
            path,
            pending,
        )
        return WriteResult(WriteStatus.UNSUPPORTED_FORMAT, pending=pending)


_ADAPTERS: Dict[str, CodecAdapter] = {
    "flac": XiphAdapter(FLAC),
    "vorbis": XiphAdapter(OggVorbis),
    "mp3": ID3Adapter(),
    "aac": MP4Adapter(),
    "opus": UnsupportedAdapter("opus"),
}


def adapter_for(codec_name: Optional[str]) -> CodecAdapter:
    adapter = _ADAPTERS.get(codec_name or "")
    if adapter is None:
        raise UnsupportedFormat(f"Unknown codec name: {codec_name}")
    return adapter


def read_tags(path: Path, codec_name: Optional[str]) -> tuple[TagSchema, List[str]]:
    """Read ``path`` into a TagSchema; problems are reported, never raised."""
    try:
        tags, diagnostics = adapter_for(codec_name).read(path)
    except (MissingTagData, UnsupportedFormat) as exc:
        logger.warning("%s", exc)
        tags, diagnostics = TagSchema(), [str(exc)]
    except (MutagenError, OSError) as exc:
        message = f"{path}: unable to read tags: {exc}"
        logger.warning(message)
        tags, diagnostics = TagSchema(), [message]
    for line in diagnostics:
        logger.debug("Diagnostic: %s", line)
    tags.codec_name = codec_name
    return tags, diagnostics


def write_tags(path: Path, codec_name: Optional[str], tags: TagSchema) -> WriteResult:
    """Write the set fields of ``tags``; InvariantViolation propagates to the caller."""
    try:
        adapter = adapter_for(codec_name)
    except UnsupportedFormat as exc:
        tags.require_totals(path)
        logger.warning("%s; leaving %s untouched", exc, path)
        return WriteResult(WriteStatus.UNSUPPORTED_FORMAT, pending=tags.to_record(), error=str(exc))
    try:
        return adapter.write(path, tags)
    except TargetMissing as exc:
        logger.warning("%s", exc)
        return WriteResult(WriteStatus.TARGET_MISSING, error=str(exc))
    except (MutagenError, OSError) as exc:
        logger.error("Failed to write tags to %s: %s", path, exc)
        return WriteResult(WriteStatus.FAILED, error=str(exc))


def _has_id3(path: Path) -> bool:
    try:
        ID3(path)
    except MutagenError:
        return False
    return True
