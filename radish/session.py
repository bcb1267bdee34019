from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from . import probe
from .continuity import (
    ContinuityResult,
    apply_renumbering,
    duplicate_track_numbers,
    resolve_continuity,
    tracks_from_filenames,
)
from .models import InvariantViolation, TagSchema
from .scanner import SourceBatch
from .sort_order import SortOrderRegistry
from .tagging import WriteStatus, read_tags, write_tags

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BatchDecisions:
    """Album-level answers collected by the caller before anything is written."""

    album: Optional[str] = None
    album_artist: Optional[str] = None
    album_sort: Optional[str] = None
    release_date: Optional[str] = None
    unify_album: Optional[str] = None
    remap: bool = True
    tracks_from_filenames: bool = False


@dataclass(slots=True)
class BatchRead:
    tags: Dict[Path, TagSchema]
    diagnostics: Dict[Path, List[str]] = field(default_factory=dict)
    reconciled: bool = True


@dataclass(slots=True)
class BatchReport:
    written: List[Path] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)
    failed: List[Path] = field(default_factory=list)
    pending: Dict[Path, Dict[str, object]] = field(default_factory=dict)
    continuity: Optional[ContinuityResult] = None


class NormalizationSession:
    """Reads one source, reconciles names and numbering, then writes every file."""

    def __init__(
        self,
        registry: SortOrderRegistry,
        *,
        artist_remap: Optional[Dict[str, str]] = None,
        codec_probe: Callable[[Path], Optional[str]] = probe.codec_name,
    ) -> None:
        self.registry = registry
        self.artist_remap = dict(artist_remap or {})
        self.codec_probe = codec_probe

    def read_batch(self, batch: SourceBatch) -> BatchRead:
        logger.info("Reading tags from %d file(s) in %s", len(batch.files), batch.directory)
        result = BatchRead(tags={})
        for relative in batch.files:
            path = batch.absolute(relative)
            codec = self.codec_probe(path)
            tags, diagnostics = read_tags(path, codec)
            result.tags[relative] = tags
            if diagnostics:
                result.diagnostics[relative] = diagnostics
        result.reconciled = self.registry.ingest(result.tags.values())
        return result

    def resolve_numbering(
        self, tags_by_file: Dict[Path, TagSchema], decisions: BatchDecisions
    ) -> Optional[ContinuityResult]:
        tracks = [tags.track for tags in tags_by_file.values()]
        if decisions.tracks_from_filenames and not any(track is not None for track in tracks):
            recovered = tracks_from_filenames(tags_by_file.keys())
            if not recovered:
                logger.warning("Found no track numbers in file names")
            for relative, track in recovered.items():
                tags_by_file[relative].track = track
                logger.info("Found track number %d from filename %s", track, relative)
            tracks = [tags.track for tags in tags_by_file.values()]

        duplicates = duplicate_track_numbers(tracks)
        if not duplicates:
            return None
        logger.warning(
            "Found duplicate track numbers: %s",
            ", ".join(str(track) for track in sorted(tracks, key=lambda t: (t is None, t or 0))),
        )
        result = resolve_continuity(
            {relative: (tags.disc, tags.track) for relative, tags in tags_by_file.items()}
        )
        if not result.feasible:
            logger.warning("Unable to remap continuously; keeping the original track numbers")
            return result
        if not decisions.remap:
            logger.info("Continuous remapping is possible but was declined")
            return result
        apply_renumbering(tags_by_file, result)
        for disc, (first, last) in result.disc_spans.items():
            logger.info("Disc %s: tracks %d-%d", disc, first, last)
        return result

    def build_output(
        self,
        tags: TagSchema,
        decisions: BatchDecisions,
        *,
        max_track: Optional[int] = None,
        max_disc: Optional[int] = None,
    ) -> TagSchema:
        output = tags.copy()
        # Only remapped artists are rewritten; everything else keeps the file's value.
        output.artist = self.artist_remap.get(tags.artist) if tags.artist is not None else None
        if decisions.unify_album is not None:
            output.album = decisions.unify_album
        output.album_artist = decisions.album_artist
        output.album_sort = decisions.album_sort
        # Artists left unreconciled take the file's own sort order without prompting.
        observed_album_sort = tags.album_artist_sort if tags.album_artist == decisions.album_artist else None
        output.album_artist_sort = self.registry.lookup_or_create(decisions.album_artist, observed_album_sort)
        output.artist_sort = self.registry.lookup_or_create(tags.artist, tags.artist_sort)
        output.release_date = decisions.release_date
        if output.track is not None and output.total_tracks is None:
            output.total_tracks = max_track
        if output.disc is not None and output.total_discs is None:
            output.total_discs = max_disc
        return output

    def process(self, batch: SourceBatch, read: BatchRead, decisions: BatchDecisions) -> BatchReport:
        """Renumber, merge and write the batch; the registry is saved even on failure."""
        report = BatchReport()
        try:
            report.continuity = self.resolve_numbering(read.tags, decisions)
            max_track = _max_or_none(tags.track for tags in read.tags.values())
            max_disc = _max_or_none(tags.disc for tags in read.tags.values())
            outputs = {
                relative: self.build_output(tags, decisions, max_track=max_track, max_disc=max_disc)
                for relative, tags in read.tags.items()
            }
            for relative, output in outputs.items():
                self._write_one(batch.absolute(relative), output, report)
        finally:
            self.registry.persist()
        logger.info(
            "Wrote %d file(s), skipped %d, failed %d",
            len(report.written),
            len(report.skipped),
            len(report.failed),
        )
        return report

    def _write_one(self, path: Path, output: TagSchema, report: BatchReport) -> None:
        try:
            result = write_tags(path, output.codec_name, output)
        except InvariantViolation as exc:
            logger.error("Refusing to write %s: %s", path, exc)
            report.failed.append(path)
            return
        match result.status:
            case WriteStatus.OK:
                report.written.append(path)
            case WriteStatus.TARGET_MISSING:
                report.skipped.append(path)
            case WriteStatus.UNSUPPORTED_FORMAT:
                report.pending[path] = result.pending
            case WriteStatus.FAILED:
                report.failed.append(path)


def _max_or_none(values) -> Optional[int]:
    present = [value for value in values if value is not None]
    return max(present) if present else None
