from __future__ import annotations

import re
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Hashable, Iterable, List, Mapping, MutableMapping, Optional, Tuple

from .models import TagSchema

BOOTH_FILENAME_PATTERN = re.compile(r"\d+-(\d+)-.*\.flac")


@dataclass(frozen=True, slots=True)
class Renumbering:
    track: int
    total_tracks: int
    total_discs: int


@dataclass(slots=True)
class ContinuityResult:
    feasible: bool
    mapping: Dict[Hashable, Renumbering] = field(default_factory=dict)
    disc_spans: Dict[int, Tuple[int, int]] = field(default_factory=dict)


def is_continuous(values: Iterable[Optional[int]]) -> bool:
    """True when ``values`` is exactly 1..n with no gaps, repeats or ``None``."""
    items = list(values)
    if not items or any(value is None for value in items):
        return False
    count = len(items)
    return min(items) == 1 and max(items) == count and sorted(items) == list(range(1, count + 1))


def resolve_continuity(
    observations: Mapping[Hashable, Tuple[Optional[int], Optional[int]]],
) -> ContinuityResult:
    """Compute a gapless numbering running across discs.

    ``observations`` maps a file key to its ``(disc, track)`` pair. Files sharing a
    pair all receive the same new number.
    """
    tracks_by_disc: Dict[Optional[int], List[Optional[int]]] = defaultdict(list)
    for disc, track in observations.values():
        tracks_by_disc[disc].append(track)
    if not is_continuous(tracks_by_disc.keys()):
        return ContinuityResult(feasible=False)
    if not all(is_continuous(tracks) for tracks in tracks_by_disc.values()):
        return ContinuityResult(feasible=False)

    total_discs = max(tracks_by_disc)
    total_tracks = sum(len(tracks) for tracks in tracks_by_disc.values())
    result = ContinuityResult(feasible=True)
    counter = 1
    for disc in sorted(tracks_by_disc):
        first = counter
        for track in sorted(tracks_by_disc[disc]):
            for key, pair in observations.items():
                if pair == (disc, track):
                    result.mapping[key] = Renumbering(counter, total_tracks, total_discs)
            counter += 1
        result.disc_spans[disc] = (first, counter - 1)
    return result


def duplicate_track_numbers(tracks: Iterable[Optional[int]]) -> List[Optional[int]]:
    counts = Counter(tracks)
    return [track for track, count in counts.items() if count > 1]


def apply_renumbering(
    tags_by_key: MutableMapping[Hashable, TagSchema], result: ContinuityResult
) -> None:
    for key, renumbering in result.mapping.items():
        tags = tags_by_key[key]
        tags.track = renumbering.track
        tags.total_tracks = renumbering.total_tracks
        tags.total_discs = renumbering.total_discs


def tracks_from_filenames(paths: Iterable[Path]) -> Dict[Path, int]:
    """Recover track numbers from ``<event>-<track>-<title>.flac`` file names."""
    found: Dict[Path, int] = {}
    for path in paths:
        match = BOOTH_FILENAME_PATTERN.match(Path(path).name)
        if match:
            found[path] = int(match.group(1))
    return found
