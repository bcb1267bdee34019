from __future__ import annotations

import logging
from typing import Optional

from .config import SessionSettings
from .continuity import duplicate_track_numbers, resolve_continuity
from .events import EventCalendar, UnknownEvent, parse_release_input, release_day
from .prompt_io import PromptIO, ask, confirm
from .session import BatchDecisions, BatchRead

logger = logging.getLogger(__name__)

VARIOUS_ANSWER = "v"


def release_date_prompt(current: Optional[str], calendar: EventCalendar) -> str:
    prompt = "Release date [%%]"
    day = release_day(current)
    options = calendar.events_on(day) if day is not None else []
    if options:
        prompt += "; " + ", ".join(f"[{idx}] for [{name}]" for idx, name in enumerate(options))
    return prompt + ": "


def collect_decisions(
    prompt_io: PromptIO,
    read: BatchRead,
    settings: SessionSettings,
    calendar: EventCalendar,
) -> BatchDecisions:
    """Ask for the album-level values of one batch, seeded from its first file."""
    first = next(iter(read.tags.values()), None)
    decisions = BatchDecisions(remap=settings.remap_by_default)
    prompt_io.print("Enter [-] to leave a field empty.")

    decisions.album = ask(prompt_io, "Album [%%]: ", first.album if first else None)
    album_artist = ask(
        prompt_io, "Album artist [%%]; [v] for various: ", first.album_artist if first else None
    )
    decisions.album_artist = settings.various_artists if album_artist == VARIOUS_ANSWER else album_artist

    current_date = first.release_date if first else None
    while True:
        answer = ask(prompt_io, release_date_prompt(current_date, calendar), current_date)
        try:
            decisions.release_date, event = parse_release_input(answer, calendar, current_date)
        except UnknownEvent as exc:
            prompt_io.print(str(exc))
            continue
        if event:
            logger.info("Release event: %s", event)
        break

    if decisions.album is not None:
        albums = list(dict.fromkeys(tags.album for tags in read.tags.values()))
        if len(albums) > 1 or (len(albums) == 1 and albums[0] != decisions.album):
            prompt_io.print("Album tags in files: " + ", ".join(str(album) for album in albums))
            answer = ask(
                prompt_io,
                f"Unify albums? Enter to ignore, [y] to unify to [{decisions.album}], or enter unified album tag: ",
            )
            if answer is not None:
                decisions.unify_album = decisions.album if answer == "y" else answer

    tracks = [tags.track for tags in read.tags.values()]
    if not any(track is not None for track in tracks):
        decisions.tracks_from_filenames = confirm(
            prompt_io,
            "No track numbers found! Enter to ignore, or [y] to try to remap from filenames: ",
            default=False,
        )
    elif duplicate_track_numbers(tracks):
        result = resolve_continuity({key: (tags.disc, tags.track) for key, tags in read.tags.items()})
        if result.feasible:
            shown = "[y] (default) or [n]" if settings.remap_by_default else "[y] or [n] (default)"
            decisions.remap = confirm(
                prompt_io,
                f"Continuous remapping appears possible! Remap? {shown}: ",
                default=settings.remap_by_default,
            )
        else:
            prompt_io.print("Unable to remap continuously...")

    if decisions.album is not None:
        default_sort = (first.album_sort if first else None) or decisions.album
        decisions.album_sort = ask(prompt_io, "Enter album sort order [%%]: ", default_sort)
    return decisions
