from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import mutagen
from mutagen import MutagenError
from mutagen.flac import FLAC
from mutagen.mp3 import MP3
from mutagen.mp4 import MP4
from mutagen.oggopus import OggOpus
from mutagen.oggvorbis import OggVorbis

logger = logging.getLogger(__name__)


def open_audio(path: Path) -> Optional[Any]:
    try:
        return mutagen.File(path)
    except (MutagenError, OSError) as exc:
        logger.warning("Unable to probe %s: %s", path, exc)
        return None


def codec_name(path: Path, audio: Any = None) -> Optional[str]:
    """Identify the audio codec of ``path`` (flac, mp3, aac, vorbis, opus)."""
    audio = audio if audio is not None else open_audio(path)
    if audio is None:
        return None
    if isinstance(audio, FLAC):
        return "flac"
    if isinstance(audio, MP3):
        return "mp3"
    if isinstance(audio, OggVorbis):
        return "vorbis"
    if isinstance(audio, OggOpus):
        return "opus"
    if isinstance(audio, MP4):
        codec = getattr(audio.info, "codec", "") or ""
        if codec.startswith("mp4a"):
            return "aac"
        return codec or None
    logger.debug("Unrecognised container %s for %s", type(audio).__name__, path)
    return None


def format_label(path: Path, audio: Any = None) -> Optional[str]:
    """Short human label for a file's encoding, e.g. ``FLAC 24-96`` or ``MP3 320``."""
    audio = audio if audio is not None else open_audio(path)
    name = codec_name(path, audio)
    if name is None:
        return None
    info = audio.info
    match name:
        case "flac":
            bits = getattr(info, "bits_per_sample", 16)
            if bits == 16:
                return "FLAC"
            rate = f"{info.sample_rate / 1000.0}"
            if rate.endswith(".0"):
                rate = rate[:-2]
            return f"FLAC {bits}-{rate}"
        case "mp3":
            bitrate = getattr(info, "bitrate", 0) or 0
            if bitrate and bitrate % 1000 == 0:
                return f"MP3 {bitrate // 1000}"
            return "MP3"
        case "vorbis":
            return f"Vorbis {round((getattr(info, 'bitrate', 0) or 0) / 1000.0)}"
        case "opus":
            return "Opus"
        case "aac":
            return "AAC"
    logger.warning("Unknown codec name: %s", name)
    return None
