import unittest
from pathlib import Path
from types import SimpleNamespace

from mutagen.flac import FLAC
from mutagen.mp3 import MP3
from mutagen.mp4 import MP4
from mutagen.oggvorbis import OggVorbis

from radish.probe import codec_name, format_label


def fake(cls, **info):
    audio = cls.__new__(cls)
    audio.info = SimpleNamespace(**info)
    return audio


class TestProbe(unittest.TestCase):
    path = Path("/music/track")

    def test_codec_names(self) -> None:
        self.assertEqual(codec_name(self.path, fake(FLAC)), "flac")
        self.assertEqual(codec_name(self.path, fake(MP3)), "mp3")
        self.assertEqual(codec_name(self.path, fake(OggVorbis)), "vorbis")
        self.assertEqual(codec_name(self.path, fake(MP4, codec="mp4a.40.2")), "aac")
        self.assertEqual(codec_name(self.path, fake(MP4, codec="alac")), "alac")

    def test_format_labels(self) -> None:
        self.assertEqual(format_label(self.path, fake(FLAC, bits_per_sample=16, sample_rate=44100)), "FLAC")
        self.assertEqual(format_label(self.path, fake(FLAC, bits_per_sample=24, sample_rate=96000)), "FLAC 24-96")
        self.assertEqual(format_label(self.path, fake(FLAC, bits_per_sample=24, sample_rate=44100)), "FLAC 24-44.1")
        self.assertEqual(format_label(self.path, fake(MP3, bitrate=320000)), "MP3 320")
        self.assertEqual(format_label(self.path, fake(MP3, bitrate=193412)), "MP3")
        self.assertEqual(format_label(self.path, fake(OggVorbis, bitrate=191800)), "Vorbis 192")
        self.assertEqual(format_label(self.path, fake(MP4, codec="mp4a.40.2")), "AAC")

    def test_missing_file_has_no_codec(self) -> None:
        with self.assertLogs("radish.probe", level="WARNING"):
            self.assertIsNone(codec_name(Path("/nonexistent/radish/file.flac")))


if __name__ == "__main__":
    unittest.main()
