import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from radish.models import TagSchema
from radish.prompt_io import BufferPromptIO
from radish.scanner import SourceBatch
from radish.session import BatchDecisions, NormalizationSession
from radish.sort_order import ConsoleSortOrderPrompter, SortOrderEntry, SortOrderRegistry
from radish.tagging import read_tags, write_tags

LAYOUT = [
    ("CD1/01.mp3", 1, 1),
    ("CD1/02.mp3", 1, 2),
    ("CD2/01.mp3", 2, 1),
    ("CD2/02.mp3", 2, 2),
    ("CD2/03.mp3", 2, 3),
]


def mp3_probe(path: Path) -> str:
    return "opus" if path.suffix == ".opus" else "mp3"


class TestNormalizationSession(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.root = Path(tmp.name)
        self.album = self.root / "Album"
        for name, disc, track in LAYOUT:
            path = self.album / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(b"\x00" * 256)
            write_tags(
                path,
                "mp3",
                TagSchema(
                    album="Album",
                    artist="The Band",
                    artist_sort="Band, The",
                    album_artist="The Band",
                    album_artist_sort="Band, The",
                    track=track,
                    total_tracks=3 if disc == 2 else 2,
                    disc=disc,
                    total_discs=2,
                ),
            )
        self.batch = SourceBatch(
            directory=self.album,
            files=[Path(name) for name, _, _ in LAYOUT],
            is_dir=True,
        )
        self.store = self.root / "aso.json"
        self.registry = SortOrderRegistry(self.store)
        self.session = NormalizationSession(self.registry, codec_probe=mp3_probe)

    def test_multi_disc_album_is_renumbered_and_written(self) -> None:
        read = self.session.read_batch(self.batch)
        self.assertTrue(read.reconciled)
        self.assertEqual(self.registry.get("The Band"), SortOrderEntry(primary="Band, The"))

        decisions = BatchDecisions(
            album="Album",
            album_artist="The Band",
            album_sort="Album",
            release_date="2001-02-03",
        )
        report = self.session.process(self.batch, read, decisions)

        self.assertTrue(report.continuity.feasible)
        self.assertEqual(len(report.written), 5)
        self.assertEqual(report.failed, [])
        tags, _ = read_tags(self.album / "CD2/02.mp3", "mp3")
        self.assertEqual((tags.track, tags.total_tracks), (4, 5))
        self.assertEqual((tags.disc, tags.total_discs), (2, 2))
        self.assertEqual(tags.artist, "The Band")
        self.assertEqual(tags.album_artist_sort, "Band, The")
        self.assertEqual(tags.artist_sort, "Band, The")
        self.assertEqual(tags.album_sort, "Album")
        self.assertEqual(tags.release_date, "2001-02-03")
        self.assertEqual(
            json.loads(self.store.read_text(encoding="utf-8")),
            {"The Band": {"P": "Band, The", "R": []}},
        )

    def test_declined_remap_keeps_original_numbers(self) -> None:
        read = self.session.read_batch(self.batch)
        report = self.session.process(self.batch, read, BatchDecisions(remap=False))
        self.assertTrue(report.continuity.feasible)
        tags, _ = read_tags(self.album / "CD2/02.mp3", "mp3")
        self.assertEqual((tags.track, tags.total_tracks), (2, 3))

    def test_artist_remap_rewrites_only_mapped_artists(self) -> None:
        self.registry.entries["Band"] = SortOrderEntry(primary="Band")
        session = NormalizationSession(
            self.registry, artist_remap={"The Band": "Band"}, codec_probe=mp3_probe
        )
        read = session.read_batch(self.batch)
        session.process(self.batch, read, BatchDecisions())
        tags, _ = read_tags(self.album / "CD1/01.mp3", "mp3")
        self.assertEqual(tags.artist, "Band")
        self.assertEqual(tags.artist_sort, "Band, The")

    def test_vanished_and_unsupported_files_do_not_stop_the_batch(self) -> None:
        opus = self.album / "CD2" / "bonus.opus"
        opus.write_bytes(b"OggS")
        batch = SourceBatch(
            directory=self.album,
            files=self.batch.files + [Path("CD2/bonus.opus")],
            is_dir=True,
        )
        read = self.session.read_batch(batch)
        (self.album / "CD1/02.mp3").unlink()
        report = self.session.process(batch, read, BatchDecisions(album_artist="The Band"))
        self.assertEqual(report.skipped, [self.album / "CD1/02.mp3"])
        self.assertEqual(len(report.written), 4)
        self.assertIn(opus, report.pending)
        self.assertEqual(report.pending[opus], {"album_artist": "The Band", "album_artist_sort": "Band, The"})

    def test_missing_totals_are_filled_from_batch_maximum(self) -> None:
        tags = TagSchema(track=3, disc=1)
        output = self.session.build_output(tags, BatchDecisions(), max_track=9, max_disc=1)
        self.assertEqual((output.total_tracks, output.total_discs), (9, 1))
        self.assertIsNone(tags.total_tracks)

    def test_unreconciled_artists_use_file_sort_order_after_abort(self) -> None:
        prompt_io = BufferPromptIO(inputs=["a"])
        registry = SortOrderRegistry(self.store, ConsoleSortOrderPrompter(prompt_io))
        registry.entries["Guest"] = SortOrderEntry(primary="Guest")
        session = NormalizationSession(registry, codec_probe=mp3_probe)
        batch = [
            TagSchema(artist="Guest", artist_sort="Guest, The"),
            TagSchema(artist="The Band", artist_sort="Band, The", album_artist="The Band", album_artist_sort="Band, The"),
        ]
        self.assertFalse(registry.ingest(batch))
        self.assertIsNone(registry.get("The Band"))

        output = session.build_output(batch[1], BatchDecisions(album_artist="The Band"))

        self.assertEqual(output.artist_sort, "Band, The")
        self.assertEqual(output.album_artist_sort, "Band, The")
        self.assertEqual(registry.get("The Band"), SortOrderEntry(primary="Band, The"))
        self.assertEqual(len(prompt_io.prompts), 1)

    def test_registry_is_persisted_even_when_a_write_blows_up(self) -> None:
        read = self.session.read_batch(self.batch)
        with patch("radish.session.write_tags", side_effect=RuntimeError("disk on fire")):
            with self.assertRaises(RuntimeError):
                self.session.process(self.batch, read, BatchDecisions())
        self.assertTrue(self.store.exists())

    def test_tracks_recovered_from_filenames_when_absent(self) -> None:
        tags = {
            Path("12-01-Intro.flac"): TagSchema(),
            Path("12-02-Song.flac"): TagSchema(),
        }
        result = self.session.resolve_numbering(tags, BatchDecisions(tracks_from_filenames=True))
        self.assertIsNone(result)
        self.assertEqual([t.track for t in tags.values()], [1, 2])

    def test_infeasible_duplicates_leave_numbers_alone(self) -> None:
        tags = {
            "a": TagSchema(disc=1, track=1),
            "b": TagSchema(disc=1, track=1),
            "c": TagSchema(disc=1, track=3),
        }
        with self.assertLogs("radish.session", level="WARNING"):
            result = self.session.resolve_numbering(tags, BatchDecisions())
        self.assertFalse(result.feasible)
        self.assertEqual([t.track for t in tags.values()], [1, 1, 3])


if __name__ == "__main__":
    unittest.main()
