import unittest
from datetime import date
from pathlib import Path

from radish.config import SessionSettings
from radish.events import EventCalendar
from radish.models import TagSchema
from radish.prompt_io import BufferPromptIO, ask, confirm
from radish.prompting import collect_decisions
from radish.session import BatchRead


def calendar() -> EventCalendar:
    return EventCalendar(
        dates_by_event={"C103": date(2023, 12, 31), "M3-52": date(2023, 10, 29)},
        events_by_date={date(2023, 12, 30): ["C103"], date(2023, 12, 31): ["C103"], date(2023, 10, 29): ["M3-52"]},
    )


class TestAsk(unittest.TestCase):
    def test_empty_answer_takes_default_and_dash_clears(self) -> None:
        io = BufferPromptIO(inputs=["", "-", "New"])
        self.assertEqual(ask(io, "Album [%%]: ", "Old"), "Old")
        self.assertIsNone(ask(io, "Album [%%]: ", "Old"))
        self.assertEqual(ask(io, "Album [%%]: ", "Old"), "New")
        self.assertEqual(io.prompts[0], "Album [Old]: ")

    def test_missing_default_shows_blank(self) -> None:
        io = BufferPromptIO(inputs=[""])
        self.assertIsNone(ask(io, "Album [%%]: "))
        self.assertEqual(io.prompts[0], "Album [ ]: ")

    def test_confirm_keeps_default_unless_opposite_letter(self) -> None:
        io = BufferPromptIO(inputs=["", "No", "yes", "x"])
        self.assertTrue(confirm(io, "Remap? ", default=True))
        self.assertFalse(confirm(io, "Remap? ", default=True))
        self.assertTrue(confirm(io, "Recover? ", default=False))
        self.assertFalse(confirm(io, "Recover? ", default=False))


class TestCollectDecisions(unittest.TestCase):
    def test_defaults_come_from_first_file(self) -> None:
        read = BatchRead(
            tags={
                Path("01.flac"): TagSchema(album="Album", album_artist="Artist", release_date="2023-12-31", track=1),
                Path("02.flac"): TagSchema(album="Album", album_artist="Artist", release_date="2023-12-31", track=2),
            }
        )
        io = BufferPromptIO(inputs=["", "", "0", ""])
        decisions = collect_decisions(io, read, SessionSettings(), calendar())
        self.assertEqual(decisions.album, "Album")
        self.assertEqual(decisions.album_artist, "Artist")
        self.assertEqual(decisions.release_date, "2023-12-31")
        self.assertEqual(decisions.album_sort, "Album")
        self.assertIsNone(decisions.unify_album)
        self.assertIn("[0] for [C103]", io.prompts[2])

    def test_various_artists_unify_and_remap(self) -> None:
        read = BatchRead(
            tags={
                Path("CD1/01.flac"): TagSchema(album="Album CD1", disc=1, track=1),
                Path("CD2/01.flac"): TagSchema(album="Album CD2", disc=2, track=1),
            }
        )
        io = BufferPromptIO(inputs=["Album", "v", "nowhere", "M3-52", "y", "n", "Album, The"])
        decisions = collect_decisions(io, read, SessionSettings(various_artists="V.A."), calendar())
        self.assertEqual(decisions.album_artist, "V.A.")
        self.assertEqual(decisions.release_date, "2023-10-29")
        self.assertEqual(decisions.unify_album, "Album")
        self.assertFalse(decisions.remap)
        self.assertEqual(decisions.album_sort, "Album, The")
        self.assertIn('Could not find event "nowhere"', io.outputs)

    def test_placeholder_release_date_asks_again(self) -> None:
        read = BatchRead(tags={Path("01.flac"): TagSchema(album="Album", release_date="0000-00-00")})
        io = BufferPromptIO(inputs=["", "", "", "2001", "", ""])
        decisions = collect_decisions(io, read, SessionSettings(), calendar())
        self.assertEqual(decisions.release_date, "2001")
        self.assertEqual(io.prompts[2], "Release date [0000-00-00]: ")
        self.assertIn('"0000-00-00" is not a valid date', io.outputs)
        self.assertEqual(io.inputs, [])

    def test_missing_track_numbers_offer_filename_recovery(self) -> None:
        read = BatchRead(tags={Path("12-01-Intro.flac"): TagSchema()})
        io = BufferPromptIO(inputs=["-", "-", "-", "y"])
        decisions = collect_decisions(io, read, SessionSettings(), EventCalendar())
        self.assertIsNone(decisions.album)
        self.assertTrue(decisions.tracks_from_filenames)
        self.assertEqual(io.inputs, [])


if __name__ == "__main__":
    unittest.main()
