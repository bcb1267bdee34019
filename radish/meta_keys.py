from __future__ import annotations

# Native key names per container, shared by the codec adapters.
# Xiph comment keys are matched case-insensitively by mutagen.

XIPH_ALBUM = "ALBUM"
XIPH_ARTIST = "ARTIST"
XIPH_DATE = "DATE"
XIPH_YEAR = "YEAR"
XIPH_ALBUM_ARTIST = ("ALBUMARTIST", "ALBUM_ARTIST", "ALBUM ARTIST")
XIPH_ARTIST_SORT = "ARTISTSORT"
XIPH_ALBUM_SORT = "ALBUMSORT"
XIPH_ALBUM_ARTIST_SORT = "ALBUMARTISTSORT"
XIPH_TRACK = ("TRACKNUMBER", "TRACK")
XIPH_TRACK_TOTAL = ("TOTALTRACKS", "TRACKTOTAL", "TRACKC")
XIPH_DISC = ("DISCNUMBER", "DISC")
XIPH_DISC_TOTAL = ("TOTALDISCS", "DISCTOTAL", "DISCC")
XIPH_DISAMBIGUATION = "MUSICBRAINZ_ALBUMCOMMENT"
XIPH_RELEASE_ID = "MUSICBRAINZ_ALBUMID"
XIPH_BLANKED = ("DESCRIPTION", "COMMENT")

# ID3 user text frames are addressed as "TXXX:<description>".
ID3_ALBUM_ARTIST_SORT = "ALBUMARTISTSORT"
ID3_DISAMBIGUATION = "MusicBrainz Album Comment"
ID3_RELEASE_ID = "MusicBrainz Album Id"

MP4_ALBUM = "\xa9alb"
MP4_ARTIST = "\xa9ART"
MP4_DATE = "\xa9day"
MP4_COMMENT = "\xa9cmt"
MP4_ALBUM_ARTIST = "aART"
MP4_ARTIST_SORT = "soar"
MP4_ALBUM_SORT = "soal"
MP4_ALBUM_ARTIST_SORT = "soaa"
MP4_TRACK = "trkn"
MP4_DISC = "disk"
