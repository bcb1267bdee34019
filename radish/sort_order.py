from __future__ import annotations

import json
import logging
import os
import tempfile
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .models import TagSchema
from .prompt_io import PromptIO

logger = logging.getLogger(__name__)


class SortOrderEntry(BaseModel):
    """Stored sort order of one artist; serialized as ``{"P": ..., "R": [...]}``."""

    model_config = ConfigDict(populate_by_name=True)

    primary: str = Field(alias="P")
    rejected: List[str] = Field(default_factory=list, alias="R")


_STORE = TypeAdapter(Dict[str, SortOrderEntry])


class ConflictChoice(Enum):
    KEEP = "keep"
    REPLACE = "replace"
    ABORT = "abort"


class ReconcileDecision(Enum):
    UNCHANGED = "unchanged"
    CREATED = "created"
    KEPT = "kept"
    REPLACED = "replaced"


class ConflictAbort(Exception):
    """The user asked to stop reconciling sort orders for the current batch."""


class SortOrderPrompter(Protocol):
    def ask_new(self, artist: str) -> Optional[str]: ...

    def ask_conflict(self, artist: str, observed: str, primary: str) -> ConflictChoice: ...


class ConsoleSortOrderPrompter:
    def __init__(self, prompt_io: PromptIO) -> None:
        self.prompt_io = prompt_io

    def ask_new(self, artist: str) -> Optional[str]:
        answer = self.prompt_io.input(f"Enter sort order for artist [{artist}]: ").strip()
        return answer or None

    def ask_conflict(self, artist: str, observed: str, primary: str) -> ConflictChoice:
        answer = self.prompt_io.input(
            f"Found sort order [{observed}] for artist [{artist}], but different sort order "
            f"[{primary}] is already stored. Enter to ignore, [r] to replace, [a] to abort: "
        ).strip().lower()
        if answer == "r":
            return ConflictChoice.REPLACE
        if answer == "a":
            return ConflictChoice.ABORT
        return ConflictChoice.KEEP


class SortOrderRegistry:
    """Durable artist -> sort order mapping that remembers rejected alternatives."""

    def __init__(self, path: Path, prompter: Optional[SortOrderPrompter] = None) -> None:
        self.path = path
        self.prompter = prompter
        self.entries: Dict[str, SortOrderEntry] = {}
        self.load()

    def load(self) -> None:
        if not self.path.exists():
            self.entries = {}
            return
        entries = _STORE.validate_json(self.path.read_bytes())
        for artist, entry in entries.items():
            if entry.primary in entry.rejected:
                logger.warning(
                    "Sort order [%s] for artist [%s] is both primary and rejected; keeping it as primary",
                    entry.primary,
                    artist,
                )
                entry.rejected = [value for value in entry.rejected if value != entry.primary]
        self.entries = entries
        logger.debug("Loaded %d artist sort orders from %s", len(entries), self.path)

    def persist(self) -> None:
        payload = {artist: entry.model_dump(by_alias=True) for artist, entry in self.entries.items()}
        text = json.dumps(payload, indent=2, ensure_ascii=False)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(text)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Saved %d artist sort orders to %s", len(self.entries), self.path)

    def get(self, artist: str) -> Optional[SortOrderEntry]:
        return self.entries.get(artist)

    def lookup_or_create(self, artist: Optional[str], observed: Optional[str] = None) -> Optional[str]:
        """Stored primary for ``artist``; an unknown artist takes ``observed`` or asks the prompter."""
        if artist is None:
            return None
        entry = self.entries.get(artist)
        if entry is not None:
            return entry.primary
        if observed is not None and observed != artist:
            self.entries[artist] = SortOrderEntry(primary=observed)
            logger.info("Storing sort order [%s] for artist [%s]", observed, artist)
            return observed
        return self._create(artist)

    def reconcile(
        self,
        artist: Optional[str],
        observed: Optional[str],
        override: Optional[str] = None,
    ) -> ReconcileDecision:
        """Fold a sort order seen in a file's tags into the registry.

        Raises ConflictAbort when the prompter asks to stop; entries already
        reconciled stay in place.
        """
        if artist is None:
            return ReconcileDecision.UNCHANGED
        entry = self.entries.get(artist)
        if entry is None:
            if observed is None or observed == artist:
                self._create(artist)
                return ReconcileDecision.CREATED
            if override is not None and override != observed:
                self.entries[artist] = SortOrderEntry(primary=override, rejected=[observed])
                logger.info("Storing sort order [%s] for artist [%s] (rejected [%s])", override, artist, observed)
            else:
                self.entries[artist] = SortOrderEntry(primary=observed)
                logger.info("Storing sort order [%s] for artist [%s]", observed, artist)
            return ReconcileDecision.CREATED
        if observed is None or observed == entry.primary or observed in entry.rejected:
            return ReconcileDecision.UNCHANGED
        choice = (
            self.prompter.ask_conflict(artist, observed, entry.primary)
            if self.prompter
            else ConflictChoice.KEEP
        )
        match choice:
            case ConflictChoice.REPLACE:
                entry.rejected.append(entry.primary)
                entry.primary = observed
                logger.info("Replaced sort order for artist [%s] with [%s]", artist, observed)
                return ReconcileDecision.REPLACED
            case ConflictChoice.ABORT:
                raise ConflictAbort(f"Sort order reconciliation aborted at artist [{artist}]")
            case _:
                entry.rejected.append(observed)
                logger.info("Rejected sort order [%s] for artist [%s]", observed, artist)
                return ReconcileDecision.KEPT

    def ingest(self, tag_sets: Iterable[TagSchema]) -> bool:
        """Reconcile every artist/album artist in ``tag_sets``; False when aborted."""
        try:
            for tags in tag_sets:
                self.reconcile(tags.artist, tags.artist_sort)
                self.reconcile(tags.album_artist, tags.album_artist_sort)
        except ConflictAbort as exc:
            logger.info("%s", exc)
            return False
        return True

    def _create(self, artist: str) -> str:
        answer = self.prompter.ask_new(artist) if self.prompter else None
        primary = answer or artist
        self.entries[artist] = SortOrderEntry(primary=primary)
        return primary
