"""
ClassificationStore — which package manager each image uses.

This is the in-memory view of the shared cache file. It is serialized
as ``{"ids": {...}, "outdated": [...]}`` and merged against the on-disk
copy on every write-back, so the merge logic lives here with the data.

No I/O happens in this module.
"""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

# Reserved bucket for images no registered backend can handle
UNCLASSIFIED = "others"


def dedupe(items: Iterable[str]) -> list[str]:
    """Drop duplicates, keeping first-seen order."""
    return list(dict.fromkeys(items))


class ClassificationStore(BaseModel):
    """Cached classification of images by backend.

    ``ids`` maps a backend name (or ``UNCLASSIFIED``) to image ids.
    ``outdated`` holds ids of images already remediated by this tool.

    The path and validity flag are process-local and never serialized.
    An invalid store is a pass-through: it never reports a hit and is
    never written to disk.
    """

    model_config = ConfigDict(extra="ignore")

    ids: dict[str, list[str]] = Field(default_factory=dict)
    outdated: list[str] = Field(default_factory=list)

    _path: str | None = PrivateAttr(default=None)
    _valid: bool = PrivateAttr(default=True)

    @field_validator("ids", mode="before")
    @classmethod
    def _null_buckets(cls, value: object) -> object:
        # Older writers emit null for empty buckets
        if value is None:
            return {}
        if isinstance(value, dict):
            return {k: ([] if v is None else v) for k, v in value.items()}
        return value

    @field_validator("outdated", mode="before")
    @classmethod
    def _null_outdated(cls, value: object) -> object:
        return [] if value is None else value

    @classmethod
    def empty(cls, path: str | None = None, valid: bool = True) -> ClassificationStore:
        """Create an empty store bound to ``path``."""
        store = cls()
        store._path = path
        store._valid = valid
        return store

    @classmethod
    def from_document(cls, data: object, path: str | None = None) -> ClassificationStore:
        """Validate a decoded cache document and bind it to ``path``."""
        store = cls.model_validate(data)
        store._path = path
        return store

    @classmethod
    def invalid(cls) -> ClassificationStore:
        """A store with no backing file (caching disabled)."""
        return cls.empty(path=None, valid=False)

    @property
    def path(self) -> str | None:
        return self._path

    @property
    def valid(self) -> bool:
        return self._valid

    # ── Queries ─────────────────────────────────────────────────

    def find(self, image_id: str) -> str | None:
        """Return the bucket holding ``image_id``, or None if unknown."""
        for bucket, members in self.ids.items():
            if image_id in members:
                return bucket
        return None

    def is_remediated(self, image_id: str) -> bool:
        return image_id in self.outdated

    def count(self) -> int:
        """Total number of classified ids across all buckets."""
        return sum(len(members) for members in self.ids.values())

    # ── Mutations ───────────────────────────────────────────────

    def add(self, bucket: str, image_id: str) -> bool:
        """Record ``image_id`` under ``bucket``.

        An id keeps its first backend. The only move allowed is out of
        ``UNCLASSIFIED`` into a real backend.

        Returns:
            True if the store changed.
        """
        current = self.find(image_id)
        if current == bucket:
            return False
        if current is not None:
            if current != UNCLASSIFIED:
                return False
            self.ids[UNCLASSIFIED].remove(image_id)
        self.ids.setdefault(bucket, []).append(image_id)
        return True

    def add_remediated(self, image_id: str) -> bool:
        """Record ``image_id`` as remediated. Returns True if the store changed."""
        if image_id in self.outdated:
            return False
        self.outdated.append(image_id)
        return True

    def clear(self) -> None:
        self.ids = {}
        self.outdated = []

    def merge(self, committed: ClassificationStore) -> None:
        """Union ``committed`` (the on-disk state) into this store, in place.

        Buckets are unioned and deduplicated, and buckets only present
        on disk are kept. If an id ends up in more than one bucket, a
        real backend beats ``UNCLASSIFIED``, and between two backends
        the committed bucket wins.
        """
        merged: dict[str, list[str]] = {}
        for bucket in dedupe([*committed.ids, *self.ids]):
            merged[bucket] = dedupe(
                [*committed.ids.get(bucket, []), *self.ids.get(bucket, [])]
            )

        owner: dict[str, str] = {}
        for bucket, members in committed.ids.items():
            if bucket == UNCLASSIFIED:
                continue
            for image_id in members:
                owner.setdefault(image_id, bucket)
        for bucket, members in merged.items():
            if bucket == UNCLASSIFIED:
                continue
            for image_id in members:
                owner.setdefault(image_id, bucket)

        for bucket, members in merged.items():
            merged[bucket] = [i for i in members if owner.get(i, UNCLASSIFIED) == bucket]

        self.ids = merged
        self.outdated = dedupe([*committed.outdated, *self.outdated])

    # ── Serialization ───────────────────────────────────────────

    def to_document(self) -> dict[str, object]:
        """The on-disk JSON document. Empty buckets are omitted."""
        return {
            "ids": {bucket: dedupe(members) for bucket, members in self.ids.items() if members},
            "outdated": dedupe(self.outdated),
        }
