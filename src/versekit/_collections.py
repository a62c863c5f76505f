"""Client-side collections: favorite verses and topical groupings.

Both are plain in-memory state keyed by VerseKey. Nothing here touches the
store; ``to_dict``/``from_dict`` give callers a JSON-ready snapshot if they
want to persist one.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime, timezone

from ._errors import ValidationError
from ._models import Verse, VerseKey


def _verse_to_dict(v: Verse) -> dict:
    return {"book": v.book, "chapter": v.chapter, "verse": v.verse, "text": v.text}


def _verse_from_dict(d: dict) -> Verse:
    return Verse(d["book"], int(d["chapter"]), int(d["verse"]), d["text"])


def _parse_timestamp(value: str) -> datetime:
    # JavaScript's toISOString() ends in "Z", which fromisoformat() rejects
    # before Python 3.11.
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def _as_key(item: Verse | VerseKey | str) -> VerseKey:
    if isinstance(item, Verse):
        return item.key
    if isinstance(item, VerseKey):
        return item
    return VerseKey.parse(item)


class Favorites:
    """A set of favorite verses, in the order they were added."""

    def __init__(self, verses: Iterable[Verse] = ()):
        self._verses: dict[VerseKey, Verse] = {}
        for v in verses:
            self.add(v)

    def __contains__(self, item: object) -> bool:
        if not isinstance(item, (Verse, VerseKey, str)):
            return False
        return _as_key(item) in self._verses

    def __len__(self) -> int:
        return len(self._verses)

    def __iter__(self) -> Iterator[Verse]:
        return iter(list(self._verses.values()))

    def add(self, verse: Verse) -> bool:
        """Add a verse. Returns False if it was already a favorite."""
        if verse.key in self._verses:
            return False
        self._verses[verse.key] = verse
        return True

    def remove(self, item: Verse | VerseKey | str) -> bool:
        """Remove a verse. Returns False if it was not a favorite."""
        return self._verses.pop(_as_key(item), None) is not None

    def toggle(self, verse: Verse) -> bool:
        """Flip membership of a verse. Returns True if it is now a favorite."""
        if self.remove(verse):
            return False
        self.add(verse)
        return True

    def keys(self) -> set[VerseKey]:
        return set(self._verses)

    def verses(self) -> list[Verse]:
        return list(self._verses.values())

    def to_dict(self) -> dict:
        return {"verses": [_verse_to_dict(v) for v in self._verses.values()]}

    @classmethod
    def from_dict(cls, data: dict) -> Favorites:
        return cls(_verse_from_dict(d) for d in data.get("verses", []))


@dataclass(slots=True)
class Topic:
    """A user-defined grouping of verses."""
    id: str
    title: str
    description: str = ""
    verses: list[Verse] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def has_verse(self, item: Verse | VerseKey | str) -> bool:
        key = _as_key(item)
        return any(v.key == key for v in self.verses)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "verses": [_verse_to_dict(v) for v in self.verses],
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Topic:
        """Inverse of :meth:`to_dict`. Repeated verses keep their first copy."""
        verses: dict[VerseKey, Verse] = {}
        for d in data.get("verses", []):
            v = _verse_from_dict(d)
            verses.setdefault(v.key, v)
        return cls(
            id=data["id"],
            title=data["title"],
            description=data.get("description", ""),
            verses=list(verses.values()),
            created_at=_parse_timestamp(data["created_at"]),
        )


class TopicBook:
    """The user's topics, in creation order."""

    def __init__(self, topics: Iterable[Topic] = ()):
        self._topics: dict[str, Topic] = {t.id: t for t in topics}

    def __len__(self) -> int:
        return len(self._topics)

    def __iter__(self) -> Iterator[Topic]:
        return iter(list(self._topics.values()))

    def __contains__(self, topic_id: object) -> bool:
        return topic_id in self._topics

    def topics(self) -> list[Topic]:
        return list(self._topics.values())

    def get(self, topic_id: str) -> Topic:
        """Return a topic. Raises KeyError for an unknown id."""
        try:
            return self._topics[topic_id]
        except KeyError:
            raise KeyError(f"No topic with id {topic_id!r}") from None

    def create_topic(
        self,
        title: str,
        description: str = "",
        verses: Iterable[Verse] = (),
    ) -> Topic:
        """Create a topic; duplicate verses in ``verses`` are dropped."""
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("Topic title must be a non-empty string")
        topic = Topic(id=uuid.uuid4().hex, title=title.strip(), description=description)
        self._topics[topic.id] = topic
        for v in verses:
            self.add_verse_to_topic(topic.id, v)
        return topic

    def delete_topic(self, topic_id: str) -> bool:
        """Delete a topic. Returns False if there was no such topic."""
        return self._topics.pop(topic_id, None) is not None

    def add_verse_to_topic(self, topic_id: str, verse: Verse) -> bool:
        """Append a verse. No-op (returns False) if the topic already has it."""
        topic = self.get(topic_id)
        if topic.has_verse(verse):
            return False
        topic.verses.append(verse)
        return True

    def remove_verse_from_topic(self, topic_id: str, item: Verse | VerseKey | str) -> bool:
        """Remove a verse. No-op (returns False) if the topic does not have it."""
        topic = self.get(topic_id)
        key = _as_key(item)
        remaining = [v for v in topic.verses if v.key != key]
        if len(remaining) == len(topic.verses):
            return False
        topic.verses[:] = remaining
        return True

    def to_dict(self) -> dict:
        return {"topics": [t.to_dict() for t in self._topics.values()]}

    @classmethod
    def from_dict(cls, data: dict) -> TopicBook:
        return cls(Topic.from_dict(d) for d in data.get("topics", []))
