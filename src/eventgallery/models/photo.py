"""
Photo record model for eventgallery.

Photo records are persisted as camelCase JSON objects inside a single
metadata document; this module converts between that form and dataclasses.
"""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class PhotoTag(str, Enum):
    """Fixed set of photo categories."""

    WEDDING = "wedding"
    RECEPTION = "reception"
    OTHER = "other"

    @classmethod
    def values(cls) -> list[str]:
        return [tag.value for tag in cls]

    @classmethod
    def parse(cls, value: "str | PhotoTag") -> "PhotoTag":
        """Convert a raw value to a tag.

        Raises:
            ValueError: If the value is not one of the fixed categories
        """
        if isinstance(value, cls):
            return value
        return cls(value)


@dataclass
class FaceDetection:
    """
    A face annotation produced by the face-detection collaborator.

    Stored flat as ``{x, y, width, height, confidence?, personName?, id?}``.
    The gallery only stores these; it never interprets them, and keys it
    does not know about are carried through unchanged.
    """

    x: float
    y: float
    width: float
    height: float
    id: str | None = None
    person_name: str | None = None
    confidence: float | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    KNOWN_KEYS = ("id", "x", "y", "width", "height", "personName", "confidence", "coordinates")

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = dict(self.extra)
        if self.id is not None:
            data["id"] = self.id
        data.update(x=self.x, y=self.y, width=self.width, height=self.height)
        if self.confidence is not None:
            data["confidence"] = self.confidence
        if self.person_name is not None:
            data["personName"] = self.person_name
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FaceDetection":
        """
        Accept the flat box form or a nested ``coordinates`` object.

        Raises:
            KeyError: If a box dimension is missing
            TypeError: If the annotation is not an object
            ValueError: If a box dimension is not numeric
        """
        if not isinstance(data, dict):
            raise TypeError(f"face annotation must be an object, got {type(data).__name__}")

        box = data["coordinates"] if isinstance(data.get("coordinates"), dict) else data
        confidence = data.get("confidence")
        return cls(
            x=float(box["x"]),
            y=float(box["y"]),
            width=float(box["width"]),
            height=float(box["height"]),
            id=data.get("id"),
            person_name=data.get("personName"),
            confidence=float(confidence) if confidence is not None else None,
            extra={key: value for key, value in data.items() if key not in cls.KNOWN_KEYS},
        )


def normalize_people(people: list[str]) -> list[str]:
    """Drop blank names and duplicates, keeping first-seen order."""
    seen: set[str] = set()
    result = []
    for name in people:
        cleaned = name.strip()
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            result.append(cleaned)
    return result


def _parse_timestamp(value: str | datetime) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value


def _format_timestamp(value: datetime) -> str:
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


@dataclass
class Photo:
    """
    One uploaded photo.

    ``filename`` is the storage key and never changes after creation.
    ``url`` is regenerable for backends whose URLs expire.
    """

    id: str
    filename: str
    original_name: str
    url: str
    tag: PhotoTag
    size: int
    mimetype: str
    uploaded_at: datetime
    people: list[str] = field(default_factory=list)
    faces: list[FaceDetection] = field(default_factory=list)
    deleted: bool = False
    deleted_at: datetime | None = None

    @classmethod
    def create_new(
        cls,
        filename: str,
        original_name: str,
        url: str,
        tag: PhotoTag,
        size: int,
        mimetype: str,
        uploaded_at: datetime | None = None,
    ) -> "Photo":
        """
        Create a new record with a generated id and the current timestamp.

        Args:
            filename: Storage key of the blob
            original_name: User-supplied filename, display only
            url: Retrieval URL returned by the blob adapter
            tag: Photo category
            size: Size of the blob in bytes
            mimetype: Content type of the blob
            uploaded_at: Creation timestamp (defaults to now)

        Returns:
            New Photo instance
        """
        return cls(
            id=str(uuid.uuid4()),
            filename=filename,
            original_name=original_name,
            url=url,
            tag=tag,
            size=size,
            mimetype=mimetype,
            uploaded_at=uploaded_at or datetime.now(UTC),
        )

    @property
    def is_visible(self) -> bool:
        return not self.deleted

    def mark_deleted(self, when: datetime | None = None) -> None:
        if not self.deleted:
            self.deleted = True
            self.deleted_at = when or datetime.now(UTC)

    def clear_deleted(self) -> None:
        self.deleted = False
        self.deleted_at = None

    def has_person(self, name: str) -> bool:
        wanted = name.strip().lower()
        return any(person.lower() == wanted for person in self.people)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to the persisted JSON shape.

        ``deleted``/``deletedAt`` are only written for soft-deleted records.
        """
        data: dict[str, Any] = {
            "id": self.id,
            "filename": self.filename,
            "originalName": self.original_name,
            "url": self.url,
            "tag": self.tag.value,
            "people": list(self.people),
            "faces": [face.to_dict() for face in self.faces],
            "size": self.size,
            "uploadedAt": _format_timestamp(self.uploaded_at),
            "mimetype": self.mimetype,
        }
        if self.deleted:
            data["deleted"] = True
            data["deletedAt"] = _format_timestamp(self.deleted_at) if self.deleted_at else None
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Photo":
        """
        Create a Photo from its persisted JSON shape.

        Raises:
            KeyError: If a required field is missing
            ValueError: If the tag or a timestamp is invalid
        """
        deleted_at = data.get("deletedAt")
        return cls(
            id=data["id"],
            filename=data["filename"],
            original_name=data.get("originalName", data["filename"]),
            url=data.get("url", ""),
            tag=PhotoTag.parse(data.get("tag", PhotoTag.OTHER.value)),
            size=int(data["size"]),
            mimetype=data["mimetype"],
            uploaded_at=_parse_timestamp(data["uploadedAt"]),
            people=normalize_people(data.get("people") or []),
            faces=[FaceDetection.from_dict(face) for face in data.get("faces") or []],
            deleted=bool(data.get("deleted", False)),
            deleted_at=_parse_timestamp(deleted_at) if deleted_at else None,
        )
