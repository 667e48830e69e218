from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass(slots=True, frozen=True)
class AudioSource:
    path: Path
    size_bytes: int

    @classmethod
    def from_path(cls, path: Path) -> "AudioSource":
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Audio file not found: {path}")
        # Opening the file surfaces permission problems before any ffmpeg work starts.
        with path.open("rb"):
            pass
        return cls(path=path, size_bytes=path.stat().st_size)

    @property
    def size_mb(self) -> float:
        return self.size_bytes / (1024 * 1024)


@dataclass(slots=True, frozen=True)
class SegmentSpan:
    index: int
    start_sec: float
    duration_sec: float

    @property
    def end_sec(self) -> float:
        return self.start_sec + self.duration_sec


@dataclass(slots=True, frozen=True)
class SegmentArtifact:
    index: int
    path: Path


@dataclass(slots=True, frozen=True)
class TranscriptionResult:
    index: int
    text: str


@dataclass(slots=True, frozen=True)
class Transcript:
    text: str
    segments: tuple[TranscriptionResult, ...] = ()

    @classmethod
    def join(cls, results: list[TranscriptionResult]) -> "Transcript":
        ordered = tuple(sorted(results, key=lambda r: r.index))
        return cls(text=" ".join(r.text for r in ordered), segments=ordered)

    def __str__(self) -> str:
        return self.text


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None and str(item).strip()]


@dataclass(slots=True)
class TechnicalConcept:
    term: str
    context: str
    mentioned_technologies: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "TechnicalConcept":
        return cls(
            term=str(raw.get("term") or "").strip(),
            context=str(raw.get("context") or "").strip(),
            mentioned_technologies=_str_list(raw.get("mentioned_technologies")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "term": self.term,
            "context": self.context,
            "mentioned_technologies": list(self.mentioned_technologies),
        }


@dataclass(slots=True)
class ActionItem:
    title: str
    owner: str = "Not specified"
    due_date: str = "Not specified"
    priority: str = "Medium"
    source_times: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "ActionItem":
        return cls(
            title=str(raw.get("title") or "").strip(),
            owner=str(raw.get("owner") or "Not specified").strip(),
            due_date=str(raw.get("due_date") or "Not specified").strip(),
            priority=str(raw.get("priority") or "Medium").strip(),
            source_times=_str_list(raw.get("source_times")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "owner": self.owner,
            "due_date": self.due_date,
            "priority": self.priority,
            "source_times": list(self.source_times),
        }


@dataclass(slots=True)
class MeetingAnalysis:
    summary: str
    key_points: list[str] = field(default_factory=list)
    technical_concepts: list[TechnicalConcept] = field(default_factory=list)
    action_items: list[ActionItem] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "MeetingAnalysis":
        concepts = raw.get("technical_concepts") or []
        items = raw.get("action_items") or []
        return cls(
            summary=str(raw.get("summary") or "").strip(),
            key_points=_str_list(raw.get("key_points")),
            technical_concepts=[TechnicalConcept.from_dict(c) for c in concepts if isinstance(c, dict)],
            action_items=[ActionItem.from_dict(i) for i in items if isinstance(i, dict)],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "key_points": list(self.key_points),
            "technical_concepts": [c.to_dict() for c in self.technical_concepts],
            "action_items": [i.to_dict() for i in self.action_items],
        }
