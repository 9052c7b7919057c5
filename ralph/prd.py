"""Product requirements documents: loading, validation and story selection."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .slug import slugify

__all__ = ["PrdError", "Story", "Prd", "load"]

_WHITE, _GRAY, _BLACK = 0, 1, 2

_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


class PrdError(Exception):
    """Raised when a PRD cannot be read, parsed or validated."""


def _get(data: dict[str, Any], key: str, kind: type, default: Any, where: str) -> Any:
    value = data.get(key)
    if value is None:
        return default
    if kind is int:
        ok = isinstance(value, int) and not isinstance(value, bool)
    else:
        ok = isinstance(value, kind)
    if not ok:
        raise PrdError(f"{where}: field {key!r} must be of type {kind.__name__}")
    return value


def _get_str_list(data: dict[str, Any], key: str, where: str) -> list[str]:
    items = _get(data, key, list, [], where)
    if not all(isinstance(item, str) for item in items):
        raise PrdError(f"{where}: field {key!r} must be a list of strings")
    return list(items)


def _format_list(items: list[str]) -> str:
    return "[" + " ".join(items) + "]"


@dataclass
class Story:
    """A single user story in a PRD."""

    id: str = ""
    title: str = ""
    description: str = ""
    acceptance_criteria: list[str] = field(default_factory=list)
    priority: int = 0
    passes: bool = False
    notes: str = ""
    depends_on: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON representation of the story."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "acceptanceCriteria": list(self.acceptance_criteria),
            "priority": self.priority,
            "passes": self.passes,
            "notes": self.notes,
            "dependsOn": list(self.depends_on),
        }

    @classmethod
    def from_dict(cls, data: Any) -> Story:
        """Build a story from its JSON representation."""
        if not isinstance(data, dict):
            raise PrdError("story must be a JSON object")
        where = "story"
        return cls(
            id=_get(data, "id", str, "", where),
            title=_get(data, "title", str, "", where),
            description=_get(data, "description", str, "", where),
            acceptance_criteria=_get_str_list(data, "acceptanceCriteria", where),
            priority=_get(data, "priority", int, 0, where),
            passes=_get(data, "passes", bool, False, where),
            notes=_get(data, "notes", str, "", where),
            depends_on=_get_str_list(data, "dependsOn", where),
        )


@dataclass
class Prd:
    """A product requirements document made of user stories."""

    name: str = ""
    branch_name: str = ""
    description: str = ""
    user_stories: list[Story] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON representation; empty branch name and description are omitted."""
        data: dict[str, Any] = {"name": self.name}
        if self.branch_name:
            data["branchName"] = self.branch_name
        if self.description:
            data["description"] = self.description
        data["userStories"] = [story.to_dict() for story in self.user_stories]
        return data

    @classmethod
    def from_dict(cls, data: Any) -> Prd:
        """Build a PRD from its JSON representation without validating it."""
        if not isinstance(data, dict):
            raise PrdError("prd must be a JSON object")
        where = "prd"
        stories = _get(data, "userStories", list, [], where)
        return cls(
            name=_get(data, "name", str, "", where),
            branch_name=_get(data, "branchName", str, "", where),
            description=_get(data, "description", str, "", where),
            user_stories=[Story.from_dict(item) for item in stories],
        )

    def to_json(self) -> str:
        """Serialise to indented JSON with HTML-sensitive characters escaped."""
        text = json.dumps(self.to_dict(), indent=2, ensure_ascii=False)
        for char, escaped in _JSON_ESCAPES.items():
            text = text.replace(char, escaped)
        return text

    def save(self, path: str | os.PathLike[str]) -> None:
        """Write the PRD as JSON to ``path``, creating parent directories."""
        target = Path(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PrdError(f"create dir: {exc}") from exc
        target.write_text(self.to_json() + "\n", encoding="utf-8")

    def validate(self) -> None:
        """Check required fields, unique ids, known dependencies and acyclicity."""
        if not self.name:
            raise PrdError("prd name is required")
        if not self.user_stories:
            raise PrdError("prd must have at least one user story")
        seen: set[str] = set()
        for index, story in enumerate(self.user_stories):
            if not story.id:
                raise PrdError(f"story {index}: id is required")
            if not story.title:
                raise PrdError(f"story {story.id}: title is required")
            if story.id in seen:
                raise PrdError(f"duplicate story id: {story.id}")
            seen.add(story.id)
        for story in self.user_stories:
            for dep in story.depends_on:
                if dep not in seen:
                    raise PrdError(f"story {story.id} depends on unknown story: {dep}")
        cycle = self.find_cycle()
        if cycle is not None:
            raise PrdError(f"circular dependency detected: {_format_list(cycle)}")

    def find_cycle(self) -> list[str] | None:
        """Return a dependency path ending in a repeated id, or None if acyclic."""
        adjacency = {story.id: story.depends_on for story in self.user_stories}
        color = {story.id: _WHITE for story in self.user_stories}
        path: list[str] = []

        def visit(story_id: str) -> bool:
            color[story_id] = _GRAY
            path.append(story_id)
            for dep in adjacency.get(story_id, []):
                state = color.get(dep, _WHITE)
                if state == _GRAY:
                    path.append(dep)
                    return True
                if state == _WHITE and visit(dep):
                    return True
            color[story_id] = _BLACK
            path.pop()
            return False

        for story in self.user_stories:
            if color[story.id] == _WHITE:
                path.clear()
                if visit(story.id):
                    return list(path)
        return None

    def work_dir(self) -> str:
        """Return the branch name, or one derived from the PRD name."""
        if self.branch_name:
            return self.branch_name
        return f"ralph/{slugify(self.name)}"

    def find_story(self, story_id: str) -> Story | None:
        """Return the first story with the given id, if any."""
        return next((s for s in self.user_stories if s.id == story_id), None)

    def _deps_blocked(self, depends_on: list[str]) -> bool:
        if not depends_on:
            return False
        passes = {story.id: story.passes for story in self.user_stories}
        return any(not passes.get(dep, False) for dep in depends_on)

    def next_story(self) -> Story | None:
        """Return the highest-priority unfinished story whose dependencies all pass."""
        available = [
            story
            for story in self.user_stories
            if not story.passes and not self._deps_blocked(story.depends_on)
        ]
        if not available:
            return None
        return min(available, key=lambda story: story.priority)

    def progress(self) -> tuple[int, int]:
        """Return ``(completed, total)`` story counts."""
        completed = sum(1 for story in self.user_stories if story.passes)
        return completed, len(self.user_stories)

    def is_complete(self) -> bool:
        """Return True when every story passes."""
        return all(story.passes for story in self.user_stories)

    def blocked_stories(self) -> list[Story]:
        """Return unfinished stories waiting on unfinished dependencies."""
        return [
            story
            for story in self.user_stories
            if not story.passes and self._deps_blocked(story.depends_on)
        ]


def load(path: str | os.PathLike[str]) -> Prd:
    """Read, parse and validate a PRD JSON file."""
    try:
        raw = Path(path).read_bytes()
    except OSError as exc:
        raise PrdError(f"read prd file: {exc}") from exc
    try:
        prd = Prd.from_dict(json.loads(raw))
    except (ValueError, PrdError) as exc:
        raise PrdError(f"parse prd json: {exc}") from exc
    try:
        prd.validate()
    except PrdError as exc:
        raise PrdError(f"validate prd: {exc}") from exc
    return prd