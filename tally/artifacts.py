"""
Artifact tree storage.

Artifacts are immutable once created; the only state that grows afterwards
is each artifact's ordered list of direct children. The child list is a
derived index (id -> [child ids]) maintained in the same step as creation,
never recomputed by scanning.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterator

from .clock import LogicalClock
from .errors import InvalidValue, NotFound


class ArtifactType(str, Enum):
    """Artifact variants.

    - ROOT_CONTENT: a top-level submission
    - COMMENT: a threaded reply to another artifact
    """
    ROOT_CONTENT = "root_content"
    COMMENT = "comment"

    @classmethod
    def coerce(cls, value: ArtifactType | str) -> ArtifactType:
        """Accept an ArtifactType, its value ("comment") or its name ("COMMENT")."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            text = value.strip()
            try:
                return cls(text.lower())
            except ValueError:
                pass
            member = cls.__members__.get(text.upper())
            if member is not None:
                return member
        raise InvalidValue("artifact_type", value)


@dataclass(frozen=True)
class Artifact:
    """Snapshot of one node in the content tree."""

    id: int
    artifact_type: ArtifactType
    parent_id: int  # 0 for roots
    author: str
    created_at: int  # Logical sequence of the creating mutation
    content_ref: str  # Opaque, stored verbatim
    child_ids: tuple[int, ...] = ()

    @property
    def is_root(self) -> bool:
        return self.parent_id == 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "artifact_type": self.artifact_type.value,
            "parent_id": self.parent_id,
            "author": self.author,
            "created_at": self.created_at,
            "content_ref": self.content_ref,
            "child_ids": list(self.child_ids),
        }


def _is_id(value: object) -> bool:
    # bool is an int subclass; True must not pass as artifact 1
    return isinstance(value, int) and not isinstance(value, bool)


class ArtifactStore:
    """
    Owns artifact records and the id counter.

    INVARIANT: ids start at 1, strictly increase, and are only minted after a
    creation has passed validation, so failed calls never consume an id.
    """

    def __init__(self, clock: LogicalClock | None = None):
        self.clock = clock if clock is not None else LogicalClock()
        self._artifacts: dict[int, Artifact] = {}
        self._children: dict[int, list[int]] = {}
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._artifacts)

    def __contains__(self, artifact_id: object) -> bool:
        return self.exists(artifact_id)  # type: ignore[arg-type]

    @property
    def next_id(self) -> int:
        """Id the next successful creation will receive."""
        return self._next_id

    def exists(self, artifact_id: int) -> bool:
        return _is_id(artifact_id) and artifact_id in self._artifacts

    def _get(self, artifact_id: int) -> Artifact:
        artifact = self._artifacts.get(artifact_id) if _is_id(artifact_id) else None
        if artifact is None:
            raise NotFound(artifact_id)
        return artifact

    def create_artifact(
        self,
        artifact_type: ArtifactType | str,
        parent_id: int,
        author: str,
        content_ref: str,
    ) -> Artifact:
        """
        Record a new artifact and link it under its parent.

        The author is trusted as supplied. Raises:
            InvalidValue: unknown artifact type, non-integer parent_id, non-string content_ref
            NotFound: parent_id is nonzero and no such artifact exists
        """
        kind = ArtifactType.coerce(artifact_type)
        if not _is_id(parent_id):
            raise InvalidValue("parent_id", parent_id)
        if not isinstance(content_ref, str):
            raise InvalidValue("content_ref", content_ref)
        if parent_id != 0 and parent_id not in self._artifacts:
            raise NotFound(parent_id, kind="parent")

        # Validation done; from here on nothing can fail.
        artifact_id = self._next_id
        self._next_id += 1
        artifact = Artifact(
            id=artifact_id,
            artifact_type=kind,
            parent_id=parent_id,
            author=author,
            created_at=self.clock.advance(),
            content_ref=content_ref,
        )
        self._artifacts[artifact_id] = artifact
        self._children[artifact_id] = []
        if parent_id != 0:
            self._children[parent_id].append(artifact_id)
        return self._snapshot(artifact)

    def _snapshot(self, artifact: Artifact) -> Artifact:
        return replace(artifact, child_ids=tuple(self._children[artifact.id]))

    def get_artifact(self, artifact_id: int) -> Artifact:
        return self._snapshot(self._get(artifact_id))

    def get_author(self, artifact_id: int) -> str:
        return self._get(artifact_id).author

    def get_child_ids(self, artifact_id: int) -> tuple[int, ...]:
        """Direct children in creation order; empty (not an error) for a leaf."""
        return tuple(self._children[self._get(artifact_id).id])

    def iter_artifacts(self) -> Iterator[Artifact]:
        """Iterate over all artifacts in id order."""
        for artifact_id in sorted(self._artifacts):
            yield self._snapshot(self._artifacts[artifact_id])

    def iter_thread(self, root_id: int) -> Iterator[tuple[int, Artifact]]:
        """Depth-first walk of the subtree at `root_id`, yielding (depth, artifact)."""
        stack: list[tuple[int, int]] = [(0, self._get(root_id).id)]
        while stack:
            depth, artifact_id = stack.pop()
            yield depth, self._snapshot(self._artifacts[artifact_id])
            for child_id in reversed(self._children[artifact_id]):
                stack.append((depth + 1, child_id))

    def ancestors(self, artifact_id: int) -> list[int]:
        """Parent chain from the direct parent up to the root."""
        artifact = self._get(artifact_id)
        chain: list[int] = []
        while artifact.parent_id != 0:
            chain.append(artifact.parent_id)
            artifact = self._artifacts[artifact.parent_id]
        return chain
