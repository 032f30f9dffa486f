"""
Ordered frame sequence with single ownership.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Iterator, List, Optional

from ..utils.exceptions import DuplicateFrameError

if TYPE_CHECKING:
    from .frames import Frame


class FramesCollection:
    """
    The ordered frames of a method body or of a composite frame.

    A frame belongs to at most one collection. Adding a frame that already
    has an owner, including this collection, raises
    :class:`~pipeforge.utils.exceptions.DuplicateFrameError`.
    """

    def __init__(self, owner=None, frames: Iterable['Frame'] = ()):
        self.owner = owner
        self._frames: List['Frame'] = []
        self.extend(frames)

    def append(self, frame: 'Frame') -> 'FramesCollection':
        self._claim(frame)
        self._frames.append(frame)
        return self

    def extend(self, frames: Iterable['Frame']) -> 'FramesCollection':
        for frame in frames:
            self.append(frame)
        return self

    def insert(self, index: int, frame: 'Frame') -> 'FramesCollection':
        self._claim(frame)
        self._frames.insert(index, frame)
        return self

    def index(self, frame: 'Frame') -> int:
        for i, existing in enumerate(self._frames):
            if existing is frame:
                return i
        raise ValueError(f"{frame!r} is not in this collection")

    def reorder(self, frames: List['Frame']) -> None:
        """Replace the order of the frames; the set of frames must not change."""
        if len(frames) != len(self._frames) or any(f.collection is not self for f in frames):
            raise ValueError("reorder() must be given exactly the frames of this collection")
        self._frames = list(frames)

    def contains(self, frame: 'Frame', recursive: bool = False) -> bool:
        for existing in self._frames:
            if existing is frame:
                return True
            if recursive:
                for child in existing.child_collections():
                    if child.contains(frame, recursive=True):
                        return True
        return False

    def all_frames(self) -> Iterator['Frame']:
        """Every frame of this collection, recursing into composite frames."""
        for frame in self._frames:
            yield frame
            for child in frame.child_collections():
                yield from child.all_frames()

    def top_level_ancestor(self, frame: 'Frame') -> Optional['Frame']:
        """The frame of this collection that is, or contains, ``frame``."""
        current = frame
        while current is not None:
            if current.collection is self:
                return current
            collection = current.collection
            current = collection.owner if collection is not None else None
            if current is not None and not hasattr(current, "child_collections"):
                return None
        return None

    def _claim(self, frame: 'Frame') -> None:
        if frame.collection is not None:
            raise DuplicateFrameError(frame)
        frame.collection = self

    def __iter__(self) -> Iterator['Frame']:
        return iter(list(self._frames))

    def __len__(self) -> int:
        return len(self._frames)

    def __getitem__(self, index):
        return self._frames[index]

    def __bool__(self) -> bool:
        return bool(self._frames)

    def __repr__(self) -> str:
        return f"FramesCollection({self._frames!r})"
