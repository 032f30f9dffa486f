"""
Dependency gathering and ordering of frames.

The prerequisites of a frame are the creators of every variable it uses,
together with their own prerequisites and the prerequisites of the
variables those depend on. Results are memoized per frame and per
variable, and re-entering a frame or variable that is still being
resolved raises :class:`~pipeforge.utils.exceptions.DependencyCycleError`.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Set

from ..utils.exceptions import DependencyCycleError
from .frames import Frame
from .frames_collection import FramesCollection
from .variables import Variable


def is_within(frame: Frame, container: Frame) -> bool:
    """True when ``frame`` is nested, at any depth, inside ``container``."""
    collection = frame.collection
    while collection is not None:
        owner = collection.owner
        if owner is container:
            return True
        if not isinstance(owner, Frame):
            return False
        collection = owner.collection
    return False


class DependencyGatherer:
    """Memoized prerequisite computation over frames and variables."""

    def __init__(self):
        self._frame_dependencies: Dict[int, List[Frame]] = {}
        self._variable_dependencies: Dict[int, List[Frame]] = {}
        self._active: List[object] = []
        self._active_ids: Set[int] = set()

    def dependencies_for(self, frame: Frame) -> List[Frame]:
        """All frames that must run before ``frame``, in discovery order."""
        return list(self._frame(frame))

    def dependencies_of_variable(self, variable: Variable) -> List[Frame]:
        return list(self._variable(variable))

    def _frame(self, frame: Frame) -> List[Frame]:
        cached = self._frame_dependencies.get(id(frame))
        if cached is not None:
            return cached

        self._enter(frame)
        result: List[Frame] = []
        seen: Set[int] = set()
        for variable in frame.uses:
            creator = variable.creator
            if creator is not None and (creator is frame or is_within(creator, frame)):
                for dependency in variable.dependencies:
                    _merge(result, seen, self._variable(dependency))
                continue
            _merge(result, seen, self._variable(variable))
        self._leave(frame)

        self._frame_dependencies[id(frame)] = result
        return result

    def _variable(self, variable: Variable) -> List[Frame]:
        cached = self._variable_dependencies.get(id(variable))
        if cached is not None:
            return cached

        self._enter(variable)
        result: List[Frame] = []
        seen: Set[int] = set()
        if variable.creator is not None:
            _merge(result, seen, [variable.creator])
            _merge(result, seen, self._frame(variable.creator))
        for dependency in variable.dependencies:
            _merge(result, seen, self._variable(dependency))
        self._leave(variable)

        self._variable_dependencies[id(variable)] = result
        return result

    def _enter(self, item) -> None:
        if id(item) in self._active_ids:
            start = next(i for i, active in enumerate(self._active) if active is item)
            chain = [repr(a) for a in self._active[start:]] + [repr(item)]
            raise DependencyCycleError(chain)
        self._active.append(item)
        self._active_ids.add(id(item))

    def _leave(self, item) -> None:
        self._active.pop()
        self._active_ids.discard(id(item))


def _merge(target: List[Frame], seen: Set[int], frames: List[Frame]) -> None:
    for frame in frames:
        if id(frame) not in seen:
            seen.add(id(frame))
            target.append(frame)


def sort_frames(collection: FramesCollection, gatherer: Optional[DependencyGatherer] = None) -> List[Frame]:
    """
    Stable topological order of ``collection`` so that creators precede users.

    Prerequisites nested inside composite frames are attributed to their
    top level ancestor within ``collection``; frames already in a valid
    order keep their relative positions. Child collections of composite
    frames are ordered the same way.
    """
    gatherer = gatherer or DependencyGatherer()
    frames = list(collection)
    positions = {id(frame): i for i, frame in enumerate(frames)}

    ordered: List[Frame] = []
    done = set()
    visiting: List[Frame] = []
    visiting_ids: Set[int] = set()

    def prerequisites(frame: Frame) -> List[Frame]:
        found: List[Frame] = []
        seen: Set[int] = set()
        for dependency in gatherer.dependencies_for(frame):
            ancestor = collection.top_level_ancestor(dependency)
            if ancestor is None or ancestor is frame:
                continue
            _merge(found, seen, [ancestor])
        return sorted(found, key=lambda f: positions[id(f)])

    def visit(frame: Frame) -> None:
        if id(frame) in done:
            return
        if id(frame) in visiting_ids:
            chain = [repr(f) for f in visiting[visiting.index(frame):]] + [repr(frame)]
            raise DependencyCycleError(chain)
        visiting.append(frame)
        visiting_ids.add(id(frame))
        for prerequisite in prerequisites(frame):
            visit(prerequisite)
        visiting.pop()
        visiting_ids.discard(id(frame))
        done.add(id(frame))
        ordered.append(frame)

    for frame in frames:
        visit(frame)

    collection.reorder(ordered)
    for frame in ordered:
        for child in frame.child_collections():
            sort_frames(child, gatherer)
    return ordered
