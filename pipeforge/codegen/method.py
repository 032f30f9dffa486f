"""
Routine synthesis.

A :class:`GeneratedMethod` owns an ordered list of frames and turns it
into the source of one Python method in two passes. The discovery pass
walks the frames with a :class:`NullSourceWriter` so that lazily created
variables and frames come into existence; creators that are not yet part
of the method are then placed before their first user and the frames are
ordered so that creators precede users. Once the frame list is stable the
asynchronous shape is deduced and the emitting pass writes the method.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence, Tuple

from ..utils.exceptions import ConfigurationError, UnresolvableVariableError
from ..utils.logging import PipeforgeLogger
from .dependencies import DependencyGatherer, sort_frames
from .frames import AsyncMode, Frame, FrameChain
from .frames_collection import FramesCollection
from .source_writer import NullSourceWriter, SourceWriter
from .type_names import TypeReferences
from .variable_sources import VariableSource
from .variables import Argument, InjectedField, StaticField, Variable

if TYPE_CHECKING:
    from .generated_type import GeneratedType

synthesis_logger = PipeforgeLogger(__name__)


class MethodState(Enum):
    CONFIGURING = "configuring"
    DISCOVERING = "discovering"
    EMITTING = "emitting"
    CLOSED = "closed"


def _type_label(variable_type) -> str:
    return getattr(variable_type, "__qualname__", None) or str(variable_type)


class MethodVariables:
    """
    Variable lookup for one method.

    Searches the method's arguments and derived variables, then variables
    created by frames in the requesting frame's block or an enclosing one,
    then the variable sources of the method, of the generation rules and of
    the owning type. Anything produced by a source is memoized for the
    lifetime of the method.
    """

    def __init__(self, method: 'GeneratedMethod'):
        self._method = method
        self._resolved: Dict[Tuple[object, Optional[str]], Variable] = {}

    def find_variable(self, variable_type, name: Optional[str] = None,
                      requester: Optional[Frame] = None) -> Variable:
        variable = self.try_find_variable(variable_type, name, requester)
        if variable is None:
            raise UnresolvableVariableError(_type_label(variable_type), self._searched_locations(), name)
        return variable

    def try_find_variable(self, variable_type, name: Optional[str] = None,
                          requester: Optional[Frame] = None) -> Optional[Variable]:
        method = self._method

        for variable in list(method.arguments) + list(method.derived_variables):
            if variable.matches(variable_type, name):
                return variable

        scopes = self._enclosing_scopes(requester)
        for frame in method.frames.all_frames():
            if not any(frame.collection is scope for scope in scopes):
                continue
            for variable in frame.creates:
                if variable.matches(variable_type, name):
                    return variable

        key = (variable_type, name)
        if key in self._resolved:
            return self._resolved[key]

        for source in self.sources():
            variable = source.try_find_variable(method, variable_type, name)
            if variable is not None:
                self._resolved[key] = variable
                return variable
        return None

    def _enclosing_scopes(self, requester: Optional[Frame]) -> List[FramesCollection]:
        # The requester's own collection, then each collection containing its owner.
        scope = requester.collection if requester is not None else None
        if scope is None:
            return [self._method.frames]

        scopes = []
        while scope is not None:
            scopes.append(scope)
            owner = scope.owner
            scope = owner.collection if isinstance(owner, Frame) else None
        return scopes

    def sources(self) -> List[VariableSource]:
        method = self._method
        found = list(method.sources)
        if method.rules is not None:
            found.extend(method.rules.variable_sources)
        if method.owner is not None:
            found.append(method.owner)
        return found

    def _searched_locations(self) -> List[str]:
        method = self._method
        arguments = ", ".join(repr(v) for v in list(method.arguments) + list(method.derived_variables))
        sources = ", ".join(
            source.describe() if hasattr(source, "describe") else type(source).__name__
            for source in self.sources()
        )
        return [
            f"arguments of {method.qualified_name}: [{arguments}]",
            f"variables created by {sum(1 for _ in method.frames.all_frames())} frames",
            f"variable sources: [{sources}]",
        ]


class FrameVariables:
    """
    The view of a method's variables handed to one frame while it generates.

    Every variable found through it is recorded as used by the frame,
    together with the variables it depends on.
    """

    def __init__(self, variables: MethodVariables, frame: Frame):
        self._variables = variables
        self._frame = frame

    def find_variable(self, variable_type, name: Optional[str] = None) -> Variable:
        variable = self._variables.find_variable(variable_type, name, self._frame)
        self._frame.uses_variable(variable)
        return variable

    def try_find_variable(self, variable_type, name: Optional[str] = None) -> Optional[Variable]:
        variable = self._variables.try_find_variable(variable_type, name, self._frame)
        if variable is not None:
            self._frame.uses_variable(variable)
        return variable


class GeneratedMethod:
    """
    One synthesized method.

    Frames are added while the method is ``CONFIGURING``. Writing the
    method arranges the frames once, then emits source; a closed method
    may be written again and produces identical text.
    """

    def __init__(self, name: str, arguments: Sequence[Argument] = (), return_type=None,
                 owner: Optional['GeneratedType'] = None, rules=None):
        self.name = name
        self.arguments: List[Argument] = list(arguments)
        self.return_type = return_type
        self.owner = owner
        self._rules = rules
        self.frames = FramesCollection(owner=self)
        self.sources: List[VariableSource] = []
        self.derived_variables: List[Variable] = []
        self.async_mode = AsyncMode.NONE
        self.state = MethodState.CONFIGURING

        self._variables = MethodVariables(self)
        self._registered_frames: List[Frame] = []
        self._body_level = 0
        self._busy = False
        self._local_references: Optional[TypeReferences] = None

    @property
    def rules(self):
        if self._rules is not None:
            return self._rules
        return self.owner.rules if self.owner is not None else None

    @property
    def qualified_name(self) -> str:
        return f"{self.owner.name}.{self.name}" if self.owner is not None else self.name

    @property
    def registered_frames(self) -> List[Frame]:
        """Frames walked by the most recent discovery pass, in walk order."""
        return list(self._registered_frames)

    def add_frames(self, *frames: Frame) -> 'GeneratedMethod':
        if self.state is not MethodState.CONFIGURING:
            raise ConfigurationError(
                f"Cannot add frames to {self.qualified_name} once it is {self.state.value}"
            )
        self.frames.extend(frames)
        return self

    def add_derived_variable(self, variable: Variable) -> Variable:
        self.derived_variables.append(variable)
        return variable

    def find_variable(self, variable_type, name: Optional[str] = None) -> Variable:
        return self._variables.find_variable(variable_type, name)

    def try_find_variable(self, variable_type, name: Optional[str] = None) -> Optional[Variable]:
        return self._variables.try_find_variable(variable_type, name)

    def variables_for(self, frame: Frame) -> FrameVariables:
        return FrameVariables(self._variables, frame)

    def type_name(self, obj) -> str:
        """Source reference to a type or function, recording any import it needs."""
        if self.owner is not None:
            return self.owner.type_name(obj)
        if self._local_references is None:
            self._local_references = TypeReferences()
        return self._local_references.reference(obj)

    def register_frame(self, frame: Frame, writer: SourceWriter) -> None:
        frame.block_level = writer.indentation_level - self._body_level
        if self.state is MethodState.DISCOVERING:
            self._registered_frames.append(frame)

    # Arrangement

    def arrange_frames(self) -> None:
        """Discover, place and order the frames, then deduce the async shape."""
        if self.state is not MethodState.CONFIGURING:
            raise ConfigurationError(f"{self.qualified_name} has already been arranged")

        self.state = MethodState.DISCOVERING
        self._busy = True
        try:
            while True:
                self._discover()
                if not self._place_missing_creators():
                    break

            sort_frames(self.frames, DependencyGatherer())
            self._discover()
            self.async_mode = self._deduce_async_mode()
            self._promote_fields()
        except Exception:
            self.state = MethodState.CONFIGURING
            raise
        finally:
            self._busy = False

        synthesis_logger.log_synthesis(
            self.owner.name if self.owner is not None else "<none>",
            self.name,
            len(self._registered_frames),
            self.async_mode.value,
        )

    def _discover(self) -> None:
        self._registered_frames = []
        self._walk(NullSourceWriter())

    def discovered_variables(self) -> List[Variable]:
        found: List[Variable] = []
        for frame in self._registered_frames:
            for variable in frame.uses:
                if not any(v is variable for v in found):
                    found.append(variable)
        return found

    def _place_missing_creators(self) -> int:
        inserted = 0
        for variable in self.discovered_variables():
            creator = variable.creator
            if creator is None or self.frames.contains(creator, recursive=True):
                continue
            if creator.collection is not None:
                raise ConfigurationError(
                    f"Creator of {variable!r} belongs to a different method than {self.qualified_name}"
                )

            position = 0
            for i, frame in enumerate(self.frames):
                if any(v is variable for v in frame.uses):
                    position = i
                    break
            self.frames.insert(position, creator)
            inserted += 1
        return inserted

    def _deduce_async_mode(self) -> AsyncMode:
        registered = self._registered_frames
        async_frames = [f for f in registered if f.is_async]
        if not async_frames:
            return AsyncMode.NONE

        if (
            len(async_frames) == 1
            and async_frames[0] is registered[-1]
            and async_frames[0].can_return_awaitable()
            and not any(f.wraps for f in registered)
        ):
            return AsyncMode.TAIL_CONTINUATION
        return AsyncMode.FULLY_ASYNC

    def _promote_fields(self) -> None:
        if self.owner is None:
            return
        for variable in self.discovered_variables():
            if isinstance(variable, InjectedField):
                self.owner.add_injected_field(variable)
            elif isinstance(variable, StaticField):
                self.owner.add_static_field(variable)

    # Emission

    def signature(self) -> str:
        keyword = "async def" if self.async_mode is AsyncMode.FULLY_ASYNC else "def"
        parameters = [a.usage for a in self.arguments]
        if self.owner is not None:
            parameters.insert(0, "self")
        return f"{keyword} {self.name}({', '.join(parameters)})"

    def write_method(self, writer: SourceWriter) -> None:
        """Write the method to ``writer``, arranging the frames first if needed."""
        if self._busy:
            raise ConfigurationError(
                f"{self.qualified_name} is already being generated", {"state": self.state.value}
            )
        if self.state is MethodState.CONFIGURING:
            self.arrange_frames()

        self.state = MethodState.EMITTING
        self._busy = True
        try:
            self._walk(writer)
        finally:
            self._busy = False
            self.state = MethodState.CLOSED

        for frame in self.frames.all_frames():
            for variable in frame.creates + frame.uses:
                variable.freeze()
        for argument in self.arguments:
            argument.freeze()

    def generate_code(self, indent_size: int = 4) -> str:
        """The method's source text on its own, starting at column zero."""
        writer = SourceWriter(indent_size)
        self.write_method(writer)
        return writer.code()

    def _walk(self, writer: SourceWriter) -> None:
        writer.block(self.signature())
        self._body_level = writer.indentation_level
        FrameChain(self.frames).generate(self, writer)
        writer.finish_block()

    def __repr__(self) -> str:
        return f"GeneratedMethod({self.qualified_name!r}, state={self.state.value})"
