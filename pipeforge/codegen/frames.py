"""
Frames: the code emitting units of a generated method.

A frame declares the variables it ``uses`` and ``creates`` and writes its
source through a :class:`~pipeforge.codegen.source_writer.SourceWriter`.
Frames are chained by position in a :class:`FramesCollection`; a frame
with ``wraps`` set emits the remainder of its chain itself (for example
inside a ``try`` block), every other frame is followed automatically by
the next one.
"""

from __future__ import annotations

import inspect
import typing
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from ..utils.exceptions import ConfigurationError
from .frames_collection import FramesCollection
from .variables import Variable

if TYPE_CHECKING:
    from .method import GeneratedMethod, FrameVariables
    from .source_writer import SourceWriter


class AsyncMode(Enum):
    """Asynchronous shape of a generated method."""

    NONE = "none"
    TAIL_CONTINUATION = "tail_continuation"
    FULLY_ASYNC = "fully_async"


class FrameChain:
    """
    Index based cursor over an ordered sequence of frames.

    ``generate`` emits the frame at the cursor and everything after it,
    stopping early when a frame wraps the rest of the chain.
    """

    def __init__(self, frames: Sequence['Frame'], index: int = 0):
        self._frames = frames
        self._index = index

    @property
    def is_empty(self) -> bool:
        return self._index >= len(self._frames)

    def generate(self, method: 'GeneratedMethod', writer: 'SourceWriter') -> None:
        for i in range(self._index, len(self._frames)):
            frame = self._frames[i]
            method.register_frame(frame, writer)
            frame.generate_code(method.variables_for(frame), method, writer, FrameChain(self._frames, i + 1))
            if frame.wraps:
                return


class Frame(ABC):
    """Base class of every frame."""

    wraps = False

    def __init__(self, is_async: bool = False):
        self._is_async = is_async
        self.block_level = 0
        self.collection: Optional[FramesCollection] = None
        self._uses: List[Variable] = []
        self._creates: List[Variable] = []

    @property
    def is_async(self) -> bool:
        return self._is_async

    @property
    def uses(self) -> List[Variable]:
        return list(self._uses)

    @property
    def creates(self) -> List[Variable]:
        return list(self._creates)

    def uses_variable(self, *variables: Variable) -> None:
        """Record variables (and, transitively, their dependencies) as used."""
        pending = list(variables)
        while pending:
            variable = pending.pop(0)
            if any(v is variable for v in self._uses):
                continue
            self._uses.append(variable)
            pending.extend(variable.dependencies)

    def create_variable(self, variable_type, name: Optional[str] = None, dependencies=()) -> Variable:
        variable = Variable(variable_type, name, creator=self, dependencies=dependencies)
        self._creates.append(variable)
        return variable

    def can_return_awaitable(self) -> bool:
        """Whether this frame can hand its awaitable straight back to the caller."""
        return False

    def child_collections(self) -> List[FramesCollection]:
        return []

    @abstractmethod
    def generate_code(self, variables: 'FrameVariables', method: 'GeneratedMethod',
                      writer: 'SourceWriter', next_: FrameChain) -> None:
        """Write this frame's source."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class SyncFrame(Frame):
    def __init__(self):
        super().__init__(is_async=False)


class AsyncFrame(Frame):
    def __init__(self):
        super().__init__(is_async=True)


def format_source(template: str, args: Sequence[Any], method: 'GeneratedMethod', frame: Frame) -> str:
    """
    Substitute ``{}`` placeholders in ``template``.

    Variables are written as their usage, classes and functions as
    references resolved through the method's owning type, and any other
    value as its ``repr``.
    """
    rendered = []
    for arg in args:
        if isinstance(arg, Variable):
            frame.uses_variable(arg)
            rendered.append(arg.usage)
        elif inspect.isclass(arg) or inspect.isroutine(arg):
            rendered.append(method.type_name(arg))
        else:
            rendered.append(repr(arg))
    return template.format(*rendered)


class CodeFrame(Frame):
    """
    A statement given as a format string.

    Example: ``CodeFrame(False, "{}.validate()", operation_variable)``.
    """

    def __init__(self, is_async: bool, template: str, *args):
        super().__init__(is_async)
        self.template = template
        self.args = list(args)
        self.uses_variable(*[a for a in self.args if isinstance(a, Variable)])

    def generate_code(self, variables, method, writer, next_):
        writer.write(format_source(self.template, self.args, method, self))

    def __repr__(self) -> str:
        return f"CodeFrame({self.template!r})"


class CommentFrame(SyncFrame):
    def __init__(self, text: str):
        super().__init__()
        self.text = text

    def generate_code(self, variables, method, writer, next_):
        writer.write_comment(self.text)


class BlankLineFrame(SyncFrame):
    def generate_code(self, variables, method, writer, next_):
        writer.blank_line()


class ReturnFrame(SyncFrame):
    """
    ``return <value>``.

    ``value`` may be a variable, a literal or omitted; with ``variable_type``
    given instead, the variable is looked up when the frame is generated.
    """

    _NOTHING = object()

    def __init__(self, value: Any = _NOTHING, variable_type=None):
        super().__init__()
        self.value = value
        self.variable_type = variable_type
        if isinstance(value, Variable):
            self.uses_variable(value)

    def generate_code(self, variables, method, writer, next_):
        value = self.value
        if value is self._NOTHING and self.variable_type is not None:
            value = variables.find_variable(self.variable_type)

        if value is self._NOTHING:
            writer.write_line("return")
        elif isinstance(value, Variable):
            writer.write_line(f"return {value.usage}")
        else:
            writer.write_line(f"return {value!r}")

    def __repr__(self) -> str:
        return f"ReturnFrame({self.value!r})" if self.value is not self._NOTHING else "ReturnFrame()"


_FROM_SIGNATURE = object()


class MethodCall(Frame):
    """
    Calls a function, or a method on ``target``.

    Parameters are matched by type hint against the method's variables
    unless given explicitly in ``arguments``. The call is asynchronous when
    the callee is a coroutine function; its result becomes a variable when
    a return type is known.
    """

    def __init__(self, function, target: Optional[Variable] = None, return_type=_FROM_SIGNATURE,
                 return_name: Optional[str] = None, arguments: Optional[Dict[str, Variable]] = None):
        super().__init__(inspect.iscoroutinefunction(function))
        self.function = function
        self.target = target
        self.arguments: Dict[str, Variable] = dict(arguments or {})
        self.parameters = self._read_parameters()

        if return_type is _FROM_SIGNATURE:
            return_type = self._hints().get("return")
        self.return_variable: Optional[Variable] = None
        if return_type is not None and return_type is not type(None):
            self.return_variable = self.create_variable(return_type, return_name or self._default_return_name())

        if target is not None:
            self.uses_variable(target)
        self.uses_variable(*self.arguments.values())

    def _hints(self) -> Dict[str, Any]:
        return typing.get_type_hints(self.function)

    def _signature_parameters(self) -> List[inspect.Parameter]:
        parameters = list(inspect.signature(self.function).parameters.values())
        if self.target is not None and not inspect.ismethod(self.function) and parameters:
            parameters = parameters[1:]
        return parameters

    def _read_parameters(self):
        hints = self._hints()
        return [
            (p, hints.get(p.name, object))
            for p in self._signature_parameters()
            if p.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
        ]

    def _default_return_name(self) -> str:
        return f"{self.function.__name__}_result"

    def callee(self, method: 'GeneratedMethod') -> str:
        if self.target is not None:
            return f"{self.target.usage}.{self.function.__name__}"
        return method.type_name(self.function)

    def can_return_awaitable(self) -> bool:
        return self.is_async

    def invocation(self, variables, method) -> str:
        rendered = []
        use_keywords = False
        for parameter, hint in self.parameters:
            variable = self.arguments.get(parameter.name)
            if variable is None:
                if parameter.default is inspect.Parameter.empty:
                    variable = variables.find_variable(hint)
                else:
                    variable = variables.try_find_variable(hint)
            if variable is None:
                use_keywords = True
                continue
            self.uses_variable(variable)

            if use_keywords or parameter.kind is inspect.Parameter.KEYWORD_ONLY:
                rendered.append(f"{parameter.name}={variable.usage}")
            else:
                rendered.append(variable.usage)
        return f"{self.callee(method)}({', '.join(rendered)})"

    def generate_code(self, variables, method, writer, next_):
        call = self.invocation(variables, method)

        if self.is_async:
            if method.async_mode is AsyncMode.TAIL_CONTINUATION:
                writer.write_line(f"return {call}")
                return
            call = f"await {call}"

        if self.return_variable is not None:
            writer.write_line(f"{self.return_variable.usage} = {call}")
        else:
            writer.write_line(call)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({getattr(self.function, '__qualname__', self.function)!r})"


class ConstructorFrame(MethodCall):
    """``name = SomeType(...)`` with constructor parameters resolved by type hint."""

    def __init__(self, constructed_type, name: Optional[str] = None,
                 arguments: Optional[Dict[str, Variable]] = None):
        self.constructed_type = constructed_type
        super().__init__(constructed_type, return_type=constructed_type, return_name=name, arguments=arguments)

    def _hints(self) -> Dict[str, Any]:
        init = self.constructed_type.__init__
        if init is object.__init__:
            return {}
        return typing.get_type_hints(init)

    def _signature_parameters(self) -> List[inspect.Parameter]:
        if self.constructed_type.__init__ is object.__init__:
            return []
        return list(inspect.signature(self.constructed_type).parameters.values())

    def _default_return_name(self) -> str:
        return None

    def callee(self, method: 'GeneratedMethod') -> str:
        return method.type_name(self.constructed_type)


class CompositeFrame(Frame):
    """
    A frame owning an ordered list of child frames, written one block deeper.

    Its ``uses`` include everything its children use and it is asynchronous
    when any child is.
    """

    def __init__(self, frames: Sequence[Frame] = ()):
        super().__init__(is_async=False)
        self.frames = FramesCollection(owner=self, frames=frames)

    def descendants(self):
        for collection in self.child_collections():
            yield from collection.all_frames()

    @property
    def is_async(self) -> bool:
        return any(child.is_async for child in self.descendants())

    @property
    def uses(self) -> List[Variable]:
        result = list(self._uses)
        for child in self.descendants():
            for variable in child.uses:
                if not any(v is variable for v in result):
                    result.append(variable)
        return result

    def child_collections(self) -> List[FramesCollection]:
        return [self.frames]

    def generate_children(self, method, writer, collection: Optional[FramesCollection] = None) -> None:
        FrameChain(collection if collection is not None else self.frames).generate(method, writer)


class IfBlock(CompositeFrame):
    """``if <condition>:`` around the child frames."""

    def __init__(self, condition: str, *args, frames: Sequence[Frame] = ()):
        super().__init__(frames)
        self.condition = condition
        self.args = list(args)
        self.uses_variable(*[a for a in self.args if isinstance(a, Variable)])

    def generate_code(self, variables, method, writer, next_):
        writer.block(f"if {format_source(self.condition, self.args, method, self)}")
        self.generate_children(method, writer)
        writer.finish_block()

    def __repr__(self) -> str:
        return f"IfBlock({self.condition!r})"


def ensure_frame(value) -> Frame:
    if not isinstance(value, Frame):
        raise ConfigurationError(f"Expected a Frame, got {type(value).__name__}")
    return value
