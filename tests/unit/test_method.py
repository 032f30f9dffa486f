"""
Unit tests for routine synthesis.

Covers variable resolution, discovery and placement of lazily created
frames, async shape deduction and the emission state machine.
"""

import itertools

import pytest

from pipeforge.codegen.frames import AsyncMode, CodeFrame, IfBlock, MethodCall, ReturnFrame, SyncFrame
from pipeforge.codegen.method import GeneratedMethod, MethodState
from pipeforge.codegen.source_writer import SourceWriter
from pipeforge.codegen.variable_sources import FrameFactoryVariableSource, MappingVariableSource
from pipeforge.codegen.variables import Argument, Variable
from pipeforge.utils.exceptions import ConfigurationError, UnresolvableVariableError


class Connection:
    pass


class Clock:
    pass


async def load_count() -> int:
    return 1


async def load_name() -> str:
    return "name"


def describe(count: int) -> str:
    return str(count)


class OpenConnectionFrame(SyncFrame):
    """Creates a Connection on demand."""

    instances = 0

    def __init__(self):
        super().__init__()
        OpenConnectionFrame.instances += 1
        self.connection = self.create_variable(Connection, "connection")

    def generate_code(self, variables, method, writer, next_):
        writer.write_line(f"{self.connection.usage} = open_connection()")


class UseConnectionFrame(SyncFrame):
    """Resolves a Connection while generating."""

    def generate_code(self, variables, method, writer, next_):
        connection = variables.find_variable(Connection)
        writer.write_line(f"{connection.usage}.close()")


def connection_source():
    return FrameFactoryVariableSource(Connection, lambda method: OpenConnectionFrame())


class TestVariableResolution:
    """Test cases for variable lookup within one method."""

    def setup_method(self):
        """Set up test fixtures."""
        self.method = GeneratedMethod("run", [Argument(int, "count")])
        self.method.sources.append(connection_source())

    def test_arguments_found_first(self):
        """Test that arguments satisfy lookups."""
        assert self.method.find_variable(int).usage == "count"
        assert self.method.find_variable(int, "count").usage == "count"

    def test_repeated_resolution_returns_identical_instance(self):
        """Test that the same (type, name) always resolves to the same variable."""
        first = self.method.find_variable(Connection)
        for _ in range(5):
            assert self.method.find_variable(Connection) is first

    def test_source_asked_once_per_key(self):
        """Test that a variable source is not consulted again for a resolved key."""
        OpenConnectionFrame.instances = 0
        self.method.find_variable(Connection)
        self.method.try_find_variable(Connection)
        assert OpenConnectionFrame.instances == 1

    def test_resolution_is_per_method(self):
        """Test that different methods receive different variables."""
        other = GeneratedMethod("other")
        other.sources.append(connection_source())
        assert other.find_variable(Connection) is not self.method.find_variable(Connection)

    def test_unresolvable_variable_names_searched_locations(self):
        """Test the error raised when nothing can produce a variable."""
        with pytest.raises(UnresolvableVariableError) as exc_info:
            self.method.find_variable(Clock)

        error = exc_info.value
        assert error.type_name == "Clock"
        assert any("arguments of run" in location for location in error.searched)
        assert "Clock" in str(error)

    def test_try_find_returns_none(self):
        """Test that try_find_variable does not raise."""
        assert self.method.try_find_variable(Clock) is None

    def test_mapping_source(self):
        """Test fixed variables supplied by a mapping source."""
        clock = Variable(Clock, "clock")
        self.method.sources.append(MappingVariableSource().add(clock))
        assert self.method.find_variable(Clock) is clock
        assert self.method.try_find_variable(Clock, "other") is None


class TestDiscovery:
    """Test that frames requested during generation are placed automatically."""

    def test_creator_inserted_before_first_user(self):
        """Test that a lazily created frame is inserted before its user."""
        method = GeneratedMethod("run")
        method.sources.append(connection_source())
        method.add_frames(CodeFrame(False, "start()"), UseConnectionFrame(), ReturnFrame())

        source = method.generate_code()
        assert source == (
            "def run():\n"
            "    start()\n"
            "    connection = open_connection()\n"
            "    connection.close()\n"
            "    return\n"
        )
        assert isinstance(method.frames[1], OpenConnectionFrame)

    def test_registered_frames_in_walk_order(self):
        """Test that the discovery pass records every frame it walks."""
        method = GeneratedMethod("run")
        method.sources.append(connection_source())
        method.add_frames(UseConnectionFrame())
        method.arrange_frames()

        assert [type(f) for f in method.registered_frames] == [OpenConnectionFrame, UseConnectionFrame]


class TestAsyncShape:
    """Test async shape deduction."""

    def arranged(self, *frames):
        method = GeneratedMethod("run", [Argument(int, "count")])
        method.add_frames(*frames)
        method.arrange_frames()
        return method

    def test_no_async_frames(self):
        """Test that a method without async frames is synchronous."""
        method = self.arranged(CodeFrame(False, "a = 1"), MethodCall(describe))
        assert method.async_mode is AsyncMode.NONE
        assert method.signature().startswith("def ")

    def test_single_trailing_async_call_is_tail_continuation(self):
        """Test that one async call in last position is returned directly."""
        method = self.arranged(CodeFrame(False, "a = 1"), MethodCall(load_count))
        assert method.async_mode is AsyncMode.TAIL_CONTINUATION

        source = method.generate_code()
        assert source.startswith("def run(count):")
        assert f"    return {__name__}.load_count()\n" in source
        assert "await" not in source

    def test_async_frame_not_last_is_fully_async(self):
        """Test that an async frame followed by other frames forces full async."""
        method = self.arranged(MethodCall(load_count), CodeFrame(False, "a = 1"))
        assert method.async_mode is AsyncMode.FULLY_ASYNC

        source = method.generate_code()
        assert source.startswith("async def run(count):")
        assert "load_count_result = await " in source

    def test_two_async_frames_are_fully_async(self):
        """Test that more than one async frame forces full async."""
        method = self.arranged(MethodCall(load_name), MethodCall(load_count))
        assert method.async_mode is AsyncMode.FULLY_ASYNC

    def test_trailing_async_frame_that_cannot_return_awaitable(self):
        """Test that an async frame that cannot hand back its awaitable forces full async."""
        method = self.arranged(CodeFrame(False, "a = 1"), CodeFrame(True, "await pause()"))
        assert method.async_mode is AsyncMode.FULLY_ASYNC

    @pytest.mark.parametrize("order", list(itertools.permutations(range(3))))
    def test_shape_stable_across_permutations_keeping_last(self, order):
        """Test that permuting the leading sync frames keeps the tail shape."""
        leading = [CodeFrame(False, f"x{i} = {i}") for i in range(3)]
        method = self.arranged(*[leading[i] for i in order], MethodCall(load_count))
        assert method.async_mode is AsyncMode.TAIL_CONTINUATION

    @pytest.mark.parametrize("position", [0, 1, 2])
    def test_shape_fully_async_when_async_frame_moves(self, position):
        """Test that moving the async frame away from the end changes the shape."""
        frames = [CodeFrame(False, f"x{i} = {i}") for i in range(3)]
        frames.insert(position, MethodCall(load_count))
        method = self.arranged(*frames)
        assert method.async_mode is AsyncMode.FULLY_ASYNC


class TestEmissionState:
    """Test the method life cycle."""

    def test_states(self):
        """Test CONFIGURING to CLOSED transition."""
        method = GeneratedMethod("run")
        assert method.state is MethodState.CONFIGURING
        method.add_frames(ReturnFrame(1))
        method.generate_code()
        assert method.state is MethodState.CLOSED

    def test_reemission_is_identical(self):
        """Test that writing a closed method again yields identical text and frames."""
        method = GeneratedMethod("run", [Argument(int, "count")])
        method.sources.append(connection_source())
        method.add_frames(UseConnectionFrame(), ReturnFrame(variable_type=int))

        first = method.generate_code()
        frames = list(method.frames)
        second = method.generate_code()

        assert first == second
        assert list(method.frames) == frames

    def test_add_frames_after_close_raises(self):
        """Test that a closed method is not modified."""
        method = GeneratedMethod("run")
        method.generate_code()
        with pytest.raises(ConfigurationError):
            method.add_frames(ReturnFrame())

    def test_variables_frozen_after_emission(self):
        """Test that emitted variables cannot be renamed."""
        count = Argument(int, "count")
        method = GeneratedMethod("run", [count])
        method.add_frames(ReturnFrame(count))
        method.generate_code()

        with pytest.raises(ConfigurationError):
            count.override_name("total")

    def test_rename_before_emission(self):
        """Test that renaming before emission changes the emitted text."""
        count = Argument(int, "count")
        method = GeneratedMethod("run", [count])
        method.add_frames(ReturnFrame(count))
        count.override_name("total")

        assert method.generate_code() == "def run(total):\n    return total\n"

    def test_reentrant_emission_raises(self):
        """Test that emitting a method from inside its own emission fails."""

        class ReentrantFrame(SyncFrame):
            def generate_code(self, variables, method, writer, next_):
                method.write_method(SourceWriter())

        method = GeneratedMethod("run")
        method.add_frames(ReentrantFrame())

        with pytest.raises(ConfigurationError):
            method.generate_code()
        assert method.state is MethodState.CONFIGURING

    def test_empty_method_gets_pass(self):
        """Test that an empty method body is valid Python."""
        assert GeneratedMethod("run").generate_code() == "def run():\n    pass\n"


class TestBlockScoping:
    """Test which nested variables a frame may read."""

    def setup_method(self):
        """Set up test fixtures."""
        self.flag = Argument(bool, "flag")
        self.method = GeneratedMethod("run", [self.flag])

    def test_same_block_visible(self):
        """Test that a variable created earlier in the same block is used."""
        opener = OpenConnectionFrame()
        user = UseConnectionFrame()
        self.method.add_frames(IfBlock("{}", self.flag, frames=[opener, user]))

        source = self.method.generate_code()
        assert source == (
            "def run(flag):\n"
            "    if flag:\n"
            "        connection = open_connection()\n"
            "        connection.close()\n"
        )
        assert user.uses[0] is opener.connection

    def test_enclosing_block_visible(self):
        """Test that a nested frame reads a variable of the method body."""
        opener = OpenConnectionFrame()
        user = UseConnectionFrame()
        self.method.add_frames(opener, IfBlock("{}", self.flag, frames=[user]))
        self.method.arrange_frames()

        assert user.uses[0] is opener.connection
        assert len(self.method.frames) == 2

    def test_sibling_block_not_visible(self):
        """Test that a variable created in another branch cannot be read."""
        self.method.add_frames(
            IfBlock("{}", self.flag, frames=[OpenConnectionFrame()]),
            IfBlock("not {}", self.flag, frames=[UseConnectionFrame()]),
        )

        with pytest.raises(UnresolvableVariableError):
            self.method.arrange_frames()

    def test_sibling_block_falls_back_to_source(self):
        """Test that a source supplies the variable before the second branch."""
        self.method.sources.append(connection_source())
        branch_opener = OpenConnectionFrame()
        user = UseConnectionFrame()
        self.method.add_frames(
            IfBlock("{}", self.flag, frames=[branch_opener]),
            IfBlock("not {}", self.flag, frames=[user]),
        )

        source = self.method.generate_code()
        placed = self.method.frames[1]
        assert isinstance(placed, OpenConnectionFrame)
        assert placed is not branch_opener
        assert user.uses[0] is placed.connection
        assert source == (
            "def run(flag):\n"
            "    if flag:\n"
            "        connection = open_connection()\n"
            "    connection = open_connection()\n"
            "    if not flag:\n"
            "        connection.close()\n"
        )

    def test_direct_lookup_sees_method_body_only(self):
        """Test that lookups without a requesting frame ignore nested blocks."""
        self.method.add_frames(IfBlock("{}", self.flag, frames=[OpenConnectionFrame()]))
        assert self.method.try_find_variable(Connection) is None
