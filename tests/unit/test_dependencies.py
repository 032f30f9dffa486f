"""
Unit tests for dependency gathering and frame ordering.
"""

import itertools
import random

import pytest

from pipeforge.codegen.dependencies import DependencyGatherer, is_within, sort_frames
from pipeforge.codegen.frames import CodeFrame, IfBlock, SyncFrame
from pipeforge.codegen.frames_collection import FramesCollection
from pipeforge.codegen.method import GeneratedMethod
from pipeforge.utils.exceptions import ConfigurationError, DependencyCycleError


class Producer(SyncFrame):
    """Creates one int variable, optionally from other variables."""

    def __init__(self, name, *inputs):
        super().__init__()
        self.uses_variable(*inputs)
        self.inputs = list(inputs)
        self.output = self.create_variable(int, name)

    def generate_code(self, variables, method, writer, next_):
        value = " + ".join(v.usage for v in self.inputs) or "1"
        writer.write_line(f"{self.output.usage} = {value}")

    def __repr__(self):
        return f"Producer({self.output.usage})"


def assert_creators_first(frames):
    positions = {id(frame): i for i, frame in enumerate(frames)}
    for frame in frames:
        for variable in frame.uses:
            creator = variable.creator
            if creator is not None and id(creator) in positions and creator is not frame:
                assert positions[id(creator)] < positions[id(frame)], (
                    f"{creator!r} must precede {frame!r}"
                )


class TestDependencyGatherer:
    """Test cases for DependencyGatherer."""

    def setup_method(self):
        """Set up test fixtures."""
        self.gatherer = DependencyGatherer()

    def test_direct_dependency(self):
        """Test that the creator of a used variable is a prerequisite."""
        a = Producer("a")
        b = Producer("b", a.output)
        assert self.gatherer.dependencies_for(b) == [a]
        assert self.gatherer.dependencies_for(a) == []

    def test_transitive_dependencies(self):
        """Test that prerequisites of prerequisites are included."""
        a = Producer("a")
        b = Producer("b", a.output)
        c = Producer("c", b.output)
        assert self.gatherer.dependencies_for(c) == [b, a]
        assert self.gatherer.dependencies_of_variable(c.output) == [c, b, a]

    def test_variable_dependencies_followed(self):
        """Test that a property's parent creator is a prerequisite of its user."""
        a = Producer("a")
        user = CodeFrame(False, "print({})", a.output.get_property("real"))
        assert self.gatherer.dependencies_for(user) == [a]

    def test_results_memoized(self):
        """Test that repeated queries return equal results."""
        a = Producer("a")
        b = Producer("b", a.output)
        first = self.gatherer.dependencies_for(b)
        assert self.gatherer.dependencies_for(b) == first

    def test_shared_prerequisites_listed_once(self):
        """Test that a prerequisite reached through many variables appears once."""
        root = Producer("root")
        middles = [Producer(f"m{i}", root.output) for i in range(300)]
        sink = Producer("sink", *[m.output for m in middles])

        dependencies = self.gatherer.dependencies_for(sink)
        assert len(dependencies) == 301
        assert len({id(frame) for frame in dependencies}) == 301
        assert dependencies[:3] == [middles[0], root, middles[1]]
        assert dependencies[-1] is middles[-1]

        frames = FramesCollection(frames=[sink] + list(reversed(middles)) + [root])
        ordered = sort_frames(frames, self.gatherer)
        assert ordered[0] is root
        assert ordered[-1] is sink
        assert_creators_first(ordered)

    def test_cycle_raises_configuration_error(self):
        """Test that frames depending on each other are reported."""
        first = Producer("first")
        second = Producer("second", first.output)
        first.uses_variable(second.output)

        with pytest.raises(DependencyCycleError) as exc_info:
            self.gatherer.dependencies_for(first)

        assert isinstance(exc_info.value, ConfigurationError)
        assert len(exc_info.value.chain) >= 3

    def test_self_created_variables_ignored(self):
        """Test that a frame does not depend on itself."""
        frame = Producer("a")
        frame.uses_variable(frame.output)
        assert self.gatherer.dependencies_for(frame) == []

    def test_nested_creator_not_a_prerequisite_of_container(self):
        """Test that a composite frame does not depend on its own children."""
        inner = Producer("inner")
        user = CodeFrame(False, "print({})", inner.output)
        block = IfBlock("True", frames=[inner, user])

        assert is_within(user, block)
        assert self.gatherer.dependencies_for(block) == []


class TestSortFrames:
    """Test the stable topological sort."""

    def test_creator_moved_before_user(self):
        """Test that a user added before its creator is reordered."""
        a = Producer("a")
        b = Producer("b", a.output)
        collection = FramesCollection(frames=[b, a])

        sort_frames(collection)
        assert list(collection) == [a, b]

    def test_valid_order_is_kept(self):
        """Test that independent frames keep their positions."""
        frames = [Producer(name) for name in "abcd"]
        collection = FramesCollection(frames=frames)
        sort_frames(collection)
        assert list(collection) == frames

    @pytest.mark.parametrize("seed", range(10))
    def test_creators_precede_users_for_any_insertion_order(self, seed):
        """Test the ordering invariant on shuffled dependency graphs."""
        rng = random.Random(seed)
        frames = []
        for i in range(8):
            inputs = [f.output for f in rng.sample(frames, k=min(len(frames), rng.randint(0, 2)))]
            frames.append(Producer(f"v{i}", *inputs))

        shuffled = list(frames)
        rng.shuffle(shuffled)
        collection = FramesCollection(frames=shuffled)
        sort_frames(collection)

        assert_creators_first(list(collection))

    @pytest.mark.parametrize("order", list(itertools.permutations(range(3))))
    def test_chain_sorted_from_every_permutation(self, order):
        """Test a three frame chain added in every order."""
        a = Producer("a")
        b = Producer("b", a.output)
        c = Producer("c", b.output)
        chain = [a, b, c]

        collection = FramesCollection(frames=[chain[i] for i in order])
        sort_frames(collection)
        assert list(collection) == chain

    def test_nested_prerequisite_attributed_to_container(self):
        """Test that a prerequisite inside a composite frame moves the composite."""
        inner = Producer("inner")
        block = IfBlock("True", frames=[inner])
        user = Producer("outer", inner.output)
        collection = FramesCollection(frames=[user, block])

        sort_frames(collection)
        assert list(collection) == [block, user]

    def test_children_of_composites_sorted(self):
        """Test that child collections are ordered too."""
        a = Producer("a")
        b = Producer("b", a.output)
        block = IfBlock("True", frames=[b, a])

        sort_frames(FramesCollection(frames=[block]))
        assert list(block.frames) == [a, b]

    def test_cycle_in_method_raises(self):
        """Test that a cycle surfaces when a method is generated."""
        first = Producer("first")
        second = Producer("second", first.output)
        first.uses_variable(second.output)

        method = GeneratedMethod("run")
        method.add_frames(first, second)
        with pytest.raises(DependencyCycleError):
            method.generate_code()


class TestGeneratedOrdering:
    """Test the ordering invariant through a full method."""

    def test_generated_source_defines_before_use(self):
        """Test that emitted assignments precede their reads."""
        a = Producer("a")
        b = Producer("b", a.output)
        c = Producer("c", a.output, b.output)

        method = GeneratedMethod("run")
        method.add_frames(c, b, a)
        source = method.generate_code()

        assert source == "def run():\n    a = 1\n    b = a\n    c = a + b\n"
