"""
Unit tests for type references in generated source.
"""

import collections
import os.path

from pipeforge.codegen.type_names import BINDING_PREFIX, TypeReferences, is_importable


class Importable:
    class Inner:
        pass


def make_local_class():
    class Local:
        pass
    return Local


class TestIsImportable:
    """Test cases for is_importable."""

    def test_module_level_class(self):
        """Test that module level classes are importable."""
        assert is_importable(Importable)
        assert is_importable(Importable.Inner)

    def test_local_class(self):
        """Test that classes defined in functions are not importable."""
        assert not is_importable(make_local_class())

    def test_lambda(self):
        """Test that lambdas are not importable."""
        assert not is_importable(lambda: None)

    def test_main_module(self):
        """Test that objects from __main__ are never importable."""
        local = make_local_class()
        local.__module__ = "__main__"
        local.__qualname__ = "Local"
        assert not is_importable(local)


class TestTypeReferences:
    """Test cases for TypeReferences."""

    def setup_method(self):
        """Set up test fixtures."""
        self.references = TypeReferences()

    def test_builtins_by_bare_name(self):
        """Test that builtins need no import."""
        assert self.references.reference(int) == "int"
        assert self.references.reference(ValueError) == "ValueError"
        assert self.references.reference(None) == "None"
        assert self.references.imports == set()

    def test_importable_object(self):
        """Test that importable objects are qualified and imported."""
        assert self.references.reference(collections.OrderedDict) == "collections.OrderedDict"
        assert self.references.reference(Importable.Inner) == f"{__name__}.Importable.Inner"
        assert self.references.sorted_imports() == sorted({"collections", __name__})

    def test_function_reference(self):
        """Test that module level functions are qualified."""
        assert self.references.reference(os.path.join) == f"{os.path.join.__module__}.join"

    def test_local_class_bound(self):
        """Test that non-importable objects are bound under a deterministic name."""
        local = make_local_class()
        name = self.references.reference(local)

        assert name.startswith(BINDING_PREFIX)
        assert name.isidentifier()
        assert self.references.bindings[name] is local
        assert self.references.reference(local) == name

    def test_bindings_unique(self):
        """Test that distinct objects with the same qualified name get distinct bindings."""
        first = self.references.reference(make_local_class())
        second = self.references.reference(make_local_class())
        assert first != second
        assert len(self.references.bindings) == 2

    def test_shared_bindings(self):
        """Test that bindings may be shared between references of several types."""
        bindings = {}
        local = make_local_class()
        first = TypeReferences(bindings).reference(local)
        second = TypeReferences(bindings).reference(local)
        assert first == second
        assert list(bindings) == [first]
