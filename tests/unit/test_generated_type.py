"""
Unit tests for unit and module assembly.
"""

import logging
from abc import ABC, abstractmethod

import pytest

from pipeforge.codegen.frames import CodeFrame, ReturnFrame, SyncFrame
from pipeforge.codegen.generated_module import GeneratedModule
from pipeforge.codegen.generated_type import GeneratedType
from pipeforge.codegen.rules import GenerationRules
from pipeforge.codegen.templates import JinjaTemplateRenderer
from pipeforge.codegen.variables import Argument
from pipeforge.compiler import InMemoryCompileStrategy, ModuleLoader
from pipeforge.utils.debug_artifacts import DebugArtifactManager
from pipeforge.utils.exceptions import CompilationError, ConfigurationError, DuplicateTypeError, PipeforgeError


class Calculator(ABC):
    @abstractmethod
    def calculate(self, value: int):
        pass


class BaseWithArguments:
    def __init__(self, prefix: str):
        self.prefix = prefix


class Multiplier:
    def __init__(self, factor: int = 2):
        self.factor = factor


class UseMultiplierFrame(SyncFrame):
    """Requests an injected field while the method is generated."""

    def generate_code(self, variables, method, writer, next_):
        multiplier = method.owner.injected_field(Multiplier)
        self.uses_variable(multiplier)
        value = variables.find_variable(int)
        writer.write_line(f"return {value.usage} * {multiplier.usage}.factor")


class TestGeneratedType:
    """Test cases for GeneratedType."""

    def test_inherits_abstract_methods(self):
        """Test that abstract methods of the base become generated methods."""
        generated = GeneratedType("SquareCalculator", base_type=Calculator)
        method = generated.method_for("calculate")

        assert method is not None
        assert [(a.variable_type, a.usage) for a in method.arguments] == [(int, "value")]
        assert method.owner is generated

    def test_duplicate_method_raises(self):
        """Test that method names are unique within a type."""
        generated = GeneratedType("Thing")
        generated.add_method("run")
        with pytest.raises(ConfigurationError):
            generated.add_method("run")

    def test_render_methods_and_static_fields(self):
        """Test the rendered class statement."""
        generated = GeneratedType("SquareCalculator", base_type=Calculator)
        generated.static_field(int, "power", "2")
        generated.method_for("calculate").add_frames(CodeFrame(False, "return {} ** self.power",
                                                               generated.method_for("calculate").arguments[0]))

        source = generated.generate_code()
        assert source == (
            f"class SquareCalculator({__name__}.Calculator):\n"
            "    power = 2\n"
            "\n"
            "    def calculate(self, value):\n"
            "        return value ** self.power\n"
        )
        assert generated.references.sorted_imports() == [__name__]

    def test_fields_discovered_during_method_rendering_are_wired(self):
        """Test that injected fields requested by frames appear in the constructor."""
        generated = GeneratedType("Scaler")
        generated.add_method("scale", [Argument(int, "value")]).add_frames(UseMultiplierFrame())

        source = generated.generate_code()
        assert "    def __init__(self, multiplier):\n        self._multiplier = multiplier\n" in source
        assert "return value * self._multiplier.factor" in source
        assert [f.argument_name for f in generated.constructor_fields()] == ["multiplier"]

    def test_base_constructor_arguments(self):
        """Test that base constructor arguments are passed to super()."""
        generated = GeneratedType("Greeter", base_type=BaseWithArguments)
        prefix = generated.injected_field(str, "prefix")
        generated.base_constructor_arguments.append(prefix)
        generated.injected_field(Multiplier)

        source = generated.generate_code()
        assert "    def __init__(self, prefix, multiplier):\n" in source
        assert "        super().__init__(prefix)\n" in source
        assert "        self._multiplier = multiplier\n" in source
        assert "self._prefix = prefix" not in source

    def test_type_is_variable_source_for_fields(self):
        """Test that methods find fields of their owning type."""
        generated = GeneratedType("Logged")
        field = generated.static_field(logging.Logger, "_log", "None")
        method = generated.add_method("run")
        assert method.find_variable(logging.Logger) is field

    def test_create_instance_requires_compilation(self):
        """Test that an uncompiled type cannot be instantiated."""
        with pytest.raises(ConfigurationError):
            GeneratedType("Nothing").create_instance(lambda field: None)


class TestGeneratedModule:
    """Test cases for GeneratedModule."""

    def setup_method(self):
        """Set up test fixtures."""
        self.rules = GenerationRules(compile_strategy=InMemoryCompileStrategy(), loader=ModuleLoader())
        self.module = GeneratedModule("calculators", self.rules)

    def test_duplicate_type_raises(self):
        """Test that type names are unique within a module."""
        self.module.add_type("Square")
        with pytest.raises(DuplicateTypeError):
            self.module.add_type("Square")

    def test_source_per_type(self):
        """Test the rendered module source of one type."""
        generated = self.module.add_type("Square", base_type=Calculator)
        generated.method_for("calculate").add_frames(ReturnFrame(4))

        source = self.module.source_for(generated)
        assert source.filename == "calculators/Square.py"
        assert source.text.startswith("# <auto-generated>\n")
        assert "#   Unit: calculators\n" in source.text
        assert f"import {__name__}\n" in source.text
        assert "class Square(" in source.text
        assert self.module.source_for(generated) is source

    def test_compile_and_instantiate(self):
        """Test compiling a type with an injected field and calling it."""
        generated = self.module.add_type("Scaler")
        generated.add_method("scale", [Argument(int, "value")]).add_frames(UseMultiplierFrame())

        module = self.module.compile_all()
        assert generated.compiled_type is module.Scaler

        instance = generated.create_instance(lambda field: Multiplier(3))
        assert instance.scale(5) == 15

    def test_return_literal_42(self):
        """Test that a routine returning a literal compiles and runs."""
        generated = self.module.add_type("Answer")
        generated.add_method("run").add_frames(ReturnFrame(42))
        self.module.compile_all()

        assert generated.create_instance(lambda field: None).run() == 42

    def test_local_types_bound_into_namespace(self):
        """Test that non-importable types resolve through module bindings."""

        class LocalValue:
            def __init__(self, value):
                self.value = value

        generated = self.module.add_type("Factory")
        generated.add_method("make").add_frames(CodeFrame(False, "return {}(7)", LocalValue))
        self.module.compile_all()

        assert any(bound is LocalValue for bound in self.module.bindings.values())
        assert generated.create_instance(lambda field: None).make().value == 7

    def test_compilation_error_carries_source_and_diagnostics(self):
        """Test the error raised for invalid generated source."""
        generated = self.module.add_type("Broken")
        generated.add_method("run").add_frames(CodeFrame(False, "return ("))

        with pytest.raises(CompilationError) as exc_info:
            self.module.compile_all()

        error = exc_info.value
        assert "class Broken" in error.source_code
        assert len(error.diagnostics) == 1
        assert error.diagnostics[0].filename == "calculators/Broken.py"
        assert error.get_compiler_errors()[0].startswith("SyntaxError")

    def test_debug_artifacts_saved(self, tmp_path):
        """Test that generated sources are written to the debug directory."""
        self.rules.debug_artifacts = DebugArtifactManager(str(tmp_path))
        generated = self.module.add_type("Answer")
        generated.add_method("run").add_frames(ReturnFrame(42))
        self.module.generate_sources()

        saved = tmp_path / "calculators.Answer.py"
        assert saved.exists()
        assert "return 42" in saved.read_text()


class TestTemplateRenderer:
    """Test cases for JinjaTemplateRenderer."""

    def setup_method(self):
        """Set up test fixtures."""
        self.renderer = JinjaTemplateRenderer()

    def test_render_module_without_imports(self):
        """Test the module layout when the class needs no imports."""
        source = self.renderer.render_module("unit", "Empty", [], "class Empty:\n    pass\n")

        assert source.startswith("# <auto-generated>\n")
        assert "#   Type: Empty\n" in source
        assert "import " not in source
        assert source.endswith("class Empty:\n    pass\n")

    def test_imports_in_given_order(self):
        """Test that imports are written one per line before the class."""
        source = self.renderer.render_module("unit", "Empty", ["logging", "os"], "class Empty:\n    pass")

        assert source.index("import logging\n") < source.index("import os\n") < source.index("class Empty:")
        assert source.endswith("\n")

    def test_missing_template(self):
        """Test that template errors are reported as PipeforgeError."""
        with pytest.raises(PipeforgeError) as exc_info:
            self.renderer.render_file("missing.py.j2", {})
        assert exc_info.value.details == {"template": "missing.py.j2"}
