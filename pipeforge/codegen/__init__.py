"""
Code generation for pipeforge.

Frames and variables describe a method body; :class:`GeneratedMethod`
arranges and emits them, :class:`GeneratedType` assembles methods and
fields into a class and :class:`GeneratedModule` compiles the classes.
"""

from .variables import Variable, Argument, PropertyVariable, InjectedField, StaticField
from .frames import (
    AsyncMode,
    Frame,
    FrameChain,
    SyncFrame,
    AsyncFrame,
    CompositeFrame,
    CodeFrame,
    MethodCall,
    ConstructorFrame,
    ReturnFrame,
    CommentFrame,
    BlankLineFrame,
    IfBlock,
)
from .frames_collection import FramesCollection
from .dependencies import DependencyGatherer, sort_frames
from .variable_sources import VariableSource, FrameFactoryVariableSource, MappingVariableSource
from .method import GeneratedMethod, MethodState, MethodVariables
from .generated_type import GeneratedType
from .generated_module import GeneratedModule
from .type_names import TypeReferences
from .rules import GenerationRules
from .source_writer import SourceWriter, NullSourceWriter
