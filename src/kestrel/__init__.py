"""Kestrel: a single-pass compiler and steppable register-based virtual machine."""

# Main API
from kestrel.kestrel import Kestrel
from kestrel.kestrel_compiler import KestrelCompiler

# Exceptions
from kestrel.kestrel_error import KestrelError, KestrelCompileError, KestrelRuntimeError, KestrelTypeError
from kestrel.kestrel_frame_validator import ValidationError, ValidationErrorType, validate_frame

# Value types
from kestrel.kestrel_value import (
    KestrelValue, KestrelNumber, KestrelBoolean, KestrelNil, Kestrel_NIL,
    make_number, make_boolean, nil_value, values_equal, display
)

# AST types
from kestrel.kestrel_ast import (
    KestrelASTNode, KestrelASTConstant, KestrelASTAdd, KestrelASTLet,
    KestrelASTVar, KestrelASTSet, KestrelASTBlock
)

# Lower-level components
from kestrel.kestrel_instruction import Instruction, Opcode
from kestrel.kestrel_frame import KestrelFunctionFrame
from kestrel.kestrel_codegen import KestrelCodeGen
from kestrel.kestrel_vm import KestrelVM, KestrelVMState, KestrelStepWatcher

# Step watchers (for debugging)
from kestrel.kestrel_trace import KestrelStdoutStepWatcher, KestrelBufferingStepWatcher


__all__ = [
    # Main API
    "Kestrel", "KestrelCompiler",

    # Exceptions
    "KestrelError", "KestrelCompileError", "KestrelRuntimeError", "KestrelTypeError",
    "ValidationError", "ValidationErrorType", "validate_frame",

    # Value types
    "KestrelValue", "KestrelNumber", "KestrelBoolean", "KestrelNil", "Kestrel_NIL",
    "make_number", "make_boolean", "nil_value", "values_equal", "display",

    # AST node types
    "KestrelASTNode", "KestrelASTConstant", "KestrelASTAdd", "KestrelASTLet",
    "KestrelASTVar", "KestrelASTSet", "KestrelASTBlock",

    # Lower-level components
    "Instruction", "Opcode", "KestrelFunctionFrame", "KestrelCodeGen",
    "KestrelVM", "KestrelVMState", "KestrelStepWatcher",

    # Step watchers
    "KestrelStdoutStepWatcher", "KestrelBufferingStepWatcher",
]
