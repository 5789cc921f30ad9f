"""Compilation of build plans into module libraries and test programs."""

from .driver import CompilationDriver, CompilationError
from .toolchain import DEFAULT_TOOL_TIMEOUT, Toolchain, ToolchainError, UnixToolchain
from .utils import (
    library_file_name,
    link_name,
    object_file_name,
    program_name,
    shared_library_suffix,
)

__all__ = [
    "CompilationDriver",
    "CompilationError",
    "Toolchain",
    "ToolchainError",
    "UnixToolchain",
    "DEFAULT_TOOL_TIMEOUT",
    "library_file_name",
    "link_name",
    "object_file_name",
    "program_name",
    "shared_library_suffix",
]
