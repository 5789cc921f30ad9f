"""Naming and file helpers for the compilation driver."""

from __future__ import annotations

import shutil
import sys
from pathlib import Path
from typing import Iterable, List

from libbuild.data import HeaderFile, LibraryKind, Module, PackageInfo


def link_name(package: PackageInfo, module: str) -> str:
    """Name passed to the linker with ``-l`` for a module library.

    Examples
    --------
    >>> link_name(PackageInfo(name="gsl"), "linalg")
    'gsl_linalg'
    """
    return f"{package.name}_{module}"


def shared_library_suffix() -> str:
    return ".dylib" if sys.platform == "darwin" else ".so"


def library_file_name(package: PackageInfo, module: str, kind: LibraryKind) -> str:
    """File name of a module library, e.g. ``libgsl_linalg.a``."""
    suffix = ".a" if kind == LibraryKind.STATIC else shared_library_suffix()
    return f"lib{link_name(package, module)}{suffix}"


def object_file_name(source: str) -> str:
    """Object file name for a source path, unique within a module.

    Directory separators are flattened to ``_`` after doubling existing underscores, so
    ``a/b.c`` and ``a_b.c`` map to ``a_b.c.o`` and ``a__b.c.o``.
    """
    return source.replace("_", "__").replace("/", "_") + ".o"


def program_name(source: str) -> str:
    """Executable name of a test program: the source file stem."""
    return Path(source).stem


def module_headers(module: Module, source_dir: Path) -> List[HeaderFile]:
    """Public headers of a module with their absolute source locations."""
    return [HeaderFile(source=source_dir / h, relative_path=h) for h in module.headers]


def stage_headers(headers: Iterable[HeaderFile], include_dir: Path) -> List[Path]:
    """Copy headers below ``include_dir``, keeping their relative paths.

    Raises
    ------
    OSError
        If a header cannot be read or written.
    """
    staged: List[Path] = []
    for header in headers:
        dest = include_dir / header.relative_path
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(header.source, dest)
        staged.append(dest)
    return staged
