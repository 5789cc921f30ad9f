import json
import threading
from pathlib import Path
from typing import Dict, List, Sequence, Set

import pytest

from libbuild.compile import Toolchain, ToolchainError, UnixToolchain
from libbuild.modules import ModuleRegistry

# Sources of a small library: core <- linalg <- ode, plus an optional binding on top of ode.
PROJECT_SOURCES: Dict[str, str] = {
    "core/core.h": (
        "#ifndef CORE_CORE_H\n"
        "#define CORE_CORE_H\n"
        "int core_add(int a, int b);\n"
        "#endif\n"
    ),
    "core/core.c": '#include "core/core.h"\nint core_add(int a, int b) { return a + b; }\n',
    "core/test_core.c": (
        '#include "core/core.h"\nint main(void) { return core_add(2, 3) == 5 ? 0 : 1; }\n'
    ),
    "linalg/lu.h": (
        "#ifndef LINALG_LU_H\n"
        "#define LINALG_LU_H\n"
        '#include "core/core.h"\n'
        "int linalg_dot2(int a, int b, int c, int d);\n"
        "#endif\n"
    ),
    "linalg/lu.c": (
        '#include "linalg/lu.h"\n'
        "int linalg_dot2(int a, int b, int c, int d) { return core_add(a * b, c * d); }\n"
    ),
    "linalg/test_lu.c": (
        '#include "linalg/lu.h"\n'
        "int main(void) { return linalg_dot2(1, 2, 3, 4) == 14 ? 0 : 1; }\n"
    ),
    "ode/rk.h": (
        "#ifndef ODE_RK_H\n"
        "#define ODE_RK_H\n"
        "int ode_step(int y, int h);\n"
        "#endif\n"
    ),
    "ode/rk.c": (
        '#include "ode/rk.h"\n'
        '#include "linalg/lu.h"\n'
        "int ode_step(int y, int h) { return linalg_dot2(y, 1, h, 1); }\n"
    ),
    "ode/test_rk.c": (
        '#include "ode/rk.h"\nint main(void) { return ode_step(1, 2) == 3 ? 0 : 1; }\n'
    ),
    "bindings/glue.c": '#include "ode/rk.h"\nint glue_step(void) { return ode_step(0, 0); }\n',
}

PROJECT_FILE = {
    "package": {"name": "mini", "version": "1.2.0", "description": "Miniature numerics"},
    "modules": [
        {
            "name": "core",
            "sources": ["core/core.c"],
            "headers": ["core/core.h"],
            "tests": ["core/test_core.c"],
        },
        {
            "name": "linalg",
            "sources": ["linalg/lu.c"],
            "headers": ["linalg/lu.h"],
            "dependencies": ["core"],
            "tests": ["linalg/test_lu.c"],
            "system_libraries": ["m"],
        },
        {
            "name": "ode",
            "sources": ["ode/rk.c"],
            "headers": ["ode/rk.h"],
            "dependencies": ["linalg"],
            "tests": ["ode/test_rk.c"],
        },
        {
            "name": "glue",
            "sources": ["bindings/glue.c"],
            "dependencies": ["ode"],
            "optional_binding": True,
        },
    ],
}


def _c_toolchain_available() -> bool:
    """Check if a C compiler and an archiver can be found.

    Returns
    -------
    bool
        True if ``cc`` (or CC) and ``ar`` (or AR) are on PATH, False otherwise.
    """
    return UnixToolchain.is_available()


def pytest_collection_modifyitems(config: pytest.Config, items: List[pytest.Item]) -> None:
    """Modify pytest collection to skip tests that require a C toolchain when none is found."""
    if _c_toolchain_available():
        return

    skip_cc = pytest.mark.skip(reason="No C compiler/archiver available, skip test")
    for item in items:
        if any(item.iter_markers(name="requires_cc")):
            item.add_marker(skip_cc)


class FakeToolchain(Toolchain):
    """Toolchain that records its calls and writes placeholder outputs.

    Compiling a source whose file name is in ``fail_sources`` raises :class:`ToolchainError`.
    """

    def __init__(self) -> None:
        self.calls: List[dict] = []
        self.fail_sources: Set[str] = set()
        self._lock = threading.Lock()

    @staticmethod
    def is_available() -> bool:
        return True

    def compile_object(
        self,
        source: Path,
        output: Path,
        include_dirs: Sequence[Path],
        flags: Sequence[str],
        position_independent: bool = False,
    ) -> None:
        self._record(
            "compile",
            output,
            source=source,
            flags=list(flags),
            position_independent=position_independent,
            include_dirs=list(include_dirs),
        )
        if source.name in self.fail_sources:
            raise ToolchainError(
                ["fake-cc", "-c", str(source)], f"{source}:1:1: error: expected ';'\n", 1
            )
        self._touch(output, f"object {source.name}\n")

    def archive(self, objects: Sequence[Path], output: Path) -> None:
        self._record("archive", output, objects=list(objects))
        self._touch(output, "archive " + " ".join(o.name for o in objects) + "\n")

    def link_shared(self, objects, output, library_dirs, libraries, flags) -> None:
        self._record("link_shared", output, libraries=list(libraries), flags=list(flags))
        self._touch(output, "shared " + " ".join(o.name for o in objects) + "\n")

    def link_executable(self, objects, output, library_dirs, libraries, flags) -> None:
        self._record("link_executable", output, libraries=list(libraries), flags=list(flags))
        self._touch(output, "executable\n")

    def calls_of(self, op: str) -> List[dict]:
        with self._lock:
            return [c for c in self.calls if c["op"] == op]

    def _record(self, op: str, output: Path, **details) -> None:
        with self._lock:
            self.calls.append({"op": op, "output": output, **details})

    @staticmethod
    def _touch(path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)


@pytest.fixture
def tmp_build_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Use an isolated temporary build tree for every test.

    This fixture sets LIBBUILD_BUILD_PATH to a unique temporary directory and pins
    LIBBUILD_JOBS, so tests do not depend on the machine running them.
    """
    build = tmp_path / "build"
    monkeypatch.setenv("LIBBUILD_BUILD_PATH", str(build))
    monkeypatch.setenv("LIBBUILD_JOBS", "4")
    return build


@pytest.fixture
def fake_toolchain() -> FakeToolchain:
    return FakeToolchain()


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Write the sample library sources and its ``libbuild.json`` to a temporary directory."""
    root = tmp_path / "src"
    for rel, content in PROJECT_SOURCES.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    (root / "libbuild.json").write_text(json.dumps(PROJECT_FILE, indent=2))
    return root


@pytest.fixture
def registry(project_dir: Path) -> ModuleRegistry:
    return ModuleRegistry.from_path(project_dir)
