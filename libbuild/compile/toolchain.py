"""Native toolchain abstraction used by the compilation driver."""

from __future__ import annotations

import os
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence

from libbuild.errors import LibBuildError
from libbuild.logging import get_logger

logger = get_logger("Toolchain")

DEFAULT_TOOL_TIMEOUT = 600.0
"""Default timeout in seconds for a single compiler, archiver or linker invocation."""


class ToolchainError(LibBuildError):
    """Raised when a toolchain command fails, times out or cannot be started."""

    def __init__(self, command: Sequence[str], diagnostic: str, returncode: Optional[int] = None):
        self.command = list(command)
        self.diagnostic = diagnostic
        self.returncode = returncode
        super().__init__(f"Command failed ({returncode}): {' '.join(self.command)}")


class Toolchain(ABC):
    """Abstract base class of the native toolchains.

    A toolchain turns sources into objects, objects into static archives, shared objects or
    executables. Every method raises :class:`ToolchainError` when the underlying tool fails.
    """

    @staticmethod
    @abstractmethod
    def is_available() -> bool:
        """Check if the toolchain's tools can be found in the current environment."""
        ...

    @abstractmethod
    def compile_object(
        self,
        source: Path,
        output: Path,
        include_dirs: Sequence[Path],
        flags: Sequence[str],
        position_independent: bool = False,
    ) -> None:
        """Compile one source file into an object file."""
        ...

    @abstractmethod
    def archive(self, objects: Sequence[Path], output: Path) -> None:
        """Bundle objects into a static archive."""
        ...

    @abstractmethod
    def link_shared(
        self,
        objects: Sequence[Path],
        output: Path,
        library_dirs: Sequence[Path],
        libraries: Sequence[str],
        flags: Sequence[str],
    ) -> None:
        """Link objects into a shared library."""
        ...

    @abstractmethod
    def link_executable(
        self,
        objects: Sequence[Path],
        output: Path,
        library_dirs: Sequence[Path],
        libraries: Sequence[str],
        flags: Sequence[str],
    ) -> None:
        """Link objects into an executable."""
        ...


class UnixToolchain(Toolchain):
    """GCC/Clang-style toolchain driven through ``cc`` and ``ar``.

    The compiler and archiver default to the CC and AR environment variables, then to
    ``cc`` and ``ar``. Each command runs with captured output and a timeout.
    """

    def __init__(
        self,
        cc: Optional[str] = None,
        ar: Optional[str] = None,
        timeout: float = DEFAULT_TOOL_TIMEOUT,
    ) -> None:
        """Initialize the toolchain.

        Parameters
        ----------
        cc : Optional[str]
            C compiler driver, also used for linking.
        ar : Optional[str]
            Static archiver.
        timeout : float
            Timeout in seconds for each command.
        """
        self.cc = cc or os.environ.get("CC") or "cc"
        self.ar = ar or os.environ.get("AR") or "ar"
        if timeout <= 0:
            raise ValueError("timeout must be > 0")
        self.timeout = timeout

    @staticmethod
    def is_available() -> bool:
        cc = os.environ.get("CC") or "cc"
        ar = os.environ.get("AR") or "ar"
        return shutil.which(cc) is not None and shutil.which(ar) is not None

    def compile_object(
        self,
        source: Path,
        output: Path,
        include_dirs: Sequence[Path],
        flags: Sequence[str],
        position_independent: bool = False,
    ) -> None:
        cmd = [self.cc, "-c", str(source), "-o", str(output), *flags]
        if position_independent:
            cmd.append("-fPIC")
        for include_dir in include_dirs:
            cmd.extend(["-I", str(include_dir)])
        output.parent.mkdir(parents=True, exist_ok=True)
        self.run(cmd)

    def archive(self, objects: Sequence[Path], output: Path) -> None:
        output.parent.mkdir(parents=True, exist_ok=True)
        # ar appends to an existing archive, so always start from scratch
        if output.exists():
            output.unlink()
        self.run([self.ar, "rcs", str(output), *(str(o) for o in objects)])

    def link_shared(
        self,
        objects: Sequence[Path],
        output: Path,
        library_dirs: Sequence[Path],
        libraries: Sequence[str],
        flags: Sequence[str],
    ) -> None:
        output.parent.mkdir(parents=True, exist_ok=True)
        cmd = [self.cc, "-shared", "-o", str(output), *(str(o) for o in objects)]
        cmd.extend(self._link_args(library_dirs, libraries, flags))
        self.run(cmd)

    def link_executable(
        self,
        objects: Sequence[Path],
        output: Path,
        library_dirs: Sequence[Path],
        libraries: Sequence[str],
        flags: Sequence[str],
    ) -> None:
        output.parent.mkdir(parents=True, exist_ok=True)
        cmd = [self.cc, "-o", str(output), *(str(o) for o in objects)]
        cmd.extend(self._link_args(library_dirs, libraries, flags))
        self.run(cmd)

    @staticmethod
    def _link_args(
        library_dirs: Sequence[Path], libraries: Sequence[str], flags: Sequence[str]
    ) -> List[str]:
        args = [f"-L{d}" for d in library_dirs]
        args.extend(f"-l{lib}" for lib in libraries)
        args.extend(flags)
        return args

    def run(self, cmd: List[str]) -> subprocess.CompletedProcess:
        """Run a toolchain command.

        Parameters
        ----------
        cmd : List[str]
            The command line.

        Returns
        -------
        subprocess.CompletedProcess
            The completed process, whose return code is 0.

        Raises
        ------
        ToolchainError
            If the command cannot be started, exits with a non-zero status, or does not
            finish within the timeout.
        """
        logger.debug("Running: %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            output = _decode(e.stdout) + _decode(e.stderr)
            raise ToolchainError(
                cmd, f"{output}\nTimed out after {self.timeout:g}s".lstrip()
            ) from e
        except OSError as e:
            raise ToolchainError(cmd, f"Could not run '{cmd[0]}': {e}") from e

        if result.returncode != 0:
            raise ToolchainError(cmd, result.stderr + result.stdout, result.returncode)
        if result.stderr:
            # Warnings go to stderr even on success
            logger.debug(result.stderr.rstrip())
        return result


def _decode(data) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode(errors="replace")
    return data
