from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, ConfigDict, StringConstraints

NonEmptyString = Annotated[str, StringConstraints(min_length=1)]
"""Type alias for non-empty strings with minimum length of 1."""

Identifier = Annotated[str, StringConstraints(pattern=r"^[A-Za-z_][A-Za-z0-9_]*$")]
"""Type alias for names usable as module, library and CMake target names."""


class BaseModelWithDocstrings(BaseModel):
    """Base model with the attribute docstrings being extracted to the model JSON schema."""

    model_config = ConfigDict(use_attribute_docstrings=True)


class FrozenModelWithDocstrings(BaseModel):
    """Immutable variant of :class:`BaseModelWithDocstrings`."""

    model_config = ConfigDict(use_attribute_docstrings=True, frozen=True)


def validate_relative_path(path: str) -> str:
    """Reject absolute paths and parent directory traversal.

    Raises
    ------
    ValueError
        If the path is absolute or contains "..".
    """
    p = Path(path)
    if p.is_absolute():
        raise ValueError(f"Invalid path (absolute path not allowed): {path}")
    if ".." in p.parts:
        raise ValueError(f"Invalid path (parent directory traversal not allowed): {path}")
    return path
