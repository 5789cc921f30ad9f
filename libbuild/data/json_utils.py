"""JSON encoding/decoding helpers for Pydantic BaseModel objects."""

from pathlib import Path
from typing import Type, TypeVar, Union

from pydantic import BaseModel

ModelT = TypeVar("ModelT", bound=BaseModel)


def save_json_file(object: BaseModel, path: Union[str, Path]) -> None:
    """
    Save a Pydantic BaseModel object to a JSON file.

    Parameters
    ----------
    object : BaseModel
        The Pydantic BaseModel instance to be serialized and saved.
    path : Union[str, Path]
        The file path where the JSON will be saved. Parent directories
        will be created if they don't exist.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(object.model_dump_json(indent=2))
        f.write("\n")


def load_json_file(model_cls: Type[ModelT], path: Union[str, Path]) -> ModelT:
    """
    Load a Pydantic BaseModel object from a JSON file.

    Parameters
    ----------
    model_cls : Type[BaseModel]
        The Pydantic BaseModel class to instantiate from the JSON data.
    path : Union[str, Path]
        The file path of the JSON file to load.

    Returns
    -------
    BaseModel
        An instance of the specified BaseModel class populated with
        data from the JSON file.

    Raises
    ------
    FileNotFoundError
        If the specified file does not exist.
    ValidationError
        If the JSON data doesn't match the BaseModel schema.
    """
    with open(Path(path), "r", encoding="utf-8") as f:
        return model_cls.model_validate_json(f.read())
