"""Package metadata, read from the installed distribution or from pyproject.toml."""

from __future__ import annotations

import importlib.metadata as importlib_metadata
import warnings
from email.message import Message
from pathlib import Path
from typing import Any, Mapping, Sequence, Union

import toml


MetadataSource = Union[Message, Mapping[str, Any]]

_PYPROJECT_PATH: Path = Path(__file__).resolve().parent.parent / "pyproject.toml"


def _load_metadata() -> MetadataSource | None:
    try:
        return importlib_metadata.metadata(__package__ or __name__)
    except importlib_metadata.PackageNotFoundError:
        pass
    # running from a source checkout
    if _PYPROJECT_PATH.exists():
        return toml.load(_PYPROJECT_PATH)
    warnings.warn(
        "Didn't find distinfo nor pyproject.toml for package metadata", stacklevel=2
    )
    return None


metadata: MetadataSource | None = _load_metadata()


def get_metadata(distinfo_key: str, toml_path: Sequence[str | int]) -> Any:
    """
    Get a metadata value.

    :param distinfo_key: The key in the installed distribution metadata.
    :param toml_path: The path of keys / indices in pyproject.toml.
    :return: The value, or None if not available.
    """
    if metadata is None:
        return None
    if isinstance(metadata, Message):
        return metadata.get(distinfo_key)
    value: Any = metadata
    try:
        for key in toml_path:
            value = value[key]
    except (KeyError, IndexError, TypeError):
        return None
    return value
