"""Models for staged input artifacts."""

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field


class Artifact(BaseModel):
    """An input fully drained into local staging storage."""

    model_config = ConfigDict(frozen=True)

    local_path: Path = Field(..., description="Path of the staged file")
    display_name: str = Field(..., min_length=1, description="Sanitized name sent upstream")
    size_bytes: int = Field(..., ge=0, description="Size of the staged content")
    fingerprint: str = Field(..., description="Hex SHA-256 of the staged content")


@dataclass(frozen=True)
class InputHandle:
    """A readable byte source plus an optional name hint.

    ``opener`` returns an object with a ``read(size)`` method, either a plain
    method or a coroutine (as on Starlette's ``UploadFile``). The stager opens
    the source, drains it and closes it.
    """

    opener: Callable[[], Any]
    name: str | None = None

    @classmethod
    def from_path(cls, path: str | Path, name: str | None = None) -> "InputHandle":
        path = Path(path)
        return cls(opener=lambda: path.open("rb"), name=name or path.name)

    @classmethod
    def from_bytes(cls, data: bytes, name: str | None = None) -> "InputHandle":
        return cls(opener=lambda: io.BytesIO(data), name=name)

    @classmethod
    def from_stream(cls, stream: Any, name: str | None = None) -> "InputHandle":
        return cls(opener=lambda: stream, name=name)
