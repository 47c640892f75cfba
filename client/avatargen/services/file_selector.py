"""Input adapter capturing the single file the user picked for upload."""
from __future__ import annotations

import mimetypes
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from ..errors import ValidationError

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def extension_of(name: str) -> str:
    """Return the text after the last dot of ``name`` (empty when there is none)."""

    if "." not in name:
        return ""
    return name.rsplit(".", 1)[1]


@dataclass(frozen=True)
class SelectedFile:
    content: bytes
    name: str
    extension: str
    content_type: str = DEFAULT_CONTENT_TYPE

    @property
    def size(self) -> int:
        return len(self.content)


def _guess_content_type(name: str, declared: Optional[str]) -> str:
    guessed, _ = mimetypes.guess_type(name)
    return guessed or declared or DEFAULT_CONTENT_TYPE


class FileSelector:
    """Holds at most one pending file; selecting again replaces it."""

    def __init__(self) -> None:
        self.selected: Optional[SelectedFile] = None

    def select_file(self, handle: Any) -> SelectedFile:
        """Capture ``handle`` as the pending file.

        ``handle`` may be a filesystem path or an object exposing a
        ``filename``/``name`` plus ``content`` bytes or a ``read()`` method
        (e.g. an already-read upload). A sequence must hold exactly one entry.
        """

        if isinstance(handle, (list, tuple)):
            if len(handle) != 1:
                raise ValidationError("exactly one file must be selected")
            handle = handle[0]
        if handle is None:
            raise ValidationError("no file selected")

        if isinstance(handle, (str, os.PathLike)):
            path = Path(handle)
            name = path.name
            content = path.read_bytes()
            declared = None
        else:
            name = str(getattr(handle, "filename", None) or getattr(handle, "name", "") or "")
            content = getattr(handle, "content", None)
            if content is None:
                content = handle.read()
            declared = getattr(handle, "content_type", None)
            name = os.path.basename(name)

        selected = SelectedFile(
            content=bytes(content),
            name=name,
            extension=extension_of(name),
            content_type=_guess_content_type(name, declared),
        )
        self.selected = selected
        return selected

    def clear(self) -> None:
        self.selected = None
