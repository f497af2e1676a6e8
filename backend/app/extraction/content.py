"""Normalized content parts sent to the understanding service."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class TextPart:
    """Inline text."""

    text: str
    kind: str = "text"

    def to_input(self) -> dict[str, Any]:
        return {"type": "input_text", "text": self.text}


@dataclass(frozen=True, slots=True)
class ImagePart:
    """Base64 image payload carried as a data URL."""

    data_url: str
    kind: str = "image"

    @classmethod
    def from_bytes(cls, payload: bytes, media_type: str) -> ImagePart:
        encoded = base64.b64encode(payload).decode("ascii")
        return cls(data_url=f"data:{media_type};base64,{encoded}")

    @property
    def media_type(self) -> str:
        header = self.data_url.split(",", 1)[0]
        return header.removeprefix("data:").split(";", 1)[0]

    def to_input(self) -> dict[str, Any]:
        return {"type": "input_image", "image_url": self.data_url}


@dataclass(frozen=True, slots=True)
class FileRefPart:
    """Reference to a document already registered with the service."""

    external_id: str
    kind: str = "fileRef"

    def to_input(self) -> dict[str, Any]:
        return {"type": "input_file", "file_id": self.external_id}


ContentPart = TextPart | ImagePart | FileRefPart
