from __future__ import annotations

import base64
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class StateImage:
    mime_type: str
    data_base64: str
    data_url: str
    width: int
    height: int

    def to_bytes(self) -> bytes:
        return base64.b64decode(self.data_base64)
