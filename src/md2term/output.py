from __future__ import annotations

import io


class OutputBuffer:
    """Append-only text sink that can be truncated back to a recorded length.

    ``live`` marks the document's own output stream. Buffers created with
    ``live=False`` are scratch space for pre-rendering nested content; text
    written there is kept verbatim and never wrapped or column-tracked.
    """

    def __init__(self, *, live: bool = False) -> None:
        self.live = live
        self._buffer = io.StringIO()

    def write(self, text: str) -> None:
        self._buffer.write(text)

    def truncate(self, length: int) -> None:
        if length < 0 or length > len(self):
            raise ValueError(f"Cannot truncate buffer of length {len(self)} to {length}.")
        self._buffer.seek(length)
        self._buffer.truncate()

    def getvalue(self) -> str:
        return self._buffer.getvalue()

    def __len__(self) -> int:
        return self._buffer.tell()

    def __str__(self) -> str:
        return self.getvalue()
