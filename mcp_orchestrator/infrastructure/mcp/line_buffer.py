"""
Incremental newline-delimited JSON parser for tool server stdout.

Chunks arrive with arbitrary boundaries: one message may span several
chunks and one chunk may carry several messages. Complete lines are parsed
as they appear; the trailing partial line is kept for the next chunk.

A complete line that is not valid JSON is kept as a pending fragment and
joined with the following lines, which recovers messages that a server
pretty-printed over several lines. The fragment is bounded: it is dropped
once a later line parses on its own or after ``max_fragment_lines`` lines.
"""

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_MAX_FRAGMENT_LINES = 8


class LineBuffer:
    """Per-server accumulator turning stdout chunks into JSON messages."""

    def __init__(self, source: str = "", max_fragment_lines: int = DEFAULT_MAX_FRAGMENT_LINES):
        self.source = source
        self.max_fragment_lines = max_fragment_lines
        self._partial = ""
        self._fragment: list[str] = []
        self.discarded_lines = 0

    @property
    def pending(self) -> str:
        """Unconsumed text: the pending fragment plus the partial line."""
        return "\n".join(part for part in [*self._fragment, self._partial] if part)

    def feed(self, data: str) -> list[dict[str, Any]]:
        """Consume a chunk and return every message it completes."""
        lines = (self._partial + data).split("\n")
        self._partial = lines.pop()

        messages: list[dict[str, Any]] = []
        for line in lines:
            if not line.strip():
                continue
            message = self._consume_line(line)
            if message is not None:
                messages.append(message)
        return messages

    def clear(self) -> None:
        self._partial = ""
        self._fragment = []

    def _consume_line(self, line: str) -> dict[str, Any] | None:
        if self._fragment:
            joined = "\n".join([*self._fragment, line])
            message = self._parse(joined)
            if message is not None:
                self._fragment = []
                return message

            message = self._parse(line)
            if message is not None:
                self._discard_fragment("superseded by a complete message")
                return message

            self._fragment.append(line)
            if len(self._fragment) >= self.max_fragment_lines:
                self._discard_fragment(f"no message after {len(self._fragment)} lines")
            return None

        message = self._parse(line)
        if message is None:
            logger.debug(f"Failed to parse JSON message from {self.source}: {line[:200]}")
            self._fragment = [line]
            if self.max_fragment_lines <= 1:
                self._discard_fragment("fragment recovery disabled")
        return message

    def _discard_fragment(self, reason: str) -> None:
        logger.warning(
            f"Discarding {len(self._fragment)} unparsable line(s) from {self.source}: {reason}"
        )
        self.discarded_lines += len(self._fragment)
        self._fragment = []

    @staticmethod
    def _parse(text: str) -> dict[str, Any] | None:
        try:
            value = json.loads(text)
        except json.JSONDecodeError:
            return None
        # JSON-RPC messages are objects; bare scalars are treated as noise
        return value if isinstance(value, dict) else None
