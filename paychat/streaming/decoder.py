"""
Streaming completion decoder
Turns a newline-delimited, partially-JSON chat completion stream into text
tokens. Malformed lines are skipped and logged, never fatal.
"""

import codecs
import json
from typing import AsyncIterable, AsyncIterator, List, Optional

import httpx
import structlog

logger = structlog.get_logger()

DONE_SENTINEL = "[DONE]"
DATA_PREFIX = "data:"


class StreamDecoder:
    """
    Decodes one completion stream.

    Partial lines are carried over to the next chunk. A `[DONE]` line stops
    processing the rest of the chunk it arrived in; later chunks are still
    read. `skipped_lines` counts lines that could not be parsed.
    """

    def __init__(self):
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""
        self.skipped_lines = 0

    async def decode(self, chunks: AsyncIterable[bytes]) -> AsyncIterator[str]:
        """Yield content tokens from an async iterable of byte chunks"""
        async for chunk in chunks:
            for token in self.feed(chunk):
                yield token

        for token in self.finish():
            yield token

    def feed(self, chunk: bytes) -> List[str]:
        """Decode one chunk; returns the tokens it completed"""
        text = self._pending + self._utf8.decode(chunk)
        lines = text.split("\n")
        self._pending = lines.pop()
        return self._process_lines(lines)

    def finish(self) -> List[str]:
        """Flush the decoder and any trailing unterminated line"""
        tail = self._pending + self._utf8.decode(b"", final=True)
        self._pending = ""
        return self._process_lines([tail])

    def _process_lines(self, lines: List[str]) -> List[str]:
        tokens = []
        for line in lines:
            stripped = line.strip()
            if not stripped:
                continue

            if stripped.startswith(DATA_PREFIX):
                stripped = stripped[len(DATA_PREFIX):].strip()

            if stripped == DONE_SENTINEL:
                # Drop the rest of this chunk, including any partial line
                self._pending = ""
                break

            content = self._parse_line(stripped)
            if content:
                tokens.append(content)
        return tokens

    def _parse_line(self, line: str) -> Optional[str]:
        try:
            parsed = json.loads(line)
        except ValueError as e:
            self.skipped_lines += 1
            logger.debug("stream_line_skipped", line=line, error=str(e))
            return None

        try:
            content = parsed["choices"][0]["delta"].get("content")
        except (KeyError, IndexError, TypeError, AttributeError):
            return None

        return content if isinstance(content, str) else None


async def iter_tokens(response: httpx.Response) -> AsyncIterator[str]:
    """Decode the streamed body of an httpx response into tokens"""
    decoder = StreamDecoder()
    async for token in decoder.decode(response.aiter_bytes()):
        yield token

    if decoder.skipped_lines:
        logger.info("stream_completed_with_skipped_lines", skipped=decoder.skipped_lines)
