"""Incremental assembly of a streamed text-generation answer.

The inference service answers with a byte stream in which every read
carries one or more JSON objects of the form ``{"response": "<delta>", ...}``.
Reads do not respect character or object boundaries, so:

- bytes of a UTF-8 character split across two reads are held back by an
  incremental decoder until the character is complete;
- each decoded read is split into fragments and every fragment is parsed
  on its own. A fragment that fails to parse is skipped and counted, it
  never aborts the stream.

Errors raised by the stream itself (``TransportFailure`` from the service
client) propagate unchanged.
"""

import codecs
import json
import logging
from dataclasses import dataclass, field
from typing import AsyncIterable, Callable, List, Optional

from pydantic import BaseModel, ConfigDict, StrictStr, ValidationError

from cryptoagent.models.errors import FragmentParseFailure

logger = logging.getLogger(__name__)

PartialCallback = Callable[[str], None]

_json_decoder = json.JSONDecoder()


class GenerateFragment(BaseModel):
    model_config = ConfigDict(extra="ignore")

    response: Optional[StrictStr] = None
    error: Optional[StrictStr] = None


def parse_fragment(text: str) -> GenerateFragment:
    """Parse a single JSON fragment, raising FragmentParseFailure on any mismatch"""
    try:
        fragment = GenerateFragment.model_validate_json(text)
    except ValidationError as e:
        raise FragmentParseFailure("FRAGMENT_PARSE_ERROR", str(e))
    if fragment.error:
        raise FragmentParseFailure("FRAGMENT_ERROR", fragment.error)
    return fragment


def split_fragments(text: str) -> List[str]:
    """Split decoded text into JSON value candidates.

    Lines are split on line feeds only, since JSON strings may hold other
    line separators unescaped. Inside a line, JSON values written back to
    back are separated; if a value cannot be decoded the rest of the line is
    returned as one (malformed) candidate.
    """
    fragments = []
    for line in text.split("\n"):
        pos = 0
        end = len(line)
        while pos < end:
            while pos < end and line[pos].isspace():
                pos += 1
            if pos >= end:
                break
            try:
                _, next_pos = _json_decoder.raw_decode(line, pos)
            except json.JSONDecodeError:
                fragments.append(line[pos:])
                break
            fragments.append(line[pos:next_pos])
            pos = next_pos
    return fragments


@dataclass
class StreamAssemblyState:
    """Per-query assembly state, discarded once the stream terminates."""

    text: str = ""
    failures: int = 0
    fragments: int = 0
    decoder: codecs.IncrementalDecoder = field(
        default_factory=lambda: codecs.getincrementaldecoder("utf-8")(errors="replace")
    )

    @property
    def had_failure(self) -> bool:
        return self.failures > 0

    def feed(self, chunk: bytes, on_partial: Optional[PartialCallback] = None) -> None:
        self._consume(self.decoder.decode(chunk), on_partial)

    def finish(self, on_partial: Optional[PartialCallback] = None) -> str:
        self._consume(self.decoder.decode(b"", final=True), on_partial)
        return self.text

    def _consume(self, decoded: str, on_partial: Optional[PartialCallback]) -> None:
        for raw in split_fragments(decoded):
            self.fragments += 1
            try:
                fragment = parse_fragment(raw)
            except FragmentParseFailure as e:
                self.failures += 1
                logger.warning(f"Skipping malformed fragment ({e.code}): {raw[:200]!r}")
                continue
            self.text += fragment.response or ""
            if on_partial is not None:
                on_partial(self.text)


async def assemble(stream: AsyncIterable[bytes], on_partial: Optional[PartialCallback] = None) -> str:
    """Consume ``stream`` and return the accumulated answer text.

    ``on_partial`` is called synchronously with the accumulated text after
    every successfully parsed fragment, in arrival order.
    """
    state = StreamAssemblyState()
    async for chunk in stream:
        if chunk:
            state.feed(chunk, on_partial)
    text = state.finish(on_partial)
    if state.had_failure:
        logger.warning(f"Stream finished with {state.failures}/{state.fragments} fragments skipped")
    return text
