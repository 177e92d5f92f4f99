from __future__ import annotations

from dataclasses import dataclass
from typing import List

DEFAULT_CHUNK_LENGTH = 4000
# A natural break must land past this share of the window to be used
BREAK_THRESHOLD = 0.6


@dataclass(frozen=True)
class Chunk:
    text: str
    index: int
    start: int
    end: int


def _find_cut(text: str, pos: int, max_length: int) -> int:
    end = pos + max_length
    floor = pos + max_length * BREAK_THRESHOLD

    newline = text.rfind("\n", pos, end + 1)
    if newline > floor:
        return newline

    period = text.rfind(". ", pos, end + 1)
    if period > floor:
        # keep the period with the sentence it closes
        return period + 1

    return end


def chunk_text(text: str, max_length: int = DEFAULT_CHUNK_LENGTH) -> List[Chunk]:
    """Split text into ordered chunks of at most max_length characters.

    Cuts prefer the last newline, then the last sentence end, inside the
    window. Slices are contiguous, so joining source[c.start:c.end] for all
    chunks gives back the source. Each chunk's text is the stripped slice.
    """
    if max_length <= 0:
        raise ValueError("max_length must be positive")

    chunks: List[Chunk] = []
    pos = 0
    length = len(text)
    while pos < length:
        if pos + max_length >= length:
            cut = length
        else:
            cut = _find_cut(text, pos, max_length)
        chunks.append(Chunk(text=text[pos:cut].strip(), index=len(chunks), start=pos, end=cut))
        pos = cut
    return chunks
