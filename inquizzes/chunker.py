# inquizzes/chunker.py
"""
Split long document text into pieces that fit a single LLM request.

Boundaries are tried from coarse to fine: paragraphs (blank lines), then
sentences (". "), then a hard cut at the size limit. Pieces are packed
greedily so each chunk carries as much context as the limit allows.
"""
from typing import Callable, List

PARAGRAPH_SEPARATOR = "\n\n"
SENTENCE_SEPARATOR = ". "


def chunk_text(text: str, max_chunk_size: int) -> List[str]:
    """Return ordered chunks of `text`, each at most `max_chunk_size` characters."""
    if max_chunk_size <= 0:
        raise ValueError("max_chunk_size must be positive")
    if len(text) <= max_chunk_size:
        return [text]

    chunks: List[str] = []

    def force_split(sentence: str) -> str:
        while len(sentence) > max_chunk_size:
            chunks.append(sentence[:max_chunk_size])
            sentence = sentence[max_chunk_size:]
        return sentence

    def split_sentences(paragraph: str) -> str:
        return _pack(paragraph.split(SENTENCE_SEPARATOR), SENTENCE_SEPARATOR,
                     max_chunk_size, chunks, force_split)

    buffer = _pack(text.split(PARAGRAPH_SEPARATOR), PARAGRAPH_SEPARATOR,
                   max_chunk_size, chunks, split_sentences)
    if buffer:
        chunks.append(buffer)
    return chunks


def _pack(pieces: List[str], separator: str, max_chunk_size: int,
          chunks: List[str], split_oversized: Callable[[str], str]) -> str:
    """
    Greedily join `pieces` with `separator`, appending each full buffer to `chunks`.
    Returns the unflushed buffer so the caller can keep filling it.
    """
    buffer = ""
    for piece in pieces:
        candidate = buffer + separator + piece if buffer else piece
        if len(candidate) <= max_chunk_size:
            buffer = candidate
            continue

        if buffer:
            chunks.append(buffer)
            buffer = ""

        if len(piece) <= max_chunk_size:
            buffer = piece
        else:
            # the finer split flushes its own full chunks; its leftover seeds our buffer
            buffer = split_oversized(piece)
    return buffer
