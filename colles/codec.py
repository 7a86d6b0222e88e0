"""
Compact string codec for sequences of small non-negative integers.

Each integer n is written as one alphabet character, preceded by one MORE
character per full ALPHABET length it exceeds:

    0   -> "0"
    90  -> "}"
    91  -> "~0"
    187 -> "~~5"

Sequences of sequences are joined with SEPARATOR.

The alphabet, MORE and SEPARATOR characters are frozen: changing any of them
makes previously built datasets unreadable.
"""

from __future__ import annotations

from typing import Iterable, Sequence

ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ!#$%&'()*+,-./:;<=>?@[]^_`{|}"
MORE = "~"
SEPARATOR = " "

# Largest integer a JSON number can carry without loss on the client
MAX_SAFE_INTEGER = 2**53 - 1

_BASE = len(ALPHABET)
_INDEX = {c: i for i, c in enumerate(ALPHABET)}


class CodecError(ValueError):
    """Base class for codec failures."""


class EncodeError(CodecError):
    """Raised for values that cannot be encoded (negative, non-integer, too large)."""


class DecodeError(CodecError):
    """Raised for strings that contain unknown characters."""


def encode_integers(values: Iterable[int]) -> str:
    """
    Encode a sequence of non-negative integers into a string.
    """
    parts: list[str] = []
    for n in values:
        # bool is an int subclass but never a valid entry
        if isinstance(n, bool) or not isinstance(n, int):
            raise EncodeError(f"invalid integer: {n!r}")
        if n < 0 or n > MAX_SAFE_INTEGER:
            raise EncodeError(f"integer out of range: {n!r}")
        more, rest = divmod(n, _BASE)
        parts.append(MORE * more)
        parts.append(ALPHABET[rest])
    return "".join(parts)


def decode_integers(text: str) -> list[int]:
    """
    Decode a string produced by encode_integers().
    """
    result: list[int] = []
    n = 0
    for c in text:
        if c == MORE:
            n += _BASE
            continue
        index = _INDEX.get(c)
        if index is None:
            raise DecodeError(f"invalid character {c!r} in {text!r}")
        result.append(n + index)
        n = 0
    if n:
        raise DecodeError(f"dangling {MORE!r} at end of {text!r}")
    return result


def encode_sequences(sequences: Iterable[Sequence[int]]) -> str:
    return SEPARATOR.join(encode_integers(s) for s in sequences)


def decode_sequences(text: str) -> list[list[int]]:
    """
    Decode a string produced by encode_sequences().

    Note: an empty string decodes to one empty sequence, like str.split().
    """
    return [decode_integers(part) for part in text.split(SEPARATOR)]
