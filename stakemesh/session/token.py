"""
Session Token Generator: Time + Sequence Packed, Alphabet Encoded

Token layout before encoding:

    [ milliseconds since TOKEN_EPOCH_MS ][ 20-bit sequence ]

- The sequence is one process-wide counter; every call advances it, so
  calls within the same millisecond (or after the wall clock steps back)
  still produce distinct values.
- 2^20 values per millisecond before the sequence field wraps.
- Encoded as exactly 8 symbols of a 56-symbol alphabet without
  confusable glyphs (0/1/I/O/l/o).

Capacity:
    Eight symbols hold 56^8 (about 9.7e13) values, so the packed integer
    is reduced modulo 56^8. Two tokens can only coincide when their packed
    values differ by a multiple of 56^8, i.e. roughly 25.6 hours of
    timestamps apart with a matching sequence remainder. Sequence
    wrap-around and this ceiling are accepted and not guarded.
"""

from __future__ import annotations

import itertools
import time
from typing import Optional

from stakemesh.core.types import MillisClock, Token
from stakemesh.core import constants as C

BASE: int = len(C.TOKEN_ALPHABET)
TOKEN_SPACE: int = BASE ** C.TOKEN_LENGTH

_SYMBOL_VALUES: dict[str, int] = {ch: i for i, ch in enumerate(C.TOKEN_ALPHABET)}


def _wall_clock_ms() -> int:
    return time.time_ns() // 1_000_000


def encode(number: int, width: int = C.TOKEN_LENGTH) -> str:
    """
    Encode a non-negative integer as a fixed-width base-56 string.

    Most significant symbol first; higher-order digits beyond ``width``
    are dropped.
    """
    if number < 0:
        raise ValueError(f"cannot encode negative value {number}")
    buf = [""] * width
    for i in range(width - 1, -1, -1):
        number, digit = divmod(number, BASE)
        buf[i] = C.TOKEN_ALPHABET[digit]
    return "".join(buf)


def decode(token: str) -> int:
    """Inverse of :func:`encode` for well-formed tokens."""
    value = 0
    for ch in token:
        try:
            value = value * BASE + _SYMBOL_VALUES[ch]
        except KeyError:
            raise ValueError(f"symbol {ch!r} is not in the token alphabet") from None
    return value


def is_well_formed(token: Optional[str]) -> bool:
    """True for strings of exactly TOKEN_LENGTH alphabet symbols."""
    return (
        isinstance(token, str)
        and len(token) == C.TOKEN_LENGTH
        and all(ch in _SYMBOL_VALUES for ch in token)
    )


class TokenGenerator:
    """
    Lock-free session token source.

    ``next()`` on an ``itertools.count`` is a single C-level call, so
    concurrent threads never read the same sequence value; that counter is
    the only shared state.

    Usage:
        generator = TokenGenerator()
        token = generator.generate()  # e.g. "3kTq9WxB"
    """

    __slots__ = ("_sequence", "_clock_ms", "_epoch_ms")

    def __init__(
        self,
        clock_ms: Optional[MillisClock] = None,
        epoch_ms: int = C.TOKEN_EPOCH_MS,
    ) -> None:
        self._sequence = itertools.count()
        self._clock_ms = clock_ms or _wall_clock_ms
        self._epoch_ms = epoch_ms

    def generate(self) -> Token:
        """Produce the next token. Never fails."""
        # A clock before the epoch still yields a valid, non-negative value.
        elapsed_ms = max(0, self._clock_ms() - self._epoch_ms)
        sequence = next(self._sequence) & C.TOKEN_SEQUENCE_MASK
        combined = (elapsed_ms << C.TOKEN_SEQUENCE_BITS) | sequence
        return encode(combined % TOKEN_SPACE)

    __call__ = generate
