"""
Key-driven pixel permutation for watermark bits

The shuffle table is derived from the key with the 32-bit polynomial string
hash and the 48-bit linear congruential generator used by the JVM, so tables
match ones produced by existing Java tooling for the same key.
"""

import numpy as np

_MULTIPLIER = 0x5DEECE66D
_ADDEND = 0xB
_MASK = (1 << 48) - 1


def _to_int32(value):
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


def java_string_hash(text):
    """31-polynomial hash over UTF-16 code units, wrapped to a signed int32."""
    h = 0
    data = text.encode("utf-16-be")
    for i in range(0, len(data), 2):
        h = (31 * h + ((data[i] << 8) | data[i + 1])) & 0xFFFFFFFF
    return _to_int32(h)


class JavaRandom:
    """
    The 48-bit LCG behind java.util.Random.

    Args:
        seed: Integer seed (only the low 48 bits matter after scrambling)
    """

    def __init__(self, seed):
        self._seed = (seed ^ _MULTIPLIER) & _MASK

    def _next(self, bits):
        self._seed = (self._seed * _MULTIPLIER + _ADDEND) & _MASK
        return _to_int32(self._seed >> (48 - bits))

    def next_int(self, bound):
        """Uniform integer in [0, bound)."""
        if bound <= 0:
            raise ValueError("bound must be positive")

        # power of two: take the high bits directly
        if bound & (bound - 1) == 0:
            return (bound * self._next(31)) >> 31

        while True:
            bits = self._next(31)
            value = bits % bound
            if bits - value + (bound - 1) < (1 << 31):
                return value


def shuffle_table(size, key):
    """
    Build the permutation table for size elements under key.

    Starts from the identity and runs Fisher-Yates from the last index down.
    """
    rng = JavaRandom(java_string_hash(key))
    table = list(range(size))
    for i in range(size - 1, 0, -1):
        j = rng.next_int(i + 1)
        table[i], table[j] = table[j], table[i]
    return np.array(table, dtype=np.int64)


def permute(bits, key):
    """Scatter bits: the element at flat index i moves to table[i]."""
    bits = np.asarray(bits)
    table = shuffle_table(bits.size, key)
    out = np.empty_like(bits.ravel())
    out[table] = bits.ravel()
    return out.reshape(bits.shape)


def unpermute(bits, key):
    """Gather bits back: flat index i reads from table[i]."""
    bits = np.asarray(bits)
    table = shuffle_table(bits.size, key)
    return bits.ravel()[table].reshape(bits.shape)
