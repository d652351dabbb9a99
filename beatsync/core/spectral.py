"""
Spectral engine: Hamming window plus an iterative radix-2 Cooley-Tukey FFT.

Frames are transformed either one at a time (shape ``(n,)``) or as a
batch (shape ``(frames, n)``); the butterfly passes run on the last axis.
"""

from functools import lru_cache

import numpy as np

from beatsync.utils.errors import InvalidFrameSizeError

FFT_SIZE: int = 2048


def is_power_of_two(n: int) -> bool:
    return n >= 2 and (n & (n - 1)) == 0


@lru_cache(maxsize=8)
def hamming_window(size: int) -> np.ndarray:
    """0.54 - 0.46 * cos(2*pi*i / (size - 1)), read-only and cached per size."""
    if size < 2:
        raise InvalidFrameSizeError(size)
    i = np.arange(size)
    window = 0.54 - 0.46 * np.cos(2.0 * np.pi * i / (size - 1))
    window.setflags(write=False)
    return window


@lru_cache(maxsize=8)
def bit_reversal_permutation(size: int) -> np.ndarray:
    """Index array mapping each position to its bit-reversed position."""
    if not is_power_of_two(size):
        raise InvalidFrameSizeError(size)
    bits = size.bit_length() - 1
    index = np.arange(size)
    reversed_index = np.zeros(size, dtype=np.int64)
    for _ in range(bits):
        reversed_index = (reversed_index << 1) | (index & 1)
        index = index >> 1
    reversed_index.setflags(write=False)
    return reversed_index


def fft(frames: np.ndarray) -> np.ndarray:
    """
    Complex FFT over the last axis.

    Raises:
        InvalidFrameSizeError: If the last axis is not a power of two
    """
    frames = np.asarray(frames)
    n = frames.shape[-1]
    if not is_power_of_two(n):
        raise InvalidFrameSizeError(n)

    # fancy indexing returns a fresh contiguous buffer we can butterfly in place
    data = frames[..., bit_reversal_permutation(n)].astype(np.complex128)
    lead = data.shape[:-1]

    size = 2
    while size <= n:
        half = size // 2
        twiddle = np.exp(-2j * np.pi * np.arange(half) / size)
        blocks = data.reshape(*lead, n // size, size)
        even = blocks[..., :half].copy()
        odd = blocks[..., half:] * twiddle
        blocks[..., :half] = even + odd
        blocks[..., half:] = even - odd
        size *= 2

    return data


def magnitude_spectrum(frames: np.ndarray) -> np.ndarray:
    """
    Window, transform and return |X[k]| for bins 0 .. n/2 - 1.

    Args:
        frames: One frame ``(n,)`` or a batch ``(frames, n)``; n a power of two

    Returns:
        np.ndarray: Magnitudes with last axis of length n/2
    """
    frames = np.asarray(frames, dtype=np.float64)
    n = frames.shape[-1]
    if not is_power_of_two(n):
        raise InvalidFrameSizeError(n)

    spectrum = fft(frames * hamming_window(n))
    return np.abs(spectrum[..., : n // 2])


def bin_frequency(bin_index: float, sample_rate: float, spectrum_length: int) -> float:
    """Centre frequency in Hz of a magnitude-spectrum bin."""
    return bin_index * sample_rate / (2 * spectrum_length)
