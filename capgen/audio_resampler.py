"""Converts decoded audio into the mono 16 kHz samples speech models expect."""

import logging

import numpy as np

logger = logging.getLogger(__name__)

TARGET_SAMPLE_RATE = 16000

def mix_to_mono(samples: np.ndarray, channel_count: int) -> np.ndarray:
    """
    Mixes multi-channel audio down to a single channel.

    Args:
        samples: Sample array shaped (channels, frames). A 1-D array is
                 accepted for mono input.
        channel_count: Number of channels in `samples` (1 or 2).

    Returns:
        A 1-D array. Stereo input is averaged per frame; mono input is
        returned as-is.

    Raises:
        ValueError: If the channel count is not 1 or 2, or does not match the array.
    """
    if channel_count not in (1, 2):
        raise ValueError(f"Unsupported channel count: {channel_count}. Expected 1 or 2.")

    if channel_count == 1:
        if samples.ndim == 2:
            return samples[0]
        return samples

    if samples.ndim != 2 or samples.shape[0] != 2:
        raise ValueError(f"Expected samples shaped (2, frames) for stereo input, got {samples.shape}.")
    return (samples[0] + samples[1]) / 2

def resample(samples: np.ndarray, from_rate: int, to_rate: int = TARGET_SAMPLE_RATE) -> np.ndarray:
    """
    Resamples mono audio with linear interpolation.

    Output sample i is read from source position i * (from_rate / to_rate),
    interpolating between the floor and ceiling source samples (the ceiling
    is clamped to the last sample). Equal rates return the input unchanged.

    Args:
        samples: 1-D mono sample array.
        from_rate: Sample rate of `samples` in Hz.
        to_rate: Desired sample rate in Hz.

    Returns:
        The resampled 1-D array, round(len(samples) / ratio) samples long.

    Raises:
        ValueError: If either rate is not positive.
    """
    if from_rate <= 0 or to_rate <= 0:
        raise ValueError(f"Sample rates must be positive (got {from_rate} -> {to_rate}).")
    if from_rate == to_rate:
        return samples

    samples = np.asarray(samples)
    ratio = from_rate / to_rate
    length = len(samples)
    # Half-up rounding, not Python's banker's rounding.
    out_length = int(np.floor(length / ratio + 0.5))
    if length == 0 or out_length == 0:
        return np.zeros(0, dtype=samples.dtype if length else np.float32)

    positions = np.arange(out_length, dtype=np.float64) * ratio
    lower = np.minimum(np.floor(positions).astype(np.int64), length - 1)
    upper = np.minimum(np.ceil(positions).astype(np.int64), length - 1)
    weight = positions - lower

    low_values = samples[lower].astype(np.float64)
    high_values = samples[upper].astype(np.float64)
    resampled = low_values + (high_values - low_values) * weight

    logger.debug(f"Resampled {length} samples at {from_rate} Hz to {out_length} samples at {to_rate} Hz")
    return resampled.astype(samples.dtype if np.issubdtype(samples.dtype, np.floating) else np.float32)
