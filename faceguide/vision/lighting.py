"""Frame brightness estimation for lighting checks."""

import numpy as np

DEFAULT_LIGHTING_THRESHOLD = 100.0


def mean_brightness(frame: np.ndarray) -> float | None:
    """
    Average brightness of a frame on the 0-255 scale.

    Per-pixel brightness is the plain mean of the three color channels, so
    channel order (RGB or BGR) does not matter. An alpha channel, if present,
    is ignored. Grayscale frames are averaged directly.

    Returns:
        Mean brightness, or None for a zero-area frame.
    """
    if frame is None or frame.size == 0:
        return None

    if frame.ndim == 2 or (frame.ndim == 3 and frame.shape[2] == 1):
        pixels = frame
    elif frame.ndim == 3 and frame.shape[2] >= 3:
        pixels = frame[:, :, :3]
    else:
        raise ValueError(f"Unsupported frame shape: {frame.shape}")

    # Mean of per-pixel channel means equals the mean over all channel values
    return float(pixels.mean(dtype=np.float64))


def is_lighting_good(frame: np.ndarray, threshold: float = DEFAULT_LIGHTING_THRESHOLD) -> bool:
    """True when the frame is strictly brighter than ``threshold``."""
    brightness = mean_brightness(frame)
    return brightness is not None and brightness > threshold
