import math

import numpy as np

_EPS = 1e-12


def db_to_lin(db: float) -> float:
    return 10.0 ** (db / 20.0)


def lin_to_dbfs(x: float) -> float:
    return 20.0 * math.log10(max(_EPS, x))


def soft_clip(x: np.ndarray, drive: float = 1.5) -> np.ndarray:
    # Smooth limiter. drive ~ 1.2–2.0, maps ±1 to ±1
    return np.tanh(drive * x) / np.tanh(drive)


def hard_clip(x: np.ndarray) -> np.ndarray:
    return np.clip(x, -1.0, 1.0)


def peak(x: np.ndarray) -> float:
    return float(np.max(np.abs(x))) if x.size else 0.0


def rms(x: np.ndarray) -> float:
    return float(np.sqrt(np.mean(np.square(x, dtype=np.float64)))) if x.size else 0.0
