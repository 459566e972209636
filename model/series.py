from __future__ import annotations

from dataclasses import dataclass, field
import numbers
from typing import Any

import numpy as np


def _empty() -> np.ndarray:
    return np.zeros(0, dtype=np.float64)


@dataclass
class SeriesBuffer:
    """Two equal-length columns: synthetic sample index and sample value."""

    x: np.ndarray = field(default_factory=_empty)
    y: np.ndarray = field(default_factory=_empty)

    def __post_init__(self):
        if len(self.x) != len(self.y):
            raise ValueError(
                f"series columns differ in length ({len(self.x)} != {len(self.y)})"
            )

    def __len__(self) -> int:
        return len(self.y)

    @classmethod
    def empty(cls) -> "SeriesBuffer":
        return cls()

    def as_lists(self):
        """Return ``(x, y)`` as plain lists; handy for logging and tests."""
        return self.x.tolist(), self.y.tolist()


def to_samples(batch: Any) -> np.ndarray:
    """Validate a sample batch and return it as a 1-D float64 array.

    Accepts a list or tuple of real numbers or a one dimensional numpy array.
    Raises ``TypeError`` or ``ValueError`` for anything else.
    """
    if isinstance(batch, np.ndarray):
        if batch.ndim != 1:
            raise ValueError(f"sample batch must be 1-D, got shape {batch.shape}")
        if not np.issubdtype(batch.dtype, np.number) or np.iscomplexobj(batch):
            raise TypeError(f"sample batch has non-real dtype {batch.dtype}")
        return batch.astype(np.float64, copy=True)

    if not isinstance(batch, (list, tuple)):
        raise TypeError(f"sample batch must be a sequence, got {type(batch).__name__}")
    for idx, value in enumerate(batch):
        # bool is an Integral; a batch of flags is still a batch of numbers
        if not isinstance(value, numbers.Real):
            raise TypeError(f"sample {idx} is not a real number: {value!r}")
    return np.asarray(batch, dtype=np.float64)


def build_series(samples: np.ndarray) -> SeriesBuffer:
    """Pair each sample with its zero-based position in the batch."""
    y = np.asarray(samples, dtype=np.float64)
    x = np.arange(len(y), dtype=np.float64)
    return SeriesBuffer(x=x, y=y)
