"""Random number source used by the particle filter.

The filter only needs two capabilities: uniform draws on [low, high) and
Gaussian draws with a given mean and standard deviation. Both are backed by
a NumPy Generator so that a seed makes a whole run reproducible.
"""

from typing import Optional, Tuple, Union

import numpy as np

Size = Optional[Union[int, Tuple[int, ...]]]


class RandomSource:
    """
    Seedable source of uniform and Gaussian draws.

    Args:
        seed: Seed for the underlying generator, or an existing
            np.random.Generator to wrap. None draws fresh OS entropy.

    Example:
        >>> rng = RandomSource(42)
        >>> x = rng.gaussian(0.0, 1.0, size=3)
        >>> u = rng.uniform(0.0, 1.0)
    """

    def __init__(self, seed: Union[int, np.random.Generator, None] = None):
        if isinstance(seed, np.random.Generator):
            self.generator = seed
        else:
            self.generator = np.random.default_rng(seed)

    def uniform(self, low: float = 0.0, high: float = 1.0, size: Size = None):
        """Draw from the uniform distribution on [low, high)."""
        return self.generator.uniform(low, high, size)

    def gaussian(self, mean: float = 0.0, std: float = 1.0, size: Size = None):
        """
        Draw from a Gaussian distribution.

        A standard deviation of zero returns the mean exactly.
        """
        if np.any(np.asarray(std) < 0):
            raise ValueError(f"std must be >= 0, got {std}")
        return self.generator.normal(mean, std, size)
