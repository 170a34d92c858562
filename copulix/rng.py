"""
Injected random source for sampling.

Distributions never own a random generator. Callers pass a
:class:`RandomSource` (or anything :func:`as_random_source` accepts) to
``rvs``. A ``RandomSource`` wraps a :class:`numpy.random.Generator` behind a
lock so that one instance can be shared between threads; each call draws a
whole batch under a single lock acquisition.
"""

import threading
from typing import Optional, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from copulix.exceptions import InvalidArgumentError


class RandomSource:
    """
    Thread-safe source of uniform and standard normal draws.

    Parameters
    ----------
    seed : int or numpy.random.Generator, optional
        Seed or generator to wrap. A fresh, unseeded generator is used when
        omitted.

    Examples
    --------
    >>> source = RandomSource(42)
    >>> source.uniform((2, 3)).shape
    (2, 3)
    """

    def __init__(self, seed: Optional[Union[int, np.random.Generator]] = None):
        if isinstance(seed, np.random.Generator):
            self._generator = seed
        else:
            self._generator = np.random.default_rng(seed)
        self._lock = threading.Lock()

    def uniform(self, size: Union[int, Tuple[int, ...], None] = None) -> NDArray:
        """Draw uniforms in :math:`[0, 1)`."""
        with self._lock:
            return self._generator.random(size)

    def standard_normal(self, size: Union[int, Tuple[int, ...], None] = None) -> NDArray:
        """Draw standard normal variates."""
        with self._lock:
            return self._generator.standard_normal(size)

    def __repr__(self) -> str:
        return f"RandomSource({type(self._generator.bit_generator).__name__})"


def as_random_source(random_state=None) -> RandomSource:
    """
    Coerce ``random_state`` into a :class:`RandomSource`.

    Parameters
    ----------
    random_state : RandomSource, numpy.random.Generator, int or None
        Existing source (returned as is), generator to wrap, seed, or None
        for a fresh generator.

    Returns
    -------
    source : RandomSource
    """
    if isinstance(random_state, RandomSource):
        return random_state
    if random_state is None or isinstance(random_state, np.random.Generator):
        return RandomSource(random_state)
    if isinstance(random_state, (int, np.integer)) and not isinstance(random_state, bool):
        return RandomSource(int(random_state))
    raise InvalidArgumentError(
        f"random_state must be a RandomSource, Generator, int or None, "
        f"got {type(random_state).__name__}"
    )
