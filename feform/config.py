"""
Execution configuration for linear form assembly.
"""

import enum
from dataclasses import dataclass
from typing import Optional


SCATTER_STRATEGIES = ('atomic', 'coloring', 'reduce')


class AssemblyLevel(enum.Enum):
    """How a linear form is evaluated.

    LEGACY
        Element-by-element Python loop with ``numpy.add.at`` scatter.
    FULL
        Vectorized kernels over all elements with a race-free scatter-add,
        suitable for accelerators.
    """
    LEGACY = 'legacy'
    FULL = 'full'


@dataclass(frozen=True)
class ExecutionConfig:
    """Options for the data-parallel assembly pass.

    Parameters
    ----------
    lanes : int, optional
        Number of elements evaluated concurrently in one vmapped batch.
        None evaluates every element in a single batch.
    scatter : str, default 'atomic'
        Strategy used to accumulate element vectors into shared dofs:
        'atomic' (XLA scatter-add), 'coloring' (element coloring with
        conflict-free batches) or 'reduce' (gather then per-dof reduction).
    jit : bool, default True
        Compile the batched kernels with ``jax.jit``.
    """
    lanes: Optional[int] = None
    scatter: str = 'atomic'
    jit: bool = True

    def __post_init__(self):
        if self.lanes is not None and self.lanes < 1:
            raise ValueError(f"lanes must be a positive integer or None, got {self.lanes}")
        if self.scatter not in SCATTER_STRATEGIES:
            raise ValueError(f"Unknown scatter strategy '{self.scatter}', expected one of {SCATTER_STRATEGIES}")
