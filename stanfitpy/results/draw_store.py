# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Immutable storage for per-chain, per-iteration draws.

The :py:class:`DrawStore` holds a single 3-D array indexed by
``(iteration, chain, column)`` together with the number of leading warmup
iterations in each chain. It is populated once by the sampling engine (or an
adapter around it) and never mutated afterwards: the backing array is flagged
read-only on construction and every accessor hands out copies.

Per-iteration sampler diagnostics (``accept_stat__``, ``treedepth__``, ...) share
the iteration/chain layout but not the dtype of the draws, so the fit keeps them
alongside the store as separate read-only arrays.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
import numpy.typing as npt

from stanfitpy import custom_types
from stanfitpy.exceptions import InconsistentChainShapeError


class DrawStore:
    """Read-only 3-D array of draws with a warmup boundary.

    :param draws: Array of shape ``(n_iterations, n_chains, n_columns)``
    :type draws: Union[npt.NDArray, Sequence]
    :param column_names: Name of every column along the last axis
    :type column_names: Sequence[str]
    :param n_warmup: Number of leading warmup iterations in each chain.
        Defaults to 0.
    :type n_warmup: custom_types.Integer

    :raises InconsistentChainShapeError: If the array is not 3-D or the column
        names do not match its last axis
    :raises ValueError: If the warmup count is negative or leaves no post-warmup
        iterations

    Example:
        >>> store = DrawStore(np.zeros((1000, 4, 2)), ["mu", "tau"], n_warmup=500)
        >>> store.get(inc_warmup=False).shape
        (500, 4, 2)
    """

    def __init__(
        self,
        draws: npt.NDArray | Sequence,
        column_names: Sequence[str],
        n_warmup: custom_types.Integer = 0,
    ):
        # Take our own copy so that the caller cannot mutate the stored values
        draws = np.array(draws)
        if draws.ndim != 3:
            raise InconsistentChainShapeError(
                "Draws must be a 3-D array indexed by (iteration, chain, column), "
                f"got an array with {draws.ndim} dimensions."
            )
        if draws.shape[2] != len(column_names):
            raise InconsistentChainShapeError(
                f"Draws have {draws.shape[2]} columns but {len(column_names)} column "
                "names were given."
            )
        if len(set(column_names)) != len(column_names):
            raise InconsistentChainShapeError("Column names must be unique.")
        if not 0 <= n_warmup < draws.shape[0]:
            raise ValueError(
                f"Number of warmup iterations ({n_warmup}) must be at least 0 and leave "
                f"at least one of the {draws.shape[0]} iterations after warmup."
            )

        draws.flags.writeable = False
        self._draws = draws
        self.column_names: tuple[str, ...] = tuple(column_names)
        self.n_warmup: int = int(n_warmup)

    @classmethod
    def from_chains(
        cls,
        chains: Sequence[npt.NDArray | Sequence],
        column_names: Sequence[str],
        n_warmup: custom_types.Integer = 0,
        chain_column_names: Sequence[Sequence[str]] | None = None,
    ) -> "DrawStore":
        """Build a store from one 2-D ``(iteration, column)`` array per chain.

        :param chains: Per-chain draw arrays
        :type chains: Sequence[Union[npt.NDArray, Sequence]]
        :param column_names: Canonical column order of the store
        :type column_names: Sequence[str]
        :param n_warmup: Number of leading warmup iterations. Defaults to 0.
        :type n_warmup: custom_types.Integer
        :param chain_column_names: Column names of each chain, if the chains
            may order their columns differently. Defaults to None, meaning every
            chain is already in ``column_names`` order.
        :type chain_column_names: Optional[Sequence[Sequence[str]]]

        :returns: The assembled store
        :rtype: DrawStore

        :raises InconsistentChainShapeError: If the chains disagree in iteration
            count or column set
        """
        if len(chains) == 0:
            raise InconsistentChainShapeError("At least one chain is required.")
        arrays = [np.asarray(chain) for chain in chains]

        # Every chain must be 2-D with the same number of iterations
        for chain_ind, array in enumerate(arrays):
            if array.ndim != 2:
                raise InconsistentChainShapeError(
                    f"Chain {chain_ind} must be a 2-D (iteration, column) array, got "
                    f"{array.ndim} dimensions."
                )
        if len(n_iters := {array.shape[0] for array in arrays}) != 1:
            raise InconsistentChainShapeError(
                f"Chains disagree in iteration count: {sorted(n_iters)}."
            )

        # Reorder each chain's columns into the canonical order
        if chain_column_names is not None:
            if len(chain_column_names) != len(arrays):
                raise InconsistentChainShapeError(
                    "One list of column names is required per chain."
                )
            reordered = []
            for chain_ind, (array, names) in enumerate(zip(arrays, chain_column_names)):
                if set(names) != set(column_names) or len(names) != len(column_names):
                    raise InconsistentChainShapeError(
                        f"Chain {chain_ind} column set differs from the canonical "
                        "column set."
                    )
                position = {name: ind for ind, name in enumerate(names)}
                reordered.append(array[:, [position[name] for name in column_names]])
            arrays = reordered

        if len(n_cols := {array.shape[1] for array in arrays}) != 1:
            raise InconsistentChainShapeError(
                f"Chains disagree in column count: {sorted(n_cols)}."
            )

        return cls(np.stack(arrays, axis=1), column_names, n_warmup=n_warmup)

    @property
    def n_iterations(self) -> int:
        """Total iterations per chain, warmup included."""
        return self._draws.shape[0]

    @property
    def n_chains(self) -> int:
        """Number of chains."""
        return self._draws.shape[1]

    @property
    def n_columns(self) -> int:
        """Number of scalar columns."""
        return self._draws.shape[2]

    @property
    def n_post_warmup(self) -> int:
        """Post-warmup iterations per chain."""
        return self.n_iterations - self.n_warmup

    @property
    def dtype(self) -> np.dtype:
        return self._draws.dtype

    def get(
        self,
        columns: Sequence[custom_types.Integer] | None = None,
        inc_warmup: bool = False,
    ) -> npt.NDArray:
        """Copy out draws for a set of columns.

        :param columns: Column indices to take, in output order. Defaults to
            None (all columns).
        :type columns: Optional[Sequence[custom_types.Integer]]
        :param inc_warmup: Whether to keep the warmup iterations. Defaults to False.
        :type inc_warmup: bool

        :returns: Array of shape ``(n_iterations, n_chains, len(columns))``
            with warmup rows removed unless requested
        :rtype: npt.NDArray
        """
        draws = self._draws if inc_warmup else self._draws[self.n_warmup :]
        if columns is not None:
            draws = draws[:, :, list(columns)]
        return draws.copy()

    def __repr__(self):
        return (
            f"DrawStore(iterations={self.n_iterations}, chains={self.n_chains}, "
            f"columns={self.n_columns}, warmup={self.n_warmup})"
        )
