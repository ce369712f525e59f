# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Reshaping of stored draws into the shapes exposed by a fit.

Four views are offered over the same values:

    - :py:func:`extract_grouped`: one array per requested parameter, chains
      pooled, declared shapes restored on the trailing axes
    - :py:func:`extract_matrix`: a 2-D ``(draw, parameters)`` labelled array
    - :py:func:`extract_table`: the same cells as a data frame indexed by
      ``(chain, iteration)``
    - :py:func:`extract_per_chain`: a 3-D ``(iteration, chain, parameters)``
      labelled array

Pooling always concatenates chains in chain order, keeping each chain's
iteration order, so row ``k`` of every pooled view refers to the same draw. No
value is ever altered; only the shape and labels differ between views.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
import numpy.typing as npt
import pandas as pd
import xarray as xr

from stanfitpy.results.draw_store import DrawStore
from stanfitpy.results.names import ParameterSelector


def pool_chains(draws: npt.NDArray) -> npt.NDArray:
    """Collapse the chain axis of an ``(iteration, chain, column)`` array.

    :param draws: Per-chain draws
    :type draws: npt.NDArray

    :returns: Array of shape ``(n_chains * n_iterations, n_columns)`` with all
        of chain 0's iterations first, then chain 1's, and so on
    :rtype: npt.NDArray
    """
    n_iterations, n_chains, n_columns = draws.shape
    return np.moveaxis(draws, 1, 0).reshape((n_chains * n_iterations, n_columns))


def _iteration_coords(store: DrawStore, inc_warmup: bool) -> npt.NDArray[np.int64]:
    """Position of each returned iteration within the full chain."""
    return np.arange(0 if inc_warmup else store.n_warmup, store.n_iterations)


def extract_grouped(
    store: DrawStore, selector: ParameterSelector
) -> dict[str, npt.NDArray]:
    """Pooled post-warmup draws for each selected parameter.

    :param store: The stored draws
    :type store: DrawStore
    :param selector: Resolved parameter filter
    :type selector: ParameterSelector

    :returns: Ordered mapping from parameter name to draws. Scalars give 1-D
        arrays; a parameter selected by base name gives an array of shape
        ``(n_draws, *declared_shape)``.
    :rtype: dict[str, npt.NDArray]
    """
    n_draws = store.n_post_warmup * store.n_chains
    grouped = {}
    for param in selector.parameters:
        pooled = pool_chains(store.get(param.columns))
        grouped[param.name] = pooled.reshape((n_draws, *param.shape))
    return grouped


def extract_matrix(store: DrawStore, selector: ParameterSelector) -> xr.DataArray:
    """Pooled post-warmup draws as a ``(draw, parameters)`` labelled matrix.

    :param store: The stored draws
    :type store: DrawStore
    :param selector: Resolved parameter filter
    :type selector: ParameterSelector

    :returns: One row per pooled draw, one column per scalar component
    :rtype: xr.DataArray
    """
    pooled = pool_chains(store.get(selector.columns))
    return xr.DataArray(
        pooled,
        dims=("draw", "parameters"),
        coords={"draw": np.arange(pooled.shape[0]), "parameters": list(selector.labels)},
    )


def extract_table(
    store: DrawStore, selector: ParameterSelector, chain_ids: Sequence[int]
) -> pd.DataFrame:
    """Pooled post-warmup draws as a data frame.

    The cells and their order are those of :py:func:`extract_matrix`. Rows are
    labelled by a ``(chain, iteration)`` MultiIndex.
    """
    pooled = pool_chains(store.get(selector.columns))
    index = pd.MultiIndex.from_product(
        [list(chain_ids), _iteration_coords(store, inc_warmup=False)],
        names=["chain", "iteration"],
    )
    return pd.DataFrame(pooled, index=index, columns=list(selector.labels))


def extract_per_chain(
    store: DrawStore,
    selector: ParameterSelector,
    chain_ids: Sequence[int],
    inc_warmup: bool = False,
) -> xr.DataArray:
    """Draws kept separate per chain.

    :param store: The stored draws
    :type store: DrawStore
    :param selector: Resolved parameter filter
    :type selector: ParameterSelector
    :param chain_ids: Label of each chain
    :type chain_ids: Sequence[int]
    :param inc_warmup: Whether to keep the warmup iterations. Defaults to False.
    :type inc_warmup: bool

    :returns: Array with dims ``("iteration", "chain", "parameters")``
    :rtype: xr.DataArray
    """
    return xr.DataArray(
        store.get(selector.columns, inc_warmup=inc_warmup),
        dims=("iteration", "chain", "parameters"),
        coords={
            "iteration": _iteration_coords(store, inc_warmup),
            "chain": list(chain_ids),
            "parameters": list(selector.labels),
        },
    )
