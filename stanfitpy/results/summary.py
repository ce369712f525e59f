# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Posterior summary statistics and convergence diagnostics.

This module computes the per-parameter summary tables exposed by
:py:meth:`stanfitpy.results.fit.FitResult.summarize`. Every table is recomputed
from the stored draws on each call.

Computed Statistics:
    - **mean** and **sd** (``ddof=1``) over pooled post-warmup draws
    - **quantiles** at the requested probabilities, using linear interpolation
      between order statistics (Hyndman & Fan type 7, as in R and NumPy)
    - **se_mean**: Monte Carlo standard error of the mean
    - **n_eff**: bulk effective sample size, capped at the total number of draws
    - **Rhat**: potential scale reduction factor of Gelman & Rubin (1992), from
      the between- and within-chain variances of the whole chains

The three convergence columns are computed by ArviZ. Rhat uses the classic
estimator (``method="identity"``): with no between-chain variance it equals
``sqrt((n - 1) / n)`` for ``n`` draws per chain, i.e. 1 up to rounding, however
autocorrelated the chains are. The convergence columns are only reported for
MCMC fits and only in pooled tables; per-chain tables and variational fits carry
``mean``, ``sd`` and the quantiles alone.
"""

from __future__ import annotations

import numbers

from dataclasses import dataclass
from typing import Sequence

import arviz as az
import numpy as np
import numpy.typing as npt
import pandas as pd
import xarray as xr

from stanfitpy import custom_types, utils
from stanfitpy.exceptions import InvalidProbabilityError
from stanfitpy.results.draw_store import DrawStore
from stanfitpy.results.names import ParameterSelector

# Column label of the pooled mean in posterior mean tables
MEAN_ALL_CHAINS = "mean-all chains"


@dataclass(frozen=True)
class FitSummary:
    """Result of summarizing a fit.

    :ivar pooled: Summary over all chains, one row per scalar component
    :ivar per_chain: One summary per chain, in chain order, or None when not
        requested
    """

    pooled: pd.DataFrame
    per_chain: list[pd.DataFrame] | None = None


def validate_probs(
    probs: Sequence[custom_types.Float | custom_types.Integer] | npt.NDArray,
) -> list[float]:
    """Check quantile probabilities and put them in ascending order.

    :param probs: Requested probabilities
    :type probs: Union[Sequence[Union[custom_types.Float, custom_types.Integer]],
        npt.NDArray]

    :returns: Sorted, de-duplicated probabilities as floats
    :rtype: list[float]

    :raises InvalidProbabilityError: If no probability is given, one is not a
        real number within [0, 1], or two are too close to be told apart in
        the column labels

    Example:
        >>> validate_probs([0.9, 0.1, 0.5])
        [0.1, 0.5, 0.9]
        >>> validate_probs([0, 1])
        [0.0, 1.0]
    """
    # Python scalars, so that integer input is checked like float input
    requested = np.asarray(probs).ravel().tolist()
    if len(requested) == 0:
        raise InvalidProbabilityError()
    checked = set()
    for prob in requested:
        if not isinstance(prob, numbers.Real) or not 0 <= prob <= 1:
            raise InvalidProbabilityError(prob)
        checked.add(float(prob))

    # Every probability gets its own column
    labels = {}
    for prob in sorted(checked):
        if (label := utils.quantile_label(prob)) in labels:
            raise InvalidProbabilityError(
                prob,
                message=f"Probabilities {labels[label]!r} and {prob!r} share the "
                f"column label '{label}'.",
            )
        labels[label] = prob
    return list(labels.values())


def _descriptive_stats(
    draws: npt.NDArray, probs: Sequence[float]
) -> dict[str, npt.NDArray]:
    """Mean, sd and quantiles of a ``(draw, column)`` array, column-wise."""
    stats = {
        "mean": draws.mean(axis=0),
        "sd": draws.std(axis=0, ddof=1),
    }
    quantiles = np.quantile(draws, probs, axis=0, method="linear")
    for prob, values in zip(probs, quantiles):
        stats[utils.quantile_label(prob)] = values
    return stats


def convergence_stats(draws: npt.NDArray) -> dict[str, npt.NDArray]:
    """MCSE of the mean, bulk ESS and potential scale reduction factor.

    :param draws: Post-warmup draws of shape ``(iteration, chain, column)``
    :type draws: npt.NDArray

    :returns: Mapping with ``se_mean``, ``n_eff`` and ``Rhat`` arrays, one value
        per column
    :rtype: dict[str, npt.NDArray]

    All three statistics are computed in a single vectorized pass per metric
    by handing ArviZ a dataset with ``chain`` and ``draw`` dimensions.
    """
    n_iterations, n_chains, _ = draws.shape
    posterior = xr.Dataset(
        {"draws": (("chain", "draw", "column"), np.moveaxis(draws, 1, 0))}
    )
    ess = az.ess(posterior, method="bulk")["draws"].to_numpy()
    return {
        "se_mean": az.mcse(posterior, method="mean")["draws"].to_numpy(),
        "n_eff": np.minimum(ess, n_iterations * n_chains),
        "Rhat": az.rhat(posterior, method="identity")["draws"].to_numpy(),
    }


def summarize(
    store: DrawStore,
    selector: ParameterSelector,
    probs: Sequence[float],
    mode: custom_types.InferenceMode = "mcmc",
    per_chain: bool = True,
) -> FitSummary:
    """Build pooled (and optionally per-chain) summary tables.

    :param store: The stored draws
    :type store: DrawStore
    :param selector: Resolved parameter filter
    :type selector: ParameterSelector
    :param probs: Validated, ascending quantile probabilities (see
        :py:func:`validate_probs`)
    :type probs: Sequence[float]
    :param mode: Inference mode of the fit. Convergence columns are only
        computed for ``"mcmc"``. Defaults to "mcmc".
    :type mode: custom_types.InferenceMode
    :param per_chain: Whether to also build one table per chain. Defaults to True.
    :type per_chain: bool

    :returns: The summary tables
    :rtype: FitSummary
    """
    draws = store.get(selector.columns)
    n_iterations, n_chains, n_columns = draws.shape
    index = pd.Index(selector.labels)

    # Pooled statistics. The convergence diagnostics slot in around the sd so that
    # the column order is mean, se_mean, sd, quantiles, n_eff, Rhat.
    pooled = _descriptive_stats(
        np.moveaxis(draws, 1, 0).reshape((n_chains * n_iterations, n_columns)), probs
    )
    if mode == "mcmc":
        convergence = convergence_stats(draws)
        pooled = {
            "mean": pooled.pop("mean"),
            "se_mean": convergence["se_mean"],
            **pooled,
            "n_eff": convergence["n_eff"],
            "Rhat": convergence["Rhat"],
        }
    pooled_table = pd.DataFrame(pooled, index=index)

    # Per-chain statistics
    chain_tables = None
    if per_chain:
        chain_tables = [
            pd.DataFrame(_descriptive_stats(draws[:, chain_ind], probs), index=index)
            for chain_ind in range(n_chains)
        ]

    return FitSummary(pooled=pooled_table, per_chain=chain_tables)


def posterior_mean(
    store: DrawStore, selector: ParameterSelector, chain_ids: Sequence[int]
) -> pd.DataFrame:
    """Post-warmup mean of each component, per chain and over all chains.

    :param store: The stored draws
    :type store: DrawStore
    :param selector: Resolved parameter filter
    :type selector: ParameterSelector
    :param chain_ids: Label of each chain
    :type chain_ids: Sequence[int]

    :returns: Table with one ``mean-chain:<id>`` column per chain and a final
        ``mean-all chains`` column
    :rtype: pd.DataFrame
    """
    draws = store.get(selector.columns)
    means = {
        f"mean-{utils.chain_label(chain_id)}": draws[:, chain_ind].mean(axis=0)
        for chain_ind, chain_id in enumerate(chain_ids)
    }
    means[MEAN_ALL_CHAINS] = draws.mean(axis=(0, 1))
    return pd.DataFrame(means, index=pd.Index(selector.labels))
