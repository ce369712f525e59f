# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Hamiltonian Monte Carlo (HMC) sampler diagnostic checks.

This module evaluates the per-iteration sampler diagnostics and the
per-variable convergence statistics of a fit, and reports the iterations,
chains and variables that fail.

Failure Conditions:
    - **Divergence**: the iteration's trajectory diverged (``divergent__ == 1``)
    - **Tree Depth**: the iteration saturated the maximum tree depth
    - **E-BFMI**: a chain's energy Bayesian fraction of missing information is
      below threshold
    - **R-hat**: a variable's R-hat is at or above threshold
    - **ESS**: a variable's effective sample size per chain is at or below
      threshold

Checks only read the values handed to them. Aggregating the raw sampler output
into these tests is the caller's choice; the accessors on
:py:class:`~stanfitpy.results.fit.FitResult` never do it implicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

import arviz as az
import numpy as np
import numpy.typing as npt
import pandas as pd

from stanfitpy import custom_types
from stanfitpy.defaults import (
    DEFAULT_EBFMI_THRESH,
    DEFAULT_ESS_THRESH,
    DEFAULT_MAX_TREEDEPTH,
    DEFAULT_RHAT_THRESH,
)
from stanfitpy.exceptions import MissingFitDataError

# Different messages for different test types
_MESSAGE_MAP = {
    "diverged": "diverged",
    "max_tree_depth_reached": "reached the maximum tree depth",
    "low_ebfmi": "had a low E-BFMI",
    "r_hat": "failed the R-hat test",
    "n_eff": "failed the effective sample size test",
}


@dataclass
class DiagnosticReport:
    """Outcome of running every HMC diagnostic check on a fit.

    :ivar sample_failures: Maps each iteration-level test to the
        ``(iteration, chain)`` indices (post-warmup positions) that failed
    :ivar n_samples: Number of post-warmup iterations tested, all chains
    :ivar ebfmi: E-BFMI of each chain, keyed by chain id
    :ivar low_ebfmi_chains: Chain ids whose E-BFMI is below threshold
    :ivar variable_failures: Maps ``r_hat`` and ``n_eff`` to the names of the
        variables failing that test
    :ivar n_variables: Number of variables tested
    """

    sample_failures: dict[str, tuple[npt.NDArray, npt.NDArray]] = field(
        default_factory=dict
    )
    n_samples: int = 0
    ebfmi: dict[int, float] = field(default_factory=dict)
    low_ebfmi_chains: list[int] = field(default_factory=list)
    variable_failures: dict[str, list[str]] = field(default_factory=dict)
    n_variables: int = 0

    @property
    def passed(self) -> bool:
        """True when no check failed."""
        return (
            all(len(failed[0]) == 0 for failed in self.sample_failures.values())
            and len(self.low_ebfmi_chains) == 0
            and all(len(failed) == 0 for failed in self.variable_failures.values())
        )

    def report(self) -> None:
        """Print a human-readable summary of the failures."""

        def print_header(title: str, prepend_newline: bool = True) -> None:
            if prepend_newline:
                print()
            print(title)
            print("-" * len(title))

        def print_line(testname: str, n_failures: int, total: int, type_: str) -> None:
            print(
                f"{n_failures} of {total} ({n_failures / max(total, 1):.2%}) {type_}s "
                f"{_MESSAGE_MAP.get(testname, f'failed {testname}')}."
            )

        print_header("Sample diagnostic tests results' summaries:", False)
        for testname, (failed_iterations, _) in self.sample_failures.items():
            print_line(testname, len(failed_iterations), self.n_samples, "sample")
        if self.ebfmi:
            print_line("low_ebfmi", len(self.low_ebfmi_chains), len(self.ebfmi), "chain")

        print_header("Variable diagnostic tests results' summaries:")
        for testname, failed in self.variable_failures.items():
            print_line(testname, len(failed), self.n_variables, "variable")
            if failed:
                print(f"    {', '.join(failed)}")


def _require(sampler_params: Mapping[str, npt.NDArray], name: str) -> npt.NDArray:
    """Fetch a sampler diagnostic column or fail naming it."""
    if name not in sampler_params:
        raise MissingFitDataError(
            f"The sampler did not record '{name}'; this check requires it."
        )
    return np.asarray(sampler_params[name])


def check_divergences(
    sampler_params: Mapping[str, npt.NDArray],
) -> tuple[npt.NDArray, npt.NDArray]:
    """Indices of divergent iterations.

    :param sampler_params: Post-warmup sampler diagnostics, each of shape
        ``(iteration, chain)``
    :type sampler_params: Mapping[str, npt.NDArray]

    :returns: ``(iteration, chain)`` index arrays of the divergent iterations
    :rtype: tuple[npt.NDArray, npt.NDArray]
    """
    return np.nonzero(_require(sampler_params, "divergent__") == 1)


def check_treedepth(
    sampler_params: Mapping[str, npt.NDArray],
    max_depth: custom_types.Integer = DEFAULT_MAX_TREEDEPTH,
) -> tuple[npt.NDArray, npt.NDArray]:
    """Indices of iterations that saturated the maximum tree depth.

    :param sampler_params: Post-warmup sampler diagnostics, each of shape
        ``(iteration, chain)``
    :type sampler_params: Mapping[str, npt.NDArray]
    :param max_depth: Maximum tree depth the sampler was run with. Defaults to 10.
    :type max_depth: custom_types.Integer

    :returns: ``(iteration, chain)`` index arrays of the saturated iterations
    :rtype: tuple[npt.NDArray, npt.NDArray]
    """
    return np.nonzero(_require(sampler_params, "treedepth__") >= max_depth)


def compute_ebfmi(sampler_params: Mapping[str, npt.NDArray]) -> npt.NDArray:
    """E-BFMI of each chain, from the ``energy__`` diagnostic.

    :param sampler_params: Post-warmup sampler diagnostics, each of shape
        ``(iteration, chain)``
    :type sampler_params: Mapping[str, npt.NDArray]

    :returns: One E-BFMI value per chain
    :rtype: npt.NDArray
    """
    # ArviZ expects energy as (chain, draw)
    return np.atleast_1d(az.bfmi(_require(sampler_params, "energy__").T))


def check_energy(
    sampler_params: Mapping[str, npt.NDArray],
    ebfmi_thresh: custom_types.Float = DEFAULT_EBFMI_THRESH,
) -> tuple[npt.NDArray, npt.NDArray]:
    """E-BFMI per chain and the positions of the chains below threshold.

    :returns: Per-chain E-BFMI and the indices of the failing chains
    :rtype: tuple[npt.NDArray, npt.NDArray]
    """
    ebfmi = compute_ebfmi(sampler_params)
    return ebfmi, np.nonzero(ebfmi < ebfmi_thresh)[0]


def check_rhat_ess(
    summary: pd.DataFrame,
    n_chains: custom_types.Integer,
    r_hat_thresh: custom_types.Float = DEFAULT_RHAT_THRESH,
    ess_thresh: custom_types.Float = DEFAULT_ESS_THRESH,
) -> dict[str, list[str]]:
    """Names of variables failing the R-hat and effective sample size tests.

    :param summary: Pooled summary table holding ``Rhat`` and ``n_eff`` columns
    :type summary: pd.DataFrame
    :param n_chains: Number of chains. The ESS threshold is per chain.
    :type n_chains: custom_types.Integer
    :param r_hat_thresh: R-hat threshold for convergence. Defaults to 1.01.
    :type r_hat_thresh: custom_types.Float
    :param ess_thresh: ESS threshold per chain. Defaults to 100.
    :type ess_thresh: custom_types.Float

    :returns: Mapping from ``r_hat`` / ``n_eff`` to the failing variable names
    :rtype: dict[str, list[str]]

    :raises MissingFitDataError: If the summary has no convergence columns, as
        is the case for variational fits
    """
    if missing := {"Rhat", "n_eff"} - set(summary.columns):
        raise MissingFitDataError(
            f"The summary is missing the following columns: {sorted(missing)}."
        )

    # NaN statistics (e.g. from constant draws) never count as failures
    return {
        "r_hat": [str(name) for name in summary.index[summary["Rhat"] >= r_hat_thresh]],
        "n_eff": [
            str(name)
            for name in summary.index[summary["n_eff"] <= ess_thresh * n_chains]
        ],
    }
