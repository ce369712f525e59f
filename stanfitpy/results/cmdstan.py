# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Conversion of CmdStanPy fits into :py:class:`~stanfitpy.results.fit.FitResult`.

CmdStan writes one CSV file per chain. Each row is an iteration; the columns
hold the sampler diagnostics (names ending in ``__``) followed by every scalar
component of the model's parameters, transformed parameters and generated
quantities. This module reads those artifacts through CmdStanPy and hands them to
a ``FitResult`` in canonical form:

    - Components of matrix and array parameters are reordered from CmdStan's
      column-major layout into row-major order
    - ``lp__`` becomes the last parameter column; the remaining ``__`` columns
      become sampler diagnostics
    - Per-chain warmup and sampling times are parsed from the CSV footers

Both MCMC (``CmdStanMCMC``) and variational (``CmdStanVB``) fits are supported.

Example:
    >>> fit = stanfitpy.from_cmdstanpy(model.sample(data=data), model_code=model.code())
    >>> fit = stanfitpy.from_csv("output_dir/")
"""

from __future__ import annotations

import os
import re
import warnings

from typing import Any, Mapping, Sequence

import numpy as np
import numpy.typing as npt

from cmdstanpy import from_csv as cmdstan_from_csv
from cmdstanpy.stanfit import CmdStanMCMC, CmdStanVB

from stanfitpy.defaults import DEFAULT_MODEL_NAME
from stanfitpy.results.fit import FitResult
from stanfitpy.results.names import infer_parameter_dims

# Sampler diagnostics that are counts or flags rather than real numbers
_INTEGER_SAMPLER_PARAMS = ("treedepth__", "n_leapfrog__", "divergent__")

# Run settings copied from the CmdStan configuration into the fit's attributes
_CONFIG_ATTRS = (
    "stan_version_major",
    "stan_version_minor",
    "stan_version_patch",
    "method",
    "algorithm",
    "engine",
    "num_samples",
    "num_warmup",
    "thin",
    "max_depth",
    "iter",
    "output_samples",
)

# Matches the timing lines of a CmdStan CSV footer, e.g.
# "#  Elapsed Time: 0.025 seconds (Warm-up)"
_ELAPSED_RE = re.compile(
    r"^#.*?(?P<seconds>[0-9]*\.?[0-9]+(?:[eE][-+]?[0-9]+)?) seconds "
    r"\((?P<phase>Warm-up|Sampling)\)"
)


def parse_elapsed_time(csv_file: str | os.PathLike) -> tuple[float, float] | None:
    """Read the warmup and sampling times from the footer of a CmdStan CSV file.

    :param csv_file: Path to the CSV file of one chain
    :type csv_file: Union[str, os.PathLike]

    :returns: ``(warmup, sampling)`` seconds, or None if the footer does not
        report both
    :rtype: Optional[tuple[float, float]]
    """
    timings = {}
    with open(csv_file, "r", encoding="utf-8") as fd:
        for line in fd:
            if match_obj := _ELAPSED_RE.match(line):
                timings[match_obj.group("phase")] = float(match_obj.group("seconds"))

    if "Warm-up" not in timings or "Sampling" not in timings:
        return None
    return timings["Warm-up"], timings["Sampling"]


def _collect_elapsed_times(csv_files: Sequence[str]) -> npt.NDArray | None:
    """Elapsed times of every chain, or None (with a warning) if any is missing."""
    elapsed = []
    for csv_file in csv_files:
        if (timing := parse_elapsed_time(csv_file)) is None:
            warnings.warn(
                f"Could not parse elapsed times from {csv_file}. Elapsed times will "
                "not be available for this fit."
            )
            return None
        elapsed.append(timing)
    return np.array(elapsed, dtype=float)


def split_columns(
    column_names: Sequence[str],
) -> tuple[list[int], dict[str, tuple[int, ...]], list[str]]:
    """Separate parameter columns from sampler diagnostic columns.

    :param column_names: CmdStan column names, in file order
    :type column_names: Sequence[str]

    :returns: Positions of the parameter columns in canonical order (``lp__``,
        if present, last), the declared shape of each parameter, and the names
        of the sampler diagnostic columns
    :rtype: tuple[list[int], dict[str, tuple[int, ...]], list[str]]

    Example:
        >>> positions, par_dims, sampler = split_columns(
        ...     ["lp__", "accept_stat__", "S[1,1]", "S[2,1]", "S[1,2]", "S[2,2]"]
        ... )
        >>> positions
        [2, 4, 3, 5, 0]
        >>> par_dims
        {'S': (2, 2), 'lp__': ()}
        >>> sampler
        ['accept_stat__']
    """
    par_positions = [
        ind for ind, name in enumerate(column_names) if not name.endswith("__")
    ]
    sampler_names = [
        name for name in column_names if name.endswith("__") and name != "lp__"
    ]
    if "lp__" in column_names:
        par_positions.append(list(column_names).index("lp__"))

    # Reorder each parameter's columns into row-major order
    par_dims, order = infer_parameter_dims([column_names[ind] for ind in par_positions])
    return [par_positions[ind] for ind in order], par_dims, sampler_names


def _config_attrs(config: Mapping[str, Any]) -> dict[str, Any]:
    return {
        key: config[key]
        for key in _CONFIG_ATTRS
        if key in config and config[key] is not None
    }


def _mcmc_to_fit(
    fit: CmdStanMCMC,
    model_code: str | None,
    inits: Sequence[Mapping[str, Any]] | None,
) -> FitResult:
    """Build a fit from a CmdStanMCMC object."""
    config = fit.metadata.cmdstan_config

    # Warmup draws are only available if CmdStan was asked to save them
    if save_warmup := bool(config.get("save_warmup", False)):
        n_warmup = fit.num_draws_warmup
    else:
        warnings.warn(
            "Warmup draws were not saved for this fit. Only post-warmup iterations "
            "will be available."
        )
        n_warmup = 0
    draws = fit.draws(inc_warmup=save_warmup)

    # Split the columns into parameters and sampler diagnostics
    column_names = list(fit.column_names)
    par_positions, par_dims, sampler_names = split_columns(column_names)
    sampler_params = {}
    for name in sampler_names:
        values = draws[:, :, column_names.index(name)]
        if name in _INTEGER_SAMPLER_PARAMS:
            values = values.astype(np.int64)
        sampler_params[name] = values

    return FitResult(
        draws[:, :, par_positions],
        par_dims,
        n_warmup=n_warmup,
        mode="mcmc",
        sampler_params=sampler_params,
        model_name=str(config.get("model", DEFAULT_MODEL_NAME)),
        model_code=model_code,
        inits=inits,
        seed=config.get("seed"),
        elapsed_time=_collect_elapsed_times(fit.runset.csv_files),
        chain_ids=fit.chain_ids,
        attrs=_config_attrs(config),
    )


def _vb_to_fit(
    fit: CmdStanVB,
    model_code: str | None,
    inits: Sequence[Mapping[str, Any]] | None,
) -> FitResult:
    """Build a fit from a CmdStanVB object.

    The approximate draws are treated as a single chain without warmup. The
    ``__`` columns (``lp__``, ``log_p__``, ``log_g__``) are not draws of the
    model and are dropped.
    """
    config = fit.metadata.cmdstan_config
    column_names = list(fit.column_names)
    par_positions = [
        ind for ind, name in enumerate(column_names) if not name.endswith("__")
    ]
    par_dims, order = infer_parameter_dims([column_names[ind] for ind in par_positions])
    sample = np.asarray(fit.variational_sample)[:, [par_positions[ind] for ind in order]]

    return FitResult(
        sample[:, np.newaxis, :],
        par_dims,
        mode="variational",
        model_name=str(config.get("model", DEFAULT_MODEL_NAME)),
        model_code=model_code,
        inits=inits,
        seed=config.get("seed"),
        attrs=_config_attrs(config),
    )


def from_cmdstanpy(
    fit: CmdStanMCMC | CmdStanVB,
    model_code: str | None = None,
    inits: Sequence[Mapping[str, Any]] | None = None,
) -> FitResult:
    """Convert a CmdStanPy fit into a :py:class:`~stanfitpy.results.fit.FitResult`.

    :param fit: Result of ``CmdStanModel.sample`` or ``CmdStanModel.variational``
    :type fit: Union[CmdStanMCMC, CmdStanVB]
    :param model_code: Source text of the model. CmdStan output does not carry
        it, so it must be given to be retrievable later. Defaults to None.
    :type model_code: Optional[str]
    :param inits: Initial values of each chain, as passed to CmdStan. Defaults
        to None.
    :type inits: Optional[Sequence[Mapping[str, Any]]]

    :returns: The fit
    :rtype: FitResult

    :raises TypeError: If the fit is of an unsupported type

    The seed, model name and run settings (such as the maximum tree depth) are
    read from the CmdStan configuration. Elapsed times are parsed from the CSV
    footers of MCMC runs.

    Example:
        >>> model = cmdstanpy.CmdStanModel(stan_file="eight_schools.stan")
        >>> fit = from_cmdstanpy(model.sample(data=data, save_warmup=True))
        >>> fit.get_sampler_params(inc_warmup=False)[0]["divergent__"].sum()
    """
    if isinstance(fit, CmdStanMCMC):
        return _mcmc_to_fit(fit, model_code, inits)
    if isinstance(fit, CmdStanVB):
        return _vb_to_fit(fit, model_code, inits)
    raise TypeError(
        f"Cannot build a fit from an object of type {type(fit).__name__}. Expected "
        "CmdStanMCMC or CmdStanVB."
    )


def from_csv(
    path: str | list[str] | os.PathLike,
    model_code: str | None = None,
    inits: Sequence[Mapping[str, Any]] | None = None,
) -> FitResult:
    """Load CmdStan CSV output files into a fit.

    :param path: A CSV file, a list of CSV files, a glob pattern or a directory
        of CSV files
    :type path: Union[str, list[str], os.PathLike]
    :param model_code: Source text of the model. Defaults to None.
    :type model_code: Optional[str]
    :param inits: Initial values of each chain. Defaults to None.
    :type inits: Optional[Sequence[Mapping[str, Any]]]

    :returns: The fit
    :rtype: FitResult

    :raises ValueError: If no valid CSV files are found at ``path``
    """
    if (fit := cmdstan_from_csv(path)) is None:
        raise ValueError(f"No CmdStan output could be read from {path}.")
    return from_cmdstanpy(fit, model_code=model_code, inits=inits)
