# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Read-only access to the results of a fitted Stan model.

This module provides :py:class:`FitResult`, the single object through which
posterior draws, summaries, sampler diagnostics and run metadata of a fit are
accessed. A ``FitResult`` is created once, at the end of sampling, by the
sampling engine (see :py:mod:`stanfitpy.results.cmdstan` for the CmdStanPy
adapter) and is never mutated afterwards.

Draws can be pulled out in four shapes that all hold the same values:

    - :py:meth:`FitResult.extract_grouped`: one array per parameter
    - :py:meth:`FitResult.extract_matrix`: a labelled ``(draw, parameters)`` matrix
    - :py:meth:`FitResult.extract_table`: a data frame of the same cells
    - :py:meth:`FitResult.extract_per_chain`: a labelled 3-D per-chain array

Every accessor accepting ``pars`` resolves it the same way: None or an empty
list selects everything, base names (``theta``) select whole parameters and
indexed names (``theta[1]``) select single components. ``include=False`` turns
the filter into an exclusion list.

Beyond the accessors, a fit converts to an ArviZ ``InferenceData`` object and
round-trips through NetCDF files for persistent storage.
"""

from __future__ import annotations

import copy
import json
import os.path

from typing import Any, Mapping, Sequence

import arviz as az
import numpy as np
import numpy.typing as npt
import pandas as pd
import xarray as xr

from stanfitpy import custom_types
from stanfitpy.defaults import (
    DEFAULT_EBFMI_THRESH,
    DEFAULT_ESS_THRESH,
    DEFAULT_MAX_TREEDEPTH,
    DEFAULT_MODEL_NAME,
    DEFAULT_NETCDF_ENGINE,
    DEFAULT_PROBS,
    DEFAULT_RHAT_THRESH,
    DEFAULT_ROUND_TO,
)
from stanfitpy.exceptions import InconsistentChainShapeError, MissingFitDataError
from stanfitpy.results import diagnostics, extract, summary
from stanfitpy.results.draw_store import DrawStore
from stanfitpy.results.names import ParameterIndex, infer_parameter_dims

# Column labels of the elapsed time table
_ELAPSED_COLUMNS = ["warmup", "sampling"]


def _to_jsonable(obj: Any) -> Any:
    """JSON fallback for NumPy values found in initial values."""
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, np.generic):
        return obj.item()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _from_jsonable(inits: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Restore arrays from JSON-decoded initial values."""
    return [
        {
            name: np.asarray(value) if isinstance(value, list) else value
            for name, value in chain_inits.items()
        }
        for chain_inits in inits
    ]


class FitResult:
    """Read-only results of a fitted model.

    :param draws: Posterior draws of shape ``(n_iterations, n_chains, n_columns)``
        with columns in canonical order (see ``par_dims``), or a prebuilt
        :py:class:`~stanfitpy.results.draw_store.DrawStore`
    :type draws: Union[npt.NDArray, DrawStore]
    :param par_dims: Ordered mapping from parameter name to declared shape.
        Vector and matrix parameters are expanded into row-major indexed
        columns, e.g. ``{"mu": (), "theta": (8,)}`` gives ``mu, theta[1], ...,
        theta[8]``.
    :type par_dims: Mapping[str, Sequence[int]]
    :param n_warmup: Number of leading warmup iterations in each chain. Defaults
        to None, meaning the warmup count of ``draws`` if it is a
        :py:class:`DrawStore` and 0 otherwise.
    :type n_warmup: Optional[custom_types.Integer]
    :param mode: Inference mode that produced the draws. Defaults to "mcmc".
    :type mode: custom_types.InferenceMode
    :param sampler_params: Per-iteration sampler diagnostics, each of shape
        ``(n_iterations, n_chains)``. Defaults to None.
    :type sampler_params: Optional[Mapping[str, npt.NDArray]]
    :param model_name: Name of the model. Defaults to "model".
    :type model_name: str
    :param model_code: Source text of the model. Defaults to None.
    :type model_code: Optional[str]
    :param inits: Initial values of each chain. Defaults to None.
    :type inits: Optional[Sequence[Mapping[str, Any]]]
    :param seed: Seed of the pseudo-random number generator. Defaults to None.
    :type seed: Optional[custom_types.Integer]
    :param elapsed_time: Warmup and sampling wall-clock seconds of each chain,
        shape ``(n_chains, 2)``. Defaults to None.
    :type elapsed_time: Optional[Union[npt.NDArray, Sequence[Sequence[float]]]]
    :param chain_ids: Label of each chain. Defaults to ``1, ..., n_chains``.
    :type chain_ids: Optional[Sequence[custom_types.Integer]]
    :param attrs: Further run settings reported by the engine (for example
        ``max_depth``). Defaults to None.
    :type attrs: Optional[Mapping[str, Any]]

    :raises InconsistentChainShapeError: If any of the inputs disagree with the
        shape of the draws, or ``n_warmup`` disagrees with a given draw store

    Metadata not supplied by the engine is reported as missing: the matching
    accessor raises :py:class:`~stanfitpy.exceptions.MissingFitDataError`.

    Example:
        >>> fit = FitResult(draws, {"mu": (), "tau": (), "theta": (8,)}, n_warmup=500)
        >>> fit.extract_matrix(["mu", "theta[1]"]).shape
        (2000, 2)
        >>> fit.summarize(["mu"], probs=[0.1, 0.9]).pooled.columns.tolist()
        ['mean', 'se_mean', 'sd', '10%', '90%', 'n_eff', 'Rhat']
    """

    def __init__(
        self,
        draws: npt.NDArray | DrawStore,
        par_dims: Mapping[str, Sequence[int]],
        n_warmup: custom_types.Integer | None = None,
        mode: custom_types.InferenceMode = "mcmc",
        sampler_params: Mapping[str, npt.NDArray] | None = None,
        model_name: str = DEFAULT_MODEL_NAME,
        model_code: str | None = None,
        inits: Sequence[Mapping[str, Any]] | None = None,
        seed: custom_types.Integer | None = None,
        elapsed_time: npt.NDArray | Sequence[Sequence[float]] | None = None,
        chain_ids: Sequence[custom_types.Integer] | None = None,
        attrs: Mapping[str, Any] | None = None,
    ):
        # Canonical names are expanded once, here
        self._index = ParameterIndex(par_dims)

        # Build the draw store or check the one we were given
        if isinstance(draws, DrawStore):
            if draws.column_names != self._index.column_names:
                raise InconsistentChainShapeError(
                    "The columns of the draw store do not match the declared "
                    "parameter shapes."
                )
            if n_warmup is not None and n_warmup != draws.n_warmup:
                raise InconsistentChainShapeError(
                    f"Requested {n_warmup} warmup iterations but the draw store "
                    f"holds {draws.n_warmup}."
                )
            self._store = draws
        else:
            self._store = DrawStore(
                draws,
                self._index.column_names,
                n_warmup=0 if n_warmup is None else n_warmup,
            )
        n_iterations, n_chains = self._store.n_iterations, self._store.n_chains

        # Sampler diagnostics share the (iteration, chain) layout of the draws
        self._sampler_params: dict[str, npt.NDArray] | None = None
        if sampler_params is not None:
            self._sampler_params = {}
            for name, values in sampler_params.items():
                values = np.array(values)
                if values.shape != (n_iterations, n_chains):
                    raise InconsistentChainShapeError(
                        f"Sampler diagnostic '{name}' has shape {values.shape}, "
                        f"expected {(n_iterations, n_chains)}."
                    )
                values.flags.writeable = False
                self._sampler_params[name] = values

        # Chain labels
        if chain_ids is None:
            chain_ids = range(1, n_chains + 1)
        self.chain_ids: tuple[int, ...] = tuple(int(chain_id) for chain_id in chain_ids)
        if len(self.chain_ids) != n_chains:
            raise InconsistentChainShapeError(
                f"Got {len(self.chain_ids)} chain ids for {n_chains} chains."
            )

        # Per-chain metadata
        if inits is not None and len(inits) != n_chains:
            raise InconsistentChainShapeError(
                f"Got initial values for {len(inits)} chains, expected {n_chains}."
            )
        self._inits = None if inits is None else [dict(chain) for chain in inits]

        self._elapsed_time = None
        if elapsed_time is not None:
            self._elapsed_time = np.array(elapsed_time, dtype=float)
            if self._elapsed_time.shape != (n_chains, 2):
                raise InconsistentChainShapeError(
                    f"Elapsed times have shape {self._elapsed_time.shape}, expected "
                    f"{(n_chains, 2)}."
                )
            self._elapsed_time.flags.writeable = False

        # Run-level metadata
        self.mode = mode
        self.model_name = model_name
        self._model_code = model_code
        self._seed = None if seed is None else int(seed)
        self.attrs: dict[str, Any] = dict(attrs or {})

    @classmethod
    def from_columns(
        cls,
        draws: npt.NDArray,
        column_names: Sequence[str],
        **kwargs,
    ) -> "FitResult":
        """Build a fit from draws labelled with flat column names.

        Declared shapes are recovered from the bracketed indices, and the
        columns of each parameter are reordered into row-major order.

        :param draws: Draws of shape ``(n_iterations, n_chains, n_columns)``
        :type draws: npt.NDArray
        :param column_names: Flat name of every column, e.g. ``theta[1]``
        :type column_names: Sequence[str]
        :param kwargs: Passed on to :py:class:`FitResult`

        :returns: The fit
        :rtype: FitResult

        Example:
            >>> fit = FitResult.from_columns(draws, ["mu", "theta[1]", "theta[2]"])
            >>> fit.par_dims
            {'mu': (), 'theta': (2,)}
        """
        draws = np.asarray(draws)
        if draws.ndim != 3 or draws.shape[2] != len(column_names):
            raise InconsistentChainShapeError(
                f"Draws of shape {draws.shape} do not match {len(column_names)} "
                "column names."
            )
        par_dims, order = infer_parameter_dims(column_names)
        return cls(draws[:, :, order], par_dims, **kwargs)

    # Shape information
    @property
    def n_chains(self) -> int:
        return self._store.n_chains

    @property
    def n_iterations(self) -> int:
        """Iterations per chain, warmup included."""
        return self._store.n_iterations

    @property
    def n_warmup(self) -> int:
        return self._store.n_warmup

    @property
    def n_post_warmup(self) -> int:
        """Post-warmup iterations per chain."""
        return self._store.n_post_warmup

    @property
    def n_draws(self) -> int:
        """Total post-warmup draws over all chains."""
        return self._store.n_post_warmup * self._store.n_chains

    @property
    def par_dims(self) -> dict[str, tuple[int, ...]]:
        """Declared shape of every parameter, in canonical order."""
        return dict(self._index.par_dims)

    @property
    def par_names(self) -> list[str]:
        """Base names of every parameter, in canonical order."""
        return list(self._index.par_dims)

    @property
    def flat_par_names(self) -> list[str]:
        """Canonical flat column names, e.g. ``theta[1]``."""
        return list(self._index.column_names)

    @property
    def sampler_param_names(self) -> list[str]:
        """Names of the recorded sampler diagnostics."""
        return [] if self._sampler_params is None else list(self._sampler_params)

    # Draw extraction
    def extract_grouped(
        self, pars: custom_types.ParameterFilter = None, include: bool = True
    ) -> dict[str, npt.NDArray]:
        """Post-warmup draws of each parameter, chains pooled.

        :param pars: Parameters to extract. Defaults to None (all).
        :type pars: custom_types.ParameterFilter
        :param include: If False, extract every parameter except ``pars``.
            Defaults to True.
        :type include: bool

        :returns: Ordered mapping from name to draws. Chains are concatenated
            in chain order, each keeping its iteration order. Parameters named
            by base name keep their declared shape on the trailing axes.
        :rtype: dict[str, npt.NDArray]

        :raises UnknownParameterError: If a requested name is not in the fit

        Example:
            >>> draws = fit.extract_grouped(["mu", "theta"])
            >>> draws["theta"].shape
            (2000, 8)
        """
        return extract.extract_grouped(self._store, self._index.resolve(pars, include))

    def extract_matrix(
        self, pars: custom_types.ParameterFilter = None, include: bool = True
    ) -> xr.DataArray:
        """Post-warmup draws as a ``(draw, parameters)`` matrix.

        Rows are in the same order as :py:meth:`extract_grouped`; there is one
        column per scalar component, vector and matrix parameters expanded in
        row-major order. See :py:meth:`extract_grouped` for the arguments.

        :returns: Labelled 2-D array
        :rtype: xr.DataArray
        """
        return extract.extract_matrix(self._store, self._index.resolve(pars, include))

    def extract_table(
        self, pars: custom_types.ParameterFilter = None, include: bool = True
    ) -> pd.DataFrame:
        """Post-warmup draws as a data frame.

        Holds exactly the cells of :py:meth:`extract_matrix`, with rows labelled
        by ``(chain, iteration)``. See :py:meth:`extract_grouped` for the
        arguments.

        :returns: One row per draw, one column per scalar component
        :rtype: pd.DataFrame
        """
        return extract.extract_table(
            self._store, self._index.resolve(pars, include), self.chain_ids
        )

    def extract_per_chain(
        self,
        pars: custom_types.ParameterFilter = None,
        include: bool = True,
        inc_warmup: bool = False,
    ) -> xr.DataArray:
        """Draws as a 3-D ``(iteration, chain, parameters)`` array.

        :param pars: Parameters to extract. Defaults to None (all).
        :type pars: custom_types.ParameterFilter
        :param include: If False, extract every parameter except ``pars``.
            Defaults to True.
        :type include: bool
        :param inc_warmup: Whether to include warmup iterations. Defaults to False.
        :type inc_warmup: bool

        :returns: Labelled 3-D array
        :rtype: xr.DataArray
        """
        return extract.extract_per_chain(
            self._store,
            self._index.resolve(pars, include),
            self.chain_ids,
            inc_warmup=inc_warmup,
        )

    # Summaries
    def summarize(
        self,
        pars: custom_types.ParameterFilter = None,
        probs: (
            Sequence[custom_types.Float | custom_types.Integer] | npt.NDArray
        ) = DEFAULT_PROBS,
        per_chain: bool = True,
        include: bool = True,
    ) -> summary.FitSummary:
        """Summary statistics of each scalar component.

        :param pars: Parameters to summarize. Defaults to None (all).
        :type pars: custom_types.ParameterFilter
        :param probs: Probabilities at which to report quantiles. Defaults to
            ``(0.025, 0.25, 0.5, 0.75, 0.975)``.
        :type probs: Union[Sequence[Union[custom_types.Float,
            custom_types.Integer]], npt.NDArray]
        :param per_chain: Whether to also summarize each chain separately.
            Defaults to True.
        :type per_chain: bool
        :param include: If False, summarize every parameter except ``pars``.
            Defaults to True.
        :type include: bool

        :returns: Pooled table and, if requested, one table per chain
        :rtype: summary.FitSummary

        :raises UnknownParameterError: If a requested name is not in the fit
        :raises InvalidProbabilityError: If ``probs`` is empty or holds a value
            outside [0, 1]

        Pooled tables hold ``mean, se_mean, sd, <quantiles>, n_eff, Rhat`` for
        MCMC fits. Per-chain tables, and every table of a variational fit, hold
        only ``mean, sd, <quantiles>``. Quantile columns are in ascending
        probability order.

        Example:
            >>> res = fit.summarize(pars=["mu"], probs=[0.1, 0.9])
            >>> res.pooled.loc["mu", ["10%", "90%"]]
        """
        probs = summary.validate_probs(probs)
        selector = self._index.resolve(pars, include)
        return summary.summarize(
            self._store, selector, probs, mode=self.mode, per_chain=per_chain
        )

    def get_posterior_mean(
        self, pars: custom_types.ParameterFilter = None, include: bool = True
    ) -> pd.DataFrame:
        """Post-warmup mean of each component per chain and over all chains.

        :returns: One ``mean-chain:<id>`` column per chain and a final
            ``mean-all chains`` column
        :rtype: pd.DataFrame
        """
        return summary.posterior_mean(
            self._store, self._index.resolve(pars, include), self.chain_ids
        )

    # Sampler diagnostics
    def _require_sampler_params(self) -> dict[str, npt.NDArray]:
        if self._sampler_params is None:
            raise MissingFitDataError(
                "No sampler diagnostics were recorded for this fit."
            )
        return self._sampler_params

    def get_sampler_params(self, inc_warmup: bool = True) -> list[pd.DataFrame]:
        """Per-iteration sampler diagnostics of each chain.

        :param inc_warmup: Whether to include warmup iterations. Defaults to True.
        :type inc_warmup: bool

        :returns: One table per chain. Columns are the sampler's own diagnostic
            names, passed through unchanged; rows are labelled by the
            iteration's position in the full chain.
        :rtype: list[pd.DataFrame]

        :raises MissingFitDataError: If the sampler recorded no diagnostics

        No aggregation is performed. To get, say, the mean acceptance
        statistic of each chain:

        Example:
            >>> [chain["accept_stat__"].mean() for chain in fit.get_sampler_params(False)]
        """
        sampler_params = self._require_sampler_params()
        start = 0 if inc_warmup else self.n_warmup
        index = pd.RangeIndex(start, self.n_iterations, name="iteration")
        return [
            pd.DataFrame(
                {name: values[start:, chain_ind] for name, values in sampler_params.items()},
                index=index,
            )
            for chain_ind in range(self.n_chains)
        ]

    def get_logposterior(self, inc_warmup: bool = True) -> list[npt.NDArray]:
        """Log density (``lp__``) of every iteration of each chain.

        :param inc_warmup: Whether to include warmup iterations. Defaults to True.
        :type inc_warmup: bool

        :returns: One 1-D array per chain
        :rtype: list[npt.NDArray]

        :raises UnknownParameterError: If the fit has no ``lp__`` column
        """
        lp = self.extract_per_chain("lp__", inc_warmup=inc_warmup).to_numpy()
        return [lp[:, chain_ind, 0] for chain_ind in range(self.n_chains)]

    def diagnose(
        self,
        max_tree_depth: custom_types.Integer | None = None,
        ebfmi_thresh: custom_types.Float = DEFAULT_EBFMI_THRESH,
        r_hat_thresh: custom_types.Float = DEFAULT_RHAT_THRESH,
        ess_thresh: custom_types.Float = DEFAULT_ESS_THRESH,
        silent: bool = False,
    ) -> diagnostics.DiagnosticReport:
        """Run every HMC diagnostic check and report the failures.

        :param max_tree_depth: Maximum tree depth threshold. Uses the fit's
            ``max_depth`` attribute, or 10, if None. Defaults to None.
        :type max_tree_depth: Optional[custom_types.Integer]
        :param ebfmi_thresh: E-BFMI threshold. Defaults to 0.2.
        :type ebfmi_thresh: custom_types.Float
        :param r_hat_thresh: R-hat threshold. Defaults to 1.01.
        :type r_hat_thresh: custom_types.Float
        :param ess_thresh: ESS threshold per chain. Defaults to 100.
        :type ess_thresh: custom_types.Float
        :param silent: Whether to suppress the printed report. Defaults to False.
        :type silent: bool

        :returns: Failing iterations, chains and variables
        :rtype: diagnostics.DiagnosticReport

        :raises MissingFitDataError: If the fit is not an MCMC fit

        Pipeline Steps:
        1. Divergence and tree depth checks over post-warmup iterations
        2. E-BFMI check per chain
        3. R-hat and ESS checks over the pooled summary
        4. Report (unless silent)

        Checks whose sampler diagnostic was not recorded are skipped.
        """
        if self.mode != "mcmc":
            raise MissingFitDataError("Diagnostics are only available for MCMC fits.")

        # If not provided, extract the maximum tree depth from the attributes
        if max_tree_depth is None:
            max_tree_depth = int(self.attrs.get("max_depth", DEFAULT_MAX_TREEDEPTH))

        # Sample-level tests run over post-warmup iterations
        sampler_params = {
            name: values[self.n_warmup :]
            for name, values in (self._sampler_params or {}).items()
        }
        report = diagnostics.DiagnosticReport(n_samples=self.n_draws)
        if "divergent__" in sampler_params:
            report.sample_failures["diverged"] = diagnostics.check_divergences(
                sampler_params
            )
        if "treedepth__" in sampler_params:
            report.sample_failures["max_tree_depth_reached"] = (
                diagnostics.check_treedepth(sampler_params, max_depth=max_tree_depth)
            )
        if "energy__" in sampler_params:
            ebfmi, failing = diagnostics.check_energy(
                sampler_params, ebfmi_thresh=ebfmi_thresh
            )
            report.ebfmi = {
                chain_id: float(value) for chain_id, value in zip(self.chain_ids, ebfmi)
            }
            report.low_ebfmi_chains = [self.chain_ids[ind] for ind in failing]

        # Variable-level tests
        pooled = self.summarize(per_chain=False).pooled
        report.variable_failures = diagnostics.check_rhat_ess(
            pooled, self.n_chains, r_hat_thresh=r_hat_thresh, ess_thresh=ess_thresh
        )
        report.n_variables = len(pooled)

        if not silent:
            report.report()

        return report

    # Metadata
    def get_model_source(self) -> str:
        """Model source text, verbatim."""
        if self._model_code is None:
            raise MissingFitDataError("The model source was not recorded for this fit.")
        return self._model_code

    def get_init_values(self) -> list[dict[str, Any]]:
        """Initial values of each chain.

        :returns: One mapping per chain from parameter name to its initial
            value. Copies are returned, so the fit cannot be altered through them.
        :rtype: list[dict[str, Any]]
        """
        if self._inits is None:
            raise MissingFitDataError("Initial values were not recorded for this fit.")
        return copy.deepcopy(self._inits)

    def get_seed(self) -> int:
        """Seed of the pseudo-random number generator used for the fit."""
        if self._seed is None:
            raise MissingFitDataError("The seed was not recorded for this fit.")
        return self._seed

    def get_elapsed_time(self) -> pd.DataFrame:
        """Wall-clock seconds spent in warmup and sampling by each chain.

        :returns: Rows are chains, columns are ``warmup`` and ``sampling``
        :rtype: pd.DataFrame
        """
        if self._elapsed_time is None:
            raise MissingFitDataError("Elapsed times were not recorded for this fit.")
        return pd.DataFrame(
            self._elapsed_time.copy(),
            index=pd.Index(self.chain_ids, name="chain"),
            columns=_ELAPSED_COLUMNS,
        )

    # Interoperability and storage
    def _storage_attrs(self) -> dict[str, Any]:
        """Run metadata in a form that can be stored as NetCDF attributes."""
        attrs: dict[str, Any] = {
            "model_name": self.model_name,
            "inference_mode": self.mode,
            "n_warmup": self.n_warmup,
            "parameter_order": json.dumps(self.par_names),
        }
        if self._sampler_params is not None:
            attrs["sampler_param_order"] = json.dumps(self.sampler_param_names)
        if self._model_code is not None:
            attrs["model_code"] = self._model_code
        if self._seed is not None:
            attrs["seed"] = self._seed
        if self._inits is not None:
            attrs["inits"] = json.dumps(self._inits, default=_to_jsonable)
        if self._elapsed_time is not None:
            attrs["elapsed_warmup"] = self._elapsed_time[:, 0]
            attrs["elapsed_sample"] = self._elapsed_time[:, 1]

        # Engine attributes are kept if they are simple enough to store
        for key, value in self.attrs.items():
            if isinstance(value, (str, int, float, np.number, np.ndarray)) and not (
                isinstance(value, bool)
            ):
                attrs.setdefault(f"engine_{key}", value)
        return attrs

    def _posterior_dataset(self, warmup: bool) -> xr.Dataset:
        """Draws of either the warmup or the post-warmup phase, one variable each."""
        draws = self._store.get(inc_warmup=warmup)
        if warmup:
            draws = draws[: self.n_warmup]
        n_iterations = draws.shape[0]
        data_vars = {}
        for name, shape in self._index.par_dims.items():
            values = np.moveaxis(draws[:, :, list(self._index.parameter_columns[name])], 1, 0)
            data_vars[name] = (
                ("chain", "draw", *(f"{name}_dim_{dim}" for dim in range(len(shape)))),
                values.reshape((self.n_chains, n_iterations, *shape)),
            )
        return xr.Dataset(
            data_vars,
            coords={"chain": list(self.chain_ids), "draw": np.arange(n_iterations)},
        )

    def _sample_stats_dataset(self, warmup: bool) -> xr.Dataset:
        """Sampler diagnostics of either the warmup or the post-warmup phase."""
        phase = slice(None, self.n_warmup) if warmup else slice(self.n_warmup, None)
        n_iterations = self.n_warmup if warmup else self.n_post_warmup
        return xr.Dataset(
            {
                name: (("chain", "draw"), values[phase].T)
                for name, values in self._require_sampler_params().items()
            },
            coords={"chain": list(self.chain_ids), "draw": np.arange(n_iterations)},
        )

    def to_inference_data(self) -> az.InferenceData:
        """Convert the fit into an ArviZ InferenceData object.

        :returns: InferenceData with ``posterior`` and, when recorded,
            ``sample_stats`` groups. Warmup iterations go into the
            ``warmup_posterior`` and ``warmup_sample_stats`` groups. Run
            metadata is stored in the attributes of the posterior group.
        :rtype: az.InferenceData

        Example:
            >>> idata = fit.to_inference_data()
            >>> az.plot_trace(idata, var_names=["mu"])
        """
        groups = {"posterior": self._posterior_dataset(warmup=False)}
        groups["posterior"].attrs.update(self._storage_attrs())
        if self._sampler_params is not None:
            groups["sample_stats"] = self._sample_stats_dataset(warmup=False)
        if self.n_warmup > 0:
            groups["warmup_posterior"] = self._posterior_dataset(warmup=True)
            if self._sampler_params is not None:
                groups["warmup_sample_stats"] = self._sample_stats_dataset(
                    warmup=True
                )
        return az.InferenceData(**groups)

    @classmethod
    def from_inference_data(cls, inference_obj: az.InferenceData) -> "FitResult":
        """Rebuild a fit from an InferenceData object.

        This is the inverse of :py:meth:`to_inference_data`. Objects built
        elsewhere are accepted too, as long as they hold a ``posterior`` group
        with ``chain`` and ``draw`` dimensions.

        :param inference_obj: The InferenceData object
        :type inference_obj: az.InferenceData

        :returns: The fit
        :rtype: FitResult

        :raises ValueError: If the object has no posterior group
        """
        groups = set(inference_obj.groups())
        if "posterior" not in groups:
            raise ValueError("ArviZ object is missing the 'posterior' group.")
        posterior = inference_obj.posterior
        n_chains = posterior.sizes["chain"]
        attrs = dict(posterior.attrs)

        def stored_order(key: str, group: str) -> list[str]:
            """Variable order recorded at save time, else the group's own order."""
            if key in attrs:
                return json.loads(attrs[key])
            return [str(varname) for varname in getattr(inference_obj, group).data_vars]

        def phase_values(group: str, varname: str) -> npt.NDArray:
            """Values of a variable with warmup prepended along the draw axis."""
            values = getattr(inference_obj, group)[varname].transpose(
                "chain", "draw", ...
            )
            if f"warmup_{group}" in groups:
                warmup = getattr(inference_obj, f"warmup_{group}")[varname].transpose(
                    "chain", "draw", ...
                )
                return np.concatenate([warmup.to_numpy(), values.to_numpy()], axis=1)
            return values.to_numpy()

        # Posterior draws, flattened row-major per parameter
        par_dims = {}
        blocks = []
        for varname in stored_order("parameter_order", "posterior"):
            values = phase_values("posterior", varname)
            shape = values.shape[2:]
            par_dims[varname] = shape
            blocks.append(
                values.reshape(
                    (n_chains, values.shape[1], int(np.prod(shape, dtype=int)))
                )
            )
        draws = np.moveaxis(np.concatenate(blocks, axis=2), 0, 1)
        n_warmup = (
            inference_obj.warmup_posterior.sizes["draw"]
            if "warmup_posterior" in groups
            else 0
        )

        # Sampler diagnostics are stored (chain, draw); we keep (iteration, chain)
        sampler_params = None
        if "sample_stats" in groups:
            sampler_params = {
                varname: phase_values("sample_stats", varname).T
                for varname in stored_order("sampler_param_order", "sample_stats")
            }

        # Run metadata
        elapsed_time = None
        if "elapsed_warmup" in attrs and "elapsed_sample" in attrs:
            elapsed_time = np.stack(
                [
                    np.atleast_1d(attrs["elapsed_warmup"]),
                    np.atleast_1d(attrs["elapsed_sample"]),
                ],
                axis=1,
            )
        engine_attrs = {
            key.removeprefix("engine_"): value
            for key, value in attrs.items()
            if key.startswith("engine_")
        }

        return cls(
            draws,
            par_dims,
            n_warmup=n_warmup,
            mode=str(attrs.get("inference_mode", "mcmc")),
            sampler_params=sampler_params,
            model_name=str(attrs.get("model_name", DEFAULT_MODEL_NAME)),
            model_code=(str(attrs["model_code"]) if "model_code" in attrs else None),
            inits=(
                _from_jsonable(json.loads(attrs["inits"])) if "inits" in attrs else None
            ),
            seed=(int(attrs["seed"]) if "seed" in attrs else None),
            elapsed_time=elapsed_time,
            chain_ids=[int(chain) for chain in posterior.chain.values],
            attrs=engine_attrs,
        )

    def save_netcdf(self, filename: str) -> str:
        """Save the fit to a NetCDF file.

        :param filename: Path of the file to write
        :type filename: str

        :returns: The path written
        :rtype: str

        Example:
            >>> fit.save_netcdf("eight_schools.nc")
            >>> # Later: FitResult.from_disk("eight_schools.nc")
        """
        self.to_inference_data().to_netcdf(filename, engine=DEFAULT_NETCDF_ENGINE)
        return filename

    @classmethod
    def from_disk(cls, path: str) -> "FitResult":
        """Load a fit previously written by :py:meth:`save_netcdf`.

        :param path: Path to the NetCDF file
        :type path: str

        :returns: The fit
        :rtype: FitResult

        :raises FileNotFoundError: If the file does not exist
        """
        if not os.path.exists(path):
            raise FileNotFoundError(
                f"The file {path} does not exist. Please provide a valid path."
            )
        return cls.from_inference_data(
            az.from_netcdf(path, engine=DEFAULT_NETCDF_ENGINE)
        )

    # Display
    def __repr__(self):
        return (
            f"FitResult(model={self.model_name!r}, mode={self.mode!r}, "
            f"chains={self.n_chains}, iterations={self.n_iterations}, "
            f"warmup={self.n_warmup}, parameters={len(self._index)})"
        )

    def __str__(self):
        pooled = self.summarize(per_chain=False).pooled.round(DEFAULT_ROUND_TO)
        lines = [
            f"Inference for Stan model: {self.model_name}.",
            f"{self.n_chains} chains, each with iter={self.n_iterations}; "
            f"warmup={self.n_warmup};",
            f"post-warmup draws per chain={self.n_post_warmup}, "
            f"total post-warmup draws={self.n_draws}.",
            "",
            pooled.to_string(),
            "",
        ]
        if self.mode == "mcmc":
            lines.extend(
                [
                    "For each parameter, n_eff is a crude measure of effective sample "
                    "size,",
                    "and Rhat is the potential scale reduction factor (at "
                    "convergence, Rhat=1).",
                ]
            )
        else:
            lines.append("Approximate samples were drawn using variational inference.")
        return "\n".join(lines)
