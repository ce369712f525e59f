# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Core plotting functions for fitted results.

Every function takes a :py:class:`~stanfitpy.results.fit.FitResult` and a
parameter filter (resolved exactly as by the fit's draw accessors) and returns a
HoloViews object. Styling can be adjusted through the ``*_kwargs`` arguments,
which are passed on to ``.opts`` after the defaults have been applied.
"""

from __future__ import annotations

from typing import Any, Sequence

import holoviews as hv
import numpy as np

from stanfitpy import custom_types, utils
from stanfitpy.results.fit import FitResult


def _set_defaults(
    kwargs: dict[str, Any] | None, default_values: tuple[tuple[str, Any], ...]
) -> dict[str, Any]:
    """Apply default values to kwargs dictionary without overwriting existing keys.

    :param kwargs: User-provided keyword arguments (may be None)
    :type kwargs: Union[dict[str, Any], None]
    :param default_values: Tuple of (key, value) pairs for defaults
    :type default_values: tuple[tuple[str, Any], ...]

    :returns: Dictionary with defaults applied for missing keys
    :rtype: dict[str, Any]

    Example:
        >>> _set_defaults({"color": "red"}, (("color", "blue"), ("alpha", 0.5)))
        {'color': 'red', 'alpha': 0.5}
    """
    kwargs = dict(kwargs or {})
    for k, v in default_values:
        if k not in kwargs:
            kwargs[k] = v
    return kwargs


def plot_trace(
    fit: FitResult,
    pars: custom_types.ParameterFilter = None,
    inc_warmup: bool = False,
    curve_kwargs: dict[str, Any] | None = None,
    ncols: custom_types.Integer = 2,
) -> hv.Layout:
    """Trace plots of the draws of each chain.

    :param fit: The fit to plot
    :type fit: FitResult
    :param pars: Parameters to plot. Defaults to None (all).
    :type pars: custom_types.ParameterFilter
    :param inc_warmup: Whether to include warmup iterations. Defaults to False.
    :type inc_warmup: bool
    :param curve_kwargs: Styling options for the curves. See `hv.opts.Curve`.
        Defaults to None.
    :type curve_kwargs: Optional[dict[str, Any]]
    :param ncols: Number of columns of the layout. Defaults to 2.
    :type ncols: custom_types.Integer

    :returns: One panel per scalar component, each overlaying one curve per chain
    :rtype: hv.Layout

    Example:
        >>> layout = plot_trace(fit, ["mu", "tau"], inc_warmup=True)
    """
    curve_kwargs = _set_defaults(
        curve_kwargs, (("line_width", 1), ("alpha", 0.7), ("tools", ["hover"]))
    )
    per_chain = fit.extract_per_chain(pars, inc_warmup=inc_warmup)
    iterations = per_chain.coords["iteration"].to_numpy()

    panels = []
    for label in per_chain.coords["parameters"].to_numpy():
        value_dim = hv.Dimension("value", label=str(label))
        panels.append(
            hv.NdOverlay(
                {
                    int(chain_id): hv.Curve(
                        (
                            iterations,
                            per_chain.sel(parameters=label, chain=chain_id).to_numpy(),
                        ),
                        kdims=["iteration"],
                        vdims=[value_dim],
                    ).opts(**curve_kwargs)
                    for chain_id in per_chain.coords["chain"].to_numpy()
                },
                kdims=["chain"],
            ).opts(title=str(label))
        )

    return hv.Layout(panels).cols(ncols)


def plot_intervals(
    fit: FitResult,
    pars: custom_types.ParameterFilter = None,
    probs: Sequence[custom_types.Float] = (0.5, 0.9),
    interval_kwargs: dict[str, Any] | None = None,
    median_kwargs: dict[str, Any] | None = None,
) -> hv.Overlay:
    """Central posterior intervals and medians of each scalar component.

    :param fit: The fit to plot
    :type fit: FitResult
    :param pars: Parameters to plot. Defaults to None (all).
    :type pars: custom_types.ParameterFilter
    :param probs: Probability mass of each central interval, from the inner to
        the outer one. Defaults to (0.5, 0.9).
    :type probs: Sequence[custom_types.Float]
    :param interval_kwargs: Styling options for the intervals. See
        `hv.opts.Segments`. Defaults to None.
    :type interval_kwargs: Optional[dict[str, Any]]
    :param median_kwargs: Styling options for the medians. See `hv.opts.Scatter`.
        Defaults to None.
    :type median_kwargs: Optional[dict[str, Any]]

    :returns: One horizontal segment per interval and component, with the
        median marked on top
    :rtype: hv.Overlay

    :raises ValueError: If an interval mass is not strictly between 0 and 1

    Interval bounds are the pooled post-warmup quantiles at ``(1 - p) / 2`` and
    ``(1 + p) / 2``. Components are laid out top to bottom in selection order.

    Example:
        >>> overlay = plot_intervals(fit, "theta", probs=(0.8, 0.95))
    """
    if not all(0 < prob < 1 for prob in probs):
        raise ValueError("Interval probabilities must be between 0 and 1.")
    interval_kwargs = _set_defaults(interval_kwargs, (("color", "black"),))
    median_kwargs = _set_defaults(
        median_kwargs, (("color", "black"), ("size", 6), ("tools", ["hover"]))
    )

    # Quantiles of each component
    matrix = fit.extract_matrix(pars)
    labels = [str(label) for label in matrix.coords["parameters"].to_numpy()]
    draws = matrix.to_numpy()
    positions = np.arange(len(labels))[::-1]

    # Wider intervals are drawn first and thinner, so that the inner ones sit on top
    plots = []
    widths = np.linspace(1, 4, len(probs))[::-1]
    for prob, width in zip(sorted(probs, reverse=True), widths):
        lower, upper = np.quantile(draws, [(1 - prob) / 2, (1 + prob) / 2], axis=0)
        plots.append(
            hv.Segments(
                (lower, positions, upper, positions),
                kdims=["lower", "position", "upper", "position_end"],
                label=utils.quantile_label(prob),
            ).opts(**{"line_width": float(width), **interval_kwargs})
        )
    plots.append(
        hv.Scatter(
            (np.median(draws, axis=0), positions, labels),
            kdims=["value"],
            vdims=["position", "parameter"],
            label="median",
        ).opts(**median_kwargs)
    )

    return hv.Overlay(plots).opts(yticks=list(zip(positions.tolist(), labels)))
