# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Plotting utilities for fitted results.

This subpackage provides quick visual checks of a
:py:class:`~stanfitpy.results.fit.FitResult`. It is imported lazily by the
package, so HoloViews is only loaded when a plot is requested.

The plotting utilities are built on top of holoviews, returning plain HoloViews
objects that can be further customized with ``.opts`` and rendered with any
HoloViews backend.

Key Functionality:

    - Per-chain trace plots, warmup optionally included
    - Posterior interval plots with medians
"""

from .plotting import plot_intervals, plot_trace
