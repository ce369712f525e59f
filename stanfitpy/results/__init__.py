# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Storage, access and summaries of fitted results.

This subpackage holds everything between the raw output of a sampling engine
and the user:

    - :py:mod:`~stanfitpy.results.draw_store`: immutable per-chain draw storage
    - :py:mod:`~stanfitpy.results.names`: parameter name expansion and
      resolution
    - :py:mod:`~stanfitpy.results.extract`: reshaping draws into the exposed views
    - :py:mod:`~stanfitpy.results.summary`: summary statistics and convergence
      diagnostics
    - :py:mod:`~stanfitpy.results.diagnostics`: HMC sampler diagnostic checks
    - :py:mod:`~stanfitpy.results.fit`: the :py:class:`FitResult` facade
    - :py:mod:`~stanfitpy.results.cmdstan`: conversion from CmdStanPy fits
      (imported on demand)
"""

from .draw_store import DrawStore
from .fit import FitResult
from .names import ParameterIndex
from .summary import FitSummary
