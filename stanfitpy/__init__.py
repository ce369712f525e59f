# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""
StanFitPy: Uniform access to and summaries of fitted Stan results.

StanFitPy wraps the artifacts produced by an MCMC or variational-inference run
(posterior draws for every chain, per-iteration sampler diagnostics and run
metadata) in a single read-only :py:class:`~stanfitpy.results.fit.FitResult`.
From there, draws can be pulled out in whatever shape is most convenient and
summarized with standard convergence diagnostics.

Key Features:
    - Draw extraction as per-parameter arrays, matrices, data frames or
      per-chain 3-D arrays, all views over the same values
    - Parameter selection by base name (``theta``) or component (``theta[1]``)
    - Posterior summaries with configurable quantiles, MCSE, ESS and R-hat
    - Access to sampler diagnostics, initial values, seed and timings
    - Conversion from CmdStanPy fits, ArviZ interoperability and NetCDF storage

Global Variables:
    __version__: Package version string

Example:
    >>> import stanfitpy as sfp
    >>> fit = sfp.from_cmdstanpy(cmdstan_fit, model_code=model.code())
    >>> fit.summarize(pars=["mu", "tau"], probs=[0.1, 0.9]).pooled
"""

from typeguard import install_import_hook

# Define the version
__version__ = "0.1.0"

# Set up type checking
install_import_hook("stanfitpy")

# Import objects that should be easily accessible from the package level
# pylint: disable=wrong-import-position
from stanfitpy import utils
from stanfitpy.exceptions import (
    InconsistentChainShapeError,
    InvalidProbabilityError,
    MissingFitDataError,
    StanFitPyError,
    UnknownParameterError,
)
from stanfitpy.results.fit import FitResult

# Lazy imports for performance and to avoid circular imports
cmdstan = utils.lazy_import("stanfitpy.results.cmdstan")
plotting = utils.lazy_import("stanfitpy.plotting")
from_cmdstanpy = utils.LazyObjectProxy("stanfitpy.results.cmdstan", "from_cmdstanpy")
from_csv = utils.LazyObjectProxy("stanfitpy.results.cmdstan", "from_csv")
