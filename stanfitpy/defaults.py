# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Default configuration values for StanFitPy.

This module centralizes default values used across the accessor, summary and
diagnostic layers of StanFitPy.

The module is organized into logical groups covering:
    - Summary statistics defaults
    - Diagnostic thresholds for sampler validation
    - Storage settings

Default values cannot be programmatically altered. Every function that uses one
of these values accepts an argument overriding it for that call.
"""

# Summary defaults
DEFAULT_PROBS: tuple[float, ...] = (0.025, 0.25, 0.5, 0.75, 0.975)
"""Default probabilities at which posterior quantiles are reported.

Matches the quantiles printed by Stan's own summary utilities.

:type: tuple[float, ...]
"""

DEFAULT_ROUND_TO: int = 2
"""Default number of decimal places used when printing a fit.

:type: int
"""

DEFAULT_MODEL_NAME: str = "model"
"""Default name reported for fits whose engine did not record a model name.

:type: str
"""

# Defaults for Stan diagnostics
DEFAULT_EBFMI_THRESH: float = 0.2
"""Default threshold for Energy Bayesian Fraction of Missing Information (E-BFMI).

Values below this threshold may indicate inefficient sampling and
potential bias in MCMC results.

:type: float
"""

DEFAULT_ESS_THRESH: int = 100  # Per chain
"""Default threshold for Effective Sample Size (ESS) per chain.

Minimum effective sample size considered adequate for reliable
posterior inference from each MCMC chain.

:type: int
"""

DEFAULT_RHAT_THRESH: float = 1.01
"""Default threshold for R-hat convergence diagnostic.

Values above this threshold indicate potential convergence issues
in MCMC sampling across chains.

:type: float
"""

DEFAULT_MAX_TREEDEPTH: int = 10
"""Default maximum tree depth of the NUTS sampler.

Used when a fit does not record the maximum depth it was run with.

:type: int
"""

# Storage
DEFAULT_NETCDF_ENGINE: str = "h5netcdf"
"""Engine used to read and write NetCDF files.

:type: str
"""
