# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Custom type definitions for StanFitPy.

This module provides the type aliases used throughout the package for scalar
values, parameter filters and inference modes.
"""

from typing import Literal, Sequence, Union

import numpy as np

# Scalar types
Integer = Union[int, np.integer]
"""Type alias for integer values.

Accepts both Python's built-in int and NumPy integer types.

:type: Union[int, np.integer]
"""

Float = Union[float, np.floating]
"""Type alias for floating-point values.

Accepts both Python's built-in float and NumPy floating-point types.

:type: Union[float, np.floating]
"""

# Parameter filters
ParameterFilter = Union[str, Sequence[str], None]
"""A parameter filter as accepted by every draw accessor.

Either a single name, an ordered sequence of names, or None (all parameters).
Names may be base names (``theta``) or indexed components (``theta[1]``).

:type: Union[str, Sequence[str], None]
"""

InferenceMode = Literal["mcmc", "variational"]
"""The inference algorithm family that produced a fit.

:type: Literal["mcmc", "variational"]
"""
