# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

"""Custom exception classes for the StanFitPy package.

This module defines the exceptions raised by StanFitPy accessors. All of them
inherit from :py:class:`StanFitPyError` so that every package-specific failure
can be caught with a single except clause. Each concrete exception also derives
from the closest built-in exception type, so existing handlers for ``KeyError``
or ``ValueError`` keep working.

No accessor returns partial results: when one of these exceptions is raised the
operation produced nothing.
"""


class StanFitPyError(Exception):
    """Base class for all exceptions in the StanFitPy package.

    Example:
        >>> try:
        ...     fit.extract_matrix(["theta[99]"])
        ... except StanFitPyError as e:
        ...     print(f"StanFitPy error occurred: {e}")
    """


class UnknownParameterError(StanFitPyError, KeyError):
    """Raised when a parameter filter names a parameter that is not in the fit.

    :param name: The first requested name that could not be matched
    :type name: str

    :ivar name: The unmatched identifier
    """

    def __init__(self, name: str):
        self.name = name
        super().__init__(name)

    def __str__(self):
        return f"Unknown parameter name: '{self.name}'"


class InvalidProbabilityError(StanFitPyError, ValueError):
    """Raised when quantile probabilities are empty or fall outside [0, 1].

    :param value: The offending probability, or None when none were given
    :type value: object

    :ivar value: The offending probability
    """

    def __init__(self, value: object = None, message: str | None = None):
        self.value = value
        if message is None:
            message = (
                "At least one probability is required."
                if value is None
                else f"Probabilities must lie within [0, 1], got {value!r}."
            )
        super().__init__(message)


class InconsistentChainShapeError(StanFitPyError, ValueError):
    """Raised when chains disagree in iteration count or column set.

    This indicates a malformed fit handed over by the sampling engine and is
    not recoverable.
    """


class MissingFitDataError(StanFitPyError, AttributeError):
    """Raised when requesting run metadata that the sampling engine did not record.

    Variational fits, for instance, carry no per-iteration sampler diagnostics.
    """
