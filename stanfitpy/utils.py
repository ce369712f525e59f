# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Utility functions and classes for the StanFitPy package.

This module provides various utility functions and classes that support
the core functionality of StanFitPy, including:

    - Lazy importing mechanisms for performance optimization
    - Normalization of user-supplied parameter filters
    - Label formatting shared by tables and plots

Users will not typically need to interact with this module directly--it is designed
to be used internally by StanFitPy.
"""

from __future__ import annotations

import importlib.util
import sys

from typing import Sequence


def lazy_import(name: str):
    """Import a module only when it is first needed.

    This function implements lazy module importing to improve package import
    performance by deferring module loading until actual use. It keeps optional
    heavy dependencies (CmdStanPy, HoloViews) out of ``import stanfitpy``.

    :param name: The fully qualified module name to import
    :type name: str

    :returns: The imported module
    :rtype: module

    :raises ImportError: If the specified module cannot be found

    .. note::
        If the module is already imported, returns the cached version
        from sys.modules for efficiency.
    """
    # Check if the module is already imported
    if name in sys.modules:
        return sys.modules[name]

    # If not, import it lazily (modified from here:
    # https://docs.python.org/3/library/importlib.html#implementing-lazy-imports)
    spec = importlib.util.find_spec(name)
    if spec is None:
        raise ImportError(f"Module '{name}' not found.")

    # Create the module with a lazy loader
    spec.loader = importlib.util.LazyLoader(spec.loader)
    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    spec.loader.exec_module(module)
    return module


class LazyObjectProxy:
    """A proxy that delays importing a module and accessing an object until first use.

    :param module_name: The fully qualified name of the module containing the object
    :type module_name: str
    :param obj_name: The name of the object to import from the module
    :type obj_name: str

    Example:
        >>> from_cmdstanpy = LazyObjectProxy("stanfitpy.results.cmdstan", "from_cmdstanpy")
        >>> fit = from_cmdstanpy(cmdstan_fit)  # CmdStanPy is imported here
    """

    def __init__(self, module_name: str, obj_name: str):
        self._module_name = module_name
        self._obj_name = obj_name
        self._cached_obj = None

    def _get_object(self):
        """Import the module and get the object if not already cached."""
        if self._cached_obj is None:
            module = lazy_import(self._module_name)
            try:
                self._cached_obj = getattr(module, self._obj_name)
            except AttributeError as e:
                raise ImportError(
                    f"cannot import name '{self._obj_name}' from '{self._module_name}'"
                ) from e
        return self._cached_obj

    def __call__(self, *args, **kwargs):
        return self._get_object()(*args, **kwargs)

    def __getattr__(self, name):
        return getattr(self._get_object(), name)

    def __repr__(self):
        if self._cached_obj is not None:
            return repr(self._cached_obj)
        return f"<LazyObjectProxy for {self._module_name}.{self._obj_name}>"


def as_name_list(pars: str | Sequence[str] | None) -> list[str]:
    """Normalize a parameter filter to a list of names.

    :param pars: A single name, a sequence of names, or None
    :type pars: Union[str, Sequence[str], None]

    :returns: List of requested names. Empty means "all parameters".
    :rtype: list[str]

    Example:
        >>> as_name_list("mu")
        ['mu']
        >>> as_name_list(None)
        []
    """
    if pars is None:
        return []
    if isinstance(pars, str):
        return [pars]
    return list(pars)


def quantile_label(prob: float) -> str:
    """Format a probability as a percentage column label.

    Ten significant digits are kept, enough to separate close probabilities
    while hiding floating-point noise.

    Example:
        >>> quantile_label(0.025)
        '2.5%'
        >>> quantile_label(0.1)
        '10%'
        >>> quantile_label(0.5000001)
        '50.00001%'
    """
    return f"{100 * prob:.10g}%"


def chain_label(chain_id: int) -> str:
    """Label used for a chain in column headers, e.g. ``chain:1``."""
    return f"chain:{chain_id}"
