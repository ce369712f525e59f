# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


"""Parameter name expansion and resolution.

Stan reports every vector, matrix or array parameter as a set of scalar columns
with bracketed, 1-based indices (``theta[1]``, ``Sigma[2,3]``). This module builds
that flat canonical name list once per fit, and resolves user-supplied parameter
filters against it.

Two kinds of names are accepted in a filter:

    - **Base names** (``theta``) select every component of the parameter and keep
      its declared shape.
    - **Indexed names** (``theta[1]``) select a single component. They are matched
      literally, never by prefix.

Resolution is all-or-nothing: the first name that cannot be matched raises
:py:class:`~stanfitpy.exceptions.UnknownParameterError` and nothing is returned.
"""

from __future__ import annotations

import itertools
import re

from dataclasses import dataclass
from typing import Mapping, Sequence

import numpy as np

from stanfitpy import utils
from stanfitpy.exceptions import InconsistentChainShapeError, UnknownParameterError

# Parses an indexed component name into its base name and indices
_INDEXED_NAME_RE = re.compile(r"^(?P<base>[^\[\]]+)\[(?P<indices>[0-9]+(?:,[0-9]+)*)\]$")


def split_indexed_name(name: str) -> tuple[str, tuple[int, ...]]:
    """Split a column name into its base name and 1-based indices.

    :param name: Column name, e.g. ``theta[2]`` or ``mu``
    :type name: str

    :returns: Base name and index tuple. Scalars have an empty index tuple.
    :rtype: tuple[str, tuple[int, ...]]

    Example:
        >>> split_indexed_name("Sigma[2,3]")
        ('Sigma', (2, 3))
        >>> split_indexed_name("mu")
        ('mu', ())
    """
    if (match_obj := _INDEXED_NAME_RE.match(name)) is None:
        return name, ()
    return match_obj.group("base"), tuple(
        int(ind) for ind in match_obj.group("indices").split(",")
    )


def expand_parameter_names(par_dims: Mapping[str, Sequence[int]]) -> list[str]:
    """Expand declared parameter shapes into the canonical flat column names.

    Components are enumerated in row-major order (the last index changes
    fastest) with 1-based indices.

    :param par_dims: Ordered mapping from parameter name to declared shape
    :type par_dims: Mapping[str, Sequence[int]]

    :returns: Canonical column names
    :rtype: list[str]

    Example:
        >>> expand_parameter_names({"mu": (), "Sigma": (2, 2)})
        ['mu', 'Sigma[1,1]', 'Sigma[1,2]', 'Sigma[2,1]', 'Sigma[2,2]']
    """
    names = []
    for name, shape in par_dims.items():
        if len(shape) == 0:
            names.append(name)
            continue
        for indices in itertools.product(*(range(1, dim + 1) for dim in shape)):
            names.append(f"{name}[{','.join(map(str, indices))}]")
    return names


def infer_parameter_dims(
    column_names: Sequence[str],
) -> tuple[dict[str, tuple[int, ...]], list[int]]:
    """Recover declared parameter shapes from flat column names.

    Parameters appear in order of their first column. Within a parameter the
    columns may be in any order (CmdStan writes matrices column-major); the
    returned permutation sorts them into canonical row-major order.

    :param column_names: Flat column names as written by the sampling engine
    :type column_names: Sequence[str]

    :returns: Ordered mapping of parameter name to shape, and the permutation
        of column positions that puts the columns in canonical order
    :rtype: tuple[dict[str, tuple[int, ...]], list[int]]

    :raises InconsistentChainShapeError: If a parameter's columns do not form a
        complete, duplicate-free grid of indices
    """
    # Group the column positions by base name, keeping first-appearance order
    grouped: dict[str, list[tuple[tuple[int, ...], int]]] = {}
    for position, colname in enumerate(column_names):
        base, indices = split_indexed_name(colname)
        grouped.setdefault(base, []).append((indices, position))

    par_dims = {}
    order = []
    for base, entries in grouped.items():

        # All indices should have the same number of dimensions and be unique
        ndims = {len(indices) for indices, _ in entries}
        if len(ndims) != 1:
            raise InconsistentChainShapeError(
                f"Columns of parameter '{base}' disagree in dimensionality."
            )
        all_indices = [indices for indices, _ in entries]
        if len(set(all_indices)) != len(all_indices):
            raise InconsistentChainShapeError(
                f"Duplicate columns found for parameter '{base}'."
            )

        # The shape is the largest index seen along each dimension. Every
        # position of the grid must be present.
        shape = tuple(int(max(dim)) for dim in zip(*all_indices))
        if int(np.prod(shape, dtype=int)) != len(entries) or any(
            min(dim) < 1 for dim in zip(*all_indices)
        ):
            raise InconsistentChainShapeError(
                f"Columns of parameter '{base}' do not cover a full array of shape "
                f"{shape}."
            )
        par_dims[base] = shape

        # Sort such that the last dimension changes fastest (row-major)
        order.extend(position for _, position in sorted(entries))

    return par_dims, order


@dataclass(frozen=True)
class SelectedParameter:
    """One entry of a resolved parameter filter.

    :ivar name: The name as it will be labelled in grouped output
    :ivar shape: Shape of one draw of the entry. Indexed names are scalars.
    :ivar columns: Column indices, in canonical (row-major) order
    """

    name: str
    shape: tuple[int, ...]
    columns: tuple[int, ...]


@dataclass(frozen=True)
class ParameterSelector:
    """An ordered, fully resolved parameter filter.

    :ivar parameters: Resolved entries in output order
    :ivar labels: Column name of every selected column, in output order
    """

    parameters: tuple[SelectedParameter, ...]
    labels: tuple[str, ...]

    @property
    def columns(self) -> list[int]:
        """Every selected column index, in output order."""
        return [col for param in self.parameters for col in param.columns]

    def __len__(self):
        return len(self.labels)


class ParameterIndex:
    """Canonical name-to-column mapping of a fit.

    Built once when a fit is constructed, so that filters are resolved without
    re-parsing names on every accessor call.

    :param par_dims: Ordered mapping from parameter name to declared shape. The
        order defines the canonical column order.
    :type par_dims: Mapping[str, Sequence[int]]

    :ivar par_dims: Declared shape of each parameter
    :ivar column_names: Canonical flat column names
    :ivar column_to_index: Mapping from column name to column index
    :ivar parameter_columns: Mapping from base name to its column indices
    """

    def __init__(self, par_dims: Mapping[str, Sequence[int]]):

        # Record the shapes as tuples of ints
        self.par_dims: dict[str, tuple[int, ...]] = {
            name: tuple(int(dim) for dim in shape) for name, shape in par_dims.items()
        }
        if any("[" in name or "]" in name for name in self.par_dims):
            raise ValueError("Parameter base names cannot contain brackets.")

        # Build the flat names and the lookups
        self.column_names: tuple[str, ...] = tuple(
            expand_parameter_names(self.par_dims)
        )
        self.column_to_index: dict[str, int] = {
            name: ind for ind, name in enumerate(self.column_names)
        }
        self.parameter_columns: dict[str, tuple[int, ...]] = {}
        start = 0
        for name, shape in self.par_dims.items():
            size = int(np.prod(shape, dtype=int))
            self.parameter_columns[name] = tuple(range(start, start + size))
            start += size

    def __len__(self):
        return len(self.column_names)

    def __contains__(self, name):
        return name in self.par_dims or name in self.column_to_index

    def _resolve_one(self, name: str) -> SelectedParameter:
        """Resolve a single base or indexed name."""
        if name in self.par_dims:
            return SelectedParameter(
                name=name,
                shape=self.par_dims[name],
                columns=self.parameter_columns[name],
            )
        if name in self.column_to_index:
            return SelectedParameter(
                name=name, shape=(), columns=(self.column_to_index[name],)
            )
        raise UnknownParameterError(name)

    def resolve(
        self, pars: str | Sequence[str] | None = None, include: bool = True
    ) -> ParameterSelector:
        """Resolve a parameter filter to an ordered column selection.

        :param pars: Names to select. None or empty selects every parameter.
        :type pars: Union[str, Sequence[str], None]
        :param include: If False, select every parameter *except* those named.
            Defaults to True.
        :type include: bool

        :returns: The resolved selection
        :rtype: ParameterSelector

        :raises UnknownParameterError: If any requested name is not in the fit

        When including, output order follows the request. When excluding, the
        canonical order is kept; a parameter that is only partially excluded is
        returned as its remaining individual components.

        Example:
            >>> index = ParameterIndex({"mu": (), "theta": (3,)})
            >>> index.resolve(["theta[2]", "mu"]).labels
            ('theta[2]', 'mu')
            >>> index.resolve("theta[2]", include=False).labels
            ('mu', 'theta[1]', 'theta[3]')
        """
        requested = [self._resolve_one(name) for name in utils.as_name_list(pars)]

        # Empty requests select everything
        if len(requested) == 0:
            if include:
                requested = [self._resolve_one(name) for name in self.par_dims]
            else:
                return ParameterSelector(parameters=(), labels=())

        # If excluding, walk the canonical order and drop the excluded columns
        if not include:
            excluded = {col for param in requested for col in param.columns}
            kept = []
            for name, columns in self.parameter_columns.items():
                remaining = [col for col in columns if col not in excluded]
                if len(remaining) == len(columns):
                    kept.append(self._resolve_one(name))
                else:
                    kept.extend(
                        self._resolve_one(self.column_names[col]) for col in remaining
                    )
            requested = kept

        return ParameterSelector(
            parameters=tuple(requested),
            labels=tuple(
                self.column_names[col] for param in requested for col in param.columns
            ),
        )
