"""
Tests for parameter name expansion and resolution.
"""

import pytest

from stanfitpy.exceptions import InconsistentChainShapeError, UnknownParameterError
from stanfitpy.results.names import (
    ParameterIndex,
    expand_parameter_names,
    infer_parameter_dims,
    split_indexed_name,
)


@pytest.fixture
def index():
    return ParameterIndex({"mu": (), "tau": (), "theta": (3,), "Sigma": (2, 2)})


def test_split_indexed_name():
    assert split_indexed_name("mu") == ("mu", ())
    assert split_indexed_name("theta[12]") == ("theta", (12,))
    assert split_indexed_name("Sigma[2,3]") == ("Sigma", (2, 3))


def test_expand_parameter_names_is_row_major_and_one_based():
    names = expand_parameter_names({"mu": (), "Sigma": (2, 3)})
    assert names == [
        "mu",
        "Sigma[1,1]",
        "Sigma[1,2]",
        "Sigma[1,3]",
        "Sigma[2,1]",
        "Sigma[2,2]",
        "Sigma[2,3]",
    ]


def test_infer_parameter_dims_reorders_column_major_input():
    columns = ["mu", "S[1,1]", "S[2,1]", "S[1,2]", "S[2,2]", "lp__"]
    par_dims, order = infer_parameter_dims(columns)
    assert par_dims == {"mu": (), "S": (2, 2), "lp__": ()}
    assert [columns[ind] for ind in order] == [
        "mu",
        "S[1,1]",
        "S[1,2]",
        "S[2,1]",
        "S[2,2]",
        "lp__",
    ]


@pytest.mark.parametrize(
    "columns",
    [
        ["theta[1]", "theta[3]"],
        ["theta[1]", "theta[1]"],
        ["theta[1]", "theta[1,2]"],
    ],
)
def test_infer_parameter_dims_rejects_inconsistent_columns(columns):
    with pytest.raises(InconsistentChainShapeError):
        infer_parameter_dims(columns)


def test_index_layout(index):
    assert len(index) == 9
    assert index.column_names[:5] == ("mu", "tau", "theta[1]", "theta[2]", "theta[3]")
    assert index.parameter_columns["Sigma"] == (5, 6, 7, 8)
    assert "theta" in index
    assert "theta[2]" in index
    assert "theta[4]" not in index


def test_resolve_all_by_default(index):
    for pars in (None, []):
        selector = index.resolve(pars)
        assert selector.labels == index.column_names
        assert [param.name for param in selector.parameters] == [
            "mu",
            "tau",
            "theta",
            "Sigma",
        ]


def test_resolve_follows_request_order(index):
    selector = index.resolve(["theta[2]", "mu", "Sigma"])
    assert selector.labels == (
        "theta[2]",
        "mu",
        "Sigma[1,1]",
        "Sigma[1,2]",
        "Sigma[2,1]",
        "Sigma[2,2]",
    )
    assert selector.parameters[0].shape == ()
    assert selector.parameters[2].shape == (2, 2)
    assert selector.columns == [3, 0, 5, 6, 7, 8]


def test_resolve_single_string(index):
    assert index.resolve("tau").labels == ("tau",)


def test_resolve_exclusion_keeps_canonical_order(index):
    selector = index.resolve(["Sigma", "theta[2]"], include=False)
    assert selector.labels == ("mu", "tau", "theta[1]", "theta[3]")
    assert [param.name for param in selector.parameters] == [
        "mu",
        "tau",
        "theta[1]",
        "theta[3]",
    ]


def test_resolve_exclusion_of_nothing_selects_nothing(index):
    assert len(index.resolve(None, include=False)) == 0


@pytest.mark.parametrize("name", ["theta[99]", "the", "theta[1", "sigma", "Sigma[1]"])
def test_resolve_unknown_names(index, name):
    with pytest.raises(UnknownParameterError) as excinfo:
        index.resolve(["mu", name])
    assert excinfo.value.name == name
    assert name in str(excinfo.value)


def test_unknown_parameter_error_is_a_key_error(index):
    with pytest.raises(KeyError):
        index.resolve("theta[0]")


def test_base_names_cannot_hold_brackets():
    with pytest.raises(ValueError):
        ParameterIndex({"theta[1]": ()})
