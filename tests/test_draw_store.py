"""
Tests for the immutable draw storage.
"""

import numpy as np
import pytest

from stanfitpy.exceptions import InconsistentChainShapeError
from stanfitpy.results.draw_store import DrawStore


@pytest.fixture
def array():
    # Value encodes (iteration, chain, column) so that positions can be checked
    iterations, chains, columns = np.meshgrid(
        np.arange(10), np.arange(3), np.arange(2), indexing="ij"
    )
    return (100 * iterations + 10 * chains + columns).astype(float)


def test_shape_properties(array):
    store = DrawStore(array, ["a", "b"], n_warmup=4)
    assert store.n_iterations == 10
    assert store.n_chains == 3
    assert store.n_columns == 2
    assert store.n_post_warmup == 6
    assert store.column_names == ("a", "b")


def test_get_drops_warmup_rows_from_the_front(array):
    store = DrawStore(array, ["a", "b"], n_warmup=4)
    post = store.get()
    assert post.shape == (6, 3, 2)
    assert post[0, 0, 0] == 400
    assert store.get(inc_warmup=True).shape == (10, 3, 2)
    np.testing.assert_array_equal(store.get([1, 0])[..., 0], post[..., 1])


def test_store_is_immutable(array):
    store = DrawStore(array, ["a", "b"])

    # Changing the source after construction has no effect
    array[0, 0, 0] = -1.0
    assert store.get(inc_warmup=True)[0, 0, 0] == 0.0

    # Changing a returned copy has no effect either
    out = store.get(inc_warmup=True)
    out[:] = -1.0
    assert store.get(inc_warmup=True)[0, 0, 0] == 0.0


def test_invalid_construction(array):
    with pytest.raises(InconsistentChainShapeError):
        DrawStore(array[:, :, 0], ["a"])
    with pytest.raises(InconsistentChainShapeError):
        DrawStore(array, ["a"])
    with pytest.raises(InconsistentChainShapeError):
        DrawStore(array, ["a", "a"])
    with pytest.raises(ValueError):
        DrawStore(array, ["a", "b"], n_warmup=11)
    with pytest.raises(ValueError):
        DrawStore(array, ["a", "b"], n_warmup=10)
    with pytest.raises(ValueError):
        DrawStore(array, ["a", "b"], n_warmup=-1)


def test_from_chains_stacks_on_the_chain_axis(array):
    chains = [array[:, chain_ind] for chain_ind in range(3)]
    store = DrawStore.from_chains(chains, ["a", "b"], n_warmup=2)
    np.testing.assert_array_equal(store.get(inc_warmup=True), array)
    assert store.n_warmup == 2


def test_from_chains_reorders_columns(array):
    chains = [array[:, 0], array[:, 1][:, ::-1]]
    store = DrawStore.from_chains(
        chains, ["a", "b"], chain_column_names=[["a", "b"], ["b", "a"]]
    )
    np.testing.assert_array_equal(store.get(inc_warmup=True), array[:, :2])


def test_from_chains_rejects_inconsistent_chains(array):
    with pytest.raises(InconsistentChainShapeError):
        DrawStore.from_chains([array[:, 0], array[:5, 1]], ["a", "b"])
    with pytest.raises(InconsistentChainShapeError):
        DrawStore.from_chains([array[:, 0], array[:, 1, :1]], ["a", "b"])
    with pytest.raises(InconsistentChainShapeError):
        DrawStore.from_chains(
            [array[:, 0], array[:, 1]],
            ["a", "b"],
            chain_column_names=[["a", "b"], ["a", "c"]],
        )
    with pytest.raises(InconsistentChainShapeError):
        DrawStore.from_chains([], ["a", "b"])
