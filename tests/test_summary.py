"""
Tests for posterior summaries and convergence statistics.
"""

import numpy as np
import pytest

from stanfitpy import FitResult, InvalidProbabilityError
from stanfitpy.results import diagnostics
from stanfitpy.results.summary import MEAN_ALL_CHAINS, validate_probs

DEFAULT_COLUMNS = [
    "mean",
    "se_mean",
    "sd",
    "2.5%",
    "25%",
    "50%",
    "75%",
    "97.5%",
    "n_eff",
    "Rhat",
]


def test_default_columns(fit):
    res = fit.summarize()
    assert list(res.pooled.columns) == DEFAULT_COLUMNS
    assert list(res.pooled.index) == fit.flat_par_names
    assert len(res.per_chain) == 4
    for table in res.per_chain:
        assert list(table.columns) == ["mean", "sd", "2.5%", "25%", "50%", "75%", "97.5%"]


def test_custom_probs_are_ascending(fit):
    res = fit.summarize(pars=["mu"], probs=[0.9, 0.1])
    assert list(res.pooled.columns) == ["mean", "se_mean", "sd", "10%", "90%", "n_eff", "Rhat"]
    assert res.pooled.loc["mu", "10%"] <= res.pooled.loc["mu", "90%"]


def test_descriptive_statistics(fit):
    matrix = fit.extract_matrix(["mu", "theta[3]"]).to_numpy()
    pooled = fit.summarize(["mu", "theta[3]"], probs=[0.0, 0.5, 1.0]).pooled
    np.testing.assert_allclose(pooled["mean"], matrix.mean(axis=0))
    np.testing.assert_allclose(pooled["sd"], matrix.std(axis=0, ddof=1))
    np.testing.assert_allclose(pooled["0%"], matrix.min(axis=0))
    np.testing.assert_allclose(pooled["50%"], np.median(matrix, axis=0))
    np.testing.assert_allclose(pooled["100%"], matrix.max(axis=0))


def test_per_chain_statistics(fit):
    res = fit.summarize("tau")
    per_chain = fit.extract_per_chain("tau").to_numpy()
    for chain_ind, table in enumerate(res.per_chain):
        assert table.loc["tau", "mean"] == pytest.approx(per_chain[:, chain_ind, 0].mean())


def test_per_chain_can_be_skipped(fit):
    assert fit.summarize(per_chain=False).per_chain is None


def test_convergence_on_independent_draws(fit):
    pooled = fit.summarize(per_chain=False).pooled
    assert (pooled["Rhat"] < 1.05).all()
    assert (pooled["n_eff"] <= fit.n_draws).all()
    assert (pooled["n_eff"] > 500).all()
    assert (pooled["se_mean"] > 0).all()


def _ar1(rng, n, phi):
    values = np.empty(n)
    values[0] = rng.normal()
    for ind in range(1, n):
        values[ind] = phi * values[ind - 1] + rng.normal()
    return values


def test_rhat_of_identical_chains_is_one(rng):
    # Two chains holding the same draws, once independent and once autocorrelated
    chains = np.stack([rng.normal(size=1000), _ar1(rng, 1000, 0.9)], axis=1)
    draws = np.repeat(chains[:, None, :], 2, axis=1)
    fit = FitResult(draws, {"iid": (), "ar": ()})
    pooled = fit.summarize(per_chain=False).pooled

    np.testing.assert_allclose(pooled["Rhat"], np.sqrt(999 / 1000))
    assert pooled.loc["iid", "Rhat"] == pytest.approx(1.0, abs=1e-3)
    assert pooled.loc["ar", "Rhat"] == pytest.approx(1.0, abs=1e-3)
    assert diagnostics.check_rhat_ess(pooled, n_chains=2)["r_hat"] == []


def test_rhat_flags_disagreeing_chains(rng):
    draws = rng.normal(size=(500, 4, 1)) + np.array([0.0, 0.0, 5.0, 5.0])[None, :, None]
    fit = FitResult(draws, {"x": ()})
    assert fit.summarize(per_chain=False).pooled.loc["x", "Rhat"] > 1.1


@pytest.mark.parametrize("probs", [[], [1.5], [-0.1, 0.5], [0.5, float("nan")]])
def test_invalid_probs(fit, probs):
    with pytest.raises(InvalidProbabilityError):
        fit.summarize(probs=probs)


def test_invalid_probability_carries_the_value():
    with pytest.raises(ValueError) as excinfo:
        validate_probs([0.5, 1.5])
    assert excinfo.value.value == 1.5


def test_integer_probs_give_min_and_max(fit):
    pooled = fit.summarize(["mu"], probs=[0, 1], per_chain=False).pooled
    matrix = fit.extract_matrix("mu").to_numpy()
    assert list(pooled.columns) == ["mean", "se_mean", "sd", "0%", "100%", "n_eff", "Rhat"]
    assert pooled.loc["mu", "0%"] == pytest.approx(matrix.min())
    assert pooled.loc["mu", "100%"] == pytest.approx(matrix.max())


@pytest.mark.parametrize("probs", [[2], [-1, 0], [np.int64(3)]])
def test_out_of_range_integer_probs(fit, probs):
    with pytest.raises(InvalidProbabilityError) as excinfo:
        fit.summarize(probs=probs)
    assert excinfo.value.value == [prob for prob in probs if not 0 <= prob <= 1][0]


def test_close_probs_keep_separate_columns(fit):
    res = fit.summarize(["mu"], probs=[0.5, 0.5000001])
    assert list(res.per_chain[0].columns) == ["mean", "sd", "50%", "50.00001%"]
    assert res.pooled.loc["mu", "50%"] <= res.pooled.loc["mu", "50.00001%"]


def test_indistinguishable_probs_are_rejected(fit):
    with pytest.raises(InvalidProbabilityError, match="share the column label"):
        fit.summarize(probs=[0.5, 0.5 + 1e-14])


def test_validate_probs_sorts_and_deduplicates():
    assert validate_probs([0.9, 0.1, 0.9, 0.5]) == [0.1, 0.5, 0.9]
    assert validate_probs(np.array([1.0, 0.0])) == [0.0, 1.0]


def test_variational_summary_has_no_convergence_columns(variational_fit):
    res = variational_fit.summarize(probs=[0.05, 0.95])
    assert list(res.pooled.columns) == ["mean", "sd", "5%", "95%"]
    assert list(res.pooled.index) == ["mu", "beta[1]", "beta[2]"]


def test_posterior_mean(fit):
    means = fit.get_posterior_mean(["mu", "tau"])
    assert list(means.columns) == [
        "mean-chain:1",
        "mean-chain:2",
        "mean-chain:3",
        "mean-chain:4",
        MEAN_ALL_CHAINS,
    ]
    assert means.loc["mu", MEAN_ALL_CHAINS] == pytest.approx(
        fit.extract_grouped("mu")["mu"].mean()
    )
