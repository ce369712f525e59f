"""
Tests for the HMC sampler diagnostic checks.
"""

import arviz as az
import numpy as np
import pandas as pd
import pytest

from stanfitpy import FitResult, MissingFitDataError
from stanfitpy.results import diagnostics

from conftest import N_WARMUP, PAR_DIMS


def test_check_divergences():
    divergent = np.zeros((5, 2), dtype=int)
    divergent[1, 0] = divergent[4, 1] = 1
    iterations, chains = diagnostics.check_divergences({"divergent__": divergent})
    assert iterations.tolist() == [1, 4]
    assert chains.tolist() == [0, 1]


def test_check_treedepth():
    treedepth = np.array([[3, 10], [10, 4], [12, 2]])
    iterations, chains = diagnostics.check_treedepth(
        {"treedepth__": treedepth}, max_depth=10
    )
    assert list(zip(iterations.tolist(), chains.tolist())) == [(0, 1), (1, 0), (2, 0)]


def test_missing_sampler_param():
    with pytest.raises(MissingFitDataError):
        diagnostics.check_divergences({"treedepth__": np.zeros((2, 2))})


def test_ebfmi(rng):
    # White noise gives a high E-BFMI, a random walk a low one
    energy = np.stack([rng.normal(size=1000), np.cumsum(rng.normal(size=1000))], axis=1)
    ebfmi, failing = diagnostics.check_energy({"energy__": energy}, ebfmi_thresh=0.2)
    np.testing.assert_allclose(ebfmi, az.bfmi(energy.T))
    assert ebfmi[0] > 1
    assert ebfmi[1] < 0.2
    assert failing.tolist() == [1]


def test_check_rhat_ess():
    summary = pd.DataFrame(
        {"n_eff": [1000.0, 150.0, np.nan], "Rhat": [1.0, 1.2, np.nan]},
        index=["mu", "tau", "const"],
    )
    failures = diagnostics.check_rhat_ess(summary, n_chains=4)
    assert failures == {"r_hat": ["tau"], "n_eff": ["tau"]}


def test_check_rhat_ess_requires_convergence_columns():
    with pytest.raises(MissingFitDataError):
        diagnostics.check_rhat_ess(pd.DataFrame({"mean": [0.0]}), n_chains=1)


def test_diagnose_well_behaved_fit(fit, capsys):
    report = fit.diagnose()
    assert report.n_samples == 2000
    assert report.n_variables == 11
    assert len(report.sample_failures["diverged"][0]) == 0
    assert len(report.sample_failures["max_tree_depth_reached"][0]) == 0
    assert report.low_ebfmi_chains == []
    assert set(report.ebfmi) == {1, 2, 3, 4}
    assert report.variable_failures["n_eff"] == []

    printed = capsys.readouterr().out
    assert "0 of 2000 (0.00%) samples diverged." in printed
    assert "Variable diagnostic tests results' summaries:" in printed


def test_diagnose_counts_post_warmup_failures_only(raw_draws, sampler_params):
    divergent = np.zeros_like(sampler_params["divergent__"])
    divergent[:N_WARMUP] = 1
    divergent[N_WARMUP + 3, 2] = 1
    treedepth = sampler_params["treedepth__"].copy()
    treedepth[N_WARMUP + 10, 0] = 6
    fit = FitResult(
        raw_draws,
        PAR_DIMS,
        n_warmup=N_WARMUP,
        sampler_params={**sampler_params, "divergent__": divergent, "treedepth__": treedepth},
        attrs={"max_depth": 6},
    )

    report = fit.diagnose(silent=True)
    iterations, chains = report.sample_failures["diverged"]
    assert iterations.tolist() == [3]
    assert chains.tolist() == [2]
    assert len(report.sample_failures["max_tree_depth_reached"][0]) == 1
    assert not report.passed


def test_diagnose_without_sampler_params(bare_fit):
    report = bare_fit.diagnose(silent=True)
    assert report.sample_failures == {}
    assert report.ebfmi == {}


def test_diagnose_requires_mcmc(variational_fit):
    with pytest.raises(MissingFitDataError):
        variational_fit.diagnose()
