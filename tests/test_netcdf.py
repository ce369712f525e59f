"""
Tests for ArviZ conversion and NetCDF storage of fits.
"""

import arviz as az
import numpy as np
import pytest

from stanfitpy import FitResult


def test_to_inference_data_groups(fit):
    idata = fit.to_inference_data()
    assert set(idata.groups()) == {
        "posterior",
        "sample_stats",
        "warmup_posterior",
        "warmup_sample_stats",
    }
    assert idata.posterior["theta"].shape == (4, 500, 8)
    assert idata.warmup_posterior["mu"].shape == (4, 500)
    assert idata.sample_stats["divergent__"].shape == (4, 500)
    assert idata.posterior.attrs["model_name"] == "eight_schools"


def test_inference_data_matches_draws(fit):
    idata = fit.to_inference_data()
    np.testing.assert_array_equal(
        idata.posterior["theta"].to_numpy()[:, :, 2].T,
        fit.extract_per_chain("theta[3]").to_numpy()[:, :, 0],
    )


def test_arviz_summary_agrees(fit):
    ours = fit.summarize(["mu"], per_chain=False).pooled
    theirs = az.summary(fit.to_inference_data(), var_names=["mu"], round_to="none")
    assert ours.loc["mu", "mean"] == pytest.approx(theirs.loc["mu", "mean"])
    assert ours.loc["mu", "sd"] == pytest.approx(theirs.loc["mu", "sd"])
    assert ours.loc["mu", "se_mean"] == pytest.approx(theirs.loc["mu", "mcse_mean"])


def test_rhat_is_the_classic_estimator(fit):
    ours = fit.summarize(["mu"], per_chain=False).pooled
    theirs = az.rhat(fit.to_inference_data(), var_names=["mu"], method="identity")
    assert ours.loc["mu", "Rhat"] == pytest.approx(float(theirs["mu"]))


def test_netcdf_round_trip(fit, tmp_path):
    path = fit.save_netcdf(str(tmp_path / "eight_schools.nc"))
    loaded = FitResult.from_disk(path)

    assert loaded.par_dims == fit.par_dims
    assert loaded.n_warmup == fit.n_warmup
    assert loaded.chain_ids == fit.chain_ids
    np.testing.assert_array_equal(
        loaded.extract_per_chain(inc_warmup=True).to_numpy(),
        fit.extract_per_chain(inc_warmup=True).to_numpy(),
    )
    for ours, theirs in zip(loaded.get_sampler_params(), fit.get_sampler_params()):
        np.testing.assert_array_equal(ours.to_numpy(), theirs.to_numpy())

    assert loaded.get_model_source() == fit.get_model_source()
    assert loaded.get_seed() == fit.get_seed()
    np.testing.assert_allclose(
        loaded.get_elapsed_time().to_numpy(), fit.get_elapsed_time().to_numpy()
    )
    np.testing.assert_allclose(
        loaded.get_init_values()[3]["theta"], fit.get_init_values()[3]["theta"]
    )
    assert loaded.attrs["max_depth"] == 10


def test_round_trip_without_metadata(variational_fit, tmp_path):
    path = variational_fit.save_netcdf(str(tmp_path / "vb.nc"))
    loaded = FitResult.from_disk(path)
    assert loaded.mode == "variational"
    assert loaded.n_warmup == 0
    assert loaded.sampler_param_names == []
    np.testing.assert_array_equal(
        loaded.extract_matrix().to_numpy(), variational_fit.extract_matrix().to_numpy()
    )


def test_from_disk_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        FitResult.from_disk(str(tmp_path / "missing.nc"))
