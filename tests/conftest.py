"""
Shared test fixtures for StanFitPy tests.

The main fixture mimics an eight-schools run: 4 chains of 1000 iterations, the
first 500 of which are warmup, with parameters ``mu``, ``tau``, ``theta[1..8]``
and ``lp__``.
"""

import numpy as np
import pytest

from stanfitpy import FitResult

N_ITERATIONS = 1000
N_WARMUP = 500
N_CHAINS = 4
PAR_DIMS = {"mu": (), "tau": (), "theta": (8,), "lp__": ()}
MODEL_CODE = """data {
  int<lower=0> J;
  array[J] real y;
  array[J] real<lower=0> sigma;
}
parameters {
  real mu;
  real<lower=0> tau;
  vector[J] theta;
}
model {
  theta ~ normal(mu, tau);
  y ~ normal(theta, sigma);
}
"""


def make_draws(rng, n_iterations=N_ITERATIONS, n_chains=N_CHAINS, n_columns=11):
    """
    Independent normal draws with a distinct location for every column.

    Parameters
    ----------
    rng : np.random.Generator
        Source of randomness.
    n_iterations, n_chains, n_columns : int
        Shape of the returned array.

    Returns
    -------
    np.ndarray
        Array of shape ``(n_iterations, n_chains, n_columns)``.
    """
    locations = np.arange(n_columns, dtype=float)
    return rng.normal(loc=locations, size=(n_iterations, n_chains, n_columns))


def make_sampler_params(rng, n_iterations=N_ITERATIONS, n_chains=N_CHAINS):
    """Well-behaved NUTS diagnostics of shape ``(n_iterations, n_chains)``."""
    shape = (n_iterations, n_chains)
    return {
        "accept_stat__": rng.uniform(0.7, 1.0, size=shape),
        "stepsize__": np.full(shape, 0.35),
        "treedepth__": rng.integers(1, 5, size=shape),
        "n_leapfrog__": rng.integers(1, 31, size=shape),
        "divergent__": np.zeros(shape, dtype=np.int64),
        "energy__": rng.normal(size=shape),
    }


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def raw_draws(rng):
    """The array backing the eight-schools fit."""
    return make_draws(rng)


@pytest.fixture
def sampler_params(rng):
    return make_sampler_params(rng)


@pytest.fixture
def inits():
    return [
        {"mu": float(chain), "tau": 1.0, "theta": np.linspace(-1, 1, 8) * chain}
        for chain in range(N_CHAINS)
    ]


@pytest.fixture
def elapsed_time():
    return np.array([[0.12, 0.20], [0.15, 0.21], [0.11, 0.19], [0.13, 0.25]])


@pytest.fixture
def fit(raw_draws, sampler_params, inits, elapsed_time):
    """Eight-schools MCMC fit with every piece of metadata recorded."""
    return FitResult(
        raw_draws,
        PAR_DIMS,
        n_warmup=N_WARMUP,
        sampler_params=sampler_params,
        model_name="eight_schools",
        model_code=MODEL_CODE,
        inits=inits,
        seed=20240517,
        elapsed_time=elapsed_time,
        attrs={"max_depth": 10},
    )


@pytest.fixture
def bare_fit(raw_draws):
    """Same draws as ``fit``, without sampler diagnostics or metadata."""
    return FitResult(raw_draws, PAR_DIMS, n_warmup=N_WARMUP)


@pytest.fixture
def variational_fit(rng):
    """Single-chain approximate draws from a variational fit."""
    return FitResult(
        make_draws(rng, n_iterations=1000, n_chains=1, n_columns=3),
        {"mu": (), "beta": (2,)},
        mode="variational",
        model_name="regression",
        seed=7,
    )
