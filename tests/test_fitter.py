"""End-to-end tests of the chi2 + likelihood fit and its re-fit policy"""

import numpy as np
import pytest
from hjfit import ConfigurationError, ConvergenceFailure, DomainError, EventSample
from hjfit.fit import BoundedMinimizer, FitResult, FitSettings, Fitter, NegLogLikelihoodObjective
from hjfit.settings import PARAMETER_NAMES

# A point far from the generating parameters, used to imitate a chi2 fit stuck in a bad minimum
BAD_SEED = np.array([-0.3, 0.0, 0.0, 0.0])


class StuckOnceMinimizer(BoundedMinimizer):
    """Returns the seed of the first chi2 minimization unchanged"""
    def __init__(self):
        super().__init__()
        self.stuck = False
        self.calls = []

    def minimize(self, objective, initial, bounds=None, fixed=None):
        self.calls.append(objective.name)
        if objective.name == "chi2" and not self.stuck:
            self.stuck = True
            values = np.array(initial, dtype=float)
            return FitResult(values, np.zeros(4), fixed, objective(values), "chi2")
        return super().minimize(objective, initial, bounds, fixed)


def make_settings(n_bins=40):
    settings = FitSettings()
    settings.set_binning(n_bins)
    settings.fix_phi2(0)
    return settings


@pytest.fixture(scope="module")
def run(synthetic_sample):
    return Fitter(synthetic_sample, make_settings()).fit()


def test_recovers_truth(run, truth):
    for result in (run.chi2_result, run.logl_result):
        np.testing.assert_allclose(result.values[:3], truth[:3], atol=0.05)
        assert result.values[3] == 0
        assert result.errors[3] == 0
        assert np.all(result.errors[:3] > 0)
        assert np.all(result.errors[:3] < 0.05)
        assert result.converged or "ABNORMAL" in str(result.message).upper()


def test_objective_values_at_solutions(run):
    chi2, logl = run.chi2_result, run.logl_result
    # Each estimator is best by its own objective
    assert chi2.chi2 <= logl.chi2 * (1 + 1e-6)
    assert logl.logl <= chi2.logl + 1e-6 * abs(chi2.logl)
    assert run.ratios[-1] <= 2.0
    # 40 bins, 3 free parameters: chi2 / ndf should be of order one
    assert 0.2 < chi2.chi2_per_dof(40) < 3


def test_record(run):
    record = run.to_record()
    assert record["axis"] == {"n_bins": 40, "lo": -1.0, "hi": 1.0}
    assert record["entries"] == 100_000
    assert len(record["hist"]) == 40
    assert sum(count for (_, _, count) in record["hist"]) == 100_000
    width = 2 / 40
    assert np.isclose(sum(density for (density, _, _) in record["hist"]) * width, 1)
    assert set(record["fits"]) == {"chi2", "logl"}
    for name in ("chi2", "logl"):
        fit = record["fits"][name]
        for param in PARAMETER_NAMES:
            value, error = fit[param]
            assert isinstance(value, float) and isinstance(error, float)
        assert fit["phi2"] == [0.0, 0.0]
        assert isinstance(fit["chi2"], float)
        assert isinstance(fit["logl"], float)
        assert fit["chi2_ndf"] == pytest.approx(fit["chi2"] / 37)


def test_refit_recovers_from_bad_minimum(synthetic_sample, truth):
    minimizer = StuckOnceMinimizer()
    run = Fitter(synthetic_sample, make_settings(), minimizer=minimizer).fit(chi2_seed=BAD_SEED)
    assert run.refit
    assert run.n_refits == 1
    assert run.ratios[0] > 2.0
    assert run.ratios[1] <= 2.0
    assert minimizer.calls == ["chi2", "logl", "chi2"]
    np.testing.assert_allclose(run.chi2_result.values[:3], truth[:3], atol=0.05)


def test_refit_disabled(synthetic_sample):
    settings = make_settings()
    settings.set_refit_policy(max_refits=0)
    run = Fitter(synthetic_sample, settings, minimizer=StuckOnceMinimizer()).fit(chi2_seed=BAD_SEED)
    assert not run.refit
    assert len(run.ratios) == 1
    np.testing.assert_allclose(run.chi2_result.values, BAD_SEED)


def test_refit_runs_at_most_once(synthetic_sample):
    """Even with a threshold that is always exceeded, the chi2 fit is only redone once"""
    settings = make_settings()
    settings.set_refit_policy(ratio=1e-9)
    run = Fitter(synthetic_sample, settings).fit()
    assert run.n_refits == 1
    assert len(run.ratios) == 2


def test_iteration_budget_is_reported(small_sample):
    settings = make_settings(10)
    settings.set_max_iterations(1)
    settings.set_print_level(-1)
    with pytest.raises(ConvergenceFailure) as excinfo:
        Fitter(small_sample, settings).fit()
    assert excinfo.value.result is not None


def test_invalid_configuration(small_sample):
    settings = FitSettings()
    for name in PARAMETER_NAMES:
        settings.fix_param(name, 0)
    with pytest.raises(ConfigurationError):
        Fitter(small_sample, settings)

    settings = FitSettings()
    settings.set_binning(0)
    with pytest.raises(ConfigurationError):
        Fitter(small_sample, settings)

    settings = FitSettings()
    settings.set_binning(10, 1, -1)
    with pytest.raises(ConfigurationError):
        Fitter(small_sample, settings)

    with pytest.raises(ConfigurationError):
        FitSettings().fix_param("c8", 0)

    with pytest.raises(ConfigurationError):
        Fitter(EventSample([], []))


def test_settings_are_copied(small_sample):
    settings = make_settings(10)
    fitter = Fitter(small_sample, settings)
    settings.free_param("phi2")
    assert fitter.fit_settings.fixed[3] == 0


def test_empty_bins_are_excluded():
    """Events only in the central region leave the outer bins empty"""
    rng = np.random.default_rng(4)
    sample = EventSample(rng.uniform(-0.5, 0.5, 5000))
    settings = make_settings(8)
    with pytest.warns(UserWarning, match="zero variance"):
        fitter = Fitter(sample, settings)
    np.testing.assert_array_equal(fitter.chi2_objective.excluded_bins, [0, 1, 6, 7])


def test_events_outside_domain_are_dropped():
    """Both objectives see the same events, and the histogram still integrates to one"""
    sample = EventSample([-0.5, -0.2, 0.0, 0.5, 3.0], [1.0, 2.0, 1.0, 1.0, 5.0])
    settings = FitSettings()
    settings.set_binning(2)
    with pytest.warns(UserWarning, match="outside"):
        fitter = Fitter(sample, settings)

    assert len(sample) == 5
    assert len(fitter.sample) == 4
    assert fitter.histogram.entries() == 4
    np.testing.assert_allclose(fitter.histogram.densities(), [0.6, 0.4])
    np.testing.assert_allclose(np.sum(fitter.histogram.densities()) * fitter.histogram.axis.width, 1)

    inside = NegLogLikelihoodObjective(EventSample([-0.5, -0.2, 0.0, 0.5], [1.0, 2.0, 1.0, 1.0]))
    params = (0.4, 0.0, 0.0, 0.0)
    assert fitter.logl_objective(params) == pytest.approx(inside(params), rel=1e-14)

    settings.set_strict()
    with pytest.raises(DomainError):
        Fitter(sample, settings)


def test_worker_threads_are_released(synthetic_sample, run):
    settings = make_settings()
    settings.set_workers(2)
    fitter = Fitter(synthetic_sample, settings)
    threaded = fitter.fit()
    assert fitter.logl_objective.pool is None
    np.testing.assert_allclose(threaded.logl_result.values, run.logl_result.values, atol=1e-8)
