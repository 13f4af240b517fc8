import copy, time, warnings
import numpy as np
from .fit_settings import FitSettings
from .minimizer import BoundedMinimizer
from .objectives import Chi2Objective, NegLogLikelihoodObjective
from ..errors import ConfigurationError, DomainError
from ..histogram import WeightedHistogram
from ..settings import PARAMETER_NAMES

class FitRun:
    """The output of `Fitter.fit`: both estimators evaluated with both objectives, and the
    normalized histogram the chi2 fit was performed on."""
    def __init__(self, chi2_result, logl_result, histogram, n_refits, ratios):
        self.chi2_result = chi2_result
        self.logl_result = logl_result
        self.histogram = histogram
        self.n_refits = n_refits
        self.ratios = ratios

    @property
    def results(self):
        return {"chi2": self.chi2_result, "logl": self.logl_result}

    @property
    def refit(self):
        return self.n_refits > 0

    def to_record(self):
        """The structured record handed to reporting: per-estimator parameters with errors, both
        objective values, and the normalized histogram as [density, error, count] per bin."""
        axis = self.histogram.axis
        return {
            "axis": {"n_bins": axis.n_bins, "lo": axis.lo, "hi": axis.hi},
            "entries": self.histogram.entries(),
            "hist": self.histogram.to_record(),
            "fits": {
                name: result.to_record(axis.n_bins) for (name, result) in self.results.items()
            },
            "refit": self.refit,
        }

    def __str__(self):
        text = f"{self.chi2_result}\n\n{self.logl_result}\n\n"
        text += f"Events: {self.histogram.entries()}\n"
        text += f"chi2 ratios: {', '.join(f'{r:.4g}' for r in self.ratios)}; re-fits: {self.n_refits}"
        return text

    def __repr__(self):
        return str(self)


class Fitter:
    """Fits the angular model to a weighted event sample with two estimators, a binned chi2 and an
    unbinned likelihood, and reconciles them."""
    def __init__(self, sample, fit_settings=None, minimizer=None):
        """Prepare the fitter

        # Arguments:
        * sample: an EventSample. Events with cos(theta) outside [-1, 1] are left out of both fits
            with a warning, or raise a DomainError in strict mode.
        * fit_settings (optional): a FitSettings object. Default settings are used if None. The
            settings are copied, so editing them afterwards does not affect this Fitter.
        * minimizer (optional): the object used to minimize both objectives. Default is a
            BoundedMinimizer configured from the settings.

        # Returns:
        * A Fitter object
        """
        if len(sample) == 0:
            raise ConfigurationError("Please provide a non-empty EventSample")

        self.fit_settings = copy.deepcopy(fit_settings if fit_settings is not None else FitSettings())
        self.fit_settings.finalize()
        settings = self.fit_settings

        if minimizer is None:
            minimizer = BoundedMinimizer(settings.max_iterations, print_level=settings.print_level)
        self.minimizer = minimizer

        with warnings.catch_warnings():
            if settings.print_level < 0:
                warnings.simplefilter("ignore")
            self.sample = Fitter.select_events(sample, settings.strict)
            self.histogram = WeightedHistogram.from_sample(self.sample, settings.axis(), strict=settings.strict)
            self.histogram.normalize(self.sample.total_weight())
            self.chi2_objective = Chi2Objective(self.histogram, strict=settings.strict)
        self.logl_objective = NegLogLikelihoodObjective(self.sample, n_workers=settings.n_workers)

    def select_events(sample, strict=False):
        """Return the events of `sample` with cos(theta) in [-1, 1], so that both objectives see the
        same data. The caller's sample is not modified."""
        outside = (sample.evt_angles < -1) | (sample.evt_angles > 1)
        if not np.any(outside):
            return sample
        message = f"{np.sum(outside)} events have cos(theta) outside [-1, 1] and are excluded from both fits"
        if strict:
            raise DomainError(message)
        warnings.warn(message)
        selected = copy.copy(sample)
        selected.retain(~outside)
        if len(selected) == 0:
            raise ConfigurationError("No events have cos(theta) in [-1, 1]")
        return selected

    def __repr__(self):
        out = "Fitter:\n"
        for name, fixed, (lo, hi) in zip(PARAMETER_NAMES, self.fit_settings.fixed, self.fit_settings.bounds):
            state = "free" if fixed is None else f"fixed to {fixed}"
            out += f"{name}:\t{state} in [{lo}, {hi}]\n"
        out += f"{self.sample}, {self.histogram.axis}"
        return out

    def run_minimizer(self, objective, seed):
        settings = self.fit_settings
        return self.minimizer.minimize(objective, seed, settings.bounds, settings.fixed_mask())

    def chi2_ratio(self, chi2_result, logl_result):
        """chi2 at the chi2 solution divided by chi2 at the logl solution"""
        chi2_at_chi2 = self.chi2_objective(chi2_result.values)
        chi2_at_logl = self.chi2_objective(logl_result.values)
        if chi2_at_logl == 0:
            return np.inf if chi2_at_chi2 > 0 else 1.
        return chi2_at_chi2 / chi2_at_logl

    def evaluate(self, result):
        """Attach both objective values at the solution to a FitResult"""
        return result.with_objective_values(
            self.chi2_objective(result.values), self.logl_objective(result.values))

    def fit(self, chi2_seed=None):
        """
        Run the chi2 fit, seed the likelihood fit with its result, and redo the chi2 fit from the
        likelihood result if the chi2 fit is much worse by its own measure.

        # Arguments:
        * chi2_seed (optional): starting point of the first chi2 fit. Default is the settings'
            initial values (all zero unless set). Fixed parameters always take their fixed values.

        # Returns:
        * A FitRun. ConvergenceFailure and DomainError from the minimizer are propagated.
        """
        settings = self.fit_settings
        try:
            with warnings.catch_warnings():
                if settings.print_level < 0:
                    warnings.simplefilter("ignore")
                run = self.run_sequence(chi2_seed)
        finally:
            self.logl_objective.close()
        return run

    def run_sequence(self, chi2_seed=None):
        settings = self.fit_settings
        start = time.time()

        seed = settings.initial_params()
        if chi2_seed is not None:
            free = ~settings.fixed_mask()
            seed[free] = np.array(chi2_seed, dtype=float)[free]

        chi2_result = self.run_minimizer(self.chi2_objective, seed)
        logl_result = self.run_minimizer(self.logl_objective, chi2_result.values)

        ratios = [self.chi2_ratio(chi2_result, logl_result)]
        n_refits = 0
        while n_refits < settings.max_refits and ratios[-1] > settings.refit_ratio:
            if settings.print_level >= 0:
                print(f"chi2 ratio {ratios[-1]:.4g} > {settings.refit_ratio}; redoing the chi2 fit from the logl parameters")
            chi2_result = self.run_minimizer(self.chi2_objective, logl_result.values)
            ratios.append(self.chi2_ratio(chi2_result, logl_result))
            n_refits += 1

        run = FitRun(self.evaluate(chi2_result), self.evaluate(logl_result), self.histogram, n_refits, ratios)

        if settings.print_level >= 1:
            print(run)
            print(f"Fit time: {time.time() - start:.3f}s")
        return run
