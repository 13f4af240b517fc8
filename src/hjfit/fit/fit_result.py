import copy
import numpy as np
from ..settings import PARAMETER_NAMES

class FitResult:
    def __init__(self, values, errors, fixed, fun, objective_name, converged=True, message="",
                 n_iterations=0, n_evaluations=0, cov=None, chi2=None, logl=None):
        """
        The outcome of one minimization.
        # Arguments
        * values: the parameter vector (c2, c4, c6, phi2) at the minimum
        * errors: the uncertainty of each parameter. Fixed parameters have zero error.
        * fixed: boolean mask of the parameters which were held constant
        * fun: the minimized objective value
        * objective_name: "chi2" or "logl"
        * cov (optional): covariance matrix of the free parameters
        * chi2, logl (optional): both objectives evaluated at `values`
        """
        self.values = np.array(values, dtype=float)
        self.errors = np.array(errors, dtype=float)
        self.fixed = np.array(fixed, dtype=bool)
        self.params = dict(zip(PARAMETER_NAMES, self.values))
        self.sigmas = dict(zip(PARAMETER_NAMES, self.errors))
        self.fun = fun
        self.objective_name = objective_name
        self.converged = converged
        self.message = message
        self.n_iterations = n_iterations
        self.n_evaluations = n_evaluations
        self.cov = cov
        self.chi2 = chi2
        self.logl = logl
        for array in (self.values, self.errors, self.fixed):
            array.flags.writeable = False

    def with_objective_values(self, chi2, logl):
        """Return a copy of this result with the chi2 and logl at the solution filled in"""
        result = copy.copy(self)
        result.chi2 = float(chi2)
        result.logl = float(logl)
        return result

    def n_free(self):
        return int(np.sum(~self.fixed))

    def chi2_per_dof(self, n_bins):
        """chi2 divided by the number of bins minus the number of free parameters"""
        if self.chi2 is None:
            return None
        dof = n_bins - self.n_free()
        if dof <= 0:
            return np.nan
        return self.chi2 / dof

    def to_record(self, n_bins=None):
        record = {}
        for name, value, error in zip(PARAMETER_NAMES, self.values, self.errors):
            record[name] = [float(value), float(error)]
        record["chi2"] = self.chi2
        record["logl"] = self.logl
        if n_bins is not None:
            chi2_ndf = self.chi2_per_dof(n_bins)
            record["chi2_ndf"] = float(chi2_ndf) if chi2_ndf is not None and np.isfinite(chi2_ndf) else None
        record["converged"] = bool(self.converged)
        return record

    def from_record(record, objective_name):
        """Rebuild a FitResult from the output of `to_record`. Parameters with zero error are read
        back as fixed."""
        values = [record[name][0] for name in PARAMETER_NAMES]
        errors = [record[name][1] for name in PARAMETER_NAMES]
        chi2 = record.get("chi2")
        logl = record.get("logl")
        return FitResult(values, errors, np.array(errors) == 0,
            chi2 if objective_name == "chi2" else logl, objective_name,
            converged=record.get("converged", True), chi2=chi2, logl=logl)

    def __str__(self):
        text = f"FitResult ({self.objective_name}):\n"
        for name, value, error, fixed in zip(PARAMETER_NAMES, self.values, self.errors, self.fixed):
            if fixed:
                text += f"\t{name} = {value:.4f} FIXED\n"
            else:
                text += f"\t{name} = {value:.4f} +/- {error:.4f}\n"
        if self.chi2 is not None:
            text += f"chi2 {self.chi2:.4f}, -2logL {self.logl:.4f}\n"
        else:
            text += f"fun {self.fun}\n"
        text += f"{self.n_iterations} iterations, {self.n_evaluations} evaluations\n"
        text += str(self.message)
        return text

    def __repr__(self):
        return str(self)
