"""
Fit a synthetic cos(theta) sample with both estimators and save the fit record
"""
import numpy as np
import hjfit

def fit(n_events=200_000, truth=(0.4, 0.2, 0.05, 0.0)):
    # Draw events from the model. Real samples come from the kinematics step as packed
    # (weight, mass, cos_theta) files, which you can load with hjfit.io.load_events.
    rng = np.random.default_rng(0)
    angles = hjfit.sample_angles(truth, n_events, rng)
    weights = rng.uniform(0.5, 1.5, size=n_events) # Weights independent of the angle
    sample = hjfit.EventSample(angles, weights)

    # Make a "fit settings" object, which encodes the binning and which parameters are free
    settings = hjfit.fit.FitSettings()
    settings.set_binning(40) # 40 bins on [-1, 1] for the chi2 fit. The likelihood fit is unbinned.
    settings.fix_phi2(0) # The sample was generated without a phase. Remove this line to fit phi2 too.
    settings.set_print_level(1) # Print each stage of the fit

    # Set up the fitter. Do not modify the settings object after this is done
    fitter = hjfit.fit.Fitter(sample, settings)
    print(fitter)

    # Run the chi2 fit, then the likelihood fit seeded with it. If the chi2 fit is more than twice
    # as bad (by its own measure) as the likelihood parameters, it is redone once from them.
    run = fitter.fit()
    print(f"Generated with {dict(zip(hjfit.PARAMETER_NAMES, truth))}")

    # Save the parameters, errors, objective values and normalized histogram
    hjfit.io.write_record(run, "synthetic-fit.json")

if __name__ == "__main__":
    fit()
