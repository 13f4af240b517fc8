import json, os, warnings
import numpy as np
from astropy.io import fits
from .events import EventSample
from .histogram import UniformAxis, WeightedHistogram
from .fit.fit_result import FitResult

# Layout of the packed event files written by the kinematics step: one record per event
EVENT_DTYPE = np.dtype([("weight", "<f8"), ("mass", "<f8"), ("cos_theta", "<f8")])
FITS_EXTENSIONS = (".fits", ".fit", ".fits.gz")

def load_events(filenames):
    """
    Load and concatenate events from several files.
    # Arguments
    * filenames: a list of file names. Files ending in .fits are read as FITS tables, everything
    else as packed (weight, mass, cos_theta) float64 records.
    # Returns
    * An EventSample
    """
    if isinstance(filenames, str):
        filenames = [filenames]
    samples = []
    for filename in filenames:
        if not os.path.exists(filename):
            raise FileNotFoundError(f"Could not find the event file {filename}")
        if filename.lower().endswith(FITS_EXTENSIONS):
            samples.append(load_fits_events(filename))
        else:
            samples.append(load_binary_events(filename))
    return EventSample.concatenate(samples)

def load_binary_events(filename):
    """Read packed little-endian (weight, mass, cos_theta) float64 records"""
    size = os.path.getsize(filename)
    if size % EVENT_DTYPE.itemsize != 0:
        warnings.warn(f"{filename} has {size % EVENT_DTYPE.itemsize} trailing bytes which do not form a full event")
    records = np.fromfile(filename, dtype=EVENT_DTYPE, count=size // EVENT_DTYPE.itemsize)
    return EventSample(records["cos_theta"], records["weight"])

def write_binary_events(filename, sample, masses=None):
    """Write an EventSample as packed records. Masses default to zero."""
    records = np.zeros(len(sample), dtype=EVENT_DTYPE)
    records["weight"] = sample.evt_weights
    records["cos_theta"] = sample.evt_angles
    if masses is not None:
        records["mass"] = masses
    records.tofile(filename)

def load_fits_events(filename, hdu=1):
    """Read the COS_THETA and (optional) WEIGHT columns of a FITS binary table"""
    with fits.open(filename) as hdul:
        data = hdul[hdu].data
        names = [name.upper() for name in data.columns.names]
        if "COS_THETA" not in names:
            raise KeyError(f"{filename} has no COS_THETA column")
        angles = np.array(data["COS_THETA"], dtype=float)
        weights = np.array(data["WEIGHT"], dtype=float) if "WEIGHT" in names else None
    return EventSample(angles, weights)

def write_fits_events(filename, sample):
    """Write an EventSample to a FITS binary table. Overwrites `filename`."""
    columns = [
        fits.Column(name="COS_THETA", format="D", array=sample.evt_angles),
        fits.Column(name="WEIGHT", format="D", array=sample.evt_weights),
    ]
    hdu = fits.BinTableHDU.from_columns(columns)
    hdu.header["EXTNAME"] = "EVENTS"
    hdu.writeto(filename, overwrite=True)

def write_record(run, filename):
    """Write the record of a FitRun (or an already built record dictionary) as JSON"""
    record = run if isinstance(run, dict) else run.to_record()
    with open(filename, "w") as f:
        json.dump(record, f, indent=2)

def read_record(filename):
    with open(filename) as f:
        return json.load(f)

def histogram_from_record(record):
    """
    Rebuild the normalized histogram stored in a record. The raw sums are scaled so that
    normalizing with a total weight of one reproduces the stored densities.
    """
    axis = UniformAxis(record["axis"]["n_bins"], record["axis"]["lo"], record["axis"]["hi"])
    densities, errors, counts = np.transpose(np.array(record["hist"], dtype=float).reshape(-1, 3))
    hist = WeightedHistogram.from_arrays(axis, densities * axis.width, (errors * axis.width)**2, counts)
    return hist.normalize(1)

def results_from_record(record):
    """The FitResults stored in a record, keyed by estimator name"""
    return {
        name: FitResult.from_record(fit_record, name) for (name, fit_record) in record["fits"].items()
    }
