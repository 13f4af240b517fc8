"""
Fit the cos(theta) distribution of one or more event files and write the fit record as JSON.

Usage: python -m hjfit -i events.dat [more.dat ...] -o fit.json
"""

import argparse, sys, time
from .errors import FitError
from .fit import Fitter, FitSettings
from .io import load_events, write_record
from .settings import DEFAULT_N_BINS, DEFAULT_RANGE

def make_parser():
    parser = argparse.ArgumentParser(
                prog="hjfit",
                description="Fit the angular distribution of weighted events with a binned chi2 and an unbinned likelihood. Input files are packed (weight, mass, cos_theta) doubles or FITS tables with COS_THETA and WEIGHT columns.")
    parser.add_argument("inputs", nargs="*", help="Input event files")
    parser.add_argument("-i", "--input", dest="extra_inputs", nargs="+", default=[], help="Input event files")
    parser.add_argument("-o", "--output", required=True, help="Output JSON file")
    parser.add_argument("--bins", type=int, default=DEFAULT_N_BINS, help=f"Number of histogram bins [{DEFAULT_N_BINS}]")
    parser.add_argument("--range", type=float, nargs=2, default=DEFAULT_RANGE, metavar=("LO", "HI"), help="cos(theta) range of the histogram [-1 1]")
    parser.add_argument("--phi2", type=float, default=None, help="Fix the phase of the c2 term to this value")
    parser.add_argument("--print-level", type=int, default=0, choices=(-1, 0, 1),
                        help="-1 - quiet (also suppress all warnings), 0 - normal (default), 1 - verbose")
    parser.add_argument("--strict", action="store_true", help="Fail on events outside the range and on empty bins")
    parser.add_argument("--workers", type=int, default=1, help="Threads used to evaluate the likelihood")
    return parser

def main(argv=None):
    args = make_parser().parse_args(argv)
    inputs = args.inputs + args.extra_inputs
    if len(inputs) == 0:
        print("No input files given", file=sys.stderr)
        return 1
    verbose = args.print_level >= 0

    try:
        start = time.time()
        for name in inputs:
            if verbose:
                print(f"Input file: {name}")
        sample = load_events(inputs)
        if verbose:
            print(f"Read time: {time.time() - start:.3f}s")

        settings = FitSettings()
        settings.set_binning(args.bins, *args.range)
        if args.phi2 is not None:
            settings.fix_phi2(args.phi2)
        settings.set_print_level(args.print_level)
        settings.set_strict(args.strict)
        settings.set_workers(args.workers)

        start = time.time()
        run = Fitter(sample, settings).fit()
        if verbose:
            print(f"Fit time: {time.time() - start:.3f}s")
        write_record(run, args.output)
    except (FitError, OSError, KeyError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if verbose:
        print(run)
        print(f"Wrote fit record to {args.output}")
    return 0

if __name__ == "__main__":
    sys.exit(main())
