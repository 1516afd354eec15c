#!/usr/bin/env python3
"""
Nearfield Averaging - command line entry

Phase-averages every pressure channel of each raw file over the detected
actuation cycles, removes the actuator self-noise and saves struct 'pf'
to <out_dir>/<name>.mat.

Usage:
    python run_nf_average.py SRC_DIR FILE [FILE ...] -o OUT_DIR -n NAME --cal-dir CAL_DIR

Options:
    -o, --out-dir DIR       Output directory (default: .)
    -n, --name NAME         Output file name without extension (default: nf_average)
    --cal-dir DIR           Directory of calibration .mat files (CAL*Ch<n>*mVPa<gain>*.mat)
    --config YAML           Partial processing config overriding the defaults
    -q, --quiet             Only log warnings and errors
"""

import sys

from nflib.pipeline import main

if __name__ == '__main__':
    sys.exit(main())
