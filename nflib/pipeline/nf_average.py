#!/usr/bin/env python3
"""
Nearfield Averaging Pipeline

Processes raw nearfield/farfield acoustic recordings with a trigger
channel into phase-averaged, self-noise filtered waveforms:
1. Run parameters from the file name (loaders.filename_meta)
2. Raw blocks (loaders.raw_loader)
3. Calibration (calibration)
4. Actuation detection on every block (triggerProc)
5. Phase-locked averaging of all pressure channels (syncAvg)
6. Self-noise suppression of the averaged waveforms (waveletProc)

Files are independent: an error in one file is recorded and the batch
continues. Results are saved to <out_dir>/<savename>.mat as struct 'pf'.

Usage:
    python -m nflib.pipeline.nf_average SRC_DIR FILE [FILE ...] \\
        -o OUT_DIR -n NAME --cal-dir CAL_DIR [--config my.yaml] [-q]
"""

import sys
import logging
import argparse
import numpy as np
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union
import scipy.io as sio

from ..config import ConfigLoader, ProcessingConfig
from ..errors import NFError, ConfigError
from ..loaders import RawLoader, PhysicalParameters, read_physical_parameters
from ..calibration import CalibrationRepository, Calibrator
from ..triggerProc import ActuationDetector, ActuationResult
from ..syncAvg import PhaseAverager, PhaseAverageResult
from ..waveletProc import SelfNoiseFilter, SelfNoiseResult

logger = logging.getLogger(__name__)


@dataclass
class FileResult:
    """Processing output for one raw file."""
    filename: str
    physical: PhysicalParameters
    detection: List[ActuationResult]      # One entry per block
    average: PhaseAverageResult
    filtered: SelfNoiseResult

    @property
    def averaged(self) -> np.ndarray:
        return self.average.waveform

    @property
    def smoothed(self) -> np.ndarray:
        return self.filtered.waveform

    @property
    def period(self) -> int:
        return self.average.period


@dataclass
class BatchResult:
    """Outputs of a batch run, keyed by file name."""
    results: Dict[str, FileResult] = field(default_factory=dict)
    failures: Dict[str, str] = field(default_factory=dict)
    output_path: Optional[Path] = None

    @property
    def all_failed(self) -> bool:
        return not self.results and bool(self.failures)


def process_file(
    path: Union[str, Path],
    config: ProcessingConfig,
    repository: CalibrationRepository,
    verbose: bool = False,
) -> FileResult:
    """
    Run the full processing chain on one raw file.

    Args:
        path: Path to the raw file (run parameters are read from its name)
        config: Processing configuration
        repository: Calibration factor lookup
        verbose: Print per-step progress

    Returns:
        FileResult

    Raises:
        NFError: any file-fatal processing error
        OSError: file could not be read
    """
    path = Path(path)
    acq = config.acquisition

    physical = read_physical_parameters(path.name, config)

    raw = RawLoader.from_config(path, acq).load()
    if verbose:
        print(f"    Loaded {raw.shape[2]} blocks x {raw.shape[1]} channels x {raw.shape[0]} samples")

    factors = repository.factors_for(acq.pressure_channels, physical.gain)
    calibrator = Calibrator(acq)
    pressure, trigger = calibrator.split(calibrator.calibrate(raw, factors))

    detection = ActuationDetector(config.detection).detect_blocks(trigger)
    if verbose:
        counts = [d.num_events for d in detection]
        print(f"    Actuation events per block: {counts}")

    average = PhaseAverager().average(pressure, [d.events for d in detection])
    if verbose:
        print(f"    Period: {average.period} samples, {average.num_cycles} cycles "
              f"from {average.blocks_used} blocks")

    filtered = SelfNoiseFilter.from_config(config).filter(average.waveform, physical.arrival_index)
    if verbose:
        states = [s.value for s in filtered.states]
        print(f"    Self-noise filter: {states}")

    logger.info("%s: period %d, %d cycles averaged", path.name, average.period, average.num_cycles)

    return FileResult(
        filename=path.name,
        physical=physical,
        detection=detection,
        average=average,
        filtered=filtered,
    )


def _matlab_safe(value):
    """Replace values savemat cannot store (None, empty dicts) with empty arrays."""
    if value is None:
        return np.array([])
    if isinstance(value, dict):
        if not value:
            return np.array([])
        return {k: _matlab_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return np.array([_matlab_safe(v) for v in value]) if value else np.array([])
    return value


def _cell(items: Sequence) -> np.ndarray:
    cell = np.empty(len(items), dtype=object)
    for i, item in enumerate(items):
        cell[i] = item
    return cell


def save_results(
    batch: BatchResult,
    out_path: Union[str, Path],
    config: ProcessingConfig,
    extra_pp: Optional[Dict] = None,
) -> Path:
    """
    Save successful file results as MATLAB struct 'pf'.

    Fields: pp (configuration), flist, avg_wvfm, sm_wvfm, phys, period.
    Per-file fields are cell arrays in flist order.

    Args:
        batch: Batch outputs
        out_path: Target .mat path
        config: Configuration used for processing
        extra_pp: Additional entries for 'pp' (source directories, ...)

    Returns:
        Path written
    """
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    names = list(batch.results)
    results = [batch.results[n] for n in names]

    pp = config.to_dict()
    pp.update(extra_pp or {})

    pf = {
        'pp': _matlab_safe(pp),
        'flist': _cell(names),
        'avg_wvfm': _cell([r.averaged for r in results]),
        'sm_wvfm': _cell([r.smoothed for r in results]),
        'phys': _cell([_matlab_safe(r.physical.to_dict()) for r in results]),
        'period': np.array([r.period for r in results], dtype=float),
    }
    if batch.failures:
        pf['failed'] = _cell(list(batch.failures))

    sio.savemat(str(out_path), {'pf': pf})
    logger.info("Saved %d file results to %s", len(names), out_path)
    return out_path


def process_files(
    src_dir: Union[str, Path],
    flist: Sequence[str],
    out_dir: Union[str, Path],
    savename: str,
    cal_dir: Union[str, Path],
    config: Optional[ProcessingConfig] = None,
    verbose: bool = True,
) -> BatchResult:
    """
    Process a list of raw files and save the combined results.

    Args:
        src_dir: Directory holding the raw files
        flist: File names relative to src_dir
        out_dir: Output directory
        savename: Output file name without extension
        cal_dir: Directory of calibration files
        config: Processing configuration (defaults + local overrides if None)
        verbose: Print progress

    Returns:
        BatchResult with per-file results and failures
    """
    if config is None:
        config = ConfigLoader().get_processing_config()

    src_dir = Path(src_dir)
    repository = CalibrationRepository(cal_dir)
    batch = BatchResult()

    for fname in flist:
        if verbose:
            print(f"\nProcessing File: {fname}")
        try:
            batch.results[fname] = process_file(src_dir / fname, config, repository, verbose=verbose)
        except (NFError, OSError) as e:
            logger.warning("%s failed: %s", fname, e)
            batch.failures[fname] = f"{type(e).__name__}: {e}"
            if verbose:
                print(f"    ✗ {type(e).__name__}: {e}")

    if batch.results:
        batch.output_path = save_results(
            batch,
            Path(out_dir) / f"{savename}.mat",
            config,
            extra_pp={'src_dir': str(src_dir), 'flist': list(flist), 'cal_dir': str(cal_dir)},
        )
    else:
        logger.error("No file processed successfully, nothing saved")

    if verbose:
        print(f"\n{'='*60}")
        print(f"Processed {len(batch.results)}/{len(flist)} files")
        for fname, reason in batch.failures.items():
            print(f"  ✗ {fname}: {reason}")
        if batch.output_path:
            print(f"Saved: {batch.output_path}")
        print(f"{'='*60}")

    return batch


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Phase-average and self-noise filter nearfield/farfield recordings"
    )
    parser.add_argument('src_dir', type=str, help='Directory containing raw files')
    parser.add_argument('files', nargs='+', help='Raw file names (run parameters encoded in the name)')
    parser.add_argument('-o', '--out-dir', type=str, default='.', help='Output directory (default: .)')
    parser.add_argument('-n', '--name', type=str, default='nf_average', help='Output file name without extension')
    parser.add_argument('--cal-dir', type=str, required=True, help='Directory of calibration .mat files')
    parser.add_argument('--config', type=str, default=None, help='YAML file overriding processing defaults')
    parser.add_argument('-q', '--quiet', action='store_true', help='Only log warnings and errors')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    try:
        loader = ConfigLoader()
        if args.config:
            config = ProcessingConfig.from_dict(loader.load_file(args.config))
        else:
            config = loader.get_processing_config()
    except (ConfigError, OSError) as e:
        logger.error("Invalid configuration: %s", e)
        return 2

    batch = process_files(
        args.src_dir,
        args.files,
        args.out_dir,
        args.name,
        args.cal_dir,
        config=config,
        verbose=not args.quiet,
    )
    return 1 if batch.all_failed else 0


if __name__ == '__main__':
    sys.exit(main())
