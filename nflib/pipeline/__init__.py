"""
pipeline - Batch Nearfield Averaging

Usage:
    from nflib.pipeline import process_files

    batch = process_files(src_dir, flist, out_dir, 'run42', cal_dir)
    batch.results['M0.90_T25_x4_r1.5_a8_mVf1_mV3.bin'].smoothed
"""

from .nf_average import (
    FileResult,
    BatchResult,
    process_file,
    process_files,
    save_results,
    main,
)

__all__ = [
    'FileResult',
    'BatchResult',
    'process_file',
    'process_files',
    'save_results',
    'main',
]
