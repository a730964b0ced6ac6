"""
Dataset providers: seeded demo corpus and CSV table directories.
"""

from .demo import generate_demo_dataset
from .io import read_dataset_dir, write_dataset_dir

__all__ = ["generate_demo_dataset", "read_dataset_dir", "write_dataset_dir"]
