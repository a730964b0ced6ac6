import sys
from pathlib import Path

from bp_browser.data import generate_demo_dataset, write_dataset_dir

out_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("data/demo")

ds = generate_demo_dataset()
write_dataset_dir(ds, out_dir)
print("wrote", out_dir, ds)
