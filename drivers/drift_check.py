import sys
from pathlib import Path

# Go up to the parent directory (..), then down into "scripts"
# This adds "../scripts" to the python search path
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "scripts"))

from check_drift import run

## THIS SCRIPT DRIVES THE DEFAULT CONFIGURATION AT TWO FRAME RATES AND REPORTS ENERGY DRIFT

run(
    config_name="default",
    frame_dt=0.15,
    frames=100,
    compare_dt=0.30,
    plot="data/sweeps/default_drift.png",
)
