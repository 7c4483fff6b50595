import sys
from pathlib import Path

# Go up to the parent directory (..), then down into "scripts"
# This adds "../scripts" to the python search path
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "scripts"))

from run_sweep import run
from orbitsweep.stability import StabilityConfig, SweepWindow

## THIS SCRIPT SWEEPS BODY 3'S VELOCITY AROUND THE DEFAULT CONFIGURATION AND SAVES A MAP TO DATA/SWEEPS

config = "default"
x_param = "vel_x_3"
y_param = "vel_y_3"

##############################################################################################

run(
    config_name=config,
    x_param=x_param,
    y_param=y_param,
    window=SweepWindow(resolution=40),
    stability=StabilityConfig(),
    save=f"data/sweeps/{config}_{x_param}_{y_param}",
    plot=True,
)
