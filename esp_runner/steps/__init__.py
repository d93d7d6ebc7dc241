from .step_10_build import BuildStep
from .step_20_stage_esp import StageEspStep
from .step_30_launch import LaunchStep

__all__ = [
    "BuildStep",
    "StageEspStep",
    "LaunchStep",
]
