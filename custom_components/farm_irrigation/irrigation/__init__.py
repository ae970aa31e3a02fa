"""Zone state, moisture simulation and need evaluation for Farm Irrigation."""
from .evaluator import evaluate_need
from .moisture import MoistureSimulator
from .registry import ZoneRegistry

__all__ = [
    "evaluate_need",
    "MoistureSimulator",
    "ZoneRegistry",
]
