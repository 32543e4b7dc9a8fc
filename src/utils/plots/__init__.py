from .run_summary import plot_run_summary
from .separation import plot_separation
from .step_size import plot_step_size
from .stuck_beads import plot_stuck_beads

__all__ = [
    "plot_run_summary",
    "plot_separation",
    "plot_step_size",
    "plot_stuck_beads",
]
