from . import (
    checkpoint,
    curve,
    diagram,
    diagram_io,
    extract,
    geometry,
    params,
    relax,
    relax_run,
    session,
)

__all__ = [
    "diagram",
    "diagram_io",
    "extract",
    "geometry",
    "curve",
    "params",
    "relax",
    "relax_run",
    "session",
    "checkpoint",
]
