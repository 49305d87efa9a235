__version__ = "0.1.0"
__license__ = "Apache-2.0"


# Lazy-load heavy subpackages to avoid import cost at package init time.
import importlib
from typing import Any

__all__ = [
    "config",
    "dynamics",
    "geometry",
    "plotting",
    "reachability",
    "ConvexSet",
    "Ellipsoid",
    "Tube",
    "LtiSystem",
    "LtvSystem",
    "GaussianDisturbance",
    "LagrangianOptions",
    "sreach_set_lag",
]

_SUBMODULES = {
    "config": "sreach_lag.config",
    "plotting": "sreach_lag.plotting",
}


def __getattr__(name: str) -> Any:
    if name in _SUBMODULES:
        module = importlib.import_module(_SUBMODULES[name])
        globals()[name] = module
        return module
    raise AttributeError(f"module {__name__} has no attribute {name!r}")


# Explicitly import key modules
from . import dynamics
from . import geometry
from . import reachability
from .geometry import ConvexSet, Ellipsoid, Tube
from .dynamics import LtiSystem, LtvSystem, GaussianDisturbance
from .reachability import LagrangianOptions, sreach_set_lag
