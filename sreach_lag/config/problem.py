"""
Reach-Set Problem Specification Parser.

This module defines the YAML schema for Lagrangian reach-set problems and
builds the system, target tube and options objects from it.

Example YAML format:
    problem:
      method: lag-under
      probability: 0.8

      system:
        type: lti                 # lti or ltv
        state_mat: [[1, 0.25], [0, 1]]
        input_mat: [[0.03125], [0.25]]
        input_space:
          lower: [-0.1]
          upper: [0.1]

      disturbance:
        type: gaussian
        mean: [0, 0]
        covariance: [[0.001, 0], [0, 0.001]]

      tube:
        horizon: 5
        safe_set:                 # K_0 ... K_{N-1}
          lower: [-1, -1]
          upper: [1, 1]
        target_set:               # K_N (defaults to safe_set)
          lower: [-0.5, -0.5]
          upper: [0.5, 0.5]

      options:
        bound_set_method: ellipsoid
        n_directions: 16
        max_workers: 4
        verbose: false
        ray_solver: scipy         # scipy or cvxpy

Options may also list explicit lifted ``directions``, one unit vector per
entry, which override ``n_directions``. A ``bounded_set`` option takes the
same keys as ``safe_set`` and is used as the disturbance set directly.

For an ``ltv`` system, ``state_mat``/``input_mat``/``dist_mat`` are lists of
matrices indexed by time. Instead of ``safe_set``/``target_set`` a tube can
list every set explicitly under ``sets``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
import yaml

from sreach_lag.dynamics.disturbance import GaussianDisturbance
from sreach_lag.dynamics.linear_system import LtiSystem, LtvSystem
from sreach_lag.exceptions import InvalidArgumentsError
from sreach_lag.geometry.convex_set import ConvexSet
from sreach_lag.geometry.directions import DirectionVectorSet
from sreach_lag.geometry.tube import Tube
from sreach_lag.reachability.lagrangian import LagrangianOptions, LagrangianResult, sreach_set_lag
from sreach_lag.solvers import solver_by_name


@dataclass
class SetSpec:
    """
    A polytope given as a box, a facet form or a vertex list.

    Attributes
    ----------
    lower, upper : list or None
        Box bounds
    A, b, Ae, be : list or None
        Facet form
    vertices : list or None
        Points, one per row
    """

    lower: Optional[List[float]] = None
    upper: Optional[List[float]] = None
    A: Optional[List[List[float]]] = None
    b: Optional[List[float]] = None
    Ae: Optional[List[List[float]]] = None
    be: Optional[List[float]] = None
    vertices: Optional[List[List[float]]] = None

    def __post_init__(self):
        kinds = [
            self.lower is not None or self.upper is not None,
            self.A is not None or self.Ae is not None,
            self.vertices is not None,
        ]
        if sum(kinds) != 1:
            raise InvalidArgumentsError("a set needs exactly one of: lower/upper, A/b, vertices")
        if kinds[0] and (self.lower is None or self.upper is None):
            raise InvalidArgumentsError("a box needs both lower and upper")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SetSpec":
        known = {"lower", "upper", "A", "b", "Ae", "be", "vertices"}
        unknown = set(data) - known
        if unknown:
            raise InvalidArgumentsError(f"Unknown set keys: {sorted(unknown)}")
        return cls(**{k: data[k] for k in known if k in data})

    def to_convex_set(self) -> ConvexSet:
        if self.lower is not None:
            return ConvexSet.from_box(self.lower, self.upper)
        if self.vertices is not None:
            return ConvexSet.from_vertices(np.array(self.vertices, dtype=float))
        return ConvexSet.from_facets(self.A, self.b, self.Ae, self.be)


@dataclass
class SystemSpec:
    """
    Linear system matrices.

    Attributes
    ----------
    type : str
        "lti" or "ltv"
    state_mat, input_mat, dist_mat : list
        Matrices (lists of matrices for ltv)
    input_space : SetSpec or None
        Admissible inputs; unconstrained when omitted
    """

    type: str
    state_mat: Any
    input_mat: Any = None
    dist_mat: Any = None
    input_space: Optional[SetSpec] = None

    def __post_init__(self):
        if self.type not in ("lti", "ltv"):
            raise InvalidArgumentsError(f"Unknown system type: {self.type}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SystemSpec":
        if "state_mat" not in data:
            raise InvalidArgumentsError("system.state_mat is required")
        input_space = data.get("input_space")
        return cls(
            type=data.get("type", "lti"),
            state_mat=data["state_mat"],
            input_mat=data.get("input_mat"),
            dist_mat=data.get("dist_mat"),
            input_space=SetSpec.from_dict(input_space) if input_space is not None else None,
        )

    def build(self, disturbance: Optional[GaussianDisturbance]):
        input_space = self.input_space.to_convex_set() if self.input_space is not None else None
        cls = LtiSystem if self.type == "lti" else LtvSystem
        return cls(
            np.array(self.state_mat, dtype=float),
            input_mat=None if self.input_mat is None else np.array(self.input_mat, dtype=float),
            dist_mat=None if self.dist_mat is None else np.array(self.dist_mat, dtype=float),
            input_space=input_space,
            disturbance=disturbance,
        )


@dataclass
class TubeSpec:
    """
    Target tube description.

    Attributes
    ----------
    horizon : int or None
        N; the tube has N + 1 sets
    safe_set : SetSpec or None
        Set used for K_0 ... K_{N-1}
    target_set : SetSpec or None
        Set used for K_N (defaults to safe_set)
    sets : list[SetSpec]
        Explicit K_0 ... K_N (overrides the fields above)
    """

    horizon: Optional[int] = None
    safe_set: Optional[SetSpec] = None
    target_set: Optional[SetSpec] = None
    sets: List[SetSpec] = field(default_factory=list)

    def __post_init__(self):
        if not self.sets:
            if self.horizon is None or self.safe_set is None:
                raise InvalidArgumentsError("a tube needs either 'sets' or 'horizon' and 'safe_set'")
            if self.horizon < 0:
                raise InvalidArgumentsError(f"horizon must be non-negative, got {self.horizon}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TubeSpec":
        sets = [SetSpec.from_dict(s) for s in data.get("sets", [])]
        safe = data.get("safe_set")
        target = data.get("target_set")
        return cls(
            horizon=data.get("horizon"),
            safe_set=SetSpec.from_dict(safe) if safe is not None else None,
            target_set=SetSpec.from_dict(target) if target is not None else None,
            sets=sets,
        )

    def build(self) -> Tube:
        if self.sets:
            return Tube(s.to_convex_set() for s in self.sets)
        safe = self.safe_set.to_convex_set()
        target = self.target_set.to_convex_set() if self.target_set is not None else safe
        return Tube([safe] * self.horizon + [target])


@dataclass
class ProblemSpec:
    """
    Complete Lagrangian reach-set problem.

    Attributes
    ----------
    method : str
        "lag-under" or "lag-over"
    probability : float
        Probability threshold
    system : SystemSpec
    disturbance : GaussianDisturbance or None
    tube : TubeSpec
    options : dict
        Keyword arguments for LagrangianOptions (method is filled in)
    """

    method: str
    probability: float
    system: SystemSpec
    tube: TubeSpec
    disturbance: Optional[GaussianDisturbance] = None
    options: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "ProblemSpec":
        """
        Load a problem description from a YAML file.

        Raises
        ------
        FileNotFoundError
            If the file doesn't exist
        InvalidArgumentsError
            If the YAML does not describe a valid problem
        """
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_yaml_str(cls, yaml_str: str) -> "ProblemSpec":
        """Load from a YAML string."""
        data = yaml.safe_load(yaml_str)
        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProblemSpec":
        """
        Create ProblemSpec from a parsed dictionary.

        Parameters
        ----------
        data : dict
            Parsed YAML data (expects a "problem" key or direct fields)
        """
        if "problem" in data:
            data = data["problem"]

        for key in ("system", "tube"):
            if key not in data:
                raise InvalidArgumentsError(f"problem.{key} is required")

        disturbance = None
        dist_data = data.get("disturbance")
        if dist_data is not None:
            dist_type = dist_data.get("type", "gaussian")
            if dist_type != "gaussian":
                raise InvalidArgumentsError(f"Unknown disturbance type: {dist_type}")
            disturbance = GaussianDisturbance(
                covariance=np.array(dist_data.get("covariance", [[1.0]]), dtype=float),
                mean=None if dist_data.get("mean") is None else np.array(dist_data["mean"], dtype=float),
            )

        options = dict(data.get("options", {}))
        method = data.get("method", options.get("method", "lag-under"))

        return cls(
            method=method,
            probability=float(data.get("probability", 0.8)),
            system=SystemSpec.from_dict(data["system"]),
            tube=TubeSpec.from_dict(data["tube"]),
            disturbance=disturbance,
            options=options,
        )

    def build_system(self):
        return self.system.build(self.disturbance)

    def build_tube(self) -> Tube:
        return self.tube.build()

    def build_options(self, **overrides) -> LagrangianOptions:
        kwargs = {"method": self.method}
        kwargs.update(self.options)
        kwargs.update(overrides)
        if kwargs.get("affine_restriction") is not None:
            kwargs["affine_restriction"] = np.array(kwargs["affine_restriction"], dtype=float)
        directions = kwargs.get("directions")
        if directions is not None and not isinstance(directions, DirectionVectorSet):
            try:
                kwargs["directions"] = DirectionVectorSet(np.array(directions, dtype=float, ndmin=2).T)
            except (TypeError, ValueError) as exc:
                raise InvalidArgumentsError(f"Invalid directions: {exc}") from exc
        if isinstance(kwargs.get("ray_solver"), str):
            kwargs["ray_solver"] = solver_by_name(kwargs["ray_solver"])
        if isinstance(kwargs.get("bounded_set"), dict):
            kwargs["bounded_set"] = SetSpec.from_dict(kwargs["bounded_set"]).to_convex_set()
        try:
            return LagrangianOptions(**kwargs)
        except TypeError as exc:
            raise InvalidArgumentsError(f"Invalid options: {exc}") from exc

    def solve(self, **option_overrides) -> LagrangianResult:
        """Build every object and run ``sreach_set_lag``."""
        options = self.build_options(**option_overrides)
        return sreach_set_lag(self.method, self.build_system(), self.probability, self.build_tube(), options)

    def validate(self) -> List[str]:
        """
        Build the problem objects and report non-fatal issues.

        Returns
        -------
        list[str]
            Warning messages (empty if nothing stands out)

        Raises
        ------
        InvalidArgumentsError
            If the objects cannot be built
        """
        warnings = []
        system = self.build_system()
        tube = self.build_tube()
        self.build_options()

        if tube.dim != system.state_dim:
            raise InvalidArgumentsError(
                f"tube is {tube.dim}-dimensional, system state is {system.state_dim}-dimensional"
            )
        if not 0.0 <= self.probability <= 1.0:
            raise InvalidArgumentsError(f"probability must lie in [0, 1], got {self.probability}")
        if self.disturbance is None:
            warnings.append("No disturbance given; a bounded_set must be supplied programmatically")
        if tube.horizon == 0 or self.probability == 0:
            warnings.append("Degenerate problem: the safety tube is returned unchanged")
        if self.method == "lag-under" and self.probability == 1.0:
            warnings.append("Probability 1 needs an unbounded disturbance set for lag-under")
        if system.state_dim > 4:
            warnings.append(f"State dimension {system.state_dim} makes vertex/facet conversion expensive")
        return warnings
