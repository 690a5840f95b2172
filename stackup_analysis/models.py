"""Data models for one-dimensional tolerance stackups."""

from __future__ import annotations

import json
import math
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from stackup_analysis.config import MonteCarloConfig
from stackup_analysis.errors import ValidationError


class Distribution(Enum):
    """Statistical distribution assumed for a feature's variation."""
    NORMAL = "normal"
    UNIFORM = "uniform"
    TRIANGULAR = "triangular"
    LOGNORMAL = "lognormal"


class FeatureType(Enum):
    """Geometric kind of a dimensional feature."""
    LENGTH = "length"
    DIAMETER = "diameter"
    RADIUS = "radius"
    ANGLE = "angle"
    POSITION = "position"
    SURFACE = "surface"
    OTHER = "other"


class FeatureCategory(Enum):
    """Whether the feature is external (shaft, pin) or internal (hole, slot)."""
    EXTERNAL = "external"
    INTERNAL = "internal"


class MateType(Enum):
    """Intended kind of fit between two features."""
    CLEARANCE = "clearance"
    TRANSITION = "transition"
    INTERFERENCE = "interference"


def _new_id() -> str:
    return uuid.uuid4().hex


def _require_finite(name: str, value: float) -> None:
    if not math.isfinite(value):
        raise ValidationError(f"{name} must be a finite number, got {value!r}")


@dataclass
class Feature:
    """A single toleranced dimension of a part.

    Attributes:
        name: Descriptive name for this feature.
        nominal: Nominal dimension value.
        plus_tol: Upper tolerance (non-negative).
        minus_tol: Lower tolerance (non-negative, will be subtracted).
        distribution: Statistical distribution assumed for the feature.
        mode: Explicit peak for triangular distributions (defaults to nominal).
        id: Stable identifier used by contributions.
        component_id: Identifier of the owning component, if any.
        feature_type: Geometric kind, used by fit validation.
        category: External or internal, used for MMC/LMC.
    """
    name: str
    nominal: float
    plus_tol: float
    minus_tol: float
    distribution: Distribution = Distribution.NORMAL
    mode: Optional[float] = None
    id: str = field(default_factory=_new_id)
    component_id: str = ""
    feature_type: FeatureType = FeatureType.LENGTH
    category: FeatureCategory = FeatureCategory.EXTERNAL

    def __post_init__(self) -> None:
        if not self.id:
            raise ValidationError("feature id must be non-empty")
        _require_finite("nominal", self.nominal)
        _require_finite("plus_tol", self.plus_tol)
        _require_finite("minus_tol", self.minus_tol)
        if self.plus_tol < 0 or self.minus_tol < 0:
            raise ValidationError(
                f"tolerances must be non-negative, got +{self.plus_tol}/-{self.minus_tol}"
            )
        if self.mode is not None:
            _require_finite("mode", self.mode)

    @property
    def upper_limit(self) -> float:
        return self.nominal + self.plus_tol

    @property
    def lower_limit(self) -> float:
        return self.nominal - self.minus_tol

    @property
    def total_tolerance(self) -> float:
        """Full width of the tolerance band."""
        return self.plus_tol + self.minus_tol

    @property
    def mmc(self) -> float:
        """Maximum material condition: largest shaft, smallest hole."""
        if self.category == FeatureCategory.INTERNAL:
            return self.lower_limit
        return self.upper_limit

    @property
    def lmc(self) -> float:
        """Least material condition: smallest shaft, largest hole."""
        if self.category == FeatureCategory.INTERNAL:
            return self.upper_limit
        return self.lower_limit

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "nominal": self.nominal,
            "plus_tol": self.plus_tol,
            "minus_tol": self.minus_tol,
            "distribution": self.distribution.value,
            "mode": self.mode,
            "component_id": self.component_id,
            "feature_type": self.feature_type.value,
            "category": self.category.value,
        }

    @classmethod
    def from_dict(cls, d: dict) -> Feature:
        return cls(
            id=d.get("id") or _new_id(),
            name=d["name"],
            nominal=d["nominal"],
            plus_tol=d["plus_tol"],
            minus_tol=d["minus_tol"],
            distribution=Distribution(d.get("distribution", "normal")),
            mode=d.get("mode"),
            component_id=d.get("component_id", ""),
            feature_type=FeatureType(d.get("feature_type", "length")),
            category=FeatureCategory(d.get("category", "external")),
        )


@dataclass
class Contribution:
    """A signed reference from a stackup to one feature.

    Attributes:
        feature_id: Identifier of the referenced feature.
        direction: Signed multiplier, typically +1 or -1.
        half_count: Only half of the feature participates (symmetric features).
    """
    feature_id: str
    direction: float = 1.0
    half_count: bool = False

    def __post_init__(self) -> None:
        if not self.feature_id:
            raise ValidationError("contribution feature_id must be non-empty")
        _require_finite("direction", self.direction)
        if self.direction == 0:
            raise ValidationError("contribution direction must be non-zero")

    @property
    def weight(self) -> float:
        """Effective weight applied to the feature's value, tolerance or sigma."""
        return self.direction * (0.5 if self.half_count else 1.0)

    def to_dict(self) -> dict:
        return {
            "feature_id": self.feature_id,
            "direction": self.direction,
            "half_count": self.half_count,
        }

    @classmethod
    def from_dict(cls, d: dict) -> Contribution:
        return cls(
            feature_id=d["feature_id"],
            direction=d.get("direction", 1.0),
            half_count=d.get("half_count", False),
        )


@dataclass(frozen=True)
class SpecLimits:
    """Engineering specification limits on the assembly dimension."""
    lower: Optional[float] = None
    upper: Optional[float] = None
    target: Optional[float] = None

    def __post_init__(self) -> None:
        for name in ("lower", "upper", "target"):
            value = getattr(self, name)
            if value is not None:
                _require_finite(name, value)
        if self.lower is not None and self.upper is not None and self.lower > self.upper:
            raise ValidationError(
                f"lower spec limit {self.lower} exceeds upper spec limit {self.upper}"
            )

    @property
    def is_empty(self) -> bool:
        return self.lower is None and self.upper is None

    @property
    def width(self) -> Optional[float]:
        if self.lower is None or self.upper is None:
            return None
        return self.upper - self.lower

    def to_dict(self) -> dict:
        return {"lower": self.lower, "upper": self.upper, "target": self.target}

    @classmethod
    def from_dict(cls, d: dict) -> SpecLimits:
        return cls(lower=d.get("lower"), upper=d.get("upper"), target=d.get("target"))


@dataclass
class Stackup:
    """An ordered dimensional chain with optional specification limits.

    Attributes:
        name: Descriptive name for the stackup.
        contributions: Ordered contributions making up the chain.
        spec_limits: Optional limits used for capability and yield.
        description: Optional longer description.
        id: Stable identifier.
    """
    name: str
    contributions: list[Contribution] = field(default_factory=list)
    spec_limits: Optional[SpecLimits] = None
    description: str = ""
    id: str = field(default_factory=_new_id)

    def add(self, feature: Feature | str, direction: float = 1.0,
            half_count: bool = False) -> Contribution:
        """Append a contribution referencing ``feature`` (or its id)."""
        feature_id = feature.id if isinstance(feature, Feature) else feature
        contribution = Contribution(feature_id, direction=direction, half_count=half_count)
        self.contributions.append(contribution)
        return contribution

    def remove(self, feature_id: str) -> None:
        """Drop every contribution referencing ``feature_id``."""
        self.contributions = [c for c in self.contributions if c.feature_id != feature_id]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "spec_limits": self.spec_limits.to_dict() if self.spec_limits else None,
            "contributions": [c.to_dict() for c in self.contributions],
        }

    @classmethod
    def from_dict(cls, d: dict) -> Stackup:
        limits = d.get("spec_limits")
        return cls(
            id=d.get("id") or _new_id(),
            name=d["name"],
            description=d.get("description", ""),
            spec_limits=SpecLimits.from_dict(limits) if limits else None,
            contributions=[Contribution.from_dict(c) for c in d.get("contributions", [])],
        )


@dataclass
class Mate:
    """A fit between two features.

    Attributes:
        name: Descriptive name.
        primary_id: First feature of the pair.
        secondary_id: Second feature of the pair.
        mate_type: Intended kind of fit.
        offset: Clearance used for non-diameter pairs.
    """
    name: str
    primary_id: str
    secondary_id: str
    mate_type: MateType = MateType.CLEARANCE
    offset: float = 0.0

    def __post_init__(self) -> None:
        if self.primary_id == self.secondary_id:
            raise ValidationError("primary and secondary features cannot be the same")
        _require_finite("offset", self.offset)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "primary_id": self.primary_id,
            "secondary_id": self.secondary_id,
            "mate_type": self.mate_type.value,
            "offset": self.offset,
        }

    @classmethod
    def from_dict(cls, d: dict) -> Mate:
        return cls(
            name=d["name"],
            primary_id=d["primary_id"],
            secondary_id=d["secondary_id"],
            mate_type=MateType(d.get("mate_type", "clearance")),
            offset=d.get("offset", 0.0),
        )


def index_features(features) -> dict[str, Feature]:
    """Build the id -> Feature lookup the analyzers expect."""
    return {f.id: f for f in features}


@dataclass
class Deck:
    """A self-contained analysis input: features, one stackup, fits and MC settings."""
    stackup: Stackup
    features: dict[str, Feature] = field(default_factory=dict)
    mates: list[Mate] = field(default_factory=list)
    monte_carlo: dict = field(default_factory=dict)

    def add_feature(self, feature: Feature) -> Feature:
        self.features[feature.id] = feature
        return feature

    def save(self, path: str) -> None:
        """Save the deck to a JSON file."""
        data = {
            "features": [f.to_dict() for f in self.features.values()],
            "stackup": self.stackup.to_dict(),
            "mates": [m.to_dict() for m in self.mates],
            "monte_carlo": self.monte_carlo,
        }
        with open(path, "w") as f:
            json.dump(data, f, indent=2)

    @classmethod
    def load(cls, path: str) -> Deck:
        """Load a deck from a JSON file."""
        with open(path) as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as exc:
                raise ValidationError(f"deck {path!r} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ValidationError(
                f"malformed deck {path!r}: top level must be an object, got {type(data).__name__}"
            )
        try:
            features = [Feature.from_dict(fd) for fd in data.get("features", [])]
            stackup = Stackup.from_dict(data["stackup"])
            mates = [Mate.from_dict(md) for md in data.get("mates", [])]
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise ValidationError(f"malformed deck {path!r}: {exc}") from exc
        monte_carlo = data.get("monte_carlo") or {}
        MonteCarloConfig.from_dict(monte_carlo)
        return cls(
            stackup=stackup,
            features=index_features(features),
            mates=mates,
            monte_carlo=monte_carlo,
        )
