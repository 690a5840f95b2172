"""Built-in example decks for demonstration."""

from stackup_analysis.models import (
    Deck,
    Distribution,
    Feature,
    FeatureCategory,
    FeatureType,
    Mate,
    MateType,
    SpecLimits,
    Stackup,
)


def create_shaft_housing_example() -> Deck:
    """Classic shaft-in-housing gap stack.

    Assembly: A shaft sits inside a housing. We want to know the gap
    between the end of the shaft and the inner wall of the housing.

    Dimension loop:
        +Housing bore depth
        -Shaft length
        -Washer thickness
        -Retaining ring width
        -Snap ring groove depth
        = Gap
    """
    stackup = Stackup(
        name="Shaft-Housing Assembly",
        description="Gap between shaft end and housing inner wall",
        spec_limits=SpecLimits(lower=0.25, upper=1.15, target=0.7),
    )
    deck = Deck(stackup=stackup, monte_carlo={"n_samples": 10_000, "seed": 42})

    housing = deck.add_feature(Feature(
        "Housing bore depth", 50.000, 0.100, 0.100, component_id="housing",
    ))
    shaft = deck.add_feature(Feature(
        "Shaft length", 45.000, 0.050, 0.050, component_id="shaft",
    ))
    washer = deck.add_feature(Feature(
        "Washer thickness", 2.000, 0.025, 0.025,
        distribution=Distribution.UNIFORM, component_id="washer",
    ))
    ring = deck.add_feature(Feature(
        "Retaining ring width", 1.500, 0.030, 0.030,
        distribution=Distribution.TRIANGULAR, component_id="ring",
    ))
    groove = deck.add_feature(Feature(
        "Snap ring groove depth", 0.800, 0.020, 0.020, component_id="shaft",
    ))

    stackup.add(housing, +1)
    for feature in (shaft, washer, ring, groove):
        stackup.add(feature, -1)
    return deck


def create_bearing_fit_example() -> Deck:
    """Bearing bore over a shaft journal, with a clearance fit check.

    The stackup measures radial clearance, so both diameters count half.
    """
    stackup = Stackup(
        name="Bearing radial clearance",
        description="Radial clearance between bearing bore and shaft journal",
        spec_limits=SpecLimits(lower=0.0, upper=0.04),
    )
    deck = Deck(stackup=stackup, monte_carlo={"n_samples": 20_000, "seed": 7})

    bore = deck.add_feature(Feature(
        "Bearing bore", 25.030, 0.010, 0.010,
        component_id="bearing",
        feature_type=FeatureType.DIAMETER,
        category=FeatureCategory.INTERNAL,
    ))
    journal = deck.add_feature(Feature(
        "Shaft journal", 24.994, 0.006, 0.006,
        component_id="shaft",
        feature_type=FeatureType.DIAMETER,
        category=FeatureCategory.EXTERNAL,
    ))

    stackup.add(bore, +1, half_count=True)
    stackup.add(journal, -1, half_count=True)
    deck.mates.append(Mate(
        "Bearing on journal", bore.id, journal.id, MateType.CLEARANCE,
    ))
    return deck


def create_simple_example() -> Deck:
    """Two Normal features added end to end."""
    stackup = Stackup(name="Two-block stack", spec_limits=SpecLimits(lower=29.7, upper=30.3))
    deck = Deck(stackup=stackup, monte_carlo={"n_samples": 10_000, "seed": 1})
    for name, nominal in (("Block A", 10.0), ("Block B", 20.0)):
        stackup.add(deck.add_feature(Feature(name, nominal, 0.1, 0.1)), +1)
    return deck


EXAMPLES = {
    "shaft": create_shaft_housing_example,
    "bearing": create_bearing_fit_example,
    "simple": create_simple_example,
}
