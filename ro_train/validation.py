"""
Input validation for the RO train design engine.

Input errors surface as InvalidInputError and topology problems as
ConfigurationError, both before any solver iteration runs.
"""

import math
from typing import Dict, NamedTuple

from .chemistry import (
    conductivity_to_tds,
    nacl_equivalent_composition,
    normalize_composition,
    total_dissolved_solids,
    validate_ph,
)
from .constants import ABSOLUTE_ZERO_C
from .exceptions import ConfigurationError, InvalidInputError
from .schemas import FeedSpecification, PlantTopology


class ResolvedFeed(NamedTuple):
    """Feed TDS and the composition used for osmotic pressure and scaling."""

    tds_mg_l: float
    ion_composition_mg_l: Dict[str, float]
    tds_source: str


def validate_flow_rate(flow_rate: float, param_name: str = "flow_rate") -> None:
    """Validate flow rate is positive and finite."""
    if not math.isfinite(flow_rate) or flow_rate <= 0:
        raise InvalidInputError(f"{param_name} must be positive, got {flow_rate}")


def validate_recovery_target(recovery: float) -> None:
    """Validate recovery is a fraction strictly between 0 and 1."""
    if not 0 < recovery < 1:
        raise InvalidInputError(f"Recovery {recovery} must be between 0 and 1 (exclusive)")


def validate_temperature(temp_c: float) -> None:
    if not math.isfinite(temp_c) or temp_c <= ABSOLUTE_ZERO_C:
        raise InvalidInputError(f"Temperature {temp_c} °C is at or below absolute zero")


def validate_feed(feed: FeedSpecification) -> None:
    """
    Validate a feed specification.

    Raises:
        InvalidInputError: For non-positive flow, negative concentrations,
            TDS or conductivity, pH outside [0, 14], temperature at or
            below absolute zero, or no salinity information at all
    """
    validate_flow_rate(feed.flow_m3h, "feed flow_m3h")
    validate_temperature(feed.temperature_c)
    validate_ph(feed.ph)
    normalize_composition(feed.ion_composition_mg_l)

    if feed.tds_mg_l is not None and feed.tds_mg_l < 0:
        raise InvalidInputError(f"TDS must be non-negative, got {feed.tds_mg_l}")
    if feed.conductivity_us_cm is not None and feed.conductivity_us_cm < 0:
        raise InvalidInputError(f"Conductivity must be non-negative, got {feed.conductivity_us_cm}")
    if feed.tds_mg_l is None and not feed.ion_composition_mg_l and feed.conductivity_us_cm is None:
        raise InvalidInputError("Feed requires TDS, ion composition or conductivity")


def resolve_feed(feed: FeedSpecification) -> ResolvedFeed:
    """
    Resolve feed TDS and composition.

    TDS comes from the explicit value, else the sum of the ion composition,
    else the conductivity correlation. Without an ion composition an NaCl
    equivalent of the TDS is used.
    """
    validate_feed(feed)
    ions = normalize_composition(feed.ion_composition_mg_l)

    if feed.tds_mg_l is not None:
        tds, source = float(feed.tds_mg_l), "tds"
    elif ions:
        tds, source = total_dissolved_solids(ions), "ion_composition"
    else:
        tds, source = conductivity_to_tds(feed.conductivity_us_cm), "conductivity"

    if not ions:
        ions = nacl_equivalent_composition(tds)
    return ResolvedFeed(tds_mg_l=tds, ion_composition_mg_l=ions, tds_source=source)


def validate_topology(topology: PlantTopology) -> None:
    """
    Validate a plant topology.

    Raises:
        ConfigurationError: If there are no stages, negative element counts
            or no elements in any vessel
    """
    if not topology.stages:
        raise ConfigurationError("Plant topology has no stages")
    for index, stage in enumerate(topology.stages, start=1):
        if any(n < 0 for n in stage.elements_per_vessel):
            raise ConfigurationError(f"Stage {index} has a negative element count")
    if topology.total_elements == 0:
        raise ConfigurationError("Plant topology contains no membrane elements")
