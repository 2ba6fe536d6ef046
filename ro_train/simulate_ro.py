"""
RO train simulation: validate -> solve -> post-process -> result.

Configuration is turned into explicit option objects here
(build_solver_options / build_dosing_options); the solver itself never
reads configuration.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from .chemical_dosing import ChemicalDosingCalculator
from .chemistry import osmotic_pressure_psi, temperature_correction_factor
from .config import get_config
from .exceptions import ConfigurationError, InvalidInputError
from .membrane_catalog import MembraneCatalog
from .ro_solver import solve_ro_system
from .scaling_prediction import analyze_scaling
from .schemas import (
    DosingOptions,
    FeedSpecification,
    PlantTopology,
    SolverOptions,
    SystemResult,
)
from .validation import resolve_feed, validate_recovery_target, validate_topology

logger = logging.getLogger(__name__)


def _merge_options(section: str, overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    values = dict(get_config(section, {}) or {})
    values.update({k: v for k, v in (overrides or {}).items() if v is not None})
    return values


def build_solver_options(overrides: Optional[Dict[str, Any]] = None) -> SolverOptions:
    """
    SolverOptions from the 'solver' config section plus explicit overrides.

    Raises:
        InvalidInputError: If an override is out of range
    """
    try:
        return SolverOptions(**_merge_options("solver", overrides))
    except ValidationError as e:
        raise InvalidInputError(f"Invalid solver options: {e}") from e


def build_dosing_options(overrides: Optional[Dict[str, Any]] = None) -> DosingOptions:
    """
    DosingOptions from the 'chemical_dosing' config section plus overrides.

    Raises:
        InvalidInputError: If an override is out of range
    """
    try:
        return DosingOptions(**_merge_options("chemical_dosing", overrides))
    except ValidationError as e:
        raise InvalidInputError(f"Invalid dosing options: {e}") from e


def run_ro_simulation(
    feed: FeedSpecification,
    topology: PlantTopology,
    membrane_model: str,
    target_recovery: float,
    catalog: MembraneCatalog,
    options: Optional[SolverOptions] = None,
    dosing: Optional[DosingOptions] = None,
) -> SystemResult:
    """
    Simulate an RO train at the feed pressure that reaches the target recovery.

    Args:
        feed: Feed water specification
        topology: Stages, vessels and elements
        membrane_model: Catalog model name
        target_recovery: Target system recovery (fraction)
        catalog: Membrane catalog to look the model up in
        options: Solver controls (defaults if omitted)
        dosing: Chemical dosing options (defaults if omitted)

    Returns:
        SystemResult with scaling analysis and chemical dosing attached.
        A non-converged search still returns a result with
        converged=False.

    Raises:
        InvalidInputError: Out-of-domain feed or recovery
        ConfigurationError: Unknown membrane model or unusable topology
        SolverError: Numerical breakdown during iteration
    """
    options = options or SolverOptions()
    dosing = dosing or DosingOptions()

    validate_topology(topology)
    validate_recovery_target(target_recovery)
    resolved = resolve_feed(feed)
    membrane = catalog.get_properties(membrane_model)

    tcf = temperature_correction_factor(feed.temperature_c)
    feed_osmotic = osmotic_pressure_psi(resolved.ion_composition_mg_l, feed.temperature_c)

    logger.info(
        f"Starting RO simulation for {topology.array_notation} array "
        f"({topology.total_vessels} vessels, {topology.total_elements} x {membrane.model})"
    )
    logger.info(
        f"Feed: {feed.flow_m3h:.1f} m³/h, TDS {resolved.tds_mg_l:.0f} mg/L "
        f"(from {resolved.tds_source}), π = {feed_osmotic:.1f} psi, TCF = {tcf:.3f}"
    )

    result = solve_ro_system(
        topology, membrane, feed.flow_m3h, resolved.tds_mg_l, feed_osmotic,
        tcf, target_recovery, options,
    )

    scaling = analyze_scaling(resolved.ion_composition_mg_l, result.recovery,
                              feed.temperature_c, feed.ph)
    chemical_dosing = ChemicalDosingCalculator(dosing).calculate(feed.flow_m3h, feed.ph)

    logger.info(f"System recovery: {result.recovery:.1%} at {result.feed_pressure_psi:.1f} psi")
    logger.info(f"Permeate TDS: {result.permeate_tds_mg_l:.0f} mg/L")

    return result.model_copy(update={"scaling": scaling, "dosing": chemical_dosing})


def load_membrane_catalog() -> MembraneCatalog:
    """Membrane catalog from configuration."""
    try:
        return MembraneCatalog.from_config()
    except ConfigurationError:
        logger.error("Membrane catalog could not be loaded from configuration")
        raise
