"""
Single membrane element transport model.

Solution-diffusion style water flux driven by net driving pressure, with
concentration polarization from the element recovery, a hard single-pass
recovery cap per membrane class and an empirical feed-channel pressure
drop. Based on the FilmTec design equations used across the package.
"""

import math
import logging
from typing import List, NamedTuple

from .constants import (
    ELEMENT_DP_COEFFICIENT,
    ELEMENT_DP_EXPONENT,
    GFD_TO_LMH,
    GPD_TO_M3H,
    M3H_TO_GPM,
    MAX_PERMEATE_TDS_FRACTION,
    MIN_PERMEATE_TDS_MG_L,
    POLARIZATION_EXPONENT,
)
from .exceptions import InvalidOperatingPointError
from .membrane_catalog import MembraneProperties
from .schemas import ElementState

logger = logging.getLogger(__name__)


class ElementEnvironment(NamedTuple):
    """Plant-wide inputs shared by every element in one pass."""

    membrane: MembraneProperties
    feed_osmotic_pressure_psi: float
    feed_tds_mg_l: float
    tcf: float
    fouling_factor: float
    flow_factor: float
    permeate_pressure_psi: float


def polarization_factor(recovery: float) -> float:
    """Concentration polarization factor: exp(0.7 × element recovery)."""
    return math.exp(POLARIZATION_EXPONENT * recovery)


def element_pressure_drop_psi(feed_flow_m3h: float) -> float:
    """Feed-channel pressure drop: ΔP = 0.01 × Q_gpm^1.7 psi."""
    if feed_flow_m3h <= 0:
        return 0.0
    return ELEMENT_DP_COEFFICIENT * (feed_flow_m3h * M3H_TO_GPM) ** ELEMENT_DP_EXPONENT


def calculate_flux_gfd(ndp_psi: float, water_permeability: float,
                       tcf: float, fouling_factor: float) -> float:
    """Flux = A × NDP × TCF × FF; zero when NDP is not positive."""
    if ndp_psi <= 0:
        return 0.0
    return max(0.0, water_permeability * ndp_psi * tcf * fouling_factor)


def _check_operating_point(feed_flow_m3h: float, stage: int, vessel: int, element: int) -> None:
    if feed_flow_m3h <= 0:
        raise InvalidOperatingPointError(
            f"Element {stage}-{vessel}-{element} has non-positive feed flow {feed_flow_m3h:.4g} m³/h"
        )


def _zero_output_element(stage, vessel, element, feed_flow_m3h, feed_tds_mg_l,
                         feed_pressure_psi, osmotic_psi, polarization) -> ElementState:
    return ElementState(
        stage=stage, vessel=vessel, element=element,
        feed_flow_m3h=feed_flow_m3h,
        feed_pressure_psi=feed_pressure_psi,
        feed_tds_mg_l=feed_tds_mg_l,
        osmotic_pressure_psi=osmotic_psi,
        polarization_factor=polarization,
        ndp_psi=0.0,
        flux_gfd=0.0,
        flux_lmh=0.0,
        permeate_flow_m3h=0.0,
        permeate_tds_mg_l=0.0,
        concentrate_flow_m3h=max(feed_flow_m3h, 0.0),
        concentrate_tds_mg_l=feed_tds_mg_l,
        recovery=0.0,
        pressure_drop_psi=0.0,
        outlet_pressure_psi=max(0.0, feed_pressure_psi),
    )


def simulate_element(
    stage: int,
    vessel: int,
    element: int,
    feed_flow_m3h: float,
    feed_tds_mg_l: float,
    feed_pressure_psi: float,
    env: ElementEnvironment,
    recovery_estimate: float,
) -> ElementState:
    """
    Compute one element's operating point from its upstream feed state.

    Parameters
    ----------
    stage, vessel, element : int
        1-based position in the train
    feed_flow_m3h, feed_tds_mg_l, feed_pressure_psi : float
        Inbound feed state (the previous element's concentrate)
    env : ElementEnvironment
        Membrane properties and plant-wide scalars
    recovery_estimate : float
        Element recovery used for the polarization factor: this element's
        recovery from the previous iteration, or the system-average
        estimate when there is none

    Returns
    -------
    ElementState
        Zero-output state when the feed flow is not positive
    """
    membrane = env.membrane

    # 1. Local osmotic pressure scales with local TDS
    if env.feed_tds_mg_l > 0:
        osmotic_psi = env.feed_osmotic_pressure_psi * feed_tds_mg_l / env.feed_tds_mg_l
    else:
        osmotic_psi = 0.0

    # 2. Concentration polarization
    polarization = polarization_factor(recovery_estimate)

    try:
        _check_operating_point(feed_flow_m3h, stage, vessel, element)
    except InvalidOperatingPointError as e:
        logger.warning(f"{e}; treating element as non-producing")
        return _zero_output_element(stage, vessel, element, feed_flow_m3h, feed_tds_mg_l,
                                    feed_pressure_psi, osmotic_psi, polarization)

    # 3-4. Net driving pressure
    permeate_osmotic_psi = osmotic_psi * (1 - membrane.rejection)
    ndp = max(0.0, feed_pressure_psi
              - polarization * osmotic_psi
              - env.permeate_pressure_psi
              - permeate_osmotic_psi)

    # 5-6. Flux and permeate flow
    flux = calculate_flux_gfd(ndp, membrane.water_permeability, env.tcf, env.fouling_factor)
    permeate_gpd = flux * membrane.area_ft2 * env.flow_factor
    permeate_flow = permeate_gpd * GPD_TO_M3H

    # 7-8. Single-pass recovery cap; keep flow and flux consistent with it
    recovery = permeate_flow / feed_flow_m3h
    capped = recovery > membrane.max_element_recovery
    if capped:
        recovery = membrane.max_element_recovery
        permeate_flow = recovery * feed_flow_m3h
        flux = permeate_flow / GPD_TO_M3H / (membrane.area_ft2 * env.flow_factor)
    concentrate_flow = feed_flow_m3h - permeate_flow

    # 9. Concentrate TDS by mass balance
    concentrate_tds = feed_tds_mg_l / (1 - recovery)

    # 10. Permeate TDS from membrane-surface concentration
    surface_tds = concentrate_tds * polarization
    permeate_tds = surface_tds * (1 - membrane.rejection)
    permeate_tds = min(max(permeate_tds, MIN_PERMEATE_TDS_MG_L),
                       MAX_PERMEATE_TDS_FRACTION * feed_tds_mg_l)

    # 11. Feed-channel pressure drop
    pressure_drop = element_pressure_drop_psi(feed_flow_m3h)

    return ElementState(
        stage=stage, vessel=vessel, element=element,
        feed_flow_m3h=feed_flow_m3h,
        feed_pressure_psi=feed_pressure_psi,
        feed_tds_mg_l=feed_tds_mg_l,
        osmotic_pressure_psi=osmotic_psi,
        polarization_factor=polarization,
        ndp_psi=ndp,
        flux_gfd=flux,
        flux_lmh=flux * GFD_TO_LMH,
        permeate_flow_m3h=permeate_flow,
        permeate_tds_mg_l=permeate_tds,
        concentrate_flow_m3h=concentrate_flow,
        concentrate_tds_mg_l=concentrate_tds,
        recovery=recovery,
        recovery_capped=capped,
        pressure_drop_psi=pressure_drop,
        outlet_pressure_psi=max(0.0, feed_pressure_psi - pressure_drop),
    )


def element_design_warnings(state: ElementState, membrane: MembraneProperties) -> List[str]:
    """List exceedances of the element's flux, feed flow and pressure-drop limits."""
    label = f"Element {state.stage}-{state.vessel}-{state.element}"
    warnings = []
    if state.flux_gfd > membrane.max_flux_gfd:
        warnings.append(
            f"{label}: flux {state.flux_gfd:.1f} gfd exceeds maximum {membrane.max_flux_gfd:.1f} gfd"
        )
    feed_gpm = state.feed_flow_m3h * M3H_TO_GPM
    if feed_gpm > membrane.max_feed_flow_gpm:
        warnings.append(
            f"{label}: feed flow {feed_gpm:.1f} gpm exceeds maximum {membrane.max_feed_flow_gpm:.1f} gpm"
        )
    if state.pressure_drop_psi > membrane.max_pressure_drop_psi:
        warnings.append(
            f"{label}: pressure drop {state.pressure_drop_psi:.1f} psi exceeds maximum "
            f"{membrane.max_pressure_drop_psi:.1f} psi"
        )
    return warnings
