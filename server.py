#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
RO Train Design MCP Server

An STDIO MCP server for multi-stage reverse osmosis train simulation.
Finds the feed pressure that reaches a target recovery and reports the
element-by-element operating profile, concentrate scaling risk and
chemical dosing.
"""

# Load environment variables before any other imports
from dotenv import load_dotenv
load_dotenv()

import json
from typing import Dict, Any, Optional

import anyio
from fastmcp import FastMCP

from ro_train.chemistry import (
    conductivity_to_tds,
    normalize_composition,
    temperature_correction_factor,
    typical_composition,
)
from ro_train.config import get_full_config
from ro_train.exceptions import InvalidInputError
from ro_train.helpers import parse_array_notation, parse_vessel_elements
from ro_train.response_formatter import (
    create_result_snapshot,
    format_error_response,
    format_simulation_response,
)
from ro_train.scaling_prediction import analyze_scaling
from ro_train.schemas import FeedSpecification, PlantTopology
from ro_train.simulate_ro import (
    build_dosing_options,
    build_solver_options,
    load_membrane_catalog,
    run_ro_simulation,
)

# Configure logging for MCP - CRITICAL for protocol integrity
from ro_train.logging_config import configure_mcp_logging, get_configured_logger
configure_mcp_logging()
logger = get_configured_logger(__name__)

# Create FastMCP instance
mcp = FastMCP("RO Train Design Server")


def _parse_ion_composition(feed_ion_composition: Optional[str]) -> Dict[str, float]:
    if not feed_ion_composition:
        return {}
    try:
        parsed = json.loads(feed_ion_composition)
    except json.JSONDecodeError as e:
        raise InvalidInputError(f"Invalid JSON for feed_ion_composition: {e}") from e
    if not isinstance(parsed, dict):
        raise InvalidInputError("feed_ion_composition must be a JSON object of ion -> mg/L")
    return normalize_composition(parsed)


def _build_topology(array_notation: str, elements_per_vessel: int,
                    vessel_elements: Optional[str]) -> PlantTopology:
    stage_vessels = parse_array_notation(array_notation)
    if vessel_elements:
        return PlantTopology.from_counts(stage_vessels, parse_vessel_elements(vessel_elements))
    return PlantTopology.from_array(stage_vessels, elements_per_vessel)


@mcp.tool()
async def simulate_ro_train(
    feed_flow_m3h: float,
    target_recovery: float,
    membrane_model: str,
    array_notation: str,
    elements_per_vessel: int = 7,
    vessel_elements: Optional[str] = None,
    feed_tds_mg_l: Optional[float] = None,
    feed_ion_composition: Optional[str] = None,
    feed_conductivity_us_cm: Optional[float] = None,
    feed_temperature_c: float = 25.0,
    feed_ph: float = 7.5,
    recycle_percent: Optional[float] = None,
    iteration_limit: Optional[int] = None,
    convergence_tolerance_pct: Optional[float] = None,
    flow_factor: Optional[float] = None,
    fouling_factor: Optional[float] = None,
    permeate_pressure_psi: Optional[float] = None,
    antiscalant_enabled: Optional[bool] = None,
    antiscalant_dose_mg_l: Optional[float] = None,
    acid_enabled: Optional[bool] = None,
    acid_type: Optional[str] = None,
    target_ph: Optional[float] = None,
    include_elements: bool = True,
) -> Dict[str, Any]:
    """
    Simulate a multi-stage RO train at the feed pressure that reaches a target recovery.

    Args:
        feed_flow_m3h: Feed flow rate in m³/h
        target_recovery: Target system recovery as fraction (0-1)
        membrane_model: Catalog model name (e.g., 'ZEKINDO SW-440 HR')
        array_notation: Vessels per stage, e.g. "6:3"
        elements_per_vessel: Elements in every vessel when vessel_elements is omitted
        vessel_elements: Optional JSON per-vessel element counts, e.g. "[[7,7,7],[6,6]]"
        feed_tds_mg_l: Feed TDS in mg/L
        feed_ion_composition: Optional JSON string of ion concentrations in mg/L
        feed_conductivity_us_cm: Feed conductivity, used when TDS and ions are absent
        feed_temperature_c: Feed temperature in Celsius (default 25°C)
        feed_ph: Feed pH value (default 7.5)
        recycle_percent: Concentrate recycle in percent of design permeate
        iteration_limit, convergence_tolerance_pct, flow_factor, fouling_factor,
        permeate_pressure_psi: Solver overrides (config defaults when omitted)
        antiscalant_enabled, antiscalant_dose_mg_l, acid_enabled, acid_type,
        target_ph: Chemical dosing overrides

    Returns:
        Dictionary containing:
        - status: "success" or "error"
        - converged: Whether the recovery target was met within tolerance
        - performance: Feed pressure, recovery, flux, permeate quality
        - stage_results / elements: Per-stage and per-element states
        - scaling / chemical_dosing: Post-processing results
        - run_id: Deterministic id of the inputs

    Example:
        ```python
        result = await simulate_ro_train(
            feed_flow_m3h=100,
            target_recovery=0.45,
            membrane_model="ZEKINDO SW-440 HR",
            array_notation="10:5",
            feed_tds_mg_l=35000,
        )
        ```
    """
    request_params = {
        "feed_flow_m3h": feed_flow_m3h,
        "target_recovery": target_recovery,
        "membrane_model": membrane_model,
        "array_notation": array_notation,
        "elements_per_vessel": elements_per_vessel,
        "vessel_elements": vessel_elements,
        "feed_tds_mg_l": feed_tds_mg_l,
        "feed_ion_composition": feed_ion_composition,
        "feed_conductivity_us_cm": feed_conductivity_us_cm,
        "feed_temperature_c": feed_temperature_c,
        "feed_ph": feed_ph,
    }

    try:
        feed = FeedSpecification(
            flow_m3h=feed_flow_m3h,
            temperature_c=feed_temperature_c,
            ph=feed_ph,
            tds_mg_l=feed_tds_mg_l,
            ion_composition_mg_l=_parse_ion_composition(feed_ion_composition),
            conductivity_us_cm=feed_conductivity_us_cm,
        )
        topology = _build_topology(array_notation, elements_per_vessel, vessel_elements)
        options = build_solver_options({
            "recycle_percent": recycle_percent,
            "iteration_limit": iteration_limit,
            "convergence_tolerance_pct": convergence_tolerance_pct,
            "flow_factor": flow_factor,
            "fouling_factor": fouling_factor,
            "permeate_pressure_psi": permeate_pressure_psi,
        })
        dosing = build_dosing_options({
            "antiscalant_enabled": antiscalant_enabled,
            "antiscalant_dose_mg_l": antiscalant_dose_mg_l,
            "acid_enabled": acid_enabled,
            "acid_type": acid_type,
            "target_ph": target_ph,
        })
        catalog = load_membrane_catalog()

        # Solves are CPU-bound; keep the event loop responsive
        result = await anyio.to_thread.run_sync(
            lambda: run_ro_simulation(feed, topology, membrane_model, target_recovery,
                                      catalog, options, dosing)
        )

        response = format_simulation_response(
            result, catalog.get_properties(membrane_model).area_ft2, include_elements
        )
        snapshot_inputs = dict(request_params,
                               solver_options=options.model_dump(),
                               dosing_options=dosing.model_dump())
        response["run_id"] = create_result_snapshot(snapshot_inputs, result)["run_id"]
        return response

    except Exception as e:
        logger.error(f"Error in simulate_ro_train: {str(e)}")
        response = format_error_response(e)
        response["request"] = request_params
        return response


@mcp.tool()
async def analyze_feed_scaling(
    recovery: float,
    feed_ion_composition: Optional[str] = None,
    water_type: Optional[str] = None,
    feed_tds_mg_l: Optional[float] = None,
    feed_conductivity_us_cm: Optional[float] = None,
    feed_temperature_c: float = 25.0,
    feed_ph: float = 7.5,
) -> Dict[str, Any]:
    """
    Concentrate scaling risk of a feed water at a given recovery.

    Args:
        recovery: System recovery as fraction (0-1)
        feed_ion_composition: JSON string of ion concentrations in mg/L
        water_type: 'brackish' or 'seawater' typical composition when no ions are given
        feed_tds_mg_l: Scales the typical composition (optional)
        feed_conductivity_us_cm: Used for TDS when feed_tds_mg_l is omitted
        feed_temperature_c: Feed temperature in Celsius
        feed_ph: Feed pH

    Returns:
        Saturation ratios, LSI, tendencies, warnings and recommendations
    """
    try:
        ions = _parse_ion_composition(feed_ion_composition)
        if not ions:
            if not water_type:
                raise InvalidInputError("Provide feed_ion_composition or water_type")
            tds = feed_tds_mg_l
            if tds is None and feed_conductivity_us_cm is not None:
                tds = conductivity_to_tds(feed_conductivity_us_cm)
            ions = typical_composition(water_type, tds)

        analysis = await anyio.to_thread.run_sync(
            lambda: analyze_scaling(ions, recovery, feed_temperature_c, feed_ph)
        )
        return {
            "status": "success",
            "feed_ion_composition_mg_l": ions,
            "scaling": analysis.model_dump(),
        }
    except Exception as e:
        logger.error(f"Error in analyze_feed_scaling: {str(e)}")
        return format_error_response(e)


@mcp.tool()
async def get_membrane_catalog() -> Dict[str, Any]:
    """
    List the membrane models available to simulate_ro_train.

    Returns:
        Model name -> class, area, permeability, rejection and design limits
    """
    try:
        catalog = load_membrane_catalog()
        return {
            "status": "success",
            "count": len(catalog),
            "membranes": catalog.to_dict(),
        }
    except Exception as e:
        logger.error(f"Error in get_membrane_catalog: {str(e)}")
        return format_error_response(e)


@mcp.tool()
async def get_ro_defaults() -> Dict[str, Any]:
    """
    Get default solver and chemical dosing parameters for RO simulation.

    Returns a dictionary with:
    - solver: Iteration limit, tolerance, flow/fouling factors, permeate pressure
    - chemical_dosing: Antiscalant and acid dosing defaults
    - temperature_correction: TCF at common feed temperatures

    Example:
        ```python
        defaults = await get_ro_defaults()
        print(defaults["solver"]["iteration_limit"])  # 50
        ```
    """
    try:
        return {
            "status": "success",
            "solver": build_solver_options().model_dump(),
            "chemical_dosing": build_dosing_options().model_dump(),
            "temperature_correction": {
                f"{t}C": temperature_correction_factor(t) for t in (10, 15, 20, 25, 30, 35)
            },
            "config_sections": sorted(get_full_config()),
        }
    except Exception as e:
        logger.error(f"Error in get_ro_defaults: {str(e)}")
        return format_error_response(e)


# Main entry point
def main():
    """Run the MCP server."""
    logger.info("Starting RO Train Design MCP Server...")

    logger.info("Available tools:")
    logger.info("  - simulate_ro_train: Solve feed pressure for a target recovery")
    logger.info("  - analyze_feed_scaling: Concentrate scaling risk at a recovery")
    logger.info("  - get_membrane_catalog: List membrane models")
    logger.info("  - get_ro_defaults: Get default solver and dosing parameters")

    mcp.run()


if __name__ == "__main__":
    main()
