"""
Response formatting utilities for the RO Train Design MCP Server.

Also builds result snapshots with a deterministic run id for an external
persistence collaborator.
"""

import hashlib
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from .constants import FT2_TO_M2, M3H_TO_GPM, PSI_TO_BAR
from .helpers import convert_numpy_types, max_element_imbalance
from .schemas import SCHEMA_VERSION_INPUT, StageState, SystemResult

logger = logging.getLogger(__name__)


def _canonicalize_floats(obj: Any, precision: int = 12) -> Any:
    """Round floats for stable hashing."""
    if isinstance(obj, float):
        return float(f"{obj:.{precision}g}")
    if isinstance(obj, dict):
        return {k: _canonicalize_floats(v, precision) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_canonicalize_floats(v, precision) for v in obj]
    return obj


def canonical_dumps(data: Dict[str, Any]) -> str:
    """Canonical JSON (sorted keys, compact separators) for hashing."""
    return json.dumps(
        _canonicalize_floats(convert_numpy_types(data)),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def deterministic_run_id(
    tool_name: str,
    input_payload: Dict[str, Any],
    schema_version: str = SCHEMA_VERSION_INPUT,
) -> str:
    """
    Run id from the SHA-256 of the canonical inputs.

    Identical inputs always give the same id.
    """
    content = {
        "tool": tool_name,
        "schema_version": schema_version,
        "input": input_payload,
    }
    run_id = hashlib.sha256(canonical_dumps(content).encode("utf-8")).hexdigest()[:16]
    logger.debug(f"Generated run_id: {run_id} for tool: {tool_name}")
    return run_id


def format_stage_info(stage: StageState) -> Dict[str, Any]:
    """
    Format stage information for response.

    Args:
        stage: Aggregated stage state

    Returns:
        Formatted stage information
    """
    return {
        "stage_number": stage.stage,
        "vessel_count": stage.vessel_count,
        "element_count": stage.element_count,
        "feed_flow_m3h": stage.feed_flow_m3h,
        "feed_flow_gpm": stage.feed_flow_m3h * M3H_TO_GPM,
        "feed_pressure_psi": stage.feed_pressure_psi,
        "permeate_flow_m3h": stage.permeate_flow_m3h,
        "permeate_tds_mg_l": stage.permeate_tds_mg_l,
        "concentrate_flow_m3h": stage.concentrate_flow_m3h,
        "concentrate_tds_mg_l": stage.concentrate_tds_mg_l,
        "stage_recovery": stage.recovery,
        "pressure_drop_psi": stage.pressure_drop_psi,
    }


def format_performance(result: SystemResult, membrane_area_ft2: float) -> Dict[str, Any]:
    """Headline performance numbers with metric equivalents."""
    total_elements = sum(s.element_count for s in result.stages)
    return {
        "feed_pressure_psi": result.feed_pressure_psi,
        "feed_pressure_bar": result.feed_pressure_psi * PSI_TO_BAR,
        "system_recovery": result.recovery,
        "target_recovery": result.target_recovery,
        "limiting_recovery": result.limiting_recovery,
        "total_permeate_flow_m3h": result.total_permeate_flow_m3h,
        "total_permeate_tds_mg_l": result.permeate_tds_mg_l,
        "concentrate_flow_m3h": result.concentrate_flow_m3h,
        "concentrate_tds_mg_l": result.concentrate_tds_mg_l,
        "average_flux_gfd": result.average_flux_gfd,
        "average_flux_lmh": result.average_flux_lmh,
        "average_ndp_psi": result.average_ndp_psi,
        "average_element_recovery": result.average_element_recovery,
        "concentration_polarization": result.concentration_polarization,
        "feed_osmotic_pressure_psi": result.feed_osmotic_pressure_psi,
        "concentrate_osmotic_pressure_psi": result.concentrate_osmotic_pressure_psi,
        "stage_pressure_drops_psi": result.stage_pressure_drops_psi,
        "total_membrane_area_m2": total_elements * membrane_area_ft2 * FT2_TO_M2,
    }


def format_simulation_response(result: SystemResult, membrane_area_ft2: float,
                               include_elements: bool = True) -> Dict[str, Any]:
    """
    Build the tool response for a finished simulation.

    Args:
        result: System result
        membrane_area_ft2: Element area for the metric area total
        include_elements: Whether to include per-element states

    Returns:
        JSON-serializable response dictionary
    """
    response = {
        "status": "success",
        "converged": result.converged,
        "message": result.status_message,
        "solver": {
            "status": result.status,
            "iterations": result.iterations,
            "recovery_gap_pct": result.recovery_gap_pct,
            "trace": [r.model_dump() for r in result.iteration_trace],
        },
        "membrane": {
            "model": result.membrane_model,
            "class": result.membrane_class,
        },
        "performance": format_performance(result, membrane_area_ft2),
        "stage_results": [format_stage_info(s) for s in result.stages],
        "mass_balance": {
            "effective_feed_flow_m3h": result.effective_feed_flow_m3h,
            "max_element_imbalance_m3h": max_element_imbalance(result.elements),
        },
        "design_warnings": result.design_warnings,
        "warnings": summarize_warnings(result),
        "scaling": result.scaling.model_dump() if result.scaling else None,
        "chemical_dosing": result.dosing.model_dump() if result.dosing else None,
    }
    if include_elements:
        response["elements"] = [e.model_dump() for e in result.elements]
    return convert_numpy_types(response)


def format_error_response(error: Exception) -> Dict[str, Any]:
    """Error response in the standard tool format."""
    response = {
        "status": "error",
        "error": type(error).__name__,
        "message": str(error),
    }
    last_state = getattr(error, "last_state", None)
    if last_state is not None:
        response["last_state"] = (last_state.model_dump()
                                  if hasattr(last_state, "model_dump") else last_state)
    return response


def create_result_snapshot(inputs: Dict[str, Any], result: SystemResult) -> Dict[str, Any]:
    """
    Serializable snapshot of one solve for external storage.

    The run id depends only on the inputs, so re-running identical inputs
    yields the same id.
    """
    payload = convert_numpy_types(inputs)
    return {
        "run_id": deterministic_run_id("simulate_ro_train", payload),
        "created_at": datetime.now(timezone.utc).isoformat(),
        "schema_version": result.schema_version,
        "inputs": payload,
        "result": result.model_dump(mode="json"),
    }


def summarize_warnings(result: SystemResult) -> List[str]:
    """Design and scaling warnings in one list."""
    warnings = list(result.design_warnings)
    if result.scaling:
        warnings.extend(result.scaling.warnings)
    return warnings
