"""
Vessel and stage aggregation for one pass through the train.

Elements in a vessel run in series; vessels in a stage run in parallel on
an equal feed split; stage concentrate feeds the next stage after an
inter-stage pressure loss.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .constants import INTERSTAGE_PRESSURE_LOSS_PSI
from .element_model import ElementEnvironment, simulate_element
from .schemas import ElementState, PlantTopology, StageState, StageTopology

logger = logging.getLogger(__name__)

ElementKey = Tuple[int, int, int]
RecoveryHistory = Dict[ElementKey, float]


@dataclass
class PassResult:
    """Outcome of one plant pass at a fixed feed pressure."""

    feed_flow_m3h: float
    feed_pressure_psi: float
    elements: List[ElementState] = field(default_factory=list)
    stages: List[StageState] = field(default_factory=list)
    permeate_flow_m3h: float = 0.0
    permeate_tds_mg_l: float = 0.0
    concentrate_flow_m3h: float = 0.0
    concentrate_tds_mg_l: float = 0.0
    concentrate_pressure_psi: float = 0.0

    @property
    def recovery_history(self) -> RecoveryHistory:
        """Element recoveries keyed by (stage, vessel, element)."""
        return {(e.stage, e.vessel, e.element): e.recovery for e in self.elements}

    @property
    def stage_pressure_drops_psi(self) -> List[float]:
        return [s.pressure_drop_psi for s in self.stages]


def average_element_recovery_estimate(target_recovery: float, n_elements: int) -> float:
    """
    Per-element recovery that compounds to the target over n elements:
    1 - (1 - target)^(1/n).
    """
    if n_elements <= 0:
        return 0.0
    return 1.0 - (1.0 - target_recovery) ** (1.0 / n_elements)


def _flow_weighted(pairs: List[Tuple[float, float]]) -> float:
    total = sum(flow for flow, _ in pairs)
    if total <= 0:
        return 0.0
    return sum(flow * value for flow, value in pairs) / total


def simulate_vessel(
    stage: int,
    vessel: int,
    n_elements: int,
    feed_flow_m3h: float,
    feed_tds_mg_l: float,
    feed_pressure_psi: float,
    env: ElementEnvironment,
    default_recovery: float,
    history: Optional[RecoveryHistory] = None,
) -> List[ElementState]:
    """Run elements in series, each fed by the previous element's concentrate."""
    history = history or {}
    states = []
    flow, tds, pressure = feed_flow_m3h, feed_tds_mg_l, feed_pressure_psi
    for element in range(1, n_elements + 1):
        # Only a positive recorded recovery replaces the default
        estimate = history.get((stage, vessel, element), 0.0)
        if estimate <= 0:
            estimate = default_recovery
        state = simulate_element(stage, vessel, element, flow, tds, pressure, env, estimate)
        states.append(state)
        flow = state.concentrate_flow_m3h
        tds = state.concentrate_tds_mg_l
        pressure = state.outlet_pressure_psi
    return states


def simulate_stage(
    stage: int,
    topology: StageTopology,
    feed_flow_m3h: float,
    feed_tds_mg_l: float,
    feed_pressure_psi: float,
    env: ElementEnvironment,
    default_recovery: float,
    history: Optional[RecoveryHistory] = None,
) -> Tuple[StageState, List[ElementState]]:
    """
    Split the stage feed equally over active vessels and aggregate.

    Vessels with zero elements take no share of the feed. The caller
    guarantees at least one active vessel.
    """
    active = topology.active_vessels
    vessel_flow = feed_flow_m3h / active

    elements: List[ElementState] = []
    permeate: List[Tuple[float, float]] = []
    concentrate: List[Tuple[float, float]] = []
    min_outlet = feed_pressure_psi

    for vessel, n_elements in enumerate(topology.elements_per_vessel, start=1):
        if n_elements <= 0:
            continue
        states = simulate_vessel(stage, vessel, n_elements, vessel_flow, feed_tds_mg_l,
                                 feed_pressure_psi, env, default_recovery, history)
        elements.extend(states)
        permeate.extend((s.permeate_flow_m3h, s.permeate_tds_mg_l) for s in states)
        last = states[-1]
        concentrate.append((last.concentrate_flow_m3h, last.concentrate_tds_mg_l))
        min_outlet = min(min_outlet, min(s.outlet_pressure_psi for s in states))

    permeate_flow = sum(flow for flow, _ in permeate)
    concentrate_flow = sum(flow for flow, _ in concentrate)
    state = StageState(
        stage=stage,
        vessel_count=active,
        element_count=topology.element_count,
        feed_flow_m3h=feed_flow_m3h,
        feed_tds_mg_l=feed_tds_mg_l,
        feed_pressure_psi=feed_pressure_psi,
        permeate_flow_m3h=permeate_flow,
        permeate_tds_mg_l=_flow_weighted(permeate),
        concentrate_flow_m3h=concentrate_flow,
        concentrate_tds_mg_l=_flow_weighted(concentrate),
        recovery=permeate_flow / feed_flow_m3h if feed_flow_m3h > 0 else 0.0,
        min_outlet_pressure_psi=min_outlet,
        pressure_drop_psi=feed_pressure_psi - min_outlet,
    )
    return state, elements


def run_plant_pass(
    topology: PlantTopology,
    feed_flow_m3h: float,
    feed_tds_mg_l: float,
    feed_pressure_psi: float,
    env: ElementEnvironment,
    target_recovery: float,
    history: Optional[RecoveryHistory] = None,
) -> PassResult:
    """
    Propagate the feed through every stage at one feed pressure.

    Args:
        topology: Plant layout
        feed_flow_m3h: Effective (recycle-inflated) feed flow
        feed_tds_mg_l: System feed TDS
        feed_pressure_psi: Feed pressure at the first stage
        env: Membrane and plant-wide scalars
        target_recovery: Used for the per-element recovery estimate
        history: Element recoveries from the previous iteration

    Returns:
        PassResult with element and stage states
    """
    default_recovery = average_element_recovery_estimate(target_recovery, topology.total_elements)
    result = PassResult(feed_flow_m3h=feed_flow_m3h, feed_pressure_psi=feed_pressure_psi)

    flow, tds, pressure = feed_flow_m3h, feed_tds_mg_l, feed_pressure_psi
    outlet = feed_pressure_psi
    permeate: List[Tuple[float, float]] = []
    for index, stage_topology in enumerate(topology.stages, start=1):
        if stage_topology.active_vessels == 0:
            logger.debug(f"Stage {index} has no active vessels; passing feed through")
            continue

        stage_state, elements = simulate_stage(index, stage_topology, flow, tds, pressure,
                                               env, default_recovery, history)
        result.stages.append(stage_state)
        result.elements.extend(elements)
        permeate.append((stage_state.permeate_flow_m3h, stage_state.permeate_tds_mg_l))

        flow = stage_state.concentrate_flow_m3h
        tds = stage_state.concentrate_tds_mg_l
        outlet = stage_state.min_outlet_pressure_psi
        pressure = max(0.0, outlet - INTERSTAGE_PRESSURE_LOSS_PSI)

    result.permeate_flow_m3h = sum(f for f, _ in permeate)
    result.permeate_tds_mg_l = _flow_weighted(permeate)
    result.concentrate_flow_m3h = flow
    result.concentrate_tds_mg_l = tds
    result.concentrate_pressure_psi = outlet
    return result
