"""
Feed-pressure search for a target system recovery.

The solver is a small state machine:

    INITIALIZING -> ITERATING -> CONVERGED
                              -> EXHAUSTED  (iteration budget or timeout)
                              -> FAILED     (non-finite values, raises SolverError)

Each iteration runs one plant pass at the current feed pressure, compares
the achieved recovery with the target and moves the pressure by a
shrinking step. The best iteration seen is returned; the step-by-step
history is kept as a trace instead of being printed.
"""

import math
import time
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .constants import (
    EARLY_ITERATION_COUNT,
    GFD_TO_LMH,
    GPD_TO_M3H,
    INITIAL_PRESSURE_COEFFICIENTS,
    MAX_FEED_PRESSURE_PSI,
    MIN_EARLY_PRESSURE_STEP_PSI,
    MIN_PRESSURE_OSMOTIC_MULTIPLIER,
    MIN_SOLVER_ITERATIONS,
    PRESSURE_STEP_DIVISOR,
)
from .element_model import ElementEnvironment, element_design_warnings
from .exceptions import ConfigurationError, InvalidInputError, SolverError
from .membrane_catalog import MembraneProperties
from .schemas import IterationRecord, PlantTopology, SolverOptions, SystemResult
from .stage_aggregator import PassResult, RecoveryHistory, run_plant_pass

logger = logging.getLogger(__name__)


class SolverState(str, Enum):
    INITIALIZING = "initializing"
    ITERATING = "iterating"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


@dataclass
class SolverOutcome:
    """Best iteration of a finished search plus its trace."""

    state: SolverState
    message: str
    iterations: int
    feed_pressure_psi: float
    recovery: float
    difference: float
    effective_feed_flow_m3h: float
    best_pass: PassResult
    trace: List[IterationRecord] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        return self.state == SolverState.CONVERGED


def pressure_window(feed_osmotic_pressure_psi: float):
    """
    Admissible feed pressure range [1.1 π, 1500 psi].

    Raises:
        InvalidInputError: If the feed is too saline for the pressure cap
    """
    low = MIN_PRESSURE_OSMOTIC_MULTIPLIER * feed_osmotic_pressure_psi
    if low > MAX_FEED_PRESSURE_PSI:
        raise InvalidInputError(
            f"Feed osmotic pressure {feed_osmotic_pressure_psi:.0f} psi requires more than "
            f"{MAX_FEED_PRESSURE_PSI:.0f} psi feed pressure"
        )
    return low, MAX_FEED_PRESSURE_PSI


def initial_pressure_guess(feed_osmotic_pressure_psi: float, membrane_class: str) -> float:
    """Starting feed pressure: 2.2 π + 300 (seawater) or 2.0 π + 80 (brackish), clamped."""
    multiplier, offset = INITIAL_PRESSURE_COEFFICIENTS[membrane_class]
    low, high = pressure_window(feed_osmotic_pressure_psi)
    return min(high, max(low, multiplier * feed_osmotic_pressure_psi + offset))


def _pass_is_finite(result: PassResult) -> bool:
    values = [result.permeate_flow_m3h, result.permeate_tds_mg_l,
              result.concentrate_flow_m3h, result.concentrate_tds_mg_l]
    for state in result.elements:
        values.extend([state.flux_gfd, state.permeate_flow_m3h, state.outlet_pressure_psi,
                       state.concentrate_tds_mg_l])
    return all(math.isfinite(v) for v in values)


class SystemSolver:
    """
    Iterative feed-pressure search for one plant and feed.

    A solver instance owns its recovery history and trace; call solve()
    once per instance. Construction raises InvalidInputError for a bad
    target or feed flow and ConfigurationError for a topology with no
    elements.
    """

    def __init__(
        self,
        topology: PlantTopology,
        membrane: MembraneProperties,
        feed_flow_m3h: float,
        feed_tds_mg_l: float,
        feed_osmotic_pressure_psi: float,
        tcf: float,
        target_recovery: float,
        options: Optional[SolverOptions] = None,
    ):
        if not 0 < target_recovery < 1:
            raise InvalidInputError(f"Target recovery must be between 0 and 1, got {target_recovery}")
        if feed_flow_m3h <= 0:
            raise InvalidInputError(f"Feed flow must be positive, got {feed_flow_m3h}")
        if topology.total_elements == 0:
            raise ConfigurationError("Topology contains no membrane elements")

        self.topology = topology
        self.membrane = membrane
        self.feed_flow_m3h = feed_flow_m3h
        self.feed_tds_mg_l = feed_tds_mg_l
        self.feed_osmotic_pressure_psi = feed_osmotic_pressure_psi
        self.target_recovery = target_recovery
        self.options = options or SolverOptions()

        self.env = ElementEnvironment(
            membrane=membrane,
            feed_osmotic_pressure_psi=feed_osmotic_pressure_psi,
            feed_tds_mg_l=feed_tds_mg_l,
            tcf=tcf,
            fouling_factor=self.options.fouling_factor,
            flow_factor=self.options.flow_factor,
            permeate_pressure_psi=self.options.permeate_pressure_psi,
        )
        self.state = SolverState.INITIALIZING
        self.trace: List[IterationRecord] = []
        self._history: RecoveryHistory = {}

    @property
    def recycle_fraction(self) -> float:
        return self.options.recycle_percent / 100.0

    @property
    def effective_feed_flow_m3h(self) -> float:
        """Feed flow inflated by recycled concentrate."""
        return self.feed_flow_m3h * (1 + self.recycle_fraction * self.target_recovery)

    def achieved_recovery(self, result: PassResult) -> float:
        """Net system recovery: permeate / (1 + recycle) / feed."""
        return result.permeate_flow_m3h / (1 + self.recycle_fraction) / self.feed_flow_m3h

    def _fail(self, message: str) -> SolverError:
        self.state = SolverState.FAILED
        last = self.trace[-1] if self.trace else None
        logger.error(message)
        return SolverError(message, last_state=last)

    def solve(self) -> SolverOutcome:
        """
        Run the search.

        Returns:
            SolverOutcome for the best iteration (CONVERGED or EXHAUSTED)

        Raises:
            InvalidInputError: If the pressure window is empty
            SolverError: If an iteration produces non-finite values
        """
        self.state = SolverState.INITIALIZING
        self.trace = []
        self._history = {}

        low, high = pressure_window(self.feed_osmotic_pressure_psi)
        pressure = initial_pressure_guess(self.feed_osmotic_pressure_psi, self.membrane.membrane_class)
        step = pressure / 4
        effective_flow = self.effective_feed_flow_m3h
        limit = self.options.iteration_limit
        timeout = self.options.timeout_seconds
        tolerance = self.options.convergence_tolerance_pct

        logger.debug(
            f"Solving {self.topology.array_notation} array, target recovery "
            f"{self.target_recovery:.1%}, initial pressure {pressure:.1f} psi "
            f"(window {low:.1f}-{high:.1f} psi)"
        )

        self.state = SolverState.ITERATING
        best: Optional[PassResult] = None
        best_record: Optional[IterationRecord] = None
        start = time.monotonic()
        iteration = 0

        while iteration < limit or iteration < MIN_SOLVER_ITERATIONS:
            if (timeout is not None and iteration >= MIN_SOLVER_ITERATIONS
                    and time.monotonic() - start > timeout):
                logger.warning(f"Solver timed out after {iteration} iterations ({timeout} s)")
                break
            iteration += 1

            result = run_plant_pass(self.topology, effective_flow, self.feed_tds_mg_l,
                                    pressure, self.env, self.target_recovery, self._history)
            if not _pass_is_finite(result):
                raise self._fail(f"Non-finite plant state at iteration {iteration}, pressure {pressure:.1f} psi")

            recovery = self.achieved_recovery(result)
            difference = abs(recovery - self.target_recovery)
            if not math.isfinite(recovery):
                raise self._fail(f"Non-finite recovery at iteration {iteration}")

            record = IterationRecord(iteration=iteration, feed_pressure_psi=pressure,
                                     recovery=recovery, difference=difference)
            self.trace.append(record)
            logger.debug(
                f"Iteration {iteration}: recovery={recovery:.2%} vs target="
                f"{self.target_recovery:.2%}, pressure={pressure:.1f} psi"
            )

            if best_record is None or difference < best_record.difference:
                best, best_record = result, record
            self._history = result.recovery_history

            if difference * 100 < tolerance and iteration >= MIN_SOLVER_ITERATIONS:
                self.state = SolverState.CONVERGED
                break

            pressure = pressure + step if recovery < self.target_recovery else pressure - step
            step /= PRESSURE_STEP_DIVISOR
            if iteration < EARLY_ITERATION_COUNT:
                step = max(step, MIN_EARLY_PRESSURE_STEP_PSI)
            pressure = min(high, max(low, pressure))

        if self.state == SolverState.CONVERGED:
            message = (f"Converged in {iteration} iterations "
                       f"(difference: {best_record.difference * 100:.2f}%)")
            logger.info(message)
        else:
            self.state = SolverState.EXHAUSTED
            message = (f"Did not converge after {iteration} iterations. "
                       f"Best difference: {best_record.difference * 100:.2f}%")
            logger.warning(message)

        return SolverOutcome(
            state=self.state,
            message=message,
            iterations=iteration,
            feed_pressure_psi=best_record.feed_pressure_psi,
            recovery=best_record.recovery,
            difference=best_record.difference,
            effective_feed_flow_m3h=effective_flow,
            best_pass=best,
            trace=list(self.trace),
        )


def limiting_recovery(feed_pressure_psi: float, total_pressure_drop_psi: float,
                      permeate_pressure_psi: float, feed_osmotic_pressure_psi: float,
                      polarization: float, rejection: float) -> float:
    """
    Recovery at which the concentrate-end NDP reaches zero.

    D = P_feed - ΣΔP - P_permeate
    Y = (D - CP π) / (D - CP π (1 - R)), clamped to [0, 1)
    """
    driving = feed_pressure_psi - total_pressure_drop_psi - permeate_pressure_psi
    osmotic = polarization * feed_osmotic_pressure_psi
    denominator = driving - osmotic * (1 - rejection)
    if driving <= osmotic or denominator <= 0:
        return 0.0
    return min(max((driving - osmotic) / denominator, 0.0), 0.999)


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def build_system_result(solver: SystemSolver, outcome: SolverOutcome, tcf: float) -> SystemResult:
    """Summarize the best iteration into a SystemResult (no scaling or dosing)."""
    membrane = solver.membrane
    best = outcome.best_pass
    elements = best.elements
    n_elements = solver.topology.total_elements

    gross_permeate_gpd = best.permeate_flow_m3h / GPD_TO_M3H
    average_flux = gross_permeate_gpd / (n_elements * membrane.area_ft2)
    polarization = _mean([e.polarization_factor for e in elements])
    stage_drops = best.stage_pressure_drops_psi

    concentrate_osmotic = (
        solver.feed_osmotic_pressure_psi * best.concentrate_tds_mg_l / solver.feed_tds_mg_l
        if solver.feed_tds_mg_l > 0 else 0.0
    )

    warnings: List[str] = []
    for state in elements:
        warnings.extend(element_design_warnings(state, membrane))
    if any(e.recovery_capped for e in elements):
        warnings.append(
            f"Element recovery limited to {membrane.max_element_recovery:.0%} "
            f"({membrane.membrane_class} class) in "
            f"{sum(1 for e in elements if e.recovery_capped)} element(s)"
        )

    return SystemResult(
        status=outcome.state.value,
        status_message=outcome.message,
        converged=outcome.converged,
        iterations=outcome.iterations,
        recovery_gap_pct=outcome.difference * 100,
        membrane_model=membrane.model,
        membrane_class=membrane.membrane_class,
        feed_pressure_psi=outcome.feed_pressure_psi,
        target_recovery=solver.target_recovery,
        recovery=outcome.recovery,
        limiting_recovery=limiting_recovery(
            outcome.feed_pressure_psi, sum(stage_drops), solver.options.permeate_pressure_psi,
            solver.feed_osmotic_pressure_psi, polarization, membrane.rejection),
        average_flux_gfd=average_flux,
        average_flux_lmh=average_flux * GFD_TO_LMH,
        total_permeate_flow_m3h=best.permeate_flow_m3h / (1 + solver.recycle_fraction),
        permeate_tds_mg_l=best.permeate_tds_mg_l,
        concentrate_flow_m3h=best.concentrate_flow_m3h,
        concentrate_tds_mg_l=best.concentrate_tds_mg_l,
        average_element_recovery=_mean([e.recovery for e in elements]),
        concentration_polarization=polarization,
        concentrate_osmotic_pressure_psi=concentrate_osmotic,
        stage_pressure_drops_psi=stage_drops,
        feed_osmotic_pressure_psi=solver.feed_osmotic_pressure_psi,
        feed_tds_mg_l=solver.feed_tds_mg_l,
        average_ndp_psi=_mean([e.ndp_psi for e in elements]),
        effective_feed_flow_m3h=outcome.effective_feed_flow_m3h,
        temperature_correction_factor=tcf,
        elements=elements,
        stages=best.stages,
        iteration_trace=outcome.trace,
        design_warnings=warnings,
    )


def solve_ro_system(
    topology: PlantTopology,
    membrane: MembraneProperties,
    feed_flow_m3h: float,
    feed_tds_mg_l: float,
    feed_osmotic_pressure_psi: float,
    tcf: float,
    target_recovery: float,
    options: Optional[SolverOptions] = None,
) -> SystemResult:
    """Find the feed pressure for the target recovery and summarize the result."""
    solver = SystemSolver(topology, membrane, feed_flow_m3h, feed_tds_mg_l,
                          feed_osmotic_pressure_psi, tcf, target_recovery, options)
    outcome = solver.solve()
    return build_system_result(solver, outcome, tcf)
