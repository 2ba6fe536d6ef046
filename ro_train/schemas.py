"""
Pydantic schemas for the RO train design engine.

Defines data contracts for inputs, per-element and per-stage states and
the system result handed to presentation and persistence collaborators.
Physical-domain checks (negative concentrations, pH range, absolute zero)
live in validation.py so they surface as InvalidInputError.
"""

from typing import Dict, List, Optional, Sequence, Union
from pydantic import BaseModel, Field, ConfigDict

# Schema versions
SCHEMA_VERSION_INPUT = "1.0.0"
SCHEMA_VERSION_RESULTS = "1.0.0"


# ============================================================================
# Input Schemas
# ============================================================================

class StageTopology(BaseModel):
    """One stage: element count for each vessel in parallel (0 = unused)."""

    elements_per_vessel: List[int] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def active_vessels(self) -> int:
        return sum(1 for n in self.elements_per_vessel if n > 0)

    @property
    def element_count(self) -> int:
        return sum(n for n in self.elements_per_vessel if n > 0)


class PlantTopology(BaseModel):
    """Ordered stages of an RO train."""

    stages: List[StageTopology] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_array(cls, vessels_per_stage: Union[str, Sequence[int]],
                   elements_per_vessel: int = 7) -> "PlantTopology":
        """
        Build a uniform topology from array notation.

        Example: "6:3" with 7 elements -> 6 vessels then 3 vessels of 7.
        """
        if isinstance(vessels_per_stage, str):
            vessels_per_stage = [int(n) for n in vessels_per_stage.split(':') if n.strip()]
        return cls(stages=[
            StageTopology(elements_per_vessel=[elements_per_vessel] * int(n))
            for n in vessels_per_stage
        ])

    @classmethod
    def from_counts(cls, stage_vessels: Sequence[int],
                    vessel_elements: Sequence[Sequence[int]]) -> "PlantTopology":
        """Build from vessels per stage and per-vessel element counts."""
        stages = []
        for i, n_vessels in enumerate(stage_vessels):
            counts = list(vessel_elements[i]) if i < len(vessel_elements) else []
            counts = (counts + [0] * n_vessels)[:n_vessels]
            stages.append(StageTopology(elements_per_vessel=counts))
        return cls(stages=stages)

    @property
    def total_elements(self) -> int:
        return sum(stage.element_count for stage in self.stages)

    @property
    def total_vessels(self) -> int:
        return sum(stage.active_vessels for stage in self.stages)

    @property
    def array_notation(self) -> str:
        return ':'.join(str(stage.active_vessels) for stage in self.stages)


class FeedSpecification(BaseModel):
    """Feed water composition and conditions."""

    flow_m3h: float = Field(..., description="Feed flow rate in m³/h")
    temperature_c: float = Field(25.0, description="Feed temperature in Celsius")
    ph: float = Field(7.5, description="Feed pH")
    tds_mg_l: Optional[float] = Field(None, description="Total dissolved solids in mg/L")
    ion_composition_mg_l: Dict[str, float] = Field(
        default_factory=dict,
        description="Ion concentrations in mg/L (e.g., {'Na+': 1500, 'Cl-': 2400})"
    )
    conductivity_us_cm: Optional[float] = Field(None, description="Feed conductivity in µS/cm")

    model_config = ConfigDict(frozen=True)


class SolverOptions(BaseModel):
    """Outer-loop solver controls and plant-wide scalars."""

    iteration_limit: int = Field(50, ge=1)
    convergence_tolerance_pct: float = Field(0.1, gt=0, description="Recovery tolerance in percentage points")
    recycle_percent: float = Field(0.0, ge=0, le=100)
    flow_factor: float = Field(0.85, gt=0)
    fouling_factor: float = Field(0.8, gt=0)
    permeate_pressure_psi: float = Field(14.7, ge=0)
    timeout_seconds: Optional[float] = Field(30.0, gt=0)

    model_config = ConfigDict(frozen=True)


class DosingOptions(BaseModel):
    """Chemical dosing configuration."""

    antiscalant_enabled: bool = False
    antiscalant_dose_mg_l: float = Field(3.0, ge=0)
    antiscalant_cost_usd_kg: float = Field(2.50, ge=0)
    acid_enabled: bool = False
    acid_type: str = Field("HCl", pattern="^(HCl|H2SO4)$")
    target_ph: float = Field(7.0, ge=0, le=14)
    acid_cost_usd_kg: Dict[str, float] = Field(
        default_factory=lambda: {"HCl": 0.17, "H2SO4": 0.12})
    acid_mg_l_per_ph_unit: Dict[str, float] = Field(
        default_factory=lambda: {"HCl": 12.0, "H2SO4": 15.0})

    model_config = ConfigDict(frozen=True)


# ============================================================================
# Computed States
# ============================================================================

class ElementState(BaseModel):
    """Operating point of one membrane element in one solver iteration."""

    stage: int
    vessel: int
    element: int
    feed_flow_m3h: float
    feed_pressure_psi: float
    feed_tds_mg_l: float
    osmotic_pressure_psi: float
    polarization_factor: float
    ndp_psi: float
    flux_gfd: float
    flux_lmh: float
    permeate_flow_m3h: float
    permeate_tds_mg_l: float
    concentrate_flow_m3h: float
    concentrate_tds_mg_l: float
    recovery: float
    recovery_capped: bool = False
    pressure_drop_psi: float
    outlet_pressure_psi: float

    model_config = ConfigDict(frozen=True)


class StageState(BaseModel):
    """Aggregated stage performance."""

    stage: int
    vessel_count: int
    element_count: int
    feed_flow_m3h: float
    feed_tds_mg_l: float
    feed_pressure_psi: float
    permeate_flow_m3h: float
    permeate_tds_mg_l: float
    concentrate_flow_m3h: float
    concentrate_tds_mg_l: float
    recovery: float
    min_outlet_pressure_psi: float
    pressure_drop_psi: float

    model_config = ConfigDict(frozen=True)


class IterationRecord(BaseModel):
    """One step of the feed-pressure search."""

    iteration: int
    feed_pressure_psi: float
    recovery: float
    difference: float

    model_config = ConfigDict(frozen=True)


# ============================================================================
# Output Schemas
# ============================================================================

class ScalingAnalysis(BaseModel):
    """Concentrate scaling risk at the achieved recovery."""

    recovery: float
    concentration_factor: float
    saturation_ratios: Dict[str, float]
    scaling_tendency: Dict[str, str] = Field(default_factory=dict)
    lsi: Optional[float] = None
    feed_lsi: Optional[float] = None
    warnings: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class ChemicalDosage(BaseModel):
    """Daily consumption of one dosed chemical."""

    chemical: str
    dose_mg_l: float = Field(..., ge=0)
    daily_consumption_kg: float = Field(..., ge=0)
    daily_cost_usd: float = Field(..., ge=0)


class ChemicalDosingResult(BaseModel):
    """Chemical dosing quantities, costs and advice."""

    dosages: List[ChemicalDosage] = Field(default_factory=list)
    total_daily_cost_usd: float = 0.0
    recommendations: List[str] = Field(default_factory=list)


class SystemResult(BaseModel):
    """Best operating point found by one solve."""

    schema_version: str = Field(SCHEMA_VERSION_RESULTS)
    status: str = Field(..., pattern="^(converged|exhausted)$")
    status_message: str
    converged: bool
    iterations: int = Field(..., ge=0)
    recovery_gap_pct: float = Field(..., ge=0, description="|achieved - target| in percentage points")

    membrane_model: str
    membrane_class: str
    feed_pressure_psi: float
    target_recovery: float
    recovery: float = Field(..., ge=0, lt=1)
    limiting_recovery: float
    average_flux_gfd: float
    average_flux_lmh: float
    total_permeate_flow_m3h: float
    permeate_tds_mg_l: float
    concentrate_flow_m3h: float
    concentrate_tds_mg_l: float
    average_element_recovery: float
    concentration_polarization: float
    concentrate_osmotic_pressure_psi: float
    stage_pressure_drops_psi: List[float]
    feed_osmotic_pressure_psi: float
    feed_tds_mg_l: float
    average_ndp_psi: float
    effective_feed_flow_m3h: float
    temperature_correction_factor: float

    elements: List[ElementState]
    stages: List[StageState]
    iteration_trace: List[IterationRecord]
    design_warnings: List[str] = Field(default_factory=list)

    scaling: Optional[ScalingAnalysis] = None
    dosing: Optional[ChemicalDosingResult] = None
