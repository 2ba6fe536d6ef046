"""
Tests for Pydantic schemas.
"""

import pytest
from pydantic import ValidationError

from ro_train.schemas import (
    SCHEMA_VERSION_RESULTS,
    DosingOptions,
    FeedSpecification,
    IterationRecord,
    PlantTopology,
    SolverOptions,
    StageTopology,
)


class TestTopology:
    """Tests for topology construction."""

    @pytest.mark.unit
    def test_from_array_string(self):
        """Test topology from array notation."""
        topology = PlantTopology.from_array("6:3", elements_per_vessel=7)
        assert len(topology.stages) == 2
        assert topology.stages[0].elements_per_vessel == [7] * 6
        assert topology.total_elements == 63
        assert topology.total_vessels == 9
        assert topology.array_notation == "6:3"

    @pytest.mark.unit
    def test_from_array_list(self):
        """Test topology from a list of vessel counts."""
        topology = PlantTopology.from_array([1, 1, 1], elements_per_vessel=1)
        assert topology.total_elements == 3

    @pytest.mark.unit
    def test_from_counts_pads_and_truncates(self):
        """Test per-vessel element lists fitted to vessel counts."""
        topology = PlantTopology.from_counts([3, 2], [[7, 7], [6, 6, 6]])
        assert topology.stages[0].elements_per_vessel == [7, 7, 0]
        assert topology.stages[1].elements_per_vessel == [6, 6]

    @pytest.mark.unit
    def test_from_counts_missing_stage(self):
        """Test stages without element lists get empty vessels."""
        topology = PlantTopology.from_counts([2, 2], [[7, 7]])
        assert topology.stages[1].elements_per_vessel == [0, 0]
        assert topology.stages[1].active_vessels == 0

    @pytest.mark.unit
    def test_empty_vessels_not_counted(self):
        """Test empty vessels are not active."""
        stage = StageTopology(elements_per_vessel=[3, 0, 3])
        assert stage.active_vessels == 2
        assert stage.element_count == 6
        assert PlantTopology(stages=[stage]).array_notation == "2"

    @pytest.mark.unit
    def test_topology_is_frozen(self):
        """Test topology cannot be modified."""
        topology = PlantTopology.from_array("2")
        with pytest.raises(ValidationError):
            topology.stages = []


class TestOptions:
    """Tests for option models."""

    @pytest.mark.unit
    def test_solver_defaults(self):
        """Test solver option defaults."""
        options = SolverOptions()
        assert options.iteration_limit == 50
        assert options.convergence_tolerance_pct == 0.1
        assert options.recycle_percent == 0.0
        assert options.permeate_pressure_psi == 14.7

    @pytest.mark.unit
    @pytest.mark.parametrize("field,value", [
        ("iteration_limit", 0),
        ("convergence_tolerance_pct", 0.0),
        ("recycle_percent", 150.0),
        ("flow_factor", -1.0),
        ("timeout_seconds", 0.0),
    ])
    def test_solver_bounds(self, field, value):
        """Test solver option bounds."""
        with pytest.raises(ValidationError):
            SolverOptions(**{field: value})

    @pytest.mark.unit
    def test_timeout_can_be_disabled(self):
        """Test disabling the solver timeout."""
        assert SolverOptions(timeout_seconds=None).timeout_seconds is None

    @pytest.mark.unit
    def test_dosing_acid_type(self):
        """Test allowed acid types."""
        assert DosingOptions(acid_type="H2SO4").acid_type == "H2SO4"
        with pytest.raises(ValidationError):
            DosingOptions(acid_type="HNO3")


class TestFeedAndRecords:
    """Tests for feed and iteration schemas."""

    @pytest.mark.unit
    def test_feed_defaults(self):
        """Test feed defaults."""
        feed = FeedSpecification(flow_m3h=100.0, tds_mg_l=2000.0)
        assert feed.temperature_c == 25.0
        assert feed.ph == 7.5
        assert feed.ion_composition_mg_l == {}
        assert feed.conductivity_us_cm is None

    @pytest.mark.unit
    def test_feed_requires_flow(self):
        """Test feed flow is required."""
        with pytest.raises(ValidationError):
            FeedSpecification(tds_mg_l=2000.0)

    @pytest.mark.unit
    def test_iteration_record_round_trip(self):
        """Test iteration record survives a dump and reload."""
        record = IterationRecord(iteration=3, feed_pressure_psi=900.0, recovery=0.4, difference=0.01)
        assert IterationRecord(**record.model_dump()) == record

    @pytest.mark.unit
    def test_results_schema_version(self):
        """Test results schema version."""
        assert SCHEMA_VERSION_RESULTS == "1.0.0"
