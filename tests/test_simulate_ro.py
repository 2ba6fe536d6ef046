"""
Integration tests for the full simulation pipeline.
"""

import pytest
from pydantic import ValidationError

from ro_train.chemistry import normalization_tcf, temperature_correction_factor
from ro_train.exceptions import ConfigurationError, InvalidInputError
from ro_train.schemas import FeedSpecification, PlantTopology, SolverOptions
from ro_train.simulate_ro import (
    build_dosing_options,
    build_solver_options,
    load_membrane_catalog,
    run_ro_simulation,
)


@pytest.fixture
def seawater_feed():
    return FeedSpecification(flow_m3h=10.0, tds_mg_l=35000.0, temperature_c=25.0, ph=7.8)


@pytest.fixture
def single_element():
    return PlantTopology.from_array([1], elements_per_vessel=1)


@pytest.fixture
def seawater_options():
    return SolverOptions(iteration_limit=100, convergence_tolerance_pct=0.1,
                         fouling_factor=1.0, timeout_seconds=None)


class TestSeawaterSingleElement:
    """One seawater element at 10 % recovery."""

    @pytest.mark.integration
    def test_converges(self, catalog, seawater_feed, single_element, seawater_options):
        """Test single seawater element converges at 10 % recovery."""
        result = run_ro_simulation(seawater_feed, single_element, "ZEKINDO SW-440 HR",
                                   0.10, catalog, seawater_options)

        assert result.converged
        assert result.status == "converged"
        assert abs(result.recovery - 0.10) * 100 < 0.1
        assert result.feed_osmotic_pressure_psi * 1.1 <= result.feed_pressure_psi <= 1500
        assert result.permeate_tds_mg_l < 1000
        assert result.membrane_class == "seawater"
        assert result.elements[0].ndp_psi > 0
        assert max(e.recovery for e in result.elements) <= 0.12

    @pytest.mark.integration
    def test_unreachable_target_respects_element_cap(self, catalog, seawater_feed,
                                                     single_element, seawater_options):
        """Test an unreachable target exhausts without breaking the element cap."""
        result = run_ro_simulation(seawater_feed, single_element, "ZEKINDO SW-440 HR",
                                   0.50, catalog, seawater_options)

        assert not result.converged
        assert result.status == "exhausted"
        assert max(e.recovery for e in result.elements) <= 0.12 + 1e-12
        assert result.recovery <= 0.12 + 1e-12
        assert "Did not converge" in result.status_message

    @pytest.mark.integration
    def test_scaling_and_dosing_attached(self, catalog, seawater_feed, single_element,
                                         seawater_options):
        """Test scaling and dosing results are attached."""
        result = run_ro_simulation(seawater_feed, single_element, "ZEKINDO SW-440 HR",
                                   0.10, catalog, seawater_options)

        assert result.scaling is not None
        assert result.scaling.recovery == result.recovery
        assert result.dosing is not None
        assert result.dosing.dosages == []

    @pytest.mark.integration
    def test_dosing_options_applied(self, catalog, seawater_feed, single_element,
                                    seawater_options):
        """Test enabled chemicals appear in the dosing result."""
        dosing = build_dosing_options({"antiscalant_enabled": True, "acid_enabled": True})
        result = run_ro_simulation(seawater_feed, single_element, "ZEKINDO SW-440 HR",
                                   0.10, catalog, seawater_options, dosing)

        chemicals = [d.chemical for d in result.dosing.dosages]
        assert chemicals == ["Antiscalant", "HCl"]
        assert result.dosing.total_daily_cost_usd > 0


class TestBrackishTwoStage:
    """Two-stage brackish train from the shipped catalog."""

    @pytest.mark.integration
    def test_two_stage_converges(self, catalog):
        """Test two-stage brackish train convergence."""
        feed = FeedSpecification(flow_m3h=100.0, tds_mg_l=2000.0, temperature_c=25.0)
        topology = PlantTopology.from_array("10:5", elements_per_vessel=6)
        options = SolverOptions(iteration_limit=100, convergence_tolerance_pct=0.5,
                                timeout_seconds=None)

        result = run_ro_simulation(feed, topology, "ZEKINDO BW-400", 0.70, catalog, options)

        assert result.converged
        assert len(result.stages) == 2
        assert len(result.elements) == 90
        assert result.stages[1].feed_flow_m3h == pytest.approx(result.stages[0].concentrate_flow_m3h)
        assert result.total_permeate_flow_m3h + result.concentrate_flow_m3h == pytest.approx(100.0)

    @pytest.mark.integration
    def test_ion_composition_feed(self, catalog):
        """Test feed given as an ion composition."""
        ions = {"Na+": 600.0, "Cl-": 900.0, "Ca2+": 80.0, "HCO3-": 200.0, "SO4-2": 150.0}
        feed = FeedSpecification(flow_m3h=50.0, ion_composition_mg_l=ions, ph=7.6)
        topology = PlantTopology.from_array("5:3", elements_per_vessel=6)
        options = SolverOptions(convergence_tolerance_pct=0.5, timeout_seconds=None)

        result = run_ro_simulation(feed, topology, "ZEKINDO BW-400", 0.65, catalog, options)

        assert result.feed_tds_mg_l == pytest.approx(sum(ions.values()))
        assert result.scaling.lsi is not None
        assert "CaCO3" in result.scaling.saturation_ratios


class TestTemperature:
    """Permeability correction uses the exponential TCF."""

    @pytest.mark.integration
    def test_exponential_tcf_used(self, catalog, single_element, seawater_options):
        """Test the exponential TCF drives permeability."""
        feed = FeedSpecification(flow_m3h=10.0, tds_mg_l=35000.0, temperature_c=15.0)
        result = run_ro_simulation(feed, single_element, "ZEKINDO SW-440 HR", 0.10,
                                   catalog, seawater_options)

        assert result.temperature_correction_factor == pytest.approx(
            temperature_correction_factor(15.0))
        assert result.temperature_correction_factor == pytest.approx(0.7036, abs=1e-3)
        assert result.temperature_correction_factor != pytest.approx(normalization_tcf(15.0))

    @pytest.mark.integration
    def test_cold_feed_needs_more_pressure(self, catalog, single_element, seawater_options):
        """Test colder feed needs higher pressure."""
        warm = FeedSpecification(flow_m3h=10.0, tds_mg_l=35000.0, temperature_c=25.0)
        cold = FeedSpecification(flow_m3h=10.0, tds_mg_l=35000.0, temperature_c=15.0)
        p_warm = run_ro_simulation(warm, single_element, "ZEKINDO SW-440 HR", 0.08,
                                   catalog, seawater_options).feed_pressure_psi
        p_cold = run_ro_simulation(cold, single_element, "ZEKINDO SW-440 HR", 0.08,
                                   catalog, seawater_options).feed_pressure_psi
        assert p_cold > p_warm


class TestInputErrors:
    """Errors raised before the solver runs."""

    @pytest.mark.unit
    def test_unknown_membrane(self, catalog, seawater_feed, single_element):
        """Test unknown membrane model."""
        with pytest.raises(ConfigurationError, match="Unknown membrane model"):
            run_ro_simulation(seawater_feed, single_element, "NOPE", 0.1, catalog)

    @pytest.mark.unit
    @pytest.mark.parametrize("recovery", [0.0, 1.0])
    def test_bad_recovery(self, catalog, seawater_feed, single_element, recovery):
        """Test recovery targets at the bounds."""
        with pytest.raises(InvalidInputError):
            run_ro_simulation(seawater_feed, single_element, "ZEKINDO SW-440 HR",
                              recovery, catalog)

    @pytest.mark.unit
    def test_empty_topology(self, catalog, seawater_feed):
        """Test a topology without elements."""
        topology = PlantTopology.from_counts([1], [[0]])
        with pytest.raises(ConfigurationError):
            run_ro_simulation(seawater_feed, topology, "ZEKINDO SW-440 HR", 0.1, catalog)

    @pytest.mark.unit
    def test_feed_without_salinity(self, catalog, single_element):
        """Test a feed with no salinity information."""
        with pytest.raises(InvalidInputError):
            run_ro_simulation(FeedSpecification(flow_m3h=10.0), single_element,
                              "ZEKINDO SW-440 HR", 0.1, catalog)


class TestOptionBuilders:
    """Config-backed option construction."""

    @pytest.mark.unit
    def test_solver_defaults_from_config(self):
        """Test solver options default to config values."""
        options = build_solver_options()
        assert options.iteration_limit == 50
        assert options.flow_factor == 0.85

    @pytest.mark.unit
    def test_solver_overrides(self):
        """Test caller overrides and None values."""
        options = build_solver_options({"iteration_limit": 10, "recycle_percent": None})
        assert options.iteration_limit == 10
        assert options.recycle_percent == 0.0

    @pytest.mark.unit
    def test_invalid_override(self):
        """Test out-of-range solver overrides."""
        with pytest.raises(InvalidInputError, match="Invalid solver options"):
            build_solver_options({"recycle_percent": 120.0})

    @pytest.mark.unit
    def test_invalid_acid(self):
        """Test unsupported acid type."""
        with pytest.raises(InvalidInputError, match="Invalid dosing options"):
            build_dosing_options({"acid_type": "HNO3"})

    @pytest.mark.integration
    def test_result_status_pattern(self, catalog, seawater_feed, single_element,
                                   seawater_options):
        """Test result status is limited to known values."""
        result = run_ro_simulation(seawater_feed, single_element, "ZEKINDO SW-440 HR",
                                   0.10, catalog, seawater_options)
        with pytest.raises(ValidationError):
            type(result)(**{**result.model_dump(), "status": "failed"})

    @pytest.mark.unit
    def test_load_membrane_catalog(self):
        """Test loading the shipped catalog."""
        assert len(load_membrane_catalog()) == 12
