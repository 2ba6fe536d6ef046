"""
Unit tests for ro_train/chemistry.py.
"""

import math

import pytest

from ro_train.chemistry import (
    concentrate_composition,
    conductivity_to_tds,
    davies_activity_coefficient,
    ionic_strength,
    langelier_index,
    nacl_equivalent_composition,
    normalization_tcf,
    normalize_composition,
    osmotic_pressure_psi,
    saturation_ratios,
    solubility_product,
    temperature_correction_factor,
    total_dissolved_solids,
    typical_composition,
)
from ro_train.constants import CONDUCTIVITY_BRANCH_US_CM, KSP_DATA
from ro_train.exceptions import InvalidInputError


class TestConductivityToTDS:
    """Tests for the two-branch conductivity correlation."""

    @pytest.mark.unit
    def test_branches_continuous_at_threshold(self):
        """Test the two conductivity branches meet at the threshold."""
        below = conductivity_to_tds(CONDUCTIVITY_BRANCH_US_CM)
        above = conductivity_to_tds(CONDUCTIVITY_BRANCH_US_CM + 1e-6)
        assert abs(above - below) / below < 0.01

    @pytest.mark.unit
    def test_zero_conductivity(self):
        """Test zero conductivity gives zero TDS."""
        assert conductivity_to_tds(0) == 0.0

    @pytest.mark.unit
    def test_negative_conductivity_raises(self):
        """Test negative conductivity is rejected."""
        with pytest.raises(InvalidInputError):
            conductivity_to_tds(-1.0)

    @pytest.mark.unit
    def test_increasing_with_conductivity(self):
        """Test TDS rises monotonically with conductivity."""
        values = [conductivity_to_tds(ec) for ec in (500, 1000, 5000, 20000, 53000)]
        assert values == sorted(values)

    @pytest.mark.unit
    def test_seawater_range(self):
        """53 mS/cm is typical seawater, roughly 33 g/L."""
        assert 30000 < conductivity_to_tds(53000) < 36000


class TestTemperatureCorrection:
    """Tests for the exponential TCF and the lookup-table TCF."""

    @pytest.mark.unit
    def test_reference_temperature(self):
        """Test TCF is unity at 25 °C."""
        assert temperature_correction_factor(25.0) == pytest.approx(1.0)

    @pytest.mark.unit
    @pytest.mark.parametrize("temp_c,expected", [
        (10.0, 0.585),
        (20.0, 0.841),
        (30.0, 1.157),
        (40.0, 1.528),
    ])
    def test_exponential_values(self, temp_c, expected):
        """Test exponential TCF against hand-computed values."""
        assert temperature_correction_factor(temp_c) == pytest.approx(expected, abs=0.002)

    @pytest.mark.unit
    def test_uses_lower_constant_below_25c(self):
        """Test the colder Arrhenius constant applies below 25 °C."""
        # k = 3020 below 25 °C, k = 2640 at or above
        expected = math.exp(3020 * (1 / 298.15 - 1 / 288.15))
        assert temperature_correction_factor(15.0) == pytest.approx(expected)

    @pytest.mark.unit
    @pytest.mark.parametrize("temp_c", [-273.15, -300.0])
    def test_absolute_zero_raises(self, temp_c):
        """Test temperatures at or below absolute zero are rejected."""
        with pytest.raises(InvalidInputError):
            temperature_correction_factor(temp_c)

    @pytest.mark.unit
    def test_normalization_table_interpolates(self):
        """Test linear interpolation in the normalization table."""
        assert normalization_tcf(25.0) == pytest.approx(1.0)
        assert normalization_tcf(27.5) == pytest.approx((1.0 + 1.158) / 2)

    @pytest.mark.unit
    def test_normalization_table_clamps(self):
        """Test normalization TCF clamps outside the table."""
        assert normalization_tcf(0.0) == pytest.approx(0.516)
        assert normalization_tcf(50.0) == pytest.approx(1.735)

    @pytest.mark.unit
    def test_two_factors_differ(self):
        """Test the design and normalization factors are distinct."""
        assert abs(temperature_correction_factor(15.0) - normalization_tcf(15.0)) > 0.005


class TestOsmoticPressure:
    """Tests for van't Hoff osmotic pressure."""

    @pytest.mark.unit
    def test_sodium_chloride(self):
        """Test osmotic pressure of seawater-strength NaCl."""
        ions = nacl_equivalent_composition(35000)
        expected = 1.12 * (273 + 25) * (2 * 35000 / 1000 / 58.443)
        assert osmotic_pressure_psi(ions, 25.0) == pytest.approx(expected, rel=1e-3)

    @pytest.mark.unit
    def test_unknown_and_zero_ions_ignored(self):
        """Test unknown ions and zero concentrations add nothing."""
        assert osmotic_pressure_psi({"Xx": 100.0, "Na+": 0.0}, 25.0) == 0.0

    @pytest.mark.unit
    def test_scales_with_absolute_temperature(self):
        """Test van 't Hoff scaling with absolute temperature."""
        ions = {"Na+": 1000.0, "Cl-": 1542.0}
        ratio = osmotic_pressure_psi(ions, 35.0) / osmotic_pressure_psi(ions, 5.0)
        assert ratio == pytest.approx(308 / 278)


class TestCompositionHandling:
    """Tests for composition helpers."""

    @pytest.mark.unit
    def test_aliases_are_summed(self):
        """Test ion name aliases collapse into one species."""
        result = normalize_composition({"Ca_2+": 10.0, "Ca2+": 5.0, "SO42-": 20.0})
        assert result == {"Ca2+": 15.0, "SO4-2": 20.0}

    @pytest.mark.unit
    @pytest.mark.parametrize("value", [-1.0, float("nan"), float("inf")])
    def test_invalid_concentration_raises(self, value):
        """Test negative or non-finite concentrations."""
        with pytest.raises(InvalidInputError):
            normalize_composition({"Na+": value})

    @pytest.mark.unit
    def test_nacl_equivalent_preserves_tds(self):
        """Test NaCl split sums back to the TDS."""
        assert total_dissolved_solids(nacl_equivalent_composition(2500)) == pytest.approx(2500)

    @pytest.mark.unit
    def test_concentrate_composition(self):
        """Test concentration by 1 / (1 - recovery)."""
        result = concentrate_composition({"Na+": 100.0}, 0.75)
        assert result["Na+"] == pytest.approx(400.0)

    @pytest.mark.unit
    @pytest.mark.parametrize("recovery", [-0.1, 1.0, 1.5])
    def test_concentrate_recovery_out_of_range(self, recovery):
        """Test concentrate composition rejects impossible recoveries."""
        with pytest.raises(InvalidInputError):
            concentrate_composition({"Na+": 100.0}, recovery)

    @pytest.mark.unit
    def test_typical_composition_scaled(self):
        """Test typical water profile scaled to the requested TDS."""
        ions = typical_composition("seawater", 35000)
        assert sum(ions.values()) == pytest.approx(35000)
        assert ions["Na+"] > ions["Mg2+"]

    @pytest.mark.unit
    def test_typical_composition_unknown_type(self):
        """Test unknown water type."""
        with pytest.raises(InvalidInputError):
            typical_composition("lake")


class TestActivity:
    """Tests for ionic strength, Davies and Ksp."""

    @pytest.mark.unit
    def test_ionic_strength_nacl(self):
        """Test ionic strength of a monovalent salt."""
        # 0.1 mol/L NaCl
        assert ionic_strength({"Na+": 2299.0, "Cl-": 3545.3}) == pytest.approx(0.1, rel=1e-3)

    @pytest.mark.unit
    def test_ionic_strength_divalent(self):
        """Test ionic strength of a divalent salt."""
        # 1 mmol/L CaSO4 -> 0.5 (0.001 x 4 + 0.001 x 4)
        assert ionic_strength({"Ca2+": 40.078, "SO4-2": 96.066}) == pytest.approx(0.004, rel=1e-3)

    @pytest.mark.unit
    def test_neutral_species_do_not_count(self):
        """Test uncharged species contribute no ionic strength."""
        assert ionic_strength({"SiO2": 50.0}) == 0.0

    @pytest.mark.unit
    def test_davies_value(self):
        """Test Davies coefficient at 0.1 M."""
        assert davies_activity_coefficient(1, 0.1, 25.0) == pytest.approx(0.782, abs=0.002)

    @pytest.mark.unit
    def test_davies_neutral_and_dilute(self):
        """Test Davies coefficient is one for neutral or dilute cases."""
        assert davies_activity_coefficient(0, 0.5) == 1.0
        assert davies_activity_coefficient(2, 0.0) == 1.0

    @pytest.mark.unit
    def test_davies_divalent_smaller(self):
        """Test divalent ions deviate more than monovalent."""
        assert davies_activity_coefficient(2, 0.1) < davies_activity_coefficient(1, 0.1)

    @pytest.mark.unit
    def test_ksp_at_reference(self):
        """Test Ksp equals the tabulated value at 25 °C."""
        for compound, data in KSP_DATA.items():
            assert solubility_product(compound, 25.0) == pytest.approx(data["ksp_25c"])

    @pytest.mark.unit
    def test_ksp_temperature_direction(self):
        """Test Ksp temperature dependence per mineral."""
        # Calcite is less soluble when warm, barite more
        assert solubility_product("CaCO3", 40.0) < solubility_product("CaCO3", 25.0)
        assert solubility_product("BaSO4", 40.0) > solubility_product("BaSO4", 25.0)


class TestSaturation:
    """Tests for saturation ratios and LSI."""

    @pytest.fixture
    def hard_water(self):
        return {"Ca2+": 400.0, "HCO3-": 150.0, "Na+": 500.0, "Cl-": 800.0}

    @pytest.mark.unit
    def test_calcite_supersaturated_at_high_recovery(self, hard_water):
        """Test calcite supersaturation in hard-water concentrate."""
        ratios = saturation_ratios(hard_water, 0.9, 25.0, 8.0)
        assert ratios["CaCO3"] > 1.0

    @pytest.mark.unit
    def test_absent_compounds_report_zero(self, hard_water):
        """Test minerals missing an ion report zero saturation."""
        ratios = saturation_ratios(hard_water, 0.5, 25.0, 7.5)
        assert ratios["BaSO4"] == 0.0
        assert ratios["CaF2"] == 0.0

    @pytest.mark.unit
    def test_ratio_grows_with_recovery(self, hard_water):
        """Test saturation rises with recovery."""
        low = saturation_ratios(hard_water, 0.5, 25.0, 7.5)["CaCO3"]
        high = saturation_ratios(hard_water, 0.8, 25.0, 7.5)["CaCO3"]
        assert high > low

    @pytest.mark.unit
    def test_ph_out_of_range(self, hard_water):
        """Test pH outside 0-14."""
        with pytest.raises(InvalidInputError):
            saturation_ratios(hard_water, 0.5, 25.0, 14.5)

    @pytest.mark.unit
    def test_lsi_shifts_one_to_one_with_ph(self, hard_water):
        """Test LSI moves one unit per pH unit."""
        lsi_7 = langelier_index(hard_water, 7.0, 25.0)
        lsi_8 = langelier_index(hard_water, 8.0, 25.0)
        assert lsi_8 - lsi_7 == pytest.approx(1.0)

    @pytest.mark.unit
    def test_lsi_carrier_method(self, hard_water):
        """Test LSI against the Carrier formula."""
        tds = sum(hard_water.values())
        ph_s = ((9.3 + (math.log10(tds) - 1) / 10 + (-13.12 * math.log10(298) + 34.55))
                - (math.log10(400 * 2.497) - 0.4 + math.log10(150 * 0.8202)))
        assert langelier_index(hard_water, 7.5, 25.0) == pytest.approx(7.5 - ph_s)

    @pytest.mark.unit
    def test_lsi_none_without_calcium(self):
        """Test LSI is undefined without calcium."""
        assert langelier_index({"Na+": 500.0, "HCO3-": 100.0}, 7.5, 25.0) is None
