# -*- coding: utf-8 -*-
"""
Unit conversion and water chemistry primitives.

Pure functions of their inputs: conductivity to TDS, temperature
correction, osmotic pressure, ionic strength, activity coefficients,
mineral saturation ratios and the Langelier Saturation Index.
"""

import math
import logging
from typing import Dict, Optional

import numpy as np

from .constants import (
    ABSOLUTE_ZERO_C,
    CA_TO_CACO3,
    CHARGE_MAP,
    CONDUCTIVITY_BRANCH_US_CM,
    GAS_CONSTANT_KJ_MOL_K,
    HCO3_TO_CACO3,
    ION_ALIASES,
    KSP_DATA,
    MW_DATA,
    NACL_MASS_FRACTION,
    NORMALIZATION_TCF_TABLE,
    OSMOTIC_COEFFICIENT_PSI,
    PK2_CARBONATE,
    TCF_CONSTANT_ABOVE_25C,
    TCF_CONSTANT_BELOW_25C,
    TCF_REFERENCE_TEMP_K,
    TYPICAL_COMPOSITIONS,
)
from .exceptions import InvalidInputError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Composition handling
# ---------------------------------------------------------------------------

def normalize_ion_name(ion: str) -> str:
    """Map alternative ion spellings ('Ca_2+', 'SO42-') to the canonical key."""
    name = ion.strip()
    return ION_ALIASES.get(name, name)


def normalize_composition(ion_composition_mg_l: Optional[Dict[str, float]]) -> Dict[str, float]:
    """
    Canonicalize ion names and validate concentrations.

    Duplicate spellings of the same ion are summed. Unknown ions are kept
    so they still count towards TDS.

    Raises:
        InvalidInputError: If any concentration is negative or non-finite
    """
    normalized: Dict[str, float] = {}
    for ion, conc in (ion_composition_mg_l or {}).items():
        conc = float(conc)
        if not math.isfinite(conc) or conc < 0:
            raise InvalidInputError(f"Concentration of {ion} must be a non-negative number, got {conc}")
        key = normalize_ion_name(ion)
        normalized[key] = normalized.get(key, 0.0) + conc
    return normalized


def total_dissolved_solids(ion_composition_mg_l: Dict[str, float]) -> float:
    """Sum of all ion concentrations in mg/L."""
    return float(sum(normalize_composition(ion_composition_mg_l).values()))


def nacl_equivalent_composition(tds_mg_l: float) -> Dict[str, float]:
    """Split a TDS value into Na+ and Cl- by NaCl mass fractions."""
    if tds_mg_l < 0:
        raise InvalidInputError(f"TDS must be non-negative, got {tds_mg_l}")
    return {ion: tds_mg_l * fraction for ion, fraction in NACL_MASS_FRACTION.items()}


def concentrate_composition(ion_composition_mg_l: Dict[str, float], recovery: float) -> Dict[str, float]:
    """
    Concentrate every ion by 1/(1 - recovery), assuming full rejection.

    Raises:
        InvalidInputError: If recovery is outside [0, 1)
    """
    if not 0 <= recovery < 1:
        raise InvalidInputError(f"Recovery must be in [0, 1), got {recovery}")
    factor = 1.0 / (1.0 - recovery)
    return {ion: conc * factor for ion, conc in normalize_composition(ion_composition_mg_l).items()}


def validate_ph(ph: float) -> None:
    """Raise InvalidInputError unless 0 <= pH <= 14."""
    if not 0 <= ph <= 14:
        raise InvalidInputError(f"pH must be within [0, 14], got {ph}")


def _validate_temperature(temp_c: float) -> float:
    if temp_c <= ABSOLUTE_ZERO_C:
        raise InvalidInputError(f"Temperature {temp_c} °C is at or below absolute zero")
    return temp_c - ABSOLUTE_ZERO_C


# ---------------------------------------------------------------------------
# Conversions
# ---------------------------------------------------------------------------

def conductivity_to_tds(conductivity_us_cm: float) -> float:
    """
    Estimate TDS (mg/L) from conductivity (µS/cm).

    Two exponential fits joined at 7630 µS/cm; the branches agree to
    within 0.2 % at the boundary.

    Raises:
        InvalidInputError: If conductivity is negative
    """
    if conductivity_us_cm < 0:
        raise InvalidInputError(f"Conductivity must be non-negative, got {conductivity_us_cm}")
    if conductivity_us_cm == 0:
        return 0.0

    ln_ec = math.log(conductivity_us_cm)
    if conductivity_us_cm > CONDUCTIVITY_BRANCH_US_CM:
        return 8.01e-11 * math.exp(((-50.6458 - ln_ec) ** 2) / 112.484)
    return 7.7e-20 * math.exp(((-90.4756 - ln_ec) ** 2) / 188.884)


def temperature_correction_factor(temp_c: float) -> float:
    """
    Membrane permeability temperature correction factor (25 °C = 1.0).

    TCF = exp(k (1/298.15 - 1/(T + 273.15))) with k = 2640 at or above
    25 °C and k = 3020 below. This is the factor the solver uses.

    Raises:
        InvalidInputError: At or below absolute zero
    """
    temp_k = _validate_temperature(temp_c)
    k = TCF_CONSTANT_ABOVE_25C if temp_c >= 25 else TCF_CONSTANT_BELOW_25C
    return math.exp(k * (1.0 / TCF_REFERENCE_TEMP_K - 1.0 / temp_k))


def normalization_tcf(temp_c: float) -> float:
    """
    Lookup-table TCF used for plant-data normalization.

    Linear interpolation between tabulated points; clamped to the end
    points outside the table. Not used by the solver.
    """
    _validate_temperature(temp_c)
    temps = np.array(sorted(NORMALIZATION_TCF_TABLE), dtype=float)
    factors = np.array([NORMALIZATION_TCF_TABLE[t] for t in sorted(NORMALIZATION_TCF_TABLE)])
    return float(np.interp(temp_c, temps, factors))


# ---------------------------------------------------------------------------
# Solution properties
# ---------------------------------------------------------------------------

def osmotic_pressure_psi(ion_composition_mg_l: Dict[str, float], temp_c: float) -> float:
    """
    Feed osmotic pressure by van't Hoff: π = 1.12 (273 + T) Σm_j  [psi].

    Each ion's molality is approximated as mg/L / 1000 / MW. Ions missing
    from the molecular weight table are ignored.
    """
    _validate_temperature(temp_c)
    sum_molality = 0.0
    for ion, conc in normalize_composition(ion_composition_mg_l).items():
        mw = MW_DATA.get(ion)
        if mw is None or conc <= 0:
            continue
        sum_molality += conc / 1000.0 / mw
    return OSMOTIC_COEFFICIENT_PSI * (273.0 + temp_c) * sum_molality


def ionic_strength(ion_composition_mg_l: Dict[str, float]) -> float:
    """
    Ionic strength I = 0.5 Σ c_i z_i²  [mol/L].

    Neutral and unknown species contribute nothing.
    """
    total = 0.0
    for ion, conc in normalize_composition(ion_composition_mg_l).items():
        charge = CHARGE_MAP.get(ion, 0)
        if charge == 0:
            continue
        total += conc / 1000.0 / MW_DATA[ion] * charge ** 2
    return 0.5 * total


def davies_activity_coefficient(charge: int, ionic_strength_mol_l: float,
                                temp_c: float = 25.0) -> float:
    """
    Activity coefficient from the Davies equation.

    log10 γ = -A z² (√I / (1 + √I) - 0.3 I), A ≈ 0.4883 + 8.074e-4 T
    """
    if charge == 0 or ionic_strength_mol_l <= 0:
        return 1.0
    a = 0.4883 + 8.074e-4 * temp_c
    sqrt_i = math.sqrt(ionic_strength_mol_l)
    log_gamma = -a * charge ** 2 * (sqrt_i / (1 + sqrt_i) - 0.3 * ionic_strength_mol_l)
    return 10 ** log_gamma


def solubility_product(compound: str, temp_c: float) -> float:
    """Temperature-corrected Ksp by the van't Hoff equation."""
    temp_k = _validate_temperature(temp_c)
    data = KSP_DATA[compound]
    exponent = -data["delta_h_kj_mol"] / GAS_CONSTANT_KJ_MOL_K * (1.0 / temp_k - 1.0 / TCF_REFERENCE_TEMP_K)
    return data["ksp_25c"] * math.exp(exponent)


def saturation_ratios(ion_composition_mg_l: Dict[str, float],
                      recovery: float,
                      temp_c: float,
                      ph: float) -> Dict[str, float]:
    """
    Saturation ratios (IAP / Ksp) of scale formers in the concentrate.

    Ions are concentrated by 1/(1 - recovery), activities come from the
    Davies equation at the concentrate ionic strength and carbonate is
    derived from bicarbonate through pH and pK2. A ratio above 1.0 means
    the concentrate is supersaturated.

    Returns:
        Dict mapping CaCO3, CaSO4, BaSO4 and CaF2 to their ratios
    """
    validate_ph(ph)
    concentrate = concentrate_composition(ion_composition_mg_l, recovery)
    strength = ionic_strength(concentrate)

    molar = {
        ion: conc / 1000.0 / MW_DATA[ion]
        for ion, conc in concentrate.items()
        if ion in MW_DATA
    }
    # CO3 from HCO3 <-> CO3 + H+ equilibrium
    molar["CO3-2"] = molar.get("CO3-2", 0.0) + molar.get("HCO3-", 0.0) * 10 ** (ph - PK2_CARBONATE)

    ratios = {}
    for compound, data in KSP_DATA.items():
        iap = 1.0
        for ion, stoich in data["ions"].items():
            gamma = davies_activity_coefficient(CHARGE_MAP[ion], strength, temp_c)
            iap *= (molar.get(ion, 0.0) * gamma) ** stoich
        ratios[compound] = iap / solubility_product(compound, temp_c)
    return ratios


def langelier_index(ion_composition_mg_l: Dict[str, float], ph: float,
                    temp_c: float) -> Optional[float]:
    """
    Langelier Saturation Index by the Carrier method.

    pHs = (9.3 + A + B) - (C + D)
        A = (log10(TDS) - 1) / 10
        B = -13.12 log10(T + 273) + 34.55
        C = log10(Ca as CaCO3) - 0.4
        D = log10(alkalinity as CaCO3)

    Returns:
        pH - pHs, or None when calcium or bicarbonate is absent
    """
    validate_ph(ph)
    _validate_temperature(temp_c)
    composition = normalize_composition(ion_composition_mg_l)

    calcium = composition.get("Ca2+", 0.0)
    bicarbonate = composition.get("HCO3-", 0.0)
    tds = sum(composition.values())
    if calcium <= 0 or bicarbonate <= 0:
        return None

    a = (math.log10(tds) - 1) / 10
    b = -13.12 * math.log10(temp_c + 273) + 34.55
    c = math.log10(calcium * CA_TO_CACO3) - 0.4
    d = math.log10(bicarbonate * HCO3_TO_CACO3)
    ph_s = (9.3 + a + b) - (c + d)
    return ph - ph_s


def typical_composition(water_type: str, tds_mg_l: Optional[float] = None) -> Dict[str, float]:
    """
    Typical brackish or seawater ion composition, optionally scaled to a TDS.

    Raises:
        InvalidInputError: For an unknown water type or negative TDS
    """
    if water_type not in TYPICAL_COMPOSITIONS:
        raise InvalidInputError(
            f"Unknown water type '{water_type}'. Must be one of {sorted(TYPICAL_COMPOSITIONS)}"
        )
    typical = TYPICAL_COMPOSITIONS[water_type]
    if tds_mg_l is None:
        return dict(typical)
    if tds_mg_l < 0:
        raise InvalidInputError(f"TDS must be non-negative, got {tds_mg_l}")
    scale = tds_mg_l / sum(typical.values())
    return {ion: conc * scale for ion, conc in typical.items()}
