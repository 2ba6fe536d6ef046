# -*- coding: utf-8 -*-
"""
Constants for RO train calculations.

Pressures are in psi, flows in m³/h, concentrations in mg/L and flux in
gfd unless the name says otherwise.
"""

# Unit conversions
GPD_TO_M3H = 0.00015771     # gallons per day -> m³/h
M3H_TO_GPM = 4.4029         # m³/h -> gallons per minute
FT2_TO_M2 = 0.092903
GFD_TO_LMH = 1.6996
PSI_TO_BAR = 0.0689476

# Temperature correction (Arrhenius-type constants, K)
TCF_REFERENCE_TEMP_K = 298.15
TCF_CONSTANT_ABOVE_25C = 2640.0
TCF_CONSTANT_BELOW_25C = 3020.0
ABSOLUTE_ZERO_C = -273.15

# Piecewise-linear TCF table used for plant-data normalization (25 °C = 1.0)
NORMALIZATION_TCF_TABLE = {
    5: 0.516,
    10: 0.609,
    15: 0.716,
    20: 0.847,
    25: 1.000,
    30: 1.158,
    35: 1.333,
    40: 1.526,
    45: 1.735,
}

# van't Hoff osmotic pressure coefficient (psi per K per mol/kg)
OSMOTIC_COEFFICIENT_PSI = 1.12

# Conductivity -> TDS branch threshold (µS/cm)
CONDUCTIVITY_BRANCH_US_CM = 7630.0

# Element and plant hydraulics
POLARIZATION_EXPONENT = 0.7
ELEMENT_DP_COEFFICIENT = 0.01
ELEMENT_DP_EXPONENT = 1.7
INTERSTAGE_PRESSURE_LOSS_PSI = 5.0
MIN_PERMEATE_TDS_MG_L = 10.0
MAX_PERMEATE_TDS_FRACTION = 0.8

# Single-element recovery caps by membrane class
MAX_ELEMENT_RECOVERY = {
    "seawater": 0.12,
    "brackish": 0.15,
}

# Solver search
MAX_FEED_PRESSURE_PSI = 1500.0
MIN_PRESSURE_OSMOTIC_MULTIPLIER = 1.1
MIN_SOLVER_ITERATIONS = 5
PRESSURE_STEP_DIVISOR = 1.2
MIN_EARLY_PRESSURE_STEP_PSI = 5.0
EARLY_ITERATION_COUNT = 10

# Initial pressure guess: multiplier x feed osmotic pressure + offset
INITIAL_PRESSURE_COEFFICIENTS = {
    "seawater": (2.2, 300.0),
    "brackish": (2.0, 80.0),
}

# Ion composition constants (mg/L) for typical water types
TYPICAL_COMPOSITIONS = {
    "brackish": {
        "Na+": 1200,
        "Ca2+": 120,
        "Mg2+": 60,
        "K+": 20,
        "Cl-": 2100,
        "SO4-2": 200,
        "HCO3-": 150,
        "SiO2": 10
    },
    "seawater": {
        "Na+": 10800,
        "Ca2+": 420,
        "Mg2+": 1300,
        "K+": 400,
        "Sr2+": 8,
        "Cl-": 19400,
        "SO4-2": 2700,
        "HCO3-": 140,
        "Br-": 70,
        "F-": 1.3
    }
}

# Molecular weights (g/mol)
MW_DATA = {
    "Na+": 22.990,
    "K+": 39.098,
    "NH4+": 18.038,
    "Ca2+": 40.078,
    "Mg2+": 24.305,
    "Sr2+": 87.620,
    "Ba2+": 137.327,
    "Fe2+": 55.845,
    "Cl-": 35.453,
    "F-": 18.998,
    "Br-": 79.904,
    "NO3-": 62.004,
    "HCO3-": 61.017,
    "SO4-2": 96.066,
    "CO3-2": 60.009,
    "SiO2": 60.084,
    "B(OH)3": 61.833,
}

# Ion charges (neutral species carry 0)
CHARGE_MAP = {
    "Na+": 1,
    "K+": 1,
    "NH4+": 1,
    "Ca2+": 2,
    "Mg2+": 2,
    "Sr2+": 2,
    "Ba2+": 2,
    "Fe2+": 2,
    "Cl-": -1,
    "F-": -1,
    "Br-": -1,
    "NO3-": -1,
    "HCO3-": -1,
    "SO4-2": -2,
    "CO3-2": -2,
    "SiO2": 0,
    "B(OH)3": 0,
}

# Alternative spellings accepted on input
ION_ALIASES = {
    "Na_+": "Na+",
    "K_+": "K+",
    "NH4_+": "NH4+",
    "Ca+2": "Ca2+", "Ca_2+": "Ca2+", "Ca++": "Ca2+",
    "Mg+2": "Mg2+", "Mg_2+": "Mg2+", "Mg++": "Mg2+",
    "Sr+2": "Sr2+", "Sr_2+": "Sr2+",
    "Ba+2": "Ba2+", "Ba_2+": "Ba2+",
    "Fe+2": "Fe2+", "Fe_2+": "Fe2+",
    "Cl_-": "Cl-",
    "F_-": "F-",
    "Br_-": "Br-",
    "NO3_-": "NO3-",
    "HCO3_-": "HCO3-",
    "SO4_2-": "SO4-2", "SO42-": "SO4-2", "SO4--": "SO4-2", "SO4_-2": "SO4-2",
    "CO3_2-": "CO3-2", "CO32-": "CO3-2", "CO3--": "CO3-2", "CO3_-2": "CO3-2",
    "SiO3_2-": "SiO2", "SiO2(aq)": "SiO2",
}

# NaCl mass fractions used when only TDS is known
NACL_MASS_FRACTION = {
    "Na+": MW_DATA["Na+"] / (MW_DATA["Na+"] + MW_DATA["Cl-"]),
    "Cl-": MW_DATA["Cl-"] / (MW_DATA["Na+"] + MW_DATA["Cl-"]),
}

# CaCO3 equivalents (mg/L as CaCO3 per mg/L of ion)
CA_TO_CACO3 = 2.497
HCO3_TO_CACO3 = 0.8202

# Carbonate second dissociation constant at 25 °C
PK2_CARBONATE = 10.33

# Solubility products at 25 °C and dissolution enthalpies (kJ/mol) for
# van't Hoff temperature correction. Values follow phreeqc.dat.
KSP_DATA = {
    "CaCO3": {"ksp_25c": 3.36e-9, "delta_h_kj_mol": -9.61,
              "ions": {"Ca2+": 1, "CO3-2": 1}},
    "CaSO4": {"ksp_25c": 4.93e-5, "delta_h_kj_mol": -0.46,
              "ions": {"Ca2+": 1, "SO4-2": 1}},
    "BaSO4": {"ksp_25c": 1.08e-10, "delta_h_kj_mol": 26.57,
              "ions": {"Ba2+": 1, "SO4-2": 1}},
    "CaF2": {"ksp_25c": 3.45e-11, "delta_h_kj_mol": 19.62,
             "ions": {"Ca2+": 1, "F-": 2}},
}

GAS_CONSTANT_KJ_MOL_K = 8.314e-3
