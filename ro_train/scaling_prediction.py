"""
Scaling prediction for RO concentrate.

Saturation ratios and LSI are evaluated at the achieved recovery from the
explicit Davies / Ksp chemistry in chemistry.py.
"""

import math
import logging
from typing import Dict, Any

from .chemistry import langelier_index, saturation_ratios, concentrate_composition
from .schemas import ScalingAnalysis

logger = logging.getLogger(__name__)

ANTISCALANT_ADVISORY = (
    "Antiscalant dosing recommended: one or more compounds are supersaturated in the concentrate"
)


def saturation_index(ratio: float) -> float:
    """SI = log10(IAP/Ksp); -inf for an absent compound."""
    if ratio <= 0:
        return -math.inf
    return math.log10(ratio)


def get_scaling_tendency(SI: float) -> str:
    """
    Interpret saturation index for scaling tendency.

    Args:
        SI: Saturation index

    Returns:
        Scaling tendency description
    """
    if SI < -0.5:
        return "Undersaturated - No scaling"
    elif -0.5 <= SI < 0:
        return "Near equilibrium - Low scaling risk"
    elif 0 <= SI < 0.5:
        return "Slightly supersaturated - Moderate scaling risk"
    elif 0.5 <= SI < 1.0:
        return "Supersaturated - High scaling risk"
    else:
        return "Highly supersaturated - Severe scaling risk"


def get_scaling_severity(SI: float) -> float:
    """Scaling severity score in [0, 1]."""
    if SI < 0:
        return 0.0
    elif SI < 0.5:
        return SI / 0.5 * 0.5
    elif SI < 1.0:
        return 0.5 + (SI - 0.5) / 0.5 * 0.3
    else:
        return min(0.8 + (SI - 1.0) * 0.1, 1.0)


def recommend_antiscalant(ratios: Dict[str, float]) -> Dict[str, Any]:
    """
    Suggest an antiscalant chemistry for the most severe scalant.

    Args:
        ratios: Saturation ratios keyed by compound

    Returns:
        primary_concern, antiscalant_type and a suggested dosage_ppm
    """
    recommendation = {
        "primary_concern": None,
        "antiscalant_type": "None required",
        "dosage_ppm": 0.0,
    }

    max_severity = 0.0
    primary = None
    for compound, ratio in ratios.items():
        severity = get_scaling_severity(saturation_index(ratio))
        if severity > max_severity:
            max_severity, primary = severity, compound

    if max_severity < 0.3:
        return recommendation

    recommendation["primary_concern"] = primary
    if primary == "CaCO3":
        recommendation["antiscalant_type"] = "Polyacrylic acid or phosphonate"
        recommendation["dosage_ppm"] = 2 + max_severity * 3
    elif primary in ("CaSO4", "BaSO4"):
        recommendation["antiscalant_type"] = "Phosphonate or polymaleic acid"
        recommendation["dosage_ppm"] = 3 + max_severity * 4
    elif primary == "CaF2":
        recommendation["antiscalant_type"] = "Specialized fluoride inhibitor"
        recommendation["dosage_ppm"] = 4 + max_severity * 5
    return recommendation


def analyze_scaling(
    ion_composition_mg_l: Dict[str, float],
    recovery: float,
    temperature_c: float = 25.0,
    ph: float = 7.5,
) -> ScalingAnalysis:
    """
    Scaling risk of the concentrate at a given recovery.

    Args:
        ion_composition_mg_l: Feed ion concentrations in mg/L
        recovery: Achieved system recovery (fraction)
        temperature_c: Feed temperature in Celsius
        ph: Feed pH

    Returns:
        ScalingAnalysis with one warning per supersaturated compound and
        an antiscalant advisory when any warning exists
    """
    ratios = saturation_ratios(ion_composition_mg_l, recovery, temperature_c, ph)
    concentrate = concentrate_composition(ion_composition_mg_l, recovery)
    lsi = langelier_index(concentrate, ph, temperature_c)
    feed_lsi = langelier_index(ion_composition_mg_l, ph, temperature_c)

    warnings = [
        f"{compound} saturation ratio {ratio:.2f} exceeds 1.0 at {recovery:.1%} recovery"
        for compound, ratio in ratios.items()
        if ratio > 1.0
    ]
    if warnings:
        warnings.append(ANTISCALANT_ADVISORY)

    recommendations = []
    if lsi is not None and lsi > 0:
        recommendations.append(
            f"Concentrate LSI {lsi:.2f} is positive: consider acid dosing to lower feed pH"
        )
    antiscalant = recommend_antiscalant(ratios)
    if antiscalant["primary_concern"]:
        recommendations.append(
            f"Primary scalant {antiscalant['primary_concern']}: "
            f"{antiscalant['antiscalant_type']} at about {antiscalant['dosage_ppm']:.1f} mg/L"
        )

    if warnings:
        logger.info(f"Scaling risk at {recovery:.1%} recovery: "
                    f"{', '.join(c for c, r in ratios.items() if r > 1.0)}")

    return ScalingAnalysis(
        recovery=recovery,
        concentration_factor=1.0 / (1.0 - recovery),
        saturation_ratios=ratios,
        scaling_tendency={c: get_scaling_tendency(saturation_index(r)) for c, r in ratios.items()},
        lsi=lsi,
        feed_lsi=feed_lsi,
        warnings=warnings,
        recommendations=recommendations,
    )
