"""
Chemical dosing calculations for RO systems.

This module handles:
- Antiscalant consumption and cost
- Acid dosing for feed pH reduction
"""

import logging
from typing import Optional

from .chemistry import validate_ph
from .exceptions import InvalidInputError
from .schemas import ChemicalDosage, ChemicalDosingResult, DosingOptions

logger = logging.getLogger(__name__)


class ChemicalDosingCalculator:
    """Calculate chemical dosing for RO systems."""

    def __init__(self, options: Optional[DosingOptions] = None):
        self.options = options or DosingOptions()

    def calculate_antiscalant_dose(self, feed_flow_m3h: float) -> ChemicalDosage:
        """
        Antiscalant consumption at the configured dose.

        daily kg = dose (mg/L) x feed flow (m³/h) x 24 / 1000
        """
        dose = self.options.antiscalant_dose_mg_l
        daily_kg = dose * feed_flow_m3h * 24 / 1000
        return ChemicalDosage(
            chemical="Antiscalant",
            dose_mg_l=dose,
            daily_consumption_kg=daily_kg,
            daily_cost_usd=daily_kg * self.options.antiscalant_cost_usd_kg,
        )

    def calculate_acid_dose(self, feed_ph: float, feed_flow_m3h: float) -> ChemicalDosage:
        """
        Acid needed to bring feed pH down to the target pH.

        Dose = (feed pH - target pH) x mg/L per pH unit for the acid; zero
        when the feed is already at or below target.
        """
        validate_ph(feed_ph)
        acid = self.options.acid_type
        if acid not in self.options.acid_mg_l_per_ph_unit:
            raise InvalidInputError(f"No dosing factor configured for acid '{acid}'")

        ph_deficit = max(0.0, feed_ph - self.options.target_ph)
        dose = ph_deficit * self.options.acid_mg_l_per_ph_unit[acid]
        daily_kg = dose * feed_flow_m3h * 24 / 1000
        return ChemicalDosage(
            chemical=acid,
            dose_mg_l=dose,
            daily_consumption_kg=daily_kg,
            daily_cost_usd=daily_kg * self.options.acid_cost_usd_kg.get(acid, 0.0),
        )

    def calculate(self, feed_flow_m3h: float, feed_ph: float) -> ChemicalDosingResult:
        """
        Dosing for every enabled chemical.

        Always returns a result; with nothing enabled the dosage list is
        empty and the total cost is zero.
        """
        if feed_flow_m3h < 0:
            raise InvalidInputError(f"Feed flow must be non-negative, got {feed_flow_m3h}")

        result = ChemicalDosingResult()

        if self.options.antiscalant_enabled:
            dosage = self.calculate_antiscalant_dose(feed_flow_m3h)
            result.dosages.append(dosage)
            result.recommendations.append(
                f"Dose antiscalant at {dosage.dose_mg_l:.1f} mg/L before the cartridge filters"
            )

        if self.options.acid_enabled:
            dosage = self.calculate_acid_dose(feed_ph, feed_flow_m3h)
            result.dosages.append(dosage)
            if dosage.dose_mg_l > 0:
                result.recommendations.append(
                    f"Dose {dosage.chemical} at {dosage.dose_mg_l:.1f} mg/L to lower pH "
                    f"from {feed_ph:.2f} to {self.options.target_ph:.2f}"
                )
            else:
                result.recommendations.append(
                    f"Feed pH {feed_ph:.2f} is already at or below target "
                    f"{self.options.target_ph:.2f}; no acid required"
                )

        result.total_daily_cost_usd = sum(d.daily_cost_usd for d in result.dosages)
        logger.debug(f"Chemical dosing total: {result.total_daily_cost_usd:.2f} USD/day")
        return result
