"""
Shared fixtures for RO train tests.
"""

import pytest

from ro_train.element_model import ElementEnvironment
from ro_train.membrane_catalog import MembraneCatalog, MembraneProperties


@pytest.fixture
def catalog():
    """Catalog loaded from config/membrane_catalog.yaml."""
    return MembraneCatalog.from_config()


@pytest.fixture
def brackish_membrane():
    """Round-number brackish element for hand-checkable results."""
    return MembraneProperties(
        model="TEST-BW-400",
        membrane_class="brackish",
        area_ft2=400,
        water_permeability=0.1,
        salt_permeability=0.00006,
        rejection=0.99,
        max_flux_gfd=24,
        max_feed_flow_gpm=16,
        max_pressure_drop_psi=15,
    )


@pytest.fixture
def brackish_env(brackish_membrane):
    """Feed at 100 psi osmotic pressure and 5000 mg/L, no derating."""
    return ElementEnvironment(
        membrane=brackish_membrane,
        feed_osmotic_pressure_psi=100.0,
        feed_tds_mg_l=5000.0,
        tcf=1.0,
        fouling_factor=1.0,
        flow_factor=1.0,
        permeate_pressure_psi=0.0,
    )
