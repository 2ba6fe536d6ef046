"""
Membrane property catalog.

Provides an immutable lookup of element physical constants keyed by
model name. The catalog is built once (from configuration or an explicit
mapping) and injected into the solver; nothing here is module state.
"""

import logging
import re
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import get_config
from .constants import MAX_ELEMENT_RECOVERY
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class MembraneProperties(BaseModel):
    """Physical constants of one element model (US units)."""

    model: str
    membrane_class: str = Field(..., pattern="^(seawater|brackish)$")
    area_ft2: float = Field(..., gt=0)
    water_permeability: float = Field(..., gt=0, description="gfd/psi at 25 °C")
    salt_permeability: float = Field(..., ge=0, description="gfd")
    rejection: float = Field(..., gt=0, lt=1)
    max_flux_gfd: float = Field(..., gt=0)
    max_feed_flow_gpm: float = Field(..., gt=0)
    max_pressure_drop_psi: float = Field(..., gt=0)

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    @property
    def max_element_recovery(self) -> float:
        return MAX_ELEMENT_RECOVERY[self.membrane_class]


def normalize_membrane_name(membrane_model: str) -> str:
    """
    Normalize a model name for lookup.

    Collapses repeated whitespace and treats underscores as spaces, so
    'ZEKINDO_SW-400_HR' and 'zekindo sw-400 hr' both match.
    """
    if not membrane_model:
        return membrane_model
    return re.sub(r'[\s_]+', ' ', membrane_model).strip().upper()


class MembraneCatalog(Mapping):
    """Read-only mapping of model name -> MembraneProperties."""

    def __init__(self, entries: Mapping[str, Any]):
        """
        Args:
            entries: Model name -> MembraneProperties or property dict

        Raises:
            ConfigurationError: If an entry is malformed or the catalog is empty
        """
        if not entries:
            raise ConfigurationError("Membrane catalog is empty")

        props: Dict[str, MembraneProperties] = {}
        for name, data in entries.items():
            if isinstance(data, MembraneProperties):
                props[name] = data
                continue
            try:
                props[name] = MembraneProperties(model=name, **data)
            except (ValidationError, TypeError) as e:
                raise ConfigurationError(f"Invalid catalog entry for '{name}': {e}") from e

        self._entries = MappingProxyType(props)
        self._index = MappingProxyType(
            {normalize_membrane_name(name): name for name in props}
        )

    @classmethod
    def from_config(cls, key: str = "membrane_catalog") -> "MembraneCatalog":
        """Build the catalog from the loaded YAML configuration."""
        entries = get_config(key)
        if not entries:
            raise ConfigurationError(f"No membrane catalog found under config key '{key}'")
        logger.debug(f"Loaded {len(entries)} membrane models from configuration")
        return cls(entries)

    def get_properties(self, membrane_model: str) -> MembraneProperties:
        """
        Look up a membrane model.

        Raises:
            ConfigurationError: If the model is unknown
        """
        name: Optional[str] = self._index.get(normalize_membrane_name(membrane_model or ""))
        if name is None:
            raise ConfigurationError(
                f"Unknown membrane model '{membrane_model}'. "
                f"Available: {sorted(self._entries)}"
            )
        return self._entries[name]

    def __getitem__(self, membrane_model: str) -> MembraneProperties:
        return self.get_properties(membrane_model)

    def __contains__(self, membrane_model: object) -> bool:
        return (isinstance(membrane_model, str)
                and normalize_membrane_name(membrane_model) in self._index)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        """Serializable view for the presentation layer."""
        return {name: props.model_dump() for name, props in self._entries.items()}
