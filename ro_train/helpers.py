# -*- coding: utf-8 -*-
"""
Helper functions for RO train calculations.
"""

import json
import numpy as np
from typing import Any, Iterable, List, Tuple, Union

from .exceptions import InvalidInputError


def parse_array_notation(array_notation: str) -> List[int]:
    """
    Parse array notation into vessel counts per stage.

    Example: "10:5:3" -> [10, 5, 3]

    Raises:
        InvalidInputError: If a field is not a non-negative integer
    """
    try:
        counts = [int(part) for part in array_notation.split(':')]
    except (AttributeError, ValueError) as e:
        raise InvalidInputError(f"Invalid array notation '{array_notation}'. Use e.g. '6:3'") from e
    if not counts or any(n < 0 for n in counts):
        raise InvalidInputError(f"Invalid array notation '{array_notation}'. Use e.g. '6:3'")
    return counts


def parse_vessel_elements(vessel_elements: Union[str, List[List[int]]]) -> List[List[int]]:
    """
    Parse per-vessel element counts.

    Accepts a list of lists or its JSON string, e.g. "[[7, 7, 7], [6, 6]]".

    Raises:
        InvalidInputError: If the value is not a list of integer lists
    """
    if isinstance(vessel_elements, str):
        try:
            vessel_elements = json.loads(vessel_elements)
        except json.JSONDecodeError as e:
            raise InvalidInputError(f"Invalid vessel_elements JSON: {e}") from e

    if not isinstance(vessel_elements, list) or not all(isinstance(s, list) for s in vessel_elements):
        raise InvalidInputError("vessel_elements must be a list of per-stage lists")
    try:
        return [[int(n) for n in stage] for stage in vessel_elements]
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"vessel_elements must contain integers: {e}") from e


def check_mass_balance(feed_flow: float,
                       permeate_flow: float,
                       concentrate_flow: float,
                       tolerance: float = 0.01) -> Tuple[bool, float]:
    """
    Check mass balance closure.

    Returns:
    --------
    Tuple[bool, float] : (is_balanced, error_magnitude)
    """
    error = abs(feed_flow - (permeate_flow + concentrate_flow))
    is_balanced = error < tolerance
    return is_balanced, error


def max_element_imbalance(elements: Iterable[Any]) -> float:
    """Largest |feed - permeate - concentrate| over element states."""
    errors = [
        check_mass_balance(e.feed_flow_m3h, e.permeate_flow_m3h, e.concentrate_flow_m3h)[1]
        for e in elements
    ]
    return max(errors, default=0.0)


def convert_numpy_types(obj):
    """
    Recursively convert numpy types to native Python types for JSON serialization.

    Parameters:
    -----------
    obj : Any
        Object that may contain numpy types

    Returns:
    --------
    Any : Object with numpy types converted to Python types
    """
    if isinstance(obj, np.bool_):
        return bool(obj)
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, np.ndarray):
        return obj.tolist()
    elif isinstance(obj, dict):
        return {key: convert_numpy_types(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [convert_numpy_types(item) for item in obj]
    elif isinstance(obj, tuple):
        return tuple(convert_numpy_types(item) for item in obj)
    else:
        return obj
