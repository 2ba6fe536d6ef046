# -*- coding: utf-8 -*-
"""
RO train design engine.
"""

from .exceptions import (
    ROTrainError,
    InvalidInputError,
    ConfigurationError,
    InvalidOperatingPointError,
    SolverError,
)
from .schemas import (
    PlantTopology,
    StageTopology,
    FeedSpecification,
    SolverOptions,
    DosingOptions,
    ElementState,
    StageState,
    SystemResult,
)
from .membrane_catalog import MembraneCatalog, MembraneProperties
from .ro_solver import SolverState, SystemSolver, solve_ro_system
from .simulate_ro import (
    run_ro_simulation,
    build_solver_options,
    build_dosing_options,
)
from .scaling_prediction import analyze_scaling
from .chemical_dosing import ChemicalDosingCalculator

__all__ = [
    'ROTrainError',
    'InvalidInputError',
    'ConfigurationError',
    'InvalidOperatingPointError',
    'SolverError',
    'PlantTopology',
    'StageTopology',
    'FeedSpecification',
    'SolverOptions',
    'DosingOptions',
    'ElementState',
    'StageState',
    'SystemResult',
    'MembraneCatalog',
    'MembraneProperties',
    'SolverState',
    'SystemSolver',
    'solve_ro_system',
    'run_ro_simulation',
    'build_solver_options',
    'build_dosing_options',
    'analyze_scaling',
    'ChemicalDosingCalculator',
]
