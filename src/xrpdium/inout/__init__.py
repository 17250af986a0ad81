"""Data input/output utilities for powder simulation.

Extended Summary
----------------
This module loads the element tables shipped with the package, reads and
writes simulation settings as JSON and converts simulation results to
pandas DataFrames for external file writers.

Routine Listings
----------------
atomic_number_of : function
    Atomic number of an element symbol
load_atomic_numbers : function
    Loads the element symbol to atomic number table
load_cromer_mann : function
    Loads Cromer-Mann form-factor coefficients from a CSV file
load_simulation_settings : function
    Reads SimulationSettings from a JSON file
save_simulation_settings : function
    Writes SimulationSettings to a JSON file
pattern_to_dataframe : function
    PowderPattern as a DataFrame
reflections_to_dataframe : function
    ReflectionList as a DataFrame

Notes
-----
Writers for specific pattern formats consume the DataFrames and are not
part of this package.
"""

from .data_io import (
    atomic_number_of,
    load_atomic_numbers,
    load_cromer_mann,
    load_simulation_settings,
    save_simulation_settings,
)
from .export import pattern_to_dataframe, reflections_to_dataframe

__all__ = [
    "atomic_number_of",
    "load_atomic_numbers",
    "load_cromer_mann",
    "load_simulation_settings",
    "save_simulation_settings",
    "pattern_to_dataframe",
    "reflections_to_dataframe",
]
