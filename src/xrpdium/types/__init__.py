"""Custom types and data structures for powder diffraction simulation.

Extended Summary
----------------
This module defines the JAX-compatible data structures used throughout
xrpdium: crystal structures and their symmetry, reflection lists, powder
patterns, the simulation settings, and the exception hierarchy. Array
types are PyTrees that support JAX transformations.

Routine Listings
----------------
CrystalLattice : class
    Six cell parameters of a unit cell
SymmetryOperator : class
    Rotation plus translation acting on fractional coordinates
SpaceGroup : class
    Closed set of symmetry operators
Atom : class
    One atomic site with occupancy and displacement tensor
CrystalStructure : class
    Lattice, space group and atoms of the asymmetric unit
ReflectionList : class
    Unique reflections with geometry and intensities
PowderPattern : class
    2θ, intensity and ESD triples on a grid
SimulationSettings : class
    Options of a realistic pattern simulation
SymmetricEigenResult : class
    Result of the 3x3 symmetric eigensolver
create_crystal_lattice : function
    Factory function to create CrystalLattice instances
create_symmetry_operator : function
    Factory function to create SymmetryOperator instances
compose_operators : function
    Compose two symmetry operators
create_space_group : function
    Factory function to create SpaceGroup instances
trivial_space_group : function
    The space group P1
create_atom : function
    Factory function to create Atom instances
create_crystal_structure : function
    Factory function to create CrystalStructure instances
create_reflection_list : function
    Factory function to create ReflectionList instances
create_powder_pattern : function
    Factory function to create PowderPattern instances
create_simulation_settings : function
    Factory function to create SimulationSettings instances
make_two_theta_grid : function
    Uniform 2θ grid
pattern_step : function
    Average step of a 2θ grid
check_uniform_grid : function
    Raise DomainError for a non-uniform grid
add_patterns : function
    Sum two patterns on the same grid
scale_pattern : function
    Scale intensities and ESDs

Type Aliases
------------
- `scalar_float`:
    Union type for scalar float values (float or JAX scalar array)
- `scalar_int`:
    Union type for scalar integer values (int or JAX scalar array)
- `scalar_num`:
    Union type for scalar numeric values (int, float, or JAX scalar array)
- `scalar_bool`:
    Union type for scalar booleans
- `non_jax_number`:
    Union type for non-JAX numeric values (int or float)
- `scattering_function`:
    Callable mapping atomic numbers and sinθ/λ to scattering factors

Exceptions
----------
XrpdiumError, GeometryError, ConversionError, NumericalError, DomainError
"""

from .crystal_types import (
    Atom,
    CrystalLattice,
    CrystalStructure,
    SpaceGroup,
    SymmetryOperator,
    compose_operators,
    create_atom,
    create_crystal_lattice,
    create_crystal_structure,
    create_space_group,
    create_symmetry_operator,
    trivial_space_group,
)
from .custom_types import (
    non_jax_number,
    scalar_bool,
    scalar_float,
    scalar_int,
    scalar_num,
    scattering_function,
)
from .errors import (
    ConversionError,
    DomainError,
    GeometryError,
    NumericalError,
    XrpdiumError,
)
from .linalg_types import SymmetricEigenResult
from .pattern_types import (
    PowderPattern,
    ReflectionList,
    add_patterns,
    check_uniform_grid,
    create_powder_pattern,
    create_reflection_list,
    make_two_theta_grid,
    pattern_step,
    scale_pattern,
)
from .settings_types import (
    BACKGROUND_MODELS,
    SimulationSettings,
    create_simulation_settings,
)

__all__ = [
    "Atom",
    "CrystalLattice",
    "CrystalStructure",
    "SpaceGroup",
    "SymmetryOperator",
    "compose_operators",
    "create_atom",
    "create_crystal_lattice",
    "create_crystal_structure",
    "create_space_group",
    "create_symmetry_operator",
    "trivial_space_group",
    "non_jax_number",
    "scalar_bool",
    "scalar_float",
    "scalar_int",
    "scalar_num",
    "scattering_function",
    "ConversionError",
    "DomainError",
    "GeometryError",
    "NumericalError",
    "XrpdiumError",
    "SymmetricEigenResult",
    "PowderPattern",
    "ReflectionList",
    "add_patterns",
    "check_uniform_grid",
    "create_powder_pattern",
    "create_reflection_list",
    "make_two_theta_grid",
    "pattern_step",
    "scale_pattern",
    "BACKGROUND_MODELS",
    "SimulationSettings",
    "create_simulation_settings",
]
