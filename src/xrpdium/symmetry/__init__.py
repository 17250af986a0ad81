"""Crystallographic symmetry for powder diffraction.

Extended Summary
----------------
This module obtains space groups from spglib's database, derives their
Laue classes, groups Miller indices into symmetry orbits, detects
systematic absences, expands the asymmetric unit and enumerates the
unique reflections of a structure. The orbit functions in
:mod:`xrpdium.symmetry.orbits` are the only notion of reflection
equivalence in the package; structure factors, multiplicities and the
preferred-orientation correction all use them.

Routine Listings
----------------
space_group_from_hall_number : function
    SpaceGroup for a Hall setting number
space_group_from_symbol : function
    SpaceGroup for a Hermann-Mauguin symbol
hall_number_from_symbol : function
    Default Hall setting of a symbol
point_group_rotations : function
    Distinct rotation parts of a space group
laue_class : function
    Point-group rotations united with their negations
is_centrosymmetric : function
    Whether the point group contains the inversion
has_inversion_at_origin : function
    Whether -x, -y, -z is an operator
equivalent_reflections : function
    Images of Miller indices under the Laue class
miller_keys : function
    Lexicographic integer keys of Miller indices
canonical_reflection : function
    Canonical orbit representative
reflection_multiplicity : function
    Orbit size
reflection_orbit : function
    Distinct members of an orbit
unique_reflections : function
    One representative per orbit
same_orbit : function
    Equivalence test
orbit_average : function
    Orbit-averaged per-reflection quantity
is_systematically_absent : function
    Extinction test
enumerate_reflections : function
    Unique reflections inside a 2θ window
CandidateReflections : class
    Result of enumerate_reflections
expand_atoms : function
    Asymmetric unit to full unit cell
"""

from .expansion import expand_atoms
from .orbits import (
    canonical_reflection,
    equivalent_reflections,
    miller_keys,
    orbit_average,
    reflection_multiplicity,
    reflection_orbit,
    same_orbit,
    unique_reflections,
)
from .reflections import (
    CandidateReflections,
    enumerate_reflections,
    is_systematically_absent,
)
from .space_groups import (
    hall_number_from_symbol,
    has_inversion_at_origin,
    is_centrosymmetric,
    laue_class,
    point_group_rotations,
    space_group_from_hall_number,
    space_group_from_symbol,
)

__all__ = [
    "expand_atoms",
    "canonical_reflection",
    "equivalent_reflections",
    "miller_keys",
    "orbit_average",
    "reflection_multiplicity",
    "reflection_orbit",
    "same_orbit",
    "unique_reflections",
    "CandidateReflections",
    "enumerate_reflections",
    "is_systematically_absent",
    "hall_number_from_symbol",
    "has_inversion_at_origin",
    "is_centrosymmetric",
    "laue_class",
    "point_group_rotations",
    "space_group_from_hall_number",
    "space_group_from_symbol",
]
