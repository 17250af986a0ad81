"""
=========================================================

XRPDIUM Package (:mod:`xrpdium`)

=========================================================

This is the root of the xrpdium package, containing submodules for:
- Data I/O (`inout`)
- Powder pattern simulation (`simul`)
- Space groups and reflection symmetry (`symmetry`)
- Custom types (`types`)
- Unit cell computations (`ucell`)

Each submodule can be directly accessed after importing xrpdium.
"""

from . import inout, simul, symmetry, types, ucell
