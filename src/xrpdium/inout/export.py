"""Tabular views of simulation results for external writers."""

import numpy as np
import pandas as pd
from beartype import beartype

from xrpdium.types import PowderPattern, ReflectionList


@beartype
def pattern_to_dataframe(pattern: PowderPattern) -> pd.DataFrame:
    """
    Description
    -----------
    Pattern as a DataFrame with the columns two_theta, intensity and esd,
    the layout of an .xye file.

    Parameters
    ----------
    - `pattern` (PowderPattern):
        Any powder pattern

    Returns
    -------
    - `table` (pd.DataFrame):
        One row per grid point
    """
    return pd.DataFrame(
        {
            "two_theta": np.asarray(pattern.two_theta),
            "intensity": np.asarray(pattern.intensity),
            "esd": np.asarray(pattern.esd),
        }
    )


@beartype
def reflections_to_dataframe(reflections: ReflectionList) -> pd.DataFrame:
    """One row per reflection with h, k, l and every per-reflection field."""
    hkl = np.asarray(reflections.hkl)
    return pd.DataFrame(
        {
            "h": hkl[:, 0],
            "k": hkl[:, 1],
            "l": hkl[:, 2],
            "d_spacing": np.asarray(reflections.d_spacing),
            "two_theta": np.asarray(reflections.two_theta),
            "f_squared": np.asarray(reflections.f_squared),
            "multiplicity": np.asarray(reflections.multiplicity),
            "orientation_factor": np.asarray(reflections.orientation_factor),
            "intensity": np.asarray(reflections.intensity),
        }
    )
