import functools
import json
import re
from pathlib import Path

import pandas as pd
from beartype import beartype
from beartype.typing import Dict, Tuple, Union

from xrpdium.types import SimulationSettings, create_simulation_settings

DEFAULT_DATA_DIR = Path(__file__).resolve().parent / "data"
DEFAULT_ATOMIC_NUMBERS_PATH = DEFAULT_DATA_DIR / "atomic_numbers.json"
DEFAULT_CROMER_MANN_PATH = DEFAULT_DATA_DIR / "cromer_mann.csv"

_CROMER_MANN_COLUMNS = ("a1", "b1", "a2", "b2", "a3", "b3", "a4", "b4", "c")
_ELEMENT_PATTERN = re.compile(r"\s*([A-Za-z]{1,2})")


@beartype
def load_atomic_numbers(
    path: Union[str, Path] = DEFAULT_ATOMIC_NUMBERS_PATH,
) -> Dict[str, int]:
    """
    Description
    -----------
    Load the mapping from element symbols to atomic numbers.

    Parameters
    ----------
    - `path` (Union[str, Path], optional):
        JSON file of {symbol: Z}. Defaults to the table shipped with the
        package

    Returns
    -------
    - `atomic_numbers` (Dict[str, int]):
        Element symbols such as "Na" mapped to atomic numbers
    """
    with open(path, "r") as f:
        atomic_numbers = json.load(f)
    return atomic_numbers


@functools.lru_cache(maxsize=None)
def _default_atomic_numbers() -> Dict[str, int]:
    return load_atomic_numbers()


@beartype
def atomic_number_of(symbol: str) -> int:
    """Atomic number of an element symbol.

    Case is ignored and trailing labels or charges are dropped, so "NA",
    "Na1" and "Na+" all give 11.

    Raises
    ------
    ValueError
        If the symbol is not an element.
    """
    match = _ELEMENT_PATTERN.match(symbol)
    letters = match.group(1).capitalize() if match else ""
    atomic_numbers = _default_atomic_numbers()
    # labels such as "OH1" fall back to the one-letter element
    element = letters if letters in atomic_numbers else letters[:1]
    if element not in atomic_numbers:
        raise ValueError(f"unknown element symbol {symbol!r}")
    return atomic_numbers[element]


@beartype
def load_cromer_mann(
    path: Union[str, Path] = DEFAULT_CROMER_MANN_PATH,
) -> Dict[int, Tuple[float, ...]]:
    """
    Description
    -----------
    Read Cromer-Mann form-factor coefficients from a CSV file with the
    columns symbol, a1, b1, a2, b2, a3, b3, a4, b4, c.

    Parameters
    ----------
    - `path` (Union[str, Path], optional):
        CSV file. Defaults to the small table shipped with the package

    Returns
    -------
    - `coefficients` (Dict[int, Tuple[float, ...]]):
        Nine coefficients per atomic number, ready for
        :func:`xrpdium.simul.cromer_mann_scattering`

    Raises
    ------
    - ValueError:
        If a column is missing or a symbol is not an element
    """
    table: pd.DataFrame = pd.read_csv(path)
    missing = [
        column
        for column in ("symbol",) + _CROMER_MANN_COLUMNS
        if column not in table.columns
    ]
    if missing:
        raise ValueError(f"Cromer-Mann table {path} lacks columns {missing}")
    coefficients = {}
    for _, row in table.iterrows():
        coefficients[atomic_number_of(str(row["symbol"]))] = tuple(
            float(row[column]) for column in _CROMER_MANN_COLUMNS
        )
    return coefficients


@beartype
def load_simulation_settings(path: Union[str, Path]) -> SimulationSettings:
    """
    Description
    -----------
    Read simulation settings from a JSON object whose keys are the
    argument names of :func:`xrpdium.types.create_simulation_settings`.
    Missing keys take their defaults.

    Raises
    ------
    - ValueError:
        If the file holds unknown keys or invalid values
    """
    with open(path, "r") as f:
        values = json.load(f)
    if not isinstance(values, dict):
        raise ValueError(f"{path} must contain a JSON object")
    unknown = sorted(set(values) - set(SimulationSettings._fields))
    if unknown:
        raise ValueError(f"unknown simulation settings in {path}: {unknown}")
    for name in ("preferred_orientation", "chebyshev_coefficients"):
        if name in values:
            values[name] = tuple(values[name])
    return create_simulation_settings(**values)


@beartype
def save_simulation_settings(
    settings: SimulationSettings, path: Union[str, Path]
) -> None:
    """Write settings as JSON readable by :func:`load_simulation_settings`."""
    with open(path, "w") as f:
        json.dump(settings._asdict(), f, indent=4)
