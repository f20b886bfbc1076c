# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# bn254.py

"""
BN254 point helpers for snarkjs-style JSON coordinates.

snarkjs writes every point in projective form with decimal-string coordinates:

    G1: [x, y, z]                          z is "1", or "0" at infinity
    G2: [[x_c0, x_c1], [y_c0, y_c1], [z_c0, z_c1]]

Fq2 elements are `c0 + c1 * i`, listed as `[c0, c1]`. The helpers below move
between that layout and py_ecc's optimized projective tuples.
"""

from typing import Any, Sequence

from py_ecc.optimized_bn128 import (
    FQ,
    FQ2,
    G1,
    G2,
    Z1,
    Z2,
    b,
    b2,
    is_inf,
    is_on_curve,
    multiply,
    normalize,
)

from outcome_zk.constants import SNARK_BASE_FIELD


def to_int(value: Any) -> int:
    """
    Parse a field element given as an int or decimal/`0x` hex string.

    Raises:
        ValueError: If the value is not a non-negative integer.
    """
    if isinstance(value, bool):
        raise ValueError("boolean is not a field element")
    if isinstance(value, int):
        n = value
    elif isinstance(value, str):
        s = value.strip().lower()
        n = int(s[2:], 16) if s.startswith("0x") else int(s, 10)
    else:
        raise ValueError(f"field element must be int or str, got {type(value).__name__}")
    if n < 0:
        raise ValueError(f"field element must be non-negative, got {n}")
    return n


def _coordinate(value: Any) -> int:
    n = to_int(value)
    if n >= SNARK_BASE_FIELD:
        raise ValueError("coordinate is not reduced modulo the base field")
    return n


def g1_from_strings(coords: Sequence[Any]) -> tuple:
    """
    Build a G1 point from `[x, y]` or `[x, y, z]`.

    Raises:
        ValueError: If the shape is wrong or a coordinate is not a reduced
            base field element.
    """
    if not isinstance(coords, (list, tuple)) or len(coords) not in (2, 3):
        raise ValueError("G1 point must have 2 or 3 coordinates")
    x, y = _coordinate(coords[0]), _coordinate(coords[1])
    z = _coordinate(coords[2]) if len(coords) == 3 else 1
    if z == 0:
        return Z1
    return (FQ(x), FQ(y), FQ(z))


def g2_from_strings(coords: Sequence[Any]) -> tuple:
    """
    Build a G2 point from `[[x_c0, x_c1], [y_c0, y_c1]]`, optionally followed
    by a `[z_c0, z_c1]` row.
    """
    if not isinstance(coords, (list, tuple)) or len(coords) not in (2, 3):
        raise ValueError("G2 point must have 2 or 3 rows")
    rows = []
    for row in coords:
        if not isinstance(row, (list, tuple)) or len(row) != 2:
            raise ValueError("G2 row must have exactly 2 coordinates")
        rows.append([_coordinate(row[0]), _coordinate(row[1])])
    z = rows[2] if len(rows) == 3 else [1, 0]
    if z == [0, 0]:
        return Z2
    return (FQ2(rows[0]), FQ2(rows[1]), FQ2(z))


def g1_on_curve(pt: tuple) -> bool:
    return is_on_curve(pt, b)


def g2_on_curve(pt: tuple) -> bool:
    return is_on_curve(pt, b2)


def g1_to_strings(pt: tuple) -> list[str]:
    """Affine snarkjs form `[x, y, "1"]`, or `["0", "1", "0"]` at infinity."""
    if is_inf(pt):
        return ["0", "1", "0"]
    x, y = normalize(pt)
    return [str(int(x)), str(int(y)), "1"]


def g2_to_strings(pt: tuple) -> list[list[str]]:
    if is_inf(pt):
        return [["0", "0"], ["1", "0"], ["0", "0"]]
    x, y = normalize(pt)
    return [
        [str(int(c)) for c in x.coeffs],
        [str(int(c)) for c in y.coeffs],
        ["1", "0"],
    ]


def g1_point(scalar: int) -> tuple:
    return multiply(G1, scalar)


def g2_point(scalar: int) -> tuple:
    return multiply(G2, scalar)
