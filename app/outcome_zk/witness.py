# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# witness.py

"""
Canonicalize a game outcome witness for the outcome circuit.

The room id originates from a uint256 on-chain identifier, so it is carried
as a decimal string end to end and never as a fixed-width number. Counts are
small non-negative integers.
"""

import math
import re
from dataclasses import dataclass
from typing import Any

from outcome_zk.constants import SNARK_SCALAR_FIELD
from outcome_zk.errors import InvalidWitness

# largest float that still holds every integer below it exactly
_MAX_EXACT_FLOAT = 2**53

_DECIMAL = re.compile(r"[0-9]+")
_HEX = re.compile(r"0[xX][0-9a-fA-F]+")


@dataclass(frozen=True)
class Witness:
    room_id: str
    mafia_count: int
    town_count: int

    def to_circuit_input(self) -> dict[str, str]:
        """Circuit input signals, every value as a decimal string."""
        return {
            "roomId": self.room_id,
            "mafiaCount": str(self.mafia_count),
            "townCount": str(self.town_count),
        }


def _parse_integer(value: Any, label: str) -> int:
    # bool is an int subclass; True is not a room id
    if isinstance(value, bool):
        raise InvalidWitness(f"{label} must be an integer, got a boolean")

    if isinstance(value, int):
        n = value
    elif isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            raise InvalidWitness(f"{label} must be integral, got {value!r}")
        if abs(value) > _MAX_EXACT_FLOAT:
            raise InvalidWitness(f"{label} {value!r} exceeds exact float range; pass it as a string")
        n = int(value)
    elif isinstance(value, str):
        text = value.strip()
        if _DECIMAL.fullmatch(text):
            n = int(text, 10)
        elif _HEX.fullmatch(text):
            n = int(text[2:], 16)
        else:
            raise InvalidWitness(f"{label} is not a non-negative integer: {value!r}")
    else:
        raise InvalidWitness(f"{label} must be an integer or integer string, got {type(value).__name__}")

    if n < 0:
        raise InvalidWitness(f"{label} must be non-negative, got {n}")
    return n


def parse_room_id(room_id: Any) -> str:
    """
    Render a room id as a canonical decimal string.

    Accepts ints, integral floats, decimal strings and `0x`-prefixed hex
    strings. The result has no sign and no leading zeros.

    Raises:
        InvalidWitness: If the value is not a non-negative integer, or does not
            fit the circuit's scalar field (the circuit would silently reduce
            it and prove a different room).
    """
    n = _parse_integer(room_id, "roomId")
    if n >= SNARK_SCALAR_FIELD:
        raise InvalidWitness("roomId does not fit the circuit's scalar field")
    return str(n)


def parse_count(count: Any, label: str) -> int:
    n = _parse_integer(count, label)
    # the circuit would reduce it and echo a different count
    if n >= SNARK_SCALAR_FIELD:
        raise InvalidWitness(f"{label} does not fit the circuit's scalar field")
    return n


def normalize_witness(room_id: Any, mafia_count: Any, town_count: Any) -> Witness:
    """
    Build a `Witness` from request values.

    Args:
        room_id: Room identifier in any integer-like textual or numeric form.
        mafia_count: Number of alive mafia players.
        town_count: Number of alive town players.

    Returns:
        The canonical `Witness`.

    Raises:
        InvalidWitness: On any unparseable, negative or non-integral value.
    """
    return Witness(
        room_id=parse_room_id(room_id),
        mafia_count=parse_count(mafia_count, "mafiaCount"),
        town_count=parse_count(town_count, "townCount"),
    )


def witness_from_request(body: Any) -> Witness:
    """Normalize a `{roomId, mafiaCount, townCount}` request body."""
    if not isinstance(body, dict):
        raise InvalidWitness("request body must be a JSON object")
    missing = [k for k in ("roomId", "mafiaCount", "townCount") if body.get(k) is None]
    if missing:
        raise InvalidWitness(f"missing field(s): {', '.join(missing)}")
    return normalize_witness(body["roomId"], body["mafiaCount"], body["townCount"])
