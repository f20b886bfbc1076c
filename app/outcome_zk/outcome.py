# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# outcome.py

"""
Game outcome rules mirrored from the outcome circuit.

The circuit exposes five public signals, in this order:

    [townWin, mafiaWin, roomId, mafiaCount, townCount]

Town wins once no mafia is alive; mafia wins once it matches or outnumbers
the town. These helpers decide when a proof is worth generating and what the
circuit is expected to output for a witness.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping

from outcome_zk.constants import FLAG_ACTIVE, ROLE_MAFIA
from outcome_zk.witness import Witness


class Outcome(Enum):
    TOWN_WIN = "TOWN_WIN"
    MAFIA_WIN = "MAFIA_WIN"


def determine_outcome(mafia_count: int, town_count: int) -> Outcome | None:
    if mafia_count == 0:
        return Outcome.TOWN_WIN
    if mafia_count >= town_count:
        return Outcome.MAFIA_WIN
    return None


def expected_public_signals(witness: Witness) -> list[str]:
    """Public signals the outcome circuit declares for `witness`."""
    outcome = determine_outcome(witness.mafia_count, witness.town_count)
    return [
        "1" if outcome is Outcome.TOWN_WIN else "0",
        "1" if outcome is Outcome.MAFIA_WIN else "0",
        witness.room_id,
        str(witness.mafia_count),
        str(witness.town_count),
    ]


@dataclass
class FactionTally:
    mafia_count: int = 0
    town_count: int = 0
    missing: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.missing

    def outcome(self) -> Outcome | None:
        # a win is never declared while an alive player's role is unknown
        if not self.complete:
            return None
        return determine_outcome(self.mafia_count, self.town_count)


def tally_factions(
    players: Iterable[Mapping[str, Any]], roles: Mapping[str, Any]
) -> FactionTally:
    """
    Count alive players per faction.

    Args:
        players: On-chain player records with `wallet` and `flags`.
        roles: Role per lower-cased wallet address; role 1 is mafia, every
            other role counts as town.

    Returns:
        A `FactionTally`; alive wallets without a known role are listed in
        `missing` and not counted.
    """
    tally = FactionTally()
    for player in players:
        if not int(player["flags"]) & FLAG_ACTIVE:
            continue
        wallet = str(player["wallet"]).lower()
        role = roles.get(wallet)
        if role is None:
            tally.missing.append(wallet)
        elif int(role) == ROLE_MAFIA:
            tally.mafia_count += 1
        else:
            tally.town_count += 1
    return tally
