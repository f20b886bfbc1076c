# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
from py_ecc.optimized_bn128 import curve_order, field_modulus

# bn254 scalar field (public signals) and base field (point coordinates)
SNARK_SCALAR_FIELD = curve_order
SNARK_BASE_FIELD = field_modulus

PROTOCOL = "groth16"
CURVE = "bn128"

# circuit declared outputs, in order
PUBLIC_SIGNAL_NAMES = ("townWin", "mafiaWin", "roomId", "mafiaCount", "townCount")
PUBLIC_SIGNAL_COUNT = len(PUBLIC_SIGNAL_NAMES)
TOWN_WIN_INDEX = 0
MAFIA_WIN_INDEX = 1
ROOM_ID_INDEX = 2
MAFIA_COUNT_INDEX = 3
TOWN_COUNT_INDEX = 4

DEFAULT_PROOF_TIMEOUT = 30.0
DEFAULT_MAX_WORKERS = 2

# deployment artifacts
DEFAULT_WASM_PATH = "public/mafia_outcome.wasm"
DEFAULT_ZKEY_PATH = "public/mafia_outcome_0001.zkey"
DEFAULT_VKEY_PATH = "public/verification_key.json"
DEFAULT_SNARKJS_BIN = "snarkjs"

# on-chain player state
FLAG_ACTIVE = 2
ROLE_MAFIA = 1

# solidity entry points that carry a proof
VERIFY_PROOF_SIGNATURE = "verifyProof(uint256[2],uint256[2][2],uint256[2],uint256[5])"
END_GAME_SIGNATURE = "endGameZK(uint256,uint256[2],uint256[2][2],uint256[2],uint256[5])"
