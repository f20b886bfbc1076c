# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# txdata.py

"""
ABI transaction data for the two contract entry points that carry a proof:

    verifyProof(uint256[2] a, uint256[2][2] b, uint256[2] c, uint256[5] inputs)
    endGameZK(uint256 roomId, uint256[2] a, uint256[2][2] b, uint256[2] c, uint256[5] inputs)

Decoding is what lets an operator lift a proof out of a submitted (and
possibly reverted) transaction and re-verify it off-chain.
"""

from typing import NamedTuple

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_typing import HexStr
from eth_utils import decode_hex, encode_hex, function_signature_to_4byte_selector

from outcome_zk.constants import END_GAME_SIGNATURE, PUBLIC_SIGNAL_COUNT, VERIFY_PROOF_SIGNATURE
from outcome_zk.errors import EncodingMismatch, MalformedProof
from outcome_zk.groth_convert import ChainProof, partition_calldata

PROOF_TYPES = ["uint256[2]", "uint256[2][2]", "uint256[2]", f"uint256[{PUBLIC_SIGNAL_COUNT}]"]

VERIFY_PROOF_SELECTOR = function_signature_to_4byte_selector(VERIFY_PROOF_SIGNATURE)
END_GAME_SELECTOR = function_signature_to_4byte_selector(END_GAME_SIGNATURE)


class DecodedCall(NamedTuple):
    function: str
    proof: ChainProof
    room_id: str | None


def _proof_args(chain: ChainProof) -> list:
    if len(chain.inputs) != PUBLIC_SIGNAL_COUNT:
        raise EncodingMismatch(
            f"verifier takes {PUBLIC_SIGNAL_COUNT} public inputs, proof carries {len(chain.inputs)}"
        )
    return [
        [int(v) for v in chain.a],
        [[int(v) for v in row] for row in chain.b],
        [int(v) for v in chain.c],
        [int(v) for v in chain.inputs],
    ]


def encode_verify_call(chain: ChainProof) -> HexStr:
    """Transaction data for `verifyProof(a, b, c, inputs)`."""
    return encode_hex(VERIFY_PROOF_SELECTOR + encode(PROOF_TYPES, _proof_args(chain)))


def encode_end_game_call(room_id: str | int, chain: ChainProof) -> HexStr:
    """Transaction data for `endGameZK(roomId, a, b, c, inputs)`."""
    args = [int(room_id), *_proof_args(chain)]
    return encode_hex(END_GAME_SELECTOR + encode(["uint256", *PROOF_TYPES], args))


def decode_call(data: str | bytes) -> DecodedCall:
    """
    Decode `verifyProof` or `endGameZK` transaction data into a `ChainProof`.

    Raises:
        MalformedProof: If the selector is unknown or the arguments do not
            decode.
    """
    if isinstance(data, str):
        try:
            raw = decode_hex(data.strip())
        except ValueError as e:
            raise MalformedProof(f"transaction data is not hex: {e}") from e
    else:
        raw = bytes(data)

    selector, body = raw[:4], raw[4:]
    if selector == VERIFY_PROOF_SELECTOR:
        function, types = "verifyProof", PROOF_TYPES
    elif selector == END_GAME_SELECTOR:
        function, types = "endGameZK", ["uint256", *PROOF_TYPES]
    else:
        raise MalformedProof(f"unknown function selector 0x{selector.hex()}")

    try:
        values = decode(types, body)
    except DecodingError as e:
        raise MalformedProof(f"cannot decode {function} arguments: {e}") from e

    room_id = None
    if function == "endGameZK":
        room_id, values = str(values[0]), values[1:]
    a, b, c, inputs = values
    flat = [str(v) for v in (*a, *b[0], *b[1], *c, *inputs)]
    return DecodedCall(function=function, proof=partition_calldata(flat), room_id=room_id)
