# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# groth_convert.py

"""
Convert snarkjs Groth16 output to the Solidity verifier argument layout.

snarkjs outputs:
  - proof.json: {pi_a: [x, y, "1"], pi_b: [[x0, x1], [y0, y1], ["1", "0"]],
                 pi_c: [x, y, "1"], protocol, curve}
  - public.json: [signal, ...]

The Solidity verifier expects:
  - verifyProof(uint256[2] a, uint256[2][2] b, uint256[2] c, uint256[N] inputs)
  - b rows with the Fq2 coordinates swapped: [[x1, x0], [y1, y0]]

The swap is the EIP-197 precompile convention (imaginary part first). Without
it the pairing is evaluated on a different point and the proof is rejected
even though it is mathematically valid.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from outcome_zk.bn254 import to_int
from outcome_zk.constants import PUBLIC_SIGNAL_COUNT
from outcome_zk.errors import EncodingMismatch, MalformedProof
from outcome_zk.files import load_json, save_json
from outcome_zk.snark import ProofBundle

# a(2) + b(4) + c(2)
PROOF_SCALARS = 8


@dataclass(frozen=True)
class ChainProof:
    a: tuple[str, str]
    b: tuple[tuple[str, str], tuple[str, str]]
    c: tuple[str, str]
    inputs: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "a": list(self.a),
            "b": [list(row) for row in self.b],
            "c": list(self.c),
            "inputs": list(self.inputs),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChainProof":
        """
        Rebuild a `ChainProof` from its dict form.

        Raises:
            MalformedProof: If a group has the wrong shape or a scalar is not
                an integer.
        """
        try:
            a, b, c, inputs = data["a"], data["b"], data["c"], data["inputs"]
            flat = [*a, *b[0], *b[1], *c, *inputs]
            if len(a) != 2 or len(b) != 2 or len(b[0]) != 2 or len(b[1]) != 2 or len(c) != 2:
                raise MalformedProof("chain proof groups must be a[2], b[2][2], c[2]")
        except (KeyError, TypeError, IndexError) as e:
            raise MalformedProof(f"chain proof is missing a group: {e}") from e
        return partition_calldata([scalar(v) for v in flat])

    def flatten(self) -> list[str]:
        return [*self.a, *self.b[0], *self.b[1], *self.c, *self.inputs]


def scalar(value: Any) -> str:
    """Canonical decimal string for an int or decimal/hex string."""
    try:
        return str(to_int(value))
    except ValueError as e:
        raise MalformedProof(f"not an unsigned integer: {value!r}") from e


def _affine(point: Any, name: str) -> list[Any]:
    if not isinstance(point, (list, tuple)) or len(point) < 2:
        raise MalformedProof(f"{name} must have at least two coordinates")
    return list(point[:2])


def flatten_calldata(proof: dict[str, Any], public_signals: Sequence[Any]) -> list[str]:
    """
    Flatten a snarkjs proof and its signals into the verifier's scalar order.

    Order: pi_a[0:2], swapped pi_b[0], swapped pi_b[1], pi_c[0:2], signals.
    The projective third coordinate of each point is dropped.

    Raises:
        MalformedProof: If a point is missing or has too few coordinates.
    """
    try:
        pi_a, pi_b, pi_c = proof["pi_a"], proof["pi_b"], proof["pi_c"]
    except (KeyError, TypeError) as e:
        raise MalformedProof(f"proof is missing a point: {e}") from e

    if not isinstance(pi_b, (list, tuple)) or len(pi_b) < 2:
        raise MalformedProof("pi_b must have at least two rows")
    b0 = _affine(pi_b[0], "pi_b[0]")
    b1 = _affine(pi_b[1], "pi_b[1]")

    flat = [
        *_affine(pi_a, "pi_a"),
        b0[1], b0[0],
        b1[1], b1[0],
        *_affine(pi_c, "pi_c"),
        *public_signals,
    ]
    return [scalar(v) for v in flat]


def partition_calldata(flat: Sequence[str]) -> ChainProof:
    """Slice a flat scalar sequence back into the a/b/c/inputs groups."""
    if len(flat) < PROOF_SCALARS:
        raise MalformedProof(f"calldata needs at least {PROOF_SCALARS} scalars, got {len(flat)}")
    return ChainProof(
        a=(flat[0], flat[1]),
        b=((flat[2], flat[3]), (flat[4], flat[5])),
        c=(flat[6], flat[7]),
        inputs=tuple(flat[PROOF_SCALARS:]),
    )


def proof_to_chain(
    proof: dict[str, Any],
    public_signals: Sequence[Any],
    expected_arity: int = PUBLIC_SIGNAL_COUNT,
) -> ChainProof:
    """
    Encode a snarkjs proof and its public signals as a `ChainProof`.

    Raises:
        EncodingMismatch: If the signal count is not the circuit's arity.
        MalformedProof: If the proof or a signal cannot be read as integers.
    """
    if not isinstance(public_signals, (list, tuple)):
        raise MalformedProof("public signals must be a list")
    if len(public_signals) != expected_arity:
        raise EncodingMismatch(
            f"expected {expected_arity} public signals, got {len(public_signals)}"
        )
    return partition_calldata(flatten_calldata(proof, public_signals))


def chain_to_raw(chain: ChainProof) -> ProofBundle:
    """
    Undo the chain encoding: swap `b` back and restore projective coordinates.

    The result can be handed to the local verifier to re-check a proof taken
    from an already submitted transaction.
    """
    proof = {
        "pi_a": [chain.a[0], chain.a[1], "1"],
        "pi_b": [
            [chain.b[0][1], chain.b[0][0]],
            [chain.b[1][1], chain.b[1][0]],
            ["1", "0"],
        ],
        "pi_c": [chain.c[0], chain.c[1], "1"],
        "protocol": "groth16",
        "curve": "bn128",
    }
    return ProofBundle(proof=proof, public_signals=list(chain.inputs))


def format_solidity_calldata(proof: dict[str, Any], public_signals: Sequence[Any]) -> str:
    """
    Render the textual calldata export, e.g. for pasting into a block explorer:

        ["a0","a1"],[["b00","b01"],["b10","b11"]],["c0","c1"],["i0",...]
    """
    chain = partition_calldata(flatten_calldata(proof, public_signals))

    def group(values: Sequence[str]) -> str:
        return "[" + ",".join(f'"{v}"' for v in values) + "]"

    return ",".join(
        [
            group(chain.a),
            "[" + ",".join(group(row) for row in chain.b) + "]",
            group(chain.c),
            group(chain.inputs),
        ]
    )


def parse_solidity_calldata(text: str) -> ChainProof:
    """
    Parse a textual calldata export back into groups.

    Brackets, quotes and whitespace are stripped and the remaining scalars
    resliced by position; scalars may be decimal or `0x` hex, as snarkjs's own
    exporter writes hex.
    """
    stripped = re.sub(r'["\[\]\s]', "", text)
    if not stripped:
        raise MalformedProof("empty calldata")
    return partition_calldata([scalar(v) for v in stripped.split(",")])


def convert_proof_file(
    proof_path: str | Path,
    public_path: str | Path,
    output_path: str | Path,
    expected_arity: int = PUBLIC_SIGNAL_COUNT,
) -> ChainProof:
    """
    Read snarkjs proof.json and public.json and write `{"formatted": ...}`.

    Args:
        proof_path: Path to snarkjs's proof.json
        public_path: Path to snarkjs's public.json
        output_path: Path to write the formatted chain proof
        expected_arity: Public signal count declared by the circuit

    Returns:
        The encoded `ChainProof`.
    """
    chain = proof_to_chain(load_json(proof_path), load_json(public_path), expected_arity)
    save_json(output_path, {"formatted": chain.to_dict()})
    return chain
