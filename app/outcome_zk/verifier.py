# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# verifier.py

"""
Off-chain Groth16 verification over BN254.

Checks the same equation the on-chain verifier checks,

    e(A, B) == e(alpha, beta) * e(vk_x, gamma) * e(C, delta)
    vk_x = IC[0] + sum(input[i] * IC[i + 1])

so a proof can be tested before submission, or lifted back out of a
submitted transaction when the contract rejects it. A proof that simply does
not verify yields False; exceptions are reserved for a broken key or for
inputs whose shape cannot match the key at all.
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from py_ecc.optimized_bn128 import (
    add,
    curve_order,
    final_exponentiate,
    is_inf,
    multiply,
    pairing,
)

from outcome_zk.bn254 import (
    g1_from_strings,
    g1_on_curve,
    g2_from_strings,
    g2_on_curve,
    to_int,
)
from outcome_zk.constants import CURVE, PROTOCOL, SNARK_BASE_FIELD, SNARK_SCALAR_FIELD
from outcome_zk.errors import MalformedProof, VerificationKeyInvalid
from outcome_zk.groth_convert import ChainProof, chain_to_raw

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationKey:
    n_public: int
    alpha1: tuple
    beta2: tuple
    gamma2: tuple
    delta2: tuple
    ic: tuple


def _in_g2_subgroup(pt: tuple) -> bool:
    return is_inf(multiply(pt, curve_order))


def parse_verification_key(vk: Mapping[str, Any]) -> VerificationKey:
    """
    Parse and validate a snarkjs `verification_key.json` object.

    Raises:
        VerificationKeyInvalid: If the key is not a Groth16 bn128 key, a field
            is missing, `IC` does not hold `nPublic + 1` points, or a point is
            not a valid curve point.
    """
    if not isinstance(vk, Mapping):
        raise VerificationKeyInvalid("verification key must be a JSON object")
    if vk.get("protocol", PROTOCOL) != PROTOCOL:
        raise VerificationKeyInvalid(f"unsupported protocol {vk.get('protocol')!r}")
    if vk.get("curve", CURVE) not in (CURVE, "bn254"):
        raise VerificationKeyInvalid(f"unsupported curve {vk.get('curve')!r}")

    try:
        n_public = int(vk["nPublic"])
        alpha1 = g1_from_strings(vk["vk_alpha_1"])
        beta2 = g2_from_strings(vk["vk_beta_2"])
        gamma2 = g2_from_strings(vk["vk_gamma_2"])
        delta2 = g2_from_strings(vk["vk_delta_2"])
        ic = tuple(g1_from_strings(p) for p in vk["IC"])
    except (KeyError, TypeError, ValueError) as e:
        raise VerificationKeyInvalid(f"malformed verification key: {e}") from e

    if n_public < 0 or len(ic) != n_public + 1:
        raise VerificationKeyInvalid(
            f"IC length mismatch: len(IC)={len(ic)} vs nPublic+1={n_public + 1}"
        )
    if not g1_on_curve(alpha1) or not all(g1_on_curve(p) for p in ic):
        raise VerificationKeyInvalid("verification key has a G1 point off the curve")
    for g2 in (beta2, gamma2, delta2):
        if not g2_on_curve(g2) or not _in_g2_subgroup(g2):
            raise VerificationKeyInvalid("verification key has an invalid G2 point")

    return VerificationKey(
        n_public=n_public, alpha1=alpha1, beta2=beta2, gamma2=gamma2, delta2=delta2, ic=ic
    )


def _check_shape(proof: Any, public_signals: Any, n_public: int) -> list[int]:
    if not isinstance(public_signals, (list, tuple)):
        raise MalformedProof("public signals must be a list")
    if len(public_signals) != n_public:
        raise MalformedProof(
            f"public input count mismatch: len(inputs)={len(public_signals)} vs vk.nPublic={n_public}"
        )
    if not isinstance(proof, Mapping):
        raise MalformedProof("proof must be a JSON object")

    try:
        pi_a, pi_b, pi_c = proof["pi_a"], proof["pi_b"], proof["pi_c"]
        # a string has a length too; only JSON arrays are points
        if not all(isinstance(p, (list, tuple)) for p in (pi_a, pi_c, pi_b, *pi_b)):
            raise MalformedProof("proof points must be arrays of coordinates")
        coords = [*pi_a, *pi_c, *(c for row in pi_b for c in row)]
        if len(pi_a) not in (2, 3) or len(pi_c) not in (2, 3) or len(pi_b) not in (2, 3):
            raise MalformedProof("proof points have the wrong number of coordinates")
        if any(len(row) != 2 for row in pi_b):
            raise MalformedProof("pi_b rows must hold two coordinates")
        for c in coords:
            to_int(c)
        return [to_int(s) for s in public_signals]
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedProof(f"malformed proof: {e}") from e


def verify_proof(
    vk: VerificationKey | Mapping[str, Any],
    public_signals: Sequence[Any],
    proof: Mapping[str, Any],
) -> bool:
    """
    Verify a snarkjs-format Groth16 proof.

    Args:
        vk: A parsed `VerificationKey` or the raw verification key JSON.
        public_signals: Signals in circuit order (decimal strings or ints).
        proof: snarkjs proof with `pi_a`, `pi_b`, `pi_c`.

    Returns:
        True if the pairing equation holds, False for any cryptographically
        invalid proof (bad points, unreduced values, tampered signals).

    Raises:
        VerificationKeyInvalid: If `vk` is malformed.
        MalformedProof: If the proof or signals cannot match the key's shape.
    """
    if not isinstance(vk, VerificationKey):
        vk = parse_verification_key(vk)

    inputs = _check_shape(proof, public_signals, vk.n_public)

    if any(s >= SNARK_SCALAR_FIELD for s in inputs):
        logger.warning("Public signal outside the scalar field")
        return False

    coords = [to_int(c) for c in (*proof["pi_a"], *proof["pi_c"])]
    coords += [to_int(c) for row in proof["pi_b"] for c in row]
    if any(c >= SNARK_BASE_FIELD for c in coords):
        logger.warning("Proof coordinate outside the base field")
        return False

    A = g1_from_strings(proof["pi_a"])
    B = g2_from_strings(proof["pi_b"])
    C = g1_from_strings(proof["pi_c"])
    if not (g1_on_curve(A) and g2_on_curve(B) and g1_on_curve(C)) or not _in_g2_subgroup(B):
        logger.warning("Proof point is not a valid curve point")
        return False

    vk_x = vk.ic[0]
    for i, s in enumerate(inputs):
        vk_x = add(vk_x, multiply(vk.ic[i + 1], s))

    left = pairing(B, A, final_exponentiate=False)
    right = pairing(vk.beta2, vk.alpha1, final_exponentiate=False)
    right *= pairing(vk.gamma2, vk_x, final_exponentiate=False)
    right *= pairing(vk.delta2, C, final_exponentiate=False)

    valid = final_exponentiate(left) == final_exponentiate(right)
    if not valid:
        logger.info("Pairing check failed")
    return valid


def verify_chain_proof(vk: VerificationKey | Mapping[str, Any], chain: ChainProof) -> bool:
    """Verify a proof in on-chain layout, e.g. decoded from a transaction."""
    bundle = chain_to_raw(chain)
    return verify_proof(vk, bundle.public_signals, bundle.proof)
