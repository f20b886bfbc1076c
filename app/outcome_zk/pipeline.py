# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# pipeline.py

"""
End-to-end outcome proving: normalize, prove under a deadline, encode.

`OutcomeProver` is built once per process around read-only artifacts and is
safe to share between concurrent requests; every call works on its own
witness, proof and signals.
"""

import logging
from typing import Any

from outcome_zk.config import CircuitArtifacts, ProverConfig, load_artifacts
from outcome_zk.constants import (
    MAFIA_COUNT_INDEX,
    MAFIA_WIN_INDEX,
    ROOM_ID_INDEX,
    TOWN_COUNT_INDEX,
    TOWN_WIN_INDEX,
)
from outcome_zk.deadline import DeadlineGuard
from outcome_zk.errors import EncodingMismatch, OutcomeProofError, VerificationKeyInvalid
from outcome_zk.groth_convert import ChainProof, proof_to_chain
from outcome_zk.snark import ProofBundle, ProvingEngine, SnarkjsEngine
from outcome_zk.txdata import decode_call
from outcome_zk.verifier import VerificationKey, parse_verification_key, verify_proof, verify_chain_proof
from outcome_zk.witness import Witness, normalize_witness, witness_from_request

logger = logging.getLogger(__name__)


def check_public_signals(witness: Witness, public_signals: list[str], arity: int) -> None:
    """
    Make sure the engine's signals belong to this circuit and this witness.

    The outcome flags are computed by the circuit and only logged; the
    positions that echo the witness must match it exactly.

    Raises:
        EncodingMismatch: On a wrong signal count or a mismatched echo, both
            of which mean the artifacts drifted from the expected circuit.
    """
    if len(public_signals) != arity:
        logger.error(f"Circuit returned {len(public_signals)} public signals, expected {arity}")
        raise EncodingMismatch(f"expected {arity} public signals, got {len(public_signals)}")

    echoed = (
        public_signals[ROOM_ID_INDEX],
        public_signals[MAFIA_COUNT_INDEX],
        public_signals[TOWN_COUNT_INDEX],
    )
    expected = (witness.room_id, str(witness.mafia_count), str(witness.town_count))
    if echoed != expected:
        logger.error(f"Public signals {echoed} do not echo witness {expected}")
        raise EncodingMismatch("public signals do not match the witness")


class OutcomeProver:
    def __init__(
        self,
        artifacts: CircuitArtifacts,
        engine: ProvingEngine,
        guard: DeadlineGuard,
    ):
        self.artifacts = artifacts
        self.engine = engine
        self.guard = guard
        self._verification_key: VerificationKey | None = None
        if artifacts.verification_key is not None:
            self._verification_key = parse_verification_key(artifacts.verification_key)

    @classmethod
    def from_config(cls, config: ProverConfig) -> "OutcomeProver":
        return cls(
            artifacts=load_artifacts(config),
            engine=SnarkjsEngine(config.snarkjs_bin, timeout=config.proof_timeout),
            guard=DeadlineGuard(config.proof_timeout, config.max_workers),
        )

    @property
    def verification_key(self) -> VerificationKey:
        if self._verification_key is None:
            raise VerificationKeyInvalid("no verification key configured")
        return self._verification_key

    def _finish(self, witness: Witness, bundle: ProofBundle) -> ChainProof:
        chain = proof_to_chain(bundle.proof, bundle.public_signals, self.artifacts.public_signal_count)
        logger.info(
            f"Room #{witness.room_id}: townWin={bundle.public_signals[TOWN_WIN_INDEX]} mafiaWin={bundle.public_signals[MAFIA_WIN_INDEX]}"
        )
        return chain

    def prove(self, witness: Witness) -> ProofBundle:
        """Generate a proof for `witness`, bounded by the guard's deadline."""
        logger.info(
            f"Generating proof for room #{witness.room_id}: mafia {witness.mafia_count}, town {witness.town_count}"
        )
        bundle = self.guard.run(self.engine.prove, witness, self.artifacts)
        check_public_signals(witness, bundle.public_signals, self.artifacts.public_signal_count)
        return bundle

    def prove_formatted(self, room_id: Any, mafia_count: Any, town_count: Any) -> ChainProof:
        """Normalize, prove and encode in one call."""
        witness = normalize_witness(room_id, mafia_count, town_count)
        return self._finish(witness, self.prove(witness))

    async def prove_formatted_async(self, room_id: Any, mafia_count: Any, town_count: Any) -> ChainProof:
        witness = normalize_witness(room_id, mafia_count, town_count)
        logger.info(
            f"Generating proof for room #{witness.room_id}: mafia {witness.mafia_count}, town {witness.town_count}"
        )
        bundle = await self.guard.run_async(self.engine.prove, witness, self.artifacts)
        check_public_signals(witness, bundle.public_signals, self.artifacts.public_signal_count)
        return self._finish(witness, bundle)

    def handle_request(self, body: Any) -> dict[str, Any]:
        """
        Request boundary: `{roomId, mafiaCount, townCount}` in,
        `{"formatted": ChainProof}` or an error descriptor out.
        """
        try:
            witness = witness_from_request(body)
            chain = self._finish(witness, self.prove(witness))
        except OutcomeProofError as e:
            logger.error(f"Proof request failed ({e.kind}): {e.message}")
            return e.to_descriptor()
        return {"formatted": chain.to_dict()}

    async def handle_request_async(self, body: Any) -> dict[str, Any]:
        try:
            witness = witness_from_request(body)
            chain = await self.prove_formatted_async(
                witness.room_id, witness.mafia_count, witness.town_count
            )
        except OutcomeProofError as e:
            logger.error(f"Proof request failed ({e.kind}): {e.message}")
            return e.to_descriptor()
        return {"formatted": chain.to_dict()}

    def verify(self, bundle: ProofBundle) -> bool:
        return verify_proof(self.verification_key, bundle.public_signals, bundle.proof)

    def reverify_transaction(self, data: str | bytes) -> bool:
        """Re-verify the proof carried by submitted transaction data."""
        call = decode_call(data)
        if call.room_id is not None and call.room_id != call.proof.inputs[ROOM_ID_INDEX]:
            logger.warning(
                f"{call.function} room #{call.room_id} differs from proven room #{call.proof.inputs[ROOM_ID_INDEX]}"
            )
        return verify_chain_proof(self.verification_key, call.proof)

    def close(self) -> None:
        self.guard.shutdown()
