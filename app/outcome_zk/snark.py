# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# snark.py

"""
Groth16 proof generation against the compiled outcome circuit.

The production engine drives the `snarkjs` CLI:

    snarkjs groth16 fullprove input.json circuit.wasm circuit.zkey proof.json public.json

Each call works in its own temporary directory, so an abandoned call (see
`deadline.py`) can finish or fail on its own without touching anything a
caller still reads.
"""

import logging
import subprocess
import tempfile
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, NamedTuple

from outcome_zk.config import CircuitArtifacts
from outcome_zk.errors import CircuitRejected, ProofTimeout, ProvingFailed
from outcome_zk.files import load_json, write_input_file
from outcome_zk.witness import Witness

logger = logging.getLogger(__name__)

# witness calculator messages for an unsatisfied constraint
CONSTRAINT_FAILURE_MARKERS = ("Assert Failed", "Error in template")


class ProofBundle(NamedTuple):
    proof: dict[str, Any]
    public_signals: list[str]


class ProvingEngine(ABC):
    """A black box from witness plus circuit artifacts to proof plus public signals."""

    @abstractmethod
    def prove(self, witness: Witness, artifacts: CircuitArtifacts) -> ProofBundle:
        """
        Raises:
            ProvingFailed: Missing, malformed or incompatible artifacts.
            CircuitRejected: The witness violates a circuit constraint.
        """


def check_proof_bundle(proof: Any, public_signals: Any) -> ProofBundle:
    """
    Check the rough shape of a snarkjs proof and public signal list.

    Only structure is checked here; point validity is the verifier's job.

    Raises:
        ProvingFailed: If the proof lacks `pi_a`/`pi_b`/`pi_c` or the signals
            are not a list of decimal strings.
    """
    if not isinstance(proof, dict):
        raise ProvingFailed("proof output is not a JSON object")
    for key, size in (("pi_a", 3), ("pi_b", 3), ("pi_c", 3)):
        point = proof.get(key)
        if not isinstance(point, list) or len(point) != size:
            raise ProvingFailed(f"proof output has a malformed {key}")
    if not all(isinstance(row, list) and len(row) == 2 for row in proof["pi_b"]):
        raise ProvingFailed("proof output has a malformed pi_b")
    if not isinstance(public_signals, list) or not all(
        isinstance(s, str) and s.isdigit() for s in public_signals
    ):
        raise ProvingFailed("public signals output is not a list of decimal strings")
    return ProofBundle(proof=proof, public_signals=public_signals)


def load_proof_bundle(proof_path: str | Path, public_path: str | Path) -> ProofBundle:
    return check_proof_bundle(load_json(proof_path), load_json(public_path))


def _classify_failure(output: str) -> ProvingFailed:
    detail = output.strip() or "no output"
    if any(marker in output for marker in CONSTRAINT_FAILURE_MARKERS):
        return CircuitRejected(f"witness violates the circuit constraints: {detail}")
    return ProvingFailed(f"snarkjs fullprove failed: {detail}")


def _run_snarkjs(cmd: list[str], timeout: float | None) -> subprocess.CompletedProcess:
    """
    Run a snarkjs command, killing it once `timeout` seconds have passed.

    Output is decoded leniently; the witness calculator may print raw bytes.
    """
    try:
        return subprocess.run(
            cmd, capture_output=True, text=True, errors="replace", check=False, timeout=timeout
        )
    except subprocess.TimeoutExpired as e:
        logger.warning(f"snarkjs {cmd[1]} {cmd[2]} killed after {timeout:g}s")
        raise ProofTimeout(f"snarkjs did not finish within {timeout:g}s") from e
    except OSError as e:
        raise ProvingFailed(f"cannot run {cmd[0]}: {e}") from e


class SnarkjsEngine(ProvingEngine):
    """
    Proves by running `snarkjs groth16 fullprove`.

    `timeout` bounds the child process itself: when it expires the child is
    killed and the worker thread the deadline guard gave up on is free again.
    """

    def __init__(self, snarkjs_bin: str | Path = "snarkjs", timeout: float | None = None):
        self.snarkjs_bin = str(snarkjs_bin)
        self.timeout = timeout

    def prove(self, witness: Witness, artifacts: CircuitArtifacts) -> ProofBundle:
        for label, path in (("constraint program", artifacts.wasm_path), ("proving key", artifacts.zkey_path)):
            if not Path(path).is_file():
                raise ProvingFailed(f"{label} not found at {path}")

        start = time.monotonic()
        with tempfile.TemporaryDirectory(prefix="outcome-zk-") as temp_dir:
            temp_path = Path(temp_dir)
            input_file = write_input_file(temp_path, witness.to_circuit_input())
            proof_file = temp_path / "proof.json"
            public_file = temp_path / "public.json"

            cmd = [
                self.snarkjs_bin,
                "groth16",
                "fullprove",
                str(input_file),
                str(artifacts.wasm_path),
                str(artifacts.zkey_path),
                str(proof_file),
                str(public_file),
            ]

            result = _run_snarkjs(cmd, self.timeout)

            # snarkjs reports some witness errors on stdout and still exits 0
            output = f"{result.stderr}\n{result.stdout}"
            if result.returncode != 0 or not proof_file.is_file() or not public_file.is_file():
                logger.error(f"snarkjs exited with {result.returncode}: {result.stderr.strip()}")
                raise _classify_failure(output)

            try:
                bundle = load_proof_bundle(proof_file, public_file)
            except ValueError as e:
                raise ProvingFailed(f"snarkjs wrote unreadable output: {e}") from e

        logger.info(f"Proof generated for room #{witness.room_id} in {time.monotonic() - start:.2f}s")
        return bundle


def export_verification_key(
    zkey_path: str | Path,
    output_path: str | Path,
    snarkjs_bin: str | Path = "snarkjs",
    timeout: float | None = None,
) -> Path:
    """
    Export the verification key embedded in a proving key.

    Raises:
        ProvingFailed: If snarkjs is missing or the export fails.
        ProofTimeout: If the export runs longer than `timeout`.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    cmd = [str(snarkjs_bin), "zkey", "export", "verificationkey", str(zkey_path), str(output_path)]
    result = _run_snarkjs(cmd, timeout)
    if result.returncode != 0 or not output_path.is_file():
        raise ProvingFailed(f"verification key export failed: {result.stderr.strip() or result.stdout.strip()}")
    return output_path
