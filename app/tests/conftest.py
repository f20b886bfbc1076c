# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
import threading

import pytest

from outcome_zk.bn254 import g1_point, g1_to_strings, g2_point, g2_to_strings
from outcome_zk.config import CircuitArtifacts
from outcome_zk.constants import PUBLIC_SIGNAL_COUNT, SNARK_SCALAR_FIELD
from outcome_zk.errors import CircuitRejected
from outcome_zk.outcome import expected_public_signals
from outcome_zk.snark import ProofBundle, ProvingEngine

# fixed toxic waste for a throwaway setup; never a real ceremony
TOXIC_ALPHA = 3926
TOXIC_BETA = 3604
TOXIC_GAMMA = 2971
TOXIC_DELTA = 1357
TOXIC_IC = [4106, 4565, 7, 11, 13, 17]

PROVER_A = 1234567
PROVER_B = 7654321


class SimulatedSetup:
    """
    A Groth16 key pair without a circuit.

    Knowing the toxic scalars, a valid proof for any public signal vector can
    be solved for directly:

        c = (a*b - alpha*beta - L*gamma) / delta,  L = ic0 + sum(x_i * ic_{i+1})

    which is enough to exercise the verifier and the encoders with proofs that
    really satisfy the pairing equation.
    """

    def __init__(self, n_public: int = PUBLIC_SIGNAL_COUNT):
        self.n_public = n_public
        self.ic = TOXIC_IC[: n_public + 1]
        self.verification_key = {
            "protocol": "groth16",
            "curve": "bn128",
            "nPublic": n_public,
            "vk_alpha_1": g1_to_strings(g1_point(TOXIC_ALPHA)),
            "vk_beta_2": g2_to_strings(g2_point(TOXIC_BETA)),
            "vk_gamma_2": g2_to_strings(g2_point(TOXIC_GAMMA)),
            "vk_delta_2": g2_to_strings(g2_point(TOXIC_DELTA)),
            "IC": [g1_to_strings(g1_point(u)) for u in self.ic],
        }

    def prove(self, public_signals: list[str], a: int = PROVER_A, b: int = PROVER_B) -> dict:
        r = SNARK_SCALAR_FIELD
        lin = self.ic[0]
        for i, s in enumerate(public_signals):
            lin += int(s) * self.ic[i + 1]
        c = (a * b - TOXIC_ALPHA * TOXIC_BETA - lin * TOXIC_GAMMA) * pow(TOXIC_DELTA, -1, r) % r
        return {
            "pi_a": g1_to_strings(g1_point(a)),
            "pi_b": g2_to_strings(g2_point(b)),
            "pi_c": g1_to_strings(g1_point(c)),
            "protocol": "groth16",
            "curve": "bn128",
        }


class FixtureEngine(ProvingEngine):
    """Returns simulated proofs for the signals the outcome circuit would declare."""

    def __init__(self, setup: SimulatedSetup):
        self.setup = setup
        self.calls = []

    def prove(self, witness, artifacts):
        self.calls.append(witness)
        if witness.mafia_count + witness.town_count == 0:
            raise CircuitRejected("witness violates the circuit constraints: Assert Failed")
        signals = expected_public_signals(witness)
        return ProofBundle(proof=self.setup.prove(signals), public_signals=signals)


class SlowEngine(ProvingEngine):
    """Blocks until released, then records that it finished."""

    def __init__(self, inner: ProvingEngine, delay: float):
        self.inner = inner
        self.delay = delay
        self.release = threading.Event()
        self.finished = threading.Event()

    def prove(self, witness, artifacts):
        self.release.wait(self.delay)
        bundle = self.inner.prove(witness, artifacts)
        self.finished.set()
        return bundle


@pytest.fixture(scope="session")
def simulated_setup():
    return SimulatedSetup()


@pytest.fixture(scope="session")
def verification_key(simulated_setup):
    return simulated_setup.verification_key


@pytest.fixture(scope="session")
def sample_bundle(simulated_setup):
    """A valid proof for room 12 with the town winning 3 to 0."""
    signals = ["1", "0", "12", "0", "3"]
    return ProofBundle(proof=simulated_setup.prove(signals), public_signals=signals)


@pytest.fixture
def fixture_engine(simulated_setup):
    return FixtureEngine(simulated_setup)


@pytest.fixture
def slow_engine_factory(fixture_engine):
    engines = []

    def factory(delay: float) -> SlowEngine:
        engine = SlowEngine(fixture_engine, delay)
        engines.append(engine)
        return engine

    yield factory
    for engine in engines:
        engine.release.set()


@pytest.fixture
def artifacts(tmp_path, verification_key):
    wasm = tmp_path / "mafia_outcome.wasm"
    zkey = tmp_path / "mafia_outcome_0001.zkey"
    wasm.write_bytes(b"\x00asm")
    zkey.write_bytes(b"zkey")
    return CircuitArtifacts(
        wasm_path=wasm,
        zkey_path=zkey,
        verification_key=verification_key,
        public_signal_count=PUBLIC_SIGNAL_COUNT,
    )
