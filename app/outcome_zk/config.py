# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# config.py

"""
Prover configuration and the read-only circuit artifacts it points at.

Configuration is resolved in three layers, later layers winning:

  1. dataclass defaults (see `constants.py`)
  2. an optional JSON file, keys matching the field names
  3. `OUTCOME_ZK_*` environment variables, e.g. `OUTCOME_ZK_PROOF_TIMEOUT=45`

Artifacts are loaded once at startup and shared by every request; nothing in
this package mutates them afterwards.
"""

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from outcome_zk.constants import (
    DEFAULT_MAX_WORKERS,
    DEFAULT_PROOF_TIMEOUT,
    DEFAULT_SNARKJS_BIN,
    DEFAULT_VKEY_PATH,
    DEFAULT_WASM_PATH,
    DEFAULT_ZKEY_PATH,
    PUBLIC_SIGNAL_COUNT,
)
from outcome_zk.errors import EncodingMismatch, ProvingFailed, VerificationKeyInvalid
from outcome_zk.files import load_json

logger = logging.getLogger(__name__)

ENV_PREFIX = "OUTCOME_ZK_"


@dataclass
class ProverConfig:
    wasm_path: Path = field(default_factory=lambda: Path(DEFAULT_WASM_PATH))
    zkey_path: Path = field(default_factory=lambda: Path(DEFAULT_ZKEY_PATH))
    vkey_path: Path = field(default_factory=lambda: Path(DEFAULT_VKEY_PATH))
    snarkjs_bin: str = DEFAULT_SNARKJS_BIN
    proof_timeout: float = DEFAULT_PROOF_TIMEOUT
    max_workers: int = DEFAULT_MAX_WORKERS
    public_signal_count: int = PUBLIC_SIGNAL_COUNT
    log_level: str = "INFO"

    def __post_init__(self):
        self.wasm_path = Path(self.wasm_path)
        self.zkey_path = Path(self.zkey_path)
        self.vkey_path = Path(self.vkey_path)
        self.proof_timeout = float(self.proof_timeout)
        self.max_workers = int(self.max_workers)
        self.public_signal_count = int(self.public_signal_count)

        if self.proof_timeout <= 0:
            raise ValueError(f"proof_timeout must be positive, got {self.proof_timeout}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")


def load_config(
    config_path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> ProverConfig:
    """
    Build a `ProverConfig` from defaults, an optional JSON file and the
    environment.

    Unknown keys in the file or environment are ignored with a warning so a
    stale deployment setting does not stop the prover from starting.
    """
    environ = os.environ if environ is None else environ
    known = {f.name for f in dataclasses.fields(ProverConfig)}
    values: dict[str, Any] = {}

    if config_path is not None:
        data = load_json(config_path)
        if not isinstance(data, dict):
            raise ValueError(f"{config_path}: config must be a JSON object")
        for key, value in data.items():
            if key in known:
                values[key] = value
            else:
                logger.warning(f"Ignoring unknown config key {key!r} in {config_path}")

    for key, value in environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        name = key[len(ENV_PREFIX):].lower()
        if name in known:
            values[name] = value
        else:
            logger.warning(f"Ignoring unknown environment setting {key}")

    return ProverConfig(**values)


@dataclass(frozen=True)
class CircuitArtifacts:
    """Constraint program, proving key and verification key of one circuit version."""

    wasm_path: Path
    zkey_path: Path
    verification_key: Mapping[str, Any] | None
    public_signal_count: int


def load_artifacts(config: ProverConfig, require_vkey: bool = False) -> CircuitArtifacts:
    """
    Resolve and check the circuit artifacts named by `config`.

    The verification key is parsed eagerly when present so that a key built
    for a different circuit version (its `nPublic` disagrees with the
    configured arity) is caught at startup instead of on the first request.

    Raises:
        ProvingFailed: If the constraint program or proving key is missing.
        VerificationKeyInvalid: If the verification key is required but
            missing, or is not a JSON object with an integer `nPublic`.
        EncodingMismatch: If `nPublic` disagrees with the configured arity.
    """
    for label, path in (("constraint program", config.wasm_path), ("proving key", config.zkey_path)):
        if not path.is_file():
            raise ProvingFailed(f"{label} not found at {path}")

    verification_key = None
    if config.vkey_path.is_file():
        try:
            raw = load_json(config.vkey_path)
        except ValueError as e:
            raise VerificationKeyInvalid(f"{config.vkey_path}: not valid JSON ({e})") from e
        if not isinstance(raw, dict):
            raise VerificationKeyInvalid(f"{config.vkey_path}: expected a JSON object")
        try:
            n_public = int(raw["nPublic"])
        except (KeyError, TypeError, ValueError) as e:
            raise VerificationKeyInvalid(f"{config.vkey_path}: missing or bad nPublic") from e
        if n_public != config.public_signal_count:
            logger.error(
                f"Verification key arity {n_public} does not match circuit arity {config.public_signal_count}"
            )
            raise EncodingMismatch(
                f"verification key expects {n_public} public signals, circuit declares {config.public_signal_count}"
            )
        verification_key = MappingProxyType(raw)
    elif require_vkey:
        raise VerificationKeyInvalid(f"verification key not found at {config.vkey_path}")

    logger.info(f"Loaded circuit artifacts {config.wasm_path.name}, {config.zkey_path.name}")
    return CircuitArtifacts(
        wasm_path=config.wasm_path,
        zkey_path=config.zkey_path,
        verification_key=verification_key,
        public_signal_count=config.public_signal_count,
    )
