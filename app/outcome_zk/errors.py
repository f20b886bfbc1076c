# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# errors.py

"""
Error kinds raised along the proving pipeline.

Every error carries a `kind` tag and an HTTP-like `status` so the request
boundary can tell client mistakes (400) from proving or configuration faults
(500) without inspecting messages.
"""

from typing import Any


class OutcomeProofError(Exception):
    kind = "OutcomeProofError"
    status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status < 500

    def to_descriptor(self) -> dict[str, Any]:
        return {"error": self.message, "kind": self.kind, "status": self.status}


class InvalidWitness(OutcomeProofError):
    """Room id or faction counts are not representable by the circuit."""

    kind = "InvalidWitness"
    status = 400


class ProvingFailed(OutcomeProofError):
    """The proving engine or its artifacts failed."""

    kind = "ProvingFailed"


class CircuitRejected(ProvingFailed):
    """The witness violates a circuit constraint."""

    kind = "CircuitRejected"


class ProofTimeout(OutcomeProofError):
    kind = "ProofTimeout"


class EncodingMismatch(OutcomeProofError):
    """Public signals do not match the declared circuit arity or witness."""

    kind = "EncodingMismatch"


class VerificationKeyInvalid(OutcomeProofError):
    kind = "VerificationKeyInvalid"


class MalformedProof(OutcomeProofError):
    kind = "MalformedProof"
