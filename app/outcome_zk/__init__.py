# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
"""Groth16 game outcome proofs and their Solidity calldata encoding."""
