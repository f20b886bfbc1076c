# test_groth_convert.py
#
# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

import json
from pathlib import Path

import pytest

from outcome_zk.errors import EncodingMismatch, MalformedProof
from outcome_zk.groth_convert import (
    ChainProof,
    chain_to_raw,
    convert_proof_file,
    flatten_calldata,
    format_solidity_calldata,
    parse_solidity_calldata,
    partition_calldata,
    proof_to_chain,
)

# Proof taken from a rejected endGameZK transaction (room 16)
SAMPLE_PROOF = {
    "pi_a": [
        "11975660473871303226173926429707722678248490630867462292794300277773261287440",
        "12446877952699380671361283009424816936463484147502324644263767224641647446658",
        "1",
    ],
    "pi_b": [
        [
            "9468063335393282142539252689840521461941609201615599875592909809004491034643",
            "2442393829545014025202832358236197837461587755852618308322755137984305589893",
        ],
        [
            "15214308445661509435567024932399918742813675540908339803248810689702889939102",
            "14758684769068215772660198314829127437133805761383795235907051865793610781046",
        ],
        ["1", "0"],
    ],
    "pi_c": [
        "3687118008031263637216229851340624032705789411500985395310994273567237593409",
        "15125248134231556357907036717024328733953300606479927800799515798971185625816",
        "1",
    ],
    "protocol": "groth16",
    "curve": "bn128",
}

SAMPLE_PUBLIC = ["1", "0", "16", "0", "4"]


class TestProofToChain:
    """snarkjs proof to Solidity verifier layout."""

    def test_groups(self):
        chain = proof_to_chain(SAMPLE_PROOF, SAMPLE_PUBLIC)

        assert chain.a == tuple(SAMPLE_PROOF["pi_a"][:2])
        assert chain.c == tuple(SAMPLE_PROOF["pi_c"][:2])
        assert chain.inputs == tuple(SAMPLE_PUBLIC)

    def test_b_rows_are_swapped(self):
        chain = proof_to_chain(SAMPLE_PROOF, SAMPLE_PUBLIC)

        for i in (0, 1):
            row = SAMPLE_PROOF["pi_b"][i]
            assert chain.b[i] == (row[1], row[0])

    def test_projective_coordinates_are_dropped(self):
        flat = proof_to_chain(SAMPLE_PROOF, SAMPLE_PUBLIC).flatten()
        assert len(flat) == 8 + len(SAMPLE_PUBLIC)
        assert flat[8:] == SAMPLE_PUBLIC

    def test_idempotent(self):
        first = proof_to_chain(SAMPLE_PROOF, SAMPLE_PUBLIC)
        second = proof_to_chain(SAMPLE_PROOF, SAMPLE_PUBLIC)
        assert first == second
        assert json.dumps(first.to_dict()) == json.dumps(second.to_dict())

    def test_input_is_not_modified(self):
        before = json.dumps(SAMPLE_PROOF, sort_keys=True)
        proof_to_chain(SAMPLE_PROOF, SAMPLE_PUBLIC)
        assert json.dumps(SAMPLE_PROOF, sort_keys=True) == before

    def test_arity_mismatch(self):
        with pytest.raises(EncodingMismatch):
            proof_to_chain(SAMPLE_PROOF, SAMPLE_PUBLIC[:4])
        with pytest.raises(EncodingMismatch):
            proof_to_chain(SAMPLE_PROOF, SAMPLE_PUBLIC + ["0"])

    def test_custom_arity(self):
        chain = proof_to_chain(SAMPLE_PROOF, ["7"], expected_arity=1)
        assert chain.inputs == ("7",)

    def test_scalars_are_decimal_strings(self):
        proof = dict(SAMPLE_PROOF, pi_a=[hex(255), 16, "1"])
        chain = proof_to_chain(proof, [1, "0x10", "16", "0", "4"])
        assert chain.a == ("255", "16")
        assert chain.inputs[:2] == ("1", "16")
        assert all(isinstance(v, str) for v in chain.flatten())

    def test_missing_point(self):
        proof = {k: v for k, v in SAMPLE_PROOF.items() if k != "pi_c"}
        with pytest.raises(MalformedProof):
            proof_to_chain(proof, SAMPLE_PUBLIC)

    def test_garbage_scalar(self):
        with pytest.raises(MalformedProof):
            proof_to_chain(SAMPLE_PROOF, ["1", "0", "abc", "0", "4"])


class TestFlattenAndPartition:
    def test_flatten_order(self):
        flat = flatten_calldata(SAMPLE_PROOF, SAMPLE_PUBLIC)
        b = SAMPLE_PROOF["pi_b"]
        assert flat[2:6] == [b[0][1], b[0][0], b[1][1], b[1][0]]

    def test_partition_matches_direct_construction(self):
        flat = [str(i) for i in range(13)]
        chain = partition_calldata(flat)
        assert chain == ChainProof(
            a=("0", "1"),
            b=(("2", "3"), ("4", "5")),
            c=("6", "7"),
            inputs=("8", "9", "10", "11", "12"),
        )

    def test_partition_too_short(self):
        with pytest.raises(MalformedProof):
            partition_calldata(["1"] * 7)


class TestRoundTrip:
    def test_chain_to_raw_restores_proof(self):
        chain = proof_to_chain(SAMPLE_PROOF, SAMPLE_PUBLIC)
        bundle = chain_to_raw(chain)

        assert bundle.proof["pi_a"] == SAMPLE_PROOF["pi_a"]
        assert bundle.proof["pi_b"] == SAMPLE_PROOF["pi_b"]
        assert bundle.proof["pi_c"] == SAMPLE_PROOF["pi_c"]
        assert bundle.public_signals == SAMPLE_PUBLIC

    def test_dict_round_trip(self):
        chain = proof_to_chain(SAMPLE_PROOF, SAMPLE_PUBLIC)
        assert ChainProof.from_dict(chain.to_dict()) == chain

    def test_from_dict_rejects_bad_shape(self):
        data = proof_to_chain(SAMPLE_PROOF, SAMPLE_PUBLIC).to_dict()
        data["b"] = [data["b"][0]]
        with pytest.raises(MalformedProof):
            ChainProof.from_dict(data)
        with pytest.raises(MalformedProof):
            ChainProof.from_dict({"a": ["1", "2"]})


class TestSolidityCalldataText:
    def test_format(self):
        text = format_solidity_calldata(SAMPLE_PROOF, SAMPLE_PUBLIC)
        assert text.startswith('["11975660473871303226173926429707722678248490630867462292794300277773261287440",')
        assert text.endswith('["1","0","16","0","4"]')

    def test_parse_formatted_text(self):
        text = format_solidity_calldata(SAMPLE_PROOF, SAMPLE_PUBLIC)
        assert parse_solidity_calldata(text) == proof_to_chain(SAMPLE_PROOF, SAMPLE_PUBLIC)

    def test_parse_hex_export(self):
        # the snarkjs exporter writes 0x-padded hex
        flat = flatten_calldata(SAMPLE_PROOF, SAMPLE_PUBLIC)
        hexed = [f'"0x{int(v):064x}"' for v in flat]
        text = (
            f"[{hexed[0]}, {hexed[1]}],"
            f"[[{hexed[2]}, {hexed[3]}],[{hexed[4]}, {hexed[5]}]],"
            f"[{hexed[6]}, {hexed[7]}],"
            f"[{', '.join(hexed[8:])}]"
        )
        assert parse_solidity_calldata(text) == proof_to_chain(SAMPLE_PROOF, SAMPLE_PUBLIC)

    def test_parse_empty(self):
        with pytest.raises(MalformedProof):
            parse_solidity_calldata(" [] ")


class TestFileConversion:
    def test_convert_proof_file(self, tmp_path: Path):
        proof_path = tmp_path / "proof.json"
        public_path = tmp_path / "public.json"
        proof_path.write_text(json.dumps(SAMPLE_PROOF))
        public_path.write_text(json.dumps(SAMPLE_PUBLIC))

        output_path = tmp_path / "out" / "formatted.json"
        chain = convert_proof_file(proof_path, public_path, output_path)

        with open(output_path, "r") as f:
            result = json.load(f)

        assert result == {"formatted": chain.to_dict()}
        assert result["formatted"]["inputs"] == SAMPLE_PUBLIC


if __name__ == "__main__":
    pytest.main()
