# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only

# cli.py

"""
Operator command line.

    outcome-zk prove --room-id 12 --mafia 0 --town 3
    outcome-zk verify --proof proof.json --public public.json
    outcome-zk reverify-tx 0x34ad36f6...
    outcome-zk check-win --players players.json --roles roles.json --room-id 12
    outcome-zk convert --proof proof.json --public public.json --out formatted.json
    outcome-zk export-vk
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

from outcome_zk.config import ProverConfig, load_config
from outcome_zk.errors import InvalidWitness, OutcomeProofError, VerificationKeyInvalid
from outcome_zk.files import load_json, save_json
from outcome_zk.groth_convert import convert_proof_file
from outcome_zk.log import setup_logging
from outcome_zk.outcome import tally_factions
from outcome_zk.pipeline import OutcomeProver
from outcome_zk.snark import export_verification_key, load_proof_bundle
from outcome_zk.txdata import decode_call
from outcome_zk.verifier import parse_verification_key, verify_chain_proof, verify_proof

logger = logging.getLogger(__name__)


def _load_vkey(path: str | Path | None, config: ProverConfig):
    path = Path(path) if path else config.vkey_path
    try:
        return parse_verification_key(load_json(path))
    except (OSError, ValueError) as e:
        raise VerificationKeyInvalid(f"cannot read verification key {path}: {e}") from e


def cmd_prove(args: argparse.Namespace, config: ProverConfig) -> int:
    prover = OutcomeProver.from_config(config)
    try:
        chain = prover.prove_formatted(args.room_id, args.mafia, args.town)
    finally:
        prover.close()
    result = {"formatted": chain.to_dict()}
    if args.out:
        save_json(args.out, result)
        logger.info(f"Formatted proof written to {args.out}")
    else:
        print(json.dumps(result, indent=2))
    return 0


def cmd_verify(args: argparse.Namespace, config: ProverConfig) -> int:
    vk = _load_vkey(args.vkey, config)
    bundle = load_proof_bundle(args.proof, args.public)
    ok = verify_proof(vk, bundle.public_signals, bundle.proof)
    print("Verification OK" if ok else "Invalid proof")
    return 0 if ok else 1


def cmd_reverify_tx(args: argparse.Namespace, config: ProverConfig) -> int:
    vk = _load_vkey(args.vkey, config)
    call = decode_call(args.data)
    print(f"Function: {call.function}")
    if call.room_id is not None:
        print(f"Room ID: {call.room_id}")
    print(json.dumps(call.proof.to_dict(), indent=2))
    ok = verify_chain_proof(vk, call.proof)
    print("Verification OK" if ok else "Invalid proof")
    return 0 if ok else 1


def cmd_check_win(args: argparse.Namespace, config: ProverConfig) -> int:
    try:
        tally = tally_factions(load_json(args.players), load_json(args.roles))
    except (OSError, KeyError, TypeError, ValueError, AttributeError) as e:
        raise InvalidWitness(f"cannot read player state: {e}") from e
    print(f"Mafia: {tally.mafia_count}, Town: {tally.town_count}")
    if not tally.complete:
        print(f"Missing roles: {', '.join(tally.missing)}")
    outcome = tally.outcome()
    print(f"Outcome: {outcome.value if outcome else 'none'}")
    if outcome is None or args.room_id is None:
        return 0

    args.mafia, args.town = tally.mafia_count, tally.town_count
    return cmd_prove(args, config)


def cmd_convert(args: argparse.Namespace, config: ProverConfig) -> int:
    convert_proof_file(args.proof, args.public, args.out, config.public_signal_count)
    return 0


def cmd_export_vk(args: argparse.Namespace, config: ProverConfig) -> int:
    out = export_verification_key(
        config.zkey_path, args.out or config.vkey_path, config.snarkjs_bin, timeout=config.proof_timeout
    )
    print(out)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="outcome-zk", description=__doc__.strip().splitlines()[0])
    parser.add_argument("--config", help="JSON config file")
    parser.add_argument("--log-level", help="override the configured log level")
    parser.add_argument("--log-file", help="also log to this file")
    sub = parser.add_subparsers(dest="command", required=True)

    prove = sub.add_parser("prove", help="generate and encode an outcome proof")
    prove.add_argument("--room-id", required=True)
    prove.add_argument("--mafia", required=True)
    prove.add_argument("--town", required=True)
    prove.add_argument("--out", help="write the formatted proof here instead of stdout")
    prove.set_defaults(func=cmd_prove)

    verify = sub.add_parser("verify", help="verify snarkjs proof.json/public.json locally")
    verify.add_argument("--proof", required=True)
    verify.add_argument("--public", required=True)
    verify.add_argument("--vkey")
    verify.set_defaults(func=cmd_verify)

    reverify = sub.add_parser("reverify-tx", help="re-verify the proof in submitted transaction data")
    reverify.add_argument("data", help="hex transaction input")
    reverify.add_argument("--vkey")
    reverify.set_defaults(func=cmd_reverify_tx)

    check_win = sub.add_parser("check-win", help="tally alive factions and prove the outcome once decided")
    check_win.add_argument("--players", required=True, help="JSON list of {wallet, flags} player records")
    check_win.add_argument("--roles", required=True, help="JSON object of wallet to role")
    check_win.add_argument("--room-id", help="prove the outcome for this room when it is decided")
    check_win.add_argument("--out", help="write the formatted proof here instead of stdout")
    check_win.set_defaults(func=cmd_check_win)

    convert = sub.add_parser("convert", help="encode proof.json/public.json for the chain")
    convert.add_argument("--proof", required=True)
    convert.add_argument("--public", required=True)
    convert.add_argument("--out", required=True)
    convert.set_defaults(func=cmd_convert)

    export = sub.add_parser("export-vk", help="export the verification key from the proving key")
    export.add_argument("--out")
    export.set_defaults(func=cmd_export_vk)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = load_config(args.config)
    except (OSError, ValueError) as e:
        print(f"Error: bad configuration: {e}", file=sys.stderr)
        return 1
    setup_logging(args.log_level or config.log_level, args.log_file)

    try:
        return args.func(args, config)
    except OutcomeProofError as e:
        print(f"Error ({e.kind}): {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
