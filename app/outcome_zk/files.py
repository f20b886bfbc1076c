# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
import json

from pathlib import Path
from typing import Any


def save_json(path: str | Path, data: Any) -> None:
    """
    Write `data` as indented, key-sorted JSON ending in a newline.

    Formatted proofs and exported keys are diffed and committed next to the
    contracts, so the output has to be stable between runs. Parent
    directories are created and an existing file is replaced.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, sort_keys=True)
        f.write("\n")


def load_json(path: str | Path) -> Any:
    """
    Read a snarkjs artifact (proof, public signals, verification key) or a
    config file.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the content is not JSON; a `ValueError`
            subclass, which callers rely on.
    """
    with Path(path).open("r", encoding="utf-8") as f:
        return json.load(f)


def write_input_file(directory: str | Path, data: dict[str, Any]) -> Path:
    """Write the circuit input as `input.json` inside `directory`."""
    path = Path(directory) / "input.json"
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f)
    return path
