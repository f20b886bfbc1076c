# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
import sys

from outcome_zk.cli import main

sys.exit(main())
