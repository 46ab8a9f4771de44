#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Path utility functions for the media stream checksum tool.
"""

import os
from pathlib import Path

from ..config import LEDGER_TMP_SUFFIX


def ensure_dir(p: Path) -> None:
    """Ensure directory exists, creating it if necessary."""
    p.mkdir(parents=True, exist_ok=True)


def tmp_sibling(p: Path) -> Path:
    """Temporary file next to ``p``, on the same filesystem so rename is atomic.

    The name carries the process id so concurrent writers never share it.
    """
    return p.with_name(f"{p.name}.{os.getpid()}{LEDGER_TMP_SUFFIX}")
