"""
CHIP-8 VM — Logging Setup

One logger tree rooted at ``chip8_vm``:
  - file handler, DEBUG+, one timestamped file per run
  - rich console handler, WARNING+ unless the CLI asks for more

Machine.step() logs every instruction at DEBUG. That stream is only let
through to the file when step_debug is set, otherwise a long run would
fill the log with one line per instruction.

Log directory, first match wins:
  1. log_dir argument (chip8run --log-dir)
  2. $CHIP8_LOG_DIR
  3. ./logs under the current working directory

Log files: ``<log_dir>/<tag>_YYYYMMDD_HHMMSS.log`` (tag defaults to the
logger name; chip8run passes the ROM's file stem).
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

from . import __version__
from .config import LOG_DIR_ENV, LOG_DIR_NAME


def resolve_log_dir(log_dir: Optional[Path] = None) -> Path:
    if log_dir is not None:
        return Path(log_dir)
    env = os.environ.get(LOG_DIR_ENV)
    if env:
        return Path(env)
    return Path.cwd() / LOG_DIR_NAME


def setup_logging(
    name: str = "chip8_vm",
    console_level: int = logging.WARNING,
    log_dir: Optional[Path] = None,
    tag: Optional[str] = None,
    step_debug: bool = False,
    rich_console: bool = True,
) -> logging.Logger:
    """Configure and return the package logger.

    A logger that already has handlers is returned untouched, so tools
    can call this unconditionally.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    logger.setLevel(logging.DEBUG)

    # Per-instruction lines from Machine.step()
    logging.getLogger(f"{name}.machine").setLevel(
        logging.DEBUG if step_debug else logging.INFO)

    log_dir = resolve_log_dir(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"{tag or name}_{ts}.log"
    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(
        "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    logger.addHandler(fh)

    if rich_console:
        ch = RichHandler(show_time=False, show_path=False, markup=False)
    else:
        ch = logging.StreamHandler(sys.stderr)
        ch.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    ch.setLevel(console_level)
    logger.addHandler(ch)

    logger.info("chip8_vm %s, log file %s", __version__, log_file)
    logger.debug("Console level %s, step debug %s",
                 logging.getLevelName(console_level), "on" if step_debug else "off")
    return logger
