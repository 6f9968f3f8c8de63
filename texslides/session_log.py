"""Log every conversion run to a timestamped file in logs/.

Each run of the CLI (or programmatic call to ``log_rewrite_session``)
produces a single ``.log`` file containing:

* Active config.txt settings
* Source file, provider, model, temperature and pacing settings
* Per-chunk records (title, attempts, status, source chars, rewritten text)
* Output file path and timing

Files are named ``YYYYMMDD_HHMMSS_rewrite.log`` so they sort
chronologically.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime

from texslides.config import config_as_text

logger = logging.getLogger(__name__)

LOGS_DIR = os.path.join("logs")


def _ensure_logs_dir(logs_dir: str = LOGS_DIR) -> None:
    """Create the logs directory if it doesn't exist."""
    os.makedirs(logs_dir, exist_ok=True)


@dataclass
class ChunkLog:
    """One chunk's worth of rewrite data for logging."""

    title: str
    attempts: int
    success: bool
    source_chars: int
    rewritten_chars: int
    rewritten_text: str


def log_rewrite_session(
    *,
    source_path: str,
    provider: str,
    model: str,
    temperature: float,
    max_attempts: int,
    retry_delay: float,
    chunk_delay: float,
    chunks: list[ChunkLog] | None = None,
    output_path: str | None = None,
    elapsed_seconds: float | None = None,
    logs_dir: str = LOGS_DIR,
) -> str:
    """Write a complete conversion run to a log file.

    Parameters
    ----------
    source_path : str
        Path (or label) of the source ``.tex`` document.
    provider, model : str
        LLM provider and model name.
    temperature : float
        Sampling temperature used.
    max_attempts : int
        Attempts allowed per chunk.
    retry_delay, chunk_delay : float
        Pacing used for the run, in seconds.
    chunks : list[ChunkLog] | None
        Per-chunk input/output records.
    output_path : str | None
        Path to the written ``.tex`` file.
    elapsed_seconds : float | None
        Wall-clock time for the full run.
    logs_dir : str
        Directory for log files.

    Returns
    -------
    str
        Path to the log file.
    """
    _ensure_logs_dir(logs_dir)

    now = datetime.now()
    filename = now.strftime("%Y%m%d_%H%M%S_rewrite.log")
    filepath = os.path.join(logs_dir, filename)

    separator = "─" * 72
    total = len(chunks) if chunks else 0
    failed = sum(1 for c in chunks if not c.success) if chunks else 0

    with open(filepath, "w", encoding="utf-8") as fh:
        # ── Config ──────────────────────────────────────────────────
        fh.write("CONFIG\n")
        fh.write(f"{separator}\n")
        fh.write(f"{config_as_text()}\n")
        fh.write(f"{separator}\n\n")

        # ── Parameters ──────────────────────────────────────────────
        fh.write("REWRITE SESSION\n")
        fh.write(f"{separator}\n")
        fh.write(f"Timestamp:    {now.isoformat()}\n")
        fh.write(f"Source:       {source_path}\n")
        fh.write(f"Provider:     {provider}\n")
        fh.write(f"Model:        {model}\n")
        fh.write(f"Temperature:  {temperature}\n")
        fh.write(f"Attempts:     {max_attempts} per chunk\n")
        fh.write(f"Delays:       {retry_delay}s retry, {chunk_delay}s between chunks\n")
        if output_path:
            fh.write(f"Output:       {output_path}\n")
        if elapsed_seconds is not None:
            mins, secs = divmod(int(elapsed_seconds), 60)
            fh.write(f"Elapsed:      {elapsed_seconds:.1f}s ({mins:02d}:{secs:02d})\n")
        fh.write(f"Chunks:       {total} ({failed} failed)\n")
        fh.write(f"{separator}\n\n")

        # ── Per-chunk details ───────────────────────────────────────
        if chunks:
            for i, chunk in enumerate(chunks, 1):
                status = "ok" if chunk.success else "FAILED"
                fh.write(f"[{i}/{total}] {chunk.title}  │  {status}\n")
                fh.write(f"  Attempts:        {chunk.attempts}\n")
                fh.write(f"  Source chars:    {chunk.source_chars:,}\n")
                fh.write(f"  Rewritten chars: {chunk.rewritten_chars:,}\n")
                fh.write(f"  Rewritten text:\n{chunk.rewritten_text}\n")
                fh.write(f"\n{separator}\n\n")

    logger.info(f"Rewrite session logged to {filepath}")
    return filepath
