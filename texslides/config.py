"""Load converter settings from config.txt.

Reads a simple ``key = value`` text file from the project root.
Blank lines and lines starting with ``#`` are ignored.
Integer- and float-looking values are cast automatically.

Usage::

    from texslides.config import CFG

    max_attempts = CFG["max_attempts"]   # int
    chunk_delay  = CFG["chunk_delay"]    # int | float

If config.txt is missing, defaults are used so the converter still
works against a local Ollama server.
"""

import logging
import os
import re

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

logger = logging.getLogger(__name__)

# ── Load .env (API keys, GOOGLE_APPLICATION_CREDENTIALS, etc.) ──────
load_dotenv()

_console = Console()

# ── Defaults ────────────────────────────────────────────────────────
DEFAULTS: dict[str, str | int | float | bool] = {
    "llm_provider": "ollama",
    "llm_model": "llama3.2:3b",
    "temperature": 1.0,
    "top_p": 0.95,
    "max_output_tokens": 8192,
    "max_attempts": 3,
    "retry_delay": 1,
    "chunk_delay": 5,
    "presenter": "",
    "use_style_prompt": False,
    "include_tail": False,
}

CONFIG_PATH = os.path.join(os.path.dirname(__file__), os.pardir, "config.txt")


# Values recognised as boolean true / false (case-insensitive).
_BOOL_TRUE = frozenset({"true", "yes", "on"})
_BOOL_FALSE = frozenset({"false", "no", "off"})

# Decimal numbers such as 0.5, 2. or .25; nan and inf stay strings.
_FLOAT_RE = re.compile(r"^(?:\d+\.\d*|\.\d+)$")


def _cast(value: str) -> str | int | float | bool:
    """Cast a raw config string to bool, int or float where it fits."""
    lowered = value.lower()
    if lowered in _BOOL_TRUE:
        return True
    if lowered in _BOOL_FALSE:
        return False
    if value.isdigit():
        return int(value)
    if _FLOAT_RE.match(value):
        return float(value)
    return value


def load_config(path: str = CONFIG_PATH) -> dict[str, str | int | float | bool]:
    """Parse *path* and return a merged dict of defaults + overrides.

    File format (one pair per line)::

        # comment
        llm_provider = google
        chunk_delay = 2.5
        use_style_prompt = yes

    Boolean values are recognised as true/yes/on and false/no/off
    (case-insensitive).  ``0`` and ``1`` stay integers so that
    numeric tunables such as ``retry_delay = 0`` keep their type.

    Returns
    -------
    dict[str, str | int | float | bool]
        Merged configuration.  Keys not present in the file keep
        their default values.
    """
    cfg: dict[str, str | int | float | bool] = dict(DEFAULTS)

    resolved = os.path.normpath(path)
    if not os.path.isfile(resolved):
        logger.warning(f"Config file not found at {resolved}, using defaults")
        return cfg

    with open(resolved, encoding="utf-8") as fh:
        for lineno, raw_line in enumerate(fh, start=1):
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                logger.warning(
                    f"config.txt:{lineno}: skipping malformed line: {line!r}"
                )
                continue
            key, value = line.split("=", 1)
            cfg[key.strip()] = _cast(value.strip())

    logger.info(f"Loaded config from {resolved}: {cfg}")
    return cfg


# Module-level singleton, imported as ``from texslides.config import CFG``
CFG: dict[str, str | int | float | bool] = load_config()


def print_config(cfg: dict[str, str | int | float | bool] | None = None) -> None:
    """Pretty-print the active configuration using a rich table."""
    cfg = cfg if cfg is not None else CFG
    table = Table(
        title="config.txt",
        title_style="bold yellow",
        border_style="yellow",
        show_header=True,
        header_style="bold",
        padding=(0, 2),
    )
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="white bold")
    for key, value in cfg.items():
        table.add_row(str(key), str(value))
    _console.print(table)


def config_as_text(cfg: dict[str, str | int | float | bool] | None = None) -> str:
    """Return the active configuration as a plain-text block for log files."""
    cfg = cfg if cfg is not None else CFG
    lines = [f"{k} = {v}" for k, v in cfg.items()]
    return "\n".join(lines)
