"""Rewrite LaTeX lecture notes into Beamer slides, section by section.

Splits the document on ``\\subsubsection`` (or ``\\section``) markers,
sends each chunk through the configured LLM one at a time, normalizes
``\\pause`` markers in the returned frames, and wraps everything in a
title slide plus two table-of-contents slides.

Usage (CLI)::

    texslides notes/erm_orsa.tex

    texslides notes/erm_orsa.tex --provider google --model gemini-2.0-flash \\
        --chunk-delay 2 --style-prompt

Usage (programmatic)::

    from texslides.generation.rewriter import convert_document, convert_tex_file
    result = convert_document(tex_text, fallback_title="erm_orsa.tex",
                              source_label="erm_orsa.tex")
    path = convert_tex_file("notes/erm_orsa.tex")
"""

import logging
import os
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import datetime

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from texslides.config import CFG, print_config
from texslides.generation.annotator import annotate_pauses
from texslides.generation.assembler import (
    assemble_document,
    resolve_source,
    resolve_title,
)
from texslides.generation.llm import (
    DEFAULT_PROVIDER,
    DEFAULT_TEMPERATURE,
    build_client,
    default_model_for,
)
from texslides.generation.orchestrator import (
    DEFAULT_CHUNK_DELAY,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_DELAY,
    RewriteFn,
    RewriteOutcome,
    RewriteProgress,
    rewrite_chunks,
    rewrite_chunks_iter,
)
from texslides.ingestion.segmenter import Chunk, chunk_document
from texslides.session_log import ChunkLog, log_rewrite_session

logger = logging.getLogger(__name__)

# ── Defaults ────────────────────────────────────────────────────────
DEFAULT_OUTPUT_DIR = os.path.join(
    os.path.dirname(__file__), os.pardir, os.pardir, "output", "slides"
)
DEFAULT_PRESENTER: str = str(CFG.get("presenter", ""))
DEFAULT_INCLUDE_TAIL = bool(CFG.get("include_tail", False))


class ConversionError(RuntimeError):
    """Raised when a run fails for a reason other than bad input."""


@dataclass
class ConversionResult:
    """Output of :func:`convert_document`."""

    text: str
    title: str
    source: str
    outcomes: list[RewriteOutcome] = field(default_factory=list)

    @property
    def failed(self) -> list[RewriteOutcome]:
        return [o for o in self.outcomes if not o.success]


# ── Private helpers ─────────────────────────────────────────────────


def _load_chunks(text: str, include_tail: bool) -> list[Chunk]:
    """Validate the input and split it, raising on unusable documents."""
    if not text or not text.strip():
        raise ValueError("No .tex content loaded.")
    chunks = chunk_document(text, include_tail=include_tail)
    if not chunks:
        raise ValueError(
            "No chunks found. The document needs \\subsubsection{...} "
            "or \\section{...} markers."
        )
    return chunks


def _finish(
    text: str,
    outcomes: list[RewriteOutcome],
    *,
    fallback_title: str,
    source_label: str,
    presenter: str | None,
) -> ConversionResult:
    """Annotate successful chunks and assemble the final document."""
    rewritten = [
        annotate_pauses(o.text) if o.success else o.text for o in outcomes
    ]
    title = resolve_title(text, fallback_title)
    source = resolve_source(text, source_label)
    return ConversionResult(
        text=assemble_document(title, source, rewritten, presenter=presenter or None),
        title=title,
        source=source,
        outcomes=outcomes,
    )


def _chunk_logs(chunks: list[Chunk], outcomes: list[RewriteOutcome]) -> list[ChunkLog]:
    return [
        ChunkLog(
            title=o.title or f"Chunk {o.index}",
            attempts=o.attempts,
            success=o.success,
            source_chars=len(c.content),
            rewritten_chars=len(o.text),
            rewritten_text=o.text,
        )
        for c, o in zip(chunks, outcomes)
    ]


# ── Public API ──────────────────────────────────────────────────────


def convert_document(
    text: str,
    *,
    fallback_title: str = "Untitled",
    source_label: str = "",
    rewrite_fn: RewriteFn | None = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    chunk_delay: float = DEFAULT_CHUNK_DELAY,
    include_tail: bool = DEFAULT_INCLUDE_TAIL,
    presenter: str | None = DEFAULT_PRESENTER,
    sleep: Callable[[float], None] = time.sleep,
    progress_callback: Callable[[int, int, str], None] | None = None,
) -> ConversionResult:
    """Convert LaTeX notes into a Beamer slide deck.

    Parameters
    ----------
    text : str
        Raw ``.tex`` content.
    fallback_title : str
        Deck title when *text* has no ``\\section{...}``.
    source_label : str
        Source line when *text* has no ``% Source:`` comment.
    rewrite_fn : callable, optional
        ``rewrite_fn(content, title) -> str``.  Defaults to a
        :class:`~texslides.generation.llm.RewriteClient` built from
        config.txt.
    max_attempts, retry_delay, chunk_delay
        Retry and pacing settings.
    include_tail : bool
        Keep the region after the last sectioning marker.
    presenter : str, optional
        Credit line for the title slide.
    sleep : callable
        Delay primitive, replaceable in tests.
    progress_callback : callable, optional
        ``progress_callback(step, total, title)`` before each chunk.

    Returns
    -------
    ConversionResult
        The assembled document and one outcome per chunk.

    Raises
    ------
    ValueError
        If *text* is empty or contains no usable markers.
    ConversionError
        If the run fails unexpectedly; no output is returned.
    """
    chunks = _load_chunks(text, include_tail)
    logger.info(f"Converting '{fallback_title}': {len(chunks)} chunk(s)")

    try:
        if rewrite_fn is None:
            rewrite_fn = build_client()
        outcomes = rewrite_chunks(
            chunks,
            rewrite_fn,
            max_attempts=max_attempts,
            retry_delay=retry_delay,
            chunk_delay=chunk_delay,
            sleep=sleep,
            progress_callback=progress_callback,
        )
        return _finish(
            text,
            outcomes,
            fallback_title=fallback_title,
            source_label=source_label,
            presenter=presenter,
        )
    except Exception as exc:
        raise ConversionError(f"An unknown error occurred: {exc}") from exc


def convert_tex_file_iter(
    filepath: str,
    *,
    provider: str | None = None,
    model: str | None = None,
    temperature: float | None = None,
    use_style_prompt: bool | None = None,
    rewrite_fn: RewriteFn | None = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    chunk_delay: float = DEFAULT_CHUNK_DELAY,
    include_tail: bool = DEFAULT_INCLUDE_TAIL,
    presenter: str | None = DEFAULT_PRESENTER,
    output_dir: str = DEFAULT_OUTPUT_DIR,
    logs_dir: str | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Iterator[RewriteProgress]:
    """Like :func:`convert_tex_file`, but yields progress after each chunk.

    The output file is only written once every chunk has been handled.

    Yields
    ------
    RewriteProgress
        Two updates per chunk, plus a final ``phase="done"`` update
        carrying ``output_path``.
    """
    if not os.path.isfile(filepath):
        raise FileNotFoundError(f".tex file not found: {filepath}")

    with open(filepath, encoding="utf-8") as fh:
        text = fh.read()

    chunks = _load_chunks(text, include_tail)

    provider = provider or DEFAULT_PROVIDER
    model = model or default_model_for(provider)
    temperature = DEFAULT_TEMPERATURE if temperature is None else temperature
    filename = os.path.basename(filepath)

    logger.info(
        f"Converting {filename}: {len(chunks)} chunk(s) via {provider}/{model}"
    )

    outcomes: list[RewriteOutcome] = []
    t0 = time.time()
    try:
        if rewrite_fn is None:
            rewrite_fn = build_client(
                provider=provider,
                model=model,
                temperature=temperature,
                use_style_prompt=use_style_prompt,
            )
        for update in rewrite_chunks_iter(
            chunks,
            rewrite_fn,
            max_attempts=max_attempts,
            retry_delay=retry_delay,
            chunk_delay=chunk_delay,
            sleep=sleep,
        ):
            if update.outcome is not None:
                outcomes.append(update.outcome)
            yield update

        result = _finish(
            text,
            outcomes,
            fallback_title=filename,
            source_label=filename,
            presenter=presenter,
        )
    except Exception as exc:
        raise ConversionError(f"An unknown error occurred: {exc}") from exc

    # ── Build output directory (YYYYMMDD_HHMM subfolder) ───────────
    stem = os.path.splitext(filename)[0]
    run_dir = os.path.join(output_dir, datetime.now().strftime("%Y%m%d_%H%M"))
    os.makedirs(run_dir, exist_ok=True)
    out_path = os.path.abspath(os.path.join(run_dir, f"{stem}_slides.tex"))

    with open(out_path, "w", encoding="utf-8") as fh:
        fh.write(result.text)

    elapsed = time.time() - t0
    logger.info(
        f"Wrote {out_path} ({len(result.failed)} of {len(outcomes)} chunk(s) failed)"
    )

    log_kwargs = {"logs_dir": logs_dir} if logs_dir else {}
    log_rewrite_session(
        source_path=filepath,
        provider=provider,
        model=model,
        temperature=temperature,
        max_attempts=max_attempts,
        retry_delay=retry_delay,
        chunk_delay=chunk_delay,
        chunks=_chunk_logs(chunks, outcomes),
        output_path=out_path,
        elapsed_seconds=elapsed,
        **log_kwargs,
    )

    yield RewriteProgress(
        step=len(chunks),
        total=len(chunks),
        title="",
        chars=0,
        phase="done",
        output_path=out_path,
    )


def convert_tex_file(filepath: str, **kwargs) -> str:
    """Convert a ``.tex`` file and return the path of the slide deck.

    Accepts the same keyword arguments as :func:`convert_tex_file_iter`.

    Raises
    ------
    FileNotFoundError
        If *filepath* does not exist.
    ValueError
        If the file is empty or has no usable markers.
    ConversionError
        If the run fails unexpectedly.
    """
    out_path = ""
    for update in convert_tex_file_iter(filepath, **kwargs):
        if update.phase == "done" and update.output_path:
            out_path = update.output_path
    return out_path


# ── CLI entry point ─────────────────────────────────────────────────


def main() -> None:
    """Parse CLI arguments and run the converter."""
    import argparse

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(message)s",
        datefmt="%H:%M:%S",
    )

    parser = argparse.ArgumentParser(
        description="Rewrite LaTeX lecture notes into Beamer slides",
    )
    parser.add_argument("filepath", help="Path to a .tex file")
    parser.add_argument(
        "--provider",
        default=None,
        help="LLM provider (default: config.txt)",
    )
    parser.add_argument(
        "--model",
        default=None,
        help="Model name or tuned endpoint (default: config.txt)",
    )
    parser.add_argument(
        "--temperature",
        type=float,
        default=None,
        help="Sampling temperature (default: config.txt)",
    )
    parser.add_argument(
        "--max-attempts",
        type=int,
        default=DEFAULT_MAX_ATTEMPTS,
        help=f"Attempts per chunk (default: {DEFAULT_MAX_ATTEMPTS})",
    )
    parser.add_argument(
        "--retry-delay",
        type=float,
        default=DEFAULT_RETRY_DELAY,
        help=f"Seconds between failed attempts (default: {DEFAULT_RETRY_DELAY})",
    )
    parser.add_argument(
        "--chunk-delay",
        type=float,
        default=DEFAULT_CHUNK_DELAY,
        help=f"Seconds between chunks (default: {DEFAULT_CHUNK_DELAY})",
    )
    parser.add_argument(
        "--include-tail",
        action="store_true",
        default=DEFAULT_INCLUDE_TAIL,
        help="Also rewrite the text after the last sectioning marker",
    )
    parser.add_argument(
        "--style-prompt",
        action="store_true",
        default=None,
        help="Send slide-style instructions as a system prompt",
    )
    parser.add_argument(
        "--presenter",
        default=DEFAULT_PRESENTER,
        help="Credit line for the title slide",
    )
    parser.add_argument(
        "--output-dir",
        default=DEFAULT_OUTPUT_DIR,
        help="Output directory (default: output/slides)",
    )
    args = parser.parse_args()

    console = Console()
    print_config()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        TimeElapsedColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("Loading…", total=None)
        out = ""
        for update in convert_tex_file_iter(
            args.filepath,
            provider=args.provider,
            model=args.model,
            temperature=args.temperature,
            use_style_prompt=args.style_prompt,
            max_attempts=args.max_attempts,
            retry_delay=args.retry_delay,
            chunk_delay=args.chunk_delay,
            include_tail=args.include_tail,
            presenter=args.presenter,
            output_dir=args.output_dir,
        ):
            if update.phase == "processing":
                progress.update(
                    task,
                    total=update.total,
                    description=f"Rewriting [cyan]{update.title}[/cyan]",
                )
            elif update.phase == "rewriting":
                progress.advance(task)
            elif update.phase == "done":
                out = update.output_path or ""

    console.print(f"\n✅ Written to: {out}")


if __name__ == "__main__":
    main()
