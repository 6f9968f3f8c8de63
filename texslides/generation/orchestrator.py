"""Sequential, rate-limited rewrite of document chunks.

Chunks are sent to the rewrite service strictly one at a time, in
source order:

1. announce the chunk (progress update + log line)
2. try the rewrite up to ``max_attempts`` times, sleeping
   ``retry_delay`` seconds between failed attempts
3. on exhaustion, substitute a LaTeX comment marking the failure
4. sleep ``chunk_delay`` seconds before the next chunk

A failed chunk never aborts the run; it keeps its position in the
output with the failure marker as its text.
"""

import logging
import time
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass

from texslides.config import CFG
from texslides.ingestion.segmenter import Chunk

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = int(CFG.get("max_attempts", 3))
DEFAULT_RETRY_DELAY = float(CFG.get("retry_delay", 1))
DEFAULT_CHUNK_DELAY = float(CFG.get("chunk_delay", 5))

FAILURE_MARKER = "% ERROR: rewrite failed after {attempts} attempts on chunk {index}"

RewriteFn = Callable[[str, str], str]


@dataclass
class RewriteOutcome:
    """Result of rewriting one chunk."""

    index: int           # 1-based position of the chunk
    title: str
    text: str            # rewritten text, or the failure marker
    attempts: int
    success: bool
    error: str | None = None


@dataclass
class RewriteProgress:
    """Progress update yielded by :func:`rewrite_chunks_iter`."""

    step: int          # 1-based index of the current chunk
    total: int         # total number of chunks
    title: str         # chunk title (or "Chunk <n>" when untitled)
    chars: int         # character count of the source text
    phase: str         # "processing" | "rewriting" | "done"
    outcome: RewriteOutcome | None = None  # set when phase == "rewriting"
    output_path: str | None = None         # set only when phase == "done"


def failure_marker(index: int, attempts: int) -> str:
    """Return the placeholder text for a chunk that could not be rewritten."""
    return FAILURE_MARKER.format(attempts=attempts, index=index)


def display_title(chunk: Chunk, index: int) -> str:
    """Return the chunk title, or ``Chunk <index>`` for untitled chunks."""
    return chunk.title or f"Chunk {index}"


def attempt_rewrite(
    chunk: Chunk,
    index: int,
    rewrite_fn: RewriteFn,
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> RewriteOutcome:
    """Rewrite one chunk with bounded retries.

    An attempt fails when *rewrite_fn* raises or returns an empty
    result.  Never raises; exhaustion yields a failed outcome whose
    text is :func:`failure_marker`.
    """
    last_error: str | None = None
    attempts = 0

    while attempts < max_attempts:
        attempts += 1
        try:
            text = rewrite_fn(chunk.content, chunk.title)
        except Exception as exc:
            last_error = f"{type(exc).__name__}: {exc}"
        else:
            if text:
                return RewriteOutcome(
                    index=index,
                    title=chunk.title,
                    text=text,
                    attempts=attempts,
                    success=True,
                )
            last_error = "empty response"

        logger.warning(
            f"  Chunk {index} attempt {attempts}/{max_attempts} failed: {last_error}"
        )
        if attempts < max_attempts:
            sleep(retry_delay)

    logger.error(f"  Chunk {index} failed after {attempts} attempts")
    return RewriteOutcome(
        index=index,
        title=chunk.title,
        text=failure_marker(index, attempts),
        attempts=attempts,
        success=False,
        error=last_error,
    )


def rewrite_chunks_iter(
    chunks: Sequence[Chunk],
    rewrite_fn: RewriteFn,
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    chunk_delay: float = DEFAULT_CHUNK_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> Iterator[RewriteProgress]:
    """Rewrite *chunks* in order, yielding progress around each one.

    For every chunk a ``processing`` update is yielded before the
    rewrite and a ``rewriting`` update carrying the outcome after it.

    Yields
    ------
    RewriteProgress
        Two updates per chunk.
    """
    total = len(chunks)
    for i, chunk in enumerate(chunks, 1):
        title = display_title(chunk, i)
        logger.info(f"  [{i}/{total}] {title} ({len(chunk.content):,} chars)")
        yield RewriteProgress(
            step=i,
            total=total,
            title=title,
            chars=len(chunk.content),
            phase="processing",
        )

        outcome = attempt_rewrite(
            chunk,
            i,
            rewrite_fn,
            max_attempts=max_attempts,
            retry_delay=retry_delay,
            sleep=sleep,
        )
        yield RewriteProgress(
            step=i,
            total=total,
            title=title,
            chars=len(chunk.content),
            phase="rewriting",
            outcome=outcome,
        )

        # Inter-chunk pacing
        if i < total:
            sleep(chunk_delay)


def rewrite_chunks(
    chunks: Sequence[Chunk],
    rewrite_fn: RewriteFn,
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    chunk_delay: float = DEFAULT_CHUNK_DELAY,
    sleep: Callable[[float], None] = time.sleep,
    progress_callback: Callable[[int, int, str], None] | None = None,
) -> list[RewriteOutcome]:
    """Rewrite every chunk and return one outcome per chunk, in order.

    *progress_callback*, when given, is called as
    ``progress_callback(step, total, title)`` before each chunk.
    """
    outcomes: list[RewriteOutcome] = []
    for update in rewrite_chunks_iter(
        chunks,
        rewrite_fn,
        max_attempts=max_attempts,
        retry_delay=retry_delay,
        chunk_delay=chunk_delay,
        sleep=sleep,
    ):
        if update.phase == "processing":
            if progress_callback:
                progress_callback(update.step, update.total, update.title)
        elif update.outcome is not None:
            outcomes.append(update.outcome)
    return outcomes
