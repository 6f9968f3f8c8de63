"""Marker-based segmenter for LaTeX lecture notes.

Lecture notes are organised with sectioning commands::

    \\section{Enterprise Risk Management}
    \\subsubsection{ORSA Overview}
    ...
    \\subsubsection{Key Considerations}
    ...

This module splits the raw text into :class:`Chunk` objects, one per
titled region, so each region can be rewritten independently.  The
preferred granularity is ``\\subsubsection``; documents without any
``\\subsubsection`` fall back to ``\\section``.

Only the literal marker token of the chosen granularity is scanned, in
a single forward pass.  Nesting is not tracked: a ``\\section`` inside
a run of ``\\subsubsection`` chunks is ordinary body text.
"""

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Preferred first, coarser fallbacks after.
DEFAULT_GRANULARITIES: tuple[str, ...] = ("subsubsection", "section")

# ``% Source: Study Note ERM-101``
_SOURCE_COMMENT_RE = re.compile(r"^[ \t]*%[ \t]*Source:[ \t]*(.+?)[ \t]*$", re.MULTILINE)


@dataclass(frozen=True)
class Chunk:
    """A titled region of the source document."""

    title: str
    content: str


def marker_pattern(name: str) -> re.Pattern:
    """Return the regex for ``\\<name>{<label>}``.

    The label may contain any character except the closing brace.
    """
    return re.compile(r"\\" + re.escape(name) + r"\{([^}]*)\}")


def split_on_marker(text: str, name: str, include_tail: bool = False) -> list[Chunk]:
    """Split *text* on every ``\\<name>{...}`` marker.

    Each marker after the first closes the chunk opened by the previous
    one, so N markers give N-1 chunks.  Text before the first marker is
    discarded.  With *include_tail* the last marker's region, running
    to the end of *text*, is kept as well.

    Returns
    -------
    list[Chunk]
        Chunks in source order; empty when *text* has no marker.
    """
    chunks: list[Chunk] = []
    prev_title: str | None = None
    prev_end = 0

    for m in marker_pattern(name).finditer(text):
        if prev_title is not None:
            chunks.append(Chunk(
                title=prev_title,
                content=text[prev_end:m.start()].strip(),
            ))
        prev_title = m.group(1)
        prev_end = m.end()

    if include_tail and prev_title is not None:
        chunks.append(Chunk(title=prev_title, content=text[prev_end:].strip()))

    return chunks


def count_markers(text: str, name: str) -> int:
    """Return how many ``\\<name>{...}`` markers appear in *text*."""
    return sum(1 for _ in marker_pattern(name).finditer(text))


def chunk_document(
    text: str,
    granularities: Sequence[str] = DEFAULT_GRANULARITIES,
    include_tail: bool = False,
) -> list[Chunk]:
    """Split a LaTeX document into titled chunks.

    The first granularity with at least one marker in *text* is used,
    even if it produces no chunks.  Coarser granularities are only
    tried when the finer one is entirely absent.

    Parameters
    ----------
    text : str
        Raw document text.
    granularities : Sequence[str]
        Sectioning command names, finest first.
    include_tail : bool
        Also keep the region after the last marker.

    Returns
    -------
    list[Chunk]
        Ordered chunks.  An empty list means nothing could be split;
        callers treat that as an input error.
    """
    for name in granularities:
        n_markers = count_markers(text, name)
        if n_markers == 0:
            logger.debug(f"No \\{name} markers found, trying next granularity")
            continue
        chunks = split_on_marker(text, name, include_tail=include_tail)
        logger.info(
            f"Split document on \\{name}: {n_markers} marker(s) → "
            f"{len(chunks)} chunk(s)"
        )
        return chunks

    logger.info("No sectioning markers found in document")
    return []


def find_document_title(text: str) -> str | None:
    """Return the label of the first ``\\section{...}`` in *text*, if any."""
    m = marker_pattern("section").search(text)
    return m.group(1) if m else None


def find_source_label(text: str) -> str | None:
    """Return the value of the first ``% Source: ...`` comment, if any."""
    m = _SOURCE_COMMENT_RE.search(text)
    return m.group(1) if m else None
