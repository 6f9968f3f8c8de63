"""Normalize ``\\pause`` markers inside Beamer frames.

Rewritten chunks come back from the model with ``\\pause`` placed
inconsistently.  :func:`annotate_pauses` rebuilds them frame by frame:
every existing ``\\pause`` is stripped, then one is appended to each
text line except the last one in the frame, so a frame never ends on a
dangling pause.  Running it twice gives the same result as running it
once.
"""

import logging
import re

logger = logging.getLogger(__name__)

PAUSE = "\\pause"

# Non-greedy: each frame ends at the first \end{frame} after its start.
_FRAME_RE = re.compile(r"\\begin\{frame\}.*?\\end\{frame\}", re.DOTALL)

# Any \pause together with the blanks in front of it.
_PAUSE_RE = re.compile(r"[ \t]*\\pause(?![A-Za-z])")

# Lines that open/close a frame or set its title.
_MARKER_LINE_RE = re.compile(r"^\s*\\(?:begin\{frame\}|end\{frame\}|frametitle)")

# Start of a LaTeX comment (an unescaped percent sign).
_COMMENT_RE = re.compile(r"(?<!\\)%")


def extract_frames(text: str) -> list[str]:
    """Return every ``\\begin{frame} ... \\end{frame}`` block, in order."""
    return _FRAME_RE.findall(text)


def strip_pauses(block: str) -> str:
    """Remove every ``\\pause`` from *block*."""
    return _PAUSE_RE.sub("", block)


def is_marker_line(line: str) -> bool:
    return bool(_MARKER_LINE_RE.match(line))


def _code_part(line: str) -> str:
    """Return *line* up to its first unescaped ``%``."""
    m = _COMMENT_RE.search(line)
    return line[:m.start()] if m else line


def is_text_line(line: str) -> bool:
    """True for lines with content outside comments that are not frame markers."""
    return bool(_code_part(line).strip()) and not is_marker_line(line)


def add_pause(line: str) -> str:
    """Append a pause to *line*, ahead of any trailing comment."""
    m = _COMMENT_RE.search(line)
    if m is None:
        return f"{line.rstrip()} {PAUSE}"
    return f"{line[:m.start()].rstrip()} {PAUSE} {line[m.start():]}"


def annotate_frame(block: str) -> str:
    """Re-insert pauses after every text line but the last of *block*."""
    lines = strip_pauses(block).split("\n")
    text_idx = [i for i, line in enumerate(lines) if is_text_line(line)]
    if not text_idx:
        return "\n".join(lines)

    last = text_idx[-1]
    for i in text_idx:
        if i != last:
            lines[i] = add_pause(lines[i])
    return "\n".join(lines)


def annotate_pauses(text: str) -> str:
    """Return *text* with normalized pauses in every frame.

    Only content inside frames survives; text between or around frames
    is dropped.  Text with no frame at all is returned unchanged.
    """
    frames = extract_frames(text)
    if not frames:
        logger.debug("No frames found, leaving chunk unannotated")
        return text
    return "\n\n".join(annotate_frame(frame) for frame in frames)
