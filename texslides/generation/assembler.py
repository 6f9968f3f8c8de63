"""Assemble the final Beamer document.

The output is, separated by blank lines:

* a title slide built from the document title and source label
* the fixed "Key Exam Topics" table-of-contents slide
* every rewritten chunk, in order
* the fixed "Summary" table-of-contents slide
"""

import os
from collections.abc import Sequence

from texslides.ingestion.segmenter import find_document_title, find_source_label

KEY_TOPICS_SLIDE = """
\\begin{frame}[shrink]
\\frametitle{Key Exam Topics}
\\tableofcontents[hideallsubsections]
\\end{frame}
"""

SUMMARY_SLIDE = """
\\begin{frame}[shrink]
\\frametitle{Summary}
\\tableofcontents[hideallsubsections]
\\end{frame}
"""

_TITLE_SLIDE = """
\\begin{{frame}}[c]\\frametitle{{{title}}}
    \\begin{{center}}
    \\Large{{\\textbf{{{title}}}}}

    \\normalsize
    \\vspace{{3em}}

    \\textit{{Source: {source}}}
    \\vspace{{1em}}
{credit}
    \\end{{center}}
\\end{{frame}}
"""

SEPARATOR = "\n\n"


def make_title_slide(title: str, source: str, presenter: str | None = None) -> str:
    """Return the opening frame for *title*.

    A ``Video By`` credit line is added when *presenter* is given.
    """
    credit = f"\n    Video By: {presenter}" if presenter else ""
    return _TITLE_SLIDE.format(title=title, source=source, credit=credit)


def resolve_title(text: str, fallback: str) -> str:
    """Return the first ``\\section`` label of *text*, else *fallback*.

    A fallback that looks like a ``.tex`` file name loses its extension.
    """
    found = find_document_title(text)
    if found is not None:
        return found
    stem, ext = os.path.splitext(fallback)
    return stem if ext.lower() == ".tex" else fallback


def resolve_source(text: str, fallback: str) -> str:
    """Return the ``% Source:`` declaration of *text*, else *fallback*."""
    found = find_source_label(text)
    return found if found is not None else fallback


def assemble_document(
    title: str,
    source: str,
    rewritten: Sequence[str],
    presenter: str | None = None,
) -> str:
    """Concatenate the title slide, contents slides and rewritten chunks."""
    return (
        make_title_slide(title, source, presenter)
        + SEPARATOR
        + KEY_TOPICS_SLIDE
        + SEPARATOR
        + SEPARATOR.join(rewritten)
        + SEPARATOR
        + SUMMARY_SLIDE
    )
