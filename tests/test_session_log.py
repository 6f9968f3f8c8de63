"""Tests for texslides/session_log.py.

Covers log file creation, content structure, and edge cases.
"""

import os
import sys
import tempfile
import unittest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from texslides.session_log import ChunkLog, log_rewrite_session


def _sample_chunks() -> list[ChunkLog]:
    return [
        ChunkLog(
            title="ORSA Overview",
            attempts=1,
            success=True,
            source_chars=120,
            rewritten_chars=300,
            rewritten_text="\\begin{frame}\nA\n\\end{frame}",
        ),
        ChunkLog(
            title="Key Considerations",
            attempts=3,
            success=False,
            source_chars=80,
            rewritten_chars=52,
            rewritten_text="% ERROR: rewrite failed after 3 attempts on chunk 2",
        ),
    ]


def _log(tmpdir, **overrides):
    kwargs = dict(
        source_path="notes/erm.tex",
        provider="ollama",
        model="llama3.2:3b",
        temperature=1.0,
        max_attempts=3,
        retry_delay=1,
        chunk_delay=5,
        chunks=_sample_chunks(),
        output_path="/tmp/out/erm_slides.tex",
        elapsed_seconds=75.4,
        logs_dir=tmpdir,
    )
    kwargs.update(overrides)
    return log_rewrite_session(**kwargs)


class TestLogRewriteSession(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def _read(self, path):
        with open(path, encoding="utf-8") as fh:
            return fh.read()

    def test_creates_log_file(self):
        path = _log(self.tmpdir)
        self.assertTrue(os.path.isfile(path))
        self.assertRegex(os.path.basename(path), r"^\d{8}_\d{6}_rewrite\.log$")

    def test_creates_missing_logs_dir(self):
        nested = os.path.join(self.tmpdir, "a", "b")
        path = _log(nested)
        self.assertTrue(os.path.isfile(path))

    def test_contains_parameters(self):
        content = self._read(_log(self.tmpdir))
        self.assertIn("CONFIG", content)
        self.assertIn("Source:       notes/erm.tex", content)
        self.assertIn("Provider:     ollama", content)
        self.assertIn("Output:       /tmp/out/erm_slides.tex", content)
        self.assertIn("Elapsed:      75.4s (01:15)", content)
        self.assertIn("Chunks:       2 (1 failed)", content)

    def test_contains_every_chunk(self):
        content = self._read(_log(self.tmpdir))
        self.assertIn("[1/2] ORSA Overview", content)
        self.assertIn("[2/2] Key Considerations  │  FAILED", content)
        self.assertIn("% ERROR: rewrite failed after 3 attempts on chunk 2", content)

    def test_no_chunks(self):
        content = self._read(_log(self.tmpdir, chunks=None, output_path=None, elapsed_seconds=None))
        self.assertIn("Chunks:       0 (0 failed)", content)
        self.assertNotIn("Output:", content)
        self.assertNotIn("Elapsed:", content)


if __name__ == "__main__":
    unittest.main()
