"""Tests for texslides/generation/llm.py.

All tests are fast, mocked unit tests; no LLM server or API key
required.

Run with:
    pytest tests/test_llm.py -v
"""

import os
import sys
import unittest
from unittest.mock import patch, MagicMock

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from langchain_core.messages import HumanMessage, SystemMessage

from texslides.generation.llm import (
    EmptyResponseError,
    PROVIDER_DEFAULTS,
    RewriteClient,
    STYLE_PROMPT,
    build_client,
    build_prompt,
    default_model_for,
    get_llm,
    _response_text,
)


# ── Helpers ─────────────────────────────────────────────────────────


def _mock_llm(response_text="\\begin{frame}\nA\n\\end{frame}") -> MagicMock:
    """Create a mock LLM that returns a fixed response."""
    llm = MagicMock()
    msg = MagicMock()
    msg.content = response_text
    llm.invoke.return_value = msg
    return llm


class TestBuildPrompt(unittest.TestCase):

    def test_prompt_format(self):
        self.assertEqual(
            build_prompt("Body text.", "ORSA Overview"),
            "Input (section: ORSA Overview):\nBody text.",
        )

    def test_empty_title_kept(self):
        self.assertEqual(build_prompt("x", ""), "Input (section: ):\nx")


class TestResponseText(unittest.TestCase):

    def test_ai_message_content_returned_verbatim(self):
        msg = MagicMock()
        msg.content = "  padded  "
        self.assertEqual(_response_text(msg), "  padded  ")

    def test_plain_string(self):
        self.assertEqual(_response_text("just text"), "just text")

    def test_list_of_content_blocks(self):
        msg = MagicMock()
        msg.content = [{"type": "text", "text": "One."}, {"type": "text", "text": "Two."}]
        self.assertEqual(_response_text(msg), "One.\nTwo.")

    def test_none_response(self):
        self.assertEqual(_response_text(None), "")


class TestRewriteClient(unittest.TestCase):

    def test_returns_payload(self):
        llm = _mock_llm("\\begin{frame}\nRewritten\n\\end{frame}")
        client = RewriteClient(llm)
        result = client.rewrite("Original body.", "Title")
        self.assertEqual(result, "\\begin{frame}\nRewritten\n\\end{frame}")

    def test_one_request_per_call(self):
        llm = _mock_llm()
        RewriteClient(llm).rewrite("body", "T")
        self.assertEqual(llm.invoke.call_count, 1)

    def test_sends_human_message_with_prompt(self):
        llm = _mock_llm()
        RewriteClient(llm).rewrite("Body.", "Sec")
        messages = llm.invoke.call_args[0][0]
        self.assertEqual(len(messages), 1)
        self.assertIsInstance(messages[0], HumanMessage)
        self.assertEqual(messages[0].content, "Input (section: Sec):\nBody.")

    def test_system_prompt_prepended(self):
        llm = _mock_llm()
        RewriteClient(llm, system_prompt=STYLE_PROMPT).rewrite("Body.", "Sec")
        messages = llm.invoke.call_args[0][0]
        self.assertEqual(len(messages), 2)
        self.assertIsInstance(messages[0], SystemMessage)
        self.assertIn("Beamer", messages[0].content)

    def test_callable(self):
        llm = _mock_llm("out")
        client = RewriteClient(llm)
        self.assertEqual(client("body", "T"), "out")

    def test_empty_payload_raises(self):
        client = RewriteClient(_mock_llm(""))
        with self.assertRaises(EmptyResponseError):
            client.rewrite("body", "T")

    def test_connection_error_translated(self):
        llm = MagicMock()
        llm.invoke.side_effect = Exception("Connection refused")
        with self.assertRaises(ConnectionError):
            RewriteClient(llm, provider="ollama").rewrite("body", "T")

    def test_other_errors_propagate(self):
        llm = MagicMock()
        llm.invoke.side_effect = ValueError("quota exceeded")
        with self.assertRaises(ValueError):
            RewriteClient(llm).rewrite("body", "T")


class TestGetLlm(unittest.TestCase):

    @patch("texslides.generation.llm.ChatOllama")
    def test_ollama(self, mock_chat):
        get_llm(model="m", temperature=0.2, provider="ollama", top_p=0.9, max_output_tokens=100)
        mock_chat.assert_called_once_with(
            model="m", temperature=0.2, top_p=0.9, num_predict=100
        )

    @patch("texslides.generation.llm.ChatOllama")
    def test_provider_is_normalised(self, mock_chat):
        get_llm(provider="  OLLAMA ")
        mock_chat.assert_called_once()

    def test_unknown_provider(self):
        with self.assertRaises(ValueError):
            get_llm(provider="nope")


class TestBuildClient(unittest.TestCase):

    @patch("texslides.generation.llm.get_llm")
    def test_style_prompt_enabled(self, mock_get_llm):
        mock_get_llm.return_value = _mock_llm()
        client = build_client(provider="ollama", model="m", use_style_prompt=True)
        self.assertEqual(client.system_prompt, STYLE_PROMPT)
        self.assertEqual(client.provider, "ollama")

    @patch("texslides.generation.llm.get_llm")
    def test_style_prompt_disabled(self, mock_get_llm):
        mock_get_llm.return_value = _mock_llm()
        client = build_client(provider="ollama", model="m", use_style_prompt=False)
        self.assertIsNone(client.system_prompt)

    @patch("texslides.generation.llm.get_llm")
    def test_passes_settings(self, mock_get_llm):
        build_client(provider="ollama", model="m", temperature=0.5, use_style_prompt=False)
        mock_get_llm.assert_called_once_with(model="m", temperature=0.5, provider="ollama")

    @patch("texslides.generation.llm.DEFAULT_MODEL", "llama3.2:3b")
    @patch("texslides.generation.llm.DEFAULT_PROVIDER", "ollama")
    @patch("texslides.generation.llm.get_llm")
    def test_other_provider_gets_its_own_default_model(self, mock_get_llm):
        """A provider other than config.txt's must not get config.txt's model."""
        build_client(provider="openai", use_style_prompt=False)
        self.assertEqual(mock_get_llm.call_args.kwargs["model"], "gpt-4o-mini")
        self.assertEqual(mock_get_llm.call_args.kwargs["provider"], "openai")

    @patch("texslides.generation.llm.DEFAULT_MODEL", "llama3.2:1b")
    @patch("texslides.generation.llm.DEFAULT_PROVIDER", "ollama")
    @patch("texslides.generation.llm.get_llm")
    def test_config_provider_keeps_config_model(self, mock_get_llm):
        build_client(use_style_prompt=False)
        self.assertEqual(mock_get_llm.call_args.kwargs["model"], "llama3.2:1b")


class TestDefaultModelFor(unittest.TestCase):

    @patch("texslides.generation.llm.DEFAULT_MODEL", "gemini-2.5-pro")
    @patch("texslides.generation.llm.DEFAULT_PROVIDER", "google")
    def test_config_provider_uses_config_model(self):
        self.assertEqual(default_model_for("google"), "gemini-2.5-pro")
        self.assertEqual(default_model_for(" Google "), "gemini-2.5-pro")

    @patch("texslides.generation.llm.DEFAULT_PROVIDER", "google")
    def test_other_providers_use_provider_defaults(self):
        self.assertEqual(default_model_for("anthropic"), PROVIDER_DEFAULTS["anthropic"])
        self.assertEqual(default_model_for("ollama"), PROVIDER_DEFAULTS["ollama"])


if __name__ == "__main__":
    unittest.main()
