"""LLM-backed rewrite client for single document chunks.

Each call sends one chunk to the configured chat model with a prompt
of the form::

    Input (section: <title>):
    <body>

and returns the model's text payload untouched.  The model is
expected to have been tuned (or instructed via :data:`STYLE_PROMPT`)
to answer with Beamer ``frame`` blocks.

Supported providers (set ``llm_provider`` in config.txt):

* **ollama** — local Ollama server (default, no API key needed)
* **openai** — OpenAI API (requires ``OPENAI_API_KEY`` in .env)
* **anthropic** — Anthropic API (requires ``ANTHROPIC_API_KEY``)
* **google** — Google Gemini API (requires ``GOOGLE_API_KEY``)
* **vertexai** — Vertex AI models and tuned endpoints (requires
  ``GOOGLE_APPLICATION_CREDENTIALS``)

Usage (programmatic)::

    from texslides.generation.llm import RewriteClient, get_llm
    client = RewriteClient(get_llm())
    frames = client.rewrite("The ORSA is ...", "ORSA Overview")
"""

import logging
import textwrap

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_ollama import ChatOllama

from texslides.config import CFG

logger = logging.getLogger(__name__)

# ── Defaults (read from config.txt, fall back to built-in) ──────────
DEFAULT_PROVIDER: str = str(CFG.get("llm_provider", "ollama"))
DEFAULT_MODEL: str = str(CFG.get("llm_model", "llama3.2:3b"))
DEFAULT_TEMPERATURE = float(CFG.get("temperature", 1.0))
DEFAULT_TOP_P = float(CFG.get("top_p", 0.95))
DEFAULT_MAX_OUTPUT_TOKENS = int(CFG.get("max_output_tokens", 8192))

# ── Provider → default model mapping ───────────────────────────────
PROVIDER_DEFAULTS: dict[str, str] = {
    "ollama": "llama3.2:3b",
    "openai": "gpt-4o-mini",
    "anthropic": "claude-sonnet-4-20250514",
    "google": "gemini-2.0-flash",
    "vertexai": "gemini-2.0-flash",
}

# ── Style instructions (used when use_style_prompt is on) ───────────
STYLE_PROMPT = textwrap.dedent("""\
    You convert lecture notes into dense, professional Beamer slides.

    RULES:
    1. Output only valid LaTeX built from \\begin{frame} ... \\end{frame} blocks.
    2. Give every frame a short, topic-specific title.
    3. Use full sentences; never split a bullet or idea across frames.
    4. Merge short content so that no frame is sparse.
    5. Keep a technical tone: no casual phrases and no Markdown.
    6. Do not include source lines.
""")


class EmptyResponseError(RuntimeError):
    """Raised when the model answers without any text payload."""


# ── LLM interaction ─────────────────────────────────────────────────


def get_llm(
    model: str = DEFAULT_MODEL,
    temperature: float = DEFAULT_TEMPERATURE,
    provider: str = DEFAULT_PROVIDER,
    top_p: float = DEFAULT_TOP_P,
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
):
    """Create a LangChain chat model for the given provider.

    Parameters
    ----------
    model : str
        Model name/tag for the chosen provider.  For ``vertexai`` this
        may also be a full tuned-endpoint resource name.
    temperature : float
        Sampling temperature.
    provider : str
        One of ``"ollama"``, ``"openai"``, ``"anthropic"``,
        ``"google"``, ``"vertexai"``.
    top_p : float
        Nucleus sampling cut-off.
    max_output_tokens : int
        Upper bound on the length of one rewritten chunk.

    Returns
    -------
    BaseChatModel
        A LangChain chat model instance.

    Raises
    ------
    ValueError
        If *provider* is not recognised.
    ImportError
        If the required provider package is not installed.
    """
    provider = provider.lower().strip()
    logger.info(
        f"Initialising LLM: provider={provider}, model={model}, "
        f"temp={temperature}, top_p={top_p}, max_tokens={max_output_tokens}"
    )

    if provider == "ollama":
        return ChatOllama(
            model=model,
            temperature=temperature,
            top_p=top_p,
            num_predict=max_output_tokens,
        )

    if provider == "openai":
        try:
            from langchain_openai import ChatOpenAI
        except ImportError:
            raise ImportError(
                "langchain-openai is required for the openai provider.\n"
                "  Run: pip install 'texslides[openai]'"
            )
        return ChatOpenAI(
            model=model,
            temperature=temperature,
            top_p=top_p,
            max_tokens=max_output_tokens,
        )

    if provider == "anthropic":
        try:
            from langchain_anthropic import ChatAnthropic
        except ImportError:
            raise ImportError(
                "langchain-anthropic is required for the anthropic provider.\n"
                "  Run: pip install 'texslides[anthropic]'"
            )
        return ChatAnthropic(
            model=model,
            temperature=temperature,
            top_p=top_p,
            max_tokens=max_output_tokens,
        )

    if provider == "google":
        try:
            from langchain_google_genai import ChatGoogleGenerativeAI
        except ImportError:
            raise ImportError(
                "langchain-google-genai is required for the google provider.\n"
                "  Run: pip install 'texslides[google]'"
            )
        return ChatGoogleGenerativeAI(
            model=model,
            temperature=temperature,
            top_p=top_p,
            max_output_tokens=max_output_tokens,
        )

    if provider == "vertexai":
        try:
            from langchain_google_vertexai import ChatVertexAI
        except ImportError:
            raise ImportError(
                "langchain-google-vertexai is required for the vertexai provider.\n"
                "  Run: pip install 'texslides[vertexai]'"
            )
        return ChatVertexAI(
            model_name=model,
            temperature=temperature,
            top_p=top_p,
            max_output_tokens=max_output_tokens,
        )

    raise ValueError(
        f"Unknown llm_provider '{provider}'. Supported: {', '.join(PROVIDER_DEFAULTS)}"
    )


def default_model_for(provider: str) -> str:
    """Return the model to use for *provider* when none was given.

    The config.txt model only applies to the config.txt provider; any
    other provider gets its entry from :data:`PROVIDER_DEFAULTS`.
    """
    provider = provider.lower().strip()
    if provider == DEFAULT_PROVIDER.lower().strip():
        return DEFAULT_MODEL
    return PROVIDER_DEFAULTS.get(provider, DEFAULT_MODEL)


def build_prompt(content: str, title: str) -> str:
    """Return the user prompt for one chunk."""
    return f"Input (section: {title}):\n{content}"


def _response_text(response) -> str:
    """Pull the text payload out of a chat model response.

    LangChain chat models return an ``AIMessage``; some wrappers return
    plain strings.  Anthropic and Gemini models may return a list of
    content blocks rather than a plain string.
    """
    if not hasattr(response, "content"):
        return "" if response is None else str(response)
    content = response.content
    if isinstance(content, list):
        content = "\n".join(
            block.get("text", "") if isinstance(block, dict) else str(block)
            for block in content
        )
    return content or ""


class RewriteClient:
    """Send one chunk at a time to a chat model.

    Parameters
    ----------
    llm
        A LangChain chat model, typically from :func:`get_llm`.
    system_prompt : str | None
        Optional style instructions sent as a system message ahead of
        every chunk.
    provider : str
        Provider name, only used to word connection errors.
    """

    def __init__(self, llm, system_prompt: str | None = None, provider: str = DEFAULT_PROVIDER):
        self.llm = llm
        self.system_prompt = system_prompt
        self.provider = provider

    def _messages(self, content: str, title: str) -> list:
        messages = []
        if self.system_prompt:
            messages.append(SystemMessage(content=self.system_prompt))
        messages.append(HumanMessage(content=build_prompt(content, title)))
        return messages

    def rewrite(self, content: str, title: str) -> str:
        """Rewrite *content* and return the model's text payload.

        Raises
        ------
        ConnectionError
            If the LLM server is not reachable.
        EmptyResponseError
            If the response carries no text.
        """
        logger.debug(f"Rewriting '{title}' ({len(content):,} chars)")
        try:
            response = self.llm.invoke(self._messages(content, title))
        except Exception as exc:
            exc_str = str(exc).lower()
            if "connection" in exc_str or "refused" in exc_str:
                raise ConnectionError(
                    f"Could not reach the LLM server (provider={self.provider}). "
                    f"Check your API key and network."
                ) from exc
            raise

        text = _response_text(response)
        if not text:
            raise EmptyResponseError("Failed to get a response from the model.")
        logger.debug(f"Rewrote '{title}' → {len(text):,} chars")
        return text

    __call__ = rewrite


def build_client(
    *,
    provider: str | None = None,
    model: str | None = None,
    temperature: float | None = None,
    use_style_prompt: bool | None = None,
) -> RewriteClient:
    """Build a :class:`RewriteClient` from explicit args or config.txt."""
    provider = provider or DEFAULT_PROVIDER
    model = model or default_model_for(provider)
    temperature = DEFAULT_TEMPERATURE if temperature is None else temperature
    if use_style_prompt is None:
        use_style_prompt = bool(CFG.get("use_style_prompt", False))

    llm = get_llm(model=model, temperature=temperature, provider=provider)
    return RewriteClient(
        llm,
        system_prompt=STYLE_PROMPT if use_style_prompt else None,
        provider=provider,
    )
