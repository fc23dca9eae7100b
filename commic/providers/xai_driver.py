from __future__ import annotations

from .openai_driver import OpenAIDriver

# XAI exposes an OpenAI-compatible API. The class stays distinct so the
# provider table can map to it and provider quirks have a home.


class XAIDriver(OpenAIDriver):
    """Driver for the XAI/Grok API (OpenAI-compatible)."""
