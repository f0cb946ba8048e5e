"""Provider transports."""

from .base import ProviderTransport
from .google import GoogleTransport
from .openai import OpenAITransport

__all__ = ["ProviderTransport", "GoogleTransport", "OpenAITransport"]
