"""Provider adapters for pure request/response transformations."""

from .google import GoogleRequestAdapter
from .openai import OpenAIRequestAdapter

__all__ = ["GoogleRequestAdapter", "OpenAIRequestAdapter"]
