"""Model gateway: request shaping, endpoint fallback and response normalization."""

from querya.llm.aipipe import DEMO_RESPONSE, AIPipeGateway, looks_like_openai_key
from querya.llm.gateway import ModelGateway
from querya.llm.models import ModelResponse
from querya.llm.normalize import normalize_response
from querya.llm.shaping import shape_messages

__all__ = [
    "DEMO_RESPONSE",
    "AIPipeGateway",
    "ModelGateway",
    "ModelResponse",
    "looks_like_openai_key",
    "normalize_response",
    "shape_messages",
]
