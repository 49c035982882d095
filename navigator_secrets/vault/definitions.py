"""
Well-known credentials.

Default metadata used to fill in records registered without a service name
or description, plus format patterns for providers with a documented key
shape. Credentials missing from the catalog are accepted as-is.
"""
import re
from typing import NamedTuple, Optional

from ..exceptions import InvalidSecretError
from .models import SecretMetadata


class SecretDefinition(NamedTuple):
    service_name: str
    description: str
    docs_url: str
    placeholder: str = ""
    pattern: Optional[re.Pattern] = None


SECRET_DEFINITIONS: dict[str, SecretDefinition] = {
    "OPENAI_API_KEY": SecretDefinition(
        service_name="OpenAI",
        description="OpenAI API key for GPT models, Whisper STT, and TTS",
        docs_url="https://platform.openai.com/api-keys",
        placeholder="sk-proj-...",
        pattern=re.compile(r"^sk-[a-zA-Z0-9\-_]{20,}$"),
    ),
    "ANTHROPIC_API_KEY": SecretDefinition(
        service_name="Anthropic",
        description="Anthropic API key for Claude models",
        docs_url="https://console.anthropic.com/settings/keys",
        placeholder="sk-ant-...",
        pattern=re.compile(r"^sk-ant-[a-zA-Z0-9\-_]{20,}$"),
    ),
    "ELEVENLABS_API_KEY": SecretDefinition(
        service_name="ElevenLabs",
        description="ElevenLabs API key for realistic voice synthesis",
        docs_url="https://elevenlabs.io/app/settings/api-keys",
        placeholder="abc123def456...",
        pattern=re.compile(r"^[a-f0-9]{32}$"),
    ),
    "GEMINI_API_KEY": SecretDefinition(
        service_name="Google Gemini",
        description="Google AI Studio key for Gemini models",
        docs_url="https://aistudio.google.com/app/apikey",
    ),
    "GOOGLE_API_KEY": SecretDefinition(
        service_name="Google",
        description="Google API key for various services",
        docs_url="https://console.cloud.google.com/apis/credentials",
        placeholder="AIza...",
    ),
    "GOOGLE_SEARCH_API_KEY": SecretDefinition(
        service_name="Google Custom Search",
        description="Google Custom Search JSON API key",
        docs_url="https://developers.google.com/custom-search/v1/overview",
    ),
    "STRIPE_SECRET_KEY": SecretDefinition(
        service_name="Stripe",
        description="Stripe secret key for payment processing",
        docs_url="https://dashboard.stripe.com/apikeys",
        placeholder="sk_live_... or sk_test_...",
    ),
    "SAM_GOV_API_KEY": SecretDefinition(
        service_name="SAM.gov",
        description="SAM.gov API key for federal procurement data",
        docs_url="https://open.gsa.gov/api/sam-entity-api/",
    ),
}


def get_definition(key_name: str) -> Optional[SecretDefinition]:
    return SECRET_DEFINITIONS.get(key_name)


def validate_format(key_name: str, value: str) -> None:
    """Check ``value`` against the documented key shape, if one is known.

    Raises:
        InvalidSecretError: If the value does not match the pattern.
    """
    definition = SECRET_DEFINITIONS.get(key_name)
    if definition is None or definition.pattern is None:
        return
    if not definition.pattern.match(value):
        hint = f" (expected {definition.placeholder})" if definition.placeholder else ""
        raise InvalidSecretError(f"Invalid format for {key_name}{hint}")


def with_defaults(key_name: str, metadata: SecretMetadata) -> SecretMetadata:
    """Fill missing service name, description and docs URL from the catalog."""
    definition = SECRET_DEFINITIONS.get(key_name)
    if definition is None:
        return metadata
    return metadata.model_copy(
        update={
            "service_name": metadata.service_name or definition.service_name,
            "description": metadata.description or definition.description,
            "docs_url": metadata.docs_url or definition.docs_url,
        }
    )
