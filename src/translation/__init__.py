"""Translation enrichment behind a self-disabling circuit."""

from .interfaces import CircuitState, TranslationError, TranslationAuthError, TranslationTransientError
from .gateway import (
    TranslationGateway, language_prefix, get_translation_circuit, reset_translation_circuit,
)

__all__ = [
    "CircuitState", "TranslationError", "TranslationAuthError", "TranslationTransientError",
    "TranslationGateway", "language_prefix", "get_translation_circuit", "reset_translation_circuit",
]
