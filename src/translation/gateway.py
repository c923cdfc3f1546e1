"""Translation gateway over the Google Translate v2 REST API."""

import asyncio
import json
from functools import lru_cache
from typing import Optional, Tuple

import aiohttp
import structlog

from .interfaces import (
    CircuitState, TranslationError, TranslationAuthError, TranslationTransientError,
)
from ..config.settings import settings

logger = structlog.get_logger()

# Google answers 400 for an invalid key and 403 for quota/permission problems.
AUTH_FAILURE_STATUSES = frozenset({400, 401, 403})


@lru_cache(maxsize=1)
def get_translation_circuit() -> CircuitState:
    """The process-wide circuit; once tripped it stays open until restart."""
    return CircuitState()


def reset_translation_circuit():
    """Forget the process-wide circuit (useful for testing)."""
    get_translation_circuit.cache_clear()


def language_prefix(code: Optional[str]) -> str:
    """Primary subtag of a language code, lowercased ("EN-US" -> "en")."""
    return (code or "").strip().lower().split("-")[0].split("_")[0]


class TranslationGateway:
    """Fail-open translator guarded by a process-wide circuit.

    ``translate`` never raises: every failure degrades to ``None``. An
    auth/quota response trips the circuit, after which no further requests
    are made for the lifetime of the circuit.
    """

    def __init__(
        self,
        api_key: str = None,
        target_language: str = None,
        url: str = None,
        timeout: float = None,
        circuit: CircuitState = None,
    ):
        self.api_key = api_key if api_key is not None else settings.google_translate_api_key
        self.target_language = (target_language or settings.translate_target_language).lower()
        self.url = url or settings.translate_url
        self.timeout = timeout if timeout is not None else settings.translate_timeout_seconds
        self.circuit = circuit if circuit is not None else get_translation_circuit()
        self.translated_count = 0
        self._session: Optional[aiohttp.ClientSession] = None

        if not self.api_key:
            self.circuit.trip("api_key_missing")
            logger.info("translation_unconfigured")

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"Content-Type": "application/json"},
            )
        return self._session

    async def close(self):
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    @property
    def disabled(self) -> bool:
        return self.circuit.disabled

    def needs_translation(self, language: Optional[str], target_language: str = None) -> bool:
        """False when the language already matches the target's prefix."""
        target = language_prefix(target_language or self.target_language)
        return not (language or "").strip().lower().startswith(target)

    async def translate(
        self,
        text: Optional[str],
        target_language: str = None,
        source_language: Optional[str] = None,
    ) -> Optional[str]:
        """Translate text, or return None when disabled, empty, or failed."""
        if not text or self.circuit.disabled:
            return None

        target = (target_language or self.target_language).lower()
        try:
            translated = await self._translate(text, target, source_language)
        except TranslationAuthError as e:
            if self.circuit.trip(f"http_{e.status}"):
                logger.error("translation_disabled", status=e.status, error=str(e)[:200])
            return None
        except TranslationError as e:
            logger.warning("translation_failed", status=e.status, error=str(e)[:200])
            return None

        if translated:
            self.translated_count += 1
        return translated

    async def _translate(self, text: str, target: str, source_language: Optional[str]) -> Optional[str]:
        payload = {"q": text, "target": target, "format": "text"}
        source = language_prefix(source_language)
        if source and source != "unknown":
            payload["source"] = source

        try:
            status, body = await self._request(payload)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TranslationTransientError(f"{type(e).__name__}: {e}") from e

        if status in AUTH_FAILURE_STATUSES:
            raise TranslationAuthError(f"Google Translate {status}: {body[:500]}", status=status)
        if status != 200:
            raise TranslationTransientError(f"Google Translate {status}: {body[:500]}", status=status)

        try:
            data = json.loads(body)
            return data["data"]["translations"][0]["translatedText"] or None
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise TranslationTransientError(f"Malformed translation response: {e}", status=status) from e

    async def _request(self, payload: dict) -> Tuple[int, str]:
        """POST one request and return (status, body text)."""
        session = await self._get_session()
        async with session.post(self.url, params={"key": self.api_key}, json=payload) as resp:
            return resp.status, await resp.text()
