"""
Translation provider
====================
HTTP client for the external Translator REST API (v3.0). Only ever called by
``Translator`` on a cache miss.
"""
import logging
import uuid
from typing import Optional

import requests

from consultify.config import HTTP_TIMEOUT_SECONDS, TRANSLATOR_ENDPOINT, TRANSLATOR_KEY, TRANSLATOR_REGION

logger = logging.getLogger(__name__)


class TranslationProviderError(Exception):
    """Network, HTTP or payload error from the translation provider."""


class HttpTranslationProvider:
    def __init__(
        self,
        key: str = TRANSLATOR_KEY,
        endpoint: str = TRANSLATOR_ENDPOINT,
        region: str = TRANSLATOR_REGION,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self.key = key
        self.endpoint = endpoint
        self.region = region
        self.timeout = timeout
        self._initialized = bool(key)

        if not self._initialized:
            logger.warning("Translator credentials not configured. Messages will be delivered untranslated.")
        else:
            logger.info("Translator initialized (region=%s).", self.region)

    def translate(self, text: str, source_language: str, target_language: str) -> str:
        """Translate ``text``; raises TranslationProviderError on any failure."""
        if not self._initialized:
            raise TranslationProviderError("Translator credentials not configured")

        params = {
            "api-version": "3.0",
            "from": source_language.split("-")[0],
            "to": target_language.split("-")[0],
        }
        headers = {
            "Ocp-Apim-Subscription-Key": self.key,
            "Ocp-Apim-Subscription-Region": self.region,
            "Content-type": "application/json",
            "X-ClientTraceId": str(uuid.uuid4()),
        }
        try:
            response = requests.post(
                f"{self.endpoint.rstrip('/')}/translate",
                params=params,
                headers=headers,
                json=[{"text": text}],
                timeout=self.timeout,
            )
            response.raise_for_status()
            translated = response.json()[0]["translations"][0]["text"]
        except requests.RequestException as exc:
            raise TranslationProviderError(f"Translation HTTP error: {exc}") from exc
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise TranslationProviderError(f"Translation parse error: {exc}") from exc

        logger.info(
            "Translated '%s...' -> '%s...' (%s->%s)",
            text[:30],
            translated[:30],
            source_language,
            target_language,
        )
        return translated


_provider: Optional[HttpTranslationProvider] = None


def get_translation_provider() -> HttpTranslationProvider:
    global _provider
    if _provider is None:
        _provider = HttpTranslationProvider()
    return _provider
