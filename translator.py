#!/usr/bin/env python3
"""
Machine translation of product names.

Uses the public Google Translate endpoint over aiohttp. Every record is
translated by its own request; requests run concurrently and results are
joined back in input order.
"""

import asyncio
import dataclasses
from typing import List, Optional

import aiohttp

from catalog_parser import ProductRecord

TRANSLATE_URL = 'https://translate.googleapis.com/translate_a/single'


class TranslationError(Exception):
    """Raised when the translation service fails or answers garbage."""


def parse_translation(payload) -> str:
    """Join the translated segments of a translate_a/single answer.

    The answer looks like ``[[["Грабли", "Rake", null, null, 10], ...], null, "en", ...]``.
    """
    try:
        segments = payload[0]
        return ''.join(segment[0] for segment in segments if segment and segment[0])
    except (TypeError, IndexError, KeyError) as e:
        raise TranslationError(f"Unexpected translation payload: {payload!r}") from e


class TranslationClient:
    """Async translation client with a single pooled session."""

    def __init__(self, logger, source_lang: str = 'en',
                 timeout: Optional[float] = None,
                 url: str = TRANSLATE_URL):
        """Initialize translation client.

        Args:
            logger: Logger instance
            source_lang: Language code of the scraped names
            timeout: Total seconds per request, None for no limit
            url: Translation endpoint
        """
        self.logger = logger
        self.source_lang = source_lang
        self.timeout = timeout
        self.url = url
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        """Open the aiohttp session."""
        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout),
            headers={
                'User-Agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36'
            }
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Close the session."""
        if self.session:
            await self.session.close()

    async def translate(self, text: str, target_lang: str = 'ru') -> str:
        """Translate a single string.

        Args:
            text: Source text
            target_lang: Target language code

        Returns:
            Translated text

        Raises:
            TranslationError: on HTTP failure or malformed answer
        """
        if not text.strip():
            return ''

        params = {
            'client': 'gtx',
            'sl': self.source_lang,
            'tl': target_lang,
            'dt': 't',
            'q': text,
        }

        try:
            async with self.session.get(self.url, params=params) as response:
                response.raise_for_status()
                payload = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise TranslationError(f"Translation request failed for {text!r}: {e}") from e
        except ValueError as e:
            # Captcha and error pages come back as HTML with status 200
            raise TranslationError(f"Non-JSON translation answer for {text!r}: {e}") from e

        translated = parse_translation(payload)
        self.logger.debug(f"Translated {text.strip()!r} -> {translated!r}")
        return translated


async def translate_all(records: List[ProductRecord], client,
                        target_lang: str = 'ru') -> List[ProductRecord]:
    """Fill name_ru on every record.

    All requests are started at once and awaited together. Output index i
    corresponds to input index i. The first failure propagates.

    Args:
        records: Parsed records with empty name_ru
        client: Object with an async ``translate(text, target_lang)`` method
        target_lang: Target language code

    Returns:
        New list of completed records
    """
    tasks = [client.translate(record.name_en, target_lang) for record in records]
    translations = await asyncio.gather(*tasks)

    return [
        dataclasses.replace(record, name_ru=name_ru)
        for record, name_ru in zip(records, translations)
    ]
