"""Text parsing utilities for consistent text processing across the application."""

import html
import json
import re
import unicodedata
from typing import Any


class TextParser:
    """
    Centralized text parsing utilities.

    Single source of truth for answer normalization, prompt
    normalization and cleanup of model responses.
    """

    # Markdown code fences models wrap JSON in
    CODE_FENCE_PATTERN = re.compile(r'```(?:json)?', re.IGNORECASE)

    # HTML tag removal pattern
    HTML_TAG_PATTERN = re.compile(r'<[^>]+>')

    # Whitespace normalization pattern
    WHITESPACE_PATTERN = re.compile(r'\s+')

    @classmethod
    def normalize_unicode(cls, text: str) -> str:
        """
        Normalize text to NFC form for consistent Unicode handling.

        Prevents issues with characters like ó being represented as
        either a single codepoint (NFC) or base + combining accent (NFD).
        """
        if not text:
            return ""
        return unicodedata.normalize('NFC', str(text))

    @classmethod
    def collapse_whitespace(cls, text: str) -> str:
        return cls.WHITESPACE_PATTERN.sub(' ', text).strip()

    @classmethod
    def normalize_answer(cls, text: str) -> str:
        """Case- and whitespace-insensitive form used for exact answer matching."""
        if not text:
            return ""
        return cls.collapse_whitespace(cls.normalize_unicode(text)).lower()

    @classmethod
    def answers_match(cls, given: str, expected: str) -> bool:
        return cls.normalize_answer(given) == cls.normalize_answer(expected)

    @classmethod
    def normalize_prompt(cls, text: str) -> str:
        """Deterministic form of an image prompt, used for fingerprinting."""
        return cls.normalize_answer(text)

    @classmethod
    def clean_for_tts(cls, text: str) -> str:
        """
        Clean text for TTS processing.

        Removes HTML, normalizes whitespace.
        """
        if not text:
            return ""
        text = html.unescape(str(text))
        text = cls.HTML_TAG_PATTERN.sub('', text)
        return cls.normalize_unicode(cls.collapse_whitespace(text))

    @classmethod
    def strip_code_fences(cls, text: str) -> str:
        """Remove ```json fences around a model response."""
        if not text:
            return ""
        return cls.CODE_FENCE_PATTERN.sub('', text).strip()

    @classmethod
    def parse_json(cls, text: str) -> Any:
        """
        Parse a JSON model response, tolerating code fences.

        Raises:
            ValueError: If the content is not valid JSON
        """
        cleaned = cls.strip_code_fences(text)
        if not cleaned:
            raise ValueError("Empty response")
        try:
            return json.loads(cleaned)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in response: {e}") from e
