"""
AI Client Facade

Wraps the OpenAI Chat Completions API for the three kinds of call the site
makes. The typical flow is:

1) Resolve a named preset (temperature, token budget, JSON mode).
2) Build chat messages; images travel inline as base64 data URLs.
3) Call the provider with structured start/success/error log lines and
   Prometheus timings.
4) Return the raw text; JSON callers run it through parse_json_with_repair.

Presets:
- creative   → blog posts and marketing copy
- precise    → factual answers (default)
- structured → JSON extraction (lead screenshots, recommendations)
- concise    → short outputs (alt text, follow-up email bodies)
"""

import base64
import json
import logging
import re
import time
from typing import Any, Dict, List, Optional
from flask import current_app
from .logger import mask_secret
from .prom_metrics import observe_ai_call


AI_PRESETS: Dict[str, Dict[str, Any]] = {
    'creative': {'temperature': 0.9, 'top_p': 0.95, 'max_tokens': 4096, 'json': False},
    'precise': {'temperature': 0.7, 'top_p': 0.9, 'max_tokens': 2048, 'json': False},
    'structured': {'temperature': 0.3, 'top_p': 0.8, 'max_tokens': 1024, 'json': True},
    'concise': {'temperature': 0.5, 'top_p': 0.8, 'max_tokens': 512, 'json': False},
}

DEFAULT_SYSTEM_PROMPT = 'You are a helpful assistant for Studio37, a photography studio in Pinehurst, TX.'


class AIClientError(Exception):
    """Base error for AI facade failures"""


class AIUnavailableError(AIClientError):
    """No API key configured"""


class AIResponseError(AIClientError):
    """Provider call failed or returned unusable output"""


def strip_code_fences(text: str) -> str:
    """Remove ```json fences models like to wrap JSON in"""
    text = (text or '').strip()
    fenced = re.match(r'^```(?:json)?\s*(.*?)\s*```$', text, re.DOTALL | re.IGNORECASE)
    if fenced:
        return fenced.group(1).strip()
    return re.sub(r'^```(?:json)?', '', text, flags=re.IGNORECASE).strip().rstrip('`').strip()


def balance_braces(text: str) -> str:
    """Append the closing braces a truncated JSON object is missing"""
    missing = text.count('{') - text.count('}')
    return text + ('}' * missing if missing > 0 else '')


def parse_json_with_repair(text: str) -> Dict[str, Any]:
    """
    Parse model output as a JSON object, repairing once.

    The repair trims to the first '{' and appends the missing closing braces.
    Raises AIResponseError when the repaired text still does not parse.
    """
    cleaned = strip_code_fences(text)
    try:
        parsed = json.loads(cleaned)
    except ValueError:
        start = cleaned.find('{')
        candidate = cleaned[start:] if start >= 0 else cleaned
        try:
            parsed = json.loads(balance_braces(candidate))
        except ValueError as e:
            raise AIResponseError(f"Unparseable JSON from model: {e}") from e
    if not isinstance(parsed, dict):
        raise AIResponseError('Model returned JSON that is not an object')
    return parsed


class AIClient:
    """Facade over the chat completions API."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def _config(self, key, default=None):
        return current_app.config.get(key, default)

    def is_configured(self) -> bool:
        return bool(self._config('OPENAI_API_KEY'))

    def _client(self):
        from openai import OpenAI

        api_key = self._config('OPENAI_API_KEY')
        if not api_key:
            raise AIUnavailableError('AI provider is not configured (OPENAI_API_KEY missing)')
        self.logger.debug(f"OpenAI client created (key {mask_secret(api_key)})")
        return OpenAI(api_key=api_key, timeout=self._config('AI_TIMEOUT_SECONDS', 60))

    def generate_text(self, prompt: str, preset: str = 'precise', system: Optional[str] = None,
                      max_tokens: Optional[int] = None) -> str:
        messages = [
            {'role': 'system', 'content': system or DEFAULT_SYSTEM_PROMPT},
            {'role': 'user', 'content': prompt},
        ]
        return self._complete(messages, preset, model=self._config('AI_MODEL', 'gpt-4o-mini'),
                              max_tokens=max_tokens)

    def generate_json(self, prompt: str, preset: str = 'structured', system: Optional[str] = None) -> str:
        """Same as generate_text but forces JSON mode; returns the raw text."""
        messages = [
            {'role': 'system', 'content': system or DEFAULT_SYSTEM_PROMPT + ' Respond with a single JSON object.'},
            {'role': 'user', 'content': prompt},
        ]
        return self._complete(messages, preset, model=self._config('AI_MODEL', 'gpt-4o-mini'),
                              force_json=True)

    def analyze_image(self, prompt: str, image_bytes: bytes, mime_type: str = 'image/jpeg',
                      preset: str = 'structured', image_url: Optional[str] = None) -> str:
        """Vision call with either raw bytes (sent as a data URL) or a public image URL."""
        if image_url is None:
            encoded = base64.b64encode(image_bytes).decode('ascii')
            image_url = f"data:{mime_type};base64,{encoded}"
        messages = [
            {'role': 'user', 'content': [
                {'type': 'text', 'text': prompt},
                {'type': 'image_url', 'image_url': {'url': image_url}},
            ]},
        ]
        return self._complete(messages, preset, model=self._config('AI_VISION_MODEL', 'gpt-4o-mini'))

    def _complete(self, messages: List[Dict[str, Any]], preset: str, model: str,
                  max_tokens: Optional[int] = None, force_json: bool = False) -> str:
        if preset not in AI_PRESETS:
            raise ValueError(f"Unknown AI preset: {preset}")
        settings = AI_PRESETS[preset]
        client = self._client()

        kwargs = {
            'model': model,
            'messages': messages,
            'temperature': settings['temperature'],
            'top_p': settings['top_p'],
            'max_tokens': max_tokens or settings['max_tokens'],
        }
        if settings['json'] or force_json:
            kwargs['response_format'] = {'type': 'json_object'}

        self.logger.info(json.dumps({
            'event': 'ai_request_start',
            'provider': 'openai',
            'model': model,
            'preset': preset,
            'json_mode': 'response_format' in kwargs,
        }))

        started_at = time.time()
        try:
            completion = client.chat.completions.create(**kwargs)
        except Exception as e:
            elapsed = time.time() - started_at
            status = getattr(e, 'status_code', None) or getattr(e, 'status', None)
            self.logger.error(json.dumps({
                'event': 'ai_request_error',
                'provider': 'openai',
                'model': model,
                'preset': preset,
                'status': status,
                'error': str(e)[:500],
            }), exc_info=True)
            observe_ai_call(preset, 'error', elapsed)
            raise AIResponseError(f"AI request failed: {e}") from e

        elapsed = time.time() - started_at
        text = completion.choices[0].message.content if completion.choices else ''
        usage = getattr(completion, 'usage', None)
        self.logger.info(json.dumps({
            'event': 'ai_request_success',
            'provider': 'openai',
            'model': model,
            'preset': preset,
            'elapsed_ms': int(elapsed * 1000),
            'total_tokens': getattr(usage, 'total_tokens', 0) or 0,
            'finish_reason': getattr(completion.choices[0], 'finish_reason', None) if completion.choices else None,
        }))
        observe_ai_call(preset, 'success', elapsed)

        if not text:
            raise AIResponseError('AI provider returned an empty response')
        return text.strip()


# Global instance
ai_client = AIClient()
