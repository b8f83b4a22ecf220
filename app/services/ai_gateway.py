"""
Client for the OpenAI-compatible AI gateway (chat completions and image generation).

Public API
----------
AIGatewayClient.chat_completion(messages, ...) -> str
AIGatewayClient.chat_json(messages, ...)       -> (success, parsed_value)
AIGatewayClient.generate_image(prompt)         -> str
parse_json_robust(text)                        -> (success, parsed_value)

Gateway HTTP failures raise AIGatewayError and are never retried; only
unparseable JSON replies trigger another request.
"""
from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

import httpx

from app.config import settings

logger = logging.getLogger(__name__)


class AIGatewayError(Exception):
    """Raised when the gateway rejects a request or is unreachable."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


# ---------------------------------------------------------------------------
# Robust JSON parsing
# ---------------------------------------------------------------------------

def parse_json_robust(response: str) -> Tuple[bool, Any]:
    """
    Try multiple strategies to parse JSON from potentially messy model output.

    Handles:
    - Markdown code fences (```json … ```, ``` … ```)
    - Trailing commas before ] or }
    - Python-style True / False / None
    - Surrounding prose: finds the first balanced [...] or {...} block
    - Missing closing bracket (adds one and retries)

    Returns ``(success, parsed_value)``.
    """
    if not response:
        return False, None

    text = response.strip()

    # Strategy 1: direct parse
    ok, val = _try_json(text)
    if ok:
        return True, val

    # Strategy 2: strip markdown code fences
    stripped = _strip_code_fences(text)
    if stripped != text:
        ok, val = _try_json(stripped)
        if ok:
            return True, val
        text = stripped

    # Strategy 3: fix common JSON mangling
    fixed = _fix_json_issues(text)
    ok, val = _try_json(fixed)
    if ok:
        return True, val

    # Strategy 4: extract JSON structure from surrounding prose, outermost first
    pairs = [("[", "]"), ("{", "}")]
    pairs.sort(key=lambda p: text.find(p[0]) if text.find(p[0]) != -1 else len(text))
    for bracket_pair in pairs:
        fragment = extract_json_structure(text, *bracket_pair)
        if fragment:
            ok, val = _try_json(fragment)
            if ok:
                return True, val
            ok, val = _try_json(_fix_json_issues(fragment))
            if ok:
                return True, val

    # Strategy 5: attempt to close a truncated array / object
    for suffix in ("]", "}", "}]"):
        ok, val = _try_json(fixed + suffix)
        if ok:
            logger.debug("parse_json_robust: recovered with suffix %r", suffix)
            return True, val

    logger.warning("parse_json_robust: all strategies failed. Preview: %s", response[:400])
    return False, None


def _try_json(text: str) -> Tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return False, None


def _strip_code_fences(text: str) -> str:
    """Remove ```json / ``` delimiters that models often wrap output in."""
    text = re.sub(r"^```(?:json|javascript|text)?\s*\n?", "", text, flags=re.IGNORECASE)
    text = re.sub(r"\n?```\s*$", "", text)
    return text.strip()


_JSON_STRING = re.compile(r'("(?:\\.|[^"\\])*")')


def _fix_json_issues(text: str) -> str:
    """Repair the most common JSON mangling patterns outside string literals."""
    parts = _JSON_STRING.split(text)
    # Odd indexes are quoted strings and are left untouched
    for i in range(0, len(parts), 2):
        segment = parts[i]
        segment = re.sub(r"//[^\n]*", "", segment)
        segment = re.sub(r",(\s*[}\]])", r"\1", segment)
        segment = re.sub(r"\bTrue\b", "true", segment)
        segment = re.sub(r"\bFalse\b", "false", segment)
        segment = re.sub(r"\bNone\b", "null", segment)
        parts[i] = segment
    return "".join(parts).strip()


def extract_json_structure(text: str, open_b: str, close_b: str) -> str:
    """
    Find the first complete balanced open_b … close_b structure in *text*.
    Returns the matched fragment, or empty string if not found.
    """
    start = text.find(open_b)
    if start == -1:
        return ""

    depth = 0
    in_string = False
    escape_next = False

    for i, ch in enumerate(text[start:], start=start):
        if escape_next:
            escape_next = False
            continue
        if ch == "\\" and in_string:
            escape_next = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == open_b:
            depth += 1
        elif ch == close_b:
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return ""


def clamp(value: Any, lo: float = 0.0, hi: float = 1.0) -> float:
    """Parse *value* as float, clamped to [lo, hi]; returns midpoint on error."""
    try:
        return max(lo, min(hi, float(value)))
    except (TypeError, ValueError):
        return (lo + hi) / 2.0


# ---------------------------------------------------------------------------
# Gateway client
# ---------------------------------------------------------------------------

class AIGatewayClient:
    """
    Chat-completion client for the AI gateway.

    Limits concurrency to AI_MAX_CONCURRENT simultaneous requests.
    Retries JSON parsing up to AI_MAX_JSON_RETRIES times.
    """

    MAX_JSON_RETRIES: int = settings.AI_MAX_JSON_RETRIES

    def __init__(self, api_key: Optional[str] = None, gateway_url: Optional[str] = None) -> None:
        self.api_key = settings.LOVABLE_API_KEY if api_key is None else api_key
        self.gateway_url = gateway_url or settings.AI_GATEWAY_URL
        self.timeout = httpx.Timeout(float(settings.AI_TIMEOUT), connect=10.0)
        self._semaphore = asyncio.Semaphore(settings.AI_MAX_CONCURRENT)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise AIGatewayError(503, "LOVABLE_API_KEY is not configured.")

        async with self._semaphore:
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.post(
                        self.gateway_url,
                        headers={
                            "Authorization": f"Bearer {self.api_key}",
                            "Content-Type": "application/json",
                        },
                        json=payload,
                    )
            except httpx.TimeoutException:
                logger.error("AI gateway request timed out after %s s", settings.AI_TIMEOUT)
                raise AIGatewayError(504, "AI gateway request timed out.")
            except httpx.HTTPError as exc:
                logger.error("AI gateway connection error: %s", exc)
                raise AIGatewayError(502, f"AI gateway unreachable: {exc}")

        if resp.status_code != 200:
            logger.error("AI gateway returned HTTP %d: %s", resp.status_code, resp.text[:300])
            raise AIGatewayError(resp.status_code, resp.text[:300] or f"HTTP {resp.status_code}")

        try:
            return resp.json()
        except ValueError:
            raise AIGatewayError(502, "AI gateway returned a non-JSON body.")

    async def chat_completion(
        self,
        messages: List[Dict[str, Any]],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[Dict[str, Any]] = None,
    ) -> str:
        """POST a chat completion and return ``choices[0].message.content``."""
        payload: Dict[str, Any] = {
            "model": model or settings.AI_TEXT_MODEL,
            "messages": messages,
        }
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        if response_format is not None:
            payload["response_format"] = response_format

        data = await self._post(payload)
        try:
            return data["choices"][0]["message"].get("content") or ""
        except (KeyError, IndexError, TypeError, AttributeError):
            logger.error("chat_completion: unexpected response shape: %s", str(data)[:300])
            return ""

    async def chat_json(
        self,
        messages: List[Dict[str, Any]],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[Dict[str, Any]] = None,
    ) -> Tuple[bool, Any]:
        """
        Call the gateway and attempt to parse the reply as JSON.

        Re-sends the same messages up to MAX_JSON_RETRIES times when the reply
        cannot be parsed. Returns ``(success, parsed_value)``.
        """
        attempts = 1 + max(0, self.MAX_JSON_RETRIES)
        for attempt in range(1, attempts + 1):
            content = await self.chat_completion(
                messages,
                model=model,
                temperature=temperature,
                max_tokens=max_tokens,
                response_format=response_format,
            )
            if not content:
                logger.warning("chat_json: empty reply (attempt %d), skipping retries", attempt)
                return False, None

            success, parsed = parse_json_robust(content)
            if success:
                if attempt > 1:
                    logger.info("chat_json: JSON parsed successfully on attempt %d", attempt)
                return True, parsed

            if attempt < attempts:
                logger.warning("chat_json: JSON parse failed on attempt %d/%d, retrying", attempt, attempts)

        logger.error("chat_json: all %d JSON parse attempts failed", attempts)
        return False, None

    async def generate_image(self, prompt: str) -> str:
        """Generate an image and return its data URL (or hosted URL)."""
        data = await self._post(
            {
                "model": settings.AI_IMAGE_MODEL,
                "messages": [{"role": "user", "content": prompt}],
                "modalities": ["image", "text"],
            }
        )
        try:
            return data["choices"][0]["message"]["images"][0]["image_url"]["url"]
        except (KeyError, IndexError, TypeError):
            logger.error("generate_image: no image in response: %s", str(data)[:300])
            raise AIGatewayError(502, "No image returned from AI gateway.")
