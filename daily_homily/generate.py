"""
Generative client: prompt in, GeneratedContent out.

Each attempt takes the next key from a CredentialPool and dispatches through a
transport (OpenAI chat completions, Gemini REST, or a proxy endpoint). Rate
limit / quota failures move straight on to the next key; anything else waits
attempt * base_delay seconds first. After max_attempts failures the last
error is raised as GenerationError.

The model is asked for JSON but often wraps it in prose or ``` fences, so the
object is dug out with a brace-depth scan (extract_json_object). Missing
fields are filled from the source texts or placeholders (coerce_generated)
instead of failing the call.
"""

from __future__ import annotations
import json
import logging
import re
import threading
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import requests
from openai import BadRequestError, OpenAI, OpenAIError

from .config import Settings
from .errors import GenerationError, ParseError
from .models import GeneratedContent, Saint

logger = logging.getLogger(__name__)

PLACEHOLDER_SAINT = "Saint of the Day"
PLACEHOLDER_BIOGRAPHY = "A biography of today's saint is not available."
PLACEHOLDER_HOMILY = "A homily for today's readings is not available."

TRANSIENT_MARKERS = ("429", "quota", "rate limit", "rate_limit", "resource_exhausted", "too many requests")

FENCE_RE = re.compile(r"```[A-Za-z0-9_-]*")


def mask_key(key: str) -> str:
    return f"...{key[-4:]}" if key else "(none)"


# ===== Credentials =====
class CredentialPool:
    """Round-robin over interchangeable keys. next() is safe to call from several threads."""

    def __init__(self, keys: Iterable[str]):
        uniq: List[str] = []
        for k in keys:
            if k not in uniq:
                uniq.append(k)
        if not uniq:
            raise GenerationError("credential pool is empty; set GEN_API_KEYS")
        self._keys: Tuple[str, ...] = tuple(uniq)
        self._cursor = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._keys)

    def next(self) -> str:
        with self._lock:
            key = self._keys[self._cursor]
            self._cursor = (self._cursor + 1) % len(self._keys)
        return key


# ===== Transports =====
class TransportError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class OpenAITransport:
    def __init__(self, model: str, temperature: float = 0.7, timeout: float = 60.0):
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        self._clients: Dict[str, OpenAI] = {}

    def _client(self, api_key: str) -> OpenAI:
        # retries are ours, not the SDK's
        if api_key not in self._clients:
            self._clients[api_key] = OpenAI(api_key=api_key, timeout=self.timeout, max_retries=0)
        return self._clients[api_key]

    def complete(self, prompt: str, api_key: str) -> str:
        client = self._client(api_key)
        kw = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "response_format": {"type": "json_object"},
            "temperature": self.temperature,
        }
        try:
            r = client.chat.completions.create(**kw)
        except BadRequestError as e:
            # some models only accept the default temperature
            if "temperature" not in str(e).lower():
                raise
            kw.pop("temperature")
            r = client.chat.completions.create(**kw)
        return r.choices[0].message.content or ""


class GeminiTransport:
    """generateContent over REST. The key travels in a header, never in the URL."""

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

    def __init__(self, model: str, temperature: float = 0.7, timeout: float = 60.0,
                 session: Optional[requests.Session] = None):
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        self.session = session or requests.Session()

    def complete(self, prompt: str, api_key: str) -> str:
        url = f"{self.BASE_URL}/{self.model}:generateContent"
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": self.temperature,
                                 "responseMimeType": "application/json"},
        }
        r = self.session.post(url, json=body, timeout=self.timeout,
                              headers={"x-goog-api-key": api_key, "Content-Type": "application/json"})
        if r.status_code == 404:
            raise TransportError("Gemini API 404: endpoint not found; is the Generative Language API enabled?",
                                 status_code=404)
        if not r.ok:
            raise TransportError(f"Gemini API error: {r.reason} (Status: {r.status_code}) - {r.text[:300]}",
                                 status_code=r.status_code)
        data = r.json()
        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            return ""


class ProxyTransport:
    """
    Server-side proxy that holds the provider keys itself:
      POST {"prompt": ...} -> {"success": true, "content": "..."}
    A non-empty pool key is sent as a bearer token.
    """

    def __init__(self, url: str, timeout: float = 60.0, session: Optional[requests.Session] = None):
        if not url:
            raise GenerationError("GEN_PROXY_URL is required for the proxy provider")
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def complete(self, prompt: str, api_key: str) -> str:
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        r = self.session.post(self.url, json={"prompt": prompt}, headers=headers, timeout=self.timeout)
        try:
            data = r.json()
        except ValueError:
            data = {}
        if not r.ok or not data.get("success"):
            msg = data.get("error") or r.reason or "proxy call failed"
            raise TransportError(f"proxy error: {msg} (Status: {r.status_code})", status_code=r.status_code)
        return data.get("content") or ""


RETRYABLE = (TransportError, requests.RequestException, OpenAIError)


def is_transient(err: BaseException) -> bool:
    """429 / quota / rate-limit failures: switch keys at once, no back-off."""
    if getattr(err, "status_code", None) == 429:
        return True
    msg = str(err).lower()
    return any(m in msg for m in TRANSIENT_MARKERS)


# ===== JSON extraction =====
def _balanced_end(text: str, start: int) -> int:
    """Index of the '}' closing the '{' at start, or -1. Braces inside "strings" don't count."""
    depth = 0
    in_str = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_str:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_str = False
            continue
        if ch == '"':
            in_str = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return -1


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    First JSON object embedded in free-form model output.

      'Sure! ```json\\n{"a": {"b": 1}}\\n``` thanks' -> {"a": {"b": 1}}

    Candidates are tried from each '{' in order; a balanced span that does not
    decode to an object (e.g. '{like this}' in prose) is skipped. A '{' that
    is never closed ends the search: the output was truncated.
    """
    cleaned = FENCE_RE.sub("", text or "")
    pos = cleaned.find("{")
    while pos != -1:
        end = _balanced_end(cleaned, pos)
        if end == -1:
            break
        try:
            obj = json.loads(cleaned[pos:end + 1])
        except json.JSONDecodeError:
            obj = None
        if isinstance(obj, dict):
            return obj
        pos = cleaned.find("{", pos + 1)
    raise ParseError("model output contains no balanced JSON object")


# ===== Field defaulting =====
def placeholder_content() -> GeneratedContent:
    return GeneratedContent(
        feast="",
        saint_of_the_day=Saint(PLACEHOLDER_SAINT, PLACEHOLDER_BIOGRAPHY),
        first_reading_text="",
        responsorial_psalm_text="",
        gospel_text="",
        homily=PLACEHOLDER_HOMILY,
    )


def _str(data: Dict[str, Any], key: str) -> Optional[str]:
    v = data.get(key)
    if isinstance(v, str) and v.strip():
        return v.strip()
    return None


def coerce_generated(data: Dict[str, Any], fallback: Optional[GeneratedContent] = None) -> GeneratedContent:
    """Read each field defensively; anything missing comes from fallback."""
    fb = fallback or placeholder_content()
    defaulted: List[str] = []

    def pick(obj: Dict[str, Any], key: str, default: str, label: str) -> str:
        v = _str(obj, key)
        if v is None:
            defaulted.append(label)
            return default
        return v

    saint_obj = data.get("saintOfTheDay")
    if not isinstance(saint_obj, dict):
        saint_obj = {}

    second = None
    if fb.second_reading_text is not None:
        second = pick(data, "secondReadingText", fb.second_reading_text, "secondReadingText")

    out = GeneratedContent(
        feast=pick(data, "feast", fb.feast, "feast"),
        saint_of_the_day=Saint(
            name=pick(saint_obj, "name", fb.saint_of_the_day.name, "saintOfTheDay.name"),
            biography=pick(saint_obj, "biography", fb.saint_of_the_day.biography, "saintOfTheDay.biography"),
        ),
        first_reading_text=pick(data, "firstReadingText", fb.first_reading_text, "firstReadingText"),
        responsorial_psalm_text=pick(data, "responsorialPsalmText", fb.responsorial_psalm_text,
                                     "responsorialPsalmText"),
        gospel_text=pick(data, "gospelText", fb.gospel_text, "gospelText"),
        homily=pick(data, "homily", fb.homily, "homily"),
        second_reading_text=second,
        defaulted=tuple(defaulted),
    )
    if defaulted:
        logger.warning("model response missing %s; using defaults", ", ".join(defaulted))
    return out


# ===== Client =====
class GenerativeClient:
    def __init__(self, transport, pool: CredentialPool, *, max_attempts: int = 3,
                 base_delay: float = 1.0, sleep: Callable[[float], None] = time.sleep):
        if max_attempts < 2:
            raise ValueError("max_attempts must be at least 2")
        self.transport = transport
        self.pool = pool
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.sleep = sleep

    def complete(self, prompt: str) -> str:
        """Raw model text, rotating keys and retrying as described in the module docstring."""
        last_error: Optional[BaseException] = None
        for attempt in range(1, self.max_attempts + 1):
            key = self.pool.next()
            try:
                text = self.transport.complete(prompt, key)
                if not (text or "").strip():
                    raise TransportError("no content generated")
                logger.info("generation attempt %d/%d succeeded with key %s",
                            attempt, self.max_attempts, mask_key(key))
                return text
            except RETRYABLE as e:
                last_error = e
                logger.warning("generation attempt %d/%d failed with key %s: %s",
                               attempt, self.max_attempts, mask_key(key), e)
                if attempt == self.max_attempts or is_transient(e):
                    continue
                self.sleep(attempt * self.base_delay)

        raise GenerationError(f"all {self.max_attempts} generation attempts failed: {last_error}") from last_error

    def generate(self, prompt: str, fallback: Optional[GeneratedContent] = None) -> GeneratedContent:
        return coerce_generated(extract_json_object(self.complete(prompt)), fallback)


def make_transport(settings: Settings):
    if settings.provider == "openai":
        return OpenAITransport(settings.model, settings.temperature, settings.gen_timeout)
    if settings.provider == "gemini":
        return GeminiTransport(settings.model, settings.temperature, settings.gen_timeout)
    if settings.provider == "proxy":
        return ProxyTransport(settings.proxy_url, settings.gen_timeout)
    raise GenerationError(f"unknown generation provider {settings.provider!r}")


def make_client(settings: Settings, sleep: Callable[[float], None] = time.sleep) -> GenerativeClient:
    keys = settings.api_keys
    if not keys and settings.provider == "proxy":
        keys = ("",)  # the proxy holds its own keys
    return GenerativeClient(make_transport(settings), CredentialPool(keys),
                            max_attempts=settings.max_attempts,
                            base_delay=settings.base_delay, sleep=sleep)
