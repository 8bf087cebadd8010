"""
Ollama client for Anna AI.
Sends prompts to a local Ollama server and collects the generated text.
"""

import json
import logging
import os
from typing import Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_HOST = "http://localhost:11434"
HOST_ENV_VAR = "OLLAMA_HOST"


class InferenceError(Exception):
    """Failure talking to the inference backend."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class OllamaError(InferenceError):
    """Raised for Ollama transport, HTTP or protocol failures."""


def resolve_host(configured: Optional[str] = None) -> str:
    """
    Work out the Ollama base URL.

    Priority:
    1. OLLAMA_HOST environment variable
    2. Host from the configuration
    3. http://localhost:11434
    """
    host = os.environ.get(HOST_ENV_VAR) or configured or DEFAULT_HOST
    host = host.strip().rstrip("/")
    if "://" not in host:
        host = f"http://{host}"
    return host


def _collect_chunks(lines) -> str:
    parts = []
    for line in lines:
        line = line.strip()
        if not line:
            continue
        try:
            chunk = json.loads(line)
        except json.JSONDecodeError as e:
            raise OllamaError(f"Malformed response from Ollama: {line[:80]}") from e
        if not isinstance(chunk, dict):
            raise OllamaError(f"Malformed response from Ollama: {line[:80]}")
        if "error" in chunk:
            raise OllamaError(f"Ollama returned an error: {chunk['error']}")
        parts.append(chunk.get("response", ""))
        if chunk.get("done"):
            break
    return "".join(parts)


def generate(prompt: str, model: str, host: Optional[str] = None,
             client: Optional[httpx.Client] = None) -> str:
    """
    Generate text with the given model.

    Streams from /api/generate and joins the partial responses. A server that
    answers with a single buffered body is handled the same way.

    Args:
        prompt: Prompt text
        model: Ollama model name
        host: Configured host, overridden by OLLAMA_HOST
        client: Optional httpx client (mainly for tests)

    Returns:
        Generated text with surrounding whitespace stripped

    Raises:
        OllamaError: on any transport, HTTP or protocol failure
    """
    url = f"{resolve_host(host)}/api/generate"
    payload = {"model": model, "prompt": prompt, "stream": True}
    owns_client = client is None
    if owns_client:
        client = httpx.Client(timeout=None)

    logger.debug(f"POST {url} model={model} prompt_chars={len(prompt)}")
    try:
        with client.stream("POST", url, json=payload) as response:
            if response.status_code >= 400:
                response.read()
                raise OllamaError(
                    f"Ollama request failed with status {response.status_code}: {response.text.strip()}"
                )
            text = _collect_chunks(response.iter_lines())
    except httpx.HTTPError as e:
        raise OllamaError(f"Error communicating with Ollama at {url}: {e}") from e
    finally:
        if owns_client:
            client.close()

    return text.strip()


def list_models(host: Optional[str] = None, client: Optional[httpx.Client] = None) -> List[Dict]:
    """
    Get locally installed Ollama models.

    Returns:
        List of {"name", "size"} dictionaries
    """
    url = f"{resolve_host(host)}/api/tags"
    owns_client = client is None
    if owns_client:
        client = httpx.Client(timeout=None)

    try:
        response = client.get(url)
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPError as e:
        raise OllamaError(f"Could not list models at {url}: {e}") from e
    except ValueError as e:
        raise OllamaError(f"Malformed model list from {url}") from e
    finally:
        if owns_client:
            client.close()

    return [
        {"name": model.get("name", "?"), "size": model.get("size", 0)}
        for model in data.get("models", [])
    ]


def format_size(size: int) -> str:
    """Format a byte count nicely"""
    if size > 1024**3:
        return f"{size / (1024**3):.1f}GB"
    if size > 1024**2:
        return f"{size / (1024**2):.0f}MB"
    return "Unknown"
