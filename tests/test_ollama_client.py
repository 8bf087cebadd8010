import json

import httpx
import pytest

import ollama_client
from ollama_client import InferenceError, OllamaError, format_size, generate, list_models, resolve_host


@pytest.fixture(autouse=True)
def no_host_env(monkeypatch):
    monkeypatch.delenv("OLLAMA_HOST", raising=False)


def make_client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def ndjson(*chunks):
    return "\n".join(json.dumps(c) for c in chunks) + "\n"


def test_generate_joins_streamed_chunks():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, text=ndjson(
            {"response": "  Once upon", "done": False},
            {"response": " a time ", "done": False},
            {"response": "", "done": True},
        ))

    with make_client(handler) as client:
        text = generate("Tell me a story", "llama2", client=client)

    assert text == "Once upon a time"
    assert seen["url"] == "http://localhost:11434/api/generate"
    assert seen["body"] == {"model": "llama2", "prompt": "Tell me a story", "stream": True}


def test_generate_accepts_single_buffered_body():
    def handler(request):
        return httpx.Response(200, json={"response": "Hello!", "done": True})

    with make_client(handler) as client:
        assert generate("hi", "llama2", client=client) == "Hello!"


def test_generate_error_status_raises():
    def handler(request):
        return httpx.Response(404, text='{"error":"model not found"}')

    with make_client(handler) as client:
        with pytest.raises(OllamaError) as excinfo:
            generate("hi", "missing-model", client=client)

    assert "404" in excinfo.value.message
    assert "model not found" in excinfo.value.message


def test_generate_transport_failure_is_inference_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with make_client(handler) as client:
        with pytest.raises(InferenceError) as excinfo:
            generate("hi", "llama2", client=client)

    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)
    assert "Error communicating with Ollama" in excinfo.value.message


def test_generate_error_chunk_raises():
    def handler(request):
        return httpx.Response(200, text=ndjson({"response": "par"}, {"error": "out of memory"}))

    with make_client(handler) as client:
        with pytest.raises(OllamaError, match="out of memory"):
            generate("hi", "llama2", client=client)


def test_generate_malformed_chunk_raises():
    def handler(request):
        return httpx.Response(200, text="this is not json\n")

    with make_client(handler) as client:
        with pytest.raises(OllamaError, match="Malformed"):
            generate("hi", "llama2", client=client)


@pytest.mark.parametrize("body", ['"ok"\n', "[1]\n", "5\n", "null\n"])
def test_generate_non_object_chunk_raises(body):
    def handler(request):
        return httpx.Response(200, text=body)

    with make_client(handler) as client:
        with pytest.raises(OllamaError, match="Malformed"):
            generate("hi", "llama2", client=client)


def test_non_object_chunk_reaches_story_as_backend_error():
    import storytelling

    def handler(request):
        return httpx.Response(200, text='"ok"\n')

    with make_client(handler) as client:
        story = storytelling.generate_story(
            "a cat", "fantasy", "short", "happy", "llama2",
            lambda prompt, model: generate(prompt, model, client=client),
        )

    assert story.startswith("Error generating story: Malformed response")


def test_environment_host_wins(monkeypatch):
    seen = []

    def handler(request):
        seen.append(request.url.host)
        return httpx.Response(200, json={"response": "ok", "done": True})

    monkeypatch.setenv("OLLAMA_HOST", "gpu-box:11434")
    with make_client(handler) as client:
        generate("hi", "llama2", host="http://configured:11434", client=client)

    assert seen == ["gpu-box"]


@pytest.mark.parametrize("configured, expected", [
    (None, "http://localhost:11434"),
    ("http://remote:11434/", "http://remote:11434"),
    ("127.0.0.1:11434", "http://127.0.0.1:11434"),
    ("https://ollama.example.com", "https://ollama.example.com"),
])
def test_resolve_host(configured, expected):
    assert resolve_host(configured) == expected


def test_list_models():
    def handler(request):
        assert request.url.path == "/api/tags"
        return httpx.Response(200, json={"models": [
            {"name": "llama2:latest", "size": 3_825_819_519},
            {"name": "tinyllama", "size": 637_700_138},
        ]})

    with make_client(handler) as client:
        models = list_models(client=client)

    assert [m["name"] for m in models] == ["llama2:latest", "tinyllama"]
    assert models[0]["size"] == 3_825_819_519


def test_list_models_failure():
    def handler(request):
        return httpx.Response(500, text="boom")

    with make_client(handler) as client:
        with pytest.raises(OllamaError):
            list_models(client=client)


@pytest.mark.parametrize("size, expected", [
    (3_825_819_519, "3.6GB"),
    (637_700_138, "608MB"),
    (1024, "Unknown"),
])
def test_format_size(size, expected):
    assert format_size(size) == expected


def test_generator_is_looked_up_at_call_time(monkeypatch):
    # Template modules default to ollama_client.generate, so patching it is enough
    import storytelling

    monkeypatch.setattr(ollama_client, "generate", lambda prompt, model: "patched story")
    assert storytelling.generate_story("a cat", "fantasy", "short", "happy", "llama2") == "patched story"
