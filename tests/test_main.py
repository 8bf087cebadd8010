import pytest

import main
import ollama_client
from config import ConfigError
from ollama_client import OllamaError


@pytest.fixture(autouse=True)
def quiet_startup(monkeypatch):
    monkeypatch.setattr(main, "load_env_file", lambda: None)
    monkeypatch.setattr(main, "setup_logger", lambda level: None)
    monkeypatch.delenv("OLLAMA_HOST", raising=False)


@pytest.fixture
def backend(monkeypatch):
    calls = []

    def fake_generate(prompt, model, host=None):
        calls.append({"prompt": prompt, "model": model, "host": host})
        return "Once upon a time there was a cat."

    monkeypatch.setattr(ollama_client, "generate", fake_generate)
    return calls


def fail_with(monkeypatch, error):
    def fake_generate(prompt, model, host=None):
        raise error

    monkeypatch.setattr(ollama_client, "generate", fake_generate)


def test_story_command(backend, capsys):
    code = main.main(["--story", "--prompt", "a cat", "--genre", "fantasy", "--length", "short"])

    assert code == 0
    out = capsys.readouterr().out
    assert "Once upon a time there was a cat." in out
    assert "8 words" in out
    assert backend[0]["model"] == "llama2"
    assert backend[0]["host"] == "http://localhost:11434"


def test_story_without_prompt_does_not_call_backend(backend, capsys):
    assert main.main(["--story"]) == 0
    assert backend == []
    assert "Please provide a story prompt" in capsys.readouterr().out


def test_model_flag_overrides_config(backend):
    assert main.main(["--chat", "hi there", "--model", "mistral"]) == 0
    assert backend[0]["model"] == "mistral"


def test_chat_backend_failure_exits_1(monkeypatch, capsys):
    fail_with(monkeypatch, OllamaError("Error communicating with Ollama"))

    assert main.main(["--chat", "hello"]) == 1
    assert "Error communicating with Ollama" in capsys.readouterr().out


def test_story_backend_failure_is_reported_not_raised(monkeypatch, capsys):
    fail_with(monkeypatch, OllamaError("connection refused"))

    assert main.main(["--story", "--prompt", "a cat"]) == 0
    assert "Error generating story: connection refused" in capsys.readouterr().out


def test_config_error_exits_1(monkeypatch, capsys):
    def broken(environment=None):
        raise ConfigError("Default configuration not found at /nowhere/config.toml")

    monkeypatch.setattr(main, "load_config", broken)

    assert main.main([]) == 1
    assert "Default configuration not found" in capsys.readouterr().out


def test_unexpected_error_exits_1(monkeypatch, capsys):
    fail_with(monkeypatch, RuntimeError("kaboom"))

    assert main.main(["--chat", "hello"]) == 1
    assert "An unexpected error occurred: kaboom" in capsys.readouterr().out


def test_keyboard_interrupt_exits_0(monkeypatch):
    fail_with(monkeypatch, KeyboardInterrupt())
    assert main.main(["--chat", "hello"]) == 0


def test_environment_flag(backend, monkeypatch):
    seen = []
    real_load_config = main.load_config

    def recording(environment=None):
        seen.append(environment)
        return real_load_config(environment)

    monkeypatch.setattr(main, "load_config", recording)
    assert main.main(["--env", "development", "--chat", "hi"]) == 0
    assert seen == ["development"]


def test_analyze_file(backend, tmp_path, capsys):
    source = tmp_path / "sum.jl"
    source.write_text("for i in 1:10\n    println(i)\nend\n", encoding="utf-8")

    assert main.main(["--analyze", str(source)]) == 0
    out = capsys.readouterr().out
    assert "Code Analysis" in out
    assert "@inbounds" in out


def test_missing_file_exits_1(backend, tmp_path, capsys):
    assert main.main(["--explain", str(tmp_path / "missing.jl")]) == 1
    assert "An unexpected error occurred" in capsys.readouterr().out


def test_debug_command(backend, capsys):
    assert main.main(["--debug", "BoundsError: attempt to access 3-element Vector at index [4]"]) == 0
    out = capsys.readouterr().out
    assert "Debugging Guide" in out
    assert "AI Suggestion" in out


def test_challenge_command_falls_back(backend, capsys):
    assert main.main(["--challenge", "--difficulty", "easy", "--topic", "arrays"]) == 0
    assert "Practice arrays" in capsys.readouterr().out


def test_list_models(monkeypatch, capsys):
    monkeypatch.setattr(ollama_client, "list_models", lambda host=None: [{"name": "llama2:latest", "size": 3_825_819_519}])

    assert main.main(["--list-models"]) == 0
    out = capsys.readouterr().out
    assert "llama2:latest" in out
    assert "3.6GB" in out


def test_interactive_chat_commands(backend, monkeypatch, capsys):
    inputs = iter(["/remember I drink tea", "/facts", "", "Hello Anna", "/personality grumpy", "/quit"])
    monkeypatch.setattr(main, "prompt_input", lambda prompt, default="": next(inputs))

    assert main.main(["-i"]) == 0
    out = capsys.readouterr().out
    assert "I drink tea" in out
    assert "Once upon a time there was a cat." in out
    assert "Choose one of" in out
    assert "I drink tea" in backend[0]["prompt"]


def test_menu_quit(monkeypatch, capsys):
    choices = iter(["7", "q"])
    monkeypatch.setattr(main, "print_menu", lambda title, options: next(choices))

    assert main.main([]) == 0
    assert "Unknown option" in capsys.readouterr().out


def test_empty_chat_message_does_not_open_menu(backend, monkeypatch, capsys):
    def no_menu(title, options):
        raise AssertionError("menu must not open for --chat")

    monkeypatch.setattr(main, "print_menu", no_menu)

    assert main.main(["--chat", ""]) == 0
    assert backend == []
    assert "Please provide a message" in capsys.readouterr().out


def test_environment_outside_config_dir_exits_1(backend, capsys):
    assert main.main(["--env", "../../etc/passwd", "--chat", "hi"]) == 1
    assert backend == []
    assert "Invalid environment name" in capsys.readouterr().out
