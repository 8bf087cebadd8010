#!/usr/bin/env python3
"""
Anna AI
A terminal companion for storytelling, Julia help and debugging, backed by a local Ollama model.
"""

import argparse
import logging
import sys
from functools import partial
from pathlib import Path
from typing import Callable, List, Optional

from rich.markdown import Markdown
from rich.panel import Panel

import ollama_client
from chat import ChatSession
from companionship import (
    create_daily_check_in,
    get_motivational_quote,
    get_personality_traits,
    set_personality,
)
from config import ConfigError, Settings, load_config, load_env_file
from debugging import analyze_stacktrace, generate_debugging_guide, get_solution, parse_error, suggest_tests
from julia_helper import (
    analyze_code,
    explain_code,
    get_challenge,
    get_difficulties,
    get_random_challenge,
    get_supported_topics,
)
from logger import setup_logger
from ollama_client import InferenceError
from storytelling import analyze_story, generate_story, get_supported_lengths, get_supported_tones
from tui import (
    ACCENT,
    MenuOption,
    console,
    print_banner,
    print_error,
    print_header,
    print_help,
    print_info,
    print_menu,
    print_panel,
    print_step,
    print_table,
    print_warning,
    prompt_input,
    with_loading,
)

logger = logging.getLogger(__name__)

Generator = Callable[[str, str], str]

CHAT_HELP = (
    "/help - show this help\n"
    "/quote - a motivational quote\n"
    "/checkin - daily check-in\n"
    "/remember <fact> - remember something about you\n"
    "/facts - list remembered facts\n"
    "/personality <name> - friendly, professional, casual, encouraging, playful\n"
    "/reset - forget this conversation\n"
    "/quit - leave the chat"
)

MENU_OPTIONS = [
    MenuOption("1", "Chat with Anna"),
    MenuOption("2", "Write a story"),
    MenuOption("3", "Analyze Julia code"),
    MenuOption("4", "Explain Julia code"),
    MenuOption("5", "Debug an error"),
    MenuOption("6", "Julia challenge"),
    MenuOption("h", "Help"),
    MenuOption("q", "Quit"),
]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="anna",
        description="Anna AI - storytelling, Julia help and companionship on a local Ollama model.",
    )
    action = parser.add_mutually_exclusive_group()
    action.add_argument("-i", "--interactive", action="store_true", help="Start interactive chat")
    action.add_argument("--chat", metavar="MESSAGE", help="Send one chat message")
    action.add_argument("--story", action="store_true", help="Generate a story")
    action.add_argument("--analyze", metavar="FILE", help="Analyze Julia code ('-' reads stdin)")
    action.add_argument("--explain", metavar="FILE", help="Explain Julia code ('-' reads stdin)")
    action.add_argument("--debug", metavar="ERROR", help="Explain a Julia error message or stack trace")
    action.add_argument("--challenge", action="store_true", help="Get a Julia challenge")
    action.add_argument("--list-models", action="store_true", help="List local Ollama models")

    parser.add_argument("--prompt", default="", help="Story idea")
    parser.add_argument("--genre", default="fantasy", help="Story genre")
    parser.add_argument("--length", default="medium", help="Story length (short, medium, long)")
    parser.add_argument("--tone", default="neutral", help="Story tone")
    parser.add_argument("--detail", default="medium", help="Explanation detail (basic, medium, detailed)")
    parser.add_argument("--difficulty", help="Challenge difficulty (easy, medium, hard, advanced)")
    parser.add_argument("--topic", help="Challenge topic")
    parser.add_argument("--model", help="Override the configured Ollama model")
    parser.add_argument("--env", help="Configuration environment (development, production)")
    return parser


def read_code(source: str) -> str:
    """Read code from a file path, or stdin for '-'."""
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def run_story(model: str, generate: Generator, prompt: str, genre: str, length: str, tone: str) -> None:
    if not prompt.strip():
        print_warning("Please provide a story prompt (--prompt).")
        return
    story = with_loading(
        lambda: generate_story(prompt, genre, length, tone, model, generate),
        "Writing your story",
    )
    result = analyze_story(story, genre, tone)
    print_panel(story, title=f"{genre.title()} story")
    print_info(f"{result.word_count} words")


def run_analyze(model: str, generate: Generator, code: str) -> None:
    analysis = with_loading(lambda: analyze_code(code, model, generate), "Analyzing code")
    print_header("Code Analysis")
    print_table(
        ["Metric", "Value"],
        [
            ["Lines", str(analysis.line_count)],
            ["Words", str(analysis.word_count)],
            ["Complexity", analysis.estimated_complexity],
        ],
    )
    console.print()
    if not analysis.suggestions:
        print_info("No suggestions - looks good!")
    for i, suggestion in enumerate(analysis.suggestions, 1):
        print_step(i, len(analysis.suggestions), suggestion)


def run_explain(model: str, generate: Generator, code: str, detail: str) -> None:
    explanation = with_loading(lambda: explain_code(code, detail, model, generate), "Explaining code")
    console.print(Panel(Markdown(explanation.summary), title=f"[bold {ACCENT}]Explanation[/bold {ACCENT}]",
                        border_style=ACCENT))
    print_panel("\n".join(f"- {c}" for c in explanation.key_concepts), title="Key concepts")
    print_panel("\n".join(f"- {t}" for t in explanation.tips), title="Tips")


def run_debug(model: str, generate: Generator, error_text: str) -> None:
    parsed = parse_error(error_text)
    console.print(Markdown(generate_debugging_guide(parsed)))

    trace = analyze_stacktrace(error_text)
    if trace.frames:
        print_table(
            ["#", "Function", "Location", "Origin"],
            [
                [str(i), f.function_name, f"{f.file}:{f.line}", "library" if f in trace.library_frames else "user"]
                for i, f in enumerate(trace.frames, 1)
            ],
        )
        console.print()

    solution = with_loading(lambda: get_solution(parsed.error_type, parsed.message, model, generate),
                            "Looking for a fix")
    print_panel(solution, title="How to fix it")
    print_panel("\n".join(suggest_tests(parsed)), title="Suggested test")


def run_challenge(model: str, generate: Generator, difficulty: Optional[str], topic: Optional[str]) -> None:
    if difficulty or topic:
        challenge = with_loading(
            lambda: get_challenge(difficulty or "medium", topic or "functions", model, generate),
            "Preparing a challenge",
        )
    else:
        challenge = with_loading(lambda: get_random_challenge(model, generate), "Preparing a challenge")

    print_panel(
        f"{challenge.description}\n\nDifficulty: {challenge.difficulty.value}\n"
        f"Concepts: {', '.join(challenge.expected_concepts)}",
        title=challenge.title,
    )
    for i, hint in enumerate(challenge.hints, 1):
        print_step(i, len(challenge.hints), hint)
    console.print(Markdown(f"```julia\n{challenge.starter_code}\n```"))


def show_models(host: Optional[str]) -> None:
    models = ollama_client.list_models(host)
    if not models:
        print_warning("No local models found. Pull one with: ollama pull llama2")
        return
    print_table(["Model", "Size"], [[m["name"], ollama_client.format_size(m["size"])] for m in models])


def show_reply(reply: str) -> None:
    console.print(Panel(Markdown(reply), title=f"[bold {ACCENT}]Anna[/bold {ACCENT}]", border_style=ACCENT))


def chat_loop(session: ChatSession) -> None:
    """Interactive chat until /quit."""
    print_panel(f"{create_daily_check_in()}\n\nType /help for commands.", title="Chat with Anna")

    while True:
        user_input = prompt_input("You").strip()
        if not user_input:
            continue

        command, _, argument = user_input.partition(" ")
        command = command.lower()

        if command in ("/quit", "/exit", "/q"):
            console.print(f"[{ACCENT}]Goodbye![/{ACCENT}]")
            return
        if command == "/help":
            print_panel(CHAT_HELP, title="Chat commands")
            continue
        if command == "/quote":
            print_info(get_motivational_quote())
            continue
        if command == "/checkin":
            print_info(create_daily_check_in())
            continue
        if command == "/remember":
            if argument.strip():
                session.memory.remember(argument)
                print_info("I'll remember that.")
            else:
                print_warning("Usage: /remember <fact>")
            continue
        if command == "/facts":
            facts = session.memory.important_facts
            print_panel("\n".join(f"- {f}" for f in facts) or "Nothing yet.", title="What I remember")
            continue
        if command == "/personality":
            if argument.strip().lower() not in get_personality_traits():
                print_warning(f"Choose one of: {', '.join(get_personality_traits())}")
                continue
            session.preferences = set_personality(session.preferences, argument)
            print_info(f"Personality set to {session.preferences.personality.value}.")
            continue
        if command == "/reset":
            session.reset()
            print_info("Conversation cleared.")
            continue

        try:
            reply = with_loading(lambda: session.ask(user_input), "Thinking")
        except InferenceError as e:
            print_error(e.message)
            print_warning("Make sure Ollama is running: ollama serve")
            continue
        show_reply(reply)


def ask_code() -> str:
    source = prompt_input("Path to a Julia file (or a line of code)")
    path = Path(source).expanduser()
    if source and path.is_file():
        return path.read_text(encoding="utf-8")
    return source


def interactive_menu(model: str, generate: Generator) -> None:
    """Main menu shown when no arguments are given."""
    print_banner()
    print_info(f"Model: {model}")

    while True:
        choice = print_menu("What would you like to do?", MENU_OPTIONS).lower()

        if choice in ("q", "quit", "exit"):
            console.print(f"[{ACCENT}]Goodbye![/{ACCENT}]")
            return
        if choice == "1":
            chat_loop(ChatSession(model, generate))
        elif choice == "2":
            run_story(
                model,
                generate,
                prompt_input("Story idea"),
                prompt_input("Genre", "fantasy"),
                prompt_input(f"Length ({', '.join(get_supported_lengths())})", "medium"),
                prompt_input(f"Tone ({', '.join(get_supported_tones())})", "neutral"),
            )
        elif choice == "3":
            run_analyze(model, generate, ask_code())
        elif choice == "4":
            run_explain(model, generate, ask_code(), prompt_input("Detail (basic, medium, detailed)", "medium"))
        elif choice == "5":
            run_debug(model, generate, prompt_input("Paste the error message"))
        elif choice == "6":
            run_challenge(
                model,
                generate,
                prompt_input(f"Difficulty ({', '.join(get_difficulties())})", "easy"),
                prompt_input(f"Topic (e.g. {', '.join(get_supported_topics()[:4])})", "functions"),
            )
        elif choice in ("h", "help"):
            print_help()
        else:
            print_warning("Unknown option, please pick one from the menu.")


def dispatch(args: argparse.Namespace, settings: Settings) -> int:
    model = args.model or settings.ollama.model
    generate = partial(ollama_client.generate, host=settings.ollama.host)

    if args.list_models:
        show_models(settings.ollama.host)
    elif args.interactive:
        chat_loop(ChatSession(model, generate))
    elif args.chat is not None:
        if not args.chat.strip():
            print_warning("Please provide a message to send (--chat MESSAGE).")
        else:
            show_reply(with_loading(lambda: ChatSession(model, generate).ask(args.chat), "Thinking"))
    elif args.story:
        run_story(model, generate, args.prompt, args.genre, args.length, args.tone)
    elif args.analyze:
        run_analyze(model, generate, read_code(args.analyze))
    elif args.explain:
        run_explain(model, generate, read_code(args.explain), args.detail)
    elif args.debug:
        run_debug(model, generate, args.debug)
    elif args.challenge:
        run_challenge(model, generate, args.difficulty, args.topic)
    else:
        interactive_menu(model, generate)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point. Returns the process exit status."""
    args = build_parser().parse_args(argv)

    try:
        load_env_file()
        settings = load_config(args.env)
        setup_logger(settings.logging.level)
        logger.debug(f"Starting Anna AI with model {settings.ollama.model} (env={args.env or 'default'})")
        return dispatch(args, settings)
    except (ConfigError, InferenceError) as e:
        print_error(e.message)
        return 1
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user. Goodbye![/yellow]")
        return 0
    except Exception as e:
        logger.debug("Unhandled error", exc_info=True)
        print_error(f"An unexpected error occurred: {e}")
        return 1


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
