"""
Storytelling for Anna AI.
Builds story prompts from genre, length and tone and hands them to the model.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

import ollama_client
from ollama_client import InferenceError

logger = logging.getLogger(__name__)

Generator = Callable[[str, str], str]

SUPPORTED_GENRES = [
    "fantasy", "sci-fi", "science_fiction", "romance", "mystery",
    "horror", "adventure", "comedy", "drama", "thriller",
]

STORY_LENGTHS = ["short", "medium", "long"]

STORY_TONES = ["happy", "sad", "mysterious", "exciting", "neutral", "dark", "light"]

DEFAULT_LENGTH = "medium"
DEFAULT_TONE = "neutral"

LENGTH_INSTRUCTIONS = {
    "short": "a brief story (100-200 words)",
    "medium": "a moderate-length story (300-500 words)",
    "long": "a long, detailed story (800+ words)",
}

TONE_INSTRUCTIONS = {
    "happy": "with a cheerful, uplifting ending",
    "sad": "with a bittersweet or emotional ending",
    "mysterious": "leaving some elements mysterious and unresolved",
    "exciting": "with suspenseful and action-packed scenes",
    "dark": "with a darker, more serious tone",
    "light": "with a lighthearted and fun atmosphere",
    "neutral": "with a balanced narrative",
}

EMPTY_STORY_MESSAGE = "Could not generate a story. The model returned an empty response."


@dataclass
class StoryParameters:
    prompt: str
    genre: str = "fantasy"
    length: str = DEFAULT_LENGTH
    tone: str = DEFAULT_TONE


@dataclass
class StoryResult:
    story: str
    word_count: int
    genre: str
    tone: str


def normalize_length(length: str) -> str:
    length = (length or "").strip().lower()
    if length not in STORY_LENGTHS:
        logger.warning(f"Length '{length}' not recognized, using '{DEFAULT_LENGTH}' instead")
        return DEFAULT_LENGTH
    return length


def normalize_tone(tone: str) -> str:
    tone = (tone or "").strip().lower()
    if tone not in STORY_TONES:
        logger.warning(f"Tone '{tone}' not recognized, using '{DEFAULT_TONE}' instead")
        return DEFAULT_TONE
    return tone


def build_story_prompt(prompt: str, genre: str, length: str, tone: str) -> str:
    """
    Build the full prompt sent to the model.

    Length and tone must already be normalized.
    """
    return (
        f"Please write {LENGTH_INSTRUCTIONS[length]} in the {genre} genre {TONE_INSTRUCTIONS[tone]}.\n\n"
        f"Story prompt: {prompt}\n\n"
        "Make the story engaging, well-structured, and creative. "
        "Include vivid descriptions and compelling characters.\n"
    )


def generate_story(prompt: str, genre: str, length: str, tone: str, model: str,
                   generator: Optional[Generator] = None) -> str:
    """
    Generate a story based on a prompt, genre, length, and tone.

    Unrecognized lengths fall back to "medium" and unrecognized tones to
    "neutral". Failures are returned as text instead of raised.

    Args:
        prompt: The story prompt/idea
        genre: The genre of the story
        length: short, medium or long
        tone: One of STORY_TONES
        model: The Ollama model to use
        generator: Callable taking (prompt, model); defaults to ollama_client.generate

    Returns:
        The generated story or an error message
    """
    genre = (genre or "").strip().lower()
    length = normalize_length(length)
    tone = normalize_tone(tone)

    if genre not in SUPPORTED_GENRES:
        logger.debug(f"Genre '{genre}' not explicitly supported, proceeding anyway")

    full_prompt = build_story_prompt(prompt, genre, length, tone)
    generate = generator or ollama_client.generate

    try:
        response = generate(full_prompt, model)
    except InferenceError as e:
        return f"Error generating story: {e.message}"
    except Exception as e:
        logger.debug("Story generation failed", exc_info=True)
        return f"An unexpected error occurred during story generation: {e!r}"

    if not response:
        return EMPTY_STORY_MESSAGE
    return response


def generate_story_from_params(params: StoryParameters, model: str,
                               generator: Optional[Generator] = None) -> str:
    return generate_story(params.prompt, params.genre, params.length, params.tone, model, generator)


def get_supported_genres() -> List[str]:
    return list(SUPPORTED_GENRES)


def get_supported_lengths() -> List[str]:
    return list(STORY_LENGTHS)


def get_supported_tones() -> List[str]:
    return list(STORY_TONES)


def count_words(text: str) -> int:
    """Count whitespace separated words."""
    return len(text.split())


def analyze_story(story: str, genre: str = "general", tone: str = DEFAULT_TONE) -> StoryResult:
    return StoryResult(story, count_words(story), genre, tone)
