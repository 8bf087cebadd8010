"""
Chat session for Anna AI.
Keeps conversation memory and builds the prompt for each turn.
"""

import logging
from typing import Callable, Optional

import ollama_client
from companionship import (
    ConversationMemory,
    EmotionalState,
    UserPreferences,
    analyze_sentiment,
    build_system_prompt,
    detect_negative_content,
    get_negative_redirect,
)

logger = logging.getLogger(__name__)

Generator = Callable[[str, str], str]


def build_prompt(context: str, new_prompt: str) -> str:
    """Join conversation context and the new prompt, skipping empty parts."""
    return "\n".join(part for part in (context, new_prompt) if part and part.strip())


class ChatSession:
    """One interactive conversation with the model."""

    def __init__(self, model: str, generator: Optional[Generator] = None,
                 preferences: Optional[UserPreferences] = None):
        self.model = model
        self.generator = generator or ollama_client.generate
        self.preferences = preferences or UserPreferences()
        self.memory = ConversationMemory()
        self.last_mood = EmotionalState.NEUTRAL

    def _turn_prompt(self, user_input: str) -> str:
        parts = [build_system_prompt(self.preferences, self.memory)]
        if self.preferences.memory_enabled:
            parts.append(self.memory.context())
        if self.last_mood is not EmotionalState.NEUTRAL:
            parts.append(f"The user seems {self.last_mood.value}. Respond with that in mind.")
        parts.append(f"User: {user_input}\nAnna:")
        return build_prompt("\n\n".join(p for p in parts[:-1] if p), parts[-1])

    def ask(self, user_input: str) -> str:
        """
        Send one user message and return Anna's reply.

        Raises:
            InferenceError: if the backend cannot be reached
        """
        user_input = user_input.strip()
        self.last_mood = analyze_sentiment(user_input)
        logger.debug(f"Detected mood: {self.last_mood.value}")

        if detect_negative_content(user_input):
            reply = get_negative_redirect()
        else:
            reply = self.generator(self._turn_prompt(user_input), self.model).strip()

        if self.preferences.memory_enabled:
            self.memory.add("user", user_input)
            self.memory.add("assistant", reply)
        return reply

    def reset(self) -> None:
        self.memory.clear()
        self.last_mood = EmotionalState.NEUTRAL
