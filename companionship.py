"""
Companionship features for Anna AI.
Conversation memory, personality presets and simple mood detection.
"""

import logging
import random
import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional

import ollama_client

logger = logging.getLogger(__name__)

Generator = Callable[[str, str], str]

MAX_MESSAGES = 50


class PersonalityType(Enum):
    FRIENDLY = "friendly"
    PROFESSIONAL = "professional"
    CASUAL = "casual"
    ENCOURAGING = "encouraging"
    PLAYFUL = "playful"


class EmotionalState(Enum):
    NEUTRAL = "neutral"
    HAPPY = "happy"
    SAD = "sad"
    EXCITED = "excited"
    CALM = "calm"
    CONCERNED = "concerned"
    SUPPORTIVE = "supportive"


@dataclass(frozen=True)
class UserPreferences:
    name: str = "Friend"
    personality: PersonalityType = PersonalityType.FRIENDLY
    favorite_genres: tuple = ()
    daily_check_in: bool = True
    memory_enabled: bool = True


DEFAULT_PERSONALITIES = {
    "friendly": "warm, caring, and approachable",
    "professional": "knowledgeable, helpful, and clear",
    "casual": "relaxed, easy-going, and conversational",
    "encouraging": "supportive, motivating, and positive",
    "playful": "cheerful, fun, and lighthearted",
}

# The lists are disjoint so a word only ever counts towards one mood
HAPPY_WORDS = ["happy", "great", "wonderful", "love", "awesome", "glad", "joyful"]
SAD_WORDS = ["sad", "down", "upset", "depressed", "disappointed", "lonely", "hurt"]
EXCITED_WORDS = ["excited", "thrilled", "can't wait", "amazing", "incredible"]
CONCERNED_WORDS = ["worried", "concerned", "anxious", "nervous", "scared", "afraid"]

# Whole words only, with hyphenated compounds ("worst-case") counted as one word
NEGATIVE_PATTERNS = [
    re.compile(rf"(?<![\w-]){p}(?![\w-])") for p in (
        r"hat(?:e|ed|es|ing)", r"kill(?:s|ed|ing)?", r"hurt(?:s|ing)?", r"destroy(?:s|ed|ing)?",
        r"terrible", r"awful", r"horrible", r"worst",
    )
]

TOPIC_PATTERNS = [
    (re.compile(r"julia programming"), "julia"),
    (re.compile(r"programming"), "programming"),
    (re.compile(r"story|storytelling"), "storytelling"),
    (re.compile(r"debug|bug|error"), "debugging"),
    (re.compile(r"feeling|mood|day"), "personal"),
    (re.compile(r"work|job|career"), "work"),
    (re.compile(r"family|friends|relationships"), "relationships"),
    (re.compile(r"hobby|interest|fun"), "hobbies"),
]

MOOD_RESPONSES: Dict[EmotionalState, List[str]] = {
    EmotionalState.HAPPY: [
        "I'm so glad to hear that!",
        "That's wonderful! I'd love to hear more.",
        "Your happiness makes me happy too!",
    ],
    EmotionalState.SAD: [
        "I'm sorry you're feeling down. I'm here for you.",
        "That sounds tough. Would you like to talk about it?",
        "It's okay to feel sad sometimes. I'm here to listen.",
    ],
    EmotionalState.EXCITED: [
        "That's amazing! I love your enthusiasm!",
        "Wow, tell me more! I'm curious!",
        "Your excitement is contagious!",
    ],
    EmotionalState.CALM: [
        "There's a peaceful energy about you.",
        "That sounds lovely and serene.",
        "I appreciate your calm presence.",
    ],
    EmotionalState.CONCERNED: [
        "I can sense something's on your mind. Do you want to share?",
        "I'm here to help if you'd like to talk.",
        "Take your time, I'm listening.",
    ],
    EmotionalState.SUPPORTIVE: [
        "Thank you for sharing that with me.",
        "I appreciate your openness.",
        "Let's work through this together.",
    ],
    EmotionalState.NEUTRAL: [
        "I'm here whenever you want to chat.",
        "How can I help you today?",
        "What's on your mind?",
    ],
}

MOTIVATIONAL_QUOTES = [
    "Every day is a new opportunity to grow and learn.",
    "You are capable of amazing things!",
    "Small steps lead to big changes.",
    "Be kind to yourself - you're doing great.",
    "Your potential is limitless.",
    "Every challenge is a chance to grow stronger.",
    "Believe in yourself and all that you are.",
    "The best time to start is now.",
]

NEGATIVE_CONTENT_RESPONSES = [
    "I'd prefer to focus on positive topics. Is there something nice I can help you with?",
    "Let's talk about something more uplifting! What are you interested in?",
    "I'm here to help and support you. What constructive topic can we explore together?",
]

CHECK_IN_PROMPTS = [
    "Good morning! How are you feeling today?",
    "Hey! It's a new day. What's on your mind?",
    "Hi there! How has your day been so far?",
    "Hello! I'm here to check in. How are you doing?",
    "Good day! What's something you're looking forward to?",
]


def extract_topics(text: str) -> List[str]:
    text_lower = text.lower()
    topics = []
    for pattern, topic in TOPIC_PATTERNS:
        if pattern.search(text_lower) and topic not in topics:
            topics.append(topic)
    return topics


@dataclass
class ConversationMemory:
    """Messages, topics and facts collected during one session."""

    messages: List[Dict[str, str]] = field(default_factory=list)
    important_facts: List[str] = field(default_factory=list)
    topics_discussed: List[str] = field(default_factory=list)
    last_topics: List[str] = field(default_factory=list)

    def add(self, role: str, content: str) -> "ConversationMemory":
        """Store a message, keeping only the latest MAX_MESSAGES."""
        self.messages.append({
            "role": role,
            "content": content,
            "timestamp": datetime.now().isoformat(timespec="seconds"),
        })

        self.last_topics = extract_topics(content)
        for topic in self.last_topics:
            if topic not in self.topics_discussed:
                self.topics_discussed.append(topic)

        if len(self.messages) > MAX_MESSAGES:
            del self.messages[:-MAX_MESSAGES]
        return self

    def remember(self, fact: str) -> "ConversationMemory":
        fact = fact.strip()
        if fact and fact not in self.important_facts:
            self.important_facts.append(fact)
        return self

    def context(self) -> str:
        """Short summary of recent turns for the prompt."""
        if not self.messages:
            return ""

        parts = ["Previous conversation:"]
        for msg in self.messages[-5:]:
            parts.append(f"- {msg['role']}: {msg['content'][:100]}...")

        if self.topics_discussed:
            parts.append(f"Topics discussed: {', '.join(self.topics_discussed[-5:])}")
        return "\n".join(parts)

    def clear(self) -> None:
        self.messages.clear()
        self.topics_discussed.clear()
        self.last_topics.clear()


def _count_keywords(text: str, words: List[str]) -> int:
    return sum(1 for w in words if re.search(rf"\b{re.escape(w)}\b", text))


def analyze_sentiment(text: str) -> EmotionalState:
    """
    Classify the mood of a message by keyword counts.

    Excited wins when it has at least as many hits as happy and sad.
    """
    text_lower = text.lower().replace("’", "'")

    happy = _count_keywords(text_lower, HAPPY_WORDS)
    sad = _count_keywords(text_lower, SAD_WORDS)
    excited = _count_keywords(text_lower, EXCITED_WORDS)
    concerned = _count_keywords(text_lower, CONCERNED_WORDS)

    if excited > 0 and excited >= max(happy, sad):
        return EmotionalState.EXCITED
    elif happy > sad and happy > 0:
        return EmotionalState.HAPPY
    elif sad > 0 and sad >= happy:
        return EmotionalState.SAD
    elif concerned > 0:
        return EmotionalState.CONCERNED
    return EmotionalState.NEUTRAL


def get_emotional_response(state: EmotionalState, rng: Optional[random.Random] = None) -> str:
    rng = rng or random
    return rng.choice(MOOD_RESPONSES.get(state, MOOD_RESPONSES[EmotionalState.NEUTRAL]))


def detect_negative_content(text: str) -> bool:
    text_lower = text.lower()
    return any(pattern.search(text_lower) for pattern in NEGATIVE_PATTERNS)


def get_negative_redirect(rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(NEGATIVE_CONTENT_RESPONSES)


def get_motivational_quote(rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(MOTIVATIONAL_QUOTES)


def create_daily_check_in(rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(CHECK_IN_PROMPTS)


def set_personality(preferences: UserPreferences, personality: str) -> UserPreferences:
    """Return preferences with a new personality; unknown names keep the old one."""
    try:
        new_personality = PersonalityType(personality.strip().lower())
    except ValueError:
        logger.warning(f"Personality '{personality}' not recognized, keeping '{preferences.personality.value}'")
        return preferences
    return replace(preferences, personality=new_personality)


def get_personality_traits() -> List[str]:
    return [p.value for p in PersonalityType]


def build_system_prompt(preferences: UserPreferences, memory: ConversationMemory) -> str:
    personality_desc = DEFAULT_PERSONALITIES.get(preferences.personality.value, "helpful and friendly")

    prompt = (
        f"You are Anna AI, a kind and supportive AI companion for {preferences.name}.\n"
        f"Your personality is: {personality_desc}.\n\n"
        "You are helpful, caring, and provide excellent assistance with:\n"
        "- Creative storytelling\n"
        "- Julia programming questions\n"
        "- Debugging help\n"
        "- General conversation\n\n"
        "Guidelines:\n"
        "- Be warm and supportive\n"
        "- Provide clear, helpful responses\n"
        "- Ask follow-up questions to understand better\n"
        "- If the user seems upset, offer support\n"
        "- Keep responses conversational but informative\n"
    )

    if memory.important_facts:
        prompt += "\nRemember these important facts about the user:\n"
        for fact in memory.important_facts:
            prompt += f"- {fact}\n"

    return prompt


def personalize_response(preferences: UserPreferences, base_response: str, model: str,
                         generator: Optional[Generator] = None) -> str:
    """Rewrite a response in the user's chosen personality; falls back to the input."""
    personality = preferences.personality.value
    prompt = (
        f"Rewrite this response to match a {personality} personality style "
        f"({DEFAULT_PERSONALITIES[personality]}):\n\n"
        f"{base_response}\n\n"
        "Keep the same meaning but adjust the tone and style.\n"
    )
    generate = generator or ollama_client.generate
    try:
        personalized = generate(prompt, model)
    except Exception:
        logger.debug("Could not personalize response", exc_info=True)
        return base_response
    return personalized or base_response
