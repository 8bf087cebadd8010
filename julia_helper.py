"""
Julia programming assistance for Anna AI.
Code analysis, explanations, learning challenges and documentation lookups.
"""

import json
import logging
import random
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

import ollama_client

logger = logging.getLogger(__name__)

Generator = Callable[[str, str], str]

MAX_SUGGESTIONS = 5


@dataclass
class CodeAnalysis:
    code: str
    line_count: int
    word_count: int
    estimated_complexity: str
    suggestions: List[str] = field(default_factory=list)


@dataclass
class CodeExplanation:
    summary: str
    line_by_line: List[str]
    key_concepts: List[str]
    tips: List[str]


class ChallengeDifficulty(Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    ADVANCED = "advanced"


@dataclass
class JuliaChallenge:
    title: str
    description: str
    difficulty: ChallengeDifficulty
    hints: List[str]
    starter_code: str
    expected_concepts: List[str]


CHALLENGE_TOPICS = [
    "functions",
    "types",
    "arrays",
    "dictionaries",
    "loops",
    "comprehensions",
    "multiple dispatch",
    "modules",
    "metaprogramming",
    "performance",
    "linear algebra",
    "statistics",
]

DETAIL_LEVELS = ["basic", "medium", "detailed"]

# (pattern, concept); checked independently, concepts deduplicated
CONCEPT_PATTERNS = [
    (r"function\s+(\w+)", "functions"),
    (r"struct\s+(\w+)", "custom types"),
    (r"mutable struct\s+(\w+)", "mutable types"),
    (r"for\s+(\w+)", "loops"),
    (r"while\s+", "while loops"),
    (r"if\s+", "conditionals"),
    (r"map\s*\(", "higher-order functions"),
    (r"filter\s*\(", "higher-order functions"),
    (r"reduce\s*\(", "higher-order functions"),
    (r"@(\w+)", "macros"),
    (r"begin\s", "blocks"),
    (r"let\s", "let blocks"),
]

EXPLAIN_PROMPTS = {
    "basic": (
        "Explain this Julia code in simple terms for a beginner:\n\n"
        "```julia\n{code}\n```\n\n"
        "Keep it very brief and use simple language.\n"
    ),
    "medium": (
        "Explain this Julia code clearly:\n\n"
        "```julia\n{code}\n```\n\n"
        "Include a summary, key concepts, and helpful tips.\n"
    ),
    "detailed": (
        "Provide a detailed technical explanation of this Julia code:\n\n"
        "```julia\n{code}\n```\n\n"
        "Include: what each line does, Julia-specific concepts used, and performance considerations.\n"
    ),
}


def count_lines(code: str) -> int:
    return len(code.split("\n"))


def count_words(code: str) -> int:
    return len(code.split())


def estimate_complexity(line_count: int) -> str:
    if line_count < 10:
        return "low"
    elif line_count < 50:
        return "medium"
    elif line_count < 100:
        return "high"
    return "very high"


def pattern_suggestions(code: str) -> List[str]:
    """Suggestions from simple pattern checks, no model involved."""
    suggestions = []

    if re.search(r"\bfor\s", code) and "@inbounds" not in code:
        suggestions.append("Consider using @inbounds for performance in loops when safe")

    if "Array{Float64" in code:
        suggestions.append("Consider using Vector{Float64}(undef, n) for type-stable array creation")

    if not re.search(r"\bfunction\b", code) and not re.search(r"\bstruct\b", code):
        suggestions.append("Consider encapsulating code in functions for better organization")

    if re.search(r"\b(using|import)\s+Pkg\b", code):
        suggestions.append("Package loading should typically happen at the top level")

    return suggestions


def analyze_code(code: str, model: str, generator: Optional[Generator] = None,
                 use_ai: bool = True) -> CodeAnalysis:
    """
    Analyze Julia code and provide feedback.

    Args:
        code: The Julia code to analyze
        model: The Ollama model used for extra suggestions
        generator: Callable taking (prompt, model)
        use_ai: Ask the model for additional suggestions

    Returns:
        CodeAnalysis with at most five suggestions
    """
    line_count = count_lines(code)
    suggestions = pattern_suggestions(code)

    if use_ai and len(suggestions) < MAX_SUGGESTIONS:
        generate = generator or ollama_client.generate
        prompt = (
            "Analyze this Julia code and provide 2-3 concise improvement suggestions:\n\n"
            f"```julia\n{code}\n```\n\n"
            "Focus on: performance, style, and best practices.\n"
        )
        try:
            ai_suggestions = generate(prompt, model)
        except Exception:
            # The pattern checks are enough on their own
            logger.debug("AI code analysis failed", exc_info=True)
            ai_suggestions = ""

        for line in (ai_suggestions or "").split("\n"):
            if len(suggestions) >= MAX_SUGGESTIONS:
                break
            if len(line) > 10:
                suggestions.append(line.strip())

    return CodeAnalysis(
        code=code,
        line_count=line_count,
        word_count=count_words(code),
        estimated_complexity=estimate_complexity(line_count),
        suggestions=suggestions,
    )


def extract_concepts(code: str) -> List[str]:
    concepts = []
    for pattern, concept in CONCEPT_PATTERNS:
        if re.search(pattern, code) and concept not in concepts:
            concepts.append(concept)

    if not concepts:
        concepts.append("basic Julia syntax")
    return concepts


def generate_tips(code: str) -> List[str]:
    tips = []

    if "global" in code:
        tips.append("Avoid global variables in performance-critical code")

    if "Array" in code:
        tips.append("Consider pre-allocating arrays for better performance")

    if re.search(r"\.[*+/\\-]", code):
        tips.append("Dot broadcasting can improve performance on arrays")

    tips.append("Use @time to profile your code's performance")
    tips.append("Run Julia with --optimize=3 for best performance")
    return tips


def normalize_detail_level(detail_level: str) -> str:
    detail_level = (detail_level or "").strip().lower()
    if detail_level not in DETAIL_LEVELS:
        logger.warning(f"Detail level '{detail_level}' not recognized, using 'medium' instead")
        return "medium"
    return detail_level


def explain_code(code: str, detail_level: str = "medium", model: str = "llama2",
                 generator: Optional[Generator] = None) -> CodeExplanation:
    """
    Explain Julia code in a beginner-friendly way.

    Args:
        code: The Julia code to explain
        detail_level: "basic", "medium" or "detailed"
        model: The Ollama model to use
        generator: Callable taking (prompt, model)

    Returns:
        CodeExplanation; on failure the summary carries the error
    """
    detail_level = normalize_detail_level(detail_level)
    prompt = EXPLAIN_PROMPTS[detail_level].format(code=code)
    generate = generator or ollama_client.generate

    try:
        explanation = generate(prompt, model)
    except Exception as e:
        return CodeExplanation(
            summary=f"Could not generate explanation: {e}",
            line_by_line=["Error generating detailed explanation"],
            key_concepts=extract_concepts(code),
            tips=generate_tips(code),
        )

    return CodeExplanation(
        summary=explanation,
        line_by_line=explanation.split("\n"),
        key_concepts=extract_concepts(code),
        tips=generate_tips(code),
    )


def normalize_difficulty(difficulty: str) -> ChallengeDifficulty:
    value = (difficulty or "").strip().lower()
    try:
        return ChallengeDifficulty(value)
    except ValueError:
        logger.warning(f"Difficulty '{value}' not recognized, using 'medium' instead")
        return ChallengeDifficulty.MEDIUM


def extract_json(response: str) -> dict:
    """
    Pull a JSON object out of a model response.

    Handles ```json fences, bare fences and text around the object.
    """
    response = response.strip()
    if "```json" in response:
        response = response.split("```json")[1].split("```")[0].strip()
    elif "```" in response:
        response = response.split("```")[1].split("```")[0].strip()

    start, end = response.find("{"), response.rfind("}")
    if start == -1 or end < start:
        raise ValueError("No JSON object in response")
    data = json.loads(response[start:end + 1])
    if not isinstance(data, dict):
        raise ValueError("Challenge JSON is not an object")
    return data


def parse_challenge_response(response: str, difficulty: ChallengeDifficulty, topic: str) -> JuliaChallenge:
    data = extract_json(response)

    hints = data.get("hints") or []
    concepts = data.get("expected_concepts") or [topic]
    if isinstance(hints, str):
        hints = [hints]
    if isinstance(concepts, str):
        concepts = [concepts]

    return JuliaChallenge(
        title=str(data.get("title") or f"Julia {topic} Challenge"),
        description=str(data.get("description") or f"Learn about {topic} in Julia through this challenge."),
        difficulty=difficulty,
        hints=[str(h) for h in hints],
        starter_code=str(data.get("starter_code") or "# Your code here\n"),
        expected_concepts=[str(c) for c in concepts],
    )


def create_default_challenge(difficulty: ChallengeDifficulty, topic: str) -> JuliaChallenge:
    return JuliaChallenge(
        title=f"Practice {topic}",
        description=f"Create a Julia program that demonstrates {topic}.",
        difficulty=difficulty,
        hints=["Break the problem into smaller parts"],
        starter_code="# Write your solution here\n",
        expected_concepts=[topic],
    )


def get_challenge(difficulty: str, topic: str, model: str,
                  generator: Optional[Generator] = None) -> JuliaChallenge:
    """
    Get a Julia programming challenge.

    Falls back to a built-in challenge when the model fails or its answer
    cannot be parsed.
    """
    level = normalize_difficulty(difficulty)
    topic = (topic or "functions").strip().lower()
    generate = generator or ollama_client.generate

    prompt = (
        "Create a Julia programming challenge with:\n"
        f"- Difficulty: {level.value}\n"
        f"- Topic: {topic}\n\n"
        "Format as JSON with keys: title, description, hints (array), starter_code, expected_concepts (array)\n"
        "Make it educational and appropriate for learning Julia.\n"
    )

    try:
        return parse_challenge_response(generate(prompt, model), level, topic)
    except Exception as e:
        logger.info(f"Using default challenge: {e}")
        return create_default_challenge(level, topic)


def get_random_challenge(model: str, generator: Optional[Generator] = None,
                         rng: Optional[random.Random] = None) -> JuliaChallenge:
    rng = rng or random.Random()
    difficulty = rng.choice([ChallengeDifficulty.EASY, ChallengeDifficulty.MEDIUM, ChallengeDifficulty.HARD])
    topic = rng.choice(CHALLENGE_TOPICS)
    return get_challenge(difficulty.value, topic, model, generator)


def validate_solution(solution: str, challenge: JuliaChallenge) -> bool:
    """
    Check whether a solution uses every expected concept.

    This does not run the code.
    """
    solution_lower = solution.lower()
    return all(concept.lower() in solution_lower for concept in challenge.expected_concepts)


def get_documentation(function_name: str, model: str, generator: Optional[Generator] = None) -> str:
    prompt = (
        f"Provide documentation for the Julia function `{function_name}`.\n"
        "Include: usage, arguments, return value, and examples.\n"
        "Keep it concise but informative.\n"
    )
    generate = generator or ollama_client.generate
    try:
        return generate(prompt, model)
    except Exception as e:
        return f"Could not retrieve documentation: {e}"


def get_supported_topics() -> List[str]:
    return list(CHALLENGE_TOPICS)


def get_difficulties() -> List[str]:
    return [d.value for d in ChallengeDifficulty]
