"""
Debugging help for Julia code.
Classifies error messages, reads stack traces and suggests fixes.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

import ollama_client

logger = logging.getLogger(__name__)

Generator = Callable[[str, str], str]


class ErrorType(Enum):
    UNDEFINED_VAR_ERROR = "UndefinedVar"
    METHOD_ERROR = "MethodError"
    DOMAIN_ERROR = "DomainError"
    ARGUMENT_ERROR = "ArgumentError"
    BOUNDS_ERROR = "BoundsError"
    TYPE_ERROR = "TypeError"
    SYNTAX_ERROR = "SyntaxError"
    LOAD_ERROR = "LoadError"
    RUNTIME_ERROR = "RuntimeError"
    OTHER_ERROR = "Other"


@dataclass
class ParsedError:
    error_type: ErrorType
    message: str
    location: str
    suggestion: str
    related_functions: List[str] = field(default_factory=list)


@dataclass
class StackFrame:
    file: str
    line: int
    function_name: str
    module_name: str


@dataclass
class StackTraceAnalysis:
    frames: List[StackFrame]
    error_message: str
    error_line: str
    user_code_frames: List[StackFrame]
    library_frames: List[StackFrame]


DEBUGGING_TIPS: Dict[ErrorType, List[str]] = {
    ErrorType.UNDEFINED_VAR_ERROR: [
        "Check if the variable is defined before use",
        "Make sure you haven't made a typo in the variable name",
        "Verify the variable is in scope where you're using it",
    ],
    ErrorType.BOUNDS_ERROR: [
        "Check array bounds - you're accessing an index that doesn't exist",
        "Remember Julia arrays are 1-indexed",
        "Use `length(array)` to check the array size before indexing",
    ],
    ErrorType.METHOD_ERROR: [
        "The function was called with arguments of the wrong type",
        "Check the function's signature with `methods(function_name)`",
        "Make sure all required arguments are provided",
    ],
    ErrorType.TYPE_ERROR: [
        "A variable has an unexpected type",
        "Use `typeof(variable)` to check the actual type",
        "Consider adding type assertions with `::Type`",
    ],
    ErrorType.DOMAIN_ERROR: [
        "The input value is outside the valid domain",
        "Check what values the function accepts",
        "Add input validation before calling the function",
    ],
    ErrorType.ARGUMENT_ERROR: [
        "Invalid arguments were passed to a function",
        "Check the function's docstring for valid arguments",
        "Use `InteractiveUtils.@which` to see the method being called",
    ],
}

# Order matters: the first matching pattern decides the type
COMMON_ERRORS = [
    (re.compile(r"undefvarerror|undef_var|not defined", re.IGNORECASE), ErrorType.UNDEFINED_VAR_ERROR),
    (re.compile(r"boundserror", re.IGNORECASE), ErrorType.BOUNDS_ERROR),
    (re.compile(r"methoderror|no method matching", re.IGNORECASE), ErrorType.METHOD_ERROR),
    (re.compile(r"typeerror", re.IGNORECASE), ErrorType.TYPE_ERROR),
    (re.compile(r"domainerror", re.IGNORECASE), ErrorType.DOMAIN_ERROR),
    (re.compile(r"argumenterror", re.IGNORECASE), ErrorType.ARGUMENT_ERROR),
    (re.compile(r"syntax:|syntaxerror|parseerror", re.IGNORECASE), ErrorType.SYNTAX_ERROR),
    (re.compile(r"loaderror", re.IGNORECASE), ErrorType.LOAD_ERROR),
]

LOCATION_PATTERNS = [
    re.compile(r"\bin \S+ at (\S+?):(\d+)"),
    re.compile(r"\bat (\S+?):(\d+)"),
    re.compile(r"(\S+\.jl):(\d+)"),
]

FRAME_PATTERNS = [
    # [1] foo(x::Int64) at file.jl:10
    re.compile(r"^\s*\[(\d+)\]\s+(\w+!?)\(.*\)\s+at\s+(.+):(\d+)"),
    # [2] Base.foo(x) at ./file.jl:10
    re.compile(r"^\s*\[(\d+)\]\s+(.+)\.(\w+!?)\(.*\)\s+at\s+(.+):(\d+)"),
]

# Julia 1.6+ prints the call and its location on two lines:
#  [2] process(data::Vector{Int64})
#    @ Main ./REPL[2]:1
FRAME_HEADER = re.compile(r"^\s*\[(\d+)\]\s+(.+?)\s*$")
FRAME_LOCATION = re.compile(r"^\s*@\s+(?:(\S+)\s+)?(.+?):(\d+)(?:\s+\[inlined\])?\s*$")

LIBRARY_INDICATORS = ["julia/base", ".julia/packages", ".julia/stdlib"]
LIBRARY_MODULES = ["Base", "Core"]

GENERIC_SUGGESTION = "This is a less common error type. Check the Julia documentation for more information."

REMEDIATION = {
    ErrorType.UNDEFINED_VAR_ERROR: """The variable you're trying to use hasn't been defined.

Common causes:
- Typos in variable names
- Variable defined in a different scope
- Using a variable before it's assigned

Check:
1. Variable spelling matches exactly
2. Variable is defined in the same or outer scope
3. Variable is defined before use""",
    ErrorType.BOUNDS_ERROR: """You're trying to access an array element that doesn't exist.

Common causes:
- Using 0-based indexing (Julia is 1-indexed)
- Array index exceeds array length
- Modifying array while iterating

Check:
1. Use `length(arr)` to get array size
2. Remember indices start at 1, not 0
3. Use `eachindex(arr)` for safe iteration""",
    ErrorType.METHOD_ERROR: """No method matches the function call with these argument types.

Common causes:
- Wrong argument types
- Missing required arguments
- Function not defined for these types

Check:
1. Use `methods(function_name)` to see available methods
2. Check argument types with `typeof(arg)`
3. Ensure all required arguments are provided""",
    ErrorType.TYPE_ERROR: """A type assertion failed or types are incompatible.

Common causes:
- Variable has unexpected type
- Type assertion doesn't match actual type
- Type inference failed

Check:
1. Use `typeof(var)` to check actual type
2. Use `isa(var, Type)` to check type
3. Add type assertions with `::Type`""",
    ErrorType.DOMAIN_ERROR: """Input value is outside the valid domain for the operation.

Common causes:
- Negative number for square root
- Division by zero
- Invalid index

Check:
1. Check what values the function accepts
2. Add input validation before calling
3. Use `isvalid()` or similar checks""",
}

GENERIC_REMEDIATION = """An error occurred that needs investigation.

Steps:
1. Read the full error message
2. Check the line number mentioned
3. Look up the error type in Julia documentation
4. Try to reproduce with a minimal example"""


def detect_error_type(error_message: str) -> ErrorType:
    for pattern, error_type in COMMON_ERRORS:
        if pattern.search(error_message):
            return error_type
    return ErrorType.OTHER_ERROR


def extract_location(error_message: str) -> str:
    for pattern in LOCATION_PATTERNS:
        match = pattern.search(error_message)
        if match:
            return f"File: {match.group(1)}:{match.group(2)}"
    return "Location not found in error message"


def get_suggestion(error_type: ErrorType) -> str:
    tips = DEBUGGING_TIPS.get(error_type)
    if tips:
        return "\n".join(tips)
    return GENERIC_SUGGESTION


def find_related_functions(error_message: str) -> List[str]:
    functions = []
    for match in re.finditer(r"`(\w+)`|function (\w+)|in (\w+) at", error_message):
        for name in match.groups():
            if name and len(name) > 2 and name not in functions:
                functions.append(name)
    return functions


def parse_error(error_message: str) -> ParsedError:
    """
    Parse a Julia error message and extract useful information.

    Example:
        >>> parse_error("UndefVarError: x not defined").error_type
        <ErrorType.UNDEFINED_VAR_ERROR: 'UndefinedVar'>
    """
    error_message = error_message.strip()
    error_type = detect_error_type(error_message)
    return ParsedError(
        error_type=error_type,
        message=error_message,
        location=extract_location(error_message),
        suggestion=get_suggestion(error_type),
        related_functions=find_related_functions(error_message),
    )


def _split_call(header: str) -> Tuple[str, Optional[str]]:
    """'Base.foo(x::Int)' -> ('foo', 'Base'); 'top-level scope' -> ('top-level scope', None)."""
    call = header.split("(", 1)[0] or header
    if "." in call and " " not in call:
        module, _, name = call.rpartition(".")
        return name, module
    return call, None


def parse_stacktrace(stacktrace: str) -> List[StackFrame]:
    frames = []
    lines = stacktrace.split("\n")
    for i, line in enumerate(lines):
        if not line.strip() or line.startswith("Stacktrace:"):
            continue

        match = FRAME_PATTERNS[0].match(line)
        if match:
            frames.append(StackFrame(match.group(3), int(match.group(4)), match.group(2), "Main"))
            continue

        match = FRAME_PATTERNS[1].match(line)
        if match:
            frames.append(StackFrame(match.group(4), int(match.group(5)), match.group(3), match.group(2)))
            continue

        header = FRAME_HEADER.match(line)
        location = FRAME_LOCATION.match(lines[i + 1]) if header and i + 1 < len(lines) else None
        if location:
            name, module = _split_call(header.group(2))
            frames.append(StackFrame(
                location.group(2),
                int(location.group(3)),
                name,
                location.group(1) or module or "Main",
            ))
    return frames


def is_library_code(frame: StackFrame) -> bool:
    # Julia prints its own source files relative to its tree, as ./file.jl; REPL input is ./REPL[n]
    if frame.file.startswith("./") and not frame.file.startswith("./REPL["):
        return True
    if frame.module_name.split(".")[0] in LIBRARY_MODULES:
        return True
    return any(indicator in frame.file for indicator in LIBRARY_INDICATORS)


def extract_error_message(stacktrace: str) -> str:
    for line in stacktrace.split("\n"):
        if line.strip():
            return line.strip()
    return "Unknown error"


def extract_error_line(stacktrace: str) -> str:
    match = re.search(r"ERROR: .* at (.+):(\d+)", stacktrace)
    if match:
        return f"Line {match.group(2)} in {match.group(1)}"
    return "Unknown line"


def analyze_stacktrace(stacktrace: str) -> StackTraceAnalysis:
    """Split a stack trace into user and library frames."""
    frames = parse_stacktrace(stacktrace)
    return StackTraceAnalysis(
        frames=frames,
        error_message=extract_error_message(stacktrace),
        error_line=extract_error_line(stacktrace),
        user_code_frames=[f for f in frames if not is_library_code(f)],
        library_frames=[f for f in frames if is_library_code(f)],
    )


def get_tips_for_error(error_type: ErrorType) -> str:
    return REMEDIATION.get(error_type, GENERIC_REMEDIATION)


def get_solution(error_type: ErrorType, error_message: str, model: str,
                 generator: Optional[Generator] = None) -> str:
    """
    Get a detailed solution for an error.

    The canned remediation is always returned; a model answer is appended
    when the backend responds.
    """
    base_solution = get_tips_for_error(error_type)
    generate = generator or ollama_client.generate
    prompt = (
        "Provide a step-by-step solution to fix this Julia error:\n\n"
        f"{error_message}\n\n"
        "Give specific, actionable steps.\n"
    )

    try:
        guidance = generate(prompt, model)
    except Exception:
        logger.debug("AI guidance unavailable", exc_info=True)
        return base_solution

    if guidance:
        return f"{base_solution}\n\nAI Suggestion:\n{guidance}"
    return base_solution


def generate_debugging_guide(error: ParsedError) -> str:
    related = "\n".join(f"   - {name}" for name in error.related_functions) or "   - (none found)"
    return f"""# Debugging Guide

## Error Summary
**Type:** {error.error_type.value}
**Message:** {error.message}
**Location:** {error.location}

## What Happened
{error.suggestion}

## Steps to Fix

1. **Understand the Error**
   - Read the error message carefully
   - Note the location where the error occurred

2. **Check the Code**
   - Look at the line mentioned in the error
   - Check variable definitions and types

3. **Apply the Fix**
   - Identify the exact line causing the error
   - Check the variable types and values at that point
   - Apply the appropriate fix based on error type
   - Test the fix with the same input

4. **Verify the Fix**
   - Run the code again
   - Check if the error is resolved

## Related Functions
{related}
"""


def suggest_tests(error: ParsedError) -> List[str]:
    """Skeleton of a Julia testset that would catch this error."""
    name = error.error_type.value
    return [
        f"# Test for {name}",
        f'@testset "{name} handling" begin',
        "    # Add test case that would catch this error",
        "end",
    ]


def find_performance_bottlenecks(code: str, model: str, generator: Optional[Generator] = None,
                                 use_ai: bool = True) -> List[str]:
    suggestions = []

    if "append!" in code:
        suggestions.append("Consider using pre-allocation instead of append! in loops")

    if re.search(r"\[.*\] for .* in", code):
        suggestions.append("List comprehensions are faster than manual loops in Julia")

    if "println" in code and "for " in code:
        suggestions.append(
            "Printing in loops can significantly slow down performance. Consider accumulating output."
        )

    if "global" in code:
        suggestions.append("Avoid global variables - use function arguments and return values instead")

    if not use_ai:
        return suggestions

    generate = generator or ollama_client.generate
    prompt = (
        "Analyze this Julia code for performance bottlenecks:\n\n"
        f"```julia\n{code}\n```\n\n"
        "List specific performance issues and improvements.\n"
    )
    try:
        analysis = generate(prompt, model)
    except Exception:
        logger.debug("AI performance analysis failed", exc_info=True)
        return suggestions

    suggestions.extend(line.strip() for line in (analysis or "").split("\n") if len(line) > 10)
    return suggestions


def get_error_types() -> List[str]:
    return [t.value for t in ErrorType]
