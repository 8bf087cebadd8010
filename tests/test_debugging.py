import pytest

from debugging import (
    ErrorType,
    analyze_stacktrace,
    detect_error_type,
    extract_location,
    find_performance_bottlenecks,
    generate_debugging_guide,
    get_error_types,
    get_solution,
    parse_error,
    parse_stacktrace,
    suggest_tests,
)
from ollama_client import OllamaError

# Julia 1.9+ layout: call on one line, "@ Module file:line" on the next
STACKTRACE = """ERROR: BoundsError: attempt to access 3-element Vector{Int64} at index [5]
Stacktrace:
 [1] getindex
   @ ./essentials.jl:13 [inlined]
 [2] process(data::Vector{Int64})
   @ Main ./REPL[2]:1
 [3] parse(io::IOBuffer)
   @ JSON ~/.julia/packages/JSON/93Ea8/src/Parser.jl:450
 [4] top-level scope
   @ REPL[3]:1
"""

# Julia 1.5 and earlier: "at file:line" on the same line
LEGACY_STACKTRACE = """ERROR: BoundsError: attempt to access 3-element Array{Int64,1} at index [5]
Stacktrace:
 [1] getindex(::Array{Int64,1}, ::Int64) at ./array.jl:809
 [2] Main.process(::Array{Int64,1}) at /home/me/project/src/process.jl:12
 [3] top-level scope at REPL[3]:1
"""


@pytest.mark.parametrize("message, expected", [
    ("UndefVarError: x not defined", ErrorType.UNDEFINED_VAR_ERROR),
    ("ERROR: undefvarerror: `y` not defined", ErrorType.UNDEFINED_VAR_ERROR),
    ("BoundsError: attempt to access 3-element Vector{Int64} at index [4]", ErrorType.BOUNDS_ERROR),
    ("MethodError: no method matching +(::String, ::Int64)", ErrorType.METHOD_ERROR),
    ("TypeError: in typeassert, expected Int64, got a value of type Float64", ErrorType.TYPE_ERROR),
    ("DomainError with -1.0: sqrt was called with a negative real argument", ErrorType.DOMAIN_ERROR),
    ("ArgumentError: invalid base 1", ErrorType.ARGUMENT_ERROR),
    ("syntax: incomplete: premature end of input", ErrorType.SYNTAX_ERROR),
    ("LoadError: could not open file", ErrorType.LOAD_ERROR),
    ("something odd happened", ErrorType.OTHER_ERROR),
])
def test_detect_error_type(message, expected):
    assert detect_error_type(message) is expected


def test_first_matching_category_wins():
    # A LoadError wrapping an UndefVarError is reported as the inner cause
    message = "LoadError: UndefVarError: helper not defined"
    assert detect_error_type(message) is ErrorType.UNDEFINED_VAR_ERROR


@pytest.mark.parametrize("message, expected", [
    ("error in compute at src/math.jl:42", "File: src/math.jl:42"),
    ("MethodError at ./script.jl:7", "File: ./script.jl:7"),
    ("see utils.jl:3 for details", "File: utils.jl:3"),
    ("UndefVarError: x not defined", "Location not found in error message"),
])
def test_extract_location(message, expected):
    assert extract_location(message) == expected


def test_parse_error():
    parsed = parse_error("  UndefVarError: `counter` not defined in update at loop.jl:5  ")

    assert parsed.error_type is ErrorType.UNDEFINED_VAR_ERROR
    assert parsed.message.startswith("UndefVarError")
    assert parsed.location == "File: loop.jl:5"
    assert parsed.related_functions == ["counter", "update"]
    assert "Check if the variable is defined before use" in parsed.suggestion


def test_parse_error_generic_suggestion():
    parsed = parse_error("StackOverflowError")
    assert parsed.error_type is ErrorType.OTHER_ERROR
    assert "less common error type" in parsed.suggestion
    assert parsed.related_functions == []


def test_parse_stacktrace_two_line_frames():
    frames = parse_stacktrace(STACKTRACE)

    assert [(f.function_name, f.module_name, f.file, f.line) for f in frames] == [
        ("getindex", "Main", "./essentials.jl", 13),
        ("process", "Main", "./REPL[2]", 1),
        ("parse", "JSON", "~/.julia/packages/JSON/93Ea8/src/Parser.jl", 450),
        ("top-level scope", "Main", "REPL[3]", 1),
    ]


def test_analyze_stacktrace_splits_library_frames():
    analysis = analyze_stacktrace(STACKTRACE)

    assert len(analysis.frames) == 4
    assert [f.function_name for f in analysis.library_frames] == ["getindex", "parse"]
    assert [f.function_name for f in analysis.user_code_frames] == ["process", "top-level scope"]
    assert analysis.error_message.startswith("ERROR: BoundsError")


def test_parse_stacktrace_legacy_frames():
    frames = parse_stacktrace(LEGACY_STACKTRACE)

    assert [(f.function_name, f.module_name, f.line) for f in frames] == [
        ("getindex", "Main", 809),
        ("process", "Main", 12),
    ]
    analysis = analyze_stacktrace(LEGACY_STACKTRACE)
    assert [f.function_name for f in analysis.library_frames] == ["getindex"]


def test_frame_module_from_qualified_call():
    frames = parse_stacktrace(" [1] Base.MainInclude.include(fname::String)\n   @ ./client.jl:489\n")

    assert frames[0].function_name == "include"
    assert frames[0].module_name == "Base.MainInclude"
    assert analyze_stacktrace(" [1] f()\n   @ Base.Iterators ~/src/x.jl:2").library_frames


def test_analyze_stacktrace_error_line():
    analysis = analyze_stacktrace("ERROR: LoadError: oops at /tmp/run.jl:9")
    assert analysis.error_line == "Line 9 in /tmp/run.jl"
    assert analyze_stacktrace("").error_message == "Unknown error"
    assert analyze_stacktrace("").error_line == "Unknown line"


def test_get_solution_appends_ai_suggestion():
    solution = get_solution(ErrorType.BOUNDS_ERROR, "BoundsError", "llama2", lambda p, m: "Use eachindex.")

    assert solution.startswith("You're trying to access an array element that doesn't exist.")
    assert solution.endswith("AI Suggestion:\nUse eachindex.")


def test_get_solution_without_backend():
    def failing(prompt, model):
        raise OllamaError("down")

    solution = get_solution(ErrorType.ARGUMENT_ERROR, "ArgumentError: bad", "llama2", failing)
    assert solution.startswith("An error occurred that needs investigation.")
    assert "AI Suggestion" not in solution


def test_debugging_guide_and_tests():
    parsed = parse_error("BoundsError at data.jl:3")

    guide = generate_debugging_guide(parsed)
    assert "**Type:** BoundsError" in guide
    assert "**Location:** File: data.jl:3" in guide

    assert suggest_tests(parsed) == [
        "# Test for BoundsError",
        '@testset "BoundsError handling" begin',
        "    # Add test case that would catch this error",
        "end",
    ]


def test_find_performance_bottlenecks():
    code = "global total = 0\nfor i in 1:10\n    println(i)\n    append!(xs, i)\nend"
    suggestions = find_performance_bottlenecks(code, "llama2", use_ai=False)

    assert len(suggestions) == 3
    assert suggestions[0].startswith("Consider using pre-allocation")

    with_ai = find_performance_bottlenecks(code, "llama2", lambda p, m: "Type-annotate the accumulator\nok")
    assert with_ai[-1] == "Type-annotate the accumulator"


def test_get_error_types():
    assert "BoundsError" in get_error_types()
    assert get_error_types()[-1] == "Other"
