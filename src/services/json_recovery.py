"""Resilient JSON recovery for model output.

The recipe model is not a structured-output API: it may wrap its answer in a
markdown fence, add prose around it, write fractions as bare `1/2`, or slip
in JS-style syntax. Recovery is an ordered list of pure strategies
`text -> dict`; each raises ParseFailure and recover_json() returns the first
success.

Strategies, from strict to permissive:
1. parse_extracted: strip fence, extract the first balanced object, parse.
2. parse_with_fractions: as 1, with value-position fractions quoted.
3. parse_with_repairs: as 2, plus syntax repairs (bare keys, single quotes,
   trailing commas, Python literals).
4. parse_onto_skeleton: independent naive brace extraction, fractions turned
   into decimals, repairs, parsed and merged over a minimal recipe skeleton.

A well-formed JSON object goes through strategy 1 untouched, so the result
equals json.loads() of the same text.
"""

import json
import re
from typing import Any, Callable, Optional

from src.models.errors import GenerationError, ParseFailure
from src.utils.logger import logger


CODE_FENCE = re.compile(r"```(?:json|JSON)?\s*([\s\S]*?)\s*```")
VALUE_FRACTION = re.compile(r"(:\s*)(\d+)\s*/\s*(\d+)(?=\s*[,}\]])")
BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)(\s*:)")
TRAILING_COMMA = re.compile(r",\s*([\]}])")
PYTHON_LITERALS = {"None": "null", "True": "true", "False": "false"}
PYTHON_LITERAL = re.compile(r"\b(None|True|False)\b")

MINIMAL_RECIPE: dict[str, Any] = {
    "name": "Recipe",
    "recipeIngredient": [],
    "recipeInstructions": [],
    "ingredients": {"used": []},
    "shoppingList": {"items": [], "totalItems": 0},
}

Strategy = Callable[[str], dict]


# ============================================================================
# Text helpers
# ============================================================================


def strip_code_fence(text: str) -> str:
    """Return the body of the first fenced code block, or the trimmed text."""
    match = CODE_FENCE.search(text)
    return (match.group(1) if match else text).strip()


def split_string_literals(text: str) -> list[tuple[bool, str]]:
    """Split text into (is_string_literal, segment) runs.

    Double-quoted literals (with backslash escapes) are kept whole so that
    repairs never touch string contents. An unterminated literal runs to
    the end of the text.
    """
    segments: list[tuple[bool, str]] = []
    buffer: list[str] = []
    in_string = False
    escaped = False

    for char in text:
        if in_string:
            buffer.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                segments.append((True, "".join(buffer)))
                buffer = []
                in_string = False
        elif char == '"':
            if buffer:
                segments.append((False, "".join(buffer)))
            buffer = [char]
            in_string = True
        else:
            buffer.append(char)

    if buffer:
        segments.append((in_string, "".join(buffer)))
    return segments


def map_outside_strings(text: str, transform: Callable[[str], str]) -> str:
    """Apply `transform` to everything except double-quoted literals."""
    return "".join(segment if is_string else transform(segment) for is_string, segment in split_string_literals(text))


def extract_balanced(text: str, opener: str = "{", closer: str = "}") -> Optional[str]:
    """Substring from the first `opener` to its matching `closer`.

    Depth counting skips brackets inside string literals. Returns None when
    there is no opener or it is never closed.
    """
    start = text.find(opener)
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return text[start:index + 1]
    return None


def extract_braces_naive(text: str) -> Optional[str]:
    """Brace-depth extraction that ignores string literals entirely."""
    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    for index in range(start, len(text)):
        if text[index] == "{":
            depth += 1
        elif text[index] == "}":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]
    return None


def candidate_object(text: str) -> str:
    """Fence-stripped text narrowed to its first JSON object when one exists.

    Falls back to the first-`{`-to-last-`}` span for unbalanced input, and to
    the whole stripped text when there are no braces.
    """
    content = strip_code_fence(text)
    balanced = extract_balanced(content)
    if balanced is not None:
        return balanced
    first, last = content.find("{"), content.rfind("}")
    if first != -1 and last > first:
        return content[first:last + 1]
    return content


def quote_fractions(text: str) -> str:
    """`"quantity": 1/2` -> `"quantity": "1/2"` outside string literals."""
    return map_outside_strings(text, lambda code: VALUE_FRACTION.sub(r'\1"\2/\3"', code))


def fractions_to_decimals(text: str) -> str:
    """`"quantity": 1/2` -> `"quantity": 0.5` outside string literals."""

    def _replace(match: re.Match) -> str:
        numerator, denominator = int(match.group(2)), int(match.group(3))
        if denominator == 0:
            return f'{match.group(1)}"{numerator}/{denominator}"'
        return f"{match.group(1)}{numerator / denominator}"

    return map_outside_strings(text, lambda code: VALUE_FRACTION.sub(_replace, code))


def convert_single_quoted(text: str) -> str:
    """Rewrite 'single-quoted' literals as JSON strings.

    Apostrophes inside double-quoted literals are left alone.
    """
    out: list[str] = []
    index = 0
    in_double = False
    escaped = False
    while index < len(text):
        char = text[index]
        if in_double:
            out.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_double = False
            index += 1
            continue
        if char == '"':
            in_double = True
            out.append(char)
            index += 1
            continue
        if char == "'":
            end = index + 1
            literal: list[str] = []
            while end < len(text) and text[end] != "'":
                if text[end] == "\\" and end + 1 < len(text):
                    literal.append(text[end:end + 2])
                    end += 2
                    continue
                literal.append('\\"' if text[end] == '"' else text[end])
                end += 1
            out.append('"' + "".join(literal) + '"')
            index = end + 1
            continue
        out.append(char)
        index += 1
    return "".join(out)


def repair_syntax(text: str) -> str:
    """Common hand-written-JSON fixes, applied outside string literals."""

    def _fix_code(code: str) -> str:
        code = BARE_KEY.sub(r'\1"\2"\3', code)
        code = TRAILING_COMMA.sub(r"\1", code)
        code = PYTHON_LITERAL.sub(lambda m: PYTHON_LITERALS[m.group(1)], code)
        return VALUE_FRACTION.sub(r'\1"\2/\3"', code)

    return map_outside_strings(convert_single_quoted(text), _fix_code)


def loads_object(text: str) -> dict:
    """json.loads() that only accepts an object.

    Raises:
        ParseFailure: On invalid JSON or a non-object top level value.
    """
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise ParseFailure(f"Invalid JSON: {e}") from e
    if not isinstance(value, dict):
        raise ParseFailure(f"Expected a JSON object, got {type(value).__name__}")
    return value


# ============================================================================
# Strategies
# ============================================================================


def parse_extracted(text: str) -> dict:
    return loads_object(candidate_object(text))


def parse_with_fractions(text: str) -> dict:
    return loads_object(quote_fractions(candidate_object(text)))


def parse_with_repairs(text: str) -> dict:
    return loads_object(repair_syntax(quote_fractions(candidate_object(text))))


def parse_onto_skeleton(text: str) -> dict:
    """Last resort: whatever parses is merged over MINIMAL_RECIPE."""
    extracted = extract_braces_naive(strip_code_fence(text))
    if extracted is None:
        raise ParseFailure("No JSON object found in model output")
    parsed = loads_object(repair_syntax(fractions_to_decimals(extracted)))
    return {**json.loads(json.dumps(MINIMAL_RECIPE)), **parsed}


STRATEGIES: list[Strategy] = [
    parse_extracted,
    parse_with_fractions,
    parse_with_repairs,
    parse_onto_skeleton,
]


def recover_json(text: str, strategies: Optional[list[Strategy]] = None) -> dict:
    """Run the recovery cascade over raw model output.

    Args:
        text: Raw completion text.
        strategies: Override of STRATEGIES (tests).

    Returns:
        The first object any strategy produces.

    Raises:
        GenerationError: If every strategy fails.
    """
    failures: list[str] = []
    for strategy in strategies or STRATEGIES:
        try:
            result = strategy(text)
        except ParseFailure as e:
            logger.debug(f"JSON recovery strategy {strategy.__name__} failed: {e}")
            failures.append(f"{strategy.__name__}: {e}")
            continue
        if failures:
            logger.warning(f"Recovered model JSON with {strategy.__name__} after {len(failures)} failed attempt(s)")
        return result

    logger.error(f"All JSON recovery strategies failed: {failures}")
    raise GenerationError("could not parse model output")
