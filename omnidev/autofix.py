"""Auto-fix: a fixed-rule scanner and rewriter for source text.

Two ordered rule sets run over the input:

- Error rules flag likely mistakes and, where they define a rewrite,
  patch them (strip debug output, normalize a lone ``=`` in a condition,
  annotate empty handlers). TODO comments are flagged only.
- Performance rules flag slow idioms. Only the ``map().filter()`` chain
  is rewritten (to ``filter().map()``).

Detection always looks at the original input. Rewrites compose in rule
order, each operating on the output of the previous one, so the order of
ERROR_RULES and PERFORMANCE_RULES is significant.

This is a pattern matcher, not a parser. It will miss things and it will
occasionally flag code that is fine.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, FrozenSet, List, Optional

from omnidev.types import ScanResult

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "javascript"

PYTHON_FAMILY: FrozenSet[str] = frozenset({"python", "py"})
JS_FAMILY: FrozenSet[str] = frozenset({"javascript", "typescript", "js", "ts", "jsx", "tsx"})

# Rules tagged "c-like" apply to every language that is not Python
C_LIKE = "c-like"
PYTHON = "python"


def language_family(language: Optional[str]) -> str:
    lang = (language or DEFAULT_LANGUAGE).strip().lower()
    return PYTHON if lang in PYTHON_FAMILY else C_LIKE


# =============================================================================
# Rule Type
# =============================================================================


@dataclass(frozen=True)
class ScanRule:
    """One scanner rule.

    Attributes:
        name: Stable identifier, used in logs.
        message: Human-readable finding appended to the result.
        family: Language family the rule applies to.
        detect: Returns True when the rule matches the original source.
        rewrite: Optional transform applied to the running fixed copy.
            It receives the language so JS-specific output can differ.
    """

    name: str
    message: str
    family: str
    detect: Callable[[str], bool]
    rewrite: Optional[Callable[[str, str], str]] = None


def _search(pattern: "re.Pattern[str]") -> Callable[[str], bool]:
    return lambda code: pattern.search(code) is not None


# =============================================================================
# Error Rules
# =============================================================================

# A string literal, kept whole so quotes and parens inside it are inert
_STRING = r"\"(?:[^\"\\\n]|\\.)*\"|'(?:[^'\\\n]|\\.)*'|`(?:[^`\\]|\\.)*`"
_ARG_CHAR = rf"{_STRING}|[^()\"'`\n]"
# A single-line parenthesized argument list, nested up to two levels
_ARGS = rf"\((?:{_ARG_CHAR}|\((?:{_ARG_CHAR}|\((?:{_ARG_CHAR})*\))*\))*\)"

# Calls that cannot be matched whole (multi-line, deeper nesting) are
# flagged but left in place.
_CONSOLE_CALL = re.compile(r"console\.log\(")
_CONSOLE_LINE = re.compile(rf"^[ \t]*console\.log{_ARGS};?[ \t]*(?:\n|$)", re.MULTILINE)
_CONSOLE_INLINE = re.compile(rf"console\.log{_ARGS};?")

_PRINT_CALL = re.compile(r"^[ \t]*print\(", re.MULTILINE)
_PRINT_LINE = re.compile(rf"^[ \t]*print{_ARGS}[ \t]*(?:\n|$)", re.MULTILINE)


def _strip_console(code: str, language: str) -> str:
    code = _CONSOLE_LINE.sub("", code)
    return _CONSOLE_INLINE.sub("", code)


def _strip_print(code: str, language: str) -> str:
    return _PRINT_LINE.sub("", code)


_C_CONDITION = re.compile(rf"\b(if|while)(\s*)({_ARGS})")
_PY_CONDITION = re.compile(rf"\b(if|elif|while)(\s+)((?:{_STRING}|[^:\n\"'`])*?):")

# Strings may be cut short by the condition patterns, so the closing
# quote is optional here.
_CONDITION_TOKEN = re.compile(
    r"(?P<string>\"(?:[^\"\\\n]|\\.)*\"?|'(?:[^'\\\n]|\\.)*'?|`(?:[^`\\]|\\.)*`?)"
    r"|(?P<open>\()|(?P<close>\))"
    r"|(?P<name>[A-Za-z_$][\w$]*)"
    r"|(?P<space>\s+)"
    # A lone "=" that is not part of ==, !=, <=, >=, =>, :=, +=, etc.
    r"|(?P<assign>(?<![=!<>+\-*/%&|^:])=(?![=>]))"
    r"|(?P<other>.)"
)


def _assignments(body: str) -> List[int]:
    """Offsets of lone ``=`` in a condition body.

    Skips anything inside string literals, and ``name=`` directly after
    ``(`` or ``,`` inside a call (keyword arguments).
    """
    offsets: List[int] = []
    depth = 0
    before: Optional[re.Match[str]] = None
    last: Optional[re.Match[str]] = None
    for token in _CONDITION_TOKEN.finditer(body):
        kind = token.lastgroup
        if kind == "space":
            continue
        if kind == "open":
            depth += 1
        elif kind == "close":
            depth = max(depth - 1, 0)
        elif kind == "assign":
            keyword = (
                depth > 0
                and last is not None
                and last.lastgroup == "name"
                and before is not None
                and before.group() in ("(", ",")
            )
            if not keyword:
                offsets.append(token.start())
        before, last = last, token
    return offsets


def _replace_assignments(body: str, comparison: str) -> str:
    parts: List[str] = []
    start = 0
    for offset in _assignments(body):
        parts.append(body[start:offset])
        parts.append(comparison)
        start = offset + 1
    parts.append(body[start:])
    return "".join(parts)


def _c_body(m: "re.Match[str]") -> str:
    return m.group(3)[1:-1]


def _py_body(m: "re.Match[str]") -> str:
    return m.group(3)


def _has_assignment(
    condition: "re.Pattern[str]", body_of: Callable[["re.Match[str]"], str]
) -> Callable[[str], bool]:
    def detect(code: str) -> bool:
        return any(_assignments(body_of(m)) for m in condition.finditer(code))

    return detect


def _normalize_c_condition(code: str, language: str) -> str:
    comparison = "===" if language in JS_FAMILY else "=="

    def fix(m: "re.Match[str]") -> str:
        body = _replace_assignments(_c_body(m), comparison)
        return f"{m.group(1)}{m.group(2)}({body})"

    return _C_CONDITION.sub(fix, code)


def _normalize_py_condition(code: str, language: str) -> str:
    def fix(m: "re.Match[str]") -> str:
        return f"{m.group(1)}{m.group(2)}{_replace_assignments(_py_body(m), '==')}:"

    return _PY_CONDITION.sub(fix, code)


_C_TODO = re.compile(r"//\s*TODO")
_PY_TODO = re.compile(r"#\s*TODO")

_EMPTY_CATCH = re.compile(r"catch\s*\([^)]*\)\s*\{\s*\}")
_EMPTY_BRACES = re.compile(r"\{\s*\}$")
_EMPTY_EXCEPT = re.compile(r"(except\b[^:\n]*:)(\s*)pass\b(?![ \t]*#)")


def _annotate_catch(code: str, language: str) -> str:
    return _EMPTY_CATCH.sub(
        lambda m: _EMPTY_BRACES.sub("{ /* Error handled */ }", m.group(0)), code
    )


def _annotate_except(code: str, language: str) -> str:
    return _EMPTY_EXCEPT.sub(r"\1\2pass  # Error handled", code)


ERROR_RULES: List[ScanRule] = [
    ScanRule(
        name="debug_output",
        message="Debug console statements in production code",
        family=C_LIKE,
        detect=_search(_CONSOLE_CALL),
        rewrite=_strip_console,
    ),
    ScanRule(
        name="debug_output",
        message="Debug print statements in production code",
        family=PYTHON,
        detect=_search(_PRINT_CALL),
        rewrite=_strip_print,
    ),
    ScanRule(
        name="assignment_in_condition",
        message="Possible assignment in conditional",
        family=C_LIKE,
        detect=_has_assignment(_C_CONDITION, _c_body),
        rewrite=_normalize_c_condition,
    ),
    ScanRule(
        name="assignment_in_condition",
        message="Possible assignment in conditional",
        family=PYTHON,
        detect=_has_assignment(_PY_CONDITION, _py_body),
        rewrite=_normalize_py_condition,
    ),
    ScanRule(
        name="todo_comment",
        message="Incomplete implementation (TODO comment)",
        family=C_LIKE,
        detect=_search(_C_TODO),
    ),
    ScanRule(
        name="todo_comment",
        message="Incomplete implementation (TODO comment)",
        family=PYTHON,
        detect=_search(_PY_TODO),
    ),
    ScanRule(
        name="empty_handler",
        message="Empty catch block",
        family=C_LIKE,
        detect=_search(_EMPTY_CATCH),
        rewrite=_annotate_catch,
    ),
    ScanRule(
        name="empty_handler",
        message="Empty exception handler",
        family=PYTHON,
        detect=_search(_EMPTY_EXCEPT),
        rewrite=_annotate_except,
    ),
]


# =============================================================================
# Performance Rules
# =============================================================================

_C_INDEX_LOOP = re.compile(r"for\s*\([^;]*;[^;]*;[^)]*\)")
_PY_INDEX_LOOP = re.compile(r"for\s+\w+\s+in\s+range\(\s*len\(")
_MAP_FILTER = re.compile(r"\.map\(([^)]*)\)\.filter\(([^)]*)\)")
_C_LOOP_HEAD = re.compile(rf"\b(?:for|while)\s*{_ARGS}\s*")
_C_DATE = re.compile(r"new\s+Date\(\)")
_PY_LOOP_HEAD = re.compile(r"^([ \t]*)(?:for|while)\b([^\n]*)$", re.MULTILINE)
_PY_NOW = re.compile(r"datetime\.now\(|time\.time\(")
_PY_TRAILING_COMMENT = re.compile(r"[ \t]*#[^\n]*$")


def _c_loop_body(code: str, start: int) -> str:
    """The braced block opening at `start`, or the single statement there."""
    if not code.startswith("{", start):
        end = code.find(";", start)
        return code[start:] if end < 0 else code[start:end + 1]
    depth = 0
    for i in range(start, len(code)):
        if code[i] == "{":
            depth += 1
        elif code[i] == "}":
            depth -= 1
            if depth == 0:
                return code[start:i + 1]
    return code[start:]


def _py_loop_body(code: str, head: "re.Match[str]") -> str:
    """The indented suite under a loop header, or the statement after its colon."""
    header = _PY_TRAILING_COMMENT.sub("", head.group(2)).rstrip()
    if not header.endswith(":"):
        return head.group(2)
    indent = len(head.group(1))
    suite: List[str] = []
    for line in code[head.end():].split("\n")[1:]:
        if line.strip() and len(line) - len(line.lstrip()) <= indent:
            break
        suite.append(line)
    return "\n".join(suite)


def _c_time_in_loop(code: str) -> bool:
    return any(
        _C_DATE.search(_c_loop_body(code, m.end())) for m in _C_LOOP_HEAD.finditer(code)
    )


def _py_time_in_loop(code: str) -> bool:
    return any(_PY_NOW.search(_py_loop_body(code, m)) for m in _PY_LOOP_HEAD.finditer(code))


def _swap_map_filter(code: str, language: str) -> str:
    return _MAP_FILTER.sub(r".filter(\2).map(\1)", code)


PERFORMANCE_RULES: List[ScanRule] = [
    ScanRule(
        name="index_loop",
        message="Consider using array methods instead of for loops",
        family=C_LIKE,
        detect=_search(_C_INDEX_LOOP),
    ),
    ScanRule(
        name="index_loop",
        message="Consider iterating directly or with enumerate() instead of range(len())",
        family=PYTHON,
        detect=_search(_PY_INDEX_LOOP),
    ),
    ScanRule(
        name="map_before_filter",
        message="Filter before map for better performance",
        family=C_LIKE,
        detect=_search(_MAP_FILTER),
        rewrite=_swap_map_filter,
    ),
    ScanRule(
        name="time_in_loop",
        message="Cache date objects in loops",
        family=C_LIKE,
        detect=_c_time_in_loop,
    ),
    ScanRule(
        name="time_in_loop",
        message="Cache the current time outside loops",
        family=PYTHON,
        detect=_py_time_in_loop,
    ),
]


# =============================================================================
# Scan
# =============================================================================


def _apply(
    rules: List[ScanRule], original: str, fixed: str, family: str, language: str
) -> tuple[str, List[str]]:
    messages: List[str] = []
    for rule in rules:
        if rule.family != family or not rule.detect(original):
            continue
        messages.append(rule.message)
        if rule.rewrite is not None:
            fixed = rule.rewrite(fixed, language)
        logger.debug("Scanner rule %s matched (%s)", rule.name, language)
    return fixed, messages


def scan(code: str, language: Optional[str] = None) -> ScanResult:
    """Scan `code` and return the fixed copy with issue and improvement lists.

    Never raises for "no match": a clean input yields empty lists and the
    unchanged source.
    """
    lang = (language or DEFAULT_LANGUAGE).strip().lower()
    family = language_family(lang)

    fixed, issues = _apply(ERROR_RULES, code, code, family, lang)
    fixed, improvements = _apply(PERFORMANCE_RULES, code, fixed, family, lang)

    return ScanResult(
        fixed_code=fixed,
        detected_issues=issues,
        performance_improvements=improvements,
    )
