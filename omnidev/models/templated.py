"""Deterministic CodeGenerator implementation.

Stands in for a real model API. Output depends only on the inputs and the
selected model, which keeps routing and learning behaviour testable.
Swap in a client for a hosted model by implementing the same three methods.
"""

from __future__ import annotations

import difflib
import re
from typing import List, Optional

from omnidev.types import (
    GeneratedArchitecture,
    GeneratedCode,
    GeneratedRefactor,
    ModelDescriptor,
)

DEFAULT_LANGUAGE = "javascript"

ARCHITECTURE_COMPONENTS: List[str] = [
    "Frontend (React/Next.js)",
    "API Gateway",
    "Auth Service",
    "User Service",
    "Content Service",
    "Database (PostgreSQL)",
    "Cache (Redis)",
    "Message Queue (Kafka)",
]

_JS_TEMPLATE = """
// Generated by {model}
function processData(input) {{
  // Parse the input
  const data = JSON.parse(input);

  // Process the data
  const results = data.map(item => {{
    return {{
      id: item.id,
      value: item.value * 2,
      processed: true
    }};
  }});

  // Return the processed data
  return JSON.stringify(results);
}}

export default processData;
"""

_PY_TEMPLATE = """
# Generated by {model}
import json

def process_data(input_str):
    # Parse the input
    data = json.loads(input_str)

    # Process the data
    results = []
    for item in data:
        results.append({{
            "id": item["id"],
            "value": item["value"] * 2,
            "processed": True
        }})

    # Return the processed data
    return json.dumps(results)
"""

_GENERIC_TEMPLATE = """
{comment} Generated by {model}
{comment} Target language: {language}
{comment} Parse the input, double each item's value and serialize the result.
"""

# First line that opens a function definition, per language family
_FUNCTION_START = re.compile(r"^[ \t]*(?:export\s+)?(?:async\s+)?(?:function\b|def\b)", re.MULTILINE)


def _comment_prefix(language: str) -> str:
    return "#" if language in ("python", "py", "ruby", "shell", "bash") else "//"


class TemplatedGenerator:
    """CodeGenerator that renders fixed templates."""

    def generate_code(
        self, prompt: str, language: Optional[str], model: ModelDescriptor
    ) -> GeneratedCode:
        lang = (language or DEFAULT_LANGUAGE).lower()
        if lang in ("javascript", "typescript"):
            return GeneratedCode(
                code=_JS_TEMPLATE.format(model=model.name),
                explanation=(
                    "I've created a JavaScript function that takes an input string, parses "
                    "it as JSON, processes each item by doubling its value, and returns the "
                    "result as a JSON string. This implementation handles the core "
                    "requirements you described. You might want to add error handling for "
                    "invalid JSON input."
                ),
            )
        if lang == "python":
            return GeneratedCode(
                code=_PY_TEMPLATE.format(model=model.name),
                explanation=(
                    "I've created a Python function that takes an input string, parses it "
                    "as JSON, processes each item by doubling its value, and returns the "
                    "result as a JSON string. The implementation includes proper JSON "
                    "parsing and serialization using the built-in json module."
                ),
            )
        return GeneratedCode(
            code=_GENERIC_TEMPLATE.format(
                comment=_comment_prefix(lang), model=model.name, language=lang
            ),
            explanation=(
                f"I've outlined the structure for a {lang} implementation. Fill in the "
                "parsing and serialization with your project's standard libraries."
            ),
        )

    def refactor(
        self,
        code: str,
        instructions: Optional[str],
        model: ModelDescriptor,
        language: str,
    ) -> GeneratedRefactor:
        marker = f"{_comment_prefix(language)} Refactored by {model.name}"
        match = _FUNCTION_START.search(code)
        if match:
            refactored = code[: match.start()] + marker + "\n" + code[match.start():]
        else:
            refactored = marker + "\n" + code

        diff = "".join(
            difflib.unified_diff(
                code.splitlines(keepends=True),
                refactored.splitlines(keepends=True),
                fromfile="original",
                tofile="refactored",
            )
        )
        return GeneratedRefactor(
            refactored_code=refactored,
            explanation=(
                f"I've refactored the code to improve "
                f"{instructions or 'readability and performance'}. The key changes include "
                "better variable naming, adding comments for clarity, and optimizing the "
                "algorithm where possible."
            ),
            diff=diff,
        )

    def plan_architecture(
        self, requirements: str, stack: Optional[str], model: ModelDescriptor
    ) -> GeneratedArchitecture:
        components = list(ARCHITECTURE_COMPONENTS)
        gateway = components[1]
        lines = ["graph TD"]
        lines.append(f'  C0["{components[0]}"] --> C1["{gateway}"]')
        for i, component in enumerate(components[2:], start=2):
            lines.append(f'  C1 --> C{i}["{component}"]')
        return GeneratedArchitecture(
            diagram="\n".join(lines),
            components=components,
            explanation=(
                f"Based on your requirements for {requirements}, I've designed a "
                f"microservices architecture using {stack or 'modern technologies'}. The "
                "system is divided into several components with clear responsibilities and "
                "boundaries. The architecture supports horizontal scaling, fault tolerance, "
                "and maintainability."
            ),
        )
