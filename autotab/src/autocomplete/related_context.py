"""Gather extra hints about the code around the cursor for the model prompt.

Two sources are combined:

* cheap text heuristics over the lines above the cursor (recent variable
  declarations, the declared type of ``obj`` when the cursor follows
  ``obj.``);
* an optional :class:`LanguageFeatures` collaborator exposing the editor's
  hover, definition and completion providers.

The result is prepended to the *model* prefix only; cache matching keeps
using the real buffer prefix.
"""

from __future__ import annotations

import re
from typing import List, NamedTuple, Optional, Protocol, Sequence

from .context import Position, TextDocument
from .logger import init_logger

logger = init_logger(__name__)

CONTEXT_HEADER = "/* Context Information:\n"
CONTEXT_FOOTER = "\n*/\n\n"

RECENT_VARIABLE_LOOKBACK = 20
MAX_RECENT_VARIABLES = 10
OBJECT_TYPE_LOOKBACK = 50
MAX_ACCESSORS = 10
MAX_OTHER_METHODS = 5

_DATA_CLASS_SUFFIX = re.compile(r"(VO|DTO|Model|Entity)$")
_JAVA_DECLARATION = re.compile(r"^\s*(?:final\s+)?(\w+(?:<[^>]+>)?)\s+(\w+)\s*=")
_TS_DECLARATION = re.compile(r"^\s*(?:const|let|var)\s+(\w+)(?:\s*:\s*(\w+(?:<[^>]+>)?))?.*=")
_TRAILING_IDENTIFIER = re.compile(r"(\w+)\s*$")


class CompletionItem(NamedTuple):
    label: str
    detail: str = ""
    is_method: bool = False


class LanguageFeatures(Protocol):
    """Editor language-service hooks.  Every method may raise; errors are
    logged and the corresponding hint is skipped."""

    async def hover(self, document: TextDocument, position: Position) -> Optional[str]: ...

    async def definitions(self, document: TextDocument, position: Position) -> Sequence[str]: ...

    async def completions(self, document: TextDocument, position: Position) -> Sequence[CompletionItem]: ...


# ---------------------------------------------------------------------------
# Text heuristics
# ---------------------------------------------------------------------------


def find_recent_variables(lines: Sequence[str], line_index: int) -> List[str]:
    """Describe variable declarations above *line_index*, newest first."""

    variables: List[str] = []
    start = max(0, line_index - RECENT_VARIABLE_LOOKBACK)

    for i in range(line_index - 1, start - 1, -1):
        line = lines[i]

        java = _JAVA_DECLARATION.match(line)
        if java and java.group(1) not in ("const", "let", "var", "return"):
            var_type, var_name = java.group(1), java.group(2)
            if _DATA_CLASS_SUFFIX.search(var_type):
                variables.append(f"  - {var_name}: {var_type} (has getters/setters)")
            else:
                variables.append(f"  - {var_name}: {var_type}")

        ts = _TS_DECLARATION.match(line)
        if ts:
            variables.append(f"  - {ts.group(1)}: {ts.group(2) or 'any'}")

        if len(variables) >= MAX_RECENT_VARIABLES:
            break

    return variables[:MAX_RECENT_VARIABLES]


def find_object_access(line_before_cursor: str, lines: Sequence[str], line_index: int) -> List[str]:
    """Describe ``obj`` when the cursor follows ``obj.`` (or ``obj.partial``)."""

    last_dot = line_before_cursor.rfind(".")
    if last_dot <= 0:
        return []

    match = _TRAILING_IDENTIFIER.search(line_before_cursor[:last_dot])
    if not match:
        return []

    object_name = match.group(1)
    parts = [f"Accessing object: {object_name}"]

    declaration = re.compile(rf"(\w+(?:<[^>]+>)?)\s+{re.escape(object_name)}\s*=")
    start = max(0, line_index - OBJECT_TYPE_LOOKBACK)
    for i in range(line_index - 1, start - 1, -1):
        found = declaration.search(lines[i])
        if found:
            object_type = found.group(1)
            parts.append(f"{object_name} is type: {object_type}")
            if _DATA_CLASS_SUFFIX.search(object_type):
                parts.append(f"{object_type} has getter/setter methods for its fields")
            break

    return parts


def describe_completions(items: Sequence[CompletionItem]) -> List[str]:
    """Summarise provider completions: accessors first, then other methods."""

    accessors = [i for i in items if i.label.startswith(("get", "set"))][:MAX_ACCESSORS]
    methods = [
        i for i in items
        if i.is_method and not i.label.startswith(("get", "set"))
    ][:MAX_OTHER_METHODS]

    out: List[str] = []
    if accessors:
        out.append("Available getters/setters:")
        for item in accessors:
            out.append(f"  - {item.label}: {item.detail}" if item.detail else f"  - {item.label}()")
    if methods:
        out.append("Other methods:")
        for item in methods:
            out.append(f"  - {item.label}: {item.detail}" if item.detail else f"  - {item.label}")
    return out


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------


async def gather_related_context(
    document: TextDocument,
    position: Position,
    language_features: Optional[LanguageFeatures] = None,
) -> str:
    lines = document.get_value().split("\n")
    line_index = min(position.line, len(lines) - 1)
    line_before_cursor = lines[line_index][: position.column]

    parts = find_object_access(line_before_cursor, lines, line_index)

    if language_features is not None:
        try:
            hover = await language_features.hover(document, position)
            if hover:
                parts.append(hover)
        except Exception as exc:
            logger.warning("hover provider failed: %s", exc)

        try:
            parts.extend(describe_completions(await language_features.completions(document, position)))
        except Exception as exc:
            logger.warning("completion provider failed: %s", exc)

        try:
            definitions = await language_features.definitions(document, position)
            if definitions:
                parts.append("Definitions: " + ", ".join(definitions))
        except Exception as exc:
            logger.warning("definition provider failed: %s", exc)

    recent = find_recent_variables(lines, line_index)
    if recent:
        parts.append("Recent variables:")
        parts.extend(recent)

    return "\n".join(parts)


def with_context_header(model_prefix: str, related_context: str) -> str:
    if not related_context:
        return model_prefix
    return CONTEXT_HEADER + related_context + CONTEXT_FOOTER + model_prefix


def strip_context_header(model_prefix: str) -> str:
    if not model_prefix.startswith(CONTEXT_HEADER):
        return model_prefix
    end = model_prefix.find(CONTEXT_FOOTER)
    if end == -1:
        return model_prefix
    return model_prefix[end + len(CONTEXT_FOOTER):]
