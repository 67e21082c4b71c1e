"""Layered recovery of JSON objects from unreliable model output.

Strategies run in order until one yields a value the caller accepts:

  1. fenced      body of the first ``` code block, parsed as-is
  2. whole       the entire unfenced text, parsed as-is (bare lists included)
  3. braces      first "{" to last "}", parsed as-is
  4. normalized  (3) with newlines/tabs flattened, whitespace collapsed and
                 trailing commas removed
  5. truncated   first "{" to last complete "}", dangling comma dropped and
                 every still-open array/object closed
  6. items       regex scan for complete list items anywhere in the raw text

repair_json() never raises; failure is reported through ParseOutcome.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

FENCED_BLOCK = re.compile(r"```(?:json|JSON)?[ \t]*\n?([\s\S]*?)```")
TRAILING_COMMA = re.compile(r",\s*([\]}])")
LINE_BREAKS = re.compile(r"[\r\n]+")
WHITESPACE_RUN = re.compile(r"\s{2,}")

_CLOSERS = {"{": "}", "[": "]"}


@dataclass
class ItemRecovery:
    """How to rebuild a list-shaped payload from loose item matches."""

    list_key: str
    pattern: re.Pattern


@dataclass
class ParseOutcome:
    """Result of running the chain: the winning strategy and its data, or the errors."""

    strategy: Optional[str] = None
    data: Any = None
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.strategy is not None


# ---------------------------------------------------------------------------
# Candidate extraction helpers
# ---------------------------------------------------------------------------


def extract_fenced(text: str) -> Optional[str]:
    match = FENCED_BLOCK.search(text)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return None


def extract_brace_span(text: str) -> Optional[str]:
    first = text.find("{")
    last = text.rfind("}")
    if first >= 0 and last > first:
        return text[first:last + 1]
    return None


def normalize(text: str) -> str:
    """Flatten the usual causes of corruption inside string values."""
    text = LINE_BREAKS.sub(" ", text)
    text = text.replace("\t", " ")
    text = WHITESPACE_RUN.sub(" ", text)
    return TRAILING_COMMA.sub(r"\1", text)


def close_truncated(text: str) -> Optional[str]:
    """Cut at the last complete "}" and close whatever is still open.

    ``{"a": [{"x": 1}, {"x": 2`` becomes ``{"a": [{"x": 1}]}``.
    """
    span = extract_brace_span(text)
    if span is None:
        return None
    span = normalize(span).rstrip().rstrip(",").rstrip()

    stack: list[str] = []
    in_string = False
    escaped = False
    for ch in span:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in _CLOSERS:
            stack.append(ch)
        elif ch in "}]":
            if not stack or _CLOSERS[stack[-1]] != ch:
                return None
            stack.pop()

    if in_string:
        span += '"'
    span = span.rstrip().rstrip(",")
    return span + "".join(_CLOSERS[opener] for opener in reversed(stack))


def scan_items(text: str, recovery: ItemRecovery) -> list[dict]:
    """Collect every complete item matching the literal item shape."""
    return [m.groupdict() for m in recovery.pattern.finditer(text)]


# ---------------------------------------------------------------------------
# Chain
# ---------------------------------------------------------------------------


def _is_object(data: Any) -> bool:
    return isinstance(data, dict)


def repair_json(
    text: str,
    accept: Callable[[Any], bool] = _is_object,
    items: Optional[ItemRecovery] = None,
) -> ParseOutcome:
    """Run the recovery strategies over ``text``.

    Args:
        text: Raw model output.
        accept: Predicate a parsed value must satisfy to count as a success.
        items: Optional item shape for the last-resort list scan.

    Returns:
        ParseOutcome with ``ok`` set when some strategy produced an accepted value.
    """
    outcome = ParseOutcome()
    text = text or ""
    fenced = extract_fenced(text)
    body = fenced if fenced is not None else text
    span = extract_brace_span(body)
    list_first = body.lstrip().startswith("[")

    candidates: list[tuple[str, Optional[str]]] = [
        ("fenced", fenced),
        ("whole", text.strip() if fenced is None else None),
        ("braces", span),
        ("normalized", normalize(body.strip() if list_first or span is None else span)),
        ("truncated", close_truncated(body)),
    ]

    for strategy, candidate in candidates:
        if candidate is None:
            continue
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError as e:
            outcome.errors.append(f"{strategy}: {e}")
            continue
        if accept(data):
            outcome.strategy = strategy
            outcome.data = data
            return outcome
        outcome.errors.append(f"{strategy}: parsed value rejected")

    if items is not None:
        found = scan_items(text, items)
        if found:
            data = {items.list_key: found}
            if accept(data):
                logger.info("Recovered %d complete items from a damaged response", len(found))
                outcome.strategy = "items"
                outcome.data = data
                return outcome
        outcome.errors.append("items: no complete items found")

    logger.warning("JSON repair failed after %d strategies", len(outcome.errors))
    return outcome
