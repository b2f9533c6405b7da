# ============================================================================
# src/coding_review/recovery/json_scanner.py
# ============================================================================
"""
String-Aware JSON Scanner

Model completions are not valid under any relaxed JSON grammar: they can be
wrapped in prose, fenced in markdown, truncated mid-object or carry raw
control characters inside string values. Instead of a relaxed parser (whose
outcome is only parse/fail), everything here is a single left-to-right scan
over an explicit state machine:

    OUTSIDE_STRING --'"'--> INSIDE_STRING --'\\'--> ESCAPE_PENDING
          ^                     |                        |
          +--------'"'----------+<------any char---------+

Braces, brackets, commas and bare tokens are only structural while
OUTSIDE_STRING, so braces inside string values never perturb depth counts
and repairs never touch string contents (other than escaping raw control
characters, which is the point of that repair).
"""

import json
import re
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple


class ScanState(Enum):
    OUTSIDE_STRING = "outside"
    INSIDE_STRING = "inside"
    ESCAPE_PENDING = "escape"


_CODE_FENCE = re.compile(r"```(?:json|JSON)?[ \t]*")
_IDENTIFIER_START = re.compile(r"[A-Za-z_$]")
_IDENTIFIER = re.compile(r"[A-Za-z0-9_$]+")

# Bare tokens that are not JSON and are replaced with string equivalents
_INVALID_LITERALS = ("undefined", "NaN", "Infinity")

_RAW_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}


def next_state(state: ScanState, char: str) -> ScanState:
    """Transition function of the scanner."""
    if state is ScanState.ESCAPE_PENDING:
        return ScanState.INSIDE_STRING
    if state is ScanState.INSIDE_STRING:
        if char == "\\":
            return ScanState.ESCAPE_PENDING
        if char == '"':
            return ScanState.OUTSIDE_STRING
        return ScanState.INSIDE_STRING
    if char == '"':
        return ScanState.INSIDE_STRING
    return ScanState.OUTSIDE_STRING


def scan(text: str) -> Iterator[Tuple[int, str, ScanState]]:
    """
    Yield (index, char, state) where state is the state the char was read in.

    A char read OUTSIDE_STRING is structural; the opening quote of a string
    is reported as OUTSIDE_STRING and its closing quote as INSIDE_STRING.
    """
    state = ScanState.OUTSIDE_STRING
    for index, char in enumerate(text):
        yield index, char, state
        state = next_state(state, char)


class JSONScanner:
    """
    Boundary detection, balance checking and minimal syntax repair for
    JSON-ish model output.
    """

    def first_balanced_object(self, text: str) -> Optional[str]:
        """
        Return the first complete top-level ``{...}`` span, or None.

        Closing braces seen before any opening brace (stray prose) are ignored.
        """
        depth = 0
        start = -1
        for index, char, state in scan(text):
            if state is not ScanState.OUTSIDE_STRING:
                continue
            if char == "{":
                if depth == 0:
                    start = index
                depth += 1
            elif char == "}" and depth > 0:
                depth -= 1
                if depth == 0:
                    return text[start:index + 1]
        return None

    @staticmethod
    def outermost_braces(text: str) -> Optional[str]:
        """Span from the first ``{`` to the last ``}``, ignoring string state."""
        first = text.find("{")
        last = text.rfind("}")
        if first == -1 or last == -1 or first >= last:
            return None
        return text[first:last + 1]

    def is_balanced(self, text: str) -> bool:
        """
        True when braces and brackets close in order and no string is left
        open. A truncated completion fails this check.
        """
        closers = {"}": "{", "]": "["}
        stack = []
        state = ScanState.OUTSIDE_STRING
        for _, char, state in scan(text):
            if state is not ScanState.OUTSIDE_STRING:
                continue
            if char in "{[":
                stack.append(char)
            elif char in closers:
                if not stack or stack.pop() != closers[char]:
                    return False
        final_state = state if not text else next_state(state, text[-1])
        return not stack and final_state is ScanState.OUTSIDE_STRING

    @staticmethod
    def strip_code_fences(text: str) -> str:
        """Remove markdown ```json / ``` markers."""
        return _CODE_FENCE.sub("", text).strip()

    def repair(self, text: str) -> str:
        """
        Apply minimal syntax repair in one pass:

        - drop trailing commas before ``}`` / ``]``
        - quote bare object keys
        - replace bare ``undefined`` / ``NaN`` / ``Infinity`` with strings
        - inside strings, escape raw newline / carriage return / tab and
          drop other raw control characters

        Text that already parses is returned unchanged.
        """
        try:
            json.loads(text)
            return text
        except (ValueError, RecursionError):
            pass

        out = []
        state = ScanState.OUTSIDE_STRING
        index = 0
        length = len(text)

        while index < length:
            char = text[index]

            if state is ScanState.OUTSIDE_STRING:
                if char == ",":
                    lookahead = self._skip_whitespace(text, index + 1)
                    if lookahead < length and text[lookahead] in "}]":
                        index += 1
                        continue
                elif _IDENTIFIER_START.match(char):
                    token = _IDENTIFIER.match(text, index).group()
                    index += len(token)
                    out.append(self._repair_token(token, text, index, out))
                    continue
            elif ord(char) < 0x20:
                # raw control character inside a string literal
                if char in _RAW_ESCAPES:
                    out.append(_RAW_ESCAPES[char])
                elif state is ScanState.ESCAPE_PENDING:
                    out.pop()
                # a pending backslash is consumed either way
                state = ScanState.INSIDE_STRING
                index += 1
                continue

            out.append(char)
            state = next_state(state, char)
            index += 1

        return "".join(out)

    def _repair_token(self, token: str, text: str, end: int, out: list) -> str:
        lookahead = self._skip_whitespace(text, end)
        is_key = (
            lookahead < len(text)
            and text[lookahead] == ":"
            and self._last_significant(out) in ("{", ",")
        )
        if is_key:
            return f'"{token}"'
        if token in _INVALID_LITERALS:
            if token == "Infinity" and self._last_significant(out) == "-":
                self._drop_last_significant(out)
                return '"-Infinity"'
            return f'"{token}"'
        return token

    @staticmethod
    def _skip_whitespace(text: str, index: int) -> int:
        while index < len(text) and text[index] in " \t\r\n":
            index += 1
        return index

    @staticmethod
    def _last_significant(out: list) -> str:
        for chunk in reversed(out):
            stripped = chunk.rstrip()
            if stripped:
                return stripped[-1]
        return ""

    @staticmethod
    def _drop_last_significant(out: list) -> None:
        while out and not out[-1].strip():
            out.pop()
        if out:
            out[-1] = out[-1].rstrip()[:-1]

    def clean(self, text: str) -> str:
        """Fence stripping followed by syntax repair."""
        return self.repair(self.strip_code_fences(text))

    @staticmethod
    def loads_object(text: str) -> Dict[str, Any]:
        """Parse text that must hold a JSON object."""
        parsed = json.loads(text)
        if not isinstance(parsed, dict):
            raise ValueError(f"Expected a JSON object, got {type(parsed).__name__}")
        return parsed
