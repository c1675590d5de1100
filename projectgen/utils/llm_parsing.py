"""
Structured-output recovery for LLM responses

This module turns free-form LLM text that is supposed to carry a JSON object
or array into a parsed value. It tolerates prose around the payload, markdown
fences, single quotes, unescaped quotes, trailing or missing commas, bare keys
and truncated output, and falls back to typed defaults when nothing can be
salvaged.
"""

import copy
import json
import re
import logging
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from ..core.errors import RecoveryExhaustion

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 200


class ExpectedShape(Enum):
    """Shape of the value a caller expects back from ``recover``"""
    PLAN = "plan"
    STRUCTURE = "structure"
    DOCUMENTATION = "documentation"
    ANALYSIS = "analysis"
    FILES = "files"


DEFAULT_VALUES: Dict[ExpectedShape, Any] = {
    ExpectedShape.PLAN: {
        "projectName": "generated-project",
        "description": "",
        "technologies": [],
        "architecture": "",
        "components": [],
        "dataModels": [],
    },
    ExpectedShape.STRUCTURE: {
        "directories": [],
        "files": [],
        "dependencies": {"dependencies": {}, "devDependencies": {}},
    },
    ExpectedShape.DOCUMENTATION: {
        "readme": "# Project\n\nDocumentation could not be generated.",
        "additional": [],
    },
    ExpectedShape.ANALYSIS: {
        "issues": [],
        "suggestions": [],
    },
    ExpectedShape.FILES: [],
}

# Keys that betray which kind of answer the model was trying to give
SHAPE_KEYWORDS: Dict[ExpectedShape, List[str]] = {
    ExpectedShape.PLAN: ["projectname", "technologies", "architecture", "datamodels", "components"],
    ExpectedShape.STRUCTURE: ["directories", "files", "dependencies", "devdependencies"],
    ExpectedShape.DOCUMENTATION: ["readme", "additional"],
    ExpectedShape.ANALYSIS: ["issues", "suggestions"],
}

DEFAULT_REPAIR_PASSES = [
    "strip_surrounding_text",
    "normalize_single_quotes",
    "escape_interior_quotes",
    "remove_trailing_commas",
    "insert_missing_commas",
    "quote_bare_keys",
    "balance_brackets",
]

_CLOSERS = {"{": "}", "[": "]"}


def default_value(shape: ExpectedShape) -> Any:
    """Fresh copy of the typed default for a shape"""
    return copy.deepcopy(DEFAULT_VALUES[shape])


class LLMResponseParser:
    """Recovers JSON values from LLM responses with multiple fallback strategies"""

    def __init__(self, repair_passes: Optional[List[str]] = None, max_scan_candidates: int = 20):
        # A closing fence starts its own line; ``` inside a JSON string never does
        self.fence_pattern = re.compile(r'```(?:json|JSON)?[ \t]*\n?(.*?)\n[ \t]*```[ \t]*(?=\n|$)', re.DOTALL)
        self.open_fence_pattern = re.compile(r'```(?:json|JSON)?[ \t]*\n?(.*)$', re.DOTALL)
        self.bare_key_pattern = re.compile(r'([{,]\s*)([A-Za-z_$][A-Za-z0-9_$\-]*)(\s*:)')

        self.repair_passes = list(DEFAULT_REPAIR_PASSES if repair_passes is None else repair_passes)
        unknown = [name for name in self.repair_passes if name not in DEFAULT_REPAIR_PASSES]
        if unknown:
            raise ValueError(f"Unknown repair passes: {', '.join(unknown)}")

        self.max_scan_candidates = max_scan_candidates
        # Name of the strategy that produced the last successful parse
        self.last_strategy: Optional[str] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def recover(self, text: Optional[str], expected_shape: Optional[ExpectedShape] = None) -> Any:
        """Best-effort JSON recovery that never raises.

        Returns the parsed value, conformed to ``expected_shape`` when one is
        given, or a typed default chosen from keywords in the text when no
        strategy can parse it.
        """
        try:
            value = self.parse_json(text)
        except RecoveryExhaustion as e:
            shape = self.guess_shape(text or "", expected_shape)
            logger.warning(f"⚠️ JSON recovery failed ({e}), using default {shape.value} value")
            logger.debug(f"📝 Unparseable response excerpt: {e.excerpt!r}")
            self.last_strategy = "fallback"
            value = default_value(shape)
            return self._conform(value, expected_shape) if expected_shape else value

        if expected_shape is None:
            return value
        return self._conform(value, expected_shape)

    def parse_json(self, text: Optional[str]) -> Any:
        """Strict variant of ``recover``: raises RecoveryExhaustion when nothing parses"""
        self.last_strategy = None
        if text is None or not text.strip():
            raise RecoveryExhaustion("Empty response", excerpt="")

        stripped = text.strip()
        for strategy, candidate in self._candidates(stripped):
            value = self._try_load(candidate)
            if value is not None:
                self.last_strategy = strategy
                logger.debug(f"✅ JSON recovered via {strategy} ({len(candidate)} chars)")
                return value

        raise RecoveryExhaustion("No strategy produced valid JSON", excerpt=stripped[:EXCERPT_LENGTH])

    def repair(self, text: str) -> str:
        """Apply the enabled repair passes in order"""
        for name in self.repair_passes:
            text = getattr(self, name)(text)
        return text

    def guess_shape(self, text: str, hint: Optional[ExpectedShape] = None) -> ExpectedShape:
        """Pick the default shape whose keywords occur most often in the text"""
        lowered = text.lower()
        best_shape = None
        best_score = 0
        for shape, keywords in SHAPE_KEYWORDS.items():
            score = sum(lowered.count(keyword) for keyword in keywords)
            # Ties go to the caller's hint
            if score > best_score or (score == best_score and score > 0 and shape == hint):
                best_shape = shape
                best_score = score
        if best_shape is not None:
            return best_shape
        return hint or ExpectedShape.STRUCTURE

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def _candidates(self, text: str) -> Iterator[Tuple[str, str]]:
        """Yield (strategy, candidate text) pairs in priority order"""
        yield "direct", text

        start = self._first_container_index(text)
        trimmed = text[start:] if start is not None else text
        if start:
            yield "prefix_trim", trimmed

        blocks = self._fenced_blocks(text)
        for interior in blocks:
            yield "fenced_block", interior
        for interior in blocks:
            yield "fenced_block_repaired", self.repair(interior)

        yield "repaired", self.repair(trimmed)

        for candidate in self._balanced_objects(trimmed):
            yield "balanced_scan", candidate
            yield "balanced_scan_repaired", self.repair(candidate)

    def _fenced_blocks(self, text: str) -> List[str]:
        blocks = [m.group(1).strip() for m in self.fence_pattern.finditer(text)]
        if not blocks and "```" in text:
            # Fence opened but the response was cut before it closed
            match = self.open_fence_pattern.search(text)
            if match:
                blocks.append(match.group(1).strip())
        return [block for block in blocks if block]

    def _balanced_objects(self, text: str) -> Iterator[str]:
        """Yield every complete top-level ``{...}`` substring, string-aware"""
        position = 0
        attempts = 0
        while attempts < self.max_scan_candidates:
            start = text.find("{", position)
            if start == -1:
                return
            attempts += 1
            end = self._matching_brace(text, start)
            if end is None:
                position = start + 1
                continue
            yield text[start:end + 1]
            position = end + 1

    @staticmethod
    def _matching_brace(text: str, start: int) -> Optional[int]:
        depth = 0
        in_string = False
        escape_next = False
        for i in range(start, len(text)):
            char = text[i]
            if escape_next:
                escape_next = False
                continue
            if char == "\\":
                escape_next = True
                continue
            if char == '"':
                in_string = not in_string
                continue
            if in_string:
                continue
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return i
        return None

    @staticmethod
    def _first_container_index(text: str) -> Optional[int]:
        positions = [i for i in (text.find("{"), text.find("[")) if i != -1]
        return min(positions) if positions else None

    @staticmethod
    def _try_load(candidate: str) -> Any:
        """Parse a candidate; only objects and arrays count as a recovery"""
        if not candidate:
            return None
        try:
            value = json.loads(candidate, strict=False)
        except (json.JSONDecodeError, RecursionError):
            return None
        if isinstance(value, (dict, list)):
            return value
        return None

    def _conform(self, value: Any, shape: ExpectedShape) -> Any:
        """Coerce a parsed value towards the container type the caller expects"""
        if shape == ExpectedShape.FILES:
            if isinstance(value, list):
                return value
            if isinstance(value, dict):
                if isinstance(value.get("files"), list):
                    return value["files"]
                return [value]
            return default_value(shape)

        if isinstance(value, list) and len(value) == 1 and isinstance(value[0], dict):
            value = value[0]
        if isinstance(value, dict):
            return value
        logger.warning(f"⚠️ Expected a JSON object for {shape.value}, got {type(value).__name__}; using default")
        return default_value(shape)

    # ------------------------------------------------------------------
    # Repair passes (each one is a text -> text function)
    # ------------------------------------------------------------------

    def strip_surrounding_text(self, text: str) -> str:
        """Drop text before the first ``{``/``[`` and after the last ``}``/``]``"""
        text = text.strip()
        start = self._first_container_index(text)
        if start is None:
            return text
        end = max(text.rfind("}"), text.rfind("]"))
        if end < start:
            return text[start:]
        return text[start:end + 1]

    def normalize_single_quotes(self, text: str) -> str:
        """Turn single-quoted strings into double-quoted ones.

        An apostrophe between two alphanumeric characters is a contraction
        (``don't``) and is left alone. Double quotes inside a converted string
        are escaped.
        """
        out = []
        mode = None  # None, '"' or "'"
        i = 0
        n = len(text)
        while i < n:
            char = text[i]
            if mode is None:
                if char == '"':
                    mode = '"'
                elif char == "'" and not self._is_contraction(text, i):
                    mode = "'"
                    out.append('"')
                    i += 1
                    continue
                out.append(char)
                i += 1
                continue

            if char == "\\":
                following = text[i + 1:i + 2]
                if mode == "'" and following == "'":
                    out.append("'")
                else:
                    out.append(text[i:i + 2])
                i += 2
                continue

            if mode == '"':
                if char == '"':
                    mode = None
                out.append(char)
                i += 1
                continue

            if char == "'":
                if self._is_contraction(text, i):
                    out.append("'")
                else:
                    out.append('"')
                    mode = None
            elif char == '"':
                out.append('\\"')
            else:
                out.append(char)
            i += 1
        return "".join(out)

    def escape_interior_quotes(self, text: str) -> str:
        """Escape double quotes inside string literals that do not end the string"""
        out = []
        in_string = False
        i = 0
        n = len(text)
        while i < n:
            char = text[i]
            if not in_string:
                if char == '"':
                    in_string = True
                out.append(char)
                i += 1
                continue
            if char == "\\":
                out.append(text[i:i + 2])
                i += 2
                continue
            if char == '"':
                if self._closes_string(text, i + 1):
                    in_string = False
                    out.append(char)
                else:
                    out.append('\\"')
                i += 1
                continue
            out.append(char)
            i += 1
        return "".join(out)

    def remove_trailing_commas(self, text: str) -> str:
        return self._rewrite_outside_strings(text, lambda chunk: re.sub(r',(\s*[}\]])', r'\1', chunk))

    def insert_missing_commas(self, text: str) -> str:
        """Insert the comma missing between ``}{`` and ``][`` pairs"""
        def _fix(chunk: str) -> str:
            chunk = re.sub(r'}(\s*){', r'},\1{', chunk)
            return re.sub(r'\](\s*)\[', r'],\1[', chunk)
        return self._rewrite_outside_strings(text, _fix)

    def quote_bare_keys(self, text: str) -> str:
        return self._rewrite_outside_strings(text, lambda chunk: self.bare_key_pattern.sub(r'\1"\2"\3', chunk))

    def balance_brackets(self, text: str) -> str:
        """Close what was left open and drop closers that match nothing.

        Handles output cut off mid-string, after a key, or after a comma.
        """
        stack: List[str] = []
        out: List[str] = []
        in_string = False
        escape_next = False

        for char in text:
            if in_string:
                out.append(char)
                if escape_next:
                    escape_next = False
                elif char == "\\":
                    escape_next = True
                elif char == '"':
                    in_string = False
                continue

            if char == '"':
                in_string = True
                out.append(char)
            elif char in _CLOSERS:
                stack.append(char)
                out.append(char)
            elif char in ("}", "]"):
                if not stack:
                    continue
                if _CLOSERS[stack[-1]] == char:
                    stack.pop()
                    out.append(char)
                elif any(_CLOSERS[opener] == char for opener in stack):
                    while _CLOSERS[stack[-1]] != char:
                        out.append(_CLOSERS[stack.pop()])
                    stack.pop()
                    out.append(char)
                # anything else is a stray closer and is dropped
            else:
                out.append(char)

        result = "".join(out)
        if in_string:
            if escape_next:
                result = result[:-1]
            result += '"'
        if stack:
            result = result.rstrip()
            if result.endswith(","):
                result = result[:-1].rstrip()
            if result.endswith(":"):
                result += " null"
            result += "".join(_CLOSERS[opener] for opener in reversed(stack))
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _is_contraction(text: str, index: int) -> bool:
        before = text[index - 1] if index > 0 else ""
        after = text[index + 1] if index + 1 < len(text) else ""
        return before.isalnum() and after.isalnum()

    @staticmethod
    def _closes_string(text: str, index: int) -> bool:
        """Whether a quote followed by ``text[index:]`` plausibly ends a string"""
        n = len(text)
        while index < n and text[index].isspace():
            index += 1
        if index >= n:
            return True
        char = text[index]
        if char in ":}]":
            return True
        if char != ",":
            return False
        index += 1
        while index < n and text[index].isspace():
            index += 1
        if index >= n:
            return True
        following = text[index]
        if following in '"{[}]-' or following.isdigit():
            return True
        if text.startswith(("true", "false", "null"), index):
            return True
        # an unquoted key may follow the comma
        return re.match(r'[A-Za-z_$][A-Za-z0-9_$\-]*\s*:', text[index:]) is not None

    @staticmethod
    def _rewrite_outside_strings(text: str, fix: Callable[[str], str]) -> str:
        """Apply ``fix`` to the parts of ``text`` outside double-quoted strings"""
        out = []
        chunk_start = 0
        in_string = False
        escape_next = False
        for i, char in enumerate(text):
            if in_string:
                if escape_next:
                    escape_next = False
                elif char == "\\":
                    escape_next = True
                elif char == '"':
                    in_string = False
                    out.append(text[chunk_start:i + 1])
                    chunk_start = i + 1
            elif char == '"':
                out.append(fix(text[chunk_start:i]))
                chunk_start = i
                in_string = True
        tail = text[chunk_start:]
        out.append(tail if in_string else fix(tail))
        return "".join(out)
