"""
Attribute Payload Parser

Turns one raw attribute payload into a normalized ParsedAttributes map.

Payloads come from a legacy inventory and are often hand-authored:
single-quoted, bareword keys, unquoted values, missing or extra braces.
Parsing is a staged fallback; each stage returns a mapping or None and
the first non-empty result wins:

1. structured        - payload is already a mapping
2. strict_json       - json.loads of the raw text, then of the sanitized text
3. patterns          - regex scan for "key":"value" and "key":[...]
4. known_attributes  - probe the raw text for known attribute names

parse() is total: it never raises and returns {} for unrecoverable input.
"""

import json
import re
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from config.constants import DEFAULT_PARSER_CONFIG, ParserConfig
from core.logging import get_logger
from core.utils import normalize_attribute_key
from facets.models import AttributeValue, ListValue, Scalar

logger = get_logger(__name__)


ParseStage = Callable[[Any], Optional[Dict[str, AttributeValue]]]


# =============================================================================
# Text Sanitization
# =============================================================================

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_WHITESPACE_RUN = re.compile(r"\s+")
_SMART_QUOTES = str.maketrans({"“": '"', "”": '"', "‘": "'", "’": "'"})

# Bareword key after an opening brace or a comma: {fabric: ...  , sleeve_length: ...
_BAREWORD_KEY = re.compile(r'([{,]\s*)([A-Za-z_][\w \-/]*?)\s*:')

# Array body without nested brackets
_ARRAY_BODY = re.compile(r'\[([^\[\]]*)\]')

# Unquoted scalar value up to the next comma or closing brace
_BARE_VALUE = re.compile(r'(:\s*)([^"\[\]{},\s][^"\[\]{},]*?)(\s*[,}])')

_TRAILING_COMMA = re.compile(r',\s*([}\]])')

# Single quote used as a delimiter; apostrophes inside words (Women's) are kept
_DELIMITER_QUOTE = re.compile(r"(?<!\w)'|'(?!\w)")


def _quote_array_elements(match: "re.Match") -> str:
    elements = [_strip_quotes(element) for element in match.group(1).split(",")]
    return "[" + ",".join(json.dumps(element) for element in elements if element) + "]"


def _strip_quotes(text: str) -> str:
    return text.strip().strip('"').strip("'").strip()


def _balance_braces(text: str) -> str:
    if not text.startswith("{"):
        text = "{" + text

    excess = text.count("}") - text.count("{")
    while excess > 0 and text.endswith("}"):
        text = text[:-1].rstrip()
        excess -= 1

    missing = text.count("{") - text.count("}")
    if missing > 0:
        text = text + "}" * missing
    return text


def sanitize_payload_text(text: str) -> str:
    """
    Rewrite JSON-like text toward strict JSON.

    Replaces delimiting single quotes, quotes bareword keys, unquoted
    values and unquoted array elements, strips control characters,
    collapses whitespace, wraps the text in braces and balances brace
    counts.
    """
    text = _CONTROL_CHARS.sub(" ", text.translate(_SMART_QUOTES))
    text = _WHITESPACE_RUN.sub(" ", text).strip()
    if not text:
        return "{}"

    text = _DELIMITER_QUOTE.sub('"', text)
    text = _BAREWORD_KEY.sub(r'\1"\2":', text)
    text = _ARRAY_BODY.sub(_quote_array_elements, text)
    text = _BARE_VALUE.sub(r'\1"\2"\3', text)
    text = _TRAILING_COMMA.sub(r"\1", text)
    return _balance_braces(text)


# =============================================================================
# Pattern Extraction
# =============================================================================

_PAIR_SCALAR = re.compile(r'"([^"{}\[\]]+)"\s*:\s*"([^"]*)"')
_PAIR_ARRAY = re.compile(r'"([^"{}\[\]]+)"\s*:\s*\[([^\]]*)\]')


def _known_attribute_pattern(name: str, all_names: Iterable[str]) -> "re.Pattern":
    # "length" must not match inside "sleeve length"
    guards = "".join(
        f"(?<!{re.escape(other[: -len(name)].strip())}[\\s_])"
        for other in all_names
        if other != name and other.endswith(" " + name)
    )
    name_pattern = r"[\s_]".join(re.escape(part) for part in name.split())
    return re.compile(
        guards + r"(?<![\w])[\"']?" + name_pattern + r"[\"']?\s*[:=]\s*"
        r"(?:\[([^\]]*)\]|[\"']([^\"'\n]*)[\"']|([^,}\n]+))",
        re.IGNORECASE,
    )


# =============================================================================
# Parser
# =============================================================================

class AttributePayloadParser:
    """
    Tolerant parser for raw attribute payloads.

    The parser is stateless apart from its compiled patterns and can be
    shared across threads and queries.
    """

    def __init__(self, config: Optional[ParserConfig] = None):
        self.config = config or DEFAULT_PARSER_CONFIG
        self._bookkeeping = {normalize_attribute_key(key).lower() for key in self.config.BOOKKEEPING_KEYS}
        self._containers = {normalize_attribute_key(key).lower() for key in self.config.CONTAINER_KEYS}
        self._empty_values = {value.lower() for value in self.config.EMPTY_VALUES}
        self._known_patterns: List[Tuple[str, "re.Pattern"]] = [
            (name, _known_attribute_pattern(name, self.config.KNOWN_ATTRIBUTES))
            for name in self.config.KNOWN_ATTRIBUTES
        ]
        self._stages: Tuple[Tuple[str, ParseStage], ...] = (
            ("structured", self._from_mapping),
            ("strict_json", self._from_json_text),
            ("patterns", self._from_patterns),
            ("known_attributes", self._from_known_attributes),
        )

    def parse(self, raw: Any) -> Dict[str, AttributeValue]:
        """
        Recover normalized attributes from a raw payload.

        Args:
            raw: A mapping, JSON(-like) text, bytes, or None.

        Returns:
            Normalized key -> AttributeValue map, possibly empty.
        """
        if raw is None:
            return {}

        for stage_name, stage in self._stages:
            try:
                result = stage(raw)
            except Exception as e:
                logger.debug("Payload parse stage failed", stage=stage_name, error=str(e))
                continue
            if result:
                return result

        logger.debug("Payload unrecoverable", payload_preview=str(raw)[:80])
        return {}

    # =========================================================================
    # Stages
    # =========================================================================

    def _from_mapping(self, raw: Any) -> Optional[Dict[str, AttributeValue]]:
        if not isinstance(raw, Mapping):
            return None
        return self._normalize_mapping(raw)

    def _from_json_text(self, raw: Any) -> Optional[Dict[str, AttributeValue]]:
        text = self._as_text(raw)
        if text is None:
            return None

        for candidate in (text, sanitize_payload_text(text)):
            data = self._loads(candidate)
            if isinstance(data, Mapping):
                return self._normalize_mapping(data)
        return None

    def _from_patterns(self, raw: Any) -> Optional[Dict[str, AttributeValue]]:
        text = self._as_text(raw)
        if text is None:
            return None
        sanitized = sanitize_payload_text(text)

        found: List[Tuple[int, str, Any]] = []
        for match in _PAIR_ARRAY.finditer(sanitized):
            elements = [_strip_quotes(element) for element in match.group(2).split(",")]
            found.append((match.start(), match.group(1), elements))
        for match in _PAIR_SCALAR.finditer(sanitized):
            found.append((match.start(), match.group(1), match.group(2)))

        # Keep document order across both pattern kinds
        found.sort(key=lambda entry: entry[0])
        return self._normalize_pairs((key, value) for _, key, value in found)

    def _from_known_attributes(self, raw: Any) -> Optional[Dict[str, AttributeValue]]:
        text = self._as_text(raw)
        if text is None:
            return None

        pairs = []
        for name, pattern in self._known_patterns:
            match = pattern.search(text)
            if not match:
                continue
            array_body, quoted, bare = match.groups()
            if array_body is not None:
                pairs.append((name, [_strip_quotes(element) for element in array_body.split(",")]))
            else:
                pairs.append((name, quoted if quoted is not None else bare))
        return self._normalize_pairs(pairs)

    # =========================================================================
    # Normalization
    # =========================================================================

    def _normalize_mapping(self, data: Mapping) -> Dict[str, AttributeValue]:
        pairs = []
        for key, value in data.items():
            if normalize_attribute_key(key).lower() in self._containers:
                # Unwrap {"dress_attributes": {...}} style nesting
                if isinstance(value, Mapping):
                    pairs.extend(self._normalize_mapping(value).items())
                elif isinstance(value, str):
                    pairs.extend(self.parse(value).items())
                continue
            pairs.append((key, value))
        return self._normalize_pairs(pairs)

    def _normalize_pairs(self, pairs: Iterable[Tuple[Any, Any]]) -> Dict[str, AttributeValue]:
        result: Dict[str, AttributeValue] = {}
        seen: Dict[str, str] = {}
        for key, value in pairs:
            norm_key = normalize_attribute_key(key)
            fold = norm_key.lower()
            # Row bookkeeping and unwrapped containers are never attributes
            if not norm_key or fold in self._bookkeeping or fold in self._containers:
                continue
            coerced = value if isinstance(value, (Scalar, ListValue)) else self._coerce_value(value)
            if coerced is None:
                continue

            if fold in seen:
                # First-seen key wins; later spellings are reported only
                logger.debug("Attribute key collision", key=seen[fold], ignored=str(key))
                continue
            seen[fold] = norm_key
            result[norm_key] = coerced
        return result

    def _coerce_value(self, value: Any) -> Optional[AttributeValue]:
        if value is None or isinstance(value, Mapping):
            return None

        if isinstance(value, (list, tuple, set, frozenset)):
            texts = [self._clean_text(element) for element in value if not isinstance(element, (Mapping, list, tuple))]
            texts = [text for text in texts if text]
            return ListValue(tuple(texts)) if texts else None

        if isinstance(value, str):
            stripped = value.strip()
            # JSON-encoded arrays stored as text, e.g. sizes: "[\"S\", \"M\"]"
            if stripped.startswith("[") and stripped.endswith("]"):
                decoded = self._loads(stripped)
                if isinstance(decoded, list):
                    return self._coerce_value(decoded)

        text = self._clean_text(value)
        return Scalar(text) if text else None

    def _clean_text(self, value: Any) -> str:
        text = _WHITESPACE_RUN.sub(" ", _strip_quotes(str(value)))
        if text.lower() in self._empty_values:
            return ""
        return text

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _as_text(raw: Any) -> Optional[str]:
        if isinstance(raw, Mapping):
            return None
        if isinstance(raw, (bytes, bytearray)):
            return raw.decode("utf-8", errors="replace")
        text = str(raw)
        return text if text.strip() else None

    @staticmethod
    def _loads(text: str) -> Any:
        try:
            data = json.loads(text)
        except ValueError:
            return None
        # Payloads that were JSON-encoded twice decode to a string first
        if isinstance(data, str):
            try:
                return json.loads(data)
            except ValueError:
                return None
        return data


_default_parser: Optional[AttributePayloadParser] = None


def parse_attributes(raw: Any) -> Dict[str, AttributeValue]:
    """Parse with a shared default-configured parser."""
    global _default_parser
    if _default_parser is None:
        _default_parser = AttributePayloadParser()
    return _default_parser.parse(raw)
