"""Rule-based extraction of blood test parameters using regex patterns.

Each parameter is described by one row of an ordered rule table. The
extractor runs every rule independently over the OCR text and keeps the
first match; parameters without a match get the ``"N/A"`` sentinel.
"""

import re
from dataclasses import dataclass
from enum import StrEnum

from blood_report.utils.logger import get_logger

logger = get_logger(__name__)

NOT_FOUND = "N/A"


class ParameterName(StrEnum):
    """Blood test parameters recognized by the extractor."""

    HEMOGLOBIN = "Hemoglobin"
    RBC = "RBC"
    WBC = "WBC"
    PLATELET_COUNT = "PlateletCount"


class CaptureKind(StrEnum):
    """Shape of the value captured after a parameter label."""

    DECIMAL = "decimal"
    GROUPED_INTEGER = "grouped_integer"


_CAPTURE_PATTERNS: dict[CaptureKind, str] = {
    CaptureKind.DECIMAL: r"(\d+(?:\.\d+)?)",
    CaptureKind.GROUPED_INTEGER: r"(\d+(?:,\d+)*)",
}

# Label, then any run of colons/whitespace before the value.
_SEPARATOR = r"[:\s]*"


@dataclass(frozen=True)
class FieldRule:
    """One row of the extraction table."""

    parameter: ParameterName
    label: str
    capture_kind: CaptureKind

    @property
    def pattern(self) -> re.Pattern[str]:
        return _compile(self.label, self.capture_kind)


@dataclass
class ExtractedField:
    """A parameter value matched by a rule."""

    field_name: str
    value: str
    start_pos: int
    end_pos: int
    extraction_method: str = "regex"


def _compile(label: str, capture_kind: CaptureKind) -> re.Pattern[str]:
    return re.compile(
        label + _SEPARATOR + _CAPTURE_PATTERNS[capture_kind], re.IGNORECASE
    )


BLOOD_PARAMETER_RULES: tuple[FieldRule, ...] = (
    FieldRule(ParameterName.HEMOGLOBIN, r"Hemoglobin", CaptureKind.DECIMAL),
    FieldRule(ParameterName.RBC, r"RBC", CaptureKind.DECIMAL),
    FieldRule(ParameterName.WBC, r"WBC", CaptureKind.DECIMAL),
    FieldRule(
        ParameterName.PLATELET_COUNT, r"Platelet\s*Count", CaptureKind.GROUPED_INTEGER
    ),
)


class RuleExtractor:
    """Regex-based extractor for blood report parameters.

    Args:
        rules: Ordered rule table. Defaults to :data:`BLOOD_PARAMETER_RULES`.
            The order of the table is the order of keys in every result.
    """

    def __init__(self, rules: tuple[FieldRule, ...] = BLOOD_PARAMETER_RULES) -> None:
        self.rules = rules
        self._compiled: list[tuple[FieldRule, re.Pattern[str]]] = [
            (rule, rule.pattern) for rule in rules
        ]

    @property
    def parameter_names(self) -> list[str]:
        return [str(rule.parameter) for rule in self.rules]

    def extract_fields(self, text: str) -> list[ExtractedField]:
        """Return the first match of every rule that matches ``text``.

        Args:
            text: OCR text to search.

        Returns:
            Matched fields in rule order. Unmatched rules are left out.
        """
        results: list[ExtractedField] = []
        for rule, pattern in self._compiled:
            match = pattern.search(text)
            if match is None:
                continue
            results.append(
                ExtractedField(
                    field_name=str(rule.parameter),
                    value=match.group(1),
                    start_pos=match.start(),
                    end_pos=match.end(),
                )
            )
        return results

    def extract(self, text: str) -> dict[str, str]:
        """Extract every parameter from ``text``.

        Args:
            text: OCR text to search. May be empty.

        Returns:
            Mapping with one entry per rule, in rule order. Parameters
            without a match map to ``"N/A"``.
        """
        values = dict.fromkeys(self.parameter_names, NOT_FOUND)
        for found in self.extract_fields(text):
            values[found.field_name] = found.value

        matched = sum(1 for v in values.values() if v != NOT_FOUND)
        logger.info("Rule extraction matched %d/%d parameters", matched, len(values))
        return values
