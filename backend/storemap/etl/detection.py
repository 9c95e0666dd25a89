"""
Classify an uploaded CSV as growth or absolute metrics from its headers.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

GROWTH = "growth"
ABSOLUTE = "absolute"
UNKNOWN = "unknown"

FORMAT_KEYWORDS = {
    GROWTH: ("%", "crec", "growth", "crecimiento"),
    ABSOLUTE: ("ventas", "ordenes", "tickets"),
}

# Minimum keyword hits for a format to qualify
MIN_MATCHES = 2
KPI_COLUMN_COUNT = 3


@dataclass
class FormatDetection:
    type: str
    confidence: float
    matched_columns: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "confidence": self.confidence,
            "matchedColumns": self.matched_columns,
        }


def _score(headers: Sequence[str], keywords: Sequence[str]):
    score = 0
    matched = []
    for header in headers:
        hits = sum(1 for keyword in keywords if keyword in header)
        if hits:
            score += hits
            matched.append(header)
    return score, matched


def detect_format(headers: Sequence[str], kpi_headers: Optional[Sequence[str]] = None) -> FormatDetection:
    """
    Score the KPI-bearing headers against the growth and absolute keyword sets.

    Without explicit ``kpi_headers`` the last three headers are inspected,
    which is where both export layouts put their metric columns.
    """
    inspected = list(kpi_headers) if kpi_headers is not None else list(headers[-KPI_COLUMN_COUNT:])
    normalized = [h.strip().lower() for h in inspected]

    growth_score, growth_cols = _score(normalized, FORMAT_KEYWORDS[GROWTH])
    absolute_score, absolute_cols = _score(normalized, FORMAT_KEYWORDS[ABSOLUTE])

    if growth_score >= MIN_MATCHES:
        return FormatDetection(GROWTH, min(growth_score / KPI_COLUMN_COUNT, 1.0), growth_cols)
    if absolute_score >= MIN_MATCHES:
        return FormatDetection(ABSOLUTE, min(absolute_score / KPI_COLUMN_COUNT, 1.0), absolute_cols)

    matched = [h for h in normalized if h in growth_cols or h in absolute_cols]
    return FormatDetection(UNKNOWN, 0.0, matched)
