"""Finding and recommendation containers shared by the classifier and the report."""

from collections import namedtuple
from enum import Enum


class Severity(Enum):
    """Classification of a single observation."""
    OK = "OK"
    WARN = "WARN"
    INFO = "INFO"


class Section(Enum):
    """Report section a finding is printed under."""
    GENERAL = "General Statistics"
    STORAGE_ENGINES = "Storage Engine Statistics"
    PERFORMANCE = "Performance Metrics"


Finding = namedtuple('Finding', ['metric', 'severity', 'message', 'section'])


class RecommendationSet:
    """Ordered general advice and variable adjustments.

    Duplicates are kept; insertion order is the order rules fired in.
    """

    __slots__ = ('general_recommendations', 'variable_adjustments')

    def __init__(self, general_recommendations=(), variable_adjustments=()):
        self.general_recommendations = tuple(general_recommendations)
        self.variable_adjustments = tuple(variable_adjustments)

    def is_empty(self):
        return not self.general_recommendations and not self.variable_adjustments

    def __eq__(self, other):
        if not isinstance(other, RecommendationSet):
            return NotImplemented
        return (self.general_recommendations == other.general_recommendations
                and self.variable_adjustments == other.variable_adjustments)

    def __repr__(self):
        return (f"RecommendationSet(general_recommendations={self.general_recommendations!r}, "
                f"variable_adjustments={self.variable_adjustments!r})")

    def to_dict(self):
        return {
            'general_recommendations': list(self.general_recommendations),
            'variable_adjustments': list(self.variable_adjustments),
        }
