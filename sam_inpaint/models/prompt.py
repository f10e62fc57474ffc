from __future__ import annotations
from dataclasses import dataclass
from enum import Enum


class Polarity(Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"

    @property
    def label(self) -> int:
        """Decoder label: 1 = include, 0 = exclude."""
        return 1 if self is Polarity.POSITIVE else 0


# Label of the synthetic (0, 0) point appended when no box prompt is sent.
PADDING_LABEL = -1


@dataclass(frozen=True)
class PromptPoint:
    x: float              # original-image pixels
    y: float
    polarity: Polarity = Polarity.POSITIVE
