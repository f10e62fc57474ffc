# services/prompt_service.py
from typing import List, Sequence, Tuple

from ..models.prompt import PADDING_LABEL, Polarity, PromptPoint


class PromptService:
    """
    Click prompts for the point-prompted decoder.

    Points are stored in original-image pixels and only mapped into the
    resized encoder space when a decoder request is built, because the
    cached embedding was computed at the resized resolution.
    """

    @staticmethod
    def append(points: List[PromptPoint], x: float, y: float,
               polarity: Polarity = Polarity.POSITIVE) -> PromptPoint:
        point = PromptPoint(x=x, y=y, polarity=polarity)
        points.append(point)
        return point

    @staticmethod
    def clear(points: List[PromptPoint]) -> None:
        points.clear()

    @staticmethod
    def to_decoder_coordinates(
            points: Sequence[PromptPoint],
            src_w: int,
            src_h: int,
            dst_w: int,
            dst_h: int,
    ) -> List[Tuple[float, float]]:
        """Scale each axis independently: x' = x * dst_w / src_w, y' = y * dst_h / src_h."""
        return [(p.x / src_w * dst_w, p.y / src_h * dst_h) for p in points]

    @staticmethod
    def to_label_sequence(points: Sequence[PromptPoint]) -> List[int]:
        """1 for positive, 0 for negative, same order as the points."""
        return [p.polarity.label for p in points]

    @staticmethod
    def with_padding_point(
            coords: List[Tuple[float, float]],
            labels: List[int],
    ) -> Tuple[List[Tuple[float, float]], List[int]]:
        """
        Append the synthetic (0, 0) / -1 point the decoder expects when no
        box prompt is supplied. Exactly one is added, always last.
        """
        return coords + [(0.0, 0.0)], labels + [PADDING_LABEL]
