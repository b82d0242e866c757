"""Facial expressions reported by the emotion signal source."""

from __future__ import annotations

from enum import Enum


class FacialExpression(str, Enum):
    """Expressions and the factor each one applies to the drop interval."""

    NEUTRAL = "neutral"
    HAPPY = "happy"
    ANGRY = "angry"
    SURPRISED = "surprised"
    SAD = "sad"

    @property
    def drop_speed_multiplier(self) -> float:
        return _DROP_SPEED[self]


_DROP_SPEED = {
    FacialExpression.HAPPY: 0.8,
    FacialExpression.NEUTRAL: 1.0,
    FacialExpression.SURPRISED: 1.2,
    FacialExpression.SAD: 1.3,
    FacialExpression.ANGRY: 1.5,
}


__all__ = ["FacialExpression"]
