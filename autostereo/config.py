"""Centralised configuration via a frozen dataclass."""

from __future__ import annotations

from dataclasses import dataclass

from autostereo.errors import InvalidConfig

# Normalised depth range is [0, DEPTH_MAX]
DEPTH_MAX = 3000

# Default separations are fractions of the output width
SEPARATION_MIN_DIVISOR = 14
SEPARATION_MAX_DIVISOR = 10


@dataclass(frozen=True)
class StereogramConfig:
    """All tuneable parameters for an autostereogram run.

    Attributes:
        separation_min: Smallest horizontal disparity in pixels.
        separation_max: Largest horizontal disparity in pixels.
        cross_eyed:     Encode for crossed-eye viewing (deeper = wider).
                        Parallel (wall-eyed) viewing otherwise.
        invert_depth:   Treat dark depth-map pixels as near instead of far.
        depth_max:      Upper bound of the normalised depth scale.
        strict_bounds:  Raise on background indices past the right edge
                        instead of clamping them.
    """

    separation_min: int = 0
    separation_max: int = 0
    cross_eyed: bool = False
    invert_depth: bool = False
    depth_max: int = DEPTH_MAX
    strict_bounds: bool = False

    def __post_init__(self) -> None:
        if self.separation_min < 0:
            msg = f"separation_min must be >= 0, got {self.separation_min}"
            raise InvalidConfig(msg)
        if self.separation_max < self.separation_min:
            msg = (
                f"separation_max ({self.separation_max}) is smaller than "
                f"separation_min ({self.separation_min})"
            )
            raise InvalidConfig(msg)
        if self.depth_max <= 0:
            msg = f"depth_max must be positive, got {self.depth_max}"
            raise InvalidConfig(msg)

    @classmethod
    def for_width(
        cls,
        width: int,
        separation_min: int | None = None,
        separation_max: int | None = None,
        **kwargs: object,
    ) -> StereogramConfig:
        """Build a config whose unset separations derive from *width*.

        The minimum defaults to ``width // 14`` and the maximum to
        ``width // 10``.
        """
        if separation_min is None:
            separation_min = width // SEPARATION_MIN_DIVISOR
        if separation_max is None:
            separation_max = width // SEPARATION_MAX_DIVISOR
        return cls(
            separation_min=separation_min,
            separation_max=separation_max,
            **kwargs,  # type: ignore[arg-type]
        )

    @property
    def separation_range(self) -> int:
        return self.separation_max - self.separation_min
