"""
Simple linear regression for linreg.

This module fits y = m*x + b to a set of points by ordinary least squares,
using the closed-form normal equations over four running sums
(sum x, sum y, sum xy, sum x^2). It has no state and performs no I/O.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from linreg.exceptions import (
    DegenerateInput, InsufficientData, InvalidPoint, NonFiniteValue, NumericOverflow
)

# Set up logging
logger = logging.getLogger(__name__)

EQUATION_FORMAT = "y = {slope:.6f}x + {intercept:.6f}"


@dataclass(frozen=True)
class Point:
    """An (x, y) sample."""

    x: float
    y: float

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}


PointLike = Union[Point, Tuple[float, float], Dict[str, float]]


@dataclass(frozen=True)
class RegressionResult:
    """
    Fitted line and goodness-of-fit for a point set.

    ``r2`` is None when every y value is the same, since there is no
    variance to explain. It may be negative.
    """

    n: int
    slope: float
    intercept: float
    equation: str
    r2: Optional[float]
    min_x: float
    max_x: float
    line_points: Tuple[Point, Point] = field(default_factory=tuple)

    def predict(self, x: float) -> float:
        """
        Evaluate the fitted line.

        Args:
            x: Abscissa

        Returns:
            slope * x + intercept
        """
        return self.slope * x + self.intercept

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to the wire representation.

        Returns:
            Dictionary with camelCase keys
        """
        return {
            "n": self.n,
            "slope": self.slope,
            "intercept": self.intercept,
            "equation": self.equation,
            "r2": self.r2,
            "minX": self.min_x,
            "maxX": self.max_x,
            "linePoints": [p.to_dict() for p in self.line_points],
        }


def coerce_points(points: Iterable[PointLike]) -> List[Point]:
    """
    Normalize an iterable of points.

    Accepts Point instances, (x, y) pairs and {"x": ..., "y": ...} mappings.
    Order is preserved.

    Args:
        points: Points to normalize

    Returns:
        List of Point with float coordinates

    Raises:
        InvalidPoint: an element is not an (x, y) pair of numbers
    """
    result = []
    for index, p in enumerate(points, start=1):
        try:
            if isinstance(p, Point):
                x, y = p.x, p.y
            elif isinstance(p, dict):
                x, y = p["x"], p["y"]
            else:
                x, y = p
            result.append(Point(float(x), float(y)))
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            raise InvalidPoint(
                f"Point #{index} is invalid: expected numeric x and y.",
                index=index
            ) from e
    return result


def _as_arrays(points: Sequence[Point]) -> Tuple[np.ndarray, np.ndarray]:
    xs = np.array([p.x for p in points], dtype=np.float64)
    ys = np.array([p.y for p in points], dtype=np.float64)
    return xs, ys


def validate_points(points: Sequence[PointLike]) -> None:
    """
    Check that a point set can be fitted.

    Args:
        points: Points to check, in order

    Raises:
        InsufficientData: fewer than two points
        NonFiniteValue: a coordinate is NaN or infinite (index is 1-based)
        InvalidPoint: an element is not an (x, y) pair of numbers
        DegenerateInput: fewer than two distinct x values
    """
    points = coerce_points(points)

    if len(points) < 2:
        raise InsufficientData("At least 2 points are required for a linear regression.")

    xs, ys = _as_arrays(points)

    finite = np.isfinite(xs) & np.isfinite(ys)
    if not finite.all():
        index = int(np.argmin(finite)) + 1
        raise NonFiniteValue(
            f"Point #{index} is invalid: x and y must be finite numbers.",
            index=index
        )

    if np.unique(xs).size < 2:
        raise DegenerateInput("All x values are identical; the slope is undefined.")


def _check_finite(**values: float) -> None:
    """
    Raise NumericOverflow if any named intermediate is not finite.

    Args:
        values: Named quantities to check
    """
    for name, value in values.items():
        if not np.isfinite(value):
            raise NumericOverflow(
                f"Cannot fit these points: {name} exceeds the floating-point range."
            )


def compute_regression(points: Sequence[PointLike]) -> RegressionResult:
    """
    Fit a least-squares line to a point set.

    The input is always validated here, whatever the caller checked before.
    Finite coordinates can still overflow once squared or multiplied; such
    input is rejected rather than producing NaN coefficients.

    Args:
        points: Points to fit, in order

    Returns:
        RegressionResult

    Raises:
        InvalidPoint, InsufficientData, NonFiniteValue, DegenerateInput,
        NumericOverflow
    """
    points = coerce_points(points)
    validate_points(points)

    xs, ys = _as_arrays(points)
    n = len(points)

    with np.errstate(over='ignore', invalid='ignore'):
        # Running sums
        sum_x = float(np.sum(xs))
        sum_y = float(np.sum(ys))
        sum_xy = float(np.sum(xs * ys))
        sum_x2 = float(np.sum(xs * xs))
        _check_finite(sum_x=sum_x, sum_y=sum_y, sum_xy=sum_xy, sum_x2=sum_x2)

        numerator = n * sum_xy - sum_x * sum_y
        denominator = n * sum_x2 - sum_x * sum_x
        _check_finite(numerator=numerator, denominator=denominator)
        if denominator == 0.0:
            # Distinct x values can still cancel out in floating point
            raise DegenerateInput("Cannot compute the slope: denominator is 0.")

        slope = numerator / denominator
        intercept = (sum_y - slope * sum_x) / n
        _check_finite(slope=slope, intercept=intercept)

        min_x = float(np.min(xs))
        max_x = float(np.max(xs))
        line_points = (
            Point(min_x, slope * min_x + intercept),
            Point(max_x, slope * max_x + intercept),
        )
        _check_finite(line_start=line_points[0].y, line_end=line_points[1].y)

        # Goodness of fit
        if np.all(ys == ys[0]):
            r2 = None
        else:
            mean_y = sum_y / n
            ss_tot = float(np.sum((ys - mean_y) ** 2))
            ss_res = float(np.sum((ys - (slope * xs + intercept)) ** 2))
            _check_finite(ss_tot=ss_tot, ss_res=ss_res)
            r2 = None if ss_tot == 0.0 else 1.0 - ss_res / ss_tot

    logger.debug(f"Fitted {n} points: slope={slope}, intercept={intercept}, r2={r2}")

    return RegressionResult(
        n=n,
        slope=slope,
        intercept=intercept,
        equation=EQUATION_FORMAT.format(slope=slope, intercept=intercept),
        r2=r2,
        min_x=min_x,
        max_x=max_x,
        line_points=line_points
    )
