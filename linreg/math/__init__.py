"""
Numerical components for linreg.

This module provides the least-squares line fit used by the dataset
store and the HTTP API.
"""

from linreg.math.regression import (
    Point, RegressionResult, coerce_points, validate_points, compute_regression
)
