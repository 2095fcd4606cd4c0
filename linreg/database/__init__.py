"""
Database integration for linreg.

This module provides functionality for connecting to the relational
store that holds datasets and their points.
"""

from linreg.database.sql import (
    Base, Dataset, DataPoint, DatabaseConfig, DatabaseClient
)
