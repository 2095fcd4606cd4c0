"""
Dataset persistence for linreg.

A dataset is a named, immutable set of points. It is written together
with its points in one transaction, read back with a freshly computed
regression, and deleted as a unit (the database cascades the delete to
its points).

Creation runs in two phases: the name and points are validated and the
regression is computed entirely in memory, and only then is anything
written.
"""

import time
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError

from linreg.database.sql import DatabaseClient, Dataset, DataPoint
from linreg.exceptions import InvalidDatasetName, StoreError
from linreg.math.regression import (
    Point, PointLike, RegressionResult, coerce_points, compute_regression
)

# Set up logging
logger = logging.getLogger(__name__)


def current_time_ms() -> int:
    """Milliseconds since the epoch."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class DatasetSummary:
    """Dataset header with its persisted point count."""

    id: int
    name: str
    created_at_ms: int
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "createdAtMs": self.created_at_ms,
            "count": self.count,
        }


@dataclass(frozen=True)
class DatasetDetail:
    """Dataset with its points in insertion order and their regression."""

    id: int
    name: str
    created_at_ms: int
    points: Tuple[Point, ...]
    regression: RegressionResult

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "createdAtMs": self.created_at_ms,
            "points": [p.to_dict() for p in self.points],
            "regression": self.regression.to_dict(),
        }


class DatasetStore:
    """
    Creates, lists, reads and deletes datasets.
    """

    def __init__(self,
                 client: DatabaseClient,
                 clock: Optional[Callable[[], int]] = None,
                 max_name_length: int = 200):
        """
        Initialize a dataset store.

        Args:
            client: Database client holding the engine and sessions
            clock: Returns the current time in epoch milliseconds
            max_name_length: Longest accepted dataset name
        """
        self.client = client
        self.clock = clock or current_time_ms
        self.max_name_length = max_name_length

    @contextmanager
    def _transaction(self, action: str):
        """
        Run a block in one transaction, hiding database errors.

        Args:
            action: Description used in the log message

        Yields:
            SQLAlchemy session
        """
        try:
            with self.client.session() as session:
                yield session
        except SQLAlchemyError as e:
            logger.exception(f"Dataset store failed to {action}")
            raise StoreError() from e

    def _validate_name(self, name: Any) -> str:
        if not isinstance(name, str) or not name.strip():
            raise InvalidDatasetName("Dataset name is required.")

        name = name.strip()
        if len(name) > self.max_name_length:
            raise InvalidDatasetName(
                f"Dataset name must be at most {self.max_name_length} characters."
            )

        return name

    def create(self, name: str, points: Iterable[PointLike]) -> DatasetDetail:
        """
        Persist a new dataset with its points.

        Nothing is written unless the name and points are valid. The header
        and every point are committed together or not at all.

        Args:
            name: Display name
            points: Points in the order they should be stored

        Returns:
            DatasetDetail with the submitted points and their regression

        Raises:
            InvalidDatasetName, InvalidPoint, InsufficientData,
            NonFiniteValue, DegenerateInput, NumericOverflow: the input was
            rejected before any write
            StoreError: the transaction failed and was rolled back
        """
        # Phase 1: validate and compute, no resources touched
        name = self._validate_name(name)
        points = coerce_points(points)
        regression = compute_regression(points)

        # Phase 2: one atomic write
        created_at_ms = self.clock()
        with self._transaction("create dataset") as session:
            dataset = Dataset(name=name, created_at_ms=created_at_ms)
            session.add(dataset)
            session.flush()
            dataset_id = dataset.id

            session.execute(
                sa.insert(DataPoint),
                [{"dataset_id": dataset_id, "x": p.x, "y": p.y} for p in points]
            )

        logger.info(f"Created dataset {dataset_id} '{name}' with {len(points)} points")

        return DatasetDetail(
            id=dataset_id,
            name=name,
            created_at_ms=created_at_ms,
            points=tuple(points),
            regression=regression
        )

    def list(self) -> List[DatasetSummary]:
        """
        List every dataset, most recently created first.

        Point counts are aggregated from the data_points table on each call.

        Returns:
            List of DatasetSummary
        """
        count = sa.func.count(DataPoint.id)
        stmt = (
            sa.select(Dataset.id, Dataset.name, Dataset.created_at_ms, count.label("point_count"))
            .outerjoin(DataPoint, DataPoint.dataset_id == Dataset.id)
            .group_by(Dataset.id, Dataset.name, Dataset.created_at_ms)
            .order_by(Dataset.created_at_ms.desc(), Dataset.id.desc())
        )

        with self._transaction("list datasets") as session:
            rows = session.execute(stmt).all()

        logger.debug(f"Listed {len(rows)} datasets")

        return [
            DatasetSummary(
                id=row.id,
                name=row.name,
                created_at_ms=row.created_at_ms,
                count=int(row.point_count)
            )
            for row in rows
        ]

    def get(self, dataset_id: int) -> Optional[DatasetDetail]:
        """
        Get a dataset by ID.

        The header and points are read in the same transaction; the
        regression is recomputed from the persisted points.

        Args:
            dataset_id: Dataset ID

        Returns:
            DatasetDetail, or None if no such dataset exists
        """
        with self._transaction("read dataset") as session:
            dataset = session.get(Dataset, dataset_id)
            if dataset is None:
                logger.debug(f"Dataset {dataset_id} not found")
                return None

            header = (dataset.id, dataset.name, dataset.created_at_ms)
            rows = session.execute(
                sa.select(DataPoint.x, DataPoint.y)
                .where(DataPoint.dataset_id == dataset_id)
                .order_by(DataPoint.id.asc())
            ).all()

        points = tuple(Point(row.x, row.y) for row in rows)

        return DatasetDetail(
            id=header[0],
            name=header[1],
            created_at_ms=header[2],
            points=points,
            regression=compute_regression(points)
        )

    def delete(self, dataset_id: int) -> bool:
        """
        Delete a dataset and, through the foreign-key cascade, its points.

        Args:
            dataset_id: Dataset ID

        Returns:
            True if the dataset existed and was removed, False otherwise
        """
        with self._transaction("delete dataset") as session:
            result = session.execute(
                sa.delete(Dataset)
                .where(Dataset.id == dataset_id)
                .execution_options(synchronize_session=False)
            )
            deleted = result.rowcount > 0

        if deleted:
            logger.info(f"Deleted dataset {dataset_id}")
        else:
            logger.debug(f"Dataset {dataset_id} not found for deletion")

        return deleted
