"""
Read operations the front end consumes.

Each call opens its own short-lived session so request threads can read the
store concurrently. Results are detached from the session before they are
returned.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from tpl_app.models import FeatureSet, Machine
from tpl_app.store import CatalogStore

logger = logging.getLogger(__name__)


class MachineCatalogService:
    """Queries over the machine catalog for one store."""

    def __init__(self, store: CatalogStore) -> None:
        self.store = store

    def get_all_active_machines(self) -> list[Machine]:
        """Every machine currently flagged active; empty on database error."""
        try:
            with self.store.session() as session:
                machines = list(session.scalars(select(Machine).where(Machine.active.is_(True))))
                session.expunge_all()
                return machines
        except SQLAlchemyError as exc:
            logger.error("Unable to query active machines", extra={"error": str(exc)})
            return []

    def get_features(self, feature_set_id: int) -> str:
        """Canonical feature string for ``feature_set_id``; ``""`` if missing."""
        try:
            with self.store.session() as session:
                features = session.scalar(select(FeatureSet.features).where(FeatureSet.id == feature_set_id))
        except SQLAlchemyError as exc:
            logger.error(
                "Unable to query features",
                extra={"features_id": feature_set_id, "error": str(exc)},
            )
            return ""
        if features is None:
            logger.debug("Feature set not found", extra={"features_id": feature_set_id})
            return ""
        return features

    def count_active_machines(self) -> int:
        try:
            with self.store.session() as session:
                return session.scalar(select(func.count()).select_from(Machine).where(Machine.active.is_(True))) or 0
        except SQLAlchemyError as exc:
            logger.error("Unable to count active machines", extra={"error": str(exc)})
            return 0

    def count_machines(self) -> int:
        try:
            with self.store.session() as session:
                return session.scalar(select(func.count()).select_from(Machine)) or 0
        except SQLAlchemyError as exc:
            logger.error("Unable to count machines", extra={"error": str(exc)})
            return 0
