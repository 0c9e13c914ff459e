from __future__ import annotations

from typing import Literal, Optional

from ordering.config import get_config
from ordering.logging import get_logger

from .backends.csv_backend import CsvDataAccess
from .backends.memory_backend import InMemoryDataAccess

logger = get_logger(__name__)


def get_data_access(kind: Optional[Literal["memory", "csv"]] = None) -> CsvDataAccess | InMemoryDataAccess:
    """Build the persistence + catalog backend named by config (or ``kind``).

    The choice is made once at startup. A backend that fails to load raises;
    it is never silently replaced by another one.
    """
    config = get_config()
    kind = kind or config.persistence_backend
    if kind == "memory":
        logger.info("Using in-memory order store")
        return InMemoryDataAccess()
    if kind == "csv":
        # Reads from configured CSV folder
        logger.info(f"Using CSV order store at {config.data_dir}")
        return CsvDataAccess(data_dir=config.data_dir)
    raise ValueError(f"Unknown data access kind: {kind}")
