"""
JSON export of pipeline findings.

Results are buffered in memory and written as a JSON array of
``{"type", "data", "timestamp"}`` records.
"""

import asyncio
import json
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from src.utils.logging import get_logger

logger = get_logger(__name__)


class ResultEncoder(json.JSONEncoder):
    """JSON encoder for datetimes, enums, exceptions and payload dataclasses."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, Exception):
            return str(obj)
        if hasattr(obj, "to_dict"):
            return obj.to_dict()
        return super().default(obj)


def serialize_results(results: list[dict[str, Any]]) -> str:
    """
    Serialize buffered results to indented JSON text.

    Raises:
        ValueError: If a result holds a NaN or infinite float
    """
    return json.dumps(
        results,
        cls=ResultEncoder,
        indent=2,
        ensure_ascii=False,
        allow_nan=False,
    )


class ResultExporter:
    """Buffer pipeline events and save them to a JSON file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._results: list[dict[str, Any]] = []

    @property
    def results(self) -> tuple[dict[str, Any], ...]:
        return tuple(self._results)

    def add_result(self, kind: str, data: Any) -> None:
        """Buffer a result for later export."""
        self._results.append(
            {
                "type": kind,
                "data": data,
                "timestamp": datetime.now(UTC),
            }
        )

    async def save(self) -> bool:
        """
        Write all buffered results to ``path``.

        Returns:
            True if the file was written, False if serializing or writing failed
        """
        try:
            text = serialize_results(self._results)
            await asyncio.to_thread(self.path.write_text, text, encoding="utf-8")
        except (OSError, ValueError) as e:
            logger.error("Failed to save results", path=str(self.path), error=str(e))
            return False

        logger.info("Results saved", path=str(self.path), count=len(self._results))
        return True
