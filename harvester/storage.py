import json
import logging
from pathlib import Path
from typing import Union
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from .models import HarvestSnapshot

logger = logging.getLogger(__name__)


@retry(
    retry=retry_if_exception_type(OSError),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    stop=stop_after_attempt(3),
    reraise=True,
)
def save_snapshot(snapshot: HarvestSnapshot, destination: Union[str, Path]) -> Path:
    """
    Write a snapshot as indented JSON.

    Parent directories are created as needed. Transient filesystem errors
    are retried a few times before giving up.
    """
    path = Path(destination)
    path.parent.mkdir(parents=True, exist_ok=True)

    document = snapshot.model_dump(by_alias=True, mode="json")
    path.write_text(
        json.dumps(document, indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
    )
    logger.info(f"💾 Saved {snapshot.count} repositories to {path}")
    return path


def load_snapshot(source: Union[str, Path]) -> HarvestSnapshot:
    """Read a snapshot written by ``save_snapshot``."""
    with open(source, encoding="utf-8") as f:
        return HarvestSnapshot.model_validate(json.load(f))
