"""Topic derivation from the documents folder layout."""

from __future__ import annotations

import logging
from pathlib import Path

from docshelf.models import GENERAL_TOPIC

LOGGER = logging.getLogger(__name__)


def resolve_topic(path: Path, root: Path) -> str:
    """Return the topic of a document: its immediate parent folder name.

    Files directly under ``root`` (or without a parent) belong to the
    ``"general"`` topic. Deeper nesting collapses to the nearest folder:
    ``root/tax-law/eu/vat.pdf`` has topic ``"eu"``.
    """
    parent = Path(path).resolve().parent
    if parent == Path(root).resolve() or parent.name == "":
        LOGGER.debug("%s is at root level, topic %r", Path(path).name, GENERAL_TOPIC)
        return GENERAL_TOPIC
    return parent.name
