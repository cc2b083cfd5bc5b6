"""Per-batch unit multiplier encoded in a plan's specification text.

Specifications carry the pack size as digits right before a marker, e.g.
``"20입"`` means 20 units per counted batch:

    >>> unit_multiplier("20입")
    20
    >>> unit_multiplier("")
    1
"""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

DEFAULT_UNIT_MARKER = "입"


def unit_multiplier(specification: str | None, marker: str = DEFAULT_UNIT_MARKER) -> int:
    """Integer immediately preceding ``marker``; 1 when there is none."""
    s = str(specification or "")
    m = re.search(r"(\d+)" + re.escape(marker), s)
    if not m:
        if s.strip():
            logger.debug("Sin multiplicador en especificación %r; se usa 1", s)
        return 1
    return int(m.group(1))


def produced_quantity(batch_count: int, specification: str | None, marker: str = DEFAULT_UNIT_MARKER) -> int:
    """Counter reading (batches) converted to produced units."""
    return int(batch_count) * unit_multiplier(specification, marker)
