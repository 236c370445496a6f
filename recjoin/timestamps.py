"""Capture time extraction from camera segment file names

Recognized naming conventions (the file extension is not part of the
name passed in):

- ``<minutes>M<seconds>S_<unix seconds>``, e.g. ``58M59S_1710937139``
- ``<start yyyyMMddHHmmss>_<end yyyyMMddHHmmss>``, e.g.
  ``20240320192213_20240320193309``

Both may carry a two digit camera channel prefix such as ``00_`` or
``10_`` (dual-lens cameras write one series per lens).
"""

import logging
import re
from datetime import datetime
from typing import Optional

logger = logging.getLogger(__name__)

_CHANNEL_PREFIX = re.compile(r"^\d{2}_")
_UNIX_TICKS_NAME = re.compile(r"^\d+M\d+S_(\d+)$", re.IGNORECASE)
_START_END_NAME = re.compile(r"^(\d{14})_\d{14}$")


def extract_timestamp(stem: str) -> Optional[datetime]:
    """Return the capture time encoded in a file name, or None if unrecognized."""
    if not stem:
        return None
    stem = _CHANNEL_PREFIX.sub("", stem, count=1)

    m = _UNIX_TICKS_NAME.match(stem)
    if m:
        try:
            return datetime.fromtimestamp(int(m.group(1)))
        except (OverflowError, OSError, ValueError) as e:
            logger.debug("Timestamp out of range in %s: %s", stem, e)
            return None

    m = _START_END_NAME.match(stem)
    if m:
        try:
            return datetime.strptime(m.group(1), "%Y%m%d%H%M%S")
        except ValueError as e:
            logger.debug("Invalid date in %s: %s", stem, e)
            return None

    return None
