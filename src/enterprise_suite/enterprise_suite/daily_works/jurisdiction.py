from __future__ import annotations

import re
import time
from typing import Callable, Hashable, Iterable, Optional, Sequence

from ..common.logging_config import get_logger
from ..core.exceptions import ValidationError
from .model import Jurisdiction

logger = get_logger(__name__)

_CHAINAGE = r"[A-Z]*K[0-9]+(?:\+[0-9]+(?:\.[0-9]+)?)?"
_LOCATION_RE = re.compile(rf"({_CHAINAGE})\s*-\s*({_CHAINAGE})|({_CHAINAGE})")
_KM_RE = re.compile(r"K(\d+)(?:\+(\d+(?:\.\d+)?))?")


def chainage_to_float(chainage: str) -> float:
    """K05+900 -> 5.9; anything without a K marker -> 0."""
    m = _KM_RE.search((chainage or "").strip().upper())
    if not m:
        return 0.0
    additional = float(m.group(2)) if m.group(2) else 0.0
    return int(m.group(1)) + additional / 1000


def format_chainage_for_display(chainage: str) -> str:
    cleaned = (chainage or "").strip().upper()
    m = _KM_RE.search(cleaned)
    if not m:
        return cleaned
    additional = int(float(m.group(2))) if m.group(2) else 0
    return "K%02d+%03d" % (int(m.group(1)), additional)


def parse_location(location: str) -> tuple[Optional[str], Optional[str]]:
    """Split a location like ``K30+560-K30+570`` or ``K13 TOLL STATION`` into start/end chainages."""
    m = _LOCATION_RE.search((location or "").upper())
    if not m:
        return None, None
    if m.group(1):
        return m.group(1), m.group(2)
    return m.group(3), None


def find_jurisdiction(location: str, jurisdictions: Iterable[Jurisdiction]) -> Optional[Jurisdiction]:
    """First jurisdiction covering the start chainage of ``location``, else its end chainage."""
    start, end = parse_location(location)
    if not start:
        logger.debug("No chainage pattern found in location %r", location)
        return None

    start_value = chainage_to_float(start)
    end_value = chainage_to_float(end) if end else None

    for j in jurisdictions:
        lo = chainage_to_float(j.start_chainage)
        hi = chainage_to_float(j.end_chainage)
        if lo <= start_value <= hi:
            return j
        if end_value is not None and lo <= end_value <= hi:
            return j

    logger.debug("No jurisdiction found for location %r", location)
    return None


class JurisdictionMatcher:
    """Finds the jurisdiction (and so the in-charge) covering a work location.

    Jurisdictions are cached for ``ttl_seconds`` to keep bulk imports from
    reloading them for every row. ``scope`` names the cache slot (the bound
    tenant database) so tenants never see each other's jurisdictions.
    """

    def __init__(
        self,
        loader: Callable[[], Sequence[Jurisdiction]],
        *,
        ttl_seconds: int = 300,
        clock=time.monotonic,
        scope: Callable[[], Hashable] = lambda: None,
    ):
        self._loader = loader
        self._ttl = ttl_seconds
        self._clock = clock
        self._scope = scope
        self._cached: dict[Hashable, tuple[float, Sequence[Jurisdiction]]] = {}

    def jurisdictions(self) -> Sequence[Jurisdiction]:
        now = self._clock()
        key = self._scope()
        hit = self._cached.get(key)
        if hit is None or now - hit[0] > self._ttl:
            hit = (now, list(self._loader()))
            self._cached[key] = hit
        return hit[1]

    def clear_cache(self) -> None:
        self._cached.clear()

    def find_for_location(self, location: str) -> Optional[Jurisdiction]:
        return find_jurisdiction(location, self.jurisdictions())

    def assign_incharge(self, values: dict) -> dict:
        """Set ``incharge`` and ``assigned`` from the jurisdiction covering ``values["location"]``."""
        jurisdiction = self.find_for_location(values["location"])
        if not jurisdiction:
            raise ValidationError("No jurisdiction found for the specified location.")
        values["incharge"] = jurisdiction.incharge
        values["assigned"] = jurisdiction.assigned
        return values
