"""Chainage parsing and matching.

A chainage marks a linear position along the highway: ``K35+897`` is
kilometre 35 plus 897 metres, i.e. 35 897 m from the origin. Any letter
prefix is accepted (``K``, ``KM``, ``SCK``, ``DZ``, ``CK``, ``ZK``) and a
trailing side marker (``-RHS``, ``-LHS``, ``-CL`` ...) is ignored.

    K35+897       -> 35897
    K05+560       -> 5560
    SCK0+260      -> 260
    CK0+189.220   -> 189   (decimal metres truncated)
    K14+036.00    -> 14036
    K35+5         -> 35500 (one digit means hundreds)

Locations are either a single chainage or a range written with ``-``,
``–``, ``—`` or ``~`` between two chainages (``K35+500 - K36+500``).
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from ..common.logging_config import get_logger

logger = get_logger(__name__)

_SIDE_SUFFIX_RE = re.compile(r"[\-\s]*(RHS|LHS|R|L|LEFT|RIGHT|SR|TR|CL|CENTER|CENTRE)\s*$", re.IGNORECASE)
_PREFIX_RE = re.compile(r"^[A-Z]+\s*", re.IGNORECASE)
_KM_PLUS_RE = re.compile(r"^(\d+)\+(\d+)(?:\.(\d+))?$")
_KM_DOT_RE = re.compile(r"^(\d+)\.(\d{3})$")
_KM_ONLY_RE = re.compile(r"^(\d+)$")
_RANGE_RE = re.compile(
    r"^([A-Z]*\d+[+.]\d+(?:\.\d+)?)\s*[\-–—~]\s*([A-Z]*\d+[+.]\d+(?:\.\d+)?)",
    re.IGNORECASE,
)
_EXTRACT_RE = re.compile(r"([A-Z]*\d+(?:\+\d+)?)", re.IGNORECASE)


@dataclass(frozen=True)
class ChainageSpan:
    start: Optional[int] = None
    end: Optional[int] = None
    is_range: bool = False

    def as_dict(self) -> dict:
        return {"start": self.start, "end": self.end, "is_range": self.is_range}


def parse_chainage_to_meters(chainage: Optional[str]) -> Optional[int]:
    if not chainage:
        return None

    cleaned = chainage.strip().upper()
    cleaned = _SIDE_SUFFIX_RE.sub("", cleaned)
    cleaned = _PREFIX_RE.sub("", cleaned)

    m = _KM_PLUS_RE.match(cleaned)
    if m:
        km = int(m.group(1))
        digits = m.group(2)
        meters = int(digits)
        if len(digits) == 1:
            meters *= 100
        elif len(digits) == 2:
            meters *= 10
        return km * 1000 + min(meters, 999)

    m = _KM_DOT_RE.match(cleaned)
    if m:
        return int(m.group(1)) * 1000 + min(int(m.group(2)), 999)

    m = _KM_ONLY_RE.match(cleaned)
    if m:
        return int(m.group(1)) * 1000

    logger.debug("Failed to parse chainage input=%r cleaned=%r", chainage, cleaned)
    return None


def parse_location_to_meters(location: Optional[str]) -> ChainageSpan:
    if not location:
        return ChainageSpan()

    cleaned = location.strip().upper()
    m = _RANGE_RE.match(cleaned)
    if m:
        start = parse_chainage_to_meters(m.group(1))
        end = parse_chainage_to_meters(m.group(2))
        is_range = start is not None and end is not None
        if is_range and start > end:
            start, end = end, start
        return ChainageSpan(start=start, end=end, is_range=is_range)

    return ChainageSpan(start=parse_chainage_to_meters(location))


def parse_multiple_chainages(chainages: Optional[str]) -> list[int]:
    """Parse ``"K35+897, K36+987"``; unparseable parts are dropped, duplicates removed."""
    if not chainages:
        return []

    out: list[int] = []
    for part in re.split(r"\s*,\s*", chainages.strip()):
        meters = parse_chainage_to_meters(part)
        if meters is not None and meters not in out:
            out.append(meters)
    return out


def is_point_in_range(point: int, range_start: int, range_end: int) -> bool:
    if range_start > range_end:
        range_start, range_end = range_end, range_start
    return range_start <= point <= range_end


def do_ranges_overlap(start1: int, end1: int, start2: int, end2: int) -> bool:
    if start1 > end1:
        start1, end1 = end1, start1
    if start2 > end2:
        start2, end2 = end2, start2
    return start1 <= end2 and start2 <= end1


def normalize_chainage_format(chainage: Optional[str]) -> Optional[str]:
    meters = parse_chainage_to_meters(chainage)
    if meters is None:
        return None
    return "K%02d+%03d" % (meters // 1000, meters % 1000)


def format_meters(meters: Optional[int]) -> Optional[str]:
    if meters is None:
        return None
    return "K%02d+%03d" % (meters // 1000, meters % 1000)


def extract_chainage(location: Optional[str]) -> Optional[str]:
    if not location:
        return None
    m = _EXTRACT_RE.search(location)
    return m.group(1).upper() if m else None


def does_objection_match_rfi(
    specific_meters: Iterable[int],
    range_start: Optional[int],
    range_end: Optional[int],
    rfi_location: Optional[str],
) -> bool:
    """True when any objection chainage touches the RFI location.

    Specific point vs RFI point: exact match. Specific point vs RFI range:
    point inside range. Objection range vs RFI point: point inside range.
    Objection range vs RFI range: overlap.
    """
    rfi = parse_location_to_meters(rfi_location)
    if rfi.start is None:
        return False

    for point in specific_meters:
        if rfi.is_range:
            if is_point_in_range(point, rfi.start, rfi.end):
                return True
        elif point == rfi.start:
            return True

    if range_start is not None and range_end is not None:
        if rfi.is_range:
            return do_ranges_overlap(range_start, range_end, rfi.start, rfi.end)
        return is_point_in_range(rfi.start, range_start, range_end)

    return False
