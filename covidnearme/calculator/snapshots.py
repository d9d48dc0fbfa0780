# Recidiviz - a data platform for criminal justice reform
# Copyright (C) 2020 Recidiviz, Inc.
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
# =============================================================================
"""Typed views of the live and historical documents stored by ingest."""
import datetime
from typing import Any, Dict, Optional

import attr

from covidnearme.common.errors import SnapshotDeserializationError
from covidnearme.ingest.record_parser import parse_count, parse_date


def parse_stored_count(value: Any) -> Optional[int]:
    """Reads a count field that may have been written as an int or as text.
    Missing and empty values are None."""
    if value is None:
        return None
    # bool is a subclass of int but is never a count
    if isinstance(value, bool):
        raise ValueError(f"Expected a count, found [{value!r}]")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return parse_count(value)
    raise ValueError(f"Expected a count, found [{value!r}]")


def _parse_stored_date(value: Any) -> datetime.date:
    if not isinstance(value, str):
        raise ValueError(f"Expected a date string, found [{value!r}]")
    return parse_date(value)


@attr.s(frozen=True)
class HistoricalSnapshot:
    date: datetime.date = attr.ib()
    cases: int = attr.ib()
    deaths: int = attr.ib()

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "HistoricalSnapshot":
        """Raises SnapshotDeserializationError if the date, case count or death
        count is missing or unparseable."""
        try:
            date = _parse_stored_date(document.get("Date"))
            cases = parse_stored_count(document.get("Cases"))
            deaths = parse_stored_count(document.get("Deaths"))
        except ValueError as e:
            raise SnapshotDeserializationError(
                f"Invalid historical document {document}: {e}"
            ) from e
        if cases is None or deaths is None:
            raise SnapshotDeserializationError(
                f"Historical document has no case or death count: {document}"
            )
        return cls(date=date, cases=cases, deaths=deaths)


@attr.s(frozen=True)
class LiveSnapshot:
    """The current counts for an entity, plus the raw document they came from
    so that every stored field can be carried through to the computed output."""

    entity_key: str = attr.ib()
    date: datetime.date = attr.ib()
    cases: int = attr.ib()

    # None when the feed does not report deaths for this entity
    deaths: Optional[int] = attr.ib()

    document: Dict[str, Any] = attr.ib(factory=dict, eq=False)

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "LiveSnapshot":
        """Raises SnapshotDeserializationError if the key, date or case count is
        missing or unparseable. An unparseable death count is read as
        unreported."""
        entity_key = document.get("Fips")
        if not isinstance(entity_key, str) or not entity_key:
            raise SnapshotDeserializationError(
                f"Live document has no entity key: {document}"
            )
        try:
            date = _parse_stored_date(document.get("Date"))
            cases = parse_stored_count(document.get("Cases"))
        except ValueError as e:
            raise SnapshotDeserializationError(
                f"Invalid live document for [{entity_key}]: {e}"
            ) from e
        if cases is None:
            raise SnapshotDeserializationError(
                f"Live document for [{entity_key}] has no case count"
            )
        try:
            deaths = parse_stored_count(document.get("Deaths"))
        except ValueError:
            deaths = None
        return cls(
            entity_key=entity_key,
            date=date,
            cases=cases,
            deaths=deaths,
            document=dict(document),
        )
