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
"""Converts rows of the NYT COVID feeds into typed records.

There are two grains of feed (states and counties) and two kinds of feed (live
and historical). County feeds have an extra County column right after Date:

    Historical: Date, [County,] State, Fips, Cases, Deaths
    Live:       Date, [County,] State, Fips, Cases, Deaths, ConfirmedCases,
                ConfirmedDeaths, ProbableCases, ProbableDeaths
"""
import csv
import datetime
from enum import Enum
from typing import Iterable, List, Optional, Union

import attr

from covidnearme.common.errors import MalformedRowError
from covidnearme.ingest.constants import (
    NEW_YORK_CITY_COUNTY_NAME,
    NEW_YORK_CITY_ENTITY_KEY,
)

DATE_FORMAT = "%Y-%m-%d"


class DatasetShape(Enum):
    STATE_HISTORICAL = "state_historical"
    COUNTY_HISTORICAL = "county_historical"
    STATE_LIVE = "state_live"
    COUNTY_LIVE = "county_live"

    @property
    def has_county(self) -> bool:
        return self in (DatasetShape.COUNTY_HISTORICAL, DatasetShape.COUNTY_LIVE)

    @property
    def is_live(self) -> bool:
        return self in (DatasetShape.STATE_LIVE, DatasetShape.COUNTY_LIVE)

    @property
    def column_count(self) -> int:
        base_column_count = 9 if self.is_live else 5
        return base_column_count + 1 if self.has_county else base_column_count


@attr.s(frozen=True)
class HistoricalRow:
    """Cumulative counts for one entity on one date."""

    date: datetime.date = attr.ib()
    county: Optional[str] = attr.ib()
    state: str = attr.ib()
    fips: str = attr.ib()
    cases: Optional[int] = attr.ib()
    deaths: Optional[int] = attr.ib()

    @property
    def entity_key(self) -> str:
        return entity_key(self.county, self.fips)

    @property
    def document_id(self) -> str:
        return f"{self.entity_key}_{self.date.strftime(DATE_FORMAT)}"

    def to_document(self) -> dict:
        return {
            "Date": self.date.strftime(DATE_FORMAT),
            "County": self.county or "",
            "State": self.state,
            "Fips": self.entity_key,
            "Cases": self.cases,
            "Deaths": self.deaths,
        }


@attr.s(frozen=True)
class LiveRow:
    """The current cumulative counts for one entity."""

    date: datetime.date = attr.ib()
    county: Optional[str] = attr.ib()
    state: str = attr.ib()
    fips: str = attr.ib()
    cases: Optional[int] = attr.ib()
    deaths: Optional[int] = attr.ib()
    confirmed_cases: Optional[int] = attr.ib()
    confirmed_deaths: Optional[int] = attr.ib()
    probable_cases: Optional[int] = attr.ib()
    probable_deaths: Optional[int] = attr.ib()

    @property
    def entity_key(self) -> str:
        return entity_key(self.county, self.fips)

    @property
    def document_id(self) -> str:
        return self.entity_key

    def to_document(self) -> dict:
        return {
            "Date": self.date.strftime(DATE_FORMAT),
            "County": self.county or "",
            "State": self.state,
            "Fips": self.entity_key,
            "Cases": self.cases,
            "Deaths": self.deaths,
            "ConfirmedCases": self.confirmed_cases,
            "ConfirmedDeaths": self.confirmed_deaths,
            "ProbableCases": self.probable_cases,
            "ProbableDeaths": self.probable_deaths,
        }


FeedRow = Union[HistoricalRow, LiveRow]


def entity_key(county: Optional[str], fips: str) -> str:
    """Returns the key an entity is stored under. This is its FIPS code, except
    for New York City which has no FIPS code in the feed."""
    if county == NEW_YORK_CITY_COUNTY_NAME:
        return NEW_YORK_CITY_ENTITY_KEY
    return fips.strip()


def parse_date(value: str) -> datetime.date:
    return datetime.datetime.strptime(value.strip(), DATE_FORMAT).date()


def parse_count(value: str) -> Optional[int]:
    """Parses a count column. Empty means the count was not reported."""
    value = value.strip()
    if not value:
        return None
    return int(value)


def parse_row(shape: DatasetShape, row: List[str]) -> FeedRow:
    """Parses a single split row of a feed with the given |shape|.

    Raises:
        MalformedRowError: if the row does not have the column count of |shape|
            or a date or count column cannot be parsed.
    """
    if len(row) != shape.column_count:
        raise MalformedRowError(
            f"Expected [{shape.column_count}] columns for {shape.value} row, "
            f"found [{len(row)}]: {row}"
        )

    values = list(row)
    county = values.pop(1) if shape.has_county else None
    try:
        date = parse_date(values[0])
        counts = [parse_count(value) for value in values[3:]]
    except ValueError as e:
        raise MalformedRowError(f"Could not parse {shape.value} row {row}: {e}") from e

    if shape.is_live:
        return LiveRow(date, county, values[1], values[2], *counts)
    return HistoricalRow(date, county, values[1], values[2], *counts)


def parse_rows(shape: DatasetShape, lines: Iterable[str]) -> List[FeedRow]:
    """Parses CSV |lines| of a feed. Any malformed row fails the whole batch."""
    return [parse_row(shape, row) for row in csv.reader(lines) if row]
