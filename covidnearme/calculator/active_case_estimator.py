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
"""Estimates the number of active COVID cases for an entity.

Active case algorithm, taken from:
https://www.esri.com/arcgis-blog/products/js-api-arcgis/mapping/animate-and-explore-covid-19-data-through-time/#active
"""
from typing import Dict, List, Optional

import attr

from covidnearme.calculator.historical_lookback import (
    TARGET_DAY_OFFSETS,
    LookbackResult,
)

# Offsets whose scores make up the freshness score of an estimate
SCORED_DAY_OFFSETS = (14, 15, 25, 26, 49)

# Used in place of the reported death count when none is reported
ESTIMATED_DEATH_RATE = 0.01


@attr.s(frozen=True)
class ActiveCaseEstimate:
    active_cases: int = attr.ib()
    new_cases_today: int = attr.ib()
    new_deaths_today: int = attr.ib()

    # Whether deaths were estimated from cases instead of reported
    calculated_deaths: bool = attr.ib()

    # Sum of the lookback scores; 0 means every lookback was an exact match
    score: int = attr.ib()

    # Target offsets that had no historical snapshot and were counted as zero
    missing_day_offsets: List[int] = attr.ib(factory=list)


def compute_active_case_count(
    current: int,
    days14: int,
    days15: int,
    days25: int,
    days26: int,
    days49: int,
    deaths: int,
) -> int:
    """Cases from the last 14 days, plus a decaying share of the cases from the
    two earlier windows, minus cumulative deaths. Truncated toward zero."""
    return int(
        float(current - days14)
        + 0.19 * float(days15 - days25)
        + 0.05 * float(days26 - days49)
        - float(deaths)
    )


def estimate_active_cases(
    current_cases: int,
    current_deaths: Optional[int],
    lookback: Dict[int, LookbackResult],
) -> ActiveCaseEstimate:
    """Combines an entity's current counts with its lookback results.

    When no deaths are reported (zero or missing), ESTIMATED_DEATH_RATE of the
    current cases is used for the active case count instead, and no new deaths
    are reported for the day since there is no real count to diff against.
    """
    missing_day_offsets = [
        day_offset for day_offset in TARGET_DAY_OFFSETS if day_offset not in lookback
    ]
    empty_result = LookbackResult(cases=0, deaths=0, score=0)

    def cases_at(day_offset: int) -> int:
        return lookback.get(day_offset, empty_result).cases

    if current_deaths:
        calculated_deaths = False
        deaths = current_deaths
        new_deaths_today = deaths - lookback.get(1, empty_result).deaths
    else:
        calculated_deaths = True
        deaths = int(current_cases * ESTIMATED_DEATH_RATE)
        new_deaths_today = 0

    return ActiveCaseEstimate(
        active_cases=compute_active_case_count(
            current_cases,
            cases_at(14),
            cases_at(15),
            cases_at(25),
            cases_at(26),
            cases_at(49),
            deaths,
        ),
        new_cases_today=current_cases - cases_at(1),
        new_deaths_today=new_deaths_today,
        calculated_deaths=calculated_deaths,
        score=sum(
            lookback.get(day_offset, empty_result).score
            for day_offset in SCORED_DAY_OFFSETS
        ),
        missing_day_offsets=missing_day_offsets,
    )
