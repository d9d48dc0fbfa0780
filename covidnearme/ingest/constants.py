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
"""Feed locations, collection names and scopes for COVID ingest."""
from enum import Enum

# Base location of the New York Times COVID-19 data repository
NYT_FEED_BASE_URL = "https://raw.githubusercontent.com/nytimes/covid-19-data/master"

# The feed omits a FIPS code for New York City, so its rows are stored under this key
NEW_YORK_CITY_COUNTY_NAME = "New York City"
NEW_YORK_CITY_ENTITY_KEY = "NYC"


class Scope(Enum):
    """The geographic grain of a feed. Each scope has its own feeds, its own set
    of collections and its own ingest offset."""

    STATES = "states"
    COUNTIES = "counties"

    @property
    def offset_name(self) -> str:
        """Id of the document in the offsets collection tracking this scope."""
        return {Scope.STATES: "state", Scope.COUNTIES: "county"}[self]

    @property
    def live_collection(self) -> str:
        return f"{self.value}-live"

    @property
    def historical_collection(self) -> str:
        return f"{self.value}-historical"

    @property
    def api_collection(self) -> str:
        return f"{self.value}-api"

    @property
    def live_url(self) -> str:
        return f"{NYT_FEED_BASE_URL}/live/us-{self.value}.csv"

    @property
    def historical_url(self) -> str:
        return f"{NYT_FEED_BASE_URL}/us-{self.value}.csv"
