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
"""Exceptions raised while ingesting COVID feeds and computing active cases."""


class CovidNearMeError(Exception):
    """Base class for all covidnearme errors."""


class FetchFailedError(CovidNearMeError):
    """Raised when a remote feed could not be fetched."""


class OffsetNotFoundError(CovidNearMeError):
    """Raised when no offset has ever been committed for an ingest scope."""


class InvalidOffsetError(CovidNearMeError):
    """Raised when a stored offset is not a non-negative integer."""


class MalformedRowError(CovidNearMeError):
    """Raised when a feed row does not match the shape expected for its dataset.

    A shape mismatch means the remote schema changed, so the whole pass is
    aborted rather than the single row being dropped.
    """


class IngestPassError(CovidNearMeError):
    """Raised when one or more upserts in an ingest pass failed."""

    def __init__(self, collection_name: str, failure_count: int, total_count: int):
        super().__init__(
            f"{failure_count} of {total_count} upserts to collection "
            f"[{collection_name}] failed"
        )
        self.collection_name = collection_name
        self.failure_count = failure_count
        self.total_count = total_count


class SnapshotDeserializationError(CovidNearMeError):
    """Raised when a stored document cannot be read back as a typed snapshot."""
