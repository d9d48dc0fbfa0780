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

"""This file contains the ingest passes for the live and historical COVID feeds.

Historical feeds are append-only, so each pass only fetches the bytes added
since the last committed offset. Live feeds are a current snapshot and are
re-read in full on every pass.
"""
import logging
from typing import Optional

import attr

from covidnearme.common.errors import IngestPassError
from covidnearme.firestore.firestore_client import FirestoreClient
from covidnearme.ingest.constants import Scope
from covidnearme.ingest.firestore_upserter import FirestoreUpserter, UpsertResult
from covidnearme.ingest.incremental_fetcher import IncrementalFetcher
from covidnearme.ingest.offset_store import OffsetStore
from covidnearme.ingest.record_parser import DatasetShape, parse_rows

_HISTORICAL_SHAPES = {
    Scope.STATES: DatasetShape.STATE_HISTORICAL,
    Scope.COUNTIES: DatasetShape.COUNTY_HISTORICAL,
}

_LIVE_SHAPES = {
    Scope.STATES: DatasetShape.STATE_LIVE,
    Scope.COUNTIES: DatasetShape.COUNTY_LIVE,
}


@attr.define(kw_only=True)
class IngestSummary:
    scope: Scope
    rows_written: int
    rows_skipped: int

    # The offset committed at the end of the pass, or None if no offset was
    # committed. Always None for live passes.
    committed_offset: Optional[int] = None


def ingest_historical(
    scope: Scope,
    firestore_client: FirestoreClient,
    fetcher: IncrementalFetcher,
    max_workers: int,
) -> IngestSummary:
    """Ingests the rows appended to the historical feed for |scope| since the
    last pass, then advances the offset past them.

    The offset is only committed after every write in the pass has finished,
    and not at all if any of them failed, so a failed pass is retried in full
    from the previous offset next time.

    Raises:
        OffsetNotFoundError: if the offset for |scope| was never initialized.
        FetchFailedError: if the feed could not be fetched.
        MalformedRowError: if any row does not match the feed's shape.
        IngestPassError: if any row could not be written.
    """
    offset_store = OffsetStore(firestore_client)
    previous_offset = offset_store.get(scope)
    url = scope.historical_url

    logging.info(
        "Starting historical ingest for scope [%s] from offset [%d]",
        scope.value,
        previous_offset,
    )
    fetch_result = fetcher.fetch_range(url, previous_offset)

    if fetch_result.no_new_data:
        return IngestSummary(
            scope=scope,
            rows_written=0,
            rows_skipped=0,
            committed_offset=_refresh_offset(
                offset_store, scope, previous_offset, fetch_result.resource_length
            ),
        )

    # The header was consumed along with the first bytes of the file, so it
    # is only present when starting from the beginning.
    rows = parse_rows(
        _HISTORICAL_SHAPES[scope],
        fetch_result.lines(skip_header=previous_offset == 0),
    )

    upserter = FirestoreUpserter(
        firestore_client, scope.historical_collection, max_workers
    )
    upsert_result = upserter.upsert_all(rows)
    _raise_if_failed(upserter.collection_name, upsert_result)

    next_offset = fetch_result.next_offset
    offset_store.commit(scope, next_offset)
    return IngestSummary(
        scope=scope,
        rows_written=len(upsert_result.successes),
        rows_skipped=len(upsert_result.skipped),
        committed_offset=next_offset,
    )


def ingest_live(
    scope: Scope,
    firestore_client: FirestoreClient,
    fetcher: IncrementalFetcher,
    max_workers: int,
) -> IngestSummary:
    """Ingests the full live feed for |scope|, overwriting each entity's live
    document.

    Raises:
        FetchFailedError: if the feed could not be fetched.
        MalformedRowError: if any row does not match the feed's shape.
        IngestPassError: if any row could not be written.
    """
    logging.info("Starting live ingest for scope [%s]", scope.value)
    fetch_result = fetcher.fetch_full(scope.live_url)
    rows = parse_rows(_LIVE_SHAPES[scope], fetch_result.lines(skip_header=True))

    upserter = FirestoreUpserter(firestore_client, scope.live_collection, max_workers)
    upsert_result = upserter.upsert_all(rows)
    _raise_if_failed(upserter.collection_name, upsert_result)

    return IngestSummary(
        scope=scope,
        rows_written=len(upsert_result.successes),
        rows_skipped=len(upsert_result.skipped),
    )


def _refresh_offset(
    offset_store: OffsetStore,
    scope: Scope,
    previous_offset: int,
    resource_length: Optional[int],
) -> Optional[int]:
    """Re-commits the offset after a pass that found no new data. Returns the
    committed offset, or None if nothing was committed."""
    if resource_length is None:
        logging.info(
            "No new data for scope [%s]; leaving offset at [%d]",
            scope.value,
            previous_offset,
        )
        return None
    if resource_length < previous_offset:
        # The feed got shorter, so it was rewritten rather than appended to.
        logging.error(
            "Feed for scope [%s] is [%d] bytes but offset is [%d]; leaving offset unchanged",
            scope.value,
            resource_length,
            previous_offset,
        )
        return None
    if resource_length > previous_offset:
        # Only a partial row has been appended so far.
        logging.info(
            "Feed for scope [%s] has no complete new rows; leaving offset at [%d]",
            scope.value,
            previous_offset,
        )
        return None
    offset_store.commit(scope, resource_length)
    return resource_length


def _raise_if_failed(collection_name: str, upsert_result: UpsertResult) -> None:
    if not upsert_result.is_clean:
        raise IngestPassError(
            collection_name,
            failure_count=len(upsert_result.failures),
            total_count=len(upsert_result.successes) + len(upsert_result.failures),
        )
