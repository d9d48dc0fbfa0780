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
"""Finds, for each of a fixed set of day offsets, the historical snapshot of an
entity whose age is closest to that offset.

Historical feeds can skip dates or report irregularly, so rather than requiring
a snapshot from exactly N days ago we take the nearest one in a window of
recent snapshots. Each match is scored by how many days it is off by; a score
of 0 is an exact match.
"""
import datetime
import logging
from typing import Dict, List, Sequence

import attr

from covidnearme.calculator.snapshots import HistoricalSnapshot
from covidnearme.common.errors import SnapshotDeserializationError
from covidnearme.firestore.firestore_client import FieldCondition, FirestoreClient
from covidnearme.ingest.record_parser import DATE_FORMAT

TARGET_DAY_OFFSETS = (1, 14, 15, 25, 26, 49)

# Enough snapshots to cover the largest offset with some room for gaps
LOOKBACK_WINDOW_SIZE = 50


@attr.s(frozen=True)
class LookbackResult:
    cases: int = attr.ib()
    deaths: int = attr.ib()

    # Number of days between the snapshot's age and the target offset
    score: int = attr.ib()


def fetch_recent_snapshots(
    firestore_client: FirestoreClient,
    collection_name: str,
    entity_key: str,
    today: datetime.date,
) -> List[HistoricalSnapshot]:
    """Returns up to LOOKBACK_WINDOW_SIZE historical snapshots for |entity_key|
    dated on or before |today|, most recent first. Documents that cannot be
    read are dropped."""
    documents = firestore_client.query_collection(
        collection_name,
        conditions=[
            FieldCondition("Fips", "==", entity_key),
            FieldCondition("Date", "<=", today.strftime(DATE_FORMAT)),
        ],
        order_by="Date",
        descending=True,
        limit=LOOKBACK_WINDOW_SIZE,
    )
    snapshots = []
    for document in documents:
        try:
            snapshots.append(HistoricalSnapshot.from_document(document))
        except SnapshotDeserializationError as e:
            logging.warning("Skipping historical snapshot for [%s]: %s", entity_key, e)
    return snapshots


def compute_lookback(
    snapshots: Sequence[HistoricalSnapshot],
    today: datetime.date,
    target_day_offsets: Sequence[int] = TARGET_DAY_OFFSETS,
) -> Dict[int, LookbackResult]:
    """Returns the best-scoring snapshot for each target offset.

    Snapshots are scanned in the order given. A later snapshot only replaces
    the current best match if it scores strictly lower, so on a tie the one
    scanned first wins. An offset is missing from the result only if there
    were no snapshots at all.
    """
    best_by_offset: Dict[int, LookbackResult] = {}
    for snapshot in snapshots:
        day_diff = (today - snapshot.date).days
        for target_day in target_day_offsets:
            score = abs(day_diff - target_day)
            best = best_by_offset.get(target_day)
            if best is None or score < best.score:
                best_by_offset[target_day] = LookbackResult(
                    cases=snapshot.cases, deaths=snapshot.deaths, score=score
                )
    return best_by_offset
