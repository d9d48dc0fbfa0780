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
"""Writes parsed feed rows to a Firestore collection, one task per row."""
import logging
from typing import List, Sequence, Tuple

import attr

from covidnearme.firestore.firestore_client import FirestoreClient
from covidnearme.ingest.record_parser import FeedRow
from covidnearme.utils.future_executor import map_fn_with_results


@attr.define(kw_only=True)
class UpsertResult:
    # Rows that were written
    successes: List[FeedRow]

    # Rows whose write raised, with the exception that was raised
    failures: List[Tuple[FeedRow, Exception]]

    # Rows with no entity key to store them under
    skipped: List[FeedRow]

    @property
    def is_clean(self) -> bool:
        return not self.failures


class FirestoreUpserter:
    """Upserts rows into |collection_name| keyed by each row's document id.

    Writes merge into any existing document, so writing the same row twice
    leaves the collection unchanged.
    """

    def __init__(
        self, firestore_client: FirestoreClient, collection_name: str, max_workers: int
    ):
        self.firestore_client = firestore_client
        self.collection_name = collection_name
        self.max_workers = max_workers

    def upsert_all(self, rows: Sequence[FeedRow]) -> UpsertResult:
        """Upserts every row concurrently and returns once all writes have
        finished. A failed write is recorded and does not stop the others."""
        keyed_rows = []
        skipped = []
        for row in rows:
            if row.entity_key:
                keyed_rows.append(row)
            else:
                skipped.append(row)
        if skipped:
            logging.info(
                "Skipping [%d] rows with no entity key for collection [%s]",
                len(skipped),
                self.collection_name,
            )

        result = map_fn_with_results(
            work_items=keyed_rows,
            work_fn=self._upsert_row,
            max_workers=self.max_workers,
        )

        for row, e in result.exceptions:
            logging.error(
                "Failed to write document [%s] to collection [%s]: %s",
                row.document_id,
                self.collection_name,
                e,
            )
        logging.info(
            "Wrote [%d] documents to collection [%s], [%d] failed",
            len(result.successes),
            self.collection_name,
            len(result.exceptions),
        )
        return UpsertResult(
            successes=[row for row, _ in result.successes],
            failures=result.exceptions,
            skipped=skipped,
        )

    def _upsert_row(self, row: FeedRow) -> None:
        self.firestore_client.set_document(
            f"{self.collection_name}/{row.document_id}",
            row.to_document(),
            merge=True,
        )
