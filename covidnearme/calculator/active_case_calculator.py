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
"""Computes and stores the active case estimate for every entity in a scope."""
import datetime
import logging
from typing import Any, Dict, Optional, Tuple

from covidnearme.calculator.active_case_estimator import (
    ActiveCaseEstimate,
    estimate_active_cases,
)
from covidnearme.calculator.historical_lookback import (
    compute_lookback,
    fetch_recent_snapshots,
)
from covidnearme.calculator.snapshots import LiveSnapshot
from covidnearme.firestore.firestore_client import FirestoreClient
from covidnearme.ingest.constants import Scope
from covidnearme.utils.future_executor import (
    ThreadPoolExecutorResult,
    map_fn_with_results,
)

# Fields copied from the live document into the computed document
LIVE_FIELDS = (
    "Date",
    "County",
    "State",
    "Fips",
    "Cases",
    "Deaths",
    "ConfirmedCases",
    "ConfirmedDeaths",
    "ProbableCases",
    "ProbableDeaths",
)


def build_computed_document(
    live_snapshot: LiveSnapshot, estimate: ActiveCaseEstimate
) -> Dict[str, Any]:
    return {
        **{field: live_snapshot.document.get(field) for field in LIVE_FIELDS},
        "Fips": live_snapshot.entity_key,
        "CalculatedDeaths": estimate.calculated_deaths,
        "ActiveCases": estimate.active_cases,
        "NewCasesToday": estimate.new_cases_today,
        "NewDeathsToday": estimate.new_deaths_today,
        "Score": estimate.score,
        "MissingLookbackDays": estimate.missing_day_offsets,
    }


def calculate_active_cases_for_entity(
    firestore_client: FirestoreClient,
    scope: Scope,
    live_document: Dict[str, Any],
    today: datetime.date,
) -> ActiveCaseEstimate:
    """Estimates active cases for the entity in |live_document| and writes the
    result to the scope's api collection."""
    live_snapshot = LiveSnapshot.from_document(live_document)
    snapshots = fetch_recent_snapshots(
        firestore_client, scope.historical_collection, live_snapshot.entity_key, today
    )
    estimate = estimate_active_cases(
        live_snapshot.cases, live_snapshot.deaths, compute_lookback(snapshots, today)
    )
    if estimate.missing_day_offsets:
        logging.warning(
            "No historical snapshots for [%s] at day offsets %s",
            live_snapshot.entity_key,
            estimate.missing_day_offsets,
        )
    firestore_client.set_document(
        f"{scope.api_collection}/{live_snapshot.entity_key}",
        build_computed_document(live_snapshot, estimate),
        merge=True,
    )
    return estimate


def store_active_cases(
    scope: Scope,
    firestore_client: FirestoreClient,
    max_workers: int,
    today: Optional[datetime.date] = None,
) -> ThreadPoolExecutorResult[Tuple[str, Dict[str, Any]], ActiveCaseEstimate]:
    """Computes active cases for every document in the scope's live collection.

    A failure for one entity is logged and returned in the result's exceptions;
    it never stops the other entities. Only a failure to read the live
    collection itself is raised.
    """
    as_of = today or datetime.datetime.now(tz=datetime.timezone.utc).date()

    live_documents = list(firestore_client.stream_collection(scope.live_collection))
    logging.info(
        "Computing active cases for [%d] entities in scope [%s]",
        len(live_documents),
        scope.value,
    )

    def _calculate(item: Tuple[str, Dict[str, Any]]) -> ActiveCaseEstimate:
        _document_id, live_document = item
        return calculate_active_cases_for_entity(
            firestore_client, scope, live_document, as_of
        )

    result = map_fn_with_results(
        work_items=live_documents,
        work_fn=_calculate,
        max_workers=max_workers,
    )

    for (document_id, _), e in result.exceptions:
        logging.error(
            "Failed to calculate and store active cases for [%s] in scope [%s]: %s",
            document_id,
            scope.value,
            e,
        )
    logging.info(
        "Stored active cases for [%d] entities in scope [%s], [%d] failed",
        len(result.successes),
        scope.value,
        len(result.exceptions),
    )
    return result
