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
"""Tests for the COVID ingest and calculation endpoints"""
import datetime
import unittest
from http import HTTPStatus
from unittest import mock

from flask import Flask
from google.api_core import exceptions

from covidnearme.endpoints import get_covid_blueprint
from covidnearme.ingest.constants import Scope
from covidnearme.ingest.incremental_fetcher import IncrementalFetcher
from covidnearme.ingest.offset_store import OffsetStore
from covidnearme.tests.firestore.fake_firestore_client import FakeFirestoreClient
from covidnearme.tests.ingest.fake_feed_session import FakeFeedSession

_STATE_HISTORICAL = (
    b"date,state,fips,cases,deaths\n"
    b"2020-03-01,Washington,53,10,1\n"
    b"2020-03-02,Washington,53,15,1\n"
)


class CovidEndpointsTest(unittest.TestCase):
    """Tests for the routes in get_covid_blueprint"""

    def setUp(self) -> None:
        self.firestore_client = FakeFirestoreClient()
        self.session = FakeFeedSession()
        app = Flask(__name__)
        app.register_blueprint(
            get_covid_blueprint(
                self.firestore_client,
                IncrementalFetcher(self.session),  # type: ignore[arg-type]
                max_workers=4,
            ),
            url_prefix="/covid",
        )
        self.client = app.test_client()

    def test_unknown_scope(self) -> None:
        for route in ["ingest_live", "ingest_historical", "store_active_cases"]:
            response = self.client.post(f"/covid/{route}/cities")
            self.assertEqual(HTTPStatus.BAD_REQUEST, response.status_code)
            self.assertIn("Unknown scope [cities]", response.get_data(as_text=True))

    def test_get_not_allowed(self) -> None:
        response = self.client.get("/covid/ingest_live/states")
        self.assertEqual(HTTPStatus.METHOD_NOT_ALLOWED, response.status_code)

    def test_ingest_historical(self) -> None:
        OffsetStore(self.firestore_client).initialize(Scope.STATES)
        self.session.resources[Scope.STATES.historical_url] = _STATE_HISTORICAL

        response = self.client.post("/covid/ingest_historical/states")

        self.assertEqual(HTTPStatus.OK, response.status_code)
        self.assertEqual(
            len(_STATE_HISTORICAL),
            OffsetStore(self.firestore_client).get(Scope.STATES),
        )
        self.assertEqual(
            {"53_2020-03-01", "53_2020-03-02"},
            set(self.firestore_client.collection_contents("states-historical")),
        )

    def test_ingest_historical_without_offset(self) -> None:
        self.session.resources[Scope.STATES.historical_url] = _STATE_HISTORICAL

        response = self.client.post("/covid/ingest_historical/states")

        self.assertEqual(HTTPStatus.INTERNAL_SERVER_ERROR, response.status_code)
        self.assertEqual(
            {}, self.firestore_client.collection_contents("states-historical")
        )

    def test_ingest_historical_invalid_utf8(self) -> None:
        OffsetStore(self.firestore_client).initialize(Scope.STATES)
        self.session.resources[Scope.STATES.historical_url] = (
            _STATE_HISTORICAL + b"2020-03-03,Wash\xffington,53,20,1\n"
        )

        response = self.client.post("/covid/ingest_historical/states")

        self.assertEqual(HTTPStatus.INTERNAL_SERVER_ERROR, response.status_code)
        self.assertIn("not valid UTF-8", response.get_data(as_text=True))
        self.assertEqual(0, OffsetStore(self.firestore_client).get(Scope.STATES))

    def test_ingest_live_fetch_failure(self) -> None:
        response = self.client.post("/covid/ingest_live/counties")

        self.assertEqual(HTTPStatus.INTERNAL_SERVER_ERROR, response.status_code)
        self.assertIn("404", response.get_data(as_text=True))

    def test_ingest_live(self) -> None:
        self.session.resources[Scope.COUNTIES.live_url] = (
            b"date,county,state,fips,cases,deaths,confirmed_cases,"
            b"confirmed_deaths,probable_cases,probable_deaths\n"
            b"2020-12-01,New York City,New York,,300000,24000,,,,\n"
        )

        response = self.client.post("/covid/ingest_live/counties")

        self.assertEqual(HTTPStatus.OK, response.status_code)
        self.assertEqual(
            ["NYC"], list(self.firestore_client.collection_contents("counties-live"))
        )

    def test_store_active_cases_read_failure(self) -> None:
        with mock.patch.object(
            self.firestore_client,
            "stream_collection",
            side_effect=exceptions.ServiceUnavailable("Firestore is down"),
        ):
            response = self.client.post("/covid/store_active_cases/states")

        self.assertEqual(HTTPStatus.INTERNAL_SERVER_ERROR, response.status_code)
        self.assertIn("Firestore is down", response.get_data(as_text=True))

    def test_store_active_cases_with_bad_entity(self) -> None:
        today = datetime.datetime.now(tz=datetime.timezone.utc).date().isoformat()
        self.firestore_client.test_add_document(
            "states-live/53",
            {"Date": today, "State": "Washington", "Fips": "53", "Cases": 100},
        )
        self.firestore_client.test_add_document(
            "states-live/66", {"State": "Guam", "Fips": "66", "Cases": 1}
        )

        response = self.client.post("/covid/store_active_cases/states")

        self.assertEqual(HTTPStatus.OK, response.status_code)
        self.assertEqual(
            ["53"], list(self.firestore_client.collection_contents("states-api"))
        )
