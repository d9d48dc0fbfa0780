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
"""Tests for server.py"""
import unittest
from unittest import mock

from covidnearme import server
from covidnearme.tests.firestore.fake_firestore_client import FakeFirestoreClient


class CreateAppTest(unittest.TestCase):
    """Tests for create_app"""

    @mock.patch("covidnearme.utils.structured_logging.setup")
    def test_create_app(self, mock_setup: mock.MagicMock) -> None:
        app = server.create_app(FakeFirestoreClient())

        mock_setup.assert_called_once()
        rules = {rule.rule for rule in app.url_map.iter_rules()}
        self.assertIn("/covid/ingest_live/<scope_name>", rules)
        self.assertIn("/covid/ingest_historical/<scope_name>", rules)
        self.assertIn("/covid/store_active_cases/<scope_name>", rules)

    @mock.patch("covidnearme.utils.structured_logging.setup")
    @mock.patch("covidnearme.server.build_firestore_client")
    def test_create_app_builds_client(
        self, mock_build_client: mock.MagicMock, _mock_setup: mock.MagicMock
    ) -> None:
        mock_build_client.return_value = FakeFirestoreClient()

        server.create_app()

        mock_build_client.assert_called_once()

    @mock.patch("covidnearme.utils.structured_logging.setup")
    @mock.patch.dict("os.environ", {"COVID_NEAR_ME_MAX_WORKERS": "0"})
    def test_create_app_invalid_max_workers(self, _mock_setup: mock.MagicMock) -> None:
        with self.assertRaises(ValueError):
            server.create_app(FakeFirestoreClient())

    @mock.patch("covidnearme.utils.structured_logging.setup")
    def test_health(self, _mock_setup: mock.MagicMock) -> None:
        app = server.create_app(FakeFirestoreClient())

        response = app.test_client().get("/health")

        self.assertEqual(200, response.status_code)
