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
"""Tests for errors.py"""
import unittest

from covidnearme.common.errors import CovidNearMeError, IngestPassError


class IngestPassErrorTest(unittest.TestCase):
    def test_ingest_pass_error(self) -> None:
        error = IngestPassError("states-historical", failure_count=2, total_count=10)

        self.assertIsInstance(error, CovidNearMeError)
        self.assertEqual(
            "2 of 10 upserts to collection [states-historical] failed", str(error)
        )
        self.assertEqual("states-historical", error.collection_name)
        self.assertEqual(2, error.failure_count)
        self.assertEqual(10, error.total_count)
