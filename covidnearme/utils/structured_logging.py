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
"""Configures logging setup."""

import logging
import sys
from contextlib import contextmanager
from functools import wraps
from types import TracebackType
from typing import Any, Callable, Iterator, Optional, Tuple, Type, Union

from google.cloud.logging import Client, Resource, handlers
from opentelemetry import context
from opentelemetry.baggage import get_baggage, set_baggage

from covidnearme.utils import environment

SCOPE_BAGGAGE_KEY = "covidnearme.scope"


def with_context(func: Callable) -> Callable:
    """Wraps |func| so that it runs inside the context that is current now, even
    when it is later called from a worker thread."""
    current_context = context.get_current()

    @wraps(func)
    def _wrapper(*args: Any, **kwargs: Any) -> Any:
        token = context.attach(current_context)
        try:
            return func(*args, **kwargs)
        finally:
            context.detach(token)

    return _wrapper


@contextmanager
def scope_context(scope_name: str) -> Iterator[None]:
    """Tags every log record produced inside the block with |scope_name|."""
    token = context.attach(set_baggage(SCOPE_BAGGAGE_KEY, scope_name))
    try:
        yield
    finally:
        context.detach(token)


class ContextualLogRecord(logging.LogRecord):
    """Fetches context from when the record was produced and adds it to the record.

    This must happen when the record is produced, not during formatting or emitting
    as those may happen asynchronously on a separate thread with different
    context.
    """

    # pylint: disable=too-many-positional-arguments
    def __init__(
        self,
        name: str,
        level: int,
        pathname: str,
        lineno: int,
        msg: str,
        args: Tuple[Any, ...],
        exc_info: Union[
            Tuple[Type[BaseException], BaseException, Optional[TracebackType]],
            Tuple[None, None, None],
            None,
        ],
        func: Optional[str] = None,
        sinfo: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            name,
            level,
            pathname,
            lineno,
            msg,
            args,
            exc_info,
            func=func,
            sinfo=sinfo,
        )

        self.scope = str(get_baggage(SCOPE_BAGGAGE_KEY))


def setup() -> None:
    """Setup logging"""
    logging.setLogRecordFactory(ContextualLogRecord)
    logger = logging.getLogger()

    # Send logs directly via the logging client if possible so that they are
    # structured in Cloud Logging.
    if environment.in_gcp():
        client = Client(project=environment.get_project_id())
        structured_handler = handlers.CloudLoggingHandler(
            client,
            resource=Resource(type="global", labels={}),
        )
        handlers.setup_logging(structured_handler, log_level=logging.INFO)

        # Streams unstructured logs to stdout - these logs will still show up
        # even if the structured handler is stalled.
        stdout_handler = logging.StreamHandler(sys.stdout)
        logger.addHandler(stdout_handler)
        logger.setLevel(logging.INFO)
    else:
        logging.basicConfig(level=logging.INFO)

    for handler in logger.handlers:
        # If we aren't writing directly to Cloud Logging, prefix the log with
        # the context that would otherwise be in the labels.
        if not isinstance(handler, handlers.CloudLoggingHandler):
            handler.setFormatter(
                logging.Formatter(
                    "[pid: %(process)d] (%(scope)s) %(module)s/%(funcName)s : %(message)s"
                )
            )
