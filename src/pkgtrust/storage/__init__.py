"""Persistence sinks for scored packages."""

from pkgtrust.storage.base import ResultSink
from pkgtrust.storage.json_sink import JsonResultSink
from pkgtrust.storage.postgres import PostgresResultSink

__all__ = ["JsonResultSink", "PostgresResultSink", "ResultSink"]
