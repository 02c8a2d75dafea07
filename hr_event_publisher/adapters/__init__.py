"""Adapter layer package for change-log and event-bus integration boundaries."""

from .debezium_reader import DebeziumJsonLinesReader
from .http_bus import HttpBusTransport
from .interfaces import END_OF_STREAM, BusTransportPort, ChangeLogReaderPort, EndOfStream

__all__ = [
	"END_OF_STREAM",
	"BusTransportPort",
	"ChangeLogReaderPort",
	"DebeziumJsonLinesReader",
	"EndOfStream",
	"HttpBusTransport",
]
