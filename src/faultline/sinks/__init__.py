"""Sink capability, decorators and terminal sinks."""

from faultline.sinks.base import Sink, SinkDecorator
from faultline.sinks.aggregate import AggregateSink, NullSink
from faultline.sinks.filters import DeduplicateRepeated, FilterByProbability, FilterBySeverityMask
from faultline.sinks.rethrow import RethrowAsException
from faultline.sinks.log import LogToStructuredSink
from faultline.sinks.crash_page import BufferedPage, CrashPageRender, PageOutput
from faultline.sinks.remote import HttpNotifier, Notifier, RemoteCrashReport
from faultline.sinks.artifacts import ArtifactDumpDecorator, BlobStore, DirectoryBlobStore

__all__ = [
    "Sink",
    "SinkDecorator",
    "AggregateSink",
    "NullSink",
    "DeduplicateRepeated",
    "FilterByProbability",
    "FilterBySeverityMask",
    "RethrowAsException",
    "LogToStructuredSink",
    "BufferedPage",
    "CrashPageRender",
    "PageOutput",
    "HttpNotifier",
    "Notifier",
    "RemoteCrashReport",
    "ArtifactDumpDecorator",
    "BlobStore",
    "DirectoryBlobStore",
]
