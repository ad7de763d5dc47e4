"""
Telemetry sidecar - ships locally written telemetry files to a remote endpoint.

This package provides:
- Publisher: Timer-driven flush loop with graceful shutdown drain
- DirectorySource: Reads and discards record files in a watched directory
- HttpDeliveryClient: Single-shot HTTP POST delivery with outcome classification
- write_record: Atomic producer-side helper for writing record files

Usage:
    from sidecar import Publisher, PublisherConfig

    publisher = Publisher.from_config(
        PublisherConfig(
            directory="/var/spool/telemetry",
            endpoint="https://collector.example.com/ingest",
            flush_interval=2.0,
        )
    )
    publisher.start()
    ...
    publisher.stop(timeout=15.0)
"""

from .batch import Batch, build_batch, join_payloads
from .config import PublisherConfig, from_env
from .delivery import Delivered, DeliveryOutcome, Failed, HttpDeliveryClient
from .errors import ConfigError, SidecarError, SourceError
from .publisher import Publisher, PublisherState
from .source import DirectorySource, PendingFile, Record, write_record

__all__ = [
    # Publisher
    "Publisher",
    "PublisherState",
    "PublisherConfig",
    "from_env",
    # Source
    "DirectorySource",
    "PendingFile",
    "Record",
    "write_record",
    # Batching
    "Batch",
    "build_batch",
    "join_payloads",
    # Delivery
    "HttpDeliveryClient",
    "DeliveryOutcome",
    "Delivered",
    "Failed",
    # Errors
    "SidecarError",
    "SourceError",
    "ConfigError",
]

__version__ = "1.0.0"
