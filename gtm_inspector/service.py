"""Inspection service wiring fetch, locate, decode, vendor scan and sinks together."""

import logging
import re
import time
from typing import Callable, List, Optional

from .config import InspectorConfig
from .decoding import ContainerDecoder
from .errors import IssueCategory, IssueSeverity, ResilientDecoder, resilient_operation
from .fetch import ContainerHTTPError, FetchError, HttpContainerFetcher
from .models import (
    TAG_COLUMNS,
    TRIGGER_COLUMNS,
    VARIABLE_COLUMNS,
    VENDOR_COLUMNS,
    ContainerModel,
    InspectionReport,
    InspectionStatus,
    TagRecord,
    VendorHit
)
from .parsing import ContainerLocator
from .persistence import (
    DEBUG_TABLE,
    TAGS_TABLE,
    TRIGGERS_TABLE,
    VARIABLES_TABLE,
    VENDORS_TABLE,
    FileTableSink,
    TabularSink
)
from .reporting import DEBUG_COLUMNS, build_source_diagnostics
from .vendors import scan_vendors


logger = logging.getLogger(__name__)

CONTAINER_ID_PATTERN = re.compile(r"^GTM-[A-Z0-9]+$")

Fetcher = Callable[[str], str]


def is_valid_container_id(container_id: str) -> bool:
    return bool(container_id) and CONTAINER_ID_PATTERN.match(container_id) is not None


class ContainerInspector(ResilientDecoder):
    """Runs one container inspection end to end.

    The fetcher and sink are injected; by default the fetcher downloads from the
    public endpoint and a file sink is used only when an output directory is
    configured. ``inspect`` never raises: every failure is reflected in the
    returned report.
    """

    def __init__(self,
                 fetcher: Optional[Fetcher] = None,
                 sink: Optional[TabularSink] = None,
                 config: Optional[InspectorConfig] = None,
                 name: str = "ContainerInspector"):
        super().__init__()
        self.name = name
        self.config = config or InspectorConfig()
        self.fetcher = fetcher or HttpContainerFetcher(self.config.fetch)
        if sink is None and self.config.output.directory is not None:
            sink = FileTableSink(self.config.output.directory, self.config.output.format)
        self.sink = sink
        self.locator = ContainerLocator(self.config.locator)
        self.decoder = ContainerDecoder()

    def inspect(self, container_id: str) -> InspectionReport:
        """Fetch, decode and record one container."""
        container_id = (container_id or "").strip()
        started = time.perf_counter()
        self.issue_collector = self._create_issue_collector()

        if not is_valid_container_id(container_id):
            logger.error(f"Invalid container id: {container_id!r}")
            return InspectionReport(
                container_id=container_id,
                status=InspectionStatus.INVALID_CONTAINER,
                error_message="Container id must look like GTM-XXXXXXX",
                processing_time_ms=self._elapsed_ms(started)
            )

        logger.info(f"Inspecting container {container_id}")
        try:
            raw_js = self.fetcher(container_id)
        except ContainerHTTPError as e:
            logger.error(f"Fetch failed for {container_id}: HTTP {e.status_code}")
            return self._fetch_failed(container_id, str(e), started, status_code=e.status_code)
        except FetchError as e:
            logger.error(f"Fetch failed for {container_id}: {e}")
            return self._fetch_failed(container_id, str(e), started)
        except Exception as e:
            logger.error(f"Fetcher raised unexpectedly for {container_id}: {e}")
            return self._fetch_failed(container_id, f"{e.__class__.__name__}: {e}", started)

        return self._process(container_id, raw_js, started)

    def inspect_source(self, container_id: str, raw_js: str) -> InspectionReport:
        """Decode already-downloaded container source without fetching."""
        started = time.perf_counter()
        self.issue_collector = self._create_issue_collector()
        return self._process(container_id.strip(), raw_js, started)

    def _process(self, container_id: str, raw_js: str, started: float) -> InspectionReport:
        raw_js = raw_js or ""
        collector = self._ensure_collector()

        doc = None
        with self.issue_context("locate", container_id=container_id):
            doc = self.locator.locate(raw_js, container_id)

        model = ContainerModel()
        if doc is not None and doc.located:
            with self.issue_context("decode", container_id=container_id):
                model = self.decoder.decode(doc)

        vendors = self._scan(raw_js, model.tags)

        if self.sink is not None:
            with self.issue_context("write_tables", container_id=container_id):
                self._write_tables(container_id, model, vendors)
            if self.config.output.write_debug:
                with self.issue_context("write_debug", container_id=container_id):
                    diagnostics = build_source_diagnostics(raw_js, container_id)
                    self.sink.write_table(DEBUG_TABLE, DEBUG_COLUMNS, diagnostics.to_rows())

        if collector.has_critical_issues():
            logger.error(f"Inspection of {container_id} recorded critical issues; output may be incomplete")
        model.issues.extend(collector.drain())

        located = doc is not None and doc.located
        status = InspectionStatus.SUCCESS if located else InspectionStatus.PARSE_FAILED
        report = InspectionReport(
            container_id=container_id,
            status=status,
            strategy=doc.strategy if doc is not None else None,
            tag_count=len(model.tags),
            trigger_count=len(model.triggers),
            variable_count=len(model.variables),
            vendor_hit_count=len(vendors),
            issue_count=len(model.issues),
            source_length=len(raw_js),
            error_message=None if located else "Could not locate container data in source",
            processing_time_ms=self._elapsed_ms(started),
            model=model,
            vendors=vendors
        )
        logger.info(
            f"Inspection of {container_id} finished with status {status.value}: "
            f"{report.tag_count} tags, {report.trigger_count} triggers, "
            f"{report.variable_count} variables, {report.vendor_hit_count} vendor ids"
        )
        return report

    @resilient_operation("scan_vendors", IssueSeverity.LOW, IssueCategory.DATA_QUALITY, default_return=[])
    def _scan(self, raw_js: str, tags: List[TagRecord]) -> List[VendorHit]:
        return scan_vendors(raw_js, tags)

    def _write_tables(self, container_id: str, model: ContainerModel, vendors: List[VendorHit]) -> None:
        self.sink.write_table(TAGS_TABLE, TAG_COLUMNS, [t.to_row(container_id) for t in model.tags])
        self.sink.write_table(TRIGGERS_TABLE, TRIGGER_COLUMNS, [t.to_row(container_id) for t in model.triggers])
        self.sink.write_table(VARIABLES_TABLE, VARIABLE_COLUMNS, [v.to_row(container_id) for v in model.variables])
        self.sink.write_table(VENDORS_TABLE, VENDOR_COLUMNS, [v.to_row(container_id) for v in vendors])

    def _fetch_failed(self, container_id: str, message: str, started: float,
                      status_code: Optional[int] = None) -> InspectionReport:
        return InspectionReport(
            container_id=container_id,
            status=InspectionStatus.FETCH_FAILED,
            status_code=status_code,
            error_message=message,
            processing_time_ms=self._elapsed_ms(started)
        )

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.perf_counter() - started) * 1000)


def inspect(container_id: str,
            fetcher: Optional[Fetcher] = None,
            sink: Optional[TabularSink] = None,
            config: Optional[InspectorConfig] = None) -> InspectionReport:
    """Inspect one container with a throwaway ContainerInspector."""
    return ContainerInspector(fetcher=fetcher, sink=sink, config=config).inspect(container_id)
