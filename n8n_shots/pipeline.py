"""Sequential screenshot pipeline: check, import, capture, publish, delete."""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional

from n8n_shots.config import Settings
from n8n_shots.errors import ShotError, WorkflowParseError
from n8n_shots.report import ItemOutcome, RunReport, ScreenshotRecord
from n8n_shots.scanner import WorkflowFile

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[RunReport, ItemOutcome], None]


class ScreenshotPipeline:
    """Processes workflow files one at a time.

    Every workflow goes through the existence check and then, unless it is
    skipped, import, capture, local backup, upload and deletion. Failures
    are recorded per workflow and never stop the run. A workflow imported
    into n8n is deleted again whatever happens after the import.
    """

    def __init__(
        self,
        n8n,
        store,
        capturer,
        screenshots_dir: Optional[Path] = None,
        skip_existing: bool = True,
        delay_after_import: int = 2000,
        delay_between_workflows: int = 1000,
        batch_size: int = 10,
        results_file: Optional[Path] = None,
        progress_callback: Optional[ProgressCallback] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initialize the pipeline.

        Args:
            n8n: Client with ``import_workflow`` and ``delete_workflow``
            store: Store with ``exists`` and ``publish``
            capturer: Object with an async ``capture(workflow_id)``
            screenshots_dir: Local backup folder, None to keep no backup
            skip_existing: Skip workflows whose screenshot is already published
            delay_after_import: Pause after importing, in milliseconds
            delay_between_workflows: Pause between workflows, in milliseconds
            batch_size: Write a report checkpoint every this many workflows
            results_file: Where the report is written, None to not write it
            progress_callback: Called after every workflow
            sleep: Coroutine used for pauses
        """
        self.n8n = n8n
        self.store = store
        self.capturer = capturer
        self.screenshots_dir = Path(screenshots_dir) if screenshots_dir else None
        self.skip_existing = skip_existing
        self.delay_after_import = delay_after_import
        self.delay_between_workflows = delay_between_workflows
        self.batch_size = max(1, batch_size)
        self.results_file = Path(results_file) if results_file else None
        self.progress_callback = progress_callback
        self.sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings, n8n, store, capturer, **kwargs) -> "ScreenshotPipeline":
        options: Dict[str, Any] = {
            "screenshots_dir": settings.screenshots_dir,
            "skip_existing": settings.skip_existing,
            "delay_after_import": settings.delay_after_import,
            "delay_between_workflows": settings.delay_between_workflows,
            "batch_size": settings.batch_size,
            "results_file": settings.results_file,
        }
        options.update(kwargs)
        return cls(n8n, store, capturer, **options)

    async def _pause(self, milliseconds: int) -> None:
        if milliseconds > 0:
            await self.sleep(milliseconds / 1000)

    @asynccontextmanager
    async def imported_workflow(self, definition: Dict[str, Any]):
        """Import a workflow into n8n for the duration of the block.

        The workflow is deleted on exit, including when the block raises.
        Deletion failures are logged by the client and never replace the
        block's own exception.
        """
        workflow_id = await asyncio.to_thread(self.n8n.import_workflow, definition)
        logger.debug(f"  Imported as {workflow_id}")
        try:
            yield workflow_id
        finally:
            await asyncio.to_thread(self.n8n.delete_workflow, workflow_id)

    def _save_backup(self, category: str, filename: str, image: bytes) -> None:
        if self.screenshots_dir is None:
            return
        local_dir = self.screenshots_dir / category
        local_dir.mkdir(parents=True, exist_ok=True)
        (local_dir / filename).write_bytes(image)

    async def process(self, source: WorkflowFile) -> ItemOutcome:
        """Run one workflow through the pipeline.

        Returns:
            The outcome; errors are reported in it, not raised
        """
        category = source.category
        filename = source.filename

        logger.info(f"Processing: {source.label}")
        logger.info(f"  Category: {category}")
        logger.info(f"  Output: {filename}")

        try:
            if self.skip_existing and await asyncio.to_thread(self.store.exists, category, filename):
                logger.warning("  Skipping: Screenshot already exists")
                return ItemOutcome.skipped(source.label)

            if source.definition is None:
                raise WorkflowParseError(source.error or f"Could not parse {source.label}")

            logger.info("  Importing to n8n...")
            async with self.imported_workflow(source.definition) as workflow_id:
                await self._pause(self.delay_after_import)

                logger.info("  Taking screenshot...")
                image = await self.capturer.capture(workflow_id)
                self._save_backup(category, filename, image)

                logger.info("  Uploading to GitHub...")
                result = await asyncio.to_thread(self.store.publish, category, filename, image)

        except ShotError as e:
            logger.error(f"  Failed: {e}")
            return ItemOutcome.failed(source.label, str(e))

        except Exception as e:
            logger.exception(f"  Failed with unexpected error: {e}")
            return ItemOutcome.failed(source.label, f"{type(e).__name__}: {e}")

        logger.info(f"  Success! {result.url}")
        return ItemOutcome.succeeded(ScreenshotRecord(
            workflow=source.label,
            category=category,
            filename=filename,
            url=result.url,
        ))

    async def run(self, sources: Iterable[WorkflowFile]) -> RunReport:
        """Process all workflows in order and return the report.

        The report file, when configured, is written at the end even if the
        run is interrupted, and checkpointed every ``batch_size`` workflows.
        """
        sources = list(sources)
        report = RunReport(total=len(sources))

        try:
            for index, source in enumerate(sources):
                outcome = await self.process(source)
                report.record(outcome)

                if self.progress_callback:
                    self.progress_callback(report, outcome)

                if self.results_file and report.remaining and report.processed % self.batch_size == 0:
                    report.write(self.results_file)

                if index < len(sources) - 1:
                    await self._pause(self.delay_between_workflows)
        finally:
            if self.results_file:
                report.write(self.results_file)

        return report
