"""Asset-processing driver: export bundle in, web-ready assets out."""

from __future__ import annotations

import gc
import logging
from typing import Any, Callable, Dict, Mapping, Optional

from ..config import AssetflowConfig
from ..contracts import PipelineSummary, StepState, StepStatus
from ..pipeline import Pipeline
from .paths import AssetPaths
from .steps import AssetSteps, Generator
from .validator import AssetValidator

logger = logging.getLogger(__name__)

# (step name, description, generator label) in chain order
IMAGE_STAGES = (
    ("generate-icons", "Generate UI icons", "icons"),
    ("generate-groups", "Generate sprite groups", "groups"),
    ("generate-white", "Generate white variant sprites", "white variants"),
    ("generate-repack", "Generate texture atlases", "texture atlases"),
)

FILE_STEP_RETRIES = 2
IMAGE_STEP_RETRIES = 3


class AssetPipeline:
    """Registers and runs the export-to-assets step graph.

    ``generators`` maps image stage names (``generate-icons``,
    ``generate-groups``, ``generate-white``, ``generate-repack``) to callables
    that take the processed database path. Stages without a generator are
    left out and the chain links around them.
    """

    def __init__(
        self,
        config: Optional[AssetflowConfig] = None,
        *,
        generators: Optional[Mapping[str, Generator]] = None,
        release_memory: Callable[[], Any] = gc.collect,
        pipeline: Optional[Pipeline] = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config or AssetflowConfig()
        self._log = log or logger
        self.paths = AssetPaths(self.config.assets)
        self.validator = AssetValidator(self.paths, self._log)
        self.steps = AssetSteps(self.paths, self.validator, self._log)
        self.pipeline = pipeline or Pipeline(
            retry_policy=self.config.orchestrator.retry,
            max_concurrency=self.config.orchestrator.max_concurrency,
            log=self._log,
        )
        self._generators: Dict[str, Generator] = dict(generators or {})
        unknown = set(self._generators) - {stage[0] for stage in IMAGE_STAGES}
        if unknown:
            raise ValueError(f"Unknown image stage(s): {sorted(unknown)}")
        self._release_memory = release_memory
        self._setup_steps()

    def _setup_steps(self) -> None:
        p = self.pipeline
        p.register_step(
            "extract-export",
            self.steps.extract_export,
            description="Extract export.zip file",
            retryable=True,
            max_retries=FILE_STEP_RETRIES,
        )
        p.register_step(
            "replace-images",
            self.steps.replace_images,
            description="Replace and organize image assets",
            dependencies=["extract-export"],
            retryable=True,
            max_retries=FILE_STEP_RETRIES,
        )
        p.register_step(
            "generate-database",
            self.steps.generate_database,
            description="Process and enhance database",
            dependencies=["extract-export"],
            retryable=True,
            max_retries=FILE_STEP_RETRIES,
        )

        previous = ["generate-database", "replace-images"]
        for name, description, label in IMAGE_STAGES:
            generator = self._generators.get(name)
            if generator is None:
                self._log.debug(f"No generator configured for {name}, leaving it out")
                continue
            p.register_step(
                name,
                self.steps.generator_step(label, generator, self._release_memory),
                description=description,
                dependencies=previous,
                retryable=True,
                max_retries=IMAGE_STEP_RETRIES,
            )
            previous = [name]

        p.register_step(
            "replace-database",
            self.steps.replace_database,
            description="Deploy processed database files",
            dependencies=previous,
            retryable=True,
            max_retries=FILE_STEP_RETRIES,
        )

    # ------------------------------------------------------------------
    async def execute(self) -> bool:
        """Run pre-flight checks and the full step graph.

        Configuration errors in the step graph propagate; step failures are
        reported through the log and the return value.
        """
        self._log.info("Starting asset processing")
        if not self.validator.preflight_check():
            self._log.error("Pre-flight checks failed, aborting")
            return False

        success = await self.pipeline.execute_all()
        if success:
            self._log.info("Completed asset processing")
            self.log_summary()
        else:
            self._log.error("Asset processing pipeline failed")
            self.log_failure_details()
            self.validator.cleanup_on_error()
        return success

    def cancel(self) -> None:
        self.pipeline.cancel()

    def get_state(self) -> Dict[str, StepState]:
        return self.pipeline.get_state()

    def get_summary(self) -> PipelineSummary:
        return self.pipeline.get_summary()

    def log_summary(self) -> None:
        summary = self.get_summary()
        self._log.info(
            f"Processing Summary: {summary.completed}/{summary.total} steps completed"
        )
        for name, state in self.get_state().items():
            if state.status is StepStatus.COMPLETED and state.duration is not None:
                retries = f" ({state.retry_count} retries)" if state.retry_count else ""
                self._log.info(f"  {name}: {state.duration:.3f}s{retries}")
        for path in self.paths.all_database_files:
            if path.is_file():
                self._log.info(f"  {path.name}: {path.stat().st_size} bytes")

    def log_failure_details(self) -> None:
        summary = self.get_summary()
        self._log.error(
            f"Processing failed: {summary.failed} failed, {summary.skipped} skipped, "
            f"{summary.cancelled} cancelled of {summary.total}"
        )
        for name, state in self.get_state().items():
            if state.status is StepStatus.FAILED:
                self._log.error(
                    f"  {name}: {state.error_message or 'Unknown error'} "
                    f"({state.retry_count} retries)"
                )
            elif state.status in (StepStatus.SKIPPED, StepStatus.CANCELLED):
                self._log.warning(f"  {name}: {state.status} ({state.error_message})")
