"""Document transformation coordinator.

Runs the five pipeline stages over a set of Markdown documents:

1. Validation adjustment: derive validation rules from the schema and its
   detected structure. Failure here aborts the run.
2. Strategy selection: sequential, parallel or adaptive document processing.
3. Document processing: read, extract and validate every document. A failing
   document is recorded and excluded; the run continues.
4. Aggregation (optional): collect the processed front matter into the
   schema's shape and apply its directives. Failure here is logged and the
   aggregated data is omitted.
5. Completion: populate schema defaults and assemble the result.
"""

import asyncio
import copy
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from ..cache.path_cache import PathCache
from ..core.config import PipelineSettings
from ..core.exceptions import (
    ConfigurationError,
    DocumentProcessingError,
    FileAccessError,
    PipelineError,
)
from ..core.logging import PipelineStageLogger, bind_context, clear_context, get_logger
from ..directives.paths import PathResolver, set_path
from ..directives.processor import DirectiveApplication, SchemaDirectiveProcessor
from ..directives.registry import DirectiveRegistry, create_default_registry
from ..files import FileReader, LocalFileReader
from ..frontmatter.documents import DocumentFailure, FrontmatterData, MarkdownDocument
from ..frontmatter.extractor import Absent, FrontmatterExtractor
from ..schema.document import SchemaDocument
from ..structure.detector import SchemaStructureDetector
from ..structure.types import ProcessingHints, StructureType
from ..validation.rules import FrontmatterValidator, ValidationRules, ValidationRulesAdjuster
from .aggregation import (
    AggregationService,
    collection_path_for,
    item_defaults,
    populate_defaults,
)
from .strategy import ProcessingStrategy, execute_strategy, select_strategy

logger = get_logger(__name__)


class PipelineStage(str, Enum):
    """Coordinator stages, in execution order."""

    VALIDATION_ADJUSTMENT = "validation_adjustment"
    STRATEGY_SELECTION = "strategy_selection"
    DOCUMENT_PROCESSING = "document_processing"
    AGGREGATION = "aggregation"
    COMPLETION = "completion"


@dataclass
class Completed:
    """A run that produced at least one processed document.

    ``output_data`` is what templates render from: the aggregated data when
    aggregation ran, otherwise the processed data placed at the collection path.
    """

    processed_data: list[dict[str, Any]]
    documents: list[MarkdownDocument]
    structure: StructureType
    hints: ProcessingHints
    strategy: ProcessingStrategy
    collection_path: str
    aggregated_data: dict[str, Any] | None = None
    output_data: dict[str, Any] = field(default_factory=dict)
    failures: list[DocumentFailure] = field(default_factory=list)
    applications: list[DirectiveApplication] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return True

    @property
    def processed_count(self) -> int:
        return len(self.processed_data)


@dataclass
class Failed:
    """A run that aborted. ``stage`` is where it stopped."""

    error: PipelineError
    processed_count: int
    stage: PipelineStage
    failures: list[DocumentFailure] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return False


TransformationResult = Completed | Failed


class DocumentTransformationCoordinator:
    """Top-level orchestrator composing detection, validation and directives.

    Collaborators are injected so that tests can replace file access and
    registries; every collaborator has a working default.
    """

    def __init__(
        self,
        settings: PipelineSettings | None = None,
        registry: DirectiveRegistry | None = None,
        reader: FileReader | None = None,
        cache: PathCache | None = None,
        extractor: FrontmatterExtractor | None = None,
        detector: SchemaStructureDetector | None = None,
    ):
        """Initialize the coordinator.

        Args:
            settings: Pipeline settings; defaults are read from the environment
            registry: Directive registry; a default registry is built when omitted
            reader: File collaborator used to read documents
            cache: Path cache; built from settings when caching is enabled
            extractor: Front-matter extractor
            detector: Structure detector; built from the settings' field patterns
        """
        self.settings = settings or PipelineSettings()
        self.registry = registry or create_default_registry()
        self.registry.verify_complete()
        self.reader = reader or LocalFileReader()
        self.extractor = extractor or FrontmatterExtractor()
        self.detector = detector or SchemaStructureDetector(self.settings.field_patterns)

        if cache is None and self.settings.cache_enabled:
            cache = PathCache.from_settings(self.settings)
        self.cache = cache

        self.resolver = PathResolver(self.cache)
        self.validator = FrontmatterValidator(self.resolver)
        self.adjuster = ValidationRulesAdjuster()
        self.processor = SchemaDirectiveProcessor(self.registry, self.resolver)
        self.aggregation = AggregationService(self.processor)

    async def transform(
        self,
        schema: SchemaDocument,
        paths: list[str | Path],
        aggregate: bool = False,
        strategy: ProcessingStrategy | None = None,
        base_rules: ValidationRules | None = None,
    ) -> TransformationResult:
        """Run the pipeline over ``paths``.

        Args:
            schema: Schema declaring structure and directives
            paths: Markdown document paths, already discovered by the caller
            aggregate: Whether to run stage 4
            strategy: Explicit processing strategy; selected by file count when omitted
            base_rules: Validation rules applied before schema adjustment

        Returns:
            Completed with processed data, or Failed with the aborting error
        """
        run_id = uuid.uuid4().hex[:8]
        bind_context(run_id=run_id)
        try:
            return await self._run(
                schema, [str(p) for p in paths], aggregate, strategy, base_rules
            )
        finally:
            clear_context()

    def transform_sync(
        self,
        schema: SchemaDocument,
        paths: list[str | Path],
        aggregate: bool = False,
        strategy: ProcessingStrategy | None = None,
        base_rules: ValidationRules | None = None,
    ) -> TransformationResult:
        """Synchronous version of transform for callers without an event loop."""
        return asyncio.run(self.transform(schema, paths, aggregate, strategy, base_rules))

    async def _run(
        self,
        schema: SchemaDocument,
        paths: list[str],
        aggregate: bool,
        strategy_override: ProcessingStrategy | None,
        base_rules: ValidationRules | None,
    ) -> TransformationResult:
        logger.info("Transformation started", documents=len(paths), aggregate=aggregate)

        # Stage 1: validation adjustment
        try:
            with PipelineStageLogger(logger, PipelineStage.VALIDATION_ADJUSTMENT.value):
                structure = self.detector.detect_structure_type(schema)
                hints = self.detector.get_processing_hints(structure)
                rules = self.adjuster.adjust(
                    base_rules or ValidationRules.empty(), schema, hints
                )
                # Malformed directives are configuration errors; surface them now
                self.processor.discover(schema)
                collection_path = collection_path_for(
                    schema, structure, self.settings.field_patterns
                )
        except ConfigurationError as e:
            return Failed(
                error=e, processed_count=0, stage=PipelineStage.VALIDATION_ADJUSTMENT
            )

        # Stage 2: strategy selection
        with PipelineStageLogger(logger, PipelineStage.STRATEGY_SELECTION.value) as stage:
            strategy = select_strategy(
                len(paths), self.settings.strategy_thresholds, strategy_override
            )
            stage.log_progress("Strategy selected", strategy=str(strategy))

        # Stage 3: per-document processing
        with PipelineStageLogger(logger, PipelineStage.DOCUMENT_PROCESSING.value) as stage:
            outcomes = await execute_strategy(
                strategy, paths, lambda path: self.process_document(path, rules)
            )
            documents = [o for o in outcomes if isinstance(o, MarkdownDocument)]
            failures = [o for o in outcomes if isinstance(o, DocumentFailure)]
            stage.log_progress(
                "Documents processed", succeeded=len(documents), failed=len(failures)
            )

        for failure in failures:
            logger.warning(
                "Document excluded",
                path=failure.path,
                stage=failure.stage,
                reason=failure.message,
            )

        if not documents:
            message = (
                "No valid documents found to process" if paths else "No documents to process"
            )
            return Failed(
                error=DocumentProcessingError(message, failure_count=len(failures)),
                processed_count=0,
                stage=PipelineStage.DOCUMENT_PROCESSING,
                failures=failures,
            )

        # Stage 4: aggregation
        aggregated: dict[str, Any] | None = None
        applications: list[DirectiveApplication] = []
        warnings: list[str] = []
        if aggregate:
            try:
                with PipelineStageLogger(logger, PipelineStage.AGGREGATION.value):
                    result = self.aggregation.aggregate(schema, documents, collection_path)
                aggregated = result.data
                applications = result.applications
            except PipelineError as e:
                logger.warning(
                    "Aggregation failed, continuing without aggregated data",
                    error=str(e),
                    error_type=type(e).__name__,
                )
                warnings.append(f"Aggregation failed: {e}")

        # Stage 5: completion
        with PipelineStageLogger(logger, PipelineStage.COMPLETION.value):
            defaults = item_defaults(schema)
            processed_data = [
                populate_defaults(doc.front_matter.to_dict(), defaults)
                for doc in documents
                if doc.front_matter is not None
            ]
            if aggregated is not None:
                populate_defaults(aggregated, schema.property_defaults())
                output_data = aggregated
            else:
                # Without aggregation the collection holds the processed data as is
                output_data = set_path({}, collection_path, copy.deepcopy(processed_data))
                populate_defaults(output_data, schema.property_defaults())

        logger.info(
            "Transformation completed",
            processed=len(processed_data),
            failed=len(failures),
            aggregated=aggregated is not None,
        )
        return Completed(
            processed_data=processed_data,
            documents=documents,
            structure=structure,
            hints=hints,
            strategy=strategy,
            collection_path=collection_path,
            aggregated_data=aggregated,
            output_data=output_data,
            failures=failures,
            applications=applications,
            warnings=warnings,
        )

    def process_document(
        self, path: str, rules: ValidationRules
    ) -> MarkdownDocument | DocumentFailure:
        """Read, extract and validate one document.

        Runs on worker threads under parallel strategies, so it touches no
        coordinator state besides the thread-safe path cache.
        """
        try:
            content = self.reader.read(path)
        except FileAccessError as e:
            return DocumentFailure(path=path, stage="read", message=str(e))

        extracted = self.extractor.extract(content)
        if isinstance(extracted, Absent):
            return DocumentFailure(
                path=path,
                stage="extract",
                message=extracted.reason or "No front matter found",
            )

        validation = self.validator.validate(extracted.front_matter, rules, document=path)
        if not validation.is_valid:
            return DocumentFailure(
                path=path,
                stage="validate",
                message="; ".join(error.message for error in validation.errors),
                errors=list(validation.errors),
            )
        for warning in validation.warnings:
            logger.debug("Front matter warning", document=path, warning=str(warning))

        return MarkdownDocument(
            path=path,
            body=extracted.body,
            front_matter=FrontmatterData(fields=extracted.front_matter, source=path),
        )
