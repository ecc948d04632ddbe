"""Pattern aggregation: the engine's single entry point.

Classifies every submitted file, dispatches manifest, config and source
content to the matching analyzer, folds all evidence into one pattern map
and computes the overall weighted confidence.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import reduce
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence, Union

from .app_types import AppTypeDetector
from .config import ClassifierConfig, get_config
from .file_types import SOURCE_CATEGORIES, FileTypeClassifier, basename
from .infrastructure import InfrastructureConfigAnalyzer
from .manifest import ManifestAnalyzer
from .parser import ContentParser
from .schema import (
    AnalysisResult,
    AnalysisSummary,
    ComposeAnalysis,
    ConfigAnalysis,
    ConfigType,
    ContentType,
    FileCategory,
    FileClassification,
    FileReport,
    ManifestResult,
    ParsedContent,
    PatternEvidence,
    PatternMap,
    SubmittedFile,
)

logger = logging.getLogger(__name__)

FileInput = Union[SubmittedFile, Mapping[str, Any], str]

# Backend-script flags that imply a web framework
BACKEND_FRAMEWORK_FLAGS = (
    ('has_flask', 'flask'),
    ('has_django', 'django'),
    ('has_fastapi', 'fastapi'),
)


@dataclass(frozen=True)
class Signal:
    """One piece of evidence for a named pattern in one pattern-map section."""
    section: str
    name: str
    evidence: PatternEvidence


@dataclass(frozen=True)
class _FileOutcome:
    """Per-file analysis output, produced independently of every other file."""
    file: SubmittedFile
    classification: FileClassification
    parsed_content: Optional[ParsedContent] = None
    config: Optional[ConfigAnalysis] = None
    manifest: Optional[ManifestResult] = None


def apply_signal(patterns: PatternMap, signal: Signal) -> PatternMap:
    """Return a new pattern map with the signal folded in.

    Existing evidence is reinforced, so a section's confidence for a name
    never decreases.
    """
    section = dict(getattr(patterns, signal.section))
    existing = section.get(signal.name)
    section[signal.name] = existing.reinforce(signal.evidence) if existing else signal.evidence
    return patterns.model_copy(update={signal.section: section})


def _coerce_file(file: FileInput) -> SubmittedFile:
    if isinstance(file, SubmittedFile):
        return file
    if isinstance(file, str):
        return SubmittedFile(name=file)
    return SubmittedFile.model_validate(dict(file))


class PatternAggregator:
    """Orchestrates classification, per-file analysis and the evidence merge.

    Each call to analyze_files is independent; the aggregator keeps no state
    between calls beyond its configuration.
    """

    def __init__(
        self,
        config: Optional[ClassifierConfig] = None,
        max_workers: Optional[int] = None,
    ):
        self._config = config
        self.max_workers = max_workers
        self.classifier = FileTypeClassifier(config)
        self.parser = ContentParser()
        self.manifest_analyzer = ManifestAnalyzer(config)
        self.config_analyzer = InfrastructureConfigAnalyzer(config)
        self.app_type_detector = AppTypeDetector(config)

    def _get_config(self) -> ClassifierConfig:
        return self._config or get_config()

    def analyze_files(
        self, files: Sequence[FileInput], description: Optional[str] = None
    ) -> AnalysisResult:
        """Analyze a batch of submitted files.

        An optional free-text description of the application is searched for
        application type markers alongside the file contents.
        """
        submitted = [_coerce_file(f) for f in files]
        manifest_index = self._find_manifest(submitted)

        outcomes = self._analyze_each(submitted, manifest_index)

        category_counts = {category: 0 for category in FileCategory}
        for outcome in outcomes:
            category_counts[outcome.classification.category] += 1

        manifest = next((o.manifest for o in outcomes if o.manifest is not None), None)
        configs = [o.config for o in outcomes if o.config is not None]

        patterns = reduce(apply_signal, self.collect_signals(outcomes), PatternMap())
        # App types depend on the merged frameworks, so they fold in second
        patterns = reduce(
            apply_signal, self.app_type_signals(patterns, manifest, submitted, description), patterns
        )
        confidence = self.calculate_confidence(outcomes)

        logger.debug(
            "Analyzed %d files: %d frameworks, %d tools, %d infrastructure, confidence %.2f",
            len(submitted), len(patterns.frameworks), len(patterns.tools),
            len(patterns.infrastructure), confidence,
        )

        return AnalysisResult(
            summary=AnalysisSummary(
                total_files=len(submitted),
                category_counts=category_counts,
                confidence=confidence,
                app_type=best_app_type(patterns),
            ),
            files=[
                FileReport(
                    name=o.file.name,
                    size=o.file.size or len(o.file.content),
                    classification=o.classification,
                    parsed_content=o.parsed_content,
                )
                for o in outcomes
            ],
            manifest=manifest,
            configs=configs,
            patterns=patterns,
        )

    # -------------------------------------------------------------------------
    # Per-file analysis
    # -------------------------------------------------------------------------

    def _find_manifest(self, files: list[SubmittedFile]) -> Optional[int]:
        """Index of the first file whose base name is a manifest name."""
        for index, file in enumerate(files):
            if self._is_manifest_name(file.name):
                return index
        return None

    def _is_manifest_name(self, file_name: str) -> bool:
        names = {name.lower() for name in self._get_config().manifest_filenames}
        return basename(file_name).lower() in names

    def _analyze_each(
        self, files: list[SubmittedFile], manifest_index: Optional[int]
    ) -> list[_FileOutcome]:
        """Run per-file analysis, in parallel when configured; order is preserved."""
        jobs = [(file, index == manifest_index) for index, file in enumerate(files)]
        if self.max_workers and self.max_workers > 1 and len(jobs) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                return list(executor.map(lambda job: self.analyze_file(*job), jobs))
        return [self.analyze_file(file, is_manifest) for file, is_manifest in jobs]

    def analyze_file(self, file: SubmittedFile, is_manifest: bool = False) -> _FileOutcome:
        """Classify one file and run whichever analyzer applies to it."""
        classification = self.classifier.classify(file.name)
        logger.debug(
            "%s -> %s/%s", file.name, classification.category.value, classification.type
        )

        if is_manifest:
            return _FileOutcome(
                file=file,
                classification=classification,
                manifest=self.manifest_analyzer.analyze(file.content, basename(file.name)),
            )

        if classification.category == FileCategory.CONFIG:
            # Additional manifests are classified but not analyzed
            if self._is_manifest_name(file.name):
                return _FileOutcome(file=file, classification=classification)
            return _FileOutcome(
                file=file,
                classification=classification,
                config=self.config_analyzer.analyze(file.name, file.content),
            )

        if classification.category in SOURCE_CATEGORIES:
            content_type = ContentType.from_file_type(classification.type)
            return _FileOutcome(
                file=file,
                classification=classification,
                parsed_content=self.parser.parse(file.content, content_type),
            )

        return _FileOutcome(file=file, classification=classification)

    # -------------------------------------------------------------------------
    # Evidence merge
    # -------------------------------------------------------------------------

    def collect_signals(self, outcomes: Sequence[_FileOutcome]) -> Iterator[Signal]:
        """All evidence signals in merge order: manifest, configs, sources."""
        for outcome in outcomes:
            if outcome.manifest is not None:
                yield from self.manifest_signals(outcome.manifest)
        for outcome in outcomes:
            if outcome.config is not None:
                yield from self.config_signals(outcome.config)
        for outcome in outcomes:
            if outcome.parsed_content is not None:
                yield from self.source_signals(outcome)

    def manifest_signals(self, manifest: ManifestResult) -> Iterator[Signal]:
        if not manifest.success or manifest.analysis is None:
            return
        for name, evidence in manifest.analysis.frameworks.items():
            yield Signal('frameworks', name, evidence)
        for name, evidence in manifest.analysis.tools.items():
            yield Signal('tools', name, evidence)

    def config_signals(self, config: ConfigAnalysis) -> Iterator[Signal]:
        if not config.success:
            return
        cfg = self._get_config().infrastructure

        def fixed(name: str, confidence: float, evidence: str) -> Signal:
            return Signal(
                'infrastructure',
                name,
                PatternEvidence(confidence=confidence, evidence=(evidence,), sources=('config',)),
            )

        if isinstance(config, ComposeAnalysis) and config.services:
            yield fixed(
                'containerization',
                cfg.containerization,
                f"{len(config.services)} services in {config.file_name}",
            )
        if config.type == ConfigType.DOCKERFILE:
            yield fixed('containerization', cfg.container_image, f"container build {config.file_name}")
        if config.has_database:
            yield fixed('database', cfg.database, f"database in {config.file_name}")
        if getattr(config, 'has_redis', False):
            yield fixed('cache', cfg.cache, f"cache service in {config.file_name}")
        if config.has_auth:
            yield fixed('authentication', cfg.authentication, f"auth settings in {config.file_name}")
        if config.has_aws:
            yield fixed('cloud_credentials', cfg.cloud_credentials, f"cloud credentials in {config.file_name}")

    def source_signals(self, outcome: _FileOutcome) -> Iterator[Signal]:
        parsed = outcome.parsed_content
        if parsed is None or not parsed.success:
            return
        heuristics = self._get_config().heuristics
        metadata = parsed.metadata
        name = outcome.file.name

        def candidate(framework: str, confidence: float, evidence: str) -> Signal:
            return Signal(
                'frameworks',
                framework,
                PatternEvidence(confidence=confidence, evidence=(evidence,), sources=('source',)),
            )

        if outcome.classification.category == FileCategory.FRONTEND:
            # Templates and composables in single-file components look like JSX and hooks
            if outcome.classification.type == 'vue':
                yield candidate('vue', heuristics.single_file_component, f"single-file component {name}")
                return
            if metadata.get('has_jsx'):
                yield candidate('react', heuristics.jsx, f"JSX in {name}")
            if metadata.get('has_hooks'):
                yield candidate('react', heuristics.hooks, f"hooks in {name}")

        if outcome.classification.category == FileCategory.BACKEND:
            for flag, framework in BACKEND_FRAMEWORK_FLAGS:
                if metadata.get(flag):
                    yield candidate(
                        framework, heuristics.backend_framework_import, f"{framework} import in {name}"
                    )

    def app_type_signals(
        self,
        patterns: PatternMap,
        manifest: Optional[ManifestResult],
        files: Sequence[SubmittedFile],
        description: Optional[str] = None,
    ) -> Iterator[Signal]:
        """Application type scores from the merged frameworks and the raw input."""
        detected = set(patterns.frameworks)
        if manifest is not None and manifest.success and manifest.analysis is not None:
            detected.update(manifest.analysis.backend_libraries)

        text = '\n'.join([description or ''] + [f.content for f in files])
        scores = self.app_type_detector.detect([f.name for f in files], text, detected)
        for name, evidence in scores.items():
            yield Signal('app_types', name, evidence)

    def calculate_confidence(self, outcomes: Iterable[_FileOutcome]) -> float:
        """Weighted overall confidence over the evidence sources that exist.

        A source that was not submitted (or failed to parse) is excluded from
        both the sum and the denominator.
        """
        weights = self._get_config().weights
        terms: list[tuple[float, float]] = []

        outcomes = list(outcomes)
        manifest = next((o.manifest for o in outcomes if o.manifest is not None), None)
        if manifest is not None and manifest.success and manifest.analysis is not None:
            terms.append((manifest.analysis.confidence, weights.manifest))

        config_count = sum(1 for o in outcomes if o.config is not None and o.config.success)
        if config_count and weights.config_saturation:
            terms.append((min(config_count / weights.config_saturation, 1.0), weights.config))

        source_count = sum(
            1 for o in outcomes if o.parsed_content is not None and o.parsed_content.success
        )
        if source_count and weights.source_saturation:
            terms.append((min(source_count / weights.source_saturation, 1.0), weights.source))

        total_weight = sum(weight for _, weight in terms)
        if total_weight <= 0:
            return 0.0
        score = sum(value * weight for value, weight in terms) / total_weight
        return min(max(score, 0.0), 1.0)


def best_app_type(patterns: PatternMap) -> str:
    """Highest scoring application type; the first wins a tie."""
    if not patterns.app_types:
        return 'unknown'
    return max(patterns.app_types.items(), key=lambda item: item[1].confidence)[0]


def analyze_files(
    files: Sequence[FileInput],
    description: Optional[str] = None,
    config: Optional[ClassifierConfig] = None,
    max_workers: Optional[int] = None,
) -> AnalysisResult:
    """Analyze a batch of files with a fresh aggregator."""
    return PatternAggregator(config=config, max_workers=max_workers).analyze_files(
        files, description=description
    )
