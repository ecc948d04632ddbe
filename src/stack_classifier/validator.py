"""Advisory review of analysis results.

Bands the overall confidence, decides whether a caller should ask for
manual confirmation, and suggests what extra input would help. The review
never changes the result it inspects.
"""

from typing import Optional

from .config import ClassifierConfig, get_config
from .schema import (
    AnalysisResult,
    ConfidenceLevel,
    FileCategory,
    ResultReview,
)


class ResultValidator:
    """Reviews an AnalysisResult against configured confidence thresholds."""

    def __init__(self, config: Optional[ClassifierConfig] = None):
        self._config = config

    def _get_config(self) -> ClassifierConfig:
        return self._config or get_config()

    def confidence_level(self, confidence: float) -> ConfidenceLevel:
        """Band a confidence score."""
        thresholds = self._get_config().thresholds
        if confidence >= thresholds.excellent:
            return ConfidenceLevel.EXCELLENT
        if confidence >= thresholds.good:
            return ConfidenceLevel.GOOD
        if confidence >= thresholds.fair:
            return ConfidenceLevel.FAIR
        return ConfidenceLevel.LOW

    def validate(self, result: AnalysisResult) -> ResultReview:
        thresholds = self._get_config().thresholds
        confidence = result.summary.confidence

        issues: list[str] = []
        warnings: list[str] = []
        suggestions: list[str] = []

        if result.summary.total_files == 0:
            issues.append("No files were submitted")

        if confidence < thresholds.fair:
            warnings.append(
                f"Very low confidence ({confidence:.0%}); detected patterns may be unreliable"
            )

        if result.manifest is not None and not result.manifest.success:
            warnings.append(
                f"Manifest {result.manifest.file_name} could not be parsed: {result.manifest.error}"
            )

        failed_files = [
            report.name for report in result.files
            if report.parsed_content is not None and not report.parsed_content.success
        ]
        failed_configs = [config.file_name for config in result.configs if not config.success]
        failed = failed_files + failed_configs
        if failed:
            warnings.append(f"{len(failed)} file(s) failed to parse: {', '.join(failed)}")

        if not result.patterns.frameworks and result.summary.total_files > 0:
            warnings.append("No framework was detected")

        if not result.patterns.app_types and result.summary.total_files > 0:
            suggestions.append("Describe the application to help identify its type")

        # Suggestions for input that would raise confidence
        counts = result.summary.category_counts
        if result.manifest is None:
            suggestions.append("Upload the dependency manifest (package.json) for framework detection")
        if not result.configs:
            suggestions.append(
                "Add configuration files (Dockerfile, docker-compose.yml, .env) for infrastructure detection"
            )
        source_count = counts.get(FileCategory.FRONTEND, 0) + counts.get(FileCategory.BACKEND, 0)
        if source_count < self._get_config().weights.source_saturation:
            suggestions.append("Add more source files to strengthen source-level evidence")

        return ResultReview(
            is_valid=not issues,
            confidence_level=self.confidence_level(confidence),
            needs_review=confidence < thresholds.review,
            issues=issues,
            warnings=warnings,
            suggestions=suggestions,
        )
