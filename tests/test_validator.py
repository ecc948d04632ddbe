"""Tests for result review."""

import pytest

from stack_classifier.aggregator import analyze_files
from stack_classifier.schema import ConfidenceLevel, SubmittedFile
from stack_classifier.validator import ResultValidator

REACT_MANIFEST = '{"dependencies":{"react":"^18.0.0","react-dom":"^18.0.0"}}'


@pytest.fixture
def validator():
    return ResultValidator()


class TestConfidenceLevel:
    """Tests for confidence banding."""

    @pytest.mark.parametrize("confidence,level", [
        (0.95, ConfidenceLevel.EXCELLENT),
        (0.8, ConfidenceLevel.EXCELLENT),
        (0.6, ConfidenceLevel.GOOD),
        (0.3, ConfidenceLevel.FAIR),
        (0.29, ConfidenceLevel.LOW),
        (0.0, ConfidenceLevel.LOW),
    ])
    def test_bands(self, validator, confidence, level):
        assert validator.confidence_level(confidence) == level


class TestValidate:
    """Tests for ResultValidator.validate."""

    def test_empty_result(self, validator):
        review = validator.validate(analyze_files([]))

        assert review.is_valid is False
        assert review.issues == ["No files were submitted"]
        assert review.confidence_level == ConfidenceLevel.LOW
        assert review.needs_review is True

    def test_manifest_only(self, validator):
        review = validator.validate(analyze_files([
            SubmittedFile(name="package.json", content=REACT_MANIFEST),
        ]))

        assert review.is_valid
        assert review.confidence_level == ConfidenceLevel.FAIR
        assert review.needs_review is True
        assert not any("manifest" in s for s in review.suggestions)
        assert any("configuration files" in s for s in review.suggestions)
        assert any("source files" in s for s in review.suggestions)

    def test_confident_result(self, validator):
        files = [SubmittedFile(name=f"src/m{i}.py", content="import os\n") for i in range(10)]
        review = validator.validate(analyze_files(files))

        assert review.confidence_level == ConfidenceLevel.EXCELLENT
        assert review.needs_review is False
        assert "No framework was detected" in review.warnings
        assert not any("source files" in s for s in review.suggestions)
        assert "Describe the application to help identify its type" in review.suggestions

    def test_identified_app_type_needs_no_description(self, validator):
        review = validator.validate(analyze_files([
            SubmittedFile(name="package.json", content=REACT_MANIFEST),
        ]))
        assert not any("Describe the application" in s for s in review.suggestions)

    def test_failed_manifest_warning(self, validator):
        review = validator.validate(analyze_files([
            SubmittedFile(name="package.json", content="{broken"),
        ]))

        assert any("could not be parsed" in w for w in review.warnings)
        assert any("Very low confidence" in w for w in review.warnings)

    def test_review_does_not_change_result(self, validator):
        result = analyze_files([
            SubmittedFile(name="package.json", content=REACT_MANIFEST),
            SubmittedFile(name="Dockerfile", content="FROM node:18\n"),
        ])
        before = result.model_dump(mode="json")

        validator.validate(result)

        assert result.model_dump(mode="json") == before
