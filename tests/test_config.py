"""Tests for configuration management."""

import pytest
import yaml
from pydantic import ValidationError

from stack_classifier.aggregator import analyze_files
from stack_classifier.config import (
    ClassifierConfig,
    find_config_file,
    get_config,
    load_config,
    reset_config,
    save_default_config,
)
from stack_classifier.schema import SubmittedFile


@pytest.fixture(autouse=True)
def clean_config():
    reset_config()
    yield
    reset_config()


class TestDefaults:
    """Tests for the compiled-in defaults."""

    def test_default_weights(self):
        cfg = get_config()

        assert cfg.weights.manifest == 0.4
        assert cfg.weights.config == 0.3
        assert cfg.weights.source == 0.3
        assert cfg.manifest_scoring.frameworks == 0.4
        assert cfg.thresholds.review == 0.7

    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_reset_config(self):
        first = get_config()
        reset_config()
        assert get_config() is not first

    def test_react_indicators(self):
        assert get_config().indicators.frameworks["react"] == ["react", "react-dom"]


class TestLoadConfig:
    """Tests for YAML config files."""

    def test_partial_override(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("weights:\n  manifest: 0.5\n", encoding="utf-8")

        cfg = load_config(path)

        assert cfg.weights.manifest == 0.5
        assert cfg.weights.config == 0.3
        assert get_config() is cfg

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")

        assert load_config(path) == ClassifierConfig()

    def test_invalid_value_raises(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("weights:\n  manifest: heavy\n", encoding="utf-8")

        with pytest.raises(ValidationError):
            load_config(path)

    def test_loaded_config_reaches_engine(self, tmp_path):
        """Engines created after loading read the new indicator tables."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "indicators:\n  frameworks:\n    preact: [preact]\n",
            encoding="utf-8",
        )
        load_config(path)

        result = analyze_files([
            SubmittedFile(name="package.json", content='{"dependencies": {"preact": "10"}}'),
        ])

        assert set(result.patterns.frameworks) == {"preact"}

    def test_app_type_override(self, tmp_path):
        """A YAML type table replaces the defaults and needs no label."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "app_types:\n  types:\n    worker:\n      content: ['celery|rq']\n",
            encoding="utf-8",
        )
        load_config(path)

        result = analyze_files([], description="Background jobs run on celery")

        assert set(result.patterns.app_types) == {"worker"}
        assert result.summary.app_type == "worker"

    def test_save_default_round_trip(self, tmp_path):
        path = tmp_path / "nested" / "config.yaml"
        save_default_config(path)

        text = path.read_text(encoding="utf-8")
        assert text.startswith("# Stack Classifier Configuration")
        assert "!!python" not in text
        assert yaml.safe_load(text)["weights"]["manifest"] == 0.4
        assert load_config(path) == ClassifierConfig()


class TestFindConfigFile:
    """Tests for config discovery."""

    @pytest.fixture
    def isolated(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path / "home"))
        monkeypatch.delenv("STACK_CLASSIFIER_CONFIG", raising=False)
        return tmp_path

    def test_none_found(self, isolated):
        assert find_config_file() is None

    def test_current_directory(self, isolated):
        path = isolated / "stack-classifier.yaml"
        path.write_text("{}", encoding="utf-8")

        assert find_config_file().resolve() == path.resolve()

    def test_env_var_takes_priority(self, isolated, monkeypatch):
        (isolated / "stack-classifier.yaml").write_text("{}", encoding="utf-8")
        env_path = isolated / "custom.yaml"
        env_path.write_text("{}", encoding="utf-8")
        monkeypatch.setenv("STACK_CLASSIFIER_CONFIG", str(env_path))

        assert find_config_file().resolve() == env_path.resolve()

    def test_user_config(self, isolated):
        path = isolated / "home" / ".config" / "stack-classifier" / "config.yaml"
        path.parent.mkdir(parents=True)
        path.write_text("{}", encoding="utf-8")

        assert find_config_file().resolve() == path.resolve()
