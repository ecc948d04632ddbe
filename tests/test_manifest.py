"""Tests for dependency manifest analysis."""

import json

import pytest

from stack_classifier.manifest import ManifestAnalyzer


@pytest.fixture
def analyzer():
    return ManifestAnalyzer()


def analyze(analyzer, pkg):
    result = analyzer.analyze(json.dumps(pkg))
    assert result.success, result.error
    return result.analysis


class TestFrameworkDetection:
    """Tests for indicator matching."""

    def test_react_full_match(self, analyzer):
        """Both react indicators give full confidence."""
        analysis = analyze(analyzer, {"dependencies": {"react": "^18.0.0", "react-dom": "^18.0.0"}})

        react = analysis.frameworks["react"]
        assert react.confidence == pytest.approx(1.0)
        assert react.evidence == ("react", "react-dom")
        assert react.sources == ("manifest",)

    def test_partial_match(self, analyzer):
        """Confidence is the matched share of the indicator list."""
        analysis = analyze(analyzer, {"dependencies": {"vue": "^3.0.0"}})
        assert analysis.frameworks["vue"].confidence == pytest.approx(0.25)

    def test_multiple_frameworks(self, analyzer):
        """A meta-framework matches alongside its base framework."""
        analysis = analyze(analyzer, {"dependencies": {"nuxt": "^3.0.0"}})

        assert analysis.frameworks["nuxt"].confidence == pytest.approx(1.0)
        assert analysis.frameworks["vue"].confidence == pytest.approx(0.25)

    def test_no_match_is_absent(self, analyzer):
        """Frameworks without matches are absent, not zero."""
        analysis = analyze(analyzer, {"dependencies": {"lodash": "^4.0.0"}})
        assert analysis.frameworks == {}

    def test_dev_dependencies_count(self, analyzer):
        analysis = analyze(analyzer, {"devDependencies": {"typescript": "^5.0.0", "vite": "^5.0.0"}})

        assert set(analysis.tools) == {"typescript", "vite"}
        assert analysis.tools["typescript"].confidence == pytest.approx(0.5)

    def test_peer_dependencies_only_for_frameworks(self, analyzer):
        """Peer dependencies imply frameworks but not tools."""
        analysis = analyze(analyzer, {
            "peerDependencies": {"react": "^18.0.0", "typescript": "^5.0.0"},
        })

        assert analysis.frameworks["react"].confidence == pytest.approx(0.5)
        assert analysis.tools == {}
        assert analysis.dependency_counts.total == 0

    def test_backend_libraries(self, analyzer):
        analysis = analyze(analyzer, {"dependencies": {"express": "^4.0.0", "mongoose": "^7.0.0"}})

        assert analysis.backend_libraries["express"].confidence == pytest.approx(1.0)
        assert analysis.backend_libraries["database"].confidence == pytest.approx(0.25)

    def test_react_scripts_is_a_tool(self, analyzer):
        analysis = analyze(analyzer, {"dependencies": {"react-scripts": "5.0.1"}})

        assert "create-react-app" in analysis.tools
        assert "react" not in analysis.frameworks


class TestScripts:
    """Tests for script role assignment."""

    def test_roles_and_custom(self, analyzer):
        analysis = analyze(analyzer, {"scripts": {
            "build": "vite build",
            "dev": "vite",
            "test": "jest",
            "postinstall": "patch-package",
        }})
        scripts = analysis.scripts

        assert scripts.build.key == "build"
        assert scripts.build.command == "vite build"
        assert scripts.dev.command == "vite"
        assert scripts.test.command == "jest"
        assert scripts.start is None
        assert [s.key for s in scripts.custom] == ["postinstall"]
        assert scripts.build_tool == "vite"
        assert scripts.has_build
        assert scripts.has_ci

    def test_alias_roles(self, analyzer):
        analysis = analyze(analyzer, {"scripts": {"compile": "tsc", "serve": "node dist", "release": "np"}})

        assert analysis.scripts.build.key == "compile"
        assert analysis.scripts.dev.key == "serve"
        assert analysis.scripts.deploy.key == "release"
        assert analysis.scripts.custom == []

    def test_build_tool_from_react_scripts(self, analyzer):
        analysis = analyze(analyzer, {"scripts": {"build": "react-scripts build"}})
        assert analysis.scripts.build_tool == "create-react-app"

    def test_unknown_build_tool(self, analyzer):
        analysis = analyze(analyzer, {"scripts": {"build": "make"}})
        assert analysis.scripts.build_tool == "unknown"
        assert not analysis.scripts.has_ci

    def test_script_flags_are_serialized(self, analyzer):
        """has_build and has_ci are part of the dumped manifest metadata."""
        analysis = analyze(analyzer, {"scripts": {"build": "vite build", "lint": "eslint ."}})
        dumped = analysis.model_dump(mode="json")["scripts"]

        assert dumped["has_build"] is True
        assert dumped["has_ci"] is True

        empty = analyze(analyzer, {}).model_dump(mode="json")["scripts"]
        assert empty["has_build"] is False
        assert empty["has_ci"] is False


class TestPackageConfidence:
    """Tests for the weighted package confidence."""

    def test_react_manifest(self, analyzer):
        """Framework, tool and dependency terms are included; scripts absent."""
        analysis = analyze(analyzer, {"dependencies": {"react": "^18.0.0", "react-dom": "^18.0.0"}})

        # (1.0 * 0.4 + 0 * 0.2 + 2/20 * 0.2) / 0.8
        assert analysis.confidence == pytest.approx(0.525)

    def test_scripts_only(self, analyzer):
        """Only the build term exists, so it is renormalized to 1.0."""
        analysis = analyze(analyzer, {"scripts": {"build": "webpack"}})
        assert analysis.confidence == pytest.approx(1.0)

    def test_scripts_without_build(self, analyzer):
        """A scripts block without a build script is present-with-zero."""
        analysis = analyze(analyzer, {"scripts": {"start": "node index.js"}})
        assert analysis.confidence == pytest.approx(0.0)

    def test_empty_manifest(self, analyzer):
        analysis = analyze(analyzer, {})

        assert analysis.confidence == 0.0
        assert analysis.frameworks == {}
        assert analysis.tools == {}

    def test_saturation(self, analyzer):
        """Dependency and tool terms cap at 1.0."""
        deps = {f"dep-{i}": "1.0.0" for i in range(30)}
        deps.update({
            "react": "1", "react-dom": "1", "typescript": "1", "webpack": "1",
            "vite": "1", "eslint": "1", "jest": "1", "prettier": "1",
        })
        analysis = analyze(analyzer, {"dependencies": deps, "scripts": {"build": "webpack"}})
        assert analysis.confidence == pytest.approx(1.0)

    def test_confidence_in_range(self, analyzer):
        analysis = analyze(analyzer, {"dependencies": {"vue": "3"}, "scripts": {"lint": "eslint ."}})
        assert 0.0 <= analysis.confidence <= 1.0


class TestMetadata:
    """Tests for package metadata."""

    def test_metadata(self, analyzer):
        analysis = analyze(analyzer, {
            "name": "shop",
            "version": "2.1.0",
            "type": "module",
            "private": True,
            "workspaces": ["packages/*"],
            "engines": {"node": ">=18"},
            "packageManager": "pnpm@8.6.0",
            "dependencies": {"a": "1"},
            "devDependencies": {"b": "1", "c": "1"},
        })

        assert analysis.name == "shop"
        assert analysis.version == "2.1.0"
        assert analysis.module_type == "module"
        assert analysis.is_private
        assert analysis.has_workspaces
        assert analysis.node_version == ">=18"
        assert analysis.package_manager == "pnpm"
        assert analysis.dependency_counts.production == 1
        assert analysis.dependency_counts.development == 2
        assert analysis.dependency_counts.total == 3

    def test_defaults(self, analyzer):
        analysis = analyze(analyzer, {})

        assert analysis.module_type == "commonjs"
        assert analysis.package_manager == "unknown"
        assert analysis.node_version is None

    def test_malformed_blocks_are_empty(self, analyzer):
        """Non-object dependency blocks count as empty."""
        analysis = analyze(analyzer, {"dependencies": ["react"], "scripts": "build"})

        assert analysis.dependency_counts.total == 0
        assert analysis.frameworks == {}


class TestFailures:
    """Tests for parse failure handling."""

    def test_invalid_json(self, analyzer):
        result = analyzer.analyze("{invalid")

        assert result.success is False
        assert result.analysis is None
        assert result.error

    def test_non_object_root(self, analyzer):
        result = analyzer.analyze("[1, 2]")

        assert result.success is False
        assert "object" in result.error

    def test_file_name_is_kept(self, analyzer):
        result = analyzer.analyze("{}", file_name="web/package.json")
        assert result.file_name == "web/package.json"
