"""Dependency manifest (package.json) analysis.

Detects frameworks, auxiliary tools and backend libraries by intersecting the
declared dependencies with curated indicator lists, classifies declared
scripts, and scores how much the manifest tells us about the application.
"""

import json
import logging
from typing import Any, Mapping, Optional

from .config import ClassifierConfig, get_config
from .schema import (
    DependencyCounts,
    ManifestAnalysis,
    ManifestResult,
    PatternEvidence,
    ScriptEntry,
    ScriptsAnalysis,
)

logger = logging.getLogger(__name__)


def _mapping(value: Any) -> dict[str, Any]:
    """Dependency/script blocks that are not objects count as empty."""
    return dict(value) if isinstance(value, dict) else {}


class ManifestAnalyzer:
    """Analyzes a dependency manifest.

    Scoring principles:
    - Candidates are evaluated independently; several frameworks may match
    - A term only counts toward the package confidence when its evidence
      source is present in the manifest
    """

    def __init__(self, config: Optional[ClassifierConfig] = None):
        self._config = config

    def _get_config(self) -> ClassifierConfig:
        return self._config or get_config()

    def analyze(self, manifest_content: str, file_name: str = 'package.json') -> ManifestResult:
        """Analyze manifest text. Parse failures are returned, not raised."""
        try:
            pkg = json.loads(manifest_content)
        except (TypeError, ValueError) as e:
            logger.warning("Manifest %s is not valid JSON: %s", file_name, e)
            return ManifestResult(success=False, file_name=file_name, error=str(e))

        if not isinstance(pkg, dict):
            return ManifestResult(
                success=False,
                file_name=file_name,
                error=f"Manifest root must be an object, got {type(pkg).__name__}",
            )

        analysis = self.analyze_package(pkg)
        logger.debug(
            "Manifest %s: %d frameworks, %d tools, confidence %.2f",
            file_name, len(analysis.frameworks), len(analysis.tools), analysis.confidence,
        )
        return ManifestResult(success=True, file_name=file_name, analysis=analysis)

    def analyze_package(self, pkg: Mapping[str, Any]) -> ManifestAnalysis:
        """Analyze an already-decoded manifest object."""
        indicators = self._get_config().indicators
        dependencies = _mapping(pkg.get('dependencies'))
        dev_dependencies = _mapping(pkg.get('devDependencies'))
        peer_dependencies = _mapping(pkg.get('peerDependencies'))

        runtime_and_dev = set(dependencies) | set(dev_dependencies)
        all_declared = runtime_and_dev | set(peer_dependencies)

        engines = _mapping(pkg.get('engines'))
        node_version = engines.get('node')

        analysis = ManifestAnalysis(
            name=pkg.get('name') if isinstance(pkg.get('name'), str) else None,
            version=pkg.get('version') if isinstance(pkg.get('version'), str) else None,
            module_type=pkg.get('type') if isinstance(pkg.get('type'), str) else 'commonjs',
            frameworks=self.match_indicators(indicators.frameworks, all_declared),
            tools=self.match_indicators(indicators.tools, runtime_and_dev),
            backend_libraries=self.match_indicators(indicators.backend_libraries, runtime_and_dev),
            scripts=self.analyze_scripts(_mapping(pkg.get('scripts'))),
            dependency_counts=DependencyCounts(
                production=len(dependencies),
                development=len(dev_dependencies),
                total=len(dependencies) + len(dev_dependencies),
            ),
            has_workspaces=bool(pkg.get('workspaces')),
            is_private=bool(pkg.get('private')),
            node_version=str(node_version) if node_version is not None else None,
            package_manager=self.detect_package_manager(pkg),
        )
        analysis.confidence = self.calculate_confidence(
            analysis,
            has_declared_dependencies=bool(all_declared),
            has_scripts=bool(_mapping(pkg.get('scripts'))),
        )
        return analysis

    def match_indicators(
        self, table: Mapping[str, list[str]], declared: set[str]
    ) -> dict[str, PatternEvidence]:
        """Intersect each indicator list with the declared dependency names."""
        detected: dict[str, PatternEvidence] = {}
        for name, indicator_deps in table.items():
            if not indicator_deps:
                continue
            matches = [dep for dep in indicator_deps if dep in declared]
            if matches:
                detected[name] = PatternEvidence(
                    confidence=len(matches) / len(indicator_deps),
                    evidence=tuple(matches),
                    sources=('manifest',),
                )
        return detected

    def analyze_scripts(self, scripts: Mapping[str, Any]) -> ScriptsAnalysis:
        """Assign scripts to canonical roles and infer the build tool."""
        roles = self._get_config().scripts.roles
        commands = {key: str(value) for key, value in scripts.items()}

        found: dict[str, Optional[ScriptEntry]] = {}
        for role, aliases in roles.items():
            found[role] = next(
                (ScriptEntry(key=alias, command=commands[alias]) for alias in aliases if commands.get(alias)),
                None,
            )

        known_keys = {alias for aliases in roles.values() for alias in aliases}
        custom = [
            ScriptEntry(key=key, command=command)
            for key, command in commands.items()
            if key not in known_keys
        ]

        return ScriptsAnalysis(
            build=found.get('build'),
            start=found.get('start'),
            dev=found.get('dev'),
            test=found.get('test'),
            lint=found.get('lint'),
            deploy=found.get('deploy'),
            custom=custom,
            build_tool=self.detect_build_tool(commands.values()),
        )

    def detect_build_tool(self, commands) -> str:
        """First configured tool name found in any script command."""
        joined = ' '.join(commands)
        for marker, tool in self._get_config().scripts.build_tools:
            if marker in joined:
                return tool
        return 'unknown'

    def detect_package_manager(self, pkg: Mapping[str, Any]) -> str:
        package_manager = pkg.get('packageManager')
        if isinstance(package_manager, str) and package_manager:
            return package_manager.split('@')[0]
        if pkg.get('lockfileVersion'):
            return 'npm'
        return 'unknown'

    def calculate_confidence(
        self,
        analysis: ManifestAnalysis,
        has_declared_dependencies: bool,
        has_scripts: bool,
    ) -> float:
        """Weighted package confidence, normalized over the terms with evidence.

        Terms whose evidence source is absent are left out of both the sum and
        the denominator; present sources with no matches contribute zero.
        """
        cfg = self._get_config().manifest_scoring
        score = 0.0
        weights = 0.0

        if has_declared_dependencies:
            frameworks = list(analysis.frameworks.values())
            average = sum(fw.confidence for fw in frameworks) / len(frameworks) if frameworks else 0.0
            score += average * cfg.frameworks
            weights += cfg.frameworks

            tool_ratio = min(len(analysis.tools) / cfg.tool_saturation, 1.0) if cfg.tool_saturation else 0.0
            score += tool_ratio * cfg.tools
            weights += cfg.tools

        if has_scripts:
            score += (1.0 if analysis.scripts.has_build else 0.0) * cfg.build_script
            weights += cfg.build_script

        total = analysis.dependency_counts.total
        if total > 0:
            dependency_ratio = (
                min(total / cfg.dependency_saturation, 1.0) if cfg.dependency_saturation else 0.0
            )
            score += dependency_ratio * cfg.dependencies
            weights += cfg.dependencies

        if weights <= 0:
            return 0.0
        return min(max(score / weights, 0.0), 1.0)
