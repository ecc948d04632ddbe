"""Application type scoring.

Scores each configured application type (single page app, server-side
rendered, API service, full-stack, static site) from the frameworks already
detected, the shape of the submitted file tree and markers in the free-text
description and file contents.
"""

import logging
import re
from typing import Iterable, Optional, Sequence

from .config import AppTypeConfig, AppTypeIndicators, ClassifierConfig, get_config
from .schema import PatternEvidence

logger = logging.getLogger(__name__)


def _match_ratio(patterns: Sequence[str], texts: Sequence[str]) -> tuple[int, float]:
    """Number of patterns found in any text, and that number as a share."""
    if not patterns:
        return 0, 0.0
    matched = sum(
        1 for pattern in patterns
        if any(re.search(pattern, text, re.IGNORECASE) for text in texts)
    )
    return matched, matched / len(patterns)


class AppTypeDetector:
    """Scores application types for one analysis."""

    def __init__(self, config: Optional[ClassifierConfig] = None):
        self._config = config

    def _get_config(self) -> AppTypeConfig:
        """Get app type config."""
        return (self._config or get_config()).app_types

    def detect(
        self,
        file_names: Sequence[str],
        content: str,
        frameworks: Iterable[str],
    ) -> dict[str, PatternEvidence]:
        """Score every configured type; types scoring 0 are left out.

        Args:
            file_names: Submitted file names, in input order.
            content: Description and file contents to search for markers.
            frameworks: Names of the frameworks and backend libraries detected.
        """
        cfg = self._get_config()
        names = [name.replace('\\', '/') for name in file_names]
        lowered = [name.lower() for name in names]
        detected = set(frameworks)

        has_client = any(d in name for name in lowered for d in cfg.client_dirs)
        has_server = any(d in name for name in lowered for d in cfg.server_dirs)
        has_service = has_server or any(d in name for name in lowered for d in cfg.service_dirs)

        scores = {}
        for type_name, indicators in cfg.types.items():
            evidence = self.score(indicators, names, content, detected, has_client, has_server, has_service)
            if evidence is not None:
                scores[type_name] = evidence

        logger.debug("Application type scores: %s", {k: round(v.confidence, 3) for k, v in scores.items()})
        return scores

    def score(
        self,
        indicators: AppTypeIndicators,
        names: Sequence[str],
        content: str,
        detected: set[str],
        has_client: bool,
        has_server: bool,
        has_service: bool,
    ) -> Optional[PatternEvidence]:
        cfg = self._get_config()
        score = 0.0
        evidence = []
        sources = []

        matched_frameworks = [fw for fw in indicators.frameworks if fw in detected]
        if matched_frameworks:
            score += cfg.framework
            evidence.append(f"framework {', '.join(matched_frameworks)}")
            sources.append('frameworks')

        path_hits, path_ratio = _match_ratio(indicators.paths, names)
        if path_hits:
            score += path_ratio * cfg.paths
            evidence.append(f"{path_hits}/{len(indicators.paths)} path indicators")
            sources.append('paths')

        content_hits, content_ratio = _match_ratio(indicators.content, [content] if content else [])
        if content_hits:
            score += content_ratio * cfg.content
            evidence.append(f"{content_hits}/{len(indicators.content)} content indicators")
            sources.append('content')

        # Only markup-like evidence earns the no-framework score
        if indicators.requires_no_framework and not detected and (path_hits or content_hits):
            score += cfg.framework
            evidence.append("no framework detected")

        if indicators.split_layout:
            if has_client and has_service:
                score += cfg.split_layout_bonus
                evidence.append("separate client and server trees")
            else:
                score *= cfg.single_tree_factor
        elif has_client and has_server:
            score *= cfg.mixed_tree_factor

        if score > cfg.boost_above:
            score *= cfg.boost_factor
        elif score < cfg.damp_below:
            score *= cfg.damp_factor

        if score <= 0:
            return None
        return PatternEvidence(
            confidence=min(score, 1.0),
            evidence=tuple(evidence),
            sources=tuple(sources),
        )
