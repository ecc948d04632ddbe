"""Pydantic models for the stack classification engine.

Input schemas for submitted files and output schemas for per-file
classification, manifest and config analysis, and the merged pattern map.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field


# =============================================================================
# Enums
# =============================================================================


class FileCategory(str, Enum):
    """Coarse category assigned to every submitted file."""
    FRONTEND = "frontend"
    BACKEND = "backend"
    CONFIG = "config"
    DATA = "data"
    DOCS = "docs"
    UNKNOWN = "unknown"


class ContentType(str, Enum):
    """Content parser selected for a file."""
    MANIFEST = "manifest"
    SCRIPT = "script"
    TYPED_SCRIPT = "typed_script"
    BACKEND_SCRIPT = "backend_script"
    MARKUP = "markup"
    STYLESHEET = "stylesheet"
    STRUCTURED_DATA = "structured_data"
    CONTAINER_BUILD = "container_build"
    GENERIC = "generic"

    @classmethod
    def from_file_type(cls, file_type: str) -> "ContentType":
        """Map a classifier type name (or parser name) onto a content parser."""
        mapping = {
            "package": cls.MANIFEST,
            "json": cls.MANIFEST,
            "javascript": cls.SCRIPT,
            "nodejs": cls.SCRIPT,
            "vue": cls.SCRIPT,
            "typescript": cls.TYPED_SCRIPT,
            "python": cls.BACKEND_SCRIPT,
            "html": cls.MARKUP,
            "templates": cls.MARKUP,
            "styles": cls.STYLESHEET,
            "css": cls.STYLESHEET,
            "yaml": cls.STRUCTURED_DATA,
            "docker": cls.CONTAINER_BUILD,
            "dockerfile": cls.CONTAINER_BUILD,
        }
        key = (file_type or "").lower()
        if key in mapping:
            return mapping[key]
        try:
            return cls(key)
        except ValueError:
            return cls.GENERIC


class ConfigType(str, Enum):
    """Discriminator for infrastructure/config file analyses."""
    DOCKER_COMPOSE = "docker-compose"
    DOCKERFILE = "dockerfile"
    ENVIRONMENT = "environment"
    WEBPACK = "webpack"
    VITE = "vite"
    NEXT = "next"
    NUXT = "nuxt"
    GENERIC = "generic"


class ConfidenceLevel(str, Enum):
    """Human-facing band for an overall confidence score."""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    LOW = "low"


# =============================================================================
# Input Schemas
# =============================================================================


class SubmittedFile(BaseModel):
    """A decoded text file handed to the engine by its caller."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="File name or relative path")
    content: str = Field(default="", description="Decoded text content")
    size: int = Field(default=0, description="Size in bytes as reported by the caller")


# =============================================================================
# Per-file Schemas
# =============================================================================


class FileClassification(BaseModel):
    """Category/type/extension triple derived purely from a file name."""
    model_config = ConfigDict(frozen=True)

    category: FileCategory
    type: str
    extension: str = ""


class ParsedContent(BaseModel):
    """Result of running a content parser over one file."""
    success: bool = True
    content_type: ContentType = ContentType.GENERIC
    metadata: dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None


# =============================================================================
# Manifest Schemas
# =============================================================================


class PatternEvidence(BaseModel):
    """Confidence that a named pattern is present, with its supporting evidence.

    Instances are immutable; merging produces a new instance.
    """
    model_config = ConfigDict(frozen=True)

    confidence: float = Field(..., ge=0.0, le=1.0)
    evidence: tuple[str, ...] = Field(default_factory=tuple)
    sources: tuple[str, ...] = Field(default_factory=tuple)

    def reinforce(self, other: "PatternEvidence") -> "PatternEvidence":
        """Combine two evidence records; confidence never decreases."""
        return PatternEvidence(
            confidence=max(self.confidence, other.confidence),
            evidence=_ordered_union(self.evidence, other.evidence),
            sources=_ordered_union(self.sources, other.sources),
        )


def _ordered_union(first: tuple[str, ...], second: tuple[str, ...]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(first + second))


class ScriptEntry(BaseModel):
    """A declared run/build script."""
    key: str
    command: str


class ScriptsAnalysis(BaseModel):
    """Canonical script roles found in a manifest."""
    build: Optional[ScriptEntry] = None
    start: Optional[ScriptEntry] = None
    dev: Optional[ScriptEntry] = None
    test: Optional[ScriptEntry] = None
    lint: Optional[ScriptEntry] = None
    deploy: Optional[ScriptEntry] = None
    custom: list[ScriptEntry] = Field(default_factory=list)
    build_tool: str = "unknown"

    @computed_field
    @property
    def has_build(self) -> bool:
        return self.build is not None

    @computed_field
    @property
    def has_ci(self) -> bool:
        return self.test is not None or self.lint is not None


class DependencyCounts(BaseModel):
    """Declared dependency counts."""
    production: int = 0
    development: int = 0
    total: int = 0


class ManifestAnalysis(BaseModel):
    """Structured judgement over a dependency manifest."""
    name: Optional[str] = None
    version: Optional[str] = None
    module_type: str = "commonjs"
    frameworks: dict[str, PatternEvidence] = Field(default_factory=dict)
    tools: dict[str, PatternEvidence] = Field(default_factory=dict)
    backend_libraries: dict[str, PatternEvidence] = Field(default_factory=dict)
    scripts: ScriptsAnalysis = Field(default_factory=ScriptsAnalysis)
    dependency_counts: DependencyCounts = Field(default_factory=DependencyCounts)
    has_workspaces: bool = False
    is_private: bool = False
    node_version: Optional[str] = None
    package_manager: str = "unknown"
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class ManifestResult(BaseModel):
    """Outcome of analysing a manifest; failure is local to the manifest."""
    success: bool
    file_name: str = "package.json"
    analysis: Optional[ManifestAnalysis] = None
    error: Optional[str] = None


# =============================================================================
# Config Analysis Schemas
# =============================================================================


class _ConfigAnalysisBase(BaseModel):
    """Fields shared by every config analysis."""
    file_name: str = ""
    success: bool = True
    error: Optional[str] = None
    services: list[str] = Field(default_factory=list)
    has_database: bool = False
    has_auth: bool = False
    has_aws: bool = False


class ComposeAnalysis(_ConfigAnalysisBase):
    """Container compose file."""
    type: Literal[ConfigType.DOCKER_COMPOSE] = ConfigType.DOCKER_COMPOSE
    volumes: list[str] = Field(default_factory=list)
    networks: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)
    has_redis: bool = False
    complexity: int = 0


class DockerfileAnalysis(_ConfigAnalysisBase):
    """Container build file."""
    type: Literal[ConfigType.DOCKERFILE] = ConfigType.DOCKERFILE
    base_image: Optional[str] = None
    ports: list[int] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    runtime: str = "unknown"
    is_multi_stage: bool = False


class EnvironmentAnalysis(_ConfigAnalysisBase):
    """Environment variable file."""
    type: Literal[ConfigType.ENVIRONMENT] = ConfigType.ENVIRONMENT
    variables: list[str] = Field(default_factory=list)


class WebpackAnalysis(_ConfigAnalysisBase):
    type: Literal[ConfigType.WEBPACK] = ConfigType.WEBPACK
    has_dev_server: bool = False
    has_hmr: bool = False
    has_optimization: bool = False
    plugins: list[str] = Field(default_factory=list)
    loaders: list[str] = Field(default_factory=list)


class ViteAnalysis(_ConfigAnalysisBase):
    type: Literal[ConfigType.VITE] = ConfigType.VITE
    has_react: bool = False
    has_vue: bool = False
    has_typescript: bool = False
    has_proxy: bool = False
    plugins: list[str] = Field(default_factory=list)


class NextAnalysis(_ConfigAnalysisBase):
    type: Literal[ConfigType.NEXT] = ConfigType.NEXT
    has_images: bool = False
    has_rewrites: bool = False
    has_redirects: bool = False
    has_api: bool = False
    is_static: bool = False


class NuxtAnalysis(_ConfigAnalysisBase):
    type: Literal[ConfigType.NUXT] = ConfigType.NUXT
    has_ssr: bool = True
    has_modules: bool = False
    has_plugins: bool = False
    has_middleware: bool = False


class GenericConfigAnalysis(_ConfigAnalysisBase):
    """Fallback for unrecognized config names, and for analyzer failures."""
    type: Literal[ConfigType.GENERIC] = ConfigType.GENERIC
    is_json: bool = False
    is_yaml: bool = False
    line_count: int = 0
    has_comments: bool = False


ConfigAnalysis = Annotated[
    Union[
        ComposeAnalysis,
        DockerfileAnalysis,
        EnvironmentAnalysis,
        WebpackAnalysis,
        ViteAnalysis,
        NextAnalysis,
        NuxtAnalysis,
        GenericConfigAnalysis,
    ],
    Field(discriminator="type"),
]


# =============================================================================
# Output Schemas
# =============================================================================


class FileReport(BaseModel):
    """Per-file entry of an analysis result."""
    name: str
    size: int = 0
    classification: FileClassification
    parsed_content: Optional[ParsedContent] = None


class PatternMap(BaseModel):
    """Detected patterns keyed by name.

    A pattern without supporting evidence is absent, never present at 0.
    """
    model_config = ConfigDict(frozen=True)

    frameworks: dict[str, PatternEvidence] = Field(default_factory=dict)
    tools: dict[str, PatternEvidence] = Field(default_factory=dict)
    infrastructure: dict[str, PatternEvidence] = Field(default_factory=dict)
    app_types: dict[str, PatternEvidence] = Field(default_factory=dict)


class AnalysisSummary(BaseModel):
    """Headline numbers for an analysis."""
    total_files: int = 0
    category_counts: dict[FileCategory, int] = Field(
        default_factory=lambda: {category: 0 for category in FileCategory}
    )
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    app_type: str = Field(default="unknown", description="Best scoring application type")


class AnalysisResult(BaseModel):
    """Complete output of one engine call."""
    summary: AnalysisSummary = Field(default_factory=AnalysisSummary)
    files: list[FileReport] = Field(default_factory=list)
    manifest: Optional[ManifestResult] = None
    configs: list[ConfigAnalysis] = Field(default_factory=list)
    patterns: PatternMap = Field(default_factory=PatternMap)


class ResultReview(BaseModel):
    """Advisory review of an analysis result."""
    is_valid: bool = True
    confidence_level: ConfidenceLevel = ConfidenceLevel.LOW
    needs_review: bool = True
    issues: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
