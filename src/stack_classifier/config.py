"""Centralized configuration management for the stack classifier.

Indicator tables, file-type tables and weighting constants are compiled-in
defaults that can be overridden from a YAML file.
"""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


class FileTypeConfig(BaseModel):
    """Ordered file-type table used by the file classifier.

    Entries are exact file names, base-name globs (containing ``*``),
    suffixes (leading ``.``) or directory prefixes (trailing ``/``). Globs
    rank with exact names. Table order decides ties.
    """

    table: dict[str, dict[str, list[str]]] = Field(default_factory=lambda: {
        'frontend': {
            'javascript': ['.js', '.jsx', '.mjs', '.cjs'],
            'typescript': ['.ts', '.tsx'],
            'vue': ['.vue'],
            'styles': ['.css', '.scss', '.sass', '.less', '.styl'],
            'html': ['.html', '.htm'],
            'templates': ['.hbs', '.ejs', '.pug', '.jade'],
        },
        'backend': {
            'nodejs': ['.js', '.mjs', '.cjs', '.ts'],
            'python': ['.py', '.pyw', '.pyi'],
            'php': ['.php', '.phtml'],
            'ruby': ['.rb', '.rbw'],
            'go': ['.go'],
            'rust': ['.rs'],
            'java': ['.java'],
            'csharp': ['.cs'],
        },
        'config': {
            'package': ['package.json', 'package-lock.json', 'yarn.lock', 'pnpm-lock.yaml'],
            'build': [
                'webpack.config.*', 'vite.config.*', 'rollup.config.*', 'gulpfile.js',
            ],
            'env': ['.env', '.env.*', '*.env'],
            'docker': [
                'dockerfile', 'dockerfile.*', '*.dockerfile',
                'docker-compose*.yml', 'docker-compose*.yaml',
                'compose.yml', 'compose.yaml', '.dockerignore',
            ],
            'ci': ['.github/workflows/', '.gitlab-ci.yml', '.travis.yml', 'jenkinsfile'],
            'framework': [
                'next.config.*', 'nuxt.config.*', 'vue.config.js', 'angular.json',
            ],
        },
        'data': {
            'json': ['.json'],
            'yaml': ['.yml', '.yaml'],
            'xml': ['.xml'],
            'csv': ['.csv'],
            'sql': ['.sql'],
        },
        'docs': {
            'readme': ['readme.md', 'readme.txt', 'readme'],
            'markdown': ['.md', '.markdown'],
            'text': ['.txt', '.rst'],
        },
    })


class IndicatorConfig(BaseModel):
    """Dependency names that imply a framework, tool or backend library."""

    frameworks: dict[str, list[str]] = Field(default_factory=lambda: {
        'react': ['react', 'react-dom'],
        'vue': ['vue', '@vue/cli', 'nuxt', 'vue-router'],
        'angular': ['@angular/core', '@angular/cli', 'angular'],
        'svelte': ['svelte', '@sveltejs/kit'],
        'next': ['next'],
        'gatsby': ['gatsby'],
        'nuxt': ['nuxt'],
    })

    tools: dict[str, list[str]] = Field(default_factory=lambda: {
        'typescript': ['typescript', '@types/node'],
        'webpack': ['webpack', 'webpack-cli'],
        'vite': ['vite'],
        'rollup': ['rollup'],
        'babel': ['@babel/core', '@babel/preset-env'],
        'eslint': ['eslint'],
        'prettier': ['prettier'],
        'jest': ['jest'],
        'cypress': ['cypress'],
        'storybook': ['@storybook/react'],
        'create-react-app': ['react-scripts'],
    })

    backend_libraries: dict[str, list[str]] = Field(default_factory=lambda: {
        'express': ['express'],
        'fastify': ['fastify'],
        'koa': ['koa'],
        'nestjs': ['@nestjs/core'],
        'socket': ['socket.io'],
        'database': ['mongoose', 'sequelize', 'typeorm', 'prisma'],
    })


class ScriptConfig(BaseModel):
    """Script role aliases and build tool markers."""

    roles: dict[str, list[str]] = Field(default_factory=lambda: {
        'build': ['build', 'compile', 'bundle'],
        'start': ['start'],
        'dev': ['dev', 'develop', 'serve'],
        'test': ['test', 'test:unit', 'test:e2e'],
        'lint': ['lint', 'eslint', 'check'],
        'deploy': ['deploy', 'publish', 'release'],
    })

    # (substring, tool name) pairs; first match wins
    build_tools: list[tuple[str, str]] = Field(default_factory=lambda: [
        ('webpack', 'webpack'),
        ('vite', 'vite'),
        ('rollup', 'rollup'),
        ('parcel', 'parcel'),
        ('react-scripts', 'create-react-app'),
        ('next', 'next'),
        ('nuxt', 'nuxt'),
    ])


class ManifestScoringConfig(BaseModel):
    """Weights for the manifest's own confidence score."""
    frameworks: float = Field(0.4, description="Weight for average framework confidence")
    build_script: float = Field(0.2, description="Weight for presence of a build script")
    dependencies: float = Field(0.2, description="Weight for normalized dependency count")
    tools: float = Field(0.2, description="Weight for normalized tool count")
    dependency_saturation: int = Field(20, description="Dependency count that scores 1.0")
    tool_saturation: int = Field(5, description="Tool count that scores 1.0")


class WeightsConfig(BaseModel):
    """Weights for the overall analysis confidence.

    A term is only counted when its evidence source exists, and the
    weighted sum is divided by the included weights.
    """
    manifest: float = Field(0.4, description="Weight for the manifest confidence")
    config: float = Field(0.3, description="Weight for the normalized config file count")
    source: float = Field(0.3, description="Weight for the normalized source file count")
    config_saturation: int = Field(3, description="Config file count that scores 1.0")
    source_saturation: int = Field(10, description="Source file count that scores 1.0")


class InfrastructureConfig(BaseModel):
    """Infrastructure naming patterns and signal confidences."""

    database_engines: list[str] = Field(default_factory=lambda: [
        'postgres', 'mysql', 'mariadb', 'mongo', 'mssql', 'sqlserver',
        'cockroach', 'cassandra', 'couchdb', 'dynamodb',
    ])
    cache_engines: list[str] = Field(default_factory=lambda: ['redis', 'valkey'])

    env_database_patterns: list[str] = Field(default_factory=lambda: [
        'DB_', 'DATABASE_', 'MONGO', 'POSTGRES', 'MYSQL',
    ])
    env_auth_patterns: list[str] = Field(default_factory=lambda: [
        'JWT_', 'AUTH_', 'SECRET', 'OAUTH', 'SESSION_',
    ])
    env_cloud_patterns: list[str] = Field(default_factory=lambda: ['AWS_', 'S3_'])

    # (base image substring, runtime) pairs; first match wins
    runtimes: list[tuple[str, str]] = Field(default_factory=lambda: [
        ('node', 'node'),
        ('python', 'python'),
        ('nginx', 'nginx'),
        ('apache', 'apache'),
        ('php', 'php'),
        ('java', 'java'),
        ('openjdk', 'java'),
        ('golang', 'go'),
        ('go:', 'go'),
    ])

    containerization: float = 0.9
    container_image: float = 0.7
    database: float = 0.8
    cache: float = 0.8
    authentication: float = 0.7
    cloud_credentials: float = 0.7


class HeuristicConfig(BaseModel):
    """Candidate confidences for source-level evidence."""
    jsx: float = 0.7
    hooks: float = 0.8
    single_file_component: float = 0.8
    backend_framework_import: float = 0.7


class AppTypeIndicators(BaseModel):
    """Indicators for one application type.

    ``paths`` are regexes searched in submitted file names, ``content`` are
    regexes searched in the description and file contents (both
    case-insensitive).
    """
    label: str = ''
    frameworks: list[str] = Field(default_factory=list)
    paths: list[str] = Field(default_factory=list)
    content: list[str] = Field(default_factory=list)
    requires_no_framework: bool = Field(
        False, description="Framework weight is earned by detecting no framework at all"
    )
    split_layout: bool = Field(
        False, description="Scored on separate client and server trees"
    )


class AppTypeConfig(BaseModel):
    """Application type indicators and scoring constants."""

    types: dict[str, AppTypeIndicators] = Field(default_factory=lambda: {
        'spa': AppTypeIndicators(
            label='Single Page Application',
            frameworks=['react', 'vue', 'angular', 'svelte'],
            paths=[
                r'public/index\.html$', r'src/app\.(js|jsx|ts|tsx|vue)$',
                r'src/main\.(js|jsx|ts|tsx)$', r'src/router', r'src/components',
            ],
            content=[
                r'react-router|vue-router|@angular/router', r'BrowserRouter|Router',
                r'createBrowserRouter', r'useNavigate|useHistory', r'single.?page',
            ],
        ),
        'ssr': AppTypeIndicators(
            label='Server-Side Rendered',
            frameworks=['next', 'nuxt', 'gatsby'],
            paths=[r'next\.config\.\w+$', r'nuxt\.config\.\w+$', r'gatsby-config\.\w+$', r'pages/'],
            content=[
                r'getServerSideProps|getStaticProps', r'next/head|next/image', r'nuxt',
                r'gatsby', r'server.?side.?render',
            ],
        ),
        'api': AppTypeIndicators(
            label='API/Backend Service',
            frameworks=['express', 'fastify', 'koa', 'nestjs', 'flask', 'django', 'fastapi'],
            paths=[r'routes?/', r'controllers?/', r'middleware/', r'api/', r'endpoints?/'],
            content=[
                r'app\.(get|post|put|delete)\b', r'@(app|bp)\.route', r'router\.',
                r'express\.Router', r'FastAPI|Flask|Django', r'res\.(json|send)',
                r'return\s+JSONResponse',
            ],
        ),
        'fullstack': AppTypeIndicators(
            label='Full-Stack Application',
            paths=[
                r'client/', r'server/', r'frontend/', r'backend/', r'api/',
                r'src/components', r'src/pages',
            ],
            content=[r'axios|fetch\(', r'api/', r'/api/|/graphql', r'cors'],
            split_layout=True,
        ),
        'static': AppTypeIndicators(
            label='Static Website',
            paths=[r'index\.html$', r'\.html$', r'\.css$', r'\.js$', r'assets/', r'images?/'],
            content=[r'<html|<head|<body', r'<!DOCTYPE html'],
            requires_no_framework=True,
        ),
    })

    client_dirs: list[str] = Field(default_factory=lambda: ['client/', 'frontend/'])
    server_dirs: list[str] = Field(default_factory=lambda: ['server/', 'backend/'])
    # Extra trees that count as the server half of a split layout
    service_dirs: list[str] = Field(default_factory=lambda: ['api/', 'routes/'])

    framework: float = Field(0.6, description="Score for a matching detected framework")
    paths: float = Field(0.25, description="Weight for the share of path indicators matched")
    content: float = Field(0.25, description="Weight for the share of content indicators matched")
    split_layout_bonus: float = Field(0.4, description="Bonus for separate client and server trees")
    single_tree_factor: float = Field(0.5, description="Split-layout score factor without both trees")
    mixed_tree_factor: float = Field(0.3, description="Other types' factor when both trees exist")
    boost_above: float = 0.7
    boost_factor: float = 1.2
    damp_below: float = 0.3
    damp_factor: float = 0.7


class ThresholdConfig(BaseModel):
    """Confidence bands used when reviewing a result."""
    excellent: float = 0.8
    good: float = 0.6
    fair: float = 0.3
    review: float = Field(0.7, description="Below this, callers should ask for manual input")


class ClassifierConfig(BaseModel):
    """Complete stack classifier configuration."""

    file_types: FileTypeConfig = Field(default_factory=FileTypeConfig)
    indicators: IndicatorConfig = Field(default_factory=IndicatorConfig)
    scripts: ScriptConfig = Field(default_factory=ScriptConfig)
    manifest_scoring: ManifestScoringConfig = Field(default_factory=ManifestScoringConfig)
    weights: WeightsConfig = Field(default_factory=WeightsConfig)
    infrastructure: InfrastructureConfig = Field(default_factory=InfrastructureConfig)
    heuristics: HeuristicConfig = Field(default_factory=HeuristicConfig)
    app_types: AppTypeConfig = Field(default_factory=AppTypeConfig)
    thresholds: ThresholdConfig = Field(default_factory=ThresholdConfig)
    manifest_filenames: list[str] = Field(default_factory=lambda: ['package.json'])


# Global config instance
_config: Optional[ClassifierConfig] = None


def get_config() -> ClassifierConfig:
    """Get the current configuration (loads default if not set)."""
    global _config
    if _config is None:
        _config = ClassifierConfig()
    return _config


def load_config(config_path: Path) -> ClassifierConfig:
    """Load configuration from a YAML file."""
    global _config

    with open(config_path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}

    _config = ClassifierConfig.model_validate(data)
    return _config


def reset_config() -> None:
    """Reset to default configuration."""
    global _config
    _config = None


def save_default_config(output_path: Path) -> None:
    """Save the default configuration to a YAML file."""
    config = ClassifierConfig()
    data = config.model_dump(mode='json')

    yaml_content = """# Stack Classifier Configuration
# ==============================
#
# Indicator tables, file-type tables and confidence weights.
#
# Copy this file to one of these locations:
#   - ./stack-classifier.yaml (current directory)
#   - ~/.config/stack-classifier/config.yaml (user config)
#
# Or set the STACK_CLASSIFIER_CONFIG environment variable.

"""
    yaml_content += yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(yaml_content)


def find_config_file() -> Optional[Path]:
    """Find a config file in standard locations."""
    search_paths = [
        Path.cwd() / 'stack-classifier.yaml',
        Path.cwd() / 'stack-classifier.yml',
        Path.home() / '.config' / 'stack-classifier' / 'config.yaml',
    ]

    env_config = os.environ.get('STACK_CLASSIFIER_CONFIG')
    if env_config:
        search_paths.insert(0, Path(env_config))

    for path in search_paths:
        if path.exists():
            return path

    return None
