"""Infrastructure and tooling config file analysis.

Line/regex based extraction of structural signals from compose files,
container build files, environment files and bundler/framework configs.
"""

import json
import logging
import re
from fnmatch import fnmatch
from typing import Callable, Optional

from .config import ClassifierConfig, get_config
from .file_types import basename
from .parser import extract_base_image, extract_exposed_ports, extract_instructions
from .schema import (
    ComposeAnalysis,
    ConfigAnalysis,
    ConfigType,
    DockerfileAnalysis,
    EnvironmentAnalysis,
    GenericConfigAnalysis,
    NextAnalysis,
    NuxtAnalysis,
    ViteAnalysis,
    WebpackAnalysis,
)

logger = logging.getLogger(__name__)


# Ordered (basename glob, config type); matched case-insensitively, first wins
CONFIG_NAME_PATTERNS: list[tuple[str, ConfigType]] = [
    ('docker-compose*.yml', ConfigType.DOCKER_COMPOSE),
    ('docker-compose*.yaml', ConfigType.DOCKER_COMPOSE),
    ('compose.yml', ConfigType.DOCKER_COMPOSE),
    ('compose.yaml', ConfigType.DOCKER_COMPOSE),
    ('dockerfile', ConfigType.DOCKERFILE),
    ('dockerfile.*', ConfigType.DOCKERFILE),
    ('*.dockerfile', ConfigType.DOCKERFILE),
    ('.env', ConfigType.ENVIRONMENT),
    ('.env.*', ConfigType.ENVIRONMENT),
    ('*.env', ConfigType.ENVIRONMENT),
    ('webpack.config.*', ConfigType.WEBPACK),
    ('vite.config.*', ConfigType.VITE),
    ('next.config.*', ConfigType.NEXT),
    ('nuxt.config.*', ConfigType.NUXT),
]


def resolve_config_type(file_name: str) -> ConfigType:
    """Config type for a file name, GENERIC when unrecognized."""
    name = basename(file_name).lower()
    for pattern, config_type in CONFIG_NAME_PATTERNS:
        if fnmatch(name, pattern):
            return config_type
    return ConfigType.GENERIC


class InfrastructureConfigAnalyzer:
    """Analyzes recognized config files by type."""

    YAML_KEY_PATTERN = re.compile(r'''^["']?([\w.-]+)["']?\s*:''')
    YAML_IMAGE_PATTERN = re.compile(r'''^image\s*:\s*["']?([^"'\s#]+)''')
    WEBPACK_PLUGIN_PATTERN = re.compile(r'\bnew\s+(?:\w+\.)*(\w+Plugin)\b')
    WEBPACK_LOADER_PATTERN = re.compile(r'''['"`]([\w@/.-]+-loader)['"`]''')
    VITE_PLUGINS_PATTERN = re.compile(r'\bplugins\s*:\s*\[(.*?)\]', re.DOTALL)
    CALL_PATTERN = re.compile(r'\b([A-Za-z_$][\w$]*)\s*\(')

    def __init__(self, config: Optional[ClassifierConfig] = None):
        self._config = config
        self._analyzers: dict[ConfigType, Callable[[str, str], ConfigAnalysis]] = {
            ConfigType.DOCKER_COMPOSE: self.analyze_compose,
            ConfigType.DOCKERFILE: self.analyze_dockerfile,
            ConfigType.ENVIRONMENT: self.analyze_env,
            ConfigType.WEBPACK: self.analyze_webpack,
            ConfigType.VITE: self.analyze_vite,
            ConfigType.NEXT: self.analyze_next,
            ConfigType.NUXT: self.analyze_nuxt,
            ConfigType.GENERIC: self.analyze_generic,
        }

    def _get_config(self):
        """Get infrastructure config."""
        return (self._config or get_config()).infrastructure

    def analyze(self, file_name: str, content: str) -> ConfigAnalysis:
        """Analyze a config file; failures come back with success=False."""
        config_type = resolve_config_type(file_name)
        logger.debug("Analyzing %s as %s config", file_name, config_type.value)
        try:
            return self._analyzers[config_type](content, file_name)
        except Exception as e:
            logger.warning("Failed to analyze config %s: %s", file_name, e)
            return GenericConfigAnalysis(
                file_name=file_name,
                success=False,
                error=str(e) or e.__class__.__name__,
            )

    # -------------------------------------------------------------------------
    # Per-type analyzers
    # -------------------------------------------------------------------------

    def analyze_compose(self, content: str, file_name: str = '') -> ComposeAnalysis:
        blocks = self._top_level_blocks(content)
        services = self._block_children(blocks.get('services', []))
        volumes = self._block_children(blocks.get('volumes', []))
        networks = self._block_children(blocks.get('networks', []))
        images = []
        for _, line in blocks.get('services', []):
            match = self.YAML_IMAGE_PATTERN.match(line)
            if match:
                images.append(match.group(1))

        cfg = self._get_config()
        candidates = [name.lower() for name in services + images]

        return ComposeAnalysis(
            file_name=file_name,
            services=services,
            volumes=volumes,
            networks=networks,
            images=images,
            has_database=_contains_any(candidates, cfg.database_engines),
            has_redis=_contains_any(candidates, cfg.cache_engines),
            complexity=len(services) + len(volumes) + len(networks),
        )

    def analyze_dockerfile(self, content: str, file_name: str = '') -> DockerfileAnalysis:
        base_image = extract_base_image(content)
        instructions = extract_instructions(content)
        return DockerfileAnalysis(
            file_name=file_name,
            base_image=base_image,
            ports=extract_exposed_ports(content),
            instructions=list(dict.fromkeys(instructions)),
            runtime=self.detect_runtime(base_image),
            is_multi_stage=instructions.count('FROM') > 1,
        )

    def analyze_env(self, content: str, file_name: str = '') -> EnvironmentAnalysis:
        variables = []
        for line in content.splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith('#') or '=' not in stripped:
                continue
            if stripped.startswith('export '):
                stripped = stripped[len('export '):]
            name = stripped.split('=', 1)[0].strip()
            if name:
                variables.append(name)

        cfg = self._get_config()
        upper = [name.upper() for name in variables]
        return EnvironmentAnalysis(
            file_name=file_name,
            variables=variables,
            has_database=_contains_any(upper, cfg.env_database_patterns),
            has_auth=_contains_any(upper, cfg.env_auth_patterns),
            has_aws=_contains_any(upper, cfg.env_cloud_patterns),
        )

    def analyze_webpack(self, content: str, file_name: str = '') -> WebpackAnalysis:
        return WebpackAnalysis(
            file_name=file_name,
            has_dev_server='devServer' in content,
            has_hmr=bool(re.search(r'\bhot\s*:\s*true|HotModuleReplacement', content)),
            has_optimization='optimization' in content,
            plugins=list(dict.fromkeys(self.WEBPACK_PLUGIN_PATTERN.findall(content))),
            loaders=list(dict.fromkeys(self.WEBPACK_LOADER_PATTERN.findall(content))),
        )

    def analyze_vite(self, content: str, file_name: str = '') -> ViteAnalysis:
        plugins = []
        match = self.VITE_PLUGINS_PATTERN.search(content)
        if match:
            plugins = list(dict.fromkeys(self.CALL_PATTERN.findall(match.group(1))))
        return ViteAnalysis(
            file_name=file_name,
            has_react='@vitejs/plugin-react' in content,
            has_vue='@vitejs/plugin-vue' in content,
            has_typescript='typescript' in content or file_name.lower().endswith('.ts'),
            has_proxy=bool(re.search(r'\bproxy\s*:', content)),
            plugins=plugins,
        )

    def analyze_next(self, content: str, file_name: str = '') -> NextAnalysis:
        return NextAnalysis(
            file_name=file_name,
            has_images=bool(re.search(r'\bimages\s*:', content)),
            has_rewrites='rewrites' in content,
            has_redirects='redirects' in content,
            has_api=bool(re.search(r'\bapi\b', content)),
            is_static=bool(re.search(r'''\boutput\s*:\s*['"`]export['"`]''', content)),
        )

    def analyze_nuxt(self, content: str, file_name: str = '') -> NuxtAnalysis:
        return NuxtAnalysis(
            file_name=file_name,
            has_ssr=not re.search(r'\bssr\s*:\s*false\b', content),
            has_modules=bool(re.search(r'\bmodules\s*:', content)),
            has_plugins=bool(re.search(r'\bplugins\s*:', content)),
            has_middleware='middleware' in content,
        )

    def analyze_generic(self, content: str, file_name: str = '') -> GenericConfigAnalysis:
        return GenericConfigAnalysis(
            file_name=file_name,
            is_json=_is_valid_json(content),
            is_yaml=_looks_like_yaml(content),
            line_count=len(content.split('\n')),
            has_comments='#' in content or '//' in content,
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def detect_runtime(self, base_image: Optional[str]) -> str:
        if not base_image:
            return 'unknown'
        image = base_image.lower()
        for marker, runtime in self._get_config().runtimes:
            if marker in image:
                return runtime
        return 'unknown'

    def _top_level_blocks(self, content: str) -> dict[str, list[tuple[int, str]]]:
        """Indented (indent, stripped line) bodies of each unindented key."""
        blocks: dict[str, list[tuple[int, str]]] = {}
        current: Optional[list[tuple[int, str]]] = None
        for line in content.splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith('#'):
                continue
            indent = len(line) - len(line.lstrip())
            if indent == 0:
                match = self.YAML_KEY_PATTERN.match(stripped)
                current = blocks.setdefault(match.group(1), []) if match else None
                continue
            if current is not None:
                current.append((indent, stripped))
        return blocks

    def _block_children(self, block: list[tuple[int, str]]) -> list[str]:
        """Keys at the block's first indentation level."""
        if not block:
            return []
        child_indent = block[0][0]
        names = []
        for indent, line in block:
            if indent != child_indent:
                continue
            match = self.YAML_KEY_PATTERN.match(line)
            if match:
                names.append(match.group(1))
        return names


def _contains_any(values: list[str], markers: list[str]) -> bool:
    return any(marker.lower() in value.lower() for value in values for marker in markers)


def _is_valid_json(content: str) -> bool:
    try:
        json.loads(content)
    except ValueError:
        return False
    return True


def _looks_like_yaml(content: str) -> bool:
    return (
        ':' in content
        and ('  ' in content or '\t' in content)
        and '{' not in content
        and '[' not in content
    )
