"""Content parsing utilities for submitted source files.

Each parser extracts a fixed metadata schema by regular-expression scanning.
None of them is a language front end; the signals are deliberately cheap and
approximate.
"""

import json
import logging
import re
from typing import Any, Callable, Optional, Union

import yaml

from .schema import ContentType, ParsedContent

logger = logging.getLogger(__name__)


# =============================================================================
# Shared extraction helpers
# =============================================================================

DOCKER_FROM_PATTERN = re.compile(r'^\s*FROM\s+(?:--platform=\S+\s+)?(\S+)', re.IGNORECASE | re.MULTILINE)
DOCKER_EXPOSE_PATTERN = re.compile(r'^\s*EXPOSE\s+(.+)$', re.IGNORECASE | re.MULTILINE)


def extract_base_image(content: str) -> Optional[str]:
    """First FROM image of a container build file."""
    match = DOCKER_FROM_PATTERN.search(content)
    return match.group(1) if match else None


def extract_exposed_ports(content: str) -> list[int]:
    """Ports declared by EXPOSE instructions, in order."""
    ports = []
    for match in DOCKER_EXPOSE_PATTERN.finditer(content):
        for token in match.group(1).split():
            port = token.split('/', 1)[0]
            if port.isdigit():
                ports.append(int(port))
    return ports


def extract_instructions(content: str) -> list[str]:
    """Leading instruction keyword of every non-comment line."""
    instructions = []
    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith('#'):
            continue
        instructions.append(stripped.split()[0].upper())
    return instructions


def _unique(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


class ContentParser:
    """Parses file content into structured signals, keyed by content type."""

    # Script patterns
    IMPORT_FROM_PATTERN = re.compile(r'''\bimport\s+(?:type\s+)?[\w*\s{},$]+?\bfrom\s*['"`]([^'"`]+)['"`]''')
    IMPORT_BARE_PATTERN = re.compile(r'''\bimport\s+['"`]([^'"`]+)['"`]''')
    IMPORT_DYNAMIC_PATTERN = re.compile(r'''\b(?:import|require)\s*\(\s*['"`]([^'"`]+)['"`]\s*\)''')
    EXPORT_PATTERN = re.compile(
        r'\bexport\s+(?:default\s+)?(?:async\s+)?(?:class|function\*?|const|let|var|interface|type|enum)\s+(\w+)'
    )
    FUNCTION_PATTERN = re.compile(
        r'\bfunction\*?\s+(\w+)'
        r'|\b(?:const|let|var)\s+(\w+)\s*=\s*(?:async\s+)?(?:function\b|\([^()]*\)\s*=>|\w+\s*=>)'
        r'|\b(\w+)\s*:\s*(?:async\s+)?function\b'
    )
    CLASS_PATTERN = re.compile(r'\bclass\s+(\w+)')
    JSX_PATTERN = re.compile(r'(?<![\w$])<[A-Z][\w.]*(?:\s[^<>]*)?/?>|</[A-Za-z][\w.]*\s*>|<>')
    HOOK_PATTERN = re.compile(r'\buse[A-Z]\w*\s*\(')
    ASYNC_PATTERN = re.compile(r'\b(?:async|await)\b')

    # Typed script patterns
    TYPE_ANNOTATION_PATTERN = re.compile(
        r'\b\w+\??\s*:\s*(?:string|number|boolean|any|unknown|void|never|[A-Z]\w*)(?:\[\])?\s*[,;=)]'
        r'|\)\s*:\s*[\w<>\[\]|]+\s*(?:=>|\{)'
    )
    INTERFACE_PATTERN = re.compile(r'\binterface\s+\w+')
    GENERIC_PATTERN = re.compile(r'\w<[A-Z]\w*(?:\s*,\s*[A-Z]\w*)*>')

    # Backend script patterns
    PY_IMPORT_PATTERN = re.compile(r'^\s*(?:from\s+([\w.]+)\s+import\b|import\s+([\w.]+))', re.MULTILINE)
    PY_FUNCTION_PATTERN = re.compile(r'^\s*(?:async\s+)?def\s+(\w+)', re.MULTILINE)
    PY_CLASS_PATTERN = re.compile(r'^\s*class\s+(\w+)', re.MULTILINE)
    PY_DECORATOR_PATTERN = re.compile(r'^\s*@[\w.]+', re.MULTILINE)

    # Markup patterns
    HTML_SCRIPT_PATTERN = re.compile(r'''<script[^>]*\bsrc=['"`]([^'"`]+)['"`]''', re.IGNORECASE)
    HTML_LINK_PATTERN = re.compile(r'''<link[^>]*\bhref=['"`]([^'"`]+)['"`]''', re.IGNORECASE)
    HTML_META_PATTERN = re.compile(
        r'''<meta[^>]*\bname=['"`]([^'"`]+)['"`][^>]*\bcontent=['"`]([^'"`]*)['"`]''', re.IGNORECASE
    )
    HTML_TITLE_PATTERN = re.compile(r'<title[^>]*>([^<]+)</title>', re.IGNORECASE)
    HTML_ROOT_ID_PATTERN = re.compile(r'''\bid=['"]root['"]''')
    HTML_APP_ID_PATTERN = re.compile(r'''\bid=['"]app['"]''')

    # Stylesheet patterns
    CSS_COMMENT_PATTERN = re.compile(r'/\*.*?\*/', re.DOTALL)
    CSS_CLASS_PATTERN = re.compile(r'\.(-?[A-Za-z_][\w-]*)')
    CSS_ID_PATTERN = re.compile(r'#([A-Za-z_][\w-]*)')

    GENERIC_CODE_PATTERN = re.compile(r'\b(?:function|class|def|const|let|var)\b')

    def __init__(self):
        self._parsers: dict[ContentType, Callable[[str], dict[str, Any]]] = {
            ContentType.MANIFEST: self.parse_manifest,
            ContentType.SCRIPT: self.parse_script,
            ContentType.TYPED_SCRIPT: self.parse_typed_script,
            ContentType.BACKEND_SCRIPT: self.parse_backend_script,
            ContentType.MARKUP: self.parse_markup,
            ContentType.STYLESHEET: self.parse_stylesheet,
            ContentType.STRUCTURED_DATA: self.parse_structured_data,
            ContentType.CONTAINER_BUILD: self.parse_container_build,
            ContentType.GENERIC: self.parse_generic,
        }

    def parse(self, content: str, file_type: Union[ContentType, str]) -> ParsedContent:
        """Parse content with the parser registered for its type.

        Parser exceptions are converted into a failed ParsedContent and never
        escape this method.
        """
        if isinstance(file_type, ContentType):
            content_type = file_type
        else:
            content_type = ContentType.from_file_type(file_type)
        parser = self._parsers.get(content_type, self.parse_generic)

        try:
            metadata = parser(content)
        except Exception as e:
            logger.warning("Failed to parse %s content: %s", content_type.value, e)
            return ParsedContent(
                success=False,
                content_type=content_type,
                metadata={},
                error=str(e) or e.__class__.__name__,
            )

        return ParsedContent(success=True, content_type=content_type, metadata=metadata)

    # -------------------------------------------------------------------------
    # Typed parsers
    # -------------------------------------------------------------------------

    def parse_manifest(self, content: str) -> dict[str, Any]:
        """JSON documents, including dependency manifests."""
        parsed = json.loads(content)
        if not isinstance(parsed, dict):
            return {'keys': [], 'has_scripts': False, 'has_dependencies': False}
        return {
            'keys': list(parsed.keys()),
            'has_scripts': bool(parsed.get('scripts')),
            'has_dependencies': bool(parsed.get('dependencies') or parsed.get('devDependencies')),
        }

    def parse_script(self, content: str) -> dict[str, Any]:
        """JavaScript-family sources."""
        return {
            'imports': self.extract_imports(content),
            'exports': self.extract_exports(content),
            'functions': self.extract_functions(content),
            'classes': self.CLASS_PATTERN.findall(content),
            'has_jsx': bool(self.JSX_PATTERN.search(content)),
            'has_hooks': bool(self.HOOK_PATTERN.search(content)),
            'has_async': bool(self.ASYNC_PATTERN.search(content)),
        }

    def parse_typed_script(self, content: str) -> dict[str, Any]:
        metadata = self.parse_script(content)
        metadata.update({
            'has_types': bool(self.TYPE_ANNOTATION_PATTERN.search(content)),
            'has_interfaces': bool(self.INTERFACE_PATTERN.search(content)),
            'has_generics': bool(self.GENERIC_PATTERN.search(content)),
        })
        return metadata

    def parse_backend_script(self, content: str) -> dict[str, Any]:
        """Python sources."""
        imports = [
            from_module or module
            for from_module, module in self.PY_IMPORT_PATTERN.findall(content)
        ]
        roots = {name.split('.')[0].lower() for name in imports}
        return {
            'imports': imports,
            'functions': self.PY_FUNCTION_PATTERN.findall(content),
            'classes': self.PY_CLASS_PATTERN.findall(content),
            'has_flask': 'flask' in roots,
            'has_django': 'django' in roots,
            'has_fastapi': 'fastapi' in roots,
            'has_decorators': bool(self.PY_DECORATOR_PATTERN.search(content)),
        }

    def parse_markup(self, content: str) -> dict[str, Any]:
        """HTML documents."""
        title_match = self.HTML_TITLE_PATTERN.search(content)
        return {
            'scripts': self.HTML_SCRIPT_PATTERN.findall(content),
            'links': self.HTML_LINK_PATTERN.findall(content),
            'meta': dict(self.HTML_META_PATTERN.findall(content)),
            'title': title_match.group(1).strip() if title_match else None,
            'has_react_root': bool(self.HTML_ROOT_ID_PATTERN.search(content)),
            'has_vue_app': bool(self.HTML_APP_ID_PATTERN.search(content)),
        }

    def parse_stylesheet(self, content: str) -> dict[str, Any]:
        selectors = self._css_selector_text(content)
        return {
            'classes': _unique(self.CSS_CLASS_PATTERN.findall(selectors)),
            'ids': _unique(self.CSS_ID_PATTERN.findall(selectors)),
            'has_tailwind': bool(re.search(r'@tailwind\b|@apply\b|\btailwind', content)),
            'has_bootstrap': bool(re.search(r'bootstrap|\.btn-|\.col-', content)),
            'has_variables': bool(re.search(r'--[\w-]+\s*:|var\(', content)),
        }

    def parse_structured_data(self, content: str) -> dict[str, Any]:
        """YAML documents. Malformed YAML raises and fails the parse."""
        documents = [doc for doc in yaml.safe_load_all(content) if doc is not None]
        keys = _unique([
            str(key)
            for doc in documents if isinstance(doc, dict)
            for key in doc.keys()
        ])
        return {
            'keys': keys,
            'document_count': len(documents),
            'has_services': 'services' in keys,
            'has_version': 'version' in keys,
            'has_environment': _has_nested_key(documents, 'environment'),
        }

    def parse_container_build(self, content: str) -> dict[str, Any]:
        lowered = content.lower()
        return {
            'instructions': extract_instructions(content),
            'base_image': extract_base_image(content),
            'exposed_ports': extract_exposed_ports(content),
            'has_node': bool(re.search(r'node|npm|yarn', lowered)),
            'has_python': bool(re.search(r'python|pip', lowered)),
        }

    def parse_generic(self, content: str) -> dict[str, Any]:
        """Line/character profile for unrecognized types."""
        return {
            'line_count': len(content.split('\n')),
            'char_count': len(content),
            'has_code': bool(self.GENERIC_CODE_PATTERN.search(content)),
        }

    # -------------------------------------------------------------------------
    # Extraction helpers
    # -------------------------------------------------------------------------

    def extract_imports(self, content: str) -> list[str]:
        """Module specifiers from import statements, require() and import()."""
        found = []
        for pattern in (self.IMPORT_FROM_PATTERN, self.IMPORT_BARE_PATTERN, self.IMPORT_DYNAMIC_PATTERN):
            for match in pattern.finditer(content):
                found.append((match.start(), match.group(1)))
        found.sort()
        return _unique([target for _, target in found])

    def extract_exports(self, content: str) -> list[str]:
        return self.EXPORT_PATTERN.findall(content)

    def extract_functions(self, content: str) -> list[str]:
        names = []
        for groups in self.FUNCTION_PATTERN.findall(content):
            name = next((group for group in groups if group), None)
            if name:
                names.append(name)
        return names

    def _css_selector_text(self, content: str) -> str:
        """Keep only the text that opens a block (selectors and at-rule preludes)."""
        text = self.CSS_COMMENT_PATTERN.sub(' ', content)
        selectors = []
        current: list[str] = []
        for char in text:
            if char == '{':
                selectors.append(''.join(current))
                current = []
            elif char in '};':
                current = []
            else:
                current.append(char)
        return '\n'.join(selectors)


def _has_nested_key(value: Any, key: str) -> bool:
    if isinstance(value, dict):
        return key in value or any(_has_nested_key(child, key) for child in value.values())
    if isinstance(value, list):
        return any(_has_nested_key(child, key) for child in value)
    return False
