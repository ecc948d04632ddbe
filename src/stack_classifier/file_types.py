"""File type classification from file names."""

from fnmatch import fnmatchcase
from typing import Optional, Sequence, Union

from .config import ClassifierConfig, get_config
from .schema import FileCategory, FileClassification, SubmittedFile

SOURCE_CATEGORIES = (FileCategory.FRONTEND, FileCategory.BACKEND)


def normalize_name(file_name: str) -> str:
    """Lowercase a file name and use forward slashes."""
    return file_name.replace('\\', '/').lower()


def basename(file_name: str) -> str:
    """Final path component of a (normalized or raw) file name."""
    return file_name.replace('\\', '/').rstrip('/').rsplit('/', 1)[-1]


def trailing_extension(file_name: str) -> str:
    """Text after the last '.' of the base name, '' when there is none.

    A leading dot alone (``.bashrc``) does not start an extension.
    """
    name = basename(file_name)
    last_dot = name.rfind('.')
    if last_dot <= 0:
        return ''
    return name[last_dot + 1:]


class FileTypeClassifier:
    """Maps file names to a (category, type, extension) triple.

    Matching precedence across the whole table: exact file name or base-name
    glob first, then directory containment, then suffix. Within one
    precedence level the first table entry wins.
    """

    def __init__(self, config: Optional[ClassifierConfig] = None):
        self._config = config
        self._entries: Optional[list[tuple[FileCategory, str, str]]] = None

    def _get_config(self) -> ClassifierConfig:
        return self._config or get_config()

    def _table_entries(self) -> list[tuple[FileCategory, str, str]]:
        """Flatten the configured table into ordered (category, type, pattern) rows."""
        if self._entries is None:
            entries = []
            for category, types in self._get_config().file_types.table.items():
                try:
                    category_enum = FileCategory(category)
                except ValueError:
                    category_enum = FileCategory.UNKNOWN
                for type_name, patterns in types.items():
                    for pattern in patterns:
                        entries.append((category_enum, type_name, pattern.lower()))
            self._entries = entries
        return self._entries

    def classify(self, file_name: str) -> FileClassification:
        """Classify a file name. Always returns a classification."""
        normalized = normalize_name(file_name)
        base = basename(normalized)
        entries = self._table_entries()

        # 1. exact file name (basename or full relative path) or basename glob
        for category, type_name, pattern in entries:
            if pattern.endswith('/'):
                continue
            if '*' in pattern:
                if fnmatchcase(base, pattern):
                    return FileClassification(category=category, type=type_name, extension=base)
            elif pattern == base or pattern == normalized:
                return FileClassification(category=category, type=type_name, extension=pattern)

        # 2. directory containment
        for category, type_name, pattern in entries:
            if pattern.endswith('/') and (
                normalized.startswith(pattern) or f'/{pattern}' in normalized
            ):
                return FileClassification(category=category, type=type_name, extension=pattern)

        # 3. suffix
        for category, type_name, pattern in entries:
            if (
                pattern.startswith('.') and '*' not in pattern
                and not pattern.endswith('/') and base.endswith(pattern)
            ):
                return FileClassification(category=category, type=type_name, extension=pattern)

        return FileClassification(
            category=FileCategory.UNKNOWN,
            type='unknown',
            extension=trailing_extension(file_name),
        )

    def is_source_file(self, file_name: str) -> bool:
        """True for frontend and backend files."""
        return self.classify(file_name).category in SOURCE_CATEGORIES

    def is_config_file(self, file_name: str) -> bool:
        return self.classify(file_name).category == FileCategory.CONFIG

    def categorize_files(
        self, files: Sequence[Union[SubmittedFile, str]]
    ) -> dict[FileCategory, list[Union[SubmittedFile, str]]]:
        """Group files into the six category buckets, keeping input order."""
        buckets: dict[FileCategory, list[Union[SubmittedFile, str]]] = {
            category: [] for category in FileCategory
        }
        for file in files:
            name = file.name if isinstance(file, SubmittedFile) else file
            buckets[self.classify(name).category].append(file)
        return buckets
