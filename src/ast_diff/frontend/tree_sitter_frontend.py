"""Tree-sitter front end turning source files into diffable Trees."""

from dataclasses import dataclass, field
from pathlib import Path

import tree_sitter_javascript as tsjs
import tree_sitter_python as tspython
import tree_sitter_typescript as tsts
from tree_sitter import Language, Parser

from ast_diff.tree.tree import Tree, TreeBuilder

# Initialize language objects
JS_LANGUAGE = Language(tsjs.language())
TS_LANGUAGE = Language(tsts.language_typescript())
TSX_LANGUAGE = Language(tsts.language_tsx())
PY_LANGUAGE = Language(tspython.language())

_LANGUAGES = {
    "javascript": JS_LANGUAGE,
    "typescript": TS_LANGUAGE,
    "tsx": TSX_LANGUAGE,
    "python": PY_LANGUAGE,
}

_EXTENSIONS = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".py": "python",
}

DEFAULT_EXCLUDE_PATTERNS = ("node_modules", "dist", ".git", "__pycache__", ".venv")


def get_language_for_file(file_path: str) -> str:
    """Map file extension to tree-sitter language name.

    Args:
        file_path: Path to the file

    Returns:
        Language name ("javascript", "typescript", "tsx", "python")

    Raises:
        ValueError: If file extension is not supported
    """
    ext = Path(file_path).suffix
    if ext not in _EXTENSIONS:
        raise ValueError(f"Unsupported file extension: {ext}")
    return _EXTENSIONS[ext]


def is_supported_file(file_path: str) -> bool:
    return Path(file_path).suffix in _EXTENSIONS


def get_parser(language: str) -> Parser:
    """Return a tree-sitter Parser for the given language name.

    Raises:
        ValueError: If the language is not supported
    """
    if language not in _LANGUAGES:
        raise ValueError(f"Unsupported language: {language}")
    parser = Parser()
    parser.language = _LANGUAGES[language]
    return parser


def parse_source(source_bytes: bytes, language: str, name: str = "") -> Tree:
    """Parse source bytes into a Tree of named tree-sitter nodes.

    Anonymous nodes (punctuation, keywords) are dropped. Named nodes without
    named children keep their source text; inner nodes carry empty text.
    Byte offsets and 1-based line numbers are kept on every node.

    Args:
        source_bytes: File content
        language: Language name accepted by :func:`get_parser`
        name: Label for the resulting tree, usually the file path

    Returns:
        The parsed Tree
    """
    ts_tree = get_parser(language).parse(source_bytes)
    builder = TreeBuilder(name)

    stack = [(ts_tree.root_node, None)]
    while stack:
        ts_node, parent = stack.pop()
        named = ts_node.named_children
        text = ""
        if not named and ts_node.text:
            text = ts_node.text.decode("utf-8", errors="replace")
        node_id = builder.add(
            ts_node.type,
            text,
            parent,
            start_byte=ts_node.start_byte,
            end_byte=ts_node.end_byte,
            start_line=ts_node.start_point[0] + 1,
            end_line=ts_node.end_point[0] + 1,
        )
        for child in reversed(named):
            stack.append((child, node_id))

    return builder.build()


def parse_file(file_path: str) -> Tree:
    """Read file as bytes, determine language, parse into a Tree.

    Raises:
        FileNotFoundError: If file does not exist
        ValueError: If file extension is not supported
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    language = get_language_for_file(file_path)
    return parse_source(path.read_bytes(), language, file_path)


@dataclass
class FilePairs:
    """Supported files of two snapshot directories, by relative path."""

    modified: list[str] = field(default_factory=list)  # present on both sides
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)


def _discover_files(root: Path, exclude_patterns: tuple[str, ...]) -> set[str]:
    files: set[str] = set()
    for path in root.rglob("*"):
        # Skip symlinks to prevent path traversal attacks
        if path.is_symlink():
            continue
        relative = path.relative_to(root)
        # Match on path components, not substrings
        if any(pattern in relative.parts for pattern in exclude_patterns):
            continue
        if path.is_file() and path.suffix in _EXTENSIONS:
            files.add(relative.as_posix())
    return files


def discover_file_pairs(
    before_dir: str,
    after_dir: str,
    exclude_patterns: tuple[str, ...] = DEFAULT_EXCLUDE_PATTERNS,
) -> FilePairs:
    """Pair supported source files of two directory snapshots.

    Raises:
        FileNotFoundError: If either directory does not exist
    """
    before = Path(before_dir).resolve()
    after = Path(after_dir).resolve()
    for directory in (before, after):
        if not directory.is_dir():
            raise FileNotFoundError(f"Directory not found: {directory}")

    before_files = _discover_files(before, exclude_patterns)
    after_files = _discover_files(after, exclude_patterns)
    return FilePairs(
        modified=sorted(before_files & after_files),
        added=sorted(after_files - before_files),
        removed=sorted(before_files - after_files),
    )
