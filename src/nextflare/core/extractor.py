"""
Best-effort field recovery from existing descriptor files.

Nothing here parses TOML as a grammar. The text is tokenized line by line into
table headers and ``key = value`` pairs, and each field is recovered by an
independent extractor, so comments, unknown sections and section order do not
matter. A field that cannot be found is left unset rather than treated as an error.
"""

import json
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from loguru import logger

from nextflare.constants import BINDINGS, CachingStrategy
from nextflare.models.artifact import ExtractedView, OpenNextView

__all__ = [
    "BINDING_KINDS",
    "Block",
    "Header",
    "Pair",
    "extract",
    "extract_open_next_config",
    "iter_tokens",
    "parse_line",
    "split_blocks",
    "strip_comment",
]

BINDING_KINDS: tuple[str, ...] = (
    "assets",
    "services",
    "r2_buckets",
    "durable_objects.bindings",
    "d1_databases",
    "hyperdrive",
    "images",
    "analytics_engine_datasets",
    "kv_namespaces",
)

_BARE_KEY = r"(?:[A-Za-z0-9_-]+|\"[^\"]*\"|'[^']*')"
_HEADER_RE = re.compile(r"^\s*(\[\[?)\s*([^\[\]]+?)\s*(\]\]?)\s*$")
_PAIR_RE = re.compile(rf"^\s*({_BARE_KEY}(?:\s*\.\s*{_BARE_KEY})*)\s*=\s*(.*?)\s*$")
_BINDING_NAME_RE = re.compile(r"""\bbinding\s*=\s*["']([^"']+)["']""")
_CLASS_NAME_RE = re.compile(r"""\bclass_name\s*=\s*["']([^"']+)["']""")
_PLACEHOLDER_RE = re.compile(r"\bYOUR_[A-Z0-9_]+_HERE\b")

_OPEN_NEXT_STRATEGY_RE = re.compile(r"""\bcachingStrategy\s*:\s*['"`]([^'"`]+)['"`]""")
_OPEN_NEXT_CACHE_RE = re.compile(r"""\bcache\s*:\s*['"`]([^'"`]+)['"`]""")
_OPEN_NEXT_ACCOUNT_RE = re.compile(r"""\baccountId\s*:\s*['"`]([^'"`]+)['"`]""")
_JS_LINE_COMMENT_RE = re.compile(r"^\s*//.*$", re.MULTILINE)


@dataclass(frozen=True)
class Header:
    """A ``[table]`` or ``[[array.of.tables]]`` line."""

    path: tuple[str, ...]
    is_array: bool

    @property
    def name(self) -> str:
        return ".".join(self.path)


@dataclass(frozen=True)
class Pair:
    """A ``key = value`` line.

    ``value`` is None for arrays, inline tables and multi-line strings.
    """

    key: tuple[str, ...]
    value: str | None


@dataclass
class Block:
    """Raw lines from one header up to the next; the root block has no header."""

    header: Header | None
    lines: list[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(self.lines)


def strip_comment(line: str) -> str:
    """Drop a trailing ``#`` comment, ignoring ``#`` inside quoted strings."""
    quote: str | None = None
    escaped = False
    for index, char in enumerate(line):
        if quote:
            if escaped:
                escaped = False
            elif char == "\\" and quote == '"':
                escaped = True
            elif char == quote:
                quote = None
        elif char in "\"'":
            quote = char
        elif char == "#":
            return line[:index]
    return line


def _split_dotted(text: str) -> tuple[str, ...]:
    parts: list[str] = []
    current: list[str] = []
    quote: str | None = None
    for char in text:
        if quote:
            if char == quote:
                quote = None
            else:
                current.append(char)
        elif char in "\"'":
            quote = char
        elif char == ".":
            parts.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    parts.append("".join(current).strip())
    return tuple(parts)


def _parse_scalar(raw: str) -> str | None:
    if not raw or raw[0] in "[{" or raw.startswith(('"""', "'''")):
        return None
    if raw[0] == "'":
        end = raw.find("'", 1)
        return raw[1:end] if end != -1 else None
    if raw[0] == '"':
        escaped = False
        for index in range(1, len(raw)):
            char = raw[index]
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                literal = raw[: index + 1]
                try:
                    return json.loads(literal)
                except ValueError:
                    return literal[1:-1]
        return None
    return raw.split()[0]


def parse_line(line: str) -> Header | Pair | None:
    """Classify one line; comments, blanks and continuation lines yield None."""
    content = strip_comment(line).strip()
    if not content:
        return None
    header = _HEADER_RE.match(content)
    if header:
        opener, name, closer = header.groups()
        if len(opener) != len(closer):
            return None
        return Header(path=_split_dotted(name), is_array=len(opener) == 2)
    pair = _PAIR_RE.match(content)
    if pair:
        return Pair(key=_split_dotted(pair.group(1)), value=_parse_scalar(pair.group(2)))
    return None


def iter_tokens(text: str) -> Iterator[tuple[int, Header | Pair]]:
    """Yield ``(line_index, token)`` for every header and pair, skipping multi-line strings."""
    closing: str | None = None
    for index, line in enumerate(text.splitlines()):
        if closing:
            if closing in line:
                closing = None
            continue
        token = parse_line(line)
        if token is None:
            continue
        if isinstance(token, Pair) and token.value is None:
            raw = strip_comment(line).split("=", 1)[1].strip()
            for delimiter in ('"""', "'''"):
                if raw.startswith(delimiter) and delimiter not in raw[3:]:
                    closing = delimiter
        yield index, token


def split_blocks(text: str) -> list[Block]:
    """
    Split ``text`` into a root block followed by one block per header.

    Comment lines directly above a header travel with that header's block.
    """
    header_lines = {
        index: token for index, token in iter_tokens(text) if isinstance(token, Header)
    }
    blocks = [Block(header=None)]
    for index, line in enumerate(text.splitlines(keepends=True)):
        if index in header_lines:
            current = blocks[-1].lines
            leading: list[str] = []
            while current and current[-1].lstrip().startswith("#"):
                leading.insert(0, current.pop())
            blocks.append(Block(header=header_lines[index], lines=[*leading, line]))
        else:
            blocks[-1].lines.append(line)
    return blocks


def _scope(path: tuple[str, ...]) -> tuple[str | None, tuple[str, ...]]:
    """Split an ``env.<name>.`` prefix off ``path``."""
    if len(path) >= 2 and path[0] == "env":
        return path[1], path[2:]
    return None, path


def _unique(values: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(values))


def _first_value(matches: list[tuple[str | None, str]]) -> str | None:
    """Prefer a root-scope match, then the first one inside an environment table."""
    for environment, value in matches:
        if environment is None:
            return value
    return matches[0][1] if matches else None


def _infer_caching_strategy(
    kinds: tuple[str, ...], names: tuple[str, ...], classes: tuple[str, ...]
) -> CachingStrategy | None:
    if BINDINGS.tag_cache_class in classes or BINDINGS.tag_cache in names:
        return "r2-do-queue-tag-cache"
    if BINDINGS.queue_class in classes or BINDINGS.queue in names:
        return "r2-do-queue"
    if BINDINGS.cache_bucket in names:
        return "r2"
    if "assets" in kinds:
        return "static-assets"
    return None


def extract(text: str) -> ExtractedView:
    """
    Recover a partial view of a wrangler.toml.

    Does not require ``text`` to have been generated by this tool. Scalar fields
    prefer their root-scope value and fall back to the first ``[env.*]`` value.

    Args:
        text: Raw file content.

    Returns:
        An ExtractedView; fields that could not be found are unset.

    Raises:
        TypeError: If ``text`` is not a string.
    """
    if not isinstance(text, str):
        raise TypeError(f"Expected artifact text, got {type(text).__name__}")

    scalars: dict[str, list[tuple[str | None, str]]] = {
        "name": [],
        "account_id": [],
        "compatibility_date": [],
    }
    environments: list[str] = []
    kinds: list[str] = []
    durable_object_names: list[str] = []
    table: tuple[str, ...] = ()

    for _, token in iter_tokens(text):
        if isinstance(token, Header):
            table = token.path
            path = table
        else:
            path = table + token.key[:-1]
        environment, scoped = _scope(path)
        if environment:
            environments.append(environment)
        if scoped:
            for kind in BINDING_KINDS:
                if ".".join(scoped[: kind.count(".") + 1]) == kind:
                    kinds.append(kind)
        if isinstance(token, Pair) and token.value is not None:
            key = token.key[-1]
            if not scoped and key in scalars:
                scalars[key].append((environment, token.value))
            if ".".join(scoped) == "durable_objects.bindings" and key == "name":
                durable_object_names.append(token.value)

    content = "\n".join(strip_comment(line) for line in text.splitlines())
    names = _unique([*_BINDING_NAME_RE.findall(content), *durable_object_names])
    classes = _unique(_CLASS_NAME_RE.findall(content))
    bindings = _unique(kinds)

    view = ExtractedView(
        worker_name=_first_value(scalars["name"]),
        account_id=_first_value(scalars["account_id"]),
        compatibility_date=_first_value(scalars["compatibility_date"]),
        caching_strategy=_infer_caching_strategy(bindings, names, classes),
        environment_names=_unique(environments),
        bindings=bindings,
        binding_names=names,
        durable_object_classes=classes,
        placeholders=_unique(_PLACEHOLDER_RE.findall(content)),
    )
    logger.debug(f"Extracted view: {view.model_dump(exclude_defaults=True)}")
    return view


def extract_open_next_config(text: str) -> OpenNextView:
    """Recover the caching strategy and account id from open-next.config.ts source."""
    if not isinstance(text, str):
        raise TypeError(f"Expected config source, got {type(text).__name__}")
    content = _JS_LINE_COMMENT_RE.sub("", text)
    strategy = _OPEN_NEXT_STRATEGY_RE.search(content) or _OPEN_NEXT_CACHE_RE.search(content)
    account = _OPEN_NEXT_ACCOUNT_RE.search(content)
    return OpenNextView(
        caching_strategy=strategy.group(1) if strategy else None,
        account_id=account.group(1) if account else None,
    )
