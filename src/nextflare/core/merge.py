"""Carry hand-written sections of an existing wrangler.toml into regenerated output."""

from dataclasses import astuple

from loguru import logger

from nextflare.constants import BINDINGS, PLACEHOLDERS
from nextflare.core.compiler import format_string
from nextflare.core.extractor import Block, Pair, iter_tokens, split_blocks

__all__ = ["PRESERVED_MARKER", "dropped_keys", "is_generator_owned", "merge_unknown_sections"]

PRESERVED_MARKER = "# Preserved from the previous wrangler.toml"

# Tables the generator owns whether or not the current config emits them.
_OWNED_TABLES = frozenset({"assets", "images", "observability", "placement"})
_OWNED_ENV_TABLES = frozenset({"production"})
_OWNED_BINDING_NAMES = frozenset(astuple(BINDINGS))

# Identifiers that only exist after `wrangler ... create`, keyed by (table, binding).
_PROVISIONED_KEYS: dict[tuple[str, str], str] = {
    ("d1_databases", BINDINGS.d1): "database_id",
    ("hyperdrive", BINDINGS.hyperdrive): "id",
}

Slot = tuple[tuple[str, ...], bool, str | None]


def _entry_identity(block: Block) -> str | None:
    """The ``binding`` (or ``name``) value that distinguishes one array-of-tables entry."""
    values: dict[str, str] = {}
    for _, token in iter_tokens(block.text):
        if isinstance(token, Pair) and len(token.key) == 1 and token.value is not None:
            values.setdefault(token.key[0], token.value)
    return values.get("binding") or values.get("name")


def _slot(block: Block) -> Slot:
    assert block.header is not None
    identity = _entry_identity(block) if block.header.is_array else None
    return block.header.path, block.header.is_array, identity


def _pair_keys(block: Block) -> list[tuple[str, ...]]:
    return [token.key for _, token in iter_tokens(block.text) if isinstance(token, Pair)]


def is_generator_owned(block: Block) -> bool:
    """Whether regeneration replaces ``block`` rather than carrying it over."""
    if block.header is None:
        return False
    path = block.header.path
    if block.header.is_array:
        return path[0] != "env" and _entry_identity(block) in _OWNED_BINDING_NAMES
    if path[0] == "env":
        return len(path) >= 2 and path[1] in _OWNED_ENV_TABLES and (
            len(path) == 2 or path[2] == "observability"
        )
    return path[0] in _OWNED_TABLES


def _table_prefix(path: tuple[str, ...]) -> tuple[str, ...]:
    return path[:2] if path[0] == "env" else path[:1]


def _generated_layout(blocks: list[Block]) -> tuple[set[tuple[str, ...]], set[tuple[str, ...]]]:
    """Root keys and top-level table prefixes of generated text."""
    root_keys = set(_pair_keys(blocks[0]))
    prefixes = {_table_prefix(block.header.path) for block in blocks[1:] if block.header}
    return root_keys, prefixes


def _root_key_replaced(
    key: tuple[str, ...], root_keys: set[tuple[str, ...]], prefixes: set[tuple[str, ...]]
) -> bool:
    """Whether the generator writes ``key`` itself or a table that would contain it."""
    if key in root_keys:
        return True
    if key[0] in _OWNED_TABLES or (key[0] == "env" and key[1:2] == ("production",)):
        return True
    for prefix in prefixes:
        common = min(len(key), len(prefix))
        if key[:common] == prefix[:common]:
            return True
    return False


def _root_chunks(block: Block) -> list[tuple[tuple[str, ...], list[str]]]:
    """Group root lines by the pair they belong to; comments attach to the pair below them."""
    pairs = {
        index: token for index, token in iter_tokens(block.text) if isinstance(token, Pair)
    }
    chunks: list[tuple[tuple[str, ...], list[str]]] = []
    pending: list[str] = []
    for index, line in enumerate(block.lines):
        if not line.endswith("\n"):
            line += "\n"
        if index in pairs:
            chunks.append((pairs[index].key, [*pending, line]))
            pending = []
        elif line.lstrip().startswith("#"):
            pending.append(line)
        elif not line.strip():
            pending = []
        elif chunks:
            # continuation of a multi-line value
            chunks[-1][1].append(line)
    return chunks


def _provisioned_ids(blocks: list[Block]) -> dict[tuple[str, str], str]:
    """Real database ids already filled in by hand, keyed like ``_PROVISIONED_KEYS``."""
    placeholders = set(PLACEHOLDERS.values())
    ids: dict[tuple[str, str], str] = {}
    for block in blocks:
        if block.header is None or not block.header.is_array:
            continue
        slot = (block.header.name, _entry_identity(block) or "")
        key = _PROVISIONED_KEYS.get(slot)
        if key is None:
            continue
        for _, token in iter_tokens(block.text):
            if (
                isinstance(token, Pair)
                and token.key == (key,)
                and token.value
                and token.value not in placeholders
            ):
                ids.setdefault(slot, token.value)
    return ids


def _restore_ids(block: Block, ids: dict[tuple[str, str], str]) -> str:
    if block.header is None or not block.header.is_array:
        return block.text
    slot = (block.header.name, _entry_identity(block) or "")
    if slot not in ids:
        return block.text
    key = _PROVISIONED_KEYS[slot]
    lines = list(block.lines)
    for index, token in iter_tokens(block.text):
        if isinstance(token, Pair) and token.key == (key,):
            lines[index] = f"{key} = {format_string(ids[slot])}\n"
    return "".join(lines)


def dropped_keys(generated: str, existing: str) -> list[str]:
    """
    List hand-written keys of ``existing`` that merging into ``generated`` discards.

    These are root keys that would collide with a generated table and keys added
    inside tables the generator rewrites. Provisioned database ids are carried
    over by the merge and are not reported.
    """
    generated_blocks = split_blocks(generated)
    root_keys, prefixes = _generated_layout(generated_blocks)
    generated_keys = {_slot(block): set(_pair_keys(block)) for block in generated_blocks[1:]}

    existing_blocks = split_blocks(existing)
    dropped = [
        ".".join(key)
        for key in _pair_keys(existing_blocks[0])
        if key not in root_keys and _root_key_replaced(key, root_keys, prefixes)
    ]
    for block in existing_blocks[1:]:
        if not is_generator_owned(block):
            continue
        keys = generated_keys.get(_slot(block))
        if keys is None:
            continue
        dropped.extend(
            f"{block.header.name}.{'.'.join(key)}" for key in _pair_keys(block) if key not in keys
        )
    return dropped


def merge_unknown_sections(generated: str, existing: str) -> str:
    """
    Merge hand-written content of ``existing`` into freshly ``generated`` text.

    Root keys the generator does not emit (``account_id``, ``routes``...) stay in
    the root scope. Tables outside the generator's namespace, and binding entries
    whose name the generator never uses, are appended after the generated text.
    Provisioned D1 and Hyperdrive ids replace the generated placeholders.
    Everything else is replaced by the generated version; see ``dropped_keys``.

    Merging a file with its own generated text returns it unchanged.
    """
    generated_blocks = split_blocks(generated)
    root_keys, prefixes = _generated_layout(generated_blocks)

    existing_blocks = split_blocks(existing)
    preserved_root = [
        line
        for key, lines in _root_chunks(existing_blocks[0])
        if not _root_key_replaced(key, root_keys, prefixes)
        for line in lines
    ]
    preserved_tables = [block for block in existing_blocks[1:] if not is_generator_owned(block)]
    ids = _provisioned_ids(existing_blocks[1:])

    root = generated_blocks[0].text.rstrip("\n") + "\n" + "".join(preserved_root) + "\n"
    merged = root + "".join(_restore_ids(block, ids) for block in generated_blocks[1:])

    if preserved_tables:
        tables = []
        for block in preserved_tables:
            lines = [line for line in block.lines if line.rstrip("\n") != PRESERVED_MARKER]
            tables.append("".join(lines).strip("\n") + "\n")
        merged = merged.rstrip("\n") + f"\n\n{PRESERVED_MARKER}\n" + "\n".join(tables)

    for key in dropped_keys(generated, existing):
        logger.warning(f"Dropping hand-written {key}: the generator owns that table")
    logger.debug(
        f"Kept {len(preserved_root)} root line(s), {len(preserved_tables)} table(s) "
        f"and {len(ids)} provisioned id(s) from the existing file"
    )
    return merged
