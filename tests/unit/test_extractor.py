import pytest

from nextflare.core.compiler import compile_artifact
from nextflare.core.extractor import (
    Header,
    Pair,
    extract,
    extract_open_next_config,
    parse_line,
    split_blocks,
    strip_comment,
)
from nextflare.models.artifact import ExtractedView

HAND_WRITTEN = """\
# Hand-maintained config, sections moved around on purpose
compatibility_flags = ["nodejs_compat"]

[env.staging]
name = "shop-staging"   # staging override
routes = [{ pattern = "staging.example.com", custom_domain = true }]

[vars]
API_URL = "https://api.example.com" # trailing comment

account_id = "0123456789abcdef"

[[kv_namespaces]]
binding = "SESSIONS"
id = "abc"

# name = "commented-out"
[env.production.observability]
enabled = true

[env."preview-1"]
"""


def test_empty_text_yields_empty_view():
    assert extract("") == ExtractedView()


def test_extract_rejects_non_text():
    with pytest.raises(TypeError):
        extract(None)  # type: ignore[arg-type]


def test_extract_is_tolerant_of_order_comments_and_unknown_sections():
    text = "account_id = 'acc'\n" + HAND_WRITTEN.replace(
        "# Hand-maintained", 'name = "shop" # the worker\n# Hand-maintained'
    )

    view = extract(text)

    assert view.worker_name == "shop"
    assert view.environment_names == ("staging", "production", "preview-1")
    assert "kv_namespaces" in view.bindings
    assert view.binding_names == ("SESSIONS",)


def test_root_scope_beats_environment_scope():
    text = '[env.staging]\nname = "shop-staging"\n'
    assert extract(text).worker_name == "shop-staging"

    text = '[env.staging]\nname = "shop-staging"\n\n' + 'name = "shop"\n'
    # a root key after a table header belongs to that table, so the env value stays first
    assert extract(text).worker_name == "shop-staging"

    text = 'name = "shop"\n\n[env.staging]\nname = "shop-staging"\n'
    assert extract(text).worker_name == "shop"


def test_keys_inside_tables_are_not_scalars():
    view = extract(HAND_WRITTEN)

    # account_id sits under [vars] here, so it is not the account
    assert view.account_id is None
    assert view.worker_name == "shop-staging"


def test_dotted_keys_declare_environments():
    view = extract('name = "w"\nenv.qa.vars.X = "1"\nenv.qa.name = "w-qa"\n')

    assert view.environment_names == ("qa",)
    assert view.worker_name == "w"


def test_commented_lines_are_ignored():
    view = extract('# name = "ghost"\n# [env.ghost]\n# binding = "GHOST"\n')

    assert view == ExtractedView()


def test_hash_inside_string_is_not_a_comment():
    view = extract('name = "worker#1"\n')

    assert view.worker_name == "worker#1"


def test_multiline_strings_are_skipped():
    text = 'description = """\n[env.fake]\nname = "nope"\n"""\nname = "real"\n'

    view = extract(text)

    assert view.environment_names == ()
    assert view.worker_name == "real"


def test_extract_generated_artifact(demo_config):
    view = extract(compile_artifact(demo_config))

    assert view.worker_name == "demo"
    assert view.compatibility_date == "2024-09-23"
    assert view.environment_names == ("production",)
    assert view.caching_strategy == "r2-do-queue-tag-cache"
    assert view.durable_object_classes == ("Queue", "TagCache")
    assert view.placeholders == ("YOUR_DATABASE_ID_HERE",)
    assert view.has_binding("d1_databases")
    assert not view.has_binding("hyperdrive")
    assert "WORKER_SELF_REFERENCE" in view.binding_names
    assert "NEXT_QUEUE" in view.binding_names


@pytest.mark.parametrize(
    ("strategy", "database"),
    [
        ("static-assets", "none"),
        ("r2", "hyperdrive"),
        ("r2-do-queue", "none"),
        ("r2-do-queue-tag-cache", "d1"),
    ],
)
def test_caching_strategy_is_inferred_from_bindings(make_config, strategy, database):
    view = extract(compile_artifact(make_config(cachingStrategy=strategy, database=database)))

    assert view.caching_strategy == strategy


def test_env_scoped_bindings_are_recorded_by_kind():
    view = extract('[[env.production.d1_databases]]\nbinding = "DB"\n')

    assert view.bindings == ("d1_databases",)
    assert view.environment_names == ("production",)


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ("[assets]", Header(path=("assets",), is_array=False)),
        ("  [[ r2_buckets ]]  # cache", Header(path=("r2_buckets",), is_array=True)),
        ('[env."my.env".vars]', Header(path=("env", "my.env", "vars"), is_array=False)),
        ('name = "demo"', Pair(key=("name",), value="demo")),
        ("logpush = true", Pair(key=("logpush",), value="true")),
        ("flags = [1, 2]", Pair(key=("flags",), value=None)),
        ('a.b = "\\u00e9"', Pair(key=("a", "b"), value="é")),
        ("# just a comment", None),
        ("", None),
        ("[unbalanced]]", None),
    ],
)
def test_parse_line(line, expected):
    assert parse_line(line) == expected


def test_strip_comment_respects_quotes():
    assert strip_comment("a = 'x # y' # z") == "a = 'x # y' "
    assert strip_comment('a = "x \\" # y" # z') == 'a = "x \\" # y" '


def test_split_blocks_moves_leading_comments_to_header():
    blocks = split_blocks('name = "w"\n\n# about kv\n[[kv_namespaces]]\nbinding = "KV"\n')

    assert blocks[0].header is None
    assert blocks[0].text == 'name = "w"\n\n'
    assert blocks[1].header.name == "kv_namespaces"
    assert blocks[1].text.startswith("# about kv\n[[kv_namespaces]]")


def test_extract_open_next_config():
    source = (
        'import { defineCloudflareConfig } from "@opennextjs/cloudflare";\n'
        "// cachingStrategy: 'static-assets',\n"
        "export default defineCloudflareConfig({\n"
        "  cachingStrategy: 'r2',\n"
        '  accountId: "acc-123",\n'
        "});\n"
    )

    view = extract_open_next_config(source)

    assert view.caching_strategy == "r2"
    assert view.account_id == "acc-123"


def test_extract_open_next_config_without_fields():
    view = extract_open_next_config("export default {};\n")

    assert view.caching_strategy is None
    assert view.account_id is None
