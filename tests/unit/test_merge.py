import tomllib

import pytest

from nextflare.core.compiler import compile_artifact
from nextflare.core.extractor import Block, Header, split_blocks
from nextflare.core.merge import (
    PRESERVED_MARKER,
    dropped_keys,
    is_generator_owned,
    merge_unknown_sections,
)

HAND_EDITED = """\
name = "demo"
main = ".open-next/worker.js"
compatibility_date = "2024-01-01"
# Account used by CI
account_id = "acc-123"
routes = [
  { pattern = "shop.example.com", custom_domain = true },
]

[assets]
directory = ".open-next/assets"
binding = "ASSETS"

[[r2_buckets]]
binding = "NEXT_INC_CACHE_R2_BUCKET"
bucket_name = "stale-cache"

# User uploads
[[r2_buckets]]
binding = "UPLOADS"
bucket_name = "demo-uploads"

[vars]
API_URL = "https://api.example.com"

[env.production]
compatibility_date = "2024-01-01"

[env.production.vars]
API_URL = "https://api.example.com/prod"

[[kv_namespaces]]
binding = "SESSIONS"
id = "abc123"
"""


@pytest.fixture
def generated(demo_config):
    return compile_artifact(demo_config)


def test_merging_generated_text_with_itself_is_a_no_op(generated):
    assert merge_unknown_sections(generated, generated) == generated


def test_unknown_root_keys_are_kept(generated):
    merged = merge_unknown_sections(generated, HAND_EDITED)
    document = tomllib.loads(merged)

    assert document["account_id"] == "acc-123"
    assert document["routes"] == [{"pattern": "shop.example.com", "custom_domain": True}]
    assert "# Account used by CI\naccount_id" in merged
    # generated keys win
    assert document["compatibility_date"] == "2024-09-23"


def test_unknown_tables_are_appended(generated):
    merged = merge_unknown_sections(generated, HAND_EDITED)
    document = tomllib.loads(merged)

    assert merged.startswith(generated.split("\n\n", 1)[0])
    assert PRESERVED_MARKER in merged
    assert document["vars"] == {"API_URL": "https://api.example.com"}
    assert document["kv_namespaces"] == [{"binding": "SESSIONS", "id": "abc123"}]
    assert document["env"]["production"]["vars"]["API_URL"] == "https://api.example.com/prod"
    assert "# User uploads\n[[r2_buckets]]" in merged


def test_owned_entries_are_replaced(generated):
    document = tomllib.loads(merge_unknown_sections(generated, HAND_EDITED))

    buckets = {bucket["binding"]: bucket["bucket_name"] for bucket in document["r2_buckets"]}
    assert buckets == {"NEXT_INC_CACHE_R2_BUCKET": "demo-cache", "UPLOADS": "demo-uploads"}
    assert document["env"]["production"]["compatibility_date"] == "2024-09-23"
    assert "run_worker_first" in document["assets"]


def test_merge_is_stable_across_regenerations(generated):
    once = merge_unknown_sections(generated, HAND_EDITED)
    twice = merge_unknown_sections(generated, once)

    assert twice == once
    assert twice.count(PRESERVED_MARKER) == 1


def test_empty_existing_file(generated):
    assert merge_unknown_sections(generated, "") == generated


@pytest.mark.parametrize(
    ("text", "owned"),
    [
        ("[assets]\n", True),
        ("[placement]\n", True),
        ("[observability.logs]\n", True),
        ("[env.production]\n", True),
        ("[env.production.observability.traces]\n", True),
        ("[env.production.vars]\n", False),
        ("[env.staging]\n", False),
        ("[vars]\n", False),
        ('[[services]]\nbinding = "WORKER_SELF_REFERENCE"\n', True),
        ('[[services]]\nbinding = "AUTH"\n', False),
        ('[[durable_objects.bindings]]\nname = "NEXT_QUEUE"\n', True),
        ('[[env.staging.d1_databases]]\nbinding = "DB"\n', False),
    ],
)
def test_is_generator_owned(text, owned):
    block = split_blocks(text)[1]

    assert is_generator_owned(block) is owned


def test_root_block_is_never_owned():
    assert is_generator_owned(Block(header=None)) is False
    assert is_generator_owned(Block(header=Header(path=("images",), is_array=False))) is True


def test_provisioned_database_id_is_kept(generated):
    existing = generated.replace("YOUR_DATABASE_ID_HERE", "7f3a-real-id")

    merged = merge_unknown_sections(generated, existing)

    assert tomllib.loads(merged)["d1_databases"] == [
        {"binding": "DB", "database_name": "demo-db", "database_id": "7f3a-real-id"}
    ]
    assert merge_unknown_sections(generated, merged) == merged
    assert dropped_keys(generated, existing) == []


def test_provisioned_hyperdrive_id_is_kept(make_config):
    generated = compile_artifact(make_config(database="hyperdrive"))
    existing = generated.replace("YOUR_HYPERDRIVE_ID_HERE", "hd-123")

    document = tomllib.loads(merge_unknown_sections(generated, existing))

    assert document["hyperdrive"] == [{"binding": "HYPERDRIVE", "id": "hd-123"}]


def test_root_dotted_key_inside_generated_table_is_dropped(make_config, make_env):
    generated = compile_artifact(make_config(environments=[make_env("development")]))
    existing = 'name = "demo"\nobservability.enabled = false\naccount_id = "acc"\n'

    document = tomllib.loads(merge_unknown_sections(generated, existing))

    assert document["observability"]["enabled"] is True
    assert document["account_id"] == "acc"
    assert dropped_keys(generated, existing) == ["observability.enabled"]


def test_keys_added_to_owned_tables_are_reported(generated):
    existing = generated.replace(
        "[env.production]\n", '[env.production]\nroute = "shop.example.com/*"\n'
    )

    merged = merge_unknown_sections(generated, existing)

    assert "route" not in tomllib.loads(merged)["env"]["production"]
    assert dropped_keys(generated, existing) == ["env.production.route"]


def test_nothing_reported_for_unowned_content(generated):
    assert dropped_keys(generated, HAND_EDITED) == []
