from .compiler import compile_artifact
from .consistency import check_consistency
from .extractor import extract, extract_open_next_config
from .merge import dropped_keys, merge_unknown_sections
from .resolver import Section, SectionSet, resolve

__all__ = [
    "Section",
    "SectionSet",
    "check_consistency",
    "compile_artifact",
    "dropped_keys",
    "extract",
    "extract_open_next_config",
    "merge_unknown_sections",
    "resolve",
]
