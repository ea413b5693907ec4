"""Rule model and deterministic ordering."""

from .model import (
    Alias,
    BuckPath,
    BuildscriptBinary,
    BuildscriptGenrule,
    Common,
    CxxLibrary,
    GitFetch,
    HttpArchive,
    PlatformAttributes,
    PrebuiltCxxLibrary,
    RootPackage,
    Rule,
    RuleRef,
    RuleSet,
    RustBinary,
    RustCommon,
    RustLibrary,
    clone_platforms,
    rule_is_public,
    rule_name,
    rule_sort_key,
)
from .ordering import label_class, label_sort_key, sorted_labels

__all__ = [
    "Alias",
    "BuckPath",
    "BuildscriptBinary",
    "BuildscriptGenrule",
    "Common",
    "CxxLibrary",
    "GitFetch",
    "HttpArchive",
    "PlatformAttributes",
    "PrebuiltCxxLibrary",
    "RootPackage",
    "Rule",
    "RuleRef",
    "RuleSet",
    "RustBinary",
    "RustCommon",
    "RustLibrary",
    "clone_platforms",
    "label_class",
    "label_sort_key",
    "rule_is_public",
    "rule_name",
    "rule_sort_key",
    "sorted_labels",
]
