"""Tests for grouping extracted metadata by crate."""

from __future__ import annotations

import pytest

from ffigen.errors import GroupingError
from ffigen.metadata import (
    FnMetadata,
    NamespaceMetadata,
    ObjectMetadata,
    UdlFileMetadata,
    group_metadata,
)


def test_groups_are_sorted_by_crate_and_keep_record_order() -> None:
    records = [
        NamespaceMetadata(crate_name="zeta", name="zeta"),
        FnMetadata(module_path="zeta", name="second"),
        NamespaceMetadata(crate_name="alpha", name="alpha_ns"),
        FnMetadata(module_path="zeta::inner", name="first"),
        ObjectMetadata(module_path="alpha", name="Thing"),
    ]

    groups = group_metadata(records)

    assert [group.crate_name for group in groups] == ["alpha", "zeta"]
    assert groups[0].namespace.name == "alpha_ns"
    assert [item.name for item in groups[1].items] == ["second", "first"]


def test_udl_file_record_declares_namespace() -> None:
    udl = UdlFileMetadata(module_path="arith", namespace="arithmetic", file_stub="arith")

    (group,) = group_metadata([udl, FnMetadata(module_path="arith", name="add")])

    assert group.namespace == NamespaceMetadata(crate_name="arith", name="arithmetic")
    assert group.items[0] == udl


def test_two_namespaces_for_one_crate_are_rejected() -> None:
    with pytest.raises(GroupingError, match="declares two namespaces"):
        group_metadata(
            [
                NamespaceMetadata(crate_name="geo", name="geometry"),
                UdlFileMetadata(module_path="geo", namespace="shapes", file_stub="geo"),
            ]
        )


def test_record_without_namespace_is_rejected() -> None:
    with pytest.raises(GroupingError, match="Unknown namespace for function `orphan` \\(lost\\)"):
        group_metadata(
            [
                NamespaceMetadata(crate_name="geo", name="geo"),
                FnMetadata(module_path="lost", name="orphan"),
            ]
        )


def test_duplicate_records_are_rejected() -> None:
    item = FnMetadata(module_path="geo", name="area")

    with pytest.raises(GroupingError, match="Duplicate metadata item: function `area`"):
        group_metadata([NamespaceMetadata(crate_name="geo", name="geo"), item, item])


def test_no_records_yield_no_groups() -> None:
    assert group_metadata([]) == []
