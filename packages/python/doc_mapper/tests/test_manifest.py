from typing import Dict, List, Optional

import pytest
from pydantic import BaseModel, Field

from doc_mapper import Manifest, ManifestError, record


class Inner(BaseModel):
    x: int


@record
class Outer(BaseModel):
    id: Optional[str] = Field(default=None, alias="_id")
    name: str
    inner: Inner
    maybe_inner: Optional[Inner] = None
    inners: List[Inner] = Field(default_factory=list)
    numbers: List[int] = Field(default_factory=list)


def test_manifest_lists_fields_in_declaration_order():
    manifest = Manifest.of(Outer)

    assert [spec.name for spec in manifest] == ["id", "name", "inner", "maybe_inner", "inners", "numbers"]
    assert manifest.document_names == ("_id", "name", "inner", "maybe_inner", "inners", "numbers")
    assert len(manifest) == 6


def test_manifest_describes_field_kinds():
    specs = {spec.name: spec for spec in Manifest.of(Outer)}

    assert specs["name"].required and specs["name"].nested is None
    assert not specs["id"].required and specs["id"].nullable
    assert specs["inner"].nested is Inner and not specs["inner"].many
    assert specs["maybe_inner"].nested is Inner and specs["maybe_inner"].nullable
    assert specs["inners"].nested is Inner and specs["inners"].many
    assert specs["numbers"].nested is None
    assert specs["inners"].records and not specs["numbers"].records
    assert specs["inners"].default() == []


def test_manifest_is_built_once():
    assert Manifest.of(Outer) is Manifest.of(Outer)


def test_manifest_rejects_non_models():
    class Plain:
        a: int

    with pytest.raises(ManifestError):
        Manifest.of(Plain)


def test_manifest_rejects_duplicate_document_names():
    with pytest.raises(ManifestError):

        @record
        class Clash(BaseModel):
            id: str = Field(alias="_id")
            other: str = Field(alias="_id")


def test_manifest_finds_records_inside_other_containers():
    class Keyed(BaseModel):
        by_name: Dict[str, Inner]
        maybe: List[Optional[Inner]]
        labels: Dict[str, int]

    specs = {spec.name: spec for spec in Manifest.of(Keyed)}

    assert specs["by_name"].records and specs["by_name"].nested is None
    assert specs["maybe"].records and not specs["maybe"].many
    assert not specs["labels"].records
