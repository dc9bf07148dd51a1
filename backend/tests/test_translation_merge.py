from __future__ import annotations

import asyncio

from conftest import FakeTranslator
from features.types import Feature, FeatureCollection
from geo.aoi import BBox
from translate.client import TranslationProviderError
from translate.merge import merge_translations, needs_translation


def _collection(*names) -> FeatureCollection:
    feats = [
        Feature(
            id=str(i),
            geometry={"type": "Point", "coordinates": [77.58 + i / 1000.0, 12.92]},
            category="park",
            name=n,
        )
        for i, n in enumerate(names, start=1)
    ]
    return FeatureCollection(bbox=BBox(77.55, 12.90, 77.60, 12.95), lang="kn", features=tuple(feats))


def _merge(fc, translator, *, target="kn", source="en"):
    return asyncio.run(merge_translations(fc, target=target, source=source, translator=translator))


def test_needs_translation_ignores_case_and_blank_target():
    assert needs_translation("kn", source="en")
    assert not needs_translation("EN", source="en")
    assert not needs_translation("", source="en")
    assert not needs_translation(None, source="en")


def test_source_language_target_is_identity_without_provider_call():
    fc = _collection("Lalbagh", "Jayanagar")
    t = FakeTranslator()
    out = _merge(fc, t, target="en")
    assert out is fc
    assert t.calls == []


def test_empty_collection_skips_provider():
    fc = _collection()
    t = FakeTranslator()
    assert _merge(fc, t) is fc
    assert t.calls == []


def test_positional_merge_sets_translated_names_in_one_call():
    fc = _collection("Lalbagh", "Jayanagar")
    t = FakeTranslator(lines=["ಲಾಲ್‌ಬಾಗ್", "ಜಯನಗರ"])
    out = _merge(fc, t)

    assert len(t.calls) == 1
    assert t.calls[0] == {"texts": ["Lalbagh", "Jayanagar"], "source": "en", "target": "kn"}
    assert [f.translated_name for f in out.features] == ["ಲಾಲ್‌ಬಾಗ್", "ಜಯನಗರ"]
    assert [f.label for f in out.features] == ["ಲಾಲ್‌ಬಾಗ್", "ಜಯನಗರ"]


def test_merge_preserves_ids_geometry_category_and_order():
    fc = _collection("A", "B", "C")
    out = _merge(fc, FakeTranslator())
    assert out is not fc
    assert out.bbox == fc.bbox and out.lang == fc.lang
    for before, after in zip(fc.features, out.features):
        assert (after.id, after.geometry, after.category, after.name) == (
            before.id,
            before.geometry,
            before.category,
            before.name,
        )
    # Input is untouched.
    assert all(f.translated_name is None for f in fc.features)


def test_length_mismatch_leaves_all_names_untranslated():
    fc = _collection("A", "B", "C")
    out = _merge(fc, FakeTranslator(lines=["x", "y"]))
    assert out is fc
    assert all(f.translated_name is None for f in out.features)


def test_provider_error_degrades_to_originals():
    fc = _collection("A", "B")
    err = TranslationProviderError("boom", reason="http_error", provider_status=502)
    out = _merge(fc, FakeTranslator(error=err))
    assert out is fc
    assert [f.label for f in out.features] == ["A", "B"]


def test_feature_without_name_keeps_position_but_gets_no_translation():
    fc = _collection("A", None, "C")
    t = FakeTranslator()
    out = _merge(fc, t)
    assert t.calls[0]["texts"] == ["A", "", "C"]
    assert [f.translated_name for f in out.features] == ["kn:A", None, "kn:C"]
    assert out.features[1].label == ""


def test_geojson_carries_translated_name_property_only_when_set():
    fc = _collection("A", None)
    out = _merge(fc, FakeTranslator())
    props = [f["properties"] for f in out.to_geojson()["features"]]
    assert props[0]["name_translated"] == "kn:A"
    assert "name_translated" not in props[1]


def test_unexpected_translator_exception_degrades_to_originals():
    fc = _collection("A", "B")
    t = FakeTranslator(error=RuntimeError("provider sdk blew up"))
    out = _merge(fc, t)
    assert out is fc
    assert len(t.calls) == 1
    assert [f.label for f in out.features] == ["A", "B"]


def test_blank_provider_line_leaves_that_feature_untranslated():
    fc = _collection("Lalbagh", "Jayanagar")
    out = _merge(fc, FakeTranslator(lines=["", "ಜಯನಗರ"]))
    assert [f.translated_name for f in out.features] == [None, "ಜಯನಗರ"]
    assert [f.label for f in out.features] == ["Lalbagh", "ಜಯನಗರ"]
    props = out.to_geojson()["features"][0]["properties"]
    assert "name_translated" not in props
