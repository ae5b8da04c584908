import numpy as np

from conftest import make_patch
from screenmatch.vision.preprocess import load_image
from screenmatch.vision.stores import FeatureStore, TemplateStore


def test_load_image_missing_and_corrupt(tmp_path):
    assert load_image(tmp_path / "nope.png") is None
    bad = tmp_path / "bad.png"
    bad.write_bytes(b"definitely not a png")
    assert load_image(bad) is None
    empty = tmp_path / "empty.png"
    empty.write_bytes(b"")
    assert load_image(empty) is None


def test_template_register_and_lookup(rng, write_image, tmp_path):
    store = TemplateStore()
    patch = make_patch(rng, 40, 30)
    assert store.register("btn", write_image("btn", patch))
    img = store.lookup("btn")
    assert img is not None and img.shape == (30, 40, 3)
    assert np.array_equal(img, patch)
    assert store.lookup("other") is None
    assert not store.register("broken", tmp_path / "missing.png")
    assert store.labels() == ["btn"]


def test_template_reregister_replaces(rng, write_image):
    store = TemplateStore()
    store.register("btn", write_image("a", make_patch(rng, 40, 30)))
    store.register("btn", write_image("b", make_patch(rng, 20, 10)))
    assert len(store) == 1
    assert store.lookup("btn").shape == (10, 20, 3)


def test_template_images_are_read_only(rng):
    store = TemplateStore()
    store.add("x", make_patch(rng, 16, 16))
    assert not store.lookup("x").flags.writeable


def test_feature_register_extracts_keypoints(rng, write_image, tmp_path):
    store = FeatureStore()
    assert store.register("icon", write_image("icon", make_patch(rng, 160, 120)))
    features = store.lookup("icon")
    assert features is not None
    assert len(features) > 0
    assert features.descriptors.shape == (len(features), 128)
    assert features.descriptors.dtype == np.float32
    assert features.points().shape == (len(features), 2)
    assert not store.register("gone", tmp_path / "missing.png")
    assert store.labels() == ["icon"]


def test_feature_store_iterates_in_registration_order(rng):
    store = FeatureStore()
    for name in ("c", "a", "b"):
        store.add(name, make_patch(rng, 64, 64))
    assert [label for label, _ in store.items()] == ["c", "a", "b"]
