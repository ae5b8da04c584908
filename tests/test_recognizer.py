import pytest

from conftest import make_frame, make_patch, paste
from screenmatch import AlgorithmType, OcrNotInitializedError, Rect, RecognitionConfig, Recognizer, TextArea


class FakeOcr:
    """Stands in for the OCR models: returns fixed detections in order."""

    def __init__(self, areas):
        self.areas = list(areas)
        self.calls = 0
        self.threads = None
        self.ready = True

    def detect(self, frame):
        self.calls += 1
        return list(self.areas)

    def set_threads(self, count):
        self.threads = count


ABC = [
    TextArea("A", Rect(10, 10, 30, 12)),
    TextArea("B", Rect(60, 10, 30, 12)),
    TextArea("C", Rect(110, 10, 30, 12)),
]


@pytest.fixture
def frame():
    return make_frame()


def test_find_text_set_keeps_detection_order(frame):
    ocr = FakeOcr(ABC)
    rec = Recognizer(ocr=ocr)
    found = rec.find_text(frame, {"B", "A"})
    assert found == [ABC[0], ABC[1]]
    assert ocr.calls == 1


def test_find_text_sequence_emits_each_area_once(frame):
    rec = Recognizer(ocr=FakeOcr(ABC + [TextArea("A", Rect(10, 40, 30, 12))]))
    found = rec.find_text(frame, ["A", "A", "C"])
    assert [a.text for a in found] == ["A", "C", "A"]
    assert found[2].rect == Rect(10, 40, 30, 12)


def test_find_text_single_label(frame):
    rec = Recognizer(ocr=FakeOcr(ABC))
    assert rec.find_text(frame, "B") == Rect(60, 10, 30, 12)
    assert rec.find_text(frame, "Z") is None


def test_ocr_threads_forwarded():
    ocr = FakeOcr([])
    rec = Recognizer(ocr=ocr)
    rec.set_ocr_threads(3)
    assert ocr.threads == 3


def test_bundled_ocr_requires_models(frame, tmp_path):
    rec = Recognizer()
    assert not rec.ocr_ready
    for name in ("dbnet.onnx", "angle_net.onnx", "keys.txt"):
        (tmp_path / name).write_bytes(b"x")
    assert rec.init_ocr_models(tmp_path) is False
    with pytest.raises(OcrNotInitializedError):
        rec.find_text(frame, "A")
    # template queries are unaffected by missing OCR models
    assert rec.locate(frame, "nothing", 0.9).algorithm is AlgorithmType.JUST_RETURN


def test_register_and_locate_with_cache_lifecycle(rng, write_image):
    patch = make_patch(rng, 48, 32)
    frame = paste(make_frame(), patch, 64, 96)
    rec = Recognizer()
    assert rec.register_template("start", write_image("start", patch))
    assert not rec.register_template("ghost", "does/not/exist.png")
    assert rec.template_labels == ["start"]

    assert not rec.cache_enabled
    rec.set_cache_enabled(True)
    assert rec.locate(frame, "start", 0.9).algorithm is AlgorithmType.MATCH_TEMPLATE
    hit = rec.locate(frame, "start", 0.9)
    assert hit.algorithm is AlgorithmType.COMPARE_HIST and hit.score >= 0.95

    rec.clear_cache()
    assert rec.locate(frame, "start", 0.9).algorithm is AlgorithmType.MATCH_TEMPLATE
    rec.set_cache_enabled(False)
    assert rec.locate(frame, "start", 0.9).algorithm is AlgorithmType.MATCH_TEMPLATE


def test_feature_queries_on_blank_frame(rng, write_image, frame):
    rec = Recognizer(RecognitionConfig(match_all_workers=2))
    assert rec.register_feature("icon", write_image("icon", make_patch(rng, 120, 90)))
    assert rec.register_feature("logo", write_image("logo", make_patch(rng, 100, 100)))
    assert rec.feature_labels == ["icon", "logo"]
    assert not rec.register_feature("ghost", "does/not/exist.png")

    assert rec.locate_by_feature(frame, "icon") is None
    assert rec.locate_by_feature(frame, "unknown") is None
    assert rec.locate_all_by_feature(frame) == []
