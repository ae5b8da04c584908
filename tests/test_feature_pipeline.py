"""Feature-matching pipeline on synthetic keypoints and descriptors."""
import cv2
import numpy as np
import pytest

from screenmatch.config.vision import RecognitionConfig
from screenmatch.vision.features import (
    FeatureFilterParams,
    accepts,
    centroid_filter,
    centroid_mask,
    evaluate_inliers,
    ransac_inliers,
    ratio_prune,
    run_pipeline,
)
from screenmatch.vision.geometry import Rect
from screenmatch.vision.stores import FeatureDescriptorSet

SINGLE = FeatureFilterParams()


def _cluster(n, center=(300.0, 200.0), spread=5.0, seed=0):
    rng = np.random.default_rng(seed)
    return np.asarray(center) + rng.uniform(-spread, spread, size=(n, 2))


def test_params_follow_config():
    single = FeatureFilterParams.single_label(RecognitionConfig())
    scan = FeatureFilterParams.all_labels(RecognitionConfig())
    assert single.centroid_distance == 200
    assert scan.centroid_distance == 300
    assert single.ratio_threshold == scan.ratio_threshold == 0.4
    assert single.acceptance_ratio == scan.acceptance_ratio == 0.075

    tuned = RecognitionConfig(single_centroid_distance=120, all_centroid_distance=450, ratio_threshold=0.5)
    assert FeatureFilterParams.single_label(tuned).centroid_distance == 120
    assert FeatureFilterParams.all_labels(tuned).centroid_distance == 450
    assert FeatureFilterParams.all_labels(tuned).ratio_threshold == 0.5


def test_ratio_prune_is_strict_and_relative_to_worst():
    matches = [cv2.DMatch(0, 0, 1.0), cv2.DMatch(1, 1, 4.0), cv2.DMatch(2, 2, 10.0), cv2.DMatch(3, 3, 2.0)]
    kept = ratio_prune(matches, 0.4, query_size=4, scene_size=4)
    assert [m.queryIdx for m in kept] == [0, 3]


def test_ratio_prune_drops_out_of_range_indices():
    matches = [cv2.DMatch(0, 9, 1.0), cv2.DMatch(1, 1, 1.0), cv2.DMatch(2, 2, 10.0)]
    kept = ratio_prune(matches, 0.4, query_size=3, scene_size=3)
    assert [m.queryIdx for m in kept] == [1]


def test_ratio_prune_empty():
    assert ratio_prune([], 0.4, 0, 0) == []


def test_ransac_needs_enough_points():
    pts = _cluster(5)
    mask = ransac_inliers(pts, pts + 3.0)
    assert mask.shape == (5,) and not mask.any()


def test_centroid_filter_excludes_far_outlier():
    pts = np.vstack([_cluster(10, center=(100.0, 100.0)), [[1000.0, 1000.0]]])
    kept = centroid_filter(pts, 200)
    assert len(kept) == 10
    assert not np.any(np.all(kept == [1000.0, 1000.0], axis=1))


def test_outlier_excluded_from_bounding_box():
    cluster = _cluster(10, center=(100.0, 100.0))
    pts = np.vstack([cluster, [[1000.0, 1000.0]]])
    area = evaluate_inliers("icon", pts, query_count=20, params=SINGLE)
    assert area is not None and area.text == "icon"
    expected = Rect.from_points((int(x), int(y)) for x, y in np.rint(cluster).astype(int))
    assert area.rect == expected
    assert area.rect.right < 200 and area.rect.bottom < 200


def test_centroid_threshold_is_exclusive():
    pts = np.array([[0.0, 0.0], [400.0, 0.0]])
    # Each point sits exactly 200 px from the mean horizontally
    assert len(centroid_filter(pts, 200)) == 0
    assert len(centroid_filter(pts, 201)) == 2


def test_centroid_mask_marks_kept_points():
    pts = np.vstack([_cluster(4, center=(50.0, 50.0)), [[900.0, 50.0]]])
    assert centroid_mask(pts, 200).tolist() == [True, True, True, True, False]
    assert centroid_mask(np.empty((0, 2)), 200).shape == (0,)


@pytest.mark.parametrize("good,expected", [(7, False), (8, True)])
def test_acceptance_ratio_boundary(good, expected):
    assert accepts(good, 100, 0.075) is expected
    area = evaluate_inliers("x", _cluster(good), query_count=100, params=SINGLE)
    assert (area is not None) is expected


def test_acceptance_scales_with_query_size():
    assert accepts(1, 10, 0.075)
    assert not accepts(0, 0, 0.075)


def _two_view_scene(seed=7, n_true=60, n_query_extra=20, n_scene_decoys=40):
    """Keypoints seen from two cameras with matching descriptors for the true points."""
    rng = np.random.default_rng(seed)
    world = np.column_stack([rng.uniform(-1, 1, n_true), rng.uniform(-1, 1, n_true), rng.uniform(4, 6, n_true)])
    k = np.array([[200.0, 0, 320.0], [0, 200.0, 240.0], [0, 0, 1.0]])

    def project(points, rvec, tvec):
        img, _ = cv2.projectPoints(points, rvec, tvec, k, None)
        return img.reshape(-1, 2)

    query_pts = project(world, np.zeros(3), np.zeros(3))
    scene_pts = project(world, np.array([0.0, 0.09, 0.0]), np.array([0.5, 0.05, 0.0]))

    true_desc = rng.uniform(0, 100, size=(n_true, 128)).astype(np.float32)
    query_extra = rng.uniform(0, 100, size=(n_query_extra, 128)).astype(np.float32)
    decoys = rng.uniform(0, 100, size=(n_scene_decoys, 128)).astype(np.float32)
    decoy_pts = rng.uniform(0, 640, size=(n_scene_decoys, 2))
    extra_pts = rng.uniform(0, 640, size=(n_query_extra, 2))

    def kps(points):
        return tuple(cv2.KeyPoint(float(x), float(y), 4.0) for x, y in points)

    query = FeatureDescriptorSet(kps(np.vstack([query_pts, extra_pts])), np.vstack([true_desc, query_extra]))
    scene = FeatureDescriptorSet(kps(np.vstack([scene_pts, decoy_pts])), np.vstack([true_desc, decoys]))
    decoy_scene = FeatureDescriptorSet(kps(decoy_pts), decoys)
    return query, scene, decoy_scene, scene_pts


def test_pipeline_finds_label_in_two_view_scene():
    query, scene, _, true_scene_pts = _two_view_scene()
    area = run_pipeline("label", query, scene, SINGLE)
    assert area is not None and area.text == "label"
    bounds = Rect.from_points((int(x), int(y)) for x, y in np.rint(true_scene_pts).astype(int))
    assert bounds.contains(area.rect)
    assert area.rect.width > 0 and area.rect.height > 0


def test_pipeline_rejects_unrelated_scene():
    query, _, decoy_scene, _ = _two_view_scene()
    assert run_pipeline("label", query, decoy_scene, SINGLE) is None


def test_pipeline_without_descriptors():
    query, _, _, _ = _two_view_scene()
    empty = FeatureDescriptorSet((), None)
    assert run_pipeline("label", query, empty, SINGLE) is None
    assert run_pipeline("label", empty, query, SINGLE) is None


def test_strict_acceptance_rejects_sparse_evidence():
    query, scene, _, _ = _two_view_scene()
    strict = FeatureFilterParams(acceptance_ratio=1.5)
    assert run_pipeline("label", query, scene, strict) is None
