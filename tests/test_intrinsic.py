"""
Tests for calicapture.calibration.intrinsic.
"""

import cv2
import numpy as np
import pytest

from calicapture.calibration.intrinsic import (
    MIN_SOLVER_VIEWS,
    OpenCvSolver,
    compute_reprojection_error,
    view_reprojection_errors,
)
from calicapture.errors import DegenerateGeometry
from calicapture.types import CorrespondenceSet


def make_sets(object_points, views, image_size):
    return [
        CorrespondenceSet(object_points=object_points, image_points=v, image_size=image_size)
        for v in views
    ]


class TestOpenCvSolver:
    def test_recovers_synthetic_intrinsics(self, synthetic_views, sample_intrinsics_matrix):
        object_points, views, image_size = synthetic_views

        result = OpenCvSolver().solve(make_sets(object_points, views, image_size))

        model = result.model
        assert model.fx == pytest.approx(sample_intrinsics_matrix[0, 0], abs=2.0)
        assert model.fy == pytest.approx(sample_intrinsics_matrix[1, 1], abs=2.0)
        assert model.cx == pytest.approx(sample_intrinsics_matrix[0, 2], abs=2.0)
        assert model.cy == pytest.approx(sample_intrinsics_matrix[1, 2], abs=2.0)
        assert model.distortion.shape == (8,)
        np.testing.assert_allclose(model.distortion, 0.0, atol=1e-2)
        assert result.rms_error < 0.1

    def test_returns_extrinsics_per_view(self, synthetic_views):
        object_points, views, image_size = synthetic_views

        result = OpenCvSolver().solve(make_sets(object_points, views, image_size))

        assert result.view_count == len(views)
        assert len(result.translations) == len(views)
        assert result.rotations[0].shape == (3,)
        # Board is in front of the camera
        assert all(t[2] > 0 for t in result.translations)

    def test_rational_model_fits_eight_coefficients(self, synthetic_views):
        object_points, views, image_size = synthetic_views

        result = OpenCvSolver(flags=cv2.CALIB_RATIONAL_MODEL).solve(
            make_sets(object_points, views, image_size)
        )
        assert result.model.distortion.shape == (8,)

    @pytest.mark.parametrize(
        "flags",
        [
            cv2.CALIB_THIN_PRISM_MODEL,
            cv2.CALIB_RATIONAL_MODEL | cv2.CALIB_THIN_PRISM_MODEL,
            cv2.CALIB_TILTED_MODEL,
        ],
    )
    def test_rejects_models_beyond_eight_coefficients(self, flags):
        with pytest.raises(ValueError, match="more than 8"):
            OpenCvSolver(flags=flags)

    def test_long_distortion_with_zero_tail_truncated(self, synthetic_views, monkeypatch,
                                                       sample_intrinsics_matrix):
        object_points, views, image_size = synthetic_views
        distortion = np.zeros((14, 1))
        distortion[:8, 0] = [0.1, -0.2, 0.0, 0.0, 0.05, 0.01, 0.0, 0.0]

        def fourteen(obj, img, size, matrix, dist, flags=0):
            rvecs = [np.zeros((3, 1)) for _ in obj]
            tvecs = [np.array([[0.0], [0.0], [0.5]]) for _ in obj]
            return 0.2, sample_intrinsics_matrix, distortion, rvecs, tvecs

        monkeypatch.setattr(cv2, "calibrateCamera", fourteen)

        result = OpenCvSolver().solve(make_sets(object_points, views, image_size))

        np.testing.assert_array_equal(result.model.distortion, distortion[:8, 0])

    def test_long_distortion_with_fitted_tail_is_degenerate(self, synthetic_views, monkeypatch,
                                                            sample_intrinsics_matrix):
        object_points, views, image_size = synthetic_views
        distortion = np.zeros((12, 1))
        distortion[9, 0] = 0.003

        def twelve(obj, img, size, matrix, dist, flags=0):
            rvecs = [np.zeros((3, 1)) for _ in obj]
            tvecs = [np.array([[0.0], [0.0], [0.5]]) for _ in obj]
            return 0.2, sample_intrinsics_matrix, distortion, rvecs, tvecs

        monkeypatch.setattr(cv2, "calibrateCamera", twelve)

        with pytest.raises(DegenerateGeometry, match="beyond the first 8"):
            OpenCvSolver().solve(make_sets(object_points, views, image_size))

    def test_too_few_views(self, synthetic_views):
        object_points, views, image_size = synthetic_views
        sets = make_sets(object_points, views[: MIN_SOLVER_VIEWS - 1], image_size)

        with pytest.raises(DegenerateGeometry, match="at least"):
            OpenCvSolver().solve(sets)

    def test_unknown_image_size(self, synthetic_views):
        object_points, views, _ = synthetic_views
        sets = make_sets(object_points, views, None)

        with pytest.raises(DegenerateGeometry, match="Image size"):
            OpenCvSolver().solve(sets)

    def test_cv2_error_is_degenerate(self, synthetic_views, monkeypatch):
        object_points, views, image_size = synthetic_views

        def broken(*args, **kwargs):
            raise cv2.error("calibration exploded")

        monkeypatch.setattr(cv2, "calibrateCamera", broken)

        with pytest.raises(DegenerateGeometry):
            OpenCvSolver().solve(make_sets(object_points, views, image_size))


class TestReprojectionError:
    def test_near_zero_for_exact_model(self, synthetic_views, sample_camera_model):
        from calicapture.types import CameraModel

        object_points, views, image_size = synthetic_views
        model = CameraModel(matrix=sample_camera_model.matrix)
        correspondence = make_sets(object_points, views[:1], image_size)[0]

        error = compute_reprojection_error(correspondence, model)

        assert error is not None
        assert error < 1e-2

    def test_none_when_pose_not_found(self, synthetic_views, sample_camera_model, monkeypatch):
        object_points, views, image_size = synthetic_views
        correspondence = make_sets(object_points, views[:1], image_size)[0]
        monkeypatch.setattr(
            cv2, "solvePnP", lambda *args, **kwargs: (False, np.zeros(3), np.zeros(3))
        )

        assert compute_reprojection_error(correspondence, sample_camera_model) is None


class TestViewReprojectionErrors:
    def test_one_error_per_view(self, synthetic_views):
        object_points, views, image_size = synthetic_views
        sets = make_sets(object_points, views, image_size)

        result = OpenCvSolver().solve(sets)
        errors = view_reprojection_errors(sets, result)

        assert len(errors) == len(views)
        assert max(errors) < 0.1

    def test_wrong_pose_gives_large_error(self, synthetic_views, fake_solver):
        object_points, views, image_size = synthetic_views
        sets = make_sets(object_points, views[:3], image_size)

        # FakeSolver reports every board at the origin, 0.5 m away
        errors = view_reprojection_errors(sets, fake_solver.solve(sets))

        assert len(errors) == 3
        assert min(errors) > 1.0
