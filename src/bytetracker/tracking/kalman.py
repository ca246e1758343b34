"""
Kalman filter implementation for object tracking.

This module provides an 8-dimensional constant velocity Kalman filter
for bounding box tracking, using center position, aspect ratio and
height as the observed state.
"""

from typing import Tuple

import numpy as np
import scipy.linalg


class KalmanUpdateError(ArithmeticError):
    """Raised when the projected covariance cannot be factorized."""


class KalmanFilter:
    """
    8D Kalman filter for tracking bounding boxes in image space.

    Uses a constant velocity model with state:
    [cx, cy, a, h, vx, vy, va, vh]

    Observations are [cx, cy, a, h], i.e. the box in xyah form.

    Process and measurement noise are scaled by the current box height,
    so uncertainty grows with the size of the object.

    The filter holds no per-track state. Every method takes a mean and
    covariance and returns new arrays, leaving its inputs untouched.

    Args:
        std_weight_position: Position noise relative to box height
        std_weight_velocity: Velocity noise relative to box height

    Example:
        >>> kf = KalmanFilter()
        >>> mean, cov = kf.initiate(np.array([100, 200, 1.0, 50]))
        >>> mean, cov = kf.predict(mean, cov)
        >>> mean, cov = kf.update(mean, cov, np.array([105, 205, 1.1, 55]))
    """

    ndim = 4

    def __init__(
        self,
        std_weight_position: float = 1.0 / 20,
        std_weight_velocity: float = 1.0 / 160
    ):
        dt = 1.0

        # State transition matrix (constant velocity model)
        self._motion_mat = np.eye(2 * self.ndim, dtype=np.float64)
        for i in range(self.ndim):
            self._motion_mat[i, self.ndim + i] = dt

        # Measurement matrix (observe position, aspect, height)
        self._update_mat = np.eye(self.ndim, 2 * self.ndim, dtype=np.float64)

        self._std_weight_position = std_weight_position
        self._std_weight_velocity = std_weight_velocity

    @property
    def std_weight_position(self) -> float:
        return self._std_weight_position

    @property
    def std_weight_velocity(self) -> float:
        return self._std_weight_velocity

    def initiate(self, measurement: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Create a track state from an unassociated measurement.

        Args:
            measurement: Box [cx, cy, a, h]

        Returns:
            mean: 8-dimensional state, velocities initialized to 0
            covariance: 8x8 diagonal covariance
        """
        measurement = np.asarray(measurement, dtype=np.float64)
        mean = np.r_[measurement[:4], np.zeros(4, dtype=np.float64)]

        h = measurement[3]
        std = np.array([
            2 * self._std_weight_position * h,
            2 * self._std_weight_position * h,
            1e-2,
            2 * self._std_weight_position * h,
            10 * self._std_weight_velocity * h,
            10 * self._std_weight_velocity * h,
            1e-5,
            10 * self._std_weight_velocity * h,
        ])
        covariance = np.diag(np.square(std))
        return mean, covariance

    def predict(
        self,
        mean: np.ndarray,
        covariance: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Run the prediction step.

        Args:
            mean: 8-dimensional state from the previous time step
            covariance: 8x8 state covariance from the previous time step

        Returns:
            Predicted mean and covariance
        """
        mean = np.asarray(mean, dtype=np.float64)
        covariance = np.asarray(covariance, dtype=np.float64)

        h = mean[3]
        std_pos = [
            self._std_weight_position * h,
            self._std_weight_position * h,
            1e-2,
            self._std_weight_position * h,
        ]
        std_vel = [
            self._std_weight_velocity * h,
            self._std_weight_velocity * h,
            1e-5,
            self._std_weight_velocity * h,
        ]
        motion_cov = np.diag(np.square(np.r_[std_pos, std_vel]))

        mean = np.dot(self._motion_mat, mean)
        covariance = np.linalg.multi_dot((
            self._motion_mat, covariance, self._motion_mat.T
        )) + motion_cov

        return mean, covariance

    def project(
        self,
        mean: np.ndarray,
        covariance: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Project the state distribution to measurement space.

        Returns:
            Projected 4-dimensional mean and 4x4 covariance
        """
        mean = np.asarray(mean, dtype=np.float64)
        covariance = np.asarray(covariance, dtype=np.float64)

        h = mean[3]
        std = [
            self._std_weight_position * h,
            self._std_weight_position * h,
            1e-1,
            self._std_weight_position * h,
        ]
        innovation_cov = np.diag(np.square(std))

        projected_mean = np.dot(self._update_mat, mean)
        projected_cov = np.linalg.multi_dot((
            self._update_mat, covariance, self._update_mat.T
        ))
        return projected_mean, projected_cov + innovation_cov

    def update(
        self,
        mean: np.ndarray,
        covariance: np.ndarray,
        measurement: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Run the correction step.

        The Kalman gain is solved through a Cholesky factor of the
        projected covariance.

        Args:
            mean: Predicted 8-dimensional state
            covariance: Predicted 8x8 covariance
            measurement: Observed box [cx, cy, a, h]

        Returns:
            Corrected mean and covariance

        Raises:
            KalmanUpdateError: If the projected covariance is not
                positive definite or contains non-finite values
        """
        mean = np.asarray(mean, dtype=np.float64)
        covariance = np.asarray(covariance, dtype=np.float64)
        measurement = np.asarray(measurement, dtype=np.float64)

        projected_mean, projected_cov = self.project(mean, covariance)

        try:
            chol_factor, lower = scipy.linalg.cho_factor(
                projected_cov, lower=True, check_finite=True
            )
        except (scipy.linalg.LinAlgError, ValueError) as e:
            raise KalmanUpdateError(
                f"Failed to factorize projected covariance: {e}"
            ) from e

        kalman_gain = scipy.linalg.cho_solve(
            (chol_factor, lower),
            np.dot(covariance, self._update_mat.T).T,
            check_finite=False
        ).T
        innovation = measurement - projected_mean

        new_mean = mean + np.dot(innovation, kalman_gain.T)
        new_covariance = covariance - np.linalg.multi_dot((
            kalman_gain, projected_cov, kalman_gain.T
        ))
        return new_mean, new_covariance
