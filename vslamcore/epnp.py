"""Efficient Perspective-n-Point pose estimation."""

from __future__ import annotations

import math

import numpy as np

# Pairs of control points, in the order used for the distance constraints.
_PAIRS = ((0, 1), (0, 2), (0, 3), (1, 2), (1, 3), (2, 3))
_GAUSS_NEWTON_STEPS = 5


def _as_points(points_world, points_image) -> tuple[np.ndarray, np.ndarray]:
    pws = np.asarray(points_world, dtype=float)
    us = np.asarray(points_image, dtype=float)
    if pws.ndim != 2 or pws.shape[1] != 3:
        raise ValueError("world points must have shape (n, 3)")
    if us.shape != (pws.shape[0], 2):
        raise ValueError("image points must have shape (n, 2) matching world points")
    if pws.shape[0] == 0:
        raise ValueError("at least one correspondence is required")
    return pws, us


def qr_solve(a, b) -> np.ndarray:
    """Least-squares solution of ``a @ x = b`` by Householder QR.

    Raises ``numpy.linalg.LinAlgError`` when ``a`` has a zero column.
    """
    mat = np.array(a, dtype=float)
    rhs = np.array(b, dtype=float).reshape(-1)
    if mat.ndim != 2:
        raise ValueError("matrix must be two-dimensional")
    nr, nc = mat.shape
    if rhs.shape[0] != nr:
        raise ValueError("right-hand side length does not match matrix rows")
    if nr < nc:
        raise ValueError("matrix must have at least as many rows as columns")

    a1 = np.zeros(nc)
    a2 = np.zeros(nc)
    for k in range(nc):
        eta = float(np.max(np.abs(mat[k:, k])))
        if eta == 0:
            raise np.linalg.LinAlgError("matrix is singular")
        mat[k:, k] /= eta
        sigma = math.sqrt(float(mat[k:, k] @ mat[k:, k]))
        if mat[k, k] < 0:
            sigma = -sigma
        mat[k, k] += sigma
        a1[k] = sigma * mat[k, k]
        a2[k] = -eta * sigma
        for j in range(k + 1, nc):
            tau = float(mat[k:, k] @ mat[k:, j]) / a1[k]
            mat[k:, j] -= tau * mat[k:, k]

    for j in range(nc):
        tau = float(mat[j:, j] @ rhs[j:]) / a1[j]
        rhs[j:] -= tau * mat[j:, j]

    x = np.zeros(nc)
    x[nc - 1] = rhs[nc - 1] / a2[nc - 1]
    for i in range(nc - 2, -1, -1):
        x[i] = (rhs[i] - float(mat[i, i + 1 :] @ x[i + 1 :])) / a2[i]
    return x


def mat_to_quat(rotation) -> np.ndarray:
    """Quaternion of a rotation matrix, vector part first, scalar last."""
    r = np.asarray(rotation, dtype=float)
    tr = r[0, 0] + r[1, 1] + r[2, 2]
    if tr > 0.0:
        q = np.array([r[1, 2] - r[2, 1], r[2, 0] - r[0, 2], r[0, 1] - r[1, 0], tr + 1.0])
        n4 = q[3]
    elif r[0, 0] > r[1, 1] and r[0, 0] > r[2, 2]:
        q = np.array(
            [
                1.0 + r[0, 0] - r[1, 1] - r[2, 2],
                r[1, 0] + r[0, 1],
                r[2, 0] + r[0, 2],
                r[1, 2] - r[2, 1],
            ]
        )
        n4 = q[0]
    elif r[1, 1] > r[2, 2]:
        q = np.array(
            [
                r[1, 0] + r[0, 1],
                1.0 + r[1, 1] - r[0, 0] - r[2, 2],
                r[2, 1] + r[1, 2],
                r[2, 0] - r[0, 2],
            ]
        )
        n4 = q[1]
    else:
        q = np.array(
            [
                r[2, 0] + r[0, 2],
                r[2, 1] + r[1, 2],
                1.0 + r[2, 2] - r[0, 0] - r[1, 1],
                r[0, 1] - r[1, 0],
            ]
        )
        n4 = q[2]
    return q * (0.5 / math.sqrt(n4))


def relative_error(
    rotation_true, translation_true, rotation_est, translation_est
) -> tuple[float, float]:
    """Relative rotation (quaternion) and translation errors of an estimate."""
    qt = mat_to_quat(rotation_true)
    qe = mat_to_quat(rotation_est)
    tt = np.asarray(translation_true, dtype=float).reshape(3)
    te = np.asarray(translation_est, dtype=float).reshape(3)
    with np.errstate(divide="ignore", invalid="ignore"):
        q_norm = np.linalg.norm(qt)
        rot_err = min(np.linalg.norm(qt - qe) / q_norm, np.linalg.norm(qt + qe) / q_norm)
        transl_err = np.linalg.norm(tt - te) / np.linalg.norm(tt)
    return float(rot_err), float(transl_err)


def _choose_control_points(pws: np.ndarray) -> np.ndarray:
    n = pws.shape[0]
    c0 = pws.mean(axis=0)
    centred = pws - c0
    u, s, _ = np.linalg.svd(centred.T @ centred)
    cws = np.empty((4, 3))
    cws[0] = c0
    for i in range(3):
        cws[i + 1] = c0 + math.sqrt(s[i] / n) * u[:, i]
    return cws


def _barycentric_coordinates(pws: np.ndarray, cws: np.ndarray) -> np.ndarray:
    cc = (cws[1:] - cws[0]).T
    cc_inv = np.linalg.pinv(cc)
    alphas = np.empty((pws.shape[0], 4))
    alphas[:, 1:] = (pws - cws[0]) @ cc_inv.T
    alphas[:, 0] = 1.0 - alphas[:, 1:].sum(axis=1)
    return alphas


def _compute_l_6x10(ut: np.ndarray) -> np.ndarray:
    vs = [ut[11 - i].reshape(4, 3) for i in range(4)]
    dv = np.array([[v[a] - v[b] for a, b in _PAIRS] for v in vs])
    d = np.einsum("pik,qik->ipq", dv, dv)
    return np.column_stack(
        [
            d[:, 0, 0],
            2.0 * d[:, 0, 1],
            d[:, 1, 1],
            2.0 * d[:, 0, 2],
            2.0 * d[:, 1, 2],
            d[:, 2, 2],
            2.0 * d[:, 0, 3],
            2.0 * d[:, 1, 3],
            2.0 * d[:, 2, 3],
            d[:, 3, 3],
        ]
    )


def _compute_rho(cws: np.ndarray) -> np.ndarray:
    return np.array([float(np.sum((cws[a] - cws[b]) ** 2)) for a, b in _PAIRS])


def _lstsq(mat: np.ndarray, rhs: np.ndarray) -> np.ndarray:
    return np.linalg.lstsq(mat, rhs, rcond=None)[0]


def _betas_approx_1(l_6x10: np.ndarray, rho: np.ndarray) -> np.ndarray:
    b4 = _lstsq(l_6x10[:, [0, 1, 3, 6]], rho)
    if b4[0] < 0:
        b0 = np.sqrt(-b4[0])
        return np.array([b0, -b4[1] / b0, -b4[2] / b0, -b4[3] / b0])
    b0 = np.sqrt(b4[0])
    return np.array([b0, b4[1] / b0, b4[2] / b0, b4[3] / b0])


def _leading_betas(b: np.ndarray) -> tuple[float, float]:
    if b[0] < 0:
        b0 = np.sqrt(-b[0])
        b1 = np.sqrt(-b[2]) if b[2] < 0 else 0.0
    else:
        b0 = np.sqrt(b[0])
        b1 = np.sqrt(b[2]) if b[2] > 0 else 0.0
    if b[1] < 0:
        b0 = -b0
    return b0, b1


def _betas_approx_2(l_6x10: np.ndarray, rho: np.ndarray) -> np.ndarray:
    b3 = _lstsq(l_6x10[:, :3], rho)
    b0, b1 = _leading_betas(b3)
    return np.array([b0, b1, 0.0, 0.0])


def _betas_approx_3(l_6x10: np.ndarray, rho: np.ndarray) -> np.ndarray:
    b5 = _lstsq(l_6x10[:, :5], rho)
    b0, b1 = _leading_betas(b5)
    return np.array([b0, b1, np.float64(b5[3]) / b0, 0.0])


def _gauss_newton(l_6x10: np.ndarray, rho: np.ndarray, betas: np.ndarray) -> np.ndarray:
    betas = np.array(betas, dtype=float)
    lc = l_6x10.T
    for _ in range(_GAUSS_NEWTON_STEPS):
        b0, b1, b2, b3 = betas
        a = np.column_stack(
            [
                2 * lc[0] * b0 + lc[1] * b1 + lc[3] * b2 + lc[6] * b3,
                lc[1] * b0 + 2 * lc[2] * b1 + lc[4] * b2 + lc[7] * b3,
                lc[3] * b0 + lc[4] * b1 + 2 * lc[5] * b2 + lc[8] * b3,
                lc[6] * b0 + lc[7] * b1 + lc[8] * b2 + 2 * lc[9] * b3,
            ]
        )
        products = np.array(
            [b0 * b0, b0 * b1, b1 * b1, b0 * b2, b1 * b2, b2 * b2, b0 * b3, b1 * b3, b2 * b3, b3 * b3]
        )
        residual = rho - l_6x10 @ products
        try:
            step = qr_solve(a, residual)
        except np.linalg.LinAlgError:
            break
        betas = betas + step
    return betas


def _estimate_r_and_t(pcs: np.ndarray, pws: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    pc0 = pcs.mean(axis=0)
    pw0 = pws.mean(axis=0)
    abt = (pcs - pc0).T @ (pws - pw0)
    u, _, vt = np.linalg.svd(abt)
    rotation = u @ vt
    if np.linalg.det(rotation) < 0:
        rotation[2] = -rotation[2]
    translation = pc0 - rotation @ pw0
    return rotation, translation


class EPnP:
    """Camera pose from 3D-2D correspondences for a pinhole camera."""

    def __init__(self, fu: float, fv: float, uc: float, vc: float) -> None:
        self.fu = float(fu)
        self.fv = float(fv)
        self.uc = float(uc)
        self.vc = float(vc)

    def compute_pose(self, points_world, points_image) -> tuple[np.ndarray, np.ndarray, float]:
        """Estimate ``(rotation, translation, mean_reprojection_error)``.

        The pose maps world points into the camera frame.
        """
        pws, us = _as_points(points_world, points_image)
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            cws = _choose_control_points(pws)
            alphas = _barycentric_coordinates(pws, cws)
            m = self._fill_m(alphas, us)
            u, _, _ = np.linalg.svd(m.T @ m)
            ut = u.T

            l_6x10 = _compute_l_6x10(ut)
            rho = _compute_rho(cws)

            best = None
            for approximate in (_betas_approx_1, _betas_approx_2, _betas_approx_3):
                betas = _gauss_newton(l_6x10, rho, approximate(l_6x10, rho))
                candidate = self._compute_r_and_t(ut, betas, alphas, pws, us)
                if best is None or candidate[2] < best[2]:
                    best = candidate
        return best

    def reprojection_error(self, points_world, points_image, rotation, translation) -> float:
        """Mean pixel distance between observed and reprojected points."""
        pws, us = _as_points(points_world, points_image)
        r = np.asarray(rotation, dtype=float).reshape(3, 3)
        t = np.asarray(translation, dtype=float).reshape(3)
        with np.errstate(divide="ignore", invalid="ignore"):
            pc = pws @ r.T + t
            inv_z = 1.0 / pc[:, 2]
            ue = self.uc + self.fu * pc[:, 0] * inv_z
            ve = self.vc + self.fv * pc[:, 1] * inv_z
            return float(np.mean(np.hypot(us[:, 0] - ue, us[:, 1] - ve)))

    def _fill_m(self, alphas: np.ndarray, us: np.ndarray) -> np.ndarray:
        n = alphas.shape[0]
        m = np.zeros((2 * n, 12))
        for j in range(4):
            a = alphas[:, j]
            m[0::2, 3 * j] = a * self.fu
            m[0::2, 3 * j + 2] = a * (self.uc - us[:, 0])
            m[1::2, 3 * j + 1] = a * self.fv
            m[1::2, 3 * j + 2] = a * (self.vc - us[:, 1])
        return m

    def _compute_r_and_t(self, ut, betas, alphas, pws, us):
        ccs = sum(betas[i] * ut[11 - i].reshape(4, 3) for i in range(4))
        pcs = alphas @ ccs
        if pcs[0, 2] < 0.0:
            pcs = -pcs
        rotation, translation = _estimate_r_and_t(pcs, pws)
        error = self.reprojection_error(pws, us, rotation, translation)
        return rotation, translation, error