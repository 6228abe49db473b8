import numpy as np
import pytest

from vslamcore.settings import (
    CameraSettings,
    OrbSettings,
    Sensor,
    load_settings,
    parse_settings,
)

SAMPLE = """%YAML:1.0

Camera.fx: 517.306408
Camera.fy: 516.469215
Camera.cx: 318.643040
Camera.cy: 255.313989

Camera.k1: 0.262383
Camera.k2: -0.953104
Camera.p1: -0.005358
Camera.p2: 0.002628
Camera.k3: 1.163314

Camera.width: 640
Camera.height: 480
Camera.fps: 30.0
Camera.bf: 40.0
Camera.RGB: 1

ThDepth: 40.0
DepthMapFactor: 5000.0

ORBextractor.nFeatures: 1000
ORBextractor.scaleFactor: 1.2
ORBextractor.nLevels: 8
ORBextractor.iniThFAST: 20
ORBextractor.minThFAST: 7
"""


def test_parse_reads_scalars_despite_directive():
    values = parse_settings(SAMPLE)
    assert values["Camera.fx"] == pytest.approx(517.306408)
    assert values["ORBextractor.nFeatures"] == 1000


def test_parse_empty_text_gives_empty_mapping():
    assert parse_settings("%YAML:1.0\n") == {}


def test_parse_rejects_non_mapping():
    with pytest.raises(ValueError):
        parse_settings("- 1\n- 2\n")


def test_parse_opencv_matrix():
    text = (
        "%YAML:1.0\n"
        "K: !!opencv-matrix\n"
        "   rows: 2\n"
        "   cols: 2\n"
        "   dt: d\n"
        "   data: [1.0, 2.0, 3.0, 4.0]\n"
    )
    matrix = parse_settings(text)["K"]
    assert matrix.shape == (2, 2)
    assert matrix[1, 0] == 3.0


def test_parse_opencv_matrix_wrong_size():
    text = "K: !!opencv-matrix\n  rows: 2\n  cols: 2\n  dt: f\n  data: [1.0]\n"
    with pytest.raises(ValueError):
        parse_settings(text)


def test_load_settings_from_file(tmp_path):
    path = tmp_path / "camera.yaml"
    path.write_text(SAMPLE, encoding="utf-8")
    assert load_settings(path) == parse_settings(SAMPLE)


def test_load_missing_file():
    with pytest.raises(FileNotFoundError):
        load_settings("/nonexistent/dir/settings.yaml")


def test_camera_matrix_holds_intrinsics():
    values = parse_settings(SAMPLE)
    cam = CameraSettings.from_mapping(values, Sensor.RGBD)
    k = cam.camera_matrix
    assert k[0, 0] == pytest.approx(values["Camera.fx"])
    assert k[1, 1] == pytest.approx(values["Camera.fy"])
    assert k[0, 2] == pytest.approx(values["Camera.cx"])
    assert k[1, 2] == pytest.approx(values["Camera.cy"])
    assert k[2, 2] == 1.0
    assert k[1, 0] == 0.0


def test_dist_coef_includes_nonzero_k3():
    cam = CameraSettings.from_mapping(parse_settings(SAMPLE), Sensor.MONOCULAR)
    assert cam.dist_coef.shape == (5,)
    assert cam.dist_coef[4] == pytest.approx(1.163314)


def test_dist_coef_without_k3():
    values = dict(parse_settings(SAMPLE))
    values["Camera.k3"] = 0.0
    cam = CameraSettings.from_mapping(values, Sensor.MONOCULAR)
    assert cam.dist_coef.shape == (4,)
    np.testing.assert_allclose(
        cam.dist_coef, [0.262383, -0.953104, -0.005358, 0.002628], rtol=1e-6
    )


def test_missing_fps_defaults_to_thirty():
    values = dict(parse_settings(SAMPLE))
    del values["Camera.fps"]
    cam = CameraSettings.from_mapping(values, Sensor.STEREO)
    assert cam.fps == 30.0
    assert cam.max_frames == 30
    assert cam.min_frames == 0


def test_rgb_flag_and_color_order():
    cam = CameraSettings.from_mapping(parse_settings(SAMPLE), Sensor.MONOCULAR)
    assert cam.rgb is True
    assert cam.color_order == "RGB"
    values = dict(parse_settings(SAMPLE))
    values["Camera.RGB"] = 0
    assert CameraSettings.from_mapping(values, Sensor.MONOCULAR).color_order == "BGR"


def test_th_depth_only_for_depth_sensors():
    values = parse_settings(SAMPLE)
    mono = CameraSettings.from_mapping(values, Sensor.MONOCULAR)
    stereo = CameraSettings.from_mapping(values, Sensor.STEREO)
    assert mono.th_depth is None
    assert stereo.th_depth * values["Camera.fx"] == pytest.approx(
        values["Camera.bf"] * values["ThDepth"]
    )


def test_depth_map_factor_is_inverted_for_rgbd():
    values = parse_settings(SAMPLE)
    cam = CameraSettings.from_mapping(values, Sensor.RGBD)
    assert cam.depth_map_factor * values["DepthMapFactor"] == pytest.approx(1.0)
    assert CameraSettings.from_mapping(values, Sensor.STEREO).depth_map_factor is None


def test_depth_map_factor_near_zero_is_one():
    values = dict(parse_settings(SAMPLE))
    values["DepthMapFactor"] = 0.0
    assert CameraSettings.from_mapping(values, Sensor.RGBD).depth_map_factor == 1.0


def test_non_numeric_value_raises():
    values = dict(parse_settings(SAMPLE))
    values["Camera.fx"] = "wide"
    with pytest.raises(ValueError):
        CameraSettings.from_mapping(values, Sensor.MONOCULAR)


def test_orb_settings():
    orb = OrbSettings.from_mapping(parse_settings(SAMPLE))
    assert orb.n_features == 1000
    assert orb.scale_factor == pytest.approx(1.2)
    assert orb.n_levels == 8
    assert orb.ini_th_fast == 20
    assert orb.min_th_fast == 7
    assert orb.initializer_features == 2 * orb.n_features


def test_orb_missing_keys_read_as_zero():
    orb = OrbSettings.from_mapping({})
    assert (orb.n_features, orb.n_levels, orb.ini_th_fast, orb.min_th_fast) == (0, 0, 0, 0)


def test_sensor_values_and_labels():
    assert [int(s) for s in Sensor] == [0, 1, 2]
    assert Sensor(2).label == "RGB-D"
    assert Sensor.MONOCULAR.label == "Monocular"
    assert Sensor.STEREO.label == "Stereo"