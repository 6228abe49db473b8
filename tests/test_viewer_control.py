import threading

import pytest

from vslamcore.viewer_control import ViewerControl, ViewerSettings


def test_settings_defaults_for_missing_values():
    settings = ViewerSettings.from_mapping({})
    assert settings.fps == 30
    assert (settings.image_width, settings.image_height) == (640, 480)
    assert settings.frame_period_ms == pytest.approx(1e3 / 30)


def test_settings_read_values():
    values = {
        "Camera.fps": 20,
        "Camera.width": 1241,
        "Camera.height": 376,
        "Viewer.ViewpointX": 0.5,
        "Viewer.ViewpointY": -0.7,
        "Viewer.ViewpointZ": -1.8,
        "Viewer.ViewpointF": 500,
    }
    settings = ViewerSettings.from_mapping(values)
    assert settings.fps == 20
    assert settings.frame_period_ms == pytest.approx(1e3 / 20)
    assert (settings.image_width, settings.image_height) == (1241, 376)
    assert settings.viewpoint_y == -0.7
    assert settings.viewpoint_f == 500


def test_settings_invalid_size_falls_back_together():
    settings = ViewerSettings.from_mapping({"Camera.width": 800, "Camera.height": 0})
    assert (settings.image_width, settings.image_height) == (640, 480)


def test_settings_non_number_raises():
    with pytest.raises(ValueError):
        ViewerSettings.from_mapping({"Camera.fps": "fast"})


def test_initial_state_is_stopped_and_finished():
    control = ViewerControl()
    assert control.is_stopped() is True
    assert control.is_finished() is True
    assert control.check_finish() is False


def test_stop_request_ignored_when_stopped():
    control = ViewerControl()
    control.request_stop()
    assert control.stop() is False


def test_stop_and_release_cycle():
    control = ViewerControl()
    control.start()
    assert control.is_stopped() is False
    assert control.is_finished() is False
    control.request_stop()
    assert control.stop() is True
    assert control.is_stopped() is True
    assert control.stop() is False
    control.release()
    assert control.is_stopped() is False


def test_finish_request_overrides_stop():
    control = ViewerControl()
    control.start()
    control.request_stop()
    control.request_finish()
    assert control.stop() is False
    assert control.check_finish() is True
    control.set_finish()
    assert control.is_finished() is True


def test_finish_from_other_thread():
    control = ViewerControl()
    control.start()
    worker = threading.Thread(target=control.request_finish)
    worker.start()
    worker.join()
    assert control.check_finish() is True
    assert control.is_finished() is False