import pytest

from deformfusion.camera import Intrinsics, Resolution


@pytest.fixture(autouse=True)
def _fresh_singletons():
    Resolution.reset()
    Intrinsics.reset()
    yield
    Resolution.reset()
    Intrinsics.reset()


def test_resolution_reports_its_dimensions():
    res = Resolution.get_instance(640, 480)
    assert res.cols() == 640
    assert res.rows() == 480
    assert res.width == res.cols()
    assert res.height == res.rows()


def test_resolution_num_pixels_is_area():
    res = Resolution.get_instance(320, 240)
    assert res.num_pixels() == res.width * res.height


def test_resolution_first_call_wins():
    first = Resolution.get_instance(640, 480)
    second = Resolution.get_instance(100, 100)
    assert second is first
    assert Resolution.get_instance().cols() == 640


def test_resolution_uninitialised_raises():
    with pytest.raises(ValueError):
        Resolution.get_instance()


def test_resolution_negative_raises():
    with pytest.raises(ValueError):
        Resolution.get_instance(-1, 10)


def test_resolution_reset_allows_new_size():
    Resolution.get_instance(640, 480)
    Resolution.reset()
    assert Resolution.get_instance(320, 240).cols() == 320


def test_intrinsics_values_kept():
    intr = Intrinsics.get_instance(528.0, 529.0, 320.0, 240.0)
    assert (intr.fx, intr.fy, intr.cx, intr.cy) == (528.0, 529.0, 320.0, 240.0)


def test_intrinsics_first_call_wins():
    first = Intrinsics.get_instance(528.0, 528.0, 320.0, 240.0)
    assert Intrinsics.get_instance(1.0, 1.0, 1.0, 1.0) is first
    assert Intrinsics.get_instance().fx == 528.0


@pytest.mark.parametrize("fx, fy", [(0.0, 1.0), (1.0, 0.0)])
def test_intrinsics_zero_focal_raises(fx, fy):
    with pytest.raises(ValueError):
        Intrinsics.get_instance(fx, fy, 1.0, 1.0)


def test_intrinsics_is_immutable():
    intr = Intrinsics.get_instance(2.0, 3.0, 4.0, 5.0)
    with pytest.raises(AttributeError):
        intr.fx = 9.0
    assert intr.fx == 2.0
    assert Intrinsics.get_instance().fx == 2.0