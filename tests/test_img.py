import numpy as np
import pytest

from deformfusion.img import Img


def test_owned_image_is_zeroed():
    img = Img(4, 5)
    assert img.owned is True
    assert img.data.shape == (4, 5)
    assert not img.data.any()


def test_multichannel_shape_and_dtype():
    img = Img(2, 3, dtype=np.float32, channels=4)
    assert img.data.shape == (2, 3, 4)
    assert img.data.dtype == np.float32


def test_at_view_writes_through():
    img = Img(2, 3, dtype=np.uint8, channels=3)
    img.at(1, 2)[:] = [10, 20, 30]
    assert img.data[1, 2].tolist() == [10, 20, 30]


def test_wrapped_buffer_shares_memory():
    buffer = np.arange(6, dtype=np.uint16)
    img = Img(2, 3, dtype=np.uint16, data=buffer)
    assert img.owned is False
    buffer[4] = 999
    assert img.at(1, 1) == 999


def test_flat_matches_row_major_at():
    buffer = np.arange(12, dtype=np.int32)
    img = Img(3, 4, dtype=np.int32, data=buffer)
    for i in range(12):
        assert img.flat(i) == buffer[i]
        assert img.flat(i) == img.at(i // 4, i % 4)


def test_flat_multichannel():
    buffer = np.arange(8, dtype=np.float32)
    img = Img(2, 2, dtype=np.float32, channels=2, data=buffer)
    assert img.flat(3).tolist() == [6.0, 7.0]


def test_wrong_buffer_size_raises():
    with pytest.raises(ValueError):
        Img(2, 2, data=np.zeros(5, dtype=np.uint8))


@pytest.mark.parametrize("row, col", [(-1, 0), (0, -1), (2, 0), (0, 3)])
def test_at_out_of_range_raises(row, col):
    img = Img(2, 3)
    with pytest.raises(IndexError):
        img.at(row, col)


def test_flat_out_of_range_raises():
    img = Img(2, 3)
    with pytest.raises(IndexError):
        img.flat(6)


def test_invalid_dimensions_raise():
    with pytest.raises(ValueError):
        Img(-1, 3)
    with pytest.raises(ValueError):
        Img(1, 3, channels=0)