import pytest

from deformfusion.parse import (
    base_dir,
    find_arg,
    float_arg,
    int_arg,
    shader_dir,
    string_arg,
)


def test_find_arg_skips_program_name():
    assert find_arg(["-l", "x", "-l"], "-l") == 2


def test_find_arg_missing():
    assert find_arg(["prog", "-a"], "-b") == -1


def test_string_arg_present():
    assert string_arg(["prog", "-l", "log.klg"], "-l", "") == "log.klg"


def test_string_arg_without_value_gives_default():
    assert string_arg(["prog", "-l"], "-l", "fallback") == "fallback"


def test_string_arg_missing_gives_default():
    assert string_arg(["prog"], "-l") is None


def test_float_arg_reads_prefix():
    assert float_arg(["prog", "-d", "3.5abc"], "-d", 1.0) == 3.5


def test_float_arg_exponent():
    assert float_arg(["prog", "-d", "1e3"], "-d") == 1e3


def test_float_arg_garbage_is_zero():
    assert float_arg(["prog", "-d", "abc"], "-d", 9.0) == 0.0


def test_float_arg_missing_default():
    assert float_arg(["prog"], "-d", 9.0) == 9.0


def test_int_arg_reads_prefix():
    assert int_arg(["prog", "-n", "42xyz"], "-n", 0) == 42


def test_int_arg_sign_and_space():
    assert int_arg(["prog", "-n", "  -7"], "-n") == -7


def test_int_arg_garbage_is_zero():
    assert int_arg(["prog", "-n", "x1"], "-n", 5) == 0


def test_shader_dir_existing(tmp_path):
    assert shader_dir(tmp_path) == str(tmp_path)


def test_shader_dir_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        shader_dir(tmp_path / "absent")


def test_base_dir_strips_build():
    assert base_dir("/home/user/proj/build/bin/app") == "/home/user/proj"


def test_base_dir_uses_last_build():
    assert base_dir("/a/build/b/build/app") == "/a/build/b"


def test_base_dir_without_build_unchanged():
    assert base_dir("/opt/app/run") == "/opt/app/run"