import pytest

from nxopus.loops import (
    LoopMode,
    LoopPoints,
    LoopRequest,
    base_name,
    parse_loop_args,
    resolve_loop_points,
)


def test_no_args_means_no_loop():
    assert parse_loop_args([]) == LoopRequest(LoopMode.NONE, 0, 0)


def test_auto_argument():
    assert parse_loop_args(["auto"]).mode is LoopMode.AUTO


def test_manual_arguments():
    assert parse_loop_args(["10", "20"]) == LoopRequest(LoopMode.MANUAL, 10, 20)


def test_single_number_disables_loop():
    assert parse_loop_args(["10"]).mode is LoopMode.NONE


def test_manual_arguments_parse_like_atoi():
    assert parse_loop_args(["  12abc", "x"]) == LoopRequest(LoopMode.MANUAL, 12, 0)


def test_negative_argument_wraps_to_unsigned():
    request = parse_loop_args(["-1", "5"])
    assert request.start == 0xFFFFFFFF
    assert request.end == 5


def test_resolve_auto():
    request = LoopRequest(LoopMode.AUTO)
    assert resolve_loop_points(request, 4800, 48000) == LoopPoints(0, 4800, True)


def test_resolve_manual_in_range():
    request = LoopRequest(LoopMode.MANUAL, 100, 200)
    assert resolve_loop_points(request, 1000, 48000) == LoopPoints(100, 200, True)


def test_resolve_manual_clamps_end():
    request = LoopRequest(LoopMode.MANUAL, 100, 5000)
    assert resolve_loop_points(request, 1000, 48000) == LoopPoints(100, 1000, True)


def test_resolve_manual_start_after_end_disables():
    request = LoopRequest(LoopMode.MANUAL, 300, 200)
    assert resolve_loop_points(request, 1000, 48000) == LoopPoints(0, 0, False)


def test_resolve_wrapped_negative_start_disables():
    request = parse_loop_args(["-1", "5"])
    assert resolve_loop_points(request, 1000, 48000).enabled is False


def test_resolve_none():
    assert resolve_loop_points(LoopRequest(), 1000, 48000) == LoopPoints()


def test_resolve_zero_rate_does_not_fail():
    request = LoopRequest(LoopMode.AUTO)
    assert resolve_loop_points(request, 10, 0) == LoopPoints(0, 10, True)


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/music/track/song.wav", "song"),
        ("song", "song"),
        ("dir/archive.tar.gz", "archive.tar"),
        ("dir/name.opus/", "name"),
        ("/", "/"),
    ],
)
def test_base_name(path, expected):
    assert base_name(path) == expected