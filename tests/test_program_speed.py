from tinyhttpd.program_speed import (
    ProgramSpeed,
    capture,
    format_elapsed,
    format_point_in_time,
)


def test_capture_is_monotonic():
    first = capture()
    second = capture()
    assert second >= first


def test_format_elapsed_matches_log_format():
    assert format_elapsed(1500000) == "Elapsed: 1500000 ns (1.500 ms)"


def test_format_point_in_time_matches_log_format():
    assert format_point_in_time(2000000) == "Time: 2000000 ns (2.000 ms)"


def test_default_span_is_unrecorded():
    speed = ProgramSpeed()
    assert speed.start == 0
    assert speed.end == 0
    assert speed.elapsed_ns() == 0


def test_elapsed_from_fixed_readings():
    speed = ProgramSpeed(start=10, end=35)
    assert speed.elapsed_ns() == 25


def test_marks_give_non_negative_elapsed():
    speed = ProgramSpeed()
    speed.mark_start()
    speed.mark_end()
    assert speed.start > 0
    assert speed.end >= speed.start
    assert speed.elapsed_ns() >= 0


def test_describe_uses_elapsed():
    speed = ProgramSpeed(start=1000, end=4000)
    assert speed.describe() == format_elapsed(speed.elapsed_ns())
    assert speed.describe().startswith("Elapsed: ")