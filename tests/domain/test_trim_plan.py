import pytest

from sync_editor.domain.errors import NoRegions, TrimExecutionError
from sync_editor.domain.region import Region
from sync_editor.domain.trim_plan import TrimResult, compile_trim_plan, trimmed_filename


def region(region_id, start, end):
    return Region(id=region_id, start=start, end=end, content=region_id, color="rgba(0, 0, 0, 0.3)")


def test_single_region_plan():
    plan = compile_trim_plan([region("r1", 2.0, 5.0)])

    assert [(op.region_id, op.start, op.end) for op in plan.operations] == [("r1", 2.0, 5.0)]
    assert plan.expected_duration == pytest.approx(3.0)
    assert plan.describe() == "trim r1 2.0 5.0\nconcat 1"


def test_plan_keeps_creation_order_and_overlaps():
    """
    Regions are concatenated in the order they were created, not by time,
    and overlapping regions are kept as-is.
    """
    regions = [region("r1", 10.0, 12.0), region("r2", 1.0, 11.0)]

    plan = compile_trim_plan(regions)

    assert [op.region_id for op in plan.operations] == ["r1", "r2"]
    assert plan.expected_duration == pytest.approx(12.0)


def test_same_regions_compile_to_identical_plans():
    regions = [region("a", 0.5, 1.25), region("b", 3.0, 4.0)]

    assert compile_trim_plan(regions) == compile_trim_plan(list(regions))
    assert compile_trim_plan(regions).describe() == compile_trim_plan(regions).describe()


def test_empty_region_list_raises_no_regions():
    with pytest.raises(NoRegions) as excinfo:
        compile_trim_plan([])

    assert isinstance(excinfo.value, TrimExecutionError)
    assert str(excinfo.value) == "Please select an audio file and create regions to trim"


def test_filter_complex_expression():
    plan = compile_trim_plan([region("r1", 2.0, 5.0), region("r2", 0.125, 1.5)])

    assert plan.to_filter_complex() == (
        "[0:a]atrim=start=2:end=5,asetpts=PTS-STARTPTS[a0];"
        "[0:a]atrim=start=0.125:end=1.5,asetpts=PTS-STARTPTS[a1];"
        "[a0][a1]concat=n=2:v=0:a=1[out]"
    )


def test_filter_complex_never_uses_exponent_notation():
    plan = compile_trim_plan([region("r1", 0.0000001, 0.00002)])

    assert "e-" not in plan.to_filter_complex()


def test_zero_length_region_is_kept():
    plan = compile_trim_plan([region("r1", 4.0, 4.0)])

    assert plan.operations[0].length == 0.0
    assert plan.expected_duration == 0.0


@pytest.mark.parametrize(
    "source, expected",
    [
        ("interview.wav", "trimmed_interview.wav.wav"),
        ("/tmp/clips/take2.mp3", "trimmed_take2.mp3.wav"),
        (None, "trimmed_audio.wav"),
        ("", "trimmed_audio.wav"),
    ],
)
def test_trimmed_filename(source, expected):
    assert trimmed_filename(source) == expected


def test_trim_result_save_writes_file(tmp_path):
    result = TrimResult(data=b"RIFFdata", filename="trimmed_a.wav", duration=1.0)

    path = result.save(tmp_path)

    assert path == tmp_path / "trimmed_a.wav"
    assert path.read_bytes() == b"RIFFdata"
    assert result.mime_type == "audio/wav"


def test_ten_second_region_yields_ten_seconds():
    plan = compile_trim_plan([region("r1", 5.0, 15.0)])

    assert len(plan.operations) == 1
    assert plan.expected_duration == pytest.approx(10.0)


def test_two_regions_concatenate_in_creation_order():
    in_order = compile_trim_plan([region("r1", 0.0, 2.0), region("r2", 5.0, 7.0)])
    reversed_creation = compile_trim_plan([region("r2", 5.0, 7.0), region("r1", 0.0, 2.0)])

    assert [(op.start, op.end) for op in in_order.operations] == [(0.0, 2.0), (5.0, 7.0)]
    assert [(op.start, op.end) for op in reversed_creation.operations] == [(5.0, 7.0), (0.0, 2.0)]
    assert in_order.expected_duration == pytest.approx(4.0)
    assert reversed_creation.expected_duration == pytest.approx(4.0)
