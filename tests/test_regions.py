import pytest

from epkit import Region, ValidationError, build_regions, key_boundaries


def test_boundaries_for_three_notes():
    assert key_boundaries([60, 64, 67]) == [0, 62, 66, 127]


def test_boundaries_round_upper_half_up():
    assert key_boundaries([60, 61]) == [0, 61, 127]
    assert key_boundaries([60, 62]) == [0, 61, 127]


def test_boundaries_empty_and_single():
    assert key_boundaries([]) == []
    assert key_boundaries([60]) == [0, 127]


def test_regions_partition_keyboard():
    regions = build_regions([60, 64, 67], [100, 200, 300])

    assert [(r.lo_key, r.hi_key) for r in regions] == [(0, 62), (62, 66), (66, 127)]
    assert [r.root_note for r in regions] == [60, 64, 67]
    assert regions[0].lo_key == 0
    assert regions[-1].hi_key == 127
    for prev, cur in zip(regions, regions[1:]):
        assert cur.lo_key == prev.hi_key
        assert cur.sample_start == prev.sample_end


def test_region_frame_offsets():
    regions = build_regions([60, 67], [22050, 11025])

    assert regions == [
        Region(sample_start=0, sample_end=22050, lo_key=0, hi_key=64, root_note=60),
        Region(sample_start=22050, sample_end=33075, lo_key=64, hi_key=127, root_note=67),
    ]


def test_empty_item_is_skipped_but_shapes_boundaries():
    regions = build_regions([60, 64, 67], [100, 0, 50])

    assert [r.root_note for r in regions] == [60, 67]
    assert (regions[0].lo_key, regions[0].hi_key) == (0, 62)
    assert (regions[1].lo_key, regions[1].hi_key) == (66, 127)
    assert (regions[1].sample_start, regions[1].sample_end) == (100, 150)


def test_no_notes_no_regions():
    assert build_regions([], []) == []


def test_length_mismatch():
    with pytest.raises(ValidationError):
        build_regions([60, 62], [10])
