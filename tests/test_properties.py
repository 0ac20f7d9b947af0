import tempfile
from pathlib import Path

from hypothesis import given, settings
from hypothesis import strategies as st

from dscd.constants import COMPOSE_FILENAMES
from dscd.ops import needs_recreate
from dscd.stacks import find_stack_files, is_excluded, iter_stack_files

# Strategy: directory names made of a small alphabet, so that substring
# matches between names and patterns happen often.
dir_name = st.text(alphabet="abc-_", min_size=1, max_size=6)
dir_parts = st.lists(dir_name, min_size=0, max_size=4)
patterns = st.text(alphabet="abc-_/.", min_size=1, max_size=5)


@given(parts=dir_parts, pattern=patterns, filename=st.sampled_from(COMPOSE_FILENAMES))
def test_excluded_iff_directory_contains_pattern(
    parts: list[str], pattern: str, filename: str
) -> None:
    """
    Property: A stack file is excluded exactly when its directory, written
    as find reports it ("." or "./<dir>"), contains the pattern as a plain
    substring.
    """
    stack_file = Path(*parts, filename)
    directory = "./" + "/".join(parts) if parts else "."

    assert is_excluded(stack_file, pattern) is (pattern in directory)


@given(parts=dir_parts, filename=st.sampled_from(COMPOSE_FILENAMES))
def test_empty_pattern_never_excludes(parts: list[str], filename: str) -> None:
    """Property: Without a pattern every stack file is kept."""
    stack_file = Path(*parts, filename)

    assert is_excluded(stack_file, None) is False
    assert is_excluded(stack_file, "") is False


@given(
    before=st.text(max_size=50),
    after=st.text(max_size=50),
    marker=st.text(min_size=1, max_size=10),
)
def test_marker_anywhere_means_recreate(before: str, after: str, marker: str) -> None:
    """Property: Output containing the marker always asks for a redeploy."""
    assert needs_recreate(before + marker + after, marker) is True


@given(output=st.text(alphabet="abcdef \n", max_size=80))
def test_output_without_marker_is_skipped(output: str) -> None:
    """Property: Output that never mentions the marker is never redeployed."""
    assert needs_recreate(output, "Recreate") is False


@settings(max_examples=25, deadline=None)
@given(
    layout=st.lists(
        st.tuples(dir_parts, st.sampled_from(COMPOSE_FILENAMES)),
        max_size=8,
    ),
    pattern=st.one_of(st.none(), patterns),
)
def test_discovery_is_sorted_and_filtered(
    layout: list[tuple[list[str], str]], pattern: str | None
) -> None:
    """
    Property: Discovery returns every stack file once, in sorted path order,
    and the filtered sequence is exactly the unexcluded subsequence.
    """
    with tempfile.TemporaryDirectory() as tmp:
        base = Path(tmp)
        expected = set()
        for parts, filename in layout:
            path = Path(*parts, filename)
            (base / path).parent.mkdir(parents=True, exist_ok=True)
            (base / path).write_text("services: {}\n")
            expected.add(path)

        found = find_stack_files(base)
        assert set(found) == expected
        assert [p.as_posix() for p in found] == sorted(p.as_posix() for p in found)

        kept = list(iter_stack_files(base, pattern))
        assert kept == [p for p in found if not is_excluded(p, pattern)]
