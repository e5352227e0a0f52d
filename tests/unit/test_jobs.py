import pytest

from sfbulk2.exceptions import InvalidOperationError
from sfbulk2.jobs import JobState, Operation, ResultKind, is_terminal


def test_operation_values_match_api():
    assert [op.value for op in Operation] == [
        "insert",
        "upsert",
        "update",
        "delete",
        "query",
        "queryAll",
    ]


def test_operation_parse():
    assert Operation.parse("delete") is Operation.DELETE
    assert Operation.parse(None) is None
    with pytest.raises(InvalidOperationError):
        Operation.parse("INSERT")


@pytest.mark.parametrize(
    "state, expected",
    [
        ("Open", False),
        ("UploadComplete", False),
        ("InProgress", False),
        ("JobComplete", True),
        ("Failed", True),
        ("Aborted", True),
        (None, False),
    ],
)
def test_is_terminal(state, expected):
    assert is_terminal(state) is expected


def test_job_state_is_str():
    assert JobState.JOB_COMPLETE == "JobComplete"


def test_result_kind_from_name():
    assert ResultKind.from_name("successful") is ResultKind.SUCCESSFUL
    assert ResultKind.from_name(" Failed ") is ResultKind.FAILED
    assert ResultKind.from_name("unprocessed").value == "unprocessedrecords"
