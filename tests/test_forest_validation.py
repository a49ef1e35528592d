from __future__ import annotations

import pytest

from treeforge.entities import TreeRecord
from treeforge.forest import (
    DuplicateIdentifierError,
    ForestBuilder,
    ForestValidationError,
    MissingIdentifierError,
    validate_records,
)


def make_record(record_id, parent_id=None) -> TreeRecord:
    return TreeRecord(id=record_id, parent_id=parent_id)


def test_duplicate_identifier_is_rejected_before_building():
    records = [make_record(1), make_record(1)]

    with pytest.raises(DuplicateIdentifierError) as excinfo:
        ForestBuilder().build(records)

    assert excinfo.value.identifier == 1
    assert str(excinfo.value) == "Duplicate node ID: 1"
    assert all(not record.children for record in records)


def test_missing_identifier_is_rejected():
    records = [make_record(1), make_record(None, 1)]

    with pytest.raises(MissingIdentifierError) as excinfo:
        validate_records(records)

    assert excinfo.value.position == 1
    assert excinfo.value.code == "missing-identifier"


def test_first_failure_wins():
    with pytest.raises(MissingIdentifierError):
        validate_records([make_record(None), make_record(2), make_record(2)])


def test_errors_are_value_errors_with_payload():
    error = DuplicateIdentifierError("a")

    assert isinstance(error, ForestValidationError)
    assert isinstance(error, ValueError)
    assert error.to_dict() == {
        "code": "duplicate-identifier",
        "detail": "Duplicate node ID: a",
        "identifier": "a",
    }


@pytest.mark.parametrize(
    "records",
    [
        [],
        [make_record(1)],
        [make_record(1, 1)],
        [make_record(1, 2), make_record(2, 1)],
        [make_record("1"), make_record(1)],
        [make_record(1, "unknown")],
    ],
)
def test_structurally_odd_but_valid_input_is_accepted(records):
    validate_records(records)


def test_validation_does_not_mutate_records():
    records = [make_record(1), make_record(2, 1)]
    validate_records(records)

    assert all(not record.children for record in records)
