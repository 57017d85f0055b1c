from __future__ import annotations

from datetime import UTC, datetime

import pytest

from docsync.domain.exceptions.domain_exceptions import InvalidStateTransitionError
from docsync.domain.models.entities import EntityKind
from docsync.domain.models.job import (
    Job,
    JobOperation,
    JobQueueStatus,
    JobStatus,
    JobType,
    allowed_sources,
)


def _job(**overrides) -> Job:
    values = {
        "job_id": "job_1",
        "type": JobType.CREATE_COMMENT,
        "payload": {"entity_id": "c-1", "parent_id": "doc-1", "fields": {"content": "hi"}},
        "created_at": datetime(2024, 5, 1, 12, 0, tzinfo=UTC),
    }
    values.update(overrides)
    return Job(**values)


class TestJobType:
    def test_wire_names(self):
        assert [t.value for t in JobType.for_kind(EntityKind.BOOKMARK)] == [
            "createBookmark",
            "updateBookmark",
            "deleteBookmark",
        ]

    @pytest.mark.parametrize("job_type", list(JobType))
    def test_kind_and_operation_round_trip(self, job_type):
        assert JobType.for_operation(job_type.kind, job_type.operation) is job_type

    def test_library_delete(self):
        assert JobType.DELETE_LIBRARY.kind is EntityKind.LIBRARY
        assert JobType.DELETE_LIBRARY.operation is JobOperation.DELETE


class TestTransitions:
    @pytest.mark.parametrize(
        "path",
        [
            [JobStatus.PROCESSING, JobStatus.COMPLETED],
            [JobStatus.PROCESSING, JobStatus.PENDING, JobStatus.PROCESSING, JobStatus.FAILED],
            [JobStatus.FAILED],
        ],
    )
    def test_allowed_paths(self, path):
        job = _job()
        for status in path:
            job.transition_to(status)
        assert job.status is path[-1]

    @pytest.mark.parametrize(
        "start, target",
        [
            (JobStatus.PENDING, JobStatus.COMPLETED),
            (JobStatus.COMPLETED, JobStatus.PENDING),
            (JobStatus.FAILED, JobStatus.PROCESSING),
            (JobStatus.COMPLETED, JobStatus.FAILED),
        ],
    )
    def test_forbidden_transitions(self, start, target):
        job = _job(status=start)
        with pytest.raises(InvalidStateTransitionError):
            job.transition_to(target)
        assert job.status is start

    def test_allowed_sources(self):
        assert allowed_sources(JobStatus.PROCESSING) == (JobStatus.PENDING,)
        assert set(allowed_sources(JobStatus.FAILED)) == {JobStatus.PENDING, JobStatus.PROCESSING}
        assert JobStatus.COMPLETED.is_terminal
        assert not JobStatus.PROCESSING.is_terminal


class TestWireFormat:
    def test_to_wire_shape(self):
        wire = _job(attempts=2, last_error="boom").to_wire()

        assert wire == {
            "job_id": "job_1",
            "type": "createComment",
            "payload": {"entity_id": "c-1", "parent_id": "doc-1", "fields": {"content": "hi"}},
            "status": "pending",
            "attempts": 2,
            "last_error": "boom",
            "created_at": "2024-05-01T12:00:00+00:00",
        }

    def test_from_wire_defaults(self):
        job = Job.from_wire(
            {
                "job_id": "job_2",
                "type": "deleteLibrary",
                "payload": {"entity_id": "lib-1"},
                "created_at": "2024-05-01T12:00:00+00:00",
            }
        )
        assert job.status is JobStatus.PENDING
        assert job.attempts == 0
        assert job.last_error is None
        assert job.entity_id == "lib-1"
        assert job.kind is EntityKind.LIBRARY

    def test_exhaustion_is_inclusive(self):
        assert not _job(attempts=2).has_exhausted(3)
        assert _job(attempts=3).has_exhausted(3)


def test_queue_status_flags():
    idle = JobQueueStatus(pending=0, processing=0, failed=0, completed=4)
    assert not idle.has_work
    assert not idle.has_errors
    assert idle.total == 4
