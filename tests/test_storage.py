from datetime import date

import pytest

from probate_monitor.core.errors import PersistenceFailure
from probate_monitor.models.probate_case import ProbateCase
from probate_monitor.schemas.scraped_case import PropertyCandidate, ScrapedCase, ScrapedContact
from probate_monitor.services.ingestion_sink import IngestionSink
from probate_monitor.services.job_tracker import JobTracker
from probate_monitor.services.record_repository import RecordRepository


def make_case(case_id, filing_date=date(2024, 3, 14), **extra):
    return ScrapedCase(
        case_id=case_id,
        county="cobb",
        filing_date=filing_date,
        decedent_name="JOHN SMITH",
        contacts=[ScrapedContact(type="executor", name="Jane Smith", address="1 Elm St")],
        properties=[PropertyCandidate(parcel_id="P-1", match_confidence=0.9)],
        **extra,
    )


def test_ingest_is_idempotent_by_case_id(session_factory):
    repository = RecordRepository(session_factory)
    sink = IngestionSink(repository)

    first = sink.ingest([make_case("COBB-1")])
    second = sink.ingest([make_case("COBB-1")])

    assert first.saved == 1 and first.duplicates == []
    assert second.saved == 0 and second.duplicates == ["COBB-1"]
    stored = repository.list_cases()
    assert len(stored) == 1
    assert len(stored[0].contacts) == 1
    assert stored[0].parcels[0].match_confidence == 0.9


def test_duplicates_within_one_batch_are_collapsed(session_factory):
    sink = IngestionSink(RecordRepository(session_factory))
    result = sink.ingest([make_case("COBB-1"), make_case("COBB-2"), make_case("COBB-1")])
    assert result.saved == 2
    assert result.duplicates == ["COBB-1"]


def test_nothing_new_means_no_write(session_factory):
    class NoWriteRepository(RecordRepository):
        def bulk_insert(self, cases, contacts, parcels):
            raise AssertionError("bulk_insert must not be called")

    repository = NoWriteRepository(session_factory)
    assert IngestionSink(repository).ingest([]).saved == 0


def test_failed_batch_leaves_nothing_behind(session_factory):
    repository = RecordRepository(session_factory)
    broken = make_case("COBB-9")
    # Two parcels with the same id violate the per-case unique constraint
    broken.properties = [PropertyCandidate(parcel_id="P-1"), PropertyCandidate(parcel_id="P-1")]

    with pytest.raises(PersistenceFailure):
        IngestionSink(repository).ingest([make_case("COBB-8"), broken])

    db = session_factory()
    try:
        assert db.query(ProbateCase).count() == 0
    finally:
        db.close()


def test_list_cases_filters(session_factory):
    repository = RecordRepository(session_factory)
    IngestionSink(repository).ingest([
        make_case("COBB-1", filing_date=date(2024, 3, 1)),
        make_case("COBB-2", filing_date=date(2024, 3, 14)),
    ])
    assert [c.case_id for c in repository.list_cases()] == ["COBB-2", "COBB-1"]
    assert [c.case_id for c in repository.list_cases(date_from=date(2024, 3, 10))] == ["COBB-2"]
    assert repository.list_cases(county="fulton") == []
    assert repository.get_case("COBB-3") is None


def test_job_lifecycle(session_factory):
    tracker = JobTracker(session_factory)
    job_id = tracker.start("cobb", "cobb_probate")
    assert tracker.get(job_id).status == "running"

    tracker.complete(job_id, 4)
    job = tracker.get(job_id)
    assert job.status == "completed"
    assert job.records_found == 4
    assert job.completed_at is not None
    assert job.error_message is None


def test_job_with_errors_and_failed_job(session_factory):
    tracker = JobTracker(session_factory)
    partial = tracker.start("georgia", "georgia_probate_records")
    tracker.complete(partial, 2, ["row 3 malformed", "row 5 timeout"])
    job = tracker.get(partial)
    assert job.status == "completed_with_errors"
    assert job.error_message == "2 errors occurred: row 3 malformed"

    failed = tracker.start("cobb", "cobb_probate")
    tracker.fail(failed, "search page timed out")
    job = tracker.get(failed)
    assert job.status == "failed"
    assert job.records_found == 0


def test_terminal_status_is_reached_once(session_factory):
    tracker = JobTracker(session_factory)
    job_id = tracker.start("cobb", "cobb_probate")
    tracker.fail(job_id, "boom")
    with pytest.raises(ValueError):
        tracker.complete(job_id, 1)
    assert tracker.get(job_id).status == "failed"
