import asyncio
import csv
import io
from datetime import date
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from probate_monitor.api.deps import get_job_tracker, get_orchestrator, get_phone_service, get_repository
from probate_monitor.api.v1.endpoints.crawl import run_crawl_in_background
from probate_monitor.main import app
from probate_monitor.schemas.run_summary import CrawlRequest, RunSummary
from probate_monitor.schemas.scraped_case import PropertyCandidate, ScrapedCase, ScrapedContact
from probate_monitor.services.ingestion_sink import IngestionSink
from probate_monitor.services.job_tracker import JobTracker
from probate_monitor.services.phone_service import PhoneService
from probate_monitor.services.record_repository import RecordRepository


class FakeAddressService:
    def __init__(self):
        self.closed = 0

    async def close(self):
        self.closed += 1


class FakeOrchestrator:
    def __init__(self, error=None):
        self.calls = []
        self.error = error
        self.enrichment = SimpleNamespace(address_service=FakeAddressService())

    async def run_crawl(self, sites, date_from=None):
        self.calls.append((sites, date_from))
        if self.error:
            raise self.error
        return RunSummary()


@pytest.fixture
def orchestrator():
    return FakeOrchestrator()


@pytest.fixture
def phone_service():
    return PhoneService()


@pytest.fixture
def client(session_factory, orchestrator, phone_service):
    app.dependency_overrides[get_repository] = lambda: RecordRepository(session_factory)
    app.dependency_overrides[get_job_tracker] = lambda: JobTracker(session_factory)
    app.dependency_overrides[get_phone_service] = lambda: phone_service
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def stored_case(session_factory):
    case = ScrapedCase(
        case_id="COBB-24-E-17",
        county="cobb",
        filing_date=date(2024, 3, 14),
        decedent_name="JOHN SMITH",
        decedent_address="123 Main St, Marietta, GA 30060",
        contacts=[
            ScrapedContact(type="executor", name="Jane Smith", standardized_address="123 MAIN ST, MARIETTA, GA 30060-0000",
                           deliverable=True, phone="+14045550100", phone_source="csv"),
            ScrapedContact(type="petitioner", name="Paul Smith"),
        ],
        properties=[PropertyCandidate(parcel_id="16-0001", county="cobb", current_owner="SMITH JOHN", match_confidence=0.95)],
    )
    IngestionSink(RecordRepository(session_factory)).ingest([case])
    return case


def test_root(client):
    assert client.get("/").json() == {"message": "Welcome to the Probate Monitor API"}


def test_start_crawl_rejects_unknown_site(client, orchestrator):
    response = client.post("/api/v1/crawl", json={"sites": ["georgia_probate_records", "mars_probate"]})
    assert response.status_code == 400
    assert "mars_probate" in response.json()["detail"]
    assert orchestrator.calls == []


def test_start_crawl_rejects_empty_site_list(client):
    assert client.post("/api/v1/crawl", json={"sites": []}).status_code == 400


def test_start_crawl_runs_in_background(client, orchestrator):
    response = client.post("/api/v1/crawl", json={"sites": ["qpublic_all"], "date_from": "2024-03-01"})
    assert response.status_code == 202
    body = response.json()
    assert "qpublic_cobb" in body["sites"]
    assert orchestrator.calls == [(["qpublic_all"], date(2024, 3, 1))]
    assert orchestrator.enrichment.address_service.closed == 1


def test_background_crawl_closes_address_service_after_failure():
    orchestrator = FakeOrchestrator(error=RuntimeError("browser crashed"))
    asyncio.run(run_crawl_in_background(orchestrator, CrawlRequest(sites=["cobb_probate"])))
    assert orchestrator.calls == [(["cobb_probate"], None)]
    assert orchestrator.enrichment.address_service.closed == 1


def test_list_sites(client):
    body = client.get("/api/v1/crawl/sites").json()
    keys = {site["key"] for site in body["sites"]}
    assert {"georgia_probate_records", "cobb_probate", "qpublic_fulton"} <= keys
    assert "qpublic_all" in body["groups"]


def test_get_cases(client, stored_case):
    cases = client.get("/api/v1/cases/").json()
    assert [c["case_id"] for c in cases] == ["COBB-24-E-17"]
    assert len(cases[0]["contacts"]) == 2
    assert cases[0]["parcels"][0]["parcel_id"] == "16-0001"

    assert client.get("/api/v1/cases/", params={"county": "fulton"}).json() == []
    assert client.get("/api/v1/cases/COBB-24-E-17").json()["decedent_name"] == "JOHN SMITH"
    assert client.get("/api/v1/cases/COBB-0").status_code == 404


def test_export_json(client, stored_case):
    body = client.get("/api/v1/cases/export").json()
    assert body["count"] == 1
    exported = body["data"][0]
    assert exported["decedent"] == {"name": "JOHN SMITH", "address": "123 Main St, Marietta, GA 30060"}
    assert exported["parcels"][0]["match_confidence"] == 0.95


def test_export_csv_has_one_row_per_contact(client, stored_case):
    response = client.get("/api/v1/cases/export", params={"format": "csv"})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment" in response.headers["content-disposition"]

    rows = list(csv.DictReader(io.StringIO(response.text)))
    assert len(rows) == 2
    assert {row["contact_name"] for row in rows} == {"Jane Smith", "Paul Smith"}
    assert sorted(row["parcel_id"] for row in rows) == ["", "16-0001"]


def test_export_filters_by_date(client, stored_case):
    body = client.get("/api/v1/cases/export", params={"date_from": "2024-03-15"}).json()
    assert body["count"] == 0


def test_export_rejects_unknown_format(client):
    assert client.get("/api/v1/cases/export", params={"format": "xml"}).status_code == 422


def test_crawl_jobs(client, session_factory):
    tracker = JobTracker(session_factory)
    job_id = tracker.start("cobb", "cobb_probate")
    tracker.complete(job_id, 3)

    jobs = client.get("/api/v1/crawl-jobs/").json()
    assert [job["id"] for job in jobs] == [job_id]
    assert client.get(f"/api/v1/crawl-jobs/{job_id}").json()["status"] == "completed"
    assert client.get("/api/v1/crawl-jobs/missing").status_code == 404


def test_phone_upload(client, phone_service):
    content = b"name,phone,address\nJane Smith,404-555-0100,1 Elm St\n"
    response = client.post("/api/v1/phone/upload", files={"file": ("phones.csv", content, "text/csv")})
    assert response.status_code == 200
    body = response.json()
    assert body["records_loaded"] == 1
    assert body["upload_id"]
    assert phone_service.csv_provider.size == 1

    status = client.get("/api/v1/phone/status").json()
    assert status == {"provider": "csv", "csv_records": 1}


def test_phone_upload_requires_csv(client):
    response = client.post("/api/v1/phone/upload", files={"file": ("phones.xlsx", b"data", "application/octet-stream")})
    assert response.status_code == 400
