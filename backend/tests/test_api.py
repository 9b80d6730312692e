"""Tests for the upload and job tracking endpoints."""

import pytest
from fastapi.testclient import TestClient

from order_importer.api.dependencies.db import get_session
from order_importer.api.dependencies.tasks import get_scheduler, get_start_enqueuer
from order_importer.api.routers import jobs, uploads
from order_importer.db.models import ImportJob
from order_importer.main import create_app
from order_importer.services.start_import import start_import
from order_importer.storage.file_storage import load_upload

BAD_QTY_CSV = (
    b"Order ID,Tracking Number,Model Name,Product Name,Quantity\n"
    b"ORD1,TRK1,M,Camiseta,1\n"
    b"ORD2,TRK2,M,Camiseta,-2\n"
)


@pytest.fixture
def enqueued():
    return []


@pytest.fixture
def client(session, scheduler, enqueued, monkeypatch):
    monkeypatch.setattr(uploads, "publish_progress", lambda *args, **kwargs: None)
    monkeypatch.setattr(uploads, "store_file_in_redis", lambda file_obj, job_id: True)
    monkeypatch.setattr(uploads, "fetch_progress", lambda job_id: {})
    monkeypatch.setattr(jobs, "publish_progress", lambda *args, **kwargs: None)
    monkeypatch.setattr(jobs, "fetch_progress", lambda job_id: {})

    app = create_app()

    def override_session():
        yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_start_enqueuer] = lambda: enqueued.append
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    return TestClient(app)


def upload(client, content, filename="orders.csv", company_id="company-1"):
    return client.post(
        "/api/uploads/",
        files={"file": (filename, content, "text/csv")},
        data={"company_id": company_id},
    )


class TestUploads:
    def test_upload_creates_pending_job_and_enqueues_start(self, client, enqueued, shopee_csv):
        response = upload(client, shopee_csv)

        assert response.status_code == 202
        body = response.json()
        assert body["status"] == "pending"
        assert body["company_id"] == "company-1"
        assert body["type"] == "import_orders"
        assert enqueued == [body["id"]]

    def test_upload_is_readable_by_worker(self, client, session, shopee_csv):
        job_id = upload(client, shopee_csv).json()["id"]
        job = session.get(ImportJob, job_id)
        assert job.file_path.endswith(f"{job_id}.csv")
        assert job.original_filename == "orders.csv"
        assert load_upload(job.file_path) == shopee_csv

    def test_rejects_unsupported_extension(self, client, enqueued):
        response = upload(client, b"x", filename="orders.xlsx")
        assert response.status_code == 400
        assert enqueued == []

    def test_rejects_empty_file(self, client, enqueued):
        response = upload(client, b"")
        assert response.status_code == 400
        assert enqueued == []

    def test_company_is_required(self, client, shopee_csv):
        response = client.post(
            "/api/uploads/", files={"file": ("orders.csv", shopee_csv, "text/csv")}
        )
        assert response.status_code == 422

    def test_status_of_unknown_job(self, client):
        assert client.get("/api/uploads/missing/status").status_code == 404


class TestJobLifecycle:
    def test_upload_start_resume_and_status(self, client, ctx, shopee_csv):
        job_id = upload(client, shopee_csv).json()["id"]
        start_import(ctx, job_id, load_upload)

        running = client.get(f"/api/uploads/{job_id}/status").json()
        assert running["status"] == "running"
        assert running["marketplace"] == "shopee"
        assert running["total_rows"] == 3
        assert running["progress"] == 0.0

        resumed = client.post(f"/api/jobs/{job_id}/resume")
        assert resumed.status_code == 200
        assert resumed.json()["status"] == "completed"
        assert resumed.json()["succeeded"] == 3
        assert resumed.json()["created"]["order"] == 3

        done = client.get(f"/api/jobs/{job_id}").json()
        assert done["status"] == "completed"
        assert done["progress"] == 1.0
        assert done["processed_rows"] == 3
        assert done["message"] == "Processed 3/3 rows"

    def test_row_errors_are_listed(self, client, ctx):
        job_id = upload(client, BAD_QTY_CSV).json()["id"]
        start_import(ctx, job_id, load_upload)
        client.post(f"/api/jobs/{job_id}/resume")

        job = client.get(f"/api/jobs/{job_id}").json()
        assert job["failed_rows"] == 1
        assert job["message"] == "Processed 2/2 rows (1 failed)"

        errors = client.get(f"/api/jobs/{job_id}/errors").json()
        assert len(errors) == 1
        assert errors[0]["row_number"] == 2
        assert errors[0]["raw_row"]["Order ID"] == "ORD2"

    def test_resume_unknown_job(self, client):
        assert client.post("/api/jobs/missing/resume").status_code == 404

    def test_errors_of_unknown_job(self, client):
        assert client.get("/api/jobs/missing/errors").status_code == 404


class TestListJobs:
    def test_filters(self, client, make_job):
        make_job()
        make_job(status="failed")

        assert len(client.get("/api/jobs/").json()) == 2
        failed = client.get("/api/jobs/", params={"status": "failed"}).json()
        assert [job["status"] for job in failed] == ["failed"]
        assert client.get("/api/jobs/", params={"company_id": "other"}).json() == []

    def test_unknown_status(self, client):
        assert client.get("/api/jobs/", params={"status": "paused"}).status_code == 400


def test_liveness(client):
    response = client.get("/health/live")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
