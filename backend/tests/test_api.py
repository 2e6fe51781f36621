"""
Test API

Endpoint tests against an app wired to a local store in a temp dir.
"""

import pytest
from fastapi.testclient import TestClient

from core.csv_parser import CSVParser
from main import create_app
from store.local import LocalStore


SALES_CSV = b"""region,segment,sales
East,Retail,100
West,Retail,300
East,Corporate,50
"""


@pytest.fixture
def client(tmp_path):
    store = LocalStore(CSVParser(upload_dir=tmp_path))
    return TestClient(create_app(store=store))


@pytest.fixture
def dataset_id(client):
    response = client.post(
        "/api/v1/datasets",
        files={"file": ("sales.csv", SALES_CSV, "text/csv")},
    )
    assert response.status_code == 200
    return response.json()["data_source_id"]


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["store"] == "LocalStore"


class TestDatasets:
    def test_upload(self, client):
        response = client.post(
            "/api/v1/datasets",
            files={"file": ("sales.csv", SALES_CSV, "text/csv")},
            data={"name": "Quarterly Sales"},
        )

        body = response.json()
        assert response.status_code == 200
        assert body["name"] == "Quarterly Sales"
        assert body["file_name"] == "sales.csv"
        assert body["row_count"] == 3
        assert body["columns"] == [
            {"name": "region", "type": "string"},
            {"name": "segment", "type": "string"},
            {"name": "sales", "type": "numeric"},
        ]

    def test_name_defaults_to_file_stem(self, client):
        response = client.post(
            "/api/v1/datasets",
            files={"file": ("sales.csv", SALES_CSV, "text/csv")},
        )
        assert response.json()["name"] == "sales"

    def test_rejects_non_csv(self, client):
        response = client.post(
            "/api/v1/datasets",
            files={"file": ("sales.xlsx", b"not a csv", "application/octet-stream")},
        )
        assert response.status_code == 400

    def test_list_get_delete(self, client, dataset_id):
        listing = client.get("/api/v1/datasets").json()
        assert listing["count"] == 1
        assert listing["datasets"][0]["data_source_id"] == dataset_id

        fetched = client.get(f"/api/v1/datasets/{dataset_id}")
        assert fetched.status_code == 200
        assert fetched.json()["columns"][2]["type"] == "numeric"

        assert client.delete(f"/api/v1/datasets/{dataset_id}").status_code == 200
        assert client.get(f"/api/v1/datasets/{dataset_id}").status_code == 404
        assert client.delete(f"/api/v1/datasets/{dataset_id}").status_code == 404

    def test_unknown_dataset(self, client):
        assert client.get("/api/v1/datasets/nope").status_code == 404


class TestAnalyze:
    def test_grouped_answer(self, client, dataset_id):
        response = client.post("/api/v1/analyze", json={
            "query": "average sales by region",
            "data_source_id": dataset_id,
        })

        body = response.json()
        assert response.status_code == 200
        assert body["handled"] is True
        assert body["data"] == [
            {"region": "West", "sales": 300.0},
            {"region": "East", "sales": 75.0},
        ]
        assert body["context"] == {
            "metric": "sales",
            "dimension": "region",
            "chart_type": "bar",
            "aggregation": "avg",
        }
        assert body["chart"]["labels"] == ["West", "East"]
        assert body["file_id"]

    def test_reuploaded_file_answers_from_its_own_rows(self, client, dataset_id):
        upload = client.post(
            "/api/v1/datasets",
            files={"file": ("sales.csv", b"region,sales\nEast,999\n", "text/csv")},
        ).json()

        response = client.post("/api/v1/analyze", json={
            "query": "total sales",
            "data_source_id": upload["data_source_id"],
        })

        assert upload["name"] == "sales (2)"
        assert response.json()["answer"] == "The Sum Sales is **999**."
        assert response.json()["file_id"] == upload["file_id"]

    def test_follow_up_with_camel_case_context(self, client, dataset_id):
        response = client.post("/api/v1/analyze", json={
            "query": "show me the breakdown",
            "data_source_id": dataset_id,
            "context": {"metric": "sales", "dimension": "region", "chartType": "bar", "aggregation": "sum"},
        })

        body = response.json()
        assert body["handled"] is True
        assert body["chart_type"] == "pie"
        assert body["answer"] == "Here is the **Sum Sales by Region**."

    def test_custom_named_source(self, client):
        uploaded = client.post(
            "/api/v1/datasets",
            files={"file": ("q1.csv", SALES_CSV, "text/csv")},
            data={"name": "Quarterly Sales"},
        ).json()

        response = client.post("/api/v1/analyze", json={
            "query": "total sales",
            "data_source_id": uploaded["data_source_id"],
        })

        assert response.json()["answer"] == "The Sum Sales is **450**."

    def test_not_analytical(self, client, dataset_id):
        response = client.post("/api/v1/analyze", json={
            "query": "hello there",
            "data_source_id": dataset_id,
        })

        assert response.status_code == 200
        assert response.json()["handled"] is False
        assert response.json()["answer"] is None

    def test_unknown_source(self, client):
        response = client.post("/api/v1/analyze", json={
            "query": "total sales",
            "data_source_id": "nope",
        })
        assert response.json()["handled"] is False

    def test_validation(self, client):
        response = client.post("/api/v1/analyze", json={"query": "", "data_source_id": "x"})
        assert response.status_code == 422


class TestCharts:
    def test_pie(self, client, dataset_id):
        response = client.post(f"/api/v1/charts/{dataset_id}", json={
            "dimension": "region",
            "metric": "sales",
            "chart_type": "pie",
        })

        chart = response.json()["chart"]
        assert response.status_code == 200
        assert chart["type"] == "pie"
        assert chart["title"] == "Sum Sales by Region"
        assert chart["labels"] == ["West", "East"]
        assert chart["percentages"] == [66.7, 33.3]

    def test_breakdown(self, client, dataset_id):
        response = client.post(f"/api/v1/charts/{dataset_id}", json={
            "dimension": "region",
            "metric": "sales",
            "breakdown_dimensions": ["segment"],
        })

        chart = response.json()["chart"]
        assert chart["labels"] == ["East", "West"]
        assert chart["series"] == [
            {"name": "Retail", "values": [100.0, 300.0]},
            {"name": "Corporate", "values": [50.0, 0.0]},
        ]

    def test_count_without_metric(self, client, dataset_id):
        response = client.post(f"/api/v1/charts/{dataset_id}", json={
            "dimension": "segment",
            "aggregation": "count",
        })

        chart = response.json()["chart"]
        assert chart["labels"] == ["Retail", "Corporate"]
        assert chart["series"][0]["values"] == [2.0, 1.0]

    def test_unknown_column(self, client, dataset_id):
        response = client.post(f"/api/v1/charts/{dataset_id}", json={
            "dimension": "country",
            "metric": "sales",
        })
        assert response.status_code == 400

    def test_metric_required(self, client, dataset_id):
        response = client.post(f"/api/v1/charts/{dataset_id}", json={"dimension": "region"})
        assert response.status_code == 400

    def test_unknown_source(self, client):
        response = client.post("/api/v1/charts/nope", json={"dimension": "region", "metric": "sales"})
        assert response.status_code == 404


class TestRemoteStore:
    def test_dataset_management_needs_local_store(self, memory_store):
        client = TestClient(create_app(store=memory_store([{"region": "East", "sales": 1}])))
        assert client.get("/api/v1/datasets").status_code == 400

    def test_analyze_over_remote_store(self, memory_store):
        store = memory_store([{"region": "East", "sales": 1}, {"region": "West", "sales": 2}])
        client = TestClient(create_app(store=store))

        response = client.post("/api/v1/analyze", json={"query": "total sales", "data_source_id": "ds1"})

        assert response.json()["answer"] == "The Sum Sales is **3**."
        assert response.json()["data_source_id"] == "ds1"
        assert response.json()["file_id"] == "file-1"
