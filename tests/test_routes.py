"""
HTTP API 테스트
===============
FastAPI TestClient + 임시 SQLite (get_engine 의존성 교체)
"""
import pytest
import sys
import tempfile
from pathlib import Path

# 프로젝트 루트 추가
sys.path.insert(0, str(Path(__file__).parent.parent))

from fastapi.testclient import TestClient

from ledger.database import get_engine_for_db, init_db
from ledger.main import app
from ledger.routes import get_engine


class TestRoutes:

    def setup_method(self):
        self.temp_db = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
        self.db_path = self.temp_db.name
        self.engine = get_engine_for_db(self.db_path)
        init_db(bind=self.engine)

        app.dependency_overrides[get_engine] = lambda: self.engine
        self.client = TestClient(app)

    def teardown_method(self):
        app.dependency_overrides.clear()
        self.engine.dispose()
        try:
            self.temp_db.close()
            Path(self.db_path).unlink(missing_ok=True)
        except PermissionError:
            pass

    def _create_book(self, **overrides):
        body = {
            "title": "The Hobbit",
            "authors": ["J.R.R. Tolkien"],
            "isbn13": "9780261102217",
            "default_royalty_rate": "25",
        }
        body.update(overrides)
        response = self.client.post("/api/books", json=body)
        assert response.status_code == 201
        return response.json()["value"]

    def test_health(self):
        response = self.client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "database": "ok"}

    def test_health_database_unavailable(self, tmp_path):
        broken = get_engine_for_db(str(tmp_path / "missing" / "ledger.db"))
        app.dependency_overrides[get_engine] = lambda: broken
        response = self.client.get("/health")
        broken.dispose()
        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"

    def test_add_and_list_sales(self):
        book = self._create_book()
        response = self.client.post("/api/sales", json={
            "book_id": book["id"],
            "period": "01-2026",
            "quantity": 10,
            "publisher_revenue": "250.00",
        })
        assert response.status_code == 201
        sale = response.json()["value"]
        assert sale["author_royalty"] == "62.50"
        assert sale["royalty_overridden"] is False

        listing = self.client.get("/api/sales", params={"search": "tolkien"}).json()["value"]
        assert listing["total"] == 1
        assert listing["items"][0]["id"] == sale["id"]

    def test_validation_failure(self):
        book = self._create_book()
        response = self.client.post("/api/sales", json={
            "book_id": book["id"],
            "period": "13-2026",
            "quantity": 1,
            "publisher_revenue": "1",
        })
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["errors"][0]["field"] == "period"

    def test_revenue_too_large(self):
        book = self._create_book()
        response = self.client.post("/api/sales", json={
            "book_id": book["id"],
            "period": "01-2026",
            "quantity": 1,
            "publisher_revenue": "1e30",
        })
        assert response.status_code == 400
        assert response.json()["errors"][0]["message"] == "Publisher revenue is too large"

    def test_patch_sale_keeps_override(self):
        book = self._create_book()
        sale = self.client.post("/api/sales", json={
            "book_id": book["id"],
            "period": "01-2026",
            "quantity": 10,
            "publisher_revenue": "250.00",
            "author_royalty": "70",
        }).json()["value"]

        patched = self.client.patch(f"/api/sales/{sale['id']}", json={"publisher_revenue": "1000"})
        assert patched.status_code == 200
        assert patched.json()["value"]["author_royalty"] == "70.00"

    def test_missing_sale(self):
        assert self.client.get("/api/sales/999").status_code == 404

    def test_delete_book_with_sales(self):
        book = self._create_book()
        self.client.post("/api/sales", json={
            "book_id": book["id"], "period": "01-2026", "quantity": 1, "publisher_revenue": "10",
        })
        response = self.client.delete(f"/api/books/{book['id']}")
        assert response.status_code == 409

    def test_bulk_submit_and_payments(self):
        self._create_book()
        text = "01-2026,9780261102217,10,250.00\n13-2026,9780261102217,1,1\n01-2026,9789999999999,1,1"

        preview = self.client.post("/api/sales/bulk/preview", json={"text": text}).json()["value"]
        assert len(preview["pending"]) == 1
        assert len(preview["invalid"]) == 1
        assert len(preview["unmatched"]) == 1

        saved = self.client.post("/api/sales/bulk/submit", json={"text": text})
        assert saved.status_code == 200
        assert saved.json()["value"]["saved_count"] == 1

        payments = self.client.get("/api/payments").json()["value"]
        assert payments["total"] == 1
        group = payments["items"][0]
        assert group["unpaid_total"] == "62.50"

        marked = self.client.post("/api/payments/mark-paid", json={"author_ids": group["author_ids"]})
        assert marked.json()["value"]["updated_count"] == 1
        assert self.client.get("/api/payments").json()["value"]["total"] == 0

    def test_duplicate_isbn_conflict(self):
        self._create_book()
        response = self.client.post("/api/books", json={
            "title": "Copy", "authors": ["A"], "isbn13": "9780261102217",
        })
        assert response.status_code == 409
        assert response.json()["error"] == "A book with this ISBN-13 already exists"

    def test_series(self):
        created = self.client.post("/api/series", json={"name": "Middle-earth"})
        assert created.status_code == 201
        duplicate = self.client.post("/api/series", json={"name": "Middle-earth"})
        assert duplicate.status_code == 409
        listing = self.client.get("/api/series").json()["value"]
        assert [s["name"] for s in listing] == ["Middle-earth"]

    def test_lookup_invalid_isbn(self):
        response = self.client.get("/api/books/lookup/123")
        assert response.status_code == 502
        assert response.json()["error"] == "Please enter a valid ISBN-10 or ISBN-13"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
