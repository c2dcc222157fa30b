"""
Integration tests for the receipt ingestion HTTP endpoints.
"""
import httpx
import openai
import pytest
from fastapi.testclient import TestClient

from conftest import pdf_upload
from app.main import app
from app.receipts.models import FileRecordModel, ReceiptRecordModel


class TestUploadReceipt:
    def test_success(self, client, db):
        resp = client.post("/api/receipts/upload-receipt", files=pdf_upload())
        assert resp.status_code == 200
        body = resp.json()
        assert body["merchant_name"] == "Cafe X"
        assert body["merchant_exists"] is False

        receipt = db.query(ReceiptRecordModel).one()
        assert float(receipt.total_amount) == 12.50
        assert receipt.purchased_at == "07-03-2024"

    def test_duplicate_rejected(self, client):
        client.post("/api/receipts/upload-receipt", files=pdf_upload())
        resp = client.post("/api/receipts/upload-receipt", files=pdf_upload())
        assert resp.status_code == 400
        assert resp.json() == {"message": "File already exists"}

    def test_non_pdf_rejected(self, client, db):
        resp = client.post(
            "/api/receipts/upload-receipt",
            files=pdf_upload("photo.png", b"\x89PNG", "image/png"),
        )
        assert resp.status_code == 400
        assert "image/png" in resp.json()["message"]
        assert db.query(FileRecordModel).count() == 0

    def test_missing_file(self, client):
        resp = client.post("/api/receipts/upload-receipt")
        assert resp.status_code == 400
        assert resp.json() == {"message": "No file uploaded"}

    def test_no_json_reply_is_reported(self, client, extractor, db):
        extractor.reply = "I cannot read this document."
        resp = client.post("/api/receipts/upload-receipt", files=pdf_upload())
        assert resp.status_code == 500
        assert "required" in resp.json()["message"]
        assert db.query(ReceiptRecordModel).count() == 0

    def test_negative_total_rejected(self, client, extractor):
        extractor.reply = '{"merchant_name": "Refund Co", "receipt_date": "2024-03-07", "amount": "-5.00"}'
        resp = client.post("/api/receipts/upload-receipt", files=pdf_upload())
        assert resp.status_code == 500
        assert "negative" in resp.json()["message"]

    def test_unparseable_amount(self, client, extractor):
        extractor.reply = '{"merchant_name": "X", "receipt_date": "2024-03-07", "amount": "free"}'
        resp = client.post("/api/receipts/upload-receipt", files=pdf_upload())
        assert resp.status_code == 500
        assert "amount" in resp.json()["message"]

    def test_model_failure_passes_message_and_allows_retry(self, client, extractor):
        extractor.error = openai.APIConnectionError(
            message="upstream unavailable", request=httpx.Request("POST", "https://llm.test")
        )
        resp = client.post("/api/receipts/upload-receipt", files=pdf_upload())
        assert resp.status_code == 500
        assert "upstream unavailable" in resp.json()["message"]

        extractor.error = None
        resp = client.post("/api/receipts/upload-receipt", files=pdf_upload())
        assert resp.status_code == 200


class TestUploadOnly:
    def test_registers_without_extraction(self, client, extractor, db):
        resp = client.post("/api/receipts/upload", files=pdf_upload())
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "File uploaded"
        assert body["file_name"] == "a.pdf"
        assert body["file_path"].endswith("a.pdf")
        assert extractor.calls == 0
        assert db.query(ReceiptRecordModel).count() == 0

    def test_upload_then_extract(self, client):
        client.post("/api/receipts/upload", files=pdf_upload())
        resp = client.post("/api/receipts/upload-receipt", files=pdf_upload())
        assert resp.status_code == 200


class TestValidate:
    def test_valid(self, client):
        resp = client.post("/api/receipts/validate", files=pdf_upload())
        assert resp.status_code == 200
        assert resp.json()["isValid"] is True

    def test_invalid_is_recorded(self, client, db):
        resp = client.post(
            "/api/receipts/validate", files=pdf_upload("scan.jpg", b"\xff\xd8", "image/jpeg")
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["isValid"] is False
        assert "image/jpeg" in body["message"]

        record = db.query(FileRecordModel).one()
        assert record.is_valid is False
        assert record.is_processed is False

    def test_invalid_then_full_ingestion_updates_record(self, client, db):
        client.post("/api/receipts/validate", files=pdf_upload("a.pdf", b"x", "text/plain"))
        resp = client.post("/api/receipts/upload-receipt", files=pdf_upload())
        assert resp.status_code == 200
        assert db.query(FileRecordModel).count() == 1
        assert db.query(FileRecordModel).one().is_processed is True


class TestProcess:
    def test_success(self, client):
        resp = client.post("/api/receipts/process", files=pdf_upload())
        assert resp.status_code == 200
        body = resp.json()
        assert body["isProcessed"] is True
        assert body["message"] == "File processed"
        assert body["result"]["merchant_name"] == "Cafe X"
        assert body["result"]["merchant_exists"] is False

    def test_duplicate(self, client):
        client.post("/api/receipts/process", files=pdf_upload())
        resp = client.post("/api/receipts/process", files=pdf_upload())
        assert resp.status_code == 400
        assert resp.json() == {"isProcessed": False, "message": "File already exists"}

    def test_wrong_type_reports_not_processed(self, client):
        resp = client.post(
            "/api/receipts/process", files=pdf_upload("photo.png", b"\x89PNG", "image/png")
        )
        assert resp.status_code == 400
        body = resp.json()
        assert body["isProcessed"] is False
        assert "image/png" in body["message"]

    def test_missing_file_reports_not_processed(self, client):
        resp = client.post("/api/receipts/process")
        assert resp.status_code == 400
        assert resp.json() == {"isProcessed": False, "message": "No file uploaded"}

    def test_extraction_failure_reports_not_processed(self, client, extractor):
        extractor.reply = "nothing to see"
        resp = client.post("/api/receipts/process", files=pdf_upload())
        assert resp.status_code == 500
        assert resp.json()["isProcessed"] is False


class TestReceipts:
    def test_list_empty(self, client):
        resp = client.get("/api/receipts")
        assert resp.status_code == 200
        assert resp.json() == {"receiptsArray": []}

    def test_list_coerces_amounts(self, client, extractor):
        extractor.reply = '{"merchant_name": "Big Store", "receipt_date": "2024-03-07", "amount": "$1,937.66"}'
        client.post("/api/receipts/upload-receipt", files=pdf_upload("big.pdf"))
        resp = client.get("/api/receipts")
        receipts = resp.json()["receiptsArray"]
        assert len(receipts) == 1
        assert receipts[0]["total_amount"] == 1937.66
        assert receipts[0]["purchased_at"] == "07-03-2024"

    def test_get_by_id(self, client, db):
        client.post("/api/receipts/upload-receipt", files=pdf_upload())
        rid = db.query(ReceiptRecordModel).one().id
        resp = client.get(f"/api/receipts/{rid}")
        assert resp.status_code == 200
        receipt = resp.json()["receiptDetails"]
        assert receipt["id"] == rid
        assert receipt["merchant_name"] == "Cafe X"
        assert receipt["total_amount"] == 12.5

    def test_get_not_found(self, client):
        resp = client.get("/api/receipts/nonexistent")
        assert resp.status_code == 404
        assert resp.json() == {"message": "Receipt not found"}

    def test_list_receipts_route(self, client):
        client.post("/api/receipts/upload-receipt", files=pdf_upload())
        resp = client.get("/api/receipts/list-receipts")
        assert resp.status_code == 200
        receipts = resp.json()["receiptsArray"]
        assert len(receipts) == 1
        assert receipts[0]["merchant_name"] == "Cafe X"
        assert receipts[0]["total_amount"] == 12.5

    def test_get_receipt_detail_route(self, client, db):
        client.post("/api/receipts/upload-receipt", files=pdf_upload())
        rid = db.query(ReceiptRecordModel).one().id
        resp = client.get(f"/api/receipts/get-receipt-detail/{rid}")
        assert resp.status_code == 200
        assert resp.json()["receiptDetails"]["id"] == rid

    def test_get_receipt_detail_not_found(self, client):
        resp = client.get("/api/receipts/get-receipt-detail/nonexistent")
        assert resp.status_code == 404
        assert resp.json() == {"message": "Receipt not found"}


class TestFileNameKey:
    @pytest.mark.parametrize("alias", ["a.pdf ", "dir/a.pdf", "..\\a.pdf"])
    def test_names_sharing_a_storage_path_are_duplicates(self, client, alias):
        assert client.post("/api/receipts/upload-receipt", files=pdf_upload()).status_code == 200
        resp = client.post("/api/receipts/upload-receipt", files=pdf_upload(alias))
        assert resp.status_code == 400
        assert resp.json() == {"message": "File already exists"}

    def test_record_keyed_by_stored_name(self, client, db):
        client.post("/api/receipts/upload", files=pdf_upload("dir/a.pdf"))
        record = db.query(FileRecordModel).one()
        assert record.file_name == "a.pdf"
        assert record.file_path.endswith("a.pdf")


class TestFallbackHandler:
    def test_unexpected_error_is_generic_500(self, db, storage, monkeypatch):
        from app.receipts.database import get_db
        from app.receipts.pipeline.extractor import get_extraction_client
        from app.receipts.routers.receipts import get_storage

        class Exploding:
            def extract(self, *args, **kwargs):
                raise RuntimeError("secret internals")

        app.dependency_overrides[get_db] = lambda: db
        app.dependency_overrides[get_storage] = lambda: storage
        app.dependency_overrides[get_extraction_client] = lambda: Exploding()
        try:
            with TestClient(app, raise_server_exceptions=False) as c:
                resp = c.post("/api/receipts/upload-receipt", files=pdf_upload())
        finally:
            app.dependency_overrides.clear()
        assert resp.status_code == 500
        assert resp.json() == {"message": "Something went wrong!"}


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
