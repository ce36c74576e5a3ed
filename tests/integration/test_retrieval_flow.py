"""
Live Retrieval Flow Integration Tests

Tests against a running stack (API + PostgreSQL with pgvector).
Marked with @pytest.mark.live for selective execution.

The caller must already hold a grant on the workspace:
    DOCVAULT_API_URL          (default http://localhost:8000)
    DOCVAULT_TEST_USER_ID     user with a workspace grant
    DOCVAULT_TEST_WORKSPACE_ID

Run with: pytest tests/integration/test_retrieval_flow.py -m live
"""

import os

import httpx
import pytest

API_URL = os.getenv("DOCVAULT_API_URL", "http://localhost:8000")
USER_ID = os.getenv("DOCVAULT_TEST_USER_ID")
WORKSPACE_ID = os.getenv("DOCVAULT_TEST_WORKSPACE_ID")

DOCUMENT = (
    "Quarterly report.\n\n"
    "Revenue grew by twelve percent, driven by the storage product line.\n\n"
    "Headcount stayed flat while support tickets dropped by a third."
)


@pytest.fixture
def api_client():
    if not (USER_ID and WORKSPACE_ID):
        pytest.skip("DOCVAULT_TEST_USER_ID and DOCVAULT_TEST_WORKSPACE_ID are required")
    with httpx.Client(
        base_url=API_URL, headers={"X-User-Id": USER_ID}, timeout=120.0
    ) as client:
        yield client


@pytest.fixture
def uploaded_file(api_client):
    """Upload and index a small text file with the local provider."""
    res = api_client.post(
        "/api/v1/files",
        data={"workspace_id": WORKSPACE_ID, "embeddings_provider": "local"},
        files={"file": ("Quarterly Report.txt", DOCUMENT.encode(), "text/plain")},
    )
    assert res.status_code == 201, res.text
    data = res.json()
    yield data
    api_client.delete(f"/api/v1/files/{data['id']}")


@pytest.mark.live
def test_upload_is_ready(uploaded_file):
    """The upload returns a fully indexed file under the workspace prefix."""
    assert uploaded_file["status"] == "ready"
    assert uploaded_file["tokens"] > 0
    assert uploaded_file["name"] == "quarterly_report.txt"
    assert uploaded_file["file_path"] == f"{WORKSPACE_ID}/quarterly_report.txt"


@pytest.mark.live
def test_retrieve_ranks_relevant_chunk(api_client, uploaded_file):
    """Search finds the revenue sentence for a revenue question."""
    res = api_client.post(
        "/api/retrieval/retrieve",
        json={
            "userInput": "How much did revenue grow?",
            "fileIds": [uploaded_file["id"]],
            "embeddingsProvider": "local",
            "sourceCount": 3,
        },
    )
    assert res.status_code == 200, res.text
    results = res.json()["results"]
    assert results
    similarities = [r["similarity"] for r in results]
    assert similarities == sorted(similarities, reverse=True)
    assert "Revenue" in results[0]["content"]


@pytest.mark.live
def test_signed_url_downloads_bytes(api_client, uploaded_file):
    res = api_client.get(f"/api/v1/files/{uploaded_file['id']}/url")
    assert res.status_code == 200

    download = api_client.get(res.json()["url"])
    assert download.status_code == 200
    assert download.content == DOCUMENT.encode()


@pytest.mark.live
def test_unknown_file_is_404(api_client):
    res = api_client.get("/api/v1/files/00000000-0000-0000-0000-000000000000")
    assert res.status_code == 404
    assert "message" in res.json()
