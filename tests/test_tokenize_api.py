"""Tests for the tokenization request endpoints."""

import re
import time

from modules.tokenization import new_request_id

WALLET = "0x23de198F1520ad386565fc98AEE6abb3Ae5052BE"


async def open_request(client, **overrides) -> dict:
    payload = {
        "walletAddress": WALLET,
        "propertyAddress": "Zona 10, Ciudad de Guatemala",
        "estimatedValue": 250000,
    }
    payload.update(overrides)
    response = await client.post("/api/tokenize", json=payload)
    assert response.status_code == 200, response.text
    return response.json()["data"]


class TestStartTokenization:
    """Tests for POST /api/tokenize."""

    async def test_creates_pending_request(self, client) -> None:
        """A new request starts in pending_documents with every flag false."""
        request = await open_request(client)
        assert re.fullmatch(r"token-\d+-[0-9a-f]{6}", request["id"])
        assert request["walletAddress"] == WALLET
        assert request["estimatedValue"] == 250000
        assert request["tokenizationType"] == "fractional"
        assert request["status"] == "pending_documents"
        assert request["documentsUploaded"] is False
        assert request["notaryVerified"] is False
        assert request["contractDeployed"] is False
        assert request["documentLinks"] is None

    async def test_whole_type_accepted(self, client) -> None:
        """tokenizationType=whole is kept as given."""
        request = await open_request(client, tokenizationType="whole")
        assert request["tokenizationType"] == "whole"

    async def test_invalid_type_rejected(self, client) -> None:
        """Unknown tokenization types are a 400."""
        response = await client.post("/api/tokenize", json={
            "walletAddress": WALLET, "propertyAddress": "Zona 1", "estimatedValue": 1000,
            "tokenizationType": "partial",
        })
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Invalid tokenization type"}

    async def test_missing_fields_rejected(self, client) -> None:
        """Each required field is enforced."""
        for missing in ("walletAddress", "propertyAddress", "estimatedValue"):
            payload = {"walletAddress": WALLET, "propertyAddress": "Zona 1", "estimatedValue": 1000}
            del payload[missing]
            response = await client.post("/api/tokenize", json=payload)
            assert response.status_code == 400
            assert response.json() == {"success": False, "error": "Missing required fields"}

    async def test_zero_value_counts_as_missing(self, client) -> None:
        """estimatedValue of 0 is treated as absent."""
        response = await client.post("/api/tokenize", json={
            "walletAddress": WALLET, "propertyAddress": "Zona 1", "estimatedValue": 0,
        })
        assert response.status_code == 400

    async def test_malformed_body_is_400(self, client) -> None:
        """A non-numeric estimatedValue fails request validation."""
        response = await client.post("/api/tokenize", json={
            "walletAddress": WALLET, "propertyAddress": "Zona 1", "estimatedValue": "a lot",
        })
        assert response.status_code == 400
        assert response.json()["success"] is False

    async def test_ids_are_unique(self, client) -> None:
        """Two requests opened back to back get different ids."""
        first = await open_request(client)
        second = await open_request(client)
        assert first["id"] != second["id"]


class TestWalletRequests:
    """Tests for GET /api/tokenize/{wallet}."""

    async def test_lists_only_that_wallet(self, client) -> None:
        """Requests are filtered by exact wallet address."""
        await open_request(client)
        await open_request(client, walletAddress="0x0000000000000000000000000000000000000001")

        body = (await client.get(f"/api/tokenize/{WALLET}")).json()
        assert body["success"] is True
        assert len(body["data"]) == 1
        assert body["data"][0]["walletAddress"] == WALLET

    async def test_newest_first(self, client) -> None:
        """The most recently opened request is listed first."""
        first = await open_request(client)
        second = await open_request(client)
        ids = [r["id"] for r in (await client.get(f"/api/tokenize/{WALLET}")).json()["data"]]
        assert ids == [second["id"], first["id"]]

    async def test_unknown_wallet_is_empty(self, client) -> None:
        """No requests → empty list, still a success."""
        body = (await client.get("/api/tokenize/0xnobody")).json()
        assert body == {"success": True, "data": []}


class TestUpdateDocuments:
    """Tests for POST /api/tokenize/{id}/documents."""

    async def test_links_mark_documents_uploaded(self, client) -> None:
        """Attaching links without a flag sets documentsUploaded."""
        request = await open_request(client)
        links = {"deed": "ar://deed123", "rgp": "ar://rgp456"}

        response = await client.post(f"/api/tokenize/{request['id']}/documents", json={"documentLinks": links})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Documents updated successfully"
        assert body["data"]["documentLinks"] == links
        assert body["data"]["documentsUploaded"] is True
        assert body["data"]["status"] == "pending_documents"

    async def test_arweave_links_alias(self, client) -> None:
        """arweaveLinks is accepted as the links field."""
        request = await open_request(client)
        response = await client.post(
            f"/api/tokenize/{request['id']}/documents", json={"arweaveLinks": ["ar://a", "ar://b"]},
        )
        assert response.json()["data"]["documentLinks"] == ["ar://a", "ar://b"]

    async def test_status_advance(self, client) -> None:
        """Moving to pending_notary_verification implies documents are uploaded."""
        request = await open_request(client)
        data = (await client.post(
            f"/api/tokenize/{request['id']}/documents", json={"status": "pending_notary_verification"},
        )).json()["data"]
        assert data["status"] == "pending_notary_verification"
        assert data["documentsUploaded"] is True
        assert data["notaryVerified"] is False

    async def test_contract_deployed_sets_every_flag(self, client) -> None:
        """contract_deployed is terminal and implies the earlier steps."""
        request = await open_request(client)
        data = (await client.post(
            f"/api/tokenize/{request['id']}/documents", json={"status": "contract_deployed"},
        )).json()["data"]
        assert data["documentsUploaded"] is True
        assert data["notaryVerified"] is True
        assert data["contractDeployed"] is True

    async def test_explicit_flag_wins_over_links(self, client) -> None:
        """documentsUploaded=false is respected even when links are sent."""
        request = await open_request(client)
        data = (await client.post(
            f"/api/tokenize/{request['id']}/documents",
            json={"documentLinks": {"deed": "ar://x"}, "documentsUploaded": False},
        )).json()["data"]
        assert data["documentsUploaded"] is False

    async def test_invalid_status_rejected(self, client) -> None:
        """Unknown statuses are a 400 and leave the request untouched."""
        request = await open_request(client)
        response = await client.post(f"/api/tokenize/{request['id']}/documents", json={"status": "done"})
        assert response.status_code == 400
        assert response.json()["success"] is False

        stored = (await client.get(f"/api/tokenize/{WALLET}")).json()["data"][0]
        assert stored["status"] == "pending_documents"

    async def test_unknown_request_is_404(self, client) -> None:
        """Updating a request that does not exist → 404."""
        response = await client.post("/api/tokenize/token-0-000000/documents", json={"documentLinks": {}})
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Tokenization request not found"}

    async def test_update_persists(self, client) -> None:
        """The wallet listing reflects the update."""
        request = await open_request(client)
        await client.post(f"/api/tokenize/{request['id']}/documents", json={"documentLinks": {"deed": "ar://d"}})
        stored = (await client.get(f"/api/tokenize/{WALLET}")).json()["data"][0]
        assert stored["documentLinks"] == {"deed": "ar://d"}
        assert stored["documentsUploaded"] is True


class TestRequestIds:
    """Tests for new_request_id."""

    def test_embeds_utc_epoch_millis(self, guatemala_tz) -> None:
        """The id carries UTC epoch ms even when the host clock is UTC-6."""
        before = int(time.time() * 1000)
        request_id = new_request_id()
        after = int(time.time() * 1000)

        millis = int(request_id.split("-")[1])
        assert before <= millis <= after

    def test_ids_do_not_collide(self) -> None:
        """Two ids minted in the same millisecond still differ."""
        assert len({new_request_id() for _ in range(50)}) == 50
