"""
Integration tests for the HTTP surface.

Uses FastAPI TestClient with the real app (minus lifespan).
The get_db dependency is overridden to use an in-memory SQLite session,
and the Lipila gateway is swapped through the GATEWAYS registry.
"""
from decimal import Decimal
from unittest.mock import AsyncMock, patch

from turapay import gateways, models
from turapay.config import Config
from turapay.gateways.lipila import LipilaGateway
from tests.conftest import auth_headers, gateway_response, make_profile, make_txn, mock_gateway

CARD = {
    "amount": 50,
    "currency": "USD",
    "cardNumber": "4111111111111111",
    "cardExpiry": "12/29",
    "cardCVV": "123",
    "cardholderName": "Jane Doe",
}
CREATED = gateway_response({"status": "Pending", "message": "Collection initiated"})


# ---------------------------------------------------------------------------
# /functions/v1/lipila-deposit
# ---------------------------------------------------------------------------
class TestDepositEndpoint:
    def test_preflight_returns_204_with_cors(self, client):
        resp = client.options("/functions/v1/lipila-deposit")
        assert resp.status_code == 204
        assert resp.headers["access-control-allow-origin"] == "*"
        assert "authorization" in resp.headers["access-control-allow-headers"]

    def test_unauthenticated_returns_401(self, client, db):
        gw = mock_gateway(create_collection=CREATED)
        with patch.dict(gateways.GATEWAYS, {"lipila": gw}):
            resp = client.post("/functions/v1/lipila-deposit", json=CARD)

        assert resp.status_code == 401
        assert resp.json() == {"error": "Unauthorized"}
        assert resp.headers["access-control-allow-origin"] == "*"
        gw.create_collection.assert_not_called()

    def test_unknown_token_returns_401(self, client, db):
        resp = client.post(
            "/functions/v1/lipila-deposit", json=CARD, headers={"Authorization": "Bearer nope"}
        )
        assert resp.status_code == 401

    def test_zero_amount_returns_400(self, client, db):
        user = make_profile(db)
        gw = mock_gateway(create_collection=CREATED)
        with patch.dict(gateways.GATEWAYS, {"lipila": gw}):
            resp = client.post(
                "/functions/v1/lipila-deposit", json=dict(CARD, amount=0), headers=auth_headers(user)
            )

        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid amount"}
        gw.create_collection.assert_not_called()

    def test_card_collection_returns_reference(self, client, db):
        user = make_profile(db)
        gw = mock_gateway(create_collection=CREATED)
        with patch.dict(gateways.GATEWAYS, {"lipila": gw}):
            resp = client.post("/functions/v1/lipila-deposit", json=CARD, headers=auth_headers(user))

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["referenceId"]
        assert gw.create_collection.await_args.args[0]["paymentType"] == "Card"

    def test_missing_card_details_returns_400(self, client, db):
        user = make_profile(db)
        resp = client.post(
            "/functions/v1/lipila-deposit", json={"amount": 50}, headers=auth_headers(user)
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "Card details are required"

    def test_missing_api_key_returns_500(self, client, db):
        user = make_profile(db)
        with patch.dict(gateways.GATEWAYS, {"lipila": LipilaGateway(api_key="")}):
            resp = client.post("/functions/v1/lipila-deposit", json=CARD, headers=auth_headers(user))

        assert resp.status_code == 500
        assert resp.json() == {"error": "Payment gateway not configured"}

    def test_gateway_rejection_passes_upstream_status(self, client, db):
        user = make_profile(db)
        gw = mock_gateway(create_collection=gateway_response({}, status_code=422, text="card declined"))
        with patch.dict(gateways.GATEWAYS, {"lipila": gw}):
            resp = client.post("/functions/v1/lipila-deposit", json=CARD, headers=auth_headers(user))

        assert resp.status_code == 422
        assert resp.json() == {"error": "Failed to create payment request", "details": "card declined"}

    def test_unexpected_error_returns_500_with_message(self, client, db):
        user = make_profile(db)
        gw = AsyncMock()
        gw.create_collection = AsyncMock(side_effect=RuntimeError("connection reset"))
        with patch.dict(gateways.GATEWAYS, {"lipila": gw}):
            resp = client.post("/functions/v1/lipila-deposit", json=CARD, headers=auth_headers(user))

        assert resp.status_code == 500
        assert resp.json() == {"error": "connection reset"}

    def test_status_check_returns_gateway_payload(self, client, db):
        user = make_profile(db)
        payload = {"status": "Pending", "referenceId": "ref-1"}
        gw = mock_gateway(collection_status=gateway_response(payload))
        with patch.dict(gateways.GATEWAYS, {"lipila": gw}):
            resp = client.post(
                "/functions/v1/lipila-deposit",
                json={"amount": 50, "referenceId": "ref-1"},
                headers=auth_headers(user),
            )
        assert resp.status_code == 200
        assert resp.json() == payload


# ---------------------------------------------------------------------------
# /functions/v1/lipila-disbursement
# ---------------------------------------------------------------------------
class TestDisbursementEndpoint:
    def test_preflight(self, client):
        assert client.options("/functions/v1/lipila-disbursement").status_code == 204

    def test_missing_account_returns_400(self, client, db):
        resp = client.post("/functions/v1/lipila-disbursement", json={"amount": 100})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Account number is required"}

    def test_successful_status_completes_transaction(self, client, db):
        make_txn(db, "abc123")
        gw = mock_gateway(disbursement_status=gateway_response({"status": "Successful"}))
        with patch.dict(gateways.GATEWAYS, {"lipila": gw}):
            resp = client.post(
                "/functions/v1/lipila-disbursement",
                json={
                    "amount": 100,
                    "accountNumber": "260971234567",
                    "transactionId": "abc123",
                    "referenceId": "ref-1",
                },
            )

        assert resp.status_code == 200
        assert resp.json() == {"status": "Successful"}
        assert db.query(models.Transaction).filter_by(id="abc123").one().status == "completed"


# ---------------------------------------------------------------------------
# /api/v1/transfers
# ---------------------------------------------------------------------------
class TestTransferEndpoints:
    def test_quote(self, client, db):
        resp = client.get("/api/v1/transfers/quote", params={"amount": 100})
        assert resp.status_code == 200
        body = resp.json()
        assert Decimal(body["fee"]) == Decimal("2.00")
        assert Decimal(body["total_amount"]) == Decimal("102.00")
        assert Decimal(body["payout_amount"]) == Decimal("2200.00")
        assert body["receiver_currency"] == "ZMW"
        assert body["currency"] == "USD"

    def test_quote_takes_receiver_currency_as_currency(self, client, db, fixed_rate):
        resp = client.get("/api/v1/transfers/quote", params={"amount": 10, "currency": "zmw"})
        assert resp.status_code == 200
        assert resp.json()["receiver_currency"] == "ZMW"
        fixed_rate.assert_awaited_with("zmw")

    def test_non_usd_sender_currency_returns_400(self, client, db):
        user = make_profile(db, verified=True)
        resp = client.post(
            "/api/v1/transfers",
            json={"amount": 10, "receiver_phone": "+260971234567", "currency": "EUR"},
            headers=auth_headers(user),
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid request"
        assert db.query(models.Transaction).count() == 0

    def test_create_transfer(self, client, db):
        user = make_profile(db, verified=True)
        resp = client.post(
            "/api/v1/transfers",
            json={"amount": 100, "receiver_phone": "+260971234567", "receiver_name": "Mary"},
            headers=auth_headers(user),
        )

        assert resp.status_code == 201
        body = resp.json()
        assert body["status"] == "pending"
        assert body["sender_id"] == user.id
        assert Decimal(body["fee"]) == Decimal("2.00")
        assert Decimal(body["exchange_rate"]) == Decimal("22")

    def test_unverified_over_limit_returns_400(self, client, db):
        user = make_profile(db, verified=False)
        resp = client.post(
            "/api/v1/transfers",
            json={"amount": 500, "receiver_phone": "+260971234567"},
            headers=auth_headers(user),
        )
        assert resp.status_code == 400
        assert "verify" in resp.json()["error"]
        assert db.query(models.Transaction).count() == 0

    def test_create_requires_auth(self, client, db):
        resp = client.post("/api/v1/transfers", json={"amount": 10, "receiver_phone": "+260971234567"})
        assert resp.status_code == 401

    def test_bad_body_returns_400(self, client, db):
        user = make_profile(db, verified=True)
        resp = client.post(
            "/api/v1/transfers",
            json={"amount": 10, "receiver_phone": "+260971234567", "currency": "DOLLARS"},
            headers=auth_headers(user),
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid request"

    def test_other_senders_transfer_is_forbidden(self, client, db):
        make_txn(db, "txn_1", sender_id="prof_other")
        user = make_profile(db, "prof_1")
        resp = client.get("/api/v1/transfers/txn_1", headers=auth_headers(user))
        assert resp.status_code == 403

    def test_unknown_transfer_returns_404(self, client, db):
        user = make_profile(db, "prof_1")
        resp = client.get("/api/v1/transfers/txn_missing", headers=auth_headers(user))
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# /api/v1/admin
# ---------------------------------------------------------------------------
class TestAdminEndpoints:
    def test_non_admin_is_forbidden(self, client, db):
        user = make_profile(db, "prof_1")
        resp = client.get("/api/v1/admin/transactions", headers=auth_headers(user))
        assert resp.status_code == 403

    def test_approve_then_second_approve_conflicts(self, client, db):
        operator = make_profile(db, "prof_admin", is_admin=True)
        make_txn(db, "txn_1")
        body = {"tid": "TID123", "sender_name": "Jane Doe"}

        first = client.post("/api/v1/admin/transactions/txn_1/approve", json=body, headers=auth_headers(operator))
        assert first.status_code == 200
        assert first.json()["status"] == "deposited"

        second = client.post(
            "/api/v1/admin/transactions/txn_1/approve",
            json={"tid": "TID999", "sender_name": "Someone Else"},
            headers=auth_headers(operator),
        )
        assert second.status_code == 409
        assert db.query(models.Transaction).filter_by(id="txn_1").one().tid == "TID123"

    def test_approve_without_tid_returns_400(self, client, db):
        operator = make_profile(db, "prof_admin", is_admin=True)
        make_txn(db, "txn_1")
        resp = client.post(
            "/api/v1/admin/transactions/txn_1/approve",
            json={"sender_name": "Jane"},
            headers=auth_headers(operator),
        )
        assert resp.status_code == 400

    def test_reject(self, client, db):
        operator = make_profile(db, "prof_admin", is_admin=True)
        make_txn(db, "txn_1")
        resp = client.post(
            "/api/v1/admin/transactions/txn_1/reject",
            json={"reason": "Proof missing"},
            headers=auth_headers(operator),
        )
        assert resp.status_code == 200
        assert resp.json()["rejection_reason"] == "Proof missing"

    def test_update_setting(self, client, db):
        operator = make_profile(db, "prof_admin", is_admin=True)
        resp = client.put(
            "/api/v1/admin/settings/transfer_fee_percentage",
            json={"value": "3"},
            headers=auth_headers(operator),
        )
        assert resp.status_code == 200
        assert resp.json()["settings"]["transfer_fee_percentage"] == "3"


# ---------------------------------------------------------------------------
# /api/v1/webhooks/lipila
# ---------------------------------------------------------------------------
class TestWebhookEndpoint:
    def test_event_confirmed_by_gateway(self, client, db):
        make_txn(db, "txn_1", status="processing", payment_reference="ref-1")
        gw = mock_gateway(disbursement_status=gateway_response({"status": "Successful"}))
        with patch.object(Config, "LIPILA_WEBHOOK_SECRET", ""), patch.dict(gateways.GATEWAYS, {"lipila": gw}):
            resp = client.post("/api/v1/webhooks/lipila", json={"referenceId": "ref-1", "status": "Successful"})

        assert resp.status_code == 200
        assert resp.json() == {"status": "processed"}
        assert db.query(models.Transaction).filter_by(id="txn_1").one().status == "completed"

    def test_forged_event_cannot_complete_transfer(self, client, db):
        make_txn(db, "victim")
        gw = mock_gateway(disbursement_status=gateway_response({"status": "Successful"}))
        with patch.object(Config, "LIPILA_WEBHOOK_SECRET", ""), patch.dict(gateways.GATEWAYS, {"lipila": gw}):
            resp = client.post(
                "/api/v1/webhooks/lipila",
                json={
                    "referenceId": "made-up",
                    "status": "Successful",
                    "type": "disbursement",
                    "transactionId": "victim",
                },
            )

        assert resp.status_code == 200
        assert resp.json() == {"status": "ignored"}
        assert db.query(models.Transaction).filter_by(id="victim").one().status == "pending"

    def test_unpaid_collection_event_does_not_credit(self, client, db):
        user = make_profile(db, balance=Decimal("0"))
        db.add(models.Deposit(
            reference_id="ref-unpaid", user_id=user.id, amount=Decimal("500.00"),
            currency="ZMW", payment_type="MobileMoney",
        ))
        db.commit()
        gw = mock_gateway(collection_status=gateway_response({"status": "Pending"}))
        with patch.object(Config, "LIPILA_WEBHOOK_SECRET", ""), patch.dict(gateways.GATEWAYS, {"lipila": gw}):
            resp = client.post(
                "/api/v1/webhooks/lipila",
                json={"referenceId": "ref-unpaid", "status": "Successful", "type": "collection"},
            )

        assert resp.status_code == 200
        db.refresh(user)
        assert user.balance == Decimal("0.00")

    def test_wrong_secret_returns_401(self, client, db):
        make_txn(db, "txn_1", status="processing", payment_reference="ref-1")
        gw = mock_gateway(disbursement_status=gateway_response({"status": "Successful"}))
        with patch.object(Config, "LIPILA_WEBHOOK_SECRET", "s3cret"), patch.dict(gateways.GATEWAYS, {"lipila": gw}):
            resp = client.post(
                "/api/v1/webhooks/lipila",
                json={"referenceId": "ref-1", "status": "Successful"},
                headers={"x-webhook-secret": "guess"},
            )

        assert resp.status_code == 401
        assert db.query(models.Transaction).filter_by(id="txn_1").one().status == "processing"
        gw.disbursement_status.assert_not_called()

    def test_matching_secret_is_accepted(self, client, db):
        gw = mock_gateway(disbursement_status=gateway_response({"status": "Failed"}))
        with patch.object(Config, "LIPILA_WEBHOOK_SECRET", "s3cret"), patch.dict(gateways.GATEWAYS, {"lipila": gw}):
            resp = client.post(
                "/api/v1/webhooks/lipila",
                json={"referenceId": "ref-x", "status": "Failed"},
                headers={"x-webhook-secret": "s3cret"},
            )
        assert resp.status_code == 200
        assert resp.json() == {"status": "ignored"}


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "service": "turapay-api"}
