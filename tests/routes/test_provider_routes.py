from barberbook.models import SubscriptionState
from tests.factories import VALID_SIGNATURE, create_provider, webhook_body

from .conftest import auth_headers

SERVICE = {"name": "Hot towel shave", "duration_minutes": 20, "price": "250.00"}


class TestProviderServices:
    def test_active_provider_adds_service(self, client, provider):
        response = client.post(
            "/api/v1/provider/services", json=SERVICE, headers=auth_headers(provider.id, "provider")
        )
        assert response.status_code == 201
        assert response.json()["provider_id"] == provider.id
        assert response.json()["is_active"] is True

    def test_failed_provider_blocked(self, client, db):
        provider = create_provider(db, status=SubscriptionState.FAILED)
        response = client.post(
            "/api/v1/provider/services", json=SERVICE, headers=auth_headers(provider.id, "provider")
        )
        assert response.status_code == 403
        assert response.json()["code"] == "SubscriptionInactive"

    def test_customers_cannot_manage_services(self, client, customer):
        response = client.post(
            "/api/v1/provider/services", json=SERVICE, headers=auth_headers(customer.id, "customer")
        )
        assert response.status_code == 403
        assert response.json()["code"] == "PROVIDER_REQUIRED"

    def test_patch_own_service(self, client, provider, haircut):
        response = client.patch(
            f"/api/v1/provider/services/{haircut.id}",
            json={"price": "320.00"},
            headers=auth_headers(provider.id, "provider"),
        )
        assert response.status_code == 200
        assert response.json()["price"] == "320.00"

    def test_patch_other_providers_service(self, client, db, haircut):
        intruder = create_provider(db)
        response = client.patch(
            f"/api/v1/provider/services/{haircut.id}",
            json={"price": "1.00"},
            headers=auth_headers(intruder.id, "provider"),
        )
        assert response.status_code == 403

    def test_negative_price_rejected(self, client, provider):
        response = client.post(
            "/api/v1/provider/services",
            json={**SERVICE, "price": "-5"},
            headers=auth_headers(provider.id, "provider"),
        )
        assert response.status_code == 422


class TestRegistration:
    BODY = {
        "full_name": "Asha Rao",
        "email": "asha@example.com",
        "mobile_number": "+919812345678",
        "shop_name": "Asha Salon",
        "shop_address": "7 Park Street",
    }

    def test_mandate_registration(self, client, gateway):
        response = client.post("/api/v1/providers/register", json=self.BODY)

        assert response.status_code == 201
        body = response.json()
        assert body["subscription_status"] == "PENDING_MANDATE"
        assert body["external_subscription_id"] == gateway.mandates[-1].subscription_id
        assert body["mandate_reference"] == gateway.mandates[-1].mandate_reference

    def test_fee_registration(self, client, gateway):
        gateway.add_payment("pi_fee", "499.00")
        response = client.post(
            "/api/v1/providers/register",
            json={**self.BODY, "registration_payment_reference": "pi_fee"},
        )
        assert response.status_code == 201
        assert response.json()["subscription_status"] == "ACTIVE"

    def test_duplicate_registration(self, client):
        assert client.post("/api/v1/providers/register", json=self.BODY).status_code == 201
        response = client.post("/api/v1/providers/register", json=self.BODY)
        assert response.status_code == 409


class TestSubscriptionWebhook:
    def test_unknown_subscription_acknowledged(self, client):
        response = client.post(
            "/api/v1/webhooks/subscription",
            content=webhook_body("subscription.charged", "sub_ghost", "evt_1"),
            headers={"X-Webhook-Signature": VALID_SIGNATURE},
        )
        assert response.status_code == 200
        assert response.json() == {"ok": True, "outcome": "ignored_unknown_subscription"}

    def test_charged_activates_provider(self, client, db):
        provider = create_provider(
            db, status=SubscriptionState.TRIAL, external_subscription_id="sub_live"
        )
        response = client.post(
            "/api/v1/webhooks/subscription",
            content=webhook_body("subscription.charged", "sub_live", "evt_2"),
            headers={"X-Webhook-Signature": VALID_SIGNATURE},
        )
        assert response.json()["outcome"] == "applied"
        db.refresh(provider)
        assert provider.subscription_status == "ACTIVE"

    def test_bad_signature(self, client):
        response = client.post(
            "/api/v1/webhooks/subscription",
            content=webhook_body("subscription.charged", "sub_live"),
            headers={"X-Webhook-Signature": "forged"},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_SIGNATURE"


def test_metrics_endpoint(client, provider, haircut):
    client.get(
        f"/api/v1/providers/{provider.id}/slots",
        params={"date": "2030-01-15", "serviceIds": haircut.id},
    )
    response = client.get("/metrics/prometheus")
    assert response.status_code == 200
    assert "barberbook_service_operations_total" in response.text
