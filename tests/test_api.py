"""HTTP contract tests for ordering, tickets, review and the identity webhook.

Run with: pytest tests/test_api.py -v
"""

import base64
import json
import uuid
from datetime import UTC, datetime

import pytest
from rest_framework.test import APIClient
from svix.webhooks import Webhook

from ticketing import models as orm
from ticketing.domain import Role, UserStatus
from tests.factories import make_user


def as_user(client: APIClient, user) -> APIClient:
    client.credentials(HTTP_X_IDENTITY_SUBJECT=user.external_id)
    return client


@pytest.mark.django_db
class TestFreeOrders:
    """Tests for POST /api/events/{event_id}/free-orders"""

    def test_registers_attendee(self, api_client, attendee, event, free_ticket_type):
        response = as_user(api_client, attendee).post(
            f"/api/events/{event.id}/free-orders",
            {"ticket_type_id": str(free_ticket_type.id), "quantity": 2},
            format="json",
        )

        assert response.status_code == 201
        assert response.json()["tickets_created"] == 2
        assert orm.Ticket.objects.filter(user=attendee).count() == 2

    def test_second_registration_conflicts(self, api_client, attendee, event, free_ticket_type):
        client = as_user(api_client, attendee)
        body = {"ticket_type_id": str(free_ticket_type.id), "quantity": 1}
        client.post(f"/api/events/{event.id}/free-orders", body, format="json")

        response = client.post(f"/api/events/{event.id}/free-orders", body, format="json")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "ALREADY_REGISTERED"

    def test_paid_type_rejected(self, api_client, attendee, event, paid_ticket_type):
        response = as_user(api_client, attendee).post(
            f"/api/events/{event.id}/free-orders",
            {"ticket_type_id": str(paid_ticket_type.id), "quantity": 1},
            format="json",
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_FREE_TICKET"

    def test_anonymous_rejected(self, api_client, event, free_ticket_type):
        response = api_client.post(
            f"/api/events/{event.id}/free-orders",
            {"ticket_type_id": str(free_ticket_type.id), "quantity": 1},
            format="json",
        )

        assert response.status_code == 401

    def test_invalid_ticket_type_id(self, api_client, attendee, event):
        response = as_user(api_client, attendee).post(
            f"/api/events/{event.id}/free-orders",
            {"ticket_type_id": "not-a-uuid", "quantity": 1},
            format="json",
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_ID"

    def test_registration_status(self, api_client, attendee, event, free_ticket_type):
        client = as_user(api_client, attendee)
        url = f"/api/events/{event.id}/registration"
        assert client.get(url).json() == {"registered": False}

        client.post(
            f"/api/events/{event.id}/free-orders",
            {"ticket_type_id": str(free_ticket_type.id), "quantity": 1},
            format="json",
        )

        assert client.get(url).json() == {"registered": True}


@pytest.mark.django_db
class TestPaidOrders:
    """Tests for the reserve-then-pay flow over HTTP"""

    def test_reserve_then_pay(self, api_client, attendee, event, paid_ticket_type):
        client = as_user(api_client, attendee)
        hold = client.post(
            f"/api/events/{event.id}/orders",
            {"items": [{"ticket_type_id": str(paid_ticket_type.id), "quantity": 2}]},
            format="json",
        )
        assert hold.status_code == 201
        assert hold.json()["total_amount"] == 100000
        assert hold.json()["currency"] == "ETB"

        paid = client.post(
            f"/api/orders/{hold.json()['order_id']}/payment",
            {"payment_reference": "chapa-123", "payment_provider": "chapa"},
            format="json",
        )

        assert paid.status_code == 200
        assert paid.json()["tickets_created"] == 2
        assert len({t["qr_code_secret"] for t in paid.json()["tickets"]}) == 2

        confirmation = client.get(f"/api/events/{event.slug}/confirmation")
        assert confirmation.status_code == 200
        assert confirmation.json()["order"]["status"] == "completed"

    def test_payment_twice_conflicts(self, api_client, attendee, event, paid_ticket_type):
        client = as_user(api_client, attendee)
        order_id = client.post(
            f"/api/events/{event.id}/orders",
            {"items": [{"ticket_type_id": str(paid_ticket_type.id), "quantity": 1}]},
            format="json",
        ).json()["order_id"]
        url = f"/api/orders/{order_id}/payment"
        client.post(url, {"payment_reference": "ref-1"}, format="json")

        response = client.post(url, {"payment_reference": "ref-1"}, format="json")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "ORDER_NOT_PENDING"

    def test_empty_items_rejected(self, api_client, attendee, event):
        response = as_user(api_client, attendee).post(
            f"/api/events/{event.id}/orders", {"items": []}, format="json"
        )

        assert response.status_code == 400
        assert "items" in response.json()["error"]["details"]

    def test_confirmation_missing(self, api_client, attendee, event):
        response = as_user(api_client, attendee).get(f"/api/events/{event.slug}/confirmation")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "ORDER_NOT_FOUND"


@pytest.mark.django_db
class TestCurrentUser:
    """Tests for GET /api/me and /api/me/tickets"""

    def test_me(self, api_client, attendee):
        response = as_user(api_client, attendee).get("/api/me")

        assert response.status_code == 200
        assert response.json()["display_name"] == "Attendee Bekele"
        assert response.json()["role"] == "attendee"

    def test_unknown_subject(self, api_client, db):
        api_client.credentials(HTTP_X_IDENTITY_SUBJECT="ghost")
        assert api_client.get("/api/me").status_code == 401

    def test_suspended_user(self, api_client, db):
        user = make_user("suspended", status=UserStatus.SUSPENDED.value)
        response = as_user(api_client, user).get("/api/me")

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "USER_SUSPENDED"

    def test_my_tickets(self, api_client, attendee, event, free_ticket_type):
        client = as_user(api_client, attendee)
        client.post(
            f"/api/events/{event.id}/free-orders",
            {"ticket_type_id": str(free_ticket_type.id), "quantity": 1},
            format="json",
        )

        (group,) = client.get("/api/me/tickets").json()

        assert group["event"]["slug"] == event.slug
        assert group["tickets"][0]["status"] == "valid"

    def test_my_tickets_anonymous(self, api_client, db):
        response = api_client.get("/api/me/tickets")

        assert response.status_code == 200
        assert response.json() == []


@pytest.mark.django_db
class TestStaffEndpoints:
    """Tests for attendee lists and check-in over HTTP"""

    @pytest.fixture
    def ticket(self, api_client, attendee, event, free_ticket_type):
        as_user(api_client, attendee).post(
            f"/api/events/{event.id}/free-orders",
            {"ticket_type_id": str(free_ticket_type.id), "quantity": 1},
            format="json",
        )
        return orm.Ticket.objects.get(user=attendee)

    def test_attendees_hide_qr_secret(self, api_client, organizer, event, ticket):
        response = as_user(api_client, organizer).get(
            f"/api/manage/events/{event.id}/attendees"
        )

        assert response.status_code == 200
        (entry,) = response.json()
        assert entry["ticket_count"] == 1
        assert "qr_code_secret" not in entry["tickets"][0]["ticket"]

    def test_attendees_empty_for_rival(self, api_client, event, ticket):
        rival = make_user("rival", Role.ORGANIZER)
        response = as_user(api_client, rival).get(f"/api/manage/events/{event.id}/attendees")

        assert response.status_code == 200
        assert response.json() == []

    def test_check_in(self, api_client, organizer, ticket):
        client = as_user(api_client, organizer)
        body = {"qr_code_secret": ticket.qr_code_secret}

        first = client.post("/api/manage/check-ins", body, format="json")
        second = client.post("/api/manage/check-ins", body, format="json")

        assert first.status_code == 200
        assert first.json()["status"] == "checked_in"
        assert second.status_code == 409
        assert second.json()["error"]["code"] == "TICKET_NOT_VALID"

    def test_check_in_by_attendee_forbidden(self, api_client, attendee, ticket):
        response = as_user(api_client, attendee).post(
            "/api/manage/check-ins", {"qr_code_secret": ticket.qr_code_secret}, format="json"
        )

        assert response.status_code == 403


@pytest.mark.django_db
class TestAdminReview:
    """Tests for /api/admin endpoints"""

    def test_review_queue_filter(self, api_client, admin_user, event, pending_event):
        response = as_user(api_client, admin_user).get("/api/admin/events?status=pending")

        assert response.status_code == 200
        assert [e["slug"] for e in response.json()] == [pending_event.slug]

    def test_bad_status_filter(self, api_client, admin_user):
        response = as_user(api_client, admin_user).get("/api/admin/events?status=archived")

        assert response.status_code == 400

    def test_approve_then_review_again(self, api_client, admin_user, pending_event):
        client = as_user(api_client, admin_user)
        url = f"/api/admin/events/{pending_event.id}/review"

        first = client.post(url, {"decision": "approve", "notes": "Looks good"}, format="json")
        second = client.post(url, {"decision": "reject"}, format="json")

        assert first.status_code == 200
        assert first.json() == {"status": "approved"}
        assert second.status_code == 409
        assert second.json()["error"]["code"] == "EVENT_ALREADY_REVIEWED"
        assert api_client.get(f"/api/events/{pending_event.slug}").status_code == 200

    def test_organizer_cannot_review(self, api_client, organizer, pending_event):
        response = as_user(api_client, organizer).post(
            f"/api/admin/events/{pending_event.id}/review",
            {"decision": "approve"},
            format="json",
        )

        assert response.status_code == 403

    def test_admin_stats(self, api_client, admin_user, event, pending_event):
        body = as_user(api_client, admin_user).get("/api/admin/stats").json()

        assert body["total_events"] == 2
        assert body["pending_events"] == 1
        assert body["admins"] == 1
        assert "total_checked_in" not in body


@pytest.mark.django_db
class TestIdentityWebhook:
    """Tests for POST /api/identity/webhook"""

    url = "/api/identity/webhook"
    signing_secret = "whsec_" + base64.b64encode(b"identity-webhook-signing-key-32b").decode()

    @pytest.fixture(autouse=True)
    def secret(self, settings):
        settings.TICKETING_WEBHOOK_SECRET = self.signing_secret

    @staticmethod
    def user_payload(event_type="user.created", **fields):
        data = {
            "id": "user_2abc",
            "first_name": "Hanna",
            "last_name": "Girma",
            "primary_email_address_id": "idn_1",
            "email_addresses": [
                {"id": "idn_0", "email_address": "old@example.com"},
                {"id": "idn_1", "email_address": "hanna@example.com"},
            ],
            "phone_numbers": [{"phone_number": "+251911000000"}],
        }
        data.update(fields)
        return {"type": event_type, "data": data}

    def post(self, client, payload, secret=None, **headers):
        body = json.dumps(payload)
        msg_id = "msg_" + uuid.uuid4().hex
        sent_at = datetime.now(UTC)
        signature = Webhook(secret or self.signing_secret).sign(msg_id, sent_at, body)
        signed = {
            "HTTP_SVIX_ID": msg_id,
            "HTTP_SVIX_TIMESTAMP": str(int(sent_at.timestamp())),
            "HTTP_SVIX_SIGNATURE": signature,
        }
        signed.update(headers)
        return client.post(self.url, body, content_type="application/json", **signed)

    def test_user_created(self, api_client, db):
        response = self.post(api_client, self.user_payload())

        assert response.status_code == 200
        assert response.json()["created"] is True
        user = orm.User.objects.get(external_id="user_2abc")
        assert user.email == "hanna@example.com"
        assert user.phone == "+251911000000"
        assert user.role == Role.ATTENDEE.value

    def test_user_updated_keeps_role(self, api_client, db):
        make_user("user_2abc", Role.ORGANIZER)

        response = self.post(api_client, self.user_payload("user.updated", first_name="Hana"))

        assert response.json()["created"] is False
        user = orm.User.objects.get(external_id="user_2abc")
        assert user.first_name == "Hana"
        assert user.role == Role.ORGANIZER.value

    def test_signed_with_other_secret(self, api_client, db):
        other = "whsec_" + base64.b64encode(b"some-other-providers-signing-key").decode()

        response = self.post(api_client, self.user_payload(), secret=other)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_SIGNATURE"
        assert not orm.User.objects.exists()

    def test_tampered_signature(self, api_client, db):
        response = self.post(
            api_client, self.user_payload(), HTTP_SVIX_SIGNATURE="v1,bm90LWEtc2lnbmF0dXJl"
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_SIGNATURE"

    def test_missing_signature_headers(self, api_client, db):
        response = api_client.post(self.url, self.user_payload(), format="json")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_SIGNATURE"
        assert not orm.User.objects.exists()

    def test_stale_timestamp(self, api_client, db):
        response = self.post(
            api_client,
            self.user_payload(),
            HTTP_SVIX_TIMESTAMP=str(int(datetime.now(UTC).timestamp()) - 3600),
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_SIGNATURE"

    def test_unconfigured_secret_rejects(self, api_client, db, settings):
        settings.TICKETING_WEBHOOK_SECRET = ""

        response = self.post(api_client, self.user_payload())

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_SIGNATURE"

    def test_missing_primary_email(self, api_client, db):
        response = self.post(
            api_client, self.user_payload(primary_email_address_id=None)
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_PAYLOAD"

    def test_missing_user_id(self, api_client, db):
        payload = self.user_payload()
        del payload["data"]["id"]

        response = self.post(api_client, payload)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_PAYLOAD"
        assert not orm.User.objects.exists()

    def test_list_body_rejected(self, api_client, db):
        response = self.post(api_client, [self.user_payload()])

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_PAYLOAD"

    def test_non_object_data_rejected(self, api_client, db):
        response = self.post(api_client, {"type": "user.deleted", "data": "user_2abc"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_PAYLOAD"

    def test_user_deleted(self, api_client, db):
        make_user("user_2abc")

        response = self.post(api_client, {"type": "user.deleted", "data": {"id": "user_2abc"}})

        assert response.json() == {"removed": True}
        assert not orm.User.objects.filter(external_id="user_2abc").exists()

    def test_deleted_user_with_history_is_suspended(
        self, api_client, organizer, event
    ):
        response = self.post(
            api_client, {"type": "user.deleted", "data": {"id": organizer.external_id}}
        )

        assert response.json() == {"removed": True}
        organizer.refresh_from_db()
        assert organizer.status == UserStatus.SUSPENDED.value

    def test_unknown_type_ignored(self, api_client, db):
        response = self.post(api_client, {"type": "session.created", "data": {}})

        assert response.json() == {"ignored": True}
