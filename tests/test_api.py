"""End to end tests through the HTTP API"""

from decimal import Decimal
import uuid

import httpx

from sahal.core.database import get_db
from sahal.core.security import SecurityUtils
from sahal.main import app
from tests.base import DatabaseTestCase

def auth_headers(principal_id, role):
    token = SecurityUtils.create_access_token({"sub": str(principal_id), "role": role})
    return {"Authorization": f"Bearer {token}"}

class APITest(DatabaseTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()

        async def override_get_db():
            async with self.session_factory() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise

        app.dependency_overrides[get_db] = override_get_db
        self.client = httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app),
            base_url="http://test"
        )

        self.marketer = await self.make_marketer()
        self.admin = auth_headers(uuid.uuid4(), "admin")
        self.marketer_auth = auth_headers(self.marketer.id, "marketer")

    async def asyncTearDown(self):
        await self.client.aclose()
        app.dependency_overrides.clear()
        await super().asyncTearDown()

    async def submit_and_approve(self, phone="612345678"):
        response = await self.client.post(
            "/api/v1/recruitment/submissions",
            json={"full_name": "Sahra Abdi", "phone": phone, "months_purchased": 3},
            headers=self.marketer_auth
        )
        self.assertEqual(response.status_code, 201, response.text)
        pending_id = response.json()["id"]

        response = await self.client.post(
            f"/api/v1/recruitment/submissions/{pending_id}/approve",
            headers=self.admin
        )
        self.assertEqual(response.status_code, 200, response.text)
        return pending_id, response.json()

    async def test_health(self):
        response = await self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "healthy")

    async def test_missing_token_is_unauthorized(self):
        response = await self.client.get("/api/v1/cards/summary")

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {
            "success": False,
            "error": {"code": "UNAUTHORIZED", "message": "Unauthorized"}
        })

    async def test_marketer_cannot_approve(self):
        response = await self.client.post(
            f"/api/v1/recruitment/submissions/{uuid.uuid4()}/approve",
            headers=self.marketer_auth
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["error"]["code"], "FORBIDDEN")

    async def test_recruitment_flow(self):
        pending_id, approval = await self.submit_and_approve()

        self.assertEqual(approval["submission"]["status"], "approved")
        self.assertEqual(approval["customer"]["phone"], "+252612345678")
        self.assertFalse(approval["customer"]["can_login"])
        self.assertEqual(Decimal(approval["commission"]), Decimal("0.40"))

        card_number = approval["card"]["card_number"]
        response = await self.client.get(
            f"/api/v1/cards/{card_number}/validate",
            headers=self.admin
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["usable"])

        again = await self.client.post(
            f"/api/v1/recruitment/submissions/{pending_id}/approve",
            headers=self.admin
        )
        self.assertEqual(again.status_code, 409)
        self.assertEqual(again.json()["error"]["code"], "ALREADY_REVIEWED")

        mine = await self.client.get("/api/v1/recruitment/submissions/mine", headers=self.marketer_auth)
        self.assertEqual(mine.json()["counts"]["approved"], 1)

    async def test_submission_months_out_of_range(self):
        response = await self.client.post(
            "/api/v1/recruitment/submissions",
            json={"full_name": "Sahra Abdi", "phone": "612345678", "months_purchased": 0},
            headers=self.marketer_auth
        )
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["error"]["code"], "VALIDATION_ERROR")

    async def test_customer_card_and_self_renewal(self):
        _, approval = await self.submit_and_approve()
        customer = auth_headers(approval["customer"]["id"], "customer")

        response = await self.client.get("/api/v1/cards/me", headers=customer)
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["is_usable"])
        self.assertIn(body["status_text"], ("Active", "Expiring Soon"))

        response = await self.client.post("/api/v1/payments/renew", json={}, headers=customer)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["code"], "PAYMENT_NOT_DUE")

        response = await self.client.get("/api/v1/payments/history", headers=customer)
        self.assertEqual(len(response.json()["renewals"]), 1)

    async def test_operator_payments_and_overrides(self):
        _, approval = await self.submit_and_approve()
        card_number = approval["card"]["card_number"]

        response = await self.client.post(
            "/api/v1/payments/flexible",
            json={"card_number": card_number, "amount": "0.5"},
            headers=self.admin
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["code"], "BELOW_MINIMUM_PAYMENT")

        response = await self.client.post(
            "/api/v1/payments/flexible",
            json={"card_number": card_number, "amount": "100000"},
            headers=self.admin
        )
        self.assertEqual(response.status_code, 422)

        response = await self.client.post(
            "/api/v1/payments/flexible",
            json={"card_number": card_number, "amount": "6"},
            headers=self.admin
        )
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["renewal"]["months_added"], 6)

        response = await self.client.post(
            f"/api/v1/cards/{card_number}/mark-invalid",
            json={"notes": None},
            headers=self.admin
        )
        self.assertEqual(response.json()["suspension_reason"], "Payment not received")

        summary = await self.client.get("/api/v1/cards/summary", headers=self.admin)
        self.assertEqual(summary.json()["invalid_payments"], 1)

        listing = await self.client.get("/api/v1/cards?payment_status=invalid", headers=self.admin)
        self.assertEqual(listing.json()["total"], 1)
        self.assertEqual(listing.json()["items"][0]["card"]["card_number"], card_number)

        response = await self.client.post(
            f"/api/v1/cards/{card_number}/mark-valid",
            json={"notes": "Paid in cash"},
            headers=self.admin
        )
        self.assertEqual(response.json()["payment_status"], "valid")

    async def test_admin_customer_lifecycle_and_sweep(self):
        response = await self.client.post(
            "/api/v1/admin/customers",
            json={"full_name": "Omar Farah", "phone": "+252617777777"},
            headers=self.admin
        )
        self.assertEqual(response.status_code, 201, response.text)
        customer_id = response.json()["customer"]["id"]
        card_number = response.json()["card"]["card_number"]

        response = await self.client.post("/api/v1/admin/sweep", headers=self.admin)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["suspended"], 0)

        stats = await self.client.get("/api/v1/admin/subscription-stats", headers=self.admin)
        self.assertEqual(stats.json()["total_cards"], 1)

        response = await self.client.delete(f"/api/v1/admin/customers/{customer_id}", headers=self.admin)
        self.assertEqual(response.status_code, 204)

        response = await self.client.get(f"/api/v1/cards/{card_number}/validate", headers=self.admin)
        self.assertEqual(response.status_code, 404)

    async def test_marketer_management_and_earnings(self):
        response = await self.client.post(
            "/api/v1/marketers",
            json={"full_name": "Abdi Noor", "phone": "611000009"},
            headers=self.admin
        )
        self.assertEqual(response.status_code, 201, response.text)
        other_id = response.json()["id"]
        self.assertEqual(response.json()["phone"], "+252611000009")

        response = await self.client.post(
            "/api/v1/marketers",
            json={"full_name": "Abdi Noor", "phone": "611000009"},
            headers=self.marketer_auth
        )
        self.assertEqual(response.status_code, 403)

        await self.submit_and_approve()

        response = await self.client.get(
            f"/api/v1/marketers/{self.marketer.id}/earnings", headers=self.marketer_auth
        )
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(Decimal(response.json()["total_earnings"]), Decimal("0.40"))
        self.assertEqual(response.json()["approved_customers_count"], 1)

        response = await self.client.get(
            f"/api/v1/marketers/{other_id}/earnings", headers=self.marketer_auth
        )
        self.assertEqual(response.status_code, 403)

        listing = await self.client.get("/api/v1/marketers", headers=self.admin)
        self.assertEqual(listing.json()["total"], 2)

        registered = await self.client.get(
            f"/api/v1/marketers/{self.marketer.id}/registered-customers", headers=self.admin
        )
        self.assertEqual(registered.status_code, 200, registered.text)
        self.assertEqual(registered.json()["total"], 1)
        self.assertEqual(registered.json()["items"][0]["registered_by_id"], str(self.marketer.id))
