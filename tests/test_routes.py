"""Tests for the auth, payment, participant, change request and admin routes."""

import datetime
import io
import os
import zipfile
from unittest.mock import MagicMock, patch

from korban import create_app

from .helpers import ADMIN_ID, PARTICIPANT_USER_ID, RouteTestCase

ALL_ROUTES = (
    "korban.auth.routes",
    "korban.group.routes",
    "korban.participant.routes",
    "korban.payment.routes",
    "korban.change_request.routes",
    "korban.diagnostics.routes",
    "korban.storage.routes",
)


class AppRoutesTestCase(RouteTestCase):
    route_modules = ALL_ROUTES
    storage_modules = ("korban.storage.routes",)

    def setUp(self):
        super().setUp()
        auth_patcher = patch("korban.auth.routes.auth")
        self.mock_auth = auth_patcher.start()
        self.addCleanup(auth_patcher.stop)
        self.db.collection("groups").document("g1").set({"name": "Kumpulan 1"})
        self.db.collection("participants").document("p1").set(
            {"name": "Ahmad", "groupId": "g1", "phone": "0123"}
        )
        self.db.collection("participants").document("p2").set(
            {"name": "Siti", "groupId": "g1"}
        )


class AuthRoutesTestCase(AppRoutesTestCase):
    def test_session_login_for_admin(self):
        self.db.collection("userRoles").document(ADMIN_ID).set({"role": "admin"})
        self.mock_auth.verify_id_token.return_value = {"uid": ADMIN_ID}

        response = self.client.post("/auth/session_login", json={"idToken": "t"})

        self.assertEqual(response.status_code, 200)
        with self.client.session_transaction() as sess:
            self.assertEqual(sess["user_id"], ADMIN_ID)
            self.assertTrue(sess["is_admin"])

    def test_session_login_for_participant(self):
        self.db.collection("userRoles").document(PARTICIPANT_USER_ID).set(
            {"role": "participant", "participantId": "p1"}
        )
        self.mock_auth.verify_id_token.return_value = {"uid": PARTICIPANT_USER_ID}

        self.client.post("/auth/session_login", json={"idToken": "t"})

        with self.client.session_transaction() as sess:
            self.assertFalse(sess["is_admin"])
            self.assertEqual(sess["participant_id"], "p1")

    def test_session_login_without_role(self):
        self.mock_auth.verify_id_token.return_value = {"uid": "stranger"}
        response = self.client.post("/auth/session_login", json={"idToken": "t"})
        self.assertEqual(response.status_code, 404)

    def test_invalid_token(self):
        self.mock_auth.verify_id_token.side_effect = ValueError("bad token")
        response = self.client.post("/auth/session_login", json={"idToken": "t"})
        self.assertEqual(response.status_code, 401)

    def test_missing_token(self):
        response = self.client.post("/auth/session_login", json={})
        self.assertEqual(response.status_code, 400)

    def test_logout_clears_session(self):
        self.login_admin()
        self.client.post("/auth/logout")
        self.assertEqual(self.client.get("/groups/").status_code, 401)

    def test_register_creates_role(self):
        self.mock_auth.create_user.return_value = MagicMock(uid="new-uid")
        response = self.client.post(
            "/auth/register",
            json={
                "email": "siti@gmail.com",
                "password": "rahsia123",
                "confirm_password": "rahsia123",
                "display_name": "Siti",
                "participant_id": "p2",
            },
        )
        self.assertEqual(response.status_code, 201)
        role = self.db.collection("userRoles").document("new-uid").get().to_dict()
        self.assertEqual(role["role"], "participant")
        self.assertEqual(role["participantId"], "p2")


class ParticipantAndPaymentRoutesTestCase(AppRoutesTestCase):
    def test_participant_sees_own_progress_only(self):
        self.login_participant("p1")
        own = self.client.get("/participants/p1")
        self.assertEqual(own.status_code, 200)
        self.assertEqual(own.get_json()["progress"]["totalMonths"], 8)
        self.assertEqual(self.client.get("/participants/p2").status_code, 403)

    def test_record_payment_and_export(self):
        self.login_admin()
        response = self.client.post(
            "/payments/",
            json={
                "participant_id": "p1",
                "month": "2025-09",
                "amount": 100,
                "is_paid": True,
                "paid_date": "2025-09-03",
            },
        )
        self.assertEqual(response.status_code, 201)

        export = self.client.get("/payments/export?month=2025-09")
        self.assertEqual(export.mimetype, "text/csv")
        lines = export.get_data(as_text=True).splitlines()
        self.assertEqual(len(lines), 3)
        ahmad = next(line for line in lines if line.startswith("Ahmad"))
        self.assertIn("Sudah Bayar", ahmad)
        self.assertIn("2025-09-03", ahmad)

    def test_payment_form_errors(self):
        self.login_admin()
        response = self.client.post(
            "/payments/", json={"participant_id": "p1", "month": "Sept", "amount": 1}
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("month", response.get_json()["message"])

    def test_group_summary(self):
        self.login_admin()
        self.db.collection("payments").document("pay1").set(
            {"participantId": "p1", "month": "2025-09", "amount": 100, "isPaid": True}
        )
        response = self.client.get("/groups/summary?month=2025-09")
        summary = response.get_json()[0]
        self.assertEqual(summary["totalPaid"], 1)
        self.assertEqual(summary["completionPercentage"], 50.0)


class ChangeRequestRoutesTestCase(AppRoutesTestCase):
    def test_request_and_approve(self):
        self.login_participant("p1")
        response = self.client.post(
            "/change-requests/", json={"participant_id": "p1", "phone": "0199"}
        )
        self.assertEqual(response.status_code, 201)
        request_id = response.get_json()["id"]

        self.login_admin()
        pending = self.client.get("/change-requests/pending").get_json()
        self.assertEqual([r["id"] for r in pending], [request_id])
        approved = self.client.post(f"/change-requests/{request_id}/approve")
        self.assertEqual(approved.status_code, 200)

        participant = self.db.collection("participants").document("p1").get()
        self.assertEqual(participant.to_dict()["phone"], "0199")
        again = self.client.post(f"/change-requests/{request_id}/reject", json={})
        self.assertEqual(again.status_code, 409)

    def test_participant_cannot_request_for_others(self):
        self.login_participant("p1")
        response = self.client.post(
            "/change-requests/", json={"participant_id": "p2", "phone": "0199"}
        )
        self.assertEqual(response.status_code, 403)


class AdminToolsRoutesTestCase(AppRoutesTestCase):
    def test_scan_uses_configured_capacity(self):
        self.app.config["GROUP_CAPACITY"] = 3
        self.login_admin()
        result = self.client.get("/diagnostics/scan").get_json()
        self.assertEqual(result["expected"], 3)
        self.assertEqual(result["actual"], 2)
        self.assertEqual(result["orphaned"], [])

    def test_cleanup_orphans(self):
        self.db.collection("participants").document("p9").set(
            {"name": "Lost", "groupId": "gone"}
        )
        self.login_admin()
        response = self.client.post("/diagnostics/cleanup-orphans")
        self.assertEqual(response.get_json()["deleted"], 1)

    def test_download_month(self):
        blob = MagicMock()
        blob.name = "receipts/a.jpg"
        blob.size = 3
        blob.time_created = datetime.datetime(
            2025, 9, 2, tzinfo=datetime.timezone.utc
        )
        blob.download_as_bytes.return_value = b"abc"
        bucket = self.mock_storage.bucket.return_value
        bucket.list_blobs.return_value = [blob]
        self.login_admin()

        response = self.client.get("/storage/months/2025-09/download")

        self.assertEqual(response.mimetype, "application/zip")
        with zipfile.ZipFile(io.BytesIO(response.data)) as archive:
            self.assertEqual(archive.namelist(), ["receipts/2025-09/a.jpg"])

    def test_download_empty_month(self):
        self.mock_storage.bucket.return_value.list_blobs.return_value = []
        self.login_admin()
        response = self.client.get("/storage/months/2025-09/download")
        self.assertEqual(response.status_code, 404)

    def test_bad_month(self):
        self.login_admin()
        response = self.client.get("/storage/months/2025-13/files")
        self.assertEqual(response.status_code, 400)

    def test_usage_alerts(self):
        blob = MagicMock()
        blob.name = "receipts/a.jpg"
        blob.size = 4_500_000_000
        blob.time_created = datetime.datetime(
            2025, 9, 2, tzinfo=datetime.timezone.utc
        )
        self.mock_storage.bucket.return_value.list_blobs.return_value = [blob]
        self.login_admin()

        usage = self.client.get("/storage/usage").get_json()

        self.assertEqual([a["type"] for a in usage["alerts"]], ["warning"])
        self.assertEqual(usage["total_files"], 1)


class ConfigTestCase(RouteTestCase):
    def test_business_constants_default(self):
        self.assertEqual(self.app.config["GROUP_CAPACITY"], 7)
        self.assertEqual(self.app.config["MONTHLY_AMOUNT"], 100)
        self.assertEqual(self.app.config["REJECTED_RECEIPT_MAX_AGE_DAYS"], 30)

    def test_environment_overrides(self):
        with patch.dict(os.environ, {"GROUP_CAPACITY": "8"}):
            app = create_app({"TESTING": True})
        self.assertEqual(app.config["GROUP_CAPACITY"], 8)

    def test_unknown_route_is_json(self):
        response = self.client.get("/nope")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json()["status"], "error")
